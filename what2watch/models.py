"""
Data model for the recommendation engine.
Every record is immutable once built; `to_dict()` gives the JSON shape.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

# Content types as chosen in the quiz
CONTENT_MOVIE = "movie"
CONTENT_TV = "tvShow"
CONTENT_BOTH = "both"
CONTENT_TYPES = (CONTENT_MOVIE, CONTENT_TV, CONTENT_BOTH)

# Catalog media types
MEDIA_MOVIE = "movie"
MEDIA_TV = "tv"

ERA_ANY = "any"
ERA_NEW = "new"
ERA_CLASSIC = "classic"

DEFAULT_DURATION = 120

# Buzz levels and sentiment labels
BUZZ_HIGH = "High"
BUZZ_MEDIUM = "Medium"
BUZZ_LOW = "Low"
BUZZ_UNKNOWN = "Unknown"

SENTIMENT_POSITIVE = "Positive"
SENTIMENT_NEUTRAL = "Neutral"
SENTIMENT_NEGATIVE = "Negative"
SENTIMENT_UNKNOWN = "Unknown"

# Enhanced buzz categories (volume x sentiment)
TRENDING_POSITIVE = "Trending Positive"
TRENDING_NEGATIVE = "Trending Negative"
POPULAR_DISCUSSION = "Popular Discussion"
CONTROVERSIAL = "Controversial"
NICHE_INTEREST = "Niche Interest"
LOW_BUZZ = "Low Buzz"

VARIANT_STANDARD = "A"
VARIANT_ENHANCED = "B"
VARIANTS = (VARIANT_STANDARD, VARIANT_ENHANCED)


@dataclass(frozen=True)
class GenrePriority:
    genre: str
    priority: int

    @classmethod
    def parse(cls, data: Any) -> Optional["GenrePriority"]:
        """Build from a {'genre', 'priority'} mapping; malformed entries give None."""
        if not isinstance(data, dict):
            return None
        genre, priority = data.get("genre"), data.get("priority")
        if genre is None or priority is None or isinstance(priority, bool):
            return None
        try:
            priority = int(priority)
        except (TypeError, ValueError):
            return None
        # Priorities run from 1 (most important) upward
        if priority < 1:
            return None
        return cls(genre=str(genre), priority=priority)


@dataclass(frozen=True)
class QuizAnswer:
    """A single answered quiz question."""

    question: str
    answer: Union[str, Tuple[str, ...]]
    genre_priorities: Optional[Tuple[GenrePriority, ...]] = None

    @property
    def answer_text(self) -> str:
        """Answer as one string; multi-select answers are comma joined."""
        if isinstance(self.answer, (list, tuple)):
            return ", ".join(str(a) for a in self.answer)
        return str(self.answer or "")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuizAnswer":
        answer = data.get("answer", "")
        if isinstance(answer, list):
            answer = tuple(answer)

        raw_priorities = data.get("genrePriorities", data.get("genre_priorities"))
        priorities = None
        if isinstance(raw_priorities, (list, tuple)) and raw_priorities:
            priorities = tuple(filter(None, (GenrePriority.parse(p) for p in raw_priorities)))

        return cls(question=data.get("question", ""), answer=answer, genre_priorities=priorities)


@dataclass(frozen=True)
class PreferenceProfile:
    """Structured preferences derived once per quiz submission."""

    mood: str = ""
    content_type: str = CONTENT_BOTH
    genres: FrozenSet[str] = frozenset()
    genre_priorities: Tuple[Tuple[str, int], ...] = ()
    era: str = ERA_ANY
    duration: int = DEFAULT_DURATION

    @property
    def media_types(self) -> List[str]:
        if self.content_type == CONTENT_MOVIE:
            return [MEDIA_MOVIE]
        if self.content_type == CONTENT_TV:
            return [MEDIA_TV]
        return [MEDIA_MOVIE, MEDIA_TV]

    def priority_for(self, genre_code: str) -> Optional[int]:
        for code, priority in self.genre_priorities:
            if code == genre_code:
                return priority
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mood": self.mood,
            "contentType": self.content_type,
            "genres": sorted(self.genres),
            "genrePriorities": [
                {"genre": code, "priority": priority}
                for code, priority in self.genre_priorities
            ],
            "era": self.era,
            "duration": self.duration,
        }


@dataclass(frozen=True)
class ContentItem:
    """A movie or TV title as returned by the catalog."""

    id: int
    title: str
    media_type: str
    overview: str = ""
    poster_path: Optional[str] = None
    genre_codes: FrozenSet[str] = frozenset()
    popularity: float = 0.0
    vote_average: float = 0.0
    release_year: Optional[int] = None

    def __post_init__(self):
        # Catalogs hand out genre ids as ints; the profile uses strings
        object.__setattr__(self, "genre_codes", frozenset(str(g) for g in self.genre_codes))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["genre_codes"] = sorted(self.genre_codes)
        return data


@dataclass(frozen=True)
class TrendingTopic:
    term: str
    count: int
    sentiment: str
    sentiment_score: float


@dataclass(frozen=True)
class CommentSentiment:
    """Sentiment aggregated over the comment trees of the top posts."""

    total_comments: int
    analyzed_comments: int
    average_sentiment: float
    sentiment_type: str
    positive_comments: int
    negative_comments: int
    neutral_comments: int
    keywords: Tuple[Tuple[str, int], ...] = ()


@dataclass(frozen=True)
class BuzzResult:
    """Social buzz for a title, derived from Reddit discussion."""

    level: str
    sentiment: str
    sentiment_score: float = 0.0
    post_count: int = 0
    total_comments: int = 0
    total_upvotes: int = 0
    top_sources: Tuple[Tuple[str, int], ...] = ()
    trending_topics: Tuple[TrendingTopic, ...] = ()
    comment_sentiment: Optional[CommentSentiment] = None
    # 'posts' or 'comments': where the final sentiment came from
    sentiment_source: Optional[str] = None
    # Share of scored post items that were clearly positive / negative
    positive_share: float = 0.0
    negative_share: float = 0.0
    error: Optional[str] = None

    @classmethod
    def unknown(cls, error: str) -> "BuzzResult":
        return cls(level=BUZZ_UNKNOWN, sentiment=SENTIMENT_UNKNOWN, error=error)

    @property
    def failed(self) -> bool:
        return self.error is not None or self.level == BUZZ_UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["top_sources"] = [{"name": name, "count": count} for name, count in self.top_sources]
        if self.comment_sentiment is not None:
            data["comment_sentiment"]["keywords"] = [
                {"term": term, "count": count} for term, count in self.comment_sentiment.keywords
            ]
        return data


@dataclass(frozen=True)
class CriticScores:
    imdb_rating: Optional[float] = None
    rotten_tomatoes: Optional[int] = None
    metacritic: Optional[int] = None


@dataclass(frozen=True)
class EnrichedCandidate:
    content: ContentItem
    buzz: BuzzResult = field(default_factory=lambda: BuzzResult.unknown("not enriched"))
    buzz_category: str = LOW_BUZZ
    critic: CriticScores = field(default_factory=CriticScores)

    def to_dict(self) -> Dict[str, Any]:
        data = self.content.to_dict()
        data.update({
            "buzz": self.buzz.to_dict(),
            "buzz_category": self.buzz_category,
            "imdb_rating": self.critic.imdb_rating,
            "rotten_tomatoes_score": self.critic.rotten_tomatoes,
            "metacritic_score": self.critic.metacritic,
        })
        return data


@dataclass(frozen=True)
class ScoredRecommendation:
    content: EnrichedCandidate
    relevance_score: float
    rank: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content.to_dict(),
            "relevance_score": round(self.relevance_score, 3),
            "rank": self.rank,
        }


@dataclass(frozen=True)
class StrategyAssignment:
    session_id: str
    variant: str
    assigned_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "variant": self.variant,
            "assigned_at": self.assigned_at.isoformat(timespec="seconds"),
        }


@dataclass(frozen=True)
class RecommendationResponse:
    assignment: StrategyAssignment
    profile: PreferenceProfile
    recommendations: Tuple[ScoredRecommendation, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.assignment.session_id,
            "variant": self.assignment.variant,
            "profile": self.profile.to_dict(),
            "recommendations": [rec.to_dict() for rec in self.recommendations],
        }


@dataclass(frozen=True)
class FeedbackEvent:
    content_id: int
    title: str
    liked: bool
    rank: int
    variant: Optional[str]
    genres: Tuple[str, ...] = ()
    timestamp: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = "liked" if self.liked else "disliked"
        data["timestamp"] = self.timestamp.isoformat(timespec="seconds") if self.timestamp else None
        return data
