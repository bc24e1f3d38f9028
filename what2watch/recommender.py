"""
Recommendation service.
Ties the pipeline together: quiz answers -> profile -> candidates -> buzz and
critic enrichment -> ranked recommendations, under an A/B strategy.
"""

import concurrent.futures
import logging
import random
from typing import Any, Dict, Iterable, List, Optional, Union

from config import Config
from what2watch.aggregator import CandidateAggregator
from what2watch.buzz import FALLBACK_CATEGORIES, BuzzClassifier, estimate_buzz
from what2watch.models import (
    BuzzResult, ContentItem, EnrichedCandidate, FeedbackEvent, PreferenceProfile,
    QuizAnswer, RecommendationResponse, ScoredRecommendation,
)
from what2watch.preferences import extract_preferences
from what2watch.scoring import ScoringEngine
from what2watch.strategy import FeedbackTracker, StrategySelector, normalize_variant

logger = logging.getLogger(__name__)

Answers = Iterable[Union[QuizAnswer, Dict[str, Any]]]


class RecommendationError(Exception):
    """Raised for invalid input to the recommendation service."""
    pass


class RecommendationService:
    """Public entry point of the recommendation engine."""

    def __init__(
        self,
        catalog,
        buzz_classifier: BuzzClassifier,
        critic_provider=None,
        selector: Optional[StrategySelector] = None,
        scoring_engine: Optional[ScoringEngine] = None,
        feedback: Optional[FeedbackTracker] = None,
        aggregator: Optional[CandidateAggregator] = None,
        max_workers: Optional[int] = None,
        enrichment_limit: Optional[int] = None
    ):
        """
        Initialize the service.

        Args:
            catalog: Catalog client (TMDBClient or compatible)
            buzz_classifier: BuzzClassifier used for enrichment
            critic_provider: Object with get_critic_scores(title, year, media_type), or None
            selector: A/B strategy selector
            scoring_engine: Scoring engine
            feedback: Feedback tracker
            aggregator: Candidate aggregator (built on `catalog` by default)
            max_workers: Concurrent enrichment lookups
            enrichment_limit: Enrich only the first N candidates (0 = all)
        """
        self.catalog = catalog
        self.buzz_classifier = buzz_classifier
        self.critic_provider = critic_provider
        self.selector = selector or StrategySelector()
        self.scoring_engine = scoring_engine or ScoringEngine()
        self.feedback = feedback or FeedbackTracker()
        self.aggregator = aggregator or CandidateAggregator(catalog)
        self.max_workers = max_workers or Config.BUZZ_MAX_WORKERS
        self.enrichment_limit = Config.ENRICHMENT_LIMIT if enrichment_limit is None else enrichment_limit

    def extract_preferences(self, answers: Answers) -> PreferenceProfile:
        return extract_preferences(answers)

    def classify_buzz(self, title: str, year: Optional[int] = None, media_type: Optional[str] = None) -> BuzzResult:
        return self.buzz_classifier.classify(title, year, media_type)

    def recommend(
        self,
        answers: Answers,
        strategy: Optional[str] = None,
        session_id: Optional[str] = None
    ) -> RecommendationResponse:
        """
        Build ranked recommendations for a quiz submission.

        Args:
            answers: Quiz answers
            strategy: Explicit 'A' or 'B' for a new session
            session_id: Existing session id, if any

        Returns:
            RecommendationResponse with the session's assignment and profile
        """
        assignment = self.selector.assign(session_id, strategy)
        profile = self.extract_preferences(answers)
        variant = assignment.variant

        candidates = self.aggregator.aggregate(profile, variant)
        enriched = self.enrich(candidates)
        ranked = self.scoring_engine.rank(enriched, profile, variant)

        logger.info(
            f"Session {assignment.session_id} (variant {variant}): "
            f"{len(candidates)} candidates, {len(ranked)} recommendations"
        )
        return RecommendationResponse(assignment=assignment, profile=profile, recommendations=tuple(ranked))

    def get_recommendations(
        self,
        answers: Answers,
        strategy: Optional[str] = None,
        session_id: Optional[str] = None
    ) -> List[ScoredRecommendation]:
        """Ranked recommendations, or an empty list if anything unexpected fails."""
        try:
            return list(self.recommend(answers, strategy, session_id).recommendations)
        except Exception:
            logger.exception("Failed to build recommendations")
            return []

    def enrich(self, candidates: List[ContentItem]) -> List[EnrichedCandidate]:
        """
        Attach buzz and critic scores to candidates, keeping their order.
        A failure for one candidate leaves it with fallback values.
        """
        if not candidates:
            return []

        limit = self.enrichment_limit or len(candidates)
        to_enrich = candidates[:limit]

        with concurrent.futures.ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(to_enrich)), thread_name_prefix="enrich"
        ) as executor:
            futures = [executor.submit(self._enrich_one, content) for content in to_enrich]

            enriched = []
            for content, future in zip(to_enrich, futures):
                try:
                    enriched.append(future.result())
                except Exception as e:
                    logger.warning(f"Enrichment failed for '{content.title}': {e}")
                    enriched.append(self._fallback(content, BuzzResult.unknown(str(e) or e.__class__.__name__)))

        enriched.extend(self._fallback(content) for content in candidates[limit:])
        return enriched

    def _enrich_one(self, content: ContentItem) -> EnrichedCandidate:
        critic = None
        if self.critic_provider is not None:
            critic = self.critic_provider.get_critic_scores(content.title, content.release_year, content.media_type)

        rotten_tomatoes = critic.rotten_tomatoes if critic is not None else None
        buzz, category = self.buzz_classifier.categorize(content, rotten_tomatoes)

        if critic is None:
            return EnrichedCandidate(content=content, buzz=buzz, buzz_category=category)
        return EnrichedCandidate(content=content, buzz=buzz, buzz_category=category, critic=critic)

    def _fallback(self, content: ContentItem, buzz: Optional[BuzzResult] = None) -> EnrichedCandidate:
        category = FALLBACK_CATEGORIES[estimate_buzz(content, current_year=self.buzz_classifier.current_year())]
        if buzz is None:
            return EnrichedCandidate(content=content, buzz_category=category)
        return EnrichedCandidate(content=content, buzz=buzz, buzz_category=category)

    def record_feedback(
        self,
        content_id: int,
        title: str,
        liked: bool,
        rank: int,
        session_id: Optional[str] = None,
        variant: Optional[str] = None,
        genres=()
    ) -> FeedbackEvent:
        """
        Record liked/disliked feedback on a recommendation.
        The variant comes from the session's assignment when the session is known.

        Raises:
            RecommendationError: If an explicit variant is not 'A' or 'B'
        """
        if variant is not None and normalize_variant(variant) is None:
            raise RecommendationError(f"Unknown variant: {variant}")

        assignment = self.selector.get(session_id) if session_id else None
        if assignment is not None:
            variant = assignment.variant

        return self.feedback.record(content_id, title, liked, rank, variant, genres)

    def feedback_stats(self) -> Dict[str, Any]:
        return self.feedback.stats()

    def close(self):
        self.buzz_classifier.close()


def build_service() -> RecommendationService:
    """
    Build a RecommendationService wired to the real TMDB, Reddit and OMDb clients.
    OMDb is optional; without a key critic scores are simply absent.
    """
    from what2watch.omdb_client import OMDbClient
    from what2watch.reddit_client import RedditClient
    from what2watch.tmdb_client import TMDBClient

    seed = Config.SCORING_SEED
    critic_provider = OMDbClient() if Config.OMDB_API_KEY else None
    if critic_provider is None:
        logger.warning("OMDB_API_KEY not set, critic scores disabled")

    return RecommendationService(
        catalog=TMDBClient(),
        buzz_classifier=BuzzClassifier(RedditClient()),
        critic_provider=critic_provider,
        selector=StrategySelector(random.Random(seed)),
        scoring_engine=ScoringEngine(random.Random(seed)),
    )
