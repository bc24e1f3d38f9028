"""
Reddit buzz classification.
Turns Reddit discussion about a title into a buzz level, a sentiment label and
an enhanced category, with a 24h cache and a content-based fallback.
"""

import concurrent.futures
import logging
import time
from collections import Counter, defaultdict
from datetime import date
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from config import Config
from what2watch.cache import TTLCache
from what2watch.genres import HIGH_DISCUSSION_GENRES, genre_names
from what2watch.models import (
    BUZZ_HIGH, BUZZ_LOW, BUZZ_MEDIUM,
    SENTIMENT_NEGATIVE, SENTIMENT_NEUTRAL, SENTIMENT_POSITIVE,
    TRENDING_POSITIVE, TRENDING_NEGATIVE, POPULAR_DISCUSSION, CONTROVERSIAL,
    NICHE_INTEREST, LOW_BUZZ, MEDIA_MOVIE, MEDIA_TV,
    BuzzResult, CommentSentiment, ContentItem, TrendingTopic,
)
from what2watch.sentiment import SentimentScorer

logger = logging.getLogger(__name__)

POSITIVE_THRESHOLD = 0.2
NEGATIVE_THRESHOLD = -0.2
MIXED_SHARE = 0.3
MIN_ANALYZED_COMMENTS = 5
TOP_SOURCES = 5
TOP_TERMS = 10
MIN_TERM_LENGTH = 4

FALLBACK_CATEGORIES = {
    BUZZ_HIGH: POPULAR_DISCUSSION,
    BUZZ_MEDIUM: NICHE_INTEREST,
    BUZZ_LOW: LOW_BUZZ,
}

TYPE_QUALIFIERS = {
    MEDIA_MOVIE: 'movie film',
    MEDIA_TV: 'tv series show',
}

REMOVED_BODIES = {'[deleted]', '[removed]'}


def classify_sentiment(score: float) -> str:
    if score >= POSITIVE_THRESHOLD:
        return SENTIMENT_POSITIVE
    if score <= NEGATIVE_THRESHOLD:
        return SENTIMENT_NEGATIVE
    return SENTIMENT_NEUTRAL


def classify_level(post_count: int, total_upvotes: int, total_comments: int) -> str:
    """Volume thresholds; sentiment plays no part."""
    if post_count >= 20 or total_upvotes >= 5000 or total_comments >= 1000:
        return BUZZ_HIGH
    if post_count >= 8 or total_upvotes >= 1000 or total_comments >= 200:
        return BUZZ_MEDIUM
    return BUZZ_LOW


def enhanced_category(result: BuzzResult) -> str:
    """
    Combine buzz level and sentiment into one category.

    Controversial is only reachable when the sentiment came from post
    titles/bodies: a neutral average that hides a large absolute score or a
    split between clearly positive and clearly negative posts.
    """
    if result.level == BUZZ_HIGH:
        if result.sentiment == SENTIMENT_POSITIVE:
            return TRENDING_POSITIVE
        if result.sentiment == SENTIMENT_NEGATIVE:
            return TRENDING_NEGATIVE
        mixed = result.positive_share >= MIXED_SHARE and result.negative_share >= MIXED_SHARE
        if result.sentiment_source == 'posts' and (abs(result.sentiment_score) >= POSITIVE_THRESHOLD or mixed):
            return CONTROVERSIAL
        return POPULAR_DISCUSSION

    if result.level == BUZZ_MEDIUM:
        if result.sentiment == SENTIMENT_POSITIVE:
            return TRENDING_POSITIVE
        if result.sentiment == SENTIMENT_NEGATIVE:
            return TRENDING_NEGATIVE
        return NICHE_INTEREST

    return LOW_BUZZ


def estimate_buzz(
    content: ContentItem,
    rotten_tomatoes: Optional[int] = None,
    current_year: Optional[int] = None
) -> str:
    """
    Estimate buzz from content properties alone (no network).

    Args:
        content: Catalog item
        rotten_tomatoes: Critic score 0-100, if known
        current_year: Year used for the recency check (defaults to today)

    Returns:
        'High', 'Medium' or 'Low'
    """
    year = current_year or date.today().year
    is_recent = content.release_year is not None and content.release_year >= year - 2
    is_popular = content.vote_average >= 7.5
    has_popular_genres = bool(genre_names(content.genre_codes) & HIGH_DISCUSSION_GENRES)
    has_critical_acclaim = rotten_tomatoes is not None and rotten_tomatoes >= 85

    if (is_recent and is_popular) or (has_critical_acclaim and has_popular_genres):
        return BUZZ_HIGH
    elif is_recent or (is_popular and content.vote_average >= 6.5):
        return BUZZ_MEDIUM
    return BUZZ_LOW


def cache_key(title: str, year: Optional[int], media_type: Optional[str]) -> str:
    return f"{title}|{year or ''}|{media_type or ''}"


def build_query(title: str, year: Optional[int] = None, media_type: Optional[str] = None) -> str:
    query = title
    if year:
        query += f" {year}"
    if media_type in TYPE_QUALIFIERS:
        query += f" {TYPE_QUALIFIERS[media_type]}"
    return query


def iter_comment_bodies(listing: Any) -> Iterator[str]:
    """Walk a Reddit comment listing (and nested replies) yielding comment bodies."""
    if isinstance(listing, list):
        for part in listing:
            yield from iter_comment_bodies(part)
        return
    if not isinstance(listing, dict):
        return

    for child in (listing.get('data') or {}).get('children') or []:
        if child.get('kind') != 't1':
            continue
        data = child.get('data') or {}
        yield data.get('body') or ''
        replies = data.get('replies')
        if replies:
            yield from iter_comment_bodies(replies)


class BuzzClassifier:
    """Classifies Reddit buzz for titles, caching successful lookups."""

    def __init__(
        self,
        client,
        scorer: Optional[SentimentScorer] = None,
        cache: Optional[TTLCache] = None,
        timeout: Optional[float] = None,
        fetch_comments: Optional[bool] = None,
        current_year: Optional[Callable[[], int]] = None,
        sleep: Callable[[float], None] = time.sleep,
        max_workers: int = 8
    ):
        """
        Initialize the classifier.

        Args:
            client: Discussion search client exposing search(query, fetch_comments)
            scorer: Sentiment scorer (VADER-backed by default)
            cache: Result cache (24h TTLCache by default)
            timeout: Upper bound for one search call, in seconds
            fetch_comments: Also analyze comment trees of the top posts
            current_year: Returns the year used by the fallback estimate
            sleep: Sleep function used between batch lookups
            max_workers: Threads available for bounded-timeout searches
        """
        self.client = client
        self.scorer = scorer or SentimentScorer()
        self.cache = cache if cache is not None else TTLCache(Config.BUZZ_CACHE_TTL)
        self.timeout = Config.BUZZ_TIMEOUT if timeout is None else timeout
        self.fetch_comments = Config.BUZZ_FETCH_COMMENTS if fetch_comments is None else fetch_comments
        self.current_year = current_year or (lambda: date.today().year)
        self.sleep = sleep
        self.executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="buzz"
        )

    def classify(self, title: str, year: Optional[int] = None, media_type: Optional[str] = None) -> BuzzResult:
        """
        Get the buzz for a title. Never raises.

        Args:
            title: Movie or show title
            year: Release year, if known
            media_type: 'movie' or 'tv', if known

        Returns:
            BuzzResult; level 'Unknown' with `error` set when the search failed
        """
        key = cache_key(title, year, media_type)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Buzz cache hit for {key}")
            return cached

        query = build_query(title, year, media_type)

        try:
            data = self._search(query)
            result = self.analyze(data)
        except concurrent.futures.TimeoutError:
            logger.warning(f"Buzz search for '{query}' timed out after {self.timeout}s")
            return BuzzResult.unknown(f"Discussion search timed out after {self.timeout}s")
        except Exception as e:
            logger.warning(f"Buzz search for '{query}' failed: {e}")
            return BuzzResult.unknown(str(e) or e.__class__.__name__)

        self.cache.set(key, result)
        return result

    def _search(self, query: str) -> Dict[str, Any]:
        future = self.executor.submit(self.client.search, query, self.fetch_comments)
        # A timed-out search keeps running in its worker; only the wait is bounded
        return future.result(timeout=self.timeout)

    def analyze(self, data: Dict[str, Any]) -> BuzzResult:
        """
        Build a BuzzResult from a search response.

        Args:
            data: {'posts': [...], 'comments_data': [...]}

        Returns:
            BuzzResult with level, sentiment and supporting statistics
        """
        posts = data.get('posts') or []

        post_count = len(posts)
        total_upvotes = sum(int(post.get('ups') or 0) for post in posts)
        total_comments = sum(int(post.get('num_comments') or 0) for post in posts)

        source_counts = Counter(post['subreddit'] for post in posts if post.get('subreddit'))
        top_sources = tuple(
            sorted(source_counts.items(), key=lambda item: item[1], reverse=True)[:TOP_SOURCES]
        )

        post_score, positive_share, negative_share = self._post_sentiment(posts)
        comment_sentiment = self._comment_sentiment(data.get('comments_data') or [])

        if comment_sentiment is not None and comment_sentiment.analyzed_comments >= MIN_ANALYZED_COMMENTS:
            sentiment_score = comment_sentiment.average_sentiment
            sentiment_source = 'comments'
        else:
            sentiment_score = post_score
            sentiment_source = 'posts'

        return BuzzResult(
            level=classify_level(post_count, total_upvotes, total_comments),
            sentiment=classify_sentiment(sentiment_score),
            sentiment_score=sentiment_score,
            post_count=post_count,
            total_comments=total_comments,
            total_upvotes=total_upvotes,
            top_sources=top_sources,
            trending_topics=self._trending_topics(posts),
            comment_sentiment=comment_sentiment,
            sentiment_source=sentiment_source,
            positive_share=positive_share,
            negative_share=negative_share,
        )

    def _post_sentiment(self, posts: List[Dict[str, Any]]) -> Tuple[float, float, float]:
        """Average comparative score over post titles and bodies, plus polarity shares."""
        scores = []
        for post in posts:
            if post.get('title'):
                scores.append(self.scorer.analyze(post['title']).comparative)
            if post.get('selftext'):
                scores.append(self.scorer.analyze(post['selftext']).comparative)

        if not scores:
            return 0.0, 0.0, 0.0

        positive = sum(1 for s in scores if s >= POSITIVE_THRESHOLD)
        negative = sum(1 for s in scores if s <= NEGATIVE_THRESHOLD)
        return sum(scores) / len(scores), positive / len(scores), negative / len(scores)

    def _comment_sentiment(self, comments_data: List[Dict[str, Any]]) -> Optional[CommentSentiment]:
        bodies = [body for entry in comments_data for body in iter_comment_bodies(entry.get('listing'))]
        if not bodies:
            return None

        scores = []
        keyword_counts = Counter()
        for body in bodies:
            text = body.strip()
            if not text or text in REMOVED_BODIES:
                continue
            scores.append(self.scorer.analyze(text).comparative)
            keyword_counts.update(term for term in self.scorer.tokenize(text) if len(term) >= MIN_TERM_LENGTH)

        average = sum(scores) / len(scores) if scores else 0.0
        return CommentSentiment(
            total_comments=len(bodies),
            analyzed_comments=len(scores),
            average_sentiment=average,
            sentiment_type=classify_sentiment(average),
            positive_comments=sum(1 for s in scores if s >= POSITIVE_THRESHOLD),
            negative_comments=sum(1 for s in scores if s <= NEGATIVE_THRESHOLD),
            neutral_comments=sum(1 for s in scores if NEGATIVE_THRESHOLD < s < POSITIVE_THRESHOLD),
            keywords=tuple(keyword_counts.most_common(TOP_TERMS)),
        )

    def _trending_topics(self, posts: List[Dict[str, Any]]) -> Tuple[TrendingTopic, ...]:
        """Terms repeated across post titles, with the average sentiment of those titles."""
        term_scores = defaultdict(list)
        for post in posts:
            title = post.get('title')
            if not title:
                continue
            score = self.scorer.analyze(title).comparative
            for term in set(self.scorer.tokenize(title)):
                if len(term) >= MIN_TERM_LENGTH:
                    term_scores[term].append(score)

        repeated = [(term, scores) for term, scores in term_scores.items() if len(scores) >= 2]
        repeated.sort(key=lambda item: (-len(item[1]), item[0]))

        topics = []
        for term, scores in repeated[:TOP_TERMS]:
            average = sum(scores) / len(scores)
            topics.append(TrendingTopic(
                term=term,
                count=len(scores),
                sentiment=classify_sentiment(average),
                sentiment_score=average,
            ))
        return tuple(topics)

    def categorize(self, content: ContentItem, rotten_tomatoes: Optional[int] = None) -> Tuple[BuzzResult, str]:
        """
        Buzz result and enhanced category for a catalog item. Never raises.

        When the search failed the category comes from `estimate_buzz`, which
        only knows about volume, so no sentiment-based category is produced.
        """
        result = self.classify(content.title, content.release_year, content.media_type)

        if result.failed:
            level = estimate_buzz(content, rotten_tomatoes, self.current_year())
            logger.debug(f"Estimated buzz for '{content.title}': {level} ({result.error})")
            return result, FALLBACK_CATEGORIES[level]

        return result, enhanced_category(result)

    def batch_classify(self, items: Iterable[ContentItem], delay: Optional[float] = None) -> Dict[int, BuzzResult]:
        """
        Classify titles one after another with a pause between lookups.

        Args:
            items: Catalog items
            delay: Pause between lookups in seconds (Config.BUZZ_BATCH_DELAY by default)

        Returns:
            Mapping of content id -> BuzzResult
        """
        delay = Config.BUZZ_BATCH_DELAY if delay is None else delay
        results = {}

        for item in items:
            if results and delay:
                self.sleep(delay)
            results[item.id] = self.classify(item.title, item.release_year, item.media_type)

        return results

    def close(self):
        self.executor.shutdown(wait=False)
