"""
Candidate aggregation.
Runs independent catalog queries concurrently and merges them into one
de-duplicated candidate list.
"""

import concurrent.futures
import logging
from typing import Callable, Iterable, List, NamedTuple, Optional, Tuple

from config import Config
from what2watch.models import ERA_CLASSIC, ERA_NEW, VARIANT_ENHANCED, ContentItem, PreferenceProfile

logger = logging.getLogger(__name__)

Query = Tuple[str, Callable[[], List[ContentItem]]]

CLASSIC_DECADES = [(1970, 1979), (1980, 1989), (1990, 1999)]
GENRE_PAGES = (1, 2, 3)
POPULAR_PAGES = (1, 2, 3)
TOP_RATED_PAGES = (1, 2)
UPCOMING_PAGES = (1, 2)


class QueryResult(NamedTuple):
    label: str
    items: List[ContentItem]
    error: Optional[str] = None


def deduplicate(items: Iterable[ContentItem]) -> List[ContentItem]:
    """Drop repeated ids, keeping the first occurrence and the input order."""
    seen = set()
    unique = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique


class CandidateAggregator:
    """Builds candidate lists from a catalog client."""

    def __init__(self, catalog, max_workers: Optional[int] = None, min_candidates: Optional[int] = None):
        """
        Args:
            catalog: Catalog client (see TMDBClient for the expected methods)
            max_workers: Concurrent catalog queries
            min_candidates: Below this many unique items, popular titles are added
        """
        self.catalog = catalog
        self.max_workers = max_workers or Config.CATALOG_MAX_WORKERS
        self.min_candidates = Config.MIN_CANDIDATES if min_candidates is None else min_candidates

    def aggregate(self, profile: PreferenceProfile, variant: str) -> List[ContentItem]:
        """
        Fetch candidates for a profile.

        Args:
            profile: Preference profile
            variant: 'A' (standard) or 'B' (enhanced)

        Returns:
            De-duplicated candidates in query submission order
        """
        if variant == VARIANT_ENHANCED:
            queries = self.enhanced_queries(profile)
        else:
            queries = self.standard_queries(profile)

        candidates = deduplicate(self._collect(queries))

        if len(candidates) < self.min_candidates:
            logger.info(
                f"Only {len(candidates)} candidates for variant {variant}, adding popular titles"
            )
            fallback = [
                (f"popular:{media_type}:1", self._bind(self.catalog.popular, media_type, 1))
                for media_type in profile.media_types
            ]
            candidates = deduplicate(candidates + self._collect(fallback))

        logger.info(f"Aggregated {len(candidates)} candidates for variant {variant}")
        return candidates

    @staticmethod
    def _bind(method, *args) -> Callable[[], List[ContentItem]]:
        return lambda: method(*args)

    def standard_queries(self, profile: PreferenceProfile) -> List[Query]:
        """One popularity-sorted discovery per (genre, media type)."""
        return [
            (f"genre:{code}:{media_type}:1", self._bind(self.catalog.by_genre, media_type, code, 1))
            for code in sorted(profile.genres)
            for media_type in profile.media_types
        ]

    def enhanced_queries(self, profile: PreferenceProfile) -> List[Query]:
        """Broad sweep first, then deeper genre discovery and era-specific queries."""
        catalog = self.catalog
        queries: List[Query] = []

        for media_type in profile.media_types:
            for page in POPULAR_PAGES:
                queries.append((f"popular:{media_type}:{page}", self._bind(catalog.popular, media_type, page)))
            for page in TOP_RATED_PAGES:
                queries.append((f"top_rated:{media_type}:{page}", self._bind(catalog.top_rated, media_type, page)))
            queries.append((f"trending:{media_type}:week", self._bind(catalog.trending, media_type, 'week', 1)))

        for code in sorted(profile.genres):
            for media_type in profile.media_types:
                for page in GENRE_PAGES:
                    queries.append((
                        f"genre:{code}:{media_type}:{page}",
                        self._bind(catalog.by_genre, media_type, code, page),
                    ))

        if profile.era == ERA_NEW:
            for media_type in profile.media_types:
                for page in UPCOMING_PAGES:
                    queries.append((f"upcoming:{media_type}:{page}", self._bind(catalog.upcoming, media_type, page)))
        elif profile.era == ERA_CLASSIC:
            for media_type in profile.media_types:
                for start, end in CLASSIC_DECADES:
                    queries.append((
                        f"period:{media_type}:{start}-{end}",
                        self._bind(catalog.by_time_period, media_type, start, end, 1),
                    ))

        return queries

    def run_queries(self, queries: List[Query]) -> List[QueryResult]:
        """
        Run every query, waiting for all of them.
        Results come back in submission order; a failed query has no items.
        """
        if not queries:
            return []

        with concurrent.futures.ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(queries)), thread_name_prefix="catalog"
        ) as executor:
            futures = [(label, executor.submit(fn)) for label, fn in queries]

            results = []
            for label, future in futures:
                try:
                    results.append(QueryResult(label, list(future.result())))
                except Exception as e:
                    logger.warning(f"Catalog query {label} failed: {e}")
                    results.append(QueryResult(label, [], str(e) or e.__class__.__name__))

        return results

    def _collect(self, queries: List[Query]) -> List[ContentItem]:
        return [item for result in self.run_queries(queries) for item in result.items]
