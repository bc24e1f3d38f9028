"""
TMDB API Client
Fetches movie and TV catalog pages (discover, popular, top rated, trending,
upcoming) from The Movie Database (TMDB) API.
"""

import logging
import threading
import time
from typing import Any, Dict, List, Optional

import requests
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from config import Config
from what2watch.cache import TTLCache
from what2watch.models import MEDIA_MOVIE, MEDIA_TV, ContentItem

logger = logging.getLogger(__name__)

MEDIA_TYPES = (MEDIA_MOVIE, MEDIA_TV)


class CatalogError(Exception):
    """Base exception for catalog client errors."""
    pass


class ContentNotFoundError(CatalogError):
    """Raised when a catalog resource cannot be found in TMDB."""
    pass


class CatalogAPIError(CatalogError):
    """Raised when TMDB API returns an error."""
    pass


def _release_year(raw: Dict[str, Any], media_type: str) -> Optional[int]:
    date_str = raw.get('release_date') if media_type == MEDIA_MOVIE else raw.get('first_air_date')
    if not date_str or len(date_str) < 4:
        return None
    try:
        return int(date_str[:4])
    except ValueError:
        return None


def to_content_item(raw: Dict[str, Any], media_type: str) -> ContentItem:
    """
    Convert a TMDB result record to a ContentItem.

    Args:
        raw: Result record from a list endpoint
        media_type: 'movie' or 'tv' (TMDB list results do not carry it)

    Returns:
        ContentItem
    """
    if media_type == MEDIA_MOVIE:
        title = raw.get('title') or 'Untitled Movie'
    else:
        title = raw.get('name') or 'Untitled TV Show'

    return ContentItem(
        id=int(raw['id']),
        title=title,
        media_type=media_type,
        overview=raw.get('overview') or '',
        poster_path=raw.get('poster_path'),
        genre_codes=frozenset(raw.get('genre_ids') or []),
        popularity=max(float(raw.get('popularity') or 0), 0.0),
        vote_average=float(raw.get('vote_average') or 0),
        release_year=_release_year(raw, media_type),
    )


class TMDBClient:
    """Client for the TMDB catalog endpoints."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        cache: Optional[TTLCache] = None
    ):
        """
        Initialize the TMDB client.

        Args:
            api_key: TMDB API key (if None, uses from Config)
            session: Optional pre-built requests session
            cache: Response cache (1 hour TTLCache by default)
        """
        self.api_key = api_key or Config.TMDB_API_KEY
        self.base_url = Config.TMDB_BASE_URL

        if not self.api_key:
            raise CatalogError("TMDB API key not found. Please set TMDB_API_KEY in .env file.")

        if cache is not None:
            self.cache = cache
        else:
            self.cache = TTLCache(Config.CATALOG_CACHE_TTL) if Config.ENABLE_CACHE else None

        # Rate limiting - TMDB_RATE_LIMIT requests per 10 seconds
        self.last_request_time = 0
        self.min_request_interval = 10.0 / Config.TMDB_RATE_LIMIT
        self._rate_lock = threading.Lock()

        # Session for connection pooling
        self.session = session or requests.Session()
        self.session.params = {'api_key': self.api_key}

    def _wait_for_rate_limit(self):
        """Implement rate limiting to stay under TMDB's limits."""
        with self._rate_lock:
            if self.last_request_time:
                elapsed = time.time() - self.last_request_time
                if elapsed < self.min_request_interval:
                    time.sleep(self.min_request_interval - elapsed)

            self.last_request_time = time.time()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(requests.exceptions.RequestException),
        reraise=True
    )
    def _get(self, url: str, params: Optional[Dict]) -> requests.Response:
        self._wait_for_rate_limit()
        return self.session.get(url, params=params, timeout=Config.REQUEST_TIMEOUT)

    def _make_request(self, endpoint: str, params: Optional[Dict] = None) -> Dict:
        """
        Make a request to the TMDB API with retry logic.

        Args:
            endpoint: API endpoint (e.g., '/discover/movie')
            params: Query parameters

        Returns:
            JSON response as dictionary

        Raises:
            CatalogAPIError: If the API returns an error
        """
        cache_key = self._get_cache_key(endpoint, sorted((params or {}).items()))
        cached = self._get_from_cache(cache_key)
        if cached is not None:
            return cached

        url = f"{self.base_url}{endpoint}"

        try:
            response = self._get(url, params)
        except requests.exceptions.Timeout:
            raise CatalogAPIError("TMDB API request timed out.")
        except requests.exceptions.RequestException as e:
            raise CatalogAPIError(f"Network error while accessing TMDB API: {str(e)}")

        if response.status_code == 401:
            raise CatalogAPIError("Invalid TMDB API key. Please check your .env file.")
        elif response.status_code == 404:
            raise ContentNotFoundError(f"Resource not found: {endpoint}")
        elif response.status_code == 429:
            raise CatalogAPIError("TMDB API rate limit exceeded. Please wait and try again.")
        elif response.status_code != 200:
            raise CatalogAPIError(f"TMDB API error (HTTP {response.status_code}): {response.text}")

        data = response.json()
        self._set_in_cache(cache_key, data)
        return data

    def _get_cache_key(self, prefix: str, *args) -> str:
        """Generate a cache key from prefix and arguments."""
        return f"{prefix}:{'_'.join(str(arg) for arg in args)}"

    def _get_from_cache(self, key: str) -> Optional[Any]:
        """Get value from cache if enabled and available."""
        if self.cache is not None:
            return self.cache.get(key)
        return None

    def _set_in_cache(self, key: str, value: Any):
        """Set value in cache if enabled."""
        if self.cache is not None:
            self.cache.set(key, value)

    def _fetch_page(self, endpoint: str, media_type: str, params: Optional[Dict] = None) -> List[ContentItem]:
        if media_type not in MEDIA_TYPES:
            raise CatalogError(f"Unsupported media type: {media_type}")

        data = self._make_request(endpoint, params)
        items = []
        for raw in data.get('results', []):
            if raw.get('id') is None:
                continue
            # Trending results can mix in people
            if raw.get('media_type') not in (None, media_type):
                continue
            items.append(to_content_item(raw, media_type))
        return items

    def discover(self, media_type: str, filters: Optional[Dict[str, Any]] = None, page: int = 1) -> List[ContentItem]:
        """
        Discover titles using TMDB's discover endpoint.

        Args:
            media_type: 'movie' or 'tv'
            filters: Discover filters (e.g., {'with_genres': '28'})
            page: Result page

        Returns:
            List of ContentItem
        """
        params = {
            'sort_by': 'popularity.desc',
            'include_adult': 'false',
            'page': page,
        }
        params.update(filters or {})
        return self._fetch_page(f'/discover/{media_type}', media_type, params)

    def by_genre(self, media_type: str, genre_code: str, page: int = 1) -> List[ContentItem]:
        return self.discover(media_type, {'with_genres': str(genre_code)}, page)

    def by_time_period(self, media_type: str, start_year: int, end_year: int, page: int = 1) -> List[ContentItem]:
        """Discover titles released between start_year and end_year (inclusive)."""
        date_field = 'primary_release_date' if media_type == MEDIA_MOVIE else 'first_air_date'
        filters = {
            f'{date_field}.gte': f'{start_year}-01-01',
            f'{date_field}.lte': f'{end_year}-12-31',
            'vote_count.gte': 100,
        }
        return self.discover(media_type, filters, page)

    def popular(self, media_type: str, page: int = 1) -> List[ContentItem]:
        return self._fetch_page(f'/{media_type}/popular', media_type, {'page': page})

    def top_rated(self, media_type: str, page: int = 1) -> List[ContentItem]:
        return self._fetch_page(f'/{media_type}/top_rated', media_type, {'page': page})

    def trending(self, media_type: str, window: str = 'week', page: int = 1) -> List[ContentItem]:
        return self._fetch_page(f'/trending/{media_type}/{window}', media_type, {'page': page})

    def upcoming(self, media_type: str, page: int = 1) -> List[ContentItem]:
        """Upcoming movies, or TV shows currently on the air."""
        endpoint = '/movie/upcoming' if media_type == MEDIA_MOVIE else '/tv/on_the_air'
        return self._fetch_page(endpoint, media_type, {'page': page})
