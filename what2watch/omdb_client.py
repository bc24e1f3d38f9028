"""
OMDb API Client
Looks up critic scores (IMDb rating, Rotten Tomatoes, Metacritic) for a title.
"""

import logging
import re
from typing import Dict, List, Optional

import requests
from rapidfuzz import fuzz
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from config import Config
from what2watch.cache import TTLCache
from what2watch.models import MEDIA_MOVIE, MEDIA_TV, CriticScores

logger = logging.getLogger(__name__)

OMDB_TYPES = {
    MEDIA_MOVIE: 'movie',
    MEDIA_TV: 'series',
}


class CriticScoreError(Exception):
    """Base exception for critic score lookups."""
    pass


class CriticScoreAPIError(CriticScoreError):
    """Raised when OMDb returns an error or cannot be reached."""
    pass


def parse_rating(value: Optional[str]) -> Optional[float]:
    """'8.1' -> 8.1; 'N/A' or garbage -> None."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_percent(value: Optional[str]) -> Optional[int]:
    """'94%' -> 94, '74' -> 74, '74/100' -> 74."""
    if not value:
        return None
    match = re.match(r'\s*(\d+)', value)
    return int(match.group(1)) if match else None


def parse_critic_scores(data: Dict) -> CriticScores:
    rotten_tomatoes = None
    for rating in data.get('Ratings') or []:
        if rating.get('Source') == 'Rotten Tomatoes':
            rotten_tomatoes = parse_percent(rating.get('Value'))

    return CriticScores(
        imdb_rating=parse_rating(data.get('imdbRating')),
        rotten_tomatoes=rotten_tomatoes,
        metacritic=parse_percent(data.get('Metascore')),
    )


class OMDbClient:
    """Client for OMDb title lookups."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        cache: Optional[TTLCache] = None
    ):
        self.api_key = api_key or Config.OMDB_API_KEY
        self.base_url = Config.OMDB_BASE_URL

        if not self.api_key:
            raise CriticScoreError("OMDb API key not found. Please set OMDB_API_KEY in .env file.")

        self.session = session or requests.Session()
        self.cache = cache if cache is not None else TTLCache(Config.CATALOG_CACHE_TTL)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(requests.exceptions.ConnectionError),
        reraise=True
    )
    def _get(self, params: Dict) -> requests.Response:
        return self.session.get(self.base_url, params=params, timeout=Config.REQUEST_TIMEOUT)

    def _make_request(self, params: Dict) -> Dict:
        """
        Call OMDb and return the decoded body.

        Raises:
            CriticScoreAPIError: On network failures and non-200 responses
        """
        params = dict(params, apikey=self.api_key)

        try:
            response = self._get(params)
        except requests.exceptions.RequestException as e:
            raise CriticScoreAPIError(f"Network error while accessing OMDb API: {str(e)}")

        if response.status_code == 401:
            raise CriticScoreAPIError("Invalid OMDb API key. Please check your .env file.")
        elif response.status_code != 200:
            raise CriticScoreAPIError(f"OMDb API error (HTTP {response.status_code})")

        try:
            return response.json()
        except ValueError:
            raise CriticScoreAPIError("OMDb returned a non-JSON response")

    def _normalize_title(self, title: str) -> str:
        """
        Normalize a title for better matching.
        Removes leading articles and special characters, and lowercases.
        """
        normalized = title.lower()
        normalized = re.sub(r'^(the|a|an|le|la|les|un|une|der|die|das|el|los|las)\s+', '', normalized)
        normalized = re.sub(r'[^a-z0-9\s]', '', normalized)
        return ' '.join(normalized.split())

    def _fuzzy_match_title(
        self,
        search_title: str,
        results: List[Dict],
        year: Optional[int] = None,
        threshold: int = 85
    ) -> Optional[str]:
        """
        Use fuzzy matching to find the best match among OMDb search results.

        Args:
            search_title: The title we're searching for
            results: 'Search' entries from OMDb
            year: Optional year to help with matching
            threshold: Minimum similarity score (0-100)

        Returns:
            IMDb id of the best match, or None
        """
        normalized_search = self._normalize_title(search_title)

        best_match = None
        best_score = 0

        for result in results[:10]:
            score = fuzz.ratio(normalized_search, self._normalize_title(result.get('Title', '')))

            # Series years look like "2008-2013"
            if year and (result.get('Year') or '')[:4] == str(year):
                score += 15

            if score > best_score and score >= threshold:
                best_score = score
                best_match = result.get('imdbID')

        if best_match:
            logger.debug(f"Fuzzy match for '{search_title}' with {best_score}% similarity")

        return best_match

    def _lookup(self, title: str, year: Optional[int], omdb_type: Optional[str]) -> Optional[Dict]:
        params = {'t': title}
        if year:
            params['y'] = year
        if omdb_type:
            params['type'] = omdb_type

        data = self._make_request(params)
        if data.get('Response') == 'True':
            return data

        # Not found by exact title: search and pick the closest title
        search_params = {'s': title}
        if omdb_type:
            search_params['type'] = omdb_type
        search = self._make_request(search_params)
        imdb_id = self._fuzzy_match_title(title, search.get('Search') or [], year)
        if not imdb_id:
            return None

        data = self._make_request({'i': imdb_id})
        return data if data.get('Response') == 'True' else None

    def get_critic_scores(
        self,
        title: str,
        year: Optional[int] = None,
        media_type: Optional[str] = None
    ) -> Optional[CriticScores]:
        """
        Get critic scores for a title.

        Args:
            title: Movie or show title
            year: Release year (optional, improves accuracy)
            media_type: 'movie' or 'tv' (optional)

        Returns:
            CriticScores, or None when the title is unknown or OMDb failed
        """
        key = f"{title}|{year or ''}|{media_type or ''}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            data = self._lookup(title, year, OMDB_TYPES.get(media_type))
        except CriticScoreError as e:
            logger.warning(f"Critic score lookup for '{title}' failed: {e}")
            return None

        if data is None:
            logger.debug(f"No OMDb entry for '{title}' ({year})")
            return None

        scores = parse_critic_scores(data)
        self.cache.set(key, scores)
        return scores
