"""
Reddit discussion search client.
Searches Reddit's public JSON API for posts about a title and optionally pulls
the comment trees of the top posts.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from config import Config

logger = logging.getLogger(__name__)


class DiscussionError(Exception):
    """Base exception for discussion search errors."""
    pass


class DiscussionAPIError(DiscussionError):
    """Raised when Reddit returns an error response."""
    pass


class DiscussionTimeoutError(DiscussionError):
    """Raised when a discussion search does not answer in time."""
    pass


class RedditClient:
    """Client for Reddit's search and comment listings."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        session: Optional[requests.Session] = None,
        comment_delay: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the Reddit client.

        Args:
            base_url: Reddit base URL (if None, uses from Config)
            user_agent: User-Agent header sent with every request
            session: Optional pre-built requests session
            comment_delay: Pause between comment fetches, in seconds
            sleep: Sleep function (replaced in tests)
        """
        self.base_url = (base_url or Config.REDDIT_BASE_URL).rstrip('/')
        self.comment_delay = Config.BUZZ_COMMENT_DELAY if comment_delay is None else comment_delay
        self.sleep = sleep

        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': user_agent or Config.REDDIT_USER_AGENT})

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type(requests.exceptions.ConnectionError),
        reraise=True
    )
    def _get(self, url: str, params: Dict[str, Any], timeout: float) -> requests.Response:
        return self.session.get(url, params=params, timeout=timeout)

    def _make_request(self, path: str, params: Dict[str, Any], timeout: float) -> Any:
        """
        Make a request to Reddit.

        Args:
            path: Path below the base URL (e.g., '/search.json')
            params: Query parameters
            timeout: Per-request timeout in seconds

        Returns:
            Decoded JSON body

        Raises:
            DiscussionTimeoutError: If Reddit does not answer in time
            DiscussionAPIError: On any other network or HTTP error
        """
        url = f"{self.base_url}{path}"

        try:
            response = self._get(url, params, timeout)
        except requests.exceptions.Timeout:
            raise DiscussionTimeoutError(f"Reddit request timed out: {path}")
        except requests.exceptions.RequestException as e:
            raise DiscussionAPIError(f"Network error while accessing Reddit: {str(e)}")

        if response.status_code == 429:
            raise DiscussionAPIError("Reddit rate limit exceeded.")
        elif response.status_code != 200:
            raise DiscussionAPIError(f"Reddit API error: {response.status_code}")

        try:
            return response.json()
        except ValueError:
            raise DiscussionAPIError("Reddit returned a non-JSON response.")

    def search(
        self,
        query: str,
        fetch_comments: bool = False,
        comments_limit: Optional[int] = None
    ) -> Dict[str, List[Dict[str, Any]]]:
        """
        Search Reddit posts for a query.

        Args:
            query: Search query (title, year and a type qualifier)
            fetch_comments: Also fetch the comment trees of the top posts
            comments_limit: Comments requested per post

        Returns:
            Dictionary with 'posts' (list of post data) and 'comments_data'

        Raises:
            DiscussionError: If the search itself fails
        """
        if not query or not query.strip():
            raise DiscussionAPIError("Missing query parameter")

        data = self._make_request(
            '/search.json',
            {'q': query, 'sort': 'relevance', 't': 'all', 'limit': Config.REDDIT_SEARCH_LIMIT},
            timeout=Config.REDDIT_SEARCH_TIMEOUT
        )

        children = (data.get('data') or {}).get('children') or []
        posts = [child.get('data') or {} for child in children]

        comments_data = []
        if fetch_comments and posts:
            comments_data = self._fetch_comments_for_posts(
                posts, comments_limit or Config.BUZZ_COMMENTS_LIMIT
            )

        return {'posts': posts, 'comments_data': comments_data}

    def _fetch_comments_for_posts(self, posts: List[Dict[str, Any]], comments_limit: int) -> List[Dict[str, Any]]:
        """
        Fetch comment listings for the first few posts.
        A failing post is skipped so the others still contribute.
        """
        to_fetch = [post for post in posts[:Config.BUZZ_COMMENT_POSTS] if post.get('permalink')]
        comments_data = []

        for i, post in enumerate(to_fetch):
            permalink = post['permalink'].rstrip('/')
            try:
                listing = self._make_request(
                    f"{permalink}.json",
                    {'limit': comments_limit},
                    timeout=Config.REDDIT_COMMENT_TIMEOUT
                )
                comments_data.append({
                    'post_id': post.get('id'),
                    'post_title': post.get('title'),
                    'post_url': post['permalink'],
                    'listing': listing,
                })
            except DiscussionError as e:
                logger.warning(f"Skipping comments for post {post.get('id')}: {e}")

            if i < len(to_fetch) - 1 and self.comment_delay:
                self.sleep(self.comment_delay)

        return comments_data
