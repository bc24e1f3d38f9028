"""
Configuration management for the What2Watch recommendation engine.
Loads environment variables and provides centralized config access.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _optional_int(name: str):
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return int(value)


class Config:
    """Application configuration class."""

    # API Keys
    TMDB_API_KEY = os.getenv("TMDB_API_KEY")
    OMDB_API_KEY = os.getenv("OMDB_API_KEY")

    # Logging
    DEBUG = os.getenv("DEBUG", "False").lower() == "true"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO")

    # TMDB Configuration
    TMDB_BASE_URL = "https://api.themoviedb.org/3"
    TMDB_RATE_LIMIT = 40  # requests per 10 seconds

    # OMDb Configuration
    OMDB_BASE_URL = "https://www.omdbapi.com/"

    # Reddit Configuration
    REDDIT_BASE_URL = os.getenv("REDDIT_BASE_URL", "https://www.reddit.com")
    REDDIT_USER_AGENT = os.getenv(
        "REDDIT_USER_AGENT",
        "What2Watch/1.0 (recommendation engine; +https://what2watch.example.com)"
    )
    REDDIT_SEARCH_LIMIT = 50
    REDDIT_SEARCH_TIMEOUT = 8  # seconds
    REDDIT_COMMENT_TIMEOUT = 5  # seconds

    # Buzz classification
    BUZZ_TIMEOUT = float(os.getenv("BUZZ_TIMEOUT", "12"))  # seconds, whole search call
    BUZZ_CACHE_TTL = 24 * 60 * 60  # 24 hours
    BUZZ_FETCH_COMMENTS = os.getenv("BUZZ_FETCH_COMMENTS", "true").lower() == "true"
    BUZZ_COMMENT_POSTS = 3  # posts whose comment trees are fetched
    BUZZ_COMMENTS_LIMIT = 50  # comments requested per post
    BUZZ_COMMENT_DELAY = 1.0  # seconds between comment fetches
    BUZZ_BATCH_DELAY = 1.0  # seconds between titles in a sequential batch
    BUZZ_MAX_WORKERS = int(os.getenv("BUZZ_MAX_WORKERS", "3"))

    # Candidate aggregation
    CATALOG_MAX_WORKERS = int(os.getenv("CATALOG_MAX_WORKERS", "8"))
    MIN_CANDIDATES = 5  # below this the aggregator broadens to popular titles

    # Ranking
    TOP_N_STANDARD = 10
    TOP_N_ENHANCED = 20
    ENRICHMENT_LIMIT = int(os.getenv("ENRICHMENT_LIMIT", "0"))  # 0 enriches every candidate
    SCORING_SEED = _optional_int("SCORING_SEED")

    # A/B testing
    MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "10000"))  # strategy assignments kept in memory

    # Application Settings
    REQUEST_TIMEOUT = 30  # seconds

    # Cache Settings
    ENABLE_CACHE = True
    CATALOG_CACHE_TTL = 3600  # Time-to-live in seconds (1 hour)

    @classmethod
    def validate(cls):
        """
        Check that required configuration is present.

        Returns:
            List of human-readable problems (empty when everything is set)
        """
        errors = []

        if not cls.TMDB_API_KEY:
            errors.append("TMDB_API_KEY is not set in .env file")

        if not cls.OMDB_API_KEY:
            errors.append("OMDB_API_KEY is not set in .env file (critic scores disabled)")

        return errors
