"""
Shared fakes for the test suite.
Nothing here touches the network or downloads NLTK data.
"""

import re
from typing import Dict, List

import pytest

from what2watch.models import MEDIA_MOVIE, ContentItem
from what2watch.sentiment import SentimentScore

POSITIVE_WORDS = {'great', 'love', 'amazing', 'masterpiece', 'best'}
NEGATIVE_WORDS = {'awful', 'hate', 'terrible', 'boring', 'worst'}
STOP_WORDS = {'the', 'is', 'a', 'and', 'this', 'was', 'it', 'of', 'so'}


class FakeScorer:
    """Word-list scorer: +0.6 per positive word, -0.6 per negative word, clamped to [-1, 1]."""

    def analyze(self, text):
        words = re.findall(r"[a-z']+", (text or '').lower())
        raw = sum(0.6 for w in words if w in POSITIVE_WORDS) - sum(0.6 for w in words if w in NEGATIVE_WORDS)
        compound = max(-1.0, min(1.0, raw))
        return SentimentScore(compound, max(compound, 0.0), max(-compound, 0.0), 1.0 - abs(compound))

    def tokenize(self, text):
        return [w for w in re.findall(r"[a-z][a-z0-9']+", (text or '').lower()) if w not in STOP_WORDS]


class FakeDiscussionClient:
    """Returns canned search responses and counts calls."""

    def __init__(self, response=None, error=None):
        self.response = response if response is not None else {'posts': [], 'comments_data': []}
        self.error = error
        self.calls: List[str] = []

    def search(self, query, fetch_comments=False):
        self.calls.append(query)
        if self.error is not None:
            raise self.error
        return self.response


class FakeCatalog:
    """
    In-memory catalog. `pages` maps a query label such as
    'genre:28:movie:1' or 'popular:tv:2' to a list of items;
    labels in `failing` raise instead.
    """

    def __init__(self, pages: Dict[str, List[ContentItem]] = None, failing=()):
        self.pages = pages or {}
        self.failing = set(failing)
        self.calls: List[str] = []

    def _page(self, label):
        self.calls.append(label)
        if label in self.failing:
            raise RuntimeError(f"catalog down for {label}")
        return list(self.pages.get(label, []))

    def by_genre(self, media_type, genre_code, page=1):
        return self._page(f"genre:{genre_code}:{media_type}:{page}")

    def popular(self, media_type, page=1):
        return self._page(f"popular:{media_type}:{page}")

    def top_rated(self, media_type, page=1):
        return self._page(f"top_rated:{media_type}:{page}")

    def trending(self, media_type, window='week', page=1):
        return self._page(f"trending:{media_type}:{window}")

    def upcoming(self, media_type, page=1):
        return self._page(f"upcoming:{media_type}:{page}")

    def by_time_period(self, media_type, start_year, end_year, page=1):
        return self._page(f"period:{media_type}:{start_year}-{end_year}")


class FakeCriticProvider:
    def __init__(self, scores=None):
        self.scores = scores or {}

    def get_critic_scores(self, title, year=None, media_type=None):
        return self.scores.get(title)


def make_item(id, title=None, media_type=MEDIA_MOVIE, genres=(), popularity=50.0, vote_average=7.0, release_year=2015):
    return ContentItem(
        id=id,
        title=title or f"Title {id}",
        media_type=media_type,
        genre_codes=frozenset(genres),
        popularity=popularity,
        vote_average=vote_average,
        release_year=release_year,
    )


def make_posts(count, title="Dune discussion", ups=0, num_comments=0, subreddit="movies"):
    return [
        {'title': title, 'selftext': '', 'ups': ups, 'num_comments': num_comments, 'subreddit': subreddit}
        for _ in range(count)
    ]


@pytest.fixture
def scorer():
    return FakeScorer()


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
