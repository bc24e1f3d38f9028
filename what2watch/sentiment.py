"""
Sentiment scoring for discussion text.
Wraps NLTK's VADER analyzer; the lexicon and stopword corpus are fetched on first use.
"""

import re
import threading
from typing import List, NamedTuple, Optional

import nltk
from nltk.sentiment import SentimentIntensityAnalyzer

WORD_PATTERN = re.compile(r"[a-z][a-z0-9']+")


class SentimentScore(NamedTuple):
    comparative: float  # VADER compound, -1..1
    positive: float
    negative: float
    neutral: float


def _ensure_nltk_resource(path: str, package: str):
    try:
        nltk.data.find(path)
    except LookupError:
        nltk.download(package, quiet=True)


class SentimentScorer:
    """Scores text as positive/neutral/negative with a continuous comparative value."""

    def __init__(self, analyzer: Optional[SentimentIntensityAnalyzer] = None, stop_words=None):
        self._analyzer = analyzer
        self._stop_words = set(stop_words) if stop_words is not None else None
        self._lock = threading.Lock()

    @property
    def analyzer(self) -> SentimentIntensityAnalyzer:
        with self._lock:
            if self._analyzer is None:
                _ensure_nltk_resource("sentiment/vader_lexicon.zip", "vader_lexicon")
                self._analyzer = SentimentIntensityAnalyzer()
        return self._analyzer

    @property
    def stop_words(self) -> set:
        with self._lock:
            if self._stop_words is None:
                _ensure_nltk_resource("corpora/stopwords", "stopwords")
                from nltk.corpus import stopwords
                self._stop_words = set(stopwords.words("english"))
        return self._stop_words

    def analyze(self, text: str) -> SentimentScore:
        """
        Score a block of text.

        Args:
            text: Post title, post body or comment body

        Returns:
            SentimentScore with the compound value as `comparative`
        """
        if not text or not text.strip():
            return SentimentScore(0.0, 0.0, 0.0, 1.0)

        scores = self.analyzer.polarity_scores(text)
        return SentimentScore(
            comparative=scores["compound"],
            positive=scores["pos"],
            negative=scores["neg"],
            neutral=scores["neu"],
        )

    def tokenize(self, text: str) -> List[str]:
        """Lower-cased content words of `text` with stopwords removed."""
        words = WORD_PATTERN.findall((text or "").lower())
        stop_words = self.stop_words
        return [word for word in words if word not in stop_words]
