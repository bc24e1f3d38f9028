"""
A/B strategy assignment and feedback analytics.
"""

import logging
import random
import threading
import uuid
from collections import OrderedDict, defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from config import Config
from what2watch.models import VARIANT_ENHANCED, VARIANT_STANDARD, VARIANTS, FeedbackEvent, StrategyAssignment

logger = logging.getLogger(__name__)

TOP_PICK_RANK = 3
MIN_SAMPLE_SIZE = 50


def normalize_variant(variant: Optional[str]) -> Optional[str]:
    """'a'/'B' -> 'A'/'B'; anything else -> None."""
    if not variant:
        return None
    variant = variant.strip().upper()
    return variant if variant in VARIANTS else None


class StrategySelector:
    """
    Assigns each session to variant A or B, once.
    At most `max_sessions` assignments are kept; the oldest is forgotten first.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
        max_sessions: Optional[int] = None
    ):
        self.rng = rng or random.Random()
        self.clock = clock
        self.max_sessions = Config.MAX_SESSIONS if max_sessions is None else max_sessions
        self._assignments: "OrderedDict[str, StrategyAssignment]" = OrderedDict()
        self._lock = threading.Lock()

    def assign(self, session_id: Optional[str] = None, variant: Optional[str] = None) -> StrategyAssignment:
        """
        Get the strategy for a session.

        Args:
            session_id: Existing session id; a new one is minted when missing
            variant: Explicit 'A' or 'B' (case-insensitive) for a new session

        Returns:
            StrategyAssignment; a known session always gets its first assignment back
        """
        session_id = session_id or uuid.uuid4().hex

        with self._lock:
            existing = self._assignments.get(session_id)
            if existing is not None:
                return existing

            chosen = normalize_variant(variant)
            if chosen is None:
                chosen = VARIANT_STANDARD if self.rng.random() < 0.5 else VARIANT_ENHANCED

            assignment = StrategyAssignment(session_id=session_id, variant=chosen, assigned_at=self.clock())
            self._assignments[session_id] = assignment
            while len(self._assignments) > self.max_sessions:
                self._assignments.popitem(last=False)

        logger.info(f"Session {session_id} assigned to variant {chosen}")
        return assignment

    def get(self, session_id: str) -> Optional[StrategyAssignment]:
        with self._lock:
            return self._assignments.get(session_id)

    def __len__(self):
        with self._lock:
            return len(self._assignments)


def _accuracy(events: List[FeedbackEvent]) -> float:
    if not events:
        return 0.0
    return sum(1 for e in events if e.liked) / len(events) * 100


def _variant_stats(events: List[FeedbackEvent]) -> Dict[str, Any]:
    top_picks = [e for e in events if 0 < e.rank <= TOP_PICK_RANK]
    return {
        'total': len(events),
        'liked': sum(1 for e in events if e.liked),
        'accuracy': _accuracy(events),
        'top_pick_accuracy': _accuracy(top_picks),
    }


def verdict(stats_a: Dict[str, Any], stats_b: Dict[str, Any]) -> str:
    """Plain-text summary comparing the two variants."""
    difference = stats_b['accuracy'] - stats_a['accuracy']
    if difference > 0:
        summary = f"Algorithm B is performing better with {difference:.1f}% higher accuracy."
    elif difference < 0:
        summary = f"Algorithm A is performing better with {-difference:.1f}% higher accuracy."
    else:
        summary = "Both algorithms are performing equally well."

    if stats_a['total'] < MIN_SAMPLE_SIZE or stats_b['total'] < MIN_SAMPLE_SIZE:
        return f"{summary} More data is needed for conclusive results."
    return f"{summary} Sample size is sufficient for analysis."


class FeedbackTracker:
    """In-memory store of liked/disliked feedback."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock
        self._events: List[FeedbackEvent] = []
        self._lock = threading.Lock()

    def record(
        self,
        content_id: int,
        title: str,
        liked: bool,
        rank: int,
        variant: Optional[str] = None,
        genres=()
    ) -> FeedbackEvent:
        event = FeedbackEvent(
            content_id=content_id,
            title=title,
            liked=liked,
            rank=rank,
            variant=normalize_variant(variant),
            genres=tuple(genres),
            timestamp=self.clock(),
        )
        with self._lock:
            self._events.append(event)
        logger.debug(f"Feedback recorded: {event.to_dict()['type']} '{title}' (rank {rank}, variant {event.variant})")
        return event

    @property
    def events(self) -> List[FeedbackEvent]:
        with self._lock:
            return list(self._events)

    def clear(self):
        with self._lock:
            self._events.clear()

    def stats(self) -> Dict[str, Any]:
        """
        Feedback analytics.

        Returns:
            Totals, overall and top-pick accuracy (percent), per-genre counts,
            per-variant stats and a verdict comparing A and B
        """
        events = self.events
        liked = sum(1 for e in events if e.liked)

        genre_data = defaultdict(lambda: {'liked': 0, 'disliked': 0, 'total': 0})
        for event in events:
            for genre in event.genres:
                genre_data[genre]['liked' if event.liked else 'disliked'] += 1
                genre_data[genre]['total'] += 1

        stats_a = _variant_stats([e for e in events if e.variant == VARIANT_STANDARD])
        stats_b = _variant_stats([e for e in events if e.variant == VARIANT_ENHANCED])

        return {
            'total_feedback': len(events),
            'liked_count': liked,
            'disliked_count': len(events) - liked,
            'accuracy_rate': _accuracy(events),
            'top_pick_accuracy_rate': _accuracy([e for e in events if 0 < e.rank <= TOP_PICK_RANK]),
            'genre_data': dict(genre_data),
            'variants': {VARIANT_STANDARD: stats_a, VARIANT_ENHANCED: stats_b},
            'verdict': verdict(stats_a, stats_b),
        }
