"""
Scoring and ranking.

Each candidate gets a relevance component (how well it fits the profile) and a
quality component (buzz and critic bonuses):

    final = relevance * 0.6 + vote_average * 0.5 + buzz + rotten_tomatoes + imdb
"""

import random
from datetime import date
from typing import Callable, List, Optional, Sequence

from config import Config
from what2watch.models import (
    BUZZ_HIGH, BUZZ_LOW, BUZZ_MEDIUM,
    CONTENT_MOVIE, CONTENT_TV, ERA_CLASSIC, ERA_NEW, MEDIA_MOVIE, MEDIA_TV,
    VARIANT_ENHANCED, VARIANT_STANDARD,
    CriticScores, EnrichedCandidate, PreferenceProfile, ScoredRecommendation,
)

GENRE_MATCH_POINTS = 20
PRIORITY_POINTS = 10
MAX_PRIORITY = 3
ERA_POINTS = 15
RECENT_YEARS = 3
CLASSIC_BEFORE = 2000
JITTER = 5.0

CONTENT_TYPE_POINTS = {
    VARIANT_STANDARD: 15,
    VARIANT_ENHANCED: 10,
}

TOP_N = {
    VARIANT_STANDARD: Config.TOP_N_STANDARD,
    VARIANT_ENHANCED: Config.TOP_N_ENHANCED,
}

RELEVANCE_WEIGHT = 0.6
VOTE_WEIGHT = 0.5

BUZZ_BONUS = {
    BUZZ_HIGH: 20,
    BUZZ_MEDIUM: 10,
    BUZZ_LOW: 2,
}

# (minimum, bonus), checked top-down
ROTTEN_TOMATOES_BONUS = [(90, 25), (75, 15), (60, 5)]
IMDB_BONUS = [(8.5, 25), (7.5, 15), (6.5, 5)]

REQUESTED_MEDIA = {
    CONTENT_MOVIE: MEDIA_MOVIE,
    CONTENT_TV: MEDIA_TV,
}


def _tier_bonus(value, tiers) -> float:
    if value is None:
        return 0
    for minimum, bonus in tiers:
        if value >= minimum:
            return bonus
    return 0


def buzz_bonus(level: str) -> float:
    return BUZZ_BONUS.get(level, 0)


def critic_bonus(critic: Optional[CriticScores]) -> float:
    if critic is None:
        return 0
    return (
        _tier_bonus(critic.rotten_tomatoes, ROTTEN_TOMATOES_BONUS)
        + _tier_bonus(critic.imdb_rating, IMDB_BONUS)
    )


class ScoringEngine:
    """Scores and orders enriched candidates for a profile."""

    def __init__(self, rng: Optional[random.Random] = None, current_year: Optional[Callable[[], int]] = None):
        """
        Args:
            rng: Source of tie-break jitter; seed it for reproducible rankings
            current_year: Returns the year used for era checks (defaults to today)
        """
        self.rng = rng or random.Random()
        self.current_year = current_year or (lambda: date.today().year)

    def relevance_component(self, candidate: EnrichedCandidate, profile: PreferenceProfile, variant: str) -> float:
        content = candidate.content
        score = 0.0

        for code in content.genre_codes & profile.genres:
            score += GENRE_MATCH_POINTS
            priority = profile.priority_for(code)
            if priority is not None and priority <= MAX_PRIORITY:
                score += (MAX_PRIORITY + 1 - priority) * PRIORITY_POINTS

        score += min(content.popularity / 10, 10)
        score += content.vote_average * 2

        year = content.release_year
        if year is not None:
            if profile.era == ERA_NEW and year >= self.current_year() - RECENT_YEARS:
                score += ERA_POINTS
            elif profile.era == ERA_CLASSIC and year < CLASSIC_BEFORE:
                score += ERA_POINTS

        if REQUESTED_MEDIA.get(profile.content_type) == content.media_type:
            score += CONTENT_TYPE_POINTS.get(variant, CONTENT_TYPE_POINTS[VARIANT_STANDARD])

        score += self.rng.uniform(0, JITTER)
        return score

    def quality_component(self, candidate: EnrichedCandidate) -> float:
        return buzz_bonus(candidate.buzz.level) + critic_bonus(candidate.critic)

    def score(self, candidate: EnrichedCandidate, profile: PreferenceProfile, variant: str) -> float:
        relevance = self.relevance_component(candidate, profile, variant)
        return (
            relevance * RELEVANCE_WEIGHT
            + candidate.content.vote_average * VOTE_WEIGHT
            + self.quality_component(candidate)
        )

    def rank(
        self,
        candidates: Sequence[EnrichedCandidate],
        profile: PreferenceProfile,
        variant: str,
        top_n: Optional[int] = None
    ) -> List[ScoredRecommendation]:
        """
        Score every candidate and return the best ones, ranked from 1.

        Args:
            candidates: Enriched candidates (none are filtered out)
            profile: Preference profile
            variant: 'A' keeps the top 10, 'B' the top 20
            top_n: Override for the cut-off

        Returns:
            ScoredRecommendation list, highest score first
        """
        if not candidates:
            return []

        limit = top_n if top_n is not None else TOP_N.get(variant, TOP_N[VARIANT_STANDARD])
        scored = [(self.score(candidate, profile, variant), candidate) for candidate in candidates]
        # sorted() is stable, so equal scores keep their candidate order
        scored = sorted(scored, key=lambda pair: pair[0], reverse=True)[:limit]

        return [
            ScoredRecommendation(content=candidate, relevance_score=score, rank=position + 1)
            for position, (score, candidate) in enumerate(scored)
        ]
