"""
Preference extraction from quiz answers.

Answers are run through an ordered table of topic rules. A rule fires when the
question mentions one of its topic keywords and the answer yields a value;
answers are processed in order, so a later answer overrides an earlier one for
the same field.
"""

import re
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence, Set, Tuple, Union

from what2watch.genres import GENRE_KEYWORDS, GENRE_PRIORITY_CODES, MOOD_GENRES
from what2watch.models import (
    CONTENT_BOTH, CONTENT_MOVIE, CONTENT_TV, DEFAULT_DURATION,
    ERA_ANY, ERA_CLASSIC, ERA_NEW,
    PreferenceProfile, QuizAnswer,
)

GENRE_TOPIC_KEYWORDS = ('genre', 'genres', 'flavor', 'flavour')


def _keyword_pattern(keyword: str) -> re.Pattern:
    # Whole-word match that still allows hyphenated keywords like "sci-fi"
    return re.compile(rf"(?<![a-z]){re.escape(keyword)}(?![a-z])")


def mentions(text: str, keywords: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(_keyword_pattern(keyword).search(lowered) for keyword in keywords)


def _first_match(text: str, choices: Sequence[Tuple[Tuple[str, ...], object]]):
    for keywords, value in choices:
        if mentions(text, keywords):
            return value
    return None


def parse_mood(answer: str) -> Optional[str]:
    if mentions(answer, MOOD_GENRES.keys()):
        return answer.strip().lower()
    return None


def parse_content_type(answer: str) -> Optional[str]:
    return _first_match(answer, [
        (('movie', 'movies', 'film', 'films'), CONTENT_MOVIE),
        (('tv', 'series', 'mini-series', 'season', 'multi-season', 'episode', 'episodes', 'show', 'shows'), CONTENT_TV),
        (('both', 'either', 'flexible', 'any'), CONTENT_BOTH),
    ])


def parse_duration(answer: str) -> int:
    value = _first_match(answer, [
        (('short', 'quick'), 90),
        (('long', 'epic', 'marathon'), 180),
    ])
    return DEFAULT_DURATION if value is None else value


def parse_era(answer: str) -> Optional[str]:
    return _first_match(answer, [
        (('new', 'newest', 'recent', 'latest', 'modern', 'fresh'), ERA_NEW),
        (('classic', 'classics', 'old', 'retro', 'vintage'), ERA_CLASSIC),
        (('any', 'matter'), ERA_ANY),
    ])


class TopicRule(NamedTuple):
    field: str
    topic_keywords: Tuple[str, ...]
    parse_value: Callable[[str], object]


TOPIC_RULES = [
    TopicRule('mood', ('mood', 'feel', 'feeling', 'vibe'), parse_mood),
    TopicRule('content_type', ('movie', 'tv', 'show', 'series', 'watch'), parse_content_type),
    TopicRule('duration', ('time', 'duration', 'length', 'long'), parse_duration),
    TopicRule('era', ('recent', 'new', 'old', 'fresh', 'era', 'classic'), parse_era),
]


def keyword_genres(answer: str) -> List[str]:
    """Genre codes named anywhere in an answer, in table order."""
    return [code for keywords, code in GENRE_KEYWORDS if mentions(answer, keywords)]


def priority_genres(priorities) -> List[Tuple[str, int]]:
    """
    Translate explicit (genre name, priority) pairs to (code, priority).
    Names missing from the lookup table and priorities below 1 are dropped.
    """
    resolved = []
    seen = set()
    valid = [entry for entry in priorities if entry.priority >= 1]
    for entry in sorted(valid, key=lambda p: p.priority):
        for code in GENRE_PRIORITY_CODES.get(entry.genre.strip().lower(), ()):
            if code not in seen:
                seen.add(code)
                resolved.append((code, entry.priority))
    return resolved


def mood_genres(mood: str) -> Set[str]:
    codes = set()
    for keyword, genres in MOOD_GENRES.items():
        if mentions(mood, (keyword,)):
            codes.update(genres)
    return codes


def extract_preferences(answers: Iterable[Union[QuizAnswer, Dict]]) -> PreferenceProfile:
    """
    Build a preference profile from quiz answers.

    Args:
        answers: Ordered quiz answers (QuizAnswer objects or plain dicts)

    Returns:
        PreferenceProfile; under-specified answers leave the defaults in place
    """
    fields = {
        'mood': '',
        'content_type': CONTENT_BOTH,
        'duration': DEFAULT_DURATION,
        'era': ERA_ANY,
    }
    scanned_genres: List[str] = []
    explicit_priorities: Optional[List[Tuple[str, int]]] = None

    for answer in answers:
        if isinstance(answer, dict):
            answer = QuizAnswer.from_dict(answer)

        question = answer.question or ''
        text = answer.answer_text

        for rule in TOPIC_RULES:
            if not mentions(question, rule.topic_keywords):
                continue
            value = rule.parse_value(text)
            if value is not None:
                fields[rule.field] = value

        if answer.genre_priorities and mentions(question, GENRE_TOPIC_KEYWORDS):
            explicit_priorities = priority_genres(answer.genre_priorities)
            continue

        for code in keyword_genres(text):
            if code not in scanned_genres:
                scanned_genres.append(code)

    # Explicit priorities are authoritative for the whole genre set
    if explicit_priorities:
        genres = {code for code, _ in explicit_priorities}
        priorities = tuple(explicit_priorities)
    else:
        genres = set(scanned_genres)
        priorities = ()

    if not genres and fields['mood']:
        genres = mood_genres(fields['mood'])

    return PreferenceProfile(
        mood=fields['mood'],
        content_type=fields['content_type'],
        genres=frozenset(genres),
        genre_priorities=priorities,
        era=fields['era'],
        duration=fields['duration'],
    )
