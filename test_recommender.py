"""
Tests for the recommendation service pipeline.
"""

import random

from conftest import FakeCatalog, FakeCriticProvider, FakeDiscussionClient, FakeScorer, make_item, make_posts
from what2watch.buzz import BuzzClassifier
from what2watch.cache import TTLCache
from what2watch.models import BUZZ_HIGH, BUZZ_LOW, BUZZ_UNKNOWN, CriticScores
from what2watch.recommender import RecommendationError, RecommendationService
from what2watch.reddit_client import DiscussionAPIError
from what2watch.scoring import ScoringEngine
from what2watch.strategy import StrategySelector

ACTION_ANSWERS = [
    {'question': 'Movie or TV show?', 'answer': 'Movie'},
    {'question': 'Pick your genres', 'answer': 'action', 'genrePriorities': [{'genre': 'action', 'priority': 1}]},
]


class ByTitleClient:
    """Discussion client with a response per title prefix."""

    def __init__(self, responses, failing=()):
        self.responses = responses
        self.failing = set(failing)

    def search(self, query, fetch_comments=False):
        for title, response in self.responses.items():
            if query.startswith(title):
                return response
        for title in self.failing:
            if query.startswith(title):
                raise DiscussionAPIError('Reddit API error: 500')
        return {'posts': [], 'comments_data': []}


def make_service(catalog, discussion, critic_provider=None, **kwargs):
    classifier = BuzzClassifier(
        discussion, scorer=FakeScorer(), cache=TTLCache(3600), timeout=5,
        fetch_comments=False, current_year=lambda: 2025,
    )
    return RecommendationService(
        catalog=catalog,
        buzz_classifier=classifier,
        critic_provider=critic_provider,
        selector=StrategySelector(rng=random.Random(1)),
        scoring_engine=ScoringEngine(rng=random.Random(1), current_year=lambda: 2025),
        **kwargs
    )


def action_catalog():
    return FakeCatalog({
        'genre:28:movie:1': [
            make_item(1, 'Quiet Action', genres=['28'], vote_average=7.0, release_year=2010),
            make_item(2, 'Loud Action', genres=['28'], vote_average=7.0, release_year=2010),
            make_item(3, 'Comedy Detour', genres=['35'], vote_average=7.0, release_year=2010),
            make_item(4, 'Action Four', genres=['28'], vote_average=5.0, release_year=2010),
            make_item(5, 'Action Five', genres=['28'], vote_average=5.0, release_year=2010),
        ],
    })


def test_end_to_end_variant_a():
    discussion = ByTitleClient({'Loud Action': {'posts': make_posts(30, ups=300), 'comments_data': []}})
    critics = FakeCriticProvider({'Loud Action': CriticScores(imdb_rating=8.6, rotten_tomatoes=95)})
    service = make_service(action_catalog(), discussion, critics)

    response = service.recommend(ACTION_ANSWERS, strategy='A')

    assert response.assignment.variant == 'A'
    assert response.profile.genres == frozenset({'28'})
    ranked = response.recommendations
    assert [rec.rank for rec in ranked] == [1, 2, 3, 4, 5]
    assert ranked[0].content.content.title == 'Loud Action'
    assert ranked[0].content.buzz.level == BUZZ_HIGH
    assert ranked[0].content.critic.rotten_tomatoes == 95

    titles = [rec.content.content.title for rec in ranked]
    assert titles.index('Quiet Action') < titles.index('Comedy Detour')


def test_session_keeps_variant_across_requests():
    service = make_service(action_catalog(), FakeDiscussionClient())

    first = service.recommend(ACTION_ANSWERS, strategy='B')
    second = service.recommend(ACTION_ANSWERS, strategy='A', session_id=first.assignment.session_id)

    assert second.assignment is first.assignment
    assert second.assignment.variant == 'B'


def test_buzz_failure_for_one_title_falls_back_independently():
    discussion = ByTitleClient(
        {'Quiet Action': {'posts': make_posts(2), 'comments_data': []}},
        failing={'Loud Action'},
    )
    service = make_service(action_catalog(), discussion)

    enriched = service.enrich(action_catalog().pages['genre:28:movie:1'])

    by_title = {e.content.title: e for e in enriched}
    assert [e.content.id for e in enriched] == [1, 2, 3, 4, 5]
    assert by_title['Quiet Action'].buzz.level == BUZZ_LOW
    assert by_title['Loud Action'].buzz.level == BUZZ_UNKNOWN
    assert by_title['Loud Action'].buzz_category == 'Low Buzz'
    assert by_title['Loud Action'].critic == CriticScores()


def test_enrichment_limit_leaves_the_rest_unenriched():
    discussion = FakeDiscussionClient({'posts': make_posts(1), 'comments_data': []})
    service = make_service(action_catalog(), discussion, enrichment_limit=2)

    enriched = service.enrich(action_catalog().pages['genre:28:movie:1'])

    assert len(enriched) == 5
    assert len(discussion.calls) == 2
    assert enriched[2].buzz.error == 'not enriched'


def test_get_recommendations_returns_empty_list_on_failure():
    class BrokenAggregator:
        def aggregate(self, profile, variant):
            raise RuntimeError('boom')

    service = make_service(action_catalog(), FakeDiscussionClient(), aggregator=BrokenAggregator())

    assert service.get_recommendations(ACTION_ANSWERS) == []


def test_catalog_outage_gives_empty_recommendations():
    catalog = FakeCatalog(failing={'genre:28:movie:1', 'popular:movie:1'})
    service = make_service(catalog, FakeDiscussionClient())

    assert service.get_recommendations(ACTION_ANSWERS, strategy='A') == []


def test_classify_buzz_delegates_to_classifier():
    discussion = FakeDiscussionClient({'posts': make_posts(9), 'comments_data': []})
    service = make_service(FakeCatalog(), discussion)

    result = service.classify_buzz('Dune', 2021, 'movie')

    assert result.post_count == 9
    assert discussion.calls == ['Dune 2021 movie film']


def test_feedback_uses_session_variant():
    service = make_service(action_catalog(), FakeDiscussionClient())
    response = service.recommend(ACTION_ANSWERS, strategy='B')

    event = service.record_feedback(2, 'Loud Action', True, 1, session_id=response.assignment.session_id, variant='A')

    assert event.variant == 'B'
    assert service.feedback_stats()['variants']['B']['liked'] == 1


def test_feedback_rejects_unknown_variant():
    service = make_service(action_catalog(), FakeDiscussionClient())

    try:
        service.record_feedback(1, 'Heat', True, 1, variant='C')
    except RecommendationError as e:
        assert 'C' in str(e)
    else:
        raise AssertionError('RecommendationError not raised')
