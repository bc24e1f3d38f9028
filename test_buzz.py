"""
Tests for Reddit buzz classification.
"""

import threading

from conftest import FakeDiscussionClient, FakeScorer, make_item, make_posts
from what2watch.buzz import (
    FALLBACK_CATEGORIES, BuzzClassifier, build_query, classify_level, classify_sentiment,
    enhanced_category, estimate_buzz, iter_comment_bodies,
)
from what2watch.cache import TTLCache
from what2watch.models import (
    BUZZ_HIGH, BUZZ_LOW, BUZZ_MEDIUM, BUZZ_UNKNOWN, CONTROVERSIAL, LOW_BUZZ, NICHE_INTEREST,
    POPULAR_DISCUSSION, SENTIMENT_NEGATIVE, SENTIMENT_NEUTRAL, SENTIMENT_POSITIVE,
    TRENDING_NEGATIVE, TRENDING_POSITIVE, BuzzResult,
)
from what2watch.reddit_client import DiscussionAPIError


def make_classifier(client, **kwargs):
    kwargs.setdefault('cache', TTLCache(3600))
    kwargs.setdefault('timeout', 5)
    kwargs.setdefault('fetch_comments', False)
    kwargs.setdefault('current_year', lambda: 2025)
    return BuzzClassifier(client, scorer=FakeScorer(), **kwargs)


def comment_listing(bodies):
    return [
        {'kind': 'Listing', 'data': {'children': [{'kind': 't3', 'data': {'title': 'post'}}]}},
        {'kind': 'Listing', 'data': {'children': [
            {'kind': 't1', 'data': {'body': body, 'replies': ''}} for body in bodies
        ]}},
    ]


def test_volume_alone_decides_high_level():
    """Test that 25 posts and 6000 upvotes are High even with negative sentiment."""
    assert classify_level(25, 6000, 0) == BUZZ_HIGH

    posts = make_posts(25, title='This was awful and boring', ups=240)
    classifier = make_classifier(FakeDiscussionClient({'posts': posts, 'comments_data': []}))

    result = classifier.classify('Flop', 2024, 'movie')

    assert result.level == BUZZ_HIGH
    assert result.total_upvotes == 6000
    assert result.sentiment == SENTIMENT_NEGATIVE
    assert enhanced_category(result) == TRENDING_NEGATIVE


def test_level_thresholds():
    assert classify_level(8, 0, 0) == BUZZ_MEDIUM
    assert classify_level(0, 1000, 0) == BUZZ_MEDIUM
    assert classify_level(0, 0, 200) == BUZZ_MEDIUM
    assert classify_level(0, 0, 1000) == BUZZ_HIGH
    assert classify_level(7, 999, 199) == BUZZ_LOW


def test_sentiment_thresholds():
    assert classify_sentiment(0.2) == SENTIMENT_POSITIVE
    assert classify_sentiment(-0.2) == SENTIMENT_NEGATIVE
    assert classify_sentiment(0.19) == SENTIMENT_NEUTRAL


def test_cache_returns_same_result_without_second_call():
    client = FakeDiscussionClient({'posts': make_posts(3), 'comments_data': []})
    classifier = make_classifier(client)

    first = classifier.classify('Dune', 2021, 'movie')
    second = classifier.classify('Dune', 2021, 'movie')

    assert second is first
    assert client.calls == ['Dune 2021 movie film']


def test_cache_expires_after_ttl(clock):
    client = FakeDiscussionClient({'posts': make_posts(3), 'comments_data': []})
    classifier = make_classifier(client, cache=TTLCache(86400, clock=clock))

    classifier.classify('Dune', 2021, 'movie')
    clock.advance(86399)
    classifier.classify('Dune', 2021, 'movie')
    assert len(client.calls) == 1

    clock.advance(1)
    classifier.classify('Dune', 2021, 'movie')
    assert len(client.calls) == 2


def test_failures_are_not_cached():
    client = FakeDiscussionClient(error=DiscussionAPIError('Reddit API error: 503'))
    classifier = make_classifier(client)

    result = classifier.classify('Dune')
    assert result.level == BUZZ_UNKNOWN
    assert result.error == 'Reddit API error: 503'

    client.error = None
    result = classifier.classify('Dune')
    assert result.level == BUZZ_LOW
    assert len(client.calls) == 2


def test_timeout_gives_unknown_and_wrapper_falls_back():
    """Test that a hung search yields Unknown and categorize still returns a category."""
    release = threading.Event()

    class HangingClient:
        def search(self, query, fetch_comments=False):
            release.wait(5)
            return {'posts': [], 'comments_data': []}

    classifier = make_classifier(HangingClient(), timeout=0.05)
    try:
        result = classifier.classify('Severance', 2022, 'tv')
        assert result.level == BUZZ_UNKNOWN
        assert 'timed out' in result.error

        item = make_item(1, 'Severance', media_type='tv', genres=['18'], vote_average=8.4, release_year=2024)
        result, category = classifier.categorize(item)
        assert result.failed
        assert category == POPULAR_DISCUSSION
        assert category in FALLBACK_CATEGORIES.values()
    finally:
        release.set()
        classifier.close()


def test_build_query():
    assert build_query('Dune', 2021, 'movie') == 'Dune 2021 movie film'
    assert build_query('The Bear', None, 'tv') == 'The Bear tv series show'
    assert build_query('Heat') == 'Heat'


def test_aggregates_sources_and_counts():
    posts = (
        make_posts(3, subreddit='movies', ups=10, num_comments=4)
        + make_posts(2, subreddit='scifi', ups=5, num_comments=1)
        + [{'title': 'no sub', 'ups': 1, 'num_comments': 0}]
    )
    classifier = make_classifier(FakeDiscussionClient({'posts': posts, 'comments_data': []}))

    result = classifier.classify('Dune')

    assert result.post_count == 6
    assert result.total_upvotes == 41
    assert result.total_comments == 14
    assert result.top_sources == (('movies', 3), ('scifi', 2))
    assert result.sentiment_source == 'posts'


def test_comment_sentiment_takes_precedence_with_five_comments():
    posts = make_posts(2, title='Dune discussion thread')
    bodies = ['Great film', 'I love it', 'Amazing score', 'Best of the year', 'Masterpiece', '[deleted]']
    client = FakeDiscussionClient({
        'posts': posts,
        'comments_data': [{'post_id': 'a', 'listing': comment_listing(bodies)}],
    })

    result = make_classifier(client).classify('Dune')

    assert result.sentiment == SENTIMENT_POSITIVE
    assert result.sentiment_source == 'comments'
    assert result.comment_sentiment.total_comments == 6
    assert result.comment_sentiment.analyzed_comments == 5
    assert result.comment_sentiment.positive_comments == 5


def test_few_comments_leave_post_sentiment():
    client = FakeDiscussionClient({
        'posts': make_posts(2, title='Dune discussion thread'),
        'comments_data': [{'post_id': 'a', 'listing': comment_listing(['Great', 'Love it'])}],
    })

    result = make_classifier(client).classify('Dune')

    assert result.sentiment == SENTIMENT_NEUTRAL
    assert result.sentiment_source == 'posts'
    assert result.comment_sentiment.analyzed_comments == 2


def test_iter_comment_bodies_walks_replies():
    nested = {'kind': 'Listing', 'data': {'children': [
        {'kind': 't1', 'data': {'body': 'top', 'replies': {'kind': 'Listing', 'data': {'children': [
            {'kind': 't1', 'data': {'body': 'reply', 'replies': ''}},
            {'kind': 'more', 'data': {}},
        ]}}}},
    ]}}

    assert list(iter_comment_bodies([nested])) == ['top', 'reply']


def test_trending_topics_from_repeated_title_terms():
    posts = [
        {'title': 'Dune trailer looks great'},
        {'title': 'Dune trailer is awful'},
        {'title': 'Casting news'},
    ]
    result = make_classifier(FakeDiscussionClient({'posts': posts, 'comments_data': []})).classify('Dune')

    assert [(t.term, t.count) for t in result.trending_topics] == [('dune', 2), ('trailer', 2)]
    assert result.trending_topics[0].sentiment == SENTIMENT_NEUTRAL


def test_enhanced_categories():
    def category(level, sentiment, **kwargs):
        return enhanced_category(BuzzResult(level=level, sentiment=sentiment, **kwargs))

    assert category(BUZZ_HIGH, SENTIMENT_POSITIVE) == TRENDING_POSITIVE
    assert category(BUZZ_HIGH, SENTIMENT_NEUTRAL, sentiment_source='posts') == POPULAR_DISCUSSION
    assert category(
        BUZZ_HIGH, SENTIMENT_NEUTRAL, sentiment_source='posts', positive_share=0.4, negative_share=0.35
    ) == CONTROVERSIAL
    assert category(
        BUZZ_HIGH, SENTIMENT_NEUTRAL, sentiment_source='comments', positive_share=0.4, negative_share=0.4
    ) == POPULAR_DISCUSSION
    assert category(BUZZ_MEDIUM, SENTIMENT_POSITIVE) == TRENDING_POSITIVE
    assert category(BUZZ_MEDIUM, SENTIMENT_NEGATIVE) == TRENDING_NEGATIVE
    assert category(BUZZ_MEDIUM, SENTIMENT_NEUTRAL) == NICHE_INTEREST
    assert category(BUZZ_LOW, SENTIMENT_POSITIVE) == LOW_BUZZ
    assert enhanced_category(BuzzResult.unknown('boom')) == LOW_BUZZ


def test_estimate_buzz():
    recent_hit = make_item(1, vote_average=8.0, release_year=2024)
    acclaimed_drama = make_item(2, genres=['18'], vote_average=6.0, release_year=1990)
    recent_average = make_item(3, vote_average=5.0, release_year=2023)
    old_average = make_item(4, vote_average=6.0, release_year=1990)

    assert estimate_buzz(recent_hit, current_year=2025) == BUZZ_HIGH
    assert estimate_buzz(acclaimed_drama, rotten_tomatoes=92, current_year=2025) == BUZZ_HIGH
    assert estimate_buzz(acclaimed_drama, rotten_tomatoes=80, current_year=2025) == BUZZ_LOW
    assert estimate_buzz(recent_average, current_year=2025) == BUZZ_MEDIUM
    assert estimate_buzz(old_average, current_year=2025) == BUZZ_LOW


def test_batch_classify_pauses_between_titles():
    sleeps = []
    client = FakeDiscussionClient({'posts': make_posts(1), 'comments_data': []})
    classifier = make_classifier(client, sleep=sleeps.append)

    items = [make_item(1, 'One'), make_item(2, 'Two'), make_item(3, 'Three')]
    results = classifier.batch_classify(items, delay=0.5)

    assert set(results) == {1, 2, 3}
    assert sleeps == [0.5, 0.5]
    assert all(result.level == BUZZ_LOW for result in results.values())
