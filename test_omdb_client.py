"""
Tests for the OMDb critic score client.
"""

from unittest.mock import Mock

import requests

from what2watch.cache import TTLCache
from what2watch.models import CriticScores
from what2watch.omdb_client import OMDbClient, parse_critic_scores, parse_percent

DARK_KNIGHT = {
    'Response': 'True',
    'Title': 'The Dark Knight',
    'imdbRating': '9.0',
    'Metascore': '84',
    'Ratings': [
        {'Source': 'Internet Movie Database', 'Value': '9.0/10'},
        {'Source': 'Rotten Tomatoes', 'Value': '94%'},
        {'Source': 'Metacritic', 'Value': '84/100'},
    ],
}


def response(payload):
    resp = Mock()
    resp.status_code = 200
    resp.json.return_value = payload
    return resp


def make_client(*payloads):
    session = Mock()
    session.get.side_effect = [response(p) for p in payloads]
    return OMDbClient(api_key='test-key', session=session, cache=TTLCache(60)), session


def test_title_lookup_parses_scores():
    client, session = make_client(DARK_KNIGHT)

    scores = client.get_critic_scores('The Dark Knight', 2008, 'movie')

    assert scores == CriticScores(imdb_rating=9.0, rotten_tomatoes=94, metacritic=84)
    params = session.get.call_args[1]['params']
    assert params == {'t': 'The Dark Knight', 'y': 2008, 'type': 'movie', 'apikey': 'test-key'}


def test_missing_values_are_none():
    scores = parse_critic_scores({'Response': 'True', 'imdbRating': 'N/A', 'Metascore': 'N/A', 'Ratings': []})

    assert scores == CriticScores()
    assert parse_percent('74/100') == 74
    assert parse_percent('N/A') is None


def test_not_found_falls_back_to_fuzzy_search():
    """Test that a near-miss title is resolved through search and fuzzy matching."""
    search = {'Response': 'True', 'Search': [
        {'Title': 'The Dark Knight Rises', 'Year': '2012', 'imdbID': 'tt1345836'},
        {'Title': 'The Dark Knight', 'Year': '2008', 'imdbID': 'tt0468569'},
    ]}
    client, session = make_client({'Response': 'False', 'Error': 'Movie not found!'}, search, DARK_KNIGHT)

    scores = client.get_critic_scores('Dark Knight', 2008, 'movie')

    assert scores.rotten_tomatoes == 94
    assert session.get.call_args_list[1][1]['params']['s'] == 'Dark Knight'
    assert session.get.call_args_list[2][1]['params']['i'] == 'tt0468569'


def test_no_match_returns_none():
    client, _ = make_client({'Response': 'False'}, {'Response': 'False', 'Error': 'Movie not found!'})

    assert client.get_critic_scores('Zzzz Nothing', media_type='tv') is None


def test_network_error_returns_none():
    session = Mock()
    session.get.side_effect = requests.exceptions.ReadTimeout('slow')
    client = OMDbClient(api_key='test-key', session=session, cache=TTLCache(60))

    assert client.get_critic_scores('Heat', 1995) is None


def test_scores_are_cached():
    client, session = make_client(DARK_KNIGHT)

    first = client.get_critic_scores('The Dark Knight', 2008)
    second = client.get_critic_scores('The Dark Knight', 2008)

    assert first is second
    assert session.get.call_count == 1
