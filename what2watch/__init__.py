"""
What2Watch recommendation engine.

This package turns quiz answers into ranked movie/TV recommendations:
- preferences: quiz answers to a preference profile
- aggregator: catalog discovery queries (standard and enhanced strategies)
- buzz: Reddit buzz and sentiment classification with caching and fallback
- scoring: relevance scoring and ranking
- strategy: A/B strategy assignment and feedback analytics
- recommender: orchestration of the whole pipeline
"""
