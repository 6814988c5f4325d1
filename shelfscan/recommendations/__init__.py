"""
Book recommendation engine.

Responsibilities:
- Derive taste and preference profiles from a scanned seed set.
- Generate candidates by vector similarity, catalog subject search and LLM suggestion.
- Score, filter, de-duplicate and rank candidates into bounded-confidence recommendations.
- Cache raw LLM suggestions per seed set and filter combination.
"""
