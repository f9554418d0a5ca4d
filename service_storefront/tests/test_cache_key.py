"""
Unit tests for cache key derivation.
"""

import pytest
from starlette.datastructures import QueryParams

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_storefront.app.caching.cache_key import generate_cache_key, query_params_to_mapping


class TestGenerateCacheKey:
    """Test cases for generate_cache_key."""

    def test_key_is_independent_of_parameter_order(self):
        first = generate_cache_key("/api/products", {"limit": "10", "page": "2"})
        second = generate_cache_key("/api/products", {"page": "2", "limit": "10"})

        assert first == second == "/api/products?limit=10&page=2"

    def test_empty_query_yields_bare_path(self):
        assert generate_cache_key("/api/products", {}) == "/api/products"
        assert generate_cache_key("/api/products") == "/api/products"

    def test_include_query_false_ignores_parameters(self):
        key = generate_cache_key("/api/products", {"page": "3"}, include_query=False)

        assert key == "/api/products"

    def test_query_string_in_path_is_dropped(self):
        key = generate_cache_key("/api/products?page=9", {"page": "1"})

        assert key == "/api/products?page=1"

    def test_list_values_joined_with_comma(self):
        key = generate_cache_key("/api/products", {"category": ["a", "b"], "page": 1})

        assert key == "/api/products?category=a,b&page=1"

    def test_none_value_renders_empty(self):
        assert generate_cache_key("/p", {"q": None}) == "/p?q="

    @pytest.mark.parametrize("query", [
        {"page": "1"},
        {"page": "2"},
        {"page": "1", "limit": "20"},
    ])
    def test_different_queries_yield_different_keys(self, query):
        assert generate_cache_key("/api/products", query) != generate_cache_key("/api/products", {"page": "1", "limit": "10"})

    def test_different_paths_yield_different_keys(self):
        assert generate_cache_key("/api/products/a") != generate_cache_key("/api/products/b")


class TestQueryParamsToMapping:
    """Test cases for query_params_to_mapping."""

    def test_single_values_stay_strings(self):
        mapping = query_params_to_mapping(QueryParams("page=2&limit=5"))

        assert mapping == {"page": "2", "limit": "5"}

    def test_repeated_names_become_lists(self):
        mapping = query_params_to_mapping(QueryParams("category=a&category=b&page=1"))

        assert mapping == {"category": ["a", "b"], "page": "1"}

    def test_mapping_feeds_key_generation(self):
        mapping = query_params_to_mapping(QueryParams("category=b&category=a"))

        assert generate_cache_key("/api/products", mapping) == "/api/products?category=b,a"
