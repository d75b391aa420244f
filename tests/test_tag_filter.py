"""Tests for tag filter parsing and matching."""

import itertools

import pytest

from rds_connect.discovery.tag_filter import TagFilter, TagFilterSet
from rds_connect.exceptions import MalformedFilter, UnsafeFilterValue, ValidationError


class TestTagFilterParse:
    def test_simple(self):
        assert TagFilter.parse("Environment=prod") == TagFilter("Environment", "prod")

    def test_splits_on_first_equals_only(self):
        tag = TagFilter.parse("Config=key=value")
        assert tag.key == "Config"
        assert tag.value == "key=value"

    def test_trims_whitespace(self):
        assert TagFilter.parse("  Team =  backend ") == TagFilter("Team", "backend")

    def test_missing_equals(self):
        with pytest.raises(MalformedFilter, match="must contain '='"):
            TagFilter.parse("Environment")

    def test_empty_key(self):
        with pytest.raises(MalformedFilter, match="key cannot be empty"):
            TagFilter.parse("  =prod")

    def test_empty_value(self):
        with pytest.raises(MalformedFilter, match="value cannot be empty"):
            TagFilter.parse("Environment=   ")

    @pytest.mark.parametrize("token", [
        "Env=pr'od", 'Env=pr"od', "Env=`id`", "Env=a\\b", "Env=$HOME", "K$y=v",
    ])
    def test_unsafe_characters_rejected(self, token):
        with pytest.raises(UnsafeFilterValue):
            TagFilter.parse(token)

    def test_errors_are_validation_errors(self):
        with pytest.raises(ValidationError):
            TagFilter.parse("nope")


class TestTagFilterSet:
    def test_add_filter_preserves_order(self):
        filters = TagFilterSet().add_filter("b=2").add_filter("a=1")
        assert [str(f) for f in filters] == ["b=2", "a=1"]
        assert filters.count() == 2

    def test_add_filter_leaves_original_unchanged(self):
        original = TagFilterSet.from_tokens(["a=1"])
        extended = original.add_filter("b=2")
        assert original.count() == 1
        assert extended.count() == 2
        assert hash(original) == hash(TagFilterSet.from_tokens(["a=1"]))

    def test_from_tokens_rejects_unsafe_values(self):
        with pytest.raises(UnsafeFilterValue):
            TagFilterSet.from_tokens(["Env=prod", "Team=$HOME"])

    def test_empty_matches_everything(self):
        assert TagFilterSet().matches({})
        assert TagFilterSet().matches({"any": "thing"})

    def test_and_semantics(self):
        filters = TagFilterSet.from_tokens(["Environment=prod", "Team=backend"])
        assert filters.matches({"Environment": "prod", "Team": "backend", "Extra": "x"})
        assert not filters.matches({"Environment": "prod"})
        assert not filters.matches({"Team": "backend"})
        assert not filters.matches({"Environment": "prod", "Team": "frontend"})

    def test_matching_independent_of_order(self):
        tokens = ["a=1", "b=2", "c=3"]
        tags = {"a": "1", "b": "2", "c": "3"}
        partial = {"a": "1", "c": "3"}
        for perm in itertools.permutations(tokens):
            filters = TagFilterSet.from_tokens(perm)
            assert filters.matches(tags)
            assert not filters.matches(partial)

    def test_value_comparison_is_exact(self):
        filters = TagFilterSet.from_tokens(["Environment=prod"])
        assert not filters.matches({"Environment": "prod-eu"})
        assert not filters.matches({"environment": "prod"})

    def test_apply_uses_projection(self):
        filters = TagFilterSet.from_tokens(["Team=backend"])
        raw = [{"id": 1, "t": {"Team": "backend"}}, {"id": 2, "t": {}}]
        assert filters.apply(raw, lambda r: r["t"]) == [raw[0]]

    def test_equality_ignores_order(self):
        assert TagFilterSet.from_tokens(["a=1", "b=2"]) == TagFilterSet.from_tokens(["b=2", "a=1"])


class TestDescribe:
    def test_no_filters(self):
        assert TagFilterSet().describe() == "all databases"

    def test_single_filter(self):
        assert TagFilterSet.from_tokens(["Environment=prod"]).describe() == "databases with Environment=prod"

    def test_many_filters(self):
        filters = TagFilterSet.from_tokens(["a=1", "b=2", "c=3"])
        assert filters.describe() == "databases with 3 tag filters"

    def test_custom_noun(self):
        assert TagFilterSet().describe("instances") == "all instances"
