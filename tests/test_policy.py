"""Tests for per-action cache policies."""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from pydantic import ValidationError

from fastapi_freshness.directives import DirectiveSet
from fastapi_freshness.exceptions import PolicyLockedError
from fastapi_freshness.freshness import Freshness
from fastapi_freshness.policy import CachePolicy, CachePolicyBuilder, ExpiresRule

NOW = datetime(2009, 6, 8, 8, 41, 57, tzinfo=timezone.utc)


@pytest.fixture
def freshness():
    request = Mock()
    request.method = "GET"
    request.headers = {}
    response = Mock()
    response.status_code = 200
    response.headers = {}
    return Freshness(request, response, clock=lambda: NOW)


class TestCachePolicyBuilder:
    """Test policy registration and merge rules."""

    def test_wildcard_applies_to_every_action(self):
        policy = CachePolicyBuilder().cache_control("public", max_age=60).build()
        assert policy.cache_control_for("index") == DirectiveSet.of("public", max_age=60)
        assert policy.cache_control_for(None) == DirectiveSet.of("public", max_age=60)

    def test_specific_action_overrides_wildcard(self):
        policy = (
            CachePolicyBuilder()
            .cache_control("public")
            .cache_control("private", actions="account")
            .build()
        )
        assert policy.cache_control_for("account").render() == "private"
        assert policy.cache_control_for("index").render() == "public"

    def test_several_actions(self):
        policy = CachePolicyBuilder().cache_control("no_store", actions=["a", "b"]).build()
        assert policy.cache_control_for("a").render() == "no-store"
        assert policy.cache_control_for("b").render() == "no-store"
        assert policy.cache_control_for("c") is None

    def test_keep_existing_preserves_original(self):
        policy = (
            CachePolicyBuilder()
            .cache_control("public", actions="show")
            .cache_control("private", actions="show", keep_existing=True)
            .build()
        )
        assert policy.cache_control_for("show").render() == "public"

    def test_keep_existing_fills_missing_actions(self):
        policy = (
            CachePolicyBuilder()
            .cache_control("public", actions="show")
            .cache_control("private", actions=["show", "edit"], keep_existing=True)
            .build()
        )
        assert policy.cache_control_for("show").render() == "public"
        assert policy.cache_control_for("edit").render() == "private"

    def test_replace_by_default(self):
        policy = (
            CachePolicyBuilder()
            .cache_control("public", actions="show")
            .cache_control("private", actions="show")
            .build()
        )
        assert policy.cache_control_for("show").render() == "private"

    def test_empty_call_is_noop(self):
        policy = CachePolicyBuilder().cache_control("public").cache_control().build()
        assert policy.cache_control_for("index").render() == "public"

    def test_expires_merge_rules(self):
        policy = (
            CachePolicyBuilder()
            .expires(500, "public")
            .expires(60, actions="feed")
            .expires(10, actions="feed", keep_existing=True)
            .build()
        )
        assert policy.expires_for("index").amount == 500
        assert policy.expires_for("feed").amount == 60

    def test_locked_after_build(self):
        builder = CachePolicyBuilder()
        builder.build()
        with pytest.raises(PolicyLockedError):
            builder.cache_control("public")
        with pytest.raises(PolicyLockedError):
            builder.expires(60)


class TestCachePolicy:
    """Test the immutable policy."""

    def test_empty(self):
        policy = CachePolicy()
        assert not policy
        assert policy.cache_control_for("index") is None
        assert policy.expires_for("index") is None

    def test_frozen(self):
        policy = CachePolicyBuilder().cache_control("public").build()
        with pytest.raises(ValidationError):
            policy.cache_control = {}

    def test_registries_are_read_only(self):
        policy = CachePolicyBuilder().cache_control("public", max_age=60).expires(500).build()
        with pytest.raises(TypeError):
            policy.cache_control["*"] = DirectiveSet.of("no_store")
        with pytest.raises(TypeError):
            policy.expires["feed"] = ExpiresRule(amount=10)
        with pytest.raises(TypeError):
            policy.cache_control_for("index").values["max-age"] = 1
        assert policy.cache_control_for("index").render() == "public, max-age=60"

    def test_built_from_a_copy(self):
        registry = {"*": DirectiveSet.of("public")}
        policy = CachePolicy(cache_control=registry)
        registry["*"] = DirectiveSet.of("no_store")
        assert policy.cache_control_for("index").render() == "public"

    def test_apply_cache_control(self, freshness):
        policy = CachePolicyBuilder().cache_control("public", "must_revalidate", max_age=60).build()
        policy.apply(freshness, "index")
        assert freshness.response.headers["Cache-Control"] == "public, must-revalidate, max-age=60"
        assert "Expires" not in freshness.response.headers

    def test_apply_expires_after_cache_control(self, freshness):
        policy = (
            CachePolicyBuilder()
            .cache_control("private", max_age=5)
            .expires(500, "public", must_revalidate=True)
            .build()
        )
        policy.apply(freshness, "index")
        assert freshness.response.headers["Cache-Control"] == "public, must-revalidate, max-age=500"
        assert freshness.response.headers["Expires"] == "Mon, 08 Jun 2009 08:50:17 GMT"

    def test_apply_nothing_for_empty_policy(self, freshness):
        CachePolicy().apply(freshness, "index")
        assert freshness.response.headers == {}


class TestExpiresRule:
    def test_timedelta_amount(self, freshness):
        rule = ExpiresRule(amount=timedelta(seconds=30), directives=DirectiveSet.of("public"))
        rule.apply(freshness)
        assert freshness.response.headers["Cache-Control"] == "public, max-age=30"

    def test_absolute_amount(self, freshness):
        rule = ExpiresRule(amount=NOW + timedelta(minutes=1))
        rule.apply(freshness)
        assert freshness.response.headers["Cache-Control"] == "max-age=60"
