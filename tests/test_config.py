"""Tests for loading cache policies from configuration."""

import json
from datetime import datetime, timezone

import pytest

from fastapi_freshness.config import (
    ConfigFormat,
    detect_format,
    load_policy,
    load_policy_from_env,
    policy_from_mapping,
)
from fastapi_freshness.consts import POLICY_ENV_VAR
from fastapi_freshness.exceptions import PolicyConfigError

YAML_POLICY = """
cache_control:
  "*": [public, must_revalidate, {max_age: 60}]
  account: [private, no_cache]
expires:
  feed: [500, public]
"""

TOML_POLICY = """
[cache_control]
"*" = ["public", "must_revalidate"]
account = [{ max_age = 0, private = true }]

[expires]
feed = 500
"""


class TestPolicyFromMapping:
    """Test building policies from plain data."""

    def test_full_mapping(self):
        policy = policy_from_mapping(
            {
                "cache_control": {
                    "*": ["public", {"max_age": 60}],
                    "account": ["private", "no_cache"],
                },
                "expires": {"feed": [500, "public", {"must_revalidate": True}]},
            }
        )
        assert policy.cache_control_for("index").render() == "public, max-age=60"
        assert policy.cache_control_for("account").render() == "private, no-cache"
        rule = policy.expires_for("feed")
        assert rule.amount == 500
        assert rule.directives.render() == "public, must-revalidate"

    def test_empty(self):
        assert not policy_from_mapping(None)
        assert not policy_from_mapping({})

    def test_single_directive_entries(self):
        policy = policy_from_mapping({"cache_control": {"*": "no_store"}, "expires": {"*": 30}})
        assert policy.cache_control_for("x").render() == "no-store"
        assert policy.expires_for("x").amount == 30

    def test_absolute_expires(self):
        policy = policy_from_mapping({"expires": {"*": ["2030-01-01T00:00:00+00:00"]}})
        assert policy.expires_for("x").amount == datetime(2030, 1, 1, tzinfo=timezone.utc)

    def test_unknown_section(self):
        with pytest.raises(PolicyConfigError):
            policy_from_mapping({"etag": {}})

    def test_not_a_mapping(self):
        with pytest.raises(PolicyConfigError):
            policy_from_mapping(["public"])

    def test_bad_directive(self):
        with pytest.raises(PolicyConfigError):
            policy_from_mapping({"cache_control": {"*": ["public", 42]}})
        with pytest.raises(PolicyConfigError):
            policy_from_mapping({"cache_control": {"*": 42}})

    def test_bad_expires_amount(self):
        with pytest.raises(PolicyConfigError):
            policy_from_mapping({"expires": {"*": ["soon"]}})
        with pytest.raises(PolicyConfigError):
            policy_from_mapping({"expires": {"*": [True]}})
        with pytest.raises(PolicyConfigError):
            policy_from_mapping({"expires": {"*": []}})


class TestLoadPolicy:
    """Test loading policy files."""

    def test_detect_format(self, tmp_path):
        assert detect_format(tmp_path / "p.json") is ConfigFormat.JSON
        assert detect_format(tmp_path / "p.YML") is ConfigFormat.YAML
        assert detect_format(tmp_path / "p.toml") is ConfigFormat.TOML
        assert detect_format(tmp_path / "p.conf") is ConfigFormat.YAML

    def test_yaml(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text(YAML_POLICY)
        policy = load_policy(path)
        assert policy.cache_control_for("index").render() == "public, must-revalidate, max-age=60"
        assert policy.cache_control_for("account").render() == "private, no-cache"
        assert policy.expires_for("feed").amount == 500

    def test_json(self, tmp_path):
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({"cache_control": {"*": ["public", {"s_maxage": 120}]}}))
        policy = load_policy(str(path))
        assert policy.cache_control_for("index").render() == "public, s-maxage=120"

    def test_toml(self, tmp_path):
        path = tmp_path / "policy.toml"
        path.write_text(TOML_POLICY)
        policy = load_policy(path)
        assert policy.cache_control_for("index").render() == "public, must-revalidate"
        assert policy.cache_control_for("account").render() == "private, max-age=0"
        assert policy.expires_for("feed").amount == 500

    def test_explicit_format(self, tmp_path):
        path = tmp_path / "policy.conf"
        path.write_text(json.dumps({"cache_control": {"*": ["public"]}}))
        policy = load_policy(path, format=ConfigFormat.JSON)
        assert policy.cache_control_for("index").render() == "public"

    def test_missing_file(self, tmp_path):
        with pytest.raises(PolicyConfigError):
            load_policy(tmp_path / "missing.yaml")

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "policy.json"
        path.write_text("{not json")
        with pytest.raises(PolicyConfigError):
            load_policy(path)


class TestLoadPolicyFromEnv:
    """Test loading the policy file named by the environment."""

    def test_unset(self, monkeypatch):
        monkeypatch.delenv(POLICY_ENV_VAR, raising=False)
        assert not load_policy_from_env()

    def test_missing_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv(POLICY_ENV_VAR, str(tmp_path / "missing.yaml"))
        assert not load_policy_from_env()

    def test_loads_file(self, monkeypatch, tmp_path):
        path = tmp_path / "policy.yml"
        path.write_text(YAML_POLICY)
        monkeypatch.setenv(POLICY_ENV_VAR, str(path))
        policy = load_policy_from_env()
        assert policy.cache_control_for("account").render() == "private, no-cache"

    def test_custom_variable(self, monkeypatch, tmp_path):
        path = tmp_path / "policy.yml"
        path.write_text(YAML_POLICY)
        monkeypatch.setenv("MY_POLICY", str(path))
        assert load_policy_from_env("MY_POLICY").expires_for("feed").amount == 500
