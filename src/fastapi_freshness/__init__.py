"""FastAPI Freshness - HTTP caching headers and conditional GET for FastAPI.

FastAPI Freshness lets endpoints describe how fresh their responses are
(`Cache-Control`, `Expires`, `Last-Modified`, `ETag`) and answers
conditional requests (`If-None-Match`, `If-Match`, `If-Modified-Since`,
`If-Unmodified-Since`) with `304 Not Modified` or `412 Precondition
Failed` before the rest of the endpoint runs.

Key Components:
    - Freshness: Per-request helpers `cache_control`, `expires`, `last_modified` and `etag`
    - CachePolicy / CachePolicyBuilder: Per-action defaults fixed at application setup
    - FreshnessShield / freshness_shield: Endpoint decorator wiring it all into FastAPI
    - FreshnessDepends: The same evaluator as a FastAPI dependency

Usage:
    ```python
    from fastapi_freshness import CachePolicyBuilder, Freshness, freshness_shield

    policy = CachePolicyBuilder().cache_control("public", max_age=60).build()

    @app.get("/articles/{slug}")
    @freshness_shield(policy)
    def show(slug: str, freshness: Freshness):
        article = load(slug)
        freshness.etag(article.digest)
        return article
    ```
"""

from fastapi_freshness.conditional import etag_matches, evaluate_etag, evaluate_last_modified
from fastapi_freshness.config import (
    ConfigFormat,
    load_policy,
    load_policy_from_env,
    policy_from_mapping,
)
from fastapi_freshness.dates import http_date, parse_http_date, time_for
from fastapi_freshness.directives import CacheDirective, DirectiveSet, render_cache_control
from fastapi_freshness.exceptions import (
    ConditionalOutcome,
    FreshnessError,
    Halt,
    InvalidETagKind,
    PolicyConfigError,
    PolicyLockedError,
    halt_handler,
)
from fastapi_freshness.freshness import ETagKind, Freshness, render_etag
from fastapi_freshness.policy import CachePolicy, CachePolicyBuilder, ExpiresRule
from fastapi_freshness.shield import FreshnessDepends, FreshnessShield, freshness_shield

__version__ = "0.1.0"

__all__ = [
    "Freshness",
    "ETagKind",
    "render_etag",
    "CacheDirective",
    "DirectiveSet",
    "render_cache_control",
    "CachePolicy",
    "CachePolicyBuilder",
    "ExpiresRule",
    "FreshnessShield",
    "freshness_shield",
    "FreshnessDepends",
    "ConditionalOutcome",
    "Halt",
    "halt_handler",
    "FreshnessError",
    "InvalidETagKind",
    "PolicyConfigError",
    "PolicyLockedError",
    "etag_matches",
    "evaluate_etag",
    "evaluate_last_modified",
    "http_date",
    "parse_http_date",
    "time_for",
    "ConfigFormat",
    "load_policy",
    "load_policy_from_env",
    "policy_from_mapping",
]
