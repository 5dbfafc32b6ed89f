"""Evaluation of conditional-request preconditions.

These functions only decide; they never touch a response. `Freshness`
sets the headers and turns a halting outcome into a `Halt`.

Before touching this code, please double check RFC 2616 14.24 to 14.28.
"""

import logging
import re
from datetime import datetime
from typing import Mapping, Optional

from starlette.datastructures import Headers

from fastapi_freshness.consts import SAFE_METHODS
from fastapi_freshness.dates import epoch_seconds, parse_http_date
from fastapi_freshness.exceptions import ConditionalOutcome

logger = logging.getLogger(__name__)

_ETAG_LIST_SEPARATOR = re.compile(r"\s*,\s*")


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def is_safe_method(method: str) -> bool:
    return method.upper() in SAFE_METHODS


def etag_matches(header: Optional[str], etag: str, new_resource: bool = False) -> bool:
    """Check whether an `If-None-Match`/`If-Match` value matches `etag`.

    `*` stands for any current representation, so it never matches a
    resource that is about to be created.
    """
    if header is None:
        return False
    header = header.strip()
    if header == "*":
        return not new_resource
    return etag in _ETAG_LIST_SEPARATOR.split(header)


def _as_headers(headers: Mapping[str, str]) -> Headers:
    if isinstance(headers, Headers):
        return headers
    return Headers(headers=dict(headers))


def _header_date(headers: Headers, name: str) -> Optional[datetime]:
    raw = headers.get(name)
    if raw is None:
        return None
    parsed = parse_http_date(raw)
    if parsed is None:
        logger.debug(f"Ignoring malformed {name} header: {raw!r}")
    return parsed


def evaluate_last_modified(
    request_headers: Mapping[str, str],
    status_code: int,
    last_modified: datetime,
) -> ConditionalOutcome:
    """Decide the outcome of the date-based preconditions of a request.

    Header names are matched case-insensitively. Comparisons are made on
    whole seconds since the epoch.
    """
    request_headers = _as_headers(request_headers)
    if request_headers.get("if-none-match") is not None:
        # ETag validation takes precedence
        return ConditionalOutcome.CONTINUE

    resource_seconds = epoch_seconds(last_modified)

    if status_code == 200:
        since = _header_date(request_headers, "if-modified-since")
        if since is not None and epoch_seconds(since) >= resource_seconds:
            return ConditionalOutcome.NOT_MODIFIED

    if is_success(status_code) or status_code == 412:
        since = _header_date(request_headers, "if-unmodified-since")
        if since is not None and epoch_seconds(since) < resource_seconds:
            return ConditionalOutcome.PRECONDITION_FAILED

    return ConditionalOutcome.CONTINUE


def evaluate_etag(
    request_headers: Mapping[str, str],
    method: str,
    status_code: int,
    etag: str,
    new_resource: bool,
) -> ConditionalOutcome:
    """Decide the outcome of the entity-tag preconditions of a request.

    `etag` is the rendered header value, quotes and weak prefix included.
    Header names are matched case-insensitively.
    """
    request_headers = _as_headers(request_headers)
    if not (is_success(status_code) or status_code == 304):
        return ConditionalOutcome.CONTINUE

    if_none_match = request_headers.get("if-none-match")
    if if_none_match is not None:
        if etag_matches(if_none_match, etag, new_resource):
            if is_safe_method(method):
                return ConditionalOutcome.NOT_MODIFIED
            return ConditionalOutcome.PRECONDITION_FAILED
        return ConditionalOutcome.CONTINUE

    if_match = request_headers.get("if-match")
    if if_match is not None and not etag_matches(if_match, etag, new_resource):
        return ConditionalOutcome.PRECONDITION_FAILED

    return ConditionalOutcome.CONTINUE
