"""Per-request freshness negotiation.

`Freshness` wraps one request and the response being built for it, and
offers the four helpers an endpoint needs to describe how fresh its
answer is:

```python
@app.get("/articles/{slug}")
@freshness_shield
def show(slug: str, freshness: Freshness):
    article = load(slug)
    freshness.cache_control("public", must_revalidate=True, max_age=60)
    freshness.last_modified(article.updated_at)
    freshness.etag(article.digest)
    return article
```

`last_modified` and `etag` raise `Halt` when the request's preconditions
already settle the response, so nothing after them runs.
"""

import logging
from datetime import timedelta
from enum import Enum
from typing import Any, Optional, Union

from fastapi import Request, Response

from fastapi_freshness.conditional import (
    etag_matches,
    evaluate_etag,
    evaluate_last_modified,
)
from fastapi_freshness.dates import http_date, time_for, utcnow
from fastapi_freshness.directives import Directive, DirectiveSet
from fastapi_freshness.exceptions import ConditionalOutcome, Halt, InvalidETagKind
from fastapi_freshness.typing import Amount, Clock, TimeLike

logger = logging.getLogger(__name__)


class ETagKind(str, Enum):
    """Validator strength of an entity tag."""
    STRONG = "strong"
    WEAK = "weak"


def render_etag(value: Any, kind: Union[ETagKind, str] = ETagKind.STRONG) -> str:
    """Render an ETag header value: `"value"` or `W/"value"`."""
    try:
        kind = ETagKind(kind)
    except ValueError:
        raise InvalidETagKind(f"`strong` or `weak` expected, got {kind!r}") from None
    rendered = f'"{value}"'
    if kind is ETagKind.WEAK:
        rendered = f"W/{rendered}"
    return rendered


class Freshness:
    """Freshness helpers bound to one request/response pair."""

    __slots__ = ("request", "response", "default_status", "clock")

    def __init__(
        self,
        request: Request,
        response: Response,
        *,
        default_status: int = 200,
        clock: Clock = utcnow,
    ):
        self.request = request
        self.response = response
        self.default_status = default_status
        self.clock = clock

    def __repr__(self) -> str:
        return f"{type(self).__name__}(method={self.request.method}, status={self.status_code})"

    @property
    def status_code(self) -> int:
        """Status of the response so far, falling back to the route default."""
        status_code = getattr(self.response, "status_code", None)
        return status_code if status_code is not None else self.default_status

    def _halt_unless_continue(self, outcome: ConditionalOutcome) -> ConditionalOutcome:
        if outcome.halts:
            logger.debug(
                f"Halting {self.request.method} request with {outcome.status_code}"
            )
            raise Halt(outcome, headers=self.response.headers)
        return outcome

    def cache_control(self, *directives: Directive, **values: Any) -> Optional[str]:
        """Set the Cache-Control header.

        Any number of boolean directives (`public`, `private`, `no_cache`,
        `no_store`, `must_revalidate`, `proxy_revalidate`) may be passed along
        with value directives as keywords (`max_age`, `min_stale`, `s_maxage`).

            freshness.cache_control("public", "must_revalidate", max_age=60)
            => Cache-Control: public, must-revalidate, max-age=60

        Every call replaces the previous header. Nothing is set when no
        directive survives.
        """
        return self.apply_directives(DirectiveSet.of(*directives, **values))

    def apply_directives(self, directives: DirectiveSet) -> Optional[str]:
        rendered = directives.render()
        if not rendered:
            return None
        self.response.headers["Cache-Control"] = rendered
        return rendered

    def expires(self, amount: Amount, *directives: Directive, **values: Any) -> str:
        """Set the Expires header and fold the matching max-age into Cache-Control.

        `amount` is either a number of seconds from now (an `int` or a
        `timedelta`) or the point in time at which the response goes stale.

            freshness.expires(500, "public", "must_revalidate")
            => Cache-Control: public, must-revalidate, max-age=500
            => Expires: Mon, 08 Jun 2009 08:50:17 GMT
        """
        return self.apply_expires(amount, DirectiveSet.of(*directives, **values))

    def apply_expires(self, amount: Amount, directives: DirectiveSet) -> str:
        now = self.clock()
        if isinstance(amount, bool):
            raise TypeError("`amount` must be seconds or a point in time, not a bool")
        if isinstance(amount, timedelta):
            amount = int(amount.total_seconds())
        if isinstance(amount, int):
            expires_at = now + timedelta(seconds=amount)
            max_age = amount
        else:
            expires_at = time_for(amount)
            max_age = (expires_at - now).total_seconds()

        self.apply_directives(directives.with_values(max_age=max_age))

        rendered = http_date(expires_at)
        self.response.headers["Expires"] = rendered
        return rendered

    def last_modified(self, time: Optional[TimeLike]) -> ConditionalOutcome:
        """Set the Last-Modified header and halt if a date precondition decides the request.

        An `If-Modified-Since` at or after `time` halts with `304 Not
        Modified`; an `If-Unmodified-Since` before `time` halts with `412
        Precondition Failed`. Malformed request dates are ignored.
        """
        if time is None:
            return ConditionalOutcome.CONTINUE
        time = time_for(time)
        self.response.headers["Last-Modified"] = http_date(time)
        return self._halt_unless_continue(
            evaluate_last_modified(self.request.headers, self.status_code, time)
        )

    def etag(
        self,
        value: Any,
        kind: Union[ETagKind, str] = ETagKind.STRONG,
        *,
        new_resource: Optional[bool] = None,
    ) -> ConditionalOutcome:
        """Set the ETag header and halt if an entity-tag precondition decides the request.

        A matching `If-None-Match` halts with `304` for safe methods and
        `412` otherwise; a non-matching `If-Match` halts with `412`.
        `new_resource` defaults to whether the request is a POST, so that
        `If-None-Match: *` does not match a resource about to be created.
        """
        rendered = render_etag(value, kind)
        if new_resource is None:
            new_resource = self.request.method.upper() == "POST"
        self.response.headers["ETag"] = rendered
        return self._halt_unless_continue(
            evaluate_etag(
                self.request.headers,
                self.request.method,
                self.status_code,
                rendered,
                new_resource,
            )
        )

    def etag_matches(self, header: Optional[str], new_resource: Optional[bool] = None) -> bool:
        """Check `header` against the ETag already set on the response."""
        if new_resource is None:
            new_resource = self.request.method.upper() == "POST"
        etag = self.response.headers.get("ETag")
        if etag is None:
            return False
        return etag_matches(header, etag, new_resource)
