"""Outcomes and exceptions raised while negotiating response freshness.

`Halt` is not an error: it is the control transfer used to abandon the
rest of an endpoint once a conditional request has been answered. It
subclasses `HTTPException` so FastAPI's stock exception handler turns it
into the final `304`/`412` response, headers included. `FreshnessShield`
and `halt_handler` build that response themselves to keep repeated headers.
"""

from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers


class ConditionalOutcome(Enum):
    """Result of evaluating the preconditions of a request."""

    CONTINUE = None
    NOT_MODIFIED = status.HTTP_304_NOT_MODIFIED
    PRECONDITION_FAILED = status.HTTP_412_PRECONDITION_FAILED

    @property
    def halts(self) -> bool:
        return self is not ConditionalOutcome.CONTINUE

    @property
    def status_code(self) -> Optional[int]:
        return self.value


class FreshnessError(Exception):
    """Base class for errors raised by fastapi-freshness."""


class InvalidETagKind(FreshnessError, ValueError):
    """An ETag kind other than `strong` or `weak` was requested."""


class PolicyConfigError(FreshnessError, ValueError):
    """A cache policy definition could not be understood."""


class PolicyLockedError(FreshnessError, RuntimeError):
    """A `CachePolicyBuilder` was modified after its policy was built."""


# headers describing the original entity that must not leak onto a halt response
_ENTITY_HEADERS = frozenset({"content-length", "content-type"})

RawHeaders = List[Tuple[bytes, bytes]]


class Halt(HTTPException):
    """Short-circuits request handling with a `304` or `412` response.

    `headers` keeps one value per name, which is all FastAPI's stock
    handler can send. `to_response` and `halt_handler` keep every value,
    so repeated headers such as `Set-Cookie` survive the halt.
    """

    def __init__(
        self,
        outcome: ConditionalOutcome,
        headers: Optional[Mapping[str, str]] = None,
    ):
        assert outcome.halts, "`Halt` requires a halting outcome"
        self.outcome = outcome
        self.raw_headers = _halt_raw_headers(headers)
        super().__init__(
            status_code=outcome.status_code,
            headers=_halt_headers(headers),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(outcome={self.outcome.name}, headers={self.headers!r})"

    def to_response(self) -> Response:
        """The final response, shaped like FastAPI's stock one."""
        if self.outcome is ConditionalOutcome.NOT_MODIFIED:
            response = Response(status_code=self.status_code)
        else:
            response = JSONResponse({"detail": self.detail}, status_code=self.status_code)
        response.raw_headers.extend(self.raw_headers)
        return response


async def halt_handler(request: Request, exc: Halt) -> Response:
    """Exception handler for `Halt`, for apps using `FreshnessDepends`.

        app.add_exception_handler(Halt, halt_handler)
    """
    return exc.to_response()


def _halt_headers(headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    if not headers:
        return {}
    return {
        key: value
        for key, value in headers.items()
        if key.lower() not in _ENTITY_HEADERS
    }


def _halt_raw_headers(headers: Optional[Mapping[str, str]]) -> RawHeaders:
    if not headers:
        return []
    if isinstance(headers, Headers):
        raw = headers.raw
    else:
        raw = [
            (key.lower().encode("latin-1"), value.encode("latin-1"))
            for key, value in headers.items()
        ]
    return [
        (key, value)
        for key, value in raw
        if key.decode("latin-1") not in _ENTITY_HEADERS
    ]
