"""Per-action freshness defaults.

A `CachePolicy` is assembled once while the application is set up and is
read-only afterwards, so a single instance can serve every request:

```python
policy = (
    CachePolicyBuilder()
    .cache_control("public", max_age=60)
    .cache_control("private", "no_cache", actions=["account"])
    .expires(500, "public", actions=["feed"])
    .build()
)
```

Entries registered for a specific action take precedence over the ones
registered for the wildcard action `"*"`.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from fastapi_freshness.consts import WILDCARD_ACTION
from fastapi_freshness.directives import Directive, DirectiveSet
from fastapi_freshness.exceptions import PolicyLockedError
from fastapi_freshness.utils import read_only

TYPE_CHECKING = False

if TYPE_CHECKING:
    from fastapi_freshness.freshness import Freshness

logger = logging.getLogger(__name__)

Actions = Union[str, Iterable[str]]


class ExpiresRule(BaseModel):
    """Arguments of a deferred `Freshness.expires` call."""

    model_config = ConfigDict(frozen=True)

    amount: Union[int, timedelta, datetime, date]
    directives: DirectiveSet = Field(default_factory=DirectiveSet)

    def apply(self, freshness: "Freshness") -> str:
        return freshness.apply_expires(self.amount, self.directives)


class CachePolicy(BaseModel):
    """Immutable mapping from action to default freshness directives."""

    model_config = ConfigDict(frozen=True)

    cache_control: Dict[str, DirectiveSet] = Field(default_factory=dict)
    expires: Dict[str, ExpiresRule] = Field(default_factory=dict)

    @field_validator("cache_control", "expires", mode="after")
    @classmethod
    def _freeze_registry(cls, registry: Dict[str, Any]) -> Mapping[str, Any]:
        return read_only(registry)

    @field_serializer("cache_control", "expires")
    def _serialize_registry(self, registry: Mapping[str, Any]) -> Dict[str, Any]:
        return dict(registry)

    def cache_control_for(self, action: Optional[str] = None) -> Optional[DirectiveSet]:
        if action is not None and action in self.cache_control:
            return self.cache_control[action]
        return self.cache_control.get(WILDCARD_ACTION)

    def expires_for(self, action: Optional[str] = None) -> Optional[ExpiresRule]:
        if action is not None and action in self.expires:
            return self.expires[action]
        return self.expires.get(WILDCARD_ACTION)

    def apply(self, freshness: "Freshness", action: Optional[str] = None) -> None:
        """Set the default headers for `action` on `freshness`'s response.

        Expires is applied last, so its max-age wins over the Cache-Control
        entry.
        """
        directives = self.cache_control_for(action)
        if directives:
            freshness.apply_directives(directives)
        rule = self.expires_for(action)
        if rule is not None:
            rule.apply(freshness)
        if directives or rule is not None:
            logger.debug(f"Applied cache policy for action `{action}`")

    def __bool__(self) -> bool:
        return bool(self.cache_control or self.expires)


def _normalize_actions(actions: Actions) -> tuple:
    if isinstance(actions, str):
        return (actions,)
    actions = tuple(actions)
    return actions or (WILDCARD_ACTION,)


class CachePolicyBuilder:
    """Collects per-action defaults during application setup."""

    __slots__ = ("_cache_control", "_expires", "_locked")

    def __init__(self):
        self._cache_control: Dict[str, DirectiveSet] = {}
        self._expires: Dict[str, ExpiresRule] = {}
        self._locked = False

    def _ensure_unlocked(self):
        if self._locked:
            raise PolicyLockedError(
                "Cache policy is already built; configure it before `build()`"
            )

    @staticmethod
    def _register(registry: Dict[str, Any], entry: Any, actions: Actions, keep_existing: bool):
        for action in _normalize_actions(actions):
            if keep_existing and action in registry:
                continue
            registry[action] = entry

    def cache_control(
        self,
        *directives: Directive,
        actions: Actions = WILDCARD_ACTION,
        keep_existing: bool = False,
        **values: Any,
    ) -> "CachePolicyBuilder":
        """Register default Cache-Control directives for `actions`.

        With `keep_existing`, actions that already have an entry keep it.
        """
        self._ensure_unlocked()
        if not directives and not values:
            return self
        self._register(
            self._cache_control,
            DirectiveSet.of(*directives, **values),
            actions,
            keep_existing,
        )
        return self

    def expires(
        self,
        amount: Union[int, timedelta, datetime, date],
        *directives: Directive,
        actions: Actions = WILDCARD_ACTION,
        keep_existing: bool = False,
        **values: Any,
    ) -> "CachePolicyBuilder":
        """Register a default Expires for `actions`, same merge rules as `cache_control`."""
        self._ensure_unlocked()
        rule = ExpiresRule(amount=amount, directives=DirectiveSet.of(*directives, **values))
        self._register(self._expires, rule, actions, keep_existing)
        return self

    def build(self) -> CachePolicy:
        self._locked = True
        return CachePolicy(
            cache_control=dict(self._cache_control),
            expires=dict(self._expires),
        )
