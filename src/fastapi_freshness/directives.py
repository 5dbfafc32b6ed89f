"""Cache-Control directives and their rendering.

A directive is either a boolean token (`public`, `no-cache`) or a value
directive (`max-age=60`). Both may be given with underscores in place of
hyphens, so keyword arguments read naturally:

```python
render_cache_control("public", CacheDirective.MUST_REVALIDATE, max_age=60)
# -> "public, must-revalidate, max-age=60"
```

See RFC 2616 / 14.9 for the standard directives.
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from fastapi_freshness.utils import read_only


class CacheDirective(str, Enum):
    """Cache-Control directive names."""
    PUBLIC = "public"
    PRIVATE = "private"
    NO_CACHE = "no-cache"
    NO_STORE = "no-store"
    NO_TRANSFORM = "no-transform"
    MUST_REVALIDATE = "must-revalidate"
    PROXY_REVALIDATE = "proxy-revalidate"
    IMMUTABLE = "immutable"
    MAX_AGE = "max-age"
    S_MAXAGE = "s-maxage"
    MIN_STALE = "min-stale"
    MAX_STALE = "max-stale"


Directive = Union[CacheDirective, str]


def directive_name(directive: Directive) -> str:
    """Wire name of a directive: enum value, or the string with `_` turned into `-`."""
    if isinstance(directive, CacheDirective):
        return directive.value
    return str(directive).replace("_", "-")


class DirectiveSet(BaseModel):
    """An ordered, de-duplicated set of Cache-Control directives.

    Instances are immutable, `values` included.
    """

    model_config = ConfigDict(frozen=True)

    tokens: Tuple[str, ...] = ()
    values: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("values", mode="after")
    @classmethod
    def _freeze_values(cls, values: Dict[str, Any]) -> Mapping[str, Any]:
        return read_only(values)

    @field_serializer("values")
    def _serialize_values(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        return dict(values)

    @classmethod
    def of(cls, *directives: Directive, **values: Any) -> "DirectiveSet":
        """Build a set from boolean directives and value directives.

        A value of `True` turns the keyword into a boolean directive, `False`
        or `None` leaves it out entirely.
        """
        tokens = []
        for directive in directives:
            name = directive_name(directive)
            if name not in tokens:
                tokens.append(name)

        rendered_values: Dict[str, Any] = {}
        for key, value in values.items():
            if value is False or value is None:
                continue
            name = directive_name(key)
            if value is True:
                if name not in tokens:
                    tokens.append(name)
            else:
                rendered_values[name] = value

        # a value directive replaces a boolean one of the same name
        tokens = [token for token in tokens if token not in rendered_values]
        return cls(tokens=tuple(tokens), values=rendered_values)

    def with_values(self, **values: Any) -> "DirectiveSet":
        """Copy of this set with `values` merged over the existing value directives."""
        merged = {key.replace("-", "_"): value for key, value in self.values.items()}
        merged.update(values)
        return DirectiveSet.of(*self.tokens, **merged)

    def render(self) -> str:
        parts = list(self.tokens)
        for key, value in self.values.items():
            if key == CacheDirective.MAX_AGE.value:
                value = int(value)
            parts.append(f"{key}={value}")
        return ", ".join(parts)

    def __bool__(self) -> bool:
        return bool(self.tokens or self.values)

    def __str__(self) -> str:
        return self.render()


def render_cache_control(*directives: Directive, **values: Any) -> Optional[str]:
    """Render a Cache-Control value, or `None` when there is nothing to render."""
    return DirectiveSet.of(*directives, **values).render() or None
