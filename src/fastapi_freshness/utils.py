from inspect import Parameter
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from fastapi import Request, Response

_KIND_ORDER = {
    Parameter.POSITIONAL_ONLY: 0,
    Parameter.POSITIONAL_OR_KEYWORD: 1,
    Parameter.VAR_POSITIONAL: 3,
    Parameter.KEYWORD_ONLY: 4,
    Parameter.VAR_KEYWORD: 5,
}


def merge_dedup_seq_params(
    *seqs_of_params: Iterable[Parameter],
) -> Iterator[Parameter]:
    seen = set()
    for seq_of_params in seqs_of_params:
        for param in seq_of_params:
            if param.name not in seen:
                seen.add(param.name)
                yield param


def _param_rank(param: Parameter) -> int:
    rank = _KIND_ORDER[param.kind]
    if param.kind == Parameter.POSITIONAL_OR_KEYWORD and param.default is not Parameter.empty:
        # optional positional-or-keyword parameters follow the required ones
        rank = 2
    return rank


def rearrange_params(params: Iterable[Parameter]) -> Sequence[Parameter]:
    """Order parameters so that they form a valid `Signature`.

    Order: POSITIONAL_ONLY, required POSITIONAL_OR_KEYWORD, optional
    POSITIONAL_OR_KEYWORD, VAR_POSITIONAL, KEYWORD_ONLY, VAR_KEYWORD. The
    relative order within each group is kept.
    """
    return sorted(params, key=_param_rank)


def _annotation_matches(annotation: Any, cls: type) -> bool:
    if annotation is Parameter.empty:
        return False
    if isinstance(annotation, str):
        return annotation == cls.__name__
    return isinstance(annotation, type) and issubclass(annotation, cls)


def find_param_annotated_with(
    params: Mapping[str, Parameter], cls: type
) -> Optional[str]:
    for name, param in params.items():
        if _annotation_matches(param.annotation, cls):
            return name
    return None


def get_route_name(request: Request) -> Optional[str]:
    route = request.scope.get("route")
    return getattr(route, "name", None) if route else None


def get_route_status_code(request: Request, default: int = 200) -> int:
    route = request.scope.get("route")
    status_code = getattr(route, "status_code", None) if route else None
    return status_code or default


def copy_missing_headers(source: Response, target: Response) -> Response:
    """Copy headers set on `source` that `target` does not already carry."""
    for key, value in source.headers.items():
        if key in ("content-length", "content-type"):
            continue
        if key not in target.headers:
            target.headers[key] = value
    return target


def read_only(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    """Read-only snapshot of `mapping`; later changes to `mapping` do not show through."""
    return MappingProxyType(dict(mapping))
