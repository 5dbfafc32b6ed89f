import logging
from functools import wraps
from inspect import Parameter, Signature, iscoroutinefunction, signature
from typing import Annotated, Any, Callable, Optional, Union

from fastapi import Depends, Request, Response
from typing_extensions import Doc

from fastapi_freshness.consts import (
    FRESHNESS_REQUEST_PARAM,
    FRESHNESS_RESPONSE_PARAM,
    IS_FRESHNESS_ENDPOINT_KEY,
)
from fastapi_freshness.dates import utcnow
from fastapi_freshness.exceptions import Halt
from fastapi_freshness.freshness import Freshness
from fastapi_freshness.policy import CachePolicy
from fastapi_freshness.typing import Clock, EndPointFunc
from fastapi_freshness.utils import (
    copy_missing_headers,
    find_param_annotated_with,
    get_route_name,
    get_route_status_code,
    merge_dedup_seq_params,
    rearrange_params,
)

logger = logging.getLogger(__name__)


class FreshnessShield:
    """Endpoint decorator that hands the endpoint a ready `Freshness`.

    The decorated endpoint may declare a parameter annotated `Freshness`;
    it receives an evaluator whose response already carries the policy
    defaults for the endpoint's action. A `Halt` raised from it is turned
    into the `304`/`412` response, carrying every header collected so far.
    """

    __slots__ = ("policy", "action", "name", "clock", "__weakref__")

    def __init__(
        self,
        policy: Optional[CachePolicy] = None,
        *,
        action: Optional[str] = None,
        name: Optional[str] = None,
        clock: Clock = utcnow,
    ):
        assert policy is None or isinstance(policy, CachePolicy), (
            "`policy` must be an instance of `CachePolicy`"
        )
        self.policy = policy if policy is not None else CachePolicy()
        self.action = action
        self.name = name or "freshness"
        self.clock = clock

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, action={self.action!r})"

    def evaluator(
        self, request: Request, response: Response, action: Optional[str] = None
    ) -> Freshness:
        """Build the evaluator for one request and apply the policy defaults."""
        freshness = Freshness(
            request,
            response,
            default_status=get_route_status_code(request),
            clock=self.clock,
        )
        self.policy.apply(freshness, action or self.action or get_route_name(request))
        return freshness

    def __call__(self, endpoint: EndPointFunc) -> EndPointFunc:
        assert callable(endpoint), "`endpoint` must be callable"

        endpoint_params = signature(endpoint).parameters
        endpoint_is_async = iscoroutinefunction(endpoint)
        freshness_param = find_param_annotated_with(endpoint_params, Freshness)
        request_param = find_param_annotated_with(endpoint_params, Request)
        response_param = find_param_annotated_with(endpoint_params, Response)
        action = self.action or endpoint.__name__

        hidden_params = []
        if request_param is None:
            hidden_params.append(
                Parameter(FRESHNESS_REQUEST_PARAM, Parameter.KEYWORD_ONLY, annotation=Request)
            )
        if response_param is None:
            hidden_params.append(
                Parameter(FRESHNESS_RESPONSE_PARAM, Parameter.KEYWORD_ONLY, annotation=Response)
            )

        @wraps(endpoint)
        async def wrapper(*args, **kwargs):
            if request_param is None:
                request = kwargs.pop(FRESHNESS_REQUEST_PARAM)
            else:
                request = kwargs[request_param]
            if response_param is None:
                response = kwargs.pop(FRESHNESS_RESPONSE_PARAM)
            else:
                response = kwargs[response_param]

            freshness = self.evaluator(request, response, action=action)
            if freshness_param is not None:
                kwargs[freshness_param] = freshness

            try:
                if endpoint_is_async:
                    result = await endpoint(*args, **kwargs)
                else:
                    result = endpoint(*args, **kwargs)
            except Halt as halt:
                return halt.to_response()

            # FastAPI drops the headers of the injected response when the
            # endpoint returns its own
            if isinstance(result, Response) and result is not response:
                copy_missing_headers(response, result)
            return result

        wrapper.__signature__ = Signature(
            rearrange_params(
                merge_dedup_seq_params(
                    (
                        param
                        for param in endpoint_params.values()
                        if param.name != freshness_param
                    ),
                    hidden_params,
                )
            )
        )
        setattr(wrapper, IS_FRESHNESS_ENDPOINT_KEY, True)
        logger.debug(f"{self!r} applied to endpoint `{endpoint.__name__}`")
        return wrapper


def freshness_shield(
    endpoint: Optional[Union[EndPointFunc, CachePolicy]] = None,
    /,
    policy: Optional[CachePolicy] = None,
    *,
    action: Optional[str] = None,
    name: Optional[str] = None,
    clock: Clock = utcnow,
) -> Union[EndPointFunc, Callable[[EndPointFunc], EndPointFunc]]:
    """Decorate an endpoint with a `FreshnessShield`.

    Usable bare (`@freshness_shield`) or configured
    (`@freshness_shield(policy, action="show")`).
    """
    if isinstance(endpoint, CachePolicy):
        endpoint, policy = None, endpoint
    freshness = FreshnessShield(policy, action=action, name=name, clock=clock)
    if endpoint is None:
        return freshness
    return freshness(endpoint)


def FreshnessDepends(  # noqa: N802
    policy: Annotated[
        Optional[CachePolicy],
        Doc(
            """
            Per-action defaults applied before the endpoint runs.
            """
        ),
    ] = None,
    *,
    action: Annotated[
        Optional[str],
        Doc(
            """
            Action looked up in `policy`; defaults to the matched route's name.
            """
        ),
    ] = None,
    clock: Clock = utcnow,
) -> Any:
    """Dependency providing a `Freshness` for the current request.

    Headers are collected on FastAPI's injected `Response`, so they are
    lost if the endpoint returns a `Response` of its own; use
    `FreshnessShield` for such endpoints. Register `halt_handler` to keep
    repeated headers such as `Set-Cookie` on a `304`/`412`.
    """
    freshness = FreshnessShield(policy, action=action, clock=clock)

    def resolve_freshness(request: Request, response: Response) -> Freshness:
        return freshness.evaluator(request, response)

    return Depends(resolve_freshness)
