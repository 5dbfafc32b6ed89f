WILDCARD_ACTION = "*"
"""Action key whose policy entry applies to every action without its own entry"""

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})
"""Request methods for which a matching `If-None-Match` yields `304` rather than `412`"""

HTTP_DATE_FORMAT = "%a, %d %b %Y %H:%M:%S GMT"
"""RFC 1123 rendering used for `Expires` and `Last-Modified`"""

FRESHNESS_REQUEST_PARAM = "__freshness_request__"
"""Name of the hidden `Request` parameter added to a shielded endpoint's signature"""

FRESHNESS_RESPONSE_PARAM = "__freshness_response__"
"""Name of the hidden `Response` parameter added to a shielded endpoint's signature"""

IS_FRESHNESS_ENDPOINT_KEY = "__freshness_shielded__"
"""Callable with this attribute evaluating to `True` already carries a freshness shield"""

POLICY_ENV_VAR = "FASTAPI_FRESHNESS_POLICY"
"""Environment variable naming a policy file for `load_policy_from_env`"""
