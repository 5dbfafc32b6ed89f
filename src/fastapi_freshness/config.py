"""Loading cache policies from configuration files.

A policy file maps actions to the argument lists of `cache_control` and
`expires`, value directives given as a trailing mapping:

```yaml
cache_control:
  "*": [public, must_revalidate, {max_age: 60}]
  account: [private, no_cache]
expires:
  feed: [500, public]
```
"""

import json
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import toml
import yaml

from fastapi_freshness.consts import POLICY_ENV_VAR
from fastapi_freshness.dates import time_for
from fastapi_freshness.exceptions import PolicyConfigError
from fastapi_freshness.policy import CachePolicy, CachePolicyBuilder

logger = logging.getLogger(__name__)


class ConfigFormat(str, Enum):
    """Policy file format enumeration."""
    JSON = "json"
    YAML = "yaml"
    TOML = "toml"


_SUFFIX_FORMATS = {
    ".json": ConfigFormat.JSON,
    ".yaml": ConfigFormat.YAML,
    ".yml": ConfigFormat.YAML,
    ".toml": ConfigFormat.TOML,
}


def detect_format(path: Path) -> ConfigFormat:
    """Detect file format from extension, defaulting to YAML."""
    return _SUFFIX_FORMATS.get(path.suffix.lower(), ConfigFormat.YAML)


def _split_arguments(action: str, arguments: Any) -> Tuple[List[str], Dict[str, Any]]:
    if isinstance(arguments, (str, Mapping)):
        arguments = [arguments]
    if not isinstance(arguments, list):
        raise PolicyConfigError(
            f"Entry for action `{action}` must be a list, got {type(arguments).__name__}"
        )
    directives: List[str] = []
    values: Dict[str, Any] = {}
    for argument in arguments:
        if isinstance(argument, str):
            directives.append(argument)
        elif isinstance(argument, Mapping):
            values.update(argument)
        else:
            raise PolicyConfigError(
                f"Unexpected directive {argument!r} for action `{action}`"
            )
    return directives, values


def _expires_amount(action: str, amount: Any):
    if isinstance(amount, bool):
        raise PolicyConfigError(f"Invalid expires amount for action `{action}`: {amount!r}")
    if isinstance(amount, int):
        return amount
    try:
        return time_for(amount)
    except (TypeError, ValueError) as e:
        raise PolicyConfigError(
            f"Invalid expires amount for action `{action}`: {amount!r}"
        ) from e


def policy_from_mapping(data: Optional[Mapping[str, Any]]) -> CachePolicy:
    """Build a `CachePolicy` from its plain-data description."""
    builder = CachePolicyBuilder()
    if not data:
        return builder.build()
    if not isinstance(data, Mapping):
        raise PolicyConfigError(f"Policy must be a mapping, got {type(data).__name__}")

    unknown = set(data) - {"cache_control", "expires"}
    if unknown:
        raise PolicyConfigError(f"Unknown policy sections: {sorted(unknown)}")

    for action, arguments in (data.get("cache_control") or {}).items():
        directives, values = _split_arguments(action, arguments)
        builder.cache_control(*directives, actions=action, **values)

    for action, arguments in (data.get("expires") or {}).items():
        if not isinstance(arguments, list):
            arguments = [arguments]
        if not arguments:
            raise PolicyConfigError(f"Expires entry for action `{action}` needs an amount")
        amount, *rest = arguments
        directives, values = _split_arguments(action, rest)
        builder.expires(_expires_amount(action, amount), *directives, actions=action, **values)

    return builder.build()


def load_policy(path: Union[str, Path], format: Optional[ConfigFormat] = None) -> CachePolicy:
    """Load a `CachePolicy` from a JSON, YAML or TOML file."""
    path = Path(path)
    format = ConfigFormat(format) if format is not None else detect_format(path)

    try:
        content = path.read_text(encoding="utf-8")
        if format == ConfigFormat.JSON:
            data = json.loads(content)
        elif format == ConfigFormat.YAML:
            data = yaml.safe_load(content) or {}
        else:
            data = toml.loads(content)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Failed to load cache policy from {path}: {e}")
        raise PolicyConfigError(f"Cannot load cache policy from {path}: {e}") from e

    logger.debug(f"Loaded cache policy from {path}")
    return policy_from_mapping(data)


def load_policy_from_env(env_var: str = POLICY_ENV_VAR) -> CachePolicy:
    """Load the policy file named by `env_var`; an empty policy when there is none."""
    path = os.environ.get(env_var)
    if not path:
        return CachePolicy()
    if not Path(path).exists():
        logger.warning(f"Cache policy file not found: {path}")
        return CachePolicy()
    return load_policy(path)
