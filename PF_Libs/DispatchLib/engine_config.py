"""
Engine configuration.

FilterEngineConfig follows the same dataclass pattern as the node configs:
plain fields with defaults from constants.py, `to_dict` / `from_dict` with
unknown keys ignored, plus `from_env` for deployment overrides.
"""

import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

from PF_Libs.constants import (
    DEFAULT_CACHE_CAPACITY,
    DEFAULT_PROGRESS_INTERVAL_ROWS,
    ENV_CACHE_CAPACITY,
    ENV_ENABLE_CACHING,
    ENV_MAX_WORKERS,
)
from PF_Libs.errors import InvalidParameterError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class FilterEngineConfig:
    """
    Configuration for a filter session.

    Attributes:
        cache_capacity: Maximum number of cached filtered results (>= 1)
        enable_caching: Disable to always recompute
        max_workers: Scheduler thread count (None = executor default)
        progress_interval_rows: Rows between progress reports (>= 1)
    """
    cache_capacity: int = DEFAULT_CACHE_CAPACITY
    enable_caching: bool = True
    max_workers: Optional[int] = None
    progress_interval_rows: int = DEFAULT_PROGRESS_INTERVAL_ROWS

    def __post_init__(self):
        self.validate()

    def validate(self) -> "FilterEngineConfig":
        if isinstance(self.cache_capacity, bool) or not isinstance(self.cache_capacity, int):
            raise InvalidParameterError(f"cache_capacity must be an integer, got {self.cache_capacity!r}")
        if self.cache_capacity < 1:
            raise InvalidParameterError(f"cache_capacity must be >= 1, got {self.cache_capacity}")
        if not isinstance(self.enable_caching, bool):
            raise InvalidParameterError(f"enable_caching must be a bool, got {self.enable_caching!r}")
        if self.max_workers is not None:
            if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int) or self.max_workers < 1:
                raise InvalidParameterError(f"max_workers must be a positive integer, got {self.max_workers!r}")
        if (isinstance(self.progress_interval_rows, bool)
                or not isinstance(self.progress_interval_rows, int)
                or self.progress_interval_rows < 1):
            raise InvalidParameterError(
                f"progress_interval_rows must be a positive integer, got {self.progress_interval_rows!r}"
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FilterEngineConfig":
        """Create from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "FilterEngineConfig":
        """
        Build a config from environment variables.

        Reads PF_CACHE_CAPACITY, PF_ENABLE_CACHING and PF_MAX_WORKERS; unset
        variables keep their defaults.

        Raises:
            InvalidParameterError: If a variable cannot be parsed
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        if environ.get(ENV_CACHE_CAPACITY):
            values["cache_capacity"] = _parse_int(ENV_CACHE_CAPACITY, environ[ENV_CACHE_CAPACITY])
        if environ.get(ENV_MAX_WORKERS):
            values["max_workers"] = _parse_int(ENV_MAX_WORKERS, environ[ENV_MAX_WORKERS])
        if environ.get(ENV_ENABLE_CACHING):
            flag = environ[ENV_ENABLE_CACHING].strip().lower()
            if flag in _TRUE_VALUES:
                values["enable_caching"] = True
            elif flag in _FALSE_VALUES:
                values["enable_caching"] = False
            else:
                raise InvalidParameterError(
                    f"{ENV_ENABLE_CACHING} must be a boolean flag, got {environ[ENV_ENABLE_CACHING]!r}"
                )

        return cls(**values)


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise InvalidParameterError(f"{name} must be an integer, got {raw!r}") from None
