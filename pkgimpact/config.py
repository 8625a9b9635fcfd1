"""
Run configuration for pkg-impact.

Defaults can be overridden with PKGIMPACT_* environment variables; command
line flags override both.
"""

import os
from dataclasses import dataclass, replace

from pkgimpact.rpm_query import DEFAULT_EXCLUDE

ENV_PREFIX = "PKGIMPACT_"


@dataclass(frozen=True)
class AnalysisConfig:
    """Settings shared by graph construction and analysis"""

    workers: int = 1
    query_timeout: float = 30.0
    query_retries: int = 0
    exclude_names: tuple[str, ...] = DEFAULT_EXCLUDE
    rpm_binary: str = "rpm"

    def __post_init__(self):
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.query_timeout <= 0:
            raise ValueError(f"query timeout must be positive, got {self.query_timeout}")
        if self.query_retries < 0:
            raise ValueError(f"query retries cannot be negative, got {self.query_retries}")

    @classmethod
    def from_env(cls, environ=None) -> "AnalysisConfig":
        """
        Read configuration from the environment.

        Recognized variables: PKGIMPACT_WORKERS, PKGIMPACT_QUERY_TIMEOUT,
        PKGIMPACT_QUERY_RETRIES, PKGIMPACT_EXCLUDE (comma-separated names)
        and PKGIMPACT_RPM.

        Raises:
            ValueError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        return cls(
            workers=_env_int(env, "WORKERS", defaults.workers),
            query_timeout=_env_float(env, "QUERY_TIMEOUT", defaults.query_timeout),
            query_retries=_env_int(env, "QUERY_RETRIES", defaults.query_retries),
            exclude_names=_env_list(env, "EXCLUDE", defaults.exclude_names),
            rpm_binary=env.get(ENV_PREFIX + "RPM", defaults.rpm_binary) or defaults.rpm_binary,
        )

    def with_overrides(self, **overrides) -> "AnalysisConfig":
        """Return a copy with every non-None override applied"""
        return replace(self, **{key: value for key, value in overrides.items() if value is not None})


def _env_int(env, key: str, default: int) -> int:
    raw = env.get(ENV_PREFIX + key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{key} must be an integer, got {raw!r}") from None


def _env_float(env, key: str, default: float) -> float:
    raw = env.get(ENV_PREFIX + key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{key} must be a number, got {raw!r}") from None


def _env_list(env, key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    if ENV_PREFIX + key not in env:
        return default
    return tuple(item.strip() for item in env[ENV_PREFIX + key].split(",") if item.strip())
