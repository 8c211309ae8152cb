"""Runtime configuration read from the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace

from .exceptions import ConfigError

DEFAULT_VERSION = "1.24.10"
DEFAULT_MAX_STORE = 256 << 20

ENV_VERSION = "FZ_VERSION"
ENV_MAX_STORE = "PUREFITZ_MAX_STORE"
ENV_LIBRARY = "PUREFITZ_LIBRARY"


@dataclass(frozen=True)
class Config:
    """Settings shared by the dispatch table and every opened document.

    Attributes:
        version: ABI version string passed to ``fz_new_context_imp``. Only a
            starting point: the loader tries nearby patch releases when the
            installed library reports a different one.
        max_store: Upper bound in bytes for the native resource store.
        library: Explicit shared library path or name, ``None`` for the
            platform default.
    """

    version: str = DEFAULT_VERSION
    max_store: int = DEFAULT_MAX_STORE
    library: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Config":
        env = os.environ if environ is None else environ
        config = cls()
        if env.get(ENV_VERSION):
            config = replace(config, version=env[ENV_VERSION])
        if env.get(ENV_MAX_STORE):
            config = replace(config, max_store=_parse_size(env[ENV_MAX_STORE]))
        if env.get(ENV_LIBRARY):
            config = replace(config, library=env[ENV_LIBRARY])
        return config

    def __post_init__(self) -> None:
        if self.max_store < 0:
            raise ConfigError(f"max_store must be >= 0, got {self.max_store}")
        parts = self.version.split(".")
        if len(parts) < 2 or not all(p.isdigit() for p in parts):
            raise ConfigError(f"malformed version string {self.version!r}")


def _parse_size(value: str) -> int:
    try:
        return int(value, 0)
    except ValueError as exc:
        raise ConfigError(f"{ENV_MAX_STORE} must be an integer, got {value!r}") from exc
