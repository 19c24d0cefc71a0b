"""Runtime settings for ``ledgerkit``.

Settings are a strict, frozen Pydantic model. :func:`load_settings` builds one
from environment variables:

- ``LEDGERKIT_MAX_INCLUDE_DEPTH``: longest permitted include chain (default 64)
- ``LEDGERKIT_LOG_LEVEL``: level name or number for the CLI log handler
- ``LEDGERKIT_STRICT``: fail on undeclared accounts, payees, commodities, tags

The CLI loads a local ``.env`` with ``python-dotenv`` before calling
:func:`load_settings`, so values there apply unless already set.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_MAX_INCLUDE_DEPTH = 64

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class LedgerSettings(BaseModel):
    model_config = ConfigDict(strict=True, extra="forbid", frozen=True)

    max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH
    log_level: str | None = None
    strict: bool = False

    @field_validator("max_include_depth")
    @classmethod
    def _positive_depth(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_include_depth must be >= 1")
        return v


# ---- Small module-level parsers ---------------------------------------------


def _env_int(env: Mapping[str, str], name: str) -> int | None:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _env_bool(env: Mapping[str, str], name: str) -> bool | None:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return None
    v = raw.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (1/0, true/false, yes/no), got {raw!r}")


def load_settings(env: Mapping[str, str] | None = None) -> LedgerSettings:
    """Build :class:`LedgerSettings` from ``env`` (defaults to ``os.environ``)."""

    source = os.environ if env is None else env
    values: dict[str, object] = {}

    depth = _env_int(source, "LEDGERKIT_MAX_INCLUDE_DEPTH")
    if depth is not None:
        values["max_include_depth"] = depth

    level = source.get("LEDGERKIT_LOG_LEVEL")
    if level and level.strip():
        values["log_level"] = level.strip()

    strict = _env_bool(source, "LEDGERKIT_STRICT")
    if strict is not None:
        values["strict"] = strict

    return LedgerSettings(**values)


__all__ = ["DEFAULT_MAX_INCLUDE_DEPTH", "LedgerSettings", "load_settings"]
