"""Pytest configuration for test isolation.

Settings are read from ``LEDGERKIT_*`` environment variables and the CLI also
honors ``LEDGER_FILE``. To keep tests hermetic, an autouse fixture removes
those variables for every test and resets the package logger so handlers
installed by one CLI invocation never leak into the next test.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

# Make sure the workspace `packages/` dir is on sys.path so `ledgerkit` is importable
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR)] if p not in sys.path]

from ledgerkit.logging_setup import reset_logging  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("LEDGERKIT_") or name == "LEDGER_FILE":
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _isolate_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def write_ledger(tmp_path: Path):
    """Write ``name`` under ``tmp_path`` (creating parents) and return its path."""

    def _write(name: str, text: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
