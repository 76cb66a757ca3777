"""Shared pytest fixtures for courier.runtime tests."""

from __future__ import annotations

from pathlib import Path

import pytest

_CONFIG_KEYS = (
    "PREFIX", "BOT_MODE", "OWNER_NUMBER", "BOT_NUMBER", "BLOCKED_USERS", "ALLOWED_USERS",
    "AUTH_TYPE", "PAIRING_NUMBER", "AUTH_FRONTEND", "AUTH_PATH", "HEADLESS",
    "COURIER_TRANSPORT", "METHOD_SELECTION_TIMEOUT", "TERMINAL_INPUT_TIMEOUT",
    "PHONE_MAX_ATTEMPTS", "QR_WAIT_TIMEOUT", "ADMIN_PORT", "ADMIN_SECRET",
)


@pytest.fixture(autouse=True)
def _isolate_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    for key in _CONFIG_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("COURIER_DATA_DIR", str(data_dir))
    monkeypatch.setenv("DOTENV_PATH", str(tmp_path / ".env"))
    return data_dir


@pytest.fixture(autouse=True)
def _reset_singletons(_isolate_data_dir: Path):
    from courier.runtime.util.singletons import reset_all_singletons

    reset_all_singletons()
    yield
    reset_all_singletons()


@pytest.fixture()
def data_dir(_isolate_data_dir: Path) -> Path:
    return _isolate_data_dir
