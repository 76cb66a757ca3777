"""Application settings -- reads from environment and ``.env`` file."""

from __future__ import annotations

import enum
import os
from pathlib import Path
from typing import ClassVar

from ..util.env_file import EnvFile
from ..util.singletons import register_singleton

DEFAULT_PREFIX = "."
DEFAULT_MODE = "private"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


class AuthFrontend(enum.Enum):
    terminal = "terminal"
    web = "web"
    auto = "auto"


def _split_ids(raw: str) -> frozenset[str]:
    return frozenset(
        part.strip().split("@", 1)[0] for part in raw.split(",") if part.strip()
    ) if raw else frozenset()


class Settings:

    _DATA_DIR_ENV: ClassVar[str] = "COURIER_DATA_DIR"

    def __init__(self) -> None:
        dotenv = os.getenv("DOTENV_PATH")
        if not dotenv:
            data_dir = os.getenv(self._DATA_DIR_ENV)
            if data_dir:
                dotenv = str(Path(data_dir) / ".env")
            else:
                dotenv = ".env"
        self.env = EnvFile(dotenv)
        self.reload()

    def reload(self) -> None:
        e = self._read

        self.prefix: str = e("PREFIX") or DEFAULT_PREFIX
        self.bot_mode: str = (e("BOT_MODE") or DEFAULT_MODE).strip().lower()

        self.owner_number: str = e("OWNER_NUMBER").split("@", 1)[0]
        self.bot_number: str = e("BOT_NUMBER").split("@", 1)[0]
        self.blocked_users: frozenset[str] = _split_ids(e("BLOCKED_USERS"))
        self.allowed_users: frozenset[str] = _split_ids(e("ALLOWED_USERS"))

        self.auth_type: str = e("AUTH_TYPE").strip().lower()
        self.pairing_number: str = e("PAIRING_NUMBER")
        raw_frontend = (e("AUTH_FRONTEND") or "auto").lower()
        try:
            self.auth_frontend: AuthFrontend = AuthFrontend(raw_frontend)
        except ValueError:
            self.auth_frontend = AuthFrontend.auto

        self.auth_path: Path = Path(e("AUTH_PATH")) if e("AUTH_PATH") else self.data_dir / "auth"
        raw_headless = e("HEADLESS")
        self.headless: bool = raw_headless.lower() in _TRUTHY if raw_headless else True
        self.transport: str = e("COURIER_TRANSPORT")

        self.method_selection_timeout: float = float(e("METHOD_SELECTION_TIMEOUT") or "60")
        self.terminal_input_timeout: float = float(e("TERMINAL_INPUT_TIMEOUT") or "0")
        self.phone_max_attempts: int = int(e("PHONE_MAX_ATTEMPTS") or "0")
        self.qr_wait_timeout: float = float(e("QR_WAIT_TIMEOUT") or "30")

        self.admin_port: int = int(e("ADMIN_PORT") or "8080")
        self.admin_secret: str = e("ADMIN_SECRET")

    @property
    def data_dir(self) -> Path:
        return Path(os.getenv(self._DATA_DIR_ENV, str(Path.home() / ".courier")))

    @property
    def owner_chat_id(self) -> str:
        """Chat id used for owner notifications, ``""`` when no owner is set."""
        return f"{self.owner_number}@c.us" if self.owner_number else ""

    @property
    def preferred_auth_method(self) -> str:
        """``"qr"``, ``"pairing"`` or ``""`` when the operator must choose."""
        if self.auth_type in ("pairing", "pairing-code"):
            return "pairing"
        if self.auth_type in ("qr", "qr-code"):
            return "qr"
        return ""

    def _read(self, key: str) -> str:
        return self.env.read(key) or os.getenv(key, "")

    def ensure_dirs(self) -> None:
        for d in (self.data_dir, self.auth_path):
            d.mkdir(parents=True, exist_ok=True)

    def write_env(self, **kwargs: str) -> None:
        self.env.write(**kwargs)
        self.reload()


cfg = Settings()


def _reset_cfg() -> None:
    global cfg
    cfg = Settings()


register_singleton(_reset_cfg)
