"""``.env`` file access shared by :mod:`courier.runtime.config.settings`."""

from __future__ import annotations

import re
import threading
from pathlib import Path

_ASSIGNMENT = re.compile(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=(.*)$")


def _unquote(raw: str) -> str:
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


class EnvFile:
    """A hand-editable ``KEY=VALUE`` file.

    Operators keep comments and ``export`` prefixes in the file so it can
    also be sourced by a shell.  :meth:`write` rewrites only the lines of
    the keys it is given and appends new keys at the end.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def read(self, key: str) -> str:
        return self.read_all().get(key, "")

    def read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        result: dict[str, str] = {}
        for line in self.path.read_text().splitlines():
            match = _ASSIGNMENT.match(line)
            if match and not line.lstrip().startswith("#"):
                result[match.group(1)] = _unquote(match.group(2))
        return result

    def write(self, **kwargs: str) -> None:
        """Set the given keys; an empty value removes the key."""
        with self._lock:
            pending = dict(kwargs)
            lines: list[str] = []
            if self.path.exists():
                for line in self.path.read_text().splitlines():
                    match = _ASSIGNMENT.match(line)
                    if not match or match.group(1) not in pending:
                        lines.append(line)
                        continue
                    value = pending.pop(match.group(1))
                    if value:
                        lines.append(f'{match.group(1)}="{value}"')
            lines.extend(f'{k}="{v}"' for k, v in pending.items() if v)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("\n".join(lines) + "\n")
