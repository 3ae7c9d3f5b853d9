from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Protocol

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """Bearer token plus the account snapshot returned with it."""

    token: str
    account: dict[str, Any] = field(default_factory=dict)

    @property
    def role(self) -> str | None:
        return self.account.get("role")


class SessionStore(Protocol):
    def load(self) -> Session | None: ...

    def save(self, session: Session) -> None: ...

    def clear(self) -> None: ...


class InMemorySessionStore:
    def __init__(self, session: Session | None = None):
        self._session = session

    def load(self) -> Session | None:
        return self._session

    def save(self, session: Session) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None


class FileSessionStore:
    """
    Keeps the session in a small JSON file so CLI invocations can share it.
    A corrupt or unreadable file is treated as "signed out".
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Session | None:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            log.warning("session file unreadable, ignoring path=%s", self.path)
            return None
        if not isinstance(raw, dict) or not raw.get("token"):
            return None
        return Session(token=raw["token"], account=raw.get("account") or {})

    def save(self, session: Session) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(asdict(session)), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
