# troubleshooter/assessment/state.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union


UserRecord = Dict[str, Any]


@dataclass(frozen=True)
class SessionContext:
    """
    Explicit per-request auth state handed to the route guard.

    `resolved` is False while the auth provider is still settling; nothing
    may be decided about the user until it flips to True.
    """

    user_id: Optional[str] = None
    resolved: bool = True

    @property
    def is_authenticated(self) -> bool:
        return self.resolved and self.user_id is not None


@dataclass(frozen=True)
class Allow:
    pass


@dataclass(frozen=True)
class RedirectTo:
    location: str


ProgressionDecision = Union[Allow, RedirectTo]

ALLOW = Allow()


@dataclass(frozen=True)
class RecordLoad:
    """
    Result of reading a user record at the store boundary.

    `fetch_failed` separates a backend outage from a user who simply has
    no record yet; both route as an absent record.
    """

    record: Optional[UserRecord]
    fetch_failed: bool = False
