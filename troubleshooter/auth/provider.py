# troubleshooter/auth/provider.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from starlette.requests import Request

from troubleshooter.assessment.state import SessionContext
from troubleshooter.config import get_settings


class AuthProvider(ABC):
    """
    Simple abstraction over the hosted identity service.
    """

    @abstractmethod
    def resolve(self, request: Request) -> SessionContext:
        """
        returns: the session for this request; `resolved=False` while the
        provider cannot yet say who the caller is
        """
        ...


class HeaderAuthProvider(AuthProvider):
    """
    Trusts the identity header written by the upstream auth gateway.

    The gateway strips any client-supplied copy of the header and sets it
    only after verifying the user's token, so an absent or empty header
    means an anonymous caller.
    """

    def __init__(self, header_name: Optional[str] = None):
        settings = get_settings()
        self.header_name = header_name or settings.identity_header

    def resolve(self, request: Request) -> SessionContext:
        user_id = (request.headers.get(self.header_name) or "").strip()
        return SessionContext(user_id=user_id or None, resolved=True)
