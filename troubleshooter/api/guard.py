# troubleshooter/api/guard.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request

from troubleshooter.assessment.progression import evaluate
from troubleshooter.assessment.state import (
    ProgressionDecision,
    RecordLoad,
    RedirectTo,
    SessionContext,
    UserRecord,
)
from troubleshooter.auth import AuthProvider, HeaderAuthProvider
from troubleshooter.errors import AuthUnresolved, ProgressionRedirect
from troubleshooter.billing import PaymentGateway
from troubleshooter.services import AssessmentService, QuickDashReminders


logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = "We couldn't load your progress right now. Taking you back to your assessment."

_auth_provider = HeaderAuthProvider()
_service = AssessmentService()
_gateway = PaymentGateway()
_reminders = QuickDashReminders(_service.store)


def get_auth_provider() -> AuthProvider:
    return _auth_provider


def get_assessment_service() -> AssessmentService:
    return _service


def get_payment_gateway() -> PaymentGateway:
    return _gateway


def get_reminders() -> QuickDashReminders:
    return _reminders


def get_session_context(
    request: Request,
    provider: AuthProvider = Depends(get_auth_provider),
) -> SessionContext:
    return provider.resolve(request)


def canonical_path(path: str) -> str:
    if len(path) > 1:
        return path.rstrip("/") or "/"
    return path


def ensure_resolved(session: SessionContext) -> None:
    if not session.resolved:
        raise AuthUnresolved("Auth state not resolved yet")


def require_user(session: SessionContext = Depends(get_session_context)) -> str:
    """
    Signed-in user id for API routes that act on the caller's own record.
    Unresolved sessions wait (503), anonymous callers get a 401.
    """
    ensure_resolved(session)
    if not session.is_authenticated:
        raise HTTPException(status_code=401, detail="Sign in to continue.")
    return session.user_id


@dataclass
class GuardedRequest:
    session: SessionContext
    record: Optional[UserRecord]
    fetch_failed: bool = False

    @property
    def user_id(self) -> Optional[str]:
        return self.session.user_id


def decide(
    path: str,
    session: SessionContext,
    service: AssessmentService,
) -> tuple[ProgressionDecision, RecordLoad]:
    """
    Load the caller's record and evaluate `path` for them.

    Raises AuthUnresolved while the session is still settling, so no
    decision (in particular no /login redirect) is made on partial state.
    """
    ensure_resolved(session)

    if session.is_authenticated:
        load = service.load_record(session.user_id)
    else:
        load = RecordLoad(record=None)

    decision = evaluate(canonical_path(path), load.record, session.is_authenticated)
    return decision, load


def route_guard(
    request: Request,
    session: SessionContext = Depends(get_session_context),
    service: AssessmentService = Depends(get_assessment_service),
) -> GuardedRequest:
    """
    The one guard every page route runs before its handler.
    A redirect decision short-circuits the request.
    """
    path = canonical_path(request.url.path)
    decision, load = decide(path, session, service)

    if isinstance(decision, RedirectTo):
        logger.debug("Redirecting %s from %s to %s", session.user_id, path, decision.location)
        message = FETCH_FAILED_MESSAGE if load.fetch_failed else None
        raise ProgressionRedirect(decision.location, message=message)

    return GuardedRequest(
        session=session,
        record=load.record,
        fetch_failed=load.fetch_failed,
    )
