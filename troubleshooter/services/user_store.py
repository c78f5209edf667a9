# troubleshooter/services/user_store.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from troubleshooter.assessment.payloads import normalize_record
from troubleshooter.assessment.steps import COMPLETION_FLAGS
from troubleshooter.db import SessionLocal, engine, Base
from troubleshooter.errors import RecordFetchError, RecordWriteError
from troubleshooter.models import UserDocument, SubscriptionOwner


logger = logging.getLogger(__name__)

# Flags that only ever go from absent to True
MONOTONIC_FLAGS = COMPLETION_FLAGS | {"assessmentCompleted"}


@contextmanager
def db_session(factory: Callable[[], Session] = SessionLocal):
    db = factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """
    Create all tables. Call this once at startup.
    """
    Base.metadata.create_all(bind=engine)


class UserStore:
    """
    Per-user document store.

      - get(user_id): the normalized record, or None if the user has none
      - merge(user_id, fields): top-level partial update, last write wins

    A document is created by the first merge for a user.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            with db_session(self.session_factory) as session:
                doc = session.get(UserDocument, user_id)
                raw = dict(doc.data or {}) if doc is not None else None
        except SQLAlchemyError as e:
            raise RecordFetchError(user_id, e) from e

        return normalize_record(raw)

    def merge(self, user_id: str, fields: Mapping[str, Any]) -> None:
        for name in MONOTONIC_FLAGS.intersection(fields):
            if fields[name] is not True:
                raise ValueError(f"{name} can only be set to True")

        try:
            with db_session(self.session_factory) as session:
                doc = session.get(UserDocument, user_id)
                if doc is None:
                    doc = UserDocument(id=user_id, data=dict(fields))
                    session.add(doc)
                else:
                    # Reassign so the JSON column is flagged dirty
                    doc.data = {**(doc.data or {}), **fields}
        except SQLAlchemyError as e:
            raise RecordWriteError(user_id, e) from e

        logger.debug("Merged fields %s into record for user %s", sorted(fields), user_id)

    # ------------------------------------------------------------------
    # Subscription ownership
    # ------------------------------------------------------------------

    def assign_subscription(self, subscription_id: str, user_id: str) -> None:
        try:
            with db_session(self.session_factory) as session:
                owner = session.get(SubscriptionOwner, subscription_id)
                if owner is None:
                    session.add(
                        SubscriptionOwner(
                            subscription_id=subscription_id, user_id=user_id
                        )
                    )
                else:
                    owner.user_id = user_id
        except SQLAlchemyError as e:
            raise RecordWriteError(user_id, e) from e

    def owner_of_subscription(self, subscription_id: str) -> Optional[str]:
        try:
            with db_session(self.session_factory) as session:
                owner = session.get(SubscriptionOwner, subscription_id)
                return owner.user_id if owner is not None else None
        except SQLAlchemyError as e:
            raise RecordFetchError(subscription_id, e) from e
