# troubleshooter/services/reminders.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from troubleshooter.assessment.state import UserRecord
from troubleshooter.errors import RecordFetchError
from troubleshooter.services.user_store import UserStore


logger = logging.getLogger(__name__)

QUICK_DASH_INTERVAL = timedelta(days=7)


class ReminderDisplay(str, Enum):
    NONE = "none"
    POPUP = "popup"  # first reminder of the day
    BAR = "bar"  # already reminded today, still outstanding


@dataclass
class QuickDashStatus:
    due: bool
    next_due_at: Optional[datetime]
    display: ReminderDisplay = ReminderDisplay.NONE


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str):
        try:
            moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


class QuickDashReminders:
    """
    Weekly QuickDASH re-assessment reminders.

    The clock starts when the exercise program is initialized
    (`exerciseProgramInitializedDate`); the first reassessment is due one
    interval later, and every completed one pushes the next due date
    forward by the same interval. Dates are stored as ISO strings.
    """

    def __init__(self, store: Optional[UserStore] = None):
        self.store = store or UserStore()

    def _load(self, user_id: str) -> Optional[UserRecord]:
        try:
            return self.store.get(user_id)
        except RecordFetchError as e:
            logger.error("Could not check QuickDASH status for %s: %r", user_id, e.cause)
            return None

    def _next_due(self, user_id: str, record: UserRecord) -> Optional[datetime]:
        started = _as_datetime(record.get("exerciseProgramInitializedDate"))
        if started is None:
            return None

        due = _as_datetime(record.get("nextQuickDashDueDate"))
        if due is None:
            due = started + QUICK_DASH_INTERVAL
            self.store.merge(user_id, {"nextQuickDashDueDate": due.isoformat()})
        return due

    def is_due(self, user_id: str, now: Optional[datetime] = None) -> bool:
        """
        True once the next due date has passed. Users without a record or
        without a started program are never due, and neither is anyone
        whose record cannot be read.
        """
        return self.status(user_id, now, record_shown=False).due

    def status(
        self,
        user_id: str,
        now: Optional[datetime] = None,
        record_shown: bool = True,
    ) -> QuickDashStatus:
        """
        Due state plus how to surface it: a popup the first time on a
        given day, a bar for the rest of that day. Showing the popup is
        recorded unless `record_shown` is False.
        """
        now = now or datetime.now(timezone.utc)
        record = self._load(user_id)
        if not record:
            return QuickDashStatus(due=False, next_due_at=None)

        due_at = self._next_due(user_id, record)
        if due_at is None or now < due_at:
            return QuickDashStatus(due=False, next_due_at=due_at)

        last_shown = _as_datetime(record.get("lastQuickDashReminderDate"))
        if last_shown is not None and last_shown.date() >= now.date():
            return QuickDashStatus(due=True, next_due_at=due_at, display=ReminderDisplay.BAR)

        if record_shown:
            self.mark_reminder_shown(user_id, now)
        return QuickDashStatus(due=True, next_due_at=due_at, display=ReminderDisplay.POPUP)

    def mark_reminder_shown(self, user_id: str, now: Optional[datetime] = None) -> datetime:
        shown_at = now or datetime.now(timezone.utc)
        self.store.merge(user_id, {"lastQuickDashReminderDate": shown_at.isoformat()})
        return shown_at

    def schedule_next(self, user_id: str, now: Optional[datetime] = None) -> datetime:
        due_at = (now or datetime.now(timezone.utc)) + QUICK_DASH_INTERVAL
        self.store.merge(user_id, {"nextQuickDashDueDate": due_at.isoformat()})
        logger.info("Next QuickDASH for user %s due %s", user_id, due_at.date())
        return due_at
