# troubleshooter/services/assessment_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from troubleshooter.assessment.payloads import StepPayload
from troubleshooter.assessment.steps import (
    DASHBOARD_PATH,
    Step,
    last_step,
    step_at,
)
from troubleshooter.assessment.state import RecordLoad, UserRecord
from troubleshooter.errors import RecordFetchError
from troubleshooter.services.user_store import UserStore


logger = logging.getLogger(__name__)


class AssessmentService:
    """
    Service that coordinates:
      - reading user records for the route guard
      - the step completion transition (one merge write per submission)
      - shaping stored step data for the step loader
    """

    def __init__(self, store: Optional[UserStore] = None):
        self.store = store or UserStore()

    def load_record(self, user_id: str) -> RecordLoad:
        """
        Fetch a user's record for routing.

        A store failure routes like a missing record but is logged as an
        error, so an outage never looks like a wave of new users.
        """
        try:
            record = self.store.get(user_id)
        except RecordFetchError as e:
            logger.error(
                "Record fetch failed for user %s, routing as absent: %r",
                user_id,
                e.cause,
            )
            return RecordLoad(record=None, fetch_failed=True)

        if record is None:
            logger.info("No record yet for user %s", user_id)
        return RecordLoad(record=record)

    def complete_step(
        self,
        user_id: str,
        step: Step,
        payload: StepPayload,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Persist a valid submission and mark the step complete.

        Writes the payload fields, the step timestamp and the completion
        flag in a single merge. The last step also closes the assessment.

        Returns the path the user should go to next.
        """
        stamp = (now or datetime.now(timezone.utc)).isoformat()

        fields: Dict[str, Any] = payload.to_fields()
        fields[step.timestamp_field] = stamp
        fields[step.completion_flag] = True

        if step == last_step():
            fields["assessmentCompleted"] = True
            fields["assessmentCompletedDate"] = stamp

        self.store.merge(user_id, fields)
        logger.info("User %s completed step %s", user_id, step.id.value)

        return next_path_after(step)


def next_path_after(step: Step) -> str:
    if step == last_step():
        return DASHBOARD_PATH
    return step_at(step.order + 1).path


def step_view(record: Optional[UserRecord], step: Step) -> Dict[str, Any]:
    """
    Stored data for one step, used to prefill the step's form.
    """
    record = record or {}
    return {
        "step": step.id.value,
        "path": step.path,
        "order": step.order,
        "completed": bool(record.get(step.completion_flag)),
        "completed_at": record.get(step.timestamp_field),
        "data": {
            name: record[name] for name in step.payload_fields if name in record
        },
    }
