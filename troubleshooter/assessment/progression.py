# troubleshooter/assessment/progression.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from troubleshooter.assessment.state import (
    ALLOW,
    ProgressionDecision,
    RedirectTo,
    UserRecord,
)
from troubleshooter.assessment.steps import (
    DASHBOARD_PATH,
    LOGIN_PATH,
    STEPS,
    completion_flag,
    first_step,
    index_of,
    is_assessment_path,
    is_public_path,
    step_at,
)


@dataclass
class ProgressSummary:
    completed_steps: List[str] = field(default_factory=list)
    total_steps: int = len(STEPS)
    next_path: str = STEPS[0].path
    assessment_completed: bool = False

    @property
    def percent_complete(self) -> int:
        return round(100 * len(self.completed_steps) / self.total_steps)


# ------------------------------------------------------------------
# Record queries
# ------------------------------------------------------------------

def _flag_set(record: Optional[UserRecord], field_name: str) -> bool:
    if not record:
        return False
    return bool(record.get(field_name))


def first_incomplete_step(record: Optional[UserRecord]) -> str:
    """
    Where this user resumes: the path of the first step whose completion
    flag is not set, or the dashboard once all eight are set.

    Later flags are ignored once an earlier one is missing, so a record
    with steps completed out of order still resumes at the earliest gap.
    """
    for step in STEPS:
        if not _flag_set(record, completion_flag(step)):
            return step.path
    return DASHBOARD_PATH


def is_assessment_complete(record: Optional[UserRecord]) -> bool:
    """
    True when the terminal `assessmentCompleted` flag is set, or when every
    step flag is set even though the terminal flag never got written.
    """
    if _flag_set(record, "assessmentCompleted"):
        return True
    return first_incomplete_step(record) == DASHBOARD_PATH


def progress_summary(record: Optional[UserRecord]) -> ProgressSummary:
    completed = [
        step.id.value for step in STEPS if _flag_set(record, completion_flag(step))
    ]
    return ProgressSummary(
        completed_steps=completed,
        next_path=first_incomplete_step(record),
        assessment_completed=is_assessment_complete(record),
    )


# ------------------------------------------------------------------
# Evaluator
# ------------------------------------------------------------------

def evaluate(
    requested_path: str,
    record: Optional[UserRecord],
    is_authenticated: bool,
) -> ProgressionDecision:
    """
    Decide whether a user may see `requested_path`.

    Rules, first match wins:
      1. anonymous users only get public paths, everything else goes to /login
      2. no record yet: only the first step is reachable in the flow
      3. assessmentCompleted: the flow is closed, the rest is open
      4. step i needs step i-1 done, otherwise resume at the first gap
      5. other protected paths need a finished assessment
      6. allow
    """
    public = is_public_path(requested_path)
    in_flow = is_assessment_path(requested_path)

    if not is_authenticated:
        return ALLOW if public else RedirectTo(LOGIN_PATH)

    if record is None and in_flow and index_of(requested_path) > 0:
        return RedirectTo(first_step().path)

    if _flag_set(record, "assessmentCompleted"):
        return RedirectTo(DASHBOARD_PATH) if in_flow else ALLOW

    if in_flow:
        index = index_of(requested_path)
        if index > 0:
            previous = step_at(index - 1)
            if not _flag_set(record, completion_flag(previous)):
                return RedirectTo(first_incomplete_step(record))
        return ALLOW

    if not public and not is_assessment_complete(record):
        return RedirectTo(first_incomplete_step(record))

    return ALLOW
