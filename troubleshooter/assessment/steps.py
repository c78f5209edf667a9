# troubleshooter/assessment/steps.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from troubleshooter.errors import UnknownPathError


DASHBOARD_PATH = "/dashboard"
LOGIN_PATH = "/login"

# Routes reachable without authentication
PUBLIC_PATHS = frozenset({"/", "/login", "/signup", "/terms", "/privacy"})


class StepId(str, Enum):
    USER_DETAILS = "user-details"
    MEDICAL_SCREEN = "medical-screen"
    OUTCOME_MEASURE = "outcome-measure"
    PAIN_REGION = "pain-region"
    NERVE_SYMPTOMS = "nerve-symptoms"
    MOBILITY_TEST = "mobility-test"
    ENDURANCE_TEST = "endurance-test"
    NERVE_MOBILITY_TEST = "nerve-mobility-test"


@dataclass(frozen=True)
class Step:
    id: StepId
    path: str
    completion_flag: str
    timestamp_field: str
    payload_fields: Tuple[str, ...]
    order: int


# Order is significant. Reordering is a data migration, not a code change.
STEPS: Tuple[Step, ...] = (
    Step(
        id=StepId.USER_DETAILS,
        path="/user-details",
        completion_flag="userDetailsCompleted",
        timestamp_field="userDetailsDate",
        payload_fields=("name", "age", "sex", "painDuration"),
        order=0,
    ),
    Step(
        id=StepId.MEDICAL_SCREEN,
        path="/medical-screen",
        completion_flag="medicalScreeningCompleted",
        timestamp_field="medicalScreeningDate",
        payload_fields=("medicalScreening",),
        order=1,
    ),
    Step(
        id=StepId.OUTCOME_MEASURE,
        path="/outcome-measure",
        completion_flag="outcomeMeasureCompleted",
        timestamp_field="outcomeMeasureDate",
        payload_fields=("outcomeMeasureData", "latestQuickDashScore"),
        order=2,
    ),
    Step(
        id=StepId.PAIN_REGION,
        path="/pain-region",
        completion_flag="painRegionsCompleted",
        timestamp_field="painRegionDate",
        payload_fields=("painRegions",),
        order=3,
    ),
    Step(
        id=StepId.NERVE_SYMPTOMS,
        path="/nerve-symptoms",
        completion_flag="nerveSymptomsCompleted",
        timestamp_field="nerveSymptomsDate",
        payload_fields=("nerveSymptoms",),
        order=4,
    ),
    Step(
        id=StepId.MOBILITY_TEST,
        path="/mobility-test",
        completion_flag="mobilityTestCompleted",
        timestamp_field="mobilityTestDate",
        payload_fields=("mobilityTest",),
        order=5,
    ),
    Step(
        id=StepId.ENDURANCE_TEST,
        path="/endurance-test",
        completion_flag="enduranceTestCompleted",
        timestamp_field="enduranceTestDate",
        payload_fields=("enduranceTest", "thirtyRM"),
        order=6,
    ),
    Step(
        id=StepId.NERVE_MOBILITY_TEST,
        path="/nerve-mobility-test",
        completion_flag="nerveMobilityTestCompleted",
        timestamp_field="nerveMobilityTestDate",
        payload_fields=("nerveMobilityTest",),
        order=7,
    ),
)

_BY_PATH: Dict[str, Step] = {step.path: step for step in STEPS}
_BY_ID: Dict[StepId, Step] = {step.id: step for step in STEPS}

COMPLETION_FLAGS = frozenset(step.completion_flag for step in STEPS)


# ----------------------------------------------------------------------
# Lookups
# ----------------------------------------------------------------------

def step_at(index: int) -> Step:
    """
    Step at a 0-based position. Negative indexes are out of range.
    """
    if index < 0 or index >= len(STEPS):
        raise IndexError(f"No assessment step at index {index}")
    return STEPS[index]


def index_of(path: str) -> int:
    """
    Position of an assessment path; raises UnknownPathError for public,
    dashboard or otherwise unrecognized paths.
    """
    step = _BY_PATH.get(path)
    if step is None:
        raise UnknownPathError(path)
    return step.order


def completion_flag(step: Step) -> str:
    return step.completion_flag


def step_by_id(step_id: StepId | str) -> Step:
    try:
        return _BY_ID[StepId(step_id)]
    except ValueError:
        raise UnknownPathError(str(step_id)) from None


def is_assessment_path(path: str) -> bool:
    return path in _BY_PATH


def is_public_path(path: str) -> bool:
    return path in PUBLIC_PATHS


def first_step() -> Step:
    return STEPS[0]


def last_step() -> Step:
    return STEPS[-1]
