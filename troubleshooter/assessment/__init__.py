from .steps import Step, StepId, STEPS, step_at, index_of, completion_flag
from .state import SessionContext, Allow, RedirectTo, ProgressionDecision
from .progression import evaluate, first_incomplete_step, is_assessment_complete
from .payloads import normalize_selection, normalize_record

__all__ = [
    "Step",
    "StepId",
    "STEPS",
    "step_at",
    "index_of",
    "completion_flag",
    "SessionContext",
    "Allow",
    "RedirectTo",
    "ProgressionDecision",
    "evaluate",
    "first_incomplete_step",
    "is_assessment_complete",
    "normalize_selection",
    "normalize_record",
]
