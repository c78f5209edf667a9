# troubleshooter/assessment/payloads.py
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, Field, field_validator

from troubleshooter.assessment.steps import StepId


logger = logging.getLogger(__name__)

# Fields persisted historically as a list of ids, now as {id: bool}
SELECTION_FIELDS = ("painRegions", "nerveSymptoms")


# ------------------------------------------------------------------
# Shape normalization
# ------------------------------------------------------------------

def normalize_selection(value: Any, field_name: str = "selection") -> Dict[str, Any]:
    """
    Normalize a selection payload to the mapping form.

      ['radial', 'median']  -> {'radial': True, 'median': True}
      {'radial': True}      -> unchanged
      None / missing        -> {}

    Anything else is logged and treated as empty.
    """
    if value is None:
        return {}

    if isinstance(value, Mapping):
        return dict(value)

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        selection: Dict[str, Any] = {}
        for item in value:
            if isinstance(item, str):
                selection[item] = True
            else:
                logger.warning(
                    "Dropping non-string id %r from %s", item, field_name
                )
        return selection

    logger.warning(
        "Malformed %s payload of type %s, treating as empty",
        field_name,
        type(value).__name__,
    )
    return {}


def normalize_record(raw: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Apply selection normalization once, as the record leaves the store.
    Fields that are absent stay absent.
    """
    if raw is None:
        return None

    record = dict(raw)
    for name in SELECTION_FIELDS:
        if name in record:
            record[name] = normalize_selection(record[name], field_name=name)
    return record


def selected_ids(selection: Mapping[str, Any]) -> List[str]:
    """
    Ids whose value is truthy, in stored order.
    """
    return [key for key, selected in selection.items() if selected]


# ------------------------------------------------------------------
# Step payloads
# ------------------------------------------------------------------

class StepPayload(BaseModel):
    """
    Base for per-step submissions. Presence and basic types only; the
    clinical content of each step is free-form.
    """

    model_config = {
        "extra": "ignore",
    }

    def to_fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class UserDetailsPayload(StepPayload):
    name: str = Field(..., min_length=1)
    age: int = Field(..., ge=0)
    sex: str = Field(..., min_length=1)
    painDuration: str = Field(..., min_length=1)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class MedicalScreenPayload(StepPayload):
    medicalScreening: Dict[str, Any]


class OutcomeMeasurePayload(StepPayload):
    outcomeMeasureData: Dict[str, Any]
    latestQuickDashScore: Optional[float] = None


class _SelectionPayload(StepPayload):
    @classmethod
    def _normalize(cls, v: Any, name: str) -> Dict[str, bool]:
        if not isinstance(v, (Mapping, list)):
            raise ValueError(f"{name} must be a list of ids or an id-to-bool mapping")
        selection = normalize_selection(v, name)
        for key, selected in selection.items():
            if not isinstance(selected, bool):
                raise ValueError(f"{name}[{key!r}] must be true or false")
        return selection


class PainRegionPayload(_SelectionPayload):
    painRegions: Dict[str, bool]

    @field_validator("painRegions", mode="before")
    @classmethod
    def _canonical(cls, v: Any) -> Dict[str, bool]:
        return cls._normalize(v, "painRegions")


class NerveSymptomsPayload(_SelectionPayload):
    nerveSymptoms: Dict[str, bool]

    @field_validator("nerveSymptoms", mode="before")
    @classmethod
    def _canonical(cls, v: Any) -> Dict[str, bool]:
        return cls._normalize(v, "nerveSymptoms")


class MobilityTestPayload(StepPayload):
    mobilityTest: Dict[str, Any]


class EnduranceTestPayload(StepPayload):
    enduranceTest: Dict[str, Any]
    thirtyRM: Optional[Dict[str, Any]] = None


class NerveMobilityTestPayload(StepPayload):
    nerveMobilityTest: Dict[str, Any]


PAYLOAD_MODELS: Dict[StepId, Type[StepPayload]] = {
    StepId.USER_DETAILS: UserDetailsPayload,
    StepId.MEDICAL_SCREEN: MedicalScreenPayload,
    StepId.OUTCOME_MEASURE: OutcomeMeasurePayload,
    StepId.PAIN_REGION: PainRegionPayload,
    StepId.NERVE_SYMPTOMS: NerveSymptomsPayload,
    StepId.MOBILITY_TEST: MobilityTestPayload,
    StepId.ENDURANCE_TEST: EnduranceTestPayload,
    StepId.NERVE_MOBILITY_TEST: NerveMobilityTestPayload,
}


def parse_step_payload(step_id: StepId, data: Mapping[str, Any]) -> StepPayload:
    """
    Validate a raw submission against the step's payload model.
    Raises pydantic.ValidationError on missing fields.
    """
    return PAYLOAD_MODELS[step_id].model_validate(dict(data))
