# troubleshooter/api/schemas.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class ProgressDecisionResponse(BaseModel):
    path: str
    action: str  # "allow" or "redirect"
    location: Optional[str] = None


class StepSchema(BaseModel):
    id: str
    path: str
    order: int
    completion_flag: str


class StepsResponse(BaseModel):
    steps: List[StepSchema]


class ResumeResponse(BaseModel):
    next_path: str
    completed_steps: List[str]
    total_steps: int
    percent_complete: int
    assessment_completed: bool


class StepViewResponse(BaseModel):
    step: str
    path: str
    order: int
    completed: bool
    completed_at: Optional[str] = None
    data: Dict[str, Any]


class SubmitStepResponse(BaseModel):
    step: str
    completed: bool
    next_path: str


class EntitlementsSchema(BaseModel):
    tier: str
    is_pro: bool
    features: Dict[str, bool]


class DashboardResponse(BaseModel):
    name: Optional[str] = None
    pain_regions: List[str]
    nerve_symptoms: List[str]
    latest_quick_dash_score: Optional[float] = None
    progress: ResumeResponse
    entitlements: EntitlementsSchema


class WebhookResponse(BaseModel):
    received: bool
    outcome: str


class CheckoutSessionRequest(BaseModel):
    plan_id: str


class CheckoutSessionResponse(BaseModel):
    session_id: str


class PlanSchema(BaseModel):
    id: str
    name: str
    unit_amount: int
    interval: str


class PlansResponse(BaseModel):
    plans: List[PlanSchema]


class QuickDashStatusResponse(BaseModel):
    due: bool
    display: str  # "none", "popup" or "bar"
    next_due_at: Optional[str] = None


class ReminderUpdateResponse(BaseModel):
    user_id: str
    at: str
