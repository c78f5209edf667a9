# troubleshooter/api/routes.py
from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from troubleshooter.assessment.payloads import parse_step_payload, selected_ids
from troubleshooter.assessment.progression import progress_summary
from troubleshooter.assessment.state import RedirectTo, SessionContext
from troubleshooter.assessment.steps import STEPS, Step
from troubleshooter.billing import (
    PLANS,
    PaymentGateway,
    apply_subscription_event,
    entitlement_summary,
    plan_for,
)
from troubleshooter.config import get_settings
from troubleshooter.services import AssessmentService, QuickDashReminders, step_view
from .guard import (
    GuardedRequest,
    decide,
    get_assessment_service,
    get_payment_gateway,
    get_reminders,
    get_session_context,
    require_user,
    route_guard,
)
from .schemas import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    DashboardResponse,
    EntitlementsSchema,
    PlanSchema,
    PlansResponse,
    ProgressDecisionResponse,
    QuickDashStatusResponse,
    ReminderUpdateResponse,
    ResumeResponse,
    StepSchema,
    StepsResponse,
    StepViewResponse,
    SubmitStepResponse,
    WebhookResponse,
)

router = APIRouter()

# Every page route runs the progression guard first
pages_router = APIRouter(dependencies=[Depends(route_guard)])


# ------------------------------------------------------------------
# JSON API
# ------------------------------------------------------------------

@router.get("/progress", response_model=ProgressDecisionResponse)
def progress_decision(
    path: str = Query(..., description="Path the client router is about to show"),
    session: SessionContext = Depends(get_session_context),
    service: AssessmentService = Depends(get_assessment_service),
) -> ProgressDecisionResponse:
    """
    Route-guard decision for client-side navigation.
    """
    decision, _ = decide(path, session, service)
    if isinstance(decision, RedirectTo):
        return ProgressDecisionResponse(
            path=path, action="redirect", location=decision.location
        )
    return ProgressDecisionResponse(path=path, action="allow")


@router.get("/assessment/steps", response_model=StepsResponse)
def list_steps() -> StepsResponse:
    return StepsResponse(
        steps=[
            StepSchema(
                id=step.id.value,
                path=step.path,
                order=step.order,
                completion_flag=step.completion_flag,
            )
            for step in STEPS
        ]
    )


def _resume_response(record: Optional[Dict[str, Any]]) -> ResumeResponse:
    summary = progress_summary(record)
    return ResumeResponse(
        next_path=summary.next_path,
        completed_steps=summary.completed_steps,
        total_steps=summary.total_steps,
        percent_complete=summary.percent_complete,
        assessment_completed=summary.assessment_completed,
    )


@router.get("/assessment/resume", response_model=ResumeResponse)
def resume_assessment(
    user_id: str = Depends(require_user),
    service: AssessmentService = Depends(get_assessment_service),
) -> ResumeResponse:
    """
    Where the signed-in user picks the assessment back up.
    """
    load = service.load_record(user_id)
    return _resume_response(load.record)


# ------------------------------------------------------------------
# Billing
# ------------------------------------------------------------------

@router.get("/billing/plans", response_model=PlansResponse)
def list_plans() -> PlansResponse:
    return PlansResponse(
        plans=[
            PlanSchema(
                id=plan.id,
                name=plan.name,
                unit_amount=plan.unit_amount,
                interval=plan.interval,
            )
            for plan in PLANS.values()
        ]
    )


@router.post("/billing/checkout-session", response_model=CheckoutSessionResponse)
def create_checkout_session(
    req: CheckoutSessionRequest,
    user_id: str = Depends(require_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> CheckoutSessionResponse:
    """
    Start a Stripe Checkout subscription for the signed-in user.
    """
    plan = plan_for(req.plan_id)
    base_url = get_settings().app_base_url.rstrip("/")
    session_id = gateway.create_checkout_session(plan, user_id, base_url)
    return CheckoutSessionResponse(session_id=session_id)


@router.post("/billing/webhook", response_model=WebhookResponse)
async def billing_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    service: AssessmentService = Depends(get_assessment_service),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> WebhookResponse:
    """
    Stripe event notifications. The raw body is needed for signature
    verification, so it is read before any parsing.
    """
    payload = await request.body()
    event = gateway.construct_event(payload, stripe_signature)
    outcome = await run_in_threadpool(
        apply_subscription_event, service.store, event, gateway
    )
    return WebhookResponse(received=True, outcome=outcome)


# ------------------------------------------------------------------
# QuickDASH reminders
# ------------------------------------------------------------------

@router.get("/reminders/quick-dash", response_model=QuickDashStatusResponse)
def quick_dash_status(
    user_id: str = Depends(require_user),
    reminders: QuickDashReminders = Depends(get_reminders),
) -> QuickDashStatusResponse:
    status = reminders.status(user_id)
    return QuickDashStatusResponse(
        due=status.due,
        display=status.display.value,
        next_due_at=status.next_due_at.isoformat() if status.next_due_at else None,
    )


@router.post("/reminders/quick-dash/shown", response_model=ReminderUpdateResponse)
def quick_dash_reminder_shown(
    user_id: str = Depends(require_user),
    reminders: QuickDashReminders = Depends(get_reminders),
) -> ReminderUpdateResponse:
    shown_at = reminders.mark_reminder_shown(user_id)
    return ReminderUpdateResponse(user_id=user_id, at=shown_at.isoformat())


@router.post("/reminders/quick-dash/schedule", response_model=ReminderUpdateResponse)
def quick_dash_schedule_next(
    user_id: str = Depends(require_user),
    reminders: QuickDashReminders = Depends(get_reminders),
) -> ReminderUpdateResponse:
    """
    Push the next reassessment one interval out, after a QuickDASH is done.
    """
    due_at = reminders.schedule_next(user_id)
    return ReminderUpdateResponse(user_id=user_id, at=due_at.isoformat())


# ------------------------------------------------------------------
# Pages
# ------------------------------------------------------------------

def _public_page(name: str) -> Callable[[], Dict[str, str]]:
    def page() -> Dict[str, str]:
        return {"page": name}

    page.__name__ = f"{name}_page"
    return page


for _name in ("login", "signup", "terms", "privacy"):
    pages_router.add_api_route(f"/{_name}", _public_page(_name), methods=["GET"])


def _make_step_loader(step: Step):
    def load_step(guarded: GuardedRequest = Depends(route_guard)) -> StepViewResponse:
        return StepViewResponse(**step_view(guarded.record, step))

    load_step.__name__ = f"load_{step.id.name.lower()}"
    return load_step


def _make_step_submitter(step: Step):
    def submit_step(
        payload: Dict[str, Any] = Body(...),
        guarded: GuardedRequest = Depends(route_guard),
        service: AssessmentService = Depends(get_assessment_service),
    ) -> SubmitStepResponse:
        try:
            parsed = parse_step_payload(step.id, payload)
        except ValidationError as e:
            raise RequestValidationError(
                e.errors(include_url=False, include_context=False)
            ) from e

        next_path = service.complete_step(guarded.user_id, step, parsed)
        return SubmitStepResponse(step=step.id.value, completed=True, next_path=next_path)

    submit_step.__name__ = f"submit_{step.id.name.lower()}"
    return submit_step


for _step in STEPS:
    pages_router.add_api_route(
        _step.path,
        _make_step_loader(_step),
        methods=["GET"],
        response_model=StepViewResponse,
    )
    pages_router.add_api_route(
        _step.path,
        _make_step_submitter(_step),
        methods=["POST"],
        response_model=SubmitStepResponse,
    )


@pages_router.get("/dashboard", response_model=DashboardResponse)
def dashboard(guarded: GuardedRequest = Depends(route_guard)) -> DashboardResponse:
    record = guarded.record or {}
    return DashboardResponse(
        name=record.get("name"),
        pain_regions=selected_ids(record.get("painRegions") or {}),
        nerve_symptoms=selected_ids(record.get("nerveSymptoms") or {}),
        latest_quick_dash_score=record.get("latestQuickDashScore"),
        progress=_resume_response(record),
        entitlements=EntitlementsSchema(**entitlement_summary(record)),
    )
