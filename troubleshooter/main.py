# troubleshooter/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from troubleshooter.config import get_settings
from troubleshooter.errors import (
    AuthUnresolved,
    BillingNotConfigured,
    InvalidWebhookEvent,
    PaymentProviderError,
    ProgressionRedirect,
    RecordFetchError,
    RecordWriteError,
    UnknownPlanError,
)
from troubleshooter.services import init_db
from troubleshooter.api.routes import router as api_router, pages_router


logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="1HP Troubleshooter API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # for dev; tighten in prod
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


@app.on_event("startup")
def on_startup() -> None:
    init_db()


@app.exception_handler(ProgressionRedirect)
def progression_redirect_handler(request: Request, exc: ProgressionRedirect) -> JSONResponse:
    content = {"location": exc.location}
    if exc.message:
        content["detail"] = exc.message
    return JSONResponse(
        status_code=303,
        content=content,
        headers={"Location": exc.location},
    )


@app.exception_handler(AuthUnresolved)
def auth_unresolved_handler(request: Request, exc: AuthUnresolved) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"detail": "Still signing you in. Please retry."},
        headers={"Retry-After": "1"},
    )


@app.exception_handler(RecordWriteError)
def record_write_error_handler(request: Request, exc: RecordWriteError) -> JSONResponse:
    logger.error("Write failed for user %s: %r", exc.user_id, exc.cause)
    return JSONResponse(
        status_code=503,
        content={"detail": "We couldn't save your progress. Please try again."},
    )


@app.exception_handler(RecordFetchError)
def record_fetch_error_handler(request: Request, exc: RecordFetchError) -> JSONResponse:
    logger.error("Read failed for %s: %r", exc.user_id, exc.cause)
    return JSONResponse(
        status_code=503,
        content={"detail": "Something went wrong on our side. Please try again."},
    )


@app.exception_handler(UnknownPlanError)
def unknown_plan_handler(request: Request, exc: UnknownPlanError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": "Invalid plan"})


@app.exception_handler(InvalidWebhookEvent)
def invalid_webhook_handler(request: Request, exc: InvalidWebhookEvent) -> JSONResponse:
    logger.warning("Rejected webhook call: %s", exc)
    return JSONResponse(status_code=400, content={"detail": "Invalid webhook payload."})


@app.exception_handler(BillingNotConfigured)
def billing_not_configured_handler(request: Request, exc: BillingNotConfigured) -> JSONResponse:
    logger.error("Billing call refused: %s", exc)
    return JSONResponse(status_code=503, content={"detail": "Billing is not available right now."})


@app.exception_handler(PaymentProviderError)
def payment_provider_error_handler(request: Request, exc: PaymentProviderError) -> JSONResponse:
    logger.error("Stripe call failed (%s): %r", exc.action, exc.cause)
    return JSONResponse(
        status_code=502,
        content={"detail": "The payment provider could not be reached. Please try again."},
    )


@app.get("/")
def root():
    return {"message": "1HP Troubleshooter API is running"}


app.include_router(api_router, prefix="/api")
app.include_router(pages_router)
