# SPDX-License-Identifier: GPL-3.0-only
"""HTTP API v1: email verification and organization registration."""

import secrets
import time
from contextlib import asynccontextmanager
from typing import Optional, Union

from fastapi import APIRouter, Depends, FastAPI, Header, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from base_logger import get_logger
from src.db_models import ALL_MODELS
from src.email_delivery import EmailSender, ResendEmailSender
from src.exceptions import AppError, PermissionDeniedError
from src.organizations import register_organization, serialize_organization
from src.otp_service import issue_otp, verify_otp
from src.otp_store import OTPStore, get_otp_store, normalize_email
from src.utils import create_tables, get_configs, is_debug_enabled

logger = get_logger(__name__)

router = APIRouter()
debug_router = APIRouter()


class IssueOTPRequest(BaseModel):
    email: Optional[str] = None
    test_only: bool = False

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VerifyOTPRequest(BaseModel):
    email: Optional[str] = None
    otp: Optional[Union[str, int]] = None


class RegisterOrganizationRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    organization_name: Optional[str] = None
    website: Optional[str] = None
    contact_mail: Optional[str] = None
    phone: Optional[str] = None
    company_location: Optional[str] = None
    otp: Optional[Union[str, int]] = None
    is_otp_verified: bool = False

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def get_store(request: Request) -> OTPStore:
    return request.app.state.otp_store


def get_email_sender(request: Request) -> EmailSender:
    return request.app.state.email_sender


def require_debug_token(x_debug_token: Optional[str] = Header(default=None)):
    """Allow the request only with the configured debug token."""
    expected = get_configs("OTP_DEBUG_TOKEN")
    if not expected or not x_debug_token:
        raise PermissionDeniedError("Forbidden")
    if not secrets.compare_digest(expected.encode(), x_debug_token.encode()):
        logger.warning("Debug endpoint called with an invalid token")
        raise PermissionDeniedError("Forbidden")


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/otp/issue")
def issue(
    payload: IssueOTPRequest,
    store: OTPStore = Depends(get_store),
    sender: EmailSender = Depends(get_email_sender),
):
    """Issue a verification code and email it."""
    test_only = payload.test_only and is_debug_enabled()
    result = issue_otp(store, payload.email, sender, send=not test_only)
    expires_at = result.expires_at.isoformat()

    if test_only:
        return {
            "success": True,
            "message": "Test OTP generated and stored (not sent)",
            "otp": result.code,
            "expiresAt": expires_at,
        }

    return {
        "success": True,
        "message": "Verification code sent successfully",
        "expiresAt": expires_at,
        "data": {"id": result.message_id, "expiresAt": expires_at},
    }


@router.post("/otp/verify")
def verify(payload: VerifyOTPRequest, store: OTPStore = Depends(get_store)):
    """Check a verification code."""
    otp = str(payload.otp) if payload.otp is not None else None
    verify_otp(store, payload.email, otp)
    store.mark_verified(payload.email)
    return {"success": True, "message": "Email verified successfully"}


@router.post("/organizations/register")
def register(
    payload: RegisterOrganizationRequest, store: OTPStore = Depends(get_store)
):
    """Register an organization after email verification."""
    logger.info(
        "Organization registration attempt: %s", normalize_email(payload.email)
    )
    profile = register_organization(
        store,
        email=payload.email,
        password=payload.password,
        organization_name=payload.organization_name,
        contact_mail=payload.contact_mail,
        company_location=payload.company_location,
        name=payload.name,
        website=payload.website,
        phone=payload.phone,
        otp=str(payload.otp) if payload.otp is not None else None,
        is_otp_verified=payload.is_otp_verified,
    )
    return {
        "success": True,
        "message": "Organization registered successfully! Please wait for admin approval.",
        "data": serialize_organization(profile),
    }


@debug_router.delete("/otp", dependencies=[Depends(require_debug_token)])
def clear_otp(email: Optional[str] = None, store: OTPStore = Depends(get_store)):
    """Clear one pending code, or all of them."""
    removed = store.clear(email)
    logger.info("Debug clear removed %d OTP records", removed)
    if email:
        return {
            "success": True,
            "message": "OTP deleted successfully" if removed else "OTP not found",
            "email": normalize_email(email),
        }
    return {"success": True, "message": "All OTP data cleared", "count": removed}


def setup_exception_handlers(app: FastAPI) -> None:
    """Render every failure as ``{"success": false, "error": ...}``."""

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.message},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        logger.debug("Invalid request body: %s", exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": "Invalid request body"},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception(
            "Unhandled error on %s %s: %s", request.method, request.url.path, exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Internal Server Error"},
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Atom Connect API...")
    create_tables(ALL_MODELS)
    yield
    logger.info("Shutting down Atom Connect API...")


def create_app(
    otp_store: Optional[OTPStore] = None, email_sender: Optional[EmailSender] = None
) -> FastAPI:
    """Build the API application.

    Args:
        otp_store: Store for pending codes. Defaults to OTP_STORE_BACKEND.
        email_sender: Email capability. Defaults to the Resend API.
    """
    app = FastAPI(title="Atom Connect API", version="1.0.0", lifespan=lifespan)
    app.state.otp_store = otp_store if otp_store is not None else get_otp_store()
    app.state.email_sender = (
        email_sender if email_sender is not None else ResendEmailSender()
    )

    setup_exception_handlers(app)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        logger.info(
            "%s %s - Status: %d - Time: %.4fs",
            request.method,
            request.url.path,
            response.status_code,
            time.time() - start_time,
        )
        return response

    app.include_router(router, prefix="/v1")
    if is_debug_enabled():
        logger.warning("OTP debug endpoints are enabled")
        app.include_router(debug_router, prefix="/v1/debug")

    return app
