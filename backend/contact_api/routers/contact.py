"""
Contact form router.

Endpoints:
  POST    /api/contact         validate a submission and deliver both emails
  OPTIONS /api/contact         preflight; 204 with the allowed methods
  other   /api/contact         405 with an {error} body and Allow: POST, OPTIONS
  GET     /api/contact/status  which providers and addresses are configured

Response shapes:
  200  {"ok": true, "message": ...}       delivered, or honeypot drop
  400  {"error": ..., "code": ...}         validation failure
  400  {"error": ...}                      body is not a JSON object
  405  {"error": ...}                      wrong method
  500  {"error": ..., "service": ...}      misconfiguration / unexpected error
  502  {"error": ..., "service": ...}      every provider failed the owner send

The settings and provider chain are built once by the application factory
and read from app.state on every request.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.exception_handlers import http_exception_handler as default_http_exception_handler
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from contact_api.config import ContactSettings
from contact_api.errors import (
    ContactFormError,
    DeliveryError,
    HoneypotTriggered,
    ParseError,
    ValidationError,
)
from contact_api.models.submission import RequestMeta
from contact_api.services.orchestrator import deliver_submission
from contact_api.services.providers import ProviderChain
from contact_api.services.validator import clean_single_line, validate_submission

logger = logging.getLogger(__name__)

router = APIRouter()

SUCCESS_MESSAGE = "Message received! Check your email for confirmation."
ALLOWED_METHODS = "POST, OPTIONS"

# Cap on request metadata copied into the owner notification
_MAX_META_LEN = 300


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_settings(request: Request) -> ContactSettings:
    return request.app.state.settings


def get_provider_chain(request: Request) -> ProviderChain:
    return request.app.state.providers


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _error_response(exc: ContactFormError) -> JSONResponse:
    body: dict[str, Any] = {"error": exc.message}
    if isinstance(exc, ValidationError):
        body["code"] = exc.code
    if exc.service:
        body["service"] = exc.service
    return JSONResponse(status_code=exc.status_code, content=body)


def _method_not_allowed(method: str, allow: str) -> JSONResponse:
    return JSONResponse(
        status_code=405,
        content={"error": f"Method {method} not allowed. Use POST."},
        headers={"Allow": allow},
    )


def _success_response() -> JSONResponse:
    return JSONResponse(status_code=200, content={"ok": True, "message": SUCCESS_MESSAGE})


def _client_ip(request: Request) -> str:
    """
    Best-effort client IP.

    Order: cf-connecting-ip, first hop of x-forwarded-for, socket peer.
    """
    cf_ip = request.headers.get("cf-connecting-ip", "").strip()
    if cf_ip:
        return cf_ip
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded.strip():
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _request_meta(request: Request) -> RequestMeta:
    def clean(value: str) -> str:
        return clean_single_line(value, _MAX_META_LEN) or "unknown"

    return RequestMeta(
        client_ip=clean(_client_ip(request)),
        user_agent=clean(request.headers.get("user-agent", "")),
        referer=clean(request.headers.get("referer") or request.headers.get("origin") or ""),
    )


async def _parse_body(request: Request) -> dict:
    """Parse the body as a JSON object; raise ParseError otherwise."""
    raw = await request.body()
    try:
        body = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        logger.warning(f"Failed to parse contact form body: {exc}")
        raise ParseError("Invalid JSON format. Please check your request body.")
    if not isinstance(body, dict):
        raise ParseError("Request body must be a JSON object.")
    return body


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("")
async def submit_contact_form(
    request: Request,
    settings: ContactSettings = Depends(get_settings),
    providers: ProviderChain = Depends(get_provider_chain),
):
    """
    Process one contact form submission.

    Parse and validation failures return immediately without touching a
    provider. A filled honeypot field returns the normal success body and
    sends nothing. Unexpected exceptions become a generic 500.
    """
    meta = _request_meta(request)
    try:
        body = await _parse_body(request)
        submission = validate_submission(body, settings.honeypot_fields)
        settings.require_addresses()

        # Provider calls block (httpx.Client, smtplib); keep them off the event loop
        result = await run_in_threadpool(
            deliver_submission, submission, settings, providers, meta
        )
        if not result.ok:
            logger.error(f"Owner notification undeliverable: {result.error_summary}")
            raise DeliveryError("Failed to send message. Please try again later.")

        logger.info(f"Contact form submission processed via {result.provider}")
        return _success_response()

    except HoneypotTriggered as exc:
        logger.warning(f"Honeypot triggered ({exc.field}); dropping submission from {meta.client_ip}")
        return _success_response()
    except ContactFormError as exc:
        if isinstance(exc, ValidationError):
            logger.info(f"Rejected contact form submission: {exc.code}")
        else:
            logger.error(f"Contact form {type(exc).__name__}: {exc.message}")
        return _error_response(exc)
    except Exception:
        logger.exception("Unexpected error while processing contact form")
        return JSONResponse(
            status_code=500,
            content={
                "error": "An unexpected error occurred. Please try again later.",
                "service": "internal_server_error",
            },
        )


@router.options("")
async def contact_form_preflight():
    return Response(
        status_code=204,
        headers={
            "Allow": ALLOWED_METHODS,
            "Access-Control-Allow-Methods": ALLOWED_METHODS,
            "Access-Control-Allow-Headers": "Content-Type",
        },
    )


@router.api_route("", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE"])
async def contact_form_method_not_allowed(request: Request):
    return _method_not_allowed(request.method, ALLOWED_METHODS)


@router.get("/status")
async def contact_status(
    settings: ContactSettings = Depends(get_settings),
    providers: ProviderChain = Depends(get_provider_chain),
):
    """
    Report what the service is configured with, without revealing secrets.
    """
    def flag(value: bool) -> str:
        return "set" if value else "missing"

    return {
        "status": "ok",
        "providers": {
            "resend": flag(settings.has_resend),
            "smtp": flag(settings.has_smtp),
            "mailchannels": flag(settings.has_mailchannels),
        },
        "primary": providers.primary.name,
        "fallback": providers.fallback.name if providers.fallback else None,
        "destination": flag(bool(settings.owner_email)),
        "sender": flag(bool(settings.sender_email)),
    }


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    App-wide HTTPException handler.

    Methods without an explicit route on /api/contact (TRACE, CONNECT, ...)
    are rejected by routing itself; those 405s get the same {error} body and
    Allow header as the ones answered above. Everything else keeps the
    FastAPI default.
    """
    if exc.status_code != 405:
        return await default_http_exception_handler(request, exc)
    if request.url.path.rstrip("/") == "/api/contact":
        allow = ALLOWED_METHODS
    else:
        allow = (exc.headers or {}).get("Allow", "")
    return _method_not_allowed(request.method, allow)
