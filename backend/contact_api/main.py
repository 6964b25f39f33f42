"""
Contact API
FastAPI application that turns portfolio contact form submissions into
owner notifications and submitter confirmations.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from contact_api.config import ContactSettings, load_settings
from contact_api.routers import contact
from contact_api.services.providers import ProviderChain, build_provider_chain

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


class ContactCORSMiddleware(CORSMiddleware):
    """CORSMiddleware whose accepted preflight is an empty 204."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            key: value
            for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        headers["Allow"] = contact.ALLOWED_METHODS
        return Response(status_code=204, headers=headers)


def create_app(
    settings: Optional[ContactSettings] = None,
    providers: Optional[ProviderChain] = None,
) -> FastAPI:
    """
    Build the application.

    Settings are loaded from the environment (and .env) when not given, and
    the provider chain is derived from them unless one is passed in. Both
    are stored on app.state and never change afterwards.
    """
    settings = settings or load_settings()
    providers = providers or build_provider_chain(settings)

    app = FastAPI(
        title="Contact API",
        description="Contact form submission and email delivery",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.providers = providers

    # CORS configuration; origins come from CORS_ORIGINS (default "*")
    app.add_middleware(
        ContactCORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.add_exception_handler(StarletteHTTPException, contact.http_exception_handler)

    app.include_router(contact.router, prefix="/api/contact", tags=["contact"])

    @app.get("/")
    async def root():
        return {"message": "Contact API", "version": "0.1.0"}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    logger.info(
        "Contact API configured: providers=%s destination=%s",
        providers.names,
        "set" if settings.owner_email else "MISSING",
    )
    return app


app = create_app()
