"""
Placement Verification API - Main Application

FastAPI backend with:
- Organization registration and registration verification
- User profile, KYC checklist and final verification requests
- JWT bearer authentication (tokens issued by the identity provider)
- In-memory or SQL identity store

Run: uvicorn placement_verify.main:app --reload
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from placement_verify import __version__
from placement_verify.api.routes import api_router
from placement_verify.core.config import Settings, get_settings
from placement_verify.core.errors import DomainError
from placement_verify.core.logging_config import configure_logging
from placement_verify.db.memory_store import InMemoryIdentityStore
from placement_verify.db.sql_store import SqlIdentityStore
from placement_verify.schemas.schemas import HealthResponse
from placement_verify.services.organization_service import OrganizationsService
from placement_verify.services.profile_service import ProfileService

logger = logging.getLogger(__name__)


def build_identity_store(settings: Settings):
    """Pick the identity store backend from settings."""
    if settings.uses_sql_store:
        store = SqlIdentityStore.from_url(settings.database_url, echo=settings.debug)
        store.create_schema()
        return store
    return InMemoryIdentityStore()


def error_response(status: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": {"code": code, "message": message}})


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status >= 500:
        logger.error("Domain error %s on %s %s", exc.code, request.method, request.url.path)
    return error_response(exc.status, exc.code, exc.message)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = exc.detail if isinstance(exc.detail, str) else "http_error"
    response = error_response(exc.status_code, code, str(exc.detail))
    for header, value in (exc.headers or {}).items():
        response.headers[header] = value
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Field rules live in the services; this only fires for bodies that are not JSON objects.
    logger.debug("Rejected request body on %s %s: %s", request.method, request.url.path, exc.errors())
    return error_response(400, "invalid_request", "request body must be a JSON object")


def create_app(settings: Optional[Settings] = None, identity_store: Any = None) -> FastAPI:
    """
    Application factory.

    ``identity_store`` overrides the configured backend (tests pass an
    InMemoryIdentityStore they can seed).
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, debug=settings.debug)

    app = FastAPI(
        title=settings.app_name,
        description="""
        Identity and organization verification for the placement platform.

        ## Features
        - **Organizations**: registration and registration verification (owner scoped)
        - **Profile**: derived KYC progress, trust label and completion score
        - **Verification documents**: required/optional document checklist
        - **Final verification**: idempotent request for a final review
        - **Admin**: review queue listing and decision recording
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    store = identity_store if identity_store is not None else build_identity_store(settings)
    app.state.settings = settings
    app.state.identity_store = store
    app.state.organizations_service = OrganizationsService(identity_store=store)
    app.state.profile_service = ProfileService(store)

    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Routes answer at the root and under the versioned prefix.
    app.include_router(api_router)
    if settings.api_prefix:
        app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        return HealthResponse(
            status="ok",
            service="placement-verify",
            version=__version__,
            store=type(app.state.identity_store).__name__,
        )

    logger.info("Placement verification API ready (store=%s)", type(store).__name__)
    return app


app = create_app()
