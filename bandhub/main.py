from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from bandhub.core.errors import BandGovernanceError
from bandhub.core.observability import (
    band_governance_exception_handler,
    http_exception_handler,
    request_logging_middleware,
    setup_observability,
    unhandled_exception_handler,
    validation_exception_handler,
)
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from bandhub import __version__
from bandhub.core.config import settings
from bandhub.db.session import engine
from bandhub.routers import applications, audit, bands, invitations, me

app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description=(
        "Band membership governance API for BandHub.\n\n"
        "Every request carries a bearer access token issued by the identity service; "
        "the token subject is the acting user id.\n\n"
        "Swagger quick test flow:\n"
        "1. Click **Authorize** and paste an access token.\n"
        "2. `POST /bands` to create a band (you become its leader).\n"
        "3. Invite members with `POST /bands/{band_id}/invitations` or review "
        "`GET /bands/{band_id}/applications`."
    ),
    swagger_ui_parameters={
        "persistAuthorization": True,
        "displayRequestDuration": True,
        "defaultModelsExpandDepth": 1,
    },
    openapi_tags=[
        {"name": "health", "description": "Service status and quick links."},
        {"name": "bands", "description": "Band profiles, rosters, roles, and effective permissions."},
        {"name": "invitations", "description": "Leader-initiated invitations and invitee responses."},
        {"name": "applications", "description": "Self-service applications and manager responses."},
        {"name": "me", "description": "The acting user's bands, open invitations, and applications."},
        {"name": "audit", "description": "Audit trail of band governance changes."},
    ],
)

setup_observability()
app.middleware("http")(request_logging_middleware)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(BandGovernanceError, band_governance_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

cors_origins = settings.cors_origins or ["http://localhost:3000"]
allow_all_origins = "*" in cors_origins
env_value = settings.env.lower().strip()
allow_origin_regex = settings.cors_origin_regex

if (
    not allow_origin_regex
    and env_value in {"dev", "development", "staging", "stage"}
):
    # Local web tooling runs on dynamic localhost ports.
    allow_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all_origins else cors_origins,
    allow_origin_regex=allow_origin_regex,
    allow_credentials=not allow_all_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(bands.router)
app.include_router(invitations.router)
app.include_router(applications.router)
app.include_router(me.router)
app.include_router(audit.router)


@app.get("/", tags=["health"])
def root():
    return {
        "app": settings.app_name,
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health",
        "ready": "/ready",
    }


@app.get("/health", tags=["health"])
def health():
    return {"ok": True}


@app.get("/ready", tags=["health"])
def ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return {"ok": False}
    return {"ok": True}
