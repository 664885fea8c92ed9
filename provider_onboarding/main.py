"""
FastAPI application entrypoint.

Run locally:  uvicorn provider_onboarding.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from provider_onboarding.api.routes import router
from provider_onboarding.config import settings
from provider_onboarding.errors import ConflictError, PayloadValidationError
from provider_onboarding.models import entities  # noqa: F401  registers tables on Base
from provider_onboarding.models.database import Base, engine, session_factory_for

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


def _validation_body(errors: list[dict[str, str]]) -> dict:
    return {"message": "Validation error", "errors": errors}


async def handle_payload_error(request: Request, exc: PayloadValidationError):
    return JSONResponse(status_code=400, content=_validation_body(exc.errors))


async def handle_request_error(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0]),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content=_validation_body(errors))


async def handle_http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def handle_conflict(request: Request, exc: ConflictError):
    logger.info("Conflict on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=409, content={"message": str(exc)})


def create_app(bind=engine) -> FastAPI:
    """
    Build the application around an explicit database engine.
    Each request gets its own session on ``bind``; tables are created at startup.
    """
    app = FastAPI(
        title="Provider Onboarding API",
        description=(
            "Onboards healthcare providers, tracks the EHR systems they are "
            "integrated with, and records data fetches between them."
        ),
        version="1.0.0",
    )
    app.state.session_factory = session_factory_for(bind)

    app.add_exception_handler(PayloadValidationError, handle_payload_error)
    app.add_exception_handler(RequestValidationError, handle_request_error)
    app.add_exception_handler(ConflictError, handle_conflict)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.include_router(router, prefix="/api")

    @app.on_event("startup")
    def on_startup():
        Base.metadata.create_all(bind=bind)

    return app


app = create_app()
