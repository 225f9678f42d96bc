import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import ProgrammingError

from briefflow.config import settings
from briefflow.db.base import engine
from briefflow.errors import BriefflowError
from briefflow.policy.config import PolicyConfigurationError
from briefflow.routers import (
    approvals,
    brands,
    briefs,
    clubs,
    notifications,
    policy,
    production,
    templates,
)

logger = logging.getLogger(__name__)


def _is_schema_mismatch_programming_error(exc: ProgrammingError) -> bool:
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == "42703":
        return True
    message = str(orig or exc).lower()
    return any(
        marker in message
        for marker in (
            "undefined column",
            "does not exist",
            "no such column",
            "no such table",
        )
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Briefflow API",
        default_response_class=ORJSONResponse,
    )

    allow_origins = sorted(set(settings.BACKEND_CORS_ORIGINS))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BriefflowError)
    async def domain_error_handler(_request: Request, exc: BriefflowError) -> ORJSONResponse:
        return ORJSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_content()))

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(_request: Request, exc: RequestValidationError) -> ORJSONResponse:
        errors = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
                "message": error.get("msg", "Invalid value"),
            }
            for error in exc.errors()
        ]
        return ORJSONResponse(
            status_code=422,
            content={"detail": "Request validation failed.", "code": "validation_failed", "errors": errors},
        )

    @app.exception_handler(PolicyConfigurationError)
    async def policy_configuration_error_handler(
        _request: Request, exc: PolicyConfigurationError
    ) -> ORJSONResponse:
        logger.error("Policy configuration error", exc_info=exc)
        return ORJSONResponse(
            status_code=500,
            content={"detail": "Brand policy configuration is invalid.", "code": "policy_config_error"},
        )

    @app.exception_handler(ProgrammingError)
    async def programming_error_handler(_request: Request, exc: ProgrammingError) -> ORJSONResponse:
        logger.exception("Database programming error", exc_info=exc)
        if _is_schema_mismatch_programming_error(exc):
            return ORJSONResponse(
                status_code=503,
                content={
                    "detail": "Database schema is out of date. Run `alembic upgrade head` and redeploy.",
                    "code": "schema_out_of_date",
                },
            )
        return ORJSONResponse(status_code=500, content={"detail": "Database query failed.", "code": "internal_error"})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(_request: Request, exc: Exception) -> ORJSONResponse:
        logger.exception("Unhandled server exception", exc_info=exc)
        return ORJSONResponse(status_code=500, content={"detail": "Internal server error.", "code": "internal_error"})

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/health/db")
    def health_db() -> dict[str, str]:
        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return {"db": "ok"}
        except Exception as exc:  # pragma: no cover - simple runtime check
            return {"db": f"error: {exc}"}

    app.include_router(briefs.router)
    app.include_router(approvals.router)
    app.include_router(production.router)
    app.include_router(policy.router)
    app.include_router(clubs.router)
    app.include_router(brands.router)
    app.include_router(templates.router)
    app.include_router(notifications.router)

    return app


app = create_app()
