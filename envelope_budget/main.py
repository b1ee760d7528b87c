"""
FastAPI application factory
"""
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import Response

from envelope_budget.config import get_settings
from envelope_budget.application.errors import NotFoundError, ForbiddenError, UserError, ConflictError
from envelope_budget.infrastructure.db.session import check_db_connection
from envelope_budget.api.v1 import (
    transactions, envelopes, budget_profiles, invitations, users, dashboard, activity,
)

logger = logging.getLogger(__name__)


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Logs unhandled exceptions with traceback and answers 500"""

    async def dispatch(self, request, call_next):
        try:
            response = await call_next(request)
            return response
        except Exception as exc:
            tb_str = traceback.format_exc()
            logger.error("\n%s\nERROR on %s %s\n%s%s", "=" * 60, request.method, request.url.path, tb_str, "=" * 60)
            return Response(content=f"Internal Server Error: {exc}", status_code=500)


def _register_error_handlers(app: FastAPI) -> None:
    """Map application errors to HTTP statuses; body is {"detail": message}"""

    def _handler(status_code: int):
        async def handle(request: Request, exc: Exception) -> JSONResponse:
            logger.info("%s %s -> %d: %s", request.method, request.url.path, status_code, exc)
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})
        return handle

    app.add_exception_handler(NotFoundError, _handler(404))
    app.add_exception_handler(ForbiddenError, _handler(403))
    app.add_exception_handler(ConflictError, _handler(409))
    app.add_exception_handler(UserError, _handler(400))


def create_app() -> FastAPI:
    """
    Application factory - builds and configures the FastAPI app

    Returns:
        Configured FastAPI app
    """
    settings = get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)

    app = FastAPI(
        title="Envelope Budget",
        debug=settings.DEBUG,
    )

    app.add_middleware(ErrorLoggingMiddleware)

    # Middleware
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY
    )

    _register_error_handlers(app)

    # Routers
    app.include_router(budget_profiles.router)
    app.include_router(invitations.router)
    app.include_router(envelopes.router)
    app.include_router(transactions.router)
    app.include_router(dashboard.router)
    app.include_router(users.router)
    app.include_router(activity.router)

    # Health checks
    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (checks the database is reachable)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "envelope_budget.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
