"""
Debt Engine API Application Factory
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..engine import DebtEngine
from ..exceptions import (
    DebtEngineError, ValidationError, ComputationError, NotFoundError, StateError
)
from ..logging_config import setup_logging
from .accounts import router as accounts_router
from .debts import router as debts_router


ERROR_STATUS_CODES = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (StateError, 409),
    (ComputationError, 422),
)


def error_status_code(exc: DebtEngineError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


def create_app(engine: Optional[DebtEngine] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    engine = engine or DebtEngine()
    setup_logging(engine.config.log_level, engine.config.log_format)

    app = FastAPI(
        title="Debt Amortization Engine API",
        description="Amortization schedules, payment posting and monthly auto-updates for debt accounts",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DebtEngineError)
    async def handle_engine_error(request: Request, exc: DebtEngineError):
        content = {"error": type(exc).__name__, "detail": str(exc)}
        if isinstance(exc, ValidationError):
            content["field"] = exc.field
            content["detail"] = exc.message
        return JSONResponse(status_code=error_status_code(exc), content=content)

    # Include routers
    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])
    app.include_router(debts_router, prefix="/debts", tags=["Debts"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "debt_engine_api",
            "version": __version__
        }

    return app
