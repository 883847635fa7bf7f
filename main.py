import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.actors import router as actors_router
from api.payments import router as payments_router
from api.policies import router as policies_router
from api.pricing import router as pricing_router
from config import Settings, settings as default_settings
from database import Database
from services.auth import JWTAuthVerifier
from services.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = Database(settings)
        app.state.database = database
        app.state.verifier = JWTAuthVerifier(settings.jwt_secret, settings.jwt_algorithm)
        await database.init_db()
        yield
        await database.dispose()

    app = FastAPI(
        title=settings.app_name,
        description="Rental guarantee policy workflow API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(policies_router)
    app.include_router(actors_router)
    app.include_router(payments_router)
    app.include_router(pricing_router)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        code = getattr(exc, "code", None)
        if code == ErrorCode.STORAGE_UNAVAILABLE:
            logger.error("Storage unavailable on %s %s: %s", request.method, request.url.path, exc)
            return JSONResponse(status_code=503, content={"detail": {"code": code.value, "message": str(exc)}})
        logger.exception("Unhandled application error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": {"message": str(exc)}})

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
