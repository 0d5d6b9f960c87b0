# main.py
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
from routers import face_match
from config import settings
from models.schemas import ErrorResponse, HealthResponse
from services.providers.registry import build_adapter
from services.verification_gateway import VerificationGateway
from utils.exceptions import GatewayError
import logging
from logging.handlers import RotatingFileHandler
import os


def configure_logging():
    os.makedirs(settings.LOG_DIR, exist_ok=True)

    file_handler = RotatingFileHandler(
        os.path.join(settings.LOG_DIR, "app.log"),
        maxBytes=10485760,  # 10MB
        backupCount=5
    )
    console_handler = logging.StreamHandler()
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        handlers=[file_handler, console_handler]
    )


configure_logging()
logger = logging.getLogger(__name__)


def build_gateway() -> VerificationGateway:
    provider_config = settings.provider_config()
    adapter = build_adapter(provider_config)
    if not provider_config.api_key:
        logger.warning(f"Provider credentials NOT SET for mode '{provider_config.mode}'")
    logger.info(f"Face Match gateway ready: mode={provider_config.mode} ({adapter.mode_tag})")
    return VerificationGateway(provider_config, adapter)


def create_app(gateway: Optional[VerificationGateway] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        if getattr(app.state, "gateway", None) is None:
            app.state.gateway = build_gateway()
        yield

    app = FastAPI(
        title=settings.API_TITLE,
        version=settings.API_VERSION,
        lifespan=lifespan
    )
    app.state.gateway = gateway

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(face_match.router)

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(
                ErrorResponse(error=exc.message, detail=exc.body),
                exclude_none=True,
            ),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Face Match Error: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Internal server error").model_dump(exclude_none=True),
        )

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check(request: Request):
        return HealthResponse(
            mode=request.app.state.gateway.mode,
            timestamp=datetime.now(timezone.utc),
        )

    @app.get("/")
    async def root(request: Request):
        return {
            "message": "Face Match Verification API v1",
            "mode": request.app.state.gateway.mode,
            "endpoints": {
                "face_match": "POST /api/face-match",
                "health": "GET /api/health"
            }
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=settings.DEBUG
    )
