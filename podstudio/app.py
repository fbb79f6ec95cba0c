import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from podstudio.application import get_batch_service, get_edit_session_manager
from podstudio.infrastructure import (
    ElevatedAccessBroker,
    GeminiImageClient,
    configure_access_broker,
    configure_generation_service,
)
from podstudio.routes import access, batches, edits, export


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number") from None


def create_app() -> FastAPI:
    log_level = os.getenv("LOG_LEVEL", "INFO")
    logging.basicConfig(level=getattr(logging, log_level.upper(), logging.INFO))

    app = FastAPI(title="POD Studio Batch Redesign API", version="0.1.0")

    fetch_timeout = _float_env("ASSET_FETCH_TIMEOUT_SECONDS", 30.0)
    get_batch_service().configure(fetch_timeout=fetch_timeout)

    history_limit = int(_float_env("EDIT_HISTORY_LIMIT", 0)) or None
    get_edit_session_manager().configure(history_limit=history_limit)

    api_key = os.getenv("GEMINI_API_KEY")
    pro_key = os.getenv("GEMINI_PRO_API_KEY")
    if api_key:
        client = GeminiImageClient(
            api_key,
            enhanced_api_key=pro_key,
            api_base=os.getenv("GEMINI_API_BASE") or "https://generativelanguage.googleapis.com",
            standard_model=os.getenv("GEMINI_STANDARD_MODEL") or "gemini-2.5-flash-image",
            enhanced_model=os.getenv("GEMINI_ENHANCED_MODEL") or "gemini-3-pro-image-preview",
            timeout=_float_env("GENERATION_TIMEOUT_SECONDS", 120.0),
        )
        configure_generation_service(client)
        configure_access_broker(
            ElevatedAccessBroker(client.set_enhanced_api_key, granted=client.has_enhanced_access)
        )

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    if not origins:
        origins = ["http://localhost:3000", "http://127.0.0.1:3000"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(batches.router, prefix="/api")
    app.include_router(edits.router, prefix="/api")
    app.include_router(access.router, prefix="/api")
    app.include_router(export.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "POD Studio Batch Redesign API",
                "docs": "/docs",
                "health": "/api/batches",
            }
        )

    return app


app = create_app()
