# backend/main.py

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from db import engine, Base

# IMPORT MODELS so that create_all() sees them
import models

from auth import router as auth_router
from chat_router import router as chat_router
from conversation_router import router as conv_router
from document_router import router as document_router
from mfa_router import router as mfa_router
from rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


def configure_logging(level: str = config.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


async def invalid_request_handler(request: Request, exc: RequestValidationError):
    # Schema details stay server-side
    logger.info(f"Rejected request to {request.url.path}: {len(exc.errors())} validation error(s)")
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request. Please check your input and try again."},
    )


def create_app(rate_limiter: RateLimiter = None) -> FastAPI:
    configure_logging()

    # Create tables (users, conversations, messages, documents, mfa_recovery_codes)
    Base.metadata.create_all(bind=engine)

    app = FastAPI(title="DocuChat API")
    app.state.rate_limiter = rate_limiter or RateLimiter(
        max_requests=config.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=config.RATE_LIMIT_WINDOW_SECONDS,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, invalid_request_handler)

    @app.get("/")
    def root():
        return {"message": "Backend is running"}

    app.include_router(auth_router)
    app.include_router(conv_router)
    app.include_router(chat_router)
    app.include_router(document_router)
    app.include_router(mfa_router)
    return app


app = create_app()
