"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.credentials.auth_admin import AuthAdminCredentialStore
from infrastructure.http_client import HttpClient
from infrastructure.redis_client import create_redis_client
from infrastructure.sms.twilio import TwilioSmsProvider
from repositories.account_repository import PROFILES_COLLECTION, AccountRepository
from repositories.otp_repository import OTP_COLLECTION, OtpRepository
from repositories.rate_counter_repository import (
    RATE_COUNTER_COLLECTION,
    MongoRateCounterRepository,
    RedisRateCounterRepository,
)
from routes.health_routes import router as health_router
from routes.password_reset_routes import router as password_reset_router
from services.account_resolver import AccountResolver
from services.otp_issuer import OtpIssuer
from services.otp_verifier import OtpVerifier
from services.password_reset_service import PasswordResetService
from services.rate_limiter import RateLimiter
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
        )
    setup_logging(settings.logging, sentry_enabled=bool(settings.sentry.sentry_dsn))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        db = mongo_client[settings.db.db_name]
        app.state.mongo_client = mongo_client
        app.state.db = db
        app.state.settings = settings

        # Redis is optional; rate counters fall back to MongoDB without it
        redis_client = await create_redis_client(settings.redis.redis_uri)
        app.state.redis = redis_client

        otp_repository = OtpRepository(db[OTP_COLLECTION])
        await otp_repository.ensure_indexes()

        rate_limit = settings.rate_limit
        if redis_client is not None:
            rate_store = RedisRateCounterRepository(
                redis_client,
                ttl_seconds=max(
                    rate_limit.otp_hourly_window_seconds,
                    rate_limit.otp_daily_window_seconds,
                ),
            )
            app.state.rate_limit_store = "redis"
        else:
            rate_store = MongoRateCounterRepository(db[RATE_COUNTER_COLLECTION])
            await rate_store.ensure_indexes()
            app.state.rate_limit_store = "mongodb"

        sms_http = HttpClient(timeout=settings.sms.sms_timeout_seconds)
        credential_http = HttpClient(
            timeout=settings.credential_store.credential_store_timeout_seconds
        )

        accounts = AccountResolver(AccountRepository(db[PROFILES_COLLECTION]))
        app.state.password_reset_service = PasswordResetService(
            rate_limiter=RateLimiter(rate_store, rate_limit),
            accounts=accounts,
            issuer=OtpIssuer(
                otp_repository,
                TwilioSmsProvider(settings.sms, sms_http, app_name=settings.app_name),
                settings.otp,
                delivery_timeout=settings.sms.sms_timeout_seconds,
            ),
            verifier=OtpVerifier(
                otp_repository,
                accounts,
                AuthAdminCredentialStore(settings.credential_store, credential_http),
                settings.otp,
                update_timeout=settings.credential_store.credential_store_timeout_seconds,
            ),
            calling_code=settings.phone.default_calling_code,
        )
        log.info(
            "app_started",
            env=settings.env,
            rate_limit_store=app.state.rate_limit_store,
            sms_configured=settings.sms.is_configured,
        )

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await sms_http.aclose()
        await credential_http.aclose()
        if redis_client is not None:
            await redis_client.aclose()
        await mongo_client.close()

    app = FastAPI(
        title=f"{settings.app_name} password reset",
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    # the storefront frontend calls these endpoints cross-origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(password_reset_router)

    return app
