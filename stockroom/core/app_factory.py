from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..application.services.credential_service import CredentialService
from ..application.services.product_service import ProductService
from ..application.services.shop_service import ShopService
from ..application.services.verification_service import Clock, VerificationService, utcnow
from ..domain.ports.delivery import CodeDelivery
from ..domain.ports.identity import IdentityVerifier
from ..infrastructure.persistence.sqlite import SQLitePersistence
from ..presentation.api.errors import register_exception_handlers
from ..presentation.api.routers import auth as auth_router
from ..presentation.api.routers import products as products_router
from ..presentation.api.routers import shops as shops_router
from ..services.email_service import EmailService
from ..services.google_identity import GoogleIdentityVerifier
from ..services.token_service import TokenService

logger = logging.getLogger(__name__)


def create_application(
    settings: Optional[Settings] = None,
    *,
    code_delivery: Optional[CodeDelivery] = None,
    identity_verifiers: Optional[Dict[str, IdentityVerifier]] = None,
    clock: Clock = utcnow,
) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(
        title="Stockroom",
        lifespan=_create_lifespan(settings, code_delivery, identity_verifiers, clock),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth_router.router)
    app.include_router(shops_router.router)
    app.include_router(products_router.router)

    @app.get("/health")
    async def health() -> Dict[str, bool]:
        return {"ok": True}

    return app


def _create_lifespan(
    settings: Settings,
    code_delivery: Optional[CodeDelivery],
    identity_verifiers: Optional[Dict[str, IdentityVerifier]],
    clock: Clock,
):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level)
        persistence = SQLitePersistence(
            settings.database_path, timeout=settings.database_timeout_seconds
        )
        token_service = TokenService(
            settings.access_token_secret,
            lifetime=timedelta(days=settings.access_token_exp_days),
        )
        delivery = code_delivery or EmailService(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_username=settings.smtp_username,
            smtp_password=settings.smtp_password,
            from_email=settings.smtp_from_email,
            timeout=settings.smtp_timeout_seconds,
        )
        if identity_verifiers is None:
            verifiers: Dict[str, IdentityVerifier] = {
                "google": GoogleIdentityVerifier(
                    settings.google_client_id, timeout=settings.google_timeout_seconds
                )
            }
        else:
            verifiers = identity_verifiers
        verification_service = VerificationService(
            persistence,
            delivery,
            code_secret=settings.access_token_secret,
            code_length=settings.otp_length,
            ttl_minutes=settings.otp_ttl_minutes,
            resend_cooldown_seconds=settings.otp_resend_cooldown_seconds,
            max_attempts=settings.otp_max_attempts,
            max_resends=settings.otp_max_resends,
            clock=clock,
        )
        credential_service = CredentialService(
            persistence, verification_service, token_service, verifiers
        )
        shop_service = ShopService(persistence)
        product_service = ProductService(persistence, shop_service)

        app.state.container = ApplicationContainer(  # type: ignore[attr-defined]
            settings=settings,
            persistence=persistence,
            token_service=token_service,
            verification_service=verification_service,
            credential_service=credential_service,
            shop_service=shop_service,
            product_service=product_service,
        )
        logger.info("Stockroom started with database %s", settings.database_path)

        try:
            yield
        finally:
            persistence.close()

    return lifespan
