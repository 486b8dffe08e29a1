"""FastAPI app factory for the mail API."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from draftsync.api.routes import auth_router, mail_router
from draftsync.auth.identity import IdentityVerifier
from draftsync.background import BackgroundSyncService
from draftsync.services.email_service import EmailService
from draftsync.utils.logger import get_logger

logger = get_logger("draftsync.api.server")


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Start the background poller (if any) in the server's event loop; stop it on shutdown."""
    background: Optional[BackgroundSyncService] = getattr(app.state, "background", None)
    if background is not None:
        background.start()
    logger.info("api.lifespan.started", background=background is not None)

    yield

    if background is not None:
        await background.stop()
    logger.info("api.lifespan.stopped")


def create_app(
    service: EmailService,
    verifier: IdentityVerifier,
    background: Optional[BackgroundSyncService] = None,
) -> FastAPI:
    app = FastAPI(title="draftsync", version="0.1.0", lifespan=_lifespan)
    app.state.email_service = service
    app.state.identity_verifier = verifier
    app.state.background = background

    app.include_router(mail_router)
    app.include_router(auth_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
