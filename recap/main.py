#!/usr/bin/env python3
import logging
import secrets
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from recap.api import router as api_router
from recap.config import settings
from recap.database import init_db

logger = logging.getLogger(__name__)

SESSION_SECRET = settings.session_secret
if not SESSION_SECRET:
    # Sessions will not survive a restart
    logger.warning("SESSION_SECRET is not set; generating a temporary one")
    SESSION_SECRET = secrets.token_urlsafe(32)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup; log on shutdown."""
    init_db()  # Create tables if they don't exist
    logger.info(f"Recap started (storage backend: {settings.storage_backend})")
    yield
    logger.info("Application shutting down")


app = FastAPI(title="Recap", lifespan=lifespan)

# 1) Session Middleware (for request.session to work)
app.add_middleware(SessionMiddleware, secret_key=SESSION_SECRET)

# 2) Respect the X-Forwarded-* headers from a reverse proxy
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

# 3) Restrict valid hosts
app.add_middleware(TrustedHostMiddleware, allowed_hosts=[
    settings.external_hostname,
    "localhost",
    "127.0.0.1"
])


app.include_router(api_router, prefix="/api")
