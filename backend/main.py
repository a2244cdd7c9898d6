"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import open_banking, webhooks
from api.webhooks import WEBHOOK_PATH
from integrations.open_banking_config import OpenBankingConfig
from logging_config import setup_logging
from services.webhook_signature import load_public_key

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate open banking configuration on startup.

    Missing credentials or an unusable webhook key are fatal.
    """
    config = OpenBankingConfig.from_settings()
    load_public_key(config.webhook_public_key)
    logger.info("Open banking configured against %s", config.base_url)
    yield


class FrontendCORSMiddleware(CORSMiddleware):
    """CORS for the frontend origins, skipping the given path prefixes.

    The webhook route answers its own preflight with permissive headers.
    """

    def __init__(self, app, *, exclude_prefixes: tuple[str, ...] = (), **kwargs):
        super().__init__(app, **kwargs)
        self.exclude_prefixes = exclude_prefixes

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and scope["path"].startswith(self.exclude_prefixes):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


app = FastAPI(
    title="CPA Open Banking",
    description="Bank-account linkage for CPA practice clients",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration for frontend
app.add_middleware(
    FrontendCORSMiddleware,
    exclude_prefixes=(WEBHOOK_PATH,),
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(open_banking.router)
app.include_router(webhooks.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
