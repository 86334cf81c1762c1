"""FastAPI application factory"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rra_agreements.api.routes import agreement
from rra_agreements.api.session_store import SessionStore
from rra_agreements.utils.config import get_settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup: start session eviction background task
    task = asyncio.create_task(_evict_loop())
    yield
    # Shutdown: cancel eviction task, flush open wizards
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    await agreement.store.close_all()


async def _evict_loop():
    """Periodically evict expired sessions"""
    while True:
        await asyncio.sleep(300)  # every 5 minutes
        await agreement.store.evict_expired()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    settings = get_settings()

    app = FastAPI(
        title="RRA 2025 Agreement API",
        description="Compliance checks and tenancy agreement generation under the Renters' Rights Act 2025",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS: allow all for MVP
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    agreement.init_store(SessionStore(
        ttl_minutes=settings.wizard_session_ttl_minutes,
        max_sessions=settings.wizard_max_sessions,
    ))
    app.include_router(agreement.router)

    return app
