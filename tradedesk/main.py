"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tradedesk.config import settings
from tradedesk.database import create_db_and_tables
from tradedesk.utils.logging import setup_logging
from tradedesk.api import accounts, auth, bots, gateway, platforms, system, trades


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    setup_logging()
    create_db_and_tables()
    yield


app = FastAPI(
    title="Trade Desk",
    description="Brokerage account reconciliation, trading-mode control and order submission",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(auth.router)
app.include_router(accounts.router)
app.include_router(bots.router)
app.include_router(trades.router)
app.include_router(platforms.router)
app.include_router(system.router)
app.include_router(gateway.router)
