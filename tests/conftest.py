"""Shared fixtures: in-memory database, a user with one Binance account, gateway fakes."""

import os

from cryptography.fernet import Fernet

# Settings are read at import time; point them at throwaway values first.
os.environ["TD_DATABASE_URL"] = "sqlite://"
os.environ.setdefault("TD_ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("TD_JWT_SECRET", "test-secret")

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from tradedesk.database import create_db_and_tables
from tradedesk.models.account import TradingAccount
from tradedesk.models.user import User
from tradedesk.services.auth import hash_password
from tradedesk.services.encryption import encrypt_secret
from tradedesk.services.gateway import GatewayAction, GatewayConfig


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def user(session) -> User:
    u = User(username="trader", hashed_password=hash_password("correct horse"))
    session.add(u)
    session.commit()
    session.refresh(u)
    return u


@pytest.fixture
def account(session, user) -> TradingAccount:
    acct = TradingAccount(
        user_id=user.id,
        name="Main",
        platform="binance",
        api_key="test-key",
        api_secret_encrypted=encrypt_secret("test-secret"),
    )
    session.add(acct)
    session.commit()
    session.refresh(acct)
    return acct


@pytest.fixture
def config() -> GatewayConfig:
    return GatewayConfig()


@pytest.fixture
def fake_gateway():
    """Build an AsyncMock standing in for gateway.call_gateway.

    `responses` maps action names to a dict (returned) or an exception
    (raised). Calls are recorded on the mock as usual.
    """

    def build(responses: dict) -> AsyncMock:
        async def call(action, account, data=None, config=None):
            name = GatewayAction(action).value
            if name not in responses:
                raise AssertionError(f"unexpected gateway call: {name}")
            outcome = responses[name]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        return AsyncMock(side_effect=call)

    return build
