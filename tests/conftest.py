"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone

# Must be set before teaedu.main builds the module-level app
os.environ.setdefault("TEA_LOG_FORMAT", "console")
os.environ.setdefault("TEA_AUTH_JWT_SECRET", "test-jwt-secret-at-least-32-bytes-long")

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from teaedu.auth.jwt import create_access_token
from teaedu.chain.client import get_token_gateway
from teaedu.chain.token import TransferReceipt
from teaedu.chain.units import to_base_units
from teaedu.config import get_settings
from teaedu.database import close_db, get_engine, get_session_factory, init_db
from teaedu.db.base import Base
from teaedu.db.models import QuizCompletion
from teaedu.main import create_app
from teaedu.wallets.service import link_wallet

DISTRIBUTOR = "0x" + "d" * 40


class FakeTokenGateway:
    """In-memory stand-in for TokenGateway. Records every transfer it is asked to make."""

    def __init__(self, balance: int = 10_000 * 10**6, decimals: int = 6) -> None:
        self.decimals = decimals
        self.balance = balance
        self.can_transfer = True
        self.distributor_address = DISTRIBUTOR
        self.transfers: list[tuple[str, int]] = []
        self.holdings: dict[str, int] = {}
        self.votes: dict[str, int] = {}
        self.delegations: dict[str, str] = {}
        self.receipt_succeeded = True
        self.send_error: Exception | None = None
        self.receipt_error: Exception | None = None
        self.before_receipt: Callable[[str], Awaitable[None]] | None = None

    def to_base_units(self, amount: int) -> int:
        return to_base_units(amount, self.decimals)

    async def balance_of(self, address: str) -> int:
        await asyncio.sleep(0)
        if address == self.distributor_address:
            return self.balance
        return self.holdings.get(address, 0)

    async def native_balance(self, address: str) -> int:
        return 2 * 10**18

    async def get_votes(self, address: str) -> int:
        return self.votes.get(address, 0)

    async def delegates(self, address: str) -> str | None:
        return self.delegations.get(address)

    async def send_transfer(self, to: str, amount: int) -> str:
        await asyncio.sleep(0)
        if self.send_error is not None:
            raise self.send_error
        self.transfers.append((to, amount))
        self.balance -= amount
        return "0x" + f"{len(self.transfers):064x}"

    async def wait_for_receipt(self, tx_hash: str) -> TransferReceipt:
        await asyncio.sleep(0)
        if self.before_receipt is not None:
            await self.before_receipt(tx_hash)
        if self.receipt_error is not None:
            raise self.receipt_error
        return TransferReceipt(tx_hash=tx_hash, block_number=1234, succeeded=self.receipt_succeeded)


def auth_headers(user_id: str, email: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, email)}"}


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[None, None]:
    """Fresh SQLite file database with all tables created."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for test setup and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest.fixture
def fake_token() -> FakeTokenGateway:
    return FakeTokenGateway()


@pytest.fixture
def app(fake_token: FakeTokenGateway) -> FastAPI:
    """App with the token gateway replaced by the in-memory fake."""
    get_settings.cache_clear()
    application = create_app()
    application.dependency_overrides[get_token_gateway] = lambda: fake_token
    return application


@pytest_asyncio.fixture
async def client(database: None, app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client. Redis is not initialized, so rate limiting is off."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def make_eligible(
    db: AsyncSession,
    user_id: str,
    address: str,
    wallet_age: timedelta = timedelta(days=10),
    quiz_passed: bool = True,
) -> None:
    """Seed a passed module 3 quiz and a wallet linked ``wallet_age`` ago."""
    now = datetime.now(timezone.utc)
    db.add(
        QuizCompletion(
            user_id=user_id,
            quiz_id="module-3-quiz",
            passed=quiz_passed,
            score=100 if quiz_passed else 40,
            completed_at=now,
        )
    )
    await link_wallet(db, user_id, address, now=now - wallet_age)
    await db.commit()


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
