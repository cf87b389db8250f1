"""Wallet linking: service rules and endpoints."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from teaedu.wallets.service import get_reward_wallet, link_wallet, list_wallets, set_primary_wallet
from tests.conftest import FakeTokenGateway, as_utc, auth_headers

WALLET_A = "0x" + "a" * 40
WALLET_B = "0x" + "b" * 40
CHECKSUMMED = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


class TestWalletService:
    async def test_first_wallet_is_primary(self, db_session: AsyncSession):
        first, created = await link_wallet(db_session, "user-1", WALLET_A)
        second, _ = await link_wallet(db_session, "user-1", WALLET_B)
        assert created
        assert first.is_primary
        assert not second.is_primary

    async def test_relink_keeps_connected_at(self, db_session: AsyncSession):
        then = datetime(2026, 1, 1, tzinfo=timezone.utc)
        wallet, _ = await link_wallet(db_session, "user-1", WALLET_A, now=then)
        again, created = await link_wallet(db_session, "user-1", WALLET_A, wallet_type="walletconnect")
        assert not created
        assert again.id == wallet.id
        assert as_utc(again.connected_at) == then
        assert again.wallet_type == "walletconnect"

    async def test_address_stored_lowercase(self, db_session: AsyncSession):
        wallet, _ = await link_wallet(db_session, "user-1", CHECKSUMMED)
        assert wallet.wallet_address == CHECKSUMMED.lower()
        # Same address in another casing is the same wallet
        _, created = await link_wallet(db_session, "user-1", CHECKSUMMED.lower())
        assert not created

    async def test_invalid_address(self, db_session: AsyncSession):
        with pytest.raises(ValueError):
            await link_wallet(db_session, "user-1", "0xnot-an-address")

    async def test_ordering_primary_then_oldest(self, db_session: AsyncSession):
        now = datetime(2026, 3, 1, tzinfo=timezone.utc)
        await link_wallet(db_session, "user-1", WALLET_A, now=now)
        await link_wallet(db_session, "user-1", WALLET_B, now=now - timedelta(days=5))
        await link_wallet(db_session, "user-1", "0x" + "c" * 40, now=now - timedelta(days=9))
        wallets = await list_wallets(db_session, "user-1")
        assert [w.wallet_address for w in wallets] == [WALLET_A, "0x" + "c" * 40, WALLET_B]

    async def test_set_primary_is_exclusive(self, db_session: AsyncSession):
        await link_wallet(db_session, "user-1", WALLET_A)
        await link_wallet(db_session, "user-1", WALLET_B)
        await set_primary_wallet(db_session, "user-1", WALLET_B)
        db_session.expire_all()
        wallets = await list_wallets(db_session, "user-1")
        assert [w.is_primary for w in wallets] == [True, False]
        assert (await get_reward_wallet(db_session, "user-1")).wallet_address == WALLET_B

    async def test_set_primary_unknown(self, db_session: AsyncSession):
        with pytest.raises(LookupError):
            await set_primary_wallet(db_session, "user-1", WALLET_A)

    async def test_no_wallet(self, db_session: AsyncSession):
        assert await get_reward_wallet(db_session, "user-1") is None


class TestWalletEndpoints:
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/wallets")
        assert response.status_code == 401
        assert response.json() == {"detail": "Authentication required"}

    async def test_link_and_list(self, client: AsyncClient):
        headers = auth_headers("user-1")
        response = await client.post("/api/v1/wallets", json={"wallet_address": CHECKSUMMED}, headers=headers)
        assert response.status_code == 200
        assert response.json()["wallet_address"] == CHECKSUMMED.lower()
        assert response.json()["is_primary"] is True

        listed = await client.get("/api/v1/wallets", headers=headers)
        assert [w["wallet_address"] for w in listed.json()["wallets"]] == [CHECKSUMMED.lower()]

    async def test_link_invalid_checksum(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/wallets",
            json={"wallet_address": "0xF39Fd6e51aad88F6F4ce6aB8827279cffFb92266"},
            headers=auth_headers("user-1"),
        )
        assert response.status_code == 400

    async def test_wallets_are_per_user(self, client: AsyncClient):
        await client.post("/api/v1/wallets", json={"wallet_address": WALLET_A}, headers=auth_headers("user-1"))
        listed = await client.get("/api/v1/wallets", headers=auth_headers("user-2"))
        assert listed.json()["wallets"] == []

    async def test_make_primary(self, client: AsyncClient):
        headers = auth_headers("user-1")
        await client.post("/api/v1/wallets", json={"wallet_address": WALLET_A}, headers=headers)
        await client.post("/api/v1/wallets", json={"wallet_address": WALLET_B}, headers=headers)
        response = await client.post(f"/api/v1/wallets/{WALLET_B}/primary", headers=headers)
        assert response.status_code == 200
        assert response.json()["is_primary"] is True

        missing = await client.post(f"/api/v1/wallets/{'0x' + 'c' * 40}/primary", headers=headers)
        assert missing.status_code == 404

    async def test_balance(self, client: AsyncClient, fake_token: FakeTokenGateway):
        headers = auth_headers("user-1")
        await client.post("/api/v1/wallets", json={"wallet_address": WALLET_A}, headers=headers)
        fake_token.holdings[WALLET_A] = 100 * 10**6
        response = await client.get(f"/api/v1/wallets/{WALLET_A}/balance", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"wallet_address": WALLET_A, "native_balance": "2", "tea_balance": "100"}

    async def test_balance_of_unlinked_wallet(self, client: AsyncClient):
        response = await client.get(f"/api/v1/wallets/{WALLET_A}/balance", headers=auth_headers("user-1"))
        assert response.status_code == 404

    async def test_concurrent_links_of_same_address(self, client: AsyncClient):
        headers = auth_headers("user-1")
        responses = await asyncio.gather(
            *(client.post("/api/v1/wallets", json={"wallet_address": WALLET_A}, headers=headers) for _ in range(2))
        )
        assert [r.status_code for r in responses] == [200, 200]
        assert {r.json()["id"] for r in responses} == {responses[0].json()["id"]}

        listed = await client.get("/api/v1/wallets", headers=headers)
        assert len(listed.json()["wallets"]) == 1
        assert listed.json()["wallets"][0]["is_primary"] is True
