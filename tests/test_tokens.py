from __future__ import annotations

import asyncio

import httpx
import pytest

from tasksync.errors import AuthExpired, NotReady, Unauthorized
from tasksync.session_store import MemorySessionStore
from tasksync.sync.tokens import TokenManager


def test_concurrent_ensure_fresh_shares_one_refresh(fake_api, make_session, make_session_payload):
    async def scenario():
        release = asyncio.Event()

        async def refresh(request):
            await release.wait()
            return httpx.Response(200, json=make_session_payload(access_token="access-2"))

        fake_api.add("POST", "/auth/refresh", refresh)
        store = MemorySessionStore(make_session(expires_in=10))
        async with fake_api.client() as client:
            tokens = TokenManager(client, store)
            waiters = [asyncio.create_task(tokens.ensure_fresh()) for _ in range(5)]
            await asyncio.sleep(0)
            assert tokens.refreshing is True
            release.set()
            results = await asyncio.gather(*waiters)
        return tokens, store, results

    tokens, store, results = asyncio.run(scenario())

    assert fake_api.count("POST", "/auth/refresh") == 1
    assert {session.access_token for session in results} == {"access-2"}
    assert tokens.refreshing is False
    assert store.load().access_token == "access-2"


def test_refresh_sends_known_refresh_token(fake_api, make_session, make_session_payload, read_json):
    fake_api.add(
        "POST", "/auth/refresh", httpx.Response(200, json=make_session_payload(refresh_token=None))
    )

    async def scenario():
        async with fake_api.client() as client:
            tokens = TokenManager(client, MemorySessionStore(make_session()))
            return await tokens.refresh()

    fresh = asyncio.run(scenario())

    assert read_json(fake_api.calls[0]) == {"refreshToken": "refresh-1"}
    # The server decides whether a new refresh token exists; nothing is carried over.
    assert fresh.refresh_token is None


def test_refresh_failure_forces_logout(fake_api, make_session):
    fake_api.add(
        "POST", "/auth/refresh", httpx.Response(401, json={"message": "Refresh token expired"})
    )
    store = MemorySessionStore(make_session())
    invalid: list[bool] = []

    async def scenario():
        async with fake_api.client() as client:
            tokens = TokenManager(client, store, on_invalid=lambda: invalid.append(True))
            with pytest.raises(AuthExpired, match="Refresh token expired"):
                await tokens.refresh()
            return tokens

    tokens = asyncio.run(scenario())

    assert invalid == [True]
    assert tokens.current_session() is None
    assert store.load() is None
    assert tokens.generation == 1


def test_refresh_without_session_does_not_call_server(fake_api):
    async def scenario():
        async with fake_api.client() as client:
            tokens = TokenManager(client, MemorySessionStore())
            with pytest.raises(AuthExpired):
                await tokens.refresh()

    asyncio.run(scenario())

    assert fake_api.calls == []


def test_logout_during_refresh_discards_result(fake_api, make_session, make_session_payload):
    store = MemorySessionStore(make_session())

    async def scenario():
        release = asyncio.Event()

        async def refresh(request):
            await release.wait()
            return httpx.Response(200, json=make_session_payload(access_token="access-2"))

        fake_api.add("POST", "/auth/refresh", refresh)
        fake_api.add("POST", "/auth/logout", httpx.Response(204))
        async with fake_api.client() as client:
            tokens = TokenManager(client, store)
            pending = asyncio.create_task(tokens.refresh())
            await asyncio.sleep(0)
            await tokens.logout()
            release.set()
            with pytest.raises(AuthExpired):
                await pending
            return tokens

    tokens = asyncio.run(scenario())

    assert tokens.current_session() is None
    assert store.load() is None


def test_ensure_fresh_skips_refresh_outside_skew(fake_api, make_session):
    async def scenario():
        async with fake_api.client() as client:
            tokens = TokenManager(client, MemorySessionStore(make_session()), skew_s=60)
            return await tokens.ensure_fresh()

    session = asyncio.run(scenario())

    assert session.access_token == "access-1"
    assert fake_api.calls == []


def test_ensure_fresh_refreshes_inside_skew(fake_api, make_session, make_session_payload):
    fake_api.add(
        "POST", "/auth/refresh", httpx.Response(200, json=make_session_payload(access_token="a2"))
    )

    async def scenario():
        async with fake_api.client() as client:
            store = MemorySessionStore(make_session(expires_in=30))
            tokens = TokenManager(client, store, skew_s=60)
            return await tokens.ensure_fresh()

    assert asyncio.run(scenario()).access_token == "a2"


def test_ensure_fresh_requires_session(fake_api):
    async def scenario():
        async with fake_api.client() as client:
            tokens = TokenManager(client, MemorySessionStore())
            with pytest.raises(NotReady):
                await tokens.ensure_fresh()

    asyncio.run(scenario())


def test_login_persists_session(fake_api, make_session_payload, read_json):
    fake_api.add("POST", "/auth/login", httpx.Response(200, json=make_session_payload()))
    store = MemorySessionStore()

    async def scenario():
        async with fake_api.client() as client:
            tokens = TokenManager(client, store)
            return await tokens.login("  Ada@Example.com ", "secret")

    session = asyncio.run(scenario())

    assert session.user.name == "Ada Captain"
    assert store.load() == session
    assert read_json(fake_api.calls[0]) == {"email": "ada@example.com", "password": "secret"}


def test_login_rejected_stores_nothing(fake_api):
    fake_api.add(
        "POST", "/auth/login", httpx.Response(401, json={"message": "Invalid credentials"})
    )
    store = MemorySessionStore()

    async def scenario():
        async with fake_api.client() as client:
            tokens = TokenManager(client, store)
            with pytest.raises(Unauthorized, match="Invalid credentials"):
                await tokens.login("ada@example.com", "wrong")
            return tokens

    tokens = asyncio.run(scenario())

    assert tokens.current_session() is None
    assert store.load() is None


def test_login_requires_both_fields(fake_api):
    async def scenario():
        async with fake_api.client() as client:
            tokens = TokenManager(client, MemorySessionStore())
            with pytest.raises(NotReady):
                await tokens.login("", "secret")

    asyncio.run(scenario())

    assert fake_api.calls == []


def test_logout_clears_locally_even_when_server_fails(fake_api, make_session):
    fake_api.add("POST", "/auth/logout", httpx.Response(500))
    store = MemorySessionStore(make_session())

    async def scenario():
        async with fake_api.client() as client:
            tokens = TokenManager(client, store)
            await tokens.logout()
            return tokens

    tokens = asyncio.run(scenario())

    assert tokens.current_session() is None
    assert store.load() is None
    assert fake_api.count("POST", "/auth/logout") == 1
