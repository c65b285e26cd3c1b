"""Unit tests for the auth module and the backend client."""
import json

import httpx
import pytest

from streamchat.auth import SessionAuthenticator
from streamchat.credentials import Credential
from streamchat.credentials.in_memory import InMemoryCredentialStore
from streamchat.errors import AuthenticationError, StorageError


def _auth_ok(calls: list[httpx.Request], expires_at: int):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(
            200,
            json={"token": f"tok-{len(calls)}", "session_id": "sess-new", "expires_at": expires_at},
        )
    return handler


class BrokenStore(InMemoryCredentialStore):
    """Store whose storage medium has failed."""

    def __init__(self, fail_load: bool = True, fail_save: bool = False):
        super().__init__()
        self.fail_load = fail_load
        self.fail_save = fail_save

    async def load(self):
        if self.fail_load:
            raise StorageError("disk unavailable")
        return await super().load()

    async def save(self, credential):
        if self.fail_save:
            raise StorageError("disk full")
        await super().save(credential)


class TestSessionAuthenticator:
    """Tests for SessionAuthenticator.ensure_valid and friends."""

    @pytest.mark.asyncio
    async def test_fresh_credential_is_reused(self, make_backend, fresh_credential, now):
        calls: list[httpx.Request] = []
        auth = SessionAuthenticator(
            InMemoryCredentialStore(fresh_credential),
            make_backend(_auth_ok(calls, int(now) + 7200)),
        )

        assert await auth.ensure_valid(now) == fresh_credential
        assert calls == []

    @pytest.mark.asyncio
    async def test_credential_inside_refresh_margin_is_refreshed(self, make_backend, now):
        calls: list[httpx.Request] = []
        expiring = Credential(token="old", session_id="sess-1", expires_at=int(now) + 60)
        store = InMemoryCredentialStore(expiring)
        auth = SessionAuthenticator(store, make_backend(_auth_ok(calls, int(now) + 7200)),
                                    refresh_margin=300)

        credential = await auth.ensure_valid(now)

        assert len(calls) == 1
        assert credential.token == "tok-1"
        assert await store.load() == credential
        assert auth.current == credential

    @pytest.mark.asyncio
    async def test_missing_credential_triggers_authentication(self, make_backend, now):
        calls: list[httpx.Request] = []
        auth = SessionAuthenticator(
            InMemoryCredentialStore(),
            make_backend(_auth_ok(calls, int(now) + 7200)),
            user_id="mobile-user",
            password="",
        )

        await auth.ensure_valid(now)

        request = calls[0]
        assert request.method == "POST"
        assert request.url.path == "/auth"
        assert json.loads(request.content) == {"user_id": "mobile-user", "password": ""}

    @pytest.mark.asyncio
    async def test_rejection_raises_without_retry(self, make_backend, now):
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(401, json={"message": "bad credentials"})

        auth = SessionAuthenticator(InMemoryCredentialStore(), make_backend(handler))

        with pytest.raises(AuthenticationError, match="bad credentials") as exc_info:
            await auth.ensure_valid(now)

        assert len(calls) == 1
        assert exc_info.value.status_code == 401
        assert not exc_info.value.is_retryable()

    @pytest.mark.asyncio
    async def test_unreachable_backend_raises(self, make_backend, now):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        auth = SessionAuthenticator(InMemoryCredentialStore(), make_backend(handler))

        with pytest.raises(AuthenticationError) as exc_info:
            await auth.ensure_valid(now)

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert exc_info.value.is_retryable()

    @pytest.mark.parametrize("body", [
        {"session_id": "s", "expires_at": 1},
        {"token": "t", "expires_at": 1},
        {"token": "t", "session_id": "s"},
        {"token": "", "session_id": "s", "expires_at": 1},
    ])
    @pytest.mark.asyncio
    async def test_incomplete_response_raises(self, make_backend, now, body):
        auth = SessionAuthenticator(
            InMemoryCredentialStore(),
            make_backend(lambda request: httpx.Response(200, json=body)),
        )

        with pytest.raises(AuthenticationError, match="invalid authentication response"):
            await auth.ensure_valid(now)

    @pytest.mark.asyncio
    async def test_non_json_response_raises(self, make_backend, now):
        auth = SessionAuthenticator(
            InMemoryCredentialStore(),
            make_backend(lambda request: httpx.Response(200, text="<html>")),
        )

        with pytest.raises(AuthenticationError):
            await auth.ensure_valid(now)

    @pytest.mark.asyncio
    async def test_unreadable_storage_falls_back_to_authentication(self, make_backend, now):
        calls: list[httpx.Request] = []
        auth = SessionAuthenticator(BrokenStore(), make_backend(_auth_ok(calls, int(now) + 7200)))

        credential = await auth.ensure_valid(now)

        assert credential.token == "tok-1"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_unsaved_credential_is_still_used(self, make_backend, now):
        calls: list[httpx.Request] = []
        store = BrokenStore(fail_load=False, fail_save=True)
        auth = SessionAuthenticator(store, make_backend(_auth_ok(calls, int(now) + 7200)))

        first = await auth.ensure_valid(now)
        second = await auth.ensure_valid(now)

        assert first == second
        assert len(calls) == 1
        assert await store.load() is None

    @pytest.mark.asyncio
    async def test_logout_forgets_credential(self, make_backend, fresh_credential):
        store = InMemoryCredentialStore(fresh_credential)
        auth = SessionAuthenticator(store, make_backend(_auth_ok([], 0)))

        await auth.logout()

        assert auth.current is None
        assert await store.load() is None


class TestBackendClient:
    """Tests for BackendClient endpoints other than /auth."""

    @pytest.mark.asyncio
    async def test_health_ok(self, make_backend):
        client = make_backend(lambda request: httpx.Response(200, json={"status": "ok"}))

        assert await client.check_health() is True

    @pytest.mark.asyncio
    async def test_health_non_2xx(self, make_backend):
        client = make_backend(lambda request: httpx.Response(500))

        assert await client.check_health() is False

    @pytest.mark.asyncio
    async def test_health_unreachable(self, make_backend):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        assert await make_backend(handler).check_health(timeout=0.1) is False

    def test_chat_request_parts(self, make_backend, fresh_credential):
        client = make_backend(lambda request: httpx.Response(200))

        parts = client.chat_request_parts("hello", fresh_credential)

        assert parts["method"] == "POST"
        assert parts["url"] == "http://backend.test/chat"
        assert parts["params"] == {"session_id": "sess-1"}
        assert parts["headers"]["Authorization"] == "Bearer tok-fresh"
        assert parts["headers"]["Accept"] == "text/event-stream"
        assert parts["json"] == {"message": "hello", "session_id": "sess-1", "stream": True}
