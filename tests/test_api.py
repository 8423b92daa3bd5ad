"""
TaskBoard — API Endpoint Tests
===============================

What:  End-to-end tests through the FastAPI app with HTTPX ASGITransport.
How:   Each test gets a fresh app on its own in-memory SQLite database and a
       fake clock shared by the session issuer.

What we test:
    ✅ Sign-up / sign-in / me / password rotation
    ✅ Every authentication failure collapses into the same 401 body
    ✅ Two users: owner succeeds, other user gets 403, unknown id gets 404
    ✅ owner_id in a request body is ignored
    ✅ Status transitions, idempotent DONE, invalid status → 400
    ✅ Listing filters, X-Total-Count, request IDs, health, rate limiting
    ✅ OpenAPI shows the request body models of hand-validated routes
"""

import dataclasses
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from taskboard.database import init_models
from taskboard.main import create_app

ALICE_PASSWORD = "alice-password-1"
BOB_PASSWORD = "bob-password-12"


@pytest_asyncio.fixture
async def alice_headers(test_client, sign_up_and_in):
    return await sign_up_and_in(test_client, "alice", ALICE_PASSWORD)


@pytest_asyncio.fixture
async def bob_headers(test_client, sign_up_and_in):
    return await sign_up_and_in(test_client, "bob", BOB_PASSWORD)


async def _create_task(client, headers, title="write report", **extra):
    response = await client.post("/api/tasks", json={"title": title, **extra}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


# ══════════════════════════════════════════════════════════════════════════
# Accounts & sessions
# ══════════════════════════════════════════════════════════════════════════


class TestAccounts:

    @pytest.mark.asyncio
    async def test_sign_up_returns_public_user(self, test_client):
        response = await test_client.post(
            "/api/auth/sign-up", json={"username": "alice", "password": ALICE_PASSWORD}
        )
        assert response.status_code == 201
        body = response.json()
        assert body["username"] == "alice"
        uuid.UUID(body["id"])
        assert "password" not in body
        assert "password_hash" not in body

    @pytest.mark.asyncio
    async def test_duplicate_sign_up(self, test_client, alice_headers):
        response = await test_client.post(
            "/api/auth/sign-up", json={"username": "alice", "password": "different-pass"}
        )
        assert response.status_code == 409
        assert response.json()["error"] == "duplicate_username"

    @pytest.mark.asyncio
    async def test_sign_up_validation(self, test_client):
        response = await test_client.post(
            "/api/auth/sign-up", json={"username": "alice", "password": "short"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_sign_in_returns_bearer_token(self, test_client, alice_headers, settings):
        response = await test_client.post(
            "/api/auth/sign-in", json={"username": "alice", "password": ALICE_PASSWORD}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == settings.session_ttl_seconds
        assert body["access_token"]

    @pytest.mark.asyncio
    async def test_me(self, test_client, alice_headers):
        response = await test_client.get("/api/auth/me", headers=alice_headers)
        assert response.status_code == 200
        assert response.json()["username"] == "alice"

    @pytest.mark.asyncio
    async def test_password_rotation(self, test_client, alice_headers):
        response = await test_client.post(
            "/api/auth/password",
            json={"current_password": ALICE_PASSWORD, "new_password": "rotated-password"},
            headers=alice_headers,
        )
        assert response.status_code == 204

        old = await test_client.post(
            "/api/auth/sign-in", json={"username": "alice", "password": ALICE_PASSWORD}
        )
        new = await test_client.post(
            "/api/auth/sign-in", json={"username": "alice", "password": "rotated-password"}
        )
        assert old.status_code == 401
        assert new.status_code == 200

        # Sessions issued before the rotation keep working until they expire
        assert (await test_client.get("/api/auth/me", headers=alice_headers)).status_code == 200

    @pytest.mark.asyncio
    async def test_password_rotation_requires_current_password(self, test_client, alice_headers):
        response = await test_client.post(
            "/api/auth/password",
            json={"current_password": "wrong-password", "new_password": "rotated-password"},
            headers=alice_headers,
        )
        assert response.status_code == 401


class TestUnauthenticated:

    @pytest.mark.asyncio
    async def test_all_failures_look_the_same(self, test_client, alice_headers, clock, settings):
        wrong_password = await test_client.post(
            "/api/auth/sign-in", json={"username": "alice", "password": "not-her-password"}
        )
        unknown_user = await test_client.post(
            "/api/auth/sign-in", json={"username": "mallory", "password": ALICE_PASSWORD}
        )
        no_token = await test_client.get("/api/tasks")
        bad_token = await test_client.get(
            "/api/tasks", headers={"Authorization": "Bearer not.a.token"}
        )
        clock.advance(settings.session_ttl_seconds)
        expired = await test_client.get("/api/tasks", headers=alice_headers)

        responses = [wrong_password, unknown_user, no_token, bad_token, expired]
        assert [r.status_code for r in responses] == [401] * 5

        bodies = [{k: v for k, v in r.json().items() if k != "request_id"} for r in responses]
        assert all(body == bodies[0] for body in bodies)
        assert bodies[0]["error"] == "unauthenticated"
        assert all(r.headers["WWW-Authenticate"] == "Bearer" for r in responses)

    @pytest.mark.asyncio
    async def test_token_valid_just_before_expiry(self, test_client, alice_headers, clock, settings):
        clock.advance(settings.session_ttl_seconds - 1)
        response = await test_client.get("/api/tasks", headers=alice_headers)
        assert response.status_code == 200


# ══════════════════════════════════════════════════════════════════════════
# Tasks
# ══════════════════════════════════════════════════════════════════════════


class TestTaskOwnership:

    @pytest.mark.asyncio
    async def test_two_user_scenario(self, test_client, alice_headers, bob_headers):
        task = await _create_task(test_client, alice_headers)
        assert task["status"] == "OPEN"
        task_url = f"/api/tasks/{task['id']}"

        response = await test_client.patch(
            f"{task_url}/status", json={"status": "IN_PROGRESS"}, headers=alice_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "IN_PROGRESS"

        response = await test_client.patch(
            f"{task_url}/status", json={"status": "DONE"}, headers=bob_headers
        )
        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

        response = await test_client.get(task_url, headers=alice_headers)
        assert response.json()["status"] == "IN_PROGRESS"

        assert (await test_client.get(task_url, headers=bob_headers)).status_code == 403
        assert (await test_client.delete(task_url, headers=bob_headers)).status_code == 403
        response = await test_client.patch(task_url, json={"title": "mine"}, headers=bob_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_owner_in_body_is_ignored(self, test_client, alice_headers, bob_headers):
        bob = (await test_client.get("/api/auth/me", headers=bob_headers)).json()
        alice = (await test_client.get("/api/auth/me", headers=alice_headers)).json()

        task = await _create_task(test_client, alice_headers, owner_id=bob["id"])
        assert task["owner_id"] == alice["id"]

        response = await test_client.patch(
            f"/api/tasks/{task['id']}",
            json={"title": "renamed", "owner_id": bob["id"]},
            headers=alice_headers,
        )
        assert response.status_code == 200
        assert response.json()["owner_id"] == alice["id"]

    @pytest.mark.asyncio
    async def test_unknown_task_is_404(self, test_client, alice_headers):
        response = await test_client.get(f"/api/tasks/{uuid.uuid4()}", headers=alice_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_malformed_task_id_is_400(self, test_client, alice_headers):
        response = await test_client.get("/api/tasks/not-a-uuid", headers=alice_headers)
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "task_id"


class TestTaskLifecycle:

    @pytest.mark.asyncio
    async def test_done_twice_is_idempotent(self, test_client, alice_headers):
        task = await _create_task(test_client, alice_headers)
        url = f"/api/tasks/{task['id']}/status"
        first = await test_client.patch(url, json={"status": "DONE"}, headers=alice_headers)
        second = await test_client.patch(url, json={"status": "DONE"}, headers=alice_headers)
        assert first.status_code == second.status_code == 200
        assert second.json()["status"] == "DONE"

    @pytest.mark.asyncio
    async def test_reopen_done_task(self, test_client, alice_headers):
        task = await _create_task(test_client, alice_headers)
        url = f"/api/tasks/{task['id']}/status"
        await test_client.patch(url, json={"status": "DONE"}, headers=alice_headers)
        response = await test_client.patch(url, json={"status": "OPEN"}, headers=alice_headers)
        assert response.json()["status"] == "OPEN"

    @pytest.mark.asyncio
    async def test_unknown_status_is_400(self, test_client, alice_headers):
        task = await _create_task(test_client, alice_headers)
        response = await test_client.patch(
            f"/api/tasks/{task['id']}/status", json={"status": "ARCHIVED"}, headers=alice_headers
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_empty_title_is_400(self, test_client, alice_headers):
        response = await test_client.post("/api/tasks", json={"title": "  "}, headers=alice_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Title must not be empty"

    @pytest.mark.asyncio
    async def test_non_object_body_is_400(self, test_client, alice_headers):
        response = await test_client.post("/api/tasks", json=["title"], headers=alice_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete(self, test_client, alice_headers):
        task = await _create_task(test_client, alice_headers)
        response = await test_client.delete(f"/api/tasks/{task['id']}", headers=alice_headers)
        assert response.status_code == 200
        assert response.json()["id"] == task["id"]

        response = await test_client.get(f"/api/tasks/{task['id']}", headers=alice_headers)
        assert response.status_code == 404


class TestTaskList:

    @pytest.mark.asyncio
    async def test_list_only_own_tasks(self, test_client, alice_headers, bob_headers):
        await _create_task(test_client, alice_headers, title="alice task")
        await _create_task(test_client, bob_headers, title="bob task")

        response = await test_client.get("/api/tasks", headers=alice_headers)
        assert response.status_code == 200
        body = response.json()
        assert [t["title"] for t in body["tasks"]] == ["alice task"]
        assert body["total_count"] == 1
        assert response.headers["X-Total-Count"] == "1"

    @pytest.mark.asyncio
    async def test_filters_and_paging(self, test_client, alice_headers):
        done = await _create_task(test_client, alice_headers, title="buy milk")
        await _create_task(test_client, alice_headers, title="walk dog")
        await _create_task(test_client, alice_headers, title="MILK cow")
        await test_client.patch(
            f"/api/tasks/{done['id']}/status", json={"status": "DONE"}, headers=alice_headers
        )

        by_status = await test_client.get(
            "/api/tasks", params={"status": "done"}, headers=alice_headers
        )
        assert [t["id"] for t in by_status.json()["tasks"]] == [done["id"]]

        by_search = await test_client.get(
            "/api/tasks", params={"search": "milk"}, headers=alice_headers
        )
        assert by_search.json()["total_count"] == 2

        paged = await test_client.get(
            "/api/tasks", params={"limit": 1, "offset": 1}, headers=alice_headers
        )
        assert len(paged.json()["tasks"]) == 1
        assert paged.headers["X-Total-Count"] == "3"

    @pytest.mark.asyncio
    async def test_bad_query_is_400(self, test_client, alice_headers):
        response = await test_client.get(
            "/api/tasks", params={"status": "SOMEDAY"}, headers=alice_headers
        )
        assert response.status_code == 400
        response = await test_client.get(
            "/api/tasks", params={"limit": "500"}, headers=alice_headers
        )
        assert response.status_code == 400


# ══════════════════════════════════════════════════════════════════════════
# Ambient behavior
# ══════════════════════════════════════════════════════════════════════════


class TestAmbient:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "trace-123"})
        assert response.headers["X-Request-ID"] == "trace-123"

    @pytest.mark.asyncio
    async def test_request_id_generated_for_bad_header(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "bad id!"})
        assert response.headers["X-Request-ID"] != "bad id!"
        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_error_body_carries_request_id(self, test_client):
        response = await test_client.get("/api/tasks", headers={"X-Request-ID": "trace-401"})
        assert response.status_code == 401
        assert response.json()["request_id"] == "trace-401"

    @pytest.mark.asyncio
    async def test_openapi_documents_request_bodies(self, test_client):
        paths = (await test_client.get("/openapi.json")).json()["paths"]

        def body_schema(path, method):
            request_body = paths[path][method]["requestBody"]
            assert request_body["required"] is True
            return request_body["content"]["application/json"]["schema"]

        create = body_schema("/api/tasks", "post")
        assert set(create["properties"]) == {"title", "description"}
        assert create["required"] == ["title"]

        status_body = body_schema("/api/tasks/{task_id}/status", "patch")
        assert "$ref" not in str(status_body)
        assert status_body["properties"]["status"]["enum"] == ["OPEN", "IN_PROGRESS", "DONE"]

        assert "status" in body_schema("/api/tasks/{task_id}", "patch")["properties"]
        assert body_schema("/api/auth/sign-up", "post")["properties"]["username"]["maxLength"] == 50
        assert set(body_schema("/api/auth/sign-in", "post")["required"]) == {"username", "password"}
        assert "new_password" in body_schema("/api/auth/password", "post")["properties"]

    @pytest.mark.asyncio
    async def test_session_ttl_comes_from_settings(self, app, settings):
        services = app.state.services
        assert services.sessions.ttl_seconds == settings.session_ttl_seconds
        assert {field.name for field in dataclasses.fields(services)} == {
            "users", "verifier", "sessions", "tasks",
        }

    @pytest.mark.asyncio
    async def test_auth_endpoints_rate_limited(self, settings, clock):
        limited = settings.model_copy(update={"auth_rate_limit_requests": 2})
        app = create_app(limited, clock=clock)
        await init_models(app.state.engine)

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            payload = {"username": "alice", "password": "wrong-password"}
            statuses = [
                (await client.post("/api/auth/sign-in", json=payload)).status_code
                for _ in range(3)
            ]
            assert statuses == [401, 401, 429]

            blocked = await client.post("/api/auth/sign-in", json=payload)
            assert blocked.json()["error"] == "rate_limit_exceeded"
            assert int(blocked.headers["Retry-After"]) > 0

            # Other endpoints keep their own, larger budget
            assert (await client.get("/health")).status_code == 200
            assert (await client.get("/api/tasks")).status_code == 401

        await app.state.engine.dispose()

    @pytest.mark.asyncio
    async def test_rate_limited_body_carries_request_id(self, settings, clock):
        limited = settings.model_copy(update={"auth_rate_limit_requests": 1})
        app = create_app(limited, clock=clock)
        await init_models(app.state.engine)

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            payload = {"username": "alice", "password": "wrong-password"}
            await client.post("/api/auth/sign-in", json=payload)
            blocked = await client.post(
                "/api/auth/sign-in", json=payload, headers={"X-Request-ID": "trace-429"}
            )

        assert blocked.status_code == 429
        body = blocked.json()
        assert set(body) == {"error", "message", "request_id", "details"}
        assert body["request_id"] == "trace-429"
        assert body["details"]["bucket"] == "auth"
        assert blocked.headers["X-Request-ID"] == "trace-429"

        await app.state.engine.dispose()
