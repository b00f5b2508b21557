"""Tests for wren.server.handler and wren.server.sender: the ASGI boundary."""

from typing import Any

import anyio
import pytest

from wren.app import App
from wren.config import AppConfig
from wren.http.response import Response
from wren.routing import Router
from wren.server.sender import body_allowed, send_response
from wren.testing import TestClient


def _scope(method: str = "GET", path: str = "/") -> dict[str, Any]:
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": [],
        "client": ("127.0.0.1", 1234),
    }


class TestResponses:
    async def test_handler_response(self) -> None:
        app = App()
        app.get("/users/:id", lambda req, res, next: res.json({"id": req.params["id"]}))
        async with TestClient(app) as client:
            response = await client.get("/users/42")
        assert response.status == 200
        assert response.json() == {"id": "42"}
        assert response.content_type == "application/json"
        assert response.header("content-length") == str(len(response.body))

    async def test_not_found(self) -> None:
        app = App()
        app.get("/users", lambda req, res, next: res.send("users"))
        async with TestClient(app) as client:
            response = await client.get("/nope")
        assert response.status == 404
        assert response.text == "Cannot GET /nope"

    async def test_wrong_method_is_not_found(self) -> None:
        app = App()
        app.get("/users", lambda req, res, next: res.send("users"))
        async with TestClient(app) as client:
            response = await client.delete("/users")
        assert response.status == 404
        assert response.text == "Cannot DELETE /users"

    async def test_unrecovered_error(self) -> None:
        app = App()

        def fails(req, res, next):
            raise RuntimeError("boom")

        app.get("/", fails)
        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 500
        assert response.text == "Internal Server Error"

    async def test_head_has_no_body(self) -> None:
        app = App()
        app.get("/users", lambda req, res, next: res.send("a list of users"))
        async with TestClient(app) as client:
            response = await client.head("/users")
        assert response.status == 200
        assert response.body == b""
        assert response.header("content-length") == "15"

    async def test_mounted_router(self) -> None:
        api = Router()
        api.get("/users/:id", lambda req, res, next: res.send(f"{req.base_path}:{req.params['id']}"))
        app = App()
        app.use("/api", api)
        async with TestClient(app) as client:
            response = await client.get("/api/users/9")
        assert response.text == "/api:9"

    async def test_post_json_body_available_raw(self) -> None:
        app = App()
        app.post("/echo", lambda req, res, next: res.send(req.raw_body))
        async with TestClient(app) as client:
            response = await client.post("/echo", json={"a": 1})
        assert response.body == b'{"a": 1}'


async def _call(app: App, scope: dict[str, Any]) -> tuple[int, bytes]:
    sent: list[dict[str, Any]] = []
    body_sent = False
    never = anyio.Event()

    async def receive() -> dict[str, Any]:
        nonlocal body_sent
        if not body_sent:
            body_sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await never.wait()
        return {"type": "http.disconnect"}

    async def send(message: dict[str, Any]) -> None:
        sent.append(message)

    await app(scope, receive, send)
    return sent[0]["status"], sent[1]["body"]


class TestEncodedPaths:
    async def test_param_decoded_once(self) -> None:
        app = App()
        app.get("/users/:id", lambda req, res, next: res.send(req.params["id"]))
        scope = _scope("GET", "/users/%41") | {"raw_path": b"/users/%2541"}
        assert await _call(app, scope) == (200, b"%41")

    async def test_encoded_slash_stays_in_segment(self) -> None:
        app = App()
        app.get("/files/:name", lambda req, res, next: res.send(req.params["name"]))
        scope = _scope("GET", "/files/a/b") | {"raw_path": b"/files/a%2Fb"}
        assert await _call(app, scope) == (200, b"a/b")

    async def test_decoded_path_without_raw_path(self) -> None:
        app = App()
        app.get("/users/:id", lambda req, res, next: res.send(req.params["id"]))
        assert await _call(app, _scope("GET", "/users/%41")) == (200, b"%41")

    async def test_client_encoded_path(self) -> None:
        app = App()
        app.get("/files/:name", lambda req, res, next: res.send(req.params["name"]))
        async with TestClient(app) as client:
            response = await client.get("/files/a%2Fb")
        assert response.status == 200
        assert response.text == "a/b"

    async def test_root_path_is_not_routed(self) -> None:
        app = App()
        app.get(
            "/users/:id",
            lambda req, res, next: res.send(f"{req.root_path} {req.params['id']}"),
        )
        scope = _scope("GET", "/api/users/7") | {
            "raw_path": b"/api/users/7",
            "root_path": "/api",
        }
        assert await _call(app, scope) == (200, b"/api 7")


class TestInvalidResponses:
    async def test_unencodable_header_is_a_handler_failure(self) -> None:
        app = App()
        app.get("/", lambda req, res, next: res.set_header("X-Name", "Josę").send("hi"))
        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 500
        assert response.header("x-name") is None

    async def test_header_error_reaches_error_handler(self) -> None:
        app = App()
        app.get("/", lambda req, res, next: res.set_header("X-Bad", "a\r\nb").send("hi"))

        @app.errorhandler
        def on_error(err, req, res, next):
            res.status(400).send(type(err).__name__)

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 400
        assert response.text == "ValueError"

    async def test_unsupported_body_is_a_handler_failure(self) -> None:
        app = App()
        app.get("/", lambda req, res, next: res.send(42))
        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 500
        assert response.text == "Internal Server Error"


class TestBodyLimit:
    async def test_payload_too_large(self) -> None:
        calls: list[str] = []
        app = App(AppConfig(max_body_size=4))

        def handler(req, res, next):
            calls.append("called")
            res.end()

        app.post("/upload", handler)
        async with TestClient(app) as client:
            response = await client.post("/upload", body=b"12345")
        assert response.status == 413
        assert calls == []

    async def test_body_at_limit(self) -> None:
        app = App(AppConfig(max_body_size=4))
        app.post("/upload", lambda req, res, next: res.send(req.raw_body))
        async with TestClient(app) as client:
            response = await client.post("/upload", body=b"1234")
        assert response.status == 200
        assert response.body == b"1234"

    async def test_chunked_body(self) -> None:
        app = App()
        app.post("/upload", lambda req, res, next: res.send(req.raw_body))
        chunks = [
            {"type": "http.request", "body": b"ab", "more_body": True},
            {"type": "http.request", "body": b"cd", "more_body": False},
        ]
        never = anyio.Event()
        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            if chunks:
                return chunks.pop(0)
            await never.wait()
            return {"type": "http.disconnect"}

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app(_scope("POST", "/upload"), receive, send)
        assert sent[1]["body"] == b"abcd"


class TestTimeout:
    async def test_slow_handler_gets_503(self) -> None:
        app = App(AppConfig(request_timeout=0.05))

        async def slow(req, res, next):
            await anyio.sleep(5)
            res.send("late")

        app.get("/slow", slow)
        async with TestClient(app) as client:
            response = await client.get("/slow")
        assert response.status == 503
        assert response.text == "Request timed out"

    async def test_fast_handler_unaffected(self) -> None:
        app = App(AppConfig(request_timeout=5))
        app.get("/", lambda req, res, next: res.send("fast"))
        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 200


class TestDisconnect:
    async def test_disconnect_aborts_chain(self) -> None:
        started = anyio.Event()
        finished: list[bool] = []

        async def slow(req, res, next):
            started.set()
            await anyio.sleep(5)
            finished.append(True)
            res.send("late")

        app = App()
        app.get("/slow", slow)
        body_sent = False
        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": b"", "more_body": False}
            await started.wait()
            return {"type": "http.disconnect"}

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app(_scope("GET", "/slow"), receive, send)
        assert sent == []
        assert finished == []

    async def test_disconnect_before_body(self) -> None:
        app = App()
        app.post("/", lambda req, res, next: res.end())
        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            return {"type": "http.disconnect"}

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app(_scope("POST", "/"), receive, send)
        assert sent == []


class TestNonHTTPScope:
    async def test_websocket_scope_ignored(self) -> None:
        app = App()
        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            return {"type": "websocket.connect"}

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app({"type": "websocket", "path": "/"}, receive, send)
        assert sent == []


class TestSender:
    @pytest.mark.parametrize(
        ("status", "method", "expected"),
        [
            (200, "GET", True),
            (200, "HEAD", False),
            (101, "GET", False),
            (204, "GET", False),
            (304, "GET", False),
            (404, "POST", True),
        ],
    )
    def test_body_allowed(self, status: int, method: str, expected: bool) -> None:
        assert body_allowed(status, method) is expected

    async def test_messages(self) -> None:
        res = Response()
        res.status(201).set_header("X-Id", "7").send("created")
        sent: list[dict[str, Any]] = []

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await send_response(res, send)
        start, body = sent
        assert start["type"] == "http.response.start"
        assert start["status"] == 201
        assert (b"x-id", b"7") in start["headers"]
        assert (b"content-length", b"7") in start["headers"]
        assert body == {"type": "http.response.body", "body": b"created"}

    async def test_no_content_length_for_204(self) -> None:
        res = Response()
        res.status(204).end()
        sent: list[dict[str, Any]] = []

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await send_response(res, send)
        names = [name for name, _ in sent[0]["headers"]]
        assert b"content-length" not in names
        assert sent[1]["body"] == b""

    async def test_user_content_length_is_replaced(self) -> None:
        res = Response()
        res.set_header("Content-Length", "999").send("abc")
        sent: list[dict[str, Any]] = []

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await send_response(res, send)
        lengths = [value for name, value in sent[0]["headers"] if name == b"content-length"]
        assert lengths == [b"3"]
