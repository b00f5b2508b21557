"""Tests for CORS middleware."""

from wren.app import App
from wren.middleware import CORSConfig, CORSMiddleware
from wren.testing import TestClient


def _make_cors_app(config: CORSConfig | None = None) -> App:
    """Helper: create an app with CORS middleware and a simple route."""
    app = App()
    app.use(CORSMiddleware(config))
    app.get("/api/data", lambda req, res, next: res.json({"message": "hello"}))
    app.post("/api/data", lambda req, res, next: res.status(201).send("created"))
    return app


class TestCORSNonCorsRequests:
    """Requests without an Origin header should pass through unaffected."""

    async def test_no_origin_header(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("*",)))
        async with TestClient(app) as client:
            response = await client.get("/api/data")
            assert response.status == 200
            header_names = {name for name, _ in response.headers}
            assert "access-control-allow-origin" not in header_names


class TestCORSSimpleRequests:
    async def test_allowed_origin_gets_cors_headers(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("https://example.com",)))
        async with TestClient(app) as client:
            response = await client.get(
                "/api/data",
                headers={"Origin": "https://example.com"},
            )
            assert response.status == 200
            assert ("access-control-allow-origin", "https://example.com") in response.headers
            assert ("vary", "Origin") in response.headers

    async def test_disallowed_origin_no_cors_headers(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("https://example.com",)))
        async with TestClient(app) as client:
            response = await client.get(
                "/api/data",
                headers={"Origin": "https://evil.com"},
            )
            assert response.status == 200
            assert response.header("access-control-allow-origin") is None

    async def test_wildcard_origin(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("*",)))
        async with TestClient(app) as client:
            response = await client.get(
                "/api/data",
                headers={"Origin": "https://anything.com"},
            )
            assert ("access-control-allow-origin", "*") in response.headers
            assert response.header("vary") is None

    async def test_wildcard_with_credentials_echoes_origin(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("*",), allow_credentials=True))
        async with TestClient(app) as client:
            response = await client.get(
                "/api/data",
                headers={"Origin": "https://app.example"},
            )
            assert response.header("access-control-allow-origin") == "https://app.example"
            assert response.header("access-control-allow-credentials") == "true"

    async def test_expose_headers(self) -> None:
        app = _make_cors_app(
            CORSConfig(allow_origins=("*",), expose_headers=("X-Total", "X-Page"))
        )
        async with TestClient(app) as client:
            response = await client.post("/api/data", headers={"Origin": "https://a.example"})
            assert response.status == 201
            assert response.header("access-control-expose-headers") == "X-Total, X-Page"

    async def test_headers_survive_error_response(self) -> None:
        app = App()
        app.use(CORSMiddleware(CORSConfig(allow_origins=("*",))))

        def fails(req, res, next):
            raise RuntimeError("boom")

        app.get("/", fails)
        async with TestClient(app) as client:
            response = await client.get("/", headers={"Origin": "https://a.example"})
            assert response.status == 500
            assert response.header("access-control-allow-origin") == "*"


class TestCORSPreflightRequests:
    async def test_preflight_returns_204(self) -> None:
        app = _make_cors_app(
            CORSConfig(
                allow_origins=("https://example.com",),
                allow_methods=("GET", "POST"),
                allow_headers=("Content-Type",),
                max_age=60,
            )
        )
        async with TestClient(app) as client:
            response = await client.options(
                "/api/data",
                headers={
                    "Origin": "https://example.com",
                    "Access-Control-Request-Method": "POST",
                },
            )
            assert response.status == 204
            assert response.body == b""
            assert response.header("access-control-allow-methods") == "GET, POST"
            assert response.header("access-control-allow-headers") == "Content-Type"
            assert response.header("access-control-max-age") == "60"

    async def test_preflight_for_unrouted_path(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("*",)))
        async with TestClient(app) as client:
            response = await client.options("/anything", headers={"Origin": "https://x.example"})
            assert response.status == 204
            assert response.header("access-control-allow-methods") is None

    async def test_disallowed_preflight_falls_through(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("https://example.com",)))
        async with TestClient(app) as client:
            response = await client.options(
                "/api/data",
                headers={
                    "Origin": "https://evil.com",
                    "Access-Control-Request-Method": "POST",
                },
            )
            assert response.status == 404
