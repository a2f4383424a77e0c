"""
Tests for the httpx-backed remote source, run against an in-process FastAPI app.
"""

import httpx
import pytest
from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from waypoint.core.errors import DecodeError, FetchError, ProtocolViolationError, TransportError
from waypoint.services.remote_source import (
    HttpMethod,
    HttpxRemoteSource,
    RemoteRequest,
    RemoteResponse,
    ensure_status,
)

BASE_URL = "http://testserver"


def build_app() -> FastAPI:
    app = FastAPI()

    @app.get("/echo")
    async def echo(request: Request):
        return {
            "params": dict(request.query_params),
            "apiKey": request.headers.get("x-api-key"),
            "accept": request.headers.get("accept"),
        }

    @app.get("/api/wishlist")
    async def wishlist(request: Request):
        if request.headers.get("if-none-match") == '"v1"':
            return Response(status_code=304, headers={"ETag": '"v1"'})
        return Response(
            content='{"data": []}',
            media_type="application/json",
            headers={"ETag": '"v1"'},
        )

    @app.head("/api/wishlist/{place_id}")
    async def wishlist_head(place_id: str):
        return Response(status_code=204 if place_id == "saved" else 404)

    @app.post("/api/wishlist/{place_id}")
    async def wishlist_add(place_id: str, request: Request):
        return {"id": place_id, "received": await request.json()}

    @app.get("/ping")
    async def ping():
        return PlainTextResponse("pong")

    @app.delete("/api/wishlist/{place_id}")
    async def wishlist_remove(place_id: str):
        return Response(status_code=204)

    @app.get("/broken")
    async def broken():
        return Response(status_code=503, content='{"message": "maintenance"}', media_type="application/json")

    return app


def asgi_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=build_app()))


class TestHttpxRemoteSource:

    @pytest.mark.asyncio
    async def test_sends_params_and_api_key(self):
        async with asgi_client() as client:
            source = HttpxRemoteSource(BASE_URL, api_key="secret", client=client)
            response = await source.send(RemoteRequest(path="/echo", params={"q": "ridge", "limit": 5}))

        assert response.status_code == 200
        assert response.body == {
            "params": {"q": "ridge", "limit": "5"},
            "apiKey": "secret",
            "accept": "application/json",
        }

    @pytest.mark.asyncio
    async def test_blank_api_key_is_not_sent(self):
        async with asgi_client() as client:
            source = HttpxRemoteSource(BASE_URL + "/", api_key="   ", client=client)
            response = await source.send(RemoteRequest(path="/echo"))

        assert source.api_key is None
        assert response.body["apiKey"] is None

    @pytest.mark.asyncio
    async def test_etag_and_not_modified(self):
        async with asgi_client() as client:
            source = HttpxRemoteSource(BASE_URL, client=client)
            first = await source.send(RemoteRequest(path="/api/wishlist"))
            second = await source.send(RemoteRequest(path="/api/wishlist", headers={"If-None-Match": first.etag}))

        assert first.etag == '"v1"'
        assert first.body == {"data": []}
        assert second.not_modified
        assert second.body is None

    @pytest.mark.asyncio
    async def test_head(self):
        async with asgi_client() as client:
            source = HttpxRemoteSource(BASE_URL, client=client)
            saved = await source.send(RemoteRequest(method=HttpMethod.HEAD, path="/api/wishlist/saved"))
            missing = await source.send(RemoteRequest(method=HttpMethod.HEAD, path="/api/wishlist/other"))

        assert saved.status_code == 204
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_json_body_and_empty_response(self):
        async with asgi_client() as client:
            source = HttpxRemoteSource(BASE_URL, client=client)
            added = await source.send(RemoteRequest(method=HttpMethod.POST, path="/api/wishlist/p1", body={"notes": "x"}))
            removed = await source.send(RemoteRequest(method=HttpMethod.DELETE, path="/api/wishlist/p1"))

        assert added.body == {"id": "p1", "received": {"notes": "x"}}
        assert removed.status_code == 204
        assert removed.body is None

    @pytest.mark.asyncio
    async def test_text_body_and_error_status_are_returned(self):
        async with asgi_client() as client:
            source = HttpxRemoteSource(BASE_URL, client=client)
            ping = await source.send(RemoteRequest(path="/ping"))
            broken = await source.send(RemoteRequest(path="/broken"))

        assert ping.body == "pong"
        assert broken.status_code == 503
        assert not broken.is_success
        assert broken.body == {"message": "maintenance"}

    @pytest.mark.asyncio
    async def test_timeout_becomes_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            source = HttpxRemoteSource(BASE_URL, client=client)
            with pytest.raises(TransportError) as exc:
                await source.send(RemoteRequest(path="/trails/search"))

        assert exc.value.status_code is None
        assert exc.value.details == {"url": f"{BASE_URL}/trails/search"}
        assert isinstance(exc.value.__cause__, httpx.ConnectTimeout)

    @pytest.mark.asyncio
    async def test_connection_error_becomes_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            source = HttpxRemoteSource(BASE_URL, client=client)
            with pytest.raises(TransportError, match="connection refused"):
                await source.send(RemoteRequest(path="/trails/nearby"))

    @pytest.mark.asyncio
    async def test_closes_only_its_own_client(self):
        owned = HttpxRemoteSource(BASE_URL)
        await owned.aclose()
        assert owned._client.is_closed

        async with asgi_client() as client:
            async with HttpxRemoteSource(BASE_URL, client=client):
                pass
            assert not client.is_closed

    def test_requires_base_url(self):
        with pytest.raises(ValueError):
            HttpxRemoteSource("")


class TestEnsureStatus:

    def test_passes_success(self):
        request = RemoteRequest(path="/x")
        response = RemoteResponse(status_code=201)
        assert ensure_status(request, response) is response

    def test_raises_with_status(self):
        request = RemoteRequest(method=HttpMethod.DELETE, path="/x")
        with pytest.raises(TransportError) as exc:
            ensure_status(request, RemoteResponse(status_code=404, body={"message": "gone"}))
        assert exc.value.status_code == 404
        assert exc.value.details == {"body": {"message": "gone"}}
        assert str(exc.value) == "DELETE /x returned 404"

    def test_allowed_statuses_replace_the_2xx_rule(self):
        request = RemoteRequest(path="/x")
        assert ensure_status(request, RemoteResponse(status_code=404), 200, 404).status_code == 404
        with pytest.raises(TransportError):
            ensure_status(request, RemoteResponse(status_code=204), 200)

    def test_header_lookup_is_case_insensitive(self):
        response = RemoteResponse(status_code=200, headers={"ETag": "T1"})
        assert response.header("etag") == "T1"
        assert response.etag == "T1"
        assert RemoteResponse(status_code=200, headers={"etag": ""}).etag is None


class TestErrorResponses:

    @pytest.mark.parametrize("error, code, status", [
        (TransportError("boom", status_code=502), "TRANSPORT_ERROR", 502),
        (TransportError("boom"), "TRANSPORT_ERROR", None),
        (ProtocolViolationError(), "PROTOCOL_VIOLATION", None),
        (DecodeError("bad payload"), "DECODE_ERROR", None),
    ])
    def test_to_response(self, error, code, status):
        assert isinstance(error, FetchError)
        body = error.to_response()
        assert body.error == code
        assert body.status_code == status
        assert body.detail == error.message
