# tests/conftest.py

"""
Shared fixtures: a fake IBM IAM + watsonx deployment served by a real local
aiohttp server, and a factory wiring the proxy app to it.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import AsyncExitStack
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from httpx import ASGITransport, AsyncClient

from common.config import Config
from gateway.gateway_server import create_app


DEPLOYMENT_ID = "dep-1234"
API_KEY = "test-api-key"


class FakeWatsonx:
    """Programmable stand-in for the IAM token endpoint and the deployment."""

    def __init__(self) -> None:
        self.iam_status = 200
        self.iam_body: Any = {"access_token": "tok123", "expires_in": 3600}
        self.iam_text: str | None = None

        self.inference_status = 200
        self.inference_body: Any = {"results": [{"generated_text": "hi there"}]}
        self.inference_text: str | None = None
        self.inference_delay_s = 0.0

        self.iam_requests: list[dict[str, str]] = []
        self.inference_requests: list[dict[str, Any]] = []

    async def _iam(self, request: web.Request) -> web.Response:
        form = await request.post()
        self.iam_requests.append(
            {
                "content_type": request.content_type,
                **{k: str(v) for k, v in form.items()},
            }
        )
        if self.iam_text is not None:
            return web.Response(status=self.iam_status, text=self.iam_text)
        return web.json_response(self.iam_body, status=self.iam_status)

    async def _inference(self, request: web.Request) -> web.Response:
        self.inference_requests.append(
            {
                "deployment_id": request.match_info["deployment_id"],
                "query": dict(request.query),
                "authorization": request.headers.get("Authorization"),
                "json": await request.json(),
            }
        )
        if self.inference_delay_s:
            await asyncio.sleep(self.inference_delay_s)
        if self.inference_text is not None:
            return web.Response(
                status=self.inference_status, text=self.inference_text, content_type="text/html"
            )
        return web.json_response(self.inference_body, status=self.inference_status)

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/identity/token", self._iam)
        app.router.add_post("/ml/v4/deployments/{deployment_id}/ai_service", self._inference)
        return app


@dataclass
class ProxyHarness:
    fake: FakeWatsonx
    config: Config
    client: AsyncClient


@pytest.fixture
def fake_watsonx() -> FakeWatsonx:
    return FakeWatsonx()


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    public = tmp_path / "public"
    public.mkdir()
    (public / "index.html").write_text("<html><body>RegionalMate</body></html>")
    (public / "app.js").write_text("console.log('regionalmate');")
    return public


@pytest.fixture
async def upstream_server(fake_watsonx: FakeWatsonx) -> AsyncIterator[TestServer]:
    server = TestServer(fake_watsonx.make_app())
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
def base_config(upstream_server: TestServer, static_dir: Path) -> Config:
    root = f"http://{upstream_server.host}:{upstream_server.port}"
    return Config(
        API_KEY=API_KEY,
        DEPLOYMENT_ID=DEPLOYMENT_ID,
        IAM_TOKEN_URL=f"{root}/identity/token",
        ML_BASE_URL=root,
        UPSTREAM_TIMEOUT_MS=5_000,
        STATIC_DIR=static_dir,
    )


@pytest.fixture
async def make_proxy(
    fake_watsonx: FakeWatsonx, base_config: Config
) -> AsyncIterator[Callable[..., Awaitable[ProxyHarness]]]:
    """Factory: make_proxy(**config_overrides) -> ProxyHarness."""
    async with AsyncExitStack() as stack:

        async def _make(**overrides: Any) -> ProxyHarness:
            config = replace(base_config, **overrides)
            session = await stack.enter_async_context(
                aiohttp.ClientSession(
                    timeout=aiohttp.ClientTimeout(total=config.upstream_timeout_s)
                )
            )
            app = create_app(config, session=session)
            client = await stack.enter_async_context(
                AsyncClient(transport=ASGITransport(app=app), base_url="http://proxy.test")
            )
            return ProxyHarness(fake=fake_watsonx, config=config, client=client)

        yield _make


@pytest.fixture
async def proxy(make_proxy: Callable[..., Awaitable[ProxyHarness]]) -> ProxyHarness:
    return await make_proxy()
