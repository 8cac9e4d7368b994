# tests/test_gateway_server.py

from dataclasses import replace

import pytest
from httpx import ASGITransport, AsyncClient

from gateway import gateway_server


def test_main_exits_when_credentials_missing(monkeypatch, tmp_path):
    for name in ("WATSONX_API_KEY", "WATSONX_DEPLOYMENT_ID"):
        monkeypatch.setenv(name, "")
    monkeypatch.chdir(tmp_path)

    started = []
    monkeypatch.setattr("uvicorn.run", lambda *args, **kwargs: started.append(args))

    with pytest.raises(SystemExit) as exc_info:
        gateway_server.main()

    assert exc_info.value.code == 1
    assert started == []


def test_main_starts_uvicorn_with_configured_port(monkeypatch, tmp_path):
    monkeypatch.setenv("WATSONX_API_KEY", "k")
    monkeypatch.setenv("WATSONX_DEPLOYMENT_ID", "d")
    monkeypatch.setenv("PORT", "4321")
    monkeypatch.chdir(tmp_path)

    started = {}

    def fake_run(app, host, port):
        started.update(app=app, host=host, port=port)

    monkeypatch.setattr("uvicorn.run", fake_run)

    gateway_server.main()

    assert started["port"] == 4321
    assert started["app"].title == "RegionalMate Proxy"


@pytest.mark.asyncio
async def test_lifespan_owns_session_with_configured_timeout(
    base_config, fake_watsonx, monkeypatch
) -> None:
    events = []
    monkeypatch.setattr(
        gateway_server, "log_event", lambda message, **kwargs: events.append(message)
    )
    config = replace(base_config, UPSTREAM_TIMEOUT_MS=200)
    app = gateway_server.create_app(config)

    async with app.router.lifespan_context(app):
        handler = app.state.ask_handler
        session = handler.token_client.session
        assert session is handler.inference_client.session
        assert session.timeout.total == 0.2
        assert "proxy_started" in events

        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://proxy.test"
        ) as client:
            ok = await client.post("/ask", json={"message": "hello"})
            fake_watsonx.inference_delay_s = 1.0
            slow = await client.post("/ask", json={"message": "hello"})

    assert ok.status_code == 200
    assert ok.json() == {"reply": "hi there"}
    assert slow.status_code == 500
    assert "timed out" in slow.json()["error"]
    assert session.closed
