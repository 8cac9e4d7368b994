# src/gateway/gateway_server.py

import sys
import uuid
from contextlib import asynccontextmanager

import aiohttp
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from common.config import Config
from common.errors import StartupConfigError, ValidationError
from common.logging_utils import configure_logging, log_event
from gateway.ask_handler import AskHandler
from gateway.request_models import ChatReply, ErrorResponse
from gateway.spa_routes import mount_frontend
from upstream.iam_client import IamTokenClient
from upstream.inference_client import DeploymentClient


GENERIC_UPSTREAM_ERROR = "upstream request failed"


def build_ask_handler(config: Config, session: aiohttp.ClientSession) -> AskHandler:
    return AskHandler(
        config,
        token_client=IamTokenClient(config, session),
        inference_client=DeploymentClient(config, session),
    )


def create_app(config: Config, session: aiohttp.ClientSession | None = None) -> FastAPI:
    """
    Build the proxy application.

    When `session` is given the caller owns it; otherwise one session with
    the configured upstream timeout is opened on startup and closed on
    shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if session is not None:
            yield
            return

        timeout = aiohttp.ClientTimeout(total=config.upstream_timeout_s)
        async with aiohttp.ClientSession(timeout=timeout) as owned_session:
            app.state.ask_handler = build_ask_handler(config, owned_session)
            log_event(
                "proxy_started",
                extra={
                    "host": config.HOST,
                    "port": config.PORT,
                    "region": config.REGION,
                    "deployment_id": config.DEPLOYMENT_ID,
                },
            )
            yield

    app = FastAPI(title="RegionalMate Proxy", lifespan=lifespan)
    app.state.config = config
    if session is not None:
        app.state.ask_handler = build_ask_handler(config, session)

    # In production, restrict CORS_ORIGINS to the web origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.CORS_ORIGINS),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.post(
        "/ask",
        response_model=ChatReply,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    async def ask(request: Request):
        request_id = str(uuid.uuid4())

        try:
            payload = await request.json()
        except ValueError:
            payload = None

        try:
            return await request.app.state.ask_handler.handle(payload, request_id=request_id)
        except ValidationError as e:
            return JSONResponse(
                status_code=e.status_code,
                content=ErrorResponse(error=str(e)).model_dump(),
            )
        except Exception as e:
            log_event("ask_failed", request_id=request_id, error=repr(e), level="error")
            # Upstream error text (IAM response bodies included) reaches the
            # client unless EXPOSE_UPSTREAM_ERRORS is off.
            error = str(e) if config.EXPOSE_UPSTREAM_ERRORS else GENERIC_UPSTREAM_ERROR
            return JSONResponse(
                status_code=500,
                content=ErrorResponse(error=error).model_dump(),
            )

    # Front-end mount must come after the API routes
    mount_frontend(app, config.STATIC_DIR)

    return app


def main() -> None:
    config = Config.from_env()
    configure_logging(config.LOG_LEVEL)

    try:
        config.validate()
    except StartupConfigError as e:
        log_event("startup_config_invalid", error=str(e), level="error")
        sys.exit(1)

    import uvicorn

    uvicorn.run(create_app(config), host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
