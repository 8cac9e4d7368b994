# src/gateway/ask_handler.py

from __future__ import annotations

import asyncio
import time
import uuid
from typing import Any

import pydantic

from common.config import Config
from common.errors import ValidationError
from common.logging_utils import log_event
from gateway.request_models import ChatReply, ChatRequest
from upstream.iam_client import IamTokenClient
from upstream.inference_client import DeploymentClient
from upstream.response_normalizer import normalize_with_strategy


class AskHandler:
    """
    Serves one browser chat request end to end:
      - validate the payload (no upstream call on bad input),
      - exchange the API key for a fresh IAM token,
      - forward the message to the deployment,
      - normalize whatever shape comes back into a flat reply.

    At most MAX_CONCURRENT_REQUESTS exchanges run upstream at once; extra
    requests wait their turn.
    """

    def __init__(
        self,
        config: Config,
        token_client: IamTokenClient,
        inference_client: DeploymentClient,
    ):
        self.config = config
        self.token_client = token_client
        self.inference_client = inference_client
        self._limiter = asyncio.Semaphore(config.MAX_CONCURRENT_REQUESTS)

    @staticmethod
    def parse_request(payload: Any) -> ChatRequest:
        if not isinstance(payload, dict):
            raise ValidationError("message required")
        try:
            return ChatRequest.model_validate(payload)
        except pydantic.ValidationError as e:
            raise ValidationError("message required") from e

    async def handle(self, payload: Any, request_id: str | None = None) -> ChatReply:
        request_id = request_id or str(uuid.uuid4())
        chat_request = self.parse_request(payload)

        start_time = time.monotonic()
        log_event(
            "ask_received",
            request_id=request_id,
            extra={"message_chars": len(chat_request.message)},
        )

        async with self._limiter:
            token = await self.token_client.obtain_token(request_id=request_id)
            data = await self.inference_client.ask(
                token, chat_request.message, request_id=request_id
            )

        reply, strategy = normalize_with_strategy(data)

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        log_event(
            "ask_completed",
            request_id=request_id,
            extra={"strategy": strategy, "elapsed_ms": elapsed_ms},
        )

        return ChatReply(reply=reply)
