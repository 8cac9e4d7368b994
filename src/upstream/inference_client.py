# src/upstream/inference_client.py

import asyncio
import json
from typing import Any

import aiohttp

from common.config import Config
from common.errors import UpstreamError
from common.logging_utils import log_event


class DeploymentClient:
    """
    Forwards a single user message to the watsonx.ai deployment.
    Returns the decoded JSON body, whatever its shape.
    """

    def __init__(self, config: Config, session: aiohttp.ClientSession):
        self.config = config
        self.session = session

    @staticmethod
    def build_payload(message: str) -> dict:
        return {"messages": [{"role": "user", "content": message}]}

    async def ask(self, token: str, message: str, request_id: str | None = None) -> Any:
        url = self.config.inference_url
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        log_event(
            "inference_called",
            request_id=request_id,
            extra={"deployment_id": self.config.DEPLOYMENT_ID, "region": self.config.REGION},
        )

        try:
            async with self.session.post(
                url, json=self.build_payload(message), headers=headers
            ) as resp:
                if not 200 <= resp.status < 300:
                    # The body is still normalized; error JSON ends up as the reply.
                    log_event(
                        "inference_non_success_status",
                        request_id=request_id,
                        extra={"status": resp.status},
                        level="warning",
                    )
                body = await resp.read()
            if not body.strip():
                raise UpstreamError("Inference failed: empty body")
            return json.loads(body)
        except asyncio.TimeoutError as e:
            raise UpstreamError("Inference failed: request timed out") from e
        except aiohttp.ClientError as e:
            raise UpstreamError(f"Inference failed: {e!r}") from e
        except ValueError as e:
            raise UpstreamError(f"Inference failed: invalid JSON body ({e})") from e
