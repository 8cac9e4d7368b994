# src/upstream/iam_client.py

import asyncio
import json

import aiohttp

from common.config import Config
from common.errors import AuthError
from common.logging_utils import log_event


APIKEY_GRANT_TYPE = "urn:ibm:params:oauth:grant-type:apikey"


class IamTokenClient:
    """
    Exchanges the IBM Cloud API key for a short-lived bearer token.

    Every call performs a fresh exchange; tokens are not cached.
    """

    def __init__(self, config: Config, session: aiohttp.ClientSession):
        self.config = config
        self.session = session

    async def obtain_token(self, request_id: str | None = None) -> str:
        log_event("iam_token_requested", request_id=request_id)

        headers = {
            "Accept": "application/json",
            "Content-Type": "application/x-www-form-urlencoded",
        }
        form = {
            "grant_type": APIKEY_GRANT_TYPE,
            "apikey": self.config.API_KEY,
        }

        try:
            async with self.session.post(
                self.config.IAM_TOKEN_URL, data=form, headers=headers
            ) as resp:
                if not 200 <= resp.status < 300:
                    text = await resp.text()
                    raise AuthError(f"IAM token failed: {resp.status} - {text}")
                body = await resp.read()
            if not body.strip():
                raise AuthError("IAM token failed: empty body")
            data = json.loads(body)
        except asyncio.TimeoutError as e:
            raise AuthError("IAM token failed: request timed out") from e
        except aiohttp.ClientError as e:
            raise AuthError(f"IAM token failed: {e!r}") from e
        except ValueError as e:
            raise AuthError(f"IAM token failed: invalid JSON body ({e})") from e

        token = data.get("access_token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise AuthError("IAM token failed: response has no access_token")

        return token
