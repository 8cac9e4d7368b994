# src/common/config.py

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple, Self

from dotenv import load_dotenv

from common.errors import StartupConfigError


ENV_PREFIX = "WATSONX_"


def _get_env_str(name: str, default: str, prefix: str = ENV_PREFIX) -> str:
    value = os.getenv(prefix + name)
    return value if value is not None else default


def _get_env_int(name: str, default: int, prefix: str = ENV_PREFIX) -> int:
    value = os.getenv(prefix + name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_env_bool(name: str, default: bool, prefix: str = ENV_PREFIX) -> bool:
    value = os.getenv(prefix + name)
    if value is None:
        return default
    value_lower = value.lower()
    if value_lower in ("1", "true", "yes", "y", "on"):
        return True
    if value_lower in ("0", "false", "no", "n", "off"):
        return False
    return default


def _split_origins(value: str) -> Tuple[str, ...]:
    return tuple(origin.strip() for origin in value.split(",") if origin.strip())


@dataclass(frozen=True)
class Config:
    """
    Process-wide configuration for the RegionalMate proxy.

    Built once at startup and handed to every collaborator explicitly.
    Watsonx settings are read from variables prefixed with WATSONX_
    (e.g. WATSONX_API_KEY); server settings (PORT, HOST, STATIC_DIR,
    CORS_ORIGINS, LOG_LEVEL) are unprefixed.
    """

    # --- Watsonx credentials / deployment ---
    API_KEY: str = field(default="", repr=False)
    REGION: str = "us-south"
    DEPLOYMENT_ID: str = ""
    VERSION: str = "2021-05-01"

    # --- Upstream endpoints ---
    IAM_TOKEN_URL: str = "https://iam.cloud.ibm.com/identity/token"
    ML_HOST: str = "ml.cloud.ibm.com"
    ML_BASE_URL: str = ""  # overrides https://<REGION>.<ML_HOST> when set

    # --- Timeouts & Limits ---
    UPSTREAM_TIMEOUT_MS: int = 30_000
    MAX_CONCURRENT_REQUESTS: int = 32

    # --- Error reporting ---
    EXPOSE_UPSTREAM_ERRORS: bool = True

    # --- Server ---
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    STATIC_DIR: Path = Path("public")
    CORS_ORIGINS: Tuple[str, ...] = ("*",)
    LOG_LEVEL: str = "INFO"

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> Self:
        """
        Construct a Config object, overriding defaults with environment variables.

        A .env file is loaded first; variables already present in the
        environment win over the file.
        """
        load_dotenv(dotenv_path, override=False)

        return cls(
            # --- Watsonx credentials / deployment ---
            API_KEY=_get_env_str("API_KEY", cls.API_KEY),
            REGION=_get_env_str("REGION", cls.REGION),
            DEPLOYMENT_ID=_get_env_str("DEPLOYMENT_ID", cls.DEPLOYMENT_ID),
            VERSION=_get_env_str("VERSION", cls.VERSION),

            # --- Upstream endpoints ---
            IAM_TOKEN_URL=_get_env_str("IAM_TOKEN_URL", cls.IAM_TOKEN_URL),
            ML_HOST=_get_env_str("ML_HOST", cls.ML_HOST),
            ML_BASE_URL=_get_env_str("ML_BASE_URL", cls.ML_BASE_URL),

            # --- Timeouts & Limits ---
            UPSTREAM_TIMEOUT_MS=_get_env_int("UPSTREAM_TIMEOUT_MS", cls.UPSTREAM_TIMEOUT_MS),
            MAX_CONCURRENT_REQUESTS=_get_env_int(
                "MAX_CONCURRENT_REQUESTS", cls.MAX_CONCURRENT_REQUESTS
            ),

            # --- Error reporting ---
            EXPOSE_UPSTREAM_ERRORS=_get_env_bool(
                "EXPOSE_UPSTREAM_ERRORS", cls.EXPOSE_UPSTREAM_ERRORS
            ),

            # --- Server ---
            HOST=_get_env_str("HOST", cls.HOST, prefix=""),
            PORT=_get_env_int("PORT", cls.PORT, prefix=""),
            STATIC_DIR=Path(_get_env_str("STATIC_DIR", str(cls.STATIC_DIR), prefix="")),
            CORS_ORIGINS=_split_origins(_get_env_str("CORS_ORIGINS", "*", prefix="")),
            LOG_LEVEL=_get_env_str("LOG_LEVEL", cls.LOG_LEVEL, prefix=""),
        )

    def validate(self) -> Self:
        """Raise StartupConfigError unless the mandatory fields are present."""
        missing = []
        if not self.API_KEY:
            missing.append(ENV_PREFIX + "API_KEY")
        if not self.DEPLOYMENT_ID:
            missing.append(ENV_PREFIX + "DEPLOYMENT_ID")
        if missing:
            raise StartupConfigError(f"Missing env: {' and/or '.join(missing)}")
        if self.MAX_CONCURRENT_REQUESTS < 1:
            raise StartupConfigError("MAX_CONCURRENT_REQUESTS must be at least 1")
        return self

    @property
    def inference_base_url(self) -> str:
        if self.ML_BASE_URL:
            return self.ML_BASE_URL.rstrip("/")
        return f"https://{self.REGION}.{self.ML_HOST}"

    @property
    def inference_url(self) -> str:
        return (
            f"{self.inference_base_url}/ml/v4/deployments/"
            f"{self.DEPLOYMENT_ID}/ai_service?version={self.VERSION}"
        )

    @property
    def upstream_timeout_s(self) -> float:
        return self.UPSTREAM_TIMEOUT_MS / 1000.0
