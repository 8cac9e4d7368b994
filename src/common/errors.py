# src/common/errors.py

"""Error taxonomy shared by the gateway and the upstream clients."""


class ProxyError(Exception):
    """Base class for errors raised while serving a request."""

    status_code = 500


class ValidationError(ProxyError):
    """Bad or missing client input."""

    status_code = 400


class UpstreamError(ProxyError):
    """The inference deployment failed or answered with something unusable."""


class AuthError(UpstreamError):
    """The IAM token exchange failed."""


class StartupConfigError(ProxyError):
    """Mandatory configuration is missing; the process must not serve traffic."""
