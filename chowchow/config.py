"""
Configuration for starting a chowchow application.

Provides option dataclasses with environment variable support.
"""

import os
from dataclasses import dataclass


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class StartOptions:
    """
    Options recognised by ``Application.start``.

    Attributes:
        port: Port to listen on, 0 picks a free one.
        host: Interface to bind.
        verbose: Log every lifecycle step at INFO instead of DEBUG.
        log_errors: Log route errors with their traceback.
        output_url: Log the url once the server is listening.
        handle_404s: Add a catch-all route answering 404 in JSON.
        graceful_timeout: Seconds to wait for open connections on stop,
            None waits for as long as they take.
    """

    port: int = 3000
    host: str = "0.0.0.0"
    verbose: bool = False
    log_errors: bool = True
    output_url: bool = False
    handle_404s: bool = False
    graceful_timeout: float | None = None

    @classmethod
    def from_env(cls) -> "StartOptions":
        """
        Create options from environment variables.

        Environment variables:
            CHOWCHOW_PORT: Port to listen on (default: 3000)
            CHOWCHOW_HOST: Interface to bind (default: 0.0.0.0)
            CHOWCHOW_VERBOSE: "true"/"false" (default: false)
            CHOWCHOW_LOG_ERRORS: "true"/"false" (default: true)
            CHOWCHOW_OUTPUT_URL: "true"/"false" (default: false)
            CHOWCHOW_HANDLE_404S: "true"/"false" (default: false)
            CHOWCHOW_GRACEFUL_TIMEOUT: Drain deadline in seconds (default: none)

        Returns:
            StartOptions instance.
        """
        graceful = os.getenv("CHOWCHOW_GRACEFUL_TIMEOUT", "")

        return cls(
            port=int(os.getenv("CHOWCHOW_PORT", "3000")),
            host=os.getenv("CHOWCHOW_HOST", "0.0.0.0"),
            verbose=_env_flag("CHOWCHOW_VERBOSE", "false"),
            log_errors=_env_flag("CHOWCHOW_LOG_ERRORS", "true"),
            output_url=_env_flag("CHOWCHOW_OUTPUT_URL", "false"),
            handle_404s=_env_flag("CHOWCHOW_HANDLE_404S", "false"),
            graceful_timeout=float(graceful) if graceful else None,
        )


@dataclass
class HelperOptions:
    """
    Optional middleware toggles for ``Application.add_helpers``.

    Attributes:
        json_body: Parse JSON request bodies into ``request.body``.
        url_encoded_body: Parse url-encoded form bodies into ``request.body``.
        cors_hosts: Origins allowed to make cross-origin requests.
        trust_proxy: Trust X-Forwarded-* headers from a reverse proxy.
    """

    json_body: bool = False
    url_encoded_body: bool = False
    cors_hosts: tuple[str, ...] = ()
    trust_proxy: bool = False

    @classmethod
    def from_env(cls) -> "HelperOptions":
        """
        Create helper options from environment variables.

        Environment variables:
            CHOWCHOW_JSON_BODY: "true"/"false" (default: false)
            CHOWCHOW_URLENCODED_BODY: "true"/"false" (default: false)
            CHOWCHOW_CORS_HOSTS: Comma separated origins (default: none)
            CHOWCHOW_TRUST_PROXY: "true"/"false" (default: false)
        """
        hosts = os.getenv("CHOWCHOW_CORS_HOSTS", "")

        return cls(
            json_body=_env_flag("CHOWCHOW_JSON_BODY", "false"),
            url_encoded_body=_env_flag("CHOWCHOW_URLENCODED_BODY", "false"),
            cors_hosts=tuple(h.strip() for h in hosts.split(",") if h.strip()),
            trust_proxy=_env_flag("CHOWCHOW_TRUST_PROXY", "false"),
        )
