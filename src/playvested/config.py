"""
Configuration management for the PlayVested client.

This module handles configuration from multiple sources with the following
precedence (highest to lowest):

1. Command-line arguments (--server, --production, --timeout, ...)
2. Environment variables (PLAYVESTED_SERVER_URL, PLAYVESTED_PRODUCTION, ...)
3. Default values

The ledger endpoint is chosen by the production flag: a local development
server, or the hosted production ledger. An explicit server URL overrides
both.

The configuration is immutable once created, ensuring consistent behavior
throughout the session's lifetime.

Example:
    # Create config from CLI args
    config = ClientConfig.from_args(["--production"])

    print(config.base_url)       # "https://playvested.herokuapp.com"
    print(config.poll_interval)  # 0.1 (default)
"""

from __future__ import annotations

import argparse
import os
from collections.abc import Sequence
from dataclasses import dataclass

# =============================================================================
# DEFAULT CONFIGURATION VALUES
# =============================================================================

# Ledger endpoints. The local one matches the development server's port.
LOCAL_BASE_URL = "http://localhost:1979"
PRODUCTION_BASE_URL = "https://playvested.herokuapp.com"

# Interval between body-readiness checks, in seconds.
DEFAULT_POLL_INTERVAL = 0.1

# Delay before the link panel closes itself after a successful link.
DEFAULT_LINK_CLOSE_DELAY = 2.0

DEFAULT_LOG_LEVEL = "INFO"

# Environment variable names for configuration.
ENV_PRODUCTION = "PLAYVESTED_PRODUCTION"
ENV_SERVER_URL = "PLAYVESTED_SERVER_URL"
ENV_TIMEOUT = "PLAYVESTED_TIMEOUT"
ENV_LOG_LEVEL = "PLAYVESTED_LOG_LEVEL"
ENV_PUBLISHER_ID = "PLAYVESTED_PUBLISHER_ID"
ENV_APPLICATION_ID = "PLAYVESTED_APPLICATION_ID"
ENV_PLAYER_ID = "PLAYVESTED_PLAYER_ID"


def _parse_bool(value: str) -> bool:
    """Parse a string value to boolean."""
    return value.lower() in ("true", "yes", "1", "on", "enabled")


def resolve_base_url(production: bool) -> str:
    """Pick the ledger endpoint for the execution environment."""
    return PRODUCTION_BASE_URL if production else LOCAL_BASE_URL


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================


@dataclass(frozen=True)
class ClientConfig:
    """
    Immutable configuration container for the PlayVested client.

    Attributes:
        base_url: Ledger base URL. Should NOT include a trailing slash.
        production: True when talking to the production ledger.
        timeout: Per-request timeout in seconds. None waits indefinitely,
            which is the default: the coordinator adds no bound of its own.
        poll_interval: Seconds between body-readiness checks.
        link_close_delay: Seconds the link panel stays open after success.
        log_level: Logging level name for hosts that configure logging.
        publisher_id: Publisher identifier for hosts that read it from config.
        application_id: Application identifier for hosts that read it from config.
        player_id: Stored player identifier, if the host has one.

    Example:
        config = ClientConfig(base_url="http://localhost:1979")
    """

    base_url: str = LOCAL_BASE_URL
    production: bool = False
    timeout: float | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    link_close_delay: float = DEFAULT_LINK_CLOSE_DELAY
    log_level: str = DEFAULT_LOG_LEVEL
    publisher_id: str | None = None
    application_id: str | None = None
    player_id: str | None = None

    def __post_init__(self) -> None:
        """
        Validate configuration values after initialization.

        Raises:
            ValueError: If a value is out of range.
        """
        if not self.base_url:
            raise ValueError("base_url cannot be empty")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be a positive number")

        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be a positive number")

        if self.link_close_delay < 0:
            raise ValueError("link_close_delay cannot be negative")

    @classmethod
    def from_args(cls, args: Sequence[str] | None = None) -> ClientConfig:
        """
        Create a ClientConfig instance from command-line arguments.

        Falls back to environment variables and then default values for any
        unspecified options.

        Args:
            args: Command-line arguments to parse. If None, uses sys.argv[1:].

        Returns:
            ClientConfig: A fully populated configuration object.
        """
        parser = argparse.ArgumentParser(
            prog="playvested-demo",
            description="Demo host for the PlayVested giving ledger client",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=f"""
Examples:
  playvested-demo --application game-1            # Local ledger
  playvested-demo --production --application g1   # Production ledger
  PLAYVESTED_PRODUCTION=1 playvested-demo         # Via environment

Environment Variables:
  {ENV_PRODUCTION}       Use the production ledger (default: off)
  {ENV_SERVER_URL}       Explicit ledger URL (overrides production flag)
  {ENV_TIMEOUT}          Request timeout in seconds (default: none)
  {ENV_LOG_LEVEL}        Logging level (default: {DEFAULT_LOG_LEVEL})
  {ENV_PUBLISHER_ID}     Publisher identifier
  {ENV_APPLICATION_ID}   Application identifier
  {ENV_PLAYER_ID}        Stored player identifier
            """,
        )

        parser.add_argument(
            "--server",
            "-s",
            dest="server_url",
            default=None,  # None means "check env var, then production flag"
            help="Ledger URL (default: chosen by --production)",
        )
        parser.add_argument(
            "--production",
            action="store_true",
            default=None,
            help=f"Use the production ledger at {PRODUCTION_BASE_URL}",
        )
        parser.add_argument(
            "--timeout",
            "-t",
            type=float,
            default=None,
            help="Request timeout in seconds (default: wait indefinitely)",
        )
        parser.add_argument(
            "--log-level",
            dest="log_level",
            default=None,
            help=f"Logging level (default: {DEFAULT_LOG_LEVEL})",
        )
        parser.add_argument("--publisher", dest="publisher_id", default=None)
        parser.add_argument("--application", dest="application_id", default=None)
        parser.add_argument("--player", dest="player_id", default=None)

        parsed = parser.parse_args(args)

        # Resolve production flag with precedence: CLI > ENV > DEFAULT
        if parsed.production is not None:
            production = parsed.production
        else:
            production = _parse_bool(os.environ.get(ENV_PRODUCTION, ""))

        server_url = (
            parsed.server_url or os.environ.get(ENV_SERVER_URL) or resolve_base_url(production)
        )
        server_url = server_url.rstrip("/")

        if parsed.timeout is not None:
            timeout: float | None = parsed.timeout
        elif ENV_TIMEOUT in os.environ:
            timeout = float(os.environ[ENV_TIMEOUT])
        else:
            timeout = None

        log_level = (parsed.log_level or os.environ.get(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper()

        return cls(
            base_url=server_url,
            production=production,
            timeout=timeout,
            log_level=log_level,
            publisher_id=parsed.publisher_id or os.environ.get(ENV_PUBLISHER_ID),
            application_id=parsed.application_id or os.environ.get(ENV_APPLICATION_ID),
            player_id=parsed.player_id or os.environ.get(ENV_PLAYER_ID),
        )
