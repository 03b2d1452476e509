"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable in one dataclass, validated once at startup.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── minicat --port 3000                                        │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── MINICAT_PORT=3000 minicat                                  │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


# Assets shipped inside the package: index.html, login.html, ...
DEFAULT_STATIC_DIR = str(Path(__file__).resolve().parent / "static")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK     host, port, backlog, timeout
    THREADING   min_workers, max_workers
    REQUESTS    max_body_size
    ASSETS      static_dir
    LOGGING     log_level
    IDENTITY    server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" listens on every interface."""

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Accepted-but-not-yet-served connections the OS will queue."""

    timeout: Optional[float] = 30.0
    """
    Socket timeout in seconds for reads and writes on a client connection.
    A client that stalls longer than this gets its connection closed.
    None blocks forever.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_body_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest Content-Length accepted; larger requests are refused."""

    # ─────────────────────────────────────────────────────────────────────
    # STATIC FILES
    # ─────────────────────────────────────────────────────────────────────

    static_dir: str = field(default=DEFAULT_STATIC_DIR)
    """Root directory of the static assets served by the fallback handler."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    server_name: str = "minicat/1.0"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        MINICAT_HOST        Server host (default: 127.0.0.1)
        MINICAT_PORT        Server port (default: 8080)
        MINICAT_WORKERS     Max worker threads (default: 16)
        MINICAT_TIMEOUT     Socket timeout in seconds (default: 30)
        MINICAT_STATIC_DIR  Static files directory (default: packaged assets)
        MINICAT_LOG_LEVEL   Logging level (default: INFO)

        =====================================================================
        """
        max_workers = int(os.getenv("MINICAT_WORKERS", "16"))
        return cls(
            host=os.getenv("MINICAT_HOST", "127.0.0.1"),
            port=int(os.getenv("MINICAT_PORT", "8080")),
            min_workers=min(4, max_workers),
            max_workers=max_workers,
            timeout=float(os.getenv("MINICAT_TIMEOUT", "30")),
            static_dir=os.getenv("MINICAT_STATIC_DIR", DEFAULT_STATIC_DIR),
            log_level=os.getenv("MINICAT_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Fail fast on values the server cannot run with.

        Raises:
            ValueError: describing the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError(f"backlog must be >= 1, got {self.backlog}")

        if self.min_workers < 1:
            raise ValueError(f"min_workers must be >= 1, got {self.min_workers}")

        if self.max_workers < self.min_workers:
            raise ValueError(
                f"max_workers ({self.max_workers}) must be >= "
                f"min_workers ({self.min_workers})"
            )

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

        if self.max_body_size < 0:
            raise ValueError(f"max_body_size must be >= 0, got {self.max_body_size}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}")

        if not os.path.isdir(self.static_dir):
            raise ValueError(f"Static directory does not exist: {self.static_dir}")
