"""Application configuration.

AppConfig is a frozen dataclass, immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, port=3000, request_timeout=10.0)
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    workers: int = 1
    log_level: str = "info"

    # Routing
    case_sensitive_routing: bool = False  # "/Users" and "/users" are different routes
    strict_routing: bool = False  # "/users" and "/users/" are different routes

    # Limits
    max_body_size: int = 1024 * 1024  # 1 MB
    request_timeout: float | None = None  # Seconds; None disables the deadline
