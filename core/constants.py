"""Global constants for the core package.

This module contains shared constants used across the application core.
"""

from typing import Final

# HTTP Client Constants
HTTP_CONNECTION_LIMIT: Final[int] = 10
HTTP_TIMEOUT_CONNECT: Final[float] = 10.0
HTTP_TIMEOUT_SOCK_READ: Final[float] = 30.0
HTTP_TIMEOUT_TOTAL: Final[float] = 60.0

# Route reconstruction
FALLBACK_CONFIDENCE: Final[float] = 0.3
STRONG_CONFIDENCE_THRESHOLD: Final[float] = 0.8
MEDIUM_CONFIDENCE_THRESHOLD: Final[float] = 0.5

# Role supplied by the auth gateway that may act on any user
ROLE_SUPERADMIN: Final[str] = "superadmin"
