"""
インフラストラクチャ層

レート制限、CSRF トークン、JSON 出力などの外部システム依存を提供します。
"""

from .rate_limiter import (
    RateLimiter,
    RateLimitConfig,
    RateLimitResult,
    RateLimitMode,
    get_client_identifier,
    get_rate_limit_configs,
)
from .csrf import (
    CsrfViolation,
    check_csrf_protection,
    generate_token,
    get_or_create_token,
    validate_token,
)
from .output_writer import OutputWriter

__all__ = [
    "RateLimiter",
    "RateLimitConfig",
    "RateLimitResult",
    "RateLimitMode",
    "get_client_identifier",
    "get_rate_limit_configs",
    "CsrfViolation",
    "check_csrf_protection",
    "generate_token",
    "get_or_create_token",
    "validate_token",
    "OutputWriter",
]
