"""
Shared utilities for Meet Availability API.

Re-exports request security helpers (rate limiting, bearer tokens,
sanitization) and the plan-specific argument validators.
"""

from meet_availability.api.security import (
    # Rate limiting
    check_rate_limit,
    get_client_ip,
    # Tokens
    get_bearer_token,
    AUTH_HEADER,
    # Sanitization
    sanitize_string,
)

from .validators import (
    validate_docname,
    parse_json_arg,
    parse_id_list,
)

__all__ = [
    "check_rate_limit",
    "get_client_ip",
    "get_bearer_token",
    "AUTH_HEADER",
    "sanitize_string",
    "validate_docname",
    "parse_json_arg",
    "parse_id_list",
]
