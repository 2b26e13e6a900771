"""
Security Utilities for Public APIs

Provides rate limiting, bearer token extraction, and input sanitization
for plan endpoints that allow guest access. Plans and participants are
authenticated with opaque bearer tokens only.
"""

import re
import frappe
from frappe import _
from frappe.utils import cint

AUTH_HEADER = "Authorization"
BEARER_PREFIX = "Bearer "


# ===================
# Rate Limiting
# ===================

def check_rate_limit(action: str, limit: int = 10, seconds: int = 60) -> None:
    """
    Check rate limit for an action by IP address.

    Uses Frappe's cache (Redis) to track request counts per IP.

    Args:
        action: Identifier for the action being rate limited
        limit: Maximum number of requests allowed
        seconds: Time window in seconds

    Raises:
        frappe.TooManyRequestsError: If rate limit exceeded
    """
    ip = get_client_ip()
    cache_key = f"rate_limit:meet_availability:{action}:{ip}"

    current = cint(frappe.cache.get_value(cache_key) or 0)

    if current >= limit:
        frappe.log_error(
            title=_("Rate Limit Exceeded"),
            message=f"IP: {ip}, Action: {action}, Limit: {limit}/{seconds}s"
        )
        frappe.throw(
            _("Too many requests. Please wait a moment and try again."),
            frappe.TooManyRequestsError
        )

    frappe.cache.set_value(cache_key, current + 1, expires_in_sec=seconds)


def get_client_ip() -> str:
    """
    Get the real client IP address, handling proxies.

    Returns:
        str: Client IP address
    """
    forwarded_for = frappe.request.headers.get('X-Forwarded-For', '')
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first one
        return forwarded_for.split(',')[0].strip()

    real_ip = frappe.request.headers.get('X-Real-IP', '')
    if real_ip:
        return real_ip.strip()

    return frappe.request.remote_addr or 'unknown'


# ===================
# Bearer Tokens
# ===================

def get_bearer_token() -> str:
    """
    Extract the bearer token from the Authorization header.

    Returns:
        str: token, or None if the header is missing or malformed
    """
    auth = frappe.get_request_header(AUTH_HEADER) or ""
    if not auth.startswith(BEARER_PREFIX):
        return None

    return auth[len(BEARER_PREFIX):].strip() or None


# ===================
# Input Validation
# ===================

def sanitize_string(value: str, max_length: int = 500) -> str:
    """
    General string sanitization.

    Args:
        value: String to sanitize
        max_length: Maximum allowed length

    Returns:
        str: Sanitized string
    """
    if not value:
        return None

    value = str(value).strip()

    if len(value) > max_length:
        value = value[:max_length]

    # Remove null bytes and other control characters
    value = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', value)

    return value
