"""
Nanoleaf External Control Errors

Exception hierarchy raised by the Nanoleaf client. Transport collaborators
never raise these themselves; the device maps their results into this
taxonomy.
"""

from typing import Optional


class NanoleafError(Exception):
    """Base class for all Nanoleaf client errors"""


class ConfigError(NanoleafError):
    """Missing or invalid configuration value"""


class TransportError(NanoleafError):
    """Host unreachable, connection refused or request timeout"""


class AuthenticationError(NanoleafError):
    """Authorization token missing, invalid or expired"""


class AuthorizationDenied(NanoleafError):
    """Fixture refused to grant a new token (pairing not confirmed)"""


class NotFound(NanoleafError):
    """Requested resource path does not exist on the fixture"""


class LayoutMismatch(NanoleafError):
    """Fixture reports no LED panels or a count different from the configured one"""


class ProtocolError(NanoleafError):
    """Unexpected response shape, status or protocol version from the fixture"""


class PreconditionError(NanoleafError):
    """Operation called in the wrong state or with invalid input"""


def error_for_status(status_code: Optional[int], reason: str) -> NanoleafError:
    """
    Map an HTTP result to the matching error class.
    
    Args:
        status_code: HTTP status, or None when no response was received
        reason: Human-readable cause
        
    Returns:
        Exception instance (not raised)
    """
    if status_code is None:
        return TransportError(reason)
    if status_code in (401, 403):
        return AuthenticationError(reason)
    if status_code == 404:
        return NotFound(reason)
    return ProtocolError(reason)
