"""
Identity Core - the operator's session with the admin backend.
"""

from src.kernel.identity.session import Credentials, SessionContext, SessionExpiry

__all__ = [
    "Credentials",
    "SessionContext",
    "SessionExpiry",
]
