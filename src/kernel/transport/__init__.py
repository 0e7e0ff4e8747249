"""Transport to the admin REST backend."""

from src.kernel.transport.api_client import AdminApiClient, ApiEnvelope, TransportError

__all__ = [
    "AdminApiClient",
    "ApiEnvelope",
    "TransportError",
]
