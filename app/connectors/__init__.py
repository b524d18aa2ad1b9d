"""
app/connectors package marker.
"""

from app.connectors.adsense_backend import AdSenseBackendClient
from app.connectors.base import BackendPayloadError, BackendRequestError, BaseBackendClient

__all__ = [
    "AdSenseBackendClient",
    "BackendPayloadError",
    "BackendRequestError",
    "BaseBackendClient",
]
