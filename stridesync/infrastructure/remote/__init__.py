"""
Remote store integration for StrideSync.
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Client and gateway for the wellness backend's activity endpoints.
"""

from stridesync.infrastructure.remote.client import ActivityApiClient, ApiConfig
from stridesync.infrastructure.remote.gateway import SyncGateway

__all__ = [
    "ActivityApiClient",
    "ApiConfig",
    "SyncGateway",
]
