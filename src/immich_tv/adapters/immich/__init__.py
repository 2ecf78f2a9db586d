from .base import ImmichAdapterError, PhotoServerAdapter
from .client import ImmichClient
from .executor import execute_api_call
from .factory import ApiClientConfig, ImmichClientFactory

__all__ = [
    "ApiClientConfig",
    "ImmichAdapterError",
    "ImmichClient",
    "ImmichClientFactory",
    "PhotoServerAdapter",
    "execute_api_call",
]
