"""
API Infrastructure

Upstream API clients.
"""

from .base_client import BaseAPIClient
from .blizzard import BlizzardAPIClient, BlizzardOAuthService
from .raiderio import RaiderIOClient
from .auth import CredentialManager
from .provider_client import ProviderClient

__all__ = [
    "BaseAPIClient",
    "BlizzardAPIClient",
    "BlizzardOAuthService",
    "RaiderIOClient",
    "CredentialManager",
    "ProviderClient",
]
