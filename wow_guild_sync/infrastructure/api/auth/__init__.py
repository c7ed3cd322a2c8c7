"""
Authentication Module

Shared OAuth2 credential handling for the Blizzard API.
"""

from .credential_manager import CredentialManager, TOKEN_KEY, TOKEN_LOCK_KEY

__all__ = [
    "CredentialManager",
    "TOKEN_KEY",
    "TOKEN_LOCK_KEY",
]
