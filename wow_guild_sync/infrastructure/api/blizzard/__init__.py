"""
Blizzard API Infrastructure

Blizzard Game Data / Profile API client and OAuth token requests.
"""

from .client import (
    BlizzardAPIClient,
    validate_region,
    validate_blizzard_url,
    is_blizzard_url,
)
from .oauth import BlizzardOAuthService
from .constants import VALID_REGIONS, CLASS_ID_MAP, RAID_PRIORITY

__all__ = [
    "BlizzardAPIClient",
    "BlizzardOAuthService",
    "validate_region",
    "validate_blizzard_url",
    "is_blizzard_url",
    "VALID_REGIONS",
    "CLASS_ID_MAP",
    "RAID_PRIORITY",
]
