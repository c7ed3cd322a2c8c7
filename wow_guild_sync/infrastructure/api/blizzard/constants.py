"""
Blizzard Game Data Constants
"""

import re

VALID_REGIONS = ("us", "eu", "kr", "tw", "cn")

# Any URL we dereference must point at a regional Blizzard API host
BLIZZARD_HOST_RE = re.compile(r"^https://[a-z]{2}\.api\.blizzard\.com/")

CLASS_ID_MAP = {
    1: "Warrior",
    2: "Paladin",
    3: "Hunter",
    4: "Rogue",
    5: "Priest",
    6: "Death Knight",
    7: "Shaman",
    8: "Mage",
    9: "Warlock",
    10: "Monk",
    11: "Druid",
    12: "Demon Hunter",
    13: "Evoker",
}

# Raider.IO raid slugs, current tier first
RAID_PRIORITY = [
    "manaforge-omega",
    "liberation-of-undermine",
    "nerubar-palace",
]

RAID_NAMES = {
    "manaforge-omega": "Manaforge Omega",
    "liberation-of-undermine": "Liberation of Undermine",
    "nerubar-palace": "Nerub-ar Palace",
}

PVP_BRACKETS = {
    "2v2": "pvp_2v2_rating",
    "3v3": "pvp_3v3_rating",
    "rbg": "pvp_rbg_rating",
}
