"""Badge catalog, unlock-record shapes and legacy id aliases."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Literal, Optional, TypedDict

RequirementType = Literal[
    "total_mileage",
    "bike_count",
    "service_count",
    "component_count",
    "service_cost",
    "days_active",
]


class Requirement(TypedDict):
    """A single ``stat >= value`` condition."""

    type: RequirementType
    value: float


class BadgeDefinition(TypedDict):
    """A catalog entry. Every requirement must hold for the badge to unlock."""

    id: str
    name: str
    description: str
    icon: str
    rarity: Literal["common", "rare", "epic", "legendary"]
    category: Literal["mileage", "maintenance", "social", "achievement"]
    requirements: list[Requirement]


class Badge(BadgeDefinition, total=False):
    """A catalog entry decorated with a user's unlock state."""

    isUnlocked: bool
    unlockedAt: Optional[int]
    progress: int


class UserBadge(TypedDict):
    """The public view of an unlock record."""

    badgeId: str
    unlockedAt: int
    progress: int


class UnlockRecord(UserBadge):
    """A ``user_badges`` document. Created once, never updated."""

    uid: str
    createdAt: int


class UserStats(TypedDict):
    """Per-user aggregate used to evaluate requirements. Never stored."""

    totalMileage: float
    bikeCount: int
    serviceCount: int
    componentCount: int
    totalServiceCost: float
    daysActive: int


class BadgeProgress(TypedDict):
    badgeId: str
    current: float
    target: float
    percentage: int


# Which UserStats field each requirement type is measured against.
REQUIREMENT_STAT_FIELDS: MappingProxyType[str, str] = MappingProxyType(
    {
        "total_mileage": "totalMileage",
        "bike_count": "bikeCount",
        "service_count": "serviceCount",
        "component_count": "componentCount",
        "service_cost": "totalServiceCost",
        "days_active": "daysActive",
    }
)


def _badge(
    badge_id: str,
    name: str,
    description: str,
    icon: str,
    rarity: Any,
    category: Any,
    requirements: list[Requirement],
) -> BadgeDefinition:
    return {
        "id": badge_id,
        "name": name,
        "description": description,
        "icon": icon,
        "rarity": rarity,
        "category": category,
        "requirements": requirements,
    }


# Evaluation order follows this tuple.
BADGE_DEFINITIONS: tuple[BadgeDefinition, ...] = (
    _badge(
        "first_ride",
        "First Ride",
        "Complete your first ride",
        "🚴",
        "common",
        "mileage",
        [{"type": "total_mileage", "value": 1}],
    ),
    _badge(
        "century",
        "Century",
        "Ride 100 kilometers",
        "💯",
        "common",
        "mileage",
        [{"type": "total_mileage", "value": 100}],
    ),
    _badge(
        "half_marathon",
        "Half Marathon",
        "Ride 500 kilometers",
        "🏃",
        "rare",
        "mileage",
        [{"type": "total_mileage", "value": 500}],
    ),
    _badge(
        "marathon",
        "Marathon",
        "Ride 1000 kilometers",
        "🏅",
        "rare",
        "mileage",
        [{"type": "total_mileage", "value": 1000}],
    ),
    _badge(
        "ultra_marathon",
        "Ultra Marathon",
        "Ride 2000 kilometers",
        "🏆",
        "epic",
        "mileage",
        [{"type": "total_mileage", "value": 2000}],
    ),
    _badge(
        "bike_collector",
        "Bike Collector",
        "Own 3 bikes",
        "🚲",
        "common",
        "achievement",
        [{"type": "bike_count", "value": 3}],
    ),
    _badge(
        "maintenance_master",
        "Maintenance Master",
        "Log 10 service records",
        "🔧",
        "rare",
        "maintenance",
        [{"type": "service_count", "value": 10}],
    ),
    _badge(
        "component_expert",
        "Component Expert",
        "Track 5 components",
        "⚙️",
        "common",
        "achievement",
        [{"type": "component_count", "value": 5}],
    ),
    _badge(
        "big_spender",
        "Big Spender",
        "Spend $500 on maintenance",
        "💰",
        "epic",
        "maintenance",
        [{"type": "service_cost", "value": 500}],
    ),
    _badge(
        "dedicated_rider",
        "Dedicated Rider",
        "Active for 30 days",
        "📅",
        "rare",
        "achievement",
        [{"type": "days_active", "value": 30}],
    ),
)

_LEGACY_BADGE_IDS = {
    "first_steps": "first_ride",
    "first_bike": "first_ride",
    "km_100": "century",
    "hundred_km": "century",
    "km_500": "half_marathon",
    "km_1000": "marathon",
    "thousand_km": "marathon",
    "km_2000": "ultra_marathon",
    "distance_master": "ultra_marathon",
    "bike_owner": "bike_collector",
    "maintenance_expert": "maintenance_master",
    "component_master": "component_expert",
}

# Older app builds used their own ids; every key here is lower-case.
BADGE_ID_ALIASES: MappingProxyType[str, str] = MappingProxyType(
    {
        **{badge["id"]: badge["id"] for badge in BADGE_DEFINITIONS},
        **_LEGACY_BADGE_IDS,
    }
)


def normalize_badge_id(badge_id: str) -> str:
    """Map a client-supplied badge id onto its canonical catalog id.

    Lookup ignores case. Unknown ids come back lower-cased but otherwise
    unchanged so callers can report them as not found.
    """
    key = badge_id.lower()
    return BADGE_ID_ALIASES.get(key, key)


def get_badge_definition(badge_id: str) -> BadgeDefinition | None:
    """Return the catalog entry for a canonical id, if there is one."""
    for badge in BADGE_DEFINITIONS:
        if badge["id"] == badge_id:
            return badge
    return None
