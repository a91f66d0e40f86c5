"""Application-wide constants for the D&D 5E character roster.

D&D 5E rule constants used by the ability, equipment and progression
engines, plus the option lists the creation wizard offers.
"""

from __future__ import annotations

# =============================================================================
# Ability Score Constants (PHB p.13)
# =============================================================================

DEFAULT_ABILITY_SCORE = 10
"""Score used when a base score has not been assigned yet."""

PC_ABILITY_SCORE_CAP = 20
"""Maximum ability score reachable through ASIs and feats."""

MAX_ABILITY_SCORE = 30
"""Absolute ceiling for any ability score, magic included."""

MIN_ABILITY_SCORE = 1
"""Floor applied to computed final scores."""

MANUAL_SCORE_MIN = 3
"""Lowest base score accepted by manual entry once the field loses focus."""

MANUAL_SCORE_MAX = 18
"""Highest base score accepted by manual entry once the field loses focus."""

STANDARD_ARRAY = (15, 14, 13, 12, 10, 8)
"""Standard array values; each is assigned to exactly one ability."""

ASI_POINTS = 2
"""Points distributed by a single Ability Score Improvement."""

# =============================================================================
# Point Buy Constants (PHB p.13)
# =============================================================================

POINT_BUY_TOTAL = 27
"""Total points available for point buy character creation."""

POINT_BUY_MIN = 8
"""Minimum ability score in point buy."""

POINT_BUY_MAX = 15
"""Maximum ability score in point buy (before racial bonuses)."""

POINT_BUY_COSTS = {
    8: 0,
    9: 1,
    10: 2,
    11: 3,
    12: 4,
    13: 5,
    14: 7,
    15: 9,
}

MULTICLASS_MINIMUM_SCORE = 13
"""Ability score required in each designated ability to multiclass."""

# =============================================================================
# Character Defaults
# =============================================================================

MAX_CHARACTER_LEVEL = 20
MIN_CHARACTER_LEVEL = 1

DEFAULT_SPEED = 30
"""Walking speed used when a race entry has none."""

BASE_ARMOR_CLASS = 10
"""Unarmored AC before the DEX modifier."""

DEFAULT_HIT_DIE = 8
"""Hit die for classes missing from the hit die table."""

DEFAULT_SUBCLASS_LEVEL = 3
"""Subclass level assumed for classes missing from the table."""

FALLBACK_CHARACTER_NAME = "Unnamed Hero"

FALLBACK_RACE = "human"

FALLBACK_CLASS = "fighter"

SHORT_REST_HEAL_FRACTION = 0.5
"""Share of missing HP restored by a short rest."""

ALLOWED_AVATAR_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
}
"""Avatar file extensions the backend accepts, with their MIME types."""

# =============================================================================
# Wizard Option Lists
# =============================================================================

ALIGNMENTS = {
    "LG": "Lawful Good",
    "NG": "Neutral Good",
    "CG": "Chaotic Good",
    "LN": "Lawful Neutral",
    "N": "True Neutral",
    "CN": "Chaotic Neutral",
    "LE": "Lawful Evil",
    "NE": "Neutral Evil",
    "CE": "Chaotic Evil",
}

LIFESTYLES = {
    "wretched": "Wretched (0 gp/day)",
    "squalid": "Squalid (1 sp/day)",
    "poor": "Poor (2 sp/day)",
    "modest": "Modest (1 gp/day)",
    "comfortable": "Comfortable (2 gp/day)",
    "wealthy": "Wealthy (4 gp/day)",
    "aristocratic": "Aristocratic (10 gp/day minimum)",
}


__all__ = [
    # Ability scores
    "DEFAULT_ABILITY_SCORE",
    "PC_ABILITY_SCORE_CAP",
    "MAX_ABILITY_SCORE",
    "MIN_ABILITY_SCORE",
    "MANUAL_SCORE_MIN",
    "MANUAL_SCORE_MAX",
    "STANDARD_ARRAY",
    "ASI_POINTS",
    # Point buy
    "POINT_BUY_TOTAL",
    "POINT_BUY_MIN",
    "POINT_BUY_MAX",
    "POINT_BUY_COSTS",
    "MULTICLASS_MINIMUM_SCORE",
    # Defaults
    "MAX_CHARACTER_LEVEL",
    "MIN_CHARACTER_LEVEL",
    "DEFAULT_SPEED",
    "BASE_ARMOR_CLASS",
    "DEFAULT_HIT_DIE",
    "DEFAULT_SUBCLASS_LEVEL",
    "FALLBACK_CHARACTER_NAME",
    "FALLBACK_RACE",
    "FALLBACK_CLASS",
    "SHORT_REST_HEAL_FRACTION",
    "ALLOWED_AVATAR_TYPES",
    # Wizard options
    "ALIGNMENTS",
    "LIFESTYLES",
]
