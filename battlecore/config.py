# battlecore/config.py
#
# Battle tuning knobs. Module-level so a harness (or a test) can override
# them before a battle starts.

from __future__ import annotations

# ------------------------------------------------------------
# Damage pipeline
# ------------------------------------------------------------
MIN_DAMAGE: int = 1
CRIT_MULTIPLIER: float = 1.5
EVASION_CAP: int = 100

# ------------------------------------------------------------
# Field
# ------------------------------------------------------------
MAX_ENEMIES: int = 6
DEFAULT_EFFECT_DURATION: int = 2

# ------------------------------------------------------------
# Resource economy
# ------------------------------------------------------------
MANA_START_FRACTION: float = 0.3
MANA_ROUND_REGEN_FRACTION: float = 0.1

RAGE_MAX: int = 100
RAGE_ON_DAMAGE_DEALT: int = 5
RAGE_ON_DAMAGE_TAKEN: int = 5

VALOR_MAX: int = 100
VALOR_ON_DAMAGE_TAKEN: int = 5
VALOR_ON_REDIRECT: int = 5

FOCUS_MAX: int = 1
VERSE_MAX: int = 3

ESSENCE_TURN_REGEN: int = 10
ESSENCE_STABLE_MAX: int = 20
ESSENCE_REACTIVE_MAX: int = 40
ESSENCE_REACTIVE_BONUS: int = 15
ESSENCE_VOLATILE_BONUS: int = 30
ESSENCE_VOLATILE_SELF_DAMAGE_PERCENT: int = 5
