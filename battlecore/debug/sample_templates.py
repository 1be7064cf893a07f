# battlecore/debug/sample_templates.py
#
# A small hero / enemy roster for the debug harness. Not game content:
# just enough to exercise every resource class and the protection chain.

from __future__ import annotations

from battlecore.battle.templates import TemplateCatalog

SAMPLE_HEROES = [
    {
        "id": "sir_gallan",
        "name": "Sir Gallan",
        "class_id": "knight",
        "rarity": 3,
        "base_stats": {"hp": 160, "atk": 28, "def": 30, "spd": 10},
        "leader_skill": {
            "name": "Hold the Line",
            "effects": [
                {"type": "passive", "stat": "def", "value": 15, "condition": {"hp_below": 50}},
            ],
        },
        "skills": [
            {
                "name": "Shield Wall",
                "target_type": "ally",
                "effects": [
                    {"type": "guardian_link", "duration": 2, "redirect_percent": {"base": 30, "at50": 50}},
                ],
            },
            {
                "name": "Valiant Strike",
                "target_type": "enemy",
                "valor_required": 25,
                "damage": {"base": 120, "at25": 140, "at50": 170},
            },
        ],
    },
    {
        "id": "brakka",
        "name": "Brakka",
        "class_id": "berserker",
        "rarity": 3,
        "base_stats": {"hp": 130, "atk": 40, "def": 14, "spd": 13},
        "heartbreak": {
            "max_stacks": 5,
            "atk_per_stack": 4,
            "lifesteal_per_stack": 3,
            "triggers": {"ally_below_half_hp": True, "ally_death": True, "heavy_damage_percent": 25},
        },
        "skills": [
            {"name": "Cleave", "target_type": "all_enemies", "rage_cost": 30, "damage": 70},
            {
                "name": "Blood Frenzy",
                "target_type": "enemy",
                "rage_cost": "all",
                "rage_required": 50,
                "base_damage": 20,
                "damage_per_resource": 1.5,
            },
        ],
    },
    {
        "id": "wren",
        "name": "Wren",
        "class_id": "bard",
        "rarity": 3,
        "base_stats": {"hp": 95, "atk": 24, "def": 14, "spd": 15, "mp": 60},
        "finale": {
            "name": "Standing Ovation",
            "target": "all_allies",
            "effects": [
                {"type": "resource_grant", "amount": 10},
                {"type": "heal", "value": 15},
            ],
        },
        "skills": [
            {
                "name": "Inspiring Song",
                "target_type": "all_allies",
                "effects": [{"type": "atk_up", "target": "all_allies", "duration": 2, "value": 15}],
            },
            {"name": "Jarring Whistle", "target_type": "enemy", "damage": 90},
            {
                "name": "Lullaby",
                "target_type": "enemy",
                "cooldown": 3,
                "effects": [{"type": "sleep", "duration": 1}],
            },
        ],
    },
    {
        "id": "sister_ama",
        "name": "Sister Ama",
        "class_id": "cleric",
        "rarity": 3,
        "base_stats": {"hp": 100, "atk": 22, "def": 16, "spd": 11, "mp": 90},
        "skills": [
            {"name": "Mend", "target_type": "ally", "mp_cost": 15, "heal": {"percent": 200}},
            {
                "name": "Purify",
                "target_type": "all_allies",
                "mp_cost": 20,
                "cleanse": {"target": "all_allies", "count": 1},
            },
        ],
    },
]

SAMPLE_ENEMIES = [
    {
        "id": "goblin_cutthroat",
        "name": "Goblin Cutthroat",
        "base_stats": {"hp": 70, "atk": 24, "def": 8, "spd": 14},
        "skills": [
            {
                "name": "Poisoned Blade",
                "target_type": "enemy",
                "cooldown": 2,
                "damage": 90,
                "effects": [{"type": "poison", "duration": 2, "value": 20}],
            },
        ],
    },
    {
        "id": "cave_troll",
        "name": "Cave Troll",
        "base_stats": {"hp": 220, "atk": 34, "def": 18, "spd": 6},
        "passives": [
            {
                "name": "Thick Hide",
                "trigger": "battle_start",
                "effects": [{"type": "damage_reduction", "target": "self", "duration": None, "value": 10}],
            },
        ],
        "skills": [
            {"name": "Boulder Toss", "target_type": "random_enemies", "hits": 2, "cooldown": 3, "damage": 80},
        ],
    },
    {
        "id": "shaman",
        "name": "Goblin Shaman",
        "base_stats": {"hp": 80, "atk": 20, "def": 10, "spd": 12},
        "skills": [
            {
                "name": "Call Kin",
                "target_type": "self",
                "cooldown": 4,
                "summon": {
                    "template_id": "goblin_cutthroat",
                    "fallback": {"type": "atk_up", "target": "all_allies", "duration": 2, "value": 20},
                },
            },
        ],
    },
]


def sample_catalog() -> TemplateCatalog:
    return TemplateCatalog.from_dicts(SAMPLE_HEROES, SAMPLE_ENEMIES)
