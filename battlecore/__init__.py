# battlecore/__init__.py
from .battle.battle_controller import BattleController, BattleState
from .battle.battle_command import ActionOutcome, RefusalReason
from .battle.templates import TemplateCatalog, UnitTemplate

__version__ = "0.1.0"
