# battlecore/battle/battle_controller.py
#
# The battle's single point of authority.
#
# Flow per turn:
#   scheduler.next_actor() -> AI or player picks a command ->
#   validate (atomic, no mutation on refusal) -> pay cost ->
#   SkillResolver.resolve() -> class rules (verses, focus, essence) ->
#   end-of-turn status tick -> win/loss check -> next actor.
#
# Only PLAYER_TURN accepts select_action(); enemy turns (and any hero turn
# skipped by stun / sleep) run internally until a hero is up again or the
# battle ends.

from __future__ import annotations

import random
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from battlecore import config
from battlecore.battle import resources
from battlecore.battle.ai.basic import choose_enemy_action, choose_hero_action
from battlecore.battle.battle_command import (
    ActionOutcome,
    BattleCommand,
    RefusalReason,
    parse_action_token,
)
from battlecore.battle.combatants import BattleUnit, create_unit
from battlecore.battle.scaling import scaling_context
from battlecore.battle.scheduler import TurnScheduler
from battlecore.battle.session import BattleLogEntry, BattleSession
from battlecore.battle.skills import finales, passives, registry
from battlecore.battle.skills.base import SkillDefinition, SkillResolutionResult
from battlecore.battle.skills.resolver import SkillResolver
from battlecore.battle.skills.targeting import valid_targets
from battlecore.battle.status.catalog import EffectType
from battlecore.battle.status.swap import FortuneSwapResult
from battlecore.battle.templates import TemplateCatalog
from battlecore.debug.debug_logger import BattleDebug, warn


class BattleState(str, Enum):
    SETUP = "setup"
    PLAYER_TURN = "player_turn"
    ENEMY_TURN = "enemy_turn"
    RESOLUTION = "resolution"
    VICTORY = "victory"
    DEFEAT = "defeat"


TERMINAL_STATES = (BattleState.VICTORY, BattleState.DEFEAT)

# Control effects that cost the holder its turn
_SKIP_TURN = (EffectType.STUN, EffectType.SLEEP)

PartyEntry = Union[str, Dict[str, Any]]


class BattleController:
    """
    Owns one battle from setup to victory/defeat.

    The random source is injected (anything with a .random() method);
    tests script it, the default is a fresh random.Random().
    """

    def __init__(self, catalog: TemplateCatalog, *, rng: Any = None) -> None:
        self.catalog = catalog
        self.rng = rng if rng is not None else random.Random()
        self.scheduler = TurnScheduler()
        self.session = BattleSession([], [], rng=self.rng, catalog=catalog, scheduler=self.scheduler)
        self._state = BattleState.SETUP
        self._current: Optional[BattleUnit] = None
        self.debug = BattleDebug()

    # ------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------
    @property
    def heroes(self) -> List[BattleUnit]:
        return list(self.session.heroes)

    @property
    def enemies(self) -> List[BattleUnit]:
        return list(self.session.enemies)

    @property
    def state(self) -> BattleState:
        return self._state

    @property
    def current_unit(self) -> Optional[BattleUnit]:
        return self._current

    @property
    def turn_order(self) -> List[BattleUnit]:
        """The acting unit (if any) followed by the rest of this round."""
        upcoming = self.scheduler.turn_order
        if self._current is not None and self._current.alive and self._current not in upcoming:
            upcoming.insert(0, self._current)
        return upcoming

    @property
    def round_number(self) -> int:
        return self.scheduler.round_number

    @property
    def log(self) -> List[BattleLogEntry]:
        return list(self.session.log)

    @property
    def is_over(self) -> bool:
        return self._state in TERMINAL_STATES

    # ------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------
    def init_battle(self, party_config: Sequence[PartyEntry], enemy_ids: Sequence[str]) -> BattleState:
        """
        Build both sides and run until the first hero turn.

        party_config entries are template ids or dicts
        {"template_id", "hp"?, "resource"?}; the dicts get_party_state()
        returns can be fed straight back in. Unknown template ids are
        skipped with a warning.
        """
        heroes: List[BattleUnit] = []
        for i, entry in enumerate(party_config):
            state = {"template_id": entry} if isinstance(entry, str) else dict(entry)
            template = self.catalog.get_template(state.get("template_id"))
            if template is None:
                continue
            heroes.append(create_unit(template, f"hero_{i}", state))

        enemies: List[BattleUnit] = []
        for i, template_id in enumerate(enemy_ids):
            template = self.catalog.get_template(template_id)
            if template is None:
                continue
            if len(enemies) >= config.MAX_ENEMIES:
                warn(f"Enemy line full; {template_id!r} dropped")
                continue
            unit = create_unit(template, f"enemy_{i}")
            unit.side = "enemy"
            enemies.append(unit)
        for unit in heroes:
            unit.side = "hero"

        self.scheduler = TurnScheduler()
        self.session = BattleSession(heroes, enemies, rng=self.rng, catalog=self.catalog, scheduler=self.scheduler)
        self._current = None
        self._state = BattleState.SETUP
        self.session.emit(
            f"Battle begins: {len(heroes)} heroes vs {len(enemies)} enemies",
            kind="battle_start",
        )
        self.debug.party_snapshot(heroes)
        self.debug.enemy_snapshot(enemies)

        if heroes:
            passives.apply_leader_skill(heroes[0], self.session, "battle_start")
        for unit in self.session.all_units():
            passives.fire("battle_start", unit, self.session)
        self._validate()

        self._advance()
        return self._state

    # ------------------------------------------------------------
    # Player API
    # ------------------------------------------------------------
    def select_action(self, token: Union[int, str], target_id: Optional[str] = None) -> ActionOutcome:
        """
        Act for the hero whose turn it is. `token` is a skill index or
        "attack" / "basic". Refusals mutate nothing and keep the turn.
        """
        if self._state != BattleState.PLAYER_TURN or self._current is None:
            return ActionOutcome.refuse(RefusalReason.NOT_PLAYER_TURN, f"Not accepting actions in {self._state.value}")

        actor = self._current
        command = parse_action_token(actor.id, token, target_id)
        if command is None:
            return ActionOutcome.refuse(RefusalReason.INVALID_ACTION, f"Unknown action {token!r}")

        checked = self._check_command(actor, command)
        if isinstance(checked, ActionOutcome):
            self.debug.runtime(f"[REFUSED] {actor.name}: {checked.reason.value} ({checked.message})")
            return checked

        skill, target = checked
        self._state = BattleState.RESOLUTION
        result = self._execute(actor, skill, target, basic=command.is_basic)
        self._end_turn(actor)
        self._advance()
        return ActionOutcome(accepted=True, message=result.message or "", result=result)

    def auto_play_turn(self) -> ActionOutcome:
        """Let the hero AI take the current hero turn."""
        if self._state != BattleState.PLAYER_TURN or self._current is None:
            return ActionOutcome.refuse(RefusalReason.NOT_PLAYER_TURN, f"Not accepting actions in {self._state.value}")
        command = choose_hero_action(self._current, self.session)
        if command is None:
            return ActionOutcome.refuse(RefusalReason.NO_VALID_TARGET, "No legal action")
        token: Union[int, str] = "basic" if command.is_basic else command.skill_index
        return self.select_action(token, command.target_id)

    def apply_damage(
        self,
        unit: BattleUnit,
        amount: int,
        source: str = "external",
        attacker: Optional[BattleUnit] = None,
    ) -> int:
        """
        Damage from outside a skill (scripted events, tests). Runs the full
        protection chain and death handling; returns total HP lost.
        """
        lost = self.session.apply_damage(unit, amount, source, attacker)
        self._validate()
        if self._check_end():
            return lost
        if self._state == BattleState.PLAYER_TURN and self._current is not None and not self._current.alive:
            self._current = None
            self._state = BattleState.RESOLUTION
            self._advance()
        return lost

    def execute_finale(self, unit: BattleUnit) -> Optional[Union[SkillResolutionResult, FortuneSwapResult]]:
        result = finales.run_finale(unit, self.session)
        self._validate()
        self._check_end()
        return result

    def execute_fortune_swap(self, unit: BattleUnit) -> FortuneSwapResult:
        result = finales.run_fortune_swap(unit, self.session)
        self._validate()
        return result

    def get_party_state(self) -> List[Dict[str, Any]]:
        """HP / resource per hero, in a shape init_battle() accepts back."""
        party = []
        for unit in self.session.heroes:
            party.append({
                "template_id": unit.template_id,
                "instance_id": unit.id,
                "hp": unit.hp,
                "max_hp": unit.max_hp,
                "resource": unit.resource.current if unit.resource is not None else None,
                "resource_max": unit.resource.max if unit.resource is not None else None,
                "resource_kind": unit.resource.kind if unit.resource is not None else None,
                "alive": unit.alive,
            })
        return party

    # ------------------------------------------------------------
    # Validation (atomic: nothing here mutates)
    # ------------------------------------------------------------
    def skill_for(self, actor: BattleUnit, command: BattleCommand) -> Optional[SkillDefinition]:
        if command.is_basic:
            return registry.basic_attack()
        index = command.skill_index
        if index is None or not 0 <= index < len(actor.skills):
            return None
        return actor.skills[index]

    def _check_command(
        self,
        actor: BattleUnit,
        command: BattleCommand,
    ) -> Union[ActionOutcome, Tuple[SkillDefinition, Optional[BattleUnit]]]:
        skill = self.skill_for(actor, command)
        if skill is None:
            return ActionOutcome.refuse(RefusalReason.INVALID_ACTION, f"{actor.name} has no skill {command.skill_index!r}")

        meta = skill.meta
        if not command.is_basic:
            if actor.status.has(EffectType.SEATED):
                return ActionOutcome.refuse(RefusalReason.SKILLS_SEALED, f"{actor.name} can only attack")
            remaining = actor.cooldown_remaining(skill)
            if remaining > 0:
                return ActionOutcome.refuse(RefusalReason.ON_COOLDOWN, f"{meta.name} ready in {remaining} round(s)")
            if not resources.can_afford(actor, meta.cost):
                return ActionOutcome.refuse(RefusalReason.INSUFFICIENT_RESOURCE, f"Not enough resource for {meta.name}")

        target: Optional[BattleUnit] = None
        if meta.needs_target:
            candidates = valid_targets(actor, meta.target_type, self.session, meta.target_filter)
            if command.target_id is None:
                target = candidates[0] if candidates else None
            else:
                target = next((c for c in candidates if c.id == command.target_id), None)
            if target is None:
                return ActionOutcome.refuse(RefusalReason.NO_VALID_TARGET, f"No valid target for {meta.name}")
        return skill, target

    # ------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------
    def _execute(
        self,
        actor: BattleUnit,
        skill: SkillDefinition,
        target: Optional[BattleUnit],
        *,
        basic: bool,
    ) -> SkillResolutionResult:
        meta = skill.meta
        context_value = scaling_context(actor)
        consumed = resources.spend(actor, meta.cost)
        if meta.cooldown:
            actor.cooldowns[meta.name] = meta.cooldown

        self.session.emit(
            f"{actor.name} uses {meta.name}" + (f" on {target.name}" if target is not None else ""),
            kind="action", actor=actor, target=target, amount=consumed or None,
        )
        result = SkillResolver.resolve(skill, actor, target, self.session, consumed=consumed, context_value=context_value)
        self._apply_class_rules(actor, meta.name, basic)
        if not basic:
            passives.fire("on_skill_use", actor, self.session)
        self._validate()
        return result

    def _apply_class_rules(self, actor: BattleUnit, skill_name: str, basic: bool) -> None:
        if not actor.alive:
            return
        if basic:
            resources.gain_from_action(actor, resources.BASIC_ATTACK)
            return

        resources.gain_from_action(actor, resources.SKILL_USED)
        if resources.advance_verse(actor, skill_name):
            finales.run_finale(actor, self.session)

        cost = resources.essence_self_damage(actor)
        if cost:
            self.session.self_damage(actor, cost)

    # ------------------------------------------------------------
    # Turn / round flow
    # ------------------------------------------------------------
    def _advance(self) -> None:
        """Run internal turns until a hero may act or the battle ends."""
        while not self._check_end():
            actor = self._next_actor()
            if actor is None:
                return
            self._current = actor
            self._begin_turn(actor)
            if self._check_end():
                return
            if not actor.alive:
                self._current = None
                continue

            skip = next((k for k in _SKIP_TURN if actor.status.has(k)), None)
            if skip is not None:
                self.session.emit(f"{actor.name} is {skip} and loses the turn", kind="skip", actor=actor)
                self._end_turn(actor)
                continue

            if actor.is_hero:
                self._state = BattleState.PLAYER_TURN
                return

            self._state = BattleState.ENEMY_TURN
            self._run_enemy_turn(actor)
            self._end_turn(actor)

    def _run_enemy_turn(self, enemy: BattleUnit) -> None:
        command = choose_enemy_action(enemy, self.session)
        if command is None:
            self.debug.enemy_ai(f"{enemy.name} has nothing to do")
            return
        checked = self._check_command(enemy, command)
        if isinstance(checked, ActionOutcome):
            self.debug.enemy_ai(f"{enemy.name} picked an illegal action: {checked.message}")
            return
        skill, target = checked
        self.debug.enemy_ai(f"{enemy.name} -> {skill.meta.name} ({command.reason})")
        self._execute(enemy, skill, target, basic=command.is_basic)

    def _next_actor(self) -> Optional[BattleUnit]:
        actor = self.scheduler.next_actor() if self.scheduler.round_number else None
        if actor is None:
            self._start_round()
            if self._check_end():
                return None
            actor = self.scheduler.next_actor()
        return actor

    def _start_round(self) -> None:
        session = self.session
        session.round_number = self.scheduler.round_number + 1
        session.emit(f"Round {session.round_number}", kind="round")

        for unit in session.all_units():
            if unit.alive:
                unit.tick_cooldowns()
                resources.gain_from_action(unit, resources.ROUND_START)
        if session.heroes:
            passives.apply_leader_skill(session.heroes[0], session, "round_start")
        for unit in session.all_units():
            passives.fire("round_start", unit, session)
        self._validate()

        self.scheduler.start_round(session.all_units())
        self.debug.battle_snapshot(self)

    def _begin_turn(self, actor: BattleUnit) -> None:
        self.session.emit(f"{actor.name}'s turn", kind="turn", actor=actor)
        resources.gain_from_action(actor, resources.TURN_START)
        passives.fire("turn_start", actor, self.session)
        self._validate()

    def _end_turn(self, actor: BattleUnit) -> None:
        if actor.alive:
            self.session.tick_statuses(actor)
        self._validate()
        self._current = None
        if not self.is_over:
            self._state = BattleState.RESOLUTION

    # ------------------------------------------------------------
    # Invariants / end check
    # ------------------------------------------------------------
    def _validate(self) -> None:
        self.session.validate_invariants()

    def _check_end(self) -> bool:
        if self.is_over:
            return True
        heroes_alive = any(u.alive for u in self.session.heroes)
        enemies_alive = any(u.alive for u in self.session.enemies)
        if heroes_alive and enemies_alive:
            return False

        self._current = None
        if not heroes_alive:
            self._state = BattleState.DEFEAT
            self.session.emit("The party has fallen...", kind="defeat")
        else:
            self._state = BattleState.VICTORY
            self.session.emit("Victory!", kind="victory")
        return True
