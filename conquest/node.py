"""Capacity-bounded territories and their conquest/battle state machine."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional

from .config import RulesConfig
from .models import Faction, NodeState, Vector2
from .timer import Timer

logger = logging.getLogger(__name__)

Events = List[Dict[str, object]]


@dataclass(slots=True)
class Node:
    """A territory that produces units while owned.

    A node is either idle, being conquered (only while unclaimed) or
    battling (only while owned).  The two timed states never overlap; an
    entry point that would break that rule is ignored and reported as a
    ``state_conflict`` event.
    """

    id: int
    position: Vector2
    capacity: int
    production_rate: float
    conquest_timer: Timer
    battle_timer: Timer
    owner: Faction = Faction.UNCLAIMED
    units: int = 0
    conqueror: Optional[Faction] = None
    attacker: Optional[Faction] = None
    attacking_units: int = 0
    production_elapsed_ms: float = 0.0

    @classmethod
    def create(
        cls,
        node_id: int,
        position: Vector2,
        capacity: int,
        rules: RulesConfig,
        owner: Faction = Faction.UNCLAIMED,
        units: int = 0,
    ) -> "Node":
        if not owner.is_claimed:
            units = 0
        return cls(
            id=node_id,
            position=position,
            capacity=capacity,
            production_rate=rules.production_rate(capacity),
            conquest_timer=Timer(rules.neutral_conquest_ms),
            battle_timer=Timer(rules.battle_ms),
            owner=owner,
            units=max(0, min(units, capacity)),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def state(self) -> NodeState:
        if self.conquest_timer.active:
            return NodeState.CONQUERING
        if self.battle_timer.active:
            return NodeState.BATTLING
        return NodeState.IDLE

    @property
    def free_space(self) -> int:
        return max(0, self.capacity - self.units)

    def distance_to(self, other: "Node") -> float:
        return math.hypot(self.position[0] - other.position[0], self.position[1] - other.position[1])

    def can_send(self, count: int) -> bool:
        return 0 < count <= self.units

    # ------------------------------------------------------------------
    # Per-tick update
    # ------------------------------------------------------------------
    def update(self, delta_ms: float, events: Events, production_scale: float = 1.0) -> int:
        """Advance production and any running timer.

        Returns the number of units produced during this step.
        """

        produced = self._update_production(delta_ms, events, production_scale)
        if self.conquest_timer.update(delta_ms):
            self._complete_conquest(events)
        if self.battle_timer.update(delta_ms):
            self._complete_battle(events)
        return produced

    def _update_production(self, delta_ms: float, events: Events, scale: float) -> int:
        if not self.owner.is_claimed or self.units >= self.capacity:
            self.production_elapsed_ms = 0.0
            return 0
        interval = 1000.0 / (self.production_rate * scale)
        self.production_elapsed_ms += delta_ms
        produced = 0
        while self.production_elapsed_ms >= interval and self.units < self.capacity:
            self.units += 1
            produced += 1
            self.production_elapsed_ms -= interval
        if self.units >= self.capacity:
            self.production_elapsed_ms = 0.0
        if produced:
            events.append(
                {"type": "unit_produced", "node": self.id, "owner": self.owner.value, "count": produced, "units": self.units}
            )
        return produced

    # ------------------------------------------------------------------
    # Entry points used by arriving fleets
    # ------------------------------------------------------------------
    def start_conquest(self, faction: Faction, events: Events) -> bool:
        """Begin taking an unclaimed node.

        A conquest already in progress is overwritten by the newcomer and its
        timer restarts.
        """

        if not faction.is_claimed:
            return False
        if self.battle_timer.active or self.owner.is_claimed:
            self._conflict("start_conquest", faction, events)
            return False
        previous = self.conqueror if self.conquest_timer.active else None
        self.conqueror = faction
        self.conquest_timer.start()
        events.append(
            {
                "type": "conquest_started",
                "node": self.id,
                "conqueror": faction.value,
                "replaced": previous.value if previous else None,
            }
        )
        logger.debug("%s started conquering node %s", faction.value, self.id)
        return True

    def start_battle(self, attacker: Faction, attacking_units: int, events: Events) -> bool:
        """Contest an owned node.

        Only one attacker is tracked; a later attacker replaces the earlier one
        and restarts the battle timer.
        """

        if not attacker.is_claimed or attacking_units <= 0:
            return False
        if self.conquest_timer.active or not self.owner.is_claimed or attacker is self.owner:
            self._conflict("start_battle", attacker, events)
            return False
        previous = self.attacker if self.battle_timer.active else None
        self.attacker = attacker
        self.attacking_units = attacking_units
        self.battle_timer.start()
        events.append(
            {
                "type": "battle_started",
                "node": self.id,
                "attacker": attacker.value,
                "attacking_units": attacking_units,
                "defending_units": self.units,
                "replaced": previous.value if previous else None,
            }
        )
        logger.debug(
            "%s attacking %s node %s with %s units vs %s",
            attacker.value,
            self.owner.value,
            self.id,
            attacking_units,
            self.units,
        )
        return True

    def reinforce(self, faction: Faction, arriving: int, events: Events) -> int:
        """Add friendly units; returns how many were lost to the capacity cap."""

        if faction is not self.owner or not faction.is_claimed:
            self._conflict("reinforce", faction, events)
            return arriving
        added = min(arriving, self.free_space)
        self.units += added
        lost = arriving - added
        events.append({"type": "reinforced", "node": self.id, "owner": faction.value, "added": added, "lost": lost})
        if lost:
            logger.debug("%s units lost to capacity at node %s", lost, self.id)
        return lost

    def remove_units(self, count: int) -> int:
        """Withdraw up to ``count`` units and return how many actually left."""

        actual = max(0, min(count, self.units))
        self.units -= actual
        return actual

    # ------------------------------------------------------------------
    # Timer completions
    # ------------------------------------------------------------------
    def _complete_conquest(self, events: Events) -> None:
        conqueror = self.conqueror
        if conqueror is None:
            return
        self.owner = conqueror
        self.units = 0
        self.conqueror = None
        self.production_elapsed_ms = 0.0
        events.append({"type": "conquest_complete", "node": self.id, "owner": conqueror.value})
        logger.debug("Node %s conquered by %s", self.id, conqueror.value)

    def _complete_battle(self, events: Events) -> None:
        attacker = self.attacker
        if attacker is None:
            return
        defenders = self.units
        attackers = self.attacking_units
        previous_owner = self.owner
        overflow = 0
        if attackers > defenders:
            remaining = attackers - defenders
            self.owner = attacker
            self.units = min(self.capacity, remaining)
            overflow = remaining - self.units
            self.production_elapsed_ms = 0.0
        else:
            self.units = max(0, defenders - attackers)
        self.attacker = None
        self.attacking_units = 0
        captured = self.owner is not previous_owner
        events.append(
            {
                "type": "battle_complete",
                "node": self.id,
                "winner": self.owner.value,
                "previous_owner": previous_owner.value,
                "captured": captured,
                "units": self.units,
                "lost": overflow,
            }
        )
        logger.debug("Battle at node %s won by %s (%s units left)", self.id, self.owner.value, self.units)

    def _conflict(self, operation: str, faction: Faction, events: Events) -> None:
        logger.debug("Ignored %s by %s on node %s in state %s", operation, faction.value, self.id, self.state.value)
        events.append(
            {
                "type": "state_conflict",
                "node": self.id,
                "operation": operation,
                "faction": faction.value,
                "state": self.state.value,
            }
        )

    # ------------------------------------------------------------------
    # Serialization helpers
    # ------------------------------------------------------------------
    def serialise(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "x": self.position[0],
            "y": self.position[1],
            "capacity": self.capacity,
            "units": self.units,
            "owner": self.owner.value,
            "state": self.state.value,
            "production_rate": self.production_rate,
            "conqueror": self.conqueror.value if self.conqueror else None,
            "conquest_progress": self.conquest_timer.progress,
            "attacker": self.attacker.value if self.attacker else None,
            "attacking_units": self.attacking_units,
            "battle_progress": self.battle_timer.progress,
        }


__all__ = ["Node"]
