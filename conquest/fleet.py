"""Units in transit between two nodes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List

from .config import RulesConfig
from .models import Faction, Vector2
from .node import Node

logger = logging.getLogger(__name__)


def smooth_step(t: float) -> float:
    return t * t * (3 - 2 * t)


def launch_size(source: Node, destination: Node, faction: Faction) -> int:
    """Default number of units a drag-to-launch order sends.

    Unclaimed targets get a single unit, enemy targets one more than their
    garrison, and friendly targets whatever fits while leaving one unit home.
    """

    target_owner = destination.owner
    if target_owner is Faction.UNCLAIMED:
        return min(1, source.units)
    if target_owner is faction:
        return min(destination.free_space, source.units - 1)
    return min(destination.units + 1, source.units)


@dataclass(slots=True)
class Fleet:
    """A fixed-size batch of units flying a single route.

    Progress advances linearly so arrival timing only depends on elapsed
    time; :attr:`position` applies easing for rendering.
    """

    id: int
    source: Node
    destination: Node
    units: int
    owner: Faction
    travel_ms: float
    launched_at_ms: float = 0.0
    progress: float = 0.0
    arrived: bool = False

    @classmethod
    def launch(
        cls,
        fleet_id: int,
        source: Node,
        destination: Node,
        units: int,
        owner: Faction,
        rules: RulesConfig,
        launched_at_ms: float = 0.0,
    ) -> "Fleet":
        if units <= 0:
            raise ValueError("A fleet needs at least one unit")
        distance = source.distance_to(destination)
        travel_ms = max(1.0, distance / rules.fleet_speed * 1000.0)
        logger.debug(
            "Fleet %s: %s units of %s from node %s to node %s (%.0f ms)",
            fleet_id,
            units,
            owner.value,
            source.id,
            destination.id,
            travel_ms,
        )
        return cls(
            id=fleet_id,
            source=source,
            destination=destination,
            units=units,
            owner=owner,
            travel_ms=travel_ms,
            launched_at_ms=launched_at_ms,
        )

    def update(self, delta_ms: float, events: List[Dict[str, object]]) -> bool:
        """Advance the fleet; return ``True`` once it has arrived."""

        if self.arrived:
            return True
        self.progress += delta_ms / self.travel_ms
        if self.progress >= 1.0:
            self.progress = 1.0
            self.arrived = True
            self._resolve_arrival(events)
            return True
        return False

    def _resolve_arrival(self, events: List[Dict[str, object]]) -> None:
        target = self.destination
        events.append(
            {
                "type": "fleet_arrived",
                "fleet": self.id,
                "node": target.id,
                "owner": self.owner.value,
                "units": self.units,
            }
        )
        logger.debug("Fleet %s arrived at node %s with %s units", self.id, target.id, self.units)
        target_owner = target.owner
        if target_owner is Faction.UNCLAIMED:
            target.start_conquest(self.owner, events)
        elif target_owner is self.owner:
            target.reinforce(self.owner, self.units, events)
        else:
            target.start_battle(self.owner, self.units, events)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def position(self) -> Vector2:
        t = smooth_step(min(1.0, self.progress))
        sx, sy = self.source.position
        dx, dy = self.destination.position
        return (sx + (dx - sx) * t, sy + (dy - sy) * t)

    @property
    def eta_ms(self) -> float:
        if self.arrived:
            return 0.0
        return self.travel_ms * (1.0 - self.progress)

    def serialise(self) -> Dict[str, object]:
        x, y = self.position
        return {
            "id": self.id,
            "owner": self.owner.value,
            "units": self.units,
            "source": self.source.id,
            "destination": self.destination.id,
            "progress": self.progress,
            "eta_ms": self.eta_ms,
            "x": x,
            "y": y,
        }


__all__ = ["Fleet", "launch_size", "smooth_step"]
