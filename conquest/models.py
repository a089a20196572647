"""Data models shared by the conquest simulation.

The module defines the closed enums used at every decision point and the
serialisable dataclasses handed to the presentation layer.  Nothing here
mutates simulation state; nodes and fleets live in their own modules.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

Vector2 = Tuple[float, float]


class Faction(str, Enum):
    """Owner of a node or fleet."""

    UNCLAIMED = "unclaimed"
    FACTION_A = "faction_a"
    FACTION_B = "faction_b"

    @property
    def is_claimed(self) -> bool:
        return self is not Faction.UNCLAIMED

    @property
    def opponent(self) -> "Faction":
        if self is Faction.FACTION_A:
            return Faction.FACTION_B
        if self is Faction.FACTION_B:
            return Faction.FACTION_A
        raise ValueError("Unclaimed has no opponent")


COMPETING_FACTIONS: Tuple[Faction, ...] = (Faction.FACTION_A, Faction.FACTION_B)


class Phase(str, Enum):
    """Lifecycle of a simulation."""

    IDLE = "idle"
    PLAYING = "playing"
    FACTION_A_WIN = "faction_a_win"
    FACTION_B_WIN = "faction_b_win"

    @property
    def is_terminal(self) -> bool:
        return self in (Phase.FACTION_A_WIN, Phase.FACTION_B_WIN)

    @classmethod
    def win_for(cls, faction: Faction) -> "Phase":
        if faction is Faction.FACTION_A:
            return cls.FACTION_A_WIN
        if faction is Faction.FACTION_B:
            return cls.FACTION_B_WIN
        raise ValueError("Unclaimed cannot win")


class NodeState(str, Enum):
    IDLE = "idle"
    CONQUERING = "conquering"
    BATTLING = "battling"


class Strategy(str, Enum):
    """Posture chosen by the decision engine on every cycle."""

    AGGRESSIVE = "aggressive"
    DEFENSIVE = "defensive"
    EXPANSION = "expansion"
    BALANCED = "balanced"


class TransferRejection(str, Enum):
    """Why a transfer request was refused."""

    NOT_PLAYING = "not_playing"
    UNKNOWN_NODE = "unknown_node"
    SAME_NODE = "same_node"
    NOT_OWNER = "not_owner"
    NO_UNITS = "no_units"
    NON_POSITIVE_COUNT = "non_positive_count"


@dataclass(slots=True)
class TransferResult:
    """Outcome of :meth:`Simulation.issue_transfer`."""

    accepted: bool
    units_sent: int = 0
    fleet_id: Optional[int] = None
    reason: Optional[TransferRejection] = None

    @classmethod
    def rejected(cls, reason: TransferRejection) -> "TransferResult":
        return cls(accepted=False, reason=reason)

    def serialise(self) -> Dict[str, object]:
        return {
            "accepted": self.accepted,
            "units_sent": self.units_sent,
            "fleet_id": self.fleet_id,
            "reason": self.reason.value if self.reason else None,
        }


@dataclass(slots=True)
class FactionStats:
    """Aggregates recomputed at the end of every tick."""

    nodes: int = 0
    units: int = 0
    units_in_transit: int = 0
    production: float = 0.0

    def serialise(self) -> Dict[str, object]:
        return {
            "nodes": self.nodes,
            "units": self.units,
            "units_in_transit": self.units_in_transit,
            "production": round(self.production, 3),
        }


@dataclass(slots=True)
class GameStats:
    """Running statistics for one match."""

    duration_ms: float = 0.0
    fleets_launched: int = 0
    units_produced: int = 0
    nodes_conquered: int = 0
    factions: Dict[Faction, FactionStats] = field(
        default_factory=lambda: {faction: FactionStats() for faction in COMPETING_FACTIONS}
    )

    def serialise(self) -> Dict[str, object]:
        return {
            "duration_ms": self.duration_ms,
            "fleets_launched": self.fleets_launched,
            "units_produced": self.units_produced,
            "nodes_conquered": self.nodes_conquered,
            "factions": {faction.value: stats.serialise() for faction, stats in self.factions.items()},
        }


@dataclass(slots=True)
class GameSnapshot:
    """Read-only view of the complete simulation state."""

    phase: Phase
    paused: bool
    elapsed_ms: float
    nodes: List[Dict[str, object]] = field(default_factory=list)
    fleets: List[Dict[str, object]] = field(default_factory=list)
    stats: Dict[str, object] = field(default_factory=dict)

    def serialise(self) -> Dict[str, object]:
        return {
            "phase": self.phase.value,
            "paused": self.paused,
            "elapsed_ms": self.elapsed_ms,
            "nodes": self.nodes,
            "fleets": self.fleets,
            "stats": self.stats,
        }


@dataclass(slots=True)
class GameResult:
    """Terminal outcome reported once a faction has no nodes left."""

    phase: Phase
    winner: Faction
    stats: GameStats


@dataclass(slots=True)
class MatchView:
    """DTO pushed to subscribers of the asynchronous driver."""

    snapshot: GameSnapshot
    events: List[Dict[str, object]]

    def serialise(self) -> Dict[str, object]:
        return {
            "state": self.snapshot.serialise(),
            "events": self.events,
        }
