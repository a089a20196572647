"""Configuration objects for world generation, game rules and the AI."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from .models import Faction


@dataclass(frozen=True)
class WorldConfig:
    """Static configuration describing how a world is generated.

    Attributes
    ----------
    node_count:
        Total number of nodes, including the two starting nodes.
    capacity_pool:
        Capacities handed out to nodes.  The pool is shuffled and recycled
        when it holds fewer values than there are nodes.
    seed:
        Seed for the world RNG.  ``None`` produces a different map on every
        reset.
    width, height:
        Size of the playing field in world units.
    margin:
        Minimum distance kept between a node and the field edges.
    min_distance:
        Minimum pairwise distance between two nodes.
    max_placement_attempts:
        Rejection-sampling budget per node before the generator falls back
        to a grid layout.
    starting_units:
        Units placed on each faction's starting node.
    """

    node_count: int = 7
    capacity_pool: Tuple[int, ...] = (6, 8, 10, 12, 15, 20)
    seed: Optional[int] = None
    width: float = 1200.0
    height: float = 800.0
    margin: float = 100.0
    min_distance: float = 120.0
    max_placement_attempts: int = 1000
    starting_units: int = 10

    def validate(self) -> None:
        if self.node_count < 2:
            raise ValueError("A world needs at least two nodes")
        if not self.capacity_pool or min(self.capacity_pool) <= 0:
            raise ValueError("Capacity pool must hold positive capacities")
        if self.width <= 2 * self.margin or self.height <= 2 * self.margin:
            raise ValueError("Field is too small for the configured margin")
        if self.min_distance < 0:
            raise ValueError("min_distance cannot be negative")
        if self.max_placement_attempts <= 0:
            raise ValueError("max_placement_attempts must be positive")
        if self.starting_units < 0:
            raise ValueError("starting_units cannot be negative")


@dataclass(frozen=True)
class RulesConfig:
    """Timing and economy rules applied by nodes and fleets.

    Attributes
    ----------
    neutral_conquest_ms:
        Time an unclaimed node takes to change hands once a fleet lands.
    battle_ms:
        Time a contested node takes to resolve a battle.
    production_base, production_multiplier:
        A node produces ``base + capacity * multiplier`` units per second.
    fleet_speed:
        Fleet speed in world units per second.
    max_delta_ms:
        Upper bound on a single tick, so a stalled frame cannot cause a
        runaway step.
    """

    neutral_conquest_ms: float = 3000.0
    battle_ms: float = 1500.0
    production_base: float = 0.8
    production_multiplier: float = 0.12
    fleet_speed: float = 120.0
    max_delta_ms: float = 100.0

    def validate(self) -> None:
        if self.neutral_conquest_ms <= 0 or self.battle_ms <= 0:
            raise ValueError("Conquest and battle durations must be positive")
        if self.production_base < 0 or self.production_multiplier < 0:
            raise ValueError("Production parameters cannot be negative")
        if self.production_base == 0 and self.production_multiplier == 0:
            raise ValueError("Production rate must be positive")
        if self.fleet_speed <= 0:
            raise ValueError("Fleet speed must be positive")
        if self.max_delta_ms <= 0:
            raise ValueError("max_delta_ms must be positive")

    def production_rate(self, capacity: int) -> float:
        """Units per second produced by a node of ``capacity``."""

        return self.production_base + capacity * self.production_multiplier


@dataclass(frozen=True)
class AIConfig:
    """Tuning for the decision engine.

    Attributes
    ----------
    action_interval_ms:
        Cadence of strategic evaluations.
    decision_randomness:
        Probability of picking uniformly among the top 30% of candidates
        instead of the single best one.
    threat_threshold:
        Threat values at or below this are ignored.
    threat_distance:
        Distance beyond which proximity stops contributing to threat.
    history_size:
        Number of recent decisions remembered.
    repeat_cooldown_ms:
        Window in which repeating a (source, target) pair halves its score.
    production_multiplier:
        Handicap applied to the production rate of AI-owned nodes.
    """

    action_interval_ms: float = 3500.0
    decision_randomness: float = 0.2
    threat_threshold: float = 0.3
    threat_distance: float = 500.0
    history_size: int = 10
    repeat_cooldown_ms: float = 10000.0
    production_multiplier: float = 1.0

    def validate(self) -> None:
        if self.action_interval_ms <= 0:
            raise ValueError("AI action interval must be positive")
        if not 0.0 <= self.decision_randomness <= 1.0:
            raise ValueError("decision_randomness must be within [0, 1]")
        if self.threat_distance <= 0:
            raise ValueError("threat_distance must be positive")
        if self.history_size <= 0:
            raise ValueError("history_size must be positive")
        if self.production_multiplier <= 0:
            raise ValueError("production_multiplier must be positive")


DIFFICULTIES = {
    "easy": AIConfig(action_interval_ms=5000.0, production_multiplier=0.8),
    "normal": AIConfig(action_interval_ms=3500.0, production_multiplier=1.0),
    "hard": AIConfig(action_interval_ms=2500.0, production_multiplier=1.2),
}


@dataclass(frozen=True)
class GameConfig:
    """Everything needed to reset a simulation."""

    world: WorldConfig = field(default_factory=WorldConfig)
    rules: RulesConfig = field(default_factory=RulesConfig)
    ai: AIConfig = field(default_factory=AIConfig)
    ai_factions: Tuple[Faction, ...] = (Faction.FACTION_B,)
    diagnostics: bool = False

    @classmethod
    def for_difficulty(cls, difficulty: str = "normal", **overrides) -> "GameConfig":
        """Build a configuration from one of the named difficulty presets.

        Unknown names fall back to ``normal``.
        """

        ai = DIFFICULTIES.get(difficulty.lower(), DIFFICULTIES["normal"])
        return cls(ai=ai, **overrides)

    def with_seed(self, seed: Optional[int]) -> "GameConfig":
        return replace(self, world=replace(self.world, seed=seed))

    def validate(self) -> None:
        self.world.validate()
        self.rules.validate()
        self.ai.validate()
        for faction in self.ai_factions:
            if not faction.is_claimed:
                raise ValueError("Only competing factions can be AI controlled")
