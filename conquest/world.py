"""World generation utilities."""

from __future__ import annotations

import logging
import math
import random
from typing import List

from .config import RulesConfig, WorldConfig
from .models import Faction, Vector2
from .node import Node

logger = logging.getLogger(__name__)

# Starting node order: node 0 belongs to the first faction, node 1 to the second.
STARTING_FACTIONS = (Faction.FACTION_A, Faction.FACTION_B)


class ConfigurationError(RuntimeError):
    """Raised when the nodes cannot be placed within the attempt budget."""


def generate_world(config: WorldConfig, rules: RulesConfig, rng: random.Random) -> List[Node]:
    """Create the nodes for a new match.

    Positions come from rejection sampling; when the budget runs out the
    whole layout falls back to a deterministic grid.  Capacities are drawn
    from the shuffled pool, and the first two nodes become the starting
    nodes of the two factions.
    """

    capacities = capacity_sequence(config, rng)
    try:
        positions = sample_positions(config, rng)
    except ConfigurationError as exc:
        logger.warning("%s; using grid layout", exc)
        positions = grid_positions(config)

    nodes: List[Node] = []
    for idx, (position, capacity) in enumerate(zip(positions, capacities)):
        owner = STARTING_FACTIONS[idx] if idx < len(STARTING_FACTIONS) else Faction.UNCLAIMED
        units = config.starting_units if owner.is_claimed else 0
        nodes.append(Node.create(idx, position, capacity, rules, owner=owner, units=units))
    return nodes


def capacity_sequence(config: WorldConfig, rng: random.Random) -> List[int]:
    capacities: List[int] = []
    while len(capacities) < config.node_count:
        pool = list(config.capacity_pool)
        rng.shuffle(pool)
        capacities.extend(pool)
    return capacities[: config.node_count]


def sample_positions(config: WorldConfig, rng: random.Random) -> List[Vector2]:
    positions: List[Vector2] = []
    for idx in range(config.node_count):
        for _ in range(config.max_placement_attempts):
            x = rng.uniform(config.margin, config.width - config.margin)
            y = rng.uniform(config.margin, config.height - config.margin)
            if all(math.hypot(x - px, y - py) >= config.min_distance for px, py in positions):
                positions.append((x, y))
                break
        else:
            raise ConfigurationError(
                f"Could not place node {idx} after {config.max_placement_attempts} attempts"
            )
    return positions


def grid_positions(config: WorldConfig) -> List[Vector2]:
    columns = math.ceil(math.sqrt(config.node_count))
    rows = math.ceil(config.node_count / columns)
    cell_w = (config.width - 2 * config.margin) / columns
    cell_h = (config.height - 2 * config.margin) / rows
    return [
        (
            config.margin + (idx % columns + 0.5) * cell_w,
            config.margin + (idx // columns + 0.5) * cell_h,
        )
        for idx in range(config.node_count)
    ]


__all__ = ["ConfigurationError", "generate_world", "grid_positions", "sample_positions"]
