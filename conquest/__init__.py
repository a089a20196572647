"""Core package for the two-faction node conquest simulation.

The package exposes a deterministic, frame-rate independent simulation of
nodes, fleets and the automated opponent.  It has no rendering or input
dependencies so a presentation layer (or a test) can drive it directly.
"""

from .ai import DecisionEngine
from .config import AIConfig, GameConfig, RulesConfig, WorldConfig
from .engine import Simulation
from .fleet import Fleet
from .models import Faction, GameResult, GameSnapshot, Phase, Strategy, TransferRejection, TransferResult
from .node import Node
from .world import generate_world

__all__ = [
    "AIConfig",
    "DecisionEngine",
    "Faction",
    "Fleet",
    "GameConfig",
    "GameResult",
    "GameSnapshot",
    "Node",
    "Phase",
    "RulesConfig",
    "Simulation",
    "Strategy",
    "TransferRejection",
    "TransferResult",
    "WorldConfig",
    "generate_world",
]
