"""Regression tests for node production and the conquest/battle state machine."""
from __future__ import annotations

from typing import Dict, List

import pytest

from conquest.config import RulesConfig
from conquest.models import Faction, NodeState
from conquest.node import Node

Events = List[Dict[str, object]]


@pytest.fixture()
def rules() -> RulesConfig:
    # 2 units/s regardless of capacity, i.e. one unit every 500 ms.
    return RulesConfig(production_base=2.0, production_multiplier=0.0)


def make_node(rules: RulesConfig, owner: Faction = Faction.UNCLAIMED, units: int = 0, capacity: int = 10) -> Node:
    return Node.create(0, (0.0, 0.0), capacity, rules, owner=owner, units=units)


def test_create_clamps_units_and_clears_unclaimed(rules: RulesConfig) -> None:
    assert make_node(rules, Faction.FACTION_A, units=50, capacity=8).units == 8
    assert make_node(rules, Faction.UNCLAIMED, units=5).units == 0


def test_production_rate_follows_capacity() -> None:
    node = Node.create(0, (0.0, 0.0), 10, RulesConfig(), owner=Faction.FACTION_A)
    assert node.production_rate == pytest.approx(2.0)


def test_owned_node_produces_one_unit_per_interval(rules: RulesConfig) -> None:
    node = make_node(rules, Faction.FACTION_A)
    events: Events = []
    assert node.update(499.0, events) == 0
    assert node.update(1.0, events) == 1
    assert node.units == 1
    assert events[-1]["type"] == "unit_produced"


def test_production_remainder_carries_over(rules: RulesConfig) -> None:
    node = make_node(rules, Faction.FACTION_A)
    events: Events = []
    node.update(750.0, events)
    assert node.units == 1
    node.update(250.0, events)
    assert node.units == 2


def test_small_ticks_match_one_large_tick(rules: RulesConfig) -> None:
    small = make_node(rules, Faction.FACTION_A)
    large = make_node(rules, Faction.FACTION_A)
    events: Events = []
    for _ in range(300):
        small.update(10.0, events)
    large.update(3000.0, events)
    assert small.units == large.units == 6


def test_production_stops_at_capacity(rules: RulesConfig) -> None:
    node = make_node(rules, Faction.FACTION_A, units=9, capacity=10)
    events: Events = []
    assert node.update(5000.0, events) == 1
    assert node.units == 10
    assert node.production_elapsed_ms == 0.0


def test_unclaimed_node_never_produces(rules: RulesConfig) -> None:
    node = make_node(rules)
    events: Events = []
    node.update(10_000.0, events)
    assert node.units == 0
    assert events == []


def test_production_scale_speeds_up_interval(rules: RulesConfig) -> None:
    node = make_node(rules, Faction.FACTION_B)
    events: Events = []
    assert node.update(250.0, events, production_scale=2.0) == 1


def test_conquest_transfers_ownership_with_zero_units(rules: RulesConfig) -> None:
    node = make_node(rules)
    events: Events = []
    assert node.start_conquest(Faction.FACTION_A, events)
    assert node.state is NodeState.CONQUERING
    node.update(2999.0, events)
    assert node.owner is Faction.UNCLAIMED
    node.update(1.0, events)
    assert node.owner is Faction.FACTION_A
    assert node.units == 0
    assert node.state is NodeState.IDLE
    assert events[-1] == {"type": "conquest_complete", "node": 0, "owner": "faction_a"}


def test_second_conqueror_overwrites_and_restarts(rules: RulesConfig) -> None:
    node = make_node(rules)
    events: Events = []
    node.start_conquest(Faction.FACTION_A, events)
    node.update(2000.0, events)
    node.start_conquest(Faction.FACTION_B, events)
    assert events[-1]["replaced"] == "faction_a"
    node.update(2000.0, events)
    assert node.owner is Faction.UNCLAIMED
    node.update(1000.0, events)
    assert node.owner is Faction.FACTION_B


@pytest.mark.parametrize(
    "defenders, attackers, owner, units",
    [
        (6, 10, Faction.FACTION_A, 4),
        (10, 6, Faction.FACTION_B, 4),
        (5, 5, Faction.FACTION_B, 0),
    ],
)
def test_battle_outcomes(rules: RulesConfig, defenders: int, attackers: int, owner: Faction, units: int) -> None:
    # A full garrison keeps production out of the arithmetic.
    node = make_node(rules, Faction.FACTION_B, units=defenders, capacity=defenders)
    events: Events = []
    assert node.start_battle(Faction.FACTION_A, attackers, events)
    assert node.state is NodeState.BATTLING
    node.update(1500.0, events)
    assert node.owner is owner
    assert node.units == units
    assert node.state is NodeState.IDLE
    assert node.attacker is None


def test_battle_winner_is_clamped_to_capacity(rules: RulesConfig) -> None:
    node = make_node(rules, Faction.FACTION_B, units=6, capacity=6)
    events: Events = []
    node.start_battle(Faction.FACTION_A, 20, events)
    node.update(1500.0, events)
    assert node.units == 6
    outcome = events[-1]
    assert outcome["type"] == "battle_complete"
    assert outcome["captured"] is True
    assert outcome["lost"] == 8


def test_defender_keeps_producing_during_battle(rules: RulesConfig) -> None:
    node = make_node(rules, Faction.FACTION_B, units=2, capacity=10)
    events: Events = []
    node.start_battle(Faction.FACTION_A, 3, events)
    node.update(1000.0, events)
    assert node.units == 4
    node.update(500.0, events)
    # 5 defenders against 3 attackers.
    assert node.owner is Faction.FACTION_B
    assert node.units == 2


def test_reinforcement_discards_overflow(rules: RulesConfig) -> None:
    node = make_node(rules, Faction.FACTION_A, units=8, capacity=10)
    events: Events = []
    assert node.reinforce(Faction.FACTION_A, 5, events) == 3
    assert node.units == 10
    assert events[-1]["lost"] == 3


def test_exclusive_states_reject_conflicting_entry_points(rules: RulesConfig) -> None:
    unclaimed = make_node(rules)
    owned = make_node(rules, Faction.FACTION_B, units=5)
    events: Events = []
    assert not unclaimed.start_battle(Faction.FACTION_A, 3, events)
    assert not owned.start_conquest(Faction.FACTION_A, events)
    assert not owned.start_battle(Faction.FACTION_B, 3, events)
    assert [event["type"] for event in events] == ["state_conflict"] * 3
    assert unclaimed.state is NodeState.IDLE
    assert owned.state is NodeState.IDLE


def test_remove_units_clamps_to_available(rules: RulesConfig) -> None:
    node = make_node(rules, Faction.FACTION_A, units=3)
    assert node.remove_units(10) == 3
    assert node.units == 0
    assert node.remove_units(-2) == 0
