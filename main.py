"""Text based driver running a headless AI versus AI conquest match."""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from conquest import Faction, GameConfig, Simulation
from conquest.config import DIFFICULTIES

STEP_MS = 16.0


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a headless node conquest match between two AIs.")
    parser.add_argument("--seed", type=int, default=None, help="World seed (random when omitted)")
    parser.add_argument("--difficulty", choices=sorted(DIFFICULTIES), default="normal")
    parser.add_argument("--max-seconds", type=float, default=600.0, help="Simulated time limit")
    parser.add_argument("--verbose", action="store_true", help="Log simulation events")
    return parser.parse_args(argv)


def run_demo(seed: Optional[int] = None, difficulty: str = "normal", max_seconds: float = 600.0) -> Simulation:
    config = GameConfig.for_difficulty(
        difficulty,
        ai_factions=(Faction.FACTION_A, Faction.FACTION_B),
    ).with_seed(seed)
    sim = Simulation(config)
    print(f"[World] {len(sim.nodes)} nodes generated (seed={seed}, difficulty={difficulty}).")
    for node in sim.nodes.values():
        print(f"- node {node.id}: capacity={node.capacity} owner={node.owner.value} units={node.units}")

    captures = 0
    budget_ms = max_seconds * 1000.0
    while sim.result is None and sim.elapsed_ms < budget_ms:
        for event in sim.advance(1000.0, STEP_MS):
            if event["type"] == "conquest_complete":
                captures += 1
                print(f"[{sim.elapsed_ms / 1000:6.1f}s] {event['owner']} claimed node {event['node']}")
            elif event["type"] == "battle_complete" and event["captured"]:
                captures += 1
                print(f"[{sim.elapsed_ms / 1000:6.1f}s] {event['winner']} took node {event['node']}")

    stats = sim.stats
    print("[Summary]")
    if sim.result is not None:
        print(f"- winner: {sim.result.winner.value}")
    else:
        print("- no winner within the time limit")
    print(f"- duration: {stats.duration_ms / 1000:.1f}s")
    print(f"- fleets launched: {stats.fleets_launched}")
    print(f"- units produced: {stats.units_produced}")
    print(f"- nodes conquered: {stats.nodes_conquered} ({captures} reported)")
    for faction, faction_stats in stats.factions.items():
        print(
            f"- {faction.value}: nodes={faction_stats.nodes} units={faction_stats.units} "
            f"in transit={faction_stats.units_in_transit}"
        )
    return sim


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    run_demo(seed=args.seed, difficulty=args.difficulty, max_seconds=args.max_seconds)


if __name__ == "__main__":
    main()
