"""Simulation loop for the node conquest game.

The simulation keeps the authoritative state of a match and advances it one
tick at a time in a fixed order: nodes, fleets, decision engines, stats and
finally the termination check.  It performs no I/O and never blocks, so a
presentation layer can drive it from its own frame callback; an optional
asyncio driver is provided for headless runs.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import random
import time
from typing import Dict, List, Optional

from .ai import DecisionEngine
from .config import GameConfig
from .fleet import Fleet, launch_size
from .models import (
    COMPETING_FACTIONS,
    Faction,
    FactionStats,
    GameResult,
    GameSnapshot,
    GameStats,
    MatchView,
    Phase,
    TransferRejection,
    TransferResult,
)
from .node import Node
from .world import generate_world

logger = logging.getLogger(__name__)

Events = List[Dict[str, object]]


class Simulation:
    """Simulation core responsible for executing one match."""

    def __init__(self, config: Optional[GameConfig] = None, rng: Optional[random.Random] = None) -> None:
        self.config = config or GameConfig()
        self._external_rng = rng
        self.random = rng or random.Random(self.config.world.seed)
        self.phase = Phase.IDLE
        self.paused = False
        self.elapsed_ms = 0.0
        self.nodes: Dict[int, Node] = {}
        self.fleets: List[Fleet] = []
        self.stats = GameStats()
        self.ai: Dict[Faction, DecisionEngine] = {}
        self._next_fleet_id = 1
        self._tick_task: Optional[asyncio.Task[None]] = None
        self._subscribers: List[asyncio.Queue[MatchView]] = []
        self.reset(self.config)

    # ------------------------------------------------------------------
    # State initialization
    # ------------------------------------------------------------------
    def reset(self, config: Optional[GameConfig] = None) -> None:
        """Regenerate the world and start a fresh match."""

        if config is not None:
            config.validate()
            self.config = config
        else:
            self.config.validate()
        if self._external_rng is None:
            self.random = random.Random(self.config.world.seed)
        world = generate_world(self.config.world, self.config.rules, self.random)
        self.nodes = {node.id: node for node in world}
        self.fleets = []
        self.stats = GameStats()
        self.elapsed_ms = 0.0
        self.paused = False
        self._next_fleet_id = 1
        self.ai = {
            faction: DecisionEngine(faction, self.config.ai, self.random) for faction in self.config.ai_factions
        }
        self._update_stats()
        self.phase = Phase.PLAYING
        logger.info(
            "New match: %d nodes, AI factions=%s",
            len(self.nodes),
            [faction.value for faction in self.ai],
        )

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------
    def issue_transfer(
        self,
        source_id: int,
        dest_id: int,
        faction: Faction,
        units: Optional[int] = None,
        garrison: int = 0,
    ) -> TransferResult:
        """Validate a transfer request and launch a fleet when it is legal.

        ``units`` defaults to the drag-to-launch policy; the count is clamped
        to what the source holds minus ``garrison``.  Invalid requests are
        returned as rejected results and never raise.
        """

        if self.phase is not Phase.PLAYING:
            return TransferResult.rejected(TransferRejection.NOT_PLAYING)
        source = self.nodes.get(source_id)
        destination = self.nodes.get(dest_id)
        if source is None or destination is None:
            return TransferResult.rejected(TransferRejection.UNKNOWN_NODE)
        if source is destination:
            return TransferResult.rejected(TransferRejection.SAME_NODE)
        if not faction.is_claimed or source.owner is not faction:
            return TransferResult.rejected(TransferRejection.NOT_OWNER)
        if source.units < 1:
            return TransferResult.rejected(TransferRejection.NO_UNITS)

        requested = launch_size(source, destination, faction) if units is None else units
        count = min(requested, source.units - max(0, garrison))
        if count <= 0:
            return TransferResult.rejected(TransferRejection.NON_POSITIVE_COUNT)

        sent = source.remove_units(count)
        fleet = Fleet.launch(
            self._next_fleet_id,
            source,
            destination,
            sent,
            faction,
            self.config.rules,
            launched_at_ms=self.elapsed_ms,
        )
        self._next_fleet_id += 1
        self.fleets.append(fleet)
        self.stats.fleets_launched += 1
        return TransferResult(accepted=True, units_sent=sent, fleet_id=fleet.id)

    # ------------------------------------------------------------------
    # Simulation loop
    # ------------------------------------------------------------------
    def tick(self, delta_ms: float) -> Events:
        """Advance the simulation by a single step."""

        if self.phase is not Phase.PLAYING or self.paused:
            return []
        delta_ms = max(0.0, min(delta_ms, self.config.rules.max_delta_ms))
        self.elapsed_ms += delta_ms
        self.stats.duration_ms = self.elapsed_ms

        events: Events = []
        self._update_nodes(delta_ms, events)
        self._update_fleets(delta_ms, events)
        self._update_ai(delta_ms, events)
        self._record_captures(events)
        self._update_stats()
        self._check_termination(events)
        if not self.config.diagnostics:
            events = [event for event in events if event["type"] != "state_conflict"]
        return events

    def advance(self, total_ms: float, step_ms: Optional[float] = None) -> Events:
        """Run fixed steps covering ``total_ms``; stops early when the match ends."""

        step_ms = step_ms or self.config.rules.max_delta_ms
        events: Events = []
        remaining = total_ms
        while remaining > 0 and self.phase is Phase.PLAYING and not self.paused:
            delta = min(step_ms, remaining)
            events.extend(self.tick(delta))
            remaining -= delta
        return events

    def _update_nodes(self, delta_ms: float, events: Events) -> None:
        for node in self.nodes.values():
            self.stats.units_produced += node.update(delta_ms, events, self._production_scale(node.owner))

    def _update_fleets(self, delta_ms: float, events: Events) -> None:
        for idx in range(len(self.fleets) - 1, -1, -1):
            if self.fleets[idx].update(delta_ms, events):
                del self.fleets[idx]

    def _update_ai(self, delta_ms: float, events: Events) -> None:
        for faction, engine in self.ai.items():
            decision = engine.update(delta_ms, self.nodes.values(), self.elapsed_ms, self.issue_transfer)
            if decision is not None:
                events.append(
                    {
                        "type": "ai_decision",
                        "faction": faction.value,
                        "strategy": decision.strategy.value,
                        "source": decision.source_id,
                        "target": decision.target_id,
                        "units": decision.units,
                    }
                )

    def _record_captures(self, events: Events) -> None:
        for event in events:
            if event["type"] == "conquest_complete":
                self._on_capture(Faction(event["owner"]), Faction.UNCLAIMED)
            elif event["type"] == "battle_complete" and event["captured"]:
                self._on_capture(Faction(event["winner"]), Faction(event["previous_owner"]))

    def _on_capture(self, new_owner: Faction, previous_owner: Faction) -> None:
        self.stats.nodes_conquered += 1
        for engine in self.ai.values():
            engine.on_node_captured(new_owner, previous_owner)

    def _update_stats(self) -> None:
        factions = {faction: FactionStats() for faction in COMPETING_FACTIONS}
        for node in self.nodes.values():
            stats = factions.get(node.owner)
            if stats is None:
                continue
            stats.nodes += 1
            stats.units += node.units
            stats.production += node.production_rate * self._production_scale(node.owner)
        for fleet in self.fleets:
            factions[fleet.owner].units_in_transit += fleet.units
        self.stats.factions = factions

    def _check_termination(self, events: Events) -> None:
        if self.stats.factions[Faction.FACTION_A].nodes == 0:
            winner = Faction.FACTION_B
        elif self.stats.factions[Faction.FACTION_B].nodes == 0:
            winner = Faction.FACTION_A
        else:
            return
        self.phase = Phase.win_for(winner)
        events.append({"type": "game_over", "winner": winner.value, "stats": self.stats.serialise()})
        logger.info("Match over after %.0f ms: %s wins", self.elapsed_ms, winner.value)

    def _production_scale(self, owner: Faction) -> float:
        return self.config.ai.production_multiplier if owner in self.ai else 1.0

    # ------------------------------------------------------------------
    # Pause / resume
    # ------------------------------------------------------------------
    def pause(self) -> None:
        if self.phase is Phase.PLAYING:
            self.paused = True

    def resume(self) -> None:
        self.paused = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def node(self, node_id: int) -> Optional[Node]:
        return self.nodes.get(node_id)

    @property
    def result(self) -> Optional[GameResult]:
        if not self.phase.is_terminal:
            return None
        winner = Faction.FACTION_A if self.phase is Phase.FACTION_A_WIN else Faction.FACTION_B
        return GameResult(phase=self.phase, winner=winner, stats=self.stats)

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            phase=self.phase,
            paused=self.paused,
            elapsed_ms=self.elapsed_ms,
            nodes=[node.serialise() for node in self.nodes.values()],
            fleets=[fleet.serialise() for fleet in self.fleets],
            stats=self.stats.serialise(),
        )

    get_snapshot = snapshot

    def debug_info(self) -> Dict[str, object]:
        return {
            "phase": self.phase.value,
            "nodes": len(self.nodes),
            "fleets": len(self.fleets),
            "stats": self.stats.serialise(),
            "ai": [engine.debug_info() for engine in self.ai.values()],
        }

    # ------------------------------------------------------------------
    # Asynchronous driver
    # ------------------------------------------------------------------
    async def start(self, tick_rate: float = 60.0) -> None:
        if self._tick_task is None:
            self._tick_task = asyncio.create_task(self._run_loop(1.0 / tick_rate))

    async def wait_until_finished(self) -> None:
        if self._tick_task is not None:
            await self._tick_task

    async def stop(self) -> None:
        if self._tick_task:
            self._tick_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._tick_task
            self._tick_task = None

    async def _run_loop(self, tick_interval: float) -> None:
        last_tick = time.perf_counter()
        while not self.phase.is_terminal:
            now = time.perf_counter()
            dt = now - last_tick
            if dt < tick_interval:
                await asyncio.sleep(tick_interval - dt)
                continue
            last_tick = now
            events = self.tick(dt * 1000.0)
            await self._notify_subscribers(events)

    async def _notify_subscribers(self, events: Events) -> None:
        view = MatchView(snapshot=self.snapshot(), events=events)
        for queue in list(self._subscribers):
            if queue.full():
                with contextlib.suppress(asyncio.QueueEmpty):
                    queue.get_nowait()
            await queue.put(view)

    def subscribe(self) -> asyncio.Queue[MatchView]:
        """Create a queue that will receive every state update."""

        queue: asyncio.Queue[MatchView] = asyncio.Queue(maxsize=1)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[MatchView]) -> None:
        with contextlib.suppress(ValueError):
            self._subscribers.remove(queue)


__all__ = ["Simulation"]
