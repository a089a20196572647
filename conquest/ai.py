"""Decision engine driving the non-human faction.

Every cycle the engine looks at the whole battlefield, picks a strategic
posture, scores every possible transfer and issues the best one through
the same entry point a player uses.  It runs on its own cadence so its
cost and behaviour do not depend on the frame rate.
"""
from __future__ import annotations

import logging
import random
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, Iterable, List, Optional

from .config import AIConfig
from .models import Faction, Strategy, TransferResult
from .node import Node
from .timer import Timer

logger = logging.getLogger(__name__)

IssueTransfer = Callable[[int, int, Faction, int], TransferResult]

# Share of the ranked candidates eligible for exploratory picks.
EXPLORATION_SHARE = 0.3


@dataclass(slots=True)
class Threat:
    """Pressure an opponent node puts on one of our nodes."""

    source: Node
    target: Node
    distance: float
    level: float


@dataclass(slots=True)
class Assessment:
    """Battlefield snapshot taken at the start of a decision cycle."""

    mine: List[Node]
    opponent: List[Node]
    unclaimed: List[Node]
    my_units: int
    opponent_units: int
    my_production: float
    opponent_production: float
    threats: List[Threat] = field(default_factory=list)

    @property
    def ship_ratio(self) -> float:
        return self.my_units / max(self.opponent_units, 1)

    @property
    def production_ratio(self) -> float:
        return self.my_production / max(self.opponent_production, 1)


@dataclass(slots=True)
class Candidate:
    source: Node
    target: Node
    units: int
    distance: float
    score: float = 0.0


@dataclass(slots=True)
class Decision:
    """A transfer the engine issued, kept to dampen repetition."""

    source_id: int
    target_id: int
    units: int
    strategy: Strategy
    issued_at_ms: float


@dataclass(slots=True)
class EngineStats:
    actions_performed: int = 0
    actions_rejected: int = 0
    nodes_conquered: int = 0
    nodes_lost: int = 0
    last_decision_ms: float = 0.0


def threat_level(attacker: Node, defender: Node, distance: float, threshold_distance: float) -> float:
    ship_ratio = attacker.units / max(defender.units, 1)
    distance_factor = max(0.0, 1.0 - distance / threshold_distance)
    capacity_factor = attacker.capacity / max(defender.capacity, 1)
    return ship_ratio * 0.5 + distance_factor * 0.3 + capacity_factor * 0.2


def required_units(target: Node) -> int:
    """Units needed to take ``target``: one for unclaimed, a 20% margin otherwise."""

    if not target.owner.is_claimed:
        return 1
    return target.units + -(-target.units // 5) + 1


def success_probability(target: Node, units: int) -> float:
    if not target.owner.is_claimed:
        return 0.9
    ratio = units / max(target.units, 1)
    if ratio >= 2:
        return 0.9
    if ratio >= 1.5:
        return 0.8
    if ratio >= 1.2:
        return 0.6
    if ratio >= 1:
        return 0.4
    return 0.2


class DecisionEngine:
    """Strategic evaluator for one AI-controlled faction."""

    def __init__(self, faction: Faction, config: AIConfig, rng: Optional[random.Random] = None) -> None:
        if not faction.is_claimed:
            raise ValueError("The decision engine needs a competing faction")
        self.faction = faction
        self.config = config
        self.random = rng or random.Random()
        self.strategy = Strategy.BALANCED
        self.threat_map: Dict[int, float] = {}
        self.history: Deque[Decision] = deque(maxlen=config.history_size)
        self.stats = EngineStats()
        self._cadence = Timer(config.action_interval_ms)
        self._cadence.start()

    def reset(self) -> None:
        self.strategy = Strategy.BALANCED
        self.threat_map.clear()
        self.history.clear()
        self.stats = EngineStats()
        self._cadence.start()

    # ------------------------------------------------------------------
    # Cadence
    # ------------------------------------------------------------------
    def update(self, delta_ms: float, nodes: Iterable[Node], now_ms: float, issue: IssueTransfer) -> Optional[Decision]:
        """Refresh threats and, when the cadence elapses, run one decision cycle."""

        nodes = list(nodes)
        self.refresh_threat_map(nodes)
        if not self._cadence.update(delta_ms):
            return None
        self._cadence.rearm()
        return self.decide(nodes, now_ms, issue)

    def decide(self, nodes: List[Node], now_ms: float, issue: IssueTransfer) -> Optional[Decision]:
        started = time.perf_counter()
        assessment = self.assess(nodes)
        self.strategy = self.choose_strategy(assessment)
        candidates = self.generate_candidates(assessment)
        for candidate in candidates:
            candidate.score = self.score(candidate, now_ms)
        choice = self.select(candidates)

        decision: Optional[Decision] = None
        if choice is not None:
            decision = self._execute(choice, now_ms, issue)
        self.stats.last_decision_ms = (time.perf_counter() - started) * 1000.0
        logger.debug(
            "%s strategy=%s candidates=%d action=%s",
            self.faction.value,
            self.strategy.value,
            len(candidates),
            f"{decision.source_id}->{decision.target_id} x{decision.units}" if decision else "none",
        )
        return decision

    # ------------------------------------------------------------------
    # Evaluation steps
    # ------------------------------------------------------------------
    def assess(self, nodes: Iterable[Node]) -> Assessment:
        opponent_faction = self.faction.opponent
        mine: List[Node] = []
        opponent: List[Node] = []
        unclaimed: List[Node] = []
        for node in nodes:
            if node.owner is self.faction:
                mine.append(node)
            elif node.owner is opponent_faction:
                opponent.append(node)
            else:
                unclaimed.append(node)
        assessment = Assessment(
            mine=mine,
            opponent=opponent,
            unclaimed=unclaimed,
            my_units=sum(node.units for node in mine),
            opponent_units=sum(node.units for node in opponent),
            my_production=sum(node.production_rate for node in mine),
            opponent_production=sum(node.production_rate for node in opponent),
        )
        assessment.threats = self.assess_threats(mine, opponent)
        return assessment

    def assess_threats(self, mine: List[Node], opponent: List[Node]) -> List[Threat]:
        threats: List[Threat] = []
        for my_node in mine:
            for enemy in opponent:
                distance = enemy.distance_to(my_node)
                level = threat_level(enemy, my_node, distance, self.config.threat_distance)
                if level > self.config.threat_threshold:
                    threats.append(Threat(source=enemy, target=my_node, distance=distance, level=level))
        threats.sort(key=lambda threat: threat.level, reverse=True)
        return threats

    def refresh_threat_map(self, nodes: Iterable[Node]) -> None:
        """Highest threat each opponent node poses to any of our nodes."""

        opponent_faction = self.faction.opponent
        nodes = list(nodes)
        mine = [node for node in nodes if node.owner is self.faction]
        self.threat_map.clear()
        for enemy in nodes:
            if enemy.owner is not opponent_faction:
                continue
            self.threat_map[enemy.id] = max(
                (threat_level(enemy, node, enemy.distance_to(node), self.config.threat_distance) for node in mine),
                default=0.0,
            )

    def choose_strategy(self, assessment: Assessment) -> Strategy:
        if assessment.ship_ratio < 0.5 or len(assessment.threats) > 2:
            return Strategy.DEFENSIVE
        if assessment.ship_ratio > 1.5 and assessment.production_ratio >= 1.0 and assessment.unclaimed:
            return Strategy.AGGRESSIVE
        if assessment.unclaimed:
            return Strategy.EXPANSION
        return Strategy.BALANCED

    def generate_candidates(self, assessment: Assessment) -> List[Candidate]:
        targets = assessment.opponent + assessment.unclaimed
        candidates: List[Candidate] = []
        for source in assessment.mine:
            # One unit always stays home.
            if source.units <= 1:
                continue
            for target in targets:
                units = min(required_units(target), source.units - 1)
                if units <= 0:
                    continue
                candidates.append(
                    Candidate(source=source, target=target, units=units, distance=source.distance_to(target))
                )
        return candidates

    def score(self, candidate: Candidate, now_ms: float) -> float:
        target = candidate.target
        distance_penalty = candidate.distance / 100
        capacity_value = target.capacity * 10
        efficiency = target.capacity / candidate.units if candidate.units > 0 else 0.0
        unclaimed = not target.owner.is_claimed

        score = 0.0
        if self.strategy is Strategy.AGGRESSIVE:
            score += 20 if unclaimed else 50
            score += capacity_value * 1.5
        elif self.strategy is Strategy.DEFENSIVE:
            score += self.threat_map.get(target.id, 0.0) * 100
            score -= distance_penalty * 2
        elif self.strategy is Strategy.EXPANSION:
            score += 40 if unclaimed else 10
            score += capacity_value
        elif self.strategy is Strategy.BALANCED:
            score += 30 if unclaimed else 25
            score += capacity_value

        score -= distance_penalty
        score += efficiency * 5
        score *= success_probability(target, candidate.units)
        if self.was_recent(candidate.source.id, target.id, now_ms):
            score *= 0.5
        return score

    def was_recent(self, source_id: int, target_id: int, now_ms: float) -> bool:
        return any(
            decision.source_id == source_id
            and decision.target_id == target_id
            and now_ms - decision.issued_at_ms < self.config.repeat_cooldown_ms
            for decision in self.history
        )

    def select(self, candidates: List[Candidate]) -> Optional[Candidate]:
        if not candidates:
            return None
        ranked = sorted(candidates, key=lambda candidate: candidate.score, reverse=True)
        top = ranked[: max(1, int(len(ranked) * EXPLORATION_SHARE))]
        if len(top) > 1 and self.random.random() < self.config.decision_randomness:
            return self.random.choice(top)
        return ranked[0]

    def _execute(self, candidate: Candidate, now_ms: float, issue: IssueTransfer) -> Optional[Decision]:
        result = issue(candidate.source.id, candidate.target.id, self.faction, candidate.units)
        if not result.accepted:
            self.stats.actions_rejected += 1
            logger.debug(
                "%s transfer %s->%s rejected: %s",
                self.faction.value,
                candidate.source.id,
                candidate.target.id,
                result.reason.value if result.reason else "unknown",
            )
            return None
        self.stats.actions_performed += 1
        decision = Decision(
            source_id=candidate.source.id,
            target_id=candidate.target.id,
            units=result.units_sent,
            strategy=self.strategy,
            issued_at_ms=now_ms,
        )
        self.history.append(decision)
        return decision

    # ------------------------------------------------------------------
    # Feedback and debugging
    # ------------------------------------------------------------------
    def on_node_captured(self, new_owner: Faction, previous_owner: Faction) -> None:
        if new_owner is self.faction:
            self.stats.nodes_conquered += 1
        elif previous_owner is self.faction:
            self.stats.nodes_lost += 1

    def debug_info(self) -> Dict[str, object]:
        return {
            "faction": self.faction.value,
            "strategy": self.strategy.value,
            "next_decision_ms": self._cadence.remaining_ms,
            "history": len(self.history),
            "threats": dict(self.threat_map),
            "stats": {
                "actions_performed": self.stats.actions_performed,
                "actions_rejected": self.stats.actions_rejected,
                "nodes_conquered": self.stats.nodes_conquered,
                "nodes_lost": self.stats.nodes_lost,
                "last_decision_ms": self.stats.last_decision_ms,
            },
        }


__all__ = ["DecisionEngine", "Decision", "Strategy", "success_probability", "threat_level"]
