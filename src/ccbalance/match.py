"""Round and match controller.

A :class:`Match` owns everything mutable in a game: the reaction state of
the current round, both actors' cooldown tables, ability cooldowns, scores
and timers. Hosts talk to it through :meth:`Match.start_match`,
:meth:`Match.request_action`, :meth:`Match.use_ability`,
:meth:`Match.pause` / :meth:`Match.resume` and :meth:`Match.get_snapshot`,
and observe it through :meth:`Match.subscribe`.

Phases::

    IDLE -> ROUND_ACTIVE -> ROUND_SETTLING -> ROUND_ACTIVE | MATCH_ENDED

Within a round both actors act whenever their cooldowns allow; there is no
turn order. The human's cooldowns are cleared at every round start, the
opponent's carry over between rounds of the same match.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Union

import numpy as np

from ccbalance.abilities import AbilityEffect, AbilityLayer
from ccbalance.config import MatchSettings
from ccbalance.difficulty import OPPONENT_DISABLED, decision_interval
from ccbalance.economy import ActionEconomy, ActionResult, RejectReason
from ccbalance.interventions import Intervention, InterventionSteps, UseAbility, parse_intervention
from ccbalance.models import Actor, Goal, ReactionDefinition
from ccbalance.opponent import DecisionContext, OpponentEngine
from ccbalance.scheduler import Scheduler, TimerHandle
from ccbalance.scoring import ScoreAccumulator, goal_progress, round_score
from ccbalance.state import ReactionState, StateSnapshot

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    ROUND_ACTIVE = "round_active"
    ROUND_SETTLING = "round_settling"
    MATCH_ENDED = "match_ended"


@dataclass(frozen=True)
class MatchSnapshot:
    state: StateSnapshot | None
    phase: Phase
    round: int
    max_rounds: int
    time_left: int
    paused: bool
    player_goal: Goal
    opponent_goal: Goal
    player_total: float
    opponent_total: float

    @property
    def shift(self) -> float:
        return self.state.shift if self.state else 0.0

    @property
    def player_progress(self) -> float:
        return goal_progress(self.shift, self.player_goal)

    @property
    def opponent_progress(self) -> float:
        return goal_progress(self.shift, self.opponent_goal)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.to_dict() if self.state else None,
            "phase": self.phase.value,
            "round": self.round,
            "max_rounds": self.max_rounds,
            "time_left": self.time_left,
            "paused": self.paused,
            "player_goal": self.player_goal.value,
            "opponent_goal": self.opponent_goal.value,
            "player_total": self.player_total,
            "opponent_total": self.opponent_total,
            "player_progress": self.player_progress,
            "opponent_progress": self.opponent_progress,
        }


@dataclass(frozen=True)
class HistoryEntry:
    round: int
    actor: Actor
    identity: str
    time: float


@dataclass(frozen=True)
class RoundStarted:
    round: int
    max_rounds: int
    snapshot: MatchSnapshot


@dataclass(frozen=True)
class StateChanged:
    snapshot: MatchSnapshot
    actor: Actor | None = None
    identity: str | None = None
    effect: AbilityEffect | None = None


@dataclass(frozen=True)
class ActionRejected:
    actor: Actor
    identity: str
    reason: RejectReason
    remaining: float = 0.0


@dataclass(frozen=True)
class RoundSettled:
    round: int
    shift: float
    player_score: float
    opponent_score: float
    player_total: float
    opponent_total: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "round": self.round,
            "shift": self.shift,
            "player_score": self.player_score,
            "opponent_score": self.opponent_score,
            "player_total": self.player_total,
            "opponent_total": self.opponent_total,
        }


@dataclass(frozen=True)
class MatchSettled:
    winner: Actor
    stars: int
    player_total: float
    opponent_total: float
    achievement: float
    rounds: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "winner": self.winner.value,
            "stars": self.stars,
            "player_total": self.player_total,
            "opponent_total": self.opponent_total,
            "achievement": self.achievement,
            "rounds": self.rounds,
        }


MatchEvent = Union[RoundStarted, StateChanged, ActionRejected, RoundSettled, MatchSettled]
Listener = Callable[[MatchEvent], None]


class Match:
    """One match between the human and the heuristic opponent."""

    def __init__(
        self,
        settings: MatchSettings | None = None,
        scheduler: Scheduler | None = None,
        rng: np.random.Generator | None = None,
        engine: OpponentEngine | None = None,
        abilities: AbilityLayer | None = None,
    ):
        self.settings = settings or MatchSettings()
        self.scheduler = scheduler or Scheduler()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.engine = engine or OpponentEngine(self.rng)
        self.abilities = abilities or AbilityLayer(self.rng, dampening_factor=self.settings.dampening_factor)
        self.steps = InterventionSteps.from_settings(self.settings)

        self.definition: ReactionDefinition | None = None
        self.state: ReactionState | None = None
        self.tier = self.settings.tier
        self.economy = ActionEconomy(self.scheduler.clock, self.tier, self.settings.cooldowns)
        self.scores = ScoreAccumulator()
        self.phase = Phase.IDLE
        self.paused = False
        self.round = 0
        self.max_rounds = self.settings.max_rounds
        self.round_seconds = self.settings.round_seconds
        self.time_left = 0
        self.player_goal = Goal.FORWARD
        self.opponent_goal = Goal.REVERSE
        self.history: list[HistoryEntry] = []
        self.rounds: list[RoundSettled] = []
        self.result: MatchSettled | None = None

        self._listeners: list[Listener] = []
        self._countdown: TimerHandle | None = None
        self._opponent_timer: TimerHandle | None = None
        self._settle_timer: TimerHandle | None = None
        self._settle_due: float | None = None
        self._settle_left: float | None = None

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for match events; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, event: MatchEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    def goal_for(self, actor: Actor) -> Goal:
        return self.player_goal if actor is Actor.HUMAN else self.opponent_goal

    def get_snapshot(self) -> MatchSnapshot:
        return MatchSnapshot(
            state=self.state.snapshot() if self.state else None,
            phase=self.phase,
            round=self.round,
            max_rounds=self.max_rounds,
            time_left=self.time_left,
            paused=self.paused,
            player_goal=self.player_goal,
            opponent_goal=self.opponent_goal,
            player_total=self.scores.player,
            opponent_total=self.scores.opponent,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_match(
        self,
        definition: ReactionDefinition,
        tier: int | None = None,
        max_rounds: int | None = None,
        round_seconds: int | None = None,
        player_goal: Goal | None = None,
    ) -> MatchSnapshot:
        """Start a new match on ``definition``, replacing any previous one.

        ``tier`` 0 disables the opponent. ``max_rounds`` falls back to the
        reaction's own limit, then to the settings. ``player_goal`` is drawn
        at random unless given; the opponent always gets the opposite goal.
        """
        self._cancel_timers()
        self._cancel_settle()

        self.definition = definition
        self.tier = self.settings.tier if tier is None else int(tier)
        if max_rounds is None:
            max_rounds = definition.max_rounds or self.settings.max_rounds
        self.max_rounds = max(1, int(max_rounds))
        self.round_seconds = max(1, int(round_seconds or self.settings.round_seconds))

        self.economy = ActionEconomy(self.scheduler.clock, self.tier, self.settings.cooldowns)
        self.abilities.reset()
        self.scores.reset()
        self.history = []
        self.rounds = []
        self.result = None
        self.paused = False

        if player_goal is None:
            player_goal = Goal.FORWARD if self.rng.random() < 0.5 else Goal.REVERSE
        self.player_goal = Goal(player_goal)
        self.opponent_goal = self.player_goal.opposite

        logger.info(
            "Match on %s: tier %s, %d rounds of %ds, human goal %s",
            definition.id,
            self.tier,
            self.max_rounds,
            self.round_seconds,
            self.player_goal.value,
        )
        self.round = 1
        self._start_round()
        return self.get_snapshot()

    def _start_round(self) -> None:
        assert self.definition is not None
        self.state = ReactionState.at_equilibrium(self.definition)
        self.economy.reset_all(Actor.HUMAN)
        self.time_left = self.round_seconds
        self.phase = Phase.ROUND_ACTIVE
        self._arm_timers()
        snapshot = self.get_snapshot()
        self._publish(RoundStarted(self.round, self.max_rounds, snapshot))
        self._publish(StateChanged(snapshot))

    def _arm_timers(self) -> None:
        self._cancel_timers()
        self._countdown = self.scheduler.call_every(1.0, self._tick_countdown, name="countdown")
        if self.tier != OPPONENT_DISABLED:
            self._opponent_timer = self.scheduler.call_every(
                decision_interval(self.tier), self._opponent_tick, name="opponent"
            )

    def _cancel_timers(self) -> None:
        for handle in (self._countdown, self._opponent_timer):
            if handle is not None:
                handle.cancel()
        self._countdown = None
        self._opponent_timer = None

    def _cancel_settle(self) -> None:
        if self._settle_timer is not None:
            self._settle_timer.cancel()
        self._settle_timer = None
        self._settle_due = None
        self._settle_left = None

    def _tick_countdown(self) -> None:
        if self.phase is not Phase.ROUND_ACTIVE or self.paused:
            return
        self.time_left -= 1
        if self.time_left <= 0:
            self.time_left = 0
            self.end_round()

    def _opponent_tick(self) -> None:
        if self.phase is not Phase.ROUND_ACTIVE or self.paused or self.state is None:
            return
        context = DecisionContext(
            state=self.state,
            goal=self.opponent_goal,
            tier=self.tier,
            is_available=lambda identity: self.economy.is_available(Actor.OPPONENT, identity),
            abilities=self.abilities.available(Actor.OPPONENT),
            scale=self.abilities.magnitude_multiplier(Actor.OPPONENT),
            steps=self.steps,
        )
        candidate = self.engine.decide(context)
        if candidate is None:
            return
        result = self.request_action(Actor.OPPONENT, candidate.intervention)
        if not result:
            logger.debug("opponent %s absorbed: %s", result.identity, result.reason)

    def end_round(self) -> RoundSettled | None:
        """Stop the round and score it; no-op outside an active round."""
        if self.phase is not Phase.ROUND_ACTIVE or self.state is None:
            return None
        self._cancel_timers()
        self.paused = False
        self.phase = Phase.ROUND_SETTLING

        self.state.recompute()
        shift = self.state.shift
        player_score = round_score(shift, self.player_goal)
        opponent_score = round_score(shift, self.opponent_goal)
        self.scores.add(player_score, opponent_score)

        settled = RoundSettled(
            round=self.round,
            shift=shift,
            player_score=player_score,
            opponent_score=opponent_score,
            player_total=self.scores.player,
            opponent_total=self.scores.opponent,
        )
        self.rounds.append(settled)
        logger.info(
            "Round %d settled: shift %+.3f, human %.1f, opponent %.1f",
            self.round,
            shift,
            player_score,
            opponent_score,
        )
        self._publish(settled)
        self._schedule_next_round(self.settings.settle_seconds)
        return settled

    def _schedule_next_round(self, delay: float) -> None:
        self._settle_due = self.scheduler.now + delay
        self._settle_timer = self.scheduler.call_later(delay, self._next_round, name="settle")

    def _next_round(self) -> None:
        self._cancel_settle()
        self.round += 1
        if self.round > self.max_rounds:
            self.round = self.max_rounds
            self._settle_match()
            return
        self.abilities.tick_cooldowns()
        self._start_round()

    def _settle_match(self) -> None:
        self._cancel_timers()
        self.phase = Phase.MATCH_ENDED
        self.result = MatchSettled(
            winner=self.scores.winner,
            stars=self.scores.stars,
            player_total=self.scores.player,
            opponent_total=self.scores.opponent,
            achievement=self.scores.achievement(self.max_rounds),
            rounds=self.max_rounds,
        )
        logger.info(
            "Match settled: %s wins %.1f to %.1f, %d stars",
            self.result.winner.value,
            self.result.player_total,
            self.result.opponent_total,
            self.result.stars,
        )
        self._publish(self.result)

    def pause(self) -> bool:
        """Cancel the live timers; returns False if there is nothing to pause."""
        if self.paused or self.phase not in (Phase.ROUND_ACTIVE, Phase.ROUND_SETTLING):
            return False
        self.paused = True
        self._cancel_timers()
        if self._settle_timer is not None and self._settle_due is not None:
            left = max(0.0, self._settle_due - self.scheduler.now)
            self._cancel_settle()
            self._settle_left = left
        return True

    def resume(self) -> bool:
        """Re-arm fresh timers after :meth:`pause`."""
        if not self.paused:
            return False
        self.paused = False
        if self.phase is Phase.ROUND_ACTIVE:
            self._arm_timers()
        elif self.phase is Phase.ROUND_SETTLING:
            self._schedule_next_round(self._settle_left or 0.0)
            self._settle_left = None
        return True

    def advance(self, seconds: float) -> None:
        self.scheduler.advance(seconds)

    # ------------------------------------------------------------------
    # Interventions
    # ------------------------------------------------------------------

    def _gate(self, actor: Actor, identity: str) -> ActionResult | None:
        if self.phase is not Phase.ROUND_ACTIVE or self.state is None:
            return ActionResult.reject(identity, RejectReason.ROUND_INACTIVE)
        if self.paused:
            return ActionResult.reject(identity, RejectReason.PAUSED)
        return None

    def _rejected(self, actor: Actor, result: ActionResult) -> ActionResult:
        self._publish(ActionRejected(actor, result.identity, result.reason, result.remaining))
        return result

    def request_action(
        self,
        actor: Actor,
        identity: str | Intervention,
        payload: Mapping[str, Any] | None = None,
    ) -> ActionResult:
        """Apply one intervention for ``actor`` if policy allows it.

        Rejections (round not active, paused, unsupported on this reaction,
        unknown species or action, cooldown) leave all state untouched.
        """
        actor = Actor(actor)
        intervention = parse_intervention(identity, payload)
        if intervention is None:
            return self._rejected(actor, ActionResult.reject(str(identity), RejectReason.UNKNOWN_ACTION))
        if isinstance(intervention, UseAbility):
            return self.use_ability(intervention.ability_id, actor)

        gate = self._gate(actor, intervention.identity)
        if gate is not None:
            return self._rejected(actor, gate)
        reason = intervention.unsupported_reason(self.definition)
        if reason is not None:
            return self._rejected(actor, ActionResult.reject(intervention.identity, reason))

        result = self.economy.request_action(actor, intervention.identity)
        if not result:
            return self._rejected(actor, result)

        intervention.apply(self.state, self.steps, self.abilities.magnitude_multiplier(actor))
        self.history.append(HistoryEntry(self.round, actor, intervention.identity, self.scheduler.now))
        self._publish(StateChanged(self.get_snapshot(), actor, intervention.identity))
        return result

    def use_ability(self, ability_id: str, actor: Actor) -> ActionResult:
        """Use an ability for ``actor``; the effect is returned as ``detail``."""
        actor = Actor(actor)
        identity = UseAbility(ability_id).identity
        gate = self._gate(actor, identity)
        if gate is not None:
            return self._rejected(actor, gate)
        if ability_id not in self.abilities.specs:
            return self._rejected(actor, ActionResult.reject(identity, RejectReason.UNKNOWN_ACTION))
        if not self.abilities.is_available(ability_id, actor):
            return self._rejected(actor, ActionResult.reject(identity, RejectReason.ABILITY_UNAVAILABLE))

        result = self.economy.request_action(actor, identity)
        if not result:
            return self._rejected(actor, result)

        effect = self.abilities.use(ability_id, actor, self.state, self.goal_for(actor))
        self.history.append(HistoryEntry(self.round, actor, identity, self.scheduler.now))
        self._publish(StateChanged(self.get_snapshot(), actor, identity, effect))
        return ActionResult(accepted=True, identity=identity, detail=effect)
