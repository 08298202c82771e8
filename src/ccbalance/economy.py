"""Per-actor cooldown tracking for every action identity."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from ccbalance.config import CooldownTable
from ccbalance.difficulty import cooldown_multiplier
from ccbalance.models import Actor

logger = logging.getLogger(__name__)


class RejectReason(str, Enum):
    COOLDOWN = "cooldown"
    UNSUPPORTED = "unsupported"
    UNKNOWN_SPECIES = "unknown_species"
    UNKNOWN_ACTION = "unknown_action"
    ROUND_INACTIVE = "round_inactive"
    PAUSED = "paused"
    ABILITY_UNAVAILABLE = "ability_unavailable"


@dataclass(frozen=True)
class ActionResult:
    """Outcome of an intervention request.

    Rejection is the only failure mode; ``remaining`` carries the cooldown
    left for a ``COOLDOWN`` rejection so the UI can show it.
    """

    accepted: bool
    identity: str
    reason: RejectReason | None = None
    remaining: float = 0.0
    detail: object | None = None

    def __bool__(self) -> bool:
        return self.accepted

    @classmethod
    def reject(cls, identity: str, reason: RejectReason, remaining: float = 0.0) -> ActionResult:
        return cls(accepted=False, identity=identity, reason=reason, remaining=remaining)


@dataclass(frozen=True)
class CooldownEntry:
    start: float
    duration: float

    def elapsed(self, now: float) -> float:
        return max(0.0, now - self.start)

    def remaining(self, now: float) -> float:
        return max(0.0, self.duration - self.elapsed(now))

    def expired(self, now: float) -> bool:
        return self.elapsed(now) >= self.duration


class ActionEconomy:
    """Accepts or rejects action requests against independent cooldowns.

    Every (actor, identity) pair has its own window. Human cooldowns use the
    base durations; the opponent's are scaled by the tier's multiplier and
    floored at ``CooldownTable.minimum``.
    """

    def __init__(
        self,
        clock: Callable[[], float],
        tier: int | None = 2,
        cooldowns: CooldownTable | None = None,
    ):
        self.clock = clock
        self.tier = tier
        self.cooldowns = cooldowns or CooldownTable()
        self._entries: dict[Actor, dict[str, CooldownEntry]] = {actor: {} for actor in Actor}

    def base_duration(self, identity: str) -> float:
        family = identity.partition(":")[0]
        if family == "addSpecies":
            return self.cooldowns.concentration
        if family == "ability":
            return self.cooldowns.ability
        return getattr(self.cooldowns, family, self.cooldowns.heat)

    def duration_for(self, actor: Actor, identity: str) -> float:
        base = self.base_duration(identity)
        if actor is Actor.OPPONENT:
            return max(self.cooldowns.minimum, base * cooldown_multiplier(self.tier))
        return base

    def is_available(self, actor: Actor, identity: str) -> bool:
        entry = self._entries[actor].get(identity)
        return entry is None or entry.expired(self.clock())

    def elapsed(self, actor: Actor, identity: str) -> float | None:
        entry = self._entries[actor].get(identity)
        return None if entry is None else entry.elapsed(self.clock())

    def remaining(self, actor: Actor, identity: str) -> float:
        entry = self._entries[actor].get(identity)
        return 0.0 if entry is None else entry.remaining(self.clock())

    def request_action(self, actor: Actor, identity: str) -> ActionResult:
        now = self.clock()
        entry = self._entries[actor].get(identity)
        if entry is not None and not entry.expired(now):
            logger.debug("%s %s rejected: %.2fs cooldown left", actor.value, identity, entry.remaining(now))
            return ActionResult.reject(identity, RejectReason.COOLDOWN, entry.remaining(now))
        self._entries[actor][identity] = CooldownEntry(start=now, duration=self.duration_for(actor, identity))
        return ActionResult(accepted=True, identity=identity)

    def reset_all(self, actor: Actor) -> None:
        self._entries[actor] = {}

    def active(self, actor: Actor) -> dict[str, float]:
        """Remaining time of every identity still cooling down."""
        now = self.clock()
        return {
            identity: entry.remaining(now)
            for identity, entry in self._entries[actor].items()
            if not entry.expired(now)
        }
