"""CCBalance core package."""

from ccbalance.catalog import get_reaction, list_reactions, load_reactions
from ccbalance.config import ConfigError, MatchSettings, load_settings
from ccbalance.economy import ActionResult, RejectReason
from ccbalance.match import Match, Phase
from ccbalance.models import Actor, Goal, ReactionDefinition
from ccbalance.scheduler import Scheduler
from ccbalance.state import ReactionState

__all__ = [
    "ActionResult",
    "Actor",
    "ConfigError",
    "Goal",
    "Match",
    "MatchSettings",
    "Phase",
    "ReactionDefinition",
    "ReactionState",
    "RejectReason",
    "Scheduler",
    "get_reaction",
    "list_reactions",
    "load_reactions",
    "load_settings",
]
