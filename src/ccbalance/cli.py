"""Command-line entrypoints for CCBalance."""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Dict

import numpy as np
import typer

from ccbalance import equilibrium
from ccbalance.catalog import get_reaction, list_reactions, load_reactions
from ccbalance.config import ConfigError, MatchSettings, load_settings
from ccbalance.constants import TEMPERATURE_RANGE
from ccbalance.difficulty import decision_interval
from ccbalance.match import Match, Phase
from ccbalance.models import Actor, Goal, ReactionDefinition
from ccbalance.opponent import DecisionContext, OpponentEngine
from ccbalance.scheduler import Scheduler
from ccbalance.state import ReactionState

app = typer.Typer(add_completion=False)

logger = logging.getLogger(__name__)


class HumanMode(str, Enum):
    idle = "idle"
    autopilot = "autopilot"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _resolve_reaction(reaction_id: str, reaction_file: Path | None) -> ReactionDefinition:
    extra = load_reactions(reaction_file) if reaction_file is not None else None
    return get_reaction(reaction_id, extra)


def _emit(payload: Dict[str, Any], output: Path | None) -> None:
    json_output = json.dumps(payload, indent=2)
    typer.echo(json_output)
    if output:
        with open(output, "w") as f:
            f.write(json_output)


@app.command()
def reactions(
    category: Annotated[str | None, typer.Option(help="Only list this category.")] = None,
) -> None:
    """List the built-in reactions."""
    for definition in list_reactions(category):
        gas = " [gas]" if definition.is_gas_phase else ""
        typer.echo(
            f"{definition.id:<18} {definition.equation:<26} "
            f"K0={definition.equilibrium_constant:.3g} dH={definition.delta_h:+.1f}{gas}"
        )


@app.command("equilibrium")
def equilibrium_sweep(
    reaction_id: Annotated[str, typer.Argument(help="Reaction id from the catalog.")],
    t_min: Annotated[float, typer.Option(help="Lowest temperature (K).")] = TEMPERATURE_RANGE[0],
    t_max: Annotated[float, typer.Option(help="Highest temperature (K).")] = TEMPERATURE_RANGE[1],
    points: Annotated[int, typer.Option(help="Number of temperatures.")] = 14,
    reaction_file: Annotated[
        Path | None, typer.Option(help="JSON file with extra reactions.")
    ] = None,
    output: Annotated[Path | None, typer.Option(help="Path to save output JSON.")] = None,
) -> None:
    """Show K, Q and shift of the round-start mixture across temperatures.

    Q is held at its value for the reaction's own start temperature, so the
    shift shows which way heating or cooling drives the system.
    """
    try:
        definition = _resolve_reaction(reaction_id, reaction_file)
    except (KeyError, ConfigError) as exc:
        raise typer.BadParameter(str(exc)) from exc

    start = ReactionState.at_equilibrium(definition)
    temperatures = np.linspace(t_min, t_max, max(2, points))
    rows = []
    for temperature in temperatures:
        k = equilibrium.equilibrium_constant(definition, float(temperature))
        rows.append(
            {
                "T": float(temperature),
                "K": k,
                "Q": start.q,
                "shift": equilibrium.shift(k, start.q),
            }
        )
    _emit({"reaction": definition.id, "equation": definition.equation, "profile": rows}, output)


def _attach_autopilot(match: Match, engine: OpponentEngine, tier: int) -> None:
    """Drive the human side with a second heuristic engine."""

    def tick() -> None:
        if match.phase is not Phase.ROUND_ACTIVE or match.paused or match.state is None:
            return
        context = DecisionContext(
            state=match.state,
            goal=match.player_goal,
            tier=tier,
            is_available=lambda identity: match.economy.is_available(Actor.HUMAN, identity),
            abilities=match.abilities.available(Actor.HUMAN),
            scale=match.abilities.magnitude_multiplier(Actor.HUMAN),
            steps=match.steps,
        )
        candidate = engine.decide(context)
        if candidate is not None:
            match.request_action(Actor.HUMAN, candidate.intervention)

    match.scheduler.call_every(decision_interval(tier), tick, name="autopilot")


@app.command()
def simulate(
    reaction: Annotated[str, typer.Option(help="Reaction id.")] = "haber",
    reaction_file: Annotated[
        Path | None, typer.Option(help="JSON file with extra reactions.")
    ] = None,
    settings: Annotated[Path | None, typer.Option(help="JSON settings file.")] = None,
    tier: Annotated[int | None, typer.Option(help="Opponent tier 1-4, 0 disables it.")] = None,
    rounds: Annotated[int | None, typer.Option(help="Number of rounds.")] = None,
    round_seconds: Annotated[int | None, typer.Option(help="Seconds per round.")] = None,
    goal: Annotated[Goal | None, typer.Option(help="Human goal; random if omitted.")] = None,
    human: Annotated[HumanMode, typer.Option(help="How the human side plays.")] = HumanMode.idle,
    human_tier: Annotated[int, typer.Option(help="Autopilot tier.")] = 3,
    seed: Annotated[int | None, typer.Option(help="Random seed.")] = None,
    output: Annotated[Path | None, typer.Option(help="Path to save output JSON.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging.")] = False,
) -> None:
    """Play a headless match on virtual time and print the summary."""
    _configure_logging(verbose)
    try:
        definition = _resolve_reaction(reaction, reaction_file)
        base = load_settings(settings) if settings is not None else MatchSettings()
        match_settings = base.with_overrides(tier=tier, max_rounds=rounds, round_seconds=round_seconds)
    except (KeyError, ConfigError) as exc:
        raise typer.BadParameter(str(exc)) from exc

    rng = np.random.default_rng(seed)
    scheduler = Scheduler()
    match = Match(settings=match_settings, scheduler=scheduler, rng=rng)
    match.start_match(
        definition,
        tier=match_settings.tier,
        max_rounds=rounds,
        round_seconds=match_settings.round_seconds,
        player_goal=goal,
    )
    if human is HumanMode.autopilot:
        _attach_autopilot(match, OpponentEngine(rng), human_tier)

    limit = match.max_rounds * (match.round_seconds + match_settings.settle_seconds + 5.0)
    scheduler.run(lambda: match.phase is Phase.MATCH_ENDED, step=0.25, limit=limit)
    if match.result is None:
        logger.error("Match did not finish within %.0f s of virtual time", limit)
        raise typer.Exit(code=1)

    actions: Dict[str, int] = {actor.value: 0 for actor in Actor}
    for entry in match.history:
        actions[entry.actor.value] += 1

    _emit(
        {
            "reaction": definition.id,
            "tier": match.tier,
            "player_goal": match.player_goal.value,
            "opponent_goal": match.opponent_goal.value,
            "rounds": [settled.to_dict() for settled in match.rounds],
            "actions": actions,
            "result": match.result.to_dict(),
        },
        output,
    )


if __name__ == "__main__":
    app()
