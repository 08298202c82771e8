import unittest

import numpy as np

from ccbalance.abilities import AbilityEffect
from ccbalance.config import MatchSettings
from ccbalance.economy import RejectReason
from ccbalance.match import (
    ActionRejected,
    Match,
    MatchSettled,
    Phase,
    RoundSettled,
    RoundStarted,
    StateChanged,
)
from ccbalance.models import Actor, Goal, ReactionDefinition


def make_definition(**overrides):
    data = dict(
        reactants=("A", "B"),
        products=("C",),
        coefficients={"A": 1, "B": 1, "C": 1},
        initial_concentrations={"A": 1.0, "B": 1.0, "C": 1.0},
        equilibrium_constant=100.0,
        delta_h=0.0,
        id="a-b-c",
    )
    data.update(overrides)
    return ReactionDefinition(**data)


def make_match(seed=0, **settings):
    values = dict(round_seconds=30, max_rounds=3, tier=0, settle_seconds=2.0)
    values.update(settings)
    return Match(settings=MatchSettings(**values), rng=np.random.default_rng(seed))


class TestMatchFlow(unittest.TestCase):
    def setUp(self):
        self.match = make_match()
        self.events = []
        self.match.subscribe(self.events.append)

    def test_requests_before_start_are_rejected(self):
        result = self.match.request_action(Actor.HUMAN, "heat")
        self.assertFalse(result)
        self.assertEqual(result.reason, RejectReason.ROUND_INACTIVE)

    def test_start(self):
        snapshot = self.match.start_match(make_definition(), player_goal=Goal.REVERSE)
        self.assertIs(snapshot.phase, Phase.ROUND_ACTIVE)
        self.assertEqual(snapshot.round, 1)
        self.assertEqual(snapshot.time_left, 30)
        self.assertIs(snapshot.opponent_goal, Goal.FORWARD)
        self.assertAlmostEqual(snapshot.shift, 0.0, places=9)
        self.assertAlmostEqual(snapshot.player_progress, 50.0)
        self.assertIsInstance(self.events[0], RoundStarted)
        self.assertIsInstance(self.events[1], StateChanged)

    def test_random_goals_are_opposite(self):
        for seed in range(6):
            match = make_match(seed)
            match.start_match(make_definition())
            self.assertIs(match.opponent_goal, match.player_goal.opposite)

    def test_human_additions_win_the_round(self):
        self.match.start_match(make_definition(), tier=0, max_rounds=1, player_goal=Goal.FORWARD)
        for _ in range(5):
            self.assertTrue(self.match.request_action(Actor.HUMAN, "addSpecies:A"))
            self.match.advance(3.0)
        self.assertGreater(self.match.get_snapshot().shift, 0.0)

        settled = self.match.end_round()
        self.assertGreater(settled.shift, 0.0)
        self.assertGreaterEqual(settled.player_score, 10.0)
        self.assertLess(settled.opponent_score, 5.0)
        self.assertIs(self.match.phase, Phase.ROUND_SETTLING)
        self.assertEqual(len(self.match.history), 5)

        self.match.advance(2.0)
        self.assertIs(self.match.phase, Phase.MATCH_ENDED)
        result = self.match.result
        self.assertIs(result.winner, Actor.HUMAN)
        self.assertEqual(result.stars, 1)
        self.assertIsInstance(self.events[-1], MatchSettled)

    def test_policy_rejections(self):
        self.match.start_match(make_definition())
        cases = {
            "pressurize": RejectReason.UNSUPPORTED,
            "addSpecies:Z": RejectReason.UNKNOWN_SPECIES,
            "transmute": RejectReason.UNKNOWN_ACTION,
            "ability:teleport": RejectReason.UNKNOWN_ACTION,
        }
        before = self.match.get_snapshot()
        for identity, reason in cases.items():
            result = self.match.request_action(Actor.HUMAN, identity)
            self.assertEqual(result.reason, reason, identity)
        self.assertEqual(self.match.get_snapshot(), before)
        rejected = [event for event in self.events if isinstance(event, ActionRejected)]
        self.assertEqual(len(rejected), len(cases))

    def test_cooldown_rejection(self):
        self.match.start_match(make_definition())
        self.assertTrue(self.match.request_action(Actor.HUMAN, "heat"))
        self.match.advance(1.0)
        result = self.match.request_action(Actor.HUMAN, "heat")
        self.assertEqual(result.reason, RejectReason.COOLDOWN)
        self.assertAlmostEqual(result.remaining, 4.0)

    def test_pause_and_resume(self):
        self.match.start_match(make_definition())
        self.assertTrue(self.match.pause())
        self.assertFalse(self.match.pause())
        self.assertEqual(self.match.request_action(Actor.HUMAN, "heat").reason, RejectReason.PAUSED)

        self.match.advance(60.0)
        self.assertEqual(self.match.time_left, 30)
        self.assertIs(self.match.phase, Phase.ROUND_ACTIVE)

        self.assertTrue(self.match.resume())
        self.assertTrue(self.match.request_action(Actor.HUMAN, "heat"))
        self.match.advance(10.0)
        self.assertEqual(self.match.time_left, 20)

    def test_pause_during_settle_delay(self):
        self.match.start_match(make_definition())
        self.match.end_round()
        self.match.advance(1.0)
        self.assertTrue(self.match.pause())
        self.match.advance(30.0)
        self.assertEqual(self.match.round, 1)
        self.match.resume()
        self.match.advance(1.0)
        self.assertEqual(self.match.round, 2)
        self.assertIs(self.match.phase, Phase.ROUND_ACTIVE)

    def test_countdown_settles_every_round(self):
        match = make_match(round_seconds=5, max_rounds=2)
        settled = []
        match.subscribe(lambda event: settled.append(event) if isinstance(event, RoundSettled) else None)
        match.start_match(make_definition(), player_goal=Goal.FORWARD)

        match.advance(5.0)
        self.assertIs(match.phase, Phase.ROUND_SETTLING)
        self.assertEqual(len(settled), 1)
        self.assertEqual(settled[0].player_score, 5.0)

        match.advance(2.0)
        self.assertEqual(match.round, 2)
        self.assertIs(match.phase, Phase.ROUND_ACTIVE)
        self.assertEqual(match.time_left, 5)

        match.advance(7.0)
        self.assertIs(match.phase, Phase.MATCH_ENDED)
        self.assertEqual(match.result.player_total, 10.0)
        self.assertEqual(match.result.opponent_total, 10.0)
        self.assertIs(match.result.winner, Actor.HUMAN)
        self.assertEqual(match.result.stars, 1)
        self.assertEqual(match.round, 2)

    def test_definition_round_limit(self):
        self.match.start_match(make_definition(max_rounds=4))
        self.assertEqual(self.match.max_rounds, 4)
        self.match.start_match(make_definition(max_rounds=4), max_rounds=2)
        self.assertEqual(self.match.max_rounds, 2)

    def test_snapshot_dict(self):
        self.match.start_match(make_definition(), player_goal=Goal.FORWARD)
        data = self.match.get_snapshot().to_dict()
        self.assertEqual(data["phase"], "round_active")
        self.assertEqual(data["player_goal"], "forward")
        self.assertIn("K", data["state"])

    def test_unsubscribe(self):
        received = []
        unsubscribe = self.match.subscribe(received.append)
        unsubscribe()
        self.match.start_match(make_definition())
        self.assertEqual(received, [])


class TestCooldownLifetimes(unittest.TestCase):
    def test_human_cooldowns_reset_each_round(self):
        match = make_match()
        match.start_match(make_definition())
        self.assertTrue(match.request_action(Actor.HUMAN, "heat"))
        match.end_round()
        match.advance(2.0)
        self.assertEqual(match.round, 2)
        self.assertTrue(match.request_action(Actor.HUMAN, "heat"))

    def test_opponent_cooldowns_persist_within_a_match(self):
        match = make_match(tier=2)
        match.start_match(make_definition(), tier=2)
        self.assertTrue(match.request_action(Actor.OPPONENT, "heat"))
        match.end_round()
        match.advance(2.0)
        self.assertEqual(match.round, 2)
        result = match.request_action(Actor.OPPONENT, "heat")
        self.assertEqual(result.reason, RejectReason.COOLDOWN)

    def test_new_match_replaces_cooldowns(self):
        match = make_match(tier=2)
        match.start_match(make_definition(), tier=2)
        self.assertTrue(match.request_action(Actor.OPPONENT, "heat"))
        match.start_match(make_definition(), tier=2)
        self.assertTrue(match.economy.is_available(Actor.OPPONENT, "heat"))


class TestAbilitiesInMatch(unittest.TestCase):
    def setUp(self):
        self.match = make_match()
        self.match.start_match(make_definition(), player_goal=Goal.FORWARD)

    def test_buffer_dampens_opponent(self):
        result = self.match.use_ability("buffer", Actor.HUMAN)
        self.assertTrue(result)
        self.assertIsInstance(result.detail, AbilityEffect)

        base = self.match.state.base_concentration("C")
        self.assertTrue(self.match.request_action(Actor.OPPONENT, "addSpecies:C"))
        self.assertAlmostEqual(self.match.state.concentrations["C"], base * 1.025)

    def test_ability_round_cooldown(self):
        self.assertTrue(self.match.request_action(Actor.HUMAN, "ability:catalyst"))
        self.match.advance(2.0)
        result = self.match.use_ability("catalyst", Actor.HUMAN)
        self.assertEqual(result.reason, RejectReason.ABILITY_UNAVAILABLE)
        self.assertTrue(self.match.use_ability("catalyst", Actor.OPPONENT))


class TestOpponentInMatch(unittest.TestCase):
    def run_round(self, tier, seed=3):
        match = make_match(seed, tier=tier, max_rounds=1)
        match.start_match(make_definition(), tier=tier, player_goal=Goal.FORWARD)
        match.advance(29.0)
        accepted = [entry for entry in match.history if entry.actor is Actor.OPPONENT]
        return match, accepted

    def test_opponent_pushes_its_goal(self):
        match, accepted = self.run_round(4)
        self.assertGreater(len(accepted), 0)
        self.assertLess(match.state.shift, 0.0)

    def test_harder_tier_acts_at_least_as_often(self):
        seeds = range(10)
        easy = sum(len(self.run_round(1, seed)[1]) for seed in seeds)
        hard = sum(len(self.run_round(4, seed)[1]) for seed in seeds)
        self.assertGreater(hard, easy)

    def test_disabled_opponent_never_acts(self):
        match, accepted = self.run_round(0)
        self.assertEqual(accepted, [])


if __name__ == "__main__":
    unittest.main()
