import unittest

from ccbalance.config import MatchSettings
from ccbalance.economy import RejectReason
from ccbalance.interventions import (
    AddSpecies,
    Cool,
    Depressurize,
    Heat,
    InterventionSteps,
    Pressurize,
    UseAbility,
    parse_intervention,
)
from ccbalance.models import ReactionDefinition
from ccbalance.state import ReactionState


def make_definition(**overrides):
    data = dict(reactants=("A", "B"), products=("C",), equilibrium_constant=1.0)
    data.update(overrides)
    return ReactionDefinition(**data)


class TestParseIntervention(unittest.TestCase):
    def test_simple_identities(self):
        self.assertEqual(parse_intervention("heat"), Heat())
        self.assertEqual(parse_intervention("cool"), Cool())
        self.assertEqual(parse_intervention("pressurize"), Pressurize())
        self.assertEqual(parse_intervention("depressurize"), Depressurize())

    def test_targeted_identities(self):
        self.assertEqual(parse_intervention("addSpecies:A"), AddSpecies("A"))
        self.assertEqual(parse_intervention("addSpecies", {"species": "B"}), AddSpecies("B"))
        self.assertEqual(parse_intervention("ability:buffer"), UseAbility("buffer"))
        self.assertEqual(parse_intervention("ability", {"abilityId": "quantum"}), UseAbility("quantum"))

    def test_unknown(self):
        self.assertIsNone(parse_intervention("explode"))
        self.assertIsNone(parse_intervention("heat:5"))
        self.assertIsNone(parse_intervention("addSpecies"))
        self.assertIsNone(parse_intervention(42))

    def test_identity_round_trip(self):
        for identity in ("heat", "cool", "addSpecies:H+", "ability:catalyst"):
            self.assertEqual(parse_intervention(identity).identity, identity)


class TestApply(unittest.TestCase):
    def setUp(self):
        self.definition = make_definition()
        self.state = ReactionState.at_equilibrium(self.definition)
        self.steps = InterventionSteps.from_settings(MatchSettings())

    def test_add_species_step_is_fraction_of_base(self):
        base = self.state.base_concentration("A")
        AddSpecies("A").apply(self.state, self.steps)
        self.assertAlmostEqual(self.state.concentrations["A"], base * 1.05)

    def test_scale_dampens(self):
        base = self.state.base_concentration("C")
        AddSpecies("C").apply(self.state, self.steps, scale=0.5)
        self.assertAlmostEqual(self.state.concentrations["C"], base * 1.025)

    def test_temperature_steps(self):
        start = self.state.temperature
        Heat().apply(self.state, self.steps)
        self.assertAlmostEqual(self.state.temperature, start + 20.0)
        Cool().apply(self.state, self.steps)
        Cool().apply(self.state, self.steps)
        self.assertAlmostEqual(self.state.temperature, start - 20.0)

    def test_unsupported(self):
        self.assertEqual(Pressurize().unsupported_reason(self.definition), RejectReason.UNSUPPORTED)
        self.assertEqual(AddSpecies("Z").unsupported_reason(self.definition), RejectReason.UNKNOWN_SPECIES)
        self.assertIsNone(AddSpecies("A").unsupported_reason(self.definition))

        gas = make_definition(has_gas=True, gas_species=("A", "C"))
        self.assertIsNone(Pressurize().unsupported_reason(gas))
        # A gas flag without gas species is not a gas-phase reaction.
        self.assertEqual(
            Depressurize().unsupported_reason(make_definition(has_gas=True)), RejectReason.UNSUPPORTED
        )

    def test_ability_is_not_applied_directly(self):
        with self.assertRaises(TypeError):
            UseAbility("catalyst").apply(self.state, self.steps)


if __name__ == "__main__":
    unittest.main()
