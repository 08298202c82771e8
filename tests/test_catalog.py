import json
import os
import tempfile
import unittest

from ccbalance.catalog import BUILTIN_REACTIONS, get_reaction, list_reactions, load_reactions
from ccbalance.config import ConfigError
from ccbalance.models import Goal, ReactionDefinition
from ccbalance.state import ReactionState


class TestBuiltinCatalog(unittest.TestCase):
    def test_every_reaction_starts_balanced(self):
        for definition in list_reactions():
            self.assertTrue(definition.reactants and definition.products, definition.id)
            state = ReactionState.at_equilibrium(definition)
            self.assertEqual(state.shift, 0.0, definition.id)

    def test_lookup(self):
        haber = get_reaction("haber")
        self.assertTrue(haber.is_gas_phase)
        self.assertEqual(haber.coefficient("H2"), 3)
        self.assertEqual(haber.favored_species(Goal.REVERSE), ("NH3",))
        with self.assertRaises(KeyError):
            get_reaction("cold-fusion")

    def test_categories(self):
        gas = list_reactions("gas")
        self.assertTrue(gas)
        self.assertTrue(all(r.category == "gas" for r in gas))
        self.assertEqual(len(list_reactions()), len(BUILTIN_REACTIONS))


class TestNormalization(unittest.TestCase):
    def test_bad_values_are_normalized(self):
        with self.assertLogs("ccbalance.models", level="WARNING"):
            definition = ReactionDefinition(
                reactants=("A", "B"),
                products=("B", "C"),
                coefficients={"A": -2, "Z": 4},
                initial_concentrations={"A": float("nan")},
                equilibrium_constant=-5.0,
                has_gas=True,
                gas_species=("C", "Q"),
            )
        self.assertEqual(definition.products, ("C",))
        self.assertEqual(definition.coefficients, {"A": 1, "B": 1, "C": 1})
        self.assertEqual(definition.initial_concentrations["A"], 1.0)
        self.assertEqual(definition.equilibrium_constant, 1.0)
        self.assertEqual(definition.gas_species, ("C",))

    def test_non_numeric_fields_fall_back(self):
        with self.assertLogs("ccbalance.models", level="WARNING"):
            definition = ReactionDefinition.from_mapping(
                {"reactants": ["A"], "products": ["B"], "deltaH": "n/a", "maxRounds": "ten"}
            )
        self.assertEqual(definition.delta_h, 0.0)
        self.assertIsNone(definition.max_rounds)
        self.assertEqual(ReactionDefinition(("A",), ("B",), max_rounds=0).max_rounds, None)
        self.assertEqual(ReactionDefinition(("A",), ("B",), max_rounds="4").max_rounds, 4)


class TestLoadReactions(unittest.TestCase):
    def write(self, data):
        handle, path = tempfile.mkstemp(suffix=".json")
        with os.fdopen(handle, "w") as f:
            f.write(data if isinstance(data, str) else json.dumps(data))
        self.addCleanup(os.remove, path)
        return path

    def test_level_style_keys(self):
        path = self.write(
            {
                "reactions": [
                    {
                        "id": "iodine",
                        "reactants": ["H2", "I2"],
                        "products": ["HI"],
                        "coefficients": {"H2": 1, "I2": 1, "HI": 2},
                        "equilibriumConstant": 50,
                        "deltaH": -10,
                        "initialTemp": 698,
                        "hasGas": True,
                        "gasSpecies": ["H2", "I2", "HI"],
                        "maxRounds": 3,
                    }
                ]
            }
        )
        reactions = load_reactions(path)
        definition = get_reaction("iodine", reactions)
        self.assertEqual(definition.equilibrium_constant, 50.0)
        self.assertEqual(definition.initial_temperature, 698.0)
        self.assertEqual(definition.max_rounds, 3)
        self.assertTrue(definition.is_gas_phase)
        self.assertEqual(ReactionDefinition.from_mapping(definition.to_mapping()), definition)

    def test_malformed_record_is_normalized(self):
        path = self.write(
            [
                {"id": "bad", "reactants": ["A"], "products": ["B"], "deltaH": "hot", "maxRounds": "ten"},
                {"id": "good", "reactants": ["C"], "products": ["D"]},
            ]
        )
        with self.assertLogs("ccbalance.models", level="WARNING"):
            reactions = load_reactions(path)
        self.assertEqual(set(reactions), {"bad", "good"})
        self.assertEqual(reactions["bad"].delta_h, 0.0)

    def test_structural_errors(self):
        with self.assertRaises(ConfigError):
            load_reactions(self.write("not json"))
        with self.assertRaises(ConfigError):
            load_reactions(self.write({"reactions": [{"id": "x", "reactants": ["A"], "products": []}]}))
        with self.assertRaises(ConfigError):
            load_reactions(self.write({"reactions": "A"}))


if __name__ == "__main__":
    unittest.main()
