import unittest

from ccbalance.catalog import get_reaction
from ccbalance.constants import CONCENTRATION_EPSILON, TEMPERATURE_RANGE
from ccbalance.models import ReactionDefinition
from ccbalance.state import ReactionState


def make_definition(**overrides):
    data = dict(
        reactants=("A", "B"),
        products=("C",),
        equilibrium_constant=100.0,
        delta_h=-40.0,
        initial_temperature=400.0,
    )
    data.update(overrides)
    return ReactionDefinition(**data)


class TestReactionState(unittest.TestCase):
    def setUp(self):
        self.state = ReactionState.at_equilibrium(make_definition())

    def test_round_start_is_balanced(self):
        self.assertAlmostEqual(self.state.shift, 0.0, places=9)
        self.assertAlmostEqual(self.state.q / self.state.k, 1.0, places=9)

    def test_adding_reactant_drives_forward(self):
        self.state.add_species("A", 0.5)
        self.assertGreater(self.state.shift, 0.0)

    def test_adding_product_drives_reverse(self):
        self.state.add_species("C", 0.5)
        self.assertLess(self.state.shift, 0.0)

    def test_cooling_favours_exothermic_forward(self):
        self.state.adjust_temperature(-50.0)
        self.assertGreater(self.state.shift, 0.0)

    def test_temperature_is_clamped(self):
        self.state.set_temperature(1e6)
        self.assertEqual(self.state.temperature, TEMPERATURE_RANGE[1])
        self.state.set_temperature(-5.0)
        self.assertEqual(self.state.temperature, TEMPERATURE_RANGE[0])

    def test_concentration_floor(self):
        self.state.adjust_concentration("A", -100.0)
        self.assertEqual(self.state.concentrations["A"], CONCENTRATION_EPSILON)
        self.assertLess(self.state.shift, 0.0)

    def test_pressure_ignored_without_gas(self):
        before = dict(self.state.concentrations)
        pressure = self.state.pressure
        self.state.adjust_pressure(100.0)
        self.assertEqual(self.state.pressure, pressure)
        self.assertEqual(self.state.concentrations, before)

    def test_compression_favours_fewer_gas_moles(self):
        state = ReactionState.at_equilibrium(get_reaction("haber"))
        state.adjust_pressure(50.0)
        self.assertGreater(state.shift, 0.0)

    def test_copy_is_independent(self):
        trial = self.state.copy()
        trial.add_species("A", 1.0)
        self.assertAlmostEqual(self.state.shift, 0.0, places=9)
        self.assertNotEqual(trial.concentrations["A"], self.state.concentrations["A"])

    def test_relax_moves_toward_equilibrium(self):
        self.state.add_species("A", 1.0)
        before = self.state.shift
        self.state.relax(0.3)
        self.assertGreater(self.state.shift, 0.0)
        self.assertLess(self.state.shift, before)

    def test_snapshot(self):
        data = self.state.snapshot().to_dict()
        self.assertEqual(set(data), {"K", "Q", "shift", "temperature", "pressure", "concentrations"})
        self.assertEqual(data["temperature"], 400.0)


if __name__ == "__main__":
    unittest.main()
