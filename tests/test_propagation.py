"""Tests for PropagationUtility."""

import numpy as np
import pytest

from eloss_mc.core import constants as const
from eloss_mc.core.config import ProcessDefinition
from eloss_mc.core.errors import ConfigurationError, InvariantViolation
from eloss_mc.core.particle import E_MINUS
from eloss_mc.transport.propagation import PropagationUtility


@pytest.fixture(scope="module")
def electron_utility(water, cuts, registries):
    """Stable particle with ionization only, evaluated by quadrature."""
    return PropagationUtility.from_definitions(
        E_MINUS, water, cuts,
        [ProcessDefinition("ionization", "IonizBetheBlochRossi")],
        registries, lower_lim=1e3)


class TestConstruction:
    """Validation of the configuration."""

    def test_utilities_by_stability(self, muon_utility, electron_utility):
        assert "decay" in muon_utility.utilities
        assert "decay" not in electron_utility.utilities
        for purpose in ("displacement", "interaction", "time", "contrand", "scattering"):
            assert purpose in muon_utility.utilities
            assert purpose in electron_utility.utilities

    def test_default_lower_limit(self, water, cuts, registries):
        utility = PropagationUtility.from_definitions(
            E_MINUS, water, cuts,
            [ProcessDefinition("ionization", "IonizBetheBlochRossi")], registries)
        assert utility.lower_lim == E_MINUS.low

    def test_empty_process_list(self, muon, water, cuts):
        with pytest.raises(ConfigurationError, match="at least one"):
            PropagationUtility(muon, water, cuts, [])

    def test_mismatched_medium(self, muon, water, ice, cuts, registries):
        cross = registries.ionization.create("IonizBetheBlochRossi", muon, water, cuts)
        with pytest.raises(ConfigurationError, match="does not match"):
            PropagationUtility(muon, ice, cuts, [cross], lower_lim=1e3)

    def test_mismatched_particle(self, muon, water, cuts, registries):
        cross = registries.ionization.create("IonizBetheBlochRossi", muon, water, cuts)
        with pytest.raises(ConfigurationError, match="does not match"):
            PropagationUtility(E_MINUS, water, cuts, [cross], lower_lim=1e3)

    def test_no_continuous_loss(self, photon, water, cuts, registries):
        definitions = [ProcessDefinition("photopair", "PhotoPairTsai")]
        with pytest.raises(ConfigurationError, match="No continuous energy loss"):
            PropagationUtility.from_definitions(photon, water, cuts, definitions,
                                                registries, lower_lim=10.0)

    def test_repr(self, muon_utility):
        text = repr(muon_utility)
        assert "MuMinus" in text
        assert "ionizbetheblochrossi" in text


class TestStep:
    """Energies, lengths and times of a continuous-loss step."""

    def test_energy_interaction(self, muon_utility):
        ei = 1e5
        for rnd in (0.01, 0.5, 0.99):
            ef = muon_utility.energy_interaction(ei, rnd)
            assert muon_utility.lower_lim <= ef < ei

    def test_energy_interaction_is_monotone_in_rnd(self, muon_utility):
        # a smaller draw means a longer free path
        near = muon_utility.energy_interaction(1e5, 0.9)
        far = muon_utility.energy_interaction(1e5, 0.1)
        assert far < near

    def test_interaction_rnd_must_be_positive(self, muon_utility):
        with pytest.raises(InvariantViolation):
            muon_utility.energy_interaction(1e5, 0.0)
        with pytest.raises(InvariantViolation):
            muon_utility.energy_interaction(1e5, 1.5)

    def test_energy_decay(self, muon_utility):
        ef = muon_utility.energy_decay(1e5, 0.5)
        assert muon_utility.lower_lim <= ef <= 1e5

    def test_stable_particle_never_decays(self, electron_utility):
        assert electron_utility.energy_decay(1e5, 0.5) == electron_utility.lower_lim

    def test_length_continuous(self, muon_utility):
        distance = muon_utility.length_continuous(1e5, 9e4)
        average_loss = 0.5 * (muon_utility.dedx(1e5) + muon_utility.dedx(9e4))
        assert distance == pytest.approx(1e4 / average_loss, rel=1e-2)
        assert muon_utility.length_continuous(1e5, 1e5) == 0.0

    def test_length_of_interaction_step(self, muon_utility):
        ei = 1e5
        ef = muon_utility.energy_interaction(ei, 0.5)
        assert muon_utility.length_continuous(ei, ef) > 0

    def test_exact_time_of_relativistic_muon(self, muon_utility):
        distance = muon_utility.length_continuous(1e5, 9e4)
        elapsed = muon_utility.time_elapsed(1e5, 9e4, distance)
        assert elapsed == pytest.approx(distance / const.SPEED, rel=1e-3)

    def test_approximate_time(self, muon, water, cuts, muon_utility,
                              interpolation_def, table_cache):
        utility = PropagationUtility(muon, water, cuts, muon_utility.cross_sections,
                                     interpolation_def, table_cache, lower_lim=1e3,
                                     exact_time=False)
        assert utility.time_elapsed(1e5, 9e4, 300.0) == 300.0 / const.SPEED

    def test_integral_strategy(self, electron_utility):
        distance = electron_utility.length_continuous(1e5, 9e4)
        expected = 1e4 / electron_utility.dedx(9.5e4)
        assert distance == pytest.approx(expected, rel=1e-2)


class TestRandomization:
    """Gaussian smearing of the continuous loss."""

    def test_median_is_unchanged(self, muon_utility):
        assert muon_utility.energy_randomize(1e5, 9e4, 0.5) == pytest.approx(9e4, rel=1e-6)

    def test_stays_within_bounds(self, muon_utility):
        for rnd in (0.0, 1e-9, 0.3, 0.7, 1.0 - 1e-9, 1.0):
            energy = muon_utility.energy_randomize(1e5, 9e4, rnd)
            assert muon_utility.lower_lim <= energy <= 1e5

    def test_monotone_in_rnd(self, muon_utility):
        low = muon_utility.energy_randomize(1e5, 9e4, 0.1)
        high = muon_utility.energy_randomize(1e5, 9e4, 0.9)
        assert low < 9e4 < high

    def test_invalid_rnd(self, muon_utility):
        with pytest.raises(InvariantViolation):
            muon_utility.energy_randomize(1e5, 9e4, 1.5)


class TestStochasticLoss:
    """Interaction selection and sampled losses."""

    def test_mean_free_path(self, muon_utility):
        assert muon_utility.mean_free_path(1e5) == pytest.approx(1 / muon_utility.dndx(1e5))

    def test_sample_interaction(self, muon_utility):
        first = muon_utility.sample_interaction(1e5, 0.0)
        last = muon_utility.sample_interaction(1e5, 1.0)
        assert first is muon_utility.cross_sections[0]
        assert last is muon_utility.cross_sections[-1]

    @pytest.mark.parametrize("rnd3", [0.05, 0.5, 0.95])
    def test_energy_stochasticloss(self, muon_utility, rnd3):
        energy = 1e5
        kind, loss = muon_utility.energy_stochasticloss(energy, 0.5, 0.5, rnd3)
        assert kind in ("ionization", "bremsstrahlung", "epair", "photonuclear")
        assert 0 < loss < energy
        assert loss >= muon_utility.cuts.cut(energy) * energy * (1 - 1e-9)


class TestScatter:
    """Deflection along a step."""

    def test_directions_are_unit_vectors(self, muon_utility):
        ei, ef = 1e5, 9.9e4
        distance = muon_utility.length_continuous(ei, ef)
        direction = np.array([0.0, 0.0, 1.0])
        offset, new_direction = muon_utility.scatter(distance, ei, ef, direction,
                                                     [0.2, 0.7, 0.4, 0.9])
        assert np.linalg.norm(offset) == pytest.approx(1.0)
        assert np.linalg.norm(new_direction) == pytest.approx(1.0)
        assert 0 < np.arccos(min(new_direction @ direction, 1.0)) < 0.1

    def test_median_draws_keep_direction(self, muon_utility):
        direction = np.array([0.6, 0.0, 0.8])
        offset, new_direction = muon_utility.scatter(100.0, 1e5, 9.9e4, direction,
                                                     [0.5, 0.5, 0.5, 0.5])
        np.testing.assert_allclose(offset, direction, atol=1e-12)
        np.testing.assert_allclose(new_direction, direction, atol=1e-12)
