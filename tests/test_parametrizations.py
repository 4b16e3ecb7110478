"""Tests for the process parametrizations."""

import copy
import threading

import numpy as np
import pytest

from eloss_mc.core import constants as const
from eloss_mc.core.cuts import EnergyCutSettings
from eloss_mc.core.particle import MU_PLUS
from eloss_mc.physics.bremsstrahlung import coulomb_correction
from eloss_mc.physics.ionization import max_energy_transfer
from eloss_mc.physics.photonuclear import PhotoRealPhotonAssumption, shadowing

MUON_PROCESSES = [
    ("ionization", "IonizBetheBlochRossi"),
    ("bremsstrahlung", "BremsPetrukhinShestakov"),
    ("bremsstrahlung", "BremsCompleteScreening"),
    ("epair", "EpairKokoulinPetrukhin"),
    ("photonuclear", "PhotoBezrukovBugaev"),
    ("photonuclear", "PhotoKokoulin"),
    ("photonuclear", "PhotoZeus"),
    ("weak", "WeakCooperSarkarMertsch"),
]

ENERGIES = [1e3, 1e5, 1e8, 1e11]


def make_param(registries, family, name, particle, medium, cuts, **kwargs):
    return registries.family(family).create_parametrization(
        name, particle, medium, cuts, **kwargs)


def v_grid(limits, n=50):
    """Points inside [v_min, v_max], away from a zero lower edge."""
    lo = max(limits.v_min, limits.v_max * 1e-6)
    return np.geomspace(lo, limits.v_max * (1 - 1e-9), n)


class TestMuonParametrizations:
    """Invariants shared by every parametrization of a muon in water."""

    @pytest.mark.parametrize("family,name", MUON_PROCESSES)
    def test_limits_are_ordered(self, registries, muon, water, cuts, family, name):
        param = make_param(registries, family, name, muon, water, cuts)
        for energy in [param.lower_energy_lim] + ENERGIES:
            for index in range(len(water.components)):
                with param.component(index):
                    limits = param.integral_limits(energy)
                assert 0.0 <= limits.v_min <= limits.v_up <= limits.v_max <= 1.0

    @pytest.mark.parametrize("family,name", MUON_PROCESSES)
    def test_cross_section_is_non_negative(self, registries, muon, water, cuts,
                                           family, name):
        param = make_param(registries, family, name, muon, water, cuts)
        for energy in ENERGIES:
            for index in range(len(water.components)):
                with param.component(index):
                    limits = param.integral_limits(energy)
                    if limits.v_max <= limits.v_min:
                        continue
                    values = param.differential_cross_section(energy, v_grid(limits))
                assert np.all(np.isfinite(values))
                assert np.all(values >= 0)

    @pytest.mark.parametrize("family,name", MUON_PROCESSES)
    def test_vectorised_matches_scalar(self, registries, muon, water, cuts,
                                       family, name):
        param = make_param(registries, family, name, muon, water, cuts)
        energy = 1e6
        with param.component(1):
            v = v_grid(param.integral_limits(energy), 7)
            vector = param.differential_cross_section(energy, v)
            scalar = [float(param.differential_cross_section(energy, vi)) for vi in v]
        np.testing.assert_allclose(vector, scalar, rtol=1e-12)

    @pytest.mark.parametrize("family,name", MUON_PROCESSES)
    def test_copy_is_equal_and_independent(self, registries, muon, water, cuts,
                                           family, name):
        param = make_param(registries, family, name, muon, water, cuts)
        clone = param.copy()
        assert clone == param
        assert clone is not param
        assert hash(clone) == hash(param)
        assert copy.deepcopy(param) == param


class TestIdentity:
    """Fingerprints and equality."""

    def test_medium_changes_fingerprint(self, registries, muon, water, ice, cuts):
        in_water = make_param(registries, "epair", "EpairKokoulinPetrukhin",
                              muon, water, cuts)
        in_ice = make_param(registries, "epair", "EpairKokoulinPetrukhin",
                            muon, ice, cuts)
        assert in_water != in_ice
        assert in_water.fingerprint != in_ice.fingerprint

    def test_multiplier_excluded_from_table_fingerprint(self, registries, muon,
                                                        water, cuts):
        one = make_param(registries, "ionization", "IonizBetheBlochRossi",
                         muon, water, cuts)
        two = make_param(registries, "ionization", "IonizBetheBlochRossi",
                         muon, water, cuts, multiplier=2.0)
        assert one != two
        assert one.fingerprint != two.fingerprint
        assert one.table_fingerprint == two.table_fingerprint

    def test_options_change_fingerprint(self, registries, muon, water, cuts):
        shadowed = make_param(registries, "photonuclear", "PhotoZeus", muon, water, cuts)
        plain = make_param(registries, "photonuclear", "PhotoZeus", muon, water, cuts,
                           shadowing=False)
        assert shadowed.table_fingerprint != plain.table_fingerprint

    def test_fingerprint_is_stable(self, registries, muon, water, cuts):
        a = make_param(registries, "bremsstrahlung", "BremsCompleteScreening",
                       muon, water, cuts)
        b = make_param(registries, "bremsstrahlung", "bremscompletescreening",
                       muon, water, cuts)
        assert a.fingerprint == b.fingerprint

    def test_repr_names_configuration(self, registries, muon, water, cuts):
        param = make_param(registries, "photonuclear", "PhotoZeus", muon, water, cuts)
        text = repr(param)
        assert "PhotoZeus" in text
        assert "water" in text.lower()
        assert "shadowing=True" in text


class TestComponentSelection:
    """The component context manager."""

    def test_nested_selection_restores_previous(self, registries, muon, water, cuts):
        param = make_param(registries, "ionization", "IonizBetheBlochRossi",
                           muon, water, cuts)
        assert param.component_index == 0
        with param.component(1) as component:
            assert component.name == "O"
            assert param.component_index == 1
            with param.component(0):
                assert param.current_component.name == "H"
            assert param.component_index == 1
        assert param.component_index == 0

    def test_selection_restored_after_exception(self, registries, muon, water, cuts):
        param = make_param(registries, "ionization", "IonizBetheBlochRossi",
                           muon, water, cuts)
        with pytest.raises(RuntimeError):
            with param.component(1):
                raise RuntimeError("boom")
        assert param.component_index == 0

    def test_out_of_range_index(self, registries, muon, water, cuts):
        param = make_param(registries, "ionization", "IonizBetheBlochRossi",
                           muon, water, cuts)
        with pytest.raises(IndexError):
            with param.component(2):
                pass

    def test_selection_is_per_thread(self, registries, muon, water, cuts):
        param = make_param(registries, "ionization", "IonizBetheBlochRossi",
                           muon, water, cuts)
        seen = []
        with param.component(1):
            thread = threading.Thread(target=lambda: seen.append(param.component_index))
            thread.start()
            thread.join()
        assert seen == [0]

    def test_components_give_different_rates(self, registries, muon, water, cuts):
        param = make_param(registries, "bremsstrahlung", "BremsPetrukhinShestakov",
                           muon, water, cuts)
        with param.component(0):
            hydrogen = float(param.differential_cross_section(1e5, 0.1))
        with param.component(1):
            oxygen = float(param.differential_cross_section(1e5, 0.1))
        assert oxygen > hydrogen > 0


class TestProcessSpecifics:
    """Properties of individual processes."""

    def test_ionization_maximum_transfer(self, registries, muon, water, cuts):
        param = make_param(registries, "ionization", "IonizBetheBlochRossi",
                           muon, water, cuts)
        for energy in (1e3, 1e6):
            limits = param.integral_limits(energy)
            assert limits.v_max == pytest.approx(max_energy_transfer(energy, muon.mass))
            assert limits.v_min == pytest.approx(water.ionization_potential_MeV / energy)

    def test_ionization_below_mass_is_empty(self, registries, muon, water, cuts):
        param = make_param(registries, "ionization", "IonizBetheBlochRossi",
                           muon, water, cuts)
        assert param.integral_limits(muon.mass).v_max == 0.0

    def test_cut_sets_v_up(self, registries, muon, water, cuts):
        param = make_param(registries, "bremsstrahlung", "BremsPetrukhinShestakov",
                           muon, water, cuts)
        assert param.integral_limits(1e3).v_up == pytest.approx(0.05)
        assert param.integral_limits(1e6).v_up == pytest.approx(5e-4)

    @pytest.mark.parametrize("family,name", MUON_PROCESSES)
    def test_threshold_energies_inside_range(self, registries, muon, water, cuts,
                                             family, name):
        param = make_param(registries, family, name, muon, water, cuts)
        thresholds = param.threshold_energies(muon.low, 1e14)
        assert list(thresholds) == sorted(thresholds)
        assert all(muon.low < energy < 1e14 for energy in thresholds)
        assert cuts.ecut / cuts.vcut in thresholds

    def test_bremsstrahlung_opens_per_component(self, registries, muon, water, cuts):
        param = make_param(registries, "bremsstrahlung", "BremsPetrukhinShestakov",
                           muon, water, cuts)
        thresholds = param.threshold_energies(muon.low, 1e14)
        for index in range(len(water.components)):
            with param.component(index):
                assert any(
                    not param._open_ranges(energy * (1 - 1e-6))[1]
                    and param._open_ranges(energy * (1 + 1e-6))[1]
                    for energy in thresholds)

    def test_disabled_energy_cut_has_no_transition(self, registries, muon, water):
        param = make_param(registries, "ionization", "IonizBetheBlochRossi", muon, water,
                           EnergyCutSettings(-1.0, 0.05))
        thresholds = param.threshold_energies(muon.low, 1e14)
        assert len(thresholds) == 1
        assert param.integral_limits(thresholds[0] * 0.99).v_max == \
            param.integral_limits(thresholds[0] * 0.99).v_up

    def test_coulomb_correction_grows_with_charge(self):
        assert 0 < coulomb_correction(1) < coulomb_correction(8) < coulomb_correction(82)

    def test_real_photon_base_needs_cross_section(self, muon, water, cuts):
        with pytest.raises(TypeError):
            PhotoRealPhotonAssumption(muon, water, cuts)

    def test_shadowing_factor(self):
        assert float(shadowing(1e-3)) == pytest.approx(1.0, rel=1e-2)
        assert 0 < float(shadowing(5.0)) < 1

    def test_shadowing_skips_hydrogen(self, registries, muon, water, cuts):
        shadowed = make_param(registries, "photonuclear", "PhotoBezrukovBugaev",
                              muon, water, cuts)
        plain = make_param(registries, "photonuclear", "PhotoBezrukovBugaev",
                           muon, water, cuts, shadowing=False)
        energy, v = 1e7, 0.1
        with shadowed.component(0), plain.component(0):
            assert float(shadowed.differential_cross_section(energy, v)) == \
                pytest.approx(float(plain.differential_cross_section(energy, v)))
        with shadowed.component(1), plain.component(1):
            assert float(shadowed.differential_cross_section(energy, v)) != \
                pytest.approx(float(plain.differential_cross_section(energy, v)))

    def test_weak_depends_on_charge_sign(self, registries, muon, water, cuts):
        minus = make_param(registries, "weak", "WeakCooperSarkarMertsch",
                           muon, water, cuts)
        plus = make_param(registries, "weak", "WeakCooperSarkarMertsch",
                          MU_PLUS, water, cuts)
        v = np.array([0.1, 0.9])
        a = minus.differential_cross_section(1e6, v)
        b = plus.differential_cross_section(1e6, v)
        assert a[0] > a[1]
        assert not np.allclose(a, b)

    def test_weak_is_fully_stochastic(self, registries, muon, water, cuts):
        param = make_param(registries, "weak", "WeakCooperSarkarMertsch",
                           muon, water, cuts)
        assert tuple(param.integral_limits(1e6)) == (0.0, 0.0, 1.0)

    def test_photopair_threshold(self, registries, photon, water, cuts):
        param = make_param(registries, "photopair", "PhotoPairTsai", photon, water, cuts)
        assert param.lower_energy_lim == pytest.approx(2 * const.ME)
        limits = param.integral_limits(2 * const.ME)
        assert limits.v_min == pytest.approx(0.5)
        assert limits.v_max == pytest.approx(0.5)

    def test_photopair_is_symmetric(self, registries, photon, water, cuts):
        param = make_param(registries, "photopair", "PhotoPairTsai", photon, water, cuts)
        with param.component(1):
            values = param.differential_cross_section(1e4, np.array([0.2, 0.8]))
        assert values[0] == pytest.approx(values[1])

    def test_photopair_angle_option_normalised(self, registries, photon, water, cuts):
        param = make_param(registries, "photopair", "PhotoPairTsai", photon, water, cuts,
                           photoangle="PhotoAngleEGS")
        assert param.options() == {"photoangle": "photoangleegs"}
