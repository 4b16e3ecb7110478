"""Tests for core modules: particles, media, cuts, configuration, errors."""

import logging

import numpy as np
import pytest
from numpy.testing import assert_allclose

from eloss_mc.core import constants as const
from eloss_mc.core.config import (
    InterpolationDef,
    ProcessDefinition,
    load_config,
    load_process_definitions,
    save_config,
)
from eloss_mc.core.cuts import EnergyCutSettings
from eloss_mc.core.errors import ConfigurationError, ElossError, NumericError, log_fatal
from eloss_mc.core.medium import Component, Medium, get_medium
from eloss_mc.core.particle import MU_MINUS, TAU_PLUS, get_particle_def
from eloss_mc.physics.photonuclear import PhotonuclearParametrization


class TestEnergyCutSettings:
    """Tests for cut normalisation and validation."""

    def test_default_cut(self):
        cuts = EnergyCutSettings()
        assert cuts.ecut == 500.0
        assert cuts.vcut == 0.05
        assert cuts.cut(1e3) == pytest.approx(0.05)
        assert cuts.cut(1e5) == pytest.approx(0.005)

    def test_nonpositive_ecut_means_infinite(self):
        cuts = EnergyCutSettings(-1.0, 0.05)
        assert np.isinf(cuts.ecut)
        assert cuts.cut(1e9) == 0.05

    def test_out_of_range_vcut_means_one(self):
        cuts = EnergyCutSettings(500.0, 1.5)
        assert cuts.vcut == 1.0
        assert cuts.cut(100.0) == 1.0
        assert cuts.cut(1e3) == pytest.approx(0.5)

    def test_no_restriction_raises(self):
        """Infinite ecut together with vcut = 1 is not a cut."""
        with pytest.raises(ConfigurationError):
            EnergyCutSettings(-1.0, -1.0)
        with pytest.raises(ConfigurationError):
            EnergyCutSettings(0.0, 1.0)

    def test_nan_raises(self):
        with pytest.raises(ConfigurationError):
            EnergyCutSettings(float("nan"), 0.05)
        with pytest.raises(ConfigurationError):
            EnergyCutSettings(500.0, float("nan"))

    def test_cuts_are_values(self):
        assert EnergyCutSettings(500, 0.05) == EnergyCutSettings(500.0, 0.05)
        assert EnergyCutSettings(500, 0.05) != EnergyCutSettings(400, 0.05)


class TestParticles:
    """Tests for particle definitions."""

    def test_lookup_is_case_insensitive(self):
        assert get_particle_def("MuMinus") is MU_MINUS
        assert get_particle_def("mu-") is MU_MINUS
        assert get_particle_def("TAUPLUS") is TAU_PLUS

    def test_unknown_particle_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown particle"):
            get_particle_def("pion")

    def test_kinematics(self):
        energy = 2 * MU_MINUS.mass
        assert MU_MINUS.gamma(energy) == pytest.approx(2.0)
        assert MU_MINUS.beta(energy) == pytest.approx(np.sqrt(3) / 2)
        assert MU_MINUS.momentum(MU_MINUS.mass) == 0.0

    def test_stability(self):
        assert not MU_MINUS.is_stable
        assert get_particle_def("e-").is_stable

    def test_low_energy_above_mass(self):
        assert MU_MINUS.low > MU_MINUS.mass


class TestMedia:
    """Tests for media and their components."""

    def test_water_number_densities(self):
        water = get_medium("water")
        molecules = const.NA / (2 * 1.00794 + 15.9994)
        assert_allclose(water.number_densities, [2 * molecules, molecules])
        assert water.sum_charge == pytest.approx(10.0)

    def test_mass_fractions_sum_to_one(self):
        for name in ("water", "air", "standardrock"):
            assert get_medium(name).mass_fractions.sum() == pytest.approx(1.0)

    def test_lookup_is_case_insensitive(self):
        assert get_medium("Water") is get_medium("water")

    def test_unknown_medium_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown medium"):
            get_medium("unobtainium")

    def test_empty_medium_raises(self):
        with pytest.raises(ConfigurationError, match="no components"):
            Medium("nothing", 1.0, (), 75.0, 36.0)

    def test_invalid_density_raises(self):
        with pytest.raises(ConfigurationError):
            Medium("bad", 0.0, (Component("H", 1.0, 1.00794),), 20.0, 100.0)

    def test_water_and_ice_differ(self):
        assert get_medium("water") != get_medium("ice")


class TestInterpolationDef:
    """Tests for table settings."""

    def test_order_validation(self):
        with pytest.raises(ConfigurationError):
            InterpolationDef(order_of_interpolation=1)
        with pytest.raises(ConfigurationError):
            InterpolationDef(order_of_interpolation=5, nodes_cross_section=3)

    def test_unknown_key_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown interpolation"):
            InterpolationDef.from_dict({"nodes": 10})

    def test_storage_does_not_change_fingerprint(self):
        a = InterpolationDef(path_to_tables="/tmp/a")
        b = InterpolationDef(path_to_tables="/tmp/b", verbose=True)
        assert a.fingerprint_parts() == b.fingerprint_parts()
        assert a.fingerprint_parts() != InterpolationDef(nodes_propagate=500).fingerprint_parts()


class TestConfigFiles:
    """Tests for YAML process configuration."""

    def test_round_trip(self, tmp_path):
        path = tmp_path / "config.yaml"
        processes = [
            ProcessDefinition("ionization", "IonizBetheBlochRossi"),
            ProcessDefinition("photonuclear", PhotonuclearParametrization.ZEUS,
                              multiplier=0.5, options={"shadowing": False}),
        ]
        save_config(path, processes, InterpolationDef(nodes_propagate=300))

        loaded, interpolation_def = load_config(path)
        assert len(loaded) == 2
        assert loaded[0].parametrization == "IonizBetheBlochRossi"
        assert loaded[1].parametrization == "photozeus"
        assert loaded[1].multiplier == 0.5
        assert loaded[1].options == {"shadowing": False}
        assert interpolation_def.nodes_propagate == 300

    def test_missing_interpolation_selects_integration(self, tmp_path):
        path = tmp_path / "config.yaml"
        save_config(path, [ProcessDefinition("weak", "WeakCooperSarkarMertsch")])
        processes, interpolation_def = load_config(path)
        assert interpolation_def is None
        assert processes[0].family == "weak"

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_process_definitions(tmp_path / "missing.yaml")

    def test_missing_processes_raises(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("interpolation: {}\n")
        with pytest.raises(ConfigurationError, match="processes"):
            load_process_definitions(path)

    def test_incomplete_process_raises(self):
        with pytest.raises(ConfigurationError, match="missing key"):
            ProcessDefinition.from_dict({"family": "ionization"})


class TestErrors:
    """Tests for the exception taxonomy."""

    def test_log_fatal_logs_and_raises(self, caplog):
        logger = logging.getLogger("eloss_mc.test")
        with caplog.at_level(logging.CRITICAL, logger="eloss_mc.test"):
            with pytest.raises(NumericError, match="value 3"):
                log_fatal(logger, NumericError, "value %d", 3)
        assert "value 3" in caplog.text

    def test_hierarchy(self):
        assert issubclass(ConfigurationError, ElossError)
        assert issubclass(NumericError, ElossError)
