"""Tests for the parametrization registries."""

import numpy as np
import pytest

from eloss_mc.core import constants as const
from eloss_mc.core.config import ProcessDefinition
from eloss_mc.core.errors import ConfigurationError
from eloss_mc.physics.bremsstrahlung import BremsParametrization, BremsPetrukhinShestakov
from eloss_mc.physics.crosssection import CrossSectionIntegral, CrossSectionInterpolant
from eloss_mc.physics.factory import ParametrizationRegistry, Registries, build_registries
from eloss_mc.physics.ionization import IonizationParametrization
from eloss_mc.physics.photonuclear import PhotonuclearParametrization, PhotoZeus
from eloss_mc.physics.photopair import PhotoAngleEGS, PhotoAngleNoDeflection


class TestLookup:
    """Name and enum lookup."""

    @pytest.mark.parametrize("name", [
        "BremsPetrukhinShestakov",
        "bremspetrukhinshestakov",
        "BREMSPETRUKHINSHESTAKOV",
    ])
    def test_lookup_is_case_insensitive(self, registries, name):
        assert registries.bremsstrahlung.get_enum(name) is \
            BremsParametrization.PETRUKHIN_SHESTAKOV

    def test_miss_raises(self, registries):
        with pytest.raises(ConfigurationError, match="not registered"):
            registries.bremsstrahlung.get_enum("BremsKelnerKokoulinPetrukhin")

    def test_enum_of_other_family_raises(self, registries):
        with pytest.raises(ConfigurationError):
            registries.bremsstrahlung.get_enum(
                IonizationParametrization.BETHE_BLOCH_ROSSI)

    @pytest.mark.parametrize("family", Registries.FAMILIES)
    def test_name_enum_round_trip(self, registries, family):
        registry = registries.family(family)
        assert registry.names()
        for name in registry.names():
            member = registry.get_enum(name)
            assert registry.get_name(member) == name
            assert member.value == name.lower()

    def test_contains(self, registries):
        assert "photozeus" in registries.photonuclear
        assert PhotonuclearParametrization.KOKOULIN in registries.photonuclear
        assert "PhotoZeus" not in registries.bremsstrahlung

    def test_family_lookup(self, registries):
        assert registries.family("Bremsstrahlung") is registries.bremsstrahlung
        with pytest.raises(ConfigurationError, match="Unknown process family"):
            registries.family("annihilation")

    def test_register_rejects_foreign_enum(self):
        registry = ParametrizationRegistry("bremsstrahlung", BremsParametrization)
        with pytest.raises(ConfigurationError):
            registry.register("IonizBetheBlochRossi",
                              IonizationParametrization.BETHE_BLOCH_ROSSI,
                              BremsPetrukhinShestakov)

    def test_registries_are_independent(self):
        first, second = build_registries(), build_registries()
        assert first is not second
        assert first.ionization is not second.ionization
        assert first.ionization.names() == second.ionization.names()


class TestCreation:
    """Construction of parametrizations and cross sections."""

    def test_create_parametrization_by_enum(self, registries, muon, water, cuts):
        param = registries.photonuclear.create_parametrization(
            PhotonuclearParametrization.ZEUS, muon, water, cuts, 0.5, shadowing=False)
        assert isinstance(param, PhotoZeus)
        assert param.multiplier == 0.5
        assert param.shadowing is False

    def test_unknown_option_raises(self, registries, muon, water, cuts):
        with pytest.raises(ConfigurationError, match="Invalid options"):
            registries.ionization.create_parametrization(
                "IonizBetheBlochRossi", muon, water, cuts, colour="blue")

    def test_strategy_follows_interpolation_def(self, registries, muon, water, cuts,
                                                interpolation_def, table_cache):
        integral = registries.ionization.create("IonizBetheBlochRossi", muon, water, cuts)
        interpolant = registries.ionization.create(
            "IonizBetheBlochRossi", muon, water, cuts,
            interpolation_def=interpolation_def, cache=table_cache)
        assert isinstance(integral, CrossSectionIntegral)
        assert isinstance(interpolant, CrossSectionInterpolant)

    def test_create_from_definition(self, registries, muon, water, cuts):
        definition = ProcessDefinition("Photonuclear", "photokokoulin", multiplier=2.0,
                                       options={"shadowing": False})
        cross = registries.create_from_definition(muon, water, cuts, definition)
        assert cross.parametrization.name == "photokokoulin"
        assert cross.multiplier == 2.0
        assert cross.parametrization.options() == {"shadowing": False}

    def test_definition_for_missing_parametrization(self, registries, muon, water, cuts):
        definition = ProcessDefinition("epair", "EpairSandrock")
        with pytest.raises(ConfigurationError):
            registries.create_from_definition(muon, water, cuts, definition)

    def test_unknown_photo_angle_raises(self, registries, photon, water, cuts):
        definition = ProcessDefinition("photopair", "PhotoPairTsai",
                                       options={"photoangle": "PhotoAngleSauter"})
        with pytest.raises(ConfigurationError, match="not registered"):
            registries.create_from_definition(photon, water, cuts, definition)


class TestPhotoAngles:
    """Pair emission angle distributions."""

    def test_default_distribution(self, registries, photon, water, cuts):
        param = registries.photopair.create_parametrization("PhotoPairTsai", photon,
                                                            water, cuts)
        distribution = registries.create_photo_angle(param)
        assert isinstance(distribution, PhotoAngleNoDeflection)
        assert distribution.sample_angles(1e3, 0.3, (0.1, 0.2, 0.3)) == (0.0, 0.0, 0.0)

    def test_egs_distribution(self, registries, photon, water, cuts):
        param = registries.photopair.create_parametrization(
            "PhotoPairTsai", photon, water, cuts, photoangle="photoangleegs")
        distribution = registries.create_photo_angle(param)
        assert isinstance(distribution, PhotoAngleEGS)

        theta_electron, theta_positron, phi = distribution.sample_angles(
            1e3, 0.25, (0.1, 0.2, 0.25))
        assert theta_electron == pytest.approx(const.ME / 250.0)
        assert theta_positron == pytest.approx(const.ME / 750.0)
        assert phi == pytest.approx(np.pi / 2)
