"""Pytest configuration and shared fixtures for eloss_mc tests."""

import pytest

from eloss_mc.core.config import InterpolationDef, ProcessDefinition
from eloss_mc.core.cuts import EnergyCutSettings
from eloss_mc.core.medium import get_medium
from eloss_mc.core.particle import GAMMA, MU_MINUS
from eloss_mc.numerics.cache import TableCache
from eloss_mc.physics.factory import build_registries
from eloss_mc.transport.propagation import PropagationUtility


# Fixtures for core objects


@pytest.fixture(scope="session")
def muon():
    """Negative muon."""
    return MU_MINUS


@pytest.fixture(scope="session")
def photon():
    return GAMMA


@pytest.fixture(scope="session")
def water():
    return get_medium("water")


@pytest.fixture(scope="session")
def ice():
    return get_medium("ice")


@pytest.fixture(scope="session")
def cuts():
    """Standard cuts: ecut=500 MeV, vcut=0.05."""
    return EnergyCutSettings(500.0, 0.05)


# Fixtures for factories and tables


@pytest.fixture(scope="session")
def registries():
    return build_registries()


@pytest.fixture(scope="session")
def interpolation_def():
    """Default table settings, kept in memory."""
    return InterpolationDef()


@pytest.fixture(scope="session")
def table_cache():
    """In-memory cache shared by all tests of the session."""
    return TableCache()


@pytest.fixture
def table_dir(tmp_path):
    """Temporary directory for persisted tables."""
    path = tmp_path / "tables"
    path.mkdir()
    return path


@pytest.fixture(scope="session")
def muon_processes():
    """Continuous-loss processes of a muon."""
    return [
        ProcessDefinition("ionization", "IonizBetheBlochRossi"),
        ProcessDefinition("bremsstrahlung", "BremsPetrukhinShestakov"),
        ProcessDefinition("epair", "EpairKokoulinPetrukhin"),
        ProcessDefinition("photonuclear", "PhotoBezrukovBugaev"),
    ]


@pytest.fixture(scope="session")
def muon_utility(muon, water, cuts, muon_processes, registries,
                 interpolation_def, table_cache):
    """Interpolated propagation utility of a muon in water above 1 GeV."""
    return PropagationUtility.from_definitions(
        muon, water, cuts, muon_processes, registries,
        interpolation_def=interpolation_def, cache=table_cache, lower_lim=1e3)
