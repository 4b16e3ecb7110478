"""Physics module: parametrizations, cross sections, registries and scattering."""

from eloss_mc.physics.parametrization import IntegralLimits, Parametrization
from eloss_mc.physics.crosssection import (
    CrossSection,
    CrossSectionIntegral,
    CrossSectionInterpolant,
)
from eloss_mc.physics.factory import (
    ParametrizationRegistry,
    Registries,
    build_registries,
)
from eloss_mc.physics.scattering import ScatteringHighland, rotate_direction

__all__ = [
    "IntegralLimits",
    "Parametrization",
    "CrossSection",
    "CrossSectionIntegral",
    "CrossSectionInterpolant",
    "ParametrizationRegistry",
    "Registries",
    "build_registries",
    "ScatteringHighland",
    "rotate_direction",
]
