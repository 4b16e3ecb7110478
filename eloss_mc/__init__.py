"""
ELOSS_MC: Charged-particle energy loss for Monte Carlo propagation

Differential cross sections of the energy-loss processes of charged
leptons in matter, their integrated and tabulated macroscopic rates, and
the propagation utilities a Monte Carlo stepper needs between two
stochastic interactions.

Modules:
    core: Particles, media, energy cuts, configuration, errors
    numerics: Quadrature, interpolation tables, fingerprints, table cache
    physics: Parametrizations, cross sections, registries, scattering
    transport: Propagation utility integrals
"""

import logging

__version__ = "0.1.0"

from eloss_mc.core.cuts import EnergyCutSettings
from eloss_mc.core.config import InterpolationDef, ProcessDefinition
from eloss_mc.core.errors import (
    ElossError,
    ConfigurationError,
    NumericError,
    InvariantViolation,
)
from eloss_mc.core.medium import get_medium
from eloss_mc.core.particle import get_particle_def
from eloss_mc.physics.factory import build_registries
from eloss_mc.transport.propagation import PropagationUtility

__all__ = [
    "EnergyCutSettings",
    "InterpolationDef",
    "ProcessDefinition",
    "ElossError",
    "ConfigurationError",
    "NumericError",
    "InvariantViolation",
    "get_medium",
    "get_particle_def",
    "build_registries",
    "PropagationUtility",
    "configure_logging",
]


def configure_logging(level=logging.INFO) -> None:
    """Attach a stream handler to the package logger (for scripts)."""
    logger = logging.getLogger("eloss_mc")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(level)
