"""Core module: particles, media, energy cuts, configuration and errors."""

from eloss_mc.core.errors import (
    ElossError,
    ConfigurationError,
    NumericError,
    InvariantViolation,
)
from eloss_mc.core.particle import ParticleDefinition, ParticleType, get_particle_def
from eloss_mc.core.medium import Component, Medium, get_medium
from eloss_mc.core.cuts import EnergyCutSettings
from eloss_mc.core.config import InterpolationDef, IntegrationSettings

__all__ = [
    "ElossError",
    "ConfigurationError",
    "NumericError",
    "InvariantViolation",
    "ParticleDefinition",
    "ParticleType",
    "get_particle_def",
    "Component",
    "Medium",
    "get_medium",
    "EnergyCutSettings",
    "InterpolationDef",
    "IntegrationSettings",
]
