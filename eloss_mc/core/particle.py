"""
Particle definitions.

Immutable value objects describing the propagated particle. They are
referenced by parametrizations and utilities, never owned or mutated.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

import numpy as np

from eloss_mc.core import constants as const
from eloss_mc.core.errors import ConfigurationError, log_fatal

logger = logging.getLogger(__name__)


class ParticleType(Enum):
    """Particle species known to the engine."""
    MU_MINUS = "mu-"
    MU_PLUS = "mu+"
    TAU_MINUS = "tau-"
    TAU_PLUS = "tau+"
    E_MINUS = "e-"
    E_PLUS = "e+"
    GAMMA = "gamma"


@dataclass(frozen=True)
class ParticleDefinition:
    """
    Static properties of a particle species.

    Attributes:
        name: Display name
        particle_type: Species
        mass: Rest mass [MeV]
        charge: Charge in units of the elementary charge
        lifetime: Mean lifetime [s], negative for stable particles
        low: Lowest total energy that is propagated [MeV]
    """
    name: str
    particle_type: ParticleType
    mass: float
    charge: float
    lifetime: float = -1.0
    low: float = field(default=-1.0)

    def __post_init__(self):
        if self.mass < 0:
            log_fatal(logger, ConfigurationError,
                      "Particle %s has negative mass %g", self.name, self.mass)
        if self.low < self.mass:
            object.__setattr__(self, "low", self.mass)

    @property
    def is_stable(self) -> bool:
        return self.lifetime < 0 or not np.isfinite(self.lifetime)

    def momentum(self, energy: float) -> float:
        """Momentum [MeV] for a total energy [MeV]."""
        return np.sqrt(max((energy - self.mass) * (energy + self.mass), 0.0))

    def beta(self, energy: float) -> float:
        """Velocity v/c for a total energy [MeV]."""
        return self.momentum(energy) / energy

    def gamma(self, energy: float) -> float:
        """Lorentz factor for a total energy [MeV]."""
        return energy / self.mass

    def fingerprint_parts(self) -> Tuple:
        return ("particle", self.particle_type.value, self.mass, self.charge,
                self.lifetime, self.low)


# Standard definitions track charged particles down to 1.1 times their
# mass, where continuous losses are still positive
LOW_ENERGY_FACTOR = 1.1

MU_MINUS = ParticleDefinition("MuMinus", ParticleType.MU_MINUS, const.MMU, -1.0,
                              const.LIFETIME_MU, LOW_ENERGY_FACTOR * const.MMU)
MU_PLUS = ParticleDefinition("MuPlus", ParticleType.MU_PLUS, const.MMU, 1.0,
                             const.LIFETIME_MU, LOW_ENERGY_FACTOR * const.MMU)
TAU_MINUS = ParticleDefinition("TauMinus", ParticleType.TAU_MINUS, const.MTAU, -1.0,
                               const.LIFETIME_TAU, LOW_ENERGY_FACTOR * const.MTAU)
TAU_PLUS = ParticleDefinition("TauPlus", ParticleType.TAU_PLUS, const.MTAU, 1.0,
                              const.LIFETIME_TAU, LOW_ENERGY_FACTOR * const.MTAU)
E_MINUS = ParticleDefinition("EMinus", ParticleType.E_MINUS, const.ME, -1.0,
                             low=LOW_ENERGY_FACTOR * const.ME)
E_PLUS = ParticleDefinition("EPlus", ParticleType.E_PLUS, const.ME, 1.0,
                            low=LOW_ENERGY_FACTOR * const.ME)
GAMMA = ParticleDefinition("Gamma", ParticleType.GAMMA, 0.0, 0.0,
                           low=2 * const.ME)

PARTICLES = {
    'mu-': MU_MINUS,
    'muminus': MU_MINUS,
    'mu+': MU_PLUS,
    'muplus': MU_PLUS,
    'tau-': TAU_MINUS,
    'tauminus': TAU_MINUS,
    'tau+': TAU_PLUS,
    'tauplus': TAU_PLUS,
    'e-': E_MINUS,
    'eminus': E_MINUS,
    'e+': E_PLUS,
    'eplus': E_PLUS,
    'gamma': GAMMA,
}


def get_particle_def(name: str) -> ParticleDefinition:
    """
    Look up a standard particle definition.

    Parameters:
        name: 'MuMinus', 'mu-', 'TauPlus', 'gamma', ... (case-insensitive)

    Returns:
        ParticleDefinition
    """
    particle = PARTICLES.get(name.lower())
    if particle is None:
        log_fatal(logger, ConfigurationError,
                  "Unknown particle '%s'. Available: %s", name, sorted(PARTICLES))
    return particle
