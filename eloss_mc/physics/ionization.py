"""
Ionization of heavy charged particles on atomic electrons.

Energy transfers below v_min = I/E are not resolved; the transfer to a
free electron is bounded by the kinematic maximum of a two-body
collision.

References:
    - Rossi, High Energy Particles (1952)
    - PDG Review of Particle Physics (Passage of particles through matter)
"""

from enum import Enum

import numpy as np

from eloss_mc.core import constants as const
from eloss_mc.physics.parametrization import Parametrization, as_array


class IonizationParametrization(Enum):
    BETHE_BLOCH_ROSSI = "ionizbetheblochrossi"


def max_energy_transfer(energy: float, mass: float) -> float:
    """Largest v transferable to a free electron at rest."""
    gamma = energy / mass
    ratio = const.ME / mass
    v_max = 2 * const.ME * (gamma * gamma - 1) \
        / ((1 + 2 * gamma * ratio + ratio * ratio) * energy)
    return min(v_max, 1 - mass / energy)


class IonizBetheBlochRossi(Parametrization):
    """
    Knock-on electron spectrum with the spin-1/2 term.

    dσ/dv = 2π re² me Z z² / (β² E v²) [1 - β² v / v_max + v² / 2]

    The per-atom cross section counts all Z electrons of the component.
    """

    name = IonizationParametrization.BETHE_BLOCH_ROSSI.value
    family = "ionization"

    def _limits(self, energy):
        mass = self.particle.mass
        if energy <= mass:
            return 0.0, 0.0, 0.0
        v_min = self.medium.ionization_potential_MeV / energy
        v_max = max_energy_transfer(energy, mass)
        return v_min, self.cuts.cut(energy), v_max

    def differential_cross_section(self, energy, v):
        v = as_array(v)
        v_max = self.integral_limits(energy).v_max
        if v_max <= 0:
            return np.zeros_like(v)

        beta2 = self.particle.beta(energy) ** 2
        z = self.current_component.atomic_number
        charge2 = self.particle.charge ** 2

        bracket = 1 - beta2 * v / v_max + 0.5 * v * v
        prefactor = 2 * np.pi * const.RE ** 2 * const.ME * z * charge2 \
            / (beta2 * energy)
        return prefactor * np.maximum(bracket, 0.0) / (v * v)
