"""
Bremsstrahlung in the field of the nucleus.

Both parametrizations share the kinematic limits: v_min = 0 and a v_max
where the minimal momentum transfer reaches the screening radius.

References:
    - Petrukhin, Shestakov, Can. J. Phys. 46, S377 (1968)
    - Tsai, Rev. Mod. Phys. 46, 815 (1974)
"""

from enum import Enum

import numpy as np

from eloss_mc.core import constants as const
from eloss_mc.physics.parametrization import Parametrization, as_array


class BremsParametrization(Enum):
    PETRUKHIN_SHESTAKOV = "bremspetrukhinshestakov"
    COMPLETE_SCREENING = "bremscompletescreening"


# Hartree-Fock (L_rad, L_rad') of the lightest elements
LIGHT_ELEMENT_LOGS = {
    1: (5.31, 6.144),
    2: (4.79, 5.621),
    3: (4.74, 5.805),
    4: (4.71, 5.924),
}


def coulomb_correction(z: float) -> float:
    """Bethe-Maximon Coulomb correction f(αZ)."""
    a2 = (const.ALPHA * z) ** 2
    return a2 * (1 / (1 + a2) + 0.20206 - 0.0369 * a2 + 0.0083 * a2 ** 2
                 - 0.002 * a2 ** 3)


class Bremsstrahlung(Parametrization):
    """Common limits and prefactor of the bremsstrahlung family."""

    family = "bremsstrahlung"

    def _limits(self, energy):
        mass = self.particle.mass
        z = self.current_component.atomic_number
        v_max = 1 - 0.75 * const.SQRTE * mass / energy * z ** (1 / 3)
        return 0.0, self.cuts.cut(energy), v_max

    def _prefactor(self) -> float:
        return 4 * const.ALPHA * self.particle.charge ** 4 \
            * (const.RE * const.ME / self.particle.mass) ** 2


class BremsPetrukhinShestakov(Bremsstrahlung):
    """Screened bremsstrahlung with the Petrukhin-Shestakov form factor."""

    name = BremsParametrization.PETRUKHIN_SHESTAKOV.value

    def differential_cross_section(self, energy, v):
        v = as_array(v)
        mass = self.particle.mass
        z = self.current_component.atomic_number

        delta = mass * mass * v / (2 * energy * (1 - v))
        screening = 189 * z ** (-1 / 3)
        numerator = screening * mass / const.ME
        if z <= 10:
            numerator *= 2 / 3 * z ** (-1 / 3)
        phi = np.log(numerator / (1 + delta * const.SQRTE * screening / const.ME))

        shape = 4 / 3 * (1 - v) + v * v
        return self._prefactor() * z * z * shape * np.maximum(phi, 0.0) / v


class BremsCompleteScreening(Bremsstrahlung):
    """Bremsstrahlung in the complete screening limit including atomic electrons."""

    name = BremsParametrization.COMPLETE_SCREENING.value

    def differential_cross_section(self, energy, v):
        v = as_array(v)
        z = self.current_component.atomic_number

        l_rad = np.log(184.15 * z ** (-1 / 3))
        l_rad_prime = np.log(1194 * z ** (-2 / 3))
        if z in LIGHT_ELEMENT_LOGS:
            l_rad, l_rad_prime = LIGHT_ELEMENT_LOGS[z]

        shape = 4 / 3 * (1 - v) + v * v
        term = shape * (z * z * (l_rad - coulomb_correction(z)) + z * l_rad_prime) \
            + (1 - v) * (z * z + z) / 9
        return self._prefactor() * np.maximum(term, 0.0) / v
