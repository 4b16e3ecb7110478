"""
Direct electron-positron pair production.

The differential cross section in v is an integral over the pair energy
asymmetry ρ, done with fixed Gauss-Legendre points so that whole arrays
of v are evaluated at once.

References:
    - Kokoulin, Petrukhin, Proc. 12th ICRC 6, 2436 (1971)
    - Kelner, Kokoulin, Petrukhin, Phys. Atom. Nucl. 62, 1894 (1999)
"""

from enum import Enum

import numpy as np

from eloss_mc.core import constants as const
from eloss_mc.numerics.integral import gauss_legendre
from eloss_mc.physics.parametrization import Parametrization, as_array

# Gauss-Legendre points of the asymmetry integral
RHO_POINTS = 16


class EpairParametrization(Enum):
    KOKOULIN_PETRUKHIN = "epairkokoulinpetrukhin"


class EpairKokoulinPetrukhin(Parametrization):
    """
    Leading-logarithm pair production cross section.

    dσ/dv = 2/(3π) Z(Z+1) (α re)² z² (1-v)/v · 2∫_0^ρmax (1-ρ²) L(v, ρ) dρ

    with the screened logarithm L = ln[S² (1+ξ) / (S² + ξ)], S = 183 Z^-1/3
    and ξ = (M v)² (1-ρ²) / (4 me² (1-v)).
    """

    name = EpairParametrization.KOKOULIN_PETRUKHIN.value
    family = "epair"

    def _limits(self, energy):
        mass = self.particle.mass
        z = self.current_component.atomic_number
        v_min = 4 * const.ME / energy
        v_max = 1 - 0.75 * const.SQRTE * mass / energy * z ** (1 / 3)
        return v_min, self.cuts.cut(energy), v_max

    def rho_max(self, energy, v):
        v = as_array(v)
        mass = self.particle.mass
        kinematic = 1 - 6 * mass * mass / (energy * energy * (1 - v))
        threshold = 1 - 4 * const.ME / (energy * v)
        rho = kinematic * np.sqrt(np.clip(threshold, 0.0, None))
        return np.clip(rho, 0.0, 1.0)

    def differential_cross_section(self, energy, v):
        v = as_array(v)
        mass = self.particle.mass
        z = self.current_component.atomic_number
        screening2 = (183 * z ** (-1 / 3)) ** 2

        rho_max = self.rho_max(energy, v)
        nodes, weights = gauss_legendre(RHO_POINTS)
        rho = rho_max[..., None] * 0.5 * (nodes + 1)
        one_minus_rho2 = 1 - rho * rho

        xi = (mass * v[..., None]) ** 2 * one_minus_rho2 \
            / (4 * const.ME ** 2 * (1 - v[..., None]))
        log_term = np.log(screening2 * (1 + xi) / (screening2 + xi))
        inner = 0.5 * rho_max * (weights * one_minus_rho2 * log_term).sum(axis=-1)

        prefactor = 2 / (3 * np.pi) * z * (z + 1) \
            * (const.ALPHA * const.RE * self.particle.charge) ** 2
        return prefactor * (1 - v) / v * 2 * inner
