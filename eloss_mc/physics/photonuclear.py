"""
Photonuclear interaction in the real photon assumption.

The virtual photon exchanged with the nucleus is treated as real, so the
cross section factorises into a flux and the photon-nucleon cross
section σ_γN(ν) at photon energy ν = vE. The parametrizations of this
module differ only in σ_γN.

References:
    - Bezrukov, Bugaev, Sov. J. Nucl. Phys. 33, 635 (1981)
    - Kokoulin, Nucl. Phys. B Proc. Suppl. 70, 475 (1999)
    - ZEUS Collaboration, Nucl. Phys. B 627, 3 (2002)
"""

from abc import abstractmethod
from enum import Enum

import numpy as np

from eloss_mc.core import constants as const
from eloss_mc.physics.parametrization import Parametrization, as_array

# Vector meson mass scales of the two-component model [GeV^2]
M1_SQUARED = 0.54
M2_SQUARED = 1.8


class PhotonuclearParametrization(Enum):
    BEZRUKOV_BUGAEV = "photobezrukovbugaev"
    KOKOULIN = "photokokoulin"
    ZEUS = "photozeus"


def sigma_bezrukov_bugaev(nu):
    """Photon-nucleon cross section [μb] at photon energy nu [GeV]."""
    return 114.3 + 1.647 * np.log(0.0213 * nu) ** 2


def sigma_kokoulin(nu):
    low = 96.1 + 82.0 / np.sqrt(np.maximum(nu, 1e-300))
    return np.where(nu <= 200.0, low, sigma_bezrukov_bugaev(nu))


def sigma_zeus(nu):
    s = 2 * const.MP * 1e-3 * nu
    return (0.0677 * s ** 0.0808 + 0.129 * s ** -0.4525) * 1e3


def shadowing(x):
    """Nuclear shadowing factor G(x)."""
    x = as_array(x)
    return 3 / x ** 3 * (0.5 * x * x - 1 + np.exp(-x) * (1 + x))


class PhotoRealPhotonAssumption(Parametrization):
    """
    Photonuclear cross section for a given σ_γN.

    Parameters:
        shadowing: Apply the nuclear shadowing factor (not for hydrogen)
    """

    family = "photonuclear"

    def __init__(self, particle, medium, cuts, multiplier=1.0, shadowing=True):
        super().__init__(particle, medium, cuts, multiplier)
        self.shadowing = bool(shadowing)

    def options(self):
        return {"shadowing": self.shadowing}

    @abstractmethod
    def photon_nucleon_cross_section(self, nu):
        """σ_γN [μb] at photon energy nu [GeV]."""

    def _limits(self, energy):
        mass = self.particle.mass
        v_min = (const.MPI + const.MPI ** 2 / (2 * const.MP)) / energy
        v_max = 1 - mass / energy
        return v_min, self.cuts.cut(energy), v_max

    def differential_cross_section(self, energy, v):
        v = as_array(v)
        component = self.current_component
        mass = self.particle.mass * 1e-3
        atomic_mass = component.atomic_mass

        nu = v * energy * 1e-3
        sigma = self.photon_nucleon_cross_section(nu)

        if self.shadowing and component.atomic_number != 1:
            g = shadowing(0.00282 * atomic_mass ** (1 / 3) * sigma)
        else:
            g = 1.0

        t = mass * mass * v * v / (1 - v)
        kappa = 1 - 2 / v + 2 / (v * v)

        aux = 0.75 * g * (kappa * np.log(1 + M1_SQUARED / t)
                          - kappa * M1_SQUARED / (M1_SQUARED + t)
                          - 2 * mass * mass / t)
        aux = aux + 0.25 * (kappa * np.log(1 + M2_SQUARED / t)
                            - 2 * mass * mass / t)
        aux = aux + mass * mass / (2 * t) * (
            0.75 * g * M1_SQUARED / (M1_SQUARED + t)
            + 0.25 * M2_SQUARED / t * np.log(1 + t / M2_SQUARED))

        result = const.ALPHA / (2 * np.pi) * atomic_mass * sigma * const.MICROBARN \
            * v * aux * self.particle.charge ** 2
        return np.maximum(result, 0.0)


class PhotoBezrukovBugaev(PhotoRealPhotonAssumption):
    name = PhotonuclearParametrization.BEZRUKOV_BUGAEV.value

    def photon_nucleon_cross_section(self, nu):
        return sigma_bezrukov_bugaev(nu)


class PhotoKokoulin(PhotoRealPhotonAssumption):
    """Kokoulin's low-energy σ_γN below 200 GeV, Bezrukov-Bugaev above."""

    name = PhotonuclearParametrization.KOKOULIN.value

    def photon_nucleon_cross_section(self, nu):
        return sigma_kokoulin(nu)


class PhotoZeus(PhotoRealPhotonAssumption):
    """σ_γN from the ZEUS fit in the photon-proton centre-of-mass energy."""

    name = PhotonuclearParametrization.ZEUS.value

    def photon_nucleon_cross_section(self, nu):
        return sigma_zeus(nu)
