"""
Photon conversion into an electron-positron pair.

v is the fraction of the photon energy carried by the electron. The
whole spectrum is stochastic: the photon disappears in the interaction.
Emission angles of the pair are provided by separately registered
photo-angle distributions.

References:
    - Tsai, Rev. Mod. Phys. 46, 815 (1974)
    - Nelson, Hirayama, Rogers, The EGS4 Code System, SLAC-265 (1985)
"""

from enum import Enum
from typing import Tuple

import numpy as np

from eloss_mc.core import constants as const
from eloss_mc.core.medium import Medium
from eloss_mc.core.particle import ParticleDefinition
from eloss_mc.physics.bremsstrahlung import LIGHT_ELEMENT_LOGS, coulomb_correction
from eloss_mc.physics.parametrization import Parametrization, as_array


class PhotoPairParametrization(Enum):
    TSAI = "photopairtsai"


class PhotoAngleDistribution(Enum):
    NO_DEFLECTION = "photoanglenodeflection"
    EGS = "photoangleegs"


class PhotoPairTsai(Parametrization):
    """
    Complete screening pair production cross section.

    Parameters:
        photoangle: Registered name of the pair angle distribution
    """

    name = PhotoPairParametrization.TSAI.value
    family = "photopair"

    def __init__(self, particle, medium, cuts, multiplier=1.0,
                 photoangle=PhotoAngleDistribution.NO_DEFLECTION.value):
        super().__init__(particle, medium, cuts, multiplier)
        self.photoangle = getattr(photoangle, "value", str(photoangle)).lower()

    def options(self):
        return {"photoangle": self.photoangle}

    @property
    def lower_energy_lim(self):
        return max(self.particle.low, 2 * const.ME)

    def _limits(self, energy):
        v_min = const.ME / energy
        v_max = 1 - const.ME / energy
        return v_min, v_min, v_max

    def differential_cross_section(self, energy, v):
        v = as_array(v)
        z = self.current_component.atomic_number

        l_rad = np.log(184.15 * z ** (-1 / 3))
        l_rad_prime = np.log(1194 * z ** (-2 / 3))
        if z in LIGHT_ELEMENT_LOGS:
            l_rad, l_rad_prime = LIGHT_ELEMENT_LOGS[z]

        asymmetry = 1 - 4 / 3 * v * (1 - v)
        term = asymmetry * (z * z * (l_rad - coulomb_correction(z)) + z * l_rad_prime) \
            + v * (1 - v) * (z * z + z) / 9
        return 4 * const.ALPHA * const.RE ** 2 * np.maximum(term, 0.0)


class PhotoAngleNoDeflection:
    """Electron and positron keep the photon direction."""

    name = PhotoAngleDistribution.NO_DEFLECTION.value

    def __init__(self, particle: ParticleDefinition, medium: Medium):
        self.particle = particle
        self.medium = medium

    def sample_angles(self, energy: float, v: float,
                      rnd: Tuple[float, float, float]) -> Tuple[float, float, float]:
        """
        Polar angles of electron and positron and the common azimuth.

        Parameters:
            energy: Photon energy [MeV]
            v: Electron energy fraction
            rnd: Three uniform draws

        Returns:
            (theta_electron, theta_positron, phi) [rad]
        """
        return 0.0, 0.0, 0.0


class PhotoAngleEGS(PhotoAngleNoDeflection):
    """Fixed characteristic angle me/E of each lepton, uniform azimuth."""

    name = PhotoAngleDistribution.EGS.value

    def sample_angles(self, energy, v, rnd):
        theta_electron = const.ME / (v * energy)
        theta_positron = const.ME / ((1 - v) * energy)
        phi = 2 * np.pi * rnd[2]
        return float(theta_electron), float(theta_positron), float(phi)
