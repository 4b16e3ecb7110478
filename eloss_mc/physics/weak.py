"""
Charged-current weak interaction of a charged lepton with a nucleon.

The lepton converts into a neutrino and transfers the fraction v of its
energy to the hadronic system; the whole spectrum is stochastic and the
process has no continuous energy loss.

References:
    - Cooper-Sarkar, Mertsch, Sarkar, JHEP 08, 042 (2011)
"""

from enum import Enum

import numpy as np

from eloss_mc.physics.parametrization import Parametrization, as_array

# Total charged-current cross section per nucleon: slope at low energy
# [cm^2/GeV] and the energy scale of the high-energy flattening [GeV]
SIGMA_SLOPE = 0.677e-38
FLATTENING_SCALE = 3500.0
FLATTENING_INDEX = 0.637

# Relative weight of the (1-v)^2 helicity term
ANTIQUARK_FRACTION = 0.2


class WeakParametrization(Enum):
    COOPER_SARKAR_MERTSCH = "weakcoopersarkarmertsch"


def charged_current_cross_section(energy_gev):
    """σ_CC per nucleon [cm^2] at lepton energy [GeV]."""
    return SIGMA_SLOPE * energy_gev \
        / (1 + (energy_gev / FLATTENING_SCALE) ** FLATTENING_INDEX)


class WeakCooperSarkarMertsch(Parametrization):
    """
    Smooth approximation of the CSMS charged-current cross section.

    dσ/dv = A σ_CC(E) (a + b (1-v)²) / (a + b/3), with the quark and
    antiquark weights a, b swapped for positive leptons.
    """

    name = WeakParametrization.COOPER_SARKAR_MERTSCH.value
    family = "weak"

    def _limits(self, energy):
        return 0.0, 0.0, 1.0

    def differential_cross_section(self, energy, v):
        v = as_array(v)
        quark, antiquark = 1.0, ANTIQUARK_FRACTION
        if self.particle.charge > 0:
            quark, antiquark = antiquark, quark

        shape = (quark + antiquark * (1 - v) ** 2) / (quark + antiquark / 3)
        sigma = charged_current_cross_section(energy * 1e-3)
        return self.current_component.atomic_mass * sigma * shape
