"""
Physical constants.

Energies in MeV, lengths in cm, times in s, cross sections in cm^2.
Values from the PDG Review of Particle Physics.
"""

import numpy as np

ME = 0.5109989461            # electron mass [MeV]
MMU = 105.6583745            # muon mass [MeV]
MTAU = 1776.86               # tau mass [MeV]
MP = 938.272081              # proton mass [MeV]
MPI = 139.57061              # charged pion mass [MeV]

RE = 2.8179403227e-13        # classical electron radius [cm]
ALPHA = 1.0 / 137.035999139  # fine structure constant
NA = 6.022140857e23          # Avogadro [1/mol]
SPEED = 2.99792458e10        # speed of light [cm/s]
SQRTE = np.sqrt(np.e)

LIFETIME_MU = 2.1969811e-6   # [s]
LIFETIME_TAU = 290.3e-15     # [s]

MICROBARN = 1e-30            # [cm^2]

# Relative precision of quadrature and the closeness threshold of the
# utility interpolants
IPREC = 1e-6

# Highland constant [MeV]
HIGHLAND_CONSTANT = 13.6
