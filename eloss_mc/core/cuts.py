"""
Energy cut settings.

The cut splits the energy transfer of every process into a continuous
part (v below the cut, folded into dEdx) and a stochastic part (v above
the cut, sampled as discrete losses).
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from eloss_mc.core.errors import ConfigurationError, log_fatal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnergyCutSettings:
    """
    Absolute and relative energy cut.

    Attributes:
        ecut: Absolute cut [MeV]; ecut <= 0 disables it
        vcut: Relative cut; vcut <= 0 or vcut > 1 disables it

    The effective cut at energy E is min(ecut / E, vcut).
    """
    ecut: float = 500.0
    vcut: float = 0.05

    def __post_init__(self):
        if np.isnan(self.ecut) or np.isnan(self.vcut):
            log_fatal(logger, ConfigurationError,
                      "Energy cuts must not be NaN (ecut=%s, vcut=%s)",
                      self.ecut, self.vcut)

        ecut = self.ecut if self.ecut > 0 else np.inf
        vcut = self.vcut if 0 < self.vcut <= 1 else 1.0

        if not np.isfinite(ecut) and vcut >= 1.0:
            log_fatal(logger, ConfigurationError,
                      "At least one of ecut=%s, vcut=%s must be a finite "
                      "restriction", self.ecut, self.vcut)

        object.__setattr__(self, "ecut", float(ecut))
        object.__setattr__(self, "vcut", float(vcut))

    def cut(self, energy: float) -> float:
        """Relative cut v at a given energy [MeV]."""
        return min(self.ecut / energy, self.vcut)

    def fingerprint_parts(self) -> Tuple:
        return ("cuts", self.ecut, self.vcut)
