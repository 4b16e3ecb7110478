"""
Parametrization interface.

A parametrization is a pure evaluator of the differential cross section
dσ/dv(E, v) of one process, per atom of the currently selected medium
component, together with its kinematic integration limits. E is the
total energy of the incoming particle [MeV] and v the fraction of it
transferred in the interaction.

Concrete parametrizations are independent types implementing
`_limits()` and `differential_cross_section()`; they are created through
the registries in eloss_mc.physics.factory. `differential_cross_section`
must accept numpy arrays for v.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, NamedTuple, Tuple

import numpy as np
from scipy import optimize

from eloss_mc.core.cuts import EnergyCutSettings
from eloss_mc.core.medium import Component, Medium
from eloss_mc.core.particle import ParticleDefinition
from eloss_mc.numerics.cache import fingerprint

# Log-spaced energies scanned for changes of the integration ranges
THRESHOLD_SAMPLES = 400
# Thresholds closer than this in ln(E) to each other or to the range ends
# are dropped
EDGE_MARGIN = 1e-6


class IntegralLimits(NamedTuple):
    """Integration bounds in v, always v_min <= v_up <= v_max."""
    v_min: float
    v_up: float
    v_max: float


class Parametrization(ABC):
    """
    Base of all parametrizations.

    Parameters:
        particle: Incoming particle
        medium: Target medium
        cuts: Energy cut settings, defining v_up
        multiplier: Scale factor applied by the evaluators; <= 0 disables

    Subclasses set `name` (registered, lower case) and `family`.
    """

    name = ""
    family = ""

    def __init__(self, particle: ParticleDefinition, medium: Medium,
                 cuts: EnergyCutSettings, multiplier: float = 1.0):
        self.particle = particle
        self.medium = medium
        self.cuts = cuts
        self.multiplier = float(multiplier)
        self._selection = threading.local()

    # ------------------------------------------------------------------ #
    # Component selection
    # ------------------------------------------------------------------ #

    @property
    def component_index(self) -> int:
        return getattr(self._selection, "index", 0)

    @property
    def current_component(self) -> Component:
        return self.medium.components[self.component_index]

    @contextmanager
    def component(self, index: int):
        """
        Select a medium component for the duration of the block.

        The previous selection is restored on exit. The selection is
        per thread.
        """
        if not 0 <= index < len(self.medium.components):
            raise IndexError(f"Component index {index} out of range for "
                             f"medium '{self.medium.name}'")
        previous = self.component_index
        self._selection.index = index
        try:
            yield self.medium.components[index]
        finally:
            self._selection.index = previous

    # ------------------------------------------------------------------ #
    # Physics
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _limits(self, energy: float) -> Tuple[float, float, float]:
        """Raw (v_min, v_up, v_max) for the current component."""

    @abstractmethod
    def differential_cross_section(self, energy: float, v):
        """dσ/dv per atom of the current component [cm^2]."""

    def integral_limits(self, energy: float) -> IntegralLimits:
        """Kinematic limits at energy, clamped to v_min <= v_up <= v_max."""
        v_min, v_up, v_max = self._limits(energy)
        v_max = float(min(max(v_max, 0.0), 1.0))
        v_min = float(min(max(v_min, 0.0), v_max))
        v_up = float(min(max(v_up, v_min), v_max))
        return IntegralLimits(v_min, v_up, v_max)

    def function_to_dedx_integral(self, energy: float, v):
        return v * self.differential_cross_section(energy, v)

    def function_to_de2dx_integral(self, energy: float, v):
        return v * v * self.differential_cross_section(energy, v)

    def function_to_dndx_integral(self, energy: float, v):
        return self.differential_cross_section(energy, v)

    @property
    def lower_energy_lim(self) -> float:
        """Lowest energy the parametrization is tabulated from [MeV]."""
        return self.particle.low

    def _open_ranges(self, energy: float) -> Tuple[bool, bool]:
        """Whether the continuous and the stochastic v ranges are non-empty."""
        limits = self.integral_limits(energy)
        return limits.v_up > limits.v_min, limits.v_max > limits.v_up

    def threshold_energies(self, e_min: float, e_max: float,
                           samples: int = THRESHOLD_SAMPLES) -> Tuple[float, ...]:
        """
        Energies inside (e_min, e_max) where the integration limits change form.

        These are the energy ecut / vcut where the cut switches from
        absolute to relative, and, for every medium component, the energies
        where the continuous or stochastic v range opens or closes. The
        cross sections have a kink or a zero/non-zero step there.

        Parameters:
            e_min, e_max: Energy range [MeV]
            samples: Log-spaced energies scanned for range changes

        Returns:
            Sorted energies [MeV]
        """
        found = []
        kink = self.cuts.ecut / self.cuts.vcut
        if np.isfinite(kink):
            found.append(kink)

        log_e = np.linspace(np.log(e_min), np.log(e_max), samples)
        for index in range(len(self.medium.components)):
            with self.component(index):
                flags = np.array([self._open_ranges(np.exp(s)) for s in log_e])
                for j, k in zip(*np.nonzero(flags[1:] != flags[:-1])):
                    def side(s, j=j, k=k):
                        return 1.0 if self._open_ranges(np.exp(s))[k] == flags[j, k] \
                            else -1.0
                    root = optimize.brentq(side, log_e[j], log_e[j + 1], xtol=1e-13)
                    found.append(float(np.exp(root)))

        low, high = np.log(e_min) + EDGE_MARGIN, np.log(e_max) - EDGE_MARGIN
        energies = []
        for energy in sorted(found):
            if not low < np.log(energy) < high:
                continue
            if energies and np.log(energy / energies[-1]) < EDGE_MARGIN:
                continue
            energies.append(energy)
        return tuple(energies)

    # ------------------------------------------------------------------ #
    # Identity
    # ------------------------------------------------------------------ #

    def options(self) -> Dict:
        """Process-specific constructor options."""
        return {}

    def fingerprint_parts(self, with_multiplier: bool = True) -> Tuple:
        parts = (self.family, self.name, self.particle, self.medium, self.cuts,
                 self.options())
        if with_multiplier:
            parts += (self.multiplier,)
        return parts

    @property
    def fingerprint(self) -> int:
        return fingerprint(*self.fingerprint_parts())

    @property
    def table_fingerprint(self) -> int:
        """Identity of the multiplier-free tables of this parametrization."""
        return fingerprint(*self.fingerprint_parts(with_multiplier=False))

    def __eq__(self, other) -> bool:
        if not isinstance(other, Parametrization):
            return NotImplemented
        return type(self) is type(other) and \
            self.fingerprint_parts() == other.fingerprint_parts()

    def __hash__(self) -> int:
        return self.fingerprint

    def copy(self) -> "Parametrization":
        """Independent parametrization with the same configuration."""
        return type(self)(self.particle, self.medium, self.cuts,
                          self.multiplier, **self.options())

    def __copy__(self):
        return self.copy()

    def __deepcopy__(self, memo):
        return self.copy()

    def __repr__(self) -> str:
        options = "".join(f", {k}={v!r}" for k, v in self.options().items())
        return (f"{type(self).__name__}(particle={self.particle.name}, "
                f"medium={self.medium.name}, ecut={self.cuts.ecut}, "
                f"vcut={self.cuts.vcut}, multiplier={self.multiplier}{options})")


def as_array(v) -> np.ndarray:
    return np.asarray(v, dtype=np.float64)
