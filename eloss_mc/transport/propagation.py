"""
Propagation utility.

Combines all active cross sections of one (particle, medium, cuts)
configuration into the quantities a Monte Carlo stepper consumes between
two stochastic interactions: the energy at which the next interaction or
decay happens, the length and time of the continuous-loss step, the
smeared final energy, the interaction type and its loss, and the
multiple-scattering deflection. Random draws are consumed, never
produced.

Usage:
    registries = build_registries()
    utility = PropagationUtility.from_definitions(
        MU_MINUS, get_medium("water"), EnergyCutSettings(500, 0.05),
        definitions, registries, interpolation_def=InterpolationDef())

    ef = utility.energy_interaction(1e5, rng.random())
    distance = utility.length_continuous(1e5, ef)
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy import special

from eloss_mc.core import constants as const
from eloss_mc.core.config import IntegrationSettings, InterpolationDef, ProcessDefinition
from eloss_mc.core.cuts import EnergyCutSettings
from eloss_mc.core.errors import ConfigurationError, InvariantViolation, log_fatal
from eloss_mc.core.medium import Medium
from eloss_mc.core.particle import ParticleDefinition
from eloss_mc.numerics.cache import TableCache
from eloss_mc.physics.crosssection import CrossSection, check_random_number, select_component
from eloss_mc.physics.factory import Registries, build_registries
from eloss_mc.physics.scattering import ScatteringHighland
from eloss_mc.transport.utility import make_utility

logger = logging.getLogger(__name__)


class PropagationUtility:
    """
    Per-configuration propagation quantities.

    Parameters:
        particle: Propagated particle
        medium: Medium
        cuts: Energy cuts shared by all cross sections
        cross_sections: Active cross sections (all for particle, medium, cuts)
        interpolation_def: Table settings; None selects direct integration
        cache: Table cache shared with the cross sections
        lower_lim: Lowest tracked energy [MeV], defaults to particle.low
        exact_time: Integrate the elapsed time instead of distance / c
        integration: Quadrature settings of the integral strategy

    A new instance is needed whenever particle, medium or cuts change.
    """

    def __init__(self, particle: ParticleDefinition, medium: Medium,
                 cuts: EnergyCutSettings, cross_sections: Sequence[CrossSection],
                 interpolation_def: Optional[InterpolationDef] = None,
                 cache: Optional[TableCache] = None,
                 lower_lim: Optional[float] = None, exact_time: bool = True,
                 integration: IntegrationSettings = IntegrationSettings()):
        if len(cross_sections) == 0:
            log_fatal(logger, ConfigurationError,
                      "PropagationUtility needs at least one cross section")
        for cross in cross_sections:
            if (cross.particle, cross.medium, cross.cuts) != (particle, medium, cuts):
                log_fatal(logger, ConfigurationError,
                          "Cross section %r does not match particle %s, medium %s "
                          "and cuts %s", cross, particle.name, medium.name, cuts)

        self.particle = particle
        self.medium = medium
        self.cuts = cuts
        self.cross_sections: List[CrossSection] = list(cross_sections)
        self.lower_lim = float(lower_lim if lower_lim is not None else particle.low)
        self.exact_time = exact_time

        if interpolation_def is not None and cache is None:
            cache = TableCache.from_interpolation_def(interpolation_def)

        if not sum(cs.dedx(self.lower_lim) for cs in self.cross_sections) > 0:
            log_fatal(logger, ConfigurationError,
                      "No continuous energy loss at the lower limit %g MeV; "
                      "choose a higher lower_lim", self.lower_lim)

        purposes = ["displacement", "interaction", "time", "contrand", "scattering"]
        if not particle.is_stable:
            purposes.append("decay")

        self.utilities: Dict[str, object] = {}
        for purpose in purposes:
            self.utilities[purpose] = make_utility(
                purpose, particle, self.cross_sections, self.lower_lim,
                interpolation_def, cache, integration)

        self.scattering = ScatteringHighland(particle, medium,
                                             self.utilities["scattering"])
        logger.info("PropagationUtility for %s in %s: %d cross sections, %s",
                    particle.name, medium.name, len(self.cross_sections),
                    "interpolation" if interpolation_def is not None else "integration")

    @classmethod
    def from_definitions(cls, particle: ParticleDefinition, medium: Medium,
                         cuts: EnergyCutSettings,
                         definitions: Sequence[ProcessDefinition],
                         registries: Optional[Registries] = None,
                         interpolation_def: Optional[InterpolationDef] = None,
                         cache: Optional[TableCache] = None,
                         **kwargs) -> "PropagationUtility":
        """Build the cross sections of a process list, then the utility."""
        registries = registries if registries is not None else build_registries()
        if interpolation_def is not None and cache is None:
            cache = TableCache.from_interpolation_def(interpolation_def)
        cross_sections = [
            registries.create_from_definition(particle, medium, cuts, definition,
                                              interpolation_def, cache)
            for definition in definitions
        ]
        return cls(particle, medium, cuts, cross_sections, interpolation_def, cache,
                   **kwargs)

    # ------------------------------------------------------------------ #
    # Energy at the next point of interest
    # ------------------------------------------------------------------ #

    def _negative_log(self, rnd: float) -> float:
        if not 0.0 < rnd <= 1.0:
            log_fatal(logger, InvariantViolation,
                      "Random number %r outside (0, 1]", rnd)
        return -np.log(rnd)

    def energy_interaction(self, ei: float, rnd: float) -> float:
        """Energy at which the next stochastic interaction happens."""
        return self.utilities["interaction"].get_upper_limit(ei, self._negative_log(rnd))

    def energy_decay(self, ei: float, rnd: float) -> float:
        """Energy at which the particle decays; lower_lim for stable particles."""
        if self.particle.is_stable:
            return self.lower_lim
        return self.utilities["decay"].get_upper_limit(ei, self._negative_log(rnd))

    # ------------------------------------------------------------------ #
    # Continuous-loss step
    # ------------------------------------------------------------------ #

    def length_continuous(self, ei: float, ef: float) -> float:
        """Distance over which continuous losses bring ei down to ef [cm]."""
        return self.utilities["displacement"].calculate(ei, ef)

    def time_elapsed(self, ei: float, ef: float, distance: float) -> float:
        """Time of the step [s]."""
        if self.exact_time:
            return self.utilities["time"].calculate(ei, ef)
        return distance / const.SPEED

    def energy_randomize(self, ei: float, ef: float, rnd: float) -> float:
        """
        Gaussian smearing of the continuous loss.

        The final energy is drawn from a normal distribution around ef with
        variance ∫ ΣdE2dx / ΣdEdx dE, truncated to [lower_lim, ei].
        """
        check_random_number("rnd", rnd)
        variance = self.utilities["contrand"].calculate(ei, ef)
        if not variance > 0:
            return ef
        sigma = np.sqrt(variance)
        lo = special.ndtr((self.lower_lim - ef) / sigma)
        hi = special.ndtr((ei - ef) / sigma)
        u = lo + rnd * (hi - lo)
        if not 0.0 < u < 1.0:
            return min(max(ef, self.lower_lim), ei)
        energy = ef + sigma * special.ndtri(u)
        return float(min(max(energy, self.lower_lim), ei))

    # ------------------------------------------------------------------ #
    # Stochastic interaction
    # ------------------------------------------------------------------ #

    def dndx(self, energy: float) -> float:
        return float(sum(cs.dndx(energy) for cs in self.cross_sections))

    def dedx(self, energy: float) -> float:
        return float(sum(cs.dedx(energy) for cs in self.cross_sections))

    def mean_free_path(self, energy: float) -> float:
        """1 / ΣdNdx [cm], infinite when no process is active."""
        rate = self.dndx(energy)
        return 1.0 / rate if rate > 0 else np.inf

    def sample_interaction(self, energy: float, rnd: float) -> CrossSection:
        """Cross section of the next interaction, chosen by its dNdx share."""
        check_random_number("rnd", rnd)
        rates = [cs.dndx(energy) for cs in self.cross_sections]
        return self.cross_sections[select_component(rates, rnd)]

    def energy_stochasticloss(self, energy: float, rnd1: float, rnd2: float,
                              rnd3: float) -> Tuple[str, float]:
        """
        Type and energy loss of a stochastic interaction at energy.

        Parameters:
            energy: Particle energy [MeV]
            rnd1: Selects the medium component
            rnd2: Selects v
            rnd3: Selects the process

        Returns:
            (interaction type, loss [MeV])
        """
        cross = self.sample_interaction(energy, rnd3)
        loss = cross.stochastic_loss(energy, rnd1, rnd2)
        logger.debug("Stochastic %s loss of %.4g MeV at %.4g MeV",
                     cross.interaction_type, loss, energy)
        return cross.interaction_type, loss

    # ------------------------------------------------------------------ #
    # Scattering
    # ------------------------------------------------------------------ #

    def scatter(self, distance: float, ei: float, ef: float, direction: np.ndarray,
                rnds: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
        """Offset and final direction after a continuous-loss step."""
        return self.scattering.scatter(distance, ei, ef, direction, rnds)

    def __repr__(self) -> str:
        names = ", ".join(cs.parametrization.name for cs in self.cross_sections)
        return (f"PropagationUtility({self.particle.name}, {self.medium.name}, "
                f"[{names}], lower_lim={self.lower_lim:g})")
