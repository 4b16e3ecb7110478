"""
Propagation utility integrals.

Every quantity a stepper needs between two energies of a continuous-loss
step is an integral over energy of an integrand built from the summed
cross sections:

    displacement   -1 / ΣdEdx                      [cm/MeV]
    interaction    -ΣdNdx / ΣdEdx                  [1/MeV]
    decay          -1 / (ΣdEdx βγ c τ)             [1/MeV]
    time           -1 / (ΣdEdx β c)                [s/MeV]
    contrand       -ΣdE2dx / ΣdEdx                 [MeV]
    scattering     -(E / p²)² / ΣdEdx              [cm/MeV^3]

All integrands are non-positive, so calculate(ei, ef) = ∫_ei^ef f dE is
non-negative for ef <= ei. UtilityIntegral evaluates it by quadrature,
UtilityInterpolant from a cumulative table.
"""

import logging
import threading
from typing import Callable, Optional, Sequence

import numpy as np
from scipy import optimize

from eloss_mc.core import constants as const
from eloss_mc.core.config import IntegrationSettings, InterpolationDef
from eloss_mc.core.errors import InvariantViolation, NumericError, log_fatal
from eloss_mc.core.particle import ParticleDefinition
from eloss_mc.numerics.cache import TableCache, fingerprint
from eloss_mc.numerics.integral import Integral
from eloss_mc.numerics.interpolant import TableDefinition

logger = logging.getLogger(__name__)

PURPOSES = ("displacement", "interaction", "decay", "time", "contrand",
            "scattering")


def make_integrand(purpose: str, particle: ParticleDefinition,
                   cross_sections: Sequence) -> Callable[[float], float]:
    """
    Integrand of a utility purpose.

    Parameters:
        purpose: One of PURPOSES
        particle: Propagated particle
        cross_sections: Active cross sections

    Returns:
        f(E), non-positive
    """
    def total_dedx(energy):
        value = sum(cs.dedx(energy) for cs in cross_sections)
        if not value > 0:
            log_fatal(logger, NumericError,
                      "No continuous energy loss at E=%g MeV for %s",
                      energy, particle.name)
        return value

    def displacement(energy):
        return -1.0 / total_dedx(energy)

    def interaction(energy):
        return -sum(cs.dndx(energy) for cs in cross_sections) / total_dedx(energy)

    def decay(energy):
        beta_gamma = particle.momentum(energy) / particle.mass
        return -1.0 / (total_dedx(energy) * beta_gamma * const.SPEED
                       * particle.lifetime)

    def time(energy):
        return -1.0 / (total_dedx(energy) * particle.beta(energy) * const.SPEED)

    def contrand(energy):
        return -sum(cs.de2dx(energy) for cs in cross_sections) / total_dedx(energy)

    def scattering(energy):
        momentum2 = (energy - particle.mass) * (energy + particle.mass)
        return -(energy / momentum2) ** 2 / total_dedx(energy)

    integrands = {
        "displacement": displacement,
        "interaction": interaction,
        "decay": decay,
        "time": time,
        "contrand": contrand,
        "scattering": scattering,
    }
    if purpose not in integrands:
        log_fatal(logger, InvariantViolation,
                  "Unknown utility purpose '%s'. Available: %s", purpose, PURPOSES)
    if purpose == "decay" and particle.is_stable:
        log_fatal(logger, InvariantViolation,
                  "Decay utility requested for stable particle %s", particle.name)
    return integrands[purpose]


class Utility:
    """Shared precondition checks of both utility strategies."""

    def __init__(self, integrand: Callable[[float], float], lower_lim: float,
                 name: str = ""):
        self.integrand = integrand
        self.lower_lim = float(lower_lim)
        self.name = name

    def _check_range(self, ei: float, ef: float) -> None:
        if ef > ei:
            log_fatal(logger, InvariantViolation,
                      "%s: final energy %g above initial energy %g",
                      self.name, ef, ei)
        if ef < self.lower_lim:
            log_fatal(logger, InvariantViolation,
                      "%s: final energy %g below the lower limit %g",
                      self.name, ef, self.lower_lim)

    def _check_draw(self, ei: float, rnd: float) -> None:
        if rnd < 0:
            log_fatal(logger, InvariantViolation,
                      "%s: negative integral target %g", self.name, rnd)
        if ei < self.lower_lim:
            log_fatal(logger, InvariantViolation,
                      "%s: initial energy %g below the lower limit %g",
                      self.name, ei, self.lower_lim)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, lower_lim={self.lower_lim:g})"


class UtilityIntegral(Utility):
    """
    Utility evaluated by adaptive quadrature on every call.

    Usage:
        utility = UtilityIntegral(make_integrand("displacement", mu, cross), 1e3)
        distance = utility.calculate(1e5, 9e4)
    """

    def __init__(self, integrand, lower_lim, settings: IntegrationSettings = IntegrationSettings(),
                 name: str = ""):
        super().__init__(integrand, lower_lim, name)
        self.integral = Integral(settings)

    def calculate(self, ei: float, ef: float) -> float:
        """∫_ei^ef f dE for lower_lim <= ef <= ei."""
        self._check_range(ei, ef)
        return -self.integral.integrate(self.integrand, ef, ei)

    def get_upper_limit(self, ei: float, rnd: float) -> float:
        """
        Final energy ef with calculate(ei, ef) = rnd.

        Returns lower_lim when the whole range integrates below rnd.
        """
        self._check_draw(ei, rnd)
        if rnd == 0:
            return ei
        total = self.calculate(ei, self.lower_lim)
        if rnd >= total:
            return self.lower_lim

        def residual(s):
            return self.calculate(ei, np.exp(s)) - rnd

        try:
            root = optimize.brentq(residual, np.log(self.lower_lim), np.log(ei),
                                   xtol=1e-14, rtol=1e-12)
        except (ValueError, RuntimeError) as e:
            log_fatal(logger, NumericError,
                      "%s: no final energy for ei=%g, rnd=%g: %s",
                      self.name, ei, rnd, e)
        return min(max(float(np.exp(root)), self.lower_lim), ei)


class UtilityInterpolant(Utility):
    """
    Utility evaluated from the table T(E) = ∫_E^lower_lim f dE.

    Steps shorter than IPREC relative to ei use the integrand directly
    instead of the difference of two nearly equal table values. The last
    T(ei) looked up is memoised per thread.

    Parameters:
        integrand: Utility integrand
        lower_lim: Lowest energy of the table [MeV]
        interpolation_def: Table settings
        cache: Table cache
        key: Fingerprint of everything the integrand depends on
        name: Utility purpose, used in table names
    """

    def __init__(self, integrand, lower_lim, interpolation_def: InterpolationDef,
                 cache: TableCache, key: int, name: str = ""):
        super().__init__(integrand, lower_lim, name)
        order = interpolation_def.order_of_interpolation
        definition = TableDefinition(
            interpolation_def.nodes_propagate, self.lower_lim,
            interpolation_def.max_node_energy, lambda e: -integrand(e),
            order=order, order_y=order, rational_y=True, log_subst=True,
            cumulative=True)
        table_key = fingerprint("utility", name, key, definition)
        self.table = cache.get_or_build(
            f"utility_{name}", table_key,
            lambda: definition.build(f"{name} utility", interpolation_def.verbose))
        self._memo = threading.local()

    def upper_integral(self, ei: float) -> float:
        """T(ei), memoised per thread for repeated calls at the same energy."""
        memo = self._memo
        if getattr(memo, "energy", None) != ei:
            memo.value = self.table.interpolate(ei)
            memo.energy = ei
        return memo.value

    def calculate(self, ei: float, ef: float) -> float:
        """∫_ei^ef f dE for lower_lim <= ef <= ei."""
        self._check_range(ei, ef)
        if ei - ef < ei * const.IPREC:
            return self.integrand(0.5 * (ei + ef)) * (ef - ei)
        return self.upper_integral(ei) - self.table.interpolate(ef)

    def get_upper_limit(self, ei: float, rnd: float) -> float:
        """
        Final energy ef with calculate(ei, ef) = rnd.

        Returns lower_lim when the whole range integrates below rnd.
        """
        self._check_draw(ei, rnd)
        ef = self.table.find_limit(self.upper_integral(ei) - rnd)
        if ei - ef > ei * const.IPREC or ef <= self.lower_lim:
            return ef

        # The step is too short to resolve on the table
        step = ei + 0.5 * rnd / self.integrand(ei)
        return ei + rnd / self.integrand(step)


def make_utility(purpose: str, particle: ParticleDefinition, cross_sections: Sequence,
                 lower_lim: float, interpolation_def: Optional[InterpolationDef] = None,
                 cache: Optional[TableCache] = None,
                 settings: IntegrationSettings = IntegrationSettings()):
    """
    Utility of one purpose with the strategy selected by interpolation_def.

    Returns:
        UtilityInterpolant when interpolation_def is given, else UtilityIntegral
    """
    integrand = make_integrand(purpose, particle, cross_sections)
    if interpolation_def is None:
        return UtilityIntegral(integrand, lower_lim, settings, name=purpose)

    if cache is None:
        cache = TableCache.from_interpolation_def(interpolation_def)
    key = fingerprint(purpose, particle, lower_lim,
                      tuple(cs.fingerprint for cs in cross_sections))
    return UtilityInterpolant(integrand, lower_lim, interpolation_def, cache, key,
                              name=purpose)
