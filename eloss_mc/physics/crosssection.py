"""
Cross-section evaluators.

A cross section wraps one parametrization and turns its per-atom dσ/dv
into macroscopic quantities of the medium:

    dEdx  = E Σ_i n_i ∫_{v_min}^{v_up} v dσ_i/dv dv      [MeV/cm]
    dE2dx = E² Σ_i n_i ∫_{v_min}^{v_up} v² dσ_i/dv dv    [MeV²/cm]
    dNdx  = Σ_i n_i ∫_{v_up}^{v_max} dσ_i/dv dv          [1/cm]

Two strategies are provided: CrossSectionIntegral evaluates every
quantity by adaptive quadrature, CrossSectionInterpolant looks them up in
tables built once from the integral strategy. Both expose the same
operations and agree within the interpolation accuracy.

The multiplier is applied at evaluation time; tables are built without
it and shared between cross sections that differ only in multiplier.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import numpy as np

from eloss_mc.core.config import IntegrationSettings, InterpolationDef
from eloss_mc.core.errors import InvariantViolation, NumericError, log_fatal
from eloss_mc.numerics.cache import TableCache, fingerprint
from eloss_mc.numerics.integral import Integral, cumulative_gauss_legendre
from eloss_mc.numerics.interpolant import Table2DDefinition, TableDefinition
from eloss_mc.physics.parametrization import IntegralLimits, Parametrization

logger = logging.getLogger(__name__)

# Gauss-Legendre points per column interval of the sampling tables
SAMPLING_POINTS = 8


def check_random_number(name: str, rnd: float) -> None:
    if not 0.0 <= rnd <= 1.0:
        log_fatal(logger, InvariantViolation,
                  "Random number %s=%r outside [0, 1]", name, rnd)


def select_component(rates, rnd: float) -> int:
    """
    Index of the entry whose share of the summed rates contains rnd.

    The first index with cumulative rate above rnd * total is chosen;
    rnd = 1 selects the last entry with a non-zero rate.
    """
    cumulative = np.cumsum(rates)
    total = cumulative[-1]
    if not total > 0:
        log_fatal(logger, NumericError,
                  "Cannot select among rates with zero total")
    index = int(np.searchsorted(cumulative, rnd * total, side="right"))
    if index >= len(cumulative):
        index = int(np.nonzero(np.asarray(rates) > 0)[0][-1])
    return index


def v_mapping(limits: IntegralLimits, t):
    """
    Map the column coordinate t in [0, 1] of a sampling table onto v.

    Logarithmic between v_up and v_max when v_up > 0, linear otherwise.

    Returns:
        (v, dv/dt)
    """
    t = np.asarray(t, dtype=np.float64)
    if limits.v_up > 0:
        ratio = np.log(limits.v_max / limits.v_up)
        v = limits.v_up * np.exp(ratio * t)
        return v, v * ratio
    width = limits.v_max - limits.v_up
    return limits.v_up + width * t, np.full_like(t, width)


class CrossSection(ABC):
    """
    Common interface of the evaluation strategies.

    Parameters:
        parametrization: Process parametrization (the cross section
            keeps its own copy)
    """

    kind = ""

    def __init__(self, parametrization: Parametrization):
        self.parametrization = parametrization.copy()
        self._densities = self.medium.number_densities

    @property
    def particle(self):
        return self.parametrization.particle

    @property
    def medium(self):
        return self.parametrization.medium

    @property
    def cuts(self):
        return self.parametrization.cuts

    @property
    def multiplier(self) -> float:
        return self.parametrization.multiplier

    @property
    def interaction_type(self) -> str:
        return self.parametrization.family

    @property
    def enabled(self) -> bool:
        return self.multiplier > 0

    # ------------------------------------------------------------------ #
    # Strategy hooks, all without the multiplier
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _dedx(self, energy: float) -> float:
        pass

    @abstractmethod
    def _de2dx(self, energy: float) -> float:
        pass

    @abstractmethod
    def _dndx_components(self, energy: float) -> np.ndarray:
        pass

    @abstractmethod
    def _sample_v(self, energy: float, index: int, rnd: float) -> float:
        pass

    # ------------------------------------------------------------------ #
    # Public operations
    # ------------------------------------------------------------------ #

    def dedx(self, energy: float) -> float:
        """Continuous energy loss per length [MeV/cm]."""
        if not self.enabled:
            return 0.0
        return self.multiplier * self._dedx(energy)

    def de2dx(self, energy: float) -> float:
        """Second moment of the continuous loss per length [MeV²/cm]."""
        if not self.enabled:
            return 0.0
        return self.multiplier * self._de2dx(energy)

    def dndx_per_component(self, energy: float) -> np.ndarray:
        """Stochastic interaction rate of each medium component [1/cm]."""
        if not self.enabled:
            return np.zeros(len(self.medium.components))
        return self.multiplier * self._dndx_components(energy)

    def dndx(self, energy: float) -> float:
        """Total stochastic interaction rate [1/cm]."""
        return float(self.dndx_per_component(energy).sum())

    def dndx_rnd(self, energy: float, rnd: float) -> Tuple[float, int]:
        """
        Total rate and the component selected by rnd.

        Parameters:
            energy: Particle energy [MeV]
            rnd: Uniform draw in [0, 1]

        Returns:
            (dNdx [1/cm], component index); index -1 when the rate is zero
        """
        check_random_number("rnd", rnd)
        rates = self.dndx_per_component(energy)
        total = float(rates.sum())
        if total <= 0:
            return total, -1
        return total, select_component(rates, rnd)

    def stochastic_loss(self, energy: float, rnd1: float, rnd2: float) -> float:
        """
        Sample the energy lost in one stochastic interaction.

        Parameters:
            energy: Particle energy [MeV]
            rnd1: Selects the medium component
            rnd2: Selects v within the component's spectrum

        Returns:
            Energy loss v·E [MeV], with v in [v_up, v_max]
        """
        check_random_number("rnd1", rnd1)
        check_random_number("rnd2", rnd2)
        rates = self.dndx_per_component(energy)
        if not rates.sum() > 0:
            log_fatal(logger, NumericError,
                      "%s: stochastic loss requested at E=%g MeV where the "
                      "interaction rate is zero", self.parametrization.name, energy)
        index = select_component(rates, rnd1)
        v = self._sample_v(energy, index, rnd2)
        with self.parametrization.component(index):
            limits = self.parametrization.integral_limits(energy)
        v = min(max(v, limits.v_up), limits.v_max)
        return v * energy

    # ------------------------------------------------------------------ #
    # Identity
    # ------------------------------------------------------------------ #

    def fingerprint_parts(self) -> Tuple:
        return (self.kind, self.parametrization)

    @property
    def fingerprint(self) -> int:
        return fingerprint(*self.fingerprint_parts())

    def __eq__(self, other) -> bool:
        if not isinstance(other, CrossSection):
            return NotImplemented
        return type(self) is type(other) and \
            self.fingerprint_parts() == other.fingerprint_parts()

    def __hash__(self) -> int:
        return self.fingerprint

    @abstractmethod
    def copy(self) -> "CrossSection":
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.parametrization!r})"


class CrossSectionIntegral(CrossSection):
    """
    Direct integration of the parametrization.

    Usage:
        cross = CrossSectionIntegral(param)
        loss = cross.dedx(1e5)
    """

    kind = "integral"

    def __init__(self, parametrization: Parametrization,
                 settings: IntegrationSettings = IntegrationSettings()):
        super().__init__(parametrization)
        self.settings = settings
        self.integral = Integral(settings)

    def fingerprint_parts(self):
        return super().fingerprint_parts() + (self.settings,)

    def copy(self):
        return CrossSectionIntegral(self.parametrization, self.settings)

    def _integrate(self, function, a, b, energy):
        return self.integral.integrate(lambda v: float(function(energy, v)), a, b)

    def component_dedx(self, energy: float, index: int) -> float:
        """Per-atom ∫ v dσ/dv over the continuous range, times E."""
        param = self.parametrization
        with param.component(index):
            limits = param.integral_limits(energy)
            return energy * self._integrate(param.function_to_dedx_integral,
                                            limits.v_min, limits.v_up, energy)

    def component_de2dx(self, energy: float, index: int) -> float:
        param = self.parametrization
        with param.component(index):
            limits = param.integral_limits(energy)
            return energy ** 2 * self._integrate(param.function_to_de2dx_integral,
                                                 limits.v_min, limits.v_up, energy)

    def component_dndx(self, energy: float, index: int) -> float:
        """Per-atom ∫ dσ/dv over the stochastic range."""
        param = self.parametrization
        with param.component(index):
            limits = param.integral_limits(energy)
            return self._integrate(param.function_to_dndx_integral,
                                   limits.v_up, limits.v_max, energy)

    def _dedx(self, energy):
        return float(sum(n * self.component_dedx(energy, i)
                         for i, n in enumerate(self._densities)))

    def _de2dx(self, energy):
        return float(sum(n * self.component_de2dx(energy, i)
                         for i, n in enumerate(self._densities)))

    def _dndx_components(self, energy):
        return np.array([n * self.component_dndx(energy, i)
                         for i, n in enumerate(self._densities)])

    def _sample_v(self, energy, index, rnd):
        param = self.parametrization
        with param.component(index):
            limits = param.integral_limits(energy)
            f = lambda v: float(param.function_to_dndx_integral(energy, v))
            total = self.integral.integrate(f, limits.v_up, limits.v_max)
            return self.integral.upper_limit(f, limits.v_up, limits.v_max,
                                             rnd * total, total=total)


class CrossSectionInterpolant(CrossSection):
    """
    Table lookup of the integral strategy.

    Tables of dEdx and the per-component dNdx are built on construction;
    the dE2dx table and the per-component sampling tables on first use.
    One-dimensional tables put nodes on the energies where the integration
    limits change form and return exactly zero where the integral vanishes.
    They are refined until they match the integral strategy at node
    interval midpoints.
    Tables are shared through the cache by every cross section with the
    same multiplier-free parametrization and interpolation settings.

    Parameters:
        parametrization: Process parametrization
        interpolation_def: Table settings
        cache: Table cache; a private one is created from
            interpolation_def when omitted
    """

    kind = "interpolant"

    def __init__(self, parametrization: Parametrization,
                 interpolation_def: InterpolationDef = InterpolationDef(),
                 cache: Optional[TableCache] = None):
        super().__init__(parametrization)
        self.interpolation_def = interpolation_def
        self.cache = cache if cache is not None \
            else TableCache.from_interpolation_def(interpolation_def)
        self._builder = CrossSectionIntegral(self.parametrization)
        self._key = fingerprint("crosssection", self.parametrization.table_fingerprint,
                                interpolation_def)
        self._breakpoints = None

        self._dedx_table = self._table("dedx")
        self._dndx_tables = [self._table(f"dndx_{i}")
                             for i in range(len(self._densities))]

    def fingerprint_parts(self):
        return super().fingerprint_parts() + (self.interpolation_def,)

    def copy(self):
        return CrossSectionInterpolant(self.parametrization, self.interpolation_def,
                                       self.cache)

    # ------------------------------------------------------------------ #
    # Table recipes
    # ------------------------------------------------------------------ #

    def _definition(self, name: str):
        idef = self.interpolation_def
        order = idef.order_of_interpolation
        x_min = self.parametrization.lower_energy_lim
        x_max = idef.max_node_energy
        builder = self._builder
        smooth = dict(order=order, order_y=order, log_subst=True, refine=True,
                      breakpoints=self._thresholds(x_min, x_max))

        if name == "dedx":
            return TableDefinition(idef.nodes_cross_section, x_min, x_max,
                                   builder._dedx, **smooth)
        if name == "de2dx":
            return TableDefinition(idef.nodes_continuous_randomization, x_min, x_max,
                                   builder._de2dx, **smooth)

        family, index = name.split("_")
        index = int(index)
        density = self._densities[index]
        if family == "dndx":
            return TableDefinition(
                idef.nodes_cross_section, x_min, x_max,
                lambda e: density * builder.component_dndx(e, index), **smooth)

        t = tuple(np.linspace(0.0, 1.0, idef.nodes_cross_section))
        return Table2DDefinition(idef.nodes_cross_section, x_min, x_max, t,
                                 lambda e: self._sampling_row(e, index, t),
                                 order=order, order_y=order)

    def _thresholds(self, x_min: float, x_max: float):
        if self._breakpoints is None:
            self._breakpoints = self.parametrization.threshold_energies(x_min, x_max)
        return self._breakpoints

    def _table(self, name: str):
        definition = self._definition(name)
        key = fingerprint(self._key, definition)
        return self.cache.get_or_build(
            name, key,
            lambda: definition.build(f"{self.parametrization.name} {name}",
                                     self.interpolation_def.verbose))

    def _sampling_row(self, energy: float, index: int, t) -> np.ndarray:
        """Normalised cumulative distribution of dσ/dv over t at energy."""
        t = np.asarray(t)
        param = self.parametrization
        with param.component(index):
            limits = param.integral_limits(energy)
            if limits.v_max <= limits.v_up:
                return t.copy()

            def integrand(tt):
                v, jacobian = v_mapping(limits, tt)
                return param.function_to_dndx_integral(energy, v) * jacobian

            row = cumulative_gauss_legendre(integrand, t, SAMPLING_POINTS)
        if not row[-1] > 0:
            return t.copy()
        return row / row[-1]

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    def _dedx(self, energy):
        return max(self._dedx_table.interpolate(energy), 0.0)

    def _de2dx(self, energy):
        table = self._table("de2dx")
        return max(table.interpolate(energy), 0.0)

    def _dndx_components(self, energy):
        return np.array([max(table.interpolate(energy), 0.0)
                         for table in self._dndx_tables])

    def _sample_v(self, energy, index, rnd):
        table = self._table(f"sampling_{index}")
        t = table.find_limit_in_row(energy, rnd)
        with self.parametrization.component(index):
            limits = self.parametrization.integral_limits(energy)
        v, _ = v_mapping(limits, t)
        return float(v)


def sum_dedx(cross_sections: List[CrossSection], energy: float) -> float:
    return float(sum(cs.dedx(energy) for cs in cross_sections))


def sum_dndx(cross_sections: List[CrossSection], energy: float) -> float:
    return float(sum(cs.dndx(energy) for cs in cross_sections))
