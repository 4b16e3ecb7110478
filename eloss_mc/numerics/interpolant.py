"""
Interpolation tables.

One-dimensional tables hold a function of energy (dEdx, dNdx, cumulative
utility integrals); two-dimensional tables hold, for every energy node,
the cumulative distribution of a cross section over a mapped v
coordinate, used for inverse-CDF sampling.

Lookups use local interpolation of `order` nodes around the query point,
either polynomial (Neville) or rational (Bulirsch-Stoer), optionally on
log x (`is_log`), log y (`log_subst`) or y / x (`relative`). Once built a
table is immutable: its node arrays are write-protected and it can be
shared freely between evaluators and threads.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

import numpy as np
from scipy import optimize
from tqdm import tqdm

from eloss_mc.core.errors import NumericError, log_fatal
from eloss_mc.numerics import kernels

logger = logging.getLogger(__name__)


def _frozen(values) -> np.ndarray:
    array = np.array(values, dtype=np.float64)
    array.setflags(write=False)
    return array


class Interpolant1D:
    """
    Immutable 1D lookup table with forward and inverse evaluation.

    Parameters:
        x: Node abscissae, strictly increasing
        y: Node values
        order: Nodes used by each local interpolation
        rational: Rational instead of polynomial interpolation
        relative: Interpolate y / x instead of y
        is_log: Interpolate in ln(x)
        order_y: Nodes used by the inverse interpolation seeding find_limit
        rational_y: Rational inverse interpolation
        log_subst: Interpolate ln(y) where y > 0
        breaks: Interior node indices where the function may have a kink
            or step; no interpolation window reaches across them
    """

    def __init__(self, x, y, order: int = 5, rational: bool = False,
                 relative: bool = False, is_log: bool = True,
                 order_y: Optional[int] = None, rational_y: bool = False,
                 log_subst: bool = False, breaks: Sequence[int] = ()):
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)

        if x.ndim != 1 or x.shape != y.shape:
            raise ValueError(f"x and y must be 1D arrays of equal length, "
                             f"got {x.shape} and {y.shape}")
        if len(x) < order:
            raise ValueError(f"Need at least {order} nodes, got {len(x)}")
        if not np.all(np.diff(x) > 0):
            raise ValueError("x must be strictly increasing")
        if is_log and x[0] <= 0:
            raise ValueError("is_log requires positive abscissae")
        if not np.all(np.isfinite(y)):
            raise ValueError("Table values must be finite")
        breaks = tuple(int(b) for b in breaks)
        if any(not 0 < b < len(x) - 1 for b in breaks) or \
                any(b >= c for b, c in zip(breaks, breaks[1:])):
            raise ValueError(f"Breaks must be increasing interior node indices, "
                             f"got {breaks}")

        self.order = int(order)
        self.rational = bool(rational)
        self.relative = bool(relative)
        self.is_log = bool(is_log)
        self.order_y = int(order_y if order_y is not None else order)
        self.rational_y = bool(rational_y)
        self.log_subst = bool(log_subst)
        self.breaks = breaks

        self.x = _frozen(x)
        self.y = _frozen(y)
        self._xs = _frozen(np.log(x) if is_log else x)

        base = y / x if relative else y
        self._linear = _frozen(base)
        positive = base > 0
        self._positive = positive
        self._logged = _frozen(np.where(positive, np.log(np.where(positive, base, 1.0)), 0.0))
        self._bounds = np.array((0,) + breaks + (len(x) - 1,), dtype=np.int64)

    # ------------------------------------------------------------------ #
    # Forward lookup
    # ------------------------------------------------------------------ #

    def _to_s(self, x: float) -> float:
        if self.is_log:
            if not x > 0:
                log_fatal(logger, NumericError,
                          "Log table lookup at non-positive x=%g", x)
            return np.log(x)
        return x

    def _from_s(self, s: float) -> float:
        return float(np.exp(s)) if self.is_log else float(s)

    def _window(self, s: float) -> Tuple[int, int]:
        """Node range [start, stop) of the window around s within its segment."""
        if not self.breaks:
            start = kernels.window_start(self._xs, s, self.order)
            return start, start + self.order
        bounds = self._bounds
        segment = int(np.searchsorted(self._xs[bounds[1:-1]], s, side="right"))
        lo, hi = bounds[segment], bounds[segment + 1] + 1
        size = min(self.order, hi - lo)
        start = lo + kernels.window_start(self._xs[lo:hi], s, size)
        return start, start + size

    def _interpolate_s(self, s: float) -> float:
        start, stop = self._window(s)
        xs = self._xs[start:stop]

        use_log = self.log_subst and bool(np.all(self._positive[start:stop]))
        ys = self._logged[start:stop] if use_log else self._linear[start:stop]

        value = np.nan
        if self.rational:
            value = kernels.rational_interpolate(xs, ys, s)
        if not np.isfinite(value):
            value = kernels.polynomial_interpolate(xs, ys, s)

        if use_log:
            value = np.exp(value)
        if self.relative:
            value *= self._from_s(s)
        return float(value)

    def interpolate(self, x: float) -> float:
        """
        Table value at x.

        Outside [x[0], x[-1]] the outermost window is extrapolated.
        """
        return self._interpolate_s(self._to_s(x))

    # ------------------------------------------------------------------ #
    # Inverse lookup
    # ------------------------------------------------------------------ #

    def _seed(self, lo: int, target: float) -> float:
        """Inverse interpolation s(y) around node interval [lo, lo+1]."""
        n = len(self._xs)
        start = min(max(lo + 1 - self.order_y // 2, 0), n - self.order_y)
        stop = start + self.order_y
        ys = self.y[start:stop]
        if not np.all(np.diff(ys) != 0):
            return np.nan
        order = np.argsort(ys)
        ys = np.ascontiguousarray(ys[order])
        xs = np.ascontiguousarray(self._xs[start:stop][order])
        value = np.nan
        if self.rational_y:
            value = kernels.rational_interpolate(ys, xs, target)
        if not np.isfinite(value):
            value = kernels.polynomial_interpolate(ys, xs, target)
        return value

    def find_limit(self, target: float) -> float:
        """
        Solve interpolate(x) = target on a monotone table.

        Targets beyond the tabulated range clamp to the matching domain
        edge.
        """
        y = self.y
        increasing = y[-1] >= y[0]
        first, last = (y[0], y[-1]) if increasing else (y[-1], y[0])

        if target <= first:
            return float(self.x[0] if increasing else self.x[-1])
        if target >= last:
            return float(self.x[-1] if increasing else self.x[0])

        if increasing:
            lo = int(np.searchsorted(y, target, side="right")) - 1
        else:
            lo = len(y) - 1 - int(np.searchsorted(y[::-1], target, side="right"))
        lo = min(max(lo, 0), len(y) - 2)

        def residual(s):
            return self._interpolate_s(s) - target

        for widen in range(3):
            a = max(lo - widen, 0)
            b = min(lo + 1 + widen, len(y) - 1)
            s_lo, s_hi = self._xs[a], self._xs[b]
            r_lo, r_hi = residual(s_lo), residual(s_hi)
            if r_lo == 0.0:
                return self._from_s(s_lo)
            if r_hi == 0.0:
                return self._from_s(s_hi)
            if r_lo * r_hi < 0:
                break
        else:
            log_fatal(logger, NumericError,
                      "Table inversion for target %g found no bracket near "
                      "x=%g", target, self.x[lo])

        seed = self._seed(lo, target)
        if np.isfinite(seed) and s_lo < seed < s_hi:
            r_seed = residual(seed)
            if r_seed == 0.0:
                return self._from_s(seed)
            if r_seed * r_lo < 0:
                s_hi = seed
            else:
                s_lo = seed

        try:
            root = optimize.brentq(residual, s_lo, s_hi, xtol=1e-14, rtol=1e-12)
        except (ValueError, RuntimeError) as e:
            log_fatal(logger, NumericError,
                      "Table inversion for target %g failed: %s", target, e)
        return self._from_s(root)

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    def options(self) -> dict:
        return {
            "order": self.order,
            "rational": self.rational,
            "relative": self.relative,
            "is_log": self.is_log,
            "order_y": self.order_y,
            "rational_y": self.rational_y,
            "log_subst": self.log_subst,
        }

    def save_hdf5(self, group) -> None:
        """Write nodes and options into an h5py group."""
        group.attrs["kind"] = "1d"
        for key, value in self.options().items():
            group.attrs[key] = value
        group.create_dataset("x", data=np.asarray(self.x))
        group.create_dataset("y", data=np.asarray(self.y))
        group.create_dataset("breaks", data=np.asarray(self.breaks, dtype=np.int64))

    @classmethod
    def load_hdf5(cls, group) -> "Interpolant1D":
        attrs = group.attrs
        return cls(
            group["x"][()], group["y"][()],
            order=int(attrs["order"]),
            rational=bool(attrs["rational"]),
            relative=bool(attrs["relative"]),
            is_log=bool(attrs["is_log"]),
            order_y=int(attrs["order_y"]),
            rational_y=bool(attrs["rational_y"]),
            log_subst=bool(attrs["log_subst"]),
            breaks=tuple(group["breaks"][()]) if "breaks" in group else (),
        )

    def __repr__(self) -> str:
        return (f"Interpolant1D(nodes={len(self.x)}, breaks={len(self.breaks)}, "
                f"x=[{self.x[0]:.3g}, {self.x[-1]:.3g}], order={self.order})")


class Interpolant2D:
    """
    Immutable table of non-decreasing rows (cumulative distributions).

    values[i, j] is the row quantity at x[i] and column coordinate t[j].
    Rows are interpolated across x with Lagrange weights on ln(x) when
    `is_log`; the inverse within a row uses `order_y` nodes.
    """

    def __init__(self, x, t, values, order: int = 5, is_log: bool = True,
                 order_y: int = 5, rational_y: bool = False):
        x = np.asarray(x, dtype=np.float64)
        t = np.asarray(t, dtype=np.float64)
        values = np.asarray(values, dtype=np.float64)

        if values.shape != (len(x), len(t)):
            raise ValueError(f"values must have shape {(len(x), len(t))}, "
                             f"got {values.shape}")
        if len(x) < order or len(t) < order_y:
            raise ValueError("Not enough nodes for the interpolation order")
        if not (np.all(np.diff(x) > 0) and np.all(np.diff(t) > 0)):
            raise ValueError("Node coordinates must be strictly increasing")
        if is_log and x[0] <= 0:
            raise ValueError("is_log requires positive abscissae")

        self.order = int(order)
        self.is_log = bool(is_log)
        self.order_y = int(order_y)
        self.rational_y = bool(rational_y)

        self.x = _frozen(x)
        self.t = _frozen(t)
        self.values = _frozen(values)
        self._xs = _frozen(np.log(x) if is_log else x)

    def row(self, x: float) -> np.ndarray:
        """Row interpolated at x, forced non-decreasing."""
        s = np.log(x) if self.is_log else x
        start = kernels.window_start(self._xs, s, self.order)
        stop = start + self.order
        weights = kernels.lagrange_weights(self._xs[start:stop], s)
        row = weights @ self.values[start:stop]
        return np.maximum.accumulate(row)

    def find_limit_in_row(self, x: float, target: float) -> float:
        """Column coordinate t where the row at x reaches target."""
        row = self.row(x)
        t = self.t
        if target <= row[0]:
            return float(t[0])
        if target >= row[-1]:
            return float(t[-1])

        j = int(np.searchsorted(row, target, side="right"))
        j = min(max(j, 1), len(t) - 1)
        t_lo, t_hi = t[j - 1], t[j]

        n = len(t)
        start = min(max(j - self.order_y // 2, 0), n - self.order_y)
        stop = start + self.order_y
        ys = row[start:stop]
        if np.all(np.diff(ys) > 0):
            ts = np.ascontiguousarray(t[start:stop])
            ys = np.ascontiguousarray(ys)
            value = np.nan
            if self.rational_y:
                value = kernels.rational_interpolate(ys, ts, target)
            if not np.isfinite(value):
                value = kernels.polynomial_interpolate(ys, ts, target)
            if np.isfinite(value) and t_lo <= value <= t_hi:
                return float(value)

        # Flat or non-monotone neighbourhood
        width = row[j] - row[j - 1]
        if width <= 0:
            return float(t_lo)
        return float(t_lo + (target - row[j - 1]) / width * (t_hi - t_lo))

    def options(self) -> dict:
        return {
            "order": self.order,
            "is_log": self.is_log,
            "order_y": self.order_y,
            "rational_y": self.rational_y,
        }

    def save_hdf5(self, group) -> None:
        group.attrs["kind"] = "2d"
        for key, value in self.options().items():
            group.attrs[key] = value
        group.create_dataset("x", data=np.asarray(self.x))
        group.create_dataset("t", data=np.asarray(self.t))
        group.create_dataset("values", data=np.asarray(self.values))

    @classmethod
    def load_hdf5(cls, group) -> "Interpolant2D":
        attrs = group.attrs
        return cls(
            group["x"][()], group["t"][()], group["values"][()],
            order=int(attrs["order"]),
            is_log=bool(attrs["is_log"]),
            order_y=int(attrs["order_y"]),
            rational_y=bool(attrs["rational_y"]),
        )

    def __repr__(self) -> str:
        return (f"Interpolant2D(shape={self.values.shape}, "
                f"x=[{self.x[0]:.3g}, {self.x[-1]:.3g}])")


# ============================================================================
# Builders
# ============================================================================

def _nodes(n: int, x_min: float, x_max: float, is_log: bool) -> np.ndarray:
    if is_log:
        return np.geomspace(x_min, x_max, n)
    return np.linspace(x_min, x_max, n)


# Bisection steps locating a change between zero and non-zero values
ZERO_BISECTIONS = 40
# Refinement stops at this many passes, at this node interval width (in
# the interpolation coordinate) or at this multiple of the requested nodes
MAX_REFINE_PASSES = 30
MIN_REFINE_WIDTH = 1e-7
MAX_REFINE_FACTOR = 20


def _segmented_nodes(n: int, edges, min_nodes: int, is_log: bool):
    """
    Nodes over consecutive segments sharing their boundary nodes.

    Nodes are shared out in proportion to segment width, with at least
    `min_nodes` per segment. Without interior edges this is _nodes().

    Returns:
        (nodes, indices of the interior edges)
    """
    edges = np.asarray(edges, dtype=np.float64)
    coordinate = np.log(edges) if is_log else edges
    widths = np.diff(coordinate)
    shares = widths / widths.sum() * (n - 1)
    intervals = np.maximum(np.round(shares).astype(int), max(min_nodes - 1, 1))

    pieces = [_nodes(k + 1, a, b, is_log)
              for k, a, b in zip(intervals, edges[:-1], edges[1:])]
    nodes = np.concatenate([pieces[0]] + [p[1:] for p in pieces[1:]])
    breaks = tuple(int(i) for i in np.cumsum(intervals)[:-1])
    return nodes, breaks


@dataclass(frozen=True)
class TableDefinition:
    """
    Recipe for a 1D table.

    Identical definitions and functions build identical tables.

    Attributes:
        nodes: Number of nodes
        x_min, x_max: Domain
        function: Function tabulated at the nodes
        order: Local interpolation order
        rational: Rational interpolation along x
        relative: Tabulate y / x
        is_log: Log-spaced nodes, interpolation in ln(x)
        order_y: Order of the inverse interpolation
        rational_y: Rational inverse interpolation
        log_subst: Interpolate ln(y)
        cumulative: Tabulate ∫_{x_min}^{x} function instead of function,
            integrated node interval by node interval
        points: Gauss-Legendre points per node interval when cumulative
        breakpoints: Energies where the function has a kink; nodes are
            placed on them and no window reaches across
        refine: Insert nodes until midpoints match within `tolerance`
        tolerance: Relative accuracy targeted by refinement

    Wherever the tabulated function changes between zero and non-zero a
    break node is added at the last zero, so the zero side stays exactly
    zero.
    """
    nodes: int
    x_min: float
    x_max: float
    function: Callable[[float], float]
    order: int = 5
    rational: bool = False
    relative: bool = False
    is_log: bool = True
    order_y: int = 5
    rational_y: bool = False
    log_subst: bool = False
    cumulative: bool = False
    points: int = 8
    breakpoints: Tuple[float, ...] = ()
    refine: bool = False
    tolerance: float = 1e-4

    def fingerprint_parts(self) -> Tuple:
        return ("table1d", self.nodes, self.x_min, self.x_max, self.order,
                self.rational, self.relative, self.is_log, self.order_y,
                self.rational_y, self.log_subst, self.cumulative, self.points,
                tuple(float(b) for b in self.breakpoints), self.refine,
                self.tolerance)

    def _cumulative(self, x: np.ndarray, name: str, verbose: bool) -> np.ndarray:
        weights_x, weights_w = np.polynomial.legendre.leggauss(self.points)
        s = np.log(x) if self.is_log else x
        y = np.zeros(len(x))
        for j in tqdm(range(1, len(x)), desc=f"Building {name}",
                      disable=not verbose, leave=False):
            half = 0.5 * (s[j] - s[j - 1])
            mid = 0.5 * (s[j] + s[j - 1])
            segment = 0.0
            for node, weight in zip(weights_x, weights_w):
                si = mid + half * node
                xi = np.exp(si) if self.is_log else si
                jacobian = xi if self.is_log else 1.0
                segment += weight * self.function(xi) * jacobian
            y[j] = y[j - 1] + half * segment
        return y

    def _coordinate(self, x):
        return np.log(x) if self.is_log else x

    def _point(self, s: float) -> float:
        return float(np.exp(s)) if self.is_log else float(s)

    def _interpolant(self, x, y, break_x) -> Interpolant1D:
        x = np.asarray(x)
        breaks = [int(i) for i in np.searchsorted(x, sorted(break_x))]
        breaks = tuple(i for i in breaks if 0 < i < len(x) - 1)
        return Interpolant1D(x, y, order=self.order, rational=self.rational,
                             relative=self.relative, is_log=self.is_log,
                             order_y=self.order_y, rational_y=self.rational_y,
                             log_subst=self.log_subst, breaks=breaks)

    def _split_at_zeros(self, x, y, break_x):
        """
        Add a break node where the function turns zero or non-zero.

        The node is the zero-valued end of the bisected transition, so
        every window on the zero side interpolates zeros only.
        """
        zero = y == 0
        new_x = []
        for j in np.nonzero(zero[1:] != zero[:-1])[0]:
            a, b = self._coordinate(x[j]), self._coordinate(x[j + 1])
            moved_a = moved_b = False
            for _ in range(ZERO_BISECTIONS):
                mid = 0.5 * (a + b)
                if (self.function(self._point(mid)) == 0) == zero[j]:
                    a, moved_a = mid, True
                else:
                    b, moved_b = mid, True
            if zero[j]:
                edge = self._point(a) if moved_a else x[j]
            else:
                edge = self._point(b) if moved_b else x[j + 1]
            if edge not in (x[j], x[j + 1]):
                new_x.append(edge)
            break_x.add(edge)

        if new_x:
            x = np.concatenate((x, new_x))
            y = np.concatenate((y, np.zeros(len(new_x))))
            order = np.argsort(x)
            x, y = x[order], y[order]
        return x, y, break_x

    def _refine(self, x, y, break_x, name: str):
        """
        Insert node interval midpoints until the table reproduces the
        function there within `tolerance`.
        """
        exact = {}
        limit = MAX_REFINE_FACTOR * self.nodes
        for iteration in range(MAX_REFINE_PASSES):
            table = self._interpolant(x, y, break_x)
            s = table._xs
            new_x, new_y = [], []
            for j in np.nonzero(np.diff(s) > MIN_REFINE_WIDTH)[0]:
                xm = self._point(0.5 * (s[j] + s[j + 1]))
                if xm not in exact:
                    exact[xm] = self.function(xm)
                if abs(table.interpolate(xm) - exact[xm]) > self.tolerance * abs(exact[xm]):
                    new_x.append(xm)
                    new_y.append(exact[xm])
            logger.debug("Refining %s: pass %d adds %d nodes to %d",
                         name, iteration, len(new_x), len(x))
            if not new_x:
                break
            if len(x) + len(new_x) > limit:
                logger.warning("Table %s reached %d nodes before %g accuracy",
                               name, len(x), self.tolerance)
                break
            x = np.concatenate((x, new_x))
            y = np.concatenate((y, new_y))
            order = np.argsort(x)
            x, y = x[order], y[order]
        return x, y

    def build(self, name: str = "", verbose: bool = False) -> Interpolant1D:
        inner = sorted(b for b in self.breakpoints if self.x_min < b < self.x_max)
        x, breaks = _segmented_nodes(self.nodes, [self.x_min] + inner + [self.x_max],
                                     self.order, self.is_log)
        break_x = {x[i] for i in breaks}
        if self.cumulative:
            return self._interpolant(x, self._cumulative(x, name, verbose), break_x)

        y = np.array([self.function(xi) for xi in
                      tqdm(x, desc=f"Building {name}", disable=not verbose,
                           leave=False)], dtype=np.float64)
        x, y, break_x = self._split_at_zeros(x, y, break_x)
        if self.refine:
            x, y = self._refine(x, y, break_x, name)
        return self._interpolant(x, y, break_x)


@dataclass(frozen=True)
class Table2DDefinition:
    """
    Recipe for a 2D table of rows.

    Attributes:
        nodes_x: Number of x nodes
        x_min, x_max: Domain along x
        t: Column coordinates shared by all rows
        row_function: Maps x to the row (array of len(t))
        order: Interpolation order across x
        is_log: Log-spaced x nodes
        order_y: Inverse interpolation order within a row
        rational_y: Rational inverse interpolation
    """
    nodes_x: int
    x_min: float
    x_max: float
    t: Tuple[float, ...]
    row_function: Callable[[float], np.ndarray]
    order: int = 5
    is_log: bool = True
    order_y: int = 5
    rational_y: bool = False

    def fingerprint_parts(self) -> Tuple:
        return ("table2d", self.nodes_x, self.x_min, self.x_max, tuple(self.t),
                self.order, self.is_log, self.order_y, self.rational_y)

    def build(self, name: str = "", verbose: bool = False) -> Interpolant2D:
        x = _nodes(self.nodes_x, self.x_min, self.x_max, self.is_log)
        rows = np.array([self.row_function(xi) for xi in
                         tqdm(x, desc=f"Building {name}", disable=not verbose,
                              leave=False)])
        return Interpolant2D(x, self.t, rows, order=self.order,
                             is_log=self.is_log, order_y=self.order_y,
                             rational_y=self.rational_y)
