"""
Numba-compiled interpolation kernels.

All kernels work on small contiguous windows of table nodes (the local
interpolation order, typically 5 points) and are called once per lookup.

References:
    - Press et al., Numerical Recipes, 3rd ed., sections 3.2 and 3.4
"""

import numpy as np
import numba


@numba.njit(cache=True)
def polynomial_interpolate(xs: np.ndarray, ys: np.ndarray, x: float) -> float:
    """
    Neville's algorithm.

    Evaluates the unique polynomial of degree len(xs)-1 through the nodes.

    Parameters:
        xs: Node abscissae (distinct)
        ys: Node values
        x: Evaluation point

    Returns:
        Interpolated value
    """
    n = xs.shape[0]
    p = ys.copy()
    for m in range(1, n):
        for i in range(n - m):
            p[i] = ((x - xs[i + m]) * p[i] + (xs[i] - x) * p[i + 1]) \
                / (xs[i] - xs[i + m])
    return p[0]


@numba.njit(cache=True)
def rational_interpolate(xs: np.ndarray, ys: np.ndarray, x: float) -> float:
    """
    Bulirsch-Stoer diagonal rational interpolation.

    Returns NaN when the rational function has a pole at x; the caller
    falls back to polynomial interpolation in that case.
    """
    tiny = 1e-25
    n = xs.shape[0]
    c = np.empty(n)
    d = np.empty(n)

    ns = 0
    hh = abs(x - xs[0])
    for i in range(n):
        h = abs(x - xs[i])
        if h == 0.0:
            return ys[i]
        if h < hh:
            ns = i
            hh = h
        c[i] = ys[i]
        d[i] = ys[i] + tiny

    y = ys[ns]
    ns -= 1
    for m in range(1, n):
        for i in range(n - m):
            w = c[i + 1] - d[i]
            h = xs[i + m] - x
            t = (xs[i] - x) * d[i] / h
            dd = t - c[i + 1]
            if dd == 0.0:
                return np.nan
            dd = w / dd
            d[i] = c[i + 1] * dd
            c[i] = t * dd
        if 2 * (ns + 1) < n - m:
            y += c[ns + 1]
        else:
            y += d[ns]
            ns -= 1
    return y


@numba.njit(cache=True)
def lagrange_weights(xs: np.ndarray, x: float) -> np.ndarray:
    """
    Weights w with sum(w * ys) equal to the interpolating polynomial at x.

    Used to interpolate whole table rows at once.
    """
    n = xs.shape[0]
    w = np.ones(n)
    for j in range(n):
        if x == xs[j]:
            w[:] = 0.0
            w[j] = 1.0
            return w
    for j in range(n):
        for k in range(n):
            if k != j:
                w[j] *= (x - xs[k]) / (xs[j] - xs[k])
    return w


@numba.njit(cache=True)
def window_start(xs: np.ndarray, x: float, order: int) -> int:
    """
    First index of the `order`-point window centred on x.

    Binary search for the interval, clipped to the table so edge lookups
    (and extrapolation) use the outermost window.
    """
    n = xs.shape[0]
    i = np.searchsorted(xs, x)
    start = i - order // 2
    if start < 0:
        start = 0
    if start > n - order:
        start = n - order
    return start
