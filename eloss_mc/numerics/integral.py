"""
Quadrature and inverse-CDF root finding.

Cross sections of energy-loss processes span many decades in v and are
typically close to 1/v or 1/v^2 near the lower limit, so integrals over
positive ranges are done in t = ln(v) by default. Adaptive quadrature is
scipy's QUADPACK (QAGS); root finding is Brent's method.
"""

import logging
from typing import Callable

import numpy as np
from scipy import integrate, optimize

from eloss_mc.core.config import IntegrationSettings
from eloss_mc.core.errors import NumericError, log_fatal

logger = logging.getLogger(__name__)

# Allowed ratio between the QUADPACK error estimate and the requested
# relative precision before a flagged result is rejected
ERROR_TOLERANCE_FACTOR = 100.0
# Relative error accepted when QUADPACK only reports roundoff
ROUNDOFF_TOLERANCE = 1e-3
# Interior abscissae, as fractions of the range, sampled for the integrand scale
SCALE_SAMPLES = (0.1, 0.3, 0.5, 0.7, 0.9)


class Integral:
    """
    Adaptive quadrature with optional logarithmic substitution.

    Usage:
        integral = Integral(IntegrationSettings(precision=1e-6))
        value = integral.integrate(f, 1e-6, 0.5)
        x = integral.upper_limit(f, 1e-6, 0.5, 0.3 * value)
    """

    def __init__(self, settings: IntegrationSettings = IntegrationSettings()):
        self.settings = settings

    def integrate(self, f: Callable[[float], float], a: float, b: float,
                  log_substitution: bool = True) -> float:
        """
        Integral of f over [a, b].

        Parameters:
            f: Integrand
            a: Lower limit
            b: Upper limit
            log_substitution: Integrate in ln(x) when a > 0

        Returns:
            Integral value (0 for an empty interval)
        """
        if b <= a:
            return 0.0

        if log_substitution and a > 0:
            def g(t):
                x = np.exp(t)
                return f(x) * x
            lo, hi = np.log(a), np.log(b)
        else:
            g = f
            lo, hi = a, b

        # QUADPACK works on order-one numbers; cross sections can be ~1e-50
        scale = _scale(g, lo, hi)

        result = integrate.quad(
            lambda t: g(t) / scale, lo, hi,
            epsabs=0.0,
            epsrel=self.settings.precision,
            limit=self.settings.max_subdivisions,
            full_output=1,
        )
        value, abserr = result[0] * scale, result[1] * scale

        if not np.isfinite(value):
            log_fatal(logger, NumericError,
                      "Quadrature over [%g, %g] returned %s", a, b, value)

        # A fourth element is only returned for a non-zero ier
        if len(result) > 3 and not self._acceptable(value, abserr, result[3]):
            log_fatal(logger, NumericError,
                      "Quadrature over [%g, %g] did not converge: value=%g, "
                      "error=%g. %s", a, b, value, abserr, result[3])
        return float(value)

    def _acceptable(self, value: float, abserr: float, message: str) -> bool:
        """Whether a result flagged by QUADPACK is still within tolerance."""
        if abserr <= np.finfo(float).tiny:
            return True
        if "roundoff" in str(message).lower():
            tolerance = ROUNDOFF_TOLERANCE
        else:
            tolerance = ERROR_TOLERANCE_FACTOR * self.settings.precision
        if abserr > tolerance * abs(value):
            return False
        logger.debug("Accepting flagged quadrature: value=%g, error=%g (%s)",
                     value, abserr, str(message).splitlines()[0] if message else "")
        return True

    def upper_limit(self, f: Callable[[float], float], a: float, b: float,
                    target: float, log_substitution: bool = True,
                    total: float = None) -> float:
        """
        Solve ∫_a^x f = target for x in [a, b].

        Parameters:
            f: Non-negative integrand
            a: Lower limit
            b: Upper limit of the search range
            target: Integral value to reach
            log_substitution: Search and integrate in ln(x) when a > 0
            total: Precomputed ∫_a^b f, saves one quadrature

        Returns:
            x; b when target is at or beyond the full integral
        """
        if b <= a or target <= 0:
            return a

        if total is None:
            total = self.integrate(f, a, b, log_substitution)
        if target >= total:
            return b

        use_log = log_substitution and a > 0

        def residual(s):
            x = np.exp(s) if use_log else s
            return self.integrate(f, a, x, log_substitution) - target

        lo, hi = (np.log(a), np.log(b)) if use_log else (a, b)
        try:
            root = optimize.brentq(residual, lo, hi,
                                   xtol=1e-12 * max(abs(lo), abs(hi), 1.0),
                                   rtol=4 * np.finfo(float).eps + self.settings.precision,
                                   maxiter=200)
        except (ValueError, RuntimeError) as e:
            log_fatal(logger, NumericError,
                      "Root finding on [%g, %g] for target %g failed: %s",
                      a, b, target, e)
        return float(np.exp(root)) if use_log else float(root)


def _scale(g: Callable[[float], float], lo: float, hi: float) -> float:
    """Largest |g| over a few interior points, 1 when that is zero or not finite."""
    samples = [abs(g(lo + frac * (hi - lo))) for frac in SCALE_SAMPLES]
    samples = [s for s in samples if np.isfinite(s)]
    scale = max(samples) if samples else 0.0
    return float(scale) if scale > 0 else 1.0


_GAUSS_LEGENDRE = {}


def gauss_legendre(points: int):
    """Cached Gauss-Legendre nodes and weights on [-1, 1]."""
    if points not in _GAUSS_LEGENDRE:
        _GAUSS_LEGENDRE[points] = np.polynomial.legendre.leggauss(points)
    return _GAUSS_LEGENDRE[points]


def cumulative_gauss_legendre(f: Callable[[np.ndarray], np.ndarray],
                              nodes: np.ndarray, points: int = 8) -> np.ndarray:
    """
    Cumulative integral of a vectorised integrand at every node.

    Parameters:
        f: Integrand accepting numpy arrays
        nodes: Increasing abscissae
        points: Gauss-Legendre points per node interval

    Returns:
        Array c with c[0] = 0 and c[j] = ∫_{nodes[0]}^{nodes[j]} f
    """
    x, w = gauss_legendre(points)
    half = 0.5 * np.diff(nodes)
    mid = 0.5 * (nodes[1:] + nodes[:-1])
    samples = mid[:, None] + half[:, None] * x[None, :]
    values = np.asarray(f(samples), dtype=float)
    segments = half * (values * w[None, :]).sum(axis=1)
    return np.concatenate(([0.0], np.cumsum(segments)))
