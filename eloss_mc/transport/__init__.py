"""Transport module: propagation utilities for Monte Carlo steppers."""

from eloss_mc.transport.utility import (
    UtilityIntegral,
    UtilityInterpolant,
    make_integrand,
    make_utility,
)
from eloss_mc.transport.propagation import PropagationUtility

__all__ = [
    "UtilityIntegral",
    "UtilityInterpolant",
    "make_integrand",
    "make_utility",
    "PropagationUtility",
]
