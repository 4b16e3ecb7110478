"""Numerics module: quadrature, interpolation tables, fingerprints and table cache."""

from eloss_mc.numerics.integral import Integral, cumulative_gauss_legendre
from eloss_mc.numerics.interpolant import (
    Interpolant1D,
    Interpolant2D,
    TableDefinition,
    Table2DDefinition,
)
from eloss_mc.numerics.cache import TableCache, fingerprint, save_table, load_table

__all__ = [
    "Integral",
    "cumulative_gauss_legendre",
    "Interpolant1D",
    "Interpolant2D",
    "TableDefinition",
    "Table2DDefinition",
    "TableCache",
    "fingerprint",
    "save_table",
    "load_table",
]
