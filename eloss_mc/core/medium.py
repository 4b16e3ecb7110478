"""
Media and their atomic components.

A medium is an immutable, ordered, non-empty set of components. The
number density of each component weights the per-atom cross sections
when they are summed into macroscopic quantities.

References:
    - PDG Atomic and Nuclear Properties of Materials
    - Sternheimer, Berger, Seltzer, ADNDT 30, 261 (1984)
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from eloss_mc.core import constants as const
from eloss_mc.core.errors import ConfigurationError, log_fatal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Component:
    """
    One atomic species of a medium.

    Attributes:
        name: Element symbol
        atomic_number: Z
        atomic_mass: A [g/mol]
        atoms_in_molecule: Number of atoms of this species per molecule
    """
    name: str
    atomic_number: float
    atomic_mass: float
    atoms_in_molecule: float = 1.0

    def fingerprint_parts(self) -> Tuple:
        return (self.name, self.atomic_number, self.atomic_mass,
                self.atoms_in_molecule)


@dataclass(frozen=True)
class Medium:
    """
    Homogeneous medium.

    Attributes:
        name: Medium name
        mass_density: Density [g/cm^3]
        components: Atomic components (non-empty)
        ionization_potential: Mean excitation energy I [eV]
        radiation_length: X0 [cm]
    """
    name: str
    mass_density: float
    components: Tuple[Component, ...]
    ionization_potential: float
    radiation_length: float

    def __post_init__(self):
        if len(self.components) == 0:
            log_fatal(logger, ConfigurationError,
                      "Medium '%s' has no components", self.name)
        if not self.mass_density > 0:
            log_fatal(logger, ConfigurationError,
                      "Medium '%s' has invalid density %g",
                      self.name, self.mass_density)
        if not self.radiation_length > 0:
            log_fatal(logger, ConfigurationError,
                      "Medium '%s' has invalid radiation length %g",
                      self.name, self.radiation_length)
        object.__setattr__(self, "components", tuple(self.components))

    @property
    def molar_mass(self) -> float:
        """Mass of one mole of molecules [g/mol]."""
        return sum(c.atoms_in_molecule * c.atomic_mass for c in self.components)

    @property
    def molecule_density(self) -> float:
        """Molecules per cm^3."""
        return self.mass_density * const.NA / self.molar_mass

    @property
    def number_densities(self) -> np.ndarray:
        """Atoms per cm^3 of each component."""
        return np.array([c.atoms_in_molecule for c in self.components]) \
            * self.molecule_density

    @property
    def mass_fractions(self) -> np.ndarray:
        weights = np.array([c.atoms_in_molecule * c.atomic_mass
                            for c in self.components])
        return weights / weights.sum()

    @property
    def sum_charge(self) -> float:
        """Electrons per molecule."""
        return sum(c.atoms_in_molecule * c.atomic_number for c in self.components)

    @property
    def ionization_potential_MeV(self) -> float:
        return self.ionization_potential * 1e-6

    def fingerprint_parts(self) -> Tuple:
        return ("medium", self.name, self.mass_density, self.ionization_potential,
                self.radiation_length,
                tuple(c.fingerprint_parts() for c in self.components))


# Material properties database
MEDIA = {
    'water': Medium(
        "water", 1.0,
        (Component("H", 1.0, 1.00794, 2.0), Component("O", 8.0, 15.9994, 1.0)),
        ionization_potential=75.0,
        radiation_length=36.08,
    ),
    'ice': Medium(
        "ice", 0.917,
        (Component("H", 1.0, 1.00794, 2.0), Component("O", 8.0, 15.9994, 1.0)),
        ionization_potential=75.0,
        radiation_length=39.35,
    ),
    'standardrock': Medium(
        "standardrock", 2.65,
        (Component("StandardRock", 11.0, 22.0, 1.0),),
        ionization_potential=136.4,
        radiation_length=10.02,
    ),
    'iron': Medium(
        "iron", 7.874,
        (Component("Fe", 26.0, 55.845, 1.0),),
        ionization_potential=286.0,
        radiation_length=1.757,
    ),
    'hydrogen': Medium(
        "hydrogen", 0.0708,
        (Component("H", 1.0, 1.00794, 2.0),),
        ionization_potential=21.8,
        radiation_length=890.4,
    ),
    'air': Medium(
        "air", 1.205e-3,
        (Component("N", 7.0, 14.0067, 1.5617),
         Component("O", 8.0, 15.9994, 0.4196),
         Component("Ar", 18.0, 39.948, 0.0093)),
        ionization_potential=85.7,
        radiation_length=30390.0,
    ),
}


def get_medium(name: str) -> Medium:
    """
    Look up a standard medium.

    Parameters:
        name: Medium name (see MEDIA dict, case-insensitive)

    Returns:
        Medium
    """
    medium = MEDIA.get(name.lower())
    if medium is None:
        log_fatal(logger, ConfigurationError,
                  "Unknown medium '%s'. Available: %s", name, list(MEDIA.keys()))
    return medium
