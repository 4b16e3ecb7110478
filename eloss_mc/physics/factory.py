"""
Parametrization registries.

Every process family has a registry mapping case-insensitive names and
enum members to constructors. Registries are built explicitly by
build_registries() and treated as read-only afterwards; there is no
module-level mutable state.

Usage:
    registries = build_registries()
    cross = registries.ionization.create(
        "IonizBetheBlochRossi", particle, medium, cuts,
        interpolation_def=InterpolationDef())
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type, Union

from eloss_mc.core.config import IntegrationSettings, InterpolationDef, ProcessDefinition
from eloss_mc.core.cuts import EnergyCutSettings
from eloss_mc.core.errors import ConfigurationError, log_fatal
from eloss_mc.core.medium import Medium
from eloss_mc.core.particle import ParticleDefinition
from eloss_mc.numerics.cache import TableCache
from eloss_mc.physics import bremsstrahlung, epair, ionization, photonuclear, photopair, weak
from eloss_mc.physics.crosssection import (
    CrossSection,
    CrossSectionIntegral,
    CrossSectionInterpolant,
)
from eloss_mc.physics.parametrization import Parametrization

logger = logging.getLogger(__name__)

Key = Union[str, Enum]


class ParametrizationRegistry:
    """
    Name and enum lookup of the constructors of one family.

    Parameters:
        family: Family name, e.g. 'bremsstrahlung'
        enum_cls: Enum whose members identify the family's entries
    """

    def __init__(self, family: str, enum_cls: Type[Enum]):
        self.family = family
        self.enum_cls = enum_cls
        self._constructors: Dict[Enum, Callable[..., Any]] = {}
        self._enums: Dict[str, Enum] = {}
        self._names: Dict[Enum, str] = {}

    def register(self, name: str, enum_member: Enum,
                 constructor: Callable[..., Any]) -> None:
        if not isinstance(enum_member, self.enum_cls):
            log_fatal(logger, ConfigurationError,
                      "%s is not a member of %s", enum_member, self.enum_cls.__name__)
        self._enums[name.lower()] = enum_member
        self._names[enum_member] = name
        self._constructors[enum_member] = constructor

    def names(self) -> List[str]:
        return sorted(self._names.values())

    def __contains__(self, key: Key) -> bool:
        if isinstance(key, Enum):
            return key in self._constructors
        return str(key).lower() in self._enums

    def get_enum(self, name: Key) -> Enum:
        """Enum member registered under name (case-insensitive)."""
        if isinstance(name, Enum):
            if name not in self._constructors:
                log_fatal(logger, ConfigurationError,
                          "%s is not registered for family '%s'", name, self.family)
            return name
        member = self._enums.get(str(name).lower())
        if member is None:
            log_fatal(logger, ConfigurationError,
                      "Parametrization '%s' not registered for family '%s'. "
                      "Available: %s", name, self.family, self.names())
        return member

    def get_name(self, member: Key) -> str:
        """Registered display name of an enum member."""
        return self._names[self.get_enum(member)]

    def constructor(self, key: Key) -> Callable[..., Any]:
        return self._constructors[self.get_enum(key)]

    def create_parametrization(self, key: Key, particle: ParticleDefinition,
                               medium: Medium, cuts: EnergyCutSettings,
                               multiplier: float = 1.0, **options) -> Any:
        """
        Instantiate a registered entry.

        Unknown options are a configuration error.
        """
        constructor = self.constructor(key)
        try:
            return constructor(particle, medium, cuts, multiplier, **options)
        except TypeError as e:
            log_fatal(logger, ConfigurationError,
                      "Invalid options %s for '%s': %s",
                      options, self.get_name(key), e)

    @staticmethod
    def create_cross_section(parametrization: Parametrization,
                             interpolation_def: Optional[InterpolationDef] = None,
                             cache: Optional[TableCache] = None,
                             integration: IntegrationSettings = IntegrationSettings()
                             ) -> CrossSection:
        """Interpolant cross section when a definition is given, integral otherwise."""
        if interpolation_def is None:
            return CrossSectionIntegral(parametrization, integration)
        return CrossSectionInterpolant(parametrization, interpolation_def, cache)

    def create(self, key: Key, particle: ParticleDefinition, medium: Medium,
               cuts: EnergyCutSettings, multiplier: float = 1.0,
               options: Optional[Dict[str, Any]] = None,
               interpolation_def: Optional[InterpolationDef] = None,
               cache: Optional[TableCache] = None) -> CrossSection:
        param = self.create_parametrization(key, particle, medium, cuts,
                                            multiplier, **(options or {}))
        return self.create_cross_section(param, interpolation_def, cache)

    def create_from_definition(self, particle: ParticleDefinition, medium: Medium,
                               cuts: EnergyCutSettings,
                               definition: ProcessDefinition,
                               interpolation_def: Optional[InterpolationDef] = None,
                               cache: Optional[TableCache] = None) -> CrossSection:
        return self.create(definition.parametrization, particle, medium, cuts,
                           definition.multiplier, definition.options,
                           interpolation_def, cache)

    def __repr__(self) -> str:
        return f"ParametrizationRegistry({self.family!r}, {self.names()})"


class PhotoAngleRegistry(ParametrizationRegistry):
    """Registry of pair emission angle distributions."""

    def create_distribution(self, key: Key, particle: ParticleDefinition,
                            medium: Medium):
        return self.constructor(key)(particle, medium)


@dataclass(frozen=True)
class Registries:
    """All registries of one engine instance."""
    ionization: ParametrizationRegistry
    bremsstrahlung: ParametrizationRegistry
    epair: ParametrizationRegistry
    photonuclear: ParametrizationRegistry
    photopair: ParametrizationRegistry
    weak: ParametrizationRegistry
    photoangle: PhotoAngleRegistry

    FAMILIES = ("ionization", "bremsstrahlung", "epair", "photonuclear",
                "photopair", "weak")

    def family(self, name: str) -> ParametrizationRegistry:
        if name.lower() not in self.FAMILIES:
            log_fatal(logger, ConfigurationError,
                      "Unknown process family '%s'. Available: %s",
                      name, list(self.FAMILIES))
        return getattr(self, name.lower())

    def create_from_definition(self, particle: ParticleDefinition, medium: Medium,
                               cuts: EnergyCutSettings,
                               definition: ProcessDefinition,
                               interpolation_def: Optional[InterpolationDef] = None,
                               cache: Optional[TableCache] = None) -> CrossSection:
        registry = self.family(definition.family)
        cross = registry.create_from_definition(particle, medium, cuts, definition,
                                                interpolation_def, cache)
        if registry is self.photopair:
            self.photoangle.get_enum(cross.parametrization.photoangle)
        return cross

    def create_photo_angle(self, parametrization: photopair.PhotoPairTsai):
        """Angle distribution selected by a photo pair parametrization."""
        return self.photoangle.create_distribution(
            parametrization.photoangle, parametrization.particle,
            parametrization.medium)


def build_registries() -> Registries:
    """Create and populate a fresh set of registries."""
    ionization_registry = ParametrizationRegistry(
        "ionization", ionization.IonizationParametrization)
    ionization_registry.register(
        "IonizBetheBlochRossi",
        ionization.IonizationParametrization.BETHE_BLOCH_ROSSI,
        ionization.IonizBetheBlochRossi)

    brems_registry = ParametrizationRegistry(
        "bremsstrahlung", bremsstrahlung.BremsParametrization)
    brems_registry.register(
        "BremsPetrukhinShestakov",
        bremsstrahlung.BremsParametrization.PETRUKHIN_SHESTAKOV,
        bremsstrahlung.BremsPetrukhinShestakov)
    brems_registry.register(
        "BremsCompleteScreening",
        bremsstrahlung.BremsParametrization.COMPLETE_SCREENING,
        bremsstrahlung.BremsCompleteScreening)

    epair_registry = ParametrizationRegistry("epair", epair.EpairParametrization)
    epair_registry.register(
        "EpairKokoulinPetrukhin",
        epair.EpairParametrization.KOKOULIN_PETRUKHIN,
        epair.EpairKokoulinPetrukhin)

    photonuclear_registry = ParametrizationRegistry(
        "photonuclear", photonuclear.PhotonuclearParametrization)
    photonuclear_registry.register(
        "PhotoBezrukovBugaev",
        photonuclear.PhotonuclearParametrization.BEZRUKOV_BUGAEV,
        photonuclear.PhotoBezrukovBugaev)
    photonuclear_registry.register(
        "PhotoKokoulin",
        photonuclear.PhotonuclearParametrization.KOKOULIN,
        photonuclear.PhotoKokoulin)
    photonuclear_registry.register(
        "PhotoZeus",
        photonuclear.PhotonuclearParametrization.ZEUS,
        photonuclear.PhotoZeus)

    photopair_registry = ParametrizationRegistry(
        "photopair", photopair.PhotoPairParametrization)
    photopair_registry.register(
        "PhotoPairTsai",
        photopair.PhotoPairParametrization.TSAI,
        photopair.PhotoPairTsai)

    weak_registry = ParametrizationRegistry("weak", weak.WeakParametrization)
    weak_registry.register(
        "WeakCooperSarkarMertsch",
        weak.WeakParametrization.COOPER_SARKAR_MERTSCH,
        weak.WeakCooperSarkarMertsch)

    angles = PhotoAngleRegistry("photoangle", photopair.PhotoAngleDistribution)
    angles.register("PhotoAngleNoDeflection",
                    photopair.PhotoAngleDistribution.NO_DEFLECTION,
                    photopair.PhotoAngleNoDeflection)
    angles.register("PhotoAngleEGS",
                    photopair.PhotoAngleDistribution.EGS,
                    photopair.PhotoAngleEGS)

    registries = Registries(
        ionization=ionization_registry,
        bremsstrahlung=brems_registry,
        epair=epair_registry,
        photonuclear=photonuclear_registry,
        photopair=photopair_registry,
        weak=weak_registry,
        photoangle=angles,
    )
    logger.debug("Built registries for families %s", list(Registries.FAMILIES))
    return registries
