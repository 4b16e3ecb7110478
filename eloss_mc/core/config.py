"""
Configuration objects.

InterpolationDef selects the interpolation strategy: passing one to a
factory builds table-based evaluators, passing None selects direct
integration. Process definitions describe which parametrization of
which family is active, with its multiplier and options.

YAML layout understood by load_config():

    interpolation:
      order_of_interpolation: 5
      max_node_energy: 1.0e14
      nodes_cross_section: 100
      path_to_tables: /tmp/eloss_tables
    processes:
      - family: ionization
        parametrization: IonizBetheBlochRossi
      - family: photonuclear
        parametrization: PhotoBezrukovBugaev
        multiplier: 1.0
        options:
          shadowing: true
"""

import logging
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from eloss_mc.core.constants import IPREC
from eloss_mc.core.errors import ConfigurationError, log_fatal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntegrationSettings:
    """
    Quadrature settings of the direct-integration strategy.

    Attributes:
        precision: Relative precision requested from adaptive quadrature
        max_subdivisions: Subinterval limit of the adaptive quadrature
    """
    precision: float = IPREC
    max_subdivisions: int = 200

    def fingerprint_parts(self) -> Tuple:
        return ("integration", self.precision, self.max_subdivisions)


@dataclass(frozen=True)
class InterpolationDef:
    """
    Interpolation table settings.

    Attributes:
        order_of_interpolation: Number of nodes of the local interpolation
        max_node_energy: Upper energy bound of every table [MeV]
        nodes_cross_section: Energy nodes of cross-section tables (and
            v nodes of the sampling tables)
        nodes_continuous_randomization: Energy nodes of the dE2dx and
            continuous randomization tables
        nodes_propagate: Energy nodes of the propagation utility tables
        path_to_tables: Directory where built tables are written and read
        readonly_paths: Extra directories searched for existing tables
        save_tables: Write newly built tables to path_to_tables
        verbose: Show a progress bar while building tables
    """
    order_of_interpolation: int = 5
    max_node_energy: float = 1e14
    nodes_cross_section: int = 100
    nodes_continuous_randomization: int = 200
    nodes_propagate: int = 1000
    path_to_tables: Optional[str] = None
    readonly_paths: Tuple[str, ...] = ()
    save_tables: bool = True
    verbose: bool = False

    def __post_init__(self):
        if self.order_of_interpolation < 2:
            log_fatal(logger, ConfigurationError,
                      "order_of_interpolation must be >= 2, got %d",
                      self.order_of_interpolation)
        for name in ("nodes_cross_section", "nodes_continuous_randomization",
                     "nodes_propagate"):
            if getattr(self, name) < self.order_of_interpolation:
                log_fatal(logger, ConfigurationError,
                          "%s=%d is smaller than the interpolation order %d",
                          name, getattr(self, name), self.order_of_interpolation)
        object.__setattr__(self, "readonly_paths", tuple(self.readonly_paths))

    def fingerprint_parts(self) -> Tuple:
        # Storage locations do not change table contents
        return ("interpolation", self.order_of_interpolation, self.max_node_energy,
                self.nodes_cross_section, self.nodes_continuous_randomization,
                self.nodes_propagate)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InterpolationDef":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            log_fatal(logger, ConfigurationError,
                      "Unknown interpolation options: %s", sorted(unknown))
        return cls(**data)

    @classmethod
    def from_yaml(cls, path) -> "InterpolationDef":
        data = _read_yaml(path)
        return cls.from_dict(data.get("interpolation", data))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["readonly_paths"] = list(self.readonly_paths)
        return data


@dataclass(frozen=True)
class ProcessDefinition:
    """
    One active process.

    Attributes:
        family: Registry family, e.g. 'ionization' or 'photonuclear'
        parametrization: Registered name or enum member
        multiplier: Scale factor; <= 0 disables the process
        options: Process-specific options passed to the constructor
    """
    family: str
    parametrization: Any
    multiplier: float = 1.0
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProcessDefinition":
        try:
            return cls(
                family=str(data["family"]).lower(),
                parametrization=data["parametrization"],
                multiplier=float(data.get("multiplier", 1.0)),
                options=dict(data.get("options") or {}),
            )
        except KeyError as e:
            log_fatal(logger, ConfigurationError,
                      "Process definition %s is missing key %s", data, e)


def _read_yaml(path) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        log_fatal(logger, ConfigurationError, "Config file not found: %s", path)

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        log_fatal(logger, ConfigurationError,
                  "Config file %s must contain a mapping", path)
    return data


def load_process_definitions(path) -> List[ProcessDefinition]:
    """Read the 'processes' list of a YAML config file."""
    data = _read_yaml(path)
    if "processes" not in data:
        log_fatal(logger, ConfigurationError,
                  "Config file %s must contain a 'processes' key", path)
    return [ProcessDefinition.from_dict(entry) for entry in data["processes"]]


def load_config(path) -> Tuple[List[ProcessDefinition], Optional[InterpolationDef]]:
    """
    Read processes and (optionally) interpolation settings.

    Returns:
        (process definitions, InterpolationDef or None when the file has
        no 'interpolation' section, which selects direct integration)
    """
    data = _read_yaml(path)
    processes = load_process_definitions(path)
    interpolation = data.get("interpolation")
    if interpolation is None:
        return processes, None
    return processes, InterpolationDef.from_dict(interpolation)


def save_config(path, processes: List[ProcessDefinition],
                interpolation_def: Optional[InterpolationDef] = None) -> None:
    """Write a config file readable by load_config()."""
    data: Dict[str, Any] = {
        "processes": [
            {
                "family": p.family,
                "parametrization": getattr(p.parametrization, "value", p.parametrization),
                "multiplier": p.multiplier,
                "options": dict(p.options),
            }
            for p in processes
        ],
    }
    if interpolation_def is not None:
        data["interpolation"] = interpolation_def.to_dict()

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
