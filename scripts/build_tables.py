"""
Pre-build the interpolation tables of a propagation configuration.

Reads a YAML config (see examples/config/muon_water.yaml), builds every
cross-section and utility table for the given particle, medium and cuts
and writes them to the configured table directory. Later runs with the
same configuration load the tables instead of rebuilding them.

Usage:
    python scripts/build_tables.py examples/config/muon_water.yaml mu- water
"""

import logging
import sys
import time
from pathlib import Path

# Add parent directory to path to import eloss_mc
sys.path.insert(0, str(Path(__file__).parent.parent))

from eloss_mc import configure_logging
from eloss_mc.core.config import load_config
from eloss_mc.core.cuts import EnergyCutSettings
from eloss_mc.core.medium import get_medium
from eloss_mc.core.particle import get_particle_def
from eloss_mc.numerics.cache import TableCache
from eloss_mc.physics.factory import build_registries
from eloss_mc.transport.propagation import PropagationUtility


def build_tables(config_path, particle_name='mu-', medium_name='water',
                 ecut=500.0, vcut=0.05):
    """Build and persist all tables of one configuration."""
    processes, interpolation_def = load_config(config_path)
    if interpolation_def is None:
        print(f"Error: {config_path} has no 'interpolation' section")
        return None
    if interpolation_def.path_to_tables is None:
        print(f"Warning: no path_to_tables in {config_path}, tables stay in memory")

    particle = get_particle_def(particle_name)
    medium = get_medium(medium_name)
    cuts = EnergyCutSettings(ecut, vcut)
    cache = TableCache.from_interpolation_def(interpolation_def)

    print(f"Building tables for {particle.name} in {medium.name} "
          f"(ecut={cuts.ecut}, vcut={cuts.vcut})")
    start = time.time()
    utility = PropagationUtility.from_definitions(
        particle, medium, cuts, processes, build_registries(),
        interpolation_def=interpolation_def, cache=cache)
    elapsed = time.time() - start

    print(f"  {len(cache)} tables ready in {elapsed:.1f}s")
    if interpolation_def.path_to_tables:
        print(f"  Directory: {interpolation_def.path_to_tables}")
    return utility


if __name__ == "__main__":
    configure_logging(logging.INFO)
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    build_tables(*sys.argv[1:4])
