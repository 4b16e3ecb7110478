"""
Muon Range - Simple Example

Propagates muons through a homogeneous medium with continuous losses,
stochastic interactions, continuous randomization and decay, and
reports the distribution of ranges.

Expected results for 100 GeV muons in water:
    - Mean range of a few hundred metres
    - Spread of several tens of percent from stochastic losses
"""

import sys
from pathlib import Path

import numpy as np
from tqdm import tqdm

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from eloss_mc import configure_logging
from eloss_mc.core.config import InterpolationDef, ProcessDefinition
from eloss_mc.core.cuts import EnergyCutSettings
from eloss_mc.core.medium import get_medium
from eloss_mc.core.particle import MU_MINUS
from eloss_mc.transport.propagation import PropagationUtility

PROCESSES = [
    ProcessDefinition("ionization", "IonizBetheBlochRossi"),
    ProcessDefinition("bremsstrahlung", "BremsPetrukhinShestakov"),
    ProcessDefinition("epair", "EpairKokoulinPetrukhin"),
    ProcessDefinition("photonuclear", "PhotoBezrukovBugaev"),
]


def propagate(utility, energy, rng, max_distance=np.inf):
    """
    Propagate one muon until it stops, decays or reaches max_distance.

    Returns:
        (distance [cm], final energy [MeV], number of stochastic losses)
    """
    distance = 0.0
    n_losses = 0
    direction = np.array([0.0, 0.0, 1.0])

    while energy > utility.lower_lim:
        e_interaction = utility.energy_interaction(energy, rng.random() or 1.0)
        e_decay = utility.energy_decay(energy, rng.random() or 1.0)
        ef = max(e_interaction, e_decay)

        step = utility.length_continuous(energy, ef)
        if distance + step > max_distance:
            return max_distance, energy, n_losses

        ef = utility.energy_randomize(energy, ef, rng.random())
        _, direction = utility.scatter(step, energy, ef, direction, rng.random(4))
        distance += step
        energy = ef

        if e_decay >= e_interaction or energy <= utility.lower_lim:
            break

        _, loss = utility.energy_stochasticloss(energy, rng.random(), rng.random(),
                                                rng.random())
        energy -= loss
        n_losses += 1

    return distance, energy, n_losses


def simulate_ranges(energy=1e5, n_muons=100, medium='water', seed=1234):
    print(f"\n{'='*70}")
    print("Muon Range Simulation")
    print(f"{'='*70}")
    print(f"  Energy: {energy:g} MeV")
    print(f"  Medium: {medium}")
    print(f"  Muons: {n_muons:,}")
    print(f"{'='*70}\n")

    utility = PropagationUtility.from_definitions(
        MU_MINUS, get_medium(medium), EnergyCutSettings(500, 0.05), PROCESSES,
        interpolation_def=InterpolationDef(path_to_tables="/tmp/eloss_tables",
                                           verbose=True),
        lower_lim=1e3)

    csda = utility.length_continuous(energy, utility.lower_lim)
    print(f"  Continuous-loss range: {csda / 100:.1f} m")

    rng = np.random.default_rng(seed)
    ranges = np.array([propagate(utility, energy, rng)[0]
                       for _ in tqdm(range(n_muons), desc="Propagating")])

    print(f"\n  Mean range: {ranges.mean() / 100:.1f} m")
    print(f"  Std dev:    {ranges.std() / 100:.1f} m")
    print(f"  Min / max:  {ranges.min() / 100:.1f} / {ranges.max() / 100:.1f} m")
    return ranges


if __name__ == "__main__":
    configure_logging()
    simulate_ranges()
