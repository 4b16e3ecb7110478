"""
Multiple Coulomb scattering.

Highland theory for small-angle scattering, generalised to a particle
losing energy along the step: the (βp)^-2 factor of the Highland width is
replaced by its path integral, provided by the scattering utility.

References:
    - Highland, NIM 129, 497 (1975)
    - Lynch, Dahl, NIM B 58, 6 (1991)
    - PDG Review of Particle Physics (Passage of particles through matter)
"""

import logging
from typing import Sequence, Tuple

import numba
import numpy as np
from scipy import special

from eloss_mc.core.constants import HIGHLAND_CONSTANT
from eloss_mc.core.errors import InvariantViolation, log_fatal
from eloss_mc.core.medium import Medium
from eloss_mc.core.particle import ParticleDefinition

logger = logging.getLogger(__name__)

# Smallest and largest uniform draw passed to the inverse normal CDF
RND_EPSILON = 1e-15


@numba.njit(fastmath=True, cache=True)
def highland_angle(scattering_integral: float, charge: float,
                   distance: float, radiation_length: float) -> float:
    """
    Width of the projected angular distribution.

    θ0 = 13.6 MeV |z| sqrt(S / X0) [1 + 0.038 ln(x / X0)]

    Parameters:
        scattering_integral: S = ∫ dx / (βp)^2 along the step [cm/MeV^2]
        charge: Particle charge [e]
        distance: Step length x [cm]
        radiation_length: X0 of the medium [cm]

    Returns:
        θ0 [radians], 0 for vanishing steps
    """
    x_over_x0 = distance / radiation_length
    if x_over_x0 <= 1e-10 or scattering_integral <= 0.0:
        return 0.0
    theta = HIGHLAND_CONSTANT * abs(charge) \
        * np.sqrt(scattering_integral / radiation_length) \
        * (1.0 + 0.038 * np.log(x_over_x0))
    return max(theta, 0.0)


@numba.njit(fastmath=True, cache=True)
def rotate_direction(direction: np.ndarray, theta: float, phi: float) -> np.ndarray:
    """
    Rotate a unit vector by polar angle theta and azimuth phi.

    Uses Rodrigues' rotation formula:
        v_rot = v*cos(θ) + (k × v)*sin(θ) + k*(k·v)*(1-cos(θ))

    where k is the axis perpendicular to v selected by phi.

    Parameters:
        direction: Unit vector [x, y, z]
        theta: Polar angle [radians]
        phi: Azimuthal angle [radians]

    Returns:
        Rotated unit vector [x, y, z]
    """
    ux, uy, uz = direction[0], direction[1], direction[2]

    if theta < 1e-15:
        return direction.copy()

    # Reference axis orthogonal to u
    if abs(uz) > 0.99:
        perp_x, perp_y, perp_z = 1.0, 0.0, 0.0
    else:
        perp_x, perp_y, perp_z = 0.0, 0.0, 1.0
    dot = perp_x * ux + perp_y * uy + perp_z * uz
    perp_x -= dot * ux
    perp_y -= dot * uy
    perp_z -= dot * uz
    norm = np.sqrt(perp_x**2 + perp_y**2 + perp_z**2)
    perp_x /= norm
    perp_y /= norm
    perp_z /= norm

    # Rotate the axis by phi around u
    cos_phi = np.cos(phi)
    sin_phi = np.sin(phi)
    axis_x = perp_x * cos_phi + (uy * perp_z - uz * perp_y) * sin_phi
    axis_y = perp_y * cos_phi + (uz * perp_x - ux * perp_z) * sin_phi
    axis_z = perp_z * cos_phi + (ux * perp_y - uy * perp_x) * sin_phi

    # Rotate u by theta around the axis
    cos_theta = np.cos(theta)
    sin_theta = np.sin(theta)
    along = axis_x * ux + axis_y * uy + axis_z * uz
    new_x = ux * cos_theta + (axis_y * uz - axis_z * uy) * sin_theta + \
        axis_x * along * (1.0 - cos_theta)
    new_y = uy * cos_theta + (axis_z * ux - axis_x * uz) * sin_theta + \
        axis_y * along * (1.0 - cos_theta)
    new_z = uz * cos_theta + (axis_x * uy - axis_y * ux) * sin_theta + \
        axis_z * along * (1.0 - cos_theta)

    norm = np.sqrt(new_x**2 + new_y**2 + new_z**2)

    result = np.empty(3, dtype=np.float64)
    result[0] = new_x / norm
    result[1] = new_y / norm
    result[2] = new_z / norm
    return result


def deflect(direction: np.ndarray, angle_x: float, angle_y: float) -> np.ndarray:
    """Apply two projected angles as one polar/azimuthal rotation."""
    theta = np.hypot(angle_x, angle_y)
    phi = np.arctan2(angle_y, angle_x)
    return rotate_direction(np.ascontiguousarray(direction, dtype=np.float64),
                            theta, phi)


def sample_projected_angles(theta0: float, rnds: Sequence[float]
                            ) -> Tuple[float, float, float, float]:
    """
    Correlated displacement and direction angles of a step.

    Four uniform draws become standard normals z1..z4; per projection the
    direction angle is z2 θ0 and the displacement angle (z1/√3 + z2) θ0/2.

    Returns:
        (sx, sy, tx, ty): displacement and direction angles [radians]
    """
    if len(rnds) != 4:
        log_fatal(logger, InvariantViolation,
                  "Scattering needs 4 random numbers, got %d", len(rnds))
    u = np.clip(np.asarray(rnds, dtype=np.float64), RND_EPSILON, 1 - RND_EPSILON)
    z1, z2, z3, z4 = special.ndtri(u)

    sx = (z1 / np.sqrt(3) + z2) * theta0 / 2
    tx = z2 * theta0
    sy = (z3 / np.sqrt(3) + z4) * theta0 / 2
    ty = z4 * theta0
    return float(sx), float(sy), float(tx), float(ty)


class ScatteringHighland:
    """
    Highland multiple scattering along a continuous-loss step.

    Parameters:
        particle: Propagated particle
        medium: Medium providing the radiation length
        utility: Scattering utility; calculate(ei, ef) returns
            ∫ (E/p²)² / ΣdEdx dE = ∫ dx / (βp)²

    Usage:
        scattering = ScatteringHighland(particle, medium, utility)
        offset, direction = scattering.scatter(10.0, 1e5, 9.9e4, direction, rnds)
    """

    def __init__(self, particle: ParticleDefinition, medium: Medium, utility):
        self.particle = particle
        self.medium = medium
        self.utility = utility

    def theta0(self, distance: float, ei: float, ef: float) -> float:
        """Highland width for a step from ei to ef of the given length."""
        integral = self.utility.calculate(ei, ef)
        return highland_angle(integral, self.particle.charge, distance,
                              self.medium.radiation_length)

    def scatter(self, distance: float, ei: float, ef: float,
                direction: np.ndarray, rnds: Sequence[float]
                ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Deflect a step.

        Parameters:
            distance: Step length [cm]
            ei: Energy at step start [MeV]
            ef: Energy at step end [MeV]
            direction: Unit direction at step start
            rnds: Four uniform draws

        Returns:
            (offset_direction, new_direction): unit vectors of the mean
            displacement over the step and of the final direction
        """
        theta0 = self.theta0(distance, ei, ef)
        sx, sy, tx, ty = sample_projected_angles(theta0, rnds)
        logger.debug("Scattering step %.4g cm: theta0=%.4g", distance, theta0)
        return deflect(direction, sx, sy), deflect(direction, tx, ty)
