"""
Sensor functions for GridBrain.

One function per SensorType; each reads the (frozen) world around a
creature and returns the raw value of its Input neuron. SENSORS maps
every SensorType to its function and is checked for completeness at
import time.
"""

from topology import SensorType
from world import Position
from config import DENSITY_RADIUS


def _loc_x(world, position, facing, rng) -> float:
    return position.x / max(1, world.width - 1)


def _loc_y(world, position, facing, rng) -> float:
    return position.y / max(1, world.height - 1)


def _wall_closeness(coord: int, size: int) -> float:
    # 0 at a wall, 1 at the centre
    return min(coord, size - 1 - coord) / max(1.0, (size - 1) / 2)


def _boundary_dist_x(world, position, facing, rng) -> float:
    return _wall_closeness(position.x, world.width)


def _boundary_dist_y(world, position, facing, rng) -> float:
    return _wall_closeness(position.y, world.height)


def _boundary_dist(world, position, facing, rng) -> float:
    return min(_boundary_dist_x(world, position, facing, rng),
               _boundary_dist_y(world, position, facing, rng))


def _population_density(world, position, facing, rng) -> float:
    side = 2 * DENSITY_RADIUS + 1
    return world.local_density(position, DENSITY_RADIUS) / (side * side - 1)


def _block_forward(world, position, facing, rng) -> float:
    ahead = Position(position.x + facing.dx, position.y + facing.dy)
    if not world.boundary.inside(ahead) or world.is_occupied(ahead):
        return 1.0
    return 0.0


def _block_left_right(world, position, facing, rng) -> float:
    for side in (facing.rotate_left(), facing.rotate_right()):
        if world.is_occupied(Position(position.x + side.dx, position.y + side.dy)):
            return 1.0
    return 0.0


def _random(world, position, facing, rng) -> float:
    return float(rng.uniform(-1.0, 1.0))


def _constant(world, position, facing, rng) -> float:
    return 1.0


SENSORS = {
    SensorType.LOC_X:              _loc_x,
    SensorType.LOC_Y:              _loc_y,
    SensorType.BOUNDARY_DIST_X:    _boundary_dist_x,
    SensorType.BOUNDARY_DIST_Y:    _boundary_dist_y,
    SensorType.BOUNDARY_DIST:      _boundary_dist,
    SensorType.POPULATION_DENSITY: _population_density,
    SensorType.BLOCK_FORWARD:      _block_forward,
    SensorType.BLOCK_LEFT_RIGHT:   _block_left_right,
    SensorType.RANDOM:             _random,
    SensorType.CONSTANT:           _constant,
}

if set(SENSORS) != set(SensorType):
    raise RuntimeError("every SensorType needs a sensor function")


def sense(sensor: SensorType, world, position, facing, rng) -> float:
    return SENSORS[sensor](world, position, facing, rng)
