"""
Actuator functions for GridBrain.

One function per ActionType; each turns the value of its Output neuron
and the creature's facing into a contribution to the desired move.
ACTIONS maps every ActionType to its function.
"""

from topology import ActionType
from world import DeltaPosition

_NO_MOVE = DeltaPosition(0.0, 0.0)


def _move_forward(value, facing, rng) -> DeltaPosition:
    # never reverses through this neuron
    if value <= 0:
        return _NO_MOVE
    return _NO_MOVE.move_direction(facing, value)


def _move_reverse(value, facing, rng) -> DeltaPosition:
    if value <= 0:
        return _NO_MOVE
    return _NO_MOVE.move_direction(facing.opposite(), value)


def _move_left_right(value, facing, rng) -> DeltaPosition:
    return _NO_MOVE.move_direction(facing.rotate_right(), value)


def _move_east_west(value, facing, rng) -> DeltaPosition:
    return DeltaPosition(value, 0.0)


def _move_north_south(value, facing, rng) -> DeltaPosition:
    return DeltaPosition(0.0, value)


def _move_random(value, facing, rng) -> DeltaPosition:
    dx, dy = rng.uniform(-1.0, 1.0, size=2)
    return DeltaPosition(float(dx) * abs(value), float(dy) * abs(value))


ACTIONS = {
    ActionType.MOVE_FORWARD:     _move_forward,
    ActionType.MOVE_REVERSE:     _move_reverse,
    ActionType.MOVE_LEFT_RIGHT:  _move_left_right,
    ActionType.MOVE_EAST_WEST:   _move_east_west,
    ActionType.MOVE_NORTH_SOUTH: _move_north_south,
    ActionType.MOVE_RANDOM:      _move_random,
}

if set(ACTIONS) != set(ActionType):
    raise RuntimeError("every ActionType needs an actuator function")


def act(action: ActionType, value: float, facing, rng) -> DeltaPosition:
    return ACTIONS[action](value, facing, rng)
