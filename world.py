"""
World Grid for GridBrain.

The world is a fixed-size 2-D grid. Each cell can hold at most one
creature. The origin (0, 0) is the bottom-left cell; NORTH is +y and
EAST is +x.

  ^ Y
  |
  |
 -|-------------> X
 (0,0)

The world keeps an occupancy map Position → Creature, and every creature
keeps its own `position`. Both are changed together by move_creature();
finding them out of step is a PositionDesync.
"""

import math
from enum import Enum
from typing import NamedTuple, Optional

import numpy as np

from config import WORLD_WIDTH, WORLD_HEIGHT, MAX_STEP, DENSITY_RADIUS


class PositionDesync(RuntimeError):
    """The occupancy map and a creature's position no longer agree."""


# ──────────────────────────────────────────────────────────────────────────────
# Geometry
# ──────────────────────────────────────────────────────────────────────────────

class Direction(Enum):
    NORTH = (0, 1)
    EAST  = (1, 0)
    SOUTH = (0, -1)
    WEST  = (-1, 0)

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dy(self) -> int:
        return self.value[1]

    def rotate_left(self) -> "Direction":
        return _LEFT_OF[self]

    def rotate_right(self) -> "Direction":
        return self.rotate_left().rotate_left().rotate_left()

    def opposite(self) -> "Direction":
        return self.rotate_left().rotate_left()

    @classmethod
    def random(cls, rng=None) -> "Direction":
        if rng is None:
            rng = np.random.default_rng()
        return _COMPASS[int(rng.integers(0, len(_COMPASS)))]

    @classmethod
    def from_delta(cls, dx: int, dy: int) -> Optional["Direction"]:
        """Heading of an axis-aligned unit step, None for anything else."""
        for direction in _COMPASS:
            if direction.value == (dx, dy):
                return direction
        return None


_COMPASS = (Direction.NORTH, Direction.EAST, Direction.SOUTH, Direction.WEST)
_LEFT_OF = {
    Direction.NORTH: Direction.WEST,
    Direction.EAST:  Direction.NORTH,
    Direction.SOUTH: Direction.EAST,
    Direction.WEST:  Direction.SOUTH,
}


class DeltaPosition(NamedTuple):
    """Continuous movement request, summed from all actuators."""
    x: float = 0.0
    y: float = 0.0

    def move_direction(self, direction: Direction, step: float) -> "DeltaPosition":
        return DeltaPosition(self.x + direction.dx * step,
                             self.y + direction.dy * step)

    def __add__(self, other) -> "DeltaPosition":
        return DeltaPosition(self.x + other.x, self.y + other.y)


class Size(NamedTuple):
    width:  int
    height: int

    def inside(self, position) -> bool:
        return 0 <= position.x < self.width and 0 <= position.y < self.height


class Position(NamedTuple):
    x: int
    y: int

    def move_direction(self, direction: Direction, step: int,
                       boundary: Size) -> Optional["Position"]:
        """Step along a heading; None instead of leaving the boundary."""
        x = self.x + direction.dx * step
        y = self.y + direction.dy * step
        if x < 0 or y < 0 or x >= boundary.width or y >= boundary.height:
            return None
        return Position(x, y)

    def move_delta(self, delta: DeltaPosition, max_step: int = MAX_STEP) -> "Position":
        """
        Clamp each axis of `delta` to ±max_step, add and floor.
        The result may lie outside the world; the caller checks.
        """
        dx = max(-max_step, min(max_step, delta.x))
        dy = max(-max_step, min(max_step, delta.y))
        return Position(math.floor(self.x + dx), math.floor(self.y + dy))


# ──────────────────────────────────────────────────────────────────────────────
# World
# ──────────────────────────────────────────────────────────────────────────────

class World:
    """
    Manages the occupancy map and all creature movement.
    """

    def __init__(self, width: int = WORLD_WIDTH, height: int = WORLD_HEIGHT):
        if width < 1 or height < 1:
            raise ValueError(f"world size must be positive, got {width}x{height}")
        self.boundary    = Size(width, height)
        self.coordinates = {}    # Position → Creature
        self.creatures   = []    # all creatures placed this generation

    @property
    def width(self) -> int:
        return self.boundary.width

    @property
    def height(self) -> int:
        return self.boundary.height

    # ──────────────────────────────────────────────────────────────────────────
    # Placement helpers
    # ──────────────────────────────────────────────────────────────────────────

    def place_creature(self, creature) -> bool:
        """Put a creature at its position if the cell is inside and free."""
        if not self.boundary.inside(creature.position):
            return False
        if creature.position in self.coordinates:
            return False
        self.coordinates[creature.position] = creature
        self.creatures.append(creature)
        return True

    def remove_creature(self, creature):
        """
        Death: free the creature's cell and mark it dead. Ticks and
        selection both skip dead creatures.
        """
        if self.coordinates.get(creature.position) is creature:
            del self.coordinates[creature.position]
        if creature in self.creatures:
            self.creatures.remove(creature)
        creature.alive = False

    def clear(self):
        self.coordinates = {}
        self.creatures   = []

    def populate(self, creatures: list, rng=None) -> list:
        """
        Place creatures at random distinct cells, assigning their positions.
        Returns the creatures that fitted.
        """
        if rng is None:
            rng = np.random.default_rng()
        self.clear()
        n_cells = self.width * self.height
        count   = min(len(creatures), n_cells)
        cells   = rng.choice(n_cells, size=count, replace=False)
        for creature, cell in zip(creatures, cells):
            creature.position = Position(int(cell) % self.width, int(cell) // self.width)
            self.coordinates[creature.position] = creature
        self.creatures = list(creatures[:count])
        return self.creatures

    # ──────────────────────────────────────────────────────────────────────────
    # Movement
    # ──────────────────────────────────────────────────────────────────────────

    def move_creature(self, creature, delta: DeltaPosition = None, rng=None) -> bool:
        """
        Try to move a creature by its desired delta (asked from its brain
        when `delta` is None). Returns True if the creature moved; a move
        into an occupied or out-of-bounds cell is a silent no-op.
        """
        if self.coordinates.get(creature.position) is not creature:
            raise PositionDesync(
                f"no entity found at world position {tuple(creature.position)}; "
                f"world state is out of sync with the creatures")

        if delta is None:
            delta = creature.desired_move(rng)
        next_position = creature.position.move_delta(delta, MAX_STEP)

        if next_position == creature.position:
            return False
        if next_position in self.coordinates:
            return False
        if not self.boundary.inside(next_position):
            return False

        old_position = creature.position
        del self.coordinates[old_position]
        creature.position = next_position
        self.coordinates[next_position] = creature

        step = (next_position.x - old_position.x, next_position.y - old_position.y)
        creature.last_move = step
        heading = Direction.from_delta(*step)
        if heading is not None:
            creature.facing = heading
        return True

    # ──────────────────────────────────────────────────────────────────────────
    # Sensing helpers (used by sensors)
    # ──────────────────────────────────────────────────────────────────────────

    def get_creature(self, position):
        """Return creature at position or None."""
        return self.coordinates.get(position)

    def is_occupied(self, position) -> bool:
        return position in self.coordinates

    def local_density(self, position, radius: int = DENSITY_RADIUS) -> int:
        """Count creatures within a square of given radius (excl. centre)."""
        count = 0
        for dy in range(-radius, radius + 1):
            for dx in range(-radius, radius + 1):
                if dx == 0 and dy == 0:
                    continue
                if Position(position.x + dx, position.y + dy) in self.coordinates:
                    count += 1
        return count

    def check_consistency(self):
        """Raise PositionDesync if any occupancy entry disagrees with its creature."""
        for position, creature in self.coordinates.items():
            if creature.position != position:
                raise PositionDesync(
                    f"creature registered at {tuple(position)} believes it is at "
                    f"{tuple(creature.position)}")

    # ──────────────────────────────────────────────────────────────────────────
    # Snapshot for visualisation
    # ──────────────────────────────────────────────────────────────────────────

    def snapshot(self):
        """
        Returns two lists for visualisation:
          positions: (x, y) for every creature on the grid
          colors:    (r, g, b) tuples
        """
        positions = []
        colors    = []
        for position, creature in self.coordinates.items():
            positions.append((position.x, position.y))
            colors.append(creature.color)
        return positions, colors
