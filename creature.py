"""
Creature class for GridBrain.

Each creature has:
  - a Position on the grid and a facing Direction
  - a genome (list of Genes)
  - a Brain built once at birth with a fixed number of internal neurons
  - State: age, last_move, alive

Every simulation tick the orchestrator drives the creature through
  1. sense   – sensors read the frozen world into the input neurons
  2. think   – the brain runs one compute cycle over the genes
  3. move    – the world resolves desired_move() into a legal step
"""

import numpy as np

from brain import Brain
from config import GENOME_SIZE, MUTATION_RATE, NUM_INTERNAL_NEURONS
from gene import random_genome, mutate_genome, genome_to_color
from topology import BrainTopology
from world import Direction, Position


class Creature:
    """
    A single agent in the simulation.
    """
    __slots__ = (
        "position", "facing", "genes", "brain",
        "alive", "age", "last_move", "color",
    )

    def __init__(self, position: Position = Position(0, 0), genes: list = None,
                 num_internal: int = NUM_INTERNAL_NEURONS,
                 facing: Direction = None, rng=None):
        if rng is None:
            rng = np.random.default_rng()
        self.position  = position
        self.facing    = facing if facing is not None else Direction.random(rng)
        self.genes     = list(genes) if genes is not None else random_genome(GENOME_SIZE, rng)
        self.brain     = Brain(BrainTopology.with_internal(num_internal))
        self.alive     = True
        self.age       = 0          # ticks lived this generation
        self.last_move = (0, 0)     # last committed (dx, dy)
        self.color     = genome_to_color(self.genes)

    @classmethod
    def random(cls, num_internal: int = NUM_INTERNAL_NEURONS,
               num_genes: int = GENOME_SIZE, rng=None) -> "Creature":
        if rng is None:
            rng = np.random.default_rng()
        return cls(genes=random_genome(num_genes, rng),
                   num_internal=num_internal, rng=rng)

    # ──────────────────────────────────────────────────────────────────────────

    def sense(self, world, rng=None):
        self.brain.set_inputs(world, self.position, self.facing, rng)

    def think(self):
        self.brain.compute_state(self.genes)
        self.age += 1

    def desired_move(self, rng=None):
        return self.brain.desired_move(self.facing, rng)

    def get_reproductive_genes(self, rng=None, mutation_rate: float = MUTATION_RATE) -> list:
        """Copy of the genome, each gene mutated with probability `mutation_rate`."""
        return mutate_genome(self.genes, mutation_rate, rng)

    def __repr__(self) -> str:
        return (f"Creature(position=({self.position.x}, {self.position.y}), "
                f"facing={self.facing.name}, genes={len(self.genes)})")
