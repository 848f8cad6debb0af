"""
Simulation Engine for GridBrain.

One generation:
  1. Spawn creatures from genomes at random free cells
  2. Run steps_per_gen ticks; each tick is three phases
       sense   – every creature reads the same frozen world
       compute – every brain runs and every desired move is computed
       commit  – moves are applied one creature at a time
  3. Survivors are picked by a position-based selection rule
  4. Children copy a random survivor's genes (with mutation)
"""

import time

import numpy as np

from creature import Creature
from gene import random_genome, genome_similarity
from world import World
import config
from config import (
    WORLD_WIDTH, WORLD_HEIGHT, POPULATION,
    MAX_GENERATIONS, STEPS_PER_GEN, GENOME_SIZE,
    NUM_INTERNAL_NEURONS, MUTATION_RATE, SELECTION_MODE,
)


# ──────────────────────────────────────────────────────────────────────────────
# Selection rules: (x, y, width, height) → survives?
# ──────────────────────────────────────────────────────────────────────────────

def _east(x, y, w, h):
    return x >= w // 2


def _west(x, y, w, h):
    return x < w // 2


def _west_east(x, y, w, h):
    return x < STRIP_WIDTH or x >= w - STRIP_WIDTH


def _corners(x, y, w, h):
    near_x = x < CORNER_SIZE or x >= w - CORNER_SIZE
    near_y = y < CORNER_SIZE or y >= h - CORNER_SIZE
    return near_x and near_y


def _center(x, y, w, h):
    return (x - w // 2) ** 2 + (y - h // 2) ** 2 <= CENTER_RADIUS ** 2


def _anywhere(x, y, w, h):
    return True


SELECTORS = {
    "east":      _east,
    "west":      _west,
    "west_east": _west_east,
    "corners":   _corners,
    "center":    _center,
    "none":      _anywhere,
}

if set(SELECTORS) != set(config.SELECTION_MODES):
    raise RuntimeError("SELECTORS and config.SELECTION_MODES list different modes")

STRIP_WIDTH   = config.STRIP_WIDTH
CORNER_SIZE   = config.CORNER_SIZE
CENTER_RADIUS = config.CENTER_RADIUS


class Simulation:
    """
    Drives generations of creatures over one shared World.
    """

    def __init__(
        self,
        population:      int   = POPULATION,
        max_generations: int   = MAX_GENERATIONS,
        steps_per_gen:   int   = STEPS_PER_GEN,
        genome_size:     int   = GENOME_SIZE,
        num_internal:    int   = NUM_INTERNAL_NEURONS,
        mutation_rate:   float = MUTATION_RATE,
        selection_mode:  str   = SELECTION_MODE,
        world_width:     int   = WORLD_WIDTH,
        world_height:    int   = WORLD_HEIGHT,
        seed:            int   = None,
        on_step_callback = None,    # f(step, world, creatures) after every tick
        on_gen_callback  = None,    # f(gen, stats, world, creatures, survivors)
        verbose:         bool  = True,
    ):
        if selection_mode not in SELECTORS:
            raise ValueError(f"unknown selection mode {selection_mode!r}, "
                             f"expected one of {', '.join(SELECTORS)}")
        self.population      = population
        self.max_generations = max_generations
        self.steps_per_gen   = steps_per_gen
        self.genome_size     = genome_size
        self.num_internal    = num_internal
        self.mutation_rate   = mutation_rate
        self.selection_mode  = selection_mode
        self.world   = World(world_width, world_height)
        self.rng     = np.random.default_rng(seed)
        self.verbose = verbose
        self.on_step_callback = on_step_callback
        self.on_gen_callback  = on_gen_callback

        self.generation = 0
        self.stats      = []    # one dict per finished generation
        self.current_gen_creatures = []
        self._moves     = 0     # committed moves this generation

    # ──────────────────────────────────────────────────────────────────────────
    # Generations
    # ──────────────────────────────────────────────────────────────────────────

    def run(self, stop_event=None):
        """
        Evolve from random genomes for up to max_generations, stopping early
        on extinction or when `stop_event` (threading.Event) gets set.
        """
        genomes = [random_genome(self.genome_size, self.rng)
                   for _ in range(self.population)]

        for gen_idx in range(self.max_generations):
            if stop_event is not None and stop_event.is_set():
                break
            self.generation = gen_idx
            started = time.time()
            survivors, stats = self.run_generation(genomes)
            stats["elapsed_s"] = round(time.time() - started, 3)
            self.stats.append(stats)
            self._print_stats(gen_idx, stats)

            if self.on_gen_callback:
                self.on_gen_callback(gen_idx, stats, self.world,
                                     self.current_gen_creatures, survivors)
            if not survivors:
                self._log("  !! Extinction – no creature survived selection. Stopping.")
                break
            genomes = self._reproduce(survivors)

        self._log("\n=== Simulation complete ===")

    def run_generation(self, genomes: list):
        """Spawn, tick steps_per_gen times, select. Returns (survivors, stats)."""
        spawned = [Creature(genes=genome, num_internal=self.num_internal, rng=self.rng)
                   for genome in genomes]
        creatures = self.world.populate(spawned, self.rng)
        self.current_gen_creatures = creatures
        self._moves = 0

        for step in range(self.steps_per_gen):
            self.tick(creatures)
            if self.on_step_callback:
                self.on_step_callback(step, self.world, creatures)

        survivors = self.select_survivors(creatures)
        return survivors, self._compute_stats(creatures, survivors)

    # ──────────────────────────────────────────────────────────────────────────
    # One tick
    # ──────────────────────────────────────────────────────────────────────────

    def tick(self, creatures: list) -> int:
        """
        Advance every living creature by one tick; returns how many moved.
        A contested cell goes to whichever creature comes first in this
        tick's shuffled order.
        """
        order  = self.rng.permutation(len(creatures))
        living = [creatures[i] for i in order if creatures[i].alive]

        # sense and compute both see the world as it stood at tick start
        for c in living:
            c.sense(self.world, self.rng)
        for c in living:
            c.think()
        deltas = [c.desired_move(self.rng) for c in living]

        moved = sum(1 for c, delta in zip(living, deltas)
                    if self.world.move_creature(c, delta))
        self._moves += moved
        return moved

    # ──────────────────────────────────────────────────────────────────────────
    # Selection / reproduction
    # ──────────────────────────────────────────────────────────────────────────

    def select_survivors(self, creatures: list) -> list:
        """Living creatures whose final cell satisfies the selection mode."""
        survives = SELECTORS[self.selection_mode]
        w, h = self.world.width, self.world.height
        return [c for c in creatures
                if c.alive and survives(c.position.x, c.position.y, w, h)]

    def _reproduce(self, survivors: list) -> list:
        """population new genomes, each copied from a uniformly chosen survivor."""
        if not survivors:
            return [random_genome(self.genome_size, self.rng)
                    for _ in range(self.population)]
        parents = self.rng.integers(0, len(survivors), size=self.population)
        return [survivors[int(i)].get_reproductive_genes(self.rng, self.mutation_rate)
                for i in parents]

    # ──────────────────────────────────────────────────────────────────────────
    # Stats
    # ──────────────────────────────────────────────────────────────────────────

    def _compute_stats(self, creatures: list, survivors: list) -> dict:
        ticks = max(1, len(creatures) * self.steps_per_gen)
        return {
            "generation":   self.generation,
            "population":   len(creatures),
            "survivors":    len(survivors),
            "survival_pct": 100.0 * len(survivors) / max(1, len(creatures)),
            "moves":        self._moves,
            "mobility":     self._moves / ticks,
            "diversity":    self._genetic_diversity(survivors),
        }

    def _genetic_diversity(self, creatures: list, sample: int = 50) -> float:
        """Mean pairwise bit dissimilarity of up to `sample` genomes, 0..1."""
        if len(creatures) < 2:
            return 0.0
        picked = self.rng.choice(len(creatures), min(sample, len(creatures)), replace=False)
        genomes = [creatures[i].genes for i in picked]
        distances = [1.0 - genome_similarity(genomes[i], genomes[j])
                     for i in range(len(genomes))
                     for j in range(i + 1, len(genomes))]
        return float(np.mean(distances))

    def _log(self, message: str):
        if self.verbose:
            print(message)

    def _print_stats(self, gen_idx: int, stats: dict):
        if gen_idx < 5 or gen_idx % 10 == 0:
            self._log(
                f"Gen {gen_idx:>5}  |  "
                f"alive at end {stats['survivors']:>5}/{stats['population']:<5}"
                f"({stats['survival_pct']:>5.1f}%)  |  "
                f"mobility {stats['mobility']:.3f}  |  "
                f"diversity {stats['diversity']:.3f}  |  "
                f"{stats['elapsed_s']:.2f}s"
            )
