"""
GridBrain – Main Entry Point
============================

  python main.py                          # east-half selection, config defaults
  python main.py --scenario corners       # any of the selection scenarios
  python main.py --gens 200 --pop 400 --seed 1
  python main.py --genes 24 --internal 6  # bigger brains
  python main.py --no_mutation            # genomes only recombine survivors
"""

import argparse
import os

from simulation  import Simulation
from visualizer  import (ensure_dirs, save_world_snapshot,
                          save_evolution_chart, save_neural_diagram,
                          save_genome_text, append_csv)
import config


SCENARIOS = {
    "east":      "survive in the eastern half of the world",
    "west":      "survive in the western half of the world",
    "west_east": f"survive in a {config.STRIP_WIDTH}-cell strip at the west or east edge",
    "corners":   f"survive in one of the four {config.CORNER_SIZE}x{config.CORNER_SIZE} corners",
    "center":    f"survive within {config.CENTER_RADIUS} cells of the centre",
    "none":      "everyone survives; genomes only drift",
}


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="GridBrain – creatures with gene-wired brains evolving on a grid")
    p.add_argument("--scenario", default=config.SELECTION_MODE, choices=list(SCENARIOS),
                   help="where creatures must be at the end of a generation")
    sizes = p.add_argument_group("sizes")
    sizes.add_argument("--gens",     type=int, default=config.MAX_GENERATIONS)
    sizes.add_argument("--pop",      type=int, default=config.POPULATION)
    sizes.add_argument("--steps",    type=int, default=config.STEPS_PER_GEN,
                       help="ticks per generation")
    sizes.add_argument("--genes",    type=int, default=config.GENOME_SIZE,
                       help="genes (connections) per genome")
    sizes.add_argument("--internal", type=int, default=config.NUM_INTERNAL_NEURONS,
                       help="internal neurons per brain, 1..128")
    sizes.add_argument("--width",    type=int, default=config.WORLD_WIDTH)
    sizes.add_argument("--height",   type=int, default=config.WORLD_HEIGHT)
    p.add_argument("--mutation", type=float, default=config.MUTATION_RATE,
                   help="probability that a copied gene gets one bit flipped")
    p.add_argument("--no_mutation", action="store_true")
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--outdir", default=config.SAVE_DIR)
    p.add_argument("--snapshot_interval", type=int, default=config.SNAPSHOT_INTERVAL,
                   help="write images every N generations")
    return p.parse_args(argv)


class OutputWriter:
    """Per-generation hook: CSV row every generation, images every `interval`."""

    def __init__(self, sim: Simulation, outdir: str, interval: int):
        self.sim      = sim
        self.outdir   = outdir
        self.interval = max(1, interval)

    def __call__(self, gen_idx, stats, world, creatures, survivors):
        append_csv(stats, self.outdir)
        if gen_idx % self.interval:
            return

        snap = save_world_snapshot(world, gen_idx, survivors,
                                   self.sim.selection_mode, self.outdir)
        print(f"  snapshot -> {snap}")
        if config.SAVE_NEURAL_SAMPLE and survivors:
            self.dump_brain(gen_idx, survivors)
        if gen_idx:
            save_evolution_chart(self.sim.stats, self.outdir)

    def dump_brain(self, gen_idx, survivors):
        # most densely wired survivor makes the most informative diagram
        best = max(survivors, key=lambda c: len(c.brain.get_active_connections()))
        diagram = save_neural_diagram(best, gen_idx, "best_survivor", self.outdir)
        if diagram:
            print(f"  brain    -> {diagram}")
        print(f"  genome   -> {save_genome_text(best, gen_idx, 'best_survivor', self.outdir)}")


def _banner(rows: dict):
    print("=" * 60)
    for key, value in rows.items():
        print(f"  {key:<11}: {value}")
    print("=" * 60)


def main(argv=None):
    args = parse_args(argv)
    outdir = os.path.join(args.outdir, args.scenario)
    ensure_dirs(outdir)
    mutation_rate = 0.0 if args.no_mutation else args.mutation

    sim = Simulation(
        population      = args.pop,
        max_generations = args.gens,
        steps_per_gen   = args.steps,
        genome_size     = args.genes,
        num_internal    = args.internal,
        mutation_rate   = mutation_rate,
        selection_mode  = args.scenario,
        world_width     = args.width,
        world_height    = args.height,
        seed            = args.seed,
    )
    sim.on_gen_callback = OutputWriter(sim, outdir, args.snapshot_interval)

    _banner({
        "Scenario":    f"{args.scenario} ({SCENARIOS[args.scenario]})",
        "World":       f"{args.width} x {args.height}",
        "Population":  args.pop,
        "Generations": f"{args.gens} x {args.steps} ticks",
        "Brain":       f"{args.genes} genes, {args.internal} internal neurons",
        "Mutation":    mutation_rate,
        "Seed":        args.seed,
        "Output":      outdir,
    })

    sim.run()

    print(f"  chart    -> {save_evolution_chart(sim.stats, outdir, 'evolution_final.png')}")
    if sim.current_gen_creatures:
        survivors = sim.select_survivors(sim.current_gen_creatures)
        final = save_world_snapshot(sim.world, sim.generation, survivors,
                                    sim.selection_mode, outdir)
        print(f"  final    -> {final}")
    return sim


if __name__ == "__main__":
    main()
