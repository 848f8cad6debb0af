"""
Unit tests for Creature: reproduction genes and the sense/think/move cycle.
"""

import numpy as np

from creature import Creature
from gene import Gene
from topology import ActionType, NeuronLayer, SensorType
from world import DeltaPosition, Direction, Position


def walker_genes(*actions, weight=32767):
    """Constant input wired straight to each of `actions`."""
    return [Gene.encode(NeuronLayer.INPUT, SensorType.CONSTANT,
                        NeuronLayer.OUTPUT, action, weight)
            for action in actions]


def east_walker_genes():
    return walker_genes(ActionType.MOVE_EAST_WEST)


class TestCreatureInit:

    def test_random_creature(self, rng):
        creature = Creature.random(num_internal=3, num_genes=12, rng=rng)
        assert len(creature.genes) == 12
        assert creature.brain.topology.num_internal == 3
        assert creature.alive
        assert creature.age == 0
        assert isinstance(creature.facing, Direction)

    def test_genes_are_copied(self, rng):
        genes = east_walker_genes()
        creature = Creature(genes=genes, rng=rng)
        assert creature.genes == genes
        assert creature.genes is not genes

    def test_repr(self, make_creature):
        assert "facing=NORTH" in repr(make_creature(2, 3))


class TestReproduction:

    def test_no_mutation_copies(self, rng):
        creature = Creature.random(num_genes=10, rng=rng)
        child = creature.get_reproductive_genes(rng, mutation_rate=0.0)
        assert child == creature.genes
        assert child is not creature.genes

    def test_full_mutation_flips_one_bit_per_gene(self, rng):
        creature = Creature.random(num_genes=10, rng=rng)
        child = creature.get_reproductive_genes(rng, mutation_rate=1.0)
        for parent_gene, child_gene in zip(creature.genes, child):
            assert bin(parent_gene.to_int() ^ child_gene.to_int()).count("1") == 1

    def test_parent_genes_untouched(self, rng):
        creature = Creature.random(num_genes=10, rng=rng)
        before = list(creature.genes)
        creature.get_reproductive_genes(rng, mutation_rate=1.0)
        assert creature.genes == before


class TestTickCycle:

    def test_sense_think_desired_move(self, world, make_creature, rng):
        walker = make_creature(2, 2, genes=east_walker_genes())
        world.place_creature(walker)
        walker.sense(world, rng)
        walker.think()
        delta = walker.desired_move(rng)
        assert walker.age == 1
        assert delta.x > 0.99
        assert delta.y == 0.0

    def test_walker_moves_west_until_wall(self, world, make_creature, rng):
        walker = make_creature(3, 2, genes=walker_genes(ActionType.MOVE_EAST_WEST, weight=-32767))
        world.place_creature(walker)
        for _ in range(10):
            walker.sense(world, rng)
            walker.think()
            world.move_creature(walker, walker.desired_move(rng))
        assert walker.position == Position(0, 2)
        assert walker.facing is Direction.WEST
        world.check_consistency()

    def test_single_positive_actuator_stays_below_one_cell(self, world, make_creature, rng):
        # outputs stay inside (-1, 1), so x + value floors back to x
        walker = make_creature(3, 2, genes=east_walker_genes())
        world.place_creature(walker)
        walker.sense(world, rng)
        walker.think()
        assert not world.move_creature(walker, walker.desired_move(rng))
        assert walker.position == Position(3, 2)

    def test_summed_actuators_move_east(self, world, make_creature, rng):
        walker = make_creature(3, 2, facing=Direction.EAST,
                               genes=walker_genes(ActionType.MOVE_EAST_WEST,
                                                  ActionType.MOVE_FORWARD))
        world.place_creature(walker)
        walker.sense(world, rng)
        walker.think()
        delta = walker.desired_move(rng)
        assert delta.x > 1.0
        assert world.move_creature(walker, delta)
        assert walker.position == Position(4, 2)

    def test_idle_creature_desires_nothing(self, world, make_creature, rng):
        idle = make_creature(2, 2)
        world.place_creature(idle)
        idle.sense(world, rng)
        idle.think()
        delta = idle.desired_move(rng)
        assert delta == DeltaPosition(0.0, 0.0)
        assert not world.move_creature(idle, delta)
