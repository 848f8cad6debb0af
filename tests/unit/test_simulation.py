"""
Unit tests for the Simulation orchestrator.

Tests cover the sense / compute / commit phases of a tick, selection,
reproduction and reproducibility for a fixed seed.
"""

import copy
import threading
from unittest.mock import Mock

import pytest

from creature import Creature
from gene import Gene
from simulation import Simulation
from topology import ActionType, NeuronLayer, SensorType
from world import Direction, Position


def small_sim(**overrides):
    params = dict(
        population=20, max_generations=3, steps_per_gen=8,
        genome_size=8, num_internal=2, mutation_rate=0.01,
        selection_mode="east", world_width=16, world_height=16,
        seed=11, verbose=False,
    )
    params.update(overrides)
    return Simulation(**params)


def walker_genes(*actions, weight=32767):
    return [Gene.encode(NeuronLayer.INPUT, SensorType.CONSTANT,
                        NeuronLayer.OUTPUT, action, weight)
            for action in actions]


def west_walker_genes():
    return walker_genes(ActionType.MOVE_EAST_WEST, weight=-32767)


def place(sim, x, y, genes=(), facing=Direction.NORTH):
    creature = Creature(position=Position(x, y), genes=list(genes),
                        num_internal=2, facing=facing, rng=sim.rng)
    assert sim.world.place_creature(creature)
    return creature


# ============================================================================
# Test: Construction
# ============================================================================

class TestSimulationInit:

    def test_unknown_selection_mode(self):
        with pytest.raises(ValueError):
            small_sim(selection_mode="north_pole")

    def test_bad_internal_count_surfaces(self):
        sim = small_sim(num_internal=0)
        with pytest.raises(ValueError):
            sim.run()


# ============================================================================
# Test: Tick phases
# ============================================================================

class TestTick:

    def test_tick_keeps_world_consistent(self):
        sim = small_sim()
        creatures = [Creature.random(2, 8, sim.rng) for _ in range(30)]
        sim.world.populate(creatures, sim.rng)
        for _ in range(5):
            sim.tick(creatures)
            sim.world.check_consistency()
            assert len(sim.world.coordinates) == len(creatures)
        assert all(c.age == 5 for c in creatures)

    def test_sensing_sees_world_before_moves(self):
        sim = small_sim()
        mover = place(sim, 3, 1, west_walker_genes())
        watcher = place(sim, 1, 1, facing=Direction.EAST)
        moved = sim.tick([mover, watcher])
        assert moved == 1
        assert mover.position == Position(2, 1)
        # the watcher sensed before the mover committed
        assert watcher.brain.inputs[SensorType.BLOCK_FORWARD] == 0.0

    @pytest.mark.parametrize("seed", range(6))
    def test_contested_cell_goes_to_first_in_tick_order(self, seed):
        sim = small_sim(seed=seed)
        east = place(sim, 1, 1, walker_genes(ActionType.MOVE_EAST_WEST, ActionType.MOVE_FORWARD),
                     facing=Direction.EAST)
        west = place(sim, 3, 1, walker_genes(ActionType.MOVE_FORWARD), facing=Direction.WEST)
        order = copy.deepcopy(sim.rng).permutation(2)
        first = [east, west][order[0]]

        moved = sim.tick([east, west])
        assert moved == 1
        assert sim.world.get_creature(Position(2, 1)) is first
        sim.world.check_consistency()

    def test_dead_creatures_skip_tick(self):
        sim = small_sim()
        walker = place(sim, 1, 1, west_walker_genes())
        walker.alive = False
        assert sim.tick([walker]) == 0
        assert walker.position == Position(1, 1)


# ============================================================================
# Test: Selection / reproduction
# ============================================================================

class TestSelection:

    @pytest.mark.parametrize("mode,survivor_cells", [
        ("east",      {(8, 3), (15, 15)}),
        ("west",      {(0, 0), (7, 8)}),
        ("west_east", {(0, 0), (15, 15), (8, 3), (7, 8)}),
        ("corners",   {(0, 0), (15, 15)}),
        ("center",    {(8, 3), (7, 8)}),
        ("none",      {(0, 0), (15, 15), (8, 3), (7, 8)}),
    ])
    def test_modes(self, mode, survivor_cells, monkeypatch):
        import simulation
        monkeypatch.setattr(simulation, "STRIP_WIDTH", 8)
        monkeypatch.setattr(simulation, "CORNER_SIZE", 4)
        monkeypatch.setattr(simulation, "CENTER_RADIUS", 5)
        sim = small_sim(selection_mode=mode)
        creatures = [place(sim, x, y) for x, y in [(0, 0), (15, 15), (8, 3), (7, 8)]]
        survivors = sim.select_survivors(creatures)
        assert {tuple(c.position) for c in survivors} == survivor_cells

    def test_dead_never_survive(self):
        sim = small_sim(selection_mode="none")
        creature = place(sim, 3, 3)
        creature.alive = False
        assert sim.select_survivors([creature]) == []

    def test_removed_creature_neither_moves_nor_survives(self):
        sim = small_sim(selection_mode="none")
        walker = place(sim, 3, 1, west_walker_genes())
        other = place(sim, 6, 6)
        sim.world.remove_creature(walker)
        assert sim.tick([walker, other]) == 0
        assert walker.position == Position(3, 1)
        assert sim.select_survivors([walker, other]) == [other]

    def test_every_mode_has_a_selector(self):
        import config
        import simulation
        assert set(simulation.SELECTORS) == set(config.SELECTION_MODES)

    def test_reproduce_without_mutation(self):
        sim = small_sim(population=12, mutation_rate=0.0)
        parents = [Creature.random(2, 8, sim.rng) for _ in range(3)]
        children = sim._reproduce(parents)
        assert len(children) == 12
        for genes in children:
            assert any(genes == p.genes for p in parents)

    def test_reproduce_after_extinction(self):
        sim = small_sim(population=5)
        children = sim._reproduce([])
        assert len(children) == 5
        assert all(len(genes) == sim.genome_size for genes in children)


# ============================================================================
# Test: Full runs
# ============================================================================

class TestRun:

    def test_run_records_stats(self):
        callback = Mock()
        sim = small_sim(on_gen_callback=callback)
        sim.run()
        assert 1 <= len(sim.stats) <= 3
        assert callback.call_count == len(sim.stats)
        for stats in sim.stats:
            assert stats["population"] == 20
            assert 0 <= stats["survivors"] <= 20
            assert 0.0 <= stats["diversity"] <= 1.0
            assert stats["moves"] >= 0
            assert "elapsed_s" in stats

    def test_step_callback(self):
        calls = []
        sim = small_sim(max_generations=1, steps_per_gen=4,
                        on_step_callback=lambda step, world, creatures: calls.append(step))
        sim.run()
        assert calls == [0, 1, 2, 3]

    def test_same_seed_same_history(self):
        def history(sim):
            sim.run()
            stats = [{k: v for k, v in s.items() if k != "elapsed_s"} for s in sim.stats]
            positions = sorted(tuple(c.position) for c in sim.current_gen_creatures)
            return stats, positions

        assert history(small_sim(seed=5)) == history(small_sim(seed=5))

    def test_stop_event(self):
        stop = threading.Event()
        stop.set()
        sim = small_sim()
        sim.run(stop)
        assert sim.stats == []

    def test_verbose_prints(self, capsys):
        sim = small_sim(max_generations=1, verbose=True)
        sim.run()
        out = capsys.readouterr().out
        assert "Gen     0" in out
        assert "Simulation complete" in out
