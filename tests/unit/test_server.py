"""
Unit tests for the Flask live-stream server.
"""

import json
import threading

import pytest

import server
from gene import random_genome
from simulation import Simulation


@pytest.fixture
def client():
    server.app.config["TESTING"] = True
    with server.app.test_client() as c:
        yield c


TINY = {"population": 6, "maxGenerations": 2, "stepsPerGen": 2,
        "worldWidth": 8, "worldHeight": 8, "genomeSize": 4,
        "selectionMode": "none", "seed": 3}


class TestBuildCfg:

    def test_defaults(self):
        cfg = server.build_cfg({})
        assert cfg["selection_mode"] == "east"
        assert cfg["seed"] is None

    def test_overrides(self):
        cfg = server.build_cfg(TINY)
        assert cfg["population"] == 6
        assert cfg["world_width"] == 8
        assert cfg["seed"] == 3

    @pytest.mark.parametrize("body", [
        {"selectionMode": "radioactive"},
        {"numInternal": 0},
        {"worldWidth": 0},
        {"population": "many"},
    ])
    def test_rejects_bad_values(self, body):
        with pytest.raises(ValueError):
            server.build_cfg(body)


class TestPayload:

    def test_generation_payload(self):
        cfg = server.build_cfg(TINY)
        sim = Simulation(population=6, max_generations=1, steps_per_gen=2,
                         genome_size=4, selection_mode="none",
                         world_width=8, world_height=8, seed=1, verbose=False)
        genomes = [random_genome(4, sim.rng) for _ in range(6)]
        survivors, stats = sim.run_generation(genomes)
        payload = server.generation_payload(cfg, 0, stats, sim.world, survivors)
        assert payload["type"] == "generation"
        assert payload["population"] == 6
        assert len(payload["snapshot"]) == 6
        assert len(payload["bestGenome"].split()) == 4
        json.dumps(payload)


class TestRoutes:

    def test_status(self, client):
        resp = client.get("/status")
        assert resp.status_code == 200
        assert "running" in resp.get_json()

    def test_start_rejects_bad_body(self, client):
        resp = client.post("/start", json={"selectionMode": "nowhere"})
        assert resp.status_code == 400
        assert resp.get_json()["status"] == "error"

    def test_start_and_stream(self, client):
        resp = client.post("/start", json=TINY)
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "started"
        server.runner.thread.join(timeout=30)
        assert not server.runner.thread.is_alive()

        body = client.get("/stream").get_data(as_text=True)
        events = [json.loads(line[len("data: "):])
                  for line in body.splitlines() if line.startswith("data: ")]
        kinds = [e["type"] for e in events]
        assert kinds[0] == "connected"
        assert kinds[-1] == "done"
        assert kinds.count("generation") == 2

    def test_stop(self, client):
        resp = client.post("/stop")
        assert resp.get_json() == {"status": "stopped"}

    def test_cors_headers(self, client):
        resp = client.get("/status")
        assert resp.headers["Access-Control-Allow-Origin"] == "*"


# ==============================================================================
# Runner
# ==============================================================================

class TestSimulationRunner:

    def test_publish_drops_oldest_when_full(self, monkeypatch):
        monkeypatch.setattr(server, "QUEUE_SIZE", 2)
        runner = server.SimulationRunner()
        for i in range(3):
            runner._publish(runner.events, {"type": "generation", "gen": i})
        assert [runner.events.get_nowait()["gen"] for _ in range(2)] == [1, 2]

    def test_status_after_run(self):
        runner = server.SimulationRunner()
        runner.start(server.build_cfg(TINY))
        runner.thread.join(timeout=30)
        status = runner.status()
        assert status["running"] is False
        assert status["generation"] == 1
        assert status["max_gen"] == 2

    def test_restart_replaces_queue(self):
        runner = server.SimulationRunner()
        runner.start(server.build_cfg(TINY))
        first = runner.events
        runner.start(server.build_cfg(TINY))
        assert runner.events is not first
        runner.thread.join(timeout=30)

    def test_restart_isolates_superseded_run(self, monkeypatch):
        # each fake run blocks until its own gate opens, keyed by seed
        gates = {1: threading.Event(), 2: threading.Event()}

        class GatedSimulation:
            def __init__(self, seed=None, **kwargs):
                self.gate = gates[seed]

            def run(self, stop_event):
                self.gate.wait(10)

        monkeypatch.setattr(server, "Simulation", GatedSimulation)
        monkeypatch.setattr(server, "JOIN_TIMEOUT", 0.01)
        runner = server.SimulationRunner()

        runner.start(server.build_cfg({**TINY, "seed": 1}))
        old_thread, old_events = runner.thread, runner.events
        runner.start(server.build_cfg({**TINY, "seed": 2}))
        assert old_thread.is_alive()

        gates[1].set()
        old_thread.join(timeout=10)
        assert runner.status()["running"] is True
        assert runner.events.empty()
        assert old_events.get_nowait()["type"] == "done"

        gates[2].set()
        runner.thread.join(timeout=10)
        assert runner.status()["running"] is False
        assert runner.events.get_nowait()["type"] == "done"
