"""
GridBrain Server  –  Flask + Server-Sent Events
===============================================

  POST /start    start (or restart) a run; JSON body overrides config defaults
  POST /stop     ask the running simulation to stop after its current generation
  GET  /status   running flag, current generation, active config
  GET  /stream   SSE: one "generation" event per generation, then "done"

  python server.py        # http://localhost:5000
"""

import threading
import queue
import json

from flask import Flask, Response, request, jsonify

from gene import genome_to_text
from simulation import Simulation
import config

app = Flask(__name__)

# request key -> (Simulation keyword, converter, default)
FIELDS = {
    "worldWidth":     ("world_width",     int,   config.WORLD_WIDTH),
    "worldHeight":    ("world_height",    int,   config.WORLD_HEIGHT),
    "population":     ("population",      int,   config.POPULATION),
    "maxGenerations": ("max_generations", int,   config.MAX_GENERATIONS),
    "stepsPerGen":    ("steps_per_gen",   int,   config.STEPS_PER_GEN),
    "genomeSize":     ("genome_size",     int,   config.GENOME_SIZE),
    "numInternal":    ("num_internal",    int,   config.NUM_INTERNAL_NEURONS),
    "mutationRate":   ("mutation_rate",   float, config.MUTATION_RATE),
    "selectionMode":  ("selection_mode",  str,   config.SELECTION_MODE),
}
QUEUE_SIZE   = 200
JOIN_TIMEOUT = 3       # seconds start() waits for the previous run to stop


def build_cfg(data: dict) -> dict:
    """Simulation keyword arguments from a request body. Raises ValueError on bad values."""
    cfg = {name: convert(data.get(key, default))
           for key, (name, convert, default) in FIELDS.items()}
    cfg["seed"] = None if data.get("seed") is None else int(data["seed"])

    if cfg["selection_mode"] not in config.SELECTION_MODES:
        raise ValueError(f"selectionMode must be one of {', '.join(config.SELECTION_MODES)}")
    if not 1 <= cfg["num_internal"] <= config.MAX_LAYER_NEURONS:
        raise ValueError(f"numInternal must be in 1..{config.MAX_LAYER_NEURONS}")
    if min(cfg["world_width"], cfg["world_height"]) < 1:
        raise ValueError("world size must be positive")
    return cfg


def _connection_json(c) -> dict:
    return {
        "source":      c.source.label(),
        "sourceLayer": c.source.layer.value,
        "sink":        c.destination.label(),
        "sinkLayer":   c.destination.layer.value,
        "weight":      round(float(c.weight), 4),
    }


def generation_payload(cfg: dict, gen_idx: int, stats: dict, world, survivors: list) -> dict:
    """JSON-ready summary of one finished generation, including every creature's cell."""
    positions, colors = world.snapshot()
    payload = {
        "type":        "generation",
        "gen":         gen_idx,
        "maxGen":      cfg["max_generations"],
        "survivors":   stats["survivors"],
        "population":  stats["population"],
        "survivalPct": round(stats["survival_pct"], 1),
        "diversity":   round(stats["diversity"], 4),
        "moves":       stats["moves"],
        "snapshot":    [{"x": x, "y": y, "r": int(r), "g": int(g), "b": int(b)}
                        for (x, y), (r, g, b) in zip(positions, colors)],
        "bestGenome":  "",
        "bestConns":   [],
    }
    if survivors:
        best = max(survivors, key=lambda c: len(c.brain.get_active_connections()))
        payload["bestGenome"] = genome_to_text(best.genes)
        payload["bestConns"]  = [_connection_json(c)
                                 for c in best.brain.get_active_connections()]
    return payload


class SimulationRunner:
    """
    Owns the one background simulation thread and the queue of events
    it produces. start() stops and replaces any earlier run.
    """

    def __init__(self):
        self.thread = None
        self.stop_event = threading.Event()
        self.events = queue.Queue(maxsize=QUEUE_SIZE)
        self._lock = threading.Lock()
        self._status = {"running": False, "generation": 0, "max_gen": 0, "cfg": {}}

    def status(self) -> dict:
        with self._lock:
            return dict(self._status)

    def _update(self, **fields):
        with self._lock:
            self._status.update(fields)

    def _update_if_current(self, **fields):
        # a superseded worker still winding down must not touch the new run's status
        with self._lock:
            if self.thread is threading.current_thread():
                self._status.update(fields)

    @staticmethod
    def _publish(events: queue.Queue, event: dict):
        # a slow subscriber loses the oldest frames, never blocks the simulation
        while True:
            try:
                events.put_nowait(event)
                return
            except queue.Full:
                try:
                    events.get_nowait()
                except queue.Empty:
                    pass

    def start(self, cfg: dict):
        self.stop()
        if self.thread is not None:
            self.thread.join(timeout=JOIN_TIMEOUT)
        self.stop_event = threading.Event()
        self.events = queue.Queue(maxsize=QUEUE_SIZE)
        self._update(running=True, generation=0, cfg=cfg,
                     max_gen=cfg["max_generations"])
        with self._lock:
            self.thread = threading.Thread(
                target=self._work, args=(cfg, self.stop_event, self.events), daemon=True)
        self.thread.start()

    def stop(self):
        self.stop_event.set()

    def _work(self, cfg: dict, stop_event: threading.Event, events: queue.Queue):
        """Run one simulation; everything it emits goes to its own `events` queue."""
        last_gen = 0

        def on_gen(gen_idx, stats, world, creatures, survivors):
            nonlocal last_gen
            if stop_event.is_set():
                return
            last_gen = gen_idx
            self._update_if_current(generation=gen_idx)
            self._publish(events, generation_payload(cfg, gen_idx, stats, world, survivors))

        sim = Simulation(**cfg, on_gen_callback=on_gen, verbose=False)
        try:
            sim.run(stop_event)
        finally:
            self._update_if_current(running=False)
            self._publish(events, {"type": "done", "gen": last_gen})

    def stream(self):
        events = self.events
        yield _sse({"type": "connected"})
        while True:
            try:
                event = events.get(timeout=1)
            except queue.Empty:
                yield _sse({"type": "ping"})
                continue
            yield _sse(event)
            if event["type"] == "done":
                return


def _sse(event: dict) -> str:
    return f"data: {json.dumps(event)}\n\n"


runner = SimulationRunner()


# ──────────────────────────────────────────────────────────────────────────────
# Routes
# ──────────────────────────────────────────────────────────────────────────────

@app.after_request
def add_cors(response):
    response.headers["Access-Control-Allow-Origin"]  = "*"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    return response


@app.route("/", methods=["OPTIONS"])
@app.route("/<path:p>", methods=["OPTIONS"])
def preflight(p=""):
    return Response(status=200)


@app.route("/start", methods=["POST"])
def start():
    try:
        cfg = build_cfg(request.get_json(force=True, silent=True) or {})
    except (TypeError, ValueError) as exc:
        return jsonify({"status": "error", "error": str(exc)}), 400
    runner.start(cfg)
    return jsonify({"status": "started", "cfg": cfg})


@app.route("/stop", methods=["POST"])
def stop():
    runner.stop()
    return jsonify({"status": "stopped"})


@app.route("/status", methods=["GET"])
def status():
    return jsonify(runner.status())


@app.route("/stream", methods=["GET"])
def stream():
    return Response(runner.stream(), mimetype="text/event-stream",
                    headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"})


if __name__ == "__main__":
    print("GridBrain server on http://localhost:5000  (SSE at /stream)")
    app.run(host="0.0.0.0", port=5000, threaded=True, debug=False)
