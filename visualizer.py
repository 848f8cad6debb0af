"""
Visualizer for GridBrain.

Everything lands under one output directory:
  snapshots/  creature positions and facings, survival zone shaded
  charts/     survivors, diversity and mobility per generation
  neural/     wiring of a sampled creature's brain
  genomes/    SSDDWWWW dumps plus a readable connection list
  evolution_log.csv
"""

import os
import csv

import numpy as np
import matplotlib
matplotlib.use("Agg")          # non-interactive backend (no display needed)
import matplotlib.pyplot as plt
import matplotlib.patches as mpatches

from config import SAVE_DIR, LOG_CSV
from gene import genome_to_text
from simulation import SELECTORS
from topology import NeuronLayer

BACKGROUND = "#111111"
GRID_LINE  = "#444444"
POSITIVE   = "#44FF44"
NEGATIVE   = "#FF4444"

_COLUMN = {
    NeuronLayer.INPUT:    0.0,
    NeuronLayer.INTERNAL: 0.5,
    NeuronLayer.OUTPUT:   1.0,
}
_NODE_COLOR = {
    NeuronLayer.INPUT:    "#4499FF",
    NeuronLayer.INTERNAL: "#AAAAAA",
    NeuronLayer.OUTPUT:   "#FF88AA",
}
_SUBDIRS = ("snapshots", "charts", "neural", "genomes")


def ensure_dirs(base: str = SAVE_DIR):
    for sub in _SUBDIRS:
        os.makedirs(os.path.join(base, sub), exist_ok=True)


def _dark(fig, *axes):
    fig.patch.set_facecolor(BACKGROUND)
    for ax in axes:
        ax.set_facecolor(BACKGROUND)
        ax.tick_params(colors="white")
        for spine in ax.spines.values():
            spine.set_edgecolor(GRID_LINE)


def _save(fig, *parts) -> str:
    path = os.path.join(*parts)
    fig.savefig(path, bbox_inches="tight", facecolor=fig.get_facecolor())
    plt.close(fig)
    return path


# ──────────────────────────────────────────────────────────────────────────────
# World snapshot
# ──────────────────────────────────────────────────────────────────────────────

def selection_mask(mode: str, width: int, height: int) -> np.ndarray:
    """Boolean (height, width) grid, True where a creature would survive."""
    survives = SELECTORS[mode]
    return np.array([[survives(x, y, width, height) for x in range(width)]
                     for y in range(height)], dtype=bool)


def save_world_snapshot(world, generation: int, survivors: list,
                        selection_mode: str, base: str = SAVE_DIR):
    """
    One dot per creature in its genome colour, a short tick showing
    where it faces, and the survival zone shaded green underneath.
    """
    fig, ax = plt.subplots(figsize=(6, 6), dpi=100)
    _dark(fig, ax)
    ax.set_xlim(-0.5, world.width - 0.5)
    ax.set_ylim(-0.5, world.height - 0.5)
    ax.set_aspect("equal")

    if selection_mode != "none":
        mask = selection_mask(selection_mode, world.width, world.height)
        ax.imshow(np.where(mask, 1.0, np.nan), origin="lower", cmap="Greens",
                  vmin=0.0, vmax=2.0, alpha=0.35, interpolation="nearest",
                  extent=(-0.5, world.width - 0.5, -0.5, world.height - 0.5))

    creatures = world.creatures
    if creatures:
        xs = np.array([c.position.x for c in creatures])
        ys = np.array([c.position.y for c in creatures])
        rgb = np.array([c.color for c in creatures], dtype=float) / 255.0
        ax.scatter(xs, ys, c=rgb, s=4, linewidths=0, zorder=3)
        if len(creatures) <= 500:
            ax.quiver(xs, ys,
                      [c.facing.dx for c in creatures],
                      [c.facing.dy for c in creatures],
                      color=rgb, angles="xy", scale_units="xy", scale=2.5,
                      width=0.002, zorder=2)

    ax.set_title(f"Generation {generation}: {len(survivors)} of "
                 f"{len(creatures)} in the {selection_mode} zone",
                 color="white", fontsize=10)
    return _save(fig, base, "snapshots", f"gen_{generation:06d}.png")


# ──────────────────────────────────────────────────────────────────────────────
# Evolution chart
# ──────────────────────────────────────────────────────────────────────────────

def save_evolution_chart(stats: list, base: str = SAVE_DIR,
                         filename: str = "evolution.png"):
    """
    Top panel: survival rate and genome diversity (both 0..1).
    Bottom panel: committed moves per creature per tick.
    """
    if not stats:
        return None
    gens = [s["generation"] for s in stats]

    fig, (top, bottom) = plt.subplots(2, 1, figsize=(11, 6), dpi=100,
                                      sharex=True, gridspec_kw={"height_ratios": (2, 1)})
    _dark(fig, top, bottom)

    top.plot(gens, [s["survival_pct"] / 100.0 for s in stats],
             color=POSITIVE, lw=1.2, label="survival rate")
    top.plot(gens, [s["diversity"] for s in stats],
             color="#CC44FF", lw=1.0, ls="--", label="diversity")
    top.set_ylim(0, 1.05)
    top.legend(facecolor="#222222", labelcolor="white", fontsize=8, loc="lower right")
    top.set_title("Evolutionary Progress", color="white", fontsize=12)

    bottom.fill_between(gens, [s.get("mobility", 0.0) for s in stats],
                        color="#44AAFF", alpha=0.6, step="mid")
    bottom.set_ylabel("moves / tick", color="white")
    bottom.set_xlabel("Generation", color="white")

    fig.tight_layout()
    return _save(fig, base, "charts", filename)


# ──────────────────────────────────────────────────────────────────────────────
# Brain diagram
# ──────────────────────────────────────────────────────────────────────────────

def _layout_nodes(connections: list) -> dict:
    """Assign (x, y) to every neuron touched by a connection, one column per layer."""
    by_layer = {layer: set() for layer in NeuronLayer}
    for c in connections:
        by_layer[c.source.layer].add(c.source)
        by_layer[c.destination.layer].add(c.destination)

    node_pos = {}
    for layer, nodes in by_layer.items():
        ordered = sorted(nodes, key=lambda n: n.index)
        for i, node in enumerate(ordered):
            node_pos[node] = (_COLUMN[layer], (i + 1) / (len(ordered) + 1))
    return node_pos


def save_neural_diagram(creature, generation: int, label: str = "",
                        base: str = SAVE_DIR):
    """
    Layered drawing of the connections decoded by the creature's last
    compute cycle; edge colour is the weight's sign, width its size.
    """
    connections = creature.brain.get_active_connections()
    if not connections:
        return None
    node_pos = _layout_nodes(connections)

    fig, ax = plt.subplots(figsize=(10, 6), dpi=100)
    _dark(fig, ax)
    ax.axis("off")
    ax.set_xlim(-0.35, 1.35)
    ax.set_ylim(-0.05, 1.08)

    for c in connections:
        start, end = node_pos[c.source], node_pos[c.destination]
        style = dict(color=POSITIVE if c.weight >= 0 else NEGATIVE,
                     lw=0.5 + min(3.0, abs(c.weight)), alpha=0.7)
        if start == end:
            ax.add_patch(mpatches.Circle((start[0], start[1] + 0.04), 0.03,
                                         fill=False, **style))
        else:
            ax.annotate("", xy=end, xytext=start, zorder=1,
                        arrowprops=dict(arrowstyle="-|>", shrinkA=6, shrinkB=6,
                                        connectionstyle="arc3,rad=0.08", **style))

    align = {NeuronLayer.INPUT: ("right", -0.03),
             NeuronLayer.INTERNAL: ("center", 0.0),
             NeuronLayer.OUTPUT: ("left", 0.03)}
    for node, (x, y) in node_pos.items():
        ax.add_patch(mpatches.Circle((x, y), 0.025, color=_NODE_COLOR[node.layer], zorder=3))
        ha, dx = align[node.layer]
        ax.text(x + dx, y + (0.045 if ha == "center" else 0.0), node.label(),
                color="white", fontsize=6.5, ha=ha, va="center", zorder=4)

    for layer, x in _COLUMN.items():
        ax.text(x, 1.05, layer.name.title(), color="#CCCCCC", ha="center",
                fontsize=9, fontweight="bold")
    ax.set_title(f"Gen {generation}: {label} brain, {len(connections)} connections",
                 color="white", fontsize=10)
    return _save(fig, base, "neural", f"gen_{generation:06d}_{label}.png")


# ──────────────────────────────────────────────────────────────────────────────
# Text outputs
# ──────────────────────────────────────────────────────────────────────────────

def append_csv(stats: dict, base: str = SAVE_DIR, enabled: bool = LOG_CSV):
    """Append one generation's stats row; the header goes in on first write."""
    if not enabled:
        return None
    path = os.path.join(base, "evolution_log.csv")
    new_file = not os.path.isfile(path)
    with open(path, "a", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(stats))
        if new_file:
            writer.writeheader()
        writer.writerow(stats)
    return path


def save_genome_text(creature, generation: int, label: str = "",
                     base: str = SAVE_DIR):
    """Genome on the first line (loadable with genome_from_text), brain summary after."""
    path = os.path.join(base, "genomes", f"gen_{generation:06d}_{label}.txt")
    with open(path, "w") as f:
        f.write(genome_to_text(creature.genes) + "\n")
        f.write(creature.brain.summary() + "\n")
    return path
