"""
Neural Network Brain for GridBrain.

Each gene specifies one synaptic connection:
  input/internal → internal/output

Compute cycle (per simulation tick):
  1. Input values are set by the sensors (set_inputs)
  2. Internal and output values are reset to zero
  3. Genes are decoded against the brain's own topology
  4. Four stages, each summing into a scratch accumulator before committing:
       input    → internal
       input    → output
       internal → internal   (reads internal values as left by stage 1)
       internal → output     (reads internal values as left by stage 3)
     A touched neuron becomes tanh(atanh(v) + sum), so several stages
     compound and every value stays inside (−1, 1).
  5. Output values are turned into a desired move (desired_move)
"""

from typing import NamedTuple

import numpy as np

from actions import act
from config import ACTIVATION_EPSILON
from sensors import sense
from topology import (ActionType, BrainTopology, NeuronDescriptor,
                      NeuronLayer, SensorType)
from world import DeltaPosition

STAGES = (
    (NeuronLayer.INPUT,    NeuronLayer.INTERNAL),
    (NeuronLayer.INPUT,    NeuronLayer.OUTPUT),
    (NeuronLayer.INTERNAL, NeuronLayer.INTERNAL),
    (NeuronLayer.INTERNAL, NeuronLayer.OUTPUT),
)


class NeuronConnection(NamedTuple):
    source:      NeuronDescriptor
    destination: NeuronDescriptor
    weight:      float


def saturate(values: np.ndarray, delta: np.ndarray,
             eps: float = ACTIVATION_EPSILON) -> np.ndarray:
    """
    tanh(atanh(v) + delta), with v and the result clipped to
    [−1 + eps, 1 − eps] so atanh stays finite.
    """
    lo, hi = -1.0 + eps, 1.0 - eps
    current = np.clip(values, lo, hi)
    return np.clip(np.tanh(np.arctanh(current) + delta), lo, hi)


class Brain:
    """
    Neuron value arrays plus the staged propagation algorithm.
    Built once per creature; the arrays are never resized.
    """

    def __init__(self, topology: BrainTopology = None):
        if topology is None:
            topology = BrainTopology.with_internal()
        topology.validate()
        self.topology  = topology
        self.inputs    = np.zeros(topology.num_input,    dtype=np.float64)
        self.internals = np.zeros(topology.num_internal, dtype=np.float64)
        self.outputs   = np.zeros(topology.num_output,   dtype=np.float64)
        self._connections = []

    def values(self, layer: NeuronLayer) -> np.ndarray:
        if layer is NeuronLayer.INPUT:
            return self.inputs
        if layer is NeuronLayer.INTERNAL:
            return self.internals
        return self.outputs

    # ──────────────────────────────────────────────────────────────────────────

    def set_inputs(self, world, position, facing, rng=None):
        """Run every sensor against the world and store the raw readings."""
        if rng is None:
            rng = np.random.default_rng()
        for sensor in SensorType:
            if sensor.value < len(self.inputs):
                self.inputs[sensor.value] = sense(sensor, world, position, facing, rng)

    def decode_connections(self, genes: list) -> list:
        """Decode each gene into a connection against this brain's topology."""
        return [
            NeuronConnection(gene.source_neuron(self.topology),
                             gene.destination_neuron(self.topology),
                             gene.scaled_weight)
            for gene in genes
        ]

    def compute_state(self, genes: list):
        """One compute cycle: reset, decode, then the four stages in order."""
        self.internals[:] = 0.0
        self.outputs[:]   = 0.0

        self._connections = self.decode_connections(genes)
        for source_layer, dest_layer in STAGES:
            self._run_stage(self._connections, source_layer, dest_layer)

    def _run_stage(self, connections: list, source_layer: NeuronLayer,
                   dest_layer: NeuronLayer):
        sources      = self.values(source_layer)
        destinations = self.values(dest_layer)
        accumulated  = np.zeros(len(destinations), dtype=np.float64)
        touched      = np.zeros(len(destinations), dtype=bool)

        for c in connections:
            if c.source.layer is source_layer and c.destination.layer is dest_layer:
                accumulated[c.destination.index] += sources[c.source.index] * c.weight
                touched[c.destination.index] = True

        # commit only after every contribution of the stage is summed
        if touched.any():
            destinations[touched] = saturate(destinations[touched], accumulated[touched])

    # ──────────────────────────────────────────────────────────────────────────

    def desired_move(self, facing, rng=None) -> DeltaPosition:
        """Sum every output neuron's movement contribution."""
        if rng is None:
            rng = np.random.default_rng()
        delta = DeltaPosition(0.0, 0.0)
        for action in ActionType:
            if action.value < len(self.outputs):
                delta = delta + act(action, float(self.outputs[action.value]), facing, rng)
        return delta

    # ──────────────────────────────────────────────────────────────────────────

    def get_active_connections(self) -> list:
        """Connections decoded by the last compute cycle (for visualisation)."""
        return self._connections

    def summary(self) -> str:
        lines = [f"Brain ({len(self._connections)} connections, "
                 f"{self.topology.num_internal} internal neurons)"]
        for c in self._connections:
            lines.append(
                f"  {c.source.label():>20} → {c.destination.label():<20}"
                f"  w={c.weight:+.3f}"
            )
        return "\n".join(lines)
