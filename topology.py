"""
Brain topology for GridBrain.

A brain has three neuron layers:

  Input    : one slot per SensorType   (fixed for every creature)
  Internal : untyped hidden neurons     (count chosen per creature)
  Output   : one slot per ActionType   (fixed for every creature)

Genes address neurons as (layer, index) pairs resolved against a
BrainTopology, see gene.Gene.decode.
"""

from enum import Enum, IntEnum
from typing import NamedTuple

from config import MAX_LAYER_NEURONS, NUM_INTERNAL_NEURONS


class NeuronLayer(Enum):
    INPUT    = "input"
    INTERNAL = "internal"
    OUTPUT   = "output"


class SensorType(IntEnum):
    """Sensor assigned to each Input slot (value = slot index)."""
    LOC_X              = 0    # x-position  (0→1)
    LOC_Y              = 1    # y-position  (0→1)
    BOUNDARY_DIST_X    = 2    # distance to nearest east/west wall (0 at wall → 1 centre)
    BOUNDARY_DIST_Y    = 3    # distance to nearest north/south wall
    BOUNDARY_DIST      = 4    # distance to nearest wall of any kind
    POPULATION_DENSITY = 5    # occupied fraction of the neighbourhood (0→1)
    BLOCK_FORWARD      = 6    # 1 if cell ahead is occupied or outside the world
    BLOCK_LEFT_RIGHT   = 7    # 1 if either lateral neighbour is occupied
    RANDOM             = 8    # pure noise (−1→1 each tick)
    CONSTANT           = 9    # always 1.0 (bias-like neuron)


class ActionType(IntEnum):
    """Actuator assigned to each Output slot (value = slot index)."""
    MOVE_FORWARD     = 0   # along facing, positive values only
    MOVE_REVERSE     = 1   # against facing, positive values only
    MOVE_LEFT_RIGHT  = 2   # right of facing (+) / left (−)
    MOVE_EAST_WEST   = 3   # east (+) / west (−)
    MOVE_NORTH_SOUTH = 4   # north (+) / south (−)
    MOVE_RANDOM      = 5   # random vector scaled by |value|


SENSOR_LABELS = {s.value: s.name.lower() for s in SensorType}
ACTION_LABELS = {a.value: a.name.lower() for a in ActionType}

NUM_SENSORS = len(SensorType)
NUM_ACTIONS = len(ActionType)


class NeuronDescriptor(NamedTuple):
    """A resolved neuron address: which layer, which slot."""
    layer: NeuronLayer
    index: int

    def label(self) -> str:
        if self.layer is NeuronLayer.INPUT:
            return SENSOR_LABELS.get(self.index, f"S{self.index}")
        if self.layer is NeuronLayer.OUTPUT:
            return ACTION_LABELS.get(self.index, f"A{self.index}")
        return f"I{self.index}"


class BrainTopology(NamedTuple):
    """Neuron counts per layer that genes are decoded against."""
    num_input:    int = NUM_SENSORS
    num_internal: int = NUM_INTERNAL_NEURONS
    num_output:   int = NUM_ACTIONS

    @classmethod
    def with_internal(cls, num_internal: int = NUM_INTERNAL_NEURONS) -> "BrainTopology":
        """Standard sensor/actuator slots plus `num_internal` hidden neurons."""
        topology = cls(NUM_SENSORS, num_internal, NUM_ACTIONS)
        topology.validate()
        return topology

    def validate(self):
        for layer in NeuronLayer:
            count = self.count_for_layer(layer)
            if not 1 <= count <= MAX_LAYER_NEURONS:
                raise ValueError(
                    f"{layer.value} neuron count must be in 1..{MAX_LAYER_NEURONS}, "
                    f"got {count}")

    def count_for_layer(self, layer: NeuronLayer) -> int:
        if layer is NeuronLayer.INPUT:
            return self.num_input
        if layer is NeuronLayer.INTERNAL:
            return self.num_internal
        return self.num_output
