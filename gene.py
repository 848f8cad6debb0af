"""
Gene encoding / decoding for GridBrain.

Each gene is one synaptic connection packed into 32 bits:

 Bit 31     : source layer       (0=input neuron, 1=internal neuron)
 Bits 30-24 : source index       (7 bits → reduced modulo the layer size)
 Bit  23    : destination layer  (0=internal neuron, 1=output neuron)
 Bits 22-16 : destination index  (7 bits → reduced modulo the layer size)
 Bits 15-0  : weight             (signed int16, divided by WEIGHT_DIVISOR → float)

Textual form is 8 upper-case hex digits, SSDDWWWW.
"""

from typing import NamedTuple

import numpy as np

from config import GENOME_SIZE, MUTATION_RATE, WEIGHT_DIVISOR
from topology import BrainTopology, NeuronDescriptor, NeuronLayer

LAYER_BIT  = 0x80
INDEX_MASK = 0x7F
GENE_BITS  = 32


class InvalidGeneTopology(ValueError):
    """Gene would read from an output neuron or write to an input neuron."""


class BitIndexOutOfRange(IndexError):
    """Mutation asked to flip a bit outside the 32-bit gene."""


def _signed16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value >= 0x8000 else value


class Gene(NamedTuple):
    source:      int   # 0..255
    destination: int   # 0..255
    weight:      int   # −32768..32767

    # ──────────────────────────────────────────────────────────────────────────
    # Construction
    # ──────────────────────────────────────────────────────────────────────────

    @classmethod
    def encode(cls, source_layer: NeuronLayer, source_index: int,
               dest_layer: NeuronLayer, dest_index: int,
               weight: int) -> "Gene":
        """Pack a connection descriptor into a gene."""
        if source_layer is NeuronLayer.OUTPUT:
            raise InvalidGeneTopology("an output neuron cannot be a gene source")
        if dest_layer is NeuronLayer.INPUT:
            raise InvalidGeneTopology("an input neuron cannot be a gene destination")
        if not -0x8000 <= weight <= 0x7FFF:
            raise ValueError(f"weight {weight} does not fit in a signed 16-bit field")

        source = source_index & INDEX_MASK
        if source_layer is NeuronLayer.INTERNAL:
            source |= LAYER_BIT
        destination = dest_index & INDEX_MASK
        if dest_layer is NeuronLayer.OUTPUT:
            destination |= LAYER_BIT
        return cls(source, destination, int(weight))

    @classmethod
    def from_int(cls, raw: int) -> "Gene":
        raw = int(raw) & 0xFFFFFFFF
        return cls((raw >> 24) & 0xFF, (raw >> 16) & 0xFF, _signed16(raw))

    @classmethod
    def from_text(cls, text: str) -> "Gene":
        """Parse the SSDDWWWW hex form produced by to_text()."""
        text = text.strip()
        if len(text) != 8:
            raise ValueError(f"gene text must be 8 hex digits, got {text!r}")
        return cls.from_int(int(text, 16))

    @classmethod
    def random(cls, rng=None) -> "Gene":
        if rng is None:
            rng = np.random.default_rng()
        return cls.from_int(int(rng.integers(0, 2**32, dtype=np.uint64)))

    # ──────────────────────────────────────────────────────────────────────────
    # Decoding
    # ──────────────────────────────────────────────────────────────────────────

    @property
    def source_layer(self) -> NeuronLayer:
        return NeuronLayer.INTERNAL if self.source & LAYER_BIT else NeuronLayer.INPUT

    @property
    def destination_layer(self) -> NeuronLayer:
        return NeuronLayer.OUTPUT if self.destination & LAYER_BIT else NeuronLayer.INTERNAL

    @property
    def scaled_weight(self) -> float:
        return self.weight / WEIGHT_DIVISOR

    def decode(self, topology: BrainTopology, role: str) -> NeuronDescriptor:
        """
        Resolve the source or destination neuron against a topology.

        Several raw 7-bit values alias onto the same neuron once reduced
        modulo the layer size.
        """
        if role == "source":
            layer, raw = self.source_layer, self.source
        elif role == "destination":
            layer, raw = self.destination_layer, self.destination
        else:
            raise ValueError(f"role must be 'source' or 'destination', got {role!r}")
        return NeuronDescriptor(layer, (raw & INDEX_MASK) % topology.count_for_layer(layer))

    def source_neuron(self, topology: BrainTopology) -> NeuronDescriptor:
        return self.decode(topology, "source")

    def destination_neuron(self, topology: BrainTopology) -> NeuronDescriptor:
        return self.decode(topology, "destination")

    # ──────────────────────────────────────────────────────────────────────────
    # Mutation / serialisation
    # ──────────────────────────────────────────────────────────────────────────

    def to_int(self) -> int:
        """The unsigned 32-bit packed value."""
        return (self.source & 0xFF) << 24 | (self.destination & 0xFF) << 16 | (self.weight & 0xFFFF)

    def mutate(self, bit: int) -> "Gene":
        """Return a copy with exactly one bit of the 32-bit value flipped."""
        if not 0 <= bit < GENE_BITS:
            raise BitIndexOutOfRange(f"bit index {bit} outside 0..{GENE_BITS - 1}")
        return Gene.from_int(self.to_int() ^ (1 << bit))

    def to_text(self) -> str:
        return f"{self.source & 0xFF:02X}{self.destination & 0xFF:02X}{self.weight & 0xFFFF:04X}"

    def __str__(self) -> str:
        return self.to_text()


# ──────────────────────────────────────────────────────────────────────────────
# Genome-level operations
# ──────────────────────────────────────────────────────────────────────────────

def random_genome(size: int = GENOME_SIZE, rng=None) -> list:
    """Generate a random genome as a list of Genes."""
    if rng is None:
        rng = np.random.default_rng()
    return [Gene.random(rng) for _ in range(size)]


def mutate_genome(genome: list, rate: float = MUTATION_RATE, rng=None) -> list:
    """
    Copy a genome; each gene independently, with probability `rate`,
    gets exactly one randomly chosen bit flipped.
    """
    if rng is None:
        rng = np.random.default_rng()
    mutated = []
    for gene in genome:
        if rng.random() < rate:
            gene = gene.mutate(int(rng.integers(0, GENE_BITS)))
        mutated.append(gene)
    return mutated


def genome_to_text(genome: list) -> str:
    return " ".join(gene.to_text() for gene in genome)


def genome_from_text(text: str) -> list:
    return [Gene.from_text(token) for token in text.split()]


def genome_similarity(genome_a: list, genome_b: list) -> float:
    """
    Genetic similarity (0..1) based on fraction of identical bits.
    """
    if not genome_a or not genome_b:
        return 0.0
    total_bits = 0
    matching   = 0
    for a, b in zip(genome_a, genome_b):
        xor = a.to_int() ^ b.to_int()
        matching   += GENE_BITS - bin(xor).count("1")
        total_bits += GENE_BITS
    return matching / total_bits if total_bits else 1.0


def genome_to_color(genome: list) -> tuple:
    """
    Map a genome to an RGB colour so that genetically similar creatures
    have similar colours.
    """
    if not genome:
        return (128, 128, 128)
    # XOR-fold all genes into 24 bits
    h = 0
    for gene in genome:
        h ^= gene.to_int() & 0xFFFFFF
    r = max(50, (h >> 16) & 0xFF)
    g = max(50, (h >>  8) & 0xFF)
    b = max(50,  h        & 0xFF)
    return (r, g, b)
