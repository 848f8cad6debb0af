"""
GridBrain Configuration
Defaults for every tunable; main.py and server.py override them per run.
"""

# ─── Grid ─────────────────────────────────────────────────────────────────────
WORLD_WIDTH  = 128   # x runs west → east, 0..WIDTH-1
WORLD_HEIGHT = 128   # y runs south → north, 0..HEIGHT-1
MAX_STEP     = 1     # per-axis clamp on a desired move

# ─── Generations ──────────────────────────────────────────────────────────────
POPULATION       = 1000
MAX_GENERATIONS  = 1200
STEPS_PER_GEN    = 300    # ticks between spawn and selection

# ─── Genes / Brain ────────────────────────────────────────────────────────────
GENOME_SIZE          = 16     # genes per genome, one connection each
NUM_INTERNAL_NEURONS = 4
MUTATION_RATE        = 0.001  # per gene, per copy
WEIGHT_DIVISOR       = 8192   # int16 / 8192 ≈ [-4, 4)
MAX_LAYER_NEURONS    = 128    # a gene has 7 index bits per end
ACTIVATION_EPSILON   = 1e-9   # neuron values live in [-1+eps, 1-eps]
DENSITY_RADIUS       = 2      # Chebyshev radius of the density sensor

# ─── Selection ────────────────────────────────────────────────────────────────
# east / west      : x on the matching side of WIDTH // 2
# west_east        : within STRIP_WIDTH of the west or east edge
# corners          : within CORNER_SIZE of two perpendicular edges
# center           : within CENTER_RADIUS of (WIDTH // 2, HEIGHT // 2)
# none             : no pressure
SELECTION_MODE   = "east"
SELECTION_MODES  = ("east", "west", "west_east", "corners", "center", "none")
CENTER_RADIUS    = 20
STRIP_WIDTH      = 32
CORNER_SIZE      = 32

# ─── Output ───────────────────────────────────────────────────────────────────
SAVE_DIR           = "output"   # one subdirectory per scenario
SNAPSHOT_INTERVAL  = 50         # generations between image dumps
SAVE_NEURAL_SAMPLE = True       # brain diagram + genome dump of a survivor
LOG_CSV            = True
