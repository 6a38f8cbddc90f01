"""
Default configuration for GLIF conductance-based neuron simulations.
"""

import logging

# ============================================================
# TIME
# ============================================================
RESOLUTION_MS = 0.1          # Grid step h (ms)
MIN_DELAY_STEPS = 10         # Steps advanced per update() call by the harness
RING_BUFFER_STEPS = 1000     # Delay horizon of the input buffers (steps)

# ============================================================
# SOLVER (scipy.integrate.RK45)
# ============================================================
SOLVER_ATOL = 1e-6           # Absolute tolerance
SOLVER_RTOL = 1e-6           # Relative tolerance
MAX_SUBSTEPS = 10000         # Accepted sub-steps allowed per grid step

# ============================================================
# LOGGING
# ============================================================
LOG_LEVEL = logging.INFO
LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"
