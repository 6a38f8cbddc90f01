from models.exceptions import (
    GLIFError, BadProperty, UnknownReceptorType, UnknownRecordable, IntegrationError,
)
from models.glif_params import Parameters, State, Variables, GLIF_PRESETS
from models.glif_cond import GLIFCond
from models.spike_history import SpikeHistory
