"""
Delay-line accumulator for incoming events.

Each slot holds the summed input due at one future grid step. Slots are
addressed by absolute step modulo the buffer length, so the buffer is reused
cyclically as simulated time advances. A slot is cleared when it is read.
"""

import numpy as np


class RingBuffer:
    """Cyclic per-step accumulator of weighted inputs."""

    def __init__(self, size):
        if size < 1:
            raise ValueError(f"RingBuffer size must be positive, got {size}")
        self.buffer = np.zeros(int(size))

    def __len__(self):
        return len(self.buffer)

    def add_value(self, step, value):
        """Add value to the slot of grid step `step`."""
        self.buffer[step % len(self.buffer)] += value

    def get_value(self, step):
        """Return the summed value due at `step` and clear its slot."""
        idx = step % len(self.buffer)
        value = self.buffer[idx]
        self.buffer[idx] = 0.0
        return float(value)

    def clear(self):
        self.buffer[:] = 0.0

