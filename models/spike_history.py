"""
Spike history of a single neuron.

Stands in for the archiving base of a network node: the neuron reports each
emitted spike here, and plasticity rules or analysis read the history back.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)


class SpikeHistory:
    """Ordered record of the grid steps at which a neuron spiked."""

    def __init__(self, resolution_ms=None):
        self.resolution_ms = resolution_ms
        self._steps = []

    def __len__(self):
        return len(self._steps)

    def record_spike(self, step):
        if self._steps and step < self._steps[-1]:
            raise ValueError(
                f"Spike at step {step} precedes last recorded spike "
                f"at step {self._steps[-1]}")
        self._steps.append(int(step))

    @property
    def last_spike_step(self):
        """Step of the most recent spike, or None."""
        return self._steps[-1] if self._steps else None

    def spike_steps(self, first=None, last=None):
        """Spike steps in the inclusive range [first, last]."""
        steps = np.array(self._steps, dtype=int)
        if first is not None:
            steps = steps[steps >= first]
        if last is not None:
            steps = steps[steps <= last]
        return steps

    def spike_times(self):
        """Spike times in ms. Requires resolution_ms."""
        if self.resolution_ms is None:
            raise ValueError("SpikeHistory has no resolution; cannot convert to ms")
        return np.array(self._steps, dtype=float) * self.resolution_ms

    def clear(self):
        self._steps = []
