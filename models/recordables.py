"""
Named read access to neuron state for sampling and recording.

A RecordablesMap maps a recordable name to a zero-argument getter bound to a
neuron. The DataLogger samples a chosen subset of those getters at grid
points during update().
"""

import logging

import numpy as np

from models.exceptions import UnknownRecordable

logger = logging.getLogger(__name__)


class RecordablesMap:
    """Ordered mapping from recordable name to getter."""

    def __init__(self):
        self._getters = {}

    def __contains__(self, name):
        return name in self._getters

    def __len__(self):
        return len(self._getters)

    def insert(self, name, getter):
        self._getters[name] = getter

    def erase(self, name):
        self._getters.pop(name, None)

    def get_list(self):
        return list(self._getters)

    def get(self, name):
        """Current value of recordable `name`."""
        try:
            getter = self._getters[name]
        except KeyError:
            raise UnknownRecordable(name) from None
        return getter()


class DataLogger:
    """Records selected recordables at every `interval`-th grid point."""

    def __init__(self):
        self.record_from = []
        self.interval = 1
        self.steps = []
        self.data = {}

    def connect_logging_device(self, record_from, recordables, interval=1):
        """Select what to record. Names are checked against `recordables`."""
        record_from = list(record_from)
        missing = [name for name in record_from if name not in recordables]
        if missing:
            raise UnknownRecordable(
                f"Cannot record {missing}; available: {recordables.get_list()}")
        if interval < 1:
            raise ValueError(f"Recording interval must be >= 1 step, got {interval}")
        self.record_from = record_from
        self.interval = int(interval)
        self.init()

    def init(self):
        """Drop recorded data, keep the selection."""
        self.steps = []
        self.data = {name: [] for name in self.record_from}

    def record_data(self, step, recordables):
        if not self.record_from or step % self.interval:
            return
        self.steps.append(step)
        for name in self.record_from:
            # channels removed after connecting read as NaN
            value = recordables.get(name) if name in recordables else np.nan
            self.data[name].append(value)

    def get_data(self):
        """Recorded samples as arrays, plus the sampled grid steps."""
        out = {name: np.array(values) for name, values in self.data.items()}
        out['steps'] = np.array(self.steps, dtype=int)
        return out
