"""
Stimulation harness for a single GLIF neuron.

Plays the part of the host scheduler: queues injected current and synaptic
spike events into the neuron's input buffers one min-delay chunk ahead,
advances the neuron chunk by chunk and collects spikes and recordables.

Architecture:
  current (pA) ----------------------> I
  spike trains --alpha conductance--> channel c (E_rev[c])
                                        |
                                     GLIFCond --> spikes
"""

import logging

import numpy as np

from models import config
from models.exceptions import UnknownReceptorType
from models.glif_cond import GLIFCond
from models.stimulus import spike_times_to_steps

logger = logging.getLogger(__name__)

DEFAULT_RECORDABLES = ('V_m', 'threshold', 'ASCurrents_sum')


class SingleNeuronCircuit:
    """One GLIF neuron driven by current injection and synaptic input."""

    def __init__(self, params=None, dt=config.RESOLUTION_MS,
                 min_delay_steps=config.MIN_DELAY_STEPS, **neuron_kwargs):
        """
        Parameters
        ----------
        params : dict, optional
            Neuron status dictionary (see GLIFCond.get_status()).
        dt : float
            Grid step (ms).
        min_delay_steps : int
            Steps advanced per GLIFCond.update() call.
        neuron_kwargs
            Passed to GLIFCond (solver tolerances, buffer size).
        """
        self.dt = dt
        self.min_delay_steps = int(min_delay_steps)
        self.neuron = GLIFCond(params=params, resolution=dt, **neuron_kwargs)
        if self.min_delay_steps > self.neuron.B.buffer_steps:
            raise ValueError(
                f"min_delay_steps ({self.min_delay_steps}) exceeds the input "
                f"buffer horizon ({self.neuron.B.buffer_steps})")

    def simulate(self, duration_ms, current_pA=None, spike_trains=None,
                 record=DEFAULT_RECORDABLES, record_every=1):
        """Run the neuron for duration_ms from its current step.

        Parameters
        ----------
        duration_ms : float
            Simulation duration (ms).
        current_pA : float or np.ndarray, optional
            Constant current, or current per grid point (index 0 = start).
        spike_trains : dict, optional
            channel -> spike times (ms), or channel -> (times, weights).
            Times are relative to the start of this run.
        record : sequence of str
            Recordables sampled at every `record_every`-th grid point.

        Returns
        -------
        results : dict
            t : sample times (ms)
            <recordable> : sampled values
            spike_times : spike times (ms)
            spike_steps : spike grid steps
            dt, duration_ms, model_type
        """
        neuron = self.neuron
        dt = self.dt
        n_steps = int(round(duration_ms / dt))
        start = neuron.step

        current = self._current_per_step(current_pA, n_steps)
        events = self._spike_events(spike_trains, start)

        neuron.connect_logging_device(record, interval=record_every)

        logger.info("Simulating GLIF %d neuron for %.1f ms (%d steps, %d channel(s))",
                    neuron.model_type, duration_ms, n_steps, neuron.n_channels)

        spike_steps = []
        event_idx = 0
        for chunk_start in range(start, start + n_steps, self.min_delay_steps):
            chunk_stop = min(chunk_start + self.min_delay_steps, start + n_steps)

            # --- Queue inputs due at grid points chunk_start+1 .. chunk_stop ---
            if current is not None:
                for step in range(chunk_start + 1, chunk_stop + 1):
                    neuron.handle_current(current[step - start], step)
            while event_idx < len(events) and events[event_idx][0] <= chunk_stop:
                step, channel, weight = events[event_idx]
                if step > chunk_start:
                    neuron.handle_spike(channel, weight, step)
                event_idx += 1

            # --- Advance ---
            spike_steps.extend(neuron.update(chunk_start, chunk_stop - 1))

        data = neuron.get_recorded_data()
        spike_steps = np.array(spike_steps, dtype=int)
        logger.info("Simulation complete: %d spike(s), %d solver sub-steps",
                    len(spike_steps), neuron.B.integrator.n_substeps)

        results = {name: data[name] for name in record}
        results.update({
            't': (data['steps'] - start) * dt,
            'spike_steps': spike_steps,
            'spike_times': (spike_steps - start) * dt,
            'dt': dt,
            'duration_ms': duration_ms,
            'model_type': neuron.model_type,
        })
        return results

    @staticmethod
    def _current_per_step(current_pA, n_steps):
        if current_pA is None:
            return None
        if np.isscalar(current_pA):
            return np.full(n_steps + 1, float(current_pA))
        current = np.asarray(current_pA, dtype=float)
        if len(current) < n_steps + 1:
            current = np.concatenate([current, np.zeros(n_steps + 1 - len(current))])
        return current

    def _spike_events(self, spike_trains, start):
        """Sorted (step, channel, weight) events, connecting used channels."""
        spike_trains = spike_trains or {}
        n_channels = self.neuron.n_channels
        for channel in spike_trains:
            if not 0 <= channel < n_channels:
                raise UnknownReceptorType(channel, n_channels)

        events = []
        for channel, train in spike_trains.items():
            self.neuron.connect_input(channel)
            if isinstance(train, tuple):
                times, weights = train
            else:
                times, weights = train, 1.0
            times = np.asarray(times, dtype=float)
            weights = np.broadcast_to(np.asarray(weights, dtype=float), times.shape)
            steps = spike_times_to_steps(times, self.dt) + start
            events.extend(zip(steps.tolist(), [channel] * len(steps), weights.tolist()))
        events.sort(key=lambda e: e[0])
        return events
