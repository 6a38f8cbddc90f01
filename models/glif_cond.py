"""
Conductance-based generalized leaky integrate-and-fire (GLIF) neuron.

Five GLIF models (Teeter et al. 2018) with alpha-function conductance
synapses on an arbitrary number of receptor channels:

  GLIF 1 - LIF           leaky integrate and fire
  GLIF 2 - LIF_R         + biologically defined reset rules
  GLIF 3 - LIF_ASC       + after-spike currents
  GLIF 4 - LIF_R_ASC     + reset rules and after-spike currents
  GLIF 5 - LIF_R_ASC_A   + reset rules, after-spike currents and a
                           voltage-dependent threshold

The continuous state (V and the channel conductances) is integrated with an
adaptive Runge-Kutta solver between grid points. After-spike currents and
the threshold components are advanced with their exact exponential
solutions. On each grid point the neuron checks V >= threshold, resets and
enters a refractory period of t_ref.

Spike reset:
  V       -> f_v * V + voltage_reset_add   (GLIF 2/4/5), else V_reset
  theta_s -> theta_s * exp(-b_s * t_ref) + th_spike_add   (GLIF 2/4/5)
  I_j     -> asc_amps_j + I_j * r_j * exp(-k_j * t_ref)   (GLIF 3/4/5)

The decay of theta_s and I_j over the refractory period is applied at the
spike; both are held while refractory.

For GLIF 2/4/5 a reset configuration with
  E_L + f_v * (V_th - E_L) + voltage_reset_add >= V_th + th_spike_add
makes the neuron spike on every step after its first spike. This is kept as
is; a warning is logged when such parameters are set.

Units: ms, mV, nS, pF, pA.
"""

import functools
import logging
from dataclasses import replace

from models import config
from models.exceptions import BadProperty, UnknownReceptorType
from models.glif_dynamics import AdaptiveIntegrator, glif_cond_dynamics
from models.glif_params import (
    Parameters, State, compute_variables, PARAMETER_KEYS, STATE_KEYS,
    V_M, DG_SYN, G_SYN, NUMBER_OF_STATES_ELEMENTS_PER_RECEPTOR,
)
from models.recordables import DataLogger, RecordablesMap
from models.spike_history import SpikeHistory
from synapses.ring_buffer import RingBuffer

logger = logging.getLogger(__name__)


class Buffers:
    """Input delay lines, injected current, logger and solver workspace."""

    def __init__(self, n_receptors, buffer_steps, integrator):
        self.buffer_steps = buffer_steps
        self.spikes = [RingBuffer(buffer_steps) for _ in range(n_receptors)]
        self.currents = RingBuffer(buffer_steps)
        self.logger = DataLogger()
        self.integrator = integrator
        # injected current applied during the current step (pA)
        self.I = 0.0


class GLIFCond:
    """Single conductance-based GLIF point neuron.

    Parameters
    ----------
    params : dict, optional
        Status dictionary overriding the defaults (see get_status()).
    resolution : float
        Grid step h (ms).
    buffer_steps : int
        Delay horizon of the input buffers, in steps.
    spike_history : SpikeHistory, optional
        Collaborator that is told about every emitted spike.
    atol, rtol, max_substeps : optional
        Solver settings, defaults from models.config.
    """

    def __init__(self, params=None, resolution=config.RESOLUTION_MS,
                 buffer_steps=config.RING_BUFFER_STEPS, spike_history=None,
                 atol=None, rtol=None, max_substeps=None):
        if resolution <= 0.0:
            raise BadProperty(f"Resolution must be strictly positive, got {resolution}")
        self.resolution = float(resolution)
        self.P = Parameters()
        self.S = State.from_parameters(self.P)
        self.V = None
        self.step = 0
        if spike_history is None:
            spike_history = SpikeHistory(self.resolution)
        self.spike_history = spike_history

        integrator = AdaptiveIntegrator(
            functools.partial(glif_cond_dynamics, node=self),
            len(self.S.y), self.resolution,
            atol=atol, rtol=rtol, max_substeps=max_substeps)
        self.B = Buffers(self.P.n_receptors, int(buffer_steps), integrator)

        self.recordables = RecordablesMap()
        self.recordables.insert('V_m', lambda: float(self.S.y[V_M]) + self.P.E_L)
        self.recordables.insert('I', lambda: self.B.I)
        self.recordables.insert('ASCurrents_sum', lambda: self.S.asc_sum)
        self.recordables.insert('threshold', lambda: self.S.threshold + self.P.E_L)
        self.recordables.insert('threshold_spike', lambda: self.S.threshold_spike)
        self.recordables.insert('threshold_voltage', lambda: self.S.threshold_voltage)
        self._insert_conductance_recordables()

        self._needs_calibration = True
        if params:
            self.set_status(params)
            # initial state follows the configured parameters
            self.init_state()
            state = {key: params[key] for key in STATE_KEYS if key in params}
            if state:
                self.set_status(state)

    # ------------------------------------------------------------------
    # Recordables
    # ------------------------------------------------------------------
    @staticmethod
    def g_receptor_name(receptor):
        return f"g_{receptor + 1}"

    def _conductance_getter(self, receptor):
        elem = G_SYN + receptor * NUMBER_OF_STATES_ELEMENTS_PER_RECEPTOR
        return lambda: float(self.S.y[elem])

    def _insert_conductance_recordables(self, first=0):
        for receptor in range(first, self.P.n_receptors):
            self.recordables.insert(self.g_receptor_name(receptor),
                                    self._conductance_getter(receptor))

    def get_recordable(self, name):
        """Value of a recordable at the present grid point."""
        return self.recordables.get(name)

    def handle_data_request(self, names):
        return {name: self.recordables.get(name) for name in names}

    def connect_logging_device(self, record_from, interval=1):
        """Record `record_from` at every `interval`-th grid point during update()."""
        self.B.logger.connect_logging_device(record_from, self.recordables, interval)

    def get_recorded_data(self):
        return self.B.logger.get_data()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------
    @property
    def n_channels(self):
        return self.P.n_receptors

    @property
    def model_type(self):
        return self.P.model_type

    def get_status(self):
        d = self.P.get()
        d.update(self.S.get(self.P))
        d['model_type'] = self.P.model_type
        d['recordables'] = self.recordables.get_list()
        return d

    def set_status(self, d):
        """Apply a configuration delta atomically.

        Raises
        ------
        BadProperty
            If any key is unknown or read-only, or the resulting parameters
            or state are inconsistent. Nothing is changed in that case.
        """
        unknown = set(d) - set(PARAMETER_KEYS) - set(STATE_KEYS)
        if unknown:
            raise BadProperty(f"Unknown or read-only properties: {sorted(unknown)}")

        ptmp, delta_EL = self.P.set(d)
        stmp = self.S.set(d, ptmp, delta_EL)

        # if we get here, the temporaries are consistent
        old_n, new_n = self.P.n_receptors, ptmp.n_receptors
        self.P = ptmp
        self.S = stmp
        if new_n > old_n:
            self._insert_conductance_recordables(first=old_n)
        elif new_n < old_n:
            for receptor in range(new_n, old_n):
                self.recordables.erase(self.g_receptor_name(receptor))
        if new_n != old_n:
            self._resize_spike_buffers()
            logger.debug("Receptor channels changed from %d to %d", old_n, new_n)
        self._needs_calibration = True

    def set_resolution(self, resolution):
        """Change the grid step. Buffers and the adaptive step are kept."""
        if resolution <= 0.0:
            raise BadProperty(f"Resolution must be strictly positive, got {resolution}")
        self.resolution = float(resolution)
        self._needs_calibration = True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def init_state(self):
        """Reset the dynamic state from the parameters."""
        self.S = State.from_parameters(self.P)

    def init_buffers(self):
        """Clear all input buffers, the logger and the solver workspace."""
        self.B.spikes = [RingBuffer(self.B.buffer_steps)
                         for _ in range(self.P.n_receptors)]
        self.B.currents.clear()
        self.B.I = 0.0
        self.B.logger.init()
        self.B.integrator.reinit(self.resolution)
        self._needs_calibration = True

    def reset(self):
        """Return to the initial state at step 0 with empty buffers."""
        self.init_state()
        self.init_buffers()
        self.spike_history.clear()
        self.step = 0

    def calibrate(self):
        """Recompute derived coefficients for the current parameters and h."""
        h = self.resolution
        self.V = compute_variables(self.P, h)

        n = self.P.n_receptors
        self._resize_spike_buffers()
        self.B.integrator.resize(len(self.S.y), h)
        self.spike_history.resolution_ms = h
        self._needs_calibration = False
        logger.debug("Calibrated GLIF %d neuron: h=%.4g ms, %d channel(s), "
                     "%d refractory steps", self.P.model_type, h, n,
                     self.V.refractory_counts)

    def _resize_spike_buffers(self):
        n = self.P.n_receptors
        if len(self.B.spikes) < n:
            self.B.spikes.extend(RingBuffer(self.B.buffer_steps)
                                 for _ in range(n - len(self.B.spikes)))
        else:
            del self.B.spikes[n:]

    # ------------------------------------------------------------------
    # Event input
    # ------------------------------------------------------------------
    def _check_channel(self, channel, event_type='SpikeEvent'):
        if not 0 <= channel < self.P.n_receptors:
            raise UnknownReceptorType(channel, self.P.n_receptors, event_type)

    def _check_delivery(self, delivery_step):
        if not self.step < delivery_step <= self.step + self.B.buffer_steps:
            raise ValueError(
                f"Delivery step {delivery_step} outside ({self.step}, "
                f"{self.step + self.B.buffer_steps}]")

    def connect_input(self, channel):
        """Accept an incoming spike connection on `channel`."""
        self._check_channel(channel)
        if not self.P.has_connections:
            self.P = replace(self.P, has_connections=True)
        return channel

    def connect_current_input(self, channel=0):
        if channel != 0:
            raise UnknownReceptorType(channel, 1, 'CurrentEvent')
        return channel

    def handle_spike(self, channel, weight, delivery_step, multiplicity=1):
        """Queue a spike of `weight` on `channel`, effective at `delivery_step`."""
        self._check_channel(channel)
        self._check_delivery(delivery_step)
        self.B.spikes[channel].add_value(delivery_step, weight * multiplicity)

    def handle_current(self, amplitude, delivery_step, channel=0):
        """Queue an injected current (pA) applying from `delivery_step` on."""
        if channel != 0:
            raise UnknownReceptorType(channel, 1, 'CurrentEvent')
        self._check_delivery(delivery_step)
        self.B.currents.add_value(delivery_step, amplitude)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------
    def update(self, first_step, last_step):
        """Advance through grid steps first_step..last_step (inclusive).

        Step s takes the state from grid point s to s + 1. A spike found at
        the end of step s is stamped s + 1.

        Returns
        -------
        spike_steps : list of int
            Grid points at which the neuron spiked, increasing.
        """
        if first_step != self.step:
            raise ValueError(
                f"Update must start at the current step {self.step}, got {first_step}")
        if last_step < first_step:
            return []
        if self._needs_calibration:
            self.calibrate()

        P, V, S, B = self.P, self.V, self.S, self.B
        spike_steps = []

        for step in range(first_step, last_step + 1):
            v_old = S.y[V_M]

            if S.refractory_steps == 0 and P.has_asc:
                # exact mean of the after-spike currents over this step
                S.asc_sum = float(V.asc_stable_coeff @ S.asc)
                S.asc *= V.asc_decay_rates

            B.integrator.advance(S.y, grid_step=step)

            if S.refractory_steps > 0:
                S.refractory_steps -= 1
            else:
                if P.has_theta_voltage:
                    beta = (B.I + S.asc_sum) / P.G
                    S.threshold_voltage = (
                        V.phi * (v_old - beta) * V.potential_decay_rate
                        + V.theta_voltage_decay_rate_inverse
                        * (S.threshold_voltage - V.phi * (v_old - beta)
                           - V.abpara_ratio_voltage * beta)
                        + V.abpara_ratio_voltage * beta)

                if P.has_theta_spike:
                    S.threshold_spike *= V.theta_spike_decay_rate

                S.threshold = S.threshold_spike + S.threshold_voltage + P.th_inf

                if S.y[V_M] >= S.threshold:
                    self._emit_spike()
                    spike_steps.append(step + 1)
                    self.spike_history.record_spike(step + 1)

            # inputs due at the next grid point
            for receptor, buffer in enumerate(B.spikes):
                weight = buffer.get_value(step + 1)
                if weight:
                    S.y[DG_SYN + receptor * NUMBER_OF_STATES_ELEMENTS_PER_RECEPTOR] += (
                        weight * V.cond_initial_values[receptor])
            B.I = B.currents.get_value(step + 1)

            self.step = step + 1
            B.logger.record_data(self.step, self.recordables)

        if spike_steps:
            logger.debug("Steps %d-%d: %d spike(s)", first_step, last_step,
                         len(spike_steps))
        return spike_steps

    def _emit_spike(self):
        """Apply the reset rules and enter the refractory period."""
        P, V, S = self.P, self.V, self.S

        S.refractory_steps = V.refractory_counts

        if P.has_asc:
            S.asc = V.asc_amps + S.asc * V.asc_refractory_decay_rates
            S.asc_sum = float(S.asc.sum())

        if P.has_theta_spike:
            S.y[V_M] = P.voltage_reset_fraction * S.y[V_M] + P.voltage_reset_add
            S.threshold_spike = (S.threshold_spike * V.theta_spike_refractory_decay_rate
                                 + P.th_spike_add)
            S.threshold = S.threshold_spike + S.threshold_voltage + P.th_inf
        else:
            S.y[V_M] = P.V_reset
