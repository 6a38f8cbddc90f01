"""
Parameters, state and derived coefficients of the conductance-based GLIF neuron.

Based on Teeter et al. 2018 (Nat Commun 9:709), with alpha-function
conductance synapses after Meffin, Burkitt & Grayden 2004.

Default values are GLIF model 5 of Allen Cell Types Database cell 490626718,
converted to mV, nS, pF, ms, pA and rounded.

Potentials are stored relative to the resting potential E_L. The status
dictionary exposes V_th, V_reset and V_m as absolute values, which a change
of E_L alone leaves unchanged.

Model mechanisms (spike_dependent_threshold, after_spike_currents,
adapting_threshold):
  GLIF 1 (LIF)          - (False, False, False)
  GLIF 2 (LIF_R)        - (True,  False, False)
  GLIF 3 (LIF_ASC)      - (False, True,  False)
  GLIF 4 (LIF_R_ASC)    - (True,  True,  False)
  GLIF 5 (LIF_R_ASC_A)  - (True,  True,  True)
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Tuple

import numpy as np

from models.exceptions import BadProperty
from synapses.alpha_synapse import alpha_normalization

logger = logging.getLogger(__name__)


MODEL_MECHANISMS = {
    (False, False, False): 1,
    (True, False, False): 2,
    (False, True, False): 3,
    (True, True, False): 4,
    (True, True, True): 5,
}

# State vector layout: V_M, then (DG_SYN, G_SYN) per channel
V_M = 0
DG_SYN = 1
G_SYN = 2
NUMBER_OF_FIXED_STATES_ELEMENTS = 1
NUMBER_OF_STATES_ELEMENTS_PER_RECEPTOR = 2

PARAMETER_KEYS = (
    'g', 'E_L', 'V_th', 'C_m', 't_ref', 'V_reset',
    'th_spike_add', 'th_spike_decay', 'voltage_reset_fraction',
    'voltage_reset_add', 'th_voltage_index', 'th_voltage_decay',
    'asc_init', 'asc_decay', 'asc_amps', 'asc_r', 'tau_syn', 'E_rev',
    'spike_dependent_threshold', 'after_spike_currents', 'adapting_threshold',
)
STATE_KEYS = ('V_m', 'ASCurrents', 'threshold_spike', 'threshold_voltage')


def _as_float(name, value):
    try:
        x = float(value)
    except (TypeError, ValueError):
        raise BadProperty(f"{name} must be a number, got {value!r}")
    if not np.isfinite(x):
        raise BadProperty(f"{name} must be finite, got {x}")
    return x


def _as_vector(name, value):
    try:
        vec = tuple(float(v) for v in np.atleast_1d(np.asarray(value, dtype=float)))
    except (TypeError, ValueError):
        raise BadProperty(f"{name} must be a sequence of numbers, got {value!r}")
    if not all(np.isfinite(vec)):
        raise BadProperty(f"{name} must contain finite values only, got {list(vec)}")
    return vec


def _positive(x):
    return np.isfinite(x) and x > 0.0


@dataclass(frozen=True)
class Parameters:
    """Model parameters. Potentials th_inf and V_reset are relative to E_L."""
    G: float = 9.43                      # membrane conductance (nS)
    E_L: float = -78.85                  # resting potential (mV)
    th_inf: float = 27.17                # baseline threshold (mV, rel. E_L)
    C_m: float = 58.72                   # capacitance (pF)
    t_ref: float = 3.75                  # refractory time (ms)
    V_reset: float = 0.0                 # reset potential (mV, rel. E_L)
    th_spike_add: float = 0.37           # threshold increment on spike (mV)
    th_spike_decay: float = 0.009        # spike threshold decay (1/ms)
    voltage_reset_fraction: float = 0.20
    voltage_reset_add: float = 18.51     # (mV)
    th_voltage_index: float = 0.005      # a_v (1/ms)
    th_voltage_decay: float = 0.09       # b_v (1/ms)
    asc_init: Tuple[float, ...] = (0.0, 0.0)        # (pA)
    asc_decay: Tuple[float, ...] = (0.003, 0.1)     # (1/ms)
    asc_amps: Tuple[float, ...] = (-9.18, -198.94)  # (pA)
    asc_r: Tuple[float, ...] = (1.0, 1.0)
    tau_syn: Tuple[float, ...] = (0.2, 2.0)         # (ms)
    E_rev: Tuple[float, ...] = (0.0, -85.0)         # (mV)
    has_theta_spike: bool = False
    has_asc: bool = False
    has_theta_voltage: bool = False
    has_connections: bool = False

    @property
    def n_receptors(self):
        return len(self.tau_syn)

    @property
    def model_type(self):
        return MODEL_MECHANISMS.get(
            (self.has_theta_spike, self.has_asc, self.has_theta_voltage))

    def get(self):
        """Return the parameters as a status dictionary (absolute potentials)."""
        return {
            'g': self.G,
            'E_L': self.E_L,
            'V_th': self.th_inf + self.E_L,
            'C_m': self.C_m,
            't_ref': self.t_ref,
            'V_reset': self.V_reset + self.E_L,
            'th_spike_add': self.th_spike_add,
            'th_spike_decay': self.th_spike_decay,
            'voltage_reset_fraction': self.voltage_reset_fraction,
            'voltage_reset_add': self.voltage_reset_add,
            'th_voltage_index': self.th_voltage_index,
            'th_voltage_decay': self.th_voltage_decay,
            'asc_init': list(self.asc_init),
            'asc_decay': list(self.asc_decay),
            'asc_amps': list(self.asc_amps),
            'asc_r': list(self.asc_r),
            'tau_syn': list(self.tau_syn),
            'E_rev': list(self.E_rev),
            'spike_dependent_threshold': self.has_theta_spike,
            'after_spike_currents': self.has_asc,
            'adapting_threshold': self.has_theta_voltage,
            'has_connections': self.has_connections,
        }

    def set(self, d):
        """Build a new, validated Parameters from this one overlaid with d.

        Returns
        -------
        params : Parameters
        delta_EL : float
            Change of E_L, used to shift the relative membrane potential.

        Raises
        ------
        BadProperty
            On any inconsistency. self is never modified.
        """
        changes = {}
        E_L = _as_float('E_L', d.get('E_L', self.E_L))
        delta_EL = E_L - self.E_L
        changes['E_L'] = E_L

        # Absolute potentials are kept when only E_L moves
        if 'V_reset' in d:
            changes['V_reset'] = _as_float('V_reset', d['V_reset']) - E_L
        else:
            changes['V_reset'] = self.V_reset - delta_EL
        if 'V_th' in d:
            changes['th_inf'] = _as_float('V_th', d['V_th']) - E_L
        else:
            changes['th_inf'] = self.th_inf - delta_EL

        scalars = {
            'g': 'G', 'C_m': 'C_m', 't_ref': 't_ref',
            'th_spike_add': 'th_spike_add', 'th_spike_decay': 'th_spike_decay',
            'voltage_reset_fraction': 'voltage_reset_fraction',
            'voltage_reset_add': 'voltage_reset_add',
            'th_voltage_index': 'th_voltage_index',
            'th_voltage_decay': 'th_voltage_decay',
        }
        for key, attr in scalars.items():
            if key in d:
                changes[attr] = _as_float(key, d[key])

        for key in ('asc_init', 'asc_decay', 'asc_amps', 'asc_r', 'tau_syn', 'E_rev'):
            if key in d:
                changes[key] = _as_vector(key, d[key])

        flags = {
            'spike_dependent_threshold': 'has_theta_spike',
            'after_spike_currents': 'has_asc',
            'adapting_threshold': 'has_theta_voltage',
        }
        for key, attr in flags.items():
            if key in d:
                changes[attr] = bool(d[key])

        params = replace(self, **changes)
        params._validate(self, receptors_given=('tau_syn' in d, 'E_rev' in d))
        return params, delta_EL

    def _validate(self, old, receptors_given=(False, False)):
        if self.model_type is None:
            raise BadProperty(
                "Incorrect model mechanism combination "
                f"(spike_dependent_threshold={self.has_theta_spike}, "
                f"after_spike_currents={self.has_asc}, "
                f"adapting_threshold={self.has_theta_voltage}).")

        if self.V_reset >= self.th_inf:
            raise BadProperty("Reset potential must be smaller than threshold.")
        if not _positive(self.C_m):
            raise BadProperty("Capacitance must be strictly positive.")
        if not _positive(self.G):
            raise BadProperty("Membrane conductance must be strictly positive.")
        if not _positive(self.t_ref):
            raise BadProperty("Refractory time must be strictly positive.")

        # Receptor ports
        if len(self.tau_syn) != len(self.E_rev):
            raise BadProperty(
                "The reversal potential and synaptic time constant arrays "
                f"must have the same size ({len(self.E_rev)} != {len(self.tau_syn)}).")
        if self.n_receptors != old.n_receptors:
            if not all(receptors_given):
                raise BadProperty(
                    "If the number of receptor ports is changed, both arrays "
                    "tau_syn and E_rev must be provided.")
            if old.has_connections:
                raise BadProperty(
                    "The neuron has connections, therefore the number of "
                    "ports cannot be changed.")
        if not all(_positive(tau) for tau in self.tau_syn):
            raise BadProperty("All synaptic time constants must be strictly positive.")

        if self.has_theta_spike:
            if not _positive(self.th_spike_decay):
                raise BadProperty(
                    "Spike induced threshold time constant must be strictly positive.")
            if not 0.0 <= self.voltage_reset_fraction <= 1.0:
                raise BadProperty(
                    "Voltage fraction coefficient following spike must be within [0.0, 1.0].")

        if self.has_asc:
            sizes = {len(self.asc_init), len(self.asc_decay),
                     len(self.asc_amps), len(self.asc_r)}
            if sizes != {self.n_receptors}:
                raise BadProperty(
                    "All after-spike current parameters (asc_init, asc_decay, "
                    "asc_amps, asc_r) must have the same size as tau_syn "
                    f"({self.n_receptors}).")
            if not all(_positive(k) for k in self.asc_decay):
                raise BadProperty(
                    "After-spike current time constant must be strictly positive.")
            if any(not 0.0 <= r <= 1.0 for r in self.asc_r):
                raise BadProperty(
                    "After-spike current fraction coefficients r must be within [0.0, 1.0].")

        if self.has_theta_voltage:
            if not _positive(self.th_voltage_decay):
                raise BadProperty(
                    "Voltage-induced threshold time constant must be strictly positive.")
            if np.isclose(self.th_voltage_decay, self.G / self.C_m):
                raise BadProperty(
                    "th_voltage_decay must differ from the membrane rate g / C_m.")

        if self.has_theta_spike and self.resets_above_threshold():
            logger.warning(
                "Post-reset voltage (%.3f mV) is not below the post-reset "
                "threshold (%.3f mV): the neuron will spike on every step "
                "after its first spike.",
                self.voltage_reset_fraction * self.th_inf + self.voltage_reset_add + self.E_L,
                self.th_inf + self.th_spike_add + self.E_L)

    def resets_above_threshold(self):
        """True if a spike at threshold resets V at or above the new threshold.

        E_L + f_v * (V_th - E_L) + voltage_reset_add >= V_th + th_spike_add
        """
        return (self.voltage_reset_fraction * self.th_inf + self.voltage_reset_add
                >= self.th_inf + self.th_spike_add)


@dataclass
class State:
    """Dynamic state. y = [V, dg_1, g_1, dg_2, g_2, ...], V relative to E_L."""
    y: np.ndarray
    threshold: float
    threshold_spike: float = 0.0
    threshold_voltage: float = 0.0
    asc: np.ndarray = field(default_factory=lambda: np.zeros(0))
    asc_sum: float = 0.0
    refractory_steps: int = 0

    @classmethod
    def from_parameters(cls, p):
        size = (NUMBER_OF_FIXED_STATES_ELEMENTS
                + NUMBER_OF_STATES_ELEMENTS_PER_RECEPTOR * p.n_receptors)
        # disabled after-spike currents carry no state
        asc = np.array(p.asc_init if p.has_asc else (), dtype=float)
        return cls(
            y=np.zeros(size),
            threshold=p.th_inf,
            asc=asc,
            asc_sum=float(asc.sum()),
        )

    def copy(self):
        return replace(self, y=self.y.copy(), asc=self.asc.copy())

    def get(self, p):
        return {
            'V_m': float(self.y[V_M]) + p.E_L,
            'ASCurrents': self.asc.tolist(),
            'ASCurrents_sum': self.asc_sum,
            'threshold': self.threshold + p.E_L,
            'threshold_spike': self.threshold_spike,
            'threshold_voltage': self.threshold_voltage,
            'refractory_steps': self.refractory_steps,
        }

    def set(self, d, p, delta_EL):
        """Return a new State overlaid with d, consistent with parameters p."""
        s = self.copy()

        if 'V_m' in d:
            s.y[V_M] = _as_float('V_m', d['V_m']) - p.E_L
        else:
            s.y[V_M] -= delta_EL

        if 'ASCurrents' in d:
            if not p.has_asc:
                raise BadProperty(
                    "After-spike currents are not settable in the current model mechanisms.")
            asc = np.array(_as_vector('ASCurrents', d['ASCurrents']))
            if len(asc) != len(p.asc_decay):
                raise BadProperty(
                    "After-spike current values must have the same size "
                    f"({len(p.asc_decay)}) as their parameters.")
            s.asc = asc
            s.asc_sum = float(asc.sum())
        elif not p.has_asc:
            s.asc = np.zeros(0)
            s.asc_sum = 0.0
        elif len(s.asc) != len(p.asc_decay):
            s.asc = np.array(p.asc_init, dtype=float)
            s.asc_sum = float(s.asc.sum())

        if 'threshold_spike' in d:
            if not p.has_theta_spike:
                raise BadProperty(
                    "Threshold spike component is not settable in the current model mechanisms.")
            s.threshold_spike = _as_float('threshold_spike', d['threshold_spike'])

        if 'threshold_voltage' in d:
            if not p.has_theta_voltage:
                raise BadProperty(
                    "Threshold voltage component is not settable in the current model mechanisms.")
            s.threshold_voltage = _as_float('threshold_voltage', d['threshold_voltage'])

        # components of disabled mechanisms do not contribute
        if not p.has_theta_spike:
            s.threshold_spike = 0.0
        if not p.has_theta_voltage:
            s.threshold_voltage = 0.0

        s.threshold = s.threshold_spike + s.threshold_voltage + p.th_inf

        # New channels start at zero conductance, removed ones are dropped
        size = (NUMBER_OF_FIXED_STATES_ELEMENTS
                + NUMBER_OF_STATES_ELEMENTS_PER_RECEPTOR * p.n_receptors)
        if len(s.y) != size:
            y = np.zeros(size)
            n = min(size, len(s.y))
            y[:n] = s.y[:n]
            s.y = y
        return s


@dataclass(frozen=True)
class Variables:
    """Coefficients derived from Parameters and the resolution h."""
    h: float
    refractory_counts: int
    theta_spike_decay_rate: float
    theta_spike_refractory_decay_rate: float
    theta_voltage_decay_rate_inverse: float
    potential_decay_rate: float
    abpara_ratio_voltage: float
    phi: float
    asc_decay_rates: np.ndarray
    asc_stable_coeff: np.ndarray
    asc_refractory_decay_rates: np.ndarray
    asc_amps: np.ndarray
    cond_initial_values: np.ndarray
    tau_syn: np.ndarray
    E_rev_rel: np.ndarray


def compute_variables(p, h):
    """Compute the propagator coefficients of p for grid step h (ms)."""
    tau_syn = np.array(p.tau_syn, dtype=float)
    membrane_rate = p.G / p.C_m

    if p.has_asc:
        asc_decay = np.array(p.asc_decay, dtype=float)
        asc_decay_rates = np.exp(-asc_decay * h)
        # mean of an exponentially decaying current over one step
        asc_stable_coeff = (1.0 / asc_decay) / h * (1.0 - asc_decay_rates)
        asc_refractory_decay_rates = (np.array(p.asc_r, dtype=float)
                                      * np.exp(-asc_decay * p.t_ref))
        asc_amps = np.array(p.asc_amps, dtype=float)
    else:
        asc_decay_rates = asc_stable_coeff = np.zeros(0)
        asc_refractory_decay_rates = asc_amps = np.zeros(0)

    if p.has_theta_voltage:
        abpara_ratio_voltage = p.th_voltage_index / p.th_voltage_decay
        phi = p.th_voltage_index / (p.th_voltage_decay - membrane_rate)
    else:
        abpara_ratio_voltage = phi = 0.0

    return Variables(
        h=h,
        refractory_counts=int(round(p.t_ref / h)),
        theta_spike_decay_rate=float(np.exp(-p.th_spike_decay * h)),
        theta_spike_refractory_decay_rate=float(np.exp(-p.th_spike_decay * p.t_ref)),
        theta_voltage_decay_rate_inverse=float(np.exp(-p.th_voltage_decay * h)),
        potential_decay_rate=float(np.exp(-membrane_rate * h)),
        abpara_ratio_voltage=abpara_ratio_voltage,
        phi=phi,
        asc_decay_rates=asc_decay_rates,
        asc_stable_coeff=asc_stable_coeff,
        asc_refractory_decay_rates=asc_refractory_decay_rates,
        asc_amps=asc_amps,
        cond_initial_values=alpha_normalization(tau_syn),
        tau_syn=tau_syn,
        E_rev_rel=np.array(p.E_rev, dtype=float) - p.E_L,
    )


# Per-variant settings of the three mechanism flags
GLIF_PRESETS = {
    'glif1_lif': {'spike_dependent_threshold': False,
                  'after_spike_currents': False,
                  'adapting_threshold': False},
    'glif2_lif_r': {'spike_dependent_threshold': True,
                    'after_spike_currents': False,
                    'adapting_threshold': False},
    'glif3_lif_asc': {'spike_dependent_threshold': False,
                      'after_spike_currents': True,
                      'adapting_threshold': False},
    'glif4_lif_r_asc': {'spike_dependent_threshold': True,
                        'after_spike_currents': True,
                        'adapting_threshold': False},
    'glif5_lif_r_asc_a': {'spike_dependent_threshold': True,
                          'after_spike_currents': True,
                          'adapting_threshold': True},
}
