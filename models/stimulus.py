"""
Input generators for single-neuron stimulation.

Spike trains: Gamma (Erlang) renewal process.
  gamma_order controls regularity: 1 = Poisson, higher = more regular.
Currents: piecewise-constant step protocols sampled on the simulation grid.

Times are in ms, rates in Hz, currents in pA.
"""

import numpy as np


def generate_gamma_spikes(rate_hz, gamma_order, duration_ms, rng=None):
    """Generate a spike train with gamma-distributed ISIs.

    Parameters
    ----------
    rate_hz : float
        Mean firing rate in Hz.
    gamma_order : float
        Shape parameter. 1.0 gives a Poisson train.
    duration_ms : float
        Train duration in ms.
    rng : np.random.Generator, optional
        Random number generator for reproducibility.

    Returns
    -------
    spike_times : np.ndarray
        Sorted spike times in ms.
    """
    if rng is None:
        rng = np.random.default_rng()

    if rate_hz <= 0:
        return np.array([])

    mean_isi = 1000.0 / rate_hz
    scale = mean_isi / gamma_order

    # Pre-allocate generously
    expected_n = int(rate_hz * duration_ms / 1000.0 * 1.5) + 100
    isis = rng.gamma(gamma_order, scale, size=expected_n)

    spike_times = np.cumsum(isis)
    return spike_times[spike_times < duration_ms]


def spike_times_to_steps(spike_times, dt):
    """Map spike times (ms) to delivery steps on a grid of dt (ms).

    Steps are at least 1: events cannot be delivered at the initial grid point.
    """
    steps = np.rint(np.asarray(spike_times, dtype=float) / dt).astype(int)
    return np.maximum(steps, 1)


def step_current(amplitudes, times, duration_ms, dt):
    """Piecewise-constant current sampled per grid point.

    Parameters
    ----------
    amplitudes : sequence of float
        Current (pA) starting at the matching entry of `times`.
    times : sequence of float
        Onset times (ms), increasing.
    duration_ms : float
        Total duration (ms).
    dt : float
        Grid step (ms).

    Returns
    -------
    current : np.ndarray
        Current at grid points 0 .. n_steps (length n_steps + 1).
    """
    if len(amplitudes) != len(times):
        raise ValueError("amplitudes and times must have the same length")
    n_steps = int(round(duration_ms / dt))
    current = np.zeros(n_steps + 1)
    onsets = np.rint(np.asarray(times, dtype=float) / dt).astype(int)
    for amp, onset in zip(amplitudes, onsets):
        current[max(onset, 0):] = amp
    return current
