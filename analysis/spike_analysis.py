"""
Spike train analysis tools for single-neuron GLIF runs.

Spike times are in ms throughout.
"""

import numpy as np


def interspike_intervals(spike_times):
    """Intervals between consecutive spikes (ms)."""
    spike_times = np.asarray(spike_times, dtype=float)
    if len(spike_times) < 2:
        return np.array([])
    return np.diff(spike_times)


def firing_rate(spike_times, duration_ms, t_start=0.0):
    """Mean firing rate (Hz) over [t_start, duration_ms)."""
    spike_times = np.asarray(spike_times, dtype=float)
    window = duration_ms - t_start
    if window <= 0:
        return 0.0
    n = np.count_nonzero((spike_times >= t_start) & (spike_times < duration_ms))
    return n / (window / 1000.0)


def cv_isi(spike_times):
    """Coefficient of variation of the ISIs. NaN with fewer than 3 spikes."""
    isis = interspike_intervals(spike_times)
    if len(isis) < 2:
        return float('nan')
    return float(np.std(isis) / np.mean(isis))


def refractory_violations(spike_times, t_ref, tol=1e-9):
    """Indices of ISIs shorter than the refractory period t_ref (ms)."""
    isis = interspike_intervals(spike_times)
    return np.where(isis < t_ref - tol)[0]


def adaptation_index(spike_times):
    """Mean normalised change of consecutive ISIs.

    A = mean((ISI[k+1] - ISI[k]) / (ISI[k+1] + ISI[k]))

    Positive for slowing (adapting) trains, ~0 for regular firing.
    """
    isis = interspike_intervals(spike_times)
    if len(isis) < 2:
        return float('nan')
    return float(np.mean((isis[1:] - isis[:-1]) / (isis[1:] + isis[:-1])))


def first_spike_latency(spike_times, onset_ms=0.0):
    """Delay (ms) from onset to the first spike at or after it, NaN if none."""
    spike_times = np.asarray(spike_times, dtype=float)
    after = spike_times[spike_times >= onset_ms]
    if len(after) == 0:
        return float('nan')
    return float(after[0] - onset_ms)


def fi_curve(amplitudes, rates):
    """Rheobase estimate and slope (Hz/pA) of an f-I curve.

    Parameters
    ----------
    amplitudes : array-like
        Injected currents (pA), increasing.
    rates : array-like
        Firing rates (Hz) at each amplitude.

    Returns
    -------
    rheobase : float
        Smallest amplitude with a non-zero rate (NaN if none).
    slope : float
        Least-squares slope over the firing part (NaN with < 2 points).
    """
    amplitudes = np.asarray(amplitudes, dtype=float)
    rates = np.asarray(rates, dtype=float)
    firing = rates > 0
    if not np.any(firing):
        return float('nan'), float('nan')
    rheobase = float(amplitudes[firing][0])
    if np.count_nonzero(firing) < 2:
        return rheobase, float('nan')
    slope = float(np.polyfit(amplitudes[firing], rates[firing], 1)[0])
    return rheobase, slope
