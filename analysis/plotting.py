"""
Plotting utilities for GLIF neuron simulations.
"""

import os

import matplotlib.pyplot as plt
import numpy as np


FIGURES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'figures')


def ensure_figures_dir():
    os.makedirs(FIGURES_DIR, exist_ok=True)


def _save(fig, save_name):
    if save_name:
        ensure_figures_dir()
        plt.savefig(os.path.join(FIGURES_DIR, save_name), dpi=150, bbox_inches='tight')
    plt.close(fig)
    return fig


def plot_voltage_traces(results, duration_ms=None, title='', save_name=None):
    """Plot membrane potential with threshold, spikes and after-spike currents.

    Parameters
    ----------
    results : dict
        Output from SingleNeuronCircuit.simulate().
    duration_ms : float, optional
        Only plot the first N ms.
    """
    t = results['t']
    mask = np.ones(len(t), dtype=bool) if duration_ms is None else t <= duration_ms
    spikes = results['spike_times']
    if duration_ms is not None:
        spikes = spikes[spikes <= duration_ms]

    has_asc = 'ASCurrents_sum' in results
    n_rows = 2 if has_asc else 1
    fig, axes = plt.subplots(n_rows, 1, figsize=(12, 3 + 2 * n_rows), sharex=True,
                             squeeze=False)
    axes = axes[:, 0]

    axes[0].plot(t[mask], results['V_m'][mask], 'b-', linewidth=0.7, label='V_m')
    if 'threshold' in results:
        axes[0].plot(t[mask], results['threshold'][mask], 'r--', linewidth=0.7,
                     label='threshold')
    if len(spikes):
        top = np.nanmax(results['V_m'][mask])
        axes[0].plot(spikes, np.full(len(spikes), top + 2.0), 'k|', markersize=8)
    axes[0].set_ylabel('mV')
    axes[0].legend(loc='upper right', fontsize=8)
    axes[0].set_title(title if title else f"GLIF {results.get('model_type', '?')}")

    if has_asc:
        axes[1].plot(t[mask], results['ASCurrents_sum'][mask], 'g-', linewidth=0.7)
        axes[1].set_ylabel('ASC sum (pA)')

    axes[-1].set_xlabel('Time (ms)')
    plt.tight_layout()
    return _save(fig, save_name)


def plot_conductances(results, channels, duration_ms=None, title='', save_name=None):
    """Plot recorded synaptic conductances g_1..g_n (nS)."""
    t = results['t']
    mask = np.ones(len(t), dtype=bool) if duration_ms is None else t <= duration_ms
    fig, ax = plt.subplots(figsize=(10, 4))
    for name in channels:
        ax.plot(t[mask], results[name][mask], linewidth=0.8, label=name)
    ax.set_xlabel('Time (ms)')
    ax.set_ylabel('Conductance (nS)')
    ax.set_title(title)
    ax.legend()
    plt.tight_layout()
    return _save(fig, save_name)


def plot_fi_curves(amplitudes, rates_by_model, save_name=None):
    """Plot f-I curves, one line per model.

    Parameters
    ----------
    amplitudes : array-like
        Injected currents (pA).
    rates_by_model : dict
        label -> firing rates (Hz).
    """
    fig, ax = plt.subplots(figsize=(8, 5))
    for label, rates in rates_by_model.items():
        ax.plot(amplitudes, rates, 'o-', markersize=4, label=label)
    ax.set_xlabel('Injected current (pA)', fontsize=12)
    ax.set_ylabel('Firing rate (Hz)', fontsize=12)
    ax.set_title('f-I curves of the GLIF models', fontsize=14)
    ax.grid(True, alpha=0.3)
    ax.legend()
    plt.tight_layout()
    return _save(fig, save_name)
