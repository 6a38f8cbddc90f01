"""
Experiment 1 - Step-current responses of the five GLIF models

Goal: Compare firing of GLIF 1-5 (Teeter et al. 2018) under identical
current injection.

Protocol:
  - Default parameters (Allen cell 490626718), one excitatory channel
  - Step currents from 0 to 400 pA, 1 s each
  - Measure: firing rate, CV of ISIs, adaptation index, first-spike latency

Expected:
  - All models silent below rheobase, G * (V_th - E_L) ~ 256 pA
  - After-spike currents (GLIF 3/4/5) lower rates and add adaptation
  - No ISI shorter than t_ref
"""

import sys
import os
import numpy as np

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from circuit.single_neuron import SingleNeuronCircuit
from models.glif_params import GLIF_PRESETS
from analysis.spike_analysis import (
    firing_rate, cv_isi, adaptation_index, first_spike_latency,
    refractory_violations, fi_curve,
)
from analysis.plotting import plot_voltage_traces, plot_fi_curves

SINGLE_CHANNEL = {
    'tau_syn': [0.2],
    'E_rev': [0.0],
    'asc_init': [0.0],
    'asc_decay': [0.003],
    'asc_amps': [-9.18],
    'asc_r': [1.0],
}


def run_experiment(duration_ms=1000.0, amplitudes=None, models=None,
                   dt=0.1, verbose=True):
    """Run step-current protocol for each GLIF model.

    Parameters
    ----------
    duration_ms : float
        Duration of each step (ms).
    amplitudes : array-like, optional
        Injected currents (pA).
    models : list of str, optional
        Keys of GLIF_PRESETS.

    Returns
    -------
    results : list of dict
        Per-trial metrics.
    summary : dict
        model -> (rheobase, f-I slope).
    """
    if amplitudes is None:
        amplitudes = [0, 100, 200, 250, 275, 300, 350, 400]
    if models is None:
        models = list(GLIF_PRESETS)

    all_results = []
    rates_by_model = {}
    summary = {}

    for name in models:
        params = dict(SINGLE_CHANNEL, **GLIF_PRESETS[name])
        rates = []
        for amp in amplitudes:
            circuit = SingleNeuronCircuit(params=params, dt=dt)
            sim = circuit.simulate(duration_ms, current_pA=amp)
            spikes = sim['spike_times']
            t_ref = circuit.neuron.P.t_ref

            rate = firing_rate(spikes, duration_ms)
            rates.append(rate)
            result = {
                'model': name,
                'amplitude_pA': amp,
                'rate_hz': rate,
                'cv_isi': cv_isi(spikes),
                'adaptation_index': adaptation_index(spikes),
                'latency_ms': first_spike_latency(spikes),
                'n_refractory_violations': len(refractory_violations(spikes, t_ref)),
            }
            all_results.append(result)

            if verbose:
                print(f"[Exp1] {name:>18} I = {amp:6.1f} pA: "
                      f"{rate:6.1f} Hz, CV = {result['cv_isi']:.3f}")

            if amp == max(amplitudes):
                plot_voltage_traces(sim, duration_ms=200.0,
                                    title=f'{name}, I = {amp} pA',
                                    save_name=f'exp1_trace_{name}.png')

        rates_by_model[name] = rates
        summary[name] = fi_curve(amplitudes, rates)

    plot_fi_curves(amplitudes, rates_by_model, save_name='exp1_fi_curves.png')
    return all_results, summary


if __name__ == '__main__':
    print("=" * 60)
    print("Experiment 1: GLIF model step-current responses")
    print("=" * 60)

    results, summary = run_experiment(duration_ms=500.0)

    print("\nSummary:")
    print(f"{'Model':>18} {'Rheobase (pA)':>14} {'Slope (Hz/pA)':>14}")
    for name, (rheobase, slope) in summary.items():
        print(f"{name:>18} {rheobase:>14.1f} {slope:>14.3f}")
