"""
Experiment 2 - Output rate under excitatory/inhibitory synaptic bombardment

Goal: Drive a GLIF 5 neuron through two alpha-conductance channels
(excitatory E_rev = 0 mV, inhibitory E_rev = -85 mV) with gamma-renewal
spike trains and measure output firing as excitation increases.

Protocol:
  - Input: gamma order 1 (Poisson) trains, excitatory rate swept,
    inhibitory rate fixed
  - Default 2-channel GLIF 5 parameters (tau_syn = 0.2, 2.0 ms)
  - Measure: output rate, CV of ISIs, mean excitatory conductance
"""

import sys
import os
import numpy as np

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from circuit.single_neuron import SingleNeuronCircuit
from models.glif_params import GLIF_PRESETS
from models.stimulus import generate_gamma_spikes
from analysis.spike_analysis import firing_rate, cv_isi
from analysis.plotting import plot_voltage_traces, plot_conductances


def run_experiment(duration_ms=2000.0, exc_rates=None, inh_rate=500.0,
                   exc_weight=2.0, inh_weight=2.0, gamma_order=1.0,
                   dt=0.1, seed=42, verbose=True):
    """Sweep the total excitatory input rate.

    Parameters
    ----------
    exc_rates : array-like, optional
        Total excitatory input rates (Hz) on channel 0.
    inh_rate : float
        Total inhibitory input rate (Hz) on channel 1.
    exc_weight, inh_weight : float
        Peak conductance per input spike (nS).

    Returns
    -------
    results : list of dict
    """
    if exc_rates is None:
        exc_rates = [500, 1000, 2000, 3000, 4000, 6000]

    params = dict(GLIF_PRESETS['glif5_lif_r_asc_a'])
    all_results = []

    for i, exc_rate in enumerate(exc_rates):
        rng = np.random.default_rng(seed + i)
        exc = generate_gamma_spikes(exc_rate, gamma_order, duration_ms, rng=rng)
        inh = generate_gamma_spikes(inh_rate, gamma_order, duration_ms, rng=rng)

        circuit = SingleNeuronCircuit(params=params, dt=dt)
        sim = circuit.simulate(
            duration_ms,
            spike_trains={0: (exc, exc_weight), 1: (inh, inh_weight)},
            record=('V_m', 'threshold', 'ASCurrents_sum', 'g_1', 'g_2'))

        spikes = sim['spike_times']
        result = {
            'exc_rate_hz': exc_rate,
            'inh_rate_hz': inh_rate,
            'out_rate_hz': firing_rate(spikes, duration_ms),
            'cv_isi': cv_isi(spikes),
            'mean_g_exc': float(np.mean(sim['g_1'])),
            'mean_g_inh': float(np.mean(sim['g_2'])),
        }
        all_results.append(result)

        if verbose:
            print(f"[Exp2] exc {exc_rate:6.0f} Hz -> out {result['out_rate_hz']:6.1f} Hz, "
                  f"<g_exc> = {result['mean_g_exc']:.2f} nS, "
                  f"<g_inh> = {result['mean_g_inh']:.2f} nS")

        if i == len(exc_rates) - 1:
            plot_voltage_traces(sim, duration_ms=500.0,
                                title=f'GLIF 5, exc {exc_rate} Hz',
                                save_name='exp2_trace.png')
            plot_conductances(sim, ['g_1', 'g_2'], duration_ms=200.0,
                              title='Synaptic conductances',
                              save_name='exp2_conductances.png')

    return all_results


if __name__ == '__main__':
    print("=" * 60)
    print("Experiment 2: Synaptic drive")
    print("=" * 60)

    results = run_experiment(duration_ms=1000.0)

    print("\nResults summary:")
    print(f"{'Exc (Hz)':>10} {'Out (Hz)':>10} {'CV':>8}")
    for r in results:
        print(f"{r['exc_rate_hz']:>10.0f} {r['out_rate_hz']:>10.1f} {r['cv_isi']:>8.3f}")
