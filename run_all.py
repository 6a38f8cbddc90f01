"""
Run the GLIF conductance-based neuron experiments.

Usage:
  python run_all.py              # Quick test (short simulations)
  python run_all.py --full       # Full run (longer simulations)
  python run_all.py --exp 1      # Run only experiment 1
  python run_all.py --test       # Smoke test only
"""

import sys
import os
import argparse
import logging
import time

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from models import config


def run_quick_test():
    """Quick smoke test: the five models under a suprathreshold step."""
    print("=" * 60)
    print("QUICK SMOKE TEST")
    print("=" * 60)

    from circuit.single_neuron import SingleNeuronCircuit
    from models.glif_params import GLIF_PRESETS
    from analysis.spike_analysis import firing_rate, refractory_violations
    from analysis.plotting import plot_voltage_traces

    params = {'tau_syn': [0.2], 'E_rev': [0.0], 'asc_init': [0.0],
              'asc_decay': [0.003], 'asc_amps': [-9.18], 'asc_r': [1.0]}
    for name, flags in GLIF_PRESETS.items():
        circuit = SingleNeuronCircuit(params=dict(params, **flags))
        sim = circuit.simulate(200.0, current_pA=400.0)
        spikes = sim['spike_times']
        bad = refractory_violations(spikes, circuit.neuron.P.t_ref)
        print(f"  {name:>18}: {len(spikes)} spikes, "
              f"{firing_rate(spikes, 200.0):.1f} Hz, "
              f"refractory violations: {len(bad)}")
        plot_voltage_traces(sim, title=name, save_name=f'test_{name}.png')

    print("\nSmoke test complete. Figures saved to figures/")
    return True


def main():
    parser = argparse.ArgumentParser(
        description='GLIF conductance-based neuron experiments')
    parser.add_argument('--full', action='store_true',
                        help='Run full-duration simulations')
    parser.add_argument('--exp', type=int, choices=[1, 2],
                        help='Run only a specific experiment')
    parser.add_argument('--test', action='store_true',
                        help='Run quick smoke test only')
    parser.add_argument('--seed', type=int, default=42,
                        help='Random seed')
    parser.add_argument('--verbose', action='store_true',
                        help='Debug logging')
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else config.LOG_LEVEL,
                        format=config.LOG_FORMAT)

    duration = 2000.0 if args.full else 500.0

    start_time = time.time()

    if args.test:
        run_quick_test()
        return

    if args.exp is None:
        run_quick_test()

    if args.exp is None or args.exp == 1:
        print("\n" + "=" * 60)
        print("EXPERIMENT 1: GLIF model step-current responses")
        print("=" * 60)
        from experiments.exp1_glif_variants import run_experiment as run_exp1
        run_exp1(duration_ms=duration)

    if args.exp is None or args.exp == 2:
        print("\n" + "=" * 60)
        print("EXPERIMENT 2: Synaptic drive")
        print("=" * 60)
        from experiments.exp2_synaptic_drive import run_experiment as run_exp2
        run_exp2(duration_ms=duration, seed=args.seed)

    elapsed = time.time() - start_time
    print(f"\nTotal runtime: {elapsed:.1f} seconds")
    print("All figures saved to figures/")


if __name__ == '__main__':
    main()
