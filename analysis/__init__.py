from analysis.spike_analysis import (
    interspike_intervals, firing_rate, cv_isi, refractory_violations,
    adaptation_index, first_spike_latency, fi_curve,
)
