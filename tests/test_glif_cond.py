"""
Tests for the GLIFCond neuron: status, input handling and update loop.
"""
import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.exceptions import (
    BadProperty, UnknownReceptorType, UnknownRecordable, IntegrationError,
)
from models.glif_cond import GLIFCond
from models.glif_params import GLIF_PRESETS
from models.spike_history import SpikeHistory
from synapses.alpha_synapse import alpha_conductance

ONE_CHANNEL = {'tau_syn': [2.0], 'E_rev': [0.0]}
ASC_ONE_CHANNEL = dict(ONE_CHANNEL, asc_init=[0.0], asc_decay=[0.003],
                       asc_amps=[-9.18], asc_r=[1.0])


def drive(neuron, amplitude, n_steps):
    """Advance step by step under a constant current; return spike steps."""
    spikes = []
    for _ in range(n_steps):
        s = neuron.step
        neuron.handle_current(amplitude, s + 1)
        spikes.extend(neuron.update(s, s))
    return spikes


class TestStatus:
    """Status reads and atomic writes."""

    def test_default_status(self):
        neuron = GLIFCond()
        d = neuron.get_status()
        assert d['model_type'] == 1
        assert d['V_m'] == pytest.approx(-78.85)
        assert d['threshold'] == pytest.approx(-51.68)
        assert d['recordables'] == ['V_m', 'I', 'ASCurrents_sum', 'threshold',
                                    'threshold_spike', 'threshold_voltage',
                                    'g_1', 'g_2']

    def test_params_in_constructor(self):
        neuron = GLIFCond(params=dict(ASC_ONE_CHANNEL, **GLIF_PRESETS['glif3_lif_asc']))
        assert neuron.model_type == 3
        assert neuron.n_channels == 1
        assert len(neuron.S.y) == 3

    def test_state_in_constructor(self):
        neuron = GLIFCond(params=dict(ONE_CHANNEL, V_m=-60.0))
        assert neuron.get_status()['V_m'] == pytest.approx(-60.0)

    def test_failed_write_leaves_status_unchanged(self):
        neuron = GLIFCond()
        before = neuron.get_status()
        with pytest.raises(BadProperty):
            neuron.set_status({'C_m': 100.0, 'g': -1.0})
        with pytest.raises(BadProperty):
            neuron.set_status({'tau_syn': [0.2, 2.0, 5.0], 'E_rev': [0.0, -85.0]})
        with pytest.raises(BadProperty):
            neuron.set_status({'V_m': -60.0, 'ASCurrents': [1.0, 2.0]})
        assert neuron.get_status() == before

    @pytest.mark.parametrize("key", ['foo', 'model_type', 'recordables', 'threshold'])
    def test_unknown_or_read_only_key(self, key):
        with pytest.raises(BadProperty):
            GLIFCond().set_status({key: 1})

    def test_E_L_change_keeps_absolute_potentials(self):
        neuron = GLIFCond()
        neuron.set_status({'V_m': -65.0})
        neuron.set_status({'E_L': -70.0})
        d = neuron.get_status()
        assert d['V_m'] == pytest.approx(-65.0)
        assert d['V_th'] == pytest.approx(-51.68)
        assert d['V_reset'] == pytest.approx(-78.85)
        assert d['threshold'] == pytest.approx(-51.68)

    def test_switching_off_spike_threshold_drops_its_component(self):
        neuron = GLIFCond(params=dict(ONE_CHANNEL, **GLIF_PRESETS['glif2_lif_r']))
        neuron.set_status({'threshold_spike': 5.0})
        assert neuron.get_recordable('threshold') == pytest.approx(-46.68)
        neuron.set_status(GLIF_PRESETS['glif1_lif'])
        assert neuron.get_recordable('threshold') == pytest.approx(-51.68)
        assert neuron.get_status()['threshold_spike'] == 0.0

    def test_nan_rejected_before_update(self):
        neuron = GLIFCond()
        for d in ({'t_ref': float('nan')}, {'C_m': float('nan')},
                  {'tau_syn': [float('nan'), 2.0]}):
            with pytest.raises(BadProperty):
                neuron.set_status(d)
        neuron.update(0, 9)
        assert neuron.step == 10

    def test_channel_count_change_updates_recordables(self):
        neuron = GLIFCond()
        original = neuron.get_status()['recordables']

        neuron.set_status({'tau_syn': [0.2, 2.0, 5.0], 'E_rev': [0.0, -85.0, 0.0]})
        assert neuron.get_status()['recordables'][-3:] == ['g_1', 'g_2', 'g_3']
        assert len(neuron.B.spikes) == 3

        neuron.set_status({'tau_syn': [0.2], 'E_rev': [0.0]})
        recordables = neuron.get_status()['recordables']
        assert 'g_1' in recordables
        assert 'g_2' not in recordables and 'g_3' not in recordables
        assert len(neuron.S.y) == 3

        neuron.set_status({'tau_syn': [0.2, 2.0], 'E_rev': [0.0, -85.0]})
        assert neuron.get_status()['recordables'] == original

    def test_channel_count_fixed_after_connect(self):
        neuron = GLIFCond()
        neuron.connect_input(1)
        with pytest.raises(BadProperty):
            neuron.set_status({'tau_syn': [0.2], 'E_rev': [0.0]})
        assert neuron.n_channels == 2

    def test_bad_resolution(self):
        with pytest.raises(BadProperty):
            GLIFCond(resolution=0.0)
        with pytest.raises(BadProperty):
            GLIFCond().set_resolution(-0.1)

    def test_set_resolution_recalibrates(self):
        neuron = GLIFCond(params=ONE_CHANNEL)
        neuron.update(0, 9)
        assert neuron.V.refractory_counts == int(round(3.75 / 0.1))
        neuron.set_resolution(0.2)
        neuron.update(10, 19)
        assert neuron.V.refractory_counts == int(round(3.75 / 0.2))
        assert neuron.spike_history.resolution_ms == 0.2


class TestInputs:
    """Event and current delivery checks."""

    @pytest.mark.parametrize("channel", [-1, 2, 5])
    def test_spike_on_unknown_channel(self, channel):
        neuron = GLIFCond()
        with pytest.raises(UnknownReceptorType):
            neuron.handle_spike(channel, 1.0, 5)
        with pytest.raises(UnknownReceptorType):
            neuron.connect_input(channel)

    def test_current_only_on_channel_zero(self):
        neuron = GLIFCond()
        with pytest.raises(UnknownReceptorType):
            neuron.handle_current(10.0, 5, channel=1)
        with pytest.raises(UnknownReceptorType):
            neuron.connect_current_input(1)
        assert neuron.connect_current_input(0) == 0

    @pytest.mark.parametrize("delivery", [0, -3, 1001])
    def test_delivery_outside_horizon(self, delivery):
        neuron = GLIFCond()
        with pytest.raises(ValueError):
            neuron.handle_spike(0, 1.0, delivery)

    def test_update_must_start_at_current_step(self):
        neuron = GLIFCond()
        with pytest.raises(ValueError):
            neuron.update(5, 10)

    def test_empty_range(self):
        neuron = GLIFCond()
        assert neuron.update(0, -1) == []
        assert neuron.step == 0


class TestDynamics:
    """Subthreshold integration."""

    def test_rest_is_fixed_point(self):
        neuron = GLIFCond(params=ONE_CHANNEL)
        neuron.update(0, 99)
        assert neuron.step == 100
        assert neuron.get_recordable('V_m') == pytest.approx(-78.85, abs=1e-9)

    def test_rest_ignores_disabled_after_spike_currents(self):
        neuron = GLIFCond(params=dict(ASC_ONE_CHANNEL, asc_init=[100.0]))
        assert neuron.model_type == 1
        neuron.update(0, 999)
        assert neuron.get_recordable('ASCurrents_sum') == 0.0
        assert neuron.get_recordable('V_m') == pytest.approx(-78.85, abs=1e-9)

    def test_switching_off_after_spike_currents_removes_drive(self):
        neuron = GLIFCond(params=dict(ASC_ONE_CHANNEL,
                                      **GLIF_PRESETS['glif3_lif_asc']))
        neuron.set_status({'ASCurrents': [50.0]})
        neuron.set_status(dict(GLIF_PRESETS['glif1_lif'], V_m=-78.85))
        assert neuron.get_status()['ASCurrents'] == []
        neuron.update(0, 999)
        assert neuron.get_recordable('ASCurrents_sum') == 0.0
        assert neuron.get_recordable('V_m') == pytest.approx(-78.85, abs=1e-9)

    def test_exponential_decay_to_rest(self):
        neuron = GLIFCond(params=ONE_CHANNEL)
        neuron.set_status({'V_m': -68.85})
        neuron.update(0, 99)
        P = neuron.P
        expected = 10.0 * np.exp(-P.G / P.C_m * 10.0)
        assert neuron.get_recordable('V_m') - P.E_L == pytest.approx(expected, abs=1e-3)

    def test_alpha_conductance_peak(self):
        neuron = GLIFCond(params=ONE_CHANNEL)
        neuron.connect_input(0)
        neuron.handle_spike(0, 1.0, 5)
        neuron.connect_logging_device(['g_1'])
        neuron.update(0, 39)

        data = neuron.get_recorded_data()
        g, steps = data['g_1'], data['steps']
        assert steps[int(np.argmax(g))] == 25
        assert g.max() == pytest.approx(1.0, abs=1e-3)
        np.testing.assert_allclose(g, alpha_conductance((steps - 5) * 0.1, 2.0),
                                   atol=1e-4)

    def test_spikes_on_same_step_sum(self):
        single = GLIFCond(params=ONE_CHANNEL)
        double = GLIFCond(params=ONE_CHANNEL)
        single.handle_spike(0, 2.0, 3)
        double.handle_spike(0, 1.0, 3)
        double.handle_spike(0, 1.0, 3)
        single.update(0, 20)
        double.update(0, 20)
        assert double.get_recordable('g_1') == pytest.approx(
            single.get_recordable('g_1'), rel=1e-9)

    def test_inhibitory_input_hyperpolarizes(self):
        neuron = GLIFCond()
        neuron.handle_spike(1, 5.0, 1)
        neuron.update(0, 50)
        assert neuron.get_recordable('V_m') < -78.85

    def test_voltage_threshold_tracks_depolarization(self):
        neuron = GLIFCond(params=dict(ASC_ONE_CHANNEL,
                                      **GLIF_PRESETS['glif5_lif_r_asc_a']))
        spikes = drive(neuron, 100.0, 500)
        assert spikes == []
        assert neuron.S.threshold_voltage > 0.0
        assert neuron.get_recordable('threshold') > -51.68

    def test_integration_failure(self):
        neuron = GLIFCond(params=ONE_CHANNEL, max_substeps=0)
        with pytest.raises(IntegrationError) as excinfo:
            neuron.update(0, 0)
        assert excinfo.value.step == 0


class TestSpiking:
    """Threshold crossing, reset and refractoriness."""

    def test_reset_and_refractory(self):
        neuron = GLIFCond(params=ONE_CHANNEL)
        for _ in range(1000):
            s = neuron.step
            neuron.handle_current(400.0, s + 1)
            if neuron.update(s, s):
                break
        else:
            pytest.fail("no spike under 400 pA")

        assert neuron.get_recordable('V_m') == pytest.approx(-78.85)
        assert neuron.S.refractory_steps == neuron.V.refractory_counts

        # V is clamped while refractory
        drive(neuron, 400.0, 10)
        assert neuron.get_recordable('V_m') == pytest.approx(-78.85)

    def test_interspike_intervals_respect_refractory_period(self):
        neuron = GLIFCond(params=ONE_CHANNEL)
        spikes = drive(neuron, 400.0, 2000)
        assert len(spikes) >= 3
        assert np.all(np.diff(spikes) >= neuron.V.refractory_counts + 1)

    def test_spike_stamped_at_end_of_step(self):
        history = SpikeHistory()
        neuron = GLIFCond(params=ONE_CHANNEL, spike_history=history)
        spikes = drive(neuron, 400.0, 500)
        assert len(history) == len(spikes) > 0
        np.testing.assert_array_equal(history.spike_steps(), spikes)
        np.testing.assert_allclose(history.spike_times(), np.array(spikes) * 0.1)

    def test_after_spike_currents(self):
        neuron = GLIFCond(params=dict(ASC_ONE_CHANNEL,
                                      **GLIF_PRESETS['glif3_lif_asc']))
        neuron.set_status({'ASCurrents': [10.0]})
        neuron.connect_logging_device(['ASCurrents_sum'])
        neuron.update(0, 99)
        asc = neuron.get_recorded_data()['ASCurrents_sum']
        assert np.all(np.diff(asc) < 0.0)
        assert np.all(asc > 0.0)

        neuron.set_status({'ASCurrents': [0.0]})
        for _ in range(1000):
            s = neuron.step
            neuron.handle_current(400.0, s + 1)
            if neuron.update(s, s):
                break
        assert neuron.S.asc[0] == pytest.approx(-9.18)
        assert neuron.get_recordable('ASCurrents_sum') == pytest.approx(-9.18)

    def test_after_spike_current_carry_over(self):
        params = dict(ONE_CHANNEL, asc_init=[20.0], asc_decay=[0.1],
                      asc_amps=[-9.18], asc_r=[0.5])
        for flags in (GLIF_PRESETS['glif3_lif_asc'], GLIF_PRESETS['glif4_lif_r_asc']):
            neuron = GLIFCond(params=dict(params, **flags))
            for _ in range(1000):
                s = neuron.step
                before = neuron.S.asc.copy()
                neuron.handle_current(400.0, s + 1)
                if neuron.update(s, s):
                    break
            else:
                pytest.fail("no spike under 400 pA")

            # one step of decay, then the refractory decay and reset fraction
            decayed = before * np.exp(-0.1 * 0.1)
            expected = -9.18 + decayed * 0.5 * np.exp(-0.1 * 3.75)
            np.testing.assert_allclose(neuron.S.asc, expected, rtol=1e-12)
            assert neuron.get_recordable('ASCurrents_sum') == pytest.approx(expected[0])
            assert expected[0] > -9.18

    def test_spike_dependent_threshold_jump(self):
        neuron = GLIFCond(params=dict(ONE_CHANNEL, **GLIF_PRESETS['glif2_lif_r']))
        spikes = drive(neuron, 400.0, 1000)
        assert spikes
        assert neuron.S.threshold_spike > 0.0

    def test_perpetual_spiking_reset(self):
        params = dict(ONE_CHANNEL, **GLIF_PRESETS['glif2_lif_r'])
        params.update(voltage_reset_fraction=1.0, voltage_reset_add=10.0,
                      th_spike_add=0.1, V_m=-50.68)
        neuron = GLIFCond(params=params)
        spikes = neuron.update(0, 999)
        assert spikes[0] == 1
        assert len(spikes) > 20
        assert np.all(np.diff(spikes) == neuron.V.refractory_counts + 1)


class TestRecording:
    """Recordables and the data logger."""

    def test_unknown_recordable(self):
        neuron = GLIFCond()
        with pytest.raises(UnknownRecordable):
            neuron.get_recordable('g_3')
        with pytest.raises(UnknownRecordable):
            neuron.connect_logging_device(['V_m', 'g_3'])

    def test_interval(self):
        neuron = GLIFCond()
        neuron.connect_logging_device(['V_m', 'g_1'], interval=4)
        neuron.update(0, 19)
        data = neuron.get_recorded_data()
        np.testing.assert_array_equal(data['steps'], [4, 8, 12, 16, 20])
        assert len(data['V_m']) == 5

    def test_handle_data_request(self):
        neuron = GLIFCond()
        values = neuron.handle_data_request(['V_m', 'threshold'])
        assert values == {'V_m': pytest.approx(-78.85),
                          'threshold': pytest.approx(-51.68)}

    def test_reset(self):
        neuron = GLIFCond(params=ONE_CHANNEL)
        drive(neuron, 400.0, 500)
        neuron.reset()
        assert neuron.step == 0
        assert len(neuron.spike_history) == 0
        assert neuron.get_recordable('V_m') == pytest.approx(-78.85)
        assert neuron.get_recordable('I') == 0.0
