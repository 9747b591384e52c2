import numpy as np
import pytest

from sigrange.analyzer import SpectrumAnalyzer
from sigrange.rfmath import ktb_floor_dbm, thermal_floor_dbm
from sigrange.signal_path import ANALYZER_NOISE_FIGURE_DB
from sigrange.signals import Polarization, Signal
from sigrange.tappoints import TapPoint


@pytest.fixture
def analyzer(manager):
    return SpectrumAnalyzer(manager, rng=5)


def _rx_carriers(manager, pol=Polarization.V):
    downlink = Signal(5.81e9, 5e6, -95.0, polarization=pol, signal_id="dl")
    return {TapPoint.RX_IF: manager.propagate([downlink], TapPoint.RX_IF)}


def test_settings_validation(manager):
    with pytest.raises(ValueError):
        SpectrumAnalyzer(manager, span_hz=0.0)
    with pytest.raises(ValueError):
        SpectrumAnalyzer(manager, min_amplitude_dbm=-40.0, max_amplitude_dbm=-100.0)
    with pytest.raises(ValueError):
        SpectrumAnalyzer(manager, refresh_rate_hz=0.0)
    with pytest.raises(ValueError):
        SpectrumAnalyzer.from_config(manager, {"video_bandwidth_hz": 1e3})


def test_frequency_window(analyzer):
    assert analyzer.frequency_range == pytest.approx((1.55e9, 1.65e9))
    assert analyzer.bin_to_frequency(0) == pytest.approx(1.55e9)
    analyzer.set_center_frequency(1.0e9)
    analyzer.set_span(20e6)
    assert analyzer.processor.frequency_range == pytest.approx((0.99e9, 1.01e9))
    with pytest.raises(ValueError):
        analyzer.set_span(-1.0)


def test_rbw_and_sweep_time(analyzer):
    assert analyzer.sweep_interval_s() == pytest.approx(3.0 * 100e6 / 1e6 ** 2)
    analyzer.set_rbw(None)
    assert analyzer.noise_bandwidth_hz == analyzer.span_hz
    with pytest.raises(ValueError):
        analyzer.set_rbw(0.0)


def test_sweep_gating(manager):
    analyzer = SpectrumAnalyzer(manager, rbw_hz=1e3, rng=1)
    assert analyzer.sweep_interval_s() == pytest.approx(300.0)
    assert not analyzer.update(1.0)
    assert analyzer.last_floor is None
    assert analyzer.update(299.0)
    assert analyzer.last_floor is not None
    assert not analyzer.update(1.0)


def test_paused_analyzer_does_not_sweep(analyzer):
    analyzer.is_paused = True
    assert not analyzer.update(1.0)
    assert np.all(analyzer.traces.amplitude(0) == -np.inf)


def test_refresh_gate(analyzer):
    assert not analyzer.should_refresh(0.06)
    assert analyzer.should_refresh(0.06)
    assert not analyzer.should_refresh(0.01)


def test_noise_floor_from_rx_tap(analyzer):
    floor = analyzer.select_noise_floor()
    assert floor.tap_point is TapPoint.RX_IF
    assert floor.should_apply_gain
    assert floor.gain_db == pytest.approx(52.5 - 20.0)
    assert floor.level_dbm == pytest.approx(ktb_floor_dbm(50.0, 1e6) + 32.5)


def test_noise_floor_lower_bound(manager):
    analyzer = SpectrumAnalyzer(manager, use_tap_a=False, use_tap_b=False)
    floor = analyzer.select_noise_floor()
    assert floor.tap_point is None
    assert floor.level_dbm == pytest.approx(thermal_floor_dbm(1e6, ANALYZER_NOISE_FIGURE_DB))

    analyzer.use_tap_a = True
    assert analyzer.select_noise_floor().level_dbm >= floor.level_dbm


def test_inactive_coupler_port_is_ignored(frontend, manager):
    frontend.coupler.is_active_b = False
    analyzer = SpectrumAnalyzer(manager)
    assert analyzer.active_taps() == [TapPoint.TX_IF]


def test_input_signals_apply_coupling(analyzer, manager):
    (sig,) = analyzer.input_signals(_rx_carriers(manager))
    assert sig.power_dbm == pytest.approx(-95.0 + 52.5 - 20.0)
    assert sig.bandwidth_hz == pytest.approx(1e6)
    assert analyzer.input_signals(None) == []


def test_sweep_shows_carrier(analyzer, manager):
    assert analyzer.update(0.1, _rx_carriers(manager))
    trace = analyzer.traces.amplitude(0)
    f_min, f_max = analyzer.frequency_range
    carrier_bin = int(round((1.61e9 - f_min) / (f_max - f_min) * analyzer.processor.width))
    assert trace[carrier_bin - 3:carrier_bin + 4].max() == pytest.approx(-62.5, abs=0.5)

    markers = analyzer.markers()
    assert abs(markers.strongest.index - carrier_bin) <= 2
    assert analyzer.snapshot()["noise_floor_dbm"] == pytest.approx(analyzer.last_floor.level_dbm)


def test_classification(analyzer, manager):
    analyzer.update(0.1, _rx_carriers(manager))
    assert not analyzer.classify_signals()[0].is_degraded

    analyzer.update(0.1, _rx_carriers(manager, Polarization.H))
    assert analyzer.classify_signals()[0].is_degraded
