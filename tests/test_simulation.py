import numpy as np
import pytest

from sigrange import GroundStationSimulation, RFFrontEnd, Signal, TapPoint
from sigrange.frontend import PowerState
from sigrange.signals import Polarization


RX = [Signal(5.81e9, 5e6, -95.0, polarization=Polarization.V, signal_id="dl")]
TX = [Signal(1.59e9, 3e6, -10.0, origin_tap_point=TapPoint.TX_IF, signal_id="ul")]


def test_tick():
    sim = GroundStationSimulation(rng=2)
    result = sim.tick(0.1, RX, TX)
    assert result.time_s == pytest.approx(0.1)
    assert result.power_state is PowerState.LOCKED
    assert result.swept
    assert len(result.traces) == 3
    assert all(t.shape == (824,) for t in result.traces)
    assert set(result.signals_by_tap) == {TapPoint.TX_IF, TapPoint.RX_IF}
    (ul,) = result.signals_by_tap[TapPoint.TX_IF]
    assert ul.power_dbm == pytest.approx(-10.0)
    (dl,) = result.signals_by_tap[TapPoint.RX_IF]
    assert dl.frequency_hz == pytest.approx(1610e6)
    assert result.signal_path.tx_path.rf_power_dbm == pytest.approx(46.0)


def test_seeded_runs_are_identical():
    a = GroundStationSimulation(rng=9).run(5, 0.1, RX, TX)
    b = GroundStationSimulation(rng=9).run(5, 0.1, RX, TX)
    for ta, tb in zip(a.traces, b.traces):
        np.testing.assert_array_equal(ta, tb)


def test_run_validation():
    with pytest.raises(ValueError):
        GroundStationSimulation().run(0, 0.1)


def test_power_off_mid_run():
    sim = GroundStationSimulation(rng=4)
    sim.run(3, 0.1, RX, TX)
    sim.frontend.set_main_power(False)
    result = sim.tick(0.1, RX, TX)
    assert result.power_state is PowerState.OFF
    assert result.signal_path.rx_path.if_power_dbm == -120.0
    (dl,) = result.signals_by_tap[TapPoint.RX_IF]
    assert dl.power_dbm == -120.0
    assert result.alarms == ()


def test_alarms_reported():
    fe = RFFrontEnd.from_config({"hpa": {"back_off_db": 2.0}})
    sim = GroundStationSimulation(fe, rng=0)
    fe.set_hpa_enabled(True)
    result = sim.tick(0.1)
    assert "HPA overdrive - IMD degradation" in result.alarms


def test_analyzer_config_overrides():
    sim = GroundStationSimulation(analyzer_config={"width": 256, "n_traces": 1,
                                                   "use_tap_a": False})
    result = sim.tick(0.1, RX, TX)
    assert len(result.traces) == 1
    assert result.traces[0].shape == (256,)
    assert set(result.signals_by_tap) == {TapPoint.RX_IF}
