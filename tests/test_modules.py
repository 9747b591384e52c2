import pytest

from sigrange import modules
from sigrange.modules import (
    BUCState, CouplerState, FilterState, HPAState, LNBState, OMTState,
)
from sigrange.rfmath import noise_temperature_k
from sigrange.tappoints import TapPoint, UnknownTapPointError


@pytest.mark.parametrize("back_off", [-0.1, 10.5])
def test_hpa_back_off_range(back_off):
    with pytest.raises(ValueError):
        HPAState(back_off_db=back_off)


def test_hpa_powered_figures():
    hpa = modules.update_hpa(HPAState(is_powered=True, back_off_db=6.0))
    assert hpa.output_power_dbw == pytest.approx(4.4)
    assert hpa.imd_level_dbc == pytest.approx(-42.0)
    assert not hpa.is_overdriven
    # 44 dBm RF at 50 % efficiency dissipates as much as it radiates
    assert hpa.temperature_c == pytest.approx(25.0 + 10 ** 1.4 * 10.0)


def test_hpa_overdrive():
    hpa = modules.update_hpa(HPAState(is_powered=True, back_off_db=2.0))
    assert hpa.is_overdriven
    assert hpa.imd_level_dbc == pytest.approx(-34.0)
    assert "HPA overdrive - IMD degradation" in modules.hpa_alarms(hpa, BUCState())


def test_hpa_unpowered_figures():
    hpa = modules.update_hpa(HPAState(is_powered=False))
    assert hpa.output_power_dbw == pytest.approx(-9.0)
    assert hpa.imd_level_dbc == pytest.approx(-60.0)
    assert hpa.temperature_c == pytest.approx(25.0)
    assert modules.hpa_alarms(hpa, BUCState()) == []


def test_buc_mute_and_power():
    buc = modules.update_buc(BUCState())
    assert buc.output_power_dbm == pytest.approx(48.0)
    buc.is_muted = True
    assert modules.update_buc(buc).output_power_dbm == modules.POWER_SENTINEL_DBM
    buc.is_muted, buc.is_powered = False, False
    assert modules.update_buc(buc).output_power_dbm == modules.POWER_SENTINEL_DBM
    assert modules.buc_alarms(buc) == []


def test_buc_thermal_relaxation():
    buc = BUCState()
    modules.update_buc(buc, dt=600.0)
    assert 25.0 < buc.temperature_c < 25.0 + 58.0 * 0.8
    modules.update_buc(buc, dt=1e6)
    assert buc.temperature_c == pytest.approx(25.0 + 58.0 * 0.8)
    assert any("over-temperature" in a for a in modules.buc_alarms(buc))


def test_buc_saturation_alarm():
    buc = modules.update_buc(BUCState(gain_db=59.0))
    assert any("saturation" in a for a in modules.buc_alarms(buc))


def test_lnb_warm_up():
    lnb = LNBState()
    nominal = noise_temperature_k(modules.lnb_noise_figure_db(lnb))
    modules.update_lnb(lnb, dt=0.0)
    assert lnb.noise_temperature_k == pytest.approx(2.0 * nominal)
    modules.update_lnb(lnb, dt=200.0)
    assert lnb.noise_temperature_k == pytest.approx(nominal)


def test_lnb_unpowered_and_inversion():
    lnb = modules.update_lnb(LNBState(is_powered=False, lo_frequency_mhz=6000.0))
    assert lnb.noise_temperature_k == modules.LNB_OFF_NOISE_TEMPERATURE_K
    assert lnb.is_spectrum_inverted
    assert modules.lnb_alarms(lnb) == []


def test_lnb_alarms():
    lnb = LNBState(noise_figure_db=1.5, is_ext_ref_locked=False)
    alarms = modules.lnb_alarms(lnb)
    assert "LNB not locked to reference" in alarms
    assert any("noise figure degraded" in a for a in alarms)


def test_filter_bank():
    filt = modules.select_filter(FilterState(), 3)
    assert (filt.bandwidth_mhz, filt.noise_floor_dbm, filt.insertion_loss_db) == (0.5, -117.0, 2.9)
    assert modules.filter_alarms(modules.select_filter(filt, 0))
    with pytest.raises(ValueError):
        modules.select_filter(filt, len(modules.FILTER_BANK))
    assert modules.filter_index_for_bandwidth(15.0) == 8
    assert modules.filter_index_for_bandwidth(1e4) == len(modules.FILTER_BANK) - 1


def test_omt_fault():
    omt = modules.update_omt(OMTState(cross_pol_isolation_db=15.0))
    assert omt.is_faulted
    assert modules.omt_alarms(omt) == ["Cross-pol isolation degraded"]
    assert not modules.update_omt(OMTState()).is_faulted


def test_coupler():
    coupler = CouplerState(tap_point_a="TX_RF_POST_HPA")
    assert coupler.tap_point_a is TapPoint.TX_RF_POST_HPA
    assert modules.coupling_factor(coupler, TapPoint.RX_IF) == -20.0
    with pytest.raises(ValueError):
        modules.coupling_factor(coupler, TapPoint.TX_IF)
    with pytest.raises(UnknownTapPointError):
        modules.coupling_factor(coupler, "SOMEWHERE")
    with pytest.raises(ValueError):
        CouplerState(coupling_factor_a_db=3.0)


def test_coupler_same_tap_alarm():
    coupler = CouplerState(tap_point_a=TapPoint.RX_IF)
    assert modules.coupler_alarms(coupler) == ["Both tap points set to same location"]
