import math

import numpy as np
import pytest
from astropy import units as u
from pycraf import conversions as cnv

from sigrange import rfmath


def test_friis_filter_then_lnb_matches_closed_form():
    il, nf_lnb = 2.0, 0.6
    f_filter = 10 ** (il / 10)
    g_filter = 10 ** (-il / 10)
    f_lnb = 10 ** (nf_lnb / 10)
    expected = 10 * math.log10(f_filter + (f_lnb - 1) / g_filter)

    got = rfmath.cascade_noise_figure([(il, -il), (nf_lnb, 55.0)])

    assert abs(got - expected) < 1e-6


def test_friis_three_stages():
    stages = [(1.0, 20.0), (6.0, 10.0), (10.0, 0.0)]
    f = [10 ** (nf / 10) for nf, _ in stages]
    g = [10 ** (gain / 10) for _, gain in stages]
    expected = 10 * math.log10(f[0] + (f[1] - 1) / g[0] + (f[2] - 1) / (g[0] * g[1]))
    assert rfmath.cascade_noise_figure(stages) == pytest.approx(expected, abs=1e-9)


def test_friis_empty_chain_is_noiseless():
    assert rfmath.cascade_noise_figure([]) == 0.0


def test_friis_survives_blocking_stage():
    nf = rfmath.cascade_noise_figure([(3.0, -math.inf), (10.0, 0.0)])
    assert math.isfinite(nf)
    assert nf > 100.0


def test_thermal_floor():
    assert rfmath.thermal_floor_dbm(1e6) == pytest.approx(-114.0)
    assert rfmath.thermal_floor_dbm(1e6, 3.0) == pytest.approx(-111.0)
    # bandwidth clamped to 1 Hz
    assert rfmath.thermal_floor_dbm(0.0) == pytest.approx(-174.0)


def test_ktb_floor_at_reference_temperature():
    assert rfmath.ktb_floor_dbm(290.0, 1.0) == pytest.approx(-174.0, abs=0.05)
    # 10 dB colder source is 10 dB quieter
    assert (rfmath.ktb_floor_dbm(290.0, 1e6) - rfmath.ktb_floor_dbm(29.0, 1e6)
            == pytest.approx(10.0))
    assert math.isfinite(rfmath.ktb_floor_dbm(0.0, 0.0))


def test_noise_temperature():
    assert rfmath.noise_temperature_k(0.6) == pytest.approx(290 * (10 ** 0.06 - 1))
    assert rfmath.noise_temperature_k(0.0) == pytest.approx(0.0)


def test_db_helpers_clamp():
    assert rfmath.to_db(0.0) == pytest.approx(-300.0)
    assert rfmath.to_db(np.zeros(3)) == pytest.approx([-300.0] * 3)
    assert rfmath.to_lin(10.0) == pytest.approx(10.0)


def test_dbw_to_watts():
    assert rfmath.dbw_to_watts(0.0) == pytest.approx(1.0)
    assert rfmath.dbw_to_watts(20.0) == pytest.approx(100.0)


def test_quantity_wrappers():
    floor = rfmath.thermal_noise_floor(1 * u.MHz, 3 * cnv.dB)
    assert floor.unit == cnv.dBm
    assert floor.value == pytest.approx(-111.0)

    ktb = rfmath.noise_floor_from_temperature(290 * u.K, 1 * u.Hz)
    assert ktb.value == pytest.approx(-174.0, abs=0.05)

    t = rfmath.noise_temperature(0.6 * cnv.dB)
    assert t.to_value(u.K) == pytest.approx(290 * (10 ** 0.06 - 1))
