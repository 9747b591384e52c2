import numpy as np
import pytest

from sigrange.signals import Signal
from sigrange.spectrum import SpectrumDataProcessor


def test_invalid_construction():
    with pytest.raises(ValueError):
        SpectrumDataProcessor(width=0)
    with pytest.raises(ValueError):
        SpectrumDataProcessor(min_frequency_hz=2e9, max_frequency_hz=1e9)


def test_noise_stays_near_floor(rng):
    proc = SpectrumDataProcessor(rng=rng)
    noise = proc.generate_noise(-90.0)
    assert noise.dtype == np.float32
    assert noise.shape == (824,)
    inside = np.abs(noise + 90.0) <= 2.0 + 1e-4
    # impulses and dropouts are the only excursions
    assert inside.mean() > 0.99
    assert np.all(np.abs(noise + 90.0) <= 7.0 + 1e-4)


def test_noise_gain_applied_after_shaping():
    a = SpectrumDataProcessor(rng=3).generate_noise(-120.0, gain_db=50.0, apply_gain=False)
    b = SpectrumDataProcessor(rng=3).generate_noise(-120.0, gain_db=50.0, apply_gain=True)
    np.testing.assert_allclose(b - a, 50.0, atol=1e-3)


def test_seed_reproducibility():
    sig = Signal(1.6e9, 2e6, -60.0)
    a = SpectrumDataProcessor(rng=11).generate_data([sig], -95.0, t=1.0)
    b = SpectrumDataProcessor(rng=11).generate_data([sig], -95.0, t=1.0)
    np.testing.assert_array_equal(a, b)


def test_signal_lobe(rng):
    proc = SpectrumDataProcessor(rng=rng)
    sig = Signal(1.6e9, 1e6, -50.0)
    out = proc.generate_signals([sig])
    center, in_band, out_of_band = proc.signal_bins(sig)
    assert center == pytest.approx(412.0)
    assert out_of_band == pytest.approx(8.24)
    assert in_band == pytest.approx(out_of_band / 4.0)

    window = out[405:420]
    assert abs(int(np.argmax(window)) + 405 - 412) <= 2
    assert window.max() == pytest.approx(-50.0, abs=0.5)
    # far from the carrier only the fill value remains
    assert out[0] == pytest.approx(-100.0)
    assert out[-1] == pytest.approx(-100.0)


def test_strongest_signal_dominates(rng):
    proc = SpectrumDataProcessor(rng=rng)
    weak = Signal(1.6e9, 1e6, -70.0)
    strong = Signal(1.6e9, 1e6, -45.0)
    out = proc.generate_signals([weak, strong])
    assert out[412] > -50.0


def test_generate_data_combines_by_max(rng):
    proc = SpectrumDataProcessor(rng=rng)
    data = proc.generate_data([Signal(1.62e9, 2e6, -60.0)], -95.0)
    assert not data.flags.writeable
    np.testing.assert_array_equal(data, np.maximum(proc.noise_data, proc.signal_data))
    assert data[proc.width // 10] == pytest.approx(-95.0, abs=7.5)


def test_out_of_range_signal_leaves_fill(rng):
    proc = SpectrumDataProcessor(rng=rng)
    out = proc.generate_signals([Signal(3e9, 1e6, -20.0)])
    np.testing.assert_allclose(out, -100.0)


def test_resize_and_explicit_width(rng):
    proc = SpectrumDataProcessor(rng=rng)
    assert proc.generate_noise(-90.0, width=100).shape == (100,)
    proc.resize(400)
    assert proc.noise_data.shape == (400,)
    assert proc.bin_frequencies()[0] == pytest.approx(1.55e9)
    assert proc.bin_frequencies()[1] - proc.bin_frequencies()[0] == pytest.approx(100e6 / 400)
    with pytest.raises(ValueError):
        proc.resize(-1)
