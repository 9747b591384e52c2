import pytest

from sigrange.signals import (
    Modulation, Polarization, Signal, classify_signal, classify_signals, required_cn_db,
)
from sigrange.tappoints import TapPoint, UnknownTapPointError


def test_signal_coerces_enums():
    sig = Signal(1.6e9, 1e6, -50.0, "8QAM", "3/4", "H", "RX IF")
    assert sig.modulation is Modulation.QAM8
    assert sig.polarization is Polarization.H
    assert sig.origin_tap_point is TapPoint.RX_IF


def test_signal_validation():
    with pytest.raises(ValueError):
        Signal(1.6e9, -1.0, -50.0)
    with pytest.raises(ValueError):
        Signal(1.6e9, 1e6, -50.0, fec="9/10")
    with pytest.raises(UnknownTapPointError):
        Signal(1.6e9, 1e6, -50.0, origin_tap_point="NOWHERE")


def test_signal_is_immutable():
    sig = Signal(1.6e9, 1e6, -50.0)
    with pytest.raises(AttributeError):
        sig.power_dbm = 0.0
    moved = sig.moved(power_dbm=-40.0)
    assert moved.power_dbm == -40.0
    assert sig.power_dbm == -50.0


def test_cn_thresholds():
    assert required_cn_db(Modulation.BPSK) == 7.0
    assert required_cn_db("16QAM") == 16.0
    assert required_cn_db("APSK") == 10.0


@pytest.mark.parametrize("modulation, power, degraded", [
    (Modulation.BPSK, -93.0, False),
    (Modulation.BPSK, -94.0, True),
    (Modulation.QAM16, -85.0, True),
    (Modulation.QAM16, -83.0, False),
])
def test_classify_signal(modulation, power, degraded):
    sig = Signal(1.6e9, 1e6, power, modulation)
    assert classify_signal(sig, -100.0).is_degraded is degraded


def test_classification_keeps_existing_degradation():
    sig = Signal(1.6e9, 1e6, -20.0, is_degraded=True)
    assert classify_signals([sig], -100.0)[0].is_degraded
