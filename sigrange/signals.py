"""
signals.py

Signal value type and the carrier-to-noise classification used by the
demodulation quality checks.

Date: 19-10-2026
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional

from .tappoints import TapPoint


class Modulation(enum.Enum):
    BPSK = "BPSK"
    QPSK = "QPSK"
    QAM8 = "8QAM"
    QAM16 = "16QAM"


class Polarization(enum.Enum):
    H = "H"
    V = "V"
    LHCP = "LHCP"
    RHCP = "RHCP"


FEC_RATES = ("1/2", "2/3", "3/4", "5/6", "7/8")

# Minimum C/N (dB) for a clean demodulation
CN_THRESHOLDS_DB = {
    Modulation.BPSK: 7.0,
    Modulation.QPSK: 10.0,
    Modulation.QAM8: 13.0,
    Modulation.QAM16: 16.0,
}
DEFAULT_CN_THRESHOLD_DB = 10.0


@dataclass(frozen=True)
class Signal:
    """
    A single carrier as seen at one tap point.

    Powers are absolute levels (dBm) at ``origin_tap_point``; frequencies
    and bandwidths are in Hz.
    """

    frequency_hz: float
    bandwidth_hz: float
    power_dbm: float
    modulation: Modulation = Modulation.QPSK
    fec: Optional[str] = None
    polarization: Optional[Polarization] = None
    origin_tap_point: TapPoint = TapPoint.RX_RF_PRE_OMT
    is_degraded: bool = False
    signal_id: str = ""

    def __post_init__(self):
        if self.bandwidth_hz < 0:
            raise ValueError("Signal bandwidth must be non-negative.")
        if self.fec is not None and self.fec not in FEC_RATES:
            raise ValueError(f"Unknown FEC rate {self.fec!r}; choose from {FEC_RATES}.")
        if not isinstance(self.modulation, Modulation):
            object.__setattr__(self, "modulation", Modulation(self.modulation))
        if self.polarization is not None and not isinstance(self.polarization, Polarization):
            object.__setattr__(self, "polarization", Polarization(self.polarization))
        if not isinstance(self.origin_tap_point, TapPoint):
            object.__setattr__(self, "origin_tap_point", TapPoint.lookup(self.origin_tap_point))

    def moved(self, **changes) -> "Signal":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


def required_cn_db(modulation) -> float:
    """C/N threshold (dB) for a modulation, 10 dB when it is not tabulated."""
    try:
        modulation = Modulation(modulation) if not isinstance(modulation, Modulation) else modulation
    except ValueError:
        return DEFAULT_CN_THRESHOLD_DB
    return CN_THRESHOLDS_DB.get(modulation, DEFAULT_CN_THRESHOLD_DB)


def carrier_to_noise(signal: Signal, noise_floor_dbm: float) -> float:
    return signal.power_dbm - noise_floor_dbm


def classify_signal(signal: Signal, noise_floor_dbm: float) -> Signal:
    """
    Mark a signal degraded when its C/N falls below the modulation threshold.

    A signal that already arrived degraded (e.g. through a cross-polarised
    OMT) stays degraded.
    """
    below = carrier_to_noise(signal, noise_floor_dbm) < required_cn_db(signal.modulation)
    return replace(signal, is_degraded=signal.is_degraded or below)


def classify_signals(signals: Iterable[Signal], noise_floor_dbm: float) -> List[Signal]:
    return [classify_signal(s, noise_floor_dbm) for s in signals]
