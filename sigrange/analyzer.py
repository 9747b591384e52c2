"""
analyzer.py

Spectrum analyzer attached to the two coupler ports of the front end.

Each sweep it picks the dominant noise floor over the enabled coupler taps,
collects the carriers present at those taps, runs the spectrum synthesis and
folds the result into the traces. Sweeps are rate limited by the sweep time
``3 * span / rbw**2`` and drawing by the refresh rate.

Date: 19-10-2026
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .config import DEFAULT_ANALYZER, merge_config
from .rfmath import thermal_floor_dbm
from .signal_path import ANALYZER_NOISE_FIGURE_DB, SignalPathManager
from .signals import Signal, classify_signals
from .spectrum import SpectrumDataProcessor
from .tappoints import TapPoint
from .traces import MarkerSet, TraceEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectedFloor:
    """
    Noise floor chosen for a sweep.

    ``gain_db`` already includes the coupling factor of the port; it is only
    added to ``noise_floor_no_gain`` when ``should_apply_gain`` is set.
    """

    tap_point: Optional[TapPoint]
    noise_floor_no_gain: float
    should_apply_gain: bool
    gain_db: float

    @property
    def level_dbm(self) -> float:
        if self.should_apply_gain:
            return self.noise_floor_no_gain + self.gain_db
        return self.noise_floor_no_gain


class SpectrumAnalyzer:
    """
    Real-time spectrum analyzer model.

    Parameters
    ----------
    signal_path : SignalPathManager
        Source of gains, noise floors and coupler factors.
    width : int
        Display bins.
    center_frequency_hz, span_hz : float
        Displayed frequency window.
    rbw_hz : float or None
        Resolution bandwidth; None follows the span.
    min_amplitude_dbm, max_amplitude_dbm : float
        Display amplitude window.
    refresh_rate_hz : float
        Drawing rate.
    n_traces : int
        Number of traces (1-3).
    use_tap_a, use_tap_b : bool
        Which coupler ports feed the analyzer.
    rng : numpy.random.Generator, int or None
        Random source for the synthesis.
    """

    def __init__(self, signal_path: SignalPathManager, width: int = 824,
                 center_frequency_hz: float = 1.6e9, span_hz: float = 100e6,
                 rbw_hz: Optional[float] = 1e6, min_amplitude_dbm: float = -100.0,
                 max_amplitude_dbm: float = -40.0, refresh_rate_hz: float = 10.0,
                 n_traces: int = 3, use_tap_a: bool = True, use_tap_b: bool = True,
                 rng=None):
        if span_hz <= 0:
            raise ValueError(f"Span must be positive, got {span_hz}")
        if refresh_rate_hz <= 0:
            raise ValueError(f"Refresh rate must be positive, got {refresh_rate_hz}")
        if max_amplitude_dbm <= min_amplitude_dbm:
            raise ValueError("Amplitude window must have max > min.")
        self.signal_path = signal_path
        self.center_frequency_hz = float(center_frequency_hz)
        self.span_hz = float(span_hz)
        self.rbw_hz = None
        self.set_rbw(rbw_hz)
        self.min_amplitude_dbm = min_amplitude_dbm
        self.max_amplitude_dbm = max_amplitude_dbm
        self.refresh_rate_hz = refresh_rate_hz
        self.use_tap_a = use_tap_a
        self.use_tap_b = use_tap_b
        self.is_paused = False
        self.selected_trace = 0

        f_min, f_max = self.frequency_range
        self.processor = SpectrumDataProcessor(width, f_min, f_max, min_amplitude_dbm, rng=rng)
        self.traces = TraceEngine(width, n_traces)

        self.time_s = 0.0
        self._since_sweep = 0.0
        self._since_refresh = 0.0
        self.last_floor: Optional[SelectedFloor] = None
        self.last_signals: List[Signal] = []

    @classmethod
    def from_config(cls, signal_path: SignalPathManager,
                    overrides: Optional[Mapping[str, Any]] = None,
                    rng=None) -> "SpectrumAnalyzer":
        return cls(signal_path, rng=rng, **merge_config(DEFAULT_ANALYZER, overrides))

    # -------------------------------------------------------------------------
    # frequency / bandwidth settings
    # -------------------------------------------------------------------------
    @property
    def frequency_range(self):
        half = self.span_hz / 2.0
        return self.center_frequency_hz - half, self.center_frequency_hz + half

    def set_center_frequency(self, frequency_hz: float) -> None:
        self.center_frequency_hz = float(frequency_hz)
        self.processor.set_frequency_range(*self.frequency_range)

    def set_span(self, span_hz: float) -> None:
        if span_hz <= 0:
            raise ValueError(f"Span must be positive, got {span_hz}")
        self.span_hz = float(span_hz)
        self.processor.set_frequency_range(*self.frequency_range)

    def set_rbw(self, rbw_hz: Optional[float]) -> None:
        """Set the resolution bandwidth; None selects auto (equal to the span)."""
        if rbw_hz is not None and rbw_hz <= 0:
            raise ValueError(f"RBW must be positive, got {rbw_hz}")
        self.rbw_hz = None if rbw_hz is None else float(rbw_hz)

    @property
    def noise_bandwidth_hz(self) -> float:
        return self.rbw_hz if self.rbw_hz is not None else self.span_hz

    def sweep_interval_s(self) -> float:
        """Sweep time, 3 * span / rbw**2 seconds."""
        return 3.0 * self.span_hz / self.noise_bandwidth_hz ** 2

    def refresh_interval_s(self) -> float:
        return 1.0 / self.refresh_rate_hz

    def bin_to_frequency(self, index: int) -> float:
        f_min, _ = self.frequency_range
        return f_min + index * self.span_hz / self.processor.width

    # -------------------------------------------------------------------------
    # inputs
    # -------------------------------------------------------------------------
    def active_taps(self) -> List[TapPoint]:
        coupler = self.signal_path.frontend.coupler
        taps = []
        if self.use_tap_a and coupler.is_active_a:
            taps.append(coupler.tap_point_a)
        if self.use_tap_b and coupler.is_active_b and coupler.tap_point_b not in taps:
            taps.append(coupler.tap_point_b)
        return taps

    def select_noise_floor(self) -> SelectedFloor:
        """
        Highest displayed noise floor over the enabled coupler taps.

        The analyzer's own thermal floor is the lower bound, and is what is
        shown when no tap is enabled.
        """
        bandwidth = self.noise_bandwidth_hz
        best = SelectedFloor(None, thermal_floor_dbm(bandwidth, ANALYZER_NOISE_FIGURE_DB),
                             False, 0.0)
        for tap in self.active_taps():
            floor = self.signal_path.get_noise_floor_at(tap, bandwidth)
            gain = self.signal_path.get_total_gain_to(tap) + self.signal_path.coupling_factor(tap)
            candidate = SelectedFloor(tap, floor.noise_floor_no_gain, floor.should_apply_gain, gain)
            if candidate.level_dbm > best.level_dbm:
                best = candidate
        return best

    def input_signals(self, signals_by_tap: Optional[Mapping[TapPoint, Iterable[Signal]]]) -> List[Signal]:
        """
        Carriers on the enabled coupler ports.

        Bandwidths are capped at the noise bandwidth and levels reduced by the
        port's coupling factor.
        """
        if not signals_by_tap:
            return []
        bandwidth = self.noise_bandwidth_hz
        out = []
        for tap in self.active_taps():
            factor = self.signal_path.coupling_factor(tap)
            for sig in signals_by_tap.get(tap, ()):
                out.append(replace(sig, bandwidth_hz=min(sig.bandwidth_hz, bandwidth),
                                   power_dbm=sig.power_dbm + factor))
        return out

    # -------------------------------------------------------------------------
    # tick
    # -------------------------------------------------------------------------
    def update(self, dt: float,
               signals_by_tap: Optional[Mapping[TapPoint, Iterable[Signal]]] = None) -> bool:
        """
        Advance by ``dt`` seconds and sweep if the sweep time has elapsed.

        Returns
        -------
        swept : bool
            Whether new data was folded into the traces.
        """
        self.time_s += dt
        if self.is_paused:
            return False
        self._since_sweep += dt
        if self._since_sweep < self.sweep_interval_s():
            return False
        self._since_sweep = 0.0

        floor = self.select_noise_floor()
        signals = self.input_signals(signals_by_tap)
        data = self.processor.generate_data(signals, floor.noise_floor_no_gain,
                                            gain_db=floor.gain_db,
                                            apply_gain=floor.should_apply_gain,
                                            t=self.time_s)
        self.traces.update(data)
        self.last_floor = floor
        self.last_signals = signals
        logger.debug("Sweep at t=%.3f s: floor %.1f dBm from %s, %d carriers",
                     self.time_s, floor.level_dbm,
                     floor.tap_point.name if floor.tap_point else "analyzer", len(signals))
        return True

    def should_refresh(self, dt: float) -> bool:
        """Refresh-rate gate for the renderer."""
        self._since_refresh += dt
        if self._since_refresh >= self.refresh_interval_s():
            self._since_refresh = 0.0
            return True
        return False

    # -------------------------------------------------------------------------
    # read-out
    # -------------------------------------------------------------------------
    def markers(self) -> MarkerSet:
        floor = self.last_floor if self.last_floor is not None else self.select_noise_floor()
        return self.traces.find_markers(self.selected_trace, floor.level_dbm,
                                        self.min_amplitude_dbm, self.max_amplitude_dbm)

    def classify_signals(self, signals: Optional[Iterable[Signal]] = None) -> List[Signal]:
        """C/N classification of carriers against the current noise floor."""
        floor = self.last_floor if self.last_floor is not None else self.select_noise_floor()
        return classify_signals(self.last_signals if signals is None else signals,
                                floor.level_dbm)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "frequency_range": self.frequency_range,
            "rbw_hz": self.noise_bandwidth_hz,
            "traces": self.traces.amplitudes(),
            "noise_floor_dbm": None if self.last_floor is None else self.last_floor.level_dbm,
        }
