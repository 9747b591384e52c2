"""
traces.py

Hold-mode traces of the spectrum analyzer and marker (peak) search.

Date: 19-10-2026
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy.signal import find_peaks

logger = logging.getLogger(__name__)


MAX_MARKERS = 10
MARKER_SEPARATION_BINS = 10
MARKER_THRESHOLD_DB = 3.0
AVERAGE_WEIGHT = 0.8


class TraceMode(enum.Enum):
    CLEARWRITE = "clearwrite"
    MAXHOLD = "maxhold"
    MINHOLD = "minhold"
    AVERAGE = "average"
    HOLD = "hold"


def _sentinel(mode: TraceMode) -> float:
    return np.inf if mode is TraceMode.MINHOLD else -np.inf


@dataclass
class Trace:
    amplitude: np.ndarray
    mode: TraceMode = TraceMode.CLEARWRITE
    is_visible: bool = True
    is_updating: bool = True

    @classmethod
    def create(cls, width: int, mode: TraceMode = TraceMode.CLEARWRITE) -> "Trace":
        mode = TraceMode(mode)
        return cls(np.full(width, _sentinel(mode), dtype=np.float32), mode)

    def reset(self) -> None:
        self.amplitude.fill(_sentinel(self.mode))

    def apply(self, current: np.ndarray) -> None:
        """Fold one tick of data into the trace according to its mode."""
        amp = self.amplitude
        if self.mode is TraceMode.CLEARWRITE:
            amp[:] = current
        elif self.mode is TraceMode.MAXHOLD:
            np.maximum(amp, current, out=amp)
        elif self.mode is TraceMode.MINHOLD:
            np.minimum(amp, current, out=amp)
        elif self.mode is TraceMode.AVERAGE:
            # bins still at the reset sentinel start from the first sample
            seeded = np.isfinite(amp)
            amp[:] = np.where(seeded, AVERAGE_WEIGHT * amp + (1.0 - AVERAGE_WEIGHT) * current,
                              current)
        # HOLD: frozen


@dataclass(frozen=True)
class Marker:
    index: int
    amplitude_dbm: float


@dataclass(frozen=True)
class MarkerSet:
    """Markers sorted by bin; ``marker_index`` points at the strongest one."""

    markers: Tuple[Marker, ...] = field(default_factory=tuple)
    marker_index: Optional[int] = None

    @property
    def strongest(self) -> Optional[Marker]:
        if self.marker_index is None:
            return None
        return self.markers[self.marker_index]


class TraceEngine:
    """
    One to three independent traces fed from the combined spectrum data.

    Parameters
    ----------
    width : int
        Number of bins per trace.
    n_traces : int
        Number of traces, between 1 and 3.
    modes : sequence of TraceMode, optional
        Initial mode of each trace, clearwrite by default.
    """

    def __init__(self, width: int = 824, n_traces: int = 3,
                 modes: Optional[Sequence[TraceMode]] = None):
        if not 1 <= n_traces <= 3:
            raise ValueError(f"n_traces must be between 1 and 3, got {n_traces}")
        if width <= 0:
            raise ValueError(f"Trace width must be positive, got {width}")
        modes = list(modes) if modes is not None else [TraceMode.CLEARWRITE] * n_traces
        if len(modes) != n_traces:
            raise ValueError("One mode per trace is required.")
        self.width = int(width)
        self.traces: List[Trace] = [Trace.create(self.width, m) for m in modes]

    def _trace(self, index: int) -> Trace:
        if not 0 <= index < len(self.traces):
            raise ValueError(f"No trace {index}; engine holds {len(self.traces)}")
        return self.traces[index]

    def update(self, current: np.ndarray) -> None:
        current = np.asarray(current, dtype=np.float32)
        if current.shape != (self.width,):
            raise ValueError(f"Expected {self.width} bins, got shape {current.shape}")
        for trace in self.traces:
            if trace.is_visible and trace.is_updating:
                trace.apply(current)

    def set_mode(self, index: int, mode) -> None:
        """Change a trace's mode; the trace restarts from the mode's sentinel."""
        trace = self._trace(index)
        trace.mode = TraceMode(mode)
        trace.reset()
        logger.debug("Trace %d -> %s", index, trace.mode.value)

    def reset(self, index: int) -> None:
        self._trace(index).reset()

    def reset_all(self) -> None:
        for trace in self.traces:
            trace.reset()

    def set_visible(self, index: int, visible: bool) -> None:
        self._trace(index).is_visible = visible

    def set_updating(self, index: int, updating: bool) -> None:
        self._trace(index).is_updating = updating

    def resize(self, width: int) -> None:
        if width <= 0:
            raise ValueError(f"Trace width must be positive, got {width}")
        self.width = int(width)
        self.traces = [Trace(np.full(self.width, _sentinel(t.mode), dtype=np.float32),
                             t.mode, t.is_visible, t.is_updating) for t in self.traces]

    def amplitude(self, index: int) -> np.ndarray:
        """Read-only copy of a trace's amplitudes."""
        out = self._trace(index).amplitude.copy()
        out.setflags(write=False)
        return out

    def amplitudes(self) -> List[np.ndarray]:
        return [self.amplitude(i) for i in range(len(self.traces))]

    # -------------------------------------------------------------------------
    # markers
    # -------------------------------------------------------------------------
    def find_markers(self, index: int, noise_floor_dbm: float,
                     min_amplitude_dbm: float = -np.inf,
                     max_amplitude_dbm: float = np.inf,
                     max_markers: int = MAX_MARKERS,
                     min_separation: int = MARKER_SEPARATION_BINS) -> MarkerSet:
        """
        Up to ``max_markers`` markers on trace ``index``.

        Local maxima strictly above ``noise_floor_dbm + 3 dB`` are ranked by
        amplitude and the strongest kept. If that leaves fewer than
        ``max_markers``, further bins are added from the left, skipping any
        bin closer than ``min_separation`` to an existing marker. Only bins
        inside the display window ``(min_amplitude_dbm, max_amplitude_dbm)``
        qualify.

        Returns
        -------
        markers : MarkerSet
            Markers sorted by bin index plus the position of the strongest.
        """
        data = self._trace(index).amplitude.astype(float)
        in_window = np.isfinite(data) & (data > min_amplitude_dbm) & (data < max_amplitude_dbm)

        peaks, _ = find_peaks(data, plateau_size=(None, 1))
        threshold = noise_floor_dbm + MARKER_THRESHOLD_DB
        peaks = peaks[data[peaks] > threshold]
        ranked = peaks[np.argsort(-data[peaks], kind="stable")][:max_markers]
        chosen = [int(i) for i in ranked if in_window[i]]

        if len(chosen) < max_markers:
            for x in np.flatnonzero(in_window):
                if len(chosen) >= max_markers:
                    break
                if all(abs(int(x) - m) >= min_separation for m in chosen):
                    chosen.append(int(x))

        chosen.sort()
        markers = tuple(Marker(i, float(data[i])) for i in chosen)
        if not markers:
            return MarkerSet()
        strongest = max(range(len(markers)), key=lambda k: markers[k].amplitude_dbm)
        return MarkerSet(markers, strongest)
