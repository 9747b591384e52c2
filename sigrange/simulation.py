"""
simulation.py

Top-level tick loop tying the front end, the signal-path engine and the
spectrum analyzer together. The tick length is passed down explicitly; there
is no event bus.

Date: 19-10-2026
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np

from .analyzer import SpectrumAnalyzer
from .frontend import PowerState, RFFrontEnd
from .signal_path import SignalPath, SignalPathManager
from .signals import Signal
from .tappoints import TapPoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickResult:
    """Everything a renderer or evaluator may read about one tick."""

    time_s: float
    power_state: PowerState
    signal_path: SignalPath
    swept: bool
    traces: Tuple[np.ndarray, ...]
    signals_by_tap: Mapping[TapPoint, Tuple[Signal, ...]]
    alarms: Tuple[str, ...]


class GroundStationSimulation:
    """
    Owns the front end, the signal-path manager and the analyzer.

    Parameters
    ----------
    frontend : RFFrontEnd, optional
        Front end to drive; a default one is built if omitted.
    analyzer_config : mapping, optional
        Overrides for ``sigrange.config.DEFAULT_ANALYZER``.
    rng : numpy.random.Generator, int or None
        Random source (or seed) for the spectrum synthesis.
    """

    def __init__(self, frontend: Optional[RFFrontEnd] = None,
                 analyzer_config: Optional[Mapping[str, Any]] = None, rng=None):
        self.frontend = frontend if frontend is not None else RFFrontEnd()
        self.signal_path = SignalPathManager(self.frontend)
        self.analyzer = SpectrumAnalyzer.from_config(self.signal_path, analyzer_config, rng=rng)
        self.time_s = 0.0

    def signals_at_taps(self, rx_signals: Iterable[Signal] = (),
                        tx_signals: Iterable[Signal] = ()) -> Dict[TapPoint, List[Signal]]:
        """Carriers propagated to every coupler tap the analyzer listens on."""
        carriers = list(rx_signals) + list(tx_signals)
        return {tap: self.signal_path.propagate(carriers, tap)
                for tap in self.analyzer.active_taps()}

    def tick(self, dt: float, rx_signals: Iterable[Signal] = (),
             tx_signals: Iterable[Signal] = ()) -> TickResult:
        """
        Advance the whole station by ``dt`` seconds.

        Parameters
        ----------
        dt : float
            Tick length in seconds.
        rx_signals : iterable of Signal
            Carriers arriving from the antenna (origin on the RX chain).
        tx_signals : iterable of Signal
            Carriers leaving the modems (origin on the TX chain).
        """
        self.time_s += dt
        self.frontend.update(dt)
        path = self.signal_path.update()
        by_tap = self.signals_at_taps(rx_signals, tx_signals)
        swept = self.analyzer.update(dt, by_tap)
        return TickResult(
            time_s=self.time_s,
            power_state=self.frontend.power_state,
            signal_path=path,
            swept=swept,
            traces=tuple(self.analyzer.traces.amplitudes()),
            signals_by_tap={tap: tuple(sigs) for tap, sigs in by_tap.items()},
            alarms=tuple(self.frontend.alarms()),
        )

    def run(self, n_ticks: int, dt: float, rx_signals: Iterable[Signal] = (),
            tx_signals: Iterable[Signal] = ()) -> TickResult:
        """Run ``n_ticks`` identical ticks and return the last result."""
        if n_ticks <= 0:
            raise ValueError(f"n_ticks must be positive, got {n_ticks}")
        rx_signals, tx_signals = list(rx_signals), list(tx_signals)
        result = None
        for _ in range(n_ticks):
            result = self.tick(dt, rx_signals, tx_signals)
        logger.info("Ran %d ticks, t=%.2f s, state %s", n_ticks, self.time_s,
                    result.power_state.value)
        return result
