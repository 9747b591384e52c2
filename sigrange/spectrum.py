#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
spectrum.py

Procedural synthesis of the amplitude trace shown by the spectrum analyzer.

The trace is a stylised rendering rather than an FFT: a layered random noise
floor plus one shaped lobe per carrier, combined bin by bin with ``max`` so
the strongest emitter dominates, as it does on a real display.

All randomness comes from one ``numpy.random.Generator`` so a seed gives
reproducible traces.

Date: 19-10-2026
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from .rfmath import to_db
from .signals import Signal

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Noise layer constants
# -----------------------------------------------------------------------------
NOISE_JITTER_DB = 2.0           # peak-to-peak of the uniform layer
NOISE_CLAMP_DB = 2.0
SPIKE_PROBABILITY = 1e-4
DROPOUT_PROBABILITY = 2e-4
HUMP_BAND = (0.4, 0.6)          # fraction of the display

# -----------------------------------------------------------------------------
# Signal shaping constants
# -----------------------------------------------------------------------------
NULL_PROBABILITY = 1e-3
MIN_LOBE_BINS = 1e-3
GAUSSIAN_FLOOR = 1e-10
OUTER_TAPER_DB = 20.0


class SpectrumDataProcessor:
    """
    Generates noise, signal and combined amplitude arrays (dBm per bin).

    Parameters
    ----------
    width : int
        Number of display bins.
    min_frequency_hz, max_frequency_hz : float
        Frequency span mapped onto the bins.
    min_amplitude_dbm : float
        Fill value of the signal layer where no carrier contributes.
    rng : numpy.random.Generator, int or None
        Random source, or a seed for a new one.
    """

    def __init__(self, width: int = 824, min_frequency_hz: float = 1.55e9,
                 max_frequency_hz: float = 1.65e9, min_amplitude_dbm: float = -100.0,
                 rng=None):
        if width <= 0:
            raise ValueError(f"Display width must be positive, got {width}")
        self.width = int(width)
        self.min_amplitude_dbm = min_amplitude_dbm
        self.rng = np.random.default_rng(rng)
        self.set_frequency_range(min_frequency_hz, max_frequency_hz)
        self._allocate()

    def _allocate(self) -> None:
        self.noise_data = np.zeros(self.width, dtype=np.float32)
        self.signal_data = np.full(self.width, self.min_amplitude_dbm, dtype=np.float32)
        self.combined_data = np.zeros(self.width, dtype=np.float32)

    def set_frequency_range(self, min_frequency_hz: float, max_frequency_hz: float) -> None:
        if max_frequency_hz <= min_frequency_hz:
            raise ValueError("Frequency range must have max > min.")
        self.min_frequency_hz = float(min_frequency_hz)
        self.max_frequency_hz = float(max_frequency_hz)

    @property
    def frequency_range(self) -> Tuple[float, float]:
        return self.min_frequency_hz, self.max_frequency_hz

    def resize(self, width: int) -> None:
        if width <= 0:
            raise ValueError(f"Display width must be positive, got {width}")
        if width != self.width:
            logger.debug("Resizing spectrum buffers %d -> %d", self.width, width)
            self.width = int(width)
            self._allocate()

    def bin_frequencies(self) -> np.ndarray:
        """Frequency (Hz) at the left edge of every bin."""
        span = self.max_frequency_hz - self.min_frequency_hz
        return self.min_frequency_hz + np.arange(self.width) * span / self.width

    # -------------------------------------------------------------------------
    # noise
    # -------------------------------------------------------------------------
    def generate_noise(self, base_floor_dbm: float, gain_db: float = 0.0,
                       apply_gain: bool = False, t: float = 0.0,
                       width: Optional[int] = None) -> np.ndarray:
        """
        Layered noise floor around ``base_floor_dbm``.

        Parameters
        ----------
        base_floor_dbm : float
            Noise floor without chain gain.
        gain_db : float
            Chain gain to the tap point.
        apply_gain : bool
            Add ``gain_db`` after shaping (the floor was externally referred).
        t : float
            Simulation time in seconds, drives the slow drift.
        width : int, optional
            Number of bins, defaults to the display width.

        Returns
        -------
        noise : np.ndarray
            float32 amplitudes (dBm).

        Notes
        -----
        Layers: uniform +-1 dB jitter; slow sinusoidal drift; sub-dB fast
        jitter; an interference hump over the middle 20 % of the display.
        The sum is clamped to base +- 2 dB, then rare impulses (+2..+5 dB)
        and dropouts (-1..-3 dB) are added outside the clamp.
        """
        n = self.width if width is None else int(width)
        r = self.rng
        x = np.arange(n, dtype=float)
        base = float(base_floor_dbm)

        phases = r.uniform(0.0, 2.0 * np.pi, size=(3, n))
        amp_drift = 0.8 + 0.4 * r.random(n)
        amp_fast = 1.2 + 0.6 * r.random(n)
        amp_hump = 0.2 + 0.4 * r.random(n)

        noise = base + (r.random(n) - 0.5) * NOISE_JITTER_DB
        noise += np.sin(x / 300.0 + t / 8.0 + phases[0]) * amp_drift * 0.5
        noise += np.sin(x * 0.5 + t * 2.0 + phases[1]) * amp_fast * 0.005
        hump = (x > n * HUMP_BAND[0]) & (x < n * HUMP_BAND[1])
        noise[hump] += (np.sin(x[hump] / 40.0 + t * 1.5 + phases[2][hump])
                        * amp_hump[hump] * 0.02)
        np.clip(noise, base - NOISE_CLAMP_DB, base + NOISE_CLAMP_DB, out=noise)

        spikes = r.random(n) < SPIKE_PROBABILITY
        noise[spikes] += 2.0 + 3.0 * r.random(int(spikes.sum()))
        dropouts = r.random(n) < DROPOUT_PROBABILITY
        noise[dropouts] -= 1.0 + 2.0 * r.random(int(dropouts.sum()))

        if apply_gain:
            noise += gain_db

        if n == self.width:
            self.noise_data[:] = noise
        return noise.astype(np.float32)

    # -------------------------------------------------------------------------
    # signals
    # -------------------------------------------------------------------------
    def signal_bins(self, signal: Signal,
                    freq_range: Optional[Sequence[float]] = None,
                    width: Optional[int] = None) -> Tuple[float, float, float]:
        """(center, in-band width, out-of-band width) of a carrier, in bins."""
        n = self.width if width is None else int(width)
        f_min, f_max = freq_range if freq_range is not None else self.frequency_range
        span = f_max - f_min
        center = (signal.frequency_hz - f_min) / span * n
        out_of_band = max(signal.bandwidth_hz / span * n, MIN_LOBE_BINS)
        return center, out_of_band / 4.0, out_of_band

    def generate_signals(self, signals: Iterable[Signal], width: Optional[int] = None,
                         freq_range: Optional[Sequence[float]] = None,
                         floor_dbm: Optional[float] = None) -> np.ndarray:
        """
        Carrier lobes over the display, combined per bin by maximum.

        Parameters
        ----------
        signals : iterable of Signal
            Carriers with their level already referred to the tap point.
        width : int, optional
            Number of bins, defaults to the display width.
        freq_range : (float, float), optional
            Frequency span, defaults to the processor's range.
        floor_dbm : float, optional
            Fill value where no carrier contributes, defaults to
            ``min_amplitude_dbm``.

        Returns
        -------
        amplitudes : np.ndarray
            float32 amplitudes (dBm).
        """
        n = self.width if width is None else int(width)
        fill = self.min_amplitude_dbm if floor_dbm is None else floor_dbm
        r = self.rng
        x = np.arange(n, dtype=float)
        out = np.full(n, fill, dtype=float)

        for sig in signals:
            center, in_band, out_of_band = self.signal_bins(sig, freq_range, n)
            sigma = out_of_band / 3.0
            distance = x - center
            abs_dist = np.abs(distance)

            gaussian = np.exp(-0.5 * (distance / sigma) ** 2)
            y = sig.power_dbm + 2.0 * to_db(np.maximum(gaussian, GAUSSIAN_FLOOR))

            jitter = r.random(n) - 0.5
            main = abs_dist <= in_band
            inner = ~main & (abs_dist <= 0.7 * out_of_band)
            outer = ~main & ~inner & (abs_dist <= out_of_band)
            beyond = ~(main | inner | outer)
            rel = distance / out_of_band

            y[main] += jitter[main] * 0.4
            y[inner] += jitter[inner] * 0.6 + np.sin(rel[inner] * np.pi * 4.0) * 0.5
            y[outer] += jitter[outer] * 1.0 + np.sin(rel[outer] * np.pi * 6.0) * 0.8
            excess = abs_dist[beyond] - out_of_band
            y[beyond] += (-OUTER_TAPER_DB * (1.0 - np.exp(-excess / (0.3 * out_of_band)))
                          + jitter[beyond] * 1.5)

            nulls = r.random(n) < NULL_PROBABILITY
            y[nulls] -= 10.0 + 4.0 * r.random(int(nulls.sum()))

            np.maximum(out, y, out=out)

        if n == self.width:
            self.signal_data[:] = out
        return out.astype(np.float32)

    # -------------------------------------------------------------------------
    # combined
    # -------------------------------------------------------------------------
    @staticmethod
    def combine(noise: np.ndarray, signal: np.ndarray) -> np.ndarray:
        return np.maximum(noise, signal)

    def generate_data(self, signals: Iterable[Signal], noise_floor_dbm: float,
                      gain_db: float = 0.0, apply_gain: bool = False,
                      t: float = 0.0) -> np.ndarray:
        """
        Noise, signals and their combination for one tick.

        Returns
        -------
        combined : np.ndarray
            Read-only float32 copy of the combined amplitudes.
        """
        noise = self.generate_noise(noise_floor_dbm, gain_db=gain_db,
                                    apply_gain=apply_gain, t=t)
        sig = self.generate_signals(signals)
        self.combined_data[:] = self.combine(noise, sig)
        combined = self.combined_data.copy()
        combined.setflags(write=False)
        return combined
