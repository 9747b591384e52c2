"""
visualise.py
=============

Matplotlib quick-look of analyzer traces and markers, for debugging and
notebooks. The trainee-facing display is rendered elsewhere.
"""

from __future__ import annotations

from typing import Any, List, Sequence, Tuple
import warnings

import numpy as np
import matplotlib.pyplot as plt
import matplotlib.ticker as mtick

from .traces import MarkerSet


_TRACE_COLORS = ("#facc15", "#22d3ee", "#f472b6")


def _finite_or_nan(x: np.ndarray) -> np.ndarray:
    """Replace the +-inf reset sentinels by NaN so matplotlib leaves gaps."""
    x = np.asarray(x, dtype=float).copy()
    x[~np.isfinite(x)] = np.nan
    return x


def plot_traces(
    traces: Sequence[np.ndarray],
    frequency_range: Tuple[float, float],
    *,
    amplitude_range: Tuple[float, float] = (-100.0, -40.0),
    markers: MarkerSet | None = None,
    labels: List[str] | None = None,
    noise_floor_dbm: float | None = None,
    title: str | None = None,
    figsize: tuple[float, float] = (9.0, 4.5),
    dark: bool = True,
    show: bool = True,
) -> Any:
    """
    Plot analyzer traces against frequency.

    Parameters
    ----------
    traces : sequence of np.ndarray
        Trace amplitudes in dBm, one array per trace, all the same width.
    frequency_range : (float, float)
        Span of the display in Hz.
    amplitude_range : (float, float)
        Y-axis limits in dBm.
    markers : MarkerSet, optional
        Markers to draw on the first trace; the strongest is highlighted.
    labels : list of str, optional
        Legend entries; defaults to "Trace 1", "Trace 2"...
    noise_floor_dbm : float, optional
        Draw a dashed line at this level.
    show : bool
        Call ``plt.show()``; otherwise the figure is closed and returned.

    Returns
    -------
    fig : matplotlib.figure.Figure
    """
    if len(traces) == 0:
        raise ValueError("At least one trace is required.")
    width = len(traces[0])
    if any(len(t) != width for t in traces):
        raise ValueError("All traces must have the same number of bins.")
    f_min, f_max = frequency_range
    freqs_mhz = (f_min + np.arange(width) * (f_max - f_min) / width) / 1e6
    labels = labels or [f"Trace {i + 1}" for i in range(len(traces))]

    fig, ax = plt.subplots(figsize=figsize)
    if dark:
        ax.set_facecolor("#111827")

    for i, (amp, lab) in enumerate(zip(traces, labels)):
        amp = _finite_or_nan(amp)
        if np.all(np.isnan(amp)):
            warnings.warn(f"{lab} holds no data yet; skipped.", UserWarning)
            continue
        ax.plot(freqs_mhz, amp, lw=1.0, color=_TRACE_COLORS[i % len(_TRACE_COLORS)], label=lab)

    if noise_floor_dbm is not None and np.isfinite(noise_floor_dbm):
        ax.axhline(noise_floor_dbm, color="#9ca3af", linestyle="--", linewidth=1.2,
                   label="Noise floor")

    if markers is not None and markers.markers:
        mx = np.array([freqs_mhz[m.index] for m in markers.markers])
        my = np.array([m.amplitude_dbm for m in markers.markers])
        ax.scatter(mx, my, marker="v", s=30, color="#f97316", zorder=5, label="Markers")
        best = markers.strongest
        ax.annotate(f"{freqs_mhz[best.index]:.3f} MHz\n{best.amplitude_dbm:.1f} dBm",
                    xy=(freqs_mhz[best.index], best.amplitude_dbm), xytext=(6, 8),
                    textcoords="offset points", fontsize=8,
                    color="white" if dark else "black")

    ax.set_xlim(freqs_mhz[0], freqs_mhz[-1])
    ax.set_ylim(*amplitude_range)
    ax.set_xlabel("Frequency [MHz]")
    ax.set_ylabel("Amplitude [dBm]")
    ax.yaxis.set_major_locator(mtick.MultipleLocator(10))
    ax.grid(True, alpha=0.3)
    ax.legend(loc="upper right", frameon=True, fontsize=8)
    fig.suptitle("Spectrum analyzer" if title is None else title)
    fig.tight_layout(rect=[0, 0, 1, 0.95])

    if show:
        plt.show()
    else:
        plt.close(fig)
    return fig
