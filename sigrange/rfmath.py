#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
rfmath.py

Decibel arithmetic and noise helpers shared by the signal path and the
spectrum synthesis code.

The float helpers (``to_lin``, ``to_db``, ``thermal_floor_dbm`` ...) are the
ones used inside the per-tick loop. The quantity-aware wrappers at the bottom
of the module accept astropy / pycraf quantities and are meant for scripts and
interactive use.

Date: 19-10-2026
"""

from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np
from astropy import units as u, constants as const
from pycraf import conversions as cnv
from pycraf.utils import ranged_quantity_input


# Thermal noise density of a matched load at the reference temperature
THERMAL_DENSITY_DBM_HZ = -174.0
REFERENCE_TEMPERATURE_K = 290.0

# Smallest linear value admitted into log10 and the Friis sum
_MIN_LIN = 1e-30
_K_BOLTZMANN = const.k_B.to_value(u.J / u.K)


# -----------------------------------------------------------------------------
# dB helpers
# -----------------------------------------------------------------------------

def to_lin(x: np.ndarray | float) -> np.ndarray | float:
    """Convert dB to linear power: P = 10^(x/10)."""
    return np.power(10.0, np.asarray(x, dtype=float) / 10.0)


def to_db(x: np.ndarray | float) -> np.ndarray | float:
    """
    Convert linear power to dB. Values are clamped to 1e-30 (-300 dB) to
    avoid log(0).
    """
    x = np.maximum(np.asarray(x, dtype=float), _MIN_LIN)
    return 10.0 * np.log10(x)


# -----------------------------------------------------------------------------
# Noise floors (plain floats, dBm / Hz / K / dB)
# -----------------------------------------------------------------------------

def thermal_floor_dbm(bandwidth_hz: float, noise_figure_db: float = 0.0) -> float:
    """-174 dBm/Hz + 10 log10(B) + NF, with B clamped to at least 1 Hz."""
    bandwidth_hz = max(float(bandwidth_hz), 1.0)
    return THERMAL_DENSITY_DBM_HZ + float(to_db(bandwidth_hz)) + noise_figure_db


def ktb_floor_dbm(temperature_k: float, bandwidth_hz: float) -> float:
    """
    Noise power k*T*B in dBm.

    Both the temperature and the bandwidth are clamped (1 K, 1 Hz) so that a
    cold or degenerate configuration still yields a finite floor.
    """
    t = max(float(temperature_k), 1.0)
    b = max(float(bandwidth_hz), 1.0)
    return float(to_db(_K_BOLTZMANN * t * b)) + 30.0


def noise_temperature_k(noise_figure_db: float) -> float:
    """Equivalent noise temperature, T = 290 K * (F - 1)."""
    return REFERENCE_TEMPERATURE_K * (float(to_lin(noise_figure_db)) - 1.0)


def cascade_noise_figure(stages: Iterable[Tuple[float, float]]) -> float:
    """
    Cascaded noise figure of a chain of stages (Friis formula).

    Parameters
    ----------
    stages : iterable of (noise_figure_db, gain_db)
        Stages in signal order. Passive losses are given as a negative gain
        with a noise figure equal to the loss.

    Returns
    -------
    nf_db : float
        Total noise figure in dB. An empty chain has a noise figure of 0 dB.

    Notes
    -----
    F = F1 + (F2 - 1)/G1 + (F3 - 1)/(G1 G2) + ...

    Linear gains are clamped to a small epsilon so that a blocking stage
    (gain of -inf) does not produce a division by zero.
    """
    f_total = 1.0
    g_running = 1.0
    first = True
    for nf_db, gain_db in stages:
        f = float(to_lin(nf_db))
        if first:
            f_total = f
            first = False
        else:
            f_total += (f - 1.0) / g_running
        g_running = max(g_running * float(to_lin(gain_db)), _MIN_LIN)
    return float(to_db(f_total))


def dbw_to_watts(power_dbw: float) -> float:
    """Convert a dBW level to Watts using pycraf's logarithmic units."""
    return (power_dbw * cnv.dB_W).physical.to_value(u.W)


# -----------------------------------------------------------------------------
# Quantity-aware wrappers
# -----------------------------------------------------------------------------

@ranged_quantity_input(bandwidth=(0, None, u.Hz),
                       noise_figure=(0, None, cnv.dB),
                       strip_input_units=True,
                       output_unit=cnv.dBm)
def thermal_noise_floor(bandwidth, noise_figure=0 * cnv.dB):
    """
    Receiver thermal noise floor.

    Parameters
    ----------
    bandwidth : astropy quantity
        Noise bandwidth.
    noise_figure : astropy quantity
        Receiver noise figure (dB).

    Returns
    -------
    floor : astropy quantity
        Noise floor in dBm.
    """
    return thermal_floor_dbm(bandwidth, noise_figure)


@ranged_quantity_input(temperature=(0, None, u.K),
                       bandwidth=(0, None, u.Hz),
                       strip_input_units=True,
                       output_unit=cnv.dBm)
def noise_floor_from_temperature(temperature, bandwidth):
    """
    k*T*B noise power of a source at the given noise temperature.

    Parameters
    ----------
    temperature : astropy quantity
        Noise temperature.
    bandwidth : astropy quantity
        Noise bandwidth.

    Returns
    -------
    floor : astropy quantity
        Noise floor in dBm.
    """
    return ktb_floor_dbm(temperature, bandwidth)


@ranged_quantity_input(noise_figure=(0, None, cnv.dB),
                       strip_input_units=True,
                       output_unit=u.K)
def noise_temperature(noise_figure):
    """Noise temperature (K) for a noise figure given as a dB quantity."""
    return noise_temperature_k(noise_figure)
