#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
signal_path.py

Signal-path and cascade engine.

``SignalPathManager`` reads the module records of an ``RFFrontEnd`` (it never
writes them) and answers, for any tap point of the TX or RX chain:

  - the net gain from the chain input (``get_total_gain_to``),
  - the reference power and frequency (``path_power_at``,
    ``path_frequency_at``),
  - the noise floor and whether the caller still has to add the chain gain
    to it (``get_noise_floor_at``),
  - the level seen on the spectrum coupler ports (``get_coupler_output``).

``calculate_signal_path`` produces the per-tick TX / RX summary at the
reference operating points, and ``propagate`` carries individual carriers
from the tap point where they enter the chain down to another tap point.

Date: 19-10-2026
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List

from .frontend import RFFrontEnd
from .modules import (
    HPA_P1DB_DBM, LNB_IF_BAND_MHZ, NF_SENTINEL_DB, POWER_SENTINEL_DBM,
    RX_RF_FREQUENCY_MHZ, RX_RF_POWER_DBM, TX_IF_FREQUENCY_MHZ, TX_IF_POWER_DBM,
    coupling_factor,
)
from .rfmath import (
    REFERENCE_TEMPERATURE_K, cascade_noise_figure, ktb_floor_dbm,
    thermal_floor_dbm, to_db,
)
from .signals import Signal
from .tappoints import (
    Chain, Stage, TapPoint, is_upstream, path_edges, stages_to,
)

logger = logging.getLogger(__name__)


# Noise figure of the measuring receiver itself (spectrum analyzer input)
ANALYZER_NOISE_FIGURE_DB = 0.5
LNB_OUT_OF_BAND_REJECTION_DB = 40.0

_REFERENCE_INPUT = {
    Chain.TX: (TX_IF_FREQUENCY_MHZ, TX_IF_POWER_DBM),
    Chain.RX: (RX_RF_FREQUENCY_MHZ, RX_RF_POWER_DBM),
}


# =============================================================================
# Snapshot records
# =============================================================================

@dataclass(frozen=True)
class TxPath:
    if_frequency_hz: float
    if_power_dbm: float
    rf_frequency_hz: float
    rf_power_dbm: float
    total_gain_db: float
    buc_output_power_dbm: float


@dataclass(frozen=True)
class RxPath:
    rf_frequency_hz: float
    rf_power_dbm: float
    if_frequency_hz: float
    if_power_dbm: float
    total_gain_db: float
    noise_figure_db: float
    is_spectrum_inverted: bool


@dataclass(frozen=True)
class SignalPath:
    tx_path: TxPath
    rx_path: RxPath


@dataclass(frozen=True)
class NoiseFloor:
    """
    Noise floor at a tap point.

    ``noise_floor_no_gain`` never has the chain gain applied. When
    ``should_apply_gain`` is True the caller adds ``get_total_gain_to`` once;
    otherwise the value is already the level at the tap point.
    """

    noise_floor_no_gain: float
    should_apply_gain: bool


@dataclass(frozen=True)
class CouplerOutput:
    frequency_hz: float
    power_dbm: float


@dataclass(frozen=True)
class StageResponse:
    """Net effect of one stage at the current module settings."""

    stage: Stage
    gain_db: float
    noise_figure_db: float
    frequency_out_mhz: float

    @property
    def is_blocking(self) -> bool:
        return self.gain_db == -math.inf


def _sentinel_path() -> SignalPath:
    return SignalPath(
        tx_path=TxPath(if_frequency_hz=0.0, if_power_dbm=POWER_SENTINEL_DBM,
                       rf_frequency_hz=0.0, rf_power_dbm=POWER_SENTINEL_DBM,
                       total_gain_db=0.0, buc_output_power_dbm=POWER_SENTINEL_DBM),
        rx_path=RxPath(rf_frequency_hz=0.0, rf_power_dbm=POWER_SENTINEL_DBM,
                       if_frequency_hz=0.0, if_power_dbm=POWER_SENTINEL_DBM,
                       total_gain_db=0.0, noise_figure_db=NF_SENTINEL_DB,
                       is_spectrum_inverted=False),
    )


# =============================================================================
# Manager
# =============================================================================

class SignalPathManager:
    """
    Gain, frequency and noise bookkeeping over the TX / RX chain graph.

    Parameters
    ----------
    frontend : RFFrontEnd
        Owner of the module records. Only read.
    """

    def __init__(self, frontend: RFFrontEnd):
        self.frontend = frontend
        self._signal_path: SignalPath = self.calculate_signal_path()

    # -------------------------------------------------------------------------
    # per-tick snapshot
    # -------------------------------------------------------------------------
    def update(self) -> SignalPath:
        """Recompute the TX / RX summary for this tick and cache it."""
        self._signal_path = self.calculate_signal_path()
        return self._signal_path

    @property
    def signal_path(self) -> SignalPath:
        return self._signal_path

    def calculate_signal_path(self) -> SignalPath:
        """
        TX and RX chain totals at the reference operating points.

        TX: IF input -> BUC (gain, frequency + LO; muted or unpowered floors to
        the -120 dBm sentinel) -> HPA (if powered, output limited to
        ``P1dB - back_off``) -> filter insertion loss.

        RX: RF input -> filter insertion loss -> LNB (IF = |RF - LO|, gain).
        The noise figure is the Friis cascade of the filter (NF equal to its
        loss) and the LNB.

        With main power off both paths are sentinel records (-120 dBm, 99 dB
        noise figure).

        Returns
        -------
        path : SignalPath
            Immutable snapshot.
        """
        fe = self.frontend
        if not fe.is_powered:
            return _sentinel_path()
        buc, hpa, lnb, filt = fe.buc, fe.hpa, fe.lnb, fe.filter

        # TX
        tx_if_freq = TX_IF_FREQUENCY_MHZ
        tx_if_power = TX_IF_POWER_DBM
        tx_rf_freq = tx_if_freq + buc.lo_frequency_mhz
        if not buc.is_powered or buc.is_muted:
            tx_rf_power = POWER_SENTINEL_DBM
        else:
            tx_rf_power = tx_if_power + buc.gain_db
        buc_out = tx_rf_power
        if hpa.is_powered and tx_rf_power > POWER_SENTINEL_DBM:
            tx_rf_power = HPA_P1DB_DBM - hpa.back_off_db
        if tx_rf_power > POWER_SENTINEL_DBM:
            tx_rf_power -= filt.insertion_loss_db
        tx_rf_power = max(tx_rf_power, POWER_SENTINEL_DBM)
        tx_path = TxPath(
            if_frequency_hz=tx_if_freq * 1e6,
            if_power_dbm=tx_if_power,
            rf_frequency_hz=tx_rf_freq * 1e6,
            rf_power_dbm=tx_rf_power,
            total_gain_db=tx_rf_power - tx_if_power,
            buc_output_power_dbm=buc_out,
        )

        # RX
        rx_rf_freq = RX_RF_FREQUENCY_MHZ
        rx_rf_power = RX_RF_POWER_DBM
        rx_filtered = rx_rf_power - filt.insertion_loss_db
        rx_if_freq = abs(rx_rf_freq - lnb.lo_frequency_mhz)
        if lnb.is_powered:
            rx_if_power = rx_filtered + lnb.gain_db
            nf = cascade_noise_figure([(filt.insertion_loss_db, -filt.insertion_loss_db),
                                       (lnb.noise_figure_db, lnb.gain_db)])
        else:
            rx_if_power = POWER_SENTINEL_DBM
            nf = NF_SENTINEL_DB
        rx_path = RxPath(
            rf_frequency_hz=rx_rf_freq * 1e6,
            rf_power_dbm=rx_rf_power,
            if_frequency_hz=rx_if_freq * 1e6,
            if_power_dbm=rx_if_power,
            total_gain_db=rx_if_power - rx_rf_power,
            noise_figure_db=nf,
            is_spectrum_inverted=lnb.lo_frequency_mhz > rx_rf_freq,
        )
        logger.debug("Signal path: TX %.1f dBm @ %.0f MHz, RX %.1f dBm @ %.0f MHz",
                     tx_rf_power, tx_rf_freq, rx_if_power, rx_if_freq)
        return SignalPath(tx_path=tx_path, rx_path=rx_path)

    # -------------------------------------------------------------------------
    # chain walk
    # -------------------------------------------------------------------------
    def stage_response(self, stage: Stage, power_in_dbm: float,
                       frequency_mhz: float) -> StageResponse:
        """
        Net gain, noise figure and output frequency of one stage.

        ``power_in_dbm`` only matters for the HPA, whose output is held at
        ``P1dB - back_off`` whatever drives it.
        """
        fe = self.frontend
        if stage is Stage.BUC:
            buc = fe.buc
            gain = buc.gain_db if buc.is_powered and not buc.is_muted else -math.inf
            return StageResponse(stage, gain, buc.noise_figure_db,
                                 frequency_mhz + buc.lo_frequency_mhz)
        if stage is Stage.HPA:
            hpa = fe.hpa
            if not hpa.is_powered:
                # bypassed
                return StageResponse(stage, 0.0, 0.0, frequency_mhz)
            if power_in_dbm == -math.inf:
                return StageResponse(stage, 0.0, hpa.noise_figure_db, frequency_mhz)
            gain = HPA_P1DB_DBM - hpa.back_off_db - power_in_dbm
            return StageResponse(stage, gain, hpa.noise_figure_db, frequency_mhz)
        if stage is Stage.FILTER:
            loss = fe.filter.insertion_loss_db
            return StageResponse(stage, -loss, loss, frequency_mhz)
        if stage in (Stage.OMT_TX, Stage.OMT_RX):
            loss = fe.omt.insertion_loss_db
            return StageResponse(stage, -loss, loss, frequency_mhz)
        if stage is Stage.LNA:
            lnb = fe.lnb
            gain = lnb.gain_db if lnb.is_powered else -math.inf
            return StageResponse(stage, gain, lnb.noise_figure_db, frequency_mhz)
        if stage is Stage.MIXER:
            lnb = fe.lnb
            return StageResponse(stage, 0.0, lnb.mixer_noise_figure_db,
                                 abs(frequency_mhz - lnb.lo_frequency_mhz))
        raise ValueError(f"Unhandled stage {stage!r}")

    def stage_responses(self, tap_point) -> List[StageResponse]:
        """Every stage between the chain input and ``tap_point``, in order."""
        tap_point = TapPoint.lookup(tap_point)
        frequency, power = _REFERENCE_INPUT[tap_point.chain]
        responses = []
        for stage in stages_to(tap_point):
            resp = self.stage_response(stage, power, frequency)
            responses.append(resp)
            power += resp.gain_db
            frequency = resp.frequency_out_mhz
        return responses

    # -------------------------------------------------------------------------
    # queries
    # -------------------------------------------------------------------------
    def get_total_gain_to(self, tap_point) -> float:
        """
        Sum of the net stage gains from the chain input to ``tap_point`` (dB).

        Returns -inf when a stage on the way blocks the signal (unpowered or
        muted converter, unpowered LNA).

        Raises
        ------
        UnknownTapPointError
            If ``tap_point`` is not a known tap point.
        """
        return float(sum(r.gain_db for r in self.stage_responses(tap_point)))

    def path_power_at(self, tap_point) -> float:
        """Reference carrier level at ``tap_point``, floored at -120 dBm."""
        tap_point = TapPoint.lookup(tap_point)
        _, power_in = _REFERENCE_INPUT[tap_point.chain]
        return max(power_in + self.get_total_gain_to(tap_point), POWER_SENTINEL_DBM)

    def path_frequency_at(self, tap_point) -> float:
        """Reference carrier frequency (Hz) at ``tap_point``."""
        tap_point = TapPoint.lookup(tap_point)
        frequency, _ = _REFERENCE_INPUT[tap_point.chain]
        for resp in self.stage_responses(tap_point):
            frequency = resp.frequency_out_mhz
        return frequency * 1e6

    def cascaded_noise_figure_to(self, tap_point) -> float:
        """
        Noise figure of everything feeding the measurement at ``tap_point``.

        The cascade restarts after the last blocking stage, since noise from
        further upstream never arrives, and ends with the measuring receiver.
        """
        responses = self.stage_responses(tap_point)
        start = 0
        for i, resp in enumerate(responses):
            if resp.is_blocking:
                start = i + 1
        stages = [(r.noise_figure_db, r.gain_db) for r in responses[start:]]
        stages.append((ANALYZER_NOISE_FIGURE_DB, 0.0))
        return cascade_noise_figure(stages)

    def external_noise_floor(self, tap_point, bandwidth_hz: float) -> float:
        """
        Noise entering the chain input, not gain corrected.

        The RX chain sees the antenna noise temperature; the TX chain sees the
        modem IF output at the 290 K reference.
        """
        tap_point = TapPoint.lookup(tap_point)
        if tap_point.chain is Chain.RX:
            temperature = self.frontend.antenna_noise_temperature_k
        else:
            temperature = REFERENCE_TEMPERATURE_K
        return ktb_floor_dbm(temperature, bandwidth_hz)

    def get_noise_floor_at(self, tap_point, bandwidth_hz: float) -> NoiseFloor:
        """
        Authoritative noise floor at ``tap_point``.

        Parameters
        ----------
        tap_point : TapPoint or str
            Where the floor is measured.
        bandwidth_hz : float
            Noise (resolution) bandwidth.

        Returns
        -------
        floor : NoiseFloor
            The internally generated floor ``-174 + 10 log10(B) + NF`` wins
            only if it exceeds the external floor *after* the chain gain is
            added to the latter; it is then returned with
            ``should_apply_gain=False``. Otherwise the external floor is
            returned without gain and ``should_apply_gain=True``.
        """
        tap_point = TapPoint.lookup(tap_point)
        gain = self.get_total_gain_to(tap_point)
        external = self.external_noise_floor(tap_point, bandwidth_hz)
        internal = thermal_floor_dbm(bandwidth_hz, self.cascaded_noise_figure_to(tap_point))
        if internal > external + gain:
            return NoiseFloor(noise_floor_no_gain=internal, should_apply_gain=False)
        return NoiseFloor(noise_floor_no_gain=external, should_apply_gain=True)

    def noise_floor_at_tap(self, tap_point, bandwidth_hz: float) -> float:
        """Noise floor level at ``tap_point`` with the gain applied exactly once."""
        floor = self.get_noise_floor_at(tap_point, bandwidth_hz)
        if floor.should_apply_gain:
            return floor.noise_floor_no_gain + self.get_total_gain_to(tap_point)
        return floor.noise_floor_no_gain

    # -------------------------------------------------------------------------
    # coupler
    # -------------------------------------------------------------------------
    def coupling_factor(self, tap_point) -> float:
        return coupling_factor(self.frontend.coupler, tap_point)

    def get_coupler_output(self, tap_point) -> CouplerOutput:
        """
        Level on the coupler port attached to ``tap_point``.

        Raises
        ------
        UnknownTapPointError
            If ``tap_point`` is unknown.
        ValueError
            If the coupler is not attached to ``tap_point``.
        """
        tap_point = TapPoint.lookup(tap_point)
        factor = self.coupling_factor(tap_point)
        return CouplerOutput(frequency_hz=self.path_frequency_at(tap_point),
                             power_dbm=self.path_power_at(tap_point) + factor)

    def get_coupler_output_a(self) -> CouplerOutput:
        return self.get_coupler_output(self.frontend.coupler.tap_point_a)

    def get_coupler_output_b(self) -> CouplerOutput:
        return self.get_coupler_output(self.frontend.coupler.tap_point_b)

    # -------------------------------------------------------------------------
    # carriers
    # -------------------------------------------------------------------------
    def propagate(self, signals: Iterable[Signal], tap_point) -> List[Signal]:
        """
        Carry carriers from their origin tap point down to ``tap_point``.

        Each stage applies its net gain (the HPA's taken from the reference
        operating point, so relative levels are kept), frequency conversion,
        polarisation handling and band limiting. Carriers whose origin is not
        upstream of ``tap_point`` on the same chain are dropped.

        Returns
        -------
        signals : list of Signal
            New carriers tagged with ``origin_tap_point=tap_point``. Levels
            are floored at ``POWER_SENTINEL_DBM`` on output only.
        """
        tap_point = TapPoint.lookup(tap_point)
        reference = {r.stage: r for r in self.stage_responses(
            TapPoint.TX_RF_POST_OMT if tap_point.chain is Chain.TX else TapPoint.RX_IF)}
        out = []
        for sig in signals:
            if not is_upstream(sig.origin_tap_point, tap_point):
                logger.debug("Dropping %s: %s is not upstream of %s", sig.signal_id or sig,
                             sig.origin_tap_point.name, tap_point.name)
                continue
            for _, _, stages in path_edges(sig.origin_tap_point, tap_point):
                for stage in stages:
                    sig = self._apply_stage(stage, sig, reference[stage])
            out.append(sig.moved(origin_tap_point=tap_point,
                                 power_dbm=max(sig.power_dbm, POWER_SENTINEL_DBM)))
        return out

    def _apply_stage(self, stage: Stage, sig: Signal, resp: StageResponse) -> Signal:
        fe = self.frontend
        freq_mhz = sig.frequency_hz / 1e6
        # blocked carriers ride through at -inf; only the output is floored
        power = -math.inf if resp.is_blocking else sig.power_dbm + resp.gain_db
        changes = {}

        if stage is Stage.BUC:
            changes["frequency_hz"] = (freq_mhz + fe.buc.lo_frequency_mhz) * 1e6
        elif stage is Stage.MIXER:
            if_mhz = abs(freq_mhz - fe.lnb.lo_frequency_mhz)
            changes["frequency_hz"] = if_mhz * 1e6
            power -= _if_window_rejection(if_mhz, sig.bandwidth_hz / 1e6)
        elif stage is Stage.FILTER:
            filter_bw = fe.filter.bandwidth_mhz * 1e6
            if sig.bandwidth_hz > filter_bw:
                power -= float(to_db(sig.bandwidth_hz / (filter_bw / 2.0)))
        elif stage is Stage.OMT_TX:
            changes["polarization"] = fe.omt.tx_polarization
        elif stage is Stage.OMT_RX:
            if sig.polarization is not None and sig.polarization != fe.omt.rx_polarization:
                power -= fe.omt.cross_pol_isolation_db
                changes["is_degraded"] = True

        changes["power_dbm"] = power
        return sig.moved(**changes)


def _if_window_rejection(if_mhz: float, bandwidth_mhz: float) -> float:
    """
    Attenuation (dB) of the LNB output band-pass for a carrier at ``if_mhz``.

    A carrier centred outside the IF window loses 40 dB; a carrier straddling
    an edge loses the fraction of 40 dB that lies outside.
    """
    lo, hi = LNB_IF_BAND_MHZ
    if if_mhz < lo or if_mhz > hi:
        return LNB_OUT_OF_BAND_REJECTION_DB
    if bandwidth_mhz <= 0:
        return 0.0
    half = bandwidth_mhz / 2.0
    outside = max(lo - (if_mhz - half), 0.0) + max((if_mhz + half) - hi, 0.0)
    return LNB_OUT_OF_BAND_REJECTION_DB * min(outside / bandwidth_mhz, 1.0)
