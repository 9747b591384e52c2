"""
modules.py

State records for the RF front-end modules (BUC, HPA, LNB, IF filter, OMT,
coupler, 10 MHz reference) and the free functions that derive their dependent
fields and alarm lists.

The set of modules is closed, so each one is a plain dataclass and the
behaviour lives in module-level functions (``update_hpa(state)``,
``hpa_alarms(state, buc)``...) rather than in a class hierarchy.

Date: 19-10-2026
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Tuple

from .rfmath import cascade_noise_figure, dbw_to_watts, noise_temperature_k
from .signals import Polarization
from .tappoints import TapPoint


# -----------------------------------------------------------------------------
# Reference operating points
# -----------------------------------------------------------------------------

TX_IF_FREQUENCY_MHZ = 1600.0
TX_IF_POWER_DBM = -10.0
RX_RF_FREQUENCY_MHZ = 5800.0
RX_RF_POWER_DBM = -80.0

HPA_P1DB_DBM = 50.0
HPA_EFFICIENCY = 0.5
HPA_OFF_OUTPUT_DBM = -90.0
HPA_OFF_IMD_DBC = -60.0
HPA_MAX_BACK_OFF_DB = 10.0

POWER_SENTINEL_DBM = -120.0
NF_SENTINEL_DB = 99.0

AMBIENT_TEMPERATURE_C = 25.0
LNB_OFF_NOISE_TEMPERATURE_K = 290.0

# LNB IF output window (MHz)
LNB_IF_BAND_MHZ = (950.0, 2150.0)

OMT_FAULT_ISOLATION_DB = 20.0

# (bandwidth MHz, noise floor dBm, insertion loss dB)
FILTER_BANK: Tuple[Tuple[float, float, float], ...] = (
    (0.03, -129.0, 3.5),
    (0.1, -124.0, 3.2),
    (0.2, -121.0, 3.0),
    (0.5, -117.0, 2.9),
    (1.0, -114.0, 2.8),
    (2.0, -111.0, 2.6),
    (5.0, -107.0, 2.4),
    (10.0, -104.0, 2.2),
    (20.0, -101.0, 2.0),
    (40.0, -98.0, 1.8),
    (80.0, -95.0, 1.6),
    (160.0, -92.0, 1.5),
    (320.0, -89.0, 1.5),
)
DEFAULT_FILTER_INDEX = 8


# =============================================================================
# State records
# =============================================================================

@dataclass
class BUCState:
    is_powered: bool = True
    lo_frequency_mhz: float = 4200.0
    gain_db: float = 58.0
    is_muted: bool = False
    is_ext_ref_locked: bool = True
    output_power_dbm: float = TX_IF_POWER_DBM + 58.0
    noise_figure_db: float = 15.0
    saturation_power_dbm: float = 50.0
    temperature_c: float = AMBIENT_TEMPERATURE_C
    thermal_time_constant_s: float = 600.0


@dataclass
class HPAState:
    is_powered: bool = False
    back_off_db: float = 6.0
    output_power_dbw: float = (HPA_P1DB_DBM - 6.0) / 10.0
    imd_level_dbc: float = -42.0
    temperature_c: float = AMBIENT_TEMPERATURE_C
    is_overdriven: bool = False
    noise_figure_db: float = 8.0

    def __post_init__(self):
        validate_back_off(self.back_off_db)


@dataclass
class LNBState:
    is_powered: bool = True
    lo_frequency_mhz: float = 4200.0
    gain_db: float = 55.0
    noise_figure_db: float = 0.6
    mixer_noise_figure_db: float = 16.0
    noise_temperature_k: float = 45.0
    is_ext_ref_locked: bool = True
    is_spectrum_inverted: bool = False
    stabilization_time_s: float = 150.0
    powered_time_s: float = 0.0


@dataclass
class FilterState:
    bandwidth_index: int = DEFAULT_FILTER_INDEX
    bandwidth_mhz: float = FILTER_BANK[DEFAULT_FILTER_INDEX][0]
    insertion_loss_db: float = FILTER_BANK[DEFAULT_FILTER_INDEX][2]
    noise_floor_dbm: float = FILTER_BANK[DEFAULT_FILTER_INDEX][1]
    center_frequency_hz: float = 5.8e9


@dataclass
class OMTState:
    tx_polarization: Polarization = Polarization.H
    rx_polarization: Polarization = Polarization.V
    cross_pol_isolation_db: float = 28.5
    insertion_loss_db: float = 0.5
    is_faulted: bool = False

    def __post_init__(self):
        self.tx_polarization = Polarization(self.tx_polarization)
        self.rx_polarization = Polarization(self.rx_polarization)


@dataclass
class CouplerState:
    tap_point_a: TapPoint = TapPoint.TX_IF
    tap_point_b: TapPoint = TapPoint.RX_IF
    coupling_factor_a_db: float = -30.0
    coupling_factor_b_db: float = -20.0
    is_active_a: bool = True
    is_active_b: bool = True

    def __post_init__(self):
        validate_coupler(self)


@dataclass
class ReferenceState:
    """External 10 MHz reference distribution (GPSDO output)."""

    is_present: bool = True
    settle_time_s: float = 3.0
    lock_timer_s: float = 0.0


@dataclass
class ModuleStates:
    """Every module record of one front end, owned by ``RFFrontEnd``."""

    buc: BUCState = field(default_factory=BUCState)
    hpa: HPAState = field(default_factory=HPAState)
    lnb: LNBState = field(default_factory=LNBState)
    filter: FilterState = field(default_factory=FilterState)
    omt: OMTState = field(default_factory=OMTState)
    coupler: CouplerState = field(default_factory=CouplerState)
    reference: ReferenceState = field(default_factory=ReferenceState)


# =============================================================================
# Validation
# =============================================================================

def validate_back_off(back_off_db: float) -> None:
    if not 0.0 <= back_off_db <= HPA_MAX_BACK_OFF_DB:
        raise ValueError(
            f"HPA back-off must be within [0, {HPA_MAX_BACK_OFF_DB}] dB, got {back_off_db}")


def validate_coupler(coupler: CouplerState) -> None:
    """Normalise the coupler tap points and reject gain-producing taps."""
    coupler.tap_point_a = TapPoint.lookup(coupler.tap_point_a)
    coupler.tap_point_b = TapPoint.lookup(coupler.tap_point_b)
    for name in ("coupling_factor_a_db", "coupling_factor_b_db"):
        if getattr(coupler, name) > 0:
            raise ValueError(f"Coupler {name} must be <= 0 dB, got {getattr(coupler, name)}")


def coupling_factor(coupler: CouplerState, tap_point) -> float:
    """
    Coupling factor (dB) of the coupler port attached to ``tap_point``.

    Raises
    ------
    UnknownTapPointError
        If ``tap_point`` is not a tap point at all.
    ValueError
        If the coupler is not attached to ``tap_point``.
    """
    tap_point = TapPoint.lookup(tap_point)
    if tap_point == coupler.tap_point_a:
        return coupler.coupling_factor_a_db
    if tap_point == coupler.tap_point_b:
        return coupler.coupling_factor_b_db
    raise ValueError(f"Coupler is not attached to {tap_point.name}")


# =============================================================================
# Filter bank
# =============================================================================

def select_filter(filt: FilterState, index: int) -> FilterState:
    """Switch the IF filter to bank entry ``index`` and copy its figures."""
    if not 0 <= index < len(FILTER_BANK):
        raise ValueError(f"Filter bank index must be within [0, {len(FILTER_BANK) - 1}], got {index}")
    bandwidth, floor, loss = FILTER_BANK[index]
    filt.bandwidth_index = index
    filt.bandwidth_mhz = bandwidth
    filt.noise_floor_dbm = floor
    filt.insertion_loss_db = loss
    return filt


def filter_index_for_bandwidth(bandwidth_mhz: float) -> int:
    """Index of the narrowest bank filter at least ``bandwidth_mhz`` wide."""
    for i, (bw, _, _) in enumerate(FILTER_BANK):
        if bw >= bandwidth_mhz:
            return i
    return len(FILTER_BANK) - 1


# =============================================================================
# Derived fields
# =============================================================================

def update_buc(buc: BUCState, dt: float = 0.0) -> BUCState:
    """
    Output power and a first-order thermal model of the BUC.

    The temperature relaxes toward ``25 C + 0.8 C per dB`` of output above
    the IF reference level with the state's thermal time constant.
    """
    if not buc.is_powered or buc.is_muted:
        buc.output_power_dbm = POWER_SENTINEL_DBM
        target = AMBIENT_TEMPERATURE_C
    else:
        buc.output_power_dbm = TX_IF_POWER_DBM + buc.gain_db
        target = AMBIENT_TEMPERATURE_C + max(0.0, buc.output_power_dbm - TX_IF_POWER_DBM) * 0.8
    if dt > 0:
        alpha = 1.0 - math.exp(-dt / max(buc.thermal_time_constant_s, 1e-9))
        buc.temperature_c += (target - buc.temperature_c) * alpha
    return buc


def update_hpa(hpa: HPAState) -> HPAState:
    """
    Saturation, intermodulation and thermal figures of the HPA.

    Notes
    -----
    output_power_dbw = (P1dB - back_off) / 10
    imd_level_dbc    = -30 - 2 * back_off
    temperature_c    = 25 + 10 * dissipated_W, at 50 % DC-to-RF efficiency
    """
    validate_back_off(hpa.back_off_db)
    hpa.is_overdriven = hpa.back_off_db < 3.0
    if hpa.is_powered:
        p_out_dbm = HPA_P1DB_DBM - hpa.back_off_db
        hpa.output_power_dbw = p_out_dbm / 10.0
        hpa.imd_level_dbc = -30.0 - 2.0 * hpa.back_off_db
        p_rf_w = dbw_to_watts(p_out_dbm - 30.0)
        dissipated_w = p_rf_w * (1.0 - HPA_EFFICIENCY) / HPA_EFFICIENCY
        hpa.temperature_c = AMBIENT_TEMPERATURE_C + dissipated_w * 10.0
    else:
        hpa.output_power_dbw = HPA_OFF_OUTPUT_DBM / 10.0
        hpa.imd_level_dbc = HPA_OFF_IMD_DBC
        hpa.temperature_c = AMBIENT_TEMPERATURE_C
    return hpa


def lnb_noise_figure_db(lnb: LNBState) -> float:
    """LNA followed by the mixer, cascaded."""
    return cascade_noise_figure([(lnb.noise_figure_db, lnb.gain_db),
                                 (lnb.mixer_noise_figure_db, 0.0)])


def update_lnb(lnb: LNBState, dt: float = 0.0,
               rf_frequency_mhz: float = RX_RF_FREQUENCY_MHZ) -> LNBState:
    """
    Noise temperature and spectrum inversion of the LNB.

    After power-on the noise temperature starts at twice its nominal value and
    decays to nominal with a time constant of a third of the stabilisation
    time.
    """
    lnb.is_spectrum_inverted = lnb.lo_frequency_mhz > rf_frequency_mhz
    if not lnb.is_powered:
        lnb.powered_time_s = 0.0
        lnb.noise_temperature_k = LNB_OFF_NOISE_TEMPERATURE_K
        return lnb
    lnb.powered_time_s += max(dt, 0.0)
    nominal = noise_temperature_k(lnb_noise_figure_db(lnb))
    if lnb.powered_time_s < lnb.stabilization_time_s:
        tau = lnb.stabilization_time_s / 3.0
        nominal += nominal * math.exp(-lnb.powered_time_s / tau)
    lnb.noise_temperature_k = nominal
    return lnb


def update_omt(omt: OMTState) -> OMTState:
    omt.is_faulted = omt.cross_pol_isolation_db < OMT_FAULT_ISOLATION_DB
    return omt


# =============================================================================
# Alarms
# =============================================================================

def buc_alarms(buc: BUCState) -> List[str]:
    alarms = []
    if not buc.is_powered:
        return alarms
    if not buc.is_ext_ref_locked:
        alarms.append("BUC not locked to reference")
    if buc.output_power_dbm > buc.saturation_power_dbm - 2.0:
        alarms.append(f"BUC approaching saturation ({buc.output_power_dbm:.1f} dBm)")
    if buc.temperature_c > 70.0:
        alarms.append(f"BUC over-temperature ({buc.temperature_c:.1f} C)")
    return alarms


def hpa_alarms(hpa: HPAState, buc: BUCState) -> List[str]:
    alarms = []
    if not hpa.is_powered:
        return alarms
    if hpa.is_overdriven:
        alarms.append("HPA overdrive - IMD degradation")
    if hpa.temperature_c > 85.0:
        alarms.append(f"HPA over-temperature ({hpa.temperature_c:.0f} C)")
    if not buc.is_powered:
        alarms.append("HPA enabled without BUC power")
    return alarms


def lnb_alarms(lnb: LNBState) -> List[str]:
    alarms = []
    if not lnb.is_powered:
        return alarms
    if not lnb.is_ext_ref_locked:
        alarms.append("LNB not locked to reference")
    if lnb.noise_temperature_k > 100.0:
        alarms.append(f"LNB noise temperature high ({lnb.noise_temperature_k:.0f}K)")
    if lnb.noise_figure_db > 1.0:
        alarms.append(f"LNB noise figure degraded ({lnb.noise_figure_db:.2f} dB)")
    return alarms


def filter_alarms(filt: FilterState) -> List[str]:
    if filt.insertion_loss_db > 3.0:
        return [f"Filter insertion loss high ({filt.insertion_loss_db:.1f} dB)"]
    return []


def omt_alarms(omt: OMTState) -> List[str]:
    if omt.is_faulted:
        return ["Cross-pol isolation degraded"]
    return []


def coupler_alarms(coupler: CouplerState) -> List[str]:
    if coupler.tap_point_a == coupler.tap_point_b:
        return ["Both tap points set to same location"]
    return []
