"""
frontend.py

``RFFrontEnd`` owns every module record of one ground-station front end and
is the only place where they are mutated. Once per tick ``update(dt)``

  - cascades main power down to the BUC, HPA and LNB,
  - enforces the HPA / BUC interlock,
  - runs the external-reference lock sequencer, and
  - refreshes the derived fields of each module.

Date: 19-10-2026
"""

from __future__ import annotations

import enum
import logging
import warnings
from dataclasses import fields, replace
from typing import Any, Dict, List, Mapping, Optional

from .config import default_front_end, merge_config
from .modules import (
    BUCState, CouplerState, FilterState, HPAState, LNBState, ModuleStates,
    OMTState, ReferenceState,
    buc_alarms, coupler_alarms, filter_alarms, hpa_alarms, lnb_alarms, omt_alarms,
    select_filter, update_buc, update_hpa, update_lnb, update_omt,
)

logger = logging.getLogger(__name__)


class PowerState(enum.Enum):
    OFF = "OFF"
    POWERING = "POWERING"
    LOCKED = "LOCKED"
    UNLOCKED = "UNLOCKED"


_STATE_TYPES = {
    "buc": BUCState,
    "hpa": HPAState,
    "lnb": LNBState,
    "filter": FilterState,
    "omt": OMTState,
    "coupler": CouplerState,
    "reference": ReferenceState,
}


class RFFrontEnd:
    """
    Owner of the module states of one RF front end.

    Parameters
    ----------
    states : ModuleStates, optional
        Initial module records; defaults for every module if omitted.
    is_powered : bool
        Main power switch.
    antenna_noise_temperature_k : float
        Noise temperature seen at the antenna feed (RX chain input).
    """

    def __init__(self, states: Optional[ModuleStates] = None, is_powered: bool = True,
                 antenna_noise_temperature_k: float = 50.0):
        self.states = states if states is not None else ModuleStates()
        self.is_powered = is_powered
        self.antenna_noise_temperature_k = antenna_noise_temperature_k
        if not is_powered:
            self.power_state = PowerState.OFF
        elif self.states.reference.is_present:
            # a front end built powered up starts out settled
            self.states.reference.lock_timer_s = self.states.reference.settle_time_s
            self.power_state = PowerState.LOCKED
        else:
            self.power_state = PowerState.UNLOCKED
        self.update(0.0)

    @classmethod
    def from_config(cls, overrides: Optional[Mapping[str, Any]] = None) -> "RFFrontEnd":
        """Build a front end from the default tables plus nested overrides."""
        cfg = merge_config(default_front_end(), overrides)
        states = ModuleStates(**{name: _STATE_TYPES[name](**cfg[name]) for name in _STATE_TYPES})
        if overrides and "bandwidth_index" in overrides.get("filter", {}):
            select_filter(states.filter, cfg["filter"]["bandwidth_index"])
        return cls(states, is_powered=cfg["is_powered"],
                   antenna_noise_temperature_k=cfg["antenna_noise_temperature_k"])

    # -------------------------------------------------------------------------
    # module shortcuts
    # -------------------------------------------------------------------------
    @property
    def buc(self) -> BUCState:
        return self.states.buc

    @property
    def hpa(self) -> HPAState:
        return self.states.hpa

    @property
    def lnb(self) -> LNBState:
        return self.states.lnb

    @property
    def filter(self) -> FilterState:
        return self.states.filter

    @property
    def omt(self) -> OMTState:
        return self.states.omt

    @property
    def coupler(self) -> CouplerState:
        return self.states.coupler

    @property
    def reference(self) -> ReferenceState:
        return self.states.reference

    # -------------------------------------------------------------------------
    # operator actions
    # -------------------------------------------------------------------------
    def set_main_power(self, on: bool) -> None:
        """
        Flip the main power switch.

        Powering down is cascaded on the next update. Powering up brings the
        BUC and LNB back; the HPA stays off until it is enabled again.
        """
        if on and not self.is_powered:
            logger.info("Main power on")
            self.power_state = PowerState.POWERING
            self.reference.lock_timer_s = 0.0
            self.buc.is_powered = True
            self.lnb.is_powered = True
        elif not on and self.is_powered:
            logger.info("Main power off")
        self.is_powered = on

    def set_reference_present(self, present: bool) -> None:
        self.reference.is_present = present

    def set_hpa_enabled(self, on: bool) -> bool:
        """
        Enable or disable the HPA.

        Returns
        -------
        enabled : bool
            Whether the HPA ended up enabled. Enabling without main power or
            without a powered BUC is refused.
        """
        if on and not (self.is_powered and self.buc.is_powered):
            warnings.warn("HPA can not be enabled while the BUC is unpowered.", UserWarning)
            self.hpa.is_powered = False
        else:
            self.hpa.is_powered = on
        update_hpa(self.hpa)
        return self.hpa.is_powered

    # -------------------------------------------------------------------------
    # tick
    # -------------------------------------------------------------------------
    def update(self, dt: float = 0.0) -> None:
        """
        Advance the front end by ``dt`` seconds.

        Parameters
        ----------
        dt : float
            Tick length in seconds. Drives the reference settle timer and the
            thermal models, never the wall clock.
        """
        if not self.is_powered:
            self.buc.is_powered = False
            self.hpa.is_powered = False
            self.lnb.is_powered = False

        if self.hpa.is_powered and not self.buc.is_powered:
            logger.warning("HPA forced off: BUC is unpowered")
            self.hpa.is_powered = False

        self._update_lock(dt)

        update_buc(self.buc, dt)
        update_hpa(self.hpa)
        update_lnb(self.lnb, dt)
        update_omt(self.omt)

    def _update_lock(self, dt: float) -> None:
        ref = self.reference
        previous = self.power_state
        if not self.is_powered:
            self.power_state = PowerState.OFF
            ref.lock_timer_s = 0.0
        elif not ref.is_present:
            self.power_state = PowerState.UNLOCKED
            ref.lock_timer_s = 0.0
        else:
            ref.lock_timer_s += max(dt, 0.0)
            if ref.lock_timer_s >= ref.settle_time_s:
                self.power_state = PowerState.LOCKED
            else:
                self.power_state = PowerState.POWERING

        locked = self.power_state == PowerState.LOCKED
        self.buc.is_ext_ref_locked = locked and self.buc.is_powered
        self.lnb.is_ext_ref_locked = locked and self.lnb.is_powered

        if self.power_state != previous:
            logger.info("Front end %s -> %s", previous.value, self.power_state.value)

    # -------------------------------------------------------------------------
    # partial state sync
    # -------------------------------------------------------------------------
    def sync(self, partial: Mapping[str, Any]) -> None:
        """
        Apply a partial nested state dict between ticks.

        Raises
        ------
        ValueError
            For unknown sections or fields, or out-of-range values.
        """
        for key, value in partial.items():
            if key == "is_powered":
                self.set_main_power(bool(value))
            elif key == "antenna_noise_temperature_k":
                self.antenna_noise_temperature_k = float(value)
            elif key in _STATE_TYPES:
                self._sync_module(key, value)
            else:
                raise ValueError(f"Unknown front-end section '{key}'")
        logger.debug("Synced front-end state: %s", sorted(partial))

    def _sync_module(self, name: str, values: Mapping[str, Any]) -> None:
        state = getattr(self.states, name)
        known = {f.name for f in fields(state)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown {name} fields: {sorted(unknown)}")

        # validate on a copy so a rejected update leaves the module untouched
        candidate = replace(state, **values)
        if name == "filter" and "bandwidth_index" in values:
            select_filter(candidate, values["bandwidth_index"])
        for f in fields(state):
            setattr(state, f.name, getattr(candidate, f.name))

        if name == "coupler" and state.tap_point_a == state.tap_point_b:
            warnings.warn("Both coupler taps are set to the same location.", UserWarning)
        elif name == "hpa" and values.get("is_powered"):
            self.set_hpa_enabled(True)

    # -------------------------------------------------------------------------
    # reporting
    # -------------------------------------------------------------------------
    def alarms(self) -> List[str]:
        """Every active alarm string, module by module."""
        return (buc_alarms(self.buc)
                + hpa_alarms(self.hpa, self.buc)
                + lnb_alarms(self.lnb)
                + filter_alarms(self.filter)
                + omt_alarms(self.omt)
                + coupler_alarms(self.coupler))

    def describe(self) -> Dict[str, Any]:
        return {
            "is_powered": self.is_powered,
            "power_state": self.power_state.value,
            "alarms": self.alarms(),
        }
