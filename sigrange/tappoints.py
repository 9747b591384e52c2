"""
tappoints.py

Tap point enumeration and the directed TX / RX chain graph.

Each module (stage) sits on the edge between two adjacent tap points. Where
no tap point separates two stages they share an edge, in signal order:

    TX: TX_IF --BUC--> TX_RF_POST_BUC --HPA--> TX_RF_POST_HPA
                --FILTER, OMT_TX--> TX_RF_POST_OMT
    RX: RX_RF_PRE_OMT --OMT_RX--> RX_RF_POST_OMT --LNA--> RX_RF_POST_LNA
                --MIXER, FILTER--> RX_IF

The LNB shows up twice (LNA and MIXER) because the chain exposes a tap point
between its low-noise amplifier and its mixer.

Date: 19-10-2026
"""

from __future__ import annotations

import enum
from typing import Dict, List, Tuple


class UnknownTapPointError(ValueError):
    """Raised when a tap point is requested that the chain does not have."""


class Chain(enum.Enum):
    TX = "TX"
    RX = "RX"


class Stage(enum.Enum):
    BUC = "BUC"
    HPA = "HPA"
    FILTER = "FILTER"
    OMT_TX = "OMT_TX"
    OMT_RX = "OMT_RX"
    LNA = "LNA"
    MIXER = "MIXER"


class TapPoint(enum.Enum):
    """Chain locations, valued by their front-panel label."""

    TX_IF = "TX IF"
    TX_RF_POST_BUC = "POST BUC / PRE HPA TX RF"
    TX_RF_POST_HPA = "POST HPA / PRE OMT TX RF"
    TX_RF_POST_OMT = "POST OMT/PRE ANT TX RF"
    RX_RF_PRE_OMT = "PRE OMT/POST ANT RX RF"
    RX_RF_POST_OMT = "POST OMT/PRE LNA RX RF"
    RX_RF_POST_LNA = "POST LNA RX RF"
    RX_IF = "RX IF"

    @property
    def label(self) -> str:
        return self.value

    @property
    def chain(self) -> Chain:
        return Chain.TX if self.name.startswith("TX") else Chain.RX

    @classmethod
    def lookup(cls, key) -> "TapPoint":
        """
        Resolve a tap point from a member, its name or its front-panel label.

        Raises
        ------
        UnknownTapPointError
            If ``key`` does not name a tap point.
        """
        if isinstance(key, cls):
            return key
        if isinstance(key, str):
            if key in cls.__members__:
                return cls[key]
            for member in cls:
                if member.value == key:
                    return member
        raise UnknownTapPointError(f"Unknown tap point: {key!r}")


CHAIN_TAPS: Dict[Chain, Tuple[TapPoint, ...]] = {
    Chain.TX: (TapPoint.TX_IF, TapPoint.TX_RF_POST_BUC,
               TapPoint.TX_RF_POST_HPA, TapPoint.TX_RF_POST_OMT),
    Chain.RX: (TapPoint.RX_RF_PRE_OMT, TapPoint.RX_RF_POST_OMT,
               TapPoint.RX_RF_POST_LNA, TapPoint.RX_IF),
}

# (upstream tap, downstream tap) -> stages on that edge, in signal order
EDGES: Dict[Tuple[TapPoint, TapPoint], Tuple[Stage, ...]] = {
    (TapPoint.TX_IF, TapPoint.TX_RF_POST_BUC): (Stage.BUC,),
    (TapPoint.TX_RF_POST_BUC, TapPoint.TX_RF_POST_HPA): (Stage.HPA,),
    (TapPoint.TX_RF_POST_HPA, TapPoint.TX_RF_POST_OMT): (Stage.FILTER, Stage.OMT_TX),
    (TapPoint.RX_RF_PRE_OMT, TapPoint.RX_RF_POST_OMT): (Stage.OMT_RX,),
    (TapPoint.RX_RF_POST_OMT, TapPoint.RX_RF_POST_LNA): (Stage.LNA,),
    (TapPoint.RX_RF_POST_LNA, TapPoint.RX_IF): (Stage.MIXER, Stage.FILTER),
}


def chain_origin(chain: Chain) -> TapPoint:
    return CHAIN_TAPS[chain][0]


def tap_index(tap_point) -> int:
    """Position of a tap point along its own chain (0 = chain input)."""
    tap_point = TapPoint.lookup(tap_point)
    return CHAIN_TAPS[tap_point.chain].index(tap_point)


def is_upstream(start, end) -> bool:
    """True if ``start`` lies on the same chain as ``end`` and not after it."""
    start, end = TapPoint.lookup(start), TapPoint.lookup(end)
    return start.chain == end.chain and tap_index(start) <= tap_index(end)


def path_edges(start, end) -> List[Tuple[TapPoint, TapPoint, Tuple[Stage, ...]]]:
    """
    Edges traversed going from ``start`` down to ``end``.

    Raises
    ------
    UnknownTapPointError
        If either tap point is unknown.
    ValueError
        If ``end`` is not reachable from ``start``.
    """
    start, end = TapPoint.lookup(start), TapPoint.lookup(end)
    if not is_upstream(start, end):
        raise ValueError(f"{end.name} is not downstream of {start.name}")
    taps = CHAIN_TAPS[start.chain]
    i0, i1 = taps.index(start), taps.index(end)
    return [(a, b, EDGES[(a, b)]) for a, b in zip(taps[i0:i1], taps[i0 + 1:i1 + 1])]


def stages_between(start, end) -> Tuple[Stage, ...]:
    """All stages strictly between two tap points, in signal order."""
    return tuple(stage for _, _, stages in path_edges(start, end) for stage in stages)


def stages_to(tap_point) -> Tuple[Stage, ...]:
    """Stages between the chain input and ``tap_point``."""
    tap_point = TapPoint.lookup(tap_point)
    return stages_between(chain_origin(tap_point.chain), tap_point)
