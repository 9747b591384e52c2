"""
sigrange
=============

RF front-end signal-path and spectrum-analyzer simulation for ground-station
operator training.

"""

__doc__ = "SIGRANGE, simulated ground-station RF chain and spectrum analyzer"

from . import rfmath, tappoints, signals, modules, config, frontend
from . import signal_path, spectrum, traces, analyzer, simulation

from .tappoints import TapPoint, UnknownTapPointError
from .signals import Signal, Modulation, Polarization
from .frontend import RFFrontEnd, PowerState
from .signal_path import SignalPathManager
from .spectrum import SpectrumDataProcessor
from .traces import TraceEngine, TraceMode
from .analyzer import SpectrumAnalyzer
from .simulation import GroundStationSimulation

__version__ = "0.1"

__all__ = ['rfmath', 'tappoints', 'signals', 'modules', 'config', 'frontend',
           'signal_path', 'spectrum', 'traces', 'analyzer', 'simulation',
           'TapPoint', 'UnknownTapPointError', 'Signal', 'Modulation', 'Polarization',
           'RFFrontEnd', 'PowerState', 'SignalPathManager', 'SpectrumDataProcessor',
           'TraceEngine', 'TraceMode', 'SpectrumAnalyzer', 'GroundStationSimulation']
