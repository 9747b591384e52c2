import argparse
import logging

import numpy as np
from astropy import units as u
from pycraf import conversions as cnv

from sigrange import GroundStationSimulation, RFFrontEnd, Signal, TapPoint, rfmath
from sigrange.config import setup_logging
from sigrange.modules import lnb_noise_figure_db
from sigrange.signal_path import ANALYZER_NOISE_FIGURE_DB
from sigrange.signals import Modulation, Polarization
from sigrange.traces import TraceMode
from sigrange.visualise import plot_traces


# Parse command-line arguments
parser = argparse.ArgumentParser(description="Run the ground-station RF chain for a number of ticks.")
parser.add_argument("--ticks", type=int, default=50, help="Number of simulation ticks.")
parser.add_argument("--dt", type=float, default=0.1, help="Tick length in seconds.")
parser.add_argument("--seed", type=int, default=None, help="Random seed for the spectrum synthesis.")
parser.add_argument("--hpa", action="store_true", help="Enable the HPA.")
parser.add_argument("--back-off", type=float, default=6.0, help="HPA back-off in dB.")
parser.add_argument("--no-plot", action="store_true", help="Skip the matplotlib quick-look.")
parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
args = parser.parse_args()

setup_logging(logging.DEBUG if args.verbose else logging.INFO)

# Front end: receive on tap B, transmit monitor on tap A
frontend = RFFrontEnd.from_config({
    "hpa": {"back_off_db": args.back_off},
    "coupler": {"tap_point_a": TapPoint.TX_IF, "tap_point_b": TapPoint.RX_IF},
})
sim = GroundStationSimulation(frontend, rng=args.seed)
if args.hpa:
    frontend.set_hpa_enabled(True)
sim.analyzer.traces.set_mode(1, TraceMode.MAXHOLD)
sim.analyzer.traces.set_mode(2, TraceMode.AVERAGE)

# Two downlink carriers at C-band, one cross-polarised
rx_signals = [
    Signal(5.81e9, 5e6, -95.0, Modulation.QPSK, "3/4", Polarization.V,
           TapPoint.RX_RF_PRE_OMT, signal_id="dl-1"),
    Signal(5.78e9, 2e6, -100.0, Modulation.QAM8, "2/3", Polarization.H,
           TapPoint.RX_RF_PRE_OMT, signal_id="dl-2"),
]
tx_signals = [
    Signal(1.59e9, 3e6, -10.0, Modulation.BPSK, "1/2", None, TapPoint.TX_IF, signal_id="ul-1"),
]

result = sim.run(args.ticks, args.dt, rx_signals, tx_signals)

tx, rx = result.signal_path.tx_path, result.signal_path.rx_path
print(f"TX: {tx.if_frequency_hz / 1e6:.0f} MHz -> {tx.rf_frequency_hz / 1e6:.0f} MHz, "
      f"{tx.rf_power_dbm:.1f} dBm (gain {tx.total_gain_db:.1f} dB)")
print(f"RX: {rx.rf_frequency_hz / 1e6:.0f} MHz -> {rx.if_frequency_hz / 1e6:.0f} MHz, "
      f"{rx.if_power_dbm:.1f} dBm, NF {rx.noise_figure_db:.2f} dB")
for alarm in result.alarms:
    print(f"ALARM: {alarm}")

# Noise budget in physical units
rbw = sim.analyzer.noise_bandwidth_hz * u.Hz
lnb_temperature = rfmath.noise_temperature(lnb_noise_figure_db(frontend.lnb) * cnv.dB)
sky_floor = rfmath.noise_floor_from_temperature(
    frontend.antenna_noise_temperature_k * u.K + lnb_temperature, rbw)
analyzer_floor = rfmath.thermal_noise_floor(rbw, ANALYZER_NOISE_FIGURE_DB * cnv.dB)
print(f"LNB noise temperature: {lnb_temperature:.1f}")
print(f"System kTB in {rbw.to(u.kHz):.0f} RBW: {sky_floor:.1f}, analyzer floor: {analyzer_floor:.1f}")

for sig in sim.analyzer.classify_signals():
    state = "degraded" if sig.is_degraded else "ok"
    print(f"{sig.signal_id}: {sig.frequency_hz / 1e6:.2f} MHz {sig.power_dbm:.1f} dBm [{state}]")

markers = sim.analyzer.markers()
if markers.strongest is not None:
    f_peak = sim.analyzer.bin_to_frequency(markers.strongest.index)
    print(f"Peak marker: {f_peak / 1e6:.3f} MHz, {markers.strongest.amplitude_dbm:.1f} dBm")

if not args.no_plot:
    floor = sim.analyzer.last_floor
    plot_traces(result.traces, sim.analyzer.frequency_range,
                amplitude_range=(sim.analyzer.min_amplitude_dbm, sim.analyzer.max_amplitude_dbm),
                markers=markers,
                noise_floor_dbm=None if floor is None else floor.level_dbm,
                labels=["Live", "Max hold", "Average"])
    print(f"mean live level: {np.nanmean(np.where(np.isfinite(result.traces[0]), result.traces[0], np.nan)):.1f} dBm")
