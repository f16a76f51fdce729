"""
Configuration file for the Stop-and-Wait ARQ Protocol Simulator.
Contains the fixed baseline timing, channel and sweep parameters.
"""

import os

# =============================================================================
# TIMING PARAMETERS (in milliseconds)
# =============================================================================

# Nominal one-way transit time of a frame or ACK (sender <-> receiver)
DEFAULT_TRANSIT_DURATION_MS = 1600

# Time the receiver spends processing a frame before answering
RECEIVER_PROCESSING_DELAY_MS = 200

# Timeout = expected RTT * timeout factor * TIMEOUT_SCALE
DEFAULT_TIMEOUT_FACTOR = 2.5
TIMEOUT_SCALE = 0.9

# Race window before a fired timeout takes effect (lets a racing ACK win)
TIMEOUT_GRACE_DELAY_MS = 100

# Pause between an accepted ACK and the next send (continuous mode)
SETTLE_DELAY_MS = 400

# Timeout-to-retransmit pacing, as a fraction of the transit duration
# (1/2 for the timeout notice + 1/3 pause)
RETRANSMIT_PAUSE_FRACTION = 1 / 2 + 1 / 3

# =============================================================================
# RUN DEFAULTS
# =============================================================================

DEFAULT_FRAME_COUNT = 5
DEFAULT_FRAME_LOSS = 0.0   # probability, 0-1
DEFAULT_ACK_LOSS = 0.0     # probability, 0-1

# Simulation time limit (ms) - failsafe for runs that can never finish
MAX_SIMULATION_TIME_MS = 60 * 60 * 1000  # 1 hour of virtual time

# =============================================================================
# PARAMETER SWEEP CONFIGURATION
# =============================================================================

FRAME_LOSS_PROBABILITIES = [0.0, 0.1, 0.2, 0.3, 0.4, 0.5]
ACK_LOSS_PROBABILITIES = [0.0, 0.1, 0.2, 0.3, 0.4, 0.5]

# Number of simulation runs per (frame loss, ack loss) pair
RUNS_PER_CONFIGURATION = 10

# Frames transferred per sweep run
SWEEP_FRAME_COUNT = 20

# Default RNG seed base (actual seed derived per run)
RNG_SEED_BASE = 42

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL_DEBUG = 0
LOG_LEVEL_INFO = 1
LOG_LEVEL_WARNING = 2
LOG_LEVEL_ERROR = 3

DEFAULT_LOG_LEVEL = LOG_LEVEL_INFO

# =============================================================================
# OUTPUT PATHS
# =============================================================================

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BASE_DIR, "data")
OUTPUT_DIR = os.path.join(DATA_DIR, "output")
PLOTS_DIR = os.path.join(OUTPUT_DIR, "plots")

# Sweep report CSV filename
RESULTS_CSV = os.path.join(OUTPUT_DIR, "sweep_results.csv")

# =============================================================================
# DERIVED PARAMETERS (calculated from fixed parameters)
# =============================================================================

def calculate_expected_rtt(transit_duration_ms=DEFAULT_TRANSIT_DURATION_MS):
    """Expected round trip: one hop out for the frame, one hop back for the ACK."""
    return 2 * transit_duration_ms


def calculate_timeout(
    transit_duration_ms=DEFAULT_TRANSIT_DURATION_MS,
    timeout_factor=DEFAULT_TIMEOUT_FACTOR
):
    """
    Calculate the retransmission timeout for a frame.

    Timeout = RTT * factor * TIMEOUT_SCALE
    """
    return calculate_expected_rtt(transit_duration_ms) * timeout_factor * TIMEOUT_SCALE


def calculate_retransmit_pause(transit_duration_ms=DEFAULT_TRANSIT_DURATION_MS):
    """Delay between an accepted timeout and the retransmission going out."""
    return transit_duration_ms * RETRANSMIT_PAUSE_FRACTION


def calculate_lossless_exchange_time(transit_duration_ms=DEFAULT_TRANSIT_DURATION_MS):
    """Virtual time from sending a frame to its ACK arriving on a clean channel."""
    return calculate_expected_rtt(transit_duration_ms) + RECEIVER_PROCESSING_DELAY_MS


# Print configuration summary
if __name__ == "__main__":
    print("=" * 60)
    print("STOP-AND-WAIT ARQ SIMULATOR - CONFIGURATION")
    print("=" * 60)
    print(f"\nTiming:")
    print(f"  Transit Duration: {DEFAULT_TRANSIT_DURATION_MS} ms")
    print(f"  Receiver Processing: {RECEIVER_PROCESSING_DELAY_MS} ms")
    print(f"  Expected RTT: {calculate_expected_rtt()} ms")
    print(f"  Timeout Factor: {DEFAULT_TIMEOUT_FACTOR}")
    print(f"  Timeout: {calculate_timeout():.0f} ms")
    print(f"  Grace Delay: {TIMEOUT_GRACE_DELAY_MS} ms")
    print(f"  Settle Delay: {SETTLE_DELAY_MS} ms")

    print(f"\nParameter Sweep:")
    print(f"  Frame Loss: {FRAME_LOSS_PROBABILITIES}")
    print(f"  ACK Loss: {ACK_LOSS_PROBABILITIES}")
    print(f"  Runs per config: {RUNS_PER_CONFIGURATION}")
    print(f"  Total simulations: "
          f"{len(FRAME_LOSS_PROBABILITIES) * len(ACK_LOSS_PROBABILITIES) * RUNS_PER_CONFIGURATION}")
