#!/usr/bin/env python3
"""
Stop-and-Wait ARQ Protocol Simulator - Main Entry Point

This is the main CLI interface for the Stop-and-Wait simulator.
It provides options for:
- Single simulation runs (continuous or step-by-step)
- Loss-rate parameter sweep
- Configuration display

Usage:
    python main.py --single --frames 5 --noisy --frame-loss 20 --ack-loss 10
    python main.py --single --frames 3 --step
    python main.py --sweep --runs 10 --plot
"""

import argparse
import os
import time

from config import (
    DEFAULT_FRAME_COUNT, DEFAULT_TIMEOUT_FACTOR, DEFAULT_TRANSIT_DURATION_MS,
    RUNS_PER_CONFIGURATION, SWEEP_FRAME_COUNT, RESULTS_CSV, PLOTS_DIR
)


def prompt_for_step(engine) -> bool:
    """Wait for the user before releasing the next frame."""
    state = engine.get_state()
    answer = input(f"[{state['progress'] * 100:5.1f}%] sender bit={state['sender_sequence_bit']} "
                   f"receiver expects={state['receiver_expected_bit']} "
                   f"- Enter for next step, q to stop: ")
    return answer.strip().lower() != 'q'


def run_single_simulation(args):
    """Run a single simulation with specified parameters."""
    from simulation.simulator import Simulator
    from src.arq.errors import InvalidConfiguration
    from src.arq.run_config import RunConfiguration
    from src.utils.logger import LogLevel

    config = RunConfiguration(
        frame_count=args.frames,
        frame_loss_probability=args.frame_loss / 100.0,
        ack_loss_probability=args.ack_loss / 100.0,
        timeout_factor=args.timeout_factor,
        noisy=args.noisy,
        step_mode=args.step,
        transit_duration_ms=args.transit
    )

    try:
        config = config.validated()
    except InvalidConfiguration as e:
        print(f"Invalid configuration: {e}")
        return None

    print("=" * 60)
    print("STOP-AND-WAIT ARQ SIMULATOR")
    print("=" * 60)
    print(f"\nConfiguration:")
    print(f"  Frames: {config.frame_count}")
    print(f"  Mode: {'noisy' if config.noisy else 'noiseless'}")
    print(f"  Frame loss: {config.effective_frame_loss * 100:.0f}%")
    print(f"  ACK loss: {config.effective_ack_loss * 100:.0f}%")
    print(f"  Transit: {config.transit_duration_ms:.0f} ms")
    print(f"  Timeout: {config.timeout_ms:.0f} ms (factor {config.timeout_factor})")
    print(f"  Step mode: {config.step_mode}")
    print(f"  Seed: {args.seed}")

    if not config.noisy and (args.frame_loss or args.ack_loss):
        print("  (loss probabilities are ignored without --noisy)")

    print("\nRunning simulation...")

    sim = Simulator(
        config,
        seed=args.seed,
        log_level=LogLevel.DEBUG if args.verbose else LogLevel.INFO
    )
    start_time = time.time()
    results = sim.run(step_callback=prompt_for_step if config.step_mode else None)
    elapsed = time.time() - start_time

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)

    stats = results['statistics']
    print(f"\nRun Status:")
    print(f"  Complete: {results['complete']}")
    print(f"  Simulated Time: {results['simulation_time']:.2f} s")
    print(f"  Real Time: {elapsed:.2f} s")

    print(f"\nPerformance Metrics:")
    print(f"  Efficiency: {stats['efficiency'] * 100:.1f}%")
    print(f"  Goodput: {stats['goodput']:.3f} frames/s")

    print(f"\nFrame Statistics:")
    print(f"  Transmissions: {stats['total_transmissions']}")
    print(f"  Retransmissions: {stats['retransmissions']}")
    print(f"  Frames Lost: {stats['frames_lost']}")
    print(f"  ACKs Lost: {stats['acks_lost']}")
    print(f"  Delivered: {stats['successful_deliveries']}/{config.frame_count}")

    return results


def run_parameter_sweep(args):
    """Run loss-rate sweep."""
    from simulation.runner import BatchRunner

    print("=" * 60)
    print("PARAMETER SWEEP")
    print("=" * 60)

    if args.quick:
        frame_losses = [0.0, 0.2, 0.4]
        ack_losses = [0.0, 0.2, 0.4]
        runs = 3
        frame_count = 5
    else:
        frame_losses = None
        ack_losses = None
        runs = args.runs
        frame_count = args.frames or SWEEP_FRAME_COUNT

    runner = BatchRunner(
        frame_losses=frame_losses,
        ack_losses=ack_losses,
        runs_per_config=runs,
        frame_count=frame_count,
        timeout_factor=args.timeout_factor,
        output_file=args.output or RESULTS_CSV
    )

    print(f"\nConfiguration:")
    print(f"  Frame losses: {runner.frame_losses}")
    print(f"  ACK losses: {runner.ack_losses}")
    print(f"  Runs per config: {runs}")
    print(f"  Frames per run: {frame_count}")
    print(f"  Total simulations: {runner.total_runs}")
    print(f"  Output: {runner.output_file}")

    print("\nStarting parameter sweep...")

    if args.parallel:
        results = runner.run_parallel(max_workers=args.workers)
    else:
        results = runner.run_sequential()

    runner.save_results()

    aggregated = runner.get_aggregated_results()
    if not aggregated.empty:
        print("\nMean efficiency per (frame loss, ACK loss):")
        print(aggregated[['frame_loss', 'ack_loss', 'efficiency_mean',
                          'goodput_mean', 'retx_mean', 'completion_rate']]
              .to_string(index=False, float_format=lambda v: f"{v:.3f}"))

        best = runner.get_best_configuration()
        worst = runner.get_worst_configuration()
        print("\n" + "=" * 60)
        print("BEST / WORST CONFIGURATION")
        print("=" * 60)
        print(f"  Best:  frame loss {best['frame_loss']:.0%}, ACK loss {best['ack_loss']:.0%} "
              f"-> {best['efficiency_mean'] * 100:.1f}%")
        print(f"  Worst: frame loss {worst['frame_loss']:.0%}, ACK loss {worst['ack_loss']:.0%} "
              f"-> {worst['efficiency_mean'] * 100:.1f}%")

    if args.plot:
        from visualization.heatmap import EfficiencyHeatmap

        os.makedirs(PLOTS_DIR, exist_ok=True)
        heatmap = EfficiencyHeatmap(results=results)
        heatmap.plot(output_file=os.path.join(PLOTS_DIR, 'efficiency_heatmap.png'))
        heatmap.plot(metric='goodput',
                     output_file=os.path.join(PLOTS_DIR, 'goodput_heatmap.png'))
        curve = heatmap.plot_efficiency_curve()
        print(f"Efficiency curve saved to: {curve}")

    return results


def show_config(args):
    """Display current configuration."""
    print("=" * 60)
    print("SIMULATOR CONFIGURATION")
    print("=" * 60)

    import config as cfg

    rtt = cfg.calculate_expected_rtt()
    print(f"\nTiming Parameters:")
    print(f"  Transit Duration: {cfg.DEFAULT_TRANSIT_DURATION_MS} ms")
    print(f"  Expected RTT: {rtt} ms")
    print(f"  Receiver Processing: {cfg.RECEIVER_PROCESSING_DELAY_MS} ms")
    print(f"  Timeout Factor: {cfg.DEFAULT_TIMEOUT_FACTOR}")
    print(f"  Timeout: {cfg.calculate_timeout():.0f} ms")
    print(f"  Timeout Grace Delay: {cfg.TIMEOUT_GRACE_DELAY_MS} ms")
    print(f"  Retransmit Pause: {cfg.calculate_retransmit_pause():.0f} ms")
    print(f"  Settle Delay: {cfg.SETTLE_DELAY_MS} ms")
    print(f"  Lossless Exchange: {cfg.calculate_lossless_exchange_time():.0f} ms")

    print(f"\nParameter Sweep:")
    print(f"  Frame Loss: {cfg.FRAME_LOSS_PROBABILITIES}")
    print(f"  ACK Loss: {cfg.ACK_LOSS_PROBABILITIES}")
    print(f"  Runs per config: {cfg.RUNS_PER_CONFIGURATION}")
    print(f"  Frames per run: {cfg.SWEEP_FRAME_COUNT}")
    print(f"  Total simulations: {len(cfg.FRAME_LOSS_PROBABILITIES) * len(cfg.ACK_LOSS_PROBABILITIES) * cfg.RUNS_PER_CONFIGURATION}")


def main():
    parser = argparse.ArgumentParser(
        description="Stop-and-Wait ARQ Protocol Simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Noiseless run:
    python main.py --single --frames 5

  Noisy run with 20% frame loss and 10% ACK loss:
    python main.py --single --noisy --frame-loss 20 --ack-loss 10

  Step through each frame:
    python main.py --single --frames 3 --step

  Quick sweep (for testing):
    python main.py --sweep --quick

  Parallel sweep with heatmaps:
    python main.py --sweep --parallel --workers 4 --plot

  Show configuration:
    python main.py --config
        """
    )

    # Mode selection
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument('--single', action='store_true',
                      help='Run single simulation')
    mode.add_argument('--sweep', action='store_true',
                      help='Run loss-rate sweep')
    mode.add_argument('--config', action='store_true',
                      help='Show configuration')

    # Single simulation options
    parser.add_argument('--frames', '-n', type=int, default=None,
                        help=f'Number of frames (default: {DEFAULT_FRAME_COUNT}, '
                             f'{SWEEP_FRAME_COUNT} for sweeps)')
    parser.add_argument('--frame-loss', type=float, default=0.0,
                        help='Frame loss in percent (default: 0)')
    parser.add_argument('--ack-loss', type=float, default=0.0,
                        help='ACK loss in percent (default: 0)')
    parser.add_argument('--timeout-factor', '-t', type=float,
                        default=DEFAULT_TIMEOUT_FACTOR,
                        help=f'Timeout factor (default: {DEFAULT_TIMEOUT_FACTOR})')
    parser.add_argument('--transit', type=float, default=DEFAULT_TRANSIT_DURATION_MS,
                        help=f'One-way transit in ms (default: {DEFAULT_TRANSIT_DURATION_MS})')
    parser.add_argument('--noisy', action='store_true',
                        help='Enable loss injection')
    parser.add_argument('--step', action='store_true',
                        help='Release each frame manually')
    parser.add_argument('--seed', '-s', type=int, default=42,
                        help='Random seed (default: 42)')

    # Parameter sweep options
    parser.add_argument('--runs', '-r', type=int,
                        default=RUNS_PER_CONFIGURATION,
                        help=f'Runs per configuration (default: {RUNS_PER_CONFIGURATION})')
    parser.add_argument('--parallel', action='store_true',
                        help='Run simulations in parallel')
    parser.add_argument('--workers', type=int, default=None,
                        help='Number of parallel workers')
    parser.add_argument('--quick', action='store_true',
                        help='Quick test with reduced parameters')
    parser.add_argument('--plot', action='store_true',
                        help='Generate heatmaps after the sweep')

    # Output options
    parser.add_argument('--output', '-o', type=str,
                        help='Output CSV path')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output')

    args = parser.parse_args()

    if args.single:
        if args.frames is None:
            args.frames = DEFAULT_FRAME_COUNT
        run_single_simulation(args)
    elif args.sweep:
        run_parameter_sweep(args)
    elif args.config:
        show_config(args)


if __name__ == "__main__":
    main()
