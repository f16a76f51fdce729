"""
Batch Runner for Loss-Rate Sweeps

This module runs the Stop-and-Wait simulator over every combination of
frame loss and ACK loss probability, several seeded runs each, and
aggregates the outcomes.
"""

import os
import csv
import time
from typing import Optional, Callable, List, Dict
from dataclasses import dataclass
from concurrent.futures import ProcessPoolExecutor, as_completed
import multiprocessing

import pandas as pd
from tqdm import tqdm

from config import (
    FRAME_LOSS_PROBABILITIES, ACK_LOSS_PROBABILITIES, RUNS_PER_CONFIGURATION,
    RNG_SEED_BASE, OUTPUT_DIR, RESULTS_CSV, SWEEP_FRAME_COUNT,
    DEFAULT_TIMEOUT_FACTOR, MAX_SIMULATION_TIME_MS
)
from simulation.simulator import Simulator
from src.arq.run_config import RunConfiguration
from src.utils.logger import LogLevel


@dataclass
class SweepPoint:
    """Configuration for a single simulation run."""
    frame_loss: float
    ack_loss: float
    run_id: int
    seed: int
    frame_count: int
    timeout_factor: float = DEFAULT_TIMEOUT_FACTOR
    max_time_ms: float = MAX_SIMULATION_TIME_MS


def run_single_simulation(point: SweepPoint) -> Dict:
    """
    Run a single simulation for one sweep point.

    This function is designed to be called in a separate process, so a
    failing run is reported in the result row instead of aborting the
    whole sweep.

    Args:
        point: Configuration for this run

    Returns:
        Dictionary with results
    """
    row = {
        'frame_loss': point.frame_loss,
        'ack_loss': point.ack_loss,
        'run_id': point.run_id,
        'seed': point.seed,
        'frame_count': point.frame_count
    }

    try:
        config = RunConfiguration(
            frame_count=point.frame_count,
            frame_loss_probability=point.frame_loss,
            ack_loss_probability=point.ack_loss,
            timeout_factor=point.timeout_factor,
            noisy=True
        )

        sim = Simulator(
            config,
            seed=point.seed,
            log_level=LogLevel.ERROR,  # Minimal logging for batch runs
            max_time_ms=point.max_time_ms
        )
        results = sim.run()
        stats = results['statistics']

        row.update({
            'efficiency': stats['efficiency'],
            'goodput': stats['goodput'],
            'total_transmissions': stats['total_transmissions'],
            'retransmissions': stats['retransmissions'],
            'frames_lost': stats['frames_lost'],
            'acks_lost': stats['acks_lost'],
            'successful_deliveries': stats['successful_deliveries'],
            'duration': stats['duration'],
            'complete': results['complete'],
            'error': None
        })

    except Exception as e:
        row.update({
            'efficiency': 0,
            'goodput': 0,
            'complete': False,
            'error': str(e)
        })

    return row


class BatchRunner:
    """
    Batch Runner for loss-rate sweeps.

    Executes all (frame loss, ACK loss) combinations with multiple runs each.

    Attributes:
        frame_losses: Frame loss probabilities to test
        ack_losses: ACK loss probabilities to test
        runs_per_config: Number of runs per combination
        frame_count: Frames delivered per run
    """

    def __init__(
        self,
        frame_losses: Optional[List[float]] = None,
        ack_losses: Optional[List[float]] = None,
        runs_per_config: int = RUNS_PER_CONFIGURATION,
        frame_count: int = SWEEP_FRAME_COUNT,
        timeout_factor: float = DEFAULT_TIMEOUT_FACTOR,
        output_file: str = RESULTS_CSV,
        on_progress: Optional[Callable[[int, int, dict], None]] = None,
        show_progress: bool = True
    ):
        """
        Initialize batch runner.

        Args:
            frame_losses: Frame loss probabilities (default from config)
            ack_losses: ACK loss probabilities (default from config)
            runs_per_config: Number of seeded runs per combination
            frame_count: Frames delivered per run
            timeout_factor: Timeout factor for every run
            output_file: Path to output CSV file
            on_progress: Callback for progress updates
            show_progress: Show a tqdm progress bar
        """
        self.frame_losses = frame_losses if frame_losses is not None else FRAME_LOSS_PROBABILITIES
        self.ack_losses = ack_losses if ack_losses is not None else ACK_LOSS_PROBABILITIES
        self.runs_per_config = runs_per_config
        self.frame_count = frame_count
        self.timeout_factor = timeout_factor
        self.output_file = output_file
        self.on_progress = on_progress
        self.show_progress = show_progress

        # Results storage
        self.results: List[Dict] = []

        # Progress tracking
        self.total_runs = (len(self.frame_losses) *
                           len(self.ack_losses) *
                           self.runs_per_config)
        self.completed_runs = 0
        self.start_time = 0.0

    def _generate_sweep_points(self) -> List[SweepPoint]:
        """Generate all run configurations."""
        points = []

        for frame_loss in self.frame_losses:
            for ack_loss in self.ack_losses:
                for run_id in range(self.runs_per_config):
                    # Unique seed for each run
                    seed = (RNG_SEED_BASE +
                            round(frame_loss * 1000) * 1000 +
                            round(ack_loss * 1000) +
                            run_id * 1000000)

                    points.append(SweepPoint(
                        frame_loss=frame_loss,
                        ack_loss=ack_loss,
                        run_id=run_id,
                        seed=seed,
                        frame_count=self.frame_count,
                        timeout_factor=self.timeout_factor
                    ))

        return points

    def _record(self, result: Dict):
        self.results.append(result)
        self.completed_runs += 1
        if self.on_progress:
            self.on_progress(self.completed_runs, self.total_runs, result)

    def run_sequential(self) -> List[Dict]:
        """
        Run all simulations sequentially.

        Returns:
            List of result dictionaries
        """
        points = self._generate_sweep_points()
        self.results = []
        self.completed_runs = 0
        self.start_time = time.time()

        for point in tqdm(points, desc="Simulations", disable=not self.show_progress):
            self._record(run_single_simulation(point))

        total_time = time.time() - self.start_time
        if self.show_progress:
            print(f"Completed {self.total_runs} simulations in {total_time:.1f}s")

        return self.results

    def run_parallel(self, max_workers: Optional[int] = None) -> List[Dict]:
        """
        Run simulations in parallel using multiprocessing.

        Args:
            max_workers: Number of parallel workers (default: CPU count)

        Returns:
            List of result dictionaries
        """
        if max_workers is None:
            max_workers = multiprocessing.cpu_count()

        points = self._generate_sweep_points()
        self.results = []
        self.completed_runs = 0
        self.start_time = time.time()

        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(run_single_simulation, point) for point in points]

            for future in tqdm(as_completed(futures), total=len(futures),
                               desc="Simulations", disable=not self.show_progress):
                self._record(future.result())

        total_time = time.time() - self.start_time
        if self.show_progress:
            print(f"Completed {self.total_runs} simulations with "
                  f"{max_workers} workers in {total_time:.1f}s")

        return self.results

    def save_results(self, filepath: Optional[str] = None):
        """
        Save results to CSV file.

        Args:
            filepath: Output file path (default: self.output_file)
        """
        filepath = filepath or self.output_file

        if not self.results:
            print("No results to save!")
            return

        # Ensure directory exists
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        # Error rows carry fewer columns than successful ones
        fieldnames = []
        for result in self.results:
            for key in result:
                if key not in fieldnames:
                    fieldnames.append(key)

        with open(filepath, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(self.results)

        print(f"Results saved to: {filepath}")

    def to_dataframe(self) -> pd.DataFrame:
        """Results as a DataFrame (one row per run)."""
        return pd.DataFrame(self.results)

    def get_aggregated_results(self) -> pd.DataFrame:
        """
        Get aggregated results by (frame loss, ACK loss) pair.

        Returns:
            DataFrame with mean/std efficiency and goodput, mean
            retransmissions and completion rate per pair
        """
        df = self.to_dataframe()
        if df.empty:
            return df

        df = df[df['error'].isna()]
        if df.empty:
            return df

        grouped = df.groupby(['frame_loss', 'ack_loss'])
        aggregated = grouped.agg(
            efficiency_mean=('efficiency', 'mean'),
            efficiency_std=('efficiency', 'std'),
            goodput_mean=('goodput', 'mean'),
            goodput_std=('goodput', 'std'),
            retx_mean=('retransmissions', 'mean'),
            completion_rate=('complete', 'mean'),
            runs=('run_id', 'count')
        ).reset_index()

        # Single-run groups have no spread
        return aggregated.fillna({'efficiency_std': 0.0, 'goodput_std': 0.0})

    def get_best_configuration(self) -> Dict:
        """
        Find the loss combination with the highest mean efficiency.

        Returns:
            Dictionary with that combination's aggregated metrics
        """
        aggregated = self.get_aggregated_results()
        if aggregated.empty:
            return {'error': 'No results available'}
        return aggregated.loc[aggregated['efficiency_mean'].idxmax()].to_dict()

    def get_worst_configuration(self) -> Dict:
        """Find the loss combination with the lowest mean efficiency."""
        aggregated = self.get_aggregated_results()
        if aggregated.empty:
            return {'error': 'No results available'}
        return aggregated.loc[aggregated['efficiency_mean'].idxmin()].to_dict()


if __name__ == "__main__":
    # Test batch runner with small parameter space
    print("=" * 60)
    print("BATCH RUNNER TEST")
    print("=" * 60)

    runner = BatchRunner(
        frame_losses=[0.0, 0.2],
        ack_losses=[0.0, 0.2],
        runs_per_config=2,
        frame_count=5,
        output_file=os.path.join(OUTPUT_DIR, "test_results.csv")
    )

    print(f"\nTest configuration:")
    print(f"  Frame losses: {runner.frame_losses}")
    print(f"  ACK losses: {runner.ack_losses}")
    print(f"  Runs per config: {runner.runs_per_config}")
    print(f"  Total runs: {runner.total_runs}")

    print("\nRunning simulations...")
    runner.run_sequential()
    runner.save_results()

    print("\nAggregated results:")
    print(runner.get_aggregated_results().to_string(index=False))

    worst = runner.get_worst_configuration()
    print(f"\nWorst configuration: frame loss={worst['frame_loss']}, "
          f"ack loss={worst['ack_loss']}, "
          f"efficiency={worst['efficiency_mean'] * 100:.1f}%")
