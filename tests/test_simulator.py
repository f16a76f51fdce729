"""
Tests for the simulation driver, the sweep runner and the heatmap.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd

from simulation.simulator import Simulator, run_simulation
from simulation.runner import BatchRunner, SweepPoint, run_single_simulation
from src.arq.run_config import RunConfiguration
from src.channel.loss_model import ScriptedChannel
from src.utils.logger import LogLevel
from visualization.heatmap import EfficiencyHeatmap


class TestSimulator:
    """Tests for the single-run driver."""

    def test_lossless_run(self):
        sim = Simulator(RunConfiguration(frame_count=3), log_level=LogLevel.ERROR)
        result = sim.run()

        assert result['complete']
        assert result['statistics']['successful_deliveries'] == 3
        assert result['statistics']['efficiency'] == 1.0
        assert result['simulation_time'] == pytest.approx(11.0)
        assert result['event_counts']['FrameSent'] == 3
        assert result['config']['frame_count'] == 3

    def test_scripted_loss(self):
        config = RunConfiguration(frame_count=2, noisy=True)
        sim = Simulator(config, channel=ScriptedChannel([True, False, True]),
                        log_level=LogLevel.ERROR)
        result = sim.run()

        stats = result['statistics']
        assert result['complete']
        assert stats['frames_lost'] == 1
        assert stats['acks_lost'] == 1
        assert stats['retransmissions'] == 2
        assert stats['total_transmissions'] == 4

    def test_seeded_runs_are_reproducible(self):
        """Test that the same seed yields identical statistics."""
        first = run_simulation(frame_count=6, frame_loss=0.3, ack_loss=0.2, seed=11,
                               log_level=LogLevel.ERROR)
        second = run_simulation(frame_count=6, frame_loss=0.3, ack_loss=0.2, seed=11,
                                log_level=LogLevel.ERROR)

        assert first['statistics'] == second['statistics']
        assert first['event_counts'] == second['event_counts']

    def test_time_limit_stops_endless_run(self):
        """Test that a run which can never finish stops at the time limit."""
        config = RunConfiguration(frame_count=2, timeout_factor=0.5)
        sim = Simulator(config, log_level=LogLevel.ERROR, max_time_ms=30000)
        result = sim.run()

        assert not result['complete']
        assert result['simulation_time'] == pytest.approx(30.0)
        assert result['statistics']['successful_deliveries'] == 1
        assert result['statistics']['retransmissions'] > 0

    def test_step_mode_auto_advances(self):
        sim = Simulator(RunConfiguration(frame_count=3, step_mode=True),
                        log_level=LogLevel.ERROR)
        result = sim.run()

        assert result['complete']
        assert result['event_counts']['StepPending'] == 3

    def test_step_callback_can_stop(self):
        """Test that returning False from the step callback ends the run."""
        steps = []

        def one_step(engine):
            steps.append(engine.sender.next_payload)
            return len(steps) < 2

        sim = Simulator(RunConfiguration(frame_count=3, step_mode=True),
                        log_level=LogLevel.ERROR)
        result = sim.run(step_callback=one_step)

        assert steps == ["Data-1", "Data-2"]
        assert not result['complete']
        assert result['statistics']['successful_deliveries'] == 1

    def test_pause_and_rerun(self):
        """Test that a paused run returns early and continues on the next call."""
        sim = Simulator(RunConfiguration(frame_count=2), log_level=LogLevel.ERROR)

        def pause_on_first_ack(event):
            if type(event).__name__ == 'AckAccepted' and sim.recorder.count(type(event)) == 1:
                sim.pause()

        sim.engine.subscribe(pause_on_first_ack)
        partial = sim.run()
        assert not partial['complete']
        assert partial['statistics']['successful_deliveries'] == 1

        sim.resume()
        result = sim.run()
        assert result['complete']
        assert result['statistics']['successful_deliveries'] == 2
        assert result['statistics']['total_transmissions'] == 2

    def test_paused_step_run_sends_nothing(self):
        """Test that a paused step-mode run does not release its pending step."""
        sim = Simulator(RunConfiguration(frame_count=2, step_mode=True),
                        log_level=LogLevel.ERROR)
        sim.engine.start(sim.config)
        sim.pause()

        partial = sim.run()
        assert partial['event_counts'].get('FrameSent', 0) == 0
        assert partial['event_counts'].get('TimeoutArmed', 0) == 0
        assert sim.engine.awaiting_step
        assert not partial['complete']

        sim.resume()
        result = sim.run()
        assert result['complete']
        assert result['event_counts']['FrameSent'] == 2


class TestBatchRunner:
    """Tests for the loss-rate sweep."""

    def make_runner(self, tmp_path):
        return BatchRunner(
            frame_losses=[0.0, 0.4],
            ack_losses=[0.0, 0.2],
            runs_per_config=2,
            frame_count=4,
            output_file=str(tmp_path / "results.csv"),
            show_progress=False
        )

    def test_sweep_points_have_unique_seeds(self, tmp_path):
        runner = self.make_runner(tmp_path)
        points = runner._generate_sweep_points()

        assert len(points) == runner.total_runs == 8
        assert len({p.seed for p in points}) == 8

    def test_single_point(self):
        row = run_single_simulation(SweepPoint(frame_loss=0.0, ack_loss=0.0, run_id=0,
                                               seed=1, frame_count=3))
        assert row['error'] is None
        assert row['efficiency'] == 1.0
        assert row['complete']

    def test_failed_point_reported_in_row(self):
        row = run_single_simulation(SweepPoint(frame_loss=0.0, ack_loss=0.0, run_id=0,
                                               seed=1, frame_count=0))
        assert row['error']
        assert not row['complete']

    def test_sequential_sweep_and_aggregation(self, tmp_path):
        """Test running, saving and aggregating a small sweep."""
        runner = self.make_runner(tmp_path)
        progress = []
        runner.on_progress = lambda done, total, result: progress.append(done)

        results = runner.run_sequential()
        assert len(results) == 8
        assert progress == list(range(1, 9))
        assert all(r['complete'] for r in results)

        aggregated = runner.get_aggregated_results()
        assert len(aggregated) == 4
        lossless = aggregated[(aggregated['frame_loss'] == 0.0) &
                              (aggregated['ack_loss'] == 0.0)].iloc[0]
        assert lossless['efficiency_mean'] == 1.0
        assert lossless['retx_mean'] == 0.0
        assert lossless['runs'] == 2

        best = runner.get_best_configuration()
        worst = runner.get_worst_configuration()
        assert best['efficiency_mean'] >= worst['efficiency_mean']
        assert best['frame_loss'] == 0.0 and best['ack_loss'] == 0.0

        runner.save_results()
        saved = pd.read_csv(tmp_path / "results.csv")
        assert len(saved) == 8
        assert {'frame_loss', 'ack_loss', 'efficiency', 'goodput'} <= set(saved.columns)

    def test_empty_results(self, tmp_path):
        runner = self.make_runner(tmp_path)

        assert runner.get_aggregated_results().empty
        assert 'error' in runner.get_best_configuration()


class TestEfficiencyHeatmap:
    """Tests for heatmap generation."""

    def make_results(self):
        results = []
        for frame_loss in [0.0, 0.5]:
            for ack_loss in [0.0, 0.5]:
                for run in range(2):
                    results.append({
                        'frame_loss': frame_loss,
                        'ack_loss': ack_loss,
                        'run_id': run,
                        'efficiency': (1 - frame_loss) * (1 - ack_loss),
                        'goodput': 0.1 * run,
                        'error': None
                    })
        return results

    def test_matrix_layout(self):
        matrix = EfficiencyHeatmap(self.make_results()).create_matrix()

        assert list(matrix.index) == [0.5, 0.0]
        assert list(matrix.columns) == [0.0, 0.5]
        assert matrix.loc[0.0, 0.0] == 1.0
        assert matrix.loc[0.5, 0.5] == 0.25

    def test_plot_writes_file(self, tmp_path):
        heatmap = EfficiencyHeatmap(self.make_results())
        path = heatmap.plot(output_file=str(tmp_path / "efficiency.png"))

        assert os.path.exists(path)
        assert os.path.getsize(path) > 0

    def test_efficiency_curve_reference_line(self, tmp_path, monkeypatch):
        """Test that the dashed reference line is 1 - p_frame in percent."""
        figures = []
        monkeypatch.setattr(plt, "close", figures.append)

        heatmap = EfficiencyHeatmap(self.make_results())
        path = heatmap.plot_efficiency_curve(output_file=str(tmp_path / "curve.png"))

        assert os.path.exists(path)
        lines = figures[0].axes[0].get_lines()
        reference = [line for line in lines if line.get_linestyle() == '--'][0]
        assert reference.get_label() == "1 - p (no ACK loss)"
        assert list(reference.get_xdata()) == [0.0, 0.5]
        assert list(reference.get_ydata()) == [100.0, 50.0]
        monkeypatch.undo()
        plt.close(figures[0])

    def test_no_results(self):
        with pytest.raises(ValueError):
            EfficiencyHeatmap([]).create_matrix()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
