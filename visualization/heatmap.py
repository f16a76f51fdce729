"""
Efficiency Heatmap Visualization

This module generates 2D heatmaps of Stop-and-Wait efficiency (or
goodput) as a function of frame loss and ACK loss probability.
"""

import os
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns

from config import PLOTS_DIR


METRIC_LABELS = {
    'efficiency': "Efficiency (%)",
    'goodput': "Goodput (frames/s)",
    'retransmissions': "Retransmissions per run",
}


class EfficiencyHeatmap:
    """
    Generates 2D heatmaps of a run metric over (frame loss, ACK loss).

    Attributes:
        results: Per-run result rows as produced by the batch runner
    """

    def __init__(self, results: Optional[List[Dict]] = None):
        """
        Initialize heatmap generator.

        Args:
            results: List of result dictionaries
        """
        self.results = list(results or [])

    def create_matrix(self, metric: str = 'efficiency') -> pd.DataFrame:
        """
        Create a matrix of mean metric values.

        Rows are ACK loss probabilities (highest at the top), columns are
        frame loss probabilities.

        Args:
            metric: Result column to average

        Returns:
            Pivoted DataFrame of means
        """
        df = pd.DataFrame(self.results)
        if 'error' in df.columns:
            df = df[df['error'].isna()]
        if df.empty:
            raise ValueError("No results to plot")

        matrix = df.pivot_table(
            index='ack_loss',
            columns='frame_loss',
            values=metric,
            aggfunc='mean'
        )
        return matrix.sort_index(ascending=False)

    def plot(
        self,
        metric: str = 'efficiency',
        output_file: Optional[str] = None,
        title: Optional[str] = None,
        figsize: Tuple[int, int] = (10, 8),
        cmap: str = "viridis",
        show_values: bool = True
    ) -> str:
        """
        Generate and save heatmap.

        Args:
            metric: Result column to plot
            output_file: Output file path (auto-generated if None)
            title: Plot title
            figsize: Figure size (width, height)
            cmap: Colormap name
            show_values: Show values in cells

        Returns:
            Path to saved figure
        """
        matrix = self.create_matrix(metric)
        if metric == 'efficiency':
            matrix = matrix * 100

        fig, ax = plt.subplots(figsize=figsize)
        sns.heatmap(
            matrix,
            annot=show_values,
            fmt='.1f' if metric == 'efficiency' else '.3f',
            cmap=cmap,
            xticklabels=[f"{p:.0%}" for p in matrix.columns],
            yticklabels=[f"{p:.0%}" for p in matrix.index],
            ax=ax,
            cbar_kws={'label': METRIC_LABELS.get(metric, metric)}
        )

        ax.set_xlabel('Frame Loss Probability', fontsize=12)
        ax.set_ylabel('ACK Loss Probability', fontsize=12)
        ax.set_title(title or f"Stop-and-Wait {metric.capitalize()} vs Loss Rates",
                     fontsize=14, fontweight='bold')

        plt.tight_layout()

        if output_file is None:
            os.makedirs(PLOTS_DIR, exist_ok=True)
            output_file = os.path.join(PLOTS_DIR, f'{metric}_heatmap.png')

        fig.savefig(output_file, dpi=150, bbox_inches='tight')
        plt.close(fig)

        print(f"Heatmap saved to: {output_file}")
        return output_file

    def plot_efficiency_curve(self, output_file: Optional[str] = None) -> str:
        """
        Plot mean efficiency against frame loss, one line per ACK loss.

        The dashed line is the 1 - p_frame reference efficiency with no
        ACK loss.
        """
        matrix = self.create_matrix('efficiency').sort_index()

        fig, ax = plt.subplots(figsize=(10, 6))
        for ack_loss, row in matrix.iterrows():
            ax.plot(row.index, row.values * 100, marker='o', label=f"ACK loss {ack_loss:.0%}")

        frame_losses = np.asarray(matrix.columns, dtype=float)
        ax.plot(frame_losses, (1 - frame_losses) * 100, 'k--', alpha=0.6,
                label="1 - p (no ACK loss)")

        ax.set_xlabel('Frame Loss Probability')
        ax.set_ylabel('Efficiency (%)')
        ax.set_title('Efficiency vs Frame Loss', fontweight='bold')
        ax.grid(True, alpha=0.3)
        ax.legend()
        plt.tight_layout()

        if output_file is None:
            os.makedirs(PLOTS_DIR, exist_ok=True)
            output_file = os.path.join(PLOTS_DIR, 'efficiency_curve.png')

        fig.savefig(output_file, dpi=150, bbox_inches='tight')
        plt.close(fig)
        return output_file


if __name__ == "__main__":
    print("=" * 60)
    print("HEATMAP GENERATOR TEST")
    print("=" * 60)

    from config import FRAME_LOSS_PROBABILITIES, ACK_LOSS_PROBABILITIES

    rng = np.random.default_rng(0)
    test_results = []
    for p_frame in FRAME_LOSS_PROBABILITIES:
        for p_ack in ACK_LOSS_PROBABILITIES:
            for run in range(3):
                # Expected efficiency with a small amount of noise
                efficiency = (1 - p_frame) * (1 - p_ack) + rng.normal(0, 0.02)
                test_results.append({
                    'frame_loss': p_frame,
                    'ack_loss': p_ack,
                    'run_id': run,
                    'efficiency': float(np.clip(efficiency, 0, 1)),
                    'goodput': float(np.clip(efficiency, 0, 1)) / 3.4,
                    'error': None
                })

    heatmap = EfficiencyHeatmap(results=test_results)
    path = heatmap.plot()
    print(f"Saved: {path}")
