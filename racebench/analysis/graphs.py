import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np


class GraphGenerator:
    def __init__(self, report_data: Dict[str, Any], output_dir: Path):
        self.transports = report_data.get('transports', {})
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        plt.style.use('seaborn-v0_8-darkgrid')
        self.colors = {
            'fast': '#2E86AB',
            'request_reply': '#F18F01',
            'persistent': '#A23B72',
        }

    def generate_all(self):
        graphs_generated = []

        try:
            graphs_generated.append(self.generate_latency_comparison())
        except (KeyError, ValueError, RuntimeError) as e:
            print(f"Warning: Could not generate latency comparison: {e}")

        try:
            graphs_generated.append(self.generate_spread_comparison())
        except (KeyError, ValueError, RuntimeError) as e:
            print(f"Warning: Could not generate spread comparison: {e}")

        try:
            graphs_generated.append(self.generate_sorted_durations())
        except (KeyError, ValueError, RuntimeError) as e:
            print(f"Warning: Could not generate sorted durations: {e}")

        return [g for g in graphs_generated if g]

    def generate_latency_comparison(self) -> Optional[str]:
        if not self.transports:
            return None

        fig, ax = plt.subplots(figsize=(10, 6))

        roles = list(self.transports.keys())
        means = [self.transports[role]['mean'] for role in roles]
        errors = [self.transports[role]['stdev'] for role in roles]

        x = np.arange(len(roles))
        ax.bar(x, means, yerr=errors, capsize=5,
               color=[self._get_color(r) for r in roles],
               alpha=0.8, edgecolor='black', linewidth=1.2)

        ax.set_xlabel('Transport', fontsize=12, fontweight='bold')
        ax.set_ylabel('Round trip (ms)', fontsize=12, fontweight='bold')
        ax.set_title('Mean Round Trip Comparison', fontsize=14, fontweight='bold')
        ax.set_xticks(x)
        ax.set_xticklabels([self._format_label(r) for r in roles], rotation=15, ha='right')
        ax.grid(axis='y', alpha=0.3)

        plt.tight_layout()
        output_path = self.output_dir / 'latency_comparison.png'
        plt.savefig(output_path, dpi=300, bbox_inches='tight')
        plt.close(fig)

        return str(output_path)

    def generate_spread_comparison(self) -> Optional[str]:
        if not self.transports:
            return None

        fig, ax = plt.subplots(figsize=(10, 6))

        roles = list(self.transports.keys())
        lows = [self.transports[role]['low'] for role in roles]
        medians = [self.transports[role]['median'] for role in roles]
        highs = [self.transports[role]['high'] for role in roles]

        x = np.arange(len(roles))
        width = 0.25

        ax.bar(x - width, lows, width, label='Low',
               color='#4CAF50', alpha=0.8, edgecolor='black', linewidth=1)
        ax.bar(x, medians, width, label='Median',
               color='#FF9800', alpha=0.8, edgecolor='black', linewidth=1)
        ax.bar(x + width, highs, width, label='High',
               color='#F44336', alpha=0.8, edgecolor='black', linewidth=1)

        ax.set_xlabel('Transport', fontsize=12, fontweight='bold')
        ax.set_ylabel('Round trip (ms)', fontsize=12, fontweight='bold')
        ax.set_title('Round Trip Spread Comparison', fontsize=14, fontweight='bold')
        ax.set_xticks(x)
        ax.set_xticklabels([self._format_label(r) for r in roles], rotation=15, ha='right')
        ax.legend(fontsize=10)
        ax.grid(axis='y', alpha=0.3)

        plt.tight_layout()
        output_path = self.output_dir / 'spread_comparison.png'
        plt.savefig(output_path, dpi=300, bbox_inches='tight')
        plt.close(fig)

        return str(output_path)

    def generate_sorted_durations(self) -> Optional[str]:
        if not self.transports:
            return None

        fig, ax = plt.subplots(figsize=(10, 6))

        for role, data in self.transports.items():
            durations = np.array(json.loads(data['responses']), dtype=float)
            if durations.size == 0:
                continue
            # Fraction of instances at or below each duration
            fraction = np.arange(1, durations.size + 1) / durations.size
            ax.step(durations, fraction, where='post',
                    label=self._format_label(role), color=self._get_color(role), linewidth=2)

        ax.set_xlabel('Round trip (ms)', fontsize=12, fontweight='bold')
        ax.set_ylabel('Fraction of instances', fontsize=12, fontweight='bold')
        ax.set_title('Sorted Round Trip Durations', fontsize=14, fontweight='bold')
        ax.set_ylim(0, 1.05)
        ax.legend(fontsize=10)
        ax.grid(alpha=0.3)

        plt.tight_layout()
        output_path = self.output_dir / 'sorted_durations.png'
        plt.savefig(output_path, dpi=300, bbox_inches='tight')
        plt.close(fig)

        return str(output_path)

    def _format_label(self, role: str) -> str:
        protocol = self.transports.get(role, {}).get('protocol')
        label = role.replace('_', ' ').title()
        return f"{label} ({protocol})" if protocol else label

    def _get_color(self, role: str) -> str:
        return self.colors.get(role, '#666666')


def generate_graphs(report_data: Dict[str, Any], output_dir: Path) -> List[str]:
    return GraphGenerator(report_data, output_dir).generate_all()


def generate_graphs_from_json(json_path: Path, output_dir: Path) -> List[str]:
    with open(json_path, 'r') as f:
        data = json.load(f)

    return generate_graphs(data, output_dir)
