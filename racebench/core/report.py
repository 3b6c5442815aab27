"""Structured summary of a race run"""

import json
import platform
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import psutil

from racebench.core.config import RunConfiguration
from racebench.core.metrics import ROLES, SampleSet, TransportStatistics


def collect_system_info() -> Dict[str, Any]:
    """Describe the host the client ran on"""
    return {
        'hostname': platform.node(),
        'cpu_model': platform.processor() or "Unknown",
        'cpu_cores': psutil.cpu_count(logical=True),
        'ram_gb': round(psutil.virtual_memory().total / (1024**3), 2),
        'os': platform.system(),
        'kernel': platform.release(),
        'python_version': platform.python_version(),
    }


def statistics_to_dict(stats: TransportStatistics) -> Dict[str, Any]:
    return {
        'protocol': stats.protocol,
        'responses': json.dumps(stats.durations),
        'count': stats.count,
        'mean': stats.mean,
        'median': stats.median,
        'high': stats.high,
        'low': stats.low,
        'variance': stats.variance,
        'stdev': stats.stdev,
        'top_five': list(stats.top_five),
        'bottom_five': list(stats.bottom_five),
    }


@dataclass
class RaceReport:
    """Per-transport statistics of one client run plus its configuration"""

    config: RunConfiguration
    statistics: Dict[str, TransportStatistics]
    sample_set: Optional[SampleSet] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Export report as dictionary"""
        return {
            'config': self.config.to_dict(),
            'instances': self.config.instance_count,
            'transports': {
                role: statistics_to_dict(self.statistics[role])
                for role in ROLES
                if role in self.statistics
            },
            'metadata': self.metadata,
        }

    def to_json(self) -> str:
        """Export report as JSON"""
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.to_json())
        return output_path

    def to_csv(self, path) -> Path:
        """Write the raw per-instance samples, one row per instance"""
        if self.sample_set is None:
            raise ValueError("Report carries no raw samples")
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self.sample_set.to_dataframe().to_csv(output_path)
        return output_path

    def print_summary(self, file=None):
        """Print a human-readable summary"""
        file = file or sys.stdout
        data = self.to_dict()

        print("\n" + "=" * 80, file=file)
        print("RACE RESULTS SUMMARY", file=file)
        print("=" * 80, file=file)
        config = data['config']
        print(
            f"  Instances: {config['instance_count']}  "
            f"Payload: {config['payload_size']}  "
            f"Address: {config['bind_address']}",
            file=file,
        )

        for role, stats in data['transports'].items():
            print(f"\n{role.upper()} ({stats['protocol']})", file=file)
            print("-" * 40, file=file)
            print(f"  Mean: {stats['mean']:.3f}ms (±{stats['stdev']:.3f}ms)", file=file)
            print(f"  Median: {stats['median']:.3f}ms", file=file)
            print(f"  Low / High: {stats['low']:.3f}ms / {stats['high']:.3f}ms", file=file)
            print(f"  Bottom five: {_format_tail(stats['bottom_five'])}", file=file)
            print(f"  Top five: {_format_tail(stats['top_five'])}", file=file)

        print("\n" + "=" * 80 + "\n", file=file)


def _format_tail(values) -> str:
    return ', '.join(f"{value:.3f}" for value in values)
