"""
Metrics Collection and Analysis

Collects and analyzes cache replacement performance metrics.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any
import numpy as np

from ..components.set_dueling import InsertionPolicy


@dataclass
class SimulationResults:
    """Container for simulation results."""
    trace_name: str
    accesses_simulated: int
    warmup_accesses: int
    elapsed_time: float
    policy_results: Dict[str, Dict[str, Any]]
    hardware_costs: Dict[str, Dict[str, Any]]
    config: Dict[str, Any]

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return {
            'trace_name': self.trace_name,
            'accesses_simulated': self.accesses_simulated,
            'warmup_accesses': self.warmup_accesses,
            'elapsed_time': self.elapsed_time,
            'policy_results': self.policy_results,
            'hardware_costs': self.hardware_costs,
            'config': self.config
        }

    def get_summary(self) -> str:
        """Get text summary of results."""
        lines = [
            f"Trace: {self.trace_name}",
            f"Accesses: {self.accesses_simulated:,}",
            f"Time: {self.elapsed_time:.2f}s",
            ""
        ]

        for name, stats in self.policy_results.items():
            lines.append(f"{name}:")
            lines.append(f"  Hit rate: {stats.get('hit_rate', 0)*100:.4f}%")
            lines.append(f"  MPKA: {stats.get('mpka', 0):.4f}")

        return "\n".join(lines)


@dataclass
class PolicyMetrics:
    """Metrics for a single policy."""
    accesses: int = 0
    hits: int = 0
    misses: int = 0
    read_misses: int = 0
    write_misses: int = 0
    evictions: int = 0
    srrip_fills: int = 0
    bip_fills: int = 0
    aging_passes: int = 0
    psel_samples: List[int] = field(default_factory=list)

    @property
    def hit_rate(self) -> float:
        if self.accesses == 0:
            return 0.0
        return self.hits / self.accesses

    @property
    def miss_rate(self) -> float:
        if self.accesses == 0:
            return 0.0
        return self.misses / self.accesses

    @property
    def mpka(self) -> float:
        """Misses per 1000 accesses."""
        if self.accesses == 0:
            return 0.0
        return (self.misses / self.accesses) * 1000

    def reset(self) -> None:
        self.accesses = 0
        self.hits = 0
        self.misses = 0
        self.read_misses = 0
        self.write_misses = 0
        self.evictions = 0
        self.srrip_fills = 0
        self.bip_fills = 0
        self.aging_passes = 0
        self.psel_samples.clear()


class MetricsCollector:
    """
    Collects and computes cache metrics.
    """

    def __init__(self):
        self._policies: Dict[str, PolicyMetrics] = {}

    def register_policy(self, name: str) -> None:
        """Register a policy for metrics collection."""
        self._policies[name] = PolicyMetrics()

    def record_access(self, policy_name: str, outcome: Any,
                      is_write: bool = False) -> None:
        """
        Record a cache access outcome.

        Args:
            policy_name: Name of policy
            outcome: CacheAccess from the cache model
            is_write: Whether the access was a store
        """
        if policy_name not in self._policies:
            self.register_policy(policy_name)

        metrics = self._policies[policy_name]
        metrics.accesses += 1

        if outcome.hit:
            metrics.hits += 1
            return

        metrics.misses += 1
        if is_write:
            metrics.write_misses += 1
        else:
            metrics.read_misses += 1
        if outcome.evicted_tag is not None:
            metrics.evictions += 1

        result = outcome.policy_result
        if result is not None:
            if result.policy is InsertionPolicy.SRRIP:
                metrics.srrip_fills += 1
            elif result.policy is InsertionPolicy.BIP:
                metrics.bip_fills += 1
            metrics.aging_passes += result.aging_passes

    def record_psel(self, policy_name: str, psel: int) -> None:
        """Sample the selection counter of a dueling policy."""
        if policy_name not in self._policies:
            self.register_policy(policy_name)
        self._policies[policy_name].psel_samples.append(psel)

    def get_policy_stats(self, policy_name: str) -> Dict[str, Any]:
        """Get statistics for a policy."""
        if policy_name not in self._policies:
            return {}

        metrics = self._policies[policy_name]

        stats = {
            'accesses': metrics.accesses,
            'hits': metrics.hits,
            'misses': metrics.misses,
            'hit_rate': metrics.hit_rate,
            'miss_rate': metrics.miss_rate,
            'mpka': metrics.mpka,
            'read_misses': metrics.read_misses,
            'write_misses': metrics.write_misses,
            'evictions': metrics.evictions,
            'srrip_fills': metrics.srrip_fills,
            'bip_fills': metrics.bip_fills,
            'aging_passes': metrics.aging_passes,
        }

        if metrics.misses > 0:
            stats['aging_per_miss'] = metrics.aging_passes / metrics.misses

        if metrics.psel_samples:
            samples = np.asarray(metrics.psel_samples)
            stats['psel_final'] = int(samples[-1])
            stats['psel_mean'] = float(np.mean(samples))
            stats['psel_min'] = int(np.min(samples))
            stats['psel_max'] = int(np.max(samples))

        return stats

    def reset(self) -> None:
        """Reset all metrics."""
        for metrics in self._policies.values():
            metrics.reset()

    def get_comparison_table(self) -> str:
        """Get comparison table as formatted string."""
        if not self._policies:
            return "No policies registered"

        lines = [
            "Policy Comparison:",
            "-" * 60,
            f"{'Policy':<20} {'Hit rate':>12} {'MPKA':>10} {'Misses':>12}",
            "-" * 60
        ]

        for name, metrics in self._policies.items():
            lines.append(
                f"{name:<20} {metrics.hit_rate*100:>11.4f}% {metrics.mpka:>10.4f} "
                f"{metrics.misses:>12,}"
            )

        lines.append("-" * 60)
        return "\n".join(lines)


class ResultsExporter:
    """Export simulation results to various formats."""

    @staticmethod
    def to_csv(results: SimulationResults, filepath: str) -> None:
        """Export results to CSV."""
        import csv

        with open(filepath, 'w', newline='') as f:
            writer = csv.writer(f)

            # Header
            writer.writerow(['Metric', 'Value'])
            writer.writerow(['Trace', results.trace_name])
            writer.writerow(['Accesses', results.accesses_simulated])
            writer.writerow(['Time (s)', results.elapsed_time])
            writer.writerow([])

            # Per-policy results
            for name, stats in results.policy_results.items():
                writer.writerow([f'{name} - Hit rate', stats.get('hit_rate', 0)])
                writer.writerow([f'{name} - MPKA', stats.get('mpka', 0)])
                writer.writerow([f'{name} - Misses', stats.get('misses', 0)])

    @staticmethod
    def to_json(results: SimulationResults, filepath: str) -> None:
        """Export results to JSON."""
        import json

        with open(filepath, 'w') as f:
            json.dump(results.to_dict(), f, indent=2)
