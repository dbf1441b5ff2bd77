"""
Cache Replacement Simulator

Main simulation engine for evaluating replacement policies.
"""

import logging
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union
from dataclasses import dataclass, asdict
import numpy as np
from tqdm import tqdm

from ..policies.base import BaseReplacementPolicy
from ..trace.parser import TraceParser
from ..trace.formats import MemoryAccess
from .cache import CacheConfig, SetAssociativeCache
from .metrics import MetricsCollector, SimulationResults

logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    """Configuration for simulation run."""
    num_sets: int = 1024
    num_ways: int = 16
    block_size: int = 64
    warmup_accesses: int = 0
    simulation_accesses: Optional[int] = None
    psel_sample_interval: int = 1000
    verbose: bool = True
    log_interval: int = 100000

    @property
    def cache_config(self) -> CacheConfig:
        return CacheConfig(num_sets=self.num_sets, num_ways=self.num_ways,
                           block_size=self.block_size)


class CacheSimulator:
    """
    Cache Replacement Simulator.

    Trace-driven: every access is replayed against one independent cache
    per registered policy, so all policies see the same stream.
    """

    def __init__(self, config: Union[SimulationConfig, dict]):
        """
        Initialize simulator.

        Args:
            config: Simulation configuration
        """
        if isinstance(config, dict):
            self.config = SimulationConfig(**config)
        else:
            self.config = config

        # Caches under evaluation, one per policy
        self.caches: Dict[str, SetAssociativeCache] = {}

        self.metrics = MetricsCollector()
        self.parser = TraceParser()

        # State
        self.accesses_processed = 0
        self.warmup_complete = False

    def add_policy(self, name: str, policy: BaseReplacementPolicy) -> None:
        """Add a policy to evaluate."""
        self.caches[name] = SetAssociativeCache(self.config.cache_config, policy)
        self.metrics.register_policy(name)

    @property
    def total_accesses(self) -> Optional[int]:
        if self.config.simulation_accesses is None:
            return None
        return self.config.warmup_accesses + self.config.simulation_accesses

    def run(self, trace_path: Union[str, Path],
            trace_format: Optional[str] = None) -> SimulationResults:
        """
        Run simulation on a trace file.

        Args:
            trace_path: Path to trace file
            trace_format: Optional format hint

        Returns:
            SimulationResults with all metrics
        """
        trace_path = Path(trace_path)

        if trace_format:
            self.parser = TraceParser(format_name=trace_format)

        trace_info = self.parser.get_trace_info(trace_path)

        if self.config.verbose:
            print(f"\n{'='*60}")
            print("Cache Replacement Simulation")
            print(f"{'='*60}")
            print(f"Trace: {trace_path.name}")
            print(f"Format: {trace_info.format}")
            print(f"Estimated accesses: {trace_info.estimated_accesses:,}")
            print(f"Policies: {list(self.caches.keys())}")
            print(f"{'='*60}\n")

        accesses = self.parser.parse_file(trace_path,
                                          max_accesses=self.total_accesses)
        return self._run(accesses, trace_path,
                         total=self.total_accesses or trace_info.estimated_accesses)

    def run_on_trace(self, trace: Iterable[MemoryAccess],
                     name: str = "memory") -> SimulationResults:
        """
        Run simulation on pre-loaded accesses.

        Args:
            trace: AccessTrace or any iterable of MemoryAccess
            name: Label for the results

        Returns:
            SimulationResults
        """
        total = self.total_accesses
        if total is None and hasattr(trace, '__len__'):
            total = len(trace)
        return self._run(trace, name, total=total)

    def _run(self, accesses: Iterable[MemoryAccess],
             trace_source: Union[str, Path],
             total: Optional[int]) -> SimulationResults:
        self._reset()

        start_time = time.time()

        if self.config.verbose:
            progress = tqdm(accesses, total=total, desc="Simulating",
                            unit="accesses")
        else:
            progress = accesses

        limit = self.total_accesses
        try:
            for access in progress:
                if limit is not None and self.accesses_processed >= limit:
                    break
                self._process_access(access)

                if (self.config.verbose and
                        self.accesses_processed % self.config.log_interval == 0):
                    self._log_progress(trace_source)

        except KeyboardInterrupt:
            logger.warning("Simulation interrupted by user after %d accesses",
                           self.accesses_processed)

        elapsed_time = time.time() - start_time

        results = self._compile_results(trace_source, elapsed_time)

        if self.config.verbose:
            self._print_results(results)

        return results

    def _process_access(self, access: MemoryAccess) -> None:
        """Process a single access."""
        self.accesses_processed += 1

        in_warmup = self.accesses_processed <= self.config.warmup_accesses

        if not in_warmup and not self.warmup_complete:
            self.warmup_complete = True
            # Reset metrics after warmup
            self.metrics.reset()
            if self.config.warmup_accesses:
                logger.info("Warmup complete after %d accesses",
                            self.config.warmup_accesses)

        sample_psel = (self.config.psel_sample_interval > 0 and
                       self.accesses_processed % self.config.psel_sample_interval == 0)

        for name, cache in self.caches.items():
            outcome = cache.access(access.address)

            if in_warmup:
                continue

            self.metrics.record_access(name, outcome, access.is_write)
            if sample_psel and hasattr(cache.policy, 'psel'):
                self.metrics.record_psel(name, cache.policy.psel)

    def _reset(self) -> None:
        """Reset simulator state."""
        self.metrics.reset()
        self.accesses_processed = 0
        self.warmup_complete = False

        for cache in self.caches.values():
            cache.reset()

    def _compile_results(self, trace_source: Union[str, Path],
                         elapsed_time: float) -> SimulationResults:
        """Compile simulation results."""
        policy_results = {}
        for name, cache in self.caches.items():
            stats = self.metrics.get_policy_stats(name)
            stats['occupancy'] = cache.occupancy()
            if hasattr(cache.policy, 'get_duel_state'):
                stats['duel'] = cache.policy.get_duel_state()
            policy_results[name] = stats

        return SimulationResults(
            trace_name=str(trace_source),
            accesses_simulated=max(0, self.accesses_processed -
                                   self.config.warmup_accesses),
            warmup_accesses=self.config.warmup_accesses,
            elapsed_time=elapsed_time,
            policy_results=policy_results,
            hardware_costs={
                name: cache.policy.get_hardware_cost()
                for name, cache in self.caches.items()
            },
            config=asdict(self.config)
        )

    def _log_progress(self, trace_source: Union[str, Path]) -> None:
        """Log progress during simulation."""
        if not self.warmup_complete or not self.caches:
            return

        first = next(iter(self.caches))
        stats = self.metrics.get_policy_stats(first)

        tqdm.write(f"Accesses: {self.accesses_processed:,} | "
                   f"{first} hit rate: {stats.get('hit_rate', 0)*100:.2f}% | "
                   f"MPKA: {stats.get('mpka', 0):.2f} | {trace_source}")

    def _print_results(self, results: SimulationResults) -> None:
        """Print final results."""
        print(f"\n{'='*60}")
        print("SIMULATION RESULTS")
        print(f"{'='*60}")
        print(f"Accesses simulated: {results.accesses_simulated:,}")
        print(f"Time elapsed: {results.elapsed_time:.2f}s")
        if results.elapsed_time > 0:
            print(f"Speed: {results.accesses_simulated/results.elapsed_time:,.0f} "
                  f"accesses/sec")

        for name, stats in results.policy_results.items():
            print(f"\n{name}:")
            print(f"  Hit rate: {stats.get('hit_rate', 0)*100:.4f}%")
            print(f"  MPKA: {stats.get('mpka', 0):.4f}")
            print(f"  Misses: {stats.get('misses', 0):,}")
            if 'psel_final' in stats:
                print(f"  PSEL: {stats['psel_final']} "
                      f"(mean {stats['psel_mean']:.1f})")

            hw = results.hardware_costs.get(name, {})
            print(f"  Replacement state: {hw.get('total_kb', 0):.2f} KB")

        print(f"\n{'='*60}")


class ComparativeSimulator:
    """
    Run comparative simulations across multiple traces and policies.
    """

    def __init__(self, config: SimulationConfig):
        self.config = config
        self.results: List[SimulationResults] = []

    def run_comparison(self,
                       traces: List[Union[str, Path]],
                       policies: Dict[str, BaseReplacementPolicy]) -> Dict:
        """
        Run comparison across traces.

        Policies are reset between traces by the simulator.

        Args:
            traces: List of trace file paths
            policies: Dictionary of policies to compare

        Returns:
            Aggregated results
        """
        self.results = []

        for trace in traces:
            sim = CacheSimulator(self.config)
            for name, policy in policies.items():
                sim.add_policy(name, policy)
            self.results.append(sim.run(trace))

        return self._aggregate_results(self.results)

    def _aggregate_results(self, results: List[SimulationResults]) -> Dict:
        """Aggregate results across traces."""
        if not results:
            return {}

        policy_names = list(results[0].policy_results.keys())

        aggregated = {
            'traces': [r.trace_name for r in results],
            'total_accesses': sum(r.accesses_simulated for r in results),
            'total_time': sum(r.elapsed_time for r in results),
            'per_policy': {}
        }

        for name in policy_names:
            hit_rates = [r.policy_results[name].get('hit_rate', 0)
                         for r in results]
            mpka_values = [r.policy_results[name].get('mpka', 0)
                           for r in results]

            aggregated['per_policy'][name] = {
                'avg_hit_rate': float(np.mean(hit_rates)),
                'avg_mpka': float(np.mean(mpka_values)),
                'std_mpka': float(np.std(mpka_values)),
                'per_trace_hit_rate': dict(zip(aggregated['traces'], hit_rates))
            }

        return aggregated
