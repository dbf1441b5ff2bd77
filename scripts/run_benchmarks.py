#!/usr/bin/env python3
"""
Multi-trace benchmark runner for cache replacement evaluation.

Runs every configured policy over a set of memory traces (or generated
sample traces), prints a comparison report and saves one result file per
trace for analyze_results.py.

Usage:
    python scripts/run_benchmarks.py --trace-dir data/memory
    python scripts/run_benchmarks.py --patterns loop scan mixed -n 200000
    python scripts/analyze_results.py --results results --compare
"""

import sys
from pathlib import Path
import argparse
import time
from datetime import datetime
from concurrent.futures import ProcessPoolExecutor, as_completed
import multiprocessing
import tempfile

# Add project to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from drrip.simulation.metrics import ResultsExporter
from drrip.simulation.simulator import CacheSimulator, SimulationConfig
from drrip.trace.parser import TraceParser, create_sample_trace
from drrip.utils.helpers import (
    create_policy_from_config,
    format_number,
    load_config,
    save_config,
    save_results,
    setup_logging,
)

DEFAULT_CONFIG = Path(__file__).parent.parent / "config" / "default.yaml"

TRACE_SUFFIXES = ('.txt', '.trace', '.bin', '.gz', '.xz', '.bz2', '.lzma')


def find_traces(base_dir: Path) -> dict:
    """Find all trace files organized by category (subdirectory)."""
    traces = {}

    for subdir in sorted(base_dir.iterdir()):
        if subdir.is_dir():
            trace_files = [p for p in subdir.iterdir()
                           if p.suffix.lower() in TRACE_SUFFIXES]
            if trace_files:
                traces[subdir.name] = sorted(trace_files)

    top_level = [p for p in base_dir.iterdir()
                 if p.is_file() and p.suffix.lower() in TRACE_SUFFIXES]
    if top_level:
        traces['default'] = sorted(top_level)

    return traces


def create_policies(config: dict) -> dict:
    """Create all policy instances named in the config."""
    names = config.get('policies', ['drrip', 'srrip', 'bip', 'lru'])
    return {name.upper(): create_policy_from_config(config, name)
            for name in names}


def run_benchmark(trace_path: Path, config: dict,
                  accesses: int = None,
                  verbose: bool = False,
                  output_dir: Path = None,
                  name: str = None) -> dict:
    """
    Run benchmark on a single trace.

    With output_dir set, the full SimulationResults are saved there as
    <name>_<timestamp>.json and .csv.
    """
    cache = config.get('cache', {})
    sim = config.get('simulation', {})

    sim_config = SimulationConfig(
        num_sets=cache.get('num_sets', 1024),
        num_ways=cache.get('num_ways', 16),
        block_size=cache.get('block_size', 64),
        warmup_accesses=sim.get('warmup_accesses', 0),
        simulation_accesses=accesses or sim.get('simulation_accesses'),
        psel_sample_interval=sim.get('psel_sample_interval', 1000),
        verbose=verbose,
        log_interval=sim.get('log_interval', 100000)
    )

    simulator = CacheSimulator(sim_config)
    for name, policy in create_policies(config).items():
        simulator.add_policy(name, policy)

    results = simulator.run(trace_path)

    saved = None
    if output_dir is not None:
        paths = save_results(results.to_dict(), output_dir,
                             name=name or Path(trace_path).stem,
                             formats=('json',))
        saved = paths['json']
        ResultsExporter.to_csv(results, str(saved.with_suffix('.csv')))

    return {
        'saved': str(saved) if saved else None,
        'trace': trace_path.name,
        'accesses': results.accesses_simulated,
        'time': results.elapsed_time,
        'policies': {
            name: {
                'hit_rate': metrics.get('hit_rate', 0) * 100,
                'mpka': metrics.get('mpka', 0),
                'misses': metrics.get('misses', 0),
                'psel_final': metrics.get('psel_final'),
            }
            for name, metrics in results.policy_results.items()
        }
    }


def _run_benchmark_worker(args: tuple) -> dict:
    """Worker function for parallel benchmark execution.

    Args:
        args: Tuple of (trace_path, category, config, accesses, verbose,
            output_dir)

    Returns:
        Dictionary with benchmark results or error info
    """
    trace_path, category, config, accesses, verbose, output_dir = args
    try:
        result = run_benchmark(trace_path, config, accesses, verbose,
                               output_dir, f"{category}_{trace_path.stem}")
        result['category'] = category
        result['success'] = True
        return result
    except (OSError, ValueError) as e:
        return {
            'trace': trace_path.name,
            'category': category,
            'success': False,
            'error': str(e)
        }


def run_all_benchmarks(traces: dict, config: dict,
                       accesses: int = None,
                       verbose: bool = False,
                       num_workers: int = None,
                       output_dir: Path = None) -> dict:
    """Run benchmarks on all traces in parallel."""
    if num_workers is None:
        num_workers = max(1, multiprocessing.cpu_count() - 1)

    all_results = {
        'timestamp': datetime.now().isoformat(),
        'config': {
            'cache': config.get('cache', {}),
            'accesses': accesses,
            'num_workers': num_workers,
        },
        'categories': {category: [] for category in traces}
    }

    all_trace_args = [
        (trace_path, category, config, accesses, verbose, output_dir)
        for category, trace_files in traces.items()
        for trace_path in trace_files
    ]

    total_traces = len(all_trace_args)
    print(f"\nRunning {total_traces} traces with {num_workers} parallel workers...")
    print("="*60)

    completed = 0
    start_time = time.time()

    with ProcessPoolExecutor(max_workers=num_workers) as executor:
        future_to_trace = {
            executor.submit(_run_benchmark_worker, args): args[0]
            for args in all_trace_args
        }

        for future in as_completed(future_to_trace):
            completed += 1
            result = future.result()

            if result['success']:
                all_results['categories'][result['category']].append(result)
                best = max(result['policies'].items(),
                           key=lambda x: x[1]['hit_rate'])
                print(f"[{completed}/{total_traces}] {result['trace']}: "
                      f"{format_number(result['accesses'], 1)} accesses | "
                      f"Best: {best[0]} ({best[1]['hit_rate']:.2f}% hits)")
            else:
                print(f"[{completed}/{total_traces}] {result['trace']}: "
                      f"Error - {result['error']}")

    elapsed = time.time() - start_time
    print(f"\nCompleted {completed} traces in {elapsed:.1f}s "
          f"({elapsed/max(completed, 1):.1f}s avg)")

    return all_results


def print_summary(results: dict):
    """Print summary of all benchmark results."""
    print("\n" + "="*80)
    print("BENCHMARK SUMMARY")
    print("="*80)

    policy_totals = {}

    for category, traces in results.get('categories', {}).items():
        print(f"\n{category.upper()}:")
        print("-"*40)

        for trace_result in traces:
            print(f"  {trace_result['trace']}:")
            for name, stats in trace_result['policies'].items():
                line = f"    {name}: {stats['hit_rate']:.2f}% (MPKA: {stats['mpka']:.2f})"
                if stats.get('psel_final') is not None:
                    line += f" PSEL={stats['psel_final']}"
                print(line)

                totals = policy_totals.setdefault(
                    name, {'hit_sum': 0, 'mpka_sum': 0, 'count': 0})
                totals['hit_sum'] += stats['hit_rate']
                totals['mpka_sum'] += stats['mpka']
                totals['count'] += 1

    print("\n" + "="*80)
    print("OVERALL AVERAGES")
    print("="*80)

    for name, totals in sorted(policy_totals.items(),
                               key=lambda x: x[1]['mpka_sum']):
        if totals['count'] > 0:
            print(f"{name:8}: Avg hit rate: {totals['hit_sum']/totals['count']:6.2f}% | "
                  f"Avg MPKA: {totals['mpka_sum']/totals['count']:8.2f}")


def main():
    parser = argparse.ArgumentParser(description='Run cache replacement benchmarks')
    parser.add_argument('--trace-dir', '-d', type=str, default=None,
                        help='Directory containing trace files')
    parser.add_argument('--patterns', nargs='+', default=['loop', 'scan', 'random', 'mixed'],
                        help='Synthetic patterns to generate when no trace dir is given')
    parser.add_argument('--config', type=str, default=str(DEFAULT_CONFIG),
                        help='YAML configuration file')
    parser.add_argument('--accesses', '-n', type=int, default=100000,
                        help='Accesses to simulate per trace')
    parser.add_argument('--workers', '-j', type=int, default=None,
                        help='Number of parallel workers (default: CPU count - 1)')
    parser.add_argument('--output-dir', '-o', type=str, default='results',
                        help='Directory for per-trace results and the run summary')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output')

    args = parser.parse_args()

    config = load_config(args.config)
    log_config = config.get('logging', {})
    setup_logging('DEBUG' if args.verbose else log_config.get('level', 'INFO'),
                  log_config.get('log_file'))

    with tempfile.TemporaryDirectory() as tmp:
        if args.trace_dir:
            trace_dir = Path(args.trace_dir)
            if not trace_dir.exists():
                print(f"Error: Trace directory not found: {trace_dir}")
                sys.exit(1)
            traces = find_traces(trace_dir)
        else:
            traces = {'synthetic': [
                create_sample_trace(Path(tmp) / f"{pattern}.trace",
                                    num_accesses=args.accesses,
                                    pattern=pattern,
                                    working_set=config.get('cache', {}).get('num_sets', 1024) * 20)
                for pattern in args.patterns
            ]}

        if not traces:
            print("No traces found")
            sys.exit(1)

        print(f"Supported formats: {TraceParser.list_supported_formats()}")
        output_dir = Path(args.output_dir)
        save_config(config, output_dir / 'config.yaml')
        results = run_all_benchmarks(traces, config, args.accesses,
                                     args.verbose, args.workers, output_dir)

    print_summary(results)

    # analyze_results reads only the per-trace *.json files
    summary = save_results(results, output_dir, name='benchmark',
                           formats=('yaml',))

    print(f"\nPer-trace results saved to: {output_dir}")
    print(f"Run summary saved to: {summary['yaml']}")


if __name__ == '__main__':
    main()
