#!/usr/bin/env python3
"""
Analyze saved simulation results.

Usage:
    python analyze_results.py --results results/
    python analyze_results.py --results "results/synthetic_*.json" --compare
"""

import argparse
import json
from pathlib import Path
from typing import Dict, Iterable, List


def load_results(paths: Iterable[Path]) -> List[Dict]:
    """Load saved SimulationResults files, skipping anything else."""
    results = []

    for result_file in paths:
        with open(result_file) as f:
            data = json.load(f)
        if not isinstance(data, dict) or 'policy_results' not in data:
            print(f"Skipping {result_file.name}: not a simulation result")
            continue
        data['_filename'] = result_file.name
        results.append(data)

    return results


def print_summary(results: List[Dict]) -> None:
    """Print summary of results."""
    print("\n" + "="*70)
    print("RESULTS SUMMARY")
    print("="*70)

    for result in results:
        print(f"\n{result.get('trace_name', 'Unknown')}:")
        print(f"  Accesses: {result.get('accesses_simulated', 0):,}")
        print(f"  Time: {result.get('elapsed_time', 0):.2f}s")

        for name, stats in result.get('policy_results', {}).items():
            print(f"\n  {name}:")
            print(f"    Hit rate: {stats.get('hit_rate', 0)*100:.4f}%")
            print(f"    MPKA: {stats.get('mpka', 0):.4f}")
            duel = stats.get('duel')
            if duel:
                print(f"    PSEL: {duel['psel']} -> followers use "
                      f"{duel['follower_policy']}")


def generate_comparison_table(results: List[Dict]) -> str:
    """Generate hit-rate comparison table in markdown format."""
    if not results:
        return "No results to compare"

    all_policies = set()
    for r in results:
        all_policies.update(r.get('policy_results', {}).keys())
    all_policies = sorted(all_policies)

    lines = [
        "| Trace | " + " | ".join(all_policies) + " |",
        "|" + "---|" * (len(all_policies) + 1)
    ]

    for result in results:
        trace_name = Path(result.get('trace_name', 'Unknown')).stem
        values = []
        for name in all_policies:
            stats = result.get('policy_results', {}).get(name, {})
            values.append(f"{stats.get('hit_rate', float('nan'))*100:.2f}%")

        lines.append(f"| {trace_name} | " + " | ".join(values) + " |")

    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Analyze simulation results")
    parser.add_argument('--results', '-r', type=str, required=True,
                        help='Results directory or file pattern')
    parser.add_argument('--compare', '-c', action='store_true',
                        help='Generate comparison table')

    args = parser.parse_args()

    results_path = Path(args.results)

    if results_path.is_dir():
        results = load_results(sorted(results_path.glob("*.json")))
    else:
        results = load_results(sorted(Path('.').glob(args.results)))

    if not results:
        print("No results found")
        return

    print(f"Loaded {len(results)} result file(s)")

    print_summary(results)

    if args.compare:
        print("\n" + "="*70)
        print("COMPARISON TABLE (Markdown)")
        print("="*70)
        print(generate_comparison_table(results))


if __name__ == "__main__":
    main()
