#!/usr/bin/env python3
"""
Debug script for the DRRIP engine.

Shows:
1. The victim search stepping through SEARCHING/AGING for a given set
2. PSEL movement and follower policy while replaying a synthetic pattern

Usage:
    python scripts/debug_drrip.py --rrpvs 1 2 1 0
    python scripts/debug_drrip.py --pattern mixed -n 50000
"""

import sys
from pathlib import Path
import argparse
from collections import Counter

# Add project to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from drrip.components.victim_search import SearchState
from drrip.policies.drrip import DRRIPPolicy, DRRIP_2BIT
from drrip.simulation.cache import CacheConfig, SetAssociativeCache
from drrip.trace.parser import generate_accesses


def trace_victim_search(rrpvs, rrpv_bits: int = 2) -> None:
    """Step the victim search on one set, printing every transition."""
    engine = DRRIPPolicy({'num_sets': 8, 'num_ways': len(rrpvs),
                          'rrpv_bits': rrpv_bits, 'psel_bits': 10})
    set_index = 4  # a follower set
    for way, value in enumerate(rrpvs):
        engine.table.write(set_index, way, value)

    search = engine.search
    search.start(set_index)
    print(f"{'step':>4}  {'state':<10} rrpvs")
    print(f"{0:>4}  {search.state.value:<10} {engine.table.row(set_index).tolist()}")

    step = 0
    while search.state is not SearchState.FOUND:
        step += 1
        search.step()
        print(f"{step:>4}  {search.state.value:<10} {engine.table.row(set_index).tolist()}")

    way = search.commit()
    print(f"\nVictim: way {way} after {search.aging_passes} aging pass(es)")


def trace_duel(pattern: str, num_accesses: int, sample_every: int) -> None:
    """Replay a synthetic stream and report PSEL over time."""
    config = dict(DRRIP_2BIT, num_sets=64, num_ways=16)
    engine = DRRIPPolicy(config)
    cache = SetAssociativeCache(CacheConfig(num_sets=64, num_ways=16), engine)

    fills = Counter()
    engine.add_observer(lambda result: fills.update([result.policy.value]))

    accesses = generate_accesses(num_accesses, pattern, working_set=64 * 20)
    print(f"{'access':>8}  {'psel':>5}  follower  hit rate")
    hits = 0
    for i, access in enumerate(accesses, 1):
        hits += cache.access(access.address).hit
        if i % sample_every == 0:
            state = engine.get_duel_state()
            print(f"{i:>8}  {state['psel']:>5}  {state['follower_policy']:<8}  "
                  f"{hits / i * 100:6.2f}%")

    print(f"\nFills by policy: {dict(fills)}")
    print(f"Engine stats: {engine.stats}")


def main():
    parser = argparse.ArgumentParser(description='Debug DRRIP internals')
    parser.add_argument('--rrpvs', type=int, nargs='+', default=None,
                        help='Initial RRPVs of one set to trace the victim search')
    parser.add_argument('--rrpv-bits', type=int, default=2)
    parser.add_argument('--pattern', type=str, default='mixed',
                        help='Synthetic pattern for the PSEL trace')
    parser.add_argument('--accesses', '-n', type=int, default=20000)
    parser.add_argument('--sample-every', type=int, default=2000)

    args = parser.parse_args()

    if args.rrpvs:
        trace_victim_search(args.rrpvs, args.rrpv_bits)
    else:
        trace_duel(args.pattern, args.accesses, args.sample_every)


if __name__ == '__main__':
    main()
