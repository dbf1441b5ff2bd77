import pytest

from drrip.policies.drrip import DRRIPPolicy

# Small geometry: sets 0-1 lead SRRIP, 2-3 lead BIP, 4+ follow
SMALL = {'num_sets': 16, 'num_ways': 4, 'rrpv_bits': 2, 'psel_bits': 10}

FOLLOWER_SET = 8


@pytest.fixture
def engine():
    return DRRIPPolicy(dict(SMALL))


def fill_row(engine, set_index, values):
    for way, value in enumerate(values):
        engine.table.write(set_index, way, value)
