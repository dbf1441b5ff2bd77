import logging
import random

import numpy as np
import pytest

from drrip.components.set_dueling import InsertionPolicy, SetRole
from drrip.components.victim_search import SearchState
from drrip.exceptions import ContractViolation
from drrip.policies.base import LRUPolicy
from drrip.policies.drrip import BIP_EPSILON, BIPPolicy, DRRIPPolicy, SRRIPPolicy

from conftest import FOLLOWER_SET, SMALL, fill_row


class TestReset:

    def test_initial_state(self, engine):
        assert np.all(engine.rrpv_snapshot() == 3)
        assert engine.psel == 511
        assert engine.bip_counter == 0
        assert engine.state is SearchState.IDLE

    def test_reset_restores_everything(self, engine):
        for _ in range(5):
            engine.access(0, None, False)
            engine.access(2, None, False)
        engine.access(FOLLOWER_SET, 0, True)
        engine.reset()
        assert np.all(engine.rrpv_snapshot() == engine.rrpv_max)
        assert engine.psel == engine.psel_mid
        assert engine.bip_counter == 0
        assert engine.stats.accesses == 0

    def test_reset_is_idempotent(self, engine):
        engine.access(2, None, False)
        engine.reset()
        once = (engine.rrpv_snapshot(), engine.psel, engine.bip_counter)
        engine.reset()
        twice = (engine.rrpv_snapshot(), engine.psel, engine.bip_counter)
        assert np.array_equal(once[0], twice[0])
        assert once[1:] == twice[1:]

    def test_default_config(self):
        engine = DRRIPPolicy()
        assert engine.num_sets == 1024
        assert engine.num_ways == 16
        assert engine.psel == 511


class TestSRRIPLeader:

    def test_first_miss(self, engine):
        result = engine.access(0, None, False)
        assert result.victim_way == 0
        assert result.policy is InsertionPolicy.SRRIP
        assert result.role is SetRole.SRRIP_LEADER
        assert result.inserted_rrpv == 2
        assert result.aging_passes == 0
        assert engine.rrpv_snapshot()[0].tolist() == [2, 3, 3, 3]
        assert engine.psel == 510

    def test_result_unpacks_as_pair(self, engine):
        victim, policy = engine.access(1, None, False)
        assert victim == 0
        assert policy is InsertionPolicy.SRRIP

    def test_leader_ignores_psel(self, engine):
        for _ in range(600):
            engine.access(0, None, False)
        assert engine.psel == 0
        assert engine.effective_policy(0) is InsertionPolicy.SRRIP
        assert engine.effective_policy(2) is InsertionPolicy.BIP


class TestBIPLeader:

    def test_32_misses_insert_long_exactly_once(self, engine):
        inserted = []
        observed = []
        for _ in range(BIP_EPSILON):
            observed.append(engine.bip_counter)
            result = engine.access(2, None, False)
            assert result.policy is InsertionPolicy.BIP
            inserted.append(result.inserted_rrpv)

        assert observed == list(range(32))
        assert inserted.count(engine.rrpv_long) == 1
        assert inserted.count(engine.rrpv_max) == 31
        assert inserted[0] == engine.rrpv_long
        assert engine.bip_counter == 0
        assert engine.psel == 511 + 32

    def test_epsilon_untouched_by_srrip_fills(self, engine):
        engine.access(0, None, False)
        engine.access(FOLLOWER_SET, None, False)
        assert engine.bip_counter == 0

    def test_psel_saturates_high(self):
        engine = DRRIPPolicy(dict(SMALL, psel_bits=2))
        assert engine.psel == 1
        for _ in range(10):
            engine.access(3, None, False)
        assert engine.psel == 3


class TestFollower:

    def test_hit_promotion_then_eviction_order(self, engine):
        engine.access(FOLLOWER_SET, 1, True)
        assert engine.rrpv_snapshot()[FOLLOWER_SET].tolist() == [3, 2, 3, 3]

        victims = [engine.access(FOLLOWER_SET, None, False).victim_way
                   for _ in range(3)]
        assert victims == [0, 2, 3]
        assert engine.psel == 511
        assert engine.rrpv_snapshot()[FOLLOWER_SET].tolist() == [2, 2, 2, 2]

        # Now way 1 only becomes eligible through aging
        result = engine.access(FOLLOWER_SET, None, False)
        assert result.aging_passes == 1
        assert result.victim_way == 0

    def test_follower_uses_srrip_at_midpoint(self, engine):
        assert engine.psel == engine.psel_mid
        assert engine.effective_policy(FOLLOWER_SET) is InsertionPolicy.SRRIP

    def test_srrip_leader_miss_moves_followers_to_bip(self, engine):
        engine.access(0, None, False)
        assert engine.effective_policy(FOLLOWER_SET) is InsertionPolicy.BIP

        result = engine.access(FOLLOWER_SET, None, False)
        assert result.policy is InsertionPolicy.BIP
        assert result.role is SetRole.FOLLOWER
        assert result.inserted_rrpv == engine.rrpv_long
        assert engine.bip_counter == 1
        # Follower misses never vote
        assert engine.psel == 510

    def test_bip_leader_miss_moves_followers_back(self, engine):
        engine.access(0, None, False)
        engine.access(2, None, False)
        assert engine.psel == 511
        assert engine.effective_policy(FOLLOWER_SET) is InsertionPolicy.SRRIP

    def test_no_premature_victim(self, engine):
        fill_row(engine, FOLLOWER_SET, [1, 2, 1, 0])
        result = engine.access(FOLLOWER_SET, None, False)
        assert result.aging_passes == 1
        assert result.victim_way == 1
        assert engine.rrpv_snapshot()[FOLLOWER_SET].tolist() == [2, 2, 2, 1]


class TestHitPromotion:

    def test_hit_decrements_by_one(self, engine):
        result = engine.access(FOLLOWER_SET, 2, True)
        assert result.victim_way is None
        assert result.is_hit
        assert result.inserted_rrpv is None
        assert engine.table.read(FOLLOWER_SET, 2) == 2

    def test_repeated_hits_converge_to_zero(self, engine):
        previous = engine.table.read(FOLLOWER_SET, 0)
        for _ in range(10):
            engine.access(FOLLOWER_SET, 0, True)
            current = engine.table.read(FOLLOWER_SET, 0)
            assert current <= previous
            previous = current
        assert previous == 0

    def test_hits_touch_no_counters(self, engine):
        engine.access(0, 0, True)
        engine.access(2, 0, True)
        assert engine.psel == 511
        assert engine.bip_counter == 0


class TestInvariants:

    def test_random_stream_keeps_bounds(self):
        engine = DRRIPPolicy(dict(SMALL, psel_bits=4))
        rng = random.Random(1234)
        psel_before = engine.psel

        for _ in range(5000):
            set_index = rng.randrange(engine.num_sets)
            if rng.random() < 0.4:
                result = engine.access(set_index, rng.randrange(4), True)
            else:
                result = engine.access(set_index, None, False)
                assert result.aging_passes <= engine.rrpv_max

            snap = engine.rrpv_snapshot()
            assert snap.min() >= 0
            assert snap.max() <= engine.rrpv_max
            assert 0 <= engine.psel <= engine.psel_max
            assert abs(engine.psel - psel_before) <= 1
            assert 0 <= engine.bip_counter < BIP_EPSILON
            psel_before = engine.psel

    def test_instances_are_independent(self):
        a = DRRIPPolicy(dict(SMALL))
        b = DRRIPPolicy(dict(SMALL))
        a.access(0, None, False)
        a.access(2, None, False)
        a.access(2, None, False)
        assert b.psel == 511
        assert b.bip_counter == 0
        assert np.all(b.rrpv_snapshot() == 3)


class TestObservers:

    def test_observer_sees_every_miss_once(self, engine):
        seen = []
        engine.add_observer(seen.append)
        fill_row(engine, FOLLOWER_SET, [0, 0, 0, 0])
        engine.access(FOLLOWER_SET, None, False)
        engine.access(FOLLOWER_SET, 0, True)
        assert len(seen) == 1
        assert seen[0].aging_passes == 3
        assert seen[0].set_index == FOLLOWER_SET

    def test_reentrant_access_is_a_violation(self, engine):
        def reenter(result):
            engine.access(FOLLOWER_SET, None, False)

        engine.add_observer(reenter)
        with pytest.raises(ContractViolation):
            engine.access(0, None, False)
        assert engine.state is SearchState.IDLE


class TestContract:

    @pytest.mark.parametrize("set_index,way,is_hit", [
        (16, 0, True),
        (-1, None, False),
        (0, 4, True),
        (0, None, True),
        (0, 0, 1),
        (0, 0, "yes"),
    ])
    def test_violations(self, engine, set_index, way, is_hit):
        with pytest.raises(ContractViolation):
            engine.access(set_index, way, is_hit)

    def test_violation_is_a_value_error(self, engine):
        with pytest.raises(ValueError):
            engine.access(99, None, False)

    def test_numpy_bool_accepted(self, engine):
        result = engine.access(FOLLOWER_SET, 1, np.bool_(True))
        assert result.is_hit

    @pytest.mark.parametrize("field", ['num_ways', 'num_sets', 'rrpv_bits', 'psel_bits'])
    def test_invalid_geometry(self, field):
        with pytest.raises(ContractViolation):
            DRRIPPolicy(dict(SMALL, **{field: 0}))

    def test_one_bit_rrpv_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="drrip"):
            engine = DRRIPPolicy(dict(SMALL, rrpv_bits=1))
        assert "rrpv_bits=1" in caplog.text
        # Still converges
        engine.access(FOLLOWER_SET, 0, True)
        assert engine.access(FOLLOWER_SET, None, False).victim_way == 1


class TestConfigure:

    def test_reconfigure(self, engine):
        engine.access(0, None, False)
        engine.configure(num_ways=8, num_sets=32, rrpv_bits=3, psel_bits=4)
        assert engine.rrpv_snapshot().shape == (32, 8)
        assert engine.rrpv_max == 7
        assert engine.rrpv_long == 6
        assert engine.psel == 7
        assert engine.access(31, 7, True).is_hit

    @pytest.mark.parametrize("bits", [9, 16, 33, 64])
    def test_wide_rrpv(self, bits):
        engine = DRRIPPolicy(dict(SMALL, rrpv_bits=bits))
        top = (1 << bits) - 1
        assert engine.rrpv_max == top
        result = engine.access(FOLLOWER_SET, None, False)
        assert result.victim_way == 0
        assert result.inserted_rrpv == top - 1
        engine.access(FOLLOWER_SET, 0, True)
        assert int(engine.rrpv_snapshot()[FOLLOWER_SET, 0]) == top - 2

    @pytest.mark.parametrize("bits", [65, 100])
    def test_too_wide_rrpv_rejected(self, bits):
        with pytest.raises(ContractViolation):
            DRRIPPolicy(dict(SMALL, rrpv_bits=bits))

    def test_reconfigure_rejects_too_wide_rrpv(self, engine):
        with pytest.raises(ContractViolation):
            engine.configure(num_ways=4, num_sets=16, rrpv_bits=65)
        assert engine.rrpv_max == 3

    def test_hardware_cost(self, engine):
        cost = engine.get_hardware_cost()
        assert cost['rrpv_bits'] == 16 * 4 * 2
        assert cost['total_bits'] == 16 * 4 * 2 + 10 + 5

    def test_duel_state(self, engine):
        engine.access(0, None, False)
        state = engine.get_duel_state()
        assert state['psel'] == 510
        assert state['follower_policy'] == 'BIP'
        assert state['srrip_leaders'] == 2
        assert state['bip_leaders'] == 2


class TestBaselines:

    def test_srrip_ignores_leaders(self):
        policy = SRRIPPolicy(dict(SMALL))
        result = policy.access(2, None, False)
        assert result.policy is InsertionPolicy.SRRIP
        assert result.inserted_rrpv == 2
        assert policy.psel == policy.psel_mid

    def test_bip_everywhere(self):
        policy = BIPPolicy(dict(SMALL))
        results = [policy.access(0, None, False) for _ in range(3)]
        assert all(r.policy is InsertionPolicy.BIP for r in results)
        assert [r.inserted_rrpv for r in results] == [2, 3, 3]
        assert policy.psel == policy.psel_mid

    def test_lru(self):
        policy = LRUPolicy(dict(SMALL))
        victims = [policy.access(5, None, False).victim_way for _ in range(4)]
        assert victims == [0, 1, 2, 3]
        policy.access(5, 0, True)
        assert policy.access(5, None, False).victim_way == 1
        assert policy.stats.hits == 1
        assert policy.stats.misses == 5

    def test_lru_contract(self):
        policy = LRUPolicy(dict(SMALL))
        with pytest.raises(ContractViolation):
            policy.access(0, 9, True)

    def test_stats_breakdown(self, engine):
        engine.access(0, None, False)
        engine.access(2, None, False)
        engine.access(2, None, False)
        engine.access(FOLLOWER_SET, 0, True)
        stats = engine.stats.to_dict()
        assert stats['accesses'] == 4
        assert stats['hits'] == 1
        assert stats['srrip_insertions'] == 1
        assert stats['bip_insertions'] == 2
        assert stats['long_insertions'] == 2
        assert stats['distant_insertions'] == 1
