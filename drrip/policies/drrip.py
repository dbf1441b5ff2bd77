"""
Dynamic Re-Reference Interval Prediction (DRRIP)

Hybrid replacement policy that duels two insertion policies:
1. SRRIP: every fill is inserted with a long re-reference interval
2. BIP: fills are inserted distant, except one in every 32 which is
   inserted long

A handful of leader sets are dedicated to each policy. Misses in the
leader sets move a saturating selector (PSEL); every other set adopts
whichever policy PSEL currently favours.

Hits promote the accessed way by one step. Misses run the victim
search, aging the set until some way reaches the distant value.
"""

import logging
from typing import Callable, List, Optional, Tuple

from .base import AccessResult, BaseReplacementPolicy
from ..components.counters import CyclicCounter, SaturatingCounter
from ..components.rrpv_table import MAX_RRPV_BITS, RRPVTable
from ..components.set_dueling import (
    FixedLeaderSelector,
    HashedLeaderSelector,
    InsertionPolicy,
    LeaderSetSelector,
    SetRole,
)
from ..components.victim_search import SearchState, VictimSearch
from ..exceptions import ContractViolation

logger = logging.getLogger(__name__)

# BIP inserts long once every BIP_EPSILON fills
BIP_EPSILON = 32


# =============================================================================
# Configurations
# =============================================================================

DRRIP_2BIT = {
    'num_sets': 1024,
    'num_ways': 16,
    'rrpv_bits': 2,
    'psel_bits': 10,
    'leader_selector': 'fixed',
    'leaders_per_policy': 2,
}

DRRIP_3BIT = {
    'num_sets': 1024,
    'num_ways': 16,
    'rrpv_bits': 3,
    'psel_bits': 10,
    'leader_selector': 'fixed',
    'leaders_per_policy': 2,
}

# 2MB LLC with 64B lines, 32 leaders per policy spread by hashing
DRRIP_LLC_2MB = {
    'num_sets': 2048,
    'num_ways': 16,
    'rrpv_bits': 2,
    'psel_bits': 10,
    'leader_selector': 'hashed',
    'constituency_size': 64,
}


def build_leader_selector(config: dict) -> LeaderSetSelector:
    """Create the leader-set selector named in a config dict."""
    kind = config.get('leader_selector', 'fixed')
    if kind == 'fixed':
        n = config.get('leaders_per_policy', 2)
        return FixedLeaderSelector(srrip_leaders=n, bip_leaders=n)
    if kind == 'hashed':
        return HashedLeaderSelector(
            constituency_size=config.get('constituency_size', 32),
            seed=config.get('leader_seed', 0))
    raise ValueError(f"Unknown leader selector: {kind}")


class DRRIPPolicy(BaseReplacementPolicy):
    """
    DRRIP replacement engine for one cache.

    All state (RRPV table, PSEL, BIP epsilon counter, victim search) is
    owned by the instance; separate caches need separate instances.
    """

    def __init__(self, config: Optional[dict] = None,
                 leader_selector: Optional[LeaderSetSelector] = None,
                 name: str = "DRRIP"):
        """
        Initialize DRRIP.

        Args:
            config: Geometry and counter widths (see DRRIP_2BIT)
            leader_selector: Overrides the selector named in config
            name: Name identifier
        """
        config = dict(DRRIP_2BIT if config is None else config)
        super().__init__(name, config)

        self.leader_selector = leader_selector or build_leader_selector(config)
        self._observers: List[Callable[[AccessResult], None]] = []

        self.configure(num_ways=config.get('num_ways', 16),
                       num_sets=config.get('num_sets', 1024),
                       rrpv_bits=config.get('rrpv_bits', 2),
                       psel_bits=config.get('psel_bits', 10))

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def configure(self, num_ways: int, num_sets: int,
                  rrpv_bits: int = 2, psel_bits: int = 10) -> None:
        """(Re)build all state for the given geometry and reset it."""
        for label, value in (('num_ways', num_ways), ('num_sets', num_sets),
                             ('rrpv_bits', rrpv_bits),
                             ('psel_bits', psel_bits)):
            if not isinstance(value, int) or value < 1:
                raise ContractViolation(
                    f"{label} must be a positive integer, got {value!r}")
        if rrpv_bits > MAX_RRPV_BITS:
            raise ContractViolation(
                f"rrpv_bits must be at most {MAX_RRPV_BITS}, got {rrpv_bits}")
        if rrpv_bits == 1:
            logger.warning("rrpv_bits=1 leaves no long insertion value; "
                           "SRRIP and BIP collapse to the same behaviour")

        self.num_ways = num_ways
        self.num_sets = num_sets
        self.rrpv_bits = rrpv_bits
        self.psel_bits = psel_bits
        self.config.update(num_ways=num_ways, num_sets=num_sets,
                           rrpv_bits=rrpv_bits, psel_bits=psel_bits)

        self.table = RRPVTable(num_sets, num_ways, rrpv_bits)
        self.search = VictimSearch(self.table)
        self.psel_counter = SaturatingCounter(psel_bits)
        self.epsilon = CyclicCounter(BIP_EPSILON)
        self._psel_latched = False

        logger.info("%s configured: %d sets x %d ways, %d-bit RRPV, "
                    "%d-bit PSEL, %r", self.name, num_sets, num_ways,
                    rrpv_bits, psel_bits, self.leader_selector)
        self.reset()

    def reset(self) -> None:
        """Clear RRPVs to distant, PSEL to its midpoint, BIP counter to 0."""
        super().reset()
        self.table.reset_all()
        self.psel_counter.reset()
        self.epsilon.reset()
        self.search.reset()
        self._psel_latched = False

    def add_observer(self, callback: Callable[[AccessResult], None]) -> None:
        """Register a callback invoked with every resolved miss."""
        self._observers.append(callback)

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------

    @property
    def rrpv_max(self) -> int:
        return self.table.rrpv_max

    @property
    def rrpv_long(self) -> int:
        return self.table.rrpv_long

    @property
    def psel(self) -> int:
        return self.psel_counter.value

    @property
    def psel_max(self) -> int:
        return self.psel_counter.max_value

    @property
    def psel_mid(self) -> int:
        return self.psel_counter.mid

    @property
    def bip_counter(self) -> int:
        return self.epsilon.value

    @property
    def state(self) -> SearchState:
        return self.search.state

    def rrpv_snapshot(self):
        """Copy of the full RRPV table, shape (num_sets, num_ways)."""
        return self.table.snapshot()

    def role(self, set_index: int) -> SetRole:
        return self.leader_selector.role(set_index)

    def effective_policy(self, set_index: int) -> InsertionPolicy:
        return self._classify(set_index)[1]

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    def _classify(self, set_index: int) -> Tuple[SetRole, InsertionPolicy]:
        role = self.leader_selector.role(set_index)
        if role is SetRole.SRRIP_LEADER:
            return role, InsertionPolicy.SRRIP
        if role is SetRole.BIP_LEADER:
            return role, InsertionPolicy.BIP
        if self.psel_counter.at_or_above_mid():
            return role, InsertionPolicy.SRRIP
        return role, InsertionPolicy.BIP

    def access(self, set_index: int, way: Optional[int],
               is_hit: bool) -> AccessResult:
        """
        Present one resolved access.

        A hit promotes `way`. A miss runs the victim search to completion,
        fills the victim according to the policy in effect at commit time
        and returns the victim way.
        """
        self._validate(set_index, way, is_hit)
        if self.search.busy:
            raise ContractViolation(
                f"access to set {set_index} while a miss is outstanding")

        if is_hit:
            role, policy = self._classify(set_index)
            self._promote(set_index, way)
            self.stats.record_hit()
            return AccessResult(victim_way=None, policy=policy, role=role,
                                set_index=set_index)

        return self._resolve_miss(set_index)

    def _promote(self, set_index: int, way: int) -> None:
        current = self.table.read(set_index, way)
        if current > 0:
            self.table.write(set_index, way, current - 1)

    def _update_psel(self, role: SetRole) -> None:
        # One update per miss transaction
        if self._psel_latched:
            return
        self._psel_latched = True
        if role is SetRole.SRRIP_LEADER:
            self.psel_counter.decrement()
        elif role is SetRole.BIP_LEADER:
            self.psel_counter.increment()

    def _insertion_rrpv(self, policy: InsertionPolicy) -> int:
        if policy is InsertionPolicy.SRRIP:
            return self.table.rrpv_long
        if self.epsilon.advance() == 0:
            return self.table.rrpv_long
        return self.table.rrpv_max

    def _resolve_miss(self, set_index: int) -> AccessResult:
        self.search.start(set_index)
        try:
            self._update_psel(self.leader_selector.role(set_index))
            victim = self.search.run()

            role, policy = self._classify(set_index)
            rrpv = self._insertion_rrpv(policy)
            self.table.write(set_index, victim, rrpv)

            result = AccessResult(victim_way=victim, policy=policy,
                                  role=role, inserted_rrpv=rrpv,
                                  aging_passes=self.search.aging_passes,
                                  set_index=set_index)
            self.stats.record_miss(result, self.table.rrpv_max)

            for observer in self._observers:
                observer(result)
        finally:
            if self.search.found:
                self.search.commit()
            else:
                self.search.reset()
            self._psel_latched = False

        return result

    def get_hardware_cost(self) -> dict:
        rrpv_bits = self.table.get_storage_bits()
        # log2(32) bits for the epsilon counter
        total_bits = rrpv_bits + self.psel_bits + 5
        return {
            'rrpv_bits': rrpv_bits,
            'psel_bits': self.psel_bits,
            'epsilon_bits': 5,
            'total_bits': total_bits,
            'total_bytes': total_bits // 8,
            'total_kb': total_bits / 8 / 1024
        }

    def get_duel_state(self) -> dict:
        """Summary of the set-dueling state."""
        leaders = self.leader_selector.leaders(self.num_sets)
        return {
            'psel': self.psel,
            'psel_mid': self.psel_mid,
            'follower_policy': (InsertionPolicy.SRRIP.value
                                if self.psel_counter.at_or_above_mid()
                                else InsertionPolicy.BIP.value),
            'srrip_leaders': len(leaders[SetRole.SRRIP_LEADER]),
            'bip_leaders': len(leaders[SetRole.BIP_LEADER]),
            'bip_counter': self.bip_counter,
        }


class SRRIPPolicy(DRRIPPolicy):
    """Static RRIP on every set (baseline, no dueling)."""

    def __init__(self, config: Optional[dict] = None):
        super().__init__(config, name="SRRIP")

    def _classify(self, set_index: int) -> Tuple[SetRole, InsertionPolicy]:
        return SetRole.FOLLOWER, InsertionPolicy.SRRIP

    def _update_psel(self, role: SetRole) -> None:
        pass

    def get_hardware_cost(self) -> dict:
        total_bits = self.table.get_storage_bits()
        return {
            'rrpv_bits': total_bits,
            'total_bits': total_bits,
            'total_bytes': total_bits // 8,
            'total_kb': total_bits / 8 / 1024
        }


class BIPPolicy(DRRIPPolicy):
    """Static bimodal insertion on every set (baseline, no dueling)."""

    def __init__(self, config: Optional[dict] = None):
        super().__init__(config, name="BIP")

    def _classify(self, set_index: int) -> Tuple[SetRole, InsertionPolicy]:
        return SetRole.FOLLOWER, InsertionPolicy.BIP

    def _update_psel(self, role: SetRole) -> None:
        pass

    def get_hardware_cost(self) -> dict:
        total_bits = self.table.get_storage_bits() + 5
        return {
            'rrpv_bits': self.table.get_storage_bits(),
            'epsilon_bits': 5,
            'total_bits': total_bits,
            'total_bytes': total_bits // 8,
            'total_kb': total_bits / 8 / 1024
        }
