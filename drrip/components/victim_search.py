"""
Victim Selection State Machine

Finds a replaceable way in an RRIP-managed set, aging the set until
one qualifies.
"""

import logging
from enum import Enum
from typing import Optional

from .rrpv_table import RRPVTable
from ..exceptions import ContractViolation, SearchDidNotConverge

logger = logging.getLogger(__name__)


class SearchState(Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    AGING = "aging"
    FOUND = "found"


class VictimSearch:
    """
    IDLE -> SEARCHING -> (AGING -> SEARCHING)* -> FOUND -> IDLE

    SEARCHING picks the lowest way whose RRPV equals rrpv_max. When no
    way qualifies, AGING bumps every way below rrpv_max by one and the
    machine always re-searches. Each aging pass raises the largest RRPV
    in the set by one, so at most rrpv_max - max(row) passes are needed.
    """

    def __init__(self, table: RRPVTable):
        self.table = table
        self.reset()

    def reset(self) -> None:
        self.state = SearchState.IDLE
        self.set_index: Optional[int] = None
        self.victim_way: Optional[int] = None
        self.aging_passes = 0

    @property
    def busy(self) -> bool:
        return self.state is not SearchState.IDLE

    @property
    def found(self) -> bool:
        return self.state is SearchState.FOUND

    def start(self, set_index: int) -> None:
        """Begin a transaction on a miss."""
        if self.busy:
            raise ContractViolation(
                f"miss on set {set_index} submitted while set "
                f"{self.set_index} is still being resolved")
        self.table._check(set_index)
        self.set_index = set_index
        self.victim_way = None
        self.aging_passes = 0
        self.state = SearchState.SEARCHING

    def step(self) -> SearchState:
        """Advance one transition and return the new state."""
        if self.state is SearchState.SEARCHING:
            way = self.table.first_at(self.set_index, self.table.rrpv_max)
            if way is None:
                self.state = SearchState.AGING
            else:
                self.victim_way = way
                self.state = SearchState.FOUND
        elif self.state is SearchState.AGING:
            self.table.age(self.set_index)
            self.aging_passes += 1
            self.state = SearchState.SEARCHING
        elif self.state is SearchState.FOUND:
            raise ContractViolation("victim found but not yet committed")
        else:
            raise ContractViolation("no miss outstanding")
        return self.state

    def run(self) -> int:
        """Step until a victim is found. Returns the victim way."""
        # Each aging pass is followed by a search, hence the factor of two
        limit = 2 * (self.table.rrpv_max + 1) + 1
        for _ in range(limit):
            if self.step() is SearchState.FOUND:
                break
        else:
            raise SearchDidNotConverge(
                f"victim search on set {self.set_index} did not converge")

        if self.aging_passes:
            logger.debug("set %d: victim way %d after %d aging pass(es)",
                         self.set_index, self.victim_way, self.aging_passes)
        return self.victim_way

    def commit(self) -> int:
        """Release the transaction (FOUND -> IDLE). Returns the victim way."""
        if not self.found:
            raise ContractViolation("commit without a found victim")
        way = self.victim_way
        self.state = SearchState.IDLE
        return way
