"""
Hardware Counters

Saturating and wrapping counters used for policy selection (PSEL)
and BIP insertion throttling.
"""


class SaturatingCounter:
    """
    Unsigned saturating counter.

    Used as the set-dueling policy selector: leader-set misses push it
    up or down, followers read it against the midpoint.
    """

    def __init__(self, bits: int, initial: int = None):
        """
        Initialize counter.

        Args:
            bits: Counter width
            initial: Reset value (defaults to the midpoint)
        """
        self.bits = bits
        self.max_value = (1 << bits) - 1
        self.mid = self.max_value // 2
        self.initial = self.mid if initial is None else initial
        self.value = self.initial

    def increment(self) -> bool:
        """Increment, saturating at max. Returns True if the value changed."""
        if self.value < self.max_value:
            self.value += 1
            return True
        return False

    def decrement(self) -> bool:
        """Decrement, saturating at zero. Returns True if the value changed."""
        if self.value > 0:
            self.value -= 1
            return True
        return False

    def at_or_above_mid(self) -> bool:
        return self.value >= self.mid

    def reset(self) -> None:
        self.value = self.initial

    def __int__(self) -> int:
        return self.value

    def __repr__(self) -> str:
        return f"SaturatingCounter(bits={self.bits}, value={self.value})"


class CyclicCounter:
    """
    Wrapping counter in [0, modulus).

    BIP uses one as a deterministic 1-in-N throttle: the insertion that
    observes zero is the rare one.
    """

    def __init__(self, modulus: int):
        self.modulus = modulus
        self.value = 0

    def advance(self) -> int:
        """Advance by one. Returns the value observed before advancing."""
        observed = self.value
        self.value = (self.value + 1) % self.modulus
        return observed

    def reset(self) -> None:
        self.value = 0

    def __int__(self) -> int:
        return self.value

    def __repr__(self) -> str:
        return f"CyclicCounter(modulus={self.modulus}, value={self.value})"
