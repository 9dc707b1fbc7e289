"""
U256 Value
==========

Unsigned 256-bit integer stored as two 128-bit limbs, the way Cairo
encodes ``u256`` in calldata and events.
"""

from dataclasses import dataclass
from functools import total_ordering
from typing import List

LIMB_BITS = 128
LIMB_MASK = (1 << LIMB_BITS) - 1
MAX_U128 = LIMB_MASK


@total_ordering
@dataclass(frozen=True)
class U256:
    """Represents ``high * 2**128 + low``."""
    low: int
    high: int = 0

    def __post_init__(self):
        for name in ("low", "high"):
            limb = getattr(self, name)
            if not isinstance(limb, int) or limb < 0 or limb > MAX_U128:
                raise ValueError(f"U256 {name} limb out of range: {limb!r}")

    @classmethod
    def from_int(cls, value: int) -> "U256":
        if value < 0 or value >> (2 * LIMB_BITS):
            raise ValueError(f"Value does not fit in 256 bits: {value}")
        return cls(low=value & LIMB_MASK, high=value >> LIMB_BITS)

    @classmethod
    def zero(cls) -> "U256":
        return cls(0, 0)

    def __int__(self) -> int:
        return (self.high << LIMB_BITS) | self.low

    def __lt__(self, other: "U256") -> bool:
        if not isinstance(other, U256):
            return NotImplemented
        return (self.high, self.low) < (other.high, other.low)

    def __sub__(self, other: "U256") -> "U256":
        """
        Limb-wise subtraction with borrow.

        Saturates at zero when ``other`` is larger instead of wrapping.
        """
        if not isinstance(other, U256):
            return NotImplemented
        if self < other:
            return U256.zero()

        low = self.low - other.low
        borrow = 0
        if low < 0:
            low += 1 << LIMB_BITS
            borrow = 1
        high = self.high - other.high - borrow
        return U256(low=low, high=high)

    def to_float(self) -> float:
        """Double-precision approximation: ``low + high * 2**128``."""
        return float(self.low) + float(self.high) * 2.0 ** LIMB_BITS

    def to_calldata(self) -> List[int]:
        return [self.low, self.high]

    def __str__(self) -> str:
        return str(int(self))
