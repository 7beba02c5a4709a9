"""
XorShift128 RNG - the single deterministic random source of a run.

Every random decision in the engine (deck shuffles, enemy sampling, dodge
rolls, shop stock, random-suit picks) draws from one Random instance owned
by the GameEngine. A run is a pure function of its seed and the number and
order of draws, so callers must never reorder or add draws casually.

Usage:
    rng = Random("my-seed")
    rng.next()          # float in [0, 1)
    rng.next_int(1, 6)  # int in [1, 6] inclusive
"""

from __future__ import annotations

from typing import Optional, Union

MASK_64 = 0xFFFFFFFFFFFFFFFF

FNV_OFFSET_BASIS = 0xCBF29CE484222325
FNV_PRIME = 0x100000001B3


class XorShift128:
    """
    XorShift128+ PRNG.

    State is two 64-bit integers (seed0, seed1), derived from the seed with
    the MurmurHash3 finalizer.
    """

    def __init__(self, seed: int, seed1: Optional[int] = None):
        if seed1 is not None:
            # Two-argument form: set state directly (used by copy())
            self.seed0 = seed & MASK_64
            self.seed1 = seed1 & MASK_64
        else:
            if seed == 0:
                seed = -0x8000000000000000
            self.seed0 = self._murmur_hash3(seed)
            self.seed1 = self._murmur_hash3(self.seed0)

    @staticmethod
    def _murmur_hash3(x: int) -> int:
        """MurmurHash3 finalizer - used for seed initialization."""
        x = x & MASK_64
        x ^= x >> 33
        x = (x * 0xff51afd7ed558ccd) & MASK_64
        x ^= x >> 33
        x = (x * 0xc4ceb9fe1a85ec53) & MASK_64
        x ^= x >> 33
        return x

    def _next_long(self) -> int:
        """Next unsigned 64-bit value."""
        s1 = self.seed0
        s0 = self.seed1
        self.seed0 = s0
        s1 ^= (s1 << 23) & MASK_64
        self.seed1 = (s1 ^ s0 ^ (s1 >> 17) ^ (s0 >> 26)) & MASK_64
        return (self.seed0 + self.seed1) & MASK_64

    def next_double(self) -> float:
        """Random double in [0, 1) from the top 53 bits."""
        return (self._next_long() >> 11) / (1 << 53)

    def copy(self) -> 'XorShift128':
        return XorShift128(self.seed0, self.seed1)


class Random:
    """
    Counted wrapper around XorShift128.

    `counter` is the number of draws made so far; Random(seed, counter)
    rebuilds a generator positioned after `counter` draws.
    """

    def __init__(self, seed: Union[int, str], counter: int = 0):
        self.seed = seed_to_long(seed) if isinstance(seed, str) else int(seed)
        self._rng = XorShift128(self.seed)
        self.counter = 0

        for _ in range(counter):
            self.next()

    def next(self) -> float:
        """Random float in [0, 1)."""
        self.counter += 1
        return self._rng.next_double()

    def next_int(self, minimum: int, maximum: int) -> int:
        """Random int in [minimum, maximum] INCLUSIVE. Consumes one draw."""
        if maximum < minimum:
            raise ValueError(f"empty range [{minimum}, {maximum}]")
        return minimum + int(self.next() * (maximum - minimum + 1))

    def random_boolean_chance(self, chance: float) -> bool:
        """True with probability `chance`. Consumes one draw."""
        return self.next() < chance

    def copy(self) -> 'Random':
        new = Random.__new__(Random)
        new.seed = self.seed
        new._rng = self._rng.copy()
        new.counter = self.counter
        return new


def seed_to_long(seed_string: str) -> int:
    """
    Convert a seed string to a 64-bit integer.

    Purely numeric strings (optionally negative) are taken as plain integers
    so that replays written with numeric seeds round-trip. Anything else is
    hashed with 64-bit FNV-1a over its UTF-8 bytes.
    """
    stripped = seed_string.strip()
    if stripped.lstrip('-').isdigit():
        return int(stripped)

    result = FNV_OFFSET_BASIS
    for byte in seed_string.encode("utf-8"):
        result ^= byte
        result = (result * FNV_PRIME) & MASK_64
    return result
