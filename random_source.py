from abc import ABC, abstractmethod

import numpy as np

MASK_32 = 0xFFFFFFFF
MASK_64 = 0xFFFFFFFFFFFFFFFF

# 32-bit LCG parameters from Numerical Recipes.
LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904332


class RandomSource(ABC):
    """Source of 64-bit random draws plus the helpers built on top of them."""

    @abstractmethod
    def next_uint64(self):
        pass

    def uniform(self):
        """Uniform double in [0, 1) from the top 53 bits of a draw."""
        return (self.next_uint64() >> 11) * (1.0 / (1 << 53))

    def randint(self, upper):
        """Uniform integer in [0, upper) via multiply-shift with rejection."""
        if upper <= 0:
            raise ValueError(f"randint requires a positive upper bound, got {upper}")
        product = self.next_uint64() * upper
        low = product & MASK_64
        if low < upper:
            threshold = ((1 << 64) - upper) % upper
            while low < threshold:
                product = self.next_uint64() * upper
                low = product & MASK_64
        return product >> 64

    def shuffle(self, sequence):
        """In-place Fisher-Yates shuffle."""
        n = len(sequence)
        for i in range(n - 1):
            j = i + self.randint(n - i)
            if j != i:
                sequence[i], sequence[j] = sequence[j], sequence[i]
        return sequence

    def sample(self, population, count):
        """`count` distinct indices drawn from range(population)."""
        count = min(count, population)
        pool = list(range(population))
        for i in range(count):
            j = i + self.randint(population - i)
            pool[i], pool[j] = pool[j], pool[i]
        return pool[:count]

    def weighted_choice(self, weights):
        """Index drawn with probability proportional to its weight.

        All-zero weights return 0. If rounding leaves no cumulative fraction
        above the draw, the last index is returned.
        """
        weights = np.asarray(weights, dtype=float)
        if weights.size < 2:
            return 0
        cum_weights = np.cumsum(weights)
        total = cum_weights[-1]
        if not total > 0:
            return 0
        u = self.uniform()
        above = np.nonzero(cum_weights / total > u)[0]
        return int(above[0]) if above.size else len(cum_weights) - 1


class SystemRandomSource(RandomSource):
    """Non-deterministic source seeded from operating system entropy."""

    def __init__(self):
        self._rng = np.random.default_rng()

    def next_uint64(self):
        return int(self._rng.integers(0, MASK_64, dtype=np.uint64, endpoint=True))


class SeededRandomSource(RandomSource):
    """Reproducible linear congruential generator.

    Two chained 32-bit LCG steps are concatenated into each 64-bit draw.
    Not cryptographically secure, and not meant for very long sequences:
    use it to replicate runs and in tests.
    """

    def __init__(self, seed):
        if not 0 <= seed <= MASK_32:
            raise ValueError(f"seed must fit in 32 bits, got {seed}")
        self.state = int(seed)

    @staticmethod
    def _step(value):
        return (LCG_MULTIPLIER * value + LCG_INCREMENT) & MASK_32

    def next_uint64(self):
        first = self._step(self.state)
        second = self._step(first)
        # Historical generators reduce the state modulo 2**32 - 1, not 2**32.
        self.state = second % MASK_32
        return first ^ (second << 32)
