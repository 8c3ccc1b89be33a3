"""
Claim sets - anti-replay bookkeeping over the index space.

Each committed entry has an index. Once paid, its bit is set and never
cleared. Bits are packed into fixed-width words stored sparsely:

    word_index = index // W
    bit        = index %  W

so thousands of beneficiaries cost only ceil(N / W) stored words, and only
the words that were actually touched exist at all.

The set is a plain data structure: no validation and no failures. The
caller must check ``is_claimed`` before ``set_claimed``; setting a bit twice
is harmless but is not an anti-replay guard on its own.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterator

DEFAULT_WORD_BITS = 256


class ClaimSet(ABC):
    """
    Sparse word-indexed bitmap interface.

    Subclasses provide word storage; the bit arithmetic lives here.
    """

    def __init__(self, word_bits: int = DEFAULT_WORD_BITS):
        self.word_bits = word_bits

    @abstractmethod
    def get_word(self, word_index: int) -> int:
        """Return the packed word (0 if never written)."""

    @abstractmethod
    def set_word(self, word_index: int, word: int) -> None:
        """Overwrite a packed word."""

    def locate(self, index: int) -> tuple:
        """(word_index, bit_index) for an entry index."""
        return divmod(index, self.word_bits)

    def is_claimed(self, index: int) -> bool:
        word_index, bit_index = self.locate(index)
        mask = 1 << bit_index
        return self.get_word(word_index) & mask == mask

    def set_claimed(self, index: int) -> None:
        word_index, bit_index = self.locate(index)
        self.set_word(word_index, self.get_word(word_index) | (1 << bit_index))

    def __contains__(self, index: int) -> bool:
        return self.is_claimed(index)


class BitmapClaimSet(ClaimSet):
    """
    In-memory claim set.

    Attributes:
        words: word_index -> packed word (only non-zero words are kept)
    """

    def __init__(self, word_bits: int = DEFAULT_WORD_BITS):
        super().__init__(word_bits)
        self.words: Dict[int, int] = {}

    def get_word(self, word_index: int) -> int:
        return self.words.get(word_index, 0)

    def set_word(self, word_index: int, word: int) -> None:
        if word:
            self.words[word_index] = word
        else:
            self.words.pop(word_index, None)

    def claimed_indices(self) -> Iterator[int]:
        """Iterate claimed indices in ascending order."""
        for word_index in sorted(self.words):
            word = self.words[word_index]
            base = word_index * self.word_bits
            bit = 0
            while word:
                if word & 1:
                    yield base + bit
                word >>= 1
                bit += 1

    def __len__(self) -> int:
        return sum(bin(w).count("1") for w in self.words.values())

    def __repr__(self) -> str:
        return f"BitmapClaimSet(word_bits={self.word_bits}, words={len(self.words)}, claimed={len(self)})"
