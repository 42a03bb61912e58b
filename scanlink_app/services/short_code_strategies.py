"""
Short code generation strategies.
Uses Strategy Pattern so the creation path can be driven by a
deterministic generator in tests.
"""

import string
import secrets
from abc import ABC, abstractmethod
from typing import Optional

ALPHABET = string.ascii_letters + string.digits  # 62 symbols


class ShortCodeStrategy(ABC):
    """Abstract base class for short code generation strategies"""

    @abstractmethod
    def generate(self, length: Optional[int] = None) -> str:
        """
        Generate a candidate short code.

        Args:
            length: Number of characters (strategy default when None)

        Returns:
            A code string; uniqueness is NOT checked here, the link store
            owns that invariant.
        """
        pass


class RandomShortCodeStrategy(ShortCodeStrategy):
    """
    Uniform random codes over [a-zA-Z0-9] from the OS CSPRNG.

    A short code is a bearer identifier for anyone who finds it, so it must
    not be guessable: `secrets`, never `random`.
    Default length 6 gives 62^6 (about 5.7e10) possible codes.
    """

    def __init__(self, length: int = 6):
        self.length = length
        self.characters = ALPHABET

    def generate(self, length: Optional[int] = None) -> str:
        size = self.length if length is None else length
        if size < 1:
            raise ValueError(f"Short code length must be positive, got {size}")
        return ''.join(secrets.choice(self.characters) for _ in range(size))
