"""
Mint Safety Filter - Mint Address Handling

This module provides the MintAddress value type: an immutable 32-byte
identifier for a token mint with a canonical base58 string form.
"""

import re
from functools import total_ordering
from typing import Union

import base58

from .exceptions import InvalidMintAddressError


ADDRESS_LENGTH = 32

# Base58 alphabet without 0, O, I and l; 32-byte keys encode to 32-44 characters
_BASE58_PATTERN = re.compile(r'^[1-9A-HJ-NP-Za-km-z]{32,44}$')


@total_ordering
class MintAddress:
    """Immutable, hashable 32-byte mint identifier."""
    
    __slots__ = ("_key",)
    
    def __init__(self, key: bytes):
        if not isinstance(key, (bytes, bytearray)):
            raise InvalidMintAddressError(f"Mint address must be bytes, got {type(key).__name__}")
        if len(key) != ADDRESS_LENGTH:
            raise InvalidMintAddressError(
                f"Mint address must be {ADDRESS_LENGTH} bytes, got {len(key)}"
            )
        object.__setattr__(self, "_key", bytes(key))
    
    def __setattr__(self, name, value):
        raise AttributeError("MintAddress is immutable")
    
    @classmethod
    def from_string(cls, value: str) -> 'MintAddress':
        """
        Parse a base58-encoded mint address.
        
        Args:
            value: Base58 address string
            
        Returns:
            MintAddress instance
            
        Raises:
            InvalidMintAddressError: If the string is not a valid 32-byte base58 key
        """
        value = value.strip()
        if not _BASE58_PATTERN.match(value):
            raise InvalidMintAddressError(f"Invalid base58 mint address: {value!r}")
        
        decoded = base58.b58decode(value)
        if len(decoded) != ADDRESS_LENGTH:
            raise InvalidMintAddressError(
                f"Mint address {value!r} decodes to {len(decoded)} bytes"
            )
        return cls(decoded)
    
    @classmethod
    def coerce(cls, value: Union['MintAddress', str, bytes]) -> 'MintAddress':
        """Convert a string, raw bytes, or MintAddress into a MintAddress."""
        if isinstance(value, MintAddress):
            return value
        if isinstance(value, str):
            return cls.from_string(value)
        return cls(value)
    
    def to_bytes(self) -> bytes:
        return self._key
    
    def to_base58(self) -> str:
        return base58.b58encode(self._key).decode("ascii")
    
    def truncated(self, length: int = 8) -> str:
        """Shortened form for log lines."""
        text = self.to_base58()
        if len(text) <= length:
            return text
        return f"{text[:length]}..."
    
    def __str__(self) -> str:
        return self.to_base58()
    
    def __repr__(self) -> str:
        return f"MintAddress('{self.to_base58()}')"
    
    def __eq__(self, other) -> bool:
        if not isinstance(other, MintAddress):
            return NotImplemented
        return self._key == other._key
    
    def __lt__(self, other) -> bool:
        if not isinstance(other, MintAddress):
            return NotImplemented
        return self._key < other._key
    
    def __hash__(self) -> int:
        return hash(self._key)


def is_valid_mint_address(value: str) -> bool:
    """Check whether a string parses as a mint address."""
    try:
        MintAddress.from_string(value)
        return True
    except InvalidMintAddressError:
        return False
