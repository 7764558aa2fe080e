"""
Mint Safety Filter - Raw Account Records

This module defines the immutable account record returned by an account
source, and well-known program addresses.
"""

from dataclasses import dataclass

from .address import MintAddress


TOKEN_PROGRAM_ID = MintAddress.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
TOKEN_2022_PROGRAM_ID = MintAddress.from_string("TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb")


@dataclass(frozen=True)
class AccountRecord:
    """Raw account payload and owning program as fetched from the ledger."""
    data: bytes
    owner: MintAddress
    lamports: int = 0
    executable: bool = False
    
    def __len__(self) -> int:
        return len(self.data)
    
    def is_owned_by(self, program_id: MintAddress) -> bool:
        return self.owner == program_id
