"""
Mint Safety Filter Accounts Module

This module provides mint addresses, raw account records, and decoding of
legacy and Token-2022 mint account layouts.
"""

from .address import MintAddress, is_valid_mint_address
from .exceptions import (
    AccountError,
    InvalidMintAddressError,
    TokenDecodeError,
    InvalidAccountOwnerError,
    InvalidAccountSizeError,
    InvalidAccountTypeError,
    AccountSourceError
)
from .records import AccountRecord, TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID
from .source import AccountSource, StaticAccountSource
from .token import (
    ExtensionType,
    MintFormat,
    MintAuthorities,
    TransferFee,
    ExtendedMint,
    DecodedMint,
    decode_extended,
    decode_legacy_fixed_fields,
    decode_mint,
    list_extensions,
    read_active_transfer_fee
)

__all__ = [
    "MintAddress",
    "is_valid_mint_address",
    "AccountError",
    "InvalidMintAddressError",
    "TokenDecodeError",
    "InvalidAccountOwnerError",
    "InvalidAccountSizeError",
    "InvalidAccountTypeError",
    "AccountSourceError",
    "AccountSource",
    "StaticAccountSource",
    "AccountRecord",
    "TOKEN_PROGRAM_ID",
    "TOKEN_2022_PROGRAM_ID",
    "ExtensionType",
    "MintFormat",
    "MintAuthorities",
    "TransferFee",
    "ExtendedMint",
    "DecodedMint",
    "decode_extended",
    "decode_legacy_fixed_fields",
    "decode_mint",
    "list_extensions",
    "read_active_transfer_fee"
]
