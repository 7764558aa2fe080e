"""
Mint Safety Filter - SPL Token Mint Decoding

This module decodes token mint accounts in both the legacy SPL Token layout
and the extended Token-2022 layout (base mint followed by TLV extensions).
A decoded mint is resolved once into a tagged variant so callers dispatch on
its format instead of probing fields.
"""

import struct
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import FrozenSet, Optional

from .address import MintAddress
from .exceptions import (
    InvalidAccountOwnerError,
    InvalidAccountSizeError,
    InvalidAccountTypeError,
    TokenDecodeError
)
from .records import AccountRecord, TOKEN_2022_PROGRAM_ID


# Account layout sizes
MINT_SIZE = 82
ACCOUNT_SIZE = 165
MULTISIG_SIZE = 355
ACCOUNT_TYPE_SIZE = 1

# TLV entry header
TYPE_SIZE = 2
LENGTH_SIZE = 2

# mint_authority_option, mint_authority, supply, decimals, is_initialized,
# freeze_authority_option, freeze_authority
MINT_LAYOUT = struct.Struct("<I32sQBBI32s")

# transfer_fee_config_authority, withdraw_withheld_authority, withheld_amount,
# older (epoch, maximum_fee, basis_points), newer (epoch, maximum_fee, basis_points)
TRANSFER_FEE_CONFIG_LAYOUT = struct.Struct("<32s32sQQQHQQH")

ACCOUNT_TYPE_MINT = 1


class ExtensionType(IntEnum):
    """Token-2022 extension tags with their on-chain discriminants."""
    Uninitialized = 0
    TransferFeeConfig = 1
    TransferFeeAmount = 2
    MintCloseAuthority = 3
    ConfidentialTransferMint = 4
    ConfidentialTransferAccount = 5
    DefaultAccountState = 6
    ImmutableOwner = 7
    MemoTransfer = 8
    NonTransferable = 9
    InterestBearingConfig = 10
    CpiGuard = 11
    PermanentDelegate = 12
    NonTransferableAccount = 13
    TransferHook = 14
    TransferHookAccount = 15
    ConfidentialTransferFeeConfig = 16
    ConfidentialTransferFeeAmount = 17
    MetadataPointer = 18
    TokenMetadata = 19
    GroupPointer = 20
    TokenGroup = 21
    GroupMemberPointer = 22
    TokenGroupMember = 23
    ConfidentialMintBurn = 24
    ScaledUiAmountConfig = 25
    PausableConfig = 26
    PausableAccount = 27
    
    @classmethod
    def from_name(cls, name: str) -> 'ExtensionType':
        """Look up an extension by name, case-insensitively."""
        normalized = name.replace("_", "").replace("-", "").lower()
        for member in cls:
            if member.name.lower() == normalized:
                return member
        raise ValueError(f"Unknown extension type: {name}")


class MintFormat(str, Enum):
    """Layout a mint account was decoded with."""
    LEGACY = "legacy"
    EXTENDED = "extended"


@dataclass(frozen=True)
class MintAuthorities:
    """Authority fields from the base mint layout shared by both formats."""
    mint_authority_present: bool
    freeze_authority_present: bool
    mint_authority: Optional[MintAddress] = None
    freeze_authority: Optional[MintAddress] = None
    supply: int = 0
    decimals: int = 0
    is_initialized: bool = False


@dataclass(frozen=True)
class TransferFee:
    """A single transfer fee schedule entry."""
    epoch: int
    maximum_fee: int
    basis_points: int


@dataclass(frozen=True)
class ExtendedMint:
    """A mint decoded with the Token-2022 layout."""
    address: MintAddress
    authorities: MintAuthorities
    tlv_data: bytes = b""


@dataclass(frozen=True)
class DecodedMint:
    """Tagged variant over the legacy and extended mint formats."""
    format: MintFormat
    authorities: MintAuthorities
    extended: Optional[ExtendedMint] = None
    
    @property
    def is_extended(self) -> bool:
        return self.format == MintFormat.EXTENDED


def decode_legacy_fixed_fields(record: AccountRecord) -> MintAuthorities:
    """
    Decode the 82-byte base mint layout.
    
    Both token programs share this layout at the start of the account,
    so it is valid for legacy and extended mints alike.
    
    Raises:
        InvalidAccountSizeError: If the data is shorter than the base layout
    """
    if len(record.data) < MINT_SIZE:
        raise InvalidAccountSizeError(
            len(record.data),
            f"Mint data is {len(record.data)} bytes, expected at least {MINT_SIZE}"
        )
    
    (mint_option, mint_key, supply, decimals, initialized,
     freeze_option, freeze_key) = MINT_LAYOUT.unpack_from(record.data, 0)
    
    return MintAuthorities(
        mint_authority_present=mint_option != 0,
        freeze_authority_present=freeze_option != 0,
        mint_authority=MintAddress(mint_key) if mint_option else None,
        freeze_authority=MintAddress(freeze_key) if freeze_option else None,
        supply=supply,
        decimals=decimals,
        is_initialized=bool(initialized)
    )


def decode_extended(identifier: MintAddress, record: AccountRecord,
                    program_id: MintAddress = TOKEN_2022_PROGRAM_ID) -> ExtendedMint:
    """
    Decode a mint with the Token-2022 layout.
    
    Args:
        identifier: Address of the mint
        record: Raw account record
        program_id: Program expected to own the account
        
    Returns:
        ExtendedMint with the raw TLV extension area
        
    Raises:
        InvalidAccountOwnerError: If the account belongs to another program
        InvalidAccountSizeError: If the size matches no mint layout
        InvalidAccountTypeError: If the account type byte is not Mint
    """
    if not record.is_owned_by(program_id):
        raise InvalidAccountOwnerError(str(program_id), str(record.owner))
    
    data = record.data
    size = len(data)
    
    if size < MINT_SIZE:
        raise InvalidAccountSizeError(size)
    
    tlv_data = b""
    if size > MINT_SIZE:
        if size <= ACCOUNT_SIZE:
            raise InvalidAccountSizeError(size)
        if size == MULTISIG_SIZE:
            raise InvalidAccountSizeError(size, f"Account of {size} bytes is a multisig")
        if data[ACCOUNT_SIZE] != ACCOUNT_TYPE_MINT:
            raise InvalidAccountTypeError(
                f"Account type {data[ACCOUNT_SIZE]} is not a mint for {identifier}"
            )
        tlv_data = bytes(data[ACCOUNT_SIZE + ACCOUNT_TYPE_SIZE:])
    
    return ExtendedMint(
        address=identifier,
        authorities=decode_legacy_fixed_fields(record),
        tlv_data=tlv_data
    )


def _iter_tlv_entries(tlv_data: bytes):
    """Yield (type, value) pairs until padding or a truncated header."""
    offset = 0
    header_size = TYPE_SIZE + LENGTH_SIZE
    
    while offset + header_size <= len(tlv_data):
        entry_type, entry_length = struct.unpack_from("<HH", tlv_data, offset)
        if entry_type == ExtensionType.Uninitialized:
            break
        
        start = offset + header_size
        yield entry_type, tlv_data[start:start + entry_length]
        offset = start + entry_length


def list_extensions(mint: ExtendedMint) -> FrozenSet[ExtensionType]:
    """Collect the extension tags present on an extended mint."""
    extensions = set()
    for entry_type, _ in _iter_tlv_entries(mint.tlv_data):
        try:
            extensions.add(ExtensionType(entry_type))
        except ValueError:
            # Tags newer than this enum are not rule targets
            continue
    return frozenset(extensions)


def read_active_transfer_fee(mint: ExtendedMint) -> Optional[TransferFee]:
    """
    Read the newer transfer fee of the TransferFeeConfig extension.
    
    Returns:
        TransferFee or None if the extension is absent or truncated
    """
    for entry_type, value in _iter_tlv_entries(mint.tlv_data):
        if entry_type != ExtensionType.TransferFeeConfig:
            continue
        if len(value) < TRANSFER_FEE_CONFIG_LAYOUT.size:
            return None
        
        fields = TRANSFER_FEE_CONFIG_LAYOUT.unpack_from(value, 0)
        newer_epoch, newer_maximum_fee, newer_basis_points = fields[6:9]
        return TransferFee(
            epoch=newer_epoch,
            maximum_fee=newer_maximum_fee,
            basis_points=newer_basis_points
        )
    
    return None


def decode_mint(identifier: MintAddress, record: AccountRecord) -> DecodedMint:
    """
    Resolve a mint account into its tagged variant.
    
    An owner mismatch on the extended layout means the mint belongs to the
    legacy token program; every other decode failure propagates.
    
    Raises:
        TokenDecodeError: If the account cannot be decoded as a mint
    """
    try:
        extended = decode_extended(identifier, record)
    except InvalidAccountOwnerError:
        return DecodedMint(
            format=MintFormat.LEGACY,
            authorities=decode_legacy_fixed_fields(record)
        )
    
    return DecodedMint(
        format=MintFormat.EXTENDED,
        authorities=extended.authorities,
        extended=extended
    )


def encode_mint(mint_authority: Optional[MintAddress] = None,
                freeze_authority: Optional[MintAddress] = None,
                supply: int = 0, decimals: int = 0,
                extensions: Optional[dict] = None) -> bytes:
    """
    Serialize a mint account.
    
    Without extensions the 82-byte legacy layout is produced. With an
    extension map of ``{ExtensionType: value_bytes}`` the data is padded to
    the account size, tagged as a mint, and followed by TLV entries.
    """
    empty_key = bytes(32)
    data = MINT_LAYOUT.pack(
        1 if mint_authority else 0,
        mint_authority.to_bytes() if mint_authority else empty_key,
        supply,
        decimals,
        1,
        1 if freeze_authority else 0,
        freeze_authority.to_bytes() if freeze_authority else empty_key
    )
    
    if extensions is None:
        return data
    
    data += bytes(ACCOUNT_SIZE - MINT_SIZE)
    data += bytes([ACCOUNT_TYPE_MINT])
    for extension_type, value in extensions.items():
        data += struct.pack("<HH", int(extension_type), len(value)) + value
    return data


def encode_transfer_fee_config(basis_points: int, maximum_fee: int = 0,
                               epoch: int = 0) -> bytes:
    """Serialize a TransferFeeConfig value with identical older and newer fees."""
    return TRANSFER_FEE_CONFIG_LAYOUT.pack(
        bytes(32), bytes(32), 0,
        epoch, maximum_fee, basis_points,
        epoch, maximum_fee, basis_points
    )
