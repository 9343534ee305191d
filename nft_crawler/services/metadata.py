"""Metaplex token-metadata account: PDA derivation and binary decoding"""
import struct
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from solders.pubkey import Pubkey

METADATA_PROGRAM_ID = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")
METADATA_SEED = b"metadata"

# Key discriminator of a MetadataV1 account
METADATA_V1_KEY = 4

# Fixed widths the program pads name/symbol/uri to with NUL bytes
MAX_NAME_LENGTH = 32
MAX_SYMBOL_LENGTH = 10
MAX_URI_LENGTH = 200


class MetadataDecodeError(ValueError):
    """Account bytes do not match the metadata layout"""


@dataclass(frozen=True)
class Creator:
    address: Pubkey
    verified: bool
    share: int


@dataclass(frozen=True)
class Collection:
    verified: bool
    key: Pubkey


@dataclass(frozen=True)
class Uses:
    use_method: int
    remaining: int
    total: int


@dataclass(frozen=True)
class Metadata:
    key: int
    update_authority: Pubkey
    mint: Pubkey
    name: str
    symbol: str
    uri: str
    seller_fee_basis_points: int
    creators: Optional[List[Creator]]
    primary_sale_happened: bool
    is_mutable: bool
    edition_nonce: Optional[int] = None
    token_standard: Optional[int] = None
    collection: Optional[Collection] = None
    uses: Optional[Uses] = None


def find_metadata_account(mint: Pubkey) -> Tuple[Pubkey, int]:
    """Derive the metadata PDA (and bump) of a mint"""
    return Pubkey.find_program_address(
        [METADATA_SEED, bytes(METADATA_PROGRAM_ID), bytes(mint)],
        METADATA_PROGRAM_ID,
    )


def strip_nul_padding(value: str) -> str:
    return value.rstrip("\x00")


class _BorshReader:
    """Sequential little-endian reader over borsh-encoded bytes"""

    def __init__(self, data: bytes):
        self._data = data
        self._offset = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def _take(self, size: int) -> bytes:
        if size > self.remaining:
            raise MetadataDecodeError(
                f"unexpected end of data at offset {self._offset} (need {size} bytes)"
            )
        chunk = self._data[self._offset:self._offset + size]
        self._offset += size
        return chunk

    def _unpack(self, fmt: str, size: int) -> int:
        return struct.unpack("<" + fmt, self._take(size))[0]

    def u8(self) -> int:
        return self._take(1)[0]

    def u16(self) -> int:
        return self._unpack("H", 2)

    def u32(self) -> int:
        return self._unpack("I", 4)

    def u64(self) -> int:
        return self._unpack("Q", 8)

    def boolean(self) -> bool:
        value = self.u8()
        if value > 1:
            raise MetadataDecodeError(f"invalid bool byte {value}")
        return value == 1

    def pubkey(self) -> Pubkey:
        return Pubkey.from_bytes(self._take(32))

    def string(self) -> str:
        length = self.u32()
        raw = self._take(length)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MetadataDecodeError(f"string is not valid UTF-8: {e}") from e

    def option_tag(self) -> bool:
        tag = self.u8()
        if tag > 1:
            raise MetadataDecodeError(f"invalid option tag {tag}")
        return tag == 1


def _read_creators(reader: _BorshReader) -> Optional[List[Creator]]:
    if not reader.option_tag():
        return None
    count = reader.u32()
    return [
        Creator(address=reader.pubkey(), verified=reader.boolean(), share=reader.u8())
        for _ in range(count)
    ]


def decode_metadata(data: bytes) -> Metadata:
    """Decode a metadata account.

    Name, symbol and uri have their NUL padding stripped. The optional
    trailing fields are absent on accounts written by older program
    versions; a truncated tail leaves them as None.
    """
    reader = _BorshReader(bytes(data))

    key = reader.u8()
    if key != METADATA_V1_KEY:
        raise MetadataDecodeError(f"not a metadata account (key={key})")

    update_authority = reader.pubkey()
    mint = reader.pubkey()
    name = strip_nul_padding(reader.string())
    symbol = strip_nul_padding(reader.string())
    uri = strip_nul_padding(reader.string())
    seller_fee_basis_points = reader.u16()
    creators = _read_creators(reader)
    primary_sale_happened = reader.boolean()
    is_mutable = reader.boolean()

    metadata = Metadata(
        key=key,
        update_authority=update_authority,
        mint=mint,
        name=name,
        symbol=symbol,
        uri=uri,
        seller_fee_basis_points=seller_fee_basis_points,
        creators=creators,
        primary_sale_happened=primary_sale_happened,
        is_mutable=is_mutable,
    )

    try:
        edition_nonce = reader.u8() if reader.option_tag() else None
        token_standard = reader.u8() if reader.option_tag() else None
        collection = None
        if reader.option_tag():
            collection = Collection(verified=reader.boolean(), key=reader.pubkey())
        uses = None
        if reader.option_tag():
            uses = Uses(use_method=reader.u8(), remaining=reader.u64(), total=reader.u64())
    except MetadataDecodeError:
        return metadata

    return replace(
        metadata,
        edition_nonce=edition_nonce,
        token_standard=token_standard,
        collection=collection,
        uses=uses,
    )
