"""Program-id registry and token balance helpers for parsed accounts"""
import math
from enum import Enum
from typing import Dict

from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_ID


class AccountKind(str, Enum):
    """Account kinds a node can return in jsonParsed encoding"""
    SPL_TOKEN = "spl-token"
    SPL_TOKEN_2022 = "spl-token-2022"
    CONFIG = "config"
    NONCE = "nonce"
    VOTE = "vote"
    STAKE = "stake"
    SYSVAR = "sysvar"
    ADDRESS_LOOKUP_TABLE = "address-lookup-table"
    BPF_UPGRADEABLE_LOADER = "bpf-upgradeable-loader"
    # Any program id missing from the registry
    UNSUPPORTED = "unsupported"


PARSABLE_PROGRAM_IDS: Dict[Pubkey, AccountKind] = {
    TOKEN_PROGRAM_ID: AccountKind.SPL_TOKEN,
    TOKEN_2022_PROGRAM_ID: AccountKind.SPL_TOKEN_2022,
    Pubkey.from_string("Config1111111111111111111111111111111111111"): AccountKind.CONFIG,
    Pubkey.from_string("11111111111111111111111111111111"): AccountKind.NONCE,
    Pubkey.from_string("Vote111111111111111111111111111111111111111"): AccountKind.VOTE,
    Pubkey.from_string("Stake11111111111111111111111111111111111111"): AccountKind.STAKE,
    Pubkey.from_string("Sysvar1111111111111111111111111111111111111"): AccountKind.SYSVAR,
    Pubkey.from_string("AddressLookupTab1e1111111111111111111111111"): AccountKind.ADDRESS_LOOKUP_TABLE,
    Pubkey.from_string("BPFLoaderUpgradeab1e11111111111111111111111"): AccountKind.BPF_UPGRADEABLE_LOADER,
}

TOKEN_ACCOUNT_KINDS = frozenset({AccountKind.SPL_TOKEN, AccountKind.SPL_TOKEN_2022})

# Token mints store decimals as a u8
MAX_DECIMALS = 255


def classify_program(program_id: Pubkey) -> AccountKind:
    return PARSABLE_PROGRAM_IDS.get(program_id, AccountKind.UNSUPPORTED)


def ui_amount_to_amount(ui_amount: float, decimals: int) -> int:
    """Scale a human readable balance back to raw base units (truncating).

    Raises ValueError for a non-finite balance or decimals outside a u8.
    """
    if not 0 <= decimals <= MAX_DECIMALS:
        raise ValueError(f"decimals out of range: {decimals}")
    if not math.isfinite(ui_amount):
        raise ValueError(f"non-finite ui amount: {ui_amount}")
    return int(ui_amount * 10 ** decimals)
