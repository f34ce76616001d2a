from dataclasses import dataclass
from typing import Tuple

from borsh_construct import CStruct, U8
from solders.pubkey import Pubkey

# Extra bytes the program reserves on top of every record's field sizes.
STORAGE_RESERVATION = 8


@dataclass(frozen=True)
class AccountField:
    name: str
    size: int


@dataclass(frozen=True)
class AccountSchema:
    """On-chain byte layout of one program-owned account, in field order."""

    name: str
    fields: Tuple[AccountField, ...]

    @property
    def storage_size(self) -> int:
        return sum(field.size for field in self.fields)

    @property
    def payload_size(self) -> int:
        return self.storage_size + STORAGE_RESERVATION


VAULT_SCHEMA = AccountSchema(
    "vault",
    (AccountField("owner", 32),),
)

ESCROW_SCHEMA = AccountSchema(
    "escrow",
    (
        AccountField("signer", 32),
        AccountField("balance", 8),
        AccountField("deposit_time", 8),  # unix timestamp, i64
        AccountField("done", 2),  # withdrawal-done flag; program reserves two bytes
    ),
)

VaultRecordLayout = CStruct("owner" / U8[32])


def decode_vault_record(data: bytes) -> Pubkey:
    if len(data) < VAULT_SCHEMA.storage_size:
        raise ValueError(f"Vault account too short: {len(data)} bytes (need {VAULT_SCHEMA.storage_size})")
    parsed = VaultRecordLayout.parse(bytes(data[: VAULT_SCHEMA.storage_size]))
    return Pubkey(bytes(parsed.owner))
