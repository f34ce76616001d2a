import base64
import enum
from dataclasses import dataclass
from typing import List, Optional, Sequence

from borsh_construct import CStruct, Enum, U64
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.message import MessageV0
from solders.pubkey import Pubkey

from .errors import EncodingError
from .layouts import ESCROW_SCHEMA, VAULT_SCHEMA

SYS_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")
U64_MAX = 2**64 - 1

# Variant index is the on-chain operation tag.
VaultInstructionLayout = Enum(
    "Initialize" / CStruct(),
    "Deposit" / CStruct("amount" / U64),
    "PartialWithdraw" / CStruct(),
    "CpiTransfer" / CStruct("amount" / U64),
    enum_name="VaultInstruction",
)

TAG_INITIALIZE = 0
TAG_DEPOSIT = 1
TAG_WITHDRAW = 2
TAG_TRANSFER = 3


class AccountRole(enum.Enum):
    SIGNER = "signer"
    WRITABLE_ONLY = "writable"
    READONLY_REFERENCE = "readonly"
    # Flagged signer on the wire; the program signs for it, no private key exists.
    DELEGATED_AUTHORITY = "delegated"

    @property
    def is_signer(self) -> bool:
        return self in (AccountRole.SIGNER, AccountRole.DELEGATED_AUTHORITY)

    @property
    def is_writable(self) -> bool:
        return self is not AccountRole.READONLY_REFERENCE


@dataclass(frozen=True)
class AccountRef:
    pubkey: Pubkey
    role: AccountRole

    def to_meta(self) -> AccountMeta:
        return AccountMeta(
            pubkey=self.pubkey,
            is_signer=self.role.is_signer,
            is_writable=self.role.is_writable,
        )


def _check_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise EncodingError(f"amount must be an int, got {type(amount).__name__}")
    if amount < 0 or amount > U64_MAX:
        raise EncodingError(f"amount {amount} does not fit in u64")
    return amount


def _pad(data: bytes, size: int) -> bytes:
    if len(data) > size:
        raise EncodingError(f"payload is {len(data)} bytes, slot is {size}")
    return data.ljust(size, b"\x00")


def encode_initialize() -> bytes:
    data = VaultInstructionLayout.build(VaultInstructionLayout.enum.Initialize())
    return _pad(data, VAULT_SCHEMA.payload_size)


def encode_deposit(amount: int) -> bytes:
    data = VaultInstructionLayout.build(VaultInstructionLayout.enum.Deposit(amount=_check_amount(amount)))
    return _pad(data, ESCROW_SCHEMA.payload_size)


def encode_withdraw() -> bytes:
    # Amount comes from the escrow record on chain.
    data = VaultInstructionLayout.build(VaultInstructionLayout.enum.PartialWithdraw())
    return _pad(data, ESCROW_SCHEMA.payload_size)


def encode_transfer(amount: int) -> bytes:
    return VaultInstructionLayout.build(VaultInstructionLayout.enum.CpiTransfer(amount=_check_amount(amount)))


def encode_instruction(tag: int, amount: Optional[int] = None) -> bytes:
    if tag in (TAG_DEPOSIT, TAG_TRANSFER):
        if amount is None:
            raise EncodingError(f"operation tag {tag} requires an amount")
        return encode_deposit(amount) if tag == TAG_DEPOSIT else encode_transfer(amount)
    if tag in (TAG_INITIALIZE, TAG_WITHDRAW):
        if amount is not None:
            raise EncodingError(f"operation tag {tag} takes no amount")
        return encode_initialize() if tag == TAG_INITIALIZE else encode_withdraw()
    raise EncodingError(f"Unsupported operation tag {tag}")


def build_instruction(program_id: Pubkey, accounts: Sequence[AccountRef], data: bytes) -> Instruction:
    """Assemble an instruction, keeping the caller's account order.

    The program reads accounts positionally, so the order given here is the
    order on the wire.
    """
    if program_id is None:
        raise ValueError("program_id is required")
    if not accounts:
        raise ValueError("at least one account is required")
    if not data:
        raise ValueError("instruction payload is empty")
    metas: List[AccountMeta] = [ref.to_meta() for ref in accounts]
    return Instruction(program_id=program_id, data=bytes(data), accounts=metas)


def required_signers(ix: Instruction) -> List[Pubkey]:
    return [meta.pubkey for meta in ix.accounts if meta.is_signer]


def initialize_accounts(operator: Pubkey, vault: Pubkey) -> List[AccountRef]:
    return [
        AccountRef(operator, AccountRole.SIGNER),
        AccountRef(vault, AccountRole.SIGNER),
        AccountRef(SYS_PROGRAM_ID, AccountRole.READONLY_REFERENCE),
    ]


def escrow_accounts(user: Pubkey, escrow: Pubkey) -> List[AccountRef]:
    return [
        AccountRef(user, AccountRole.SIGNER),
        AccountRef(escrow, AccountRole.DELEGATED_AUTHORITY),
        AccountRef(SYS_PROGRAM_ID, AccountRole.READONLY_REFERENCE),
    ]


def build_initialize_ix(operator: Pubkey, vault: Pubkey, program_id: Pubkey) -> Instruction:
    return build_instruction(program_id, initialize_accounts(operator, vault), encode_initialize())


def build_deposit_ix(user: Pubkey, escrow: Pubkey, amount: int, program_id: Pubkey) -> Instruction:
    return build_instruction(program_id, escrow_accounts(user, escrow), encode_deposit(amount))


def build_withdraw_ix(user: Pubkey, escrow: Pubkey, program_id: Pubkey) -> Instruction:
    return build_instruction(program_id, escrow_accounts(user, escrow), encode_withdraw())


def build_transfer_ix(payer: Pubkey, recipient: Pubkey, amount: int, program_id: Pubkey) -> Instruction:
    accounts = [
        AccountRef(payer, AccountRole.SIGNER),
        AccountRef(recipient, AccountRole.WRITABLE_ONLY),
        AccountRef(SYS_PROGRAM_ID, AccountRole.READONLY_REFERENCE),
    ]
    return build_instruction(program_id, accounts, encode_transfer(amount))


def instruction_to_dict(ix: Instruction) -> dict:
    data = bytes(ix.data)
    accounts = [
        {"pubkey": str(meta.pubkey), "signer": meta.is_signer, "writable": meta.is_writable}
        for meta in ix.accounts
    ]
    return {
        "program_id": str(ix.program_id),
        "tag": data[0],
        "accounts": accounts,
        "data_b64": base64.b64encode(data).decode(),
    }


def compile_message(ixs: List[Instruction], payer: Pubkey, blockhash: Hash) -> MessageV0:
    return MessageV0.try_compile(payer, ixs, [], blockhash)
