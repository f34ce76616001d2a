"""
RPC-backed collaborators: transaction submission, faucet funding and account reads.
"""
import json
import logging
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from solana.exceptions import SolanaRpcException
from solana.rpc.api import Client
from solana.rpc.core import RPCException, TransactionExpiredBlockheightExceededError, UnconfirmedTxError
from solana.rpc.types import TxOpts
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from .errors import SubmissionError
from .tx_builder import compile_message, required_signers

logger = logging.getLogger("ssf_vault.ledger")

RPC_ERRORS = (
    RPCException,
    SolanaRpcException,
    UnconfirmedTxError,
    TransactionExpiredBlockheightExceededError,
)


class TransactionSubmitter(Protocol):
    def submit(self, instructions: Sequence[Instruction], signers: Sequence[Keypair]) -> str:
        ...


class Faucet(Protocol):
    def airdrop(self, owner: Pubkey, lamports: int) -> str:
        ...


def load_keypair(path: Path) -> Keypair:
    if not path.exists():
        raise FileNotFoundError(f"Missing keypair at {path}")
    raw = json.loads(path.read_text())
    if isinstance(raw, list):
        secret = bytes(raw)
    elif isinstance(raw, dict) and "secretKey" in raw:
        secret = bytes(raw["secretKey"])
    else:
        raise ValueError(f"Unsupported keypair file format: {path}")
    return Keypair.from_bytes(secret)


def load_or_generate(path: Optional[str]) -> Keypair:
    if path:
        return load_keypair(Path(path))
    return Keypair()


def delegated_signers(instructions: Sequence[Instruction], signers: Sequence[Keypair]) -> List[Pubkey]:
    """Signer-flagged accounts with no key pair here; each must be a program address."""
    held = {kp.pubkey() for kp in signers}
    delegated: List[Pubkey] = []
    for ix in instructions:
        for key in required_signers(ix):
            if key in held or key in delegated:
                continue
            if key.is_on_curve():
                raise SubmissionError(f"Missing signature for {key}")
            delegated.append(key)
    return delegated


def sign_message(
    message: MessageV0, signers: Sequence[Keypair], delegated: Sequence[Pubkey] = ()
) -> VersionedTransaction:
    """Sign every slot we hold a key for.

    Slots for delegated-authority accounts stay at the default signature;
    the program authorizes those.
    """
    required = message.header.num_required_signatures
    signer_keys = list(message.account_keys)[:required]
    by_pubkey = {kp.pubkey(): kp for kp in signers}
    unexpected = [str(key) for key in by_pubkey if key not in signer_keys]
    if unexpected:
        raise SubmissionError(f"Signers not required by message: {', '.join(unexpected)}")
    payload = to_bytes_versioned(message)
    sigs: List[Signature] = []
    for key in signer_keys:
        kp = by_pubkey.get(key)
        if kp is not None:
            sigs.append(kp.sign_message(payload))
        elif key in delegated:
            sigs.append(Signature.default())
        else:
            raise SubmissionError(f"Missing signature for {key}")
    return VersionedTransaction.populate(message, sigs)


class RpcLedger:
    def __init__(self, client: Client, commitment: str = "confirmed"):
        self.client = client
        self.commitment = commitment

    @classmethod
    def from_url(cls, url: str, commitment: str = "confirmed", timeout: float = 30.0) -> "RpcLedger":
        return cls(Client(url, commitment=commitment, timeout=timeout), commitment)

    def latest_blockhash(self):
        try:
            return self.client.get_latest_blockhash(commitment=self.commitment).value.blockhash
        except RPC_ERRORS as exc:
            raise SubmissionError(f"Failed to fetch blockhash: {exc}") from exc

    def confirm(self, sig: Signature) -> None:
        try:
            self.client.confirm_transaction(sig, commitment=self.commitment)
        except RPC_ERRORS as exc:
            raise SubmissionError(f"Transaction {sig} not confirmed: {exc}") from exc

    def submit(self, instructions: Sequence[Instruction], signers: Sequence[Keypair]) -> str:
        if not signers:
            raise SubmissionError("At least one signer (the fee payer) is required")
        payer = signers[0].pubkey()
        delegated = delegated_signers(instructions, signers)
        message = compile_message(list(instructions), payer, self.latest_blockhash())
        tx = sign_message(message, signers, delegated)
        opts = TxOpts(skip_preflight=False, preflight_commitment=self.commitment)
        try:
            resp = self.client.send_raw_transaction(bytes(tx), opts=opts)
        except RPC_ERRORS as exc:
            raise SubmissionError(f"send_raw_transaction failed: {exc}") from exc
        sig = resp.value
        logger.info("tx_sent payer=%s sig=%s", payer, sig)
        self.confirm(sig)
        return str(sig)

    def airdrop(self, owner: Pubkey, lamports: int) -> str:
        try:
            sig = self.client.request_airdrop(owner, lamports, commitment=self.commitment).value
        except RPC_ERRORS as exc:
            raise SubmissionError(f"Airdrop to {owner} failed: {exc}") from exc
        self.confirm(sig)
        logger.info("airdrop_confirmed owner=%s lamports=%s sig=%s", owner, lamports, sig)
        return str(sig)

    def get_account_data(self, pubkey: Pubkey) -> Optional[bytes]:
        try:
            info = self.client.get_account_info(pubkey, commitment=self.commitment).value
        except RPC_ERRORS as exc:
            raise SubmissionError(f"Failed to fetch account {pubkey}: {exc}") from exc
        if info is None:
            return None
        return bytes(info.data)
