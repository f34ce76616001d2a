"""
Three-phase vault protocol: Initialize -> Deposit -> Withdraw.

Each phase is one transaction, confirmed before the next is built. Nothing
is retried or rolled back here; wrap the submitter to add that.
"""
import enum
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .errors import PhaseOrderError
from .ledger import Faucet, TransactionSubmitter
from .pda import ESCROW_NAMESPACE, find_escrow_address
from .tx_builder import build_deposit_ix, build_initialize_ix, build_withdraw_ix, encode_deposit

logger = logging.getLogger("ssf_vault.driver")


class Phase(enum.Enum):
    INITIALIZE = 0
    DEPOSIT = 1
    WITHDRAW = 2


PHASE_ORDER: Tuple[Phase, ...] = (Phase.INITIALIZE, Phase.DEPOSIT, Phase.WITHDRAW)


@dataclass(frozen=True)
class Actors:
    operator: Keypair
    user: Keypair


@dataclass(frozen=True)
class PhaseResult:
    phase: Phase
    signature: str
    instruction: Instruction
    signers: Tuple[Pubkey, ...]


def fund_actors(faucet: Faucet, actors: Actors, lamports: int) -> List[str]:
    sigs = []
    for name, kp in (("operator", actors.operator), ("user", actors.user)):
        sig = faucet.airdrop(kp.pubkey(), lamports)
        logger.info("actor_funded actor=%s pubkey=%s lamports=%s", name, kp.pubkey(), lamports)
        sigs.append(sig)
    return sigs


@dataclass
class VaultProtocolDriver:
    submitter: TransactionSubmitter
    program_id: Pubkey
    actors: Actors
    namespace: bytes = ESCROW_NAMESPACE
    deposit_amount: int = 1
    vault: Optional[Keypair] = None
    results: List[PhaseResult] = field(default_factory=list)

    def __post_init__(self) -> None:
        # A bad amount must fail before Initialize reaches the ledger.
        encode_deposit(self.deposit_amount)
        user = self.actors.user.pubkey()
        self.escrow, self.escrow_bump = find_escrow_address(user, self.program_id, self.namespace)
        logger.info("escrow_derived user=%s escrow=%s bump=%s", user, self.escrow, self.escrow_bump)

    @property
    def next_phase(self) -> Optional[Phase]:
        done = len(self.results)
        return PHASE_ORDER[done] if done < len(PHASE_ORDER) else None

    def _vault_keypair(self) -> Keypair:
        if self.vault is None:
            self.vault = Keypair()
        return self.vault

    def build_phase(self, phase: Phase) -> Tuple[Instruction, List[Keypair]]:
        operator, user = self.actors.operator, self.actors.user
        if phase is Phase.INITIALIZE:
            vault = self._vault_keypair()
            return build_initialize_ix(operator.pubkey(), vault.pubkey(), self.program_id), [operator, vault]
        if phase is Phase.DEPOSIT:
            return build_deposit_ix(user.pubkey(), self.escrow, self.deposit_amount, self.program_id), [user]
        return build_withdraw_ix(user.pubkey(), self.escrow, self.program_id), [user]

    def plan(self) -> List[Tuple[Phase, Instruction, List[Keypair]]]:
        return [(phase, *self.build_phase(phase)) for phase in PHASE_ORDER]

    def run_phase(self, phase: Phase) -> PhaseResult:
        expected = self.next_phase
        if phase is not expected:
            next_name = expected.name if expected else "none"
            raise PhaseOrderError(f"Cannot run {phase.name}; next phase is {next_name}")
        ix, signers = self.build_phase(phase)
        logger.info("phase_submit phase=%s signers=%s", phase.name, len(signers))
        sig = self.submitter.submit([ix], signers)
        result = PhaseResult(phase, sig, ix, tuple(kp.pubkey() for kp in signers))
        self.results.append(result)
        logger.info("phase_confirmed phase=%s sig=%s", phase.name, sig)
        return result

    def run(self) -> List[PhaseResult]:
        while self.next_phase is not None:
            self.run_phase(self.next_phase)
        return list(self.results)
