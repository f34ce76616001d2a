"""
Run the vault protocol end to end against a local validator (or SOLANA_RPC).

- Loads or generates the operator and user key pairs and airdrops to both.
- Derives the user's escrow PDA under PROGRAM_ID.
- Submits Initialize, Deposit and Withdraw, one confirmed transaction each.
- Prints a JSON summary with every signature and instruction.
"""
import json
import logging
from typing import Dict, Optional

from .driver import Actors, VaultProtocolDriver, fund_actors
from .layouts import decode_vault_record
from .ledger import RpcLedger, load_or_generate
from .settings import Settings
from .tx_builder import instruction_to_dict

logger = logging.getLogger("ssf_vault")


def build_summary(driver: VaultProtocolDriver, vault_owner: Optional[str] = None) -> Dict[str, object]:
    return {
        "program_id": str(driver.program_id),
        "operator": str(driver.actors.operator.pubkey()),
        "user": str(driver.actors.user.pubkey()),
        "vault": str(driver.vault.pubkey()) if driver.vault else None,
        "vault_owner": vault_owner,
        "escrow": {"address": str(driver.escrow), "bump": driver.escrow_bump},
        "phases": [
            {
                "phase": res.phase.name.lower(),
                "signature": res.signature,
                "signers": [str(k) for k in res.signers],
                "instruction": instruction_to_dict(res.instruction),
            }
            for res in driver.results
        ],
    }


def run(settings: Settings) -> Dict[str, object]:
    program_id = settings.resolve_program_id()
    ledger = RpcLedger.from_url(settings.solana_rpc, settings.commitment, settings.rpc_timeout)
    actors = Actors(
        operator=load_or_generate(settings.operator_keypair_path),
        user=load_or_generate(settings.user_keypair_path),
    )
    driver = VaultProtocolDriver(
        submitter=ledger,
        program_id=program_id,
        actors=actors,
        namespace=settings.namespace,
        deposit_amount=settings.deposit_amount,
    )
    logger.info("run_start rpc=%s program_id=%s", settings.solana_rpc, program_id)
    fund_actors(ledger, actors, settings.airdrop_lamports)

    for res in driver.run():
        print(f"Use 'solana confirm -v {res.signature}' to see the logs")

    vault_owner = None
    data = ledger.get_account_data(driver.vault.pubkey())
    if data:
        vault_owner = str(decode_vault_record(data))
    else:
        logger.warning("vault_account_missing vault=%s", driver.vault.pubkey())
    return build_summary(driver, vault_owner)


def main() -> None:
    settings = Settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
    try:
        summary = run(settings)
    except Exception as exc:  # noqa: BLE001
        logger.error("run_failed error=%s", exc, exc_info=True)
        raise SystemExit(1) from exc
    print("\n=== Vault Run Summary ===")
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
