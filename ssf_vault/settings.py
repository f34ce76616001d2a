import logging
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings
from solders.pubkey import Pubkey

from .tx_builder import U64_MAX

LAMPORTS_PER_SOL = 1_000_000_000

logger = logging.getLogger("ssf_vault.settings")


class Settings(BaseSettings):
    solana_rpc: str = "http://localhost:8899"
    program_id: Optional[str] = None  # unset: throwaway unique id, nothing is deployed there
    namespace_tag: str = "SSF_PDA"
    airdrop_lamports: int = 2 * LAMPORTS_PER_SOL
    deposit_amount: int = Field(1, ge=0, le=U64_MAX)
    commitment: str = "confirmed"
    rpc_timeout: float = 30.0
    operator_keypair_path: Optional[str] = None
    user_keypair_path: Optional[str] = None
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def namespace(self) -> bytes:
        return self.namespace_tag.encode("ascii")

    def resolve_program_id(self) -> Pubkey:
        if self.program_id:
            return load_pubkey(self.program_id, "PROGRAM_ID")
        program_id = Pubkey.new_unique()
        logger.warning("program_id_unset using_unique=%s", program_id)
        return program_id


def load_pubkey(value: Optional[str], name: str) -> Pubkey:
    if not value:
        raise RuntimeError(f"{name} must be set to a valid pubkey")
    try:
        return Pubkey.from_string(value)
    except Exception as exc:  # noqa: BLE001
        raise RuntimeError(f"{name} is not a valid pubkey: {exc}") from exc
