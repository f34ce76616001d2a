"""
Program-derived addresses.

A PDA is the first address, bumping from 255 down, that hashes off the
ed25519 curve. No private key exists for it, so only the owning program can
authorize on its behalf.
"""
from typing import Sequence, Tuple

from solders.pubkey import Pubkey

from .errors import DerivationError

ESCROW_NAMESPACE = b"SSF_PDA"
MAX_SEED_LEN = 32
MAX_SEEDS = 16


def _check_seeds(seeds: Sequence[bytes]) -> None:
    # solders panics on oversize seeds; the bump byte counts against the limit
    if len(seeds) + 1 > MAX_SEEDS:
        raise DerivationError(f"Too many seeds: {len(seeds)} (max {MAX_SEEDS - 1})")
    for idx, seed in enumerate(seeds):
        if len(seed) > MAX_SEED_LEN:
            raise DerivationError(f"Seed {idx} is {len(seed)} bytes (max {MAX_SEED_LEN})")


def find_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Tuple[Pubkey, int]:
    seeds = [bytes(seed) for seed in seeds]
    _check_seeds(seeds)
    return Pubkey.find_program_address(seeds, program_id)


def escrow_seeds(user: Pubkey, namespace: bytes = ESCROW_NAMESPACE) -> Sequence[bytes]:
    return [namespace, bytes(user)]


def find_escrow_address(
    user: Pubkey, program_id: Pubkey, namespace: bytes = ESCROW_NAMESPACE
) -> Tuple[Pubkey, int]:
    return find_program_address(escrow_seeds(user, namespace), program_id)
