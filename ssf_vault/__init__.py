"""Client driver for the SSF vault program: escrow derivation, payload encoding and the three-phase run."""
