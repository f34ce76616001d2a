class EncodingError(ValueError):
    """Undefined operation tag or a field that does not fit its slot."""


class DerivationError(RuntimeError):
    """No off-curve program address could be derived from the seeds."""


class SubmissionError(RuntimeError):
    """The ledger rejected, dropped or failed to confirm a transaction."""


class PhaseOrderError(RuntimeError):
    """A protocol phase was run before its predecessor or more than once."""
