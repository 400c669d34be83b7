"""
pwgen - Error Types

Every failure the pipeline can report. All errors are raised before any
password character is produced, and no message ever contains the master
secret, the derived key or a partial password.
"""


class PwgenError(Exception):
    """Base class for all pwgen errors."""


class InvalidPolicy(PwgenError, ValueError):
    """Allowed set is empty, or a forced class is not allowed."""


class InvalidLength(PwgenError, ValueError):
    """Length bounds outside [1, 128], or min > max."""


class InsufficientLength(PwgenError, ValueError):
    """Length is smaller than the number of forced classes."""


class InvalidInput(PwgenError, ValueError):
    """A context field (version, master secret) has the wrong shape."""


class KdfFailure(PwgenError):
    """Argon2id could not complete (usually memory allocation)."""


class StreamExhausted(PwgenError):
    """The deterministic stream ran past its last block."""
