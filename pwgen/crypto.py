"""
pwgen - Cryptography Module

All cryptographic operations for the generator live in this one file:
key stretching, the HKDF-Extract step, the deterministic byte stream and
the helpers that wipe secret buffers.

Derivation Architecture:
    1. site → SHA-256 → salt (first 16 bytes)
    2. master secret + salt → Argon2id → Derived Key (32 bytes)
    3. Derived Key → HKDF-Extract → PRK (32 bytes)
    4. PRK + info → HMAC chain (HKDF-Expand) → byte stream, pulled on demand

Why this is secure:
    - Argon2id is memory-hard (every guess at the master costs 64 MiB)
    - The site is bound into the salt, the info string binds everything else
    - HKDF output is indistinguishable from random without the PRK

Every constant in the Configuration section is part of algorithm version 1.
Changing any of them changes every password and must bump ALGO_VERSION.
"""

import hashlib
import hmac
import logging
from contextlib import contextmanager
from typing import Iterator, Union

from cryptography.exceptions import InternalError, UnsupportedAlgorithm
from cryptography.hazmat.primitives.kdf.argon2 import Argon2id

from .errors import InvalidInput, KdfFailure, StreamExhausted

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

ALGO_VERSION = 1

KEY_SIZE = 32            # Derived Key and PRK size (bytes)
SALT_SIZE = 16           # Argon2id salt, truncated SHA-256
BLOCK_SIZE = 32          # HMAC-SHA256 output per stream block
MAX_BLOCKS = 255         # HKDF-Expand limit: block index is a single byte

# Argon2id parameters (~64 MiB, 3 passes, one lane)
ARGON2_MEMORY_KIB = 65536
ARGON2_ITERATIONS = 3
ARGON2_LANES = 1

# Domain separation labels
SALT_PREFIX = b"pwgen-salt-v1:"
HKDF_SALT = b"pwgen-hkdf-salt-v1"
INFO_PREFIX = b"pwgen-v1"


SecretLike = Union[str, bytes, bytearray]


# =============================================================================
# Zeroization
# =============================================================================

def wipe(buf: bytearray) -> None:
    """Overwrite a mutable buffer with zeros in place."""
    for i in range(len(buf)):
        buf[i] = 0


@contextmanager
def secret_buffer(secret: SecretLike) -> Iterator[bytearray]:
    """
    Copy a secret into a bytearray that is wiped when the block exits.

    Wiping happens on every exit path, including exceptions. Immutable
    `bytes`/`str` originals cannot be overwritten, so callers should drop
    their references as soon as possible.
    """
    if isinstance(secret, str):
        buf = bytearray(secret.encode("utf-8"))
    elif isinstance(secret, (bytes, bytearray)):
        buf = bytearray(secret)
    else:
        raise InvalidInput(f"master secret must be str or bytes, not {type(secret).__name__}")
    try:
        yield buf
    finally:
        wipe(buf)


# =============================================================================
# Key Stretching
# =============================================================================

def site_salt(site_id: str) -> bytes:
    """
    Salt = SHA-256(SALT_PREFIX || site)[:16].

    `site_id` must already be normalized (trimmed, lowercased).
    """
    digest = hashlib.sha256(SALT_PREFIX + site_id.encode("utf-8")).digest()
    return digest[:SALT_SIZE]


def derive_site_key(master: SecretLike, site_id: str) -> bytearray:
    """
    Stretch the master secret for one site with Argon2id.

    Why Argon2id?
    - Memory-hard: each offline guess needs 64 MiB of RAM
    - If one site password leaks, guessing the master stays expensive

    Args:
        master: Master secret (str is UTF-8 encoded)
        site_id: Normalized site identifier

    Returns:
        32-byte Derived Key as a bytearray (caller must wipe it)

    Raises:
        KdfFailure: Argon2id could not run (allocation failure, no backend
            support). The cost is never lowered to recover.
    """
    salt = site_salt(site_id)
    logger.debug(
        f"Stretching master secret (argon2id m={ARGON2_MEMORY_KIB}KiB "
        f"t={ARGON2_ITERATIONS} p={ARGON2_LANES})"
    )

    with secret_buffer(master) as master_bytes:
        try:
            kdf = Argon2id(
                salt=salt,
                length=KEY_SIZE,
                iterations=ARGON2_ITERATIONS,
                lanes=ARGON2_LANES,
                memory_cost=ARGON2_MEMORY_KIB,
            )
            key = bytearray(kdf.derive(master_bytes))
        except (MemoryError, InternalError, UnsupportedAlgorithm) as e:
            raise KdfFailure(f"argon2id key stretching failed: {type(e).__name__}") from e

    return key


def hkdf_extract(ikm: Union[bytes, bytearray], salt: bytes = HKDF_SALT) -> bytearray:
    """HKDF-Extract: PRK = HMAC-SHA256(salt, ikm)."""
    return bytearray(hmac.new(salt, ikm, hashlib.sha256).digest())


# =============================================================================
# Deterministic Stream
# =============================================================================

class HkdfStream:
    """
    Pull-based HKDF-Expand byte stream.

    Blocks are chained exactly like RFC 5869 HKDF-Expand:
        T(1) = HMAC(PRK, info || 0x01)
        T(n) = HMAC(PRK, T(n-1) || info || n)

    but instead of returning a fixed-length output, bytes are handed out on
    demand. Whatever is left of the current block is kept for the next pull.
    The stream only moves forward and must not be shared between contexts.

    Use as a context manager so the PRK and block buffers are wiped:

        with HkdfStream.from_key(key, info) as stream:
            idx = stream.next_index(10)
    """

    def __init__(self, prk: Union[bytes, bytearray], info: bytes):
        if len(prk) != KEY_SIZE:
            raise ValueError(f"PRK must be {KEY_SIZE} bytes")
        self._prk = bytearray(prk)
        self._info = bytes(info)
        self._counter = 0                       # index of the current block
        self._block = bytearray(BLOCK_SIZE)     # T(counter)
        self._pos = BLOCK_SIZE                  # force a refill on first pull
        self._closed = False

    @classmethod
    def from_key(cls, key: Union[bytes, bytearray], info: bytes) -> "HkdfStream":
        """Build a stream from a Derived Key and an info string."""
        prk = hkdf_extract(key)
        try:
            return cls(prk, info)
        finally:
            wipe(prk)

    @property
    def blocks_used(self) -> int:
        return self._counter

    def _refill(self) -> None:
        if self._closed:
            raise ValueError("stream is closed")
        if self._counter >= MAX_BLOCKS:
            raise StreamExhausted(f"stream exhausted after {MAX_BLOCKS} blocks")

        self._counter += 1
        mac = hmac.new(self._prk, digestmod=hashlib.sha256)
        if self._counter > 1:
            mac.update(self._block)
        mac.update(self._info)
        mac.update(bytes([self._counter]))

        self._block[:] = mac.digest()
        self._pos = 0

    def next_byte(self) -> int:
        """Next byte of the stream (0-255)."""
        if self._pos >= BLOCK_SIZE:
            self._refill()
        b = self._block[self._pos]
        self._pos += 1
        return b

    def read(self, n: int) -> bytes:
        """Pull exactly n bytes."""
        return bytes(self.next_byte() for _ in range(n))

    def next_index(self, n: int) -> int:
        """
        Unbiased integer in [0, n) by rejection sampling.

        Draw one byte; accept it if it is below the largest multiple of n
        that fits in a byte, otherwise throw it away and draw again.

        Args:
            n: Span, 1 <= n <= 256
        """
        if not 1 <= n <= 256:
            raise ValueError(f"span must be within [1, 256], got {n}")
        limit = (256 // n) * n
        while True:
            b = self.next_byte()
            if b < limit:
                return b % n

    def close(self) -> None:
        """Wipe the PRK and block buffers. Further pulls fail."""
        wipe(self._prk)
        wipe(self._block)
        self._pos = BLOCK_SIZE
        self._closed = True

    def __enter__(self) -> "HkdfStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
