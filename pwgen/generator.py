"""
pwgen - Password Generator

Runs the derivation pipeline for one request:

    Context → info string
    master + site → Argon2id → Derived Key
    Derived Key + info → HkdfStream
    stream → length → forced picks → filler picks → Fisher-Yates shuffle

Nothing is stored between calls. The Derived Key and the stream state are
created here and wiped before returning, on success or error.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from . import crypto
from .errors import InsufficientLength, InvalidInput
from .policy import Policy, allowed_alphabet, default_policy, encode, forced_sets

logger = logging.getLogger(__name__)

MAX_VERSION = 2**32 - 1


# =============================================================================
# Context
# =============================================================================

def normalize_site(site: str) -> str:
    """Trim surrounding whitespace and lowercase."""
    return site.strip().lower()


@dataclass(frozen=True)
class Context:
    """
    Everything public that identifies one password.

    The site is normalized on construction, so Context(...) and
    Context.create(...) build the same value.

    Raises:
        InvalidInput: site or username is not a str, version is not an
            int in [0, 2**32 - 1], or policy is not a Policy
    """

    site: str
    username: Optional[str]
    policy: Optional[Policy]
    version: int = 1

    def __post_init__(self):
        if not isinstance(self.site, str):
            raise InvalidInput(f"site must be a str, not {type(self.site).__name__}")
        if self.username is not None and not isinstance(self.username, str):
            raise InvalidInput(f"username must be a str, not {type(self.username).__name__}")
        if isinstance(self.version, bool) or not isinstance(self.version, int):
            raise InvalidInput(f"version must be an integer, not {type(self.version).__name__}")
        if not 0 <= self.version <= MAX_VERSION:
            raise InvalidInput(f"version must be within [0,{MAX_VERSION}]")

        policy = self.policy if self.policy is not None else default_policy()
        if not isinstance(policy, Policy):
            raise InvalidInput(f"policy must be a Policy, not {type(policy).__name__}")

        object.__setattr__(self, "site", normalize_site(self.site))
        object.__setattr__(self, "username", self.username or "")
        object.__setattr__(self, "policy", policy)

    @classmethod
    def create(
        cls,
        site: str,
        username: Optional[str] = None,
        policy: Optional[Policy] = None,
        version: int = 1,
    ) -> "Context":
        """
        Args:
            site: Site identifier (trimmed and lowercased)
            username: Used verbatim; None is the same as ""
            policy: Validated Policy (default: default_policy())
            version: Rotation number, 0 <= version < 2**32
        """
        return cls(site=site, username=username, policy=policy, version=version)

    def info(self) -> bytes:
        return encode_info(self)


def encode_info(context: Context) -> bytes:
    """
    Canonical info string bound into the stream.

    Format:
        pwgen-v1|site=<site>|user=<username>|policy=<policy>|version=<n>
    """
    return b"".join([
        crypto.INFO_PREFIX,
        b"|site=", context.site.encode("utf-8"),
        b"|user=", context.username.encode("utf-8"),
        b"|policy=", encode(context.policy).encode("ascii"),
        b"|version=", str(context.version).encode("ascii"),
    ])


# =============================================================================
# Selection
# =============================================================================

def select_length(policy: Policy, stream: crypto.HkdfStream) -> int:
    """
    Pick the password length.

    Exact lengths (and ranges with min == max) do not touch the stream.
    """
    lo, hi = policy.min_length, policy.max_length
    if lo == hi:
        return lo
    return lo + stream.next_index(hi - lo + 1)


def sample_characters(policy: Policy, length: int, stream: crypto.HkdfStream) -> List[str]:
    """
    Build the password characters.

    1. One character per forced class (lower, upper, digit, symbol order)
    2. Fill the rest from the union of allowed alphabets
    3. Fisher-Yates shuffle driven by the same stream

    Raises:
        InsufficientLength: length < number of forced classes
    """
    forced = forced_sets(policy)
    if length < len(forced):
        raise InsufficientLength(
            f"length {length} is smaller than the number of forced sets ({len(forced)})"
        )

    out = []
    for _charset, alphabet in forced:
        out.append(alphabet[stream.next_index(len(alphabet))])

    union = allowed_alphabet(policy)
    for _ in range(length - len(out)):
        out.append(union[stream.next_index(len(union))])

    for i in range(len(out) - 1, 0, -1):
        j = stream.next_index(i + 1)
        out[i], out[j] = out[j], out[i]

    return out


# =============================================================================
# Pipeline
# =============================================================================

@dataclass(frozen=True)
class GenerationResult:
    """Password plus the metadata a presenter may want to show."""

    password: str
    site: str
    username: str
    version: int
    policy: str
    algo_version: int = crypto.ALGO_VERSION

    @property
    def length(self) -> int:
        return len(self.password)

    def as_dict(self) -> dict:
        return {
            "password": self.password,
            "length": self.length,
            "site": self.site,
            "username": self.username,
            "version": self.version,
            "policy": self.policy,
            "algo_version": self.algo_version,
        }


def derive_password(master: crypto.SecretLike, context: Context) -> str:
    """
    Derive the password for a context.

    The master buffer is wiped right after Argon2id; the Derived Key right
    after the stream is built; the stream when the password is assembled.

    Raises:
        KdfFailure: Argon2id could not complete
        StreamExhausted: should not happen for lengths <= 128
    """
    info = encode_info(context)
    logger.debug(
        f"Deriving password for site={context.site!r} version={context.version} "
        f"policy={encode(context.policy)}"
    )

    key = crypto.derive_site_key(master, context.site)
    try:
        stream = crypto.HkdfStream.from_key(key, info)
    finally:
        crypto.wipe(key)

    with stream:
        length = select_length(context.policy, stream)
        chars = sample_characters(context.policy, length, stream)
        logger.debug(f"Password assembled (length={length}, blocks={stream.blocks_used})")

    return "".join(chars)


def generate(master: crypto.SecretLike, context: Context) -> GenerationResult:
    """derive_password() plus presentation metadata."""
    password = derive_password(master, context)
    return GenerationResult(
        password=password,
        site=context.site,
        username=context.username,
        version=context.version,
        policy=encode(context.policy),
    )


def generate_password(
    master: crypto.SecretLike,
    site: str,
    username: Optional[str] = None,
    policy: Optional[Policy] = None,
    version: int = 1,
) -> str:
    """
    Generate a deterministic password from the given inputs.

    Args:
        master: Master secret
        site: Site identifier (trimmed and lowercased)
        username: Optional username, used verbatim
        policy: Validated Policy (default: range 12-16, all classes)
        version: Rotation number

    Returns:
        Password string
    """
    context = Context.create(site, username=username, policy=policy, version=version)
    return derive_password(master, context)
