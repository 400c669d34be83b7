"""
pwgen - Password Policy

A policy says which character classes may appear in a password, which of
them must appear at least once, and how long the password is.

Policies are validated once, when they are built. Everything downstream
(length selection, character sampling) assumes a valid policy and does not
re-check it.

Canonical encoding (bound into every derivation):
    min=<min>;max=<max>;allow=<csv>;force=<csv>

    csv lists class names in the fixed order lower,upper,digit,symbol.
    An exact length N encodes as min=N;max=N.
"""

import enum
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Tuple, Union

from .errors import InsufficientLength, InvalidLength, InvalidPolicy


# =============================================================================
# Configuration
# =============================================================================

MIN_LENGTH = 1
MAX_LENGTH = 128

DEFAULT_MIN = 12
DEFAULT_MAX = 16


class Charset(enum.Enum):
    """Character classes, declared in canonical order."""

    LOWER = "lower"
    UPPER = "upper"
    DIGIT = "digit"
    SYMBOL = "symbol"


# Fixed, ordered ASCII alphabets. Changing any of these changes every output.
ALPHABETS = {
    Charset.LOWER: "abcdefghijklmnopqrstuvwxyz",
    Charset.UPPER: "ABCDEFGHIJKLMNOPQRSTUVWXYZ",
    Charset.DIGIT: "0123456789",
    Charset.SYMBOL: "!\"#$%&'()*+,-./:;<=>?@[\\]^_{|}~",
}

CANONICAL_ORDER = (Charset.LOWER, Charset.UPPER, Charset.DIGIT, Charset.SYMBOL)


# =============================================================================
# Length Specification
# =============================================================================

@dataclass(frozen=True)
class ExactLength:
    """Password is always exactly `length` characters."""

    length: int

    @property
    def bounds(self) -> Tuple[int, int]:
        return self.length, self.length


@dataclass(frozen=True)
class LengthRange:
    """Password length is picked from [minimum, maximum] inclusive."""

    minimum: int
    maximum: int

    @property
    def bounds(self) -> Tuple[int, int]:
        return self.minimum, self.maximum


LengthSpec = Union[ExactLength, LengthRange]


# =============================================================================
# Policy
# =============================================================================

@dataclass(frozen=True)
class Policy:
    """
    Validated password policy.

    Args:
        allowed: Character classes that may appear (Charset members or names)
        forced: Classes that must appear at least once (subset of allowed)
        length: ExactLength or LengthRange

    Raises:
        InvalidLength: non-integer bounds, bounds outside [1, 128], or min > max
        InvalidPolicy: unknown character class
        InvalidPolicy: allowed is empty, or forced is not a subset of allowed
        InsufficientLength: min length is smaller than the forced class count
    """

    allowed: FrozenSet[Charset]
    forced: FrozenSet[Charset] = field(default_factory=frozenset)
    length: LengthSpec = LengthRange(DEFAULT_MIN, DEFAULT_MAX)

    def __post_init__(self):
        # Accept any iterable of Charset or class names, store an order-free set
        object.__setattr__(self, "allowed", _coerce_charsets(self.allowed))
        object.__setattr__(self, "forced", _coerce_charsets(self.forced))

        if not isinstance(self.length, (ExactLength, LengthRange)):
            raise InvalidLength(f"length must be ExactLength or LengthRange, not {type(self.length).__name__}")
        lo, hi = self.length.bounds
        for bound in (lo, hi):
            if isinstance(bound, bool) or not isinstance(bound, int):
                raise InvalidLength(f"length bounds must be integers, got {bound!r}")
        if lo < MIN_LENGTH or hi > MAX_LENGTH or lo > hi:
            raise InvalidLength(
                f"invalid length bounds (require {MIN_LENGTH} <= min <= max <= {MAX_LENGTH}, "
                f"got min={lo}, max={hi})"
            )

        if not self.allowed:
            raise InvalidPolicy("allowed character sets must be nonempty")

        if not self.forced <= self.allowed:
            missing = ",".join(c.value for c in CANONICAL_ORDER if c in self.forced - self.allowed)
            raise InvalidPolicy(f"forced sets must be subset of allowed sets (not allowed: {missing})")

        if lo < len(self.forced):
            raise InsufficientLength(
                f"min length {lo} is smaller than the number of forced sets ({len(self.forced)})"
            )

    @property
    def min_length(self) -> int:
        return self.length.bounds[0]

    @property
    def max_length(self) -> int:
        return self.length.bounds[1]

    def encode(self) -> str:
        return encode(self)


def _coerce_charsets(values: Iterable) -> FrozenSet[Charset]:
    """Charset members or their names ('lower', ...) to a frozenset of Charset."""
    if isinstance(values, (str, bytes)):
        raise InvalidPolicy(f"character sets must be a collection, not {type(values).__name__}")
    try:
        values = list(values)
    except TypeError:
        raise InvalidPolicy(f"character sets must be a collection, not {type(values).__name__}") from None
    result = set()
    for value in values:
        try:
            result.add(Charset(value))
        except ValueError:
            valid = ", ".join(c.value for c in CANONICAL_ORDER)
            raise InvalidPolicy(f"unknown character set {value!r} (expected one of: {valid})") from None
    return frozenset(result)


def default_policy() -> Policy:
    """Range [12, 16], every class allowed, nothing forced."""
    return Policy(allowed=CANONICAL_ORDER)


# =============================================================================
# Canonical Encoding
# =============================================================================

def _csv(classes: FrozenSet[Charset]) -> str:
    return ",".join(c.value for c in CANONICAL_ORDER if c in classes)


def encode(policy: Policy) -> str:
    """
    Canonical policy encoding used in the derivation context.

    Same policy -> same string, regardless of the order classes were given in.
    """
    return "min={};max={};allow={};force={}".format(
        policy.min_length, policy.max_length, _csv(policy.allowed), _csv(policy.forced)
    )


# =============================================================================
# Alphabets
# =============================================================================

def allowed_alphabet(policy: Policy) -> str:
    """Union of allowed alphabets, canonical order, duplicates removed."""
    chars = "".join(ALPHABETS[c] for c in CANONICAL_ORDER if c in policy.allowed)
    return "".join(dict.fromkeys(chars))


def forced_sets(policy: Policy) -> List[Tuple[Charset, str]]:
    """(class, alphabet) for every forced class, in canonical order."""
    return [(c, ALPHABETS[c]) for c in CANONICAL_ORDER if c in policy.forced]


def parse_charsets(names: Iterable[str]) -> FrozenSet[Charset]:
    """
    Turn class names ("lower", "Upper", ...) into a set of Charset.

    Raises:
        InvalidPolicy: unknown class name
    """
    result = set()
    for name in names:
        name = name.strip().lower()
        if not name:
            continue
        try:
            result.add(Charset(name))
        except ValueError:
            valid = ", ".join(c.value for c in CANONICAL_ORDER)
            raise InvalidPolicy(f"unknown character set '{name}' (expected one of: {valid})") from None
    return frozenset(result)
