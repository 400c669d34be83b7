"""
pwgen - Deterministic Site Password Generator

Derives a password for a site from a master secret and a few public fields
(site, username, policy, version). Nothing is stored: the same inputs always
give the same password, and changing any input gives an unrelated one.

Key Features:
- Stateless: no vault, no database, no network
- Strong crypto: Argon2id + HKDF-SHA256
- Unbiased: rejection sampling for every random choice
- Policies: allowed/forced character classes, exact or ranged length

Components:
- policy.py: Character classes, Policy validation and canonical encoding
- crypto.py: Argon2id key stretching and the HKDF byte stream
- generator.py: The derivation pipeline
- cli.py: Command-line interface (uses built-in argparse)

Usage:
    pwgen generate --site example.com --master-prompt
    pwgen generate --site example.com --username alice --length 20 --force lower,digit
    echo -n secret | pwgen generate --site example.com --master-stdin --json
"""

from .crypto import ALGO_VERSION
from .errors import (
    InsufficientLength,
    InvalidInput,
    InvalidLength,
    InvalidPolicy,
    KdfFailure,
    PwgenError,
    StreamExhausted,
)
from .generator import Context, GenerationResult, derive_password, generate, generate_password
from .policy import Charset, ExactLength, LengthRange, Policy, default_policy

__version__ = "0.1.0"
__author__ = "pwgen Team"
