"""
pwgen - Golden Vectors and Statistical Checks

The golden values below are frozen outputs of algorithm version 1. Any
change to the KDF parameters, labels, policy encoding, stream chaining or
sampling order breaks them; that is a bug, not a new expected value.
"""

from collections import Counter

import pytest

from pwgen import crypto
from pwgen.generator import Context, derive_password, generate_password, select_length
from pwgen.policy import ALPHABETS, Charset, ExactLength, LengthRange, Policy

ALL = [Charset.LOWER, Charset.UPPER, Charset.DIGIT, Charset.SYMBOL]
ZERO_KEY = bytes(32)


# =============================================================================
# Golden Vectors
# =============================================================================

KDF_VECTORS = [
    ("password123", "example.com", [
        190, 24, 69, 116, 140, 249, 56, 190, 96, 127, 81, 49, 252, 32, 166, 163,
        81, 135, 253, 226, 148, 210, 209, 225, 70, 1, 159, 49, 212, 143, 31, 178,
    ]),
    ("different_password", "example.com", [
        40, 166, 195, 24, 107, 236, 143, 86, 69, 52, 172, 139, 19, 60, 39, 107,
        47, 116, 3, 31, 48, 172, 142, 36, 249, 255, 183, 223, 155, 218, 115, 218,
    ]),
    ("password123", "different.com", [
        176, 215, 168, 40, 102, 86, 42, 38, 0, 5, 181, 217, 127, 222, 65, 169,
        24, 249, 255, 114, 44, 228, 87, 7, 216, 120, 207, 35, 24, 112, 172, 8,
    ]),
]


@pytest.mark.parametrize("master,site,expected", KDF_VECTORS)
def test_kdf_golden(master, site, expected):
    assert crypto.derive_site_key(master, site) == bytes(expected)


def test_stream_golden():
    with crypto.HkdfStream.from_key(ZERO_KEY, b"test-context") as stream:
        assert stream.read(64) == bytes([
            96, 72, 158, 207, 10, 30, 162, 206, 191, 247, 165, 10, 33, 134, 189, 248,
            11, 203, 121, 95, 83, 23, 26, 180, 132, 246, 23, 49, 25, 224, 145, 135,
            197, 180, 29, 12, 218, 156, 221, 162, 8, 41, 146, 141, 254, 100, 143, 0,
            100, 129, 15, 26, 68, 250, 125, 106, 214, 198, 10, 110, 28, 144, 16, 175,
        ])

    with crypto.HkdfStream.from_key(ZERO_KEY, b"test-context") as stream:
        indices = [stream.next_index(10) for _ in range(20)]
    assert indices == [6, 2, 8, 7, 0, 0, 2, 6, 1, 7, 5, 0, 3, 4, 9, 8, 1, 3, 1, 5]


EXACT_12 = Policy(allowed=ALL, length=ExactLength(12))

PASSWORD_VECTORS = [
    # (site, username, policy, version, password)
    ("example.com", "alice", EXACT_12, 1, "!uZ5S_;H@x-m"),
    ("example.com", "alice", EXACT_12, 2, "fF2,:U\\Gzn\\:"),
    ("example.com", "bob", EXACT_12, 1, ")ionz.dK7\"-p"),
    ("different.com", "alice", EXACT_12, 1, "U(#\"PK<XqUoN"),
    ("test.com", None, Policy(allowed=ALL, forced=[Charset.LOWER, Charset.UPPER], length=ExactLength(8)),
     1, "Iv(N\\wq="),
    ("test.com", None, Policy(allowed=ALL, length=LengthRange(8, 16)), 1, ";2tbAk?7KL(J_F"),
    ("test.com", None, Policy(allowed=[Charset.DIGIT], length=ExactLength(10)), 1, "4042846870"),
    ("test.com", None, Policy(allowed=[Charset.LOWER, Charset.UPPER], forced=[Charset.LOWER, Charset.UPPER],
                              length=ExactLength(2)), 1, "qZ"),
    ("test.com", None, Policy(allowed=[Charset.SYMBOL], length=ExactLength(8)), 1, "<_?.!}{["),
    ("test.com", "", Policy(allowed=ALL, length=ExactLength(8)), 1, "^3nk&;vF"),
]


@pytest.mark.parametrize("site,username,policy,version,expected", PASSWORD_VECTORS)
def test_password_golden(site, username, policy, version, expected):
    assert generate_password("master123", site, username, policy, version) == expected


def test_forced_vector_has_required_classes():
    pwd = generate_password("master123", "test.com", "",
                            Policy(allowed=ALL, forced=[Charset.LOWER, Charset.UPPER], length=ExactLength(8)))
    assert len(pwd) == 8
    assert any(c.islower() for c in pwd)
    assert any(c.isupper() for c in pwd)


def test_site_and_version_change_together():
    v1 = generate_password("master123", "example.com", "alice", EXACT_12, 1)
    v2 = generate_password("master123", "different.com", "alice", EXACT_12, 2)
    assert v2 == generate_password("master123", "different.com", "alice", EXACT_12, 2)
    assert v1 != v2
    assert v2 not in {expected for *_, expected in PASSWORD_VECTORS}


def test_independent_runs_agree():
    ctx = Context.create("Example.com", "alice", Policy(allowed=ALL, length=LengthRange(12, 16)), 7)
    assert derive_password("master123", ctx) == derive_password(b"master123", ctx)


# =============================================================================
# Statistics
# =============================================================================

# Chi-squared critical values at p = 0.0001; the draws are deterministic, so
# these either always pass or always fail.
CHI2_CRITICAL = {6: 27.86, 8: 31.83, 99: 160.2}


def chi_squared(counts, span, total):
    expected = total / span
    return sum((counts.get(k, 0) - expected) ** 2 / expected for k in range(span))


@pytest.mark.parametrize("span,per_seed,seeds", [(7, 70, 100), (100, 100, 200)])
def test_next_index_uniform(span, per_seed, seeds):
    counts = Counter()
    for seed in range(seeds):
        with crypto.HkdfStream.from_key(ZERO_KEY, f"chi-{span}-{seed}".encode()) as stream:
            for _ in range(per_seed):
                value = stream.next_index(span)
                assert 0 <= value < span
                counts[value] += 1

    assert chi_squared(counts, span, per_seed * seeds) < CHI2_CRITICAL[span - 1]


def test_length_distribution_uniform():
    policy = Policy(allowed=ALL, length=LengthRange(8, 16))
    counts = Counter()
    draws = 4500
    for seed in range(draws):
        with crypto.HkdfStream.from_key(ZERO_KEY, f"len-{seed}".encode()) as stream:
            counts[select_length(policy, stream)] += 1

    assert set(counts) == set(range(8, 17))
    shifted = Counter({length - 8: n for length, n in counts.items()})
    assert chi_squared(shifted, 9, draws) < CHI2_CRITICAL[8]


def test_full_pipeline_conformance():
    policy = Policy(allowed=[Charset.LOWER, Charset.DIGIT, Charset.SYMBOL],
                    forced=[Charset.DIGIT, Charset.SYMBOL], length=LengthRange(4, 10))
    allowed = set(ALPHABETS[Charset.LOWER] + ALPHABETS[Charset.DIGIT] + ALPHABETS[Charset.SYMBOL])
    seen = set()
    for i in range(6):
        pwd = generate_password("m", f"site-{i}", policy=policy)
        assert 4 <= len(pwd) <= 10
        assert set(pwd) <= allowed
        assert any(c in ALPHABETS[Charset.DIGIT] for c in pwd)
        assert any(c in ALPHABETS[Charset.SYMBOL] for c in pwd)
        seen.add(pwd)
    assert len(seen) == 6
