"""Signatures — reference tokens and inbound webhook signature checks.

Tests:
    - Token round trip validates; any single-character mutation does not
    - Wrong length → False, non-hex → MalformedTokenError, empty secret → ConfigurationError
    - Comparison time does not depend on where the first mismatch is
    - Payment header t=,v1= verified over the raw body with a tolerance window
    - Board signature verified over the raw body
    - Ledger export key compared in constant time; empty expected key fails closed
"""

import statistics
import time
from decimal import Decimal

import pytest

from app.core.errors import ConfigurationError, MalformedTokenError
from app.core.signatures import (
    TOKEN_LENGTH, generate_token, sign_board_payload, sign_payment_payload,
    validate_token, verify_board_signature, verify_export_key,
    verify_payment_signature,
)

SECRET = "token-secret"
PAYMENT_SECRET = "whsec_abc123"
BOARD_SECRET = "board-secret"
NOW = 1_700_000_000


# ─── Reference tokens ────────────────────────────────────────────

def test_token_is_sixteen_lowercase_hex_chars():
    token = generate_token("4521", 150, SECRET)
    assert len(token) == TOKEN_LENGTH
    assert all(c in "0123456789abcdef" for c in token)


def test_token_is_deterministic():
    assert generate_token("4521", 150, SECRET) == generate_token("4521", 150, SECRET)


def test_token_differs_per_job_amount_and_secret():
    base = generate_token("4521", 150, SECRET)
    assert generate_token("4522", 150, SECRET) != base
    assert generate_token("4521", 151, SECRET) != base
    assert generate_token("4521", 150, "other-secret") != base


def test_equal_amounts_of_different_types_give_same_token():
    expected = generate_token("4521", 150, SECRET)
    assert generate_token("4521", 150.0, SECRET) == expected
    assert generate_token("4521", Decimal("150.00"), SECRET) == expected
    assert generate_token("4521", "150", SECRET) == expected


def test_round_trip_validates():
    token = generate_token("4521", 150, SECRET)
    assert validate_token("4521", 150, token, SECRET) is True


def test_every_single_char_mutation_is_rejected():
    token = generate_token("4521", 150, SECRET)
    for i, original in enumerate(token):
        for replacement in "0123456789abcdefABCDEF":
            if replacement == original:
                continue
            mutated = token[:i] + replacement + token[i + 1:]
            assert validate_token("4521", 150, mutated, SECRET) is False, mutated


def test_wrong_length_is_false_not_error():
    token = generate_token("4521", 150, SECRET)
    assert validate_token("4521", 150, token[:-1], SECRET) is False
    assert validate_token("4521", 150, token + "0", SECRET) is False
    assert validate_token("4521", 150, "a", SECRET) is False


def test_token_for_other_job_is_rejected():
    token = generate_token("4521", 150, SECRET)
    assert validate_token("9999", 150, token, SECRET) is False


@pytest.mark.parametrize("bad", ["", "xyz", "12345678abcdefgz", "12 34", "0x1234"])
def test_non_hex_token_raises_malformed(bad):
    with pytest.raises(MalformedTokenError) as exc_info:
        validate_token("4521", 150, bad, SECRET)
    assert exc_info.value.http_status == 400


def test_empty_secret_raises_configuration_error():
    with pytest.raises(ConfigurationError):
        generate_token("4521", 150, "")
    with pytest.raises(ConfigurationError):
        validate_token("4521", 150, "abcdef0123456789", "")


def _median_validate_time(token: str, rounds: int = 3000) -> float:
    samples = []
    for _ in range(rounds):
        start = time.perf_counter()
        validate_token("4521", 150, token, SECRET)
        samples.append(time.perf_counter() - start)
    return statistics.median(samples)


def test_comparison_time_independent_of_mismatch_position():
    token = generate_token("4521", 150, SECRET)
    flip = {c: ("0" if c != "0" else "1") for c in "0123456789abcdef"}
    early = flip[token[0]] + token[1:]
    late = token[:-1] + flip[token[-1]]

    _median_validate_time(early, rounds=200)  # warm-up
    t_early = _median_validate_time(early)
    t_late = _median_validate_time(late)

    ratio = t_early / t_late
    assert 1 / 3 < ratio < 3


# ─── Payment channel ─────────────────────────────────────────────

def test_payment_signature_valid():
    body = b'{"id":"evt_1","type":"checkout.session.completed"}'
    header = sign_payment_payload(body, PAYMENT_SECRET, NOW)
    assert verify_payment_signature(body, header, PAYMENT_SECRET, now=NOW) is True


def test_payment_signature_rejects_tampered_body():
    body = b'{"id":"evt_1"}'
    header = sign_payment_payload(body, PAYMENT_SECRET, NOW)
    assert verify_payment_signature(
        b'{"id":"evt_2"}', header, PAYMENT_SECRET, now=NOW,
    ) is False


def test_payment_signature_rejects_wrong_secret():
    body = b"{}"
    header = sign_payment_payload(body, "whsec_other", NOW)
    assert verify_payment_signature(body, header, PAYMENT_SECRET, now=NOW) is False


def test_payment_signature_rejects_stale_timestamp():
    body = b"{}"
    header = sign_payment_payload(body, PAYMENT_SECRET, NOW - 301)
    assert verify_payment_signature(body, header, PAYMENT_SECRET, now=NOW) is False


def test_payment_signature_accepts_within_tolerance():
    body = b"{}"
    header = sign_payment_payload(body, PAYMENT_SECRET, NOW - 299)
    assert verify_payment_signature(body, header, PAYMENT_SECRET, now=NOW) is True


def test_payment_signature_any_v1_may_match():
    body = b"{}"
    good = sign_payment_payload(body, PAYMENT_SECRET, NOW).split("v1=")[1]
    header = f"t={NOW},v1={'0' * 64},v1={good}"
    assert verify_payment_signature(body, header, PAYMENT_SECRET, now=NOW) is True


@pytest.mark.parametrize("header", [
    None, "", "garbage", f"t={NOW}", "v1=abc", "t=notanumber,v1=abc",
    f"t={NOW},v1=ü",
])
def test_payment_signature_malformed_header_is_false(header):
    assert verify_payment_signature(b"{}", header, PAYMENT_SECRET, now=NOW) is False


def test_payment_signature_without_secret_fails_closed():
    with pytest.raises(ConfigurationError):
        verify_payment_signature(b"{}", "t=1,v1=abc", "")


# ─── Board channel ───────────────────────────────────────────────

def test_board_signature_valid():
    body = b'{"event":{}}'
    signature = sign_board_payload(body, BOARD_SECRET)
    assert verify_board_signature(body, signature, BOARD_SECRET) is True


def test_board_signature_case_and_whitespace_insensitive():
    body = b'{"event":{}}'
    signature = sign_board_payload(body, BOARD_SECRET)
    assert verify_board_signature(body, f" {signature.upper()} ", BOARD_SECRET) is True


def test_board_signature_rejects_tampered_body():
    signature = sign_board_payload(b'{"a":1}', BOARD_SECRET)
    assert verify_board_signature(b'{"a":2}', signature, BOARD_SECRET) is False


@pytest.mark.parametrize("header", [None, "", "deadbeef", "ü" * 64])
def test_board_signature_bad_header_is_false(header):
    assert verify_board_signature(b"{}", header, BOARD_SECRET) is False


def test_board_signature_without_secret_fails_closed():
    with pytest.raises(ConfigurationError):
        verify_board_signature(b"{}", "abc", "")


# ─── Ledger export key ───────────────────────────────────────────

def test_export_key_matches():
    assert verify_export_key("export-key", "export-key") is True


@pytest.mark.parametrize("provided", [None, "", "export-kez", "export-key-longer"])
def test_export_key_mismatch_is_false(provided):
    assert verify_export_key(provided, "export-key") is False


def test_export_key_without_expected_key_fails_closed():
    with pytest.raises(ConfigurationError):
        verify_export_key("anything", "")
