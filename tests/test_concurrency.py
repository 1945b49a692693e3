"""Test module for concurrent verification."""

import threading

from src.exceptions import (
    OTPAttemptsExhaustedError,
    OTPMismatchError,
    OTPNotFoundError,
)
from src.otp_service import issue_otp, verify_otp

THREADS = 8


def run_concurrently(target):
    """Start every thread at the same barrier and collect their outcomes."""
    barrier = threading.Barrier(THREADS)
    outcomes = []
    outcomes_lock = threading.Lock()

    def worker():
        barrier.wait()
        try:
            target()
            outcome = "ok"
        except (OTPAttemptsExhaustedError, OTPMismatchError, OTPNotFoundError) as e:
            outcome = e
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(THREADS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert len(outcomes) == THREADS
    return outcomes


def test_correct_code_verifies_once(memory_store, sender):
    """Test only one of many concurrent correct submissions succeeds."""
    result = issue_otp(memory_store, "user@co.com", sender, send=False)

    outcomes = run_concurrently(
        lambda: verify_otp(memory_store, "user@co.com", result.code)
    )

    assert outcomes.count("ok") == 1
    assert all(
        isinstance(outcome, OTPNotFoundError) for outcome in outcomes if outcome != "ok"
    )
    assert memory_store.lookup("user@co.com") is None


def test_wrong_codes_never_pass_ceiling(memory_store, sender):
    """Test concurrent wrong submissions report each remaining count once."""
    result = issue_otp(memory_store, "user@co.com", sender, send=False)
    bad_code = "000000" if result.code != "000000" else "111111"

    outcomes = run_concurrently(
        lambda: verify_otp(memory_store, "user@co.com", bad_code)
    )

    mismatches = sorted(
        outcome.remaining_attempts
        for outcome in outcomes
        if isinstance(outcome, OTPMismatchError)
    )
    assert mismatches == [1, 2]
    assert "ok" not in outcomes
    assert memory_store.lookup("user@co.com") is None
