"""Interstitial ticket protocol.

A ticket proves that a visitor has already been shown the interstitial
page for a given host and code. It is the timestamp at which the page
was rendered plus an HMAC-SHA256 signature over
``"{timestamp}:{host}:{code}"``, hex encoded. The signing functions know
nothing about time; the acceptance window is checked by the caller.
"""

import hashlib
import hmac
from dataclasses import dataclass

DEFAULT_TICKET_MAX_AGE = 30 * 60


@dataclass(frozen=True)
class InterstitialTicket:
    timestamp: int
    signature: str


def _canonical(timestamp: int, host: str, code: str) -> bytes:
    return f"{timestamp}:{host}:{code}".encode("utf-8")


def generate_signature(secret: str, timestamp: int, host: str, code: str) -> str:
    """Sign a ticket timestamp for a host and code."""
    return hmac.new(secret.encode("utf-8"), _canonical(timestamp, host, code), hashlib.sha256).hexdigest()


def verify_signature(secret: str, timestamp: int, host: str, code: str, signature: str) -> bool:
    """Check a signature against the one recomputed for the same fields."""
    expected = generate_signature(secret, timestamp, host, code)
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))


def issue_ticket(secret: str, now: int, host: str, code: str) -> InterstitialTicket:
    """Create a fresh ticket stamped with the current time."""
    return InterstitialTicket(timestamp=now, signature=generate_signature(secret, now, host, code))


def ticket_within_window(elapsed: int, delay: int, max_age: int = DEFAULT_TICKET_MAX_AGE) -> bool:
    """
    Check the age of a ticket against the acceptance window.

    The lower bound is one second short of the configured delay so
    a client counting down on its own clock is not rejected. The upper
    bound caps the ticket lifetime whatever the delay is.
    """
    return delay - 1 <= elapsed <= max_age
