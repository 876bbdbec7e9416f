# apps/payments/signatures.py

"""
Gateway signatures.

Checkout integrity:  sha256(reference + amount_in_cents + currency + integrity_secret)
Event checksum:      sha256(tx.id + tx.status + tx.amount_in_cents + timestamp + events_secret)

All values are concatenated as plain strings and the digest is lowercase hex.
"""

import hashlib
import hmac


def sha256_hex(message: str) -> str:
    return hashlib.sha256(message.encode("utf-8")).hexdigest()


def _as_text(value) -> str:
    # JSON numbers may arrive as 5000000.0; hash them the way they were sent.
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def integrity_signature(reference: str, amount_in_cents: int, currency: str, secret: str) -> str:
    return sha256_hex(f"{reference}{amount_in_cents}{currency}{secret}")


def event_checksum(transaction_id, status, amount_in_cents, timestamp, secret: str) -> str:
    parts = [transaction_id, status, amount_in_cents, timestamp, secret]
    return sha256_hex("".join(_as_text(part) for part in parts))


def signatures_match(expected: str, received) -> bool:
    """Constant-time comparison; anything that is not a string never matches."""
    if not isinstance(received, str) or not received or not received.isascii():
        return False
    return hmac.compare_digest(expected.lower(), received.lower())
