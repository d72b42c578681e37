"""Validator withdrawal credentials derived from a BLS public key."""

import hashlib

BLS_WITHDRAWAL_PREFIX = b"\x00"
PUBKEY_LENGTH = 48
CREDENTIALS_LENGTH = 32


def parse_public_key(text: str) -> bytes:
    """Decode a 48-byte public key given as hex, with or without 0x."""
    raw = text.strip()
    if raw[:2].lower() == "0x":
        raw = raw[2:]
    try:
        pubkey = bytes.fromhex(raw)
    except ValueError:
        raise ValueError(f"public key is not valid hex: {text!r}")
    if len(pubkey) != PUBKEY_LENGTH:
        raise ValueError(f"public key must be {PUBKEY_LENGTH} bytes, got {len(pubkey)}")
    return pubkey


def derive_withdrawal_credentials(public_key: bytes) -> bytes:
    """Prefix byte 0x00 followed by bytes 1..31 of SHA256(public_key).

    Byte 0 of the hash is dropped, so the result is always 32 bytes.
    """
    if len(public_key) != PUBKEY_LENGTH:
        raise ValueError(f"public key must be {PUBKEY_LENGTH} bytes, got {len(public_key)}")
    digest = hashlib.sha256(bytes(public_key)).digest()
    return BLS_WITHDRAWAL_PREFIX + digest[1:]
