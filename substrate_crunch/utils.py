#!/usr/bin/env python3
"""
Utility Functions
Storage key helpers used across the runtime modules
"""

import random

import xxhash

from .exceptions import StorageKeyError

ACCOUNT_ID_LENGTH = 32


def get_account_id_from_storage_key(key: bytes) -> bytes:
    """Return the account id embedded in the last 32 bytes of a map storage key"""
    if len(key) < ACCOUNT_ID_LENGTH:
        raise StorageKeyError(key)
    return bytes(key[-ACCOUNT_ID_LENGTH:])


def twox128(data: bytes) -> bytes:
    """Substrate Twox128 hasher: two seeded xxhash64 digests, little endian"""
    return b"".join(
        xxhash.xxh64(data, seed=seed).intdigest().to_bytes(8, "little")
        for seed in (0, 1)
    )


def storage_prefix(pallet: str, item: str) -> bytes:
    """Storage key prefix of a plain value or of every entry of a map"""
    return twox128(pallet.encode()) + twox128(item.encode())


def hex_to_bytes(value: str) -> bytes:
    if value.startswith("0x"):
        value = value[2:]
    return bytes.fromhex(value)


def random_wait(max_seconds: int) -> int:
    """Pick a random delay so several crunch instances do not submit at once"""
    if max_seconds <= 0:
        return 0
    return random.randrange(max_seconds)
