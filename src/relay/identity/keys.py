"""Deterministic, one-way identity keys for (user, origin) pairs.

Tenants only ever hold the derived key, never the raw user id paired with
the device token. Each component is length-prefixed before hashing, so
``("a:b", "c")`` and ``("a", "b:c")`` can never collide.
"""

import hashlib
import struct

IDENTITY_KEY_LENGTH = 32  # hex characters (16 bytes of SHA-256)


def _encode(component: str) -> bytes:
    raw = component.encode("utf-8")
    return struct.pack(">I", len(raw)) + raw


def derive_identity_key(user_id: str, origin: str) -> str:
    digest = hashlib.sha256(_encode(user_id) + _encode(origin)).hexdigest()
    return digest[:IDENTITY_KEY_LENGTH]
