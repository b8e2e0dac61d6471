from __future__ import annotations

import hashlib


def payload_digest(payload: bytes) -> str:
    return f"sha256:{hashlib.sha256(payload).hexdigest()}"


def short_digest(payload: bytes) -> str:
    return payload_digest(payload).split(":", 1)[1][:12]
