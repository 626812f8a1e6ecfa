"""Channel encoder — transport-safe text for raw PTY output.

Terminal output is arbitrary binary (control sequences, partial UTF-8
sequences split across reads). The consumer side is text-oriented, so every
chunk is base64-encoded before it leaves the pump.
"""

from __future__ import annotations

import base64


def encode(data: bytes) -> str:
    """Encode a raw chunk as standard padded base64."""
    return base64.b64encode(data).decode("ascii")


def decode(text: str) -> bytes:
    """Decode a value produced by :func:`encode`.

    Raises:
        binascii.Error: If ``text`` is not valid base64.
    """
    return base64.b64decode(text, validate=True)
