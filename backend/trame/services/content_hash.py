"""
Trame Backend — Content Hasher
===============================

What:  Short deterministic digest of a block's text, used as the block's
       content identity across edits.
How:   SHA-256 over the UTF-8 bytes of the trimmed text, truncated to the
       first 16 bytes (32 hex characters).

The digest is an identity key for matching unchanged content, not a security
primitive. Only leading/trailing whitespace is ignored; any change inside the
text changes the hash.
"""

import hashlib
from typing import List

from trame.schemas.block import HashedBlock
from trame.services.block_scanner import scan

DIGEST_BYTES = 16


def content_hash(text: str) -> str:
    """
    Returns the 32-hex-character content hash of `text`.

    >>> content_hash("Hello world") == content_hash("  Hello world \\n")
    True
    """
    digest = hashlib.sha256(text.strip().encode("utf-8")).digest()
    return digest[:DIGEST_BYTES].hex()


def hash_blocks(text: str) -> List[HashedBlock]:
    """Scans `text` and pairs every block with its content hash, in order."""
    return [
        HashedBlock(block=block, content_hash=content_hash(block.text))
        for block in scan(text)
    ]
