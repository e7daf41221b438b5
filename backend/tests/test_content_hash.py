"""
Trame Backend — Content Hasher Unit Tests
==========================================

What:  Tests for content_hash() and hash_blocks().
How:   Compares against hashlib directly; no database.
"""

import hashlib

from trame.schemas.block import BlockType
from trame.services.content_hash import content_hash, hash_blocks


class TestContentHash:

    def test_length_and_alphabet(self):
        digest = content_hash("Hello world")
        assert len(digest) == 32
        assert all(c in "0123456789abcdef" for c in digest)

    def test_is_truncated_sha256(self):
        expected = hashlib.sha256("Hello world".encode("utf-8")).hexdigest()[:32]
        assert content_hash("Hello world") == expected

    def test_empty_text(self):
        assert content_hash("") == "e3b0c44298fc1c149afbf4c8996fb924"

    def test_trailing_space_ignored(self):
        assert content_hash("Hello world") == content_hash("Hello world ")

    def test_surrounding_whitespace_ignored(self):
        assert content_hash("Hello world") == content_hash("\n\t Hello world \n")

    def test_different_text_differs(self):
        assert content_hash("Hello") != content_hash("World")

    def test_internal_whitespace_matters(self):
        assert content_hash("Hello world") != content_hash("Hello  world")

    def test_utf8_encoding(self):
        expected = hashlib.sha256("ünïcödé 🙂".encode("utf-8")).hexdigest()[:32]
        assert content_hash("ünïcödé 🙂") == expected


class TestHashBlocks:

    def test_pairs_each_block_with_its_hash(self):
        hashed = hash_blocks("# Title\n\nSome text")
        assert [h.block.type for h in hashed] == [BlockType.HEADING, BlockType.PARAGRAPH]
        assert [h.content_hash for h in hashed] == [
            content_hash("# Title"),
            content_hash("Some text"),
        ]

    def test_identical_blocks_share_a_hash(self):
        hashed = hash_blocks("same\n\nsame")
        assert len(hashed) == 2
        assert hashed[0].content_hash == hashed[1].content_hash

    def test_empty_document(self):
        assert hash_blocks("") == []
