"""
Trame Backend — Block Scanner
==============================

What:  Splits raw note text into typed semantic blocks.
How:   One left-to-right pass over the text's code points. The only lookahead
       is a single-line peek inside lists (blank line followed by another
       list item keeps the list open).
Who:   Called by the content hasher (`hash_blocks`) and the reconciler.

Recognised blocks, checked in this order at each block start:
    ```lang ... ```   code block (unterminated fence runs to end of input)
    # .. ######       heading (the markers must be followed by a space)
    ---  ***  ___     horizontal rule (3+ identical characters)
    - * + / 1. 1)     list (consecutive item lines, single blank lines allowed)
    anything else     paragraph (until a blank line or a special line)

`scan` is total: malformed markup degrades to a paragraph or to a code block
running to end of input. It keeps no state between calls.
"""

from typing import List, Optional

from trame.schemas.block import Block, BlockType

FENCE = "```"
BULLETS = "-*+"
RULE_CHARS = "-*_"
MAX_HEADING_LEVEL = 6


def _is_digit(char: str) -> bool:
    return "0" <= char <= "9"


def is_fence(text: str, pos: int) -> bool:
    return text.startswith(FENCE, pos)


def is_rule_start(text: str, pos: int) -> bool:
    """Three identical rule characters at `pos`."""
    if pos + 2 >= len(text):
        return False
    char = text[pos]
    return char in RULE_CHARS and text[pos + 1] == char and text[pos + 2] == char


def is_list_item(text: str, pos: int) -> bool:
    """`- `, `* `, `+ `, or ASCII digits followed by `. ` / `) ` at `pos`."""
    length = len(text)
    if pos >= length:
        return False

    char = text[pos]
    if char in BULLETS:
        return pos + 1 < length and text[pos + 1] == " "

    if _is_digit(char):
        i = pos + 1
        while i < length and _is_digit(text[i]):
            i += 1
        return i + 1 < length and text[i] in ".)" and text[i + 1] == " "

    return False


def _line_end(text: str, pos: int) -> int:
    """Offset just past the newline ending the line at `pos` (or len(text))."""
    newline = text.find("\n", pos)
    return len(text) if newline == -1 else newline + 1


class _Scanner:
    """Cursor over a single document. Created per `scan` call."""

    def __init__(self, text: str):
        self.text = text
        self.length = len(text)
        self.pos = 0
        self.blocks: List[Block] = []

    def run(self) -> List[Block]:
        while self.pos < self.length:
            self._skip_separators()
            if self.pos >= self.length:
                break

            if is_fence(self.text, self.pos):
                self._code_block()
            elif self._heading():
                pass
            elif is_rule_start(self.text, self.pos):
                self._horizontal_rule()
            elif is_list_item(self.text, self.pos):
                self._list()
            else:
                self._paragraph()
        return self.blocks

    def _emit(
        self,
        block_type: BlockType,
        start: int,
        text: str,
        heading_level: Optional[int] = None,
    ) -> None:
        self.blocks.append(
            Block(
                type=block_type,
                heading_level=heading_level,
                text=text,
                start_offset=start,
                end_offset=self.pos,
            )
        )

    def _skip_separators(self) -> None:
        text, length = self.text, self.length
        while self.pos < length and text[self.pos] in " \t":
            self.pos += 1
        while self.pos < length and text[self.pos] == "\n":
            self.pos += 1

    # ── Block kinds ───────────────────────────────────────────────────────

    def _code_block(self) -> None:
        start = self.pos
        # opening fence line, language identifier included
        self.pos = _line_end(self.text, self.pos)
        while self.pos < self.length:
            line_start = self.pos
            self.pos = _line_end(self.text, self.pos)
            if is_fence(self.text, line_start):
                break
        self._emit(BlockType.CODE_BLOCK, start, self.text[start:self.pos])

    def _heading(self) -> bool:
        """Consumes a heading at the cursor; leaves the cursor alone if there is none."""
        text, start = self.text, self.pos
        pos, level = start, 0
        while pos < self.length and text[pos] == "#" and level < MAX_HEADING_LEVEL:
            level += 1
            pos += 1
        if level == 0 or pos >= self.length or text[pos] != " ":
            return False

        self.pos = _line_end(text, pos)
        self._emit(BlockType.HEADING, start, text[start:self.pos].rstrip(), heading_level=level)
        return True

    def _horizontal_rule(self) -> None:
        start = self.pos
        self.pos = _line_end(self.text, self.pos)
        self._emit(BlockType.HORIZONTAL_RULE, start, self.text[start:self.pos].rstrip())

    def _list(self) -> None:
        text, start = self.text, self.pos
        while is_list_item(text, self.pos):
            self.pos = _line_end(text, self.pos)
            # one blank line between items keeps the list open
            if (
                self.pos < self.length
                and text[self.pos] == "\n"
                and is_list_item(text, self.pos + 1)
            ):
                self.pos += 1
        self._emit(BlockType.LIST, start, text[start:self.pos].rstrip())

    def _paragraph(self) -> None:
        text, start = self.text, self.pos
        while True:
            self.pos = _line_end(text, self.pos)
            if self.pos >= self.length or text[self.pos] == "\n":
                break
            if self._starts_special_block(self.pos):
                break

        body = text[start:self.pos].strip()
        if body:
            self._emit(BlockType.PARAGRAPH, start, body)

    def _starts_special_block(self, pos: int) -> bool:
        return (
            self.text[pos] == "#"
            or is_fence(self.text, pos)
            or is_list_item(self.text, pos)
            or is_rule_start(self.text, pos)
        )


def scan(text: str) -> List[Block]:
    """
    Splits `text` into an ordered list of blocks.

    Args:
        text: Full note text. Any string is accepted.

    Returns:
        Blocks in document order; empty for empty or whitespace-only text.

    Example:
        >>> [b.type.value for b in scan("# Title\\n\\nSome text")]
        ['heading', 'paragraph']
    """
    return _Scanner(text).run()
