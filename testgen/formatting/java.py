"""Local Java formatter built on javalang.

The source is first parsed as a compilation unit; anything javalang rejects
is reported as a failure so the chain can move on. Accepted source is laid
out again from javalang's token stream:

- a line ends after every ``;`` outside parentheses (so ``for (...)``
  headers stay whole), after a block ``{`` and after a block ``}``
- ``} else``, ``} catch``, ``} finally`` and ``};`` stay joined, and an
  empty block stays ``{}``
- annotations on declarations get their own line
- indentation follows brace depth, four spaces per level; lines that
  continue inside open parentheses get a double indent
- line breaks and comments already in the source are kept, and runs of
  blank lines collapse to one

Array initializers (``= {1, 2}``, ``@Ann({"a"})``) are treated as
expressions and are not broken up.
"""

from __future__ import annotations

import logging

from javalang.parse import parse
from javalang.parser import JavaSyntaxError
from javalang.tokenizer import Identifier, LexerError, tokenize

from testgen.formatting import FormatOutcome

logger = logging.getLogger(__name__)

INDENT = "    "
CONTINUATION = INDENT * 2

# A "{" after one of these opens an array initializer, not a block.
_INLINE_BRACE_AFTER = {"(", ",", "=", "{", "]"}
# Tokens that stay on the same line as the "}" closing a block.
_JOIN_AFTER_BLOCK = {"else", "catch", "finally", ";", ",", ")", "."}
_SPACED_AFTER_BLOCK = {"else", "catch", "finally"}


class _Misaligned(Exception):
    """The token stream does not line up with the source text."""


def _trivia(code: str, pos: int) -> tuple[int, list[str]]:
    """Collect the whitespace and comments javalang skips between tokens.

    Returns the offset of the next token and the pieces found: ``"\\n"`` per
    line break, ``" "`` per run of other whitespace, and comments verbatim.
    """
    pieces: list[str] = []
    end = len(code)
    while pos < end:
        if code[pos] == "\n":
            pieces.append("\n")
            pos += 1
        elif code[pos].isspace():
            while pos < end and code[pos].isspace() and code[pos] != "\n":
                pos += 1
            pieces.append(" ")
        elif code.startswith("//", pos):
            stop = code.find("\n", pos)
            stop = end if stop == -1 else stop
            pieces.append(code[pos:stop].rstrip())
            pos = stop
        elif code.startswith("/*", pos):
            stop = code.find("*/", pos + 2)
            stop = end if stop == -1 else stop + 2
            pieces.append(code[pos:stop])
            pos = stop
        else:
            break
    return pos, pieces


class _Layout:
    """Accumulates output lines while tokens are placed."""

    def __init__(self):
        self.lines: list[str] = []
        self.current = ""
        self.depth = 0
        self.open_parens: list[int] = []  # brace depth at which each "(" was opened
        self.pending_break = False

    @property
    def in_parens(self) -> bool:
        """True directly inside parentheses, e.g. a ``for`` header."""
        return bool(self.open_parens) and self.open_parens[-1] == self.depth

    def newline(self, blank: bool = False):
        if self.current:
            self.lines.append(self.current.rstrip())
            self.current = ""
        if blank and self.lines and self.lines[-1]:
            self.lines.append("")
        self.pending_break = False

    def write(self, text: str, space: bool):
        if self.current:
            self.current += (" " if space else "") + text
            return
        prefix = INDENT * self.depth
        if not text.startswith("}") and (self.in_parens or text.startswith(".")):
            prefix += CONTINUATION
        self.current = prefix + text

    def comment(self, text: str):
        for i, part in enumerate(text.split("\n")):
            part = part.strip()
            if i and part.startswith("*"):
                part = " " + part
            self.lines.append(INDENT * self.depth + part)

    def place_trivia(self, pieces: list[str]) -> tuple[int, bool, bool]:
        """Emit comments and return ``(newlines, spaced, forced_break)``.

        A comment on the same line as preceding code stays attached to it;
        any other comment gets lines of its own.
        """
        newlines, spaced, forced = 0, False, False
        for piece in pieces:
            if piece == "\n":
                newlines += 1
            elif piece == " ":
                spaced = True
            elif newlines == 0 and self.current:
                self.current += " " + piece
                spaced = True
                forced = forced or piece.startswith("//")
            else:
                self.newline(blank=newlines > 1)
                self.comment(piece)
                newlines, spaced, forced = 0, False, False
        return newlines, spaced, forced

    def text(self) -> str:
        self.newline()
        while self.lines and not self.lines[-1]:
            self.lines.pop()
        return "\n".join(self.lines) + "\n"


def _layout(code: str) -> str:
    out = _Layout()
    blocks: list[bool] = []  # per open "{": True for a block, False for an initializer
    pos = 0
    prev = None
    prev_closed_block = False
    annotation = None  # "name", "after_name", "args" or "done"
    annotation_level = 0

    for token in tokenize(code):
        value = token.value
        pos, pieces = _trivia(code, pos)
        if not code.startswith(value, pos):
            raise _Misaligned(f"token {value!r} not found at offset {pos}")
        pos += len(value)

        newlines, spaced, forced = out.place_trivia(pieces)
        closing_block = value == "}" and bool(blocks) and blocks[-1]

        brk = forced or newlines > 0 or out.pending_break
        if not forced:
            if closing_block and prev == "{" and newlines == 0:
                brk = False
            elif prev_closed_block and value in _JOIN_AFTER_BLOCK:
                brk = False
        if annotation == "done" or (annotation == "after_name" and value not in (".", "(")):
            brk = True
            annotation = None
        if closing_block and not (prev == "{" and not brk):
            brk = True
        if brk:
            out.newline(blank=newlines > 1)
        else:
            out.pending_break = False

        opening_block = value == "{" and prev not in _INLINE_BRACE_AFTER
        if value == "}":
            if blocks:
                blocks.pop()
            out.depth = max(out.depth - 1, 0)
        elif value == ")" and out.open_parens:
            out.open_parens.pop()

        if opening_block or (prev_closed_block and value in _SPACED_AFTER_BLOCK):
            spaced = True
        elif closing_block and prev == "{":
            spaced = False
        out.write(value, spaced)

        if value == "{":
            blocks.append(opening_block)
            out.depth += 1
            out.pending_break = opening_block
        elif value == "(":
            out.open_parens.append(out.depth)
        elif value == ";":
            out.pending_break = not out.in_parens
        elif closing_block:
            out.pending_break = True

        if value == "@" and not out.open_parens:
            annotation = "name"
        elif annotation == "name":
            annotation = "after_name" if isinstance(token, Identifier) else None
        elif annotation == "after_name":
            if value == ".":
                annotation = "name"
            elif value == "(":
                annotation, annotation_level = "args", len(out.open_parens)
        elif annotation == "args" and len(out.open_parens) < annotation_level:
            annotation = "done"

        prev = value
        prev_closed_block = closing_block

    _, pieces = _trivia(code, pos)
    out.place_trivia(pieces)
    return out.text()


def format_java(code: str) -> FormatOutcome:
    """Validate ``code`` as Java and return it laid out one statement per line."""
    code = code.replace("\r\n", "\n")
    try:
        parse(code)
        text = _layout(code)
    except (JavaSyntaxError, LexerError) as e:
        reason = getattr(e, "description", None) or str(e) or type(e).__name__
        logger.debug(f"javalang rejected source: {reason}")
        return FormatOutcome.failure("local", f"not valid Java: {reason}")
    except _Misaligned as e:
        # javalang rewrites \uXXXX escapes before tokenizing
        logger.debug(f"cannot map tokens back to source: {e}")
        return FormatOutcome.failure("local", str(e))

    return FormatOutcome(formatter="local", text=text)
