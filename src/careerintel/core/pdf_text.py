"""Best-effort text recovery from PDF bytes.

This is a narrow lexer, not a PDF parser. It scans every ``BT ... ET`` text
object and collects the parenthesised literal strings inside it, using a
three-state machine (outside a string, inside a string, escape pending).

Known limitation: it does not check which operator consumes a literal, so any
literal inside a text object is emitted, including ones that never render.
Hex strings, compressed content streams and font encodings are not decoded.
"""

from __future__ import annotations

import re

DEFAULT_MAX_TEXT_CHARS = 20000

_TEXT_BLOCK_PATTERN = re.compile(r"BT(.*?)ET", re.DOTALL)

_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    "\\": "\\",
    "(": "(",
    ")": ")",
}


def decode_pdf_escape(char: str) -> str:
    return _ESCAPES.get(char, char)


def extract_strings_from_block(block: str) -> list[str]:
    results: list[str] = []
    depth = 0
    current: list[str] = []
    escape = False

    for ch in block:
        if depth == 0:
            if ch == "(":
                depth = 1
                current = []
            continue

        if escape:
            current.append(decode_pdf_escape(ch))
            escape = False
            continue
        if ch == "\\":
            escape = True
            continue
        if ch == "(":
            depth += 1
            current.append(ch)
            continue
        if ch == ")":
            depth -= 1
            if depth == 0:
                results.append("".join(current))
                current = []
                continue
            current.append(ch)
            continue
        current.append(ch)

    return results


def normalize_extracted_text(text: str) -> str:
    out = text.replace("\r\n", "\n").replace("\r", "\n")
    out = out.replace("\x00", "")
    out = re.sub(r"[ \t]+", " ", out)
    out = re.sub(r"\n{3,}", "\n\n", out)
    return out.strip()


def extract_text_from_pdf(data: bytes, max_chars: int = DEFAULT_MAX_TEXT_CHARS) -> str:
    if not data:
        return ""

    # latin-1 maps every byte to exactly one character
    raw = data.decode("latin-1")
    fragments: list[str] = []
    for match in _TEXT_BLOCK_PATTERN.finditer(raw):
        strings = extract_strings_from_block(match.group(1))
        if strings:
            fragments.append(" ".join(strings).strip())

    if not fragments:
        return ""
    return normalize_extracted_text("\n".join(fragments))[:max_chars]


def decode_plain_text(data: bytes, max_chars: int = DEFAULT_MAX_TEXT_CHARS) -> str:
    if not data:
        return ""
    return normalize_extracted_text(data.decode("utf-8", errors="replace"))[:max_chars]
