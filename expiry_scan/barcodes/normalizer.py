from __future__ import annotations

import re
from dataclasses import dataclass

# Raw GS1-128 / DataMatrix payloads use the ASCII group separator (FNC1)
# to terminate variable-length fields. Internally it is rewritten to a pipe.
GROUP_SEPARATOR = "\x1d"
FIELD_DELIMITER = "|"

# Known Application Identifiers -> fixed field length, -1 = variable length.
AI_LENGTHS: dict[str, int] = {
    "00": 18,  # SSCC
    "01": 14,  # GTIN
    "02": 14,  # GTIN of contained items
    "10": -1,  # Batch / lot
    "11": 6,   # Production date
    "13": 6,   # Packaging date
    "15": 6,   # Best before
    "17": 6,   # Expiry
    "20": 2,   # Internal product variant
    "21": -1,  # Serial
    "22": -1,  # Consumer product variant
    "30": -1,  # Variable count
    "37": -1,  # Count of trade items
}

# AIM symbology identifier some scanners prepend, e.g. ]C1, ]d2, ]Q3
AIM_PREFIX = re.compile(r"^\][A-Za-z]\d")

_BARE_NUMERIC_RE = re.compile(r"^\d{5,21}$")
_SHORT_CODE_RE = re.compile(r"^\d{5,7}$")
_STARTS_WITH_AI_RE = re.compile(r"^\d{2}")
_TOKEN_RE = re.compile(r"\((\d+)\)([^(]*)")


@dataclass(frozen=True)
class NormalizedScan:
    """Result of classifying a raw scan.

    ``text`` is the parenthesized AI string handed to the decoder. For bare
    numeric and short codes the identifier fields are already known and
    ``gtin14``/``gtin13`` carry them; the decoder still runs its extractors so
    that a headerless GS1-128 stream can override them.
    """

    text: str
    gtin14: str = ""
    gtin13: str = ""
    identified: bool = False
    done: bool = False


def _lookup_ai(code: str, pos: int) -> str | None:
    ai3 = code[pos:pos + 3]
    if len(ai3) == 3 and ai3 in AI_LENGTHS:
        return ai3
    ai2 = code[pos:pos + 2]
    if len(ai2) == 2 and ai2 in AI_LENGTHS:
        return ai2
    return None


def _is_delimiter(char: str) -> bool:
    return char in (FIELD_DELIMITER, GROUP_SEPARATOR)


def to_parenthesized(code: str) -> str:
    """Insert ``(AI)`` markers into an unparenthesized GS1 element string.

    Best effort: unknown characters are skipped one at a time, a fixed-length
    AI consumes exactly its length, and a variable-length AI runs until a
    delimiter or the next recognisable AI. Returns ``code`` unchanged when no
    field could be emitted.
    """
    if not code:
        return code

    parts: list[str] = []
    pos = 0
    n = len(code)

    while pos < n:
        ai = _lookup_ai(code, pos)
        if ai is None:
            pos += 1
            continue

        pos += len(ai)
        length = AI_LENGTHS[ai]

        if length > 0:
            parts.append(f"({ai}){code[pos:pos + length]}")
            pos += length
            continue

        start = pos
        while pos < n:
            if _is_delimiter(code[pos]):
                break
            # Only split on a nested AI once the field has some content.
            if pos > start and _lookup_ai(code, pos) is not None:
                break
            pos += 1
        value = code[start:pos]
        if pos < n and _is_delimiter(code[pos]):
            pos += 1
        parts.append(f"({ai}){value}")

    return "".join(parts) or code


def tokenize(text: str) -> list[tuple[str, str]]:
    """Split a parenthesized AI string into ordered ``(ai, value)`` pairs."""
    return [(ai, value) for ai, value in _TOKEN_RE.findall(text or "")]


def field_map(text: str) -> dict[str, list[str]]:
    """Group the tokens of ``text`` by AI, keeping every occurrence in order."""
    fields: dict[str, list[str]] = {}
    for ai, value in tokenize(text):
        fields.setdefault(ai, []).append(value)
    return fields


def normalize(raw: str | None) -> NormalizedScan:
    """Classify a raw scan and bring it into parenthesized AI form."""
    if not raw or not isinstance(raw, str):
        return NormalizedScan(text="")

    code = raw.strip().replace(GROUP_SEPARATOR, FIELD_DELIMITER)
    code = AIM_PREFIX.sub("", code)

    if _BARE_NUMERIC_RE.match(code) and "(" not in code:
        gtin14 = code.zfill(14)
        gtin13 = code if len(code) <= 13 else code[:13]
        # Headerless GS1-128: the stream starts straight with the GTIN AI.
        if code.startswith("01") and len(code) >= 16:
            return NormalizedScan(
                text=to_parenthesized(code),
                gtin14=gtin14,
                gtin13=gtin13,
                identified=True,
            )
        return NormalizedScan(text=code, gtin14=gtin14, gtin13=gtin13, identified=True, done=True)

    if _SHORT_CODE_RE.match(code):
        return NormalizedScan(text=code, gtin14=code, gtin13=code, identified=True, done=True)

    if "(" not in code and _STARTS_WITH_AI_RE.match(code):
        code = to_parenthesized(code)

    return NormalizedScan(text=code)
