"""
Dict-literal to JSON conversion for provider scoring blobs.

The provider serializes its analysis as a scripting-language dict literal:

    {'intent_level': 'High', "reasoning": "Asked about 'pricing'", 'urgency_level': None, 'ok': True,}

This module rewrites that text into strict JSON with a single character scan.
Only text outside string literals is rewritten:
- ' and " delimiters both become "
- None/True/False become null/true/false
- trailing commas before } or ] are dropped
Characters inside strings survive untouched (only re-escaped where JSON needs it).
Any other bare word fails loudly rather than being guessed at.

Apostrophes in prose are common and never escaped, so a quote only ends a
string when the text after it has the shape the enclosing container expects:
a key is followed by ":", an object value by "}" or by "," and another quoted
key, a list item by "]" or by "," and another value.
"""
import json
from typing import Any

_LITERAL_TOKENS = {
    "None": "null",
    "True": "true",
    "False": "false",
    "null": "null",
    "true": "true",
    "false": "false",
}

# Escape letters JSON understands as-is after a backslash
_JSON_ESCAPES = frozenset('"\\/bfnrtu')

_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}

_NUMBER_CHARS = frozenset("0123456789.eE+-")

_QUOTES = ("'", '"')

# Where a string sits decides what may follow its closing quote
KEY = "key"
VALUE = "value"
ITEM = "item"
TOP = "top"


class DictLiteralError(ValueError):
    """Raised when a dict literal cannot be rewritten or parsed."""


def _skip_space(text: str, index: int) -> int:
    while index < len(text) and text[index].isspace():
        index += 1
    return index


def _read_word(text: str, start: int) -> str:
    end = start
    while end < len(text) and (text[end].isalnum() or text[end] == "_"):
        end += 1
    return text[start:end]


def _starts_value(text: str, index: int) -> bool:
    ch = text[index]
    if ch in _QUOTES or ch in "{[-" or ch.isdigit():
        return True
    return _read_word(text, index) in _LITERAL_TOKENS


def _closes_string(text: str, index: int, context: str) -> bool:
    """True when the quote at index is followed by structure, not more prose."""
    j = _skip_space(text, index + 1)
    if j >= len(text):
        return True
    nxt = text[j]
    if context == KEY:
        return nxt == ":"
    if context == TOP:
        return nxt in ":,}]"

    closer = "}" if context == VALUE else "]"
    if nxt == closer:
        return True
    if nxt != ",":
        return False
    k = _skip_space(text, j + 1)
    if k >= len(text) or text[k] == closer:
        return True
    if context == VALUE:
        return text[k] in _QUOTES
    return _starts_value(text, k)


def _read_string(text: str, start: int, context: str, out: list[str]) -> int:
    """Copy one quoted string to out as a JSON string. Returns the index after it."""
    quote = text[start]
    buf = ['"']
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\" and i + 1 < n:
            nxt = text[i + 1]
            if nxt == "'":
                buf.append("'")
            elif nxt in _JSON_ESCAPES:
                buf.append("\\" + nxt)
            else:
                # Keep unknown escapes literally
                buf.append("\\\\" + nxt)
            i += 2
            continue
        if ch == quote and _closes_string(text, i, context):
            buf.append('"')
            out.append("".join(buf))
            return i + 1
        if ch == '"':
            buf.append('\\"')
        elif ch in _CONTROL_ESCAPES:
            buf.append(_CONTROL_ESCAPES[ch])
        elif ord(ch) < 0x20:
            buf.append(f"\\u{ord(ch):04x}")
        else:
            buf.append(ch)
        i += 1
    raise DictLiteralError(f"Unterminated string starting at position {start}")


def _drop_trailing_comma(out: list[str]) -> None:
    k = len(out) - 1
    while k >= 0 and out[k].isspace():
        k -= 1
    if k >= 0 and out[k] == ",":
        del out[k]


def convert_dict_literal_to_json(text: str) -> str:
    """
    Rewrite dict-literal text into strict JSON text.

    Raises:
        DictLiteralError on unterminated strings or unrecognized bare words.
    """
    out: list[str] = []
    containers: list[str] = []
    expect_key = False
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in _QUOTES:
            if not containers:
                context = TOP
            elif containers[-1] == "[":
                context = ITEM
            else:
                context = KEY if expect_key else VALUE
            i = _read_string(text, i, context, out)
        elif ch.isdigit() or (ch == "-" and i + 1 < n and text[i + 1].isdigit()):
            j = i + 1
            while j < n and text[j] in _NUMBER_CHARS:
                j += 1
            out.append(text[i:j])
            i = j
        elif ch.isalpha() or ch == "_":
            word = _read_word(text, i)
            if word not in _LITERAL_TOKENS:
                raise DictLiteralError(f"Unrecognized token {word!r} at position {i}")
            out.append(_LITERAL_TOKENS[word])
            i += len(word)
        else:
            if ch in "{[":
                containers.append(ch)
                expect_key = ch == "{"
            elif ch in "}]":
                _drop_trailing_comma(out)
                if containers:
                    containers.pop()
            elif containers and containers[-1] == "{":
                if ch == ":":
                    expect_key = False
                elif ch == ",":
                    expect_key = True
            out.append(ch)
            i += 1
    return "".join(out)


def parse_dict_literal(text: str) -> Any:
    """
    Decode dict-literal (or plain JSON) text into Python data.

    Raises:
        DictLiteralError when the text cannot be rewritten or is not valid afterwards.
    """
    if not isinstance(text, str):
        raise DictLiteralError(f"Expected text, got {type(text).__name__}")
    converted = convert_dict_literal_to_json(text)
    try:
        return json.loads(converted)
    except json.JSONDecodeError as e:
        raise DictLiteralError(f"Invalid structured data after rewrite: {e.msg} at position {e.pos}") from e
