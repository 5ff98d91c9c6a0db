"""Lexical helpers shared by the parsing strategies and the analyzers.

Everything here works on *masked* source: comments (and optionally the
contents of string literals) are replaced by spaces so regular expressions
cannot match inside them, while every offset and line break stays where it
was in the original text.
"""

from __future__ import annotations

import bisect
import re

from ..models import ParameterInfo

_QUOTES = "'\"`"

# Decision points counted for cyclomatic complexity. ``else if`` is matched
# once through its ``if``.
_DECISION_PATTERNS = (
    re.compile(r"\bif\b"),
    re.compile(r"\bfor\b"),
    re.compile(r"\bwhile\b"),
    re.compile(r"\bcase\b"),
    re.compile(r"\bcatch\b"),
    re.compile(r"\?\?"),
    re.compile(r"&&"),
    re.compile(r"\|\|"),
    # Ternary: a lone ``?`` that is not ``??``, optional chaining or ``?:``
    re.compile(r"(?<![?])\?(?![?.:])"),
)

_CALL_RE = re.compile(r"(?<![\w$])(?<!new )(?<!function )([A-Za-z_$][\w$]*)\s*\(")
# Keywords that take a parenthesized operand
_NOT_CALLS = frozenset(
    (
        "if", "for", "while", "switch", "catch", "function", "return", "typeof",
        "await", "yield", "void", "delete", "async", "import", "super", "in", "of",
    )
)

_BRACKET_PAIRS = {"(": ")", "[": "]", "{": "}", "<": ">"}

# A `/` after one of these starts a regex literal rather than a division.
_REGEX_PRECEDERS = frozenset("(,=:[!&|?{};")
_REGEX_KEYWORDS = frozenset(
    ("return", "typeof", "case", "in", "of", "delete", "void", "throw", "yield", "await")
)


def _blank(chars: list[str], start: int, end: int) -> None:
    for i in range(start, end):
        if chars[i] != "\n":
            chars[i] = " "


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


def _regex_allowed(chars: list[str], index: int) -> bool:
    """Return ``True`` if a ``/`` at *index* can open a regex literal.

    *chars* is the text masked so far, so comments before *index* are
    already blank.
    """
    j = index - 1
    while j >= 0 and chars[j].isspace():
        j -= 1
    if j < 0:
        return True
    prev = chars[j]
    if prev in _REGEX_PRECEDERS:
        # ``{x}/>`` closes a JSX element
        return not (prev == "}" and chars[index + 1:index + 2] == [">"])
    if not _is_word_char(prev):
        return False
    start = j
    while start > 0 and _is_word_char(chars[start - 1]):
        start -= 1
    return "".join(chars[start:j + 1]) in _REGEX_KEYWORDS


def _regex_end(text: str, start: int) -> int:
    """Return the index of the ``/`` closing the regex opened at *start*.

    Returns ``-1`` when the line ends first, in which case the ``/`` was
    not a regex literal after all.
    """
    i = start + 1
    n = len(text)
    in_class = False
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "\n":
            return -1
        if ch == "[":
            in_class = True
        elif ch == "]":
            in_class = False
        elif ch == "/" and not in_class:
            return i
        i += 1
    return -1


def _string_end(text: str, start: int, quote: str) -> tuple[int, bool]:
    """Return ``(index, closed)`` for the string literal opened at *start*.

    ``index`` points at the closing quote when ``closed`` is true, otherwise
    at the position where scanning stopped (a line break for ordinary
    quotes, end of text for template literals).
    """
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i, True
        if ch == "\n" and quote != "`":
            return i, False
        i += 1
    return n, False


def mask_source(text: str, *, strings: bool = True) -> str:
    """Blank out comments and, when *strings* is true, literal contents.

    Regex literals are treated like strings. Delimiters are kept so a
    masked literal still reads as ``'   '`` or ``/   /``. The result has
    exactly the same length and line structure as *text*.
    """
    chars = list(text)
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < n else ""
        if ch == "/" and nxt == "/":
            end = text.find("\n", i)
            end = n if end == -1 else end
            _blank(chars, i, end)
            i = end
        elif ch == "/" and nxt == "*":
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            _blank(chars, i, end)
            i = end
        elif ch == "/" and _regex_allowed(chars, i):
            end = _regex_end(text, i)
            if end == -1:
                i += 1
                continue
            if strings:
                _blank(chars, i + 1, end)
            i = end + 1
        elif ch in _QUOTES:
            end, closed = _string_end(text, i, ch)
            if strings:
                _blank(chars, i + 1, end)
            i = end + 1 if closed else end
        else:
            i += 1
    return "".join(chars)


def mask_comments(text: str) -> str:
    """Blank out comments only, keeping string literals intact."""
    return mask_source(text, strings=False)


def count_decision_points(masked: str) -> int:
    return sum(len(p.findall(masked)) for p in _DECISION_PATTERNS)


def cyclomatic_complexity(body: str) -> int:
    """Return ``1 + decision points`` for a function body.

    *body* is raw source; comments and strings are masked here.
    """
    return 1 + count_decision_points(mask_source(body))


def find_calls(masked: str) -> list[str]:
    """Names called in *masked* source, unique, in order of first call.

    Member calls report the member name (``this.repo.get(id)`` -> ``get``).
    Constructor calls and nested function declarations are not calls.
    """
    calls: list[str] = []
    for m in _CALL_RE.finditer(masked):
        name = m.group(1)
        if name not in _NOT_CALLS and name not in calls:
            calls.append(name)
    return calls


def find_matching_brace(masked: str, open_index: int) -> int:
    """Return the index of the ``}`` closing the ``{`` at *open_index*.

    Returns ``-1`` when the braces are unbalanced.
    """
    depth = 0
    for i in range(open_index, len(masked)):
        ch = masked[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


class LineIndex:
    """Maps character offsets of a text to 1-based line numbers."""

    def __init__(self, text: str) -> None:
        self._starts = [0]
        self._starts.extend(m.end() for m in re.finditer("\n", text))

    def line_of(self, offset: int) -> int:
        return bisect.bisect_right(self._starts, offset)

    @property
    def line_count(self) -> int:
        return len(self._starts)


def _top_level_positions(text: str, sep: str):
    """Yield indices of *sep* that sit outside every bracket pair."""
    stack: list[str] = []
    for i, ch in enumerate(text):
        prev = text[i - 1] if i else ""
        if ch == ">" and prev == "=":
            # arrow of a function type, not a closing angle bracket
            continue
        if ch in _BRACKET_PAIRS:
            stack.append(_BRACKET_PAIRS[ch])
        elif stack and ch == stack[-1]:
            stack.pop()
        elif ch == sep and not stack:
            nxt = text[i + 1] if i + 1 < len(text) else ""
            if sep == "=" and nxt in "=>":
                continue
            yield i


def split_top_level(text: str, sep: str = ",") -> list[str]:
    """Split *text* on *sep* outside of any bracket pair."""
    parts: list[str] = []
    start = 0
    for i in _top_level_positions(text, sep):
        parts.append(text[start:i])
        start = i + 1
    parts.append(text[start:])
    return [p.strip() for p in parts if p.strip()]


def _split_once_top_level(text: str, sep: str) -> tuple[str, str | None]:
    for i in _top_level_positions(text, sep):
        return text[:i].strip(), text[i + 1:].strip()
    return text.strip(), None


def parse_parameters(text: str) -> list[ParameterInfo]:
    """Parse a parameter list (without the surrounding parentheses).

    Handles TypeScript annotations, optional markers, default values,
    rest parameters and destructuring patterns.
    """
    params: list[ParameterInfo] = []
    for raw in split_top_level(text):
        head, default = _split_once_top_level(raw, "=")
        name_part, type_part = _split_once_top_level(head, ":")
        optional = default is not None
        if name_part.endswith("?"):
            name_part = name_part[:-1].rstrip()
            optional = True
        # Access modifiers on constructor parameter properties
        name_part = re.sub(
            r"^(?:(?:public|private|protected|readonly|override)\s+)+", "", name_part
        )
        if name_part == "this":
            continue
        params.append(
            ParameterInfo(
                name=name_part,
                type=type_part or None,
                optional=optional,
                default_value=default,
            )
        )
    return params
