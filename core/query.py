"""
Evaluator for the Drive search-query language, applied to entries that were
already collected by a walk.

Supported terms::

    name contains 'report'          name = 'a.pdf'        name != 'x'
    mimeType = 'application/pdf'    fullText contains 'q3'
    starred = true                  trashed = false
    modifiedTime > '2024-01-01T00:00:00'
    'folderId' in parents
    properties has { key='status' and value='done' }
    appProperties has { key='k' and value='v' }

combined with ``and``, ``or``, ``not`` and parentheses. ``contains`` is a
case-insensitive substring match. A term on a field the entry does not carry
evaluates to false, except ``trashed``, which defaults to false.
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from connectors.base import DirectoryEntry
from core.errors import QueryError

Predicate = Callable[[DirectoryEntry], bool]

KEYWORDS = {"and", "or", "not", "contains", "in", "has"}
COMPARISONS = {"=", "!=", "<", "<=", ">", ">="}
TIME_FIELDS = {"modifiedTime", "createdTime", "viewedByMeTime", "sharedWithMeTime"}

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<string>'(?:\\.|[^'\\])*')
  | (?P<op><=|>=|!=|=|<|>)
  | (?P<punct>[(){}])
  | (?P<word>[A-Za-z0-9_.:+-]+)
    """,
    re.VERBOSE,
)


@dataclass
class Token:
    kind: str  # "string", "op", "punct", "word", "end"
    value: str
    pos: int


def tokenize(text: str) -> list[Token]:
    tokens: list[Token] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if not m:
            raise QueryError(f"Unexpected character {text[pos]!r} at position {pos}")
        kind = m.lastgroup
        if kind == "string":
            raw = m.group()[1:-1]
            tokens.append(Token("string", re.sub(r"\\(.)", r"\1", raw), pos))
        elif kind != "ws":
            tokens.append(Token(kind, m.group(), pos))
        pos = m.end()
    tokens.append(Token("end", "", pos))
    return tokens


def _field_value(entry: DirectoryEntry, name: str) -> Any:
    if name == "name":
        return entry.name
    if name == "mimeType":
        return entry.mime_type
    if name == "trashed":
        # Listings only return entries that are not in the trash
        return bool(entry.extra.get("trashed", False))
    if name == "fullText":
        parts = [entry.name, entry.extra.get("description") or ""]
        return " ".join(p for p in parts if p)
    return entry.extra.get(name)


def _parse_time(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _coerce(field: str, literal: Token) -> Any:
    if literal.kind == "word":
        lowered = literal.value.lower()
        if lowered in ("true", "false"):
            return lowered == "true"
        try:
            return int(literal.value)
        except ValueError:
            raise QueryError(f"Expected a quoted value for {field}, got {literal.value!r}")
    if field in TIME_FIELDS:
        parsed = _parse_time(literal.value)
        if parsed is None:
            raise QueryError(f"Invalid timestamp {literal.value!r} for {field}")
        return parsed
    return literal.value


def _compare(op: str, left: Any, right: Any) -> bool:
    if op == "=":
        return left == right
    if op == "!=":
        return left != right
    try:
        if op == "<":
            return left < right
        if op == "<=":
            return left <= right
        if op == ">":
            return left > right
        return left >= right
    except TypeError:
        return False


class _Parser:
    def __init__(self, text: str):
        self.tokens = tokenize(text)
        self.index = 0
        # Entry fields the query reads
        self.fields: set[str] = set()

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _is_word(self, value: str) -> bool:
        return self.current.kind == "word" and self.current.value.lower() == value

    def _expect(self, kind: str, value: Optional[str] = None) -> Token:
        token = self.current
        matches = token.kind == kind and (value is None or token.value.lower() == value)
        if not matches:
            wanted = value or kind
            raise QueryError(f"Expected {wanted!r} at position {token.pos}, got {token.value or 'end of query'!r}")
        return self._advance()

    def parse(self) -> Predicate:
        predicate = self._or()
        if self.current.kind != "end":
            raise QueryError(f"Unexpected {self.current.value!r} at position {self.current.pos}")
        return predicate

    def _or(self) -> Predicate:
        terms = [self._and()]
        while self._is_word("or"):
            self._advance()
            terms.append(self._and())
        if len(terms) == 1:
            return terms[0]
        return lambda entry: any(t(entry) for t in terms)

    def _and(self) -> Predicate:
        terms = [self._not()]
        while self._is_word("and"):
            self._advance()
            terms.append(self._not())
        if len(terms) == 1:
            return terms[0]
        return lambda entry: all(t(entry) for t in terms)

    def _not(self) -> Predicate:
        if self._is_word("not"):
            self._advance()
            inner = self._not()
            return lambda entry: not inner(entry)
        return self._primary()

    def _primary(self) -> Predicate:
        if self.current.kind == "punct" and self.current.value == "(":
            self._advance()
            inner = self._or()
            self._expect("punct", ")")
            return inner
        if self.current.kind == "string":
            return self._membership()
        return self._term()

    def _membership(self) -> Predicate:
        value = self._advance().value
        self._expect("word", "in")
        collection = self._expect("word").value
        if collection != "parents":
            raise QueryError(f"Unsupported collection {collection!r}; only 'parents' is supported")
        self.fields.add("parents")
        return lambda entry: value in entry.parents

    def _term(self) -> Predicate:
        token = self._expect("word")
        field = token.value
        if field.lower() in KEYWORDS:
            raise QueryError(f"Expected a field name at position {token.pos}, got {field!r}")
        self.fields.add(field)

        if self._is_word("has"):
            return self._has(field)

        if self._is_word("contains"):
            self._advance()
            needle = self._expect("string").value.lower()

            def contains(entry: DirectoryEntry) -> bool:
                value = _field_value(entry, field)
                return isinstance(value, str) and needle in value.lower()

            return contains

        op = self._expect("op").value
        literal = self._advance()
        if literal.kind not in ("string", "word"):
            raise QueryError(f"Expected a value after {op!r} at position {literal.pos}")
        expected = _coerce(field, literal)

        def compare(entry: DirectoryEntry) -> bool:
            value = _field_value(entry, field)
            if value is None:
                return False
            if field in TIME_FIELDS:
                value = _parse_time(value)
                if value is None:
                    return False
            return _compare(op, value, expected)

        return compare

    def _has(self, field: str) -> Predicate:
        if field not in ("properties", "appProperties"):
            raise QueryError(f"'has' is only supported on properties and appProperties, not {field!r}")
        self._advance()
        self._expect("punct", "{")
        self._expect("word", "key")
        self._expect("op", "=")
        key = self._expect("string").value
        self._expect("word", "and")
        self._expect("word", "value")
        self._expect("op", "=")
        value = self._expect("string").value
        self._expect("punct", "}")

        def has(entry: DirectoryEntry) -> bool:
            bag = entry.metadata(field)
            return bool(bag) and bag.get(key) == value

        return has


def compile_query(text: str) -> Optional[Predicate]:
    """Compile ``text`` into a predicate, or return None for an empty query."""
    if not text or not text.strip():
        return None
    return _Parser(text).parse()


def query_fields(text: str) -> list[str]:
    """Drive fields an entry must carry for ``text`` to be evaluated."""
    if not text or not text.strip():
        return []
    parser = _Parser(text)
    parser.parse()
    fields = set(parser.fields)
    if "fullText" in fields:
        fields.discard("fullText")
        fields.update(("name", "description"))
    return sorted(fields)
