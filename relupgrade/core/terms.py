"""Reader for Erlang terms in text form.

``reltool.config`` and ``.rel`` manifests are plain files of Erlang terms,
each terminated by a full stop, as read by ``file:consult/1``. This module
reads that format into Python values:

    atom, 'quoted atom'   -> Atom (a str subclass)
    "string"              -> str
    123, 16#ff, $a        -> int
    1.5, 2.0e3            -> float
    {a, b}                -> tuple
    [a, b]                -> list
    <<"bin">>, <<1,2>>    -> bytes
    #{k => v}             -> dict

Variables, funs, records and pids are not data and are rejected.

Usage:
    match consult('{release, {"myapp", "1.1"}, {erts, "14.2"}, []}.'):
        case Ok([term]):
            ...
        case Err(error):
            print(f"line {error.line}: {error.message}")
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from .result import Err, Ok, Result

__all__ = ["Atom", "TermError", "consult", "consult_file", "is_atom", "is_string"]


class Atom(str):
    """An Erlang atom; compares equal to its name but is not an Erlang string."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Atom({str.__repr__(self)})"


@dataclass(frozen=True, slots=True)
class TermError:
    message: str
    line: int = 0
    path: Path | None = None

    def __str__(self) -> str:
        where = f"{self.path}:" if self.path is not None else "line "
        return f"{where}{self.line}: {self.message}"


def is_atom(value: object, name: str | None = None) -> bool:
    """True if value is an atom (optionally with the given name)."""
    return isinstance(value, Atom) and (name is None or value == name)


def is_string(value: object) -> bool:
    """True if value came from a double-quoted Erlang string."""
    return isinstance(value, str) and not isinstance(value, Atom)


_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<comment>%[^\n]*)
  | (?P<float>\d+\.\d+(?:[eE][+-]?\d+)?)
  | (?P<based>\d+\#[0-9a-zA-Z]+)
  | (?P<int>\d+)
  | (?P<char>\$(?:\\(?:x\{[0-9a-fA-F]+\}|x[0-9a-fA-F]{2}|[0-7]{1,3}|\^.|.)|.))
  | (?P<atom>[a-z][A-Za-z0-9_@]*)
  | (?P<var>[A-Z_][A-Za-z0-9_]*)
  | (?P<qatom>'(?:[^'\\]|\\.)*')
  | (?P<string>"(?:[^"\\]|\\.)*")
  | (?P<dot>\.(?=\s|%|$))
  | (?P<punct><<|>>|=>|\#\{|[{}\[\],|+-])
    """,
    re.VERBOSE | re.DOTALL,
)

_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "s": " ",
    "e": "\x1b",
    "d": "\x7f",
    "b": "\b",
    "f": "\f",
    "v": "\v",
}

_ESCAPE_RE = re.compile(r"\\(x\{[0-9a-fA-F]+\}|x[0-9a-fA-F]{2}|[0-7]{1,3}|\^.|.)", re.DOTALL)


@dataclass(frozen=True, slots=True)
class _Token:
    kind: str
    text: str
    pos: int


class _SyntaxError(Exception):
    def __init__(self, message: str, pos: int) -> None:
        super().__init__(message)
        self.message = message
        self.pos = pos


def _escape(seq: str) -> str:
    if seq.startswith("x{"):
        return chr(int(seq[2:-1], 16))
    if seq.startswith("x") and len(seq) == 3:
        return chr(int(seq[1:], 16))
    if seq[0] in "01234567":
        return chr(int(seq, 8))
    if seq.startswith("^") and len(seq) == 2:
        return chr(ord(seq[1]) % 32)
    return _SIMPLE_ESCAPES.get(seq, seq)


def _unescape(body: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _escape(m.group(1)), body)


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            raise _SyntaxError(f"unexpected character {text[pos]!r}", pos)
        kind = m.lastgroup or ""
        if kind not in ("ws", "comment"):
            tokens.append(_Token(kind, m.group(), pos))
        pos = m.end()
    return tokens


class _Parser:
    def __init__(self, tokens: list[_Token], end: int) -> None:
        self._tokens = tokens
        self._index = 0
        self._end = end

    def at_end(self) -> bool:
        return self._index >= len(self._tokens)

    def _peek(self) -> _Token | None:
        if self.at_end():
            return None
        return self._tokens[self._index]

    def _next(self) -> _Token:
        tok = self._peek()
        if tok is None:
            raise _SyntaxError("unexpected end of input", self._end)
        self._index += 1
        return tok

    def _expect(self, text: str) -> _Token:
        tok = self._next()
        if tok.text != text:
            raise _SyntaxError(f"expected {text!r}, got {tok.text!r}", tok.pos)
        return tok

    def _accept(self, text: str) -> bool:
        tok = self._peek()
        if tok is not None and tok.kind in ("punct", "dot") and tok.text == text:
            self._index += 1
            return True
        return False

    def form(self) -> object:
        term = self.term()
        tok = self._next()
        if tok.kind != "dot":
            raise _SyntaxError(f"expected '.', got {tok.text!r}", tok.pos)
        return term

    def term(self) -> object:
        tok = self._next()
        match tok.kind:
            case "atom":
                return Atom(tok.text)
            case "qatom":
                return Atom(_unescape(tok.text[1:-1]))
            case "string":
                parts = [_unescape(tok.text[1:-1])]
                while (nxt := self._peek()) is not None and nxt.kind == "string":
                    parts.append(_unescape(self._next().text[1:-1]))
                return "".join(parts)
            case "int":
                return int(tok.text)
            case "based":
                return self._based(tok)
            case "float":
                return float(tok.text)
            case "char":
                body = tok.text[1:]
                return ord(_escape(body[1:]) if body.startswith("\\") else body)
            case "var":
                raise _SyntaxError(f"variables are not terms: {tok.text}", tok.pos)
            case "punct":
                return self._compound(tok)
        raise _SyntaxError(f"unexpected {tok.text!r}", tok.pos)

    def _based(self, tok: _Token) -> int:
        base_text, digits = tok.text.split("#", 1)
        base = int(base_text)
        if not 2 <= base <= 36:
            raise _SyntaxError(f"invalid base {base}", tok.pos)
        try:
            return int(digits, base)
        except ValueError:
            raise _SyntaxError(f"invalid base-{base} integer {digits!r}", tok.pos) from None

    def _compound(self, tok: _Token) -> object:
        match tok.text:
            case "{":
                return tuple(self._sequence("}"))
            case "[":
                return self._list()
            case "<<":
                return self._binary()
            case "#{":
                return self._map()
            case "-" | "+":
                value = self.term()
                if isinstance(value, bool) or not isinstance(value, int | float):
                    raise _SyntaxError(f"bad operand for unary {tok.text}", tok.pos)
                return -value if tok.text == "-" else value
        raise _SyntaxError(f"unexpected {tok.text!r}", tok.pos)

    def _sequence(self, close: str) -> list[object]:
        items: list[object] = []
        if self._accept(close):
            return items
        while True:
            items.append(self.term())
            if self._accept(close):
                return items
            self._expect(",")

    def _list(self) -> list[object]:
        items: list[object] = []
        if self._accept("]"):
            return items
        while True:
            items.append(self.term())
            if self._accept("]"):
                return items
            if self._accept("|"):
                tail_tok = self._peek()
                tail = self.term()
                if not isinstance(tail, list):
                    pos = tail_tok.pos if tail_tok is not None else self._end
                    raise _SyntaxError("improper lists are not supported", pos)
                self._expect("]")
                return items + tail
            self._expect(",")

    def _binary(self) -> bytes:
        out = bytearray()
        if self._accept(">>"):
            return bytes(out)
        while True:
            tok = self._peek()
            segment = self.term()
            if is_string(segment):
                out += str(segment).encode("utf-8")
            elif isinstance(segment, int) and not isinstance(segment, bool):
                out.append(segment & 0xFF)
            else:
                pos = tok.pos if tok is not None else self._end
                raise _SyntaxError("binary segments must be integers or strings", pos)
            if self._accept(">>"):
                return bytes(out)
            self._expect(",")

    def _map(self) -> dict[object, object]:
        out: dict[object, object] = {}
        if self._accept("}"):
            return out
        while True:
            key_tok = self._peek()
            key = self.term()
            self._expect("=>")
            try:
                out[key] = self.term()
            except TypeError:
                pos = key_tok.pos if key_tok is not None else self._end
                raise _SyntaxError("unhashable map key", pos) from None
            if self._accept("}"):
                return out
            self._expect(",")


def _line_of(text: str, pos: int) -> int:
    return text.count("\n", 0, pos) + 1


def consult(text: str) -> Result[list[object], TermError]:
    """Read every dot-terminated term in ``text``."""
    try:
        tokens = _tokenize(text)
        parser = _Parser(tokens, len(text))
        terms: list[object] = []
        while not parser.at_end():
            terms.append(parser.form())
        return Ok(terms)
    except _SyntaxError as e:
        return Err(TermError(e.message, line=_line_of(text, e.pos)))
    except (ValueError, OverflowError) as e:
        return Err(TermError(str(e)))


def consult_file(path: Path) -> Result[list[object], TermError]:
    """Read every term in the file at ``path`` (UTF-8)."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(TermError("file not found", path=path))
    except (OSError, UnicodeDecodeError) as e:
        return Err(TermError(f"cannot read file: {e}", path=path))

    result = consult(text)
    if isinstance(result, Err):
        return Err(TermError(result.error.message, line=result.error.line, path=path))
    return result
