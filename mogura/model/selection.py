"""Atom selection language: parser, syntax tree, and evaluation.

Grammar, from loosest to tightest binding::

    expr      := and_expr ("or" and_expr)*
    and_expr  := not_expr ("and" not_expr)*
    not_expr  := "not"* primary
    primary   := "(" expr ")" | predicate
    predicate := "all" | "protein" | "water" | "ion" | "backbone" | "sidechain"
               | "resname" ident+ | "name" ident+
               | "resid" numbers | "index" numbers
    numbers   := NUM "to" NUM | NUM NUM*

Identifiers are alphanumeric words other than ``and``, ``or``, ``not`` and
``to``. ``resid`` numbers may be negative; ``index`` numbers may not.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set, Tuple, Union

from mogura.config import MAX_SELECTION_DEPTH
from mogura.errors import SelectionParseError
from mogura.model.structure import Atom, Bond

logger = logging.getLogger(__name__)

RESERVED_WORDS = frozenset({"and", "or", "not", "to"})

Numbers = Union[range, Tuple[int, ...]]

_TOKEN_RE = re.compile(r"\s*(?:(?P<paren>[()])|(?P<word>-?[A-Za-z0-9]+)|(?P<bad>\S))")
_NUMBER_RE = re.compile(r"-?[0-9]+")
_IDENT_RE = re.compile(r"[A-Za-z0-9]+")


class Selection:
    """Base class for selection syntax tree nodes."""

    def matches(self, atom: Atom) -> bool:
        raise NotImplementedError

    def select_atoms(self, atoms: Sequence[Atom]) -> Set[int]:
        """Return the ids of atoms that match this selection."""
        return {atom.id for atom in atoms if self.matches(atom)}

    def select_atoms_bonds(
        self, atoms: Sequence[Atom], bonds: Sequence[Bond]
    ) -> Tuple[Set[int], List[Bond]]:
        """Return matching atom ids and the bonds whose ends both match.

        Parameters
        ----------
        atoms
            Atoms to test.
        bonds
            Atom id pairs to filter.

        Returns
        -------
        tuple
            Selected atom ids and selected bonds, in input bond order.
        """

        selected = self.select_atoms(atoms)
        selected_bonds = [
            (i, j) for i, j in bonds if i in selected and j in selected
        ]
        return selected, selected_bonds


def _as_numbers(values: Numbers) -> Numbers:
    if isinstance(values, range):
        return values
    return tuple(int(value) for value in values)


def _format_numbers(values: Numbers) -> str:
    if isinstance(values, range):
        return f"{values.start} to {values.stop - 1}"
    return " ".join(str(value) for value in values)


@dataclass(frozen=True)
class All(Selection):
    def matches(self, atom: Atom) -> bool:
        return True

    def __str__(self) -> str:
        return "all"


@dataclass(frozen=True)
class ResName(Selection):
    names: Tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "names", tuple(self.names))

    def matches(self, atom: Atom) -> bool:
        return atom.residue_name in self.names

    def __str__(self) -> str:
        return "resname " + " ".join(self.names)


@dataclass(frozen=True)
class ResId(Selection):
    """Residue sequence numbers, compared as signed integers."""

    ids: Numbers

    def __post_init__(self) -> None:
        object.__setattr__(self, "ids", _as_numbers(self.ids))

    def matches(self, atom: Atom) -> bool:
        return atom.residue_id in self.ids

    def __str__(self) -> str:
        return "resid " + _format_numbers(self.ids)


@dataclass(frozen=True)
class Name(Selection):
    names: Tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "names", tuple(self.names))

    def matches(self, atom: Atom) -> bool:
        return atom.atom_name in self.names

    def __str__(self) -> str:
        return "name " + " ".join(self.names)


@dataclass(frozen=True)
class Index(Selection):
    """Atom serial numbers as written in the file (``Atom.atom_id``)."""

    ids: Numbers

    def __post_init__(self) -> None:
        object.__setattr__(self, "ids", _as_numbers(self.ids))

    def matches(self, atom: Atom) -> bool:
        return atom.atom_id in self.ids

    def __str__(self) -> str:
        return "index " + _format_numbers(self.ids)


@dataclass(frozen=True)
class Protein(Selection):
    def matches(self, atom: Atom) -> bool:
        return atom.is_protein()

    def __str__(self) -> str:
        return "protein"


@dataclass(frozen=True)
class Water(Selection):
    def matches(self, atom: Atom) -> bool:
        return atom.is_water()

    def __str__(self) -> str:
        return "water"


@dataclass(frozen=True)
class Ion(Selection):
    def matches(self, atom: Atom) -> bool:
        return atom.is_ion()

    def __str__(self) -> str:
        return "ion"


@dataclass(frozen=True)
class Backbone(Selection):
    def matches(self, atom: Atom) -> bool:
        return atom.is_backbone()

    def __str__(self) -> str:
        return "backbone"


@dataclass(frozen=True)
class Sidechain(Selection):
    def matches(self, atom: Atom) -> bool:
        return atom.is_sidechain()

    def __str__(self) -> str:
        return "sidechain"


@dataclass(frozen=True)
class Not(Selection):
    child: Selection

    def matches(self, atom: Atom) -> bool:
        return not self.child.matches(atom)

    def __str__(self) -> str:
        return f"not {self.child}"


@dataclass(frozen=True)
class And(Selection):
    children: Tuple[Selection, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "children", tuple(self.children))

    def matches(self, atom: Atom) -> bool:
        return all(child.matches(atom) for child in self.children)

    def __str__(self) -> str:
        return " and ".join(str(child) for child in self.children)


@dataclass(frozen=True)
class Or(Selection):
    children: Tuple[Selection, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "children", tuple(self.children))

    def matches(self, atom: Atom) -> bool:
        return any(child.matches(atom) for child in self.children)

    def __str__(self) -> str:
        return " or ".join(str(child) for child in self.children)


@dataclass(frozen=True)
class Braket(Selection):
    """Parenthesized group, kept so the query text can be reproduced."""

    child: Selection

    def matches(self, atom: Atom) -> bool:
        return self.child.matches(atom)

    def __str__(self) -> str:
        return f"({self.child})"


_FLAG_KEYWORDS = {
    "all": All,
    "protein": Protein,
    "water": Water,
    "ion": Ion,
    "backbone": Backbone,
    "sidechain": Sidechain,
}


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    position: int


def _tokenize(text: str) -> List[_Token]:
    tokens: List[_Token] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            break
        if match.group("bad") is not None:
            raise SelectionParseError(
                f"Unexpected character '{match.group('bad')}'", match.start("bad")
            )
        kind = "paren" if match.group("paren") is not None else "word"
        tokens.append(_Token(kind, match.group(kind), match.start(kind)))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, text: str) -> None:
        self._text = text
        self._tokens = _tokenize(text)
        self._pos = 0

    def parse(self) -> Selection:
        selection = self._parse_or(0)
        token = self._peek()
        if token is not None:
            raise SelectionParseError(f"Unexpected '{token.text}'", token.position)
        return selection

    def _peek(self) -> Optional[_Token]:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _advance(self) -> _Token:
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def _peek_word(self, word: str) -> bool:
        token = self._peek()
        return token is not None and token.kind == "word" and token.text == word

    def _end_error(self, expected: str) -> SelectionParseError:
        return SelectionParseError(
            f"Unexpected end of selection, expected {expected}", len(self._text)
        )

    def _parse_or(self, depth: int) -> Selection:
        items = [self._parse_and(depth)]
        while self._peek_word("or"):
            self._advance()
            items.append(self._parse_and(depth))
        return items[0] if len(items) == 1 else Or(tuple(items))

    def _parse_and(self, depth: int) -> Selection:
        items = [self._parse_not(depth)]
        while self._peek_word("and"):
            self._advance()
            items.append(self._parse_not(depth))
        return items[0] if len(items) == 1 else And(tuple(items))

    def _parse_not(self, depth: int) -> Selection:
        count = 0
        while self._peek_word("not"):
            token = self._advance()
            count += 1
            if depth + count > MAX_SELECTION_DEPTH:
                raise SelectionParseError(
                    f"Selection nested deeper than {MAX_SELECTION_DEPTH}",
                    token.position,
                )
        selection = self._parse_primary(depth + count)
        for _ in range(count):
            selection = Not(selection)
        return selection

    def _parse_primary(self, depth: int) -> Selection:
        token = self._peek()
        if token is None:
            raise self._end_error("a predicate")
        if token.kind == "paren":
            if token.text == ")":
                raise SelectionParseError("Unexpected ')'", token.position)
            if depth >= MAX_SELECTION_DEPTH:
                raise SelectionParseError(
                    f"Selection nested deeper than {MAX_SELECTION_DEPTH}",
                    token.position,
                )
            self._advance()
            inner = self._parse_or(depth + 1)
            closing = self._peek()
            if closing is None:
                raise SelectionParseError(
                    "Unterminated parenthesis", token.position
                )
            if closing.text != ")":
                raise SelectionParseError(
                    f"Expected ')' but found '{closing.text}'", closing.position
                )
            self._advance()
            return Braket(inner)

        self._advance()
        keyword = token.text
        if keyword in _FLAG_KEYWORDS:
            return _FLAG_KEYWORDS[keyword]()
        if keyword == "resname":
            return ResName(self._parse_identifiers(keyword))
        if keyword == "name":
            return Name(self._parse_identifiers(keyword))
        if keyword == "resid":
            return ResId(self._parse_numbers(keyword, signed=True))
        if keyword == "index":
            return Index(self._parse_numbers(keyword, signed=False))
        if keyword in RESERVED_WORDS:
            raise SelectionParseError(
                f"Expected a predicate but found '{keyword}'", token.position
            )
        raise SelectionParseError(f"Unknown keyword '{keyword}'", token.position)

    def _parse_identifiers(self, keyword: str) -> Tuple[str, ...]:
        names: List[str] = []
        while True:
            token = self._peek()
            if token is None or token.kind != "word":
                break
            if token.text in RESERVED_WORDS or not _IDENT_RE.fullmatch(token.text):
                break
            names.append(self._advance().text)
        if not names:
            token = self._peek()
            if token is None:
                raise self._end_error(f"a name after '{keyword}'")
            raise SelectionParseError(
                f"Expected a name after '{keyword}' but found '{token.text}'",
                token.position,
            )
        return tuple(names)

    def _take_number(self, keyword: str, signed: bool) -> int:
        token = self._peek()
        if token is None:
            raise self._end_error(f"a number after '{keyword}'")
        if token.kind != "word" or not _NUMBER_RE.fullmatch(token.text):
            raise SelectionParseError(
                f"Expected a number after '{keyword}' but found '{token.text}'",
                token.position,
            )
        if not signed and token.text.startswith("-"):
            raise SelectionParseError(
                f"Negative numbers are not allowed after '{keyword}'", token.position
            )
        self._advance()
        return int(token.text)

    def _parse_numbers(self, keyword: str, signed: bool) -> Numbers:
        first = self._take_number(keyword, signed)
        if self._peek_word("to"):
            self._advance()
            last = self._take_number("to", signed)
            return range(first, last + 1)
        numbers = [first]
        while True:
            token = self._peek()
            if token is None or token.kind != "word":
                break
            if not _NUMBER_RE.fullmatch(token.text):
                break
            numbers.append(self._take_number(keyword, signed))
        return tuple(numbers)


def parse_selection(text: str) -> Selection:
    """Compile selection text into a syntax tree.

    Parameters
    ----------
    text
        Query such as ``"(resname ALA GLU) and name CA"``.

    Returns
    -------
    Selection
        Root node of the parsed tree.

    Raises
    ------
    SelectionParseError
        If any part of ``text`` does not match the grammar.
    """

    if not isinstance(text, str):
        raise SelectionParseError("Selection must be a string")
    selection = _Parser(text).parse()
    logger.debug("Parsed selection %r as %s", text, selection)
    return selection
