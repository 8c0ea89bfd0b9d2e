"""Decoder interface and a lightweight ISO 10303-21 reader.

The reader covers the clear-text encoding used by PDM exchange files: the
HEADER entries, one or more DATA sections, simple and complex instances, and
the usual parameter forms. It is not a validating implementation of the full
grammar.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Protocol, TextIO

from pdm_xref.decode.repository import Repository
from pdm_xref.decode.schema import SchemaDefinition, SchemaList
from pdm_xref.errors import DecoderError, UnknownSchemaError
from pdm_xref.types import Entity, EntityModel, EntityRef, Enumeration, ExchangeStructure, TypedValue

LOGGER = logging.getLogger(__name__)

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<space>\s+)
    |(?P<comment>/\*.*?\*/)
    |(?P<string>'(?:[^']|'')*')
    |(?P<ref>\#\d+)
    |(?P<enum>\.[A-Za-z_][A-Za-z0-9_]*\.)
    |(?P<binary>"[0-9A-Fa-f]*")
    |(?P<number>[+-]?(?:\d+\.?\d*(?:[Ee][+-]?\d+)?|\.\d+(?:[Ee][+-]?\d+)?))
    |(?P<keyword>!?[A-Za-z_][A-Za-z0-9_\-]*)
    |(?P<punct>[()=,;$*])
    """,
    flags=re.VERBOSE | re.DOTALL,
)
_X2_PATTERN = re.compile(r"\\X2\\(.*?)\\X0\\", flags=re.IGNORECASE | re.DOTALL)
_X4_PATTERN = re.compile(r"\\X4\\(.*?)\\X0\\", flags=re.IGNORECASE | re.DOTALL)


class Decoder(Protocol):
    """Minimal decoder contract used by the reference loader."""

    def decode(self, stream: TextIO, *, name: str | None = None) -> ExchangeStructure:
        """Decode one exchange file or raise `DecoderError`."""


@dataclass(slots=True)
class _Token:
    kind: str
    text: str
    pos: int


@dataclass(slots=True)
class _Record:
    type_name: str
    params: list[Any]


class Part21Decoder:
    """Decodes clear-text exchange files into models held by a repository."""

    def __init__(self, repository: Repository, schema_list: SchemaList | None = None) -> None:
        self.repository = repository
        self.schema_list = schema_list or repository.schema_list
        self.decode_count = 0

    def decode(self, stream: TextIO, *, name: str | None = None) -> ExchangeStructure:
        try:
            text = stream.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise DecoderError(f"unreadable exchange stream: {exc}") from exc
        if isinstance(text, bytes):
            text = text.decode("utf-8", errors="replace")

        self.decode_count += 1
        scanner = _Scanner(_tokenize(text))
        scanner.expect_keyword("ISO-10303-21")
        scanner.expect(";")

        header = _read_header(scanner)
        schema_names = _declared_schemas(header)
        schema = self._select_schema(schema_names)

        declared_name = _first_string(header.get("FILE_NAME"))
        model_name = name or declared_name or "model"
        model = EntityModel(name=model_name, schema_name=schema.name)
        sections = 0
        while scanner.peek_keyword("DATA"):
            scanner.next()
            if scanner.peek_text("("):
                _read_parameter(scanner)
            scanner.expect(";")
            _read_instances(scanner, model, schema)
            sections += 1
        if sections == 0:
            raise DecoderError("exchange file has no DATA section", {"file": model_name})
        scanner.expect_keyword("END-ISO-10303-21")

        _resolve_references(model)
        self.repository.add_model(model)
        LOGGER.debug("Decoded %s: %d entities (%s)", model.name, len(model), schema.name)
        return ExchangeStructure(
            file_name=declared_name or model_name,
            schema_names=tuple(schema_names),
            models=[model],
            header=header,
        )

    def _select_schema(self, schema_names: list[str]) -> SchemaDefinition:
        if not schema_names:
            raise DecoderError("FILE_SCHEMA is missing or empty")
        for declared in schema_names:
            schema = self.schema_list.find(declared)
            if schema is not None:
                return schema
        raise UnknownSchemaError(
            f"no recognized schema among {schema_names}",
            {"recognized": self.schema_list.names()},
        )


class _Scanner:
    def __init__(self, tokens: list[_Token]) -> None:
        self._tokens = tokens
        self._index = 0

    def peek(self) -> _Token | None:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    def next(self) -> _Token:
        token = self.peek()
        if token is None:
            raise DecoderError("unexpected end of exchange file")
        self._index += 1
        return token

    def peek_text(self, text: str) -> bool:
        token = self.peek()
        return token is not None and token.kind == "punct" and token.text == text

    def peek_keyword(self, keyword: str) -> bool:
        token = self.peek()
        return token is not None and token.kind == "keyword" and token.text.upper() == keyword

    def expect(self, text: str) -> _Token:
        token = self.next()
        if token.kind != "punct" or token.text != text:
            raise DecoderError(
                f"expected '{text}' but found '{token.text}'", {"position": token.pos}
            )
        return token

    def expect_keyword(self, keyword: str) -> _Token:
        token = self.next()
        if token.kind != "keyword" or token.text.upper() != keyword:
            raise DecoderError(
                f"expected {keyword} but found '{token.text}'", {"position": token.pos}
            )
        return token


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_PATTERN.match(text, pos)
        if match is None:
            raise DecoderError(f"unexpected character {text[pos]!r}", {"position": pos})
        kind = match.lastgroup or ""
        if kind not in ("space", "comment"):
            tokens.append(_Token(kind=kind, text=match.group(), pos=pos))
        pos = match.end()
    return tokens


def _read_header(scanner: _Scanner) -> dict[str, Any]:
    scanner.expect_keyword("HEADER")
    scanner.expect(";")
    header: dict[str, Any] = {}
    while not scanner.peek_keyword("ENDSEC"):
        record = _read_record(scanner)
        scanner.expect(";")
        header[record.type_name] = tuple(record.params)
    scanner.next()
    scanner.expect(";")
    return header


def _read_instances(scanner: _Scanner, model: EntityModel, schema: SchemaDefinition) -> None:
    while not scanner.peek_keyword("ENDSEC"):
        token = scanner.next()
        if token.kind != "ref":
            raise DecoderError(
                f"expected instance name but found '{token.text}'", {"position": token.pos}
            )
        entity_id = int(token.text[1:])
        scanner.expect("=")
        if scanner.peek_text("("):
            scanner.next()
            records: list[_Record] = []
            while not scanner.peek_text(")"):
                records.append(_read_record(scanner))
            scanner.next()
            entity = _complex_entity(entity_id, records, model.name)
        else:
            entity = _simple_entity(entity_id, _read_record(scanner), schema, model.name)
        scanner.expect(";")
        if entity_id in model.entities:
            raise DecoderError(f"duplicate instance name #{entity_id}", {"position": token.pos})
        model.entities[entity_id] = entity
    scanner.next()
    scanner.expect(";")


def _read_record(scanner: _Scanner) -> _Record:
    token = scanner.next()
    if token.kind != "keyword":
        raise DecoderError(f"expected entity keyword but found '{token.text}'", {"position": token.pos})
    params = _read_parameter(scanner)
    return _Record(type_name=token.text.upper(), params=list(params))


def _read_parameter(scanner: _Scanner) -> Any:
    token = scanner.next()
    if token.kind == "punct":
        if token.text == "(":
            items: list[Any] = []
            if scanner.peek_text(")"):
                scanner.next()
                return tuple(items)
            while True:
                items.append(_read_parameter(scanner))
                closing = scanner.next()
                if closing.text == ")":
                    return tuple(items)
                if closing.text != ",":
                    raise DecoderError(
                        f"expected ',' or ')' but found '{closing.text}'",
                        {"position": closing.pos},
                    )
        # Unset and derived attributes both decode to None.
        if token.text in ("$", "*"):
            return None
        raise DecoderError(f"unexpected '{token.text}'", {"position": token.pos})
    if token.kind == "string":
        return _decode_string(token.text[1:-1])
    if token.kind == "ref":
        return EntityRef(int(token.text[1:]))
    if token.kind == "enum":
        literal = token.text[1:-1].upper()
        if literal in ("T", "F"):
            return literal == "T"
        if literal == "U":
            return None
        return Enumeration(literal)
    if token.kind == "number":
        if any(mark in token.text for mark in ".Ee"):
            return float(token.text)
        return int(token.text)
    if token.kind == "binary":
        return token.text[1:-1]
    if token.kind == "keyword":
        scanner.expect("(")
        value = _read_parameter(scanner)
        scanner.expect(")")
        return TypedValue(type_name=token.text.upper(), value=value)
    raise DecoderError(f"unexpected token '{token.text}'", {"position": token.pos})


def _simple_entity(
    entity_id: int, record: _Record, schema: SchemaDefinition, model_name: str
) -> Entity:
    names = schema.attribute_names(record.type_name) or ()
    attributes: dict[str, Any] = {}
    for index, value in enumerate(record.params):
        key = names[index] if index < len(names) else f"_{index}"
        attributes[key] = value
    return Entity(id=entity_id, type_name=record.type_name, attributes=attributes, model=model_name)


def _complex_entity(entity_id: int, records: list[_Record], model_name: str) -> Entity:
    attributes: dict[str, Any] = {}
    for record in records:
        for index, value in enumerate(record.params):
            attributes[f"{record.type_name}._{index}"] = value
    types = tuple(record.type_name for record in records)
    return Entity(
        id=entity_id,
        type_name="+".join(types),
        attributes=attributes,
        model=model_name,
        types=types,
    )


def _resolve_references(model: EntityModel) -> None:
    dangling = 0

    def _resolve(value: Any) -> Any:
        nonlocal dangling
        if isinstance(value, EntityRef):
            target = model.entities.get(value.id)
            if target is None:
                dangling += 1
                return value
            return target
        if isinstance(value, tuple):
            return tuple(_resolve(item) for item in value)
        if isinstance(value, TypedValue):
            return TypedValue(type_name=value.type_name, value=_resolve(value.value))
        return value

    for entity in model.entities.values():
        entity.attributes = {key: _resolve(value) for key, value in entity.attributes.items()}
    if dangling:
        LOGGER.warning("%s: %d dangling instance references left unresolved", model.name, dangling)


def _declared_schemas(header: dict[str, Any]) -> list[str]:
    params = header.get("FILE_SCHEMA") or ()
    if not params or not isinstance(params[0], tuple):
        return []
    return [str(item) for item in params[0] if isinstance(item, str)]


def _first_string(params: Any) -> str:
    if params and isinstance(params[0], str):
        return params[0]
    return ""


def _decode_string(raw: str) -> str:
    text = raw.replace("''", "'")

    def _decode_x2(match: re.Match[str]) -> str:
        hex_data = re.sub(r"[^0-9A-Fa-f]", "", match.group(1))
        if not hex_data or len(hex_data) % 4 != 0:
            return match.group(0)
        return "".join(chr(int(hex_data[i : i + 4], 16)) for i in range(0, len(hex_data), 4))

    def _decode_x4(match: re.Match[str]) -> str:
        hex_data = re.sub(r"[^0-9A-Fa-f]", "", match.group(1))
        if not hex_data or len(hex_data) % 8 != 0:
            return match.group(0)
        try:
            return "".join(chr(int(hex_data[i : i + 8], 16)) for i in range(0, len(hex_data), 8))
        except ValueError:
            return match.group(0)

    text = _X2_PATTERN.sub(_decode_x2, text)
    return _X4_PATTERN.sub(_decode_x4, text)
