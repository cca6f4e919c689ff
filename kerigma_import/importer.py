"""
Person import pipeline.

    payload -> text -> lines -> delimiter -> header mapping -> rows -> store

Fatal problems (no file, wrong type, undecodable, no name column) raise an
ImportAbortedError before any insert. Everything that goes wrong with a
single row is recorded in the ImportResult and the loop moves on.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence

from pydantic import ValidationError

from .errors import EmptyFileError, MissingFileError, PayloadDecodeError, UnsupportedFileTypeError
from .models import ImportRequest, ImportResult, PessoaRecord
from .normalize import (
    decode_payload,
    detect_delimiter,
    is_valid_email,
    make_placeholder_email,
    map_headers,
    map_situacao,
    map_tipo_pessoa,
    split_csv_line,
    split_lines,
    to_iso_date,
)
from .rules import (
    CSV_EXTENSIONS,
    CSV_MIMETYPES,
    DEFAULT_ESTADO_ESPIRITUAL,
    DEFAULT_TIPO_PESSOA,
    DELIMITER_SAMPLE_SIZE,
    MIN_NAME_LENGTH,
    MSG_BAD_BASE64,
    MSG_EMAIL_GENERATED,
    MSG_EMPTY_FILE,
    MSG_NAME_REQUIRED,
    MSG_NO_FILE,
    MSG_SPREADSHEET,
    MSG_UNSUPPORTED,
    SPREADSHEET_EXTENSIONS,
)
from .store import PessoaStore, StoreError

logger = logging.getLogger(__name__)

DELIMITER_NAMES = {",": "comma", ";": "semicolon", "\t": "tab"}


@dataclass(frozen=True)
class RowOutcome:
    """Either a record ready to insert or the reason the row was rejected."""

    record: Optional[PessoaRecord] = None
    error: Optional[str] = None


def check_file_type(filename: Optional[str], mimetype: Optional[str]) -> None:
    """
    Accept delimited text only; spreadsheets must be converted by the user.
    """
    name = (filename or "").strip().lower()
    content_type = (mimetype or "").strip().lower()

    if content_type in CSV_MIMETYPES or name.endswith(CSV_EXTENSIONS):
        return
    if "sheet" in content_type or name.endswith(SPREADSHEET_EXTENSIONS):
        raise UnsupportedFileTypeError(MSG_SPREADSHEET)
    raise UnsupportedFileTypeError(MSG_UNSUPPORTED)


def decode_data_url(file: str) -> bytes:
    """Return the bytes of a ``data:<mimetype>;base64,<content>`` string (prefix optional)."""
    _, separator, encoded = file.partition(",")
    payload = "".join((encoded if separator else file).split())
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PayloadDecodeError(MSG_BAD_BASE64) from exc


def build_record(
    values: Sequence[str],
    header_map: Dict[int, str],
    *,
    placeholder_domain: str,
) -> RowOutcome:
    """
    Validate and coerce one split line. Never raises.

    Soft fixes that do not reject the row:
    - missing/invalid email -> placeholder address + note in ``observacoes``
    - unparseable birth date -> None
    - unknown ``tipo_pessoa``/``situacao`` -> field left unset
    """
    fields: Dict[str, Optional[str]] = {}
    for position, canonical in header_map.items():
        if position >= len(values):
            continue
        # first non-empty column wins when several headers map to one field
        if fields.get(canonical) is None:
            fields[canonical] = values[position] or None

    nome = (fields.get("nome_completo") or "").strip()
    if len(nome) < MIN_NAME_LENGTH:
        return RowOutcome(error=MSG_NAME_REQUIRED)
    fields["nome_completo"] = nome

    email = fields.get("email")
    if is_valid_email(email):
        fields["email"] = email.strip()
    else:
        fields["email"] = make_placeholder_email(nome, placeholder_domain)
        fields["observacoes"] = " | ".join(
            part for part in (fields.get("observacoes"), MSG_EMAIL_GENERATED) if part
        )

    if fields.get("data_nascimento"):
        fields["data_nascimento"] = to_iso_date(fields["data_nascimento"])

    tipo = map_tipo_pessoa(fields.get("tipo_pessoa") or DEFAULT_TIPO_PESSOA)
    if tipo:
        fields["tipo_pessoa"] = tipo
    else:
        fields.pop("tipo_pessoa", None)

    situacao = map_situacao(fields.get("situacao"))
    if situacao:
        fields["situacao"] = situacao
    else:
        fields.pop("situacao", None)

    if not fields.get("estado_espiritual"):
        fields["estado_espiritual"] = DEFAULT_ESTADO_ESPIRITUAL

    try:
        return RowOutcome(record=PessoaRecord(**fields))
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        return RowOutcome(error=f"{location}: {first.get('msg')}" if location else str(first.get("msg")))


class PessoaImporter:
    """
    Runs one import against a store.

    Rows are processed strictly in file order with one insert per valid row.
    No batching and no retries; re-running a file inserts its rows again.
    """

    def __init__(
        self,
        store: Optional[PessoaStore] = None,
        *,
        store_factory: Optional[Callable[[], PessoaStore]] = None,
        placeholder_domain: str = "cbnkerigma",
    ) -> None:
        if store is None and store_factory is None:
            raise ValueError("PessoaImporter needs a store or a store_factory")
        self._store = store
        self._store_factory = store_factory
        self._placeholder_domain = placeholder_domain

    def _resolve_store(self) -> PessoaStore:
        # built only after every file-level precondition has passed
        if self._store is None:
            self._store = self._store_factory()
        return self._store

    def import_upload(self, request: ImportRequest) -> ImportResult:
        """
        Import the JSON upload body (base64 data URL + filename + mimetype).
        """
        if not request.file:
            raise MissingFileError(MSG_NO_FILE)

        logger.info("Processing file filename=%r mimetype=%r", request.filename, request.mimetype)
        raw = decode_data_url(request.file)
        return self.import_bytes(raw, filename=request.filename, mimetype=request.mimetype)

    def import_bytes(self, raw: bytes, *, filename: str, mimetype: str = "") -> ImportResult:
        check_file_type(filename, mimetype)
        if not raw:
            raise EmptyFileError(MSG_EMPTY_FILE)

        text, encoding = decode_payload(raw)
        logger.info("Decoded %s bytes as %s (%s chars)", len(raw), encoding, len(text))
        return self.run(text)

    def run(self, text: str) -> ImportResult:
        """
        Import already-decoded text. Row numbers in the result are physical
        1-based line numbers, the header being line 1.
        """
        lines = split_lines(text)
        if not lines:
            raise EmptyFileError(MSG_EMPTY_FILE)

        sample = [line for _, line in lines[:DELIMITER_SAMPLE_SIZE]]
        delimiter = detect_delimiter(sample)
        logger.info("Detected delimiter: %s", DELIMITER_NAMES.get(delimiter, repr(delimiter)))

        header_map = map_headers(split_csv_line(lines[0][1], delimiter))
        logger.info("Headers mapped: %s", sorted(set(header_map.values())))
        store = self._resolve_store()

        result = ImportResult()
        for row_number, line in lines[1:]:
            self._process_row(store, result, row_number, line, delimiter, header_map)

        logger.info("Import completed: %s success, %s errors", result.success, result.errors)
        return result

    def _process_row(
        self,
        store: PessoaStore,
        result: ImportResult,
        row_number: int,
        line: str,
        delimiter: str,
        header_map: Dict[int, str],
    ) -> None:
        outcome = build_record(
            split_csv_line(line, delimiter),
            header_map,
            placeholder_domain=self._placeholder_domain,
        )
        if outcome.record is None:
            logger.warning("Row %s rejected: %s", row_number, outcome.error)
            result.record_failure(row_number, outcome.error, line)
            return

        try:
            store.insert(outcome.record.to_insert_payload())
        except StoreError as exc:
            logger.warning("Row %s insert failed: %s", row_number, exc)
            result.record_failure(row_number, str(exc), line)
            return
        except Exception as exc:  # noqa: BLE001
            logger.exception("Row %s insert raised unexpectedly", row_number)
            result.record_failure(row_number, str(exc) or exc.__class__.__name__, line)
            return

        logger.debug("Row %s inserted", row_number)
        result.record_success()
