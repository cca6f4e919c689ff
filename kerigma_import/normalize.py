"""
Parsing primitives for the person importer.

Responsibilities:
- payload decoding (UTF-8 first, charset detection as fallback)
- newline normalization + blank line removal
- quote-aware line splitting and delimiter detection
- header normalization against the canonical field set
- best-effort value coercion (dates, emails, enum-like columns)

Coercion helpers return ``None`` when a value cannot be used; callers pick
the fallback.
"""

from __future__ import annotations

import re
import statistics
import unicodedata
import uuid
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Tuple

from charset_normalizer import from_bytes
from dateutil import parser as dateparser

from .errors import MissingRequiredColumnError, PayloadDecodeError
from .rules import (
    CANDIDATE_DELIMITERS,
    CANONICAL_HEADERS,
    DEFAULT_DELIMITER,
    HEADER_SYNONYMS,
    MSG_MISSING_NAME_COLUMN,
    MSG_UNDECODABLE,
    PLACEHOLDER_SLUG_FALLBACK,
    PLACEHOLDER_SLUG_MAX,
    PLACEHOLDER_SUFFIX_LENGTH,
    REQUIRED_HEADER,
    SITUACAO_VALUES,
    TIPO_PESSOA_SYNONYMS,
)

_NON_WORD_RE = re.compile(r"[^a-z0-9_\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DMY_RE = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4}|\d{2})$")
# fills the parts a partial date leaves out, instead of taking them from today
_PARSE_DEFAULT = datetime(2000, 1, 1)
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_SLUG_RE = re.compile(r"[^a-z0-9.]")


def normalize_text(text: str) -> str:
    """
    Lowercase, strip diacritics, turn punctuation into spaces, collapse whitespace.

    >>> normalize_text("  Situação / Status ")
    'situacao status'
    """
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    cleaned = _NON_WORD_RE.sub(" ", stripped)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def _build_header_lookup() -> Dict[str, str]:
    lookup = {normalize_text(key): canonical for key, canonical in HEADER_SYNONYMS.items()}
    for canonical in CANONICAL_HEADERS:
        lookup.setdefault(canonical, canonical)
    return lookup


def _build_tipo_lookup() -> Dict[str, str]:
    return {
        normalize_text(synonym): tipo
        for tipo, synonyms in TIPO_PESSOA_SYNONYMS.items()
        for synonym in synonyms
    }


_HEADER_LOOKUP = _build_header_lookup()
_TIPO_LOOKUP = _build_tipo_lookup()


# --- Payload decoding ---

def decode_payload(raw: bytes) -> Tuple[str, str]:
    """
    Decode uploaded bytes to text.

    Rules:
    - UTF-8 (with or without BOM) is tried first.
    - Otherwise use charset-normalizer's best guess (legacy spreadsheet exports
      are usually cp1252/latin-1).
    - If nothing decodes, raise PayloadDecodeError.

    Returns ``(text, encoding_used)``.
    """
    try:
        return raw.decode("utf-8-sig"), "utf-8"
    except UnicodeDecodeError:
        pass

    match = from_bytes(raw).best()
    if match is None:
        raise PayloadDecodeError(MSG_UNDECODABLE)

    try:
        return raw.decode(match.encoding), match.encoding
    except (LookupError, UnicodeDecodeError) as exc:
        raise PayloadDecodeError(MSG_UNDECODABLE) from exc


def split_lines(text: str) -> List[Tuple[int, str]]:
    """
    Normalize CRLF/CR to LF and drop blank lines.

    Each kept line is paired with its 1-based physical line number.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return [
        (number, line)
        for number, line in enumerate(text.split("\n"), start=1)
        if line.strip()
    ]


# --- Tokenizing ---

def split_csv_line(line: str, delimiter: str) -> List[str]:
    """
    Split one line on ``delimiter`` respecting double quotes.

    ``""`` inside a quoted field is a literal quote. An unterminated quote
    swallows the rest of the line. Every field is stripped.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < length and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current))
    return [field.strip() for field in fields]


def detect_delimiter(sample_lines: Sequence[str]) -> str:
    """
    Pick the candidate delimiter that splits the sample most consistently.

    Score = (lines with more than one field) / (1 + variance of their field
    counts). Ties keep the earlier candidate; comma when nothing splits.
    """
    best = DEFAULT_DELIMITER
    best_score = -1.0

    for delimiter in CANDIDATE_DELIMITERS:
        counts = [len(split_csv_line(line, delimiter)) for line in sample_lines]
        counts = [count for count in counts if count > 1]
        if not counts:
            continue

        variance = statistics.pvariance(counts)
        score = len(counts) * (1 / (1 + variance))
        if score > best_score:
            best_score = score
            best = delimiter

    return best


# --- Header mapping ---

def resolve_header(cell: str) -> Optional[str]:
    return _HEADER_LOOKUP.get(normalize_text(cell))


def map_headers(header_cells: Sequence[str]) -> Dict[int, str]:
    """
    Map header positions onto canonical fields.

    Unrecognized cells are dropped. Raises MissingRequiredColumnError when no
    cell resolves to ``nome_completo``.
    """
    mapping: Dict[int, str] = {}
    for position, cell in enumerate(header_cells):
        canonical = resolve_header(cell)
        if canonical is not None:
            mapping[position] = canonical

    if REQUIRED_HEADER not in mapping.values():
        raise MissingRequiredColumnError(MSG_MISSING_NAME_COLUMN, headers=list(header_cells))

    return mapping


# --- Value coercion ---

def _two_digit_year(year: int) -> int:
    return 2000 + year if year < 50 else 1900 + year


def to_iso_date(value: Optional[str]) -> Optional[str]:
    """
    Best-effort conversion of a birth date to ``YYYY-MM-DD``.

    Order: ISO passthrough, then D/M/Y with ``/``, ``-`` or ``.`` separators
    and a 2 or 4 digit year, then a generic day-first parse.
    """
    if not value:
        return None
    text = value.strip()
    if not text:
        return None

    if _ISO_DATE_RE.match(text):
        try:
            return date.fromisoformat(text).isoformat()
        except ValueError:
            return None

    match = _DMY_RE.match(text)
    if match:
        day, month, year_text = match.groups()
        year = int(year_text)
        if len(year_text) == 2:
            year = _two_digit_year(year)
        try:
            return date(year, int(month), int(day)).isoformat()
        except ValueError:
            # e.g. 05/13/1990 written month-first; let the generic parser try
            pass

    try:
        return dateparser.parse(text, dayfirst=True, default=_PARSE_DEFAULT).date().isoformat()
    except (ValueError, OverflowError):
        return None


def is_valid_email(value: Optional[str]) -> bool:
    if not value:
        return False
    return bool(_EMAIL_RE.match(value.strip()))


def make_placeholder_email(nome: str, domain: str) -> str:
    """Synthesize a unique, non-deliverable address for a person without email."""
    slug = _SLUG_RE.sub("", normalize_text(nome).replace(" ", "."))[:PLACEHOLDER_SLUG_MAX]
    slug = slug or PLACEHOLDER_SLUG_FALLBACK
    suffix = uuid.uuid4().hex[:PLACEHOLDER_SUFFIX_LENGTH]
    return f"{slug}+{suffix}@noemail.{domain}.local"


def map_tipo_pessoa(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return _TIPO_LOOKUP.get(normalize_text(value))


def map_situacao(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    normalized = normalize_text(value)
    return normalized if normalized in SITUACAO_VALUES else None
