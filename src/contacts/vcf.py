"""
vCard Codec

Converts between vCard text (one file may hold many concatenated cards) and
ContactRecord models. Only the properties the phone book uses are handled:
FN, ORG, TITLE, NOTE, TEL, EMAIL and PHOTO.

DESIGN DECISION: The decoder never raises on bad input. vCard files come from
phones and address-book exporters that routinely produce partial or lossy
output, so a broken block is dropped and the rest of the file still imports.
Callers that want strictness can compare count_record_markers(text) with the
number of decoded records.

Both functions are pure. All parsing state lives in a _BlockParser created
per block, so concurrent decode calls never share anything.
"""

import re
from enum import Enum
from typing import Iterable, Optional
from uuid import uuid4

import structlog

from src.models.contact import ContactRecord, TypedEntry


BEGIN_MARKER = "BEGIN:VCARD"
END_MARKER = "END:VCARD"
VERSION_LINE = "VERSION:3.0"
CRLF = "\r\n"

FOLD_WIDTH = 76
DEFAULT_TELEPHONE_KIND = "VOICE"
DEFAULT_EMAIL_KIND = "INTERNET"
DECODED_PHOTO_MIME = "image/jpeg"

_PROPERTY_DELIMITER = re.compile(r"[:;]")
_TYPE_PARAM = re.compile(r"TYPE=([^;:]+)", re.IGNORECASE)
_BASE64_ENCODING_PARAM = re.compile(r"ENCODING=(?:b|BASE64)(?=;|$)", re.IGNORECASE)
_NOTE_ESCAPE = re.compile(r"\\([nN\\])")
_WHITESPACE = re.compile(r"\s+")

logger = structlog.get_logger(__name__)


class _ParseState(str, Enum):
    NORMAL = "normal"
    READING_PHOTO_PAYLOAD = "reading_photo_payload"


# =============================================================================
# FOLDING HELPERS
# =============================================================================

def normalize_line_endings(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def unfold_lines(text: str) -> list[str]:
    """
    Join continuation lines onto the line before them.

    A physical line starting with a space continues the previous logical
    line: the line break is dropped and the text joins as-is, so
    'NOTE:Hello' + ' World' reads 'NOTE:Hello World'. Base64 payloads have
    their whitespace removed separately.
    """
    return normalize_line_endings(text).replace("\n ", " ").split("\n")


def fold_payload(payload: str, width: int = FOLD_WIDTH) -> str:
    """Split a payload into width-sized chunks joined by CRLF + space."""
    chunks = [payload[i:i + width] for i in range(0, len(payload), width)]
    return (CRLF + " ").join(chunks)


def count_record_markers(text: str) -> int:
    """Number of BEGIN:VCARD markers in the text."""
    return text.count(BEGIN_MARKER)


def split_data_uri(uri: Optional[str]) -> Optional[tuple[str, str]]:
    """
    Split a base64 data URI into (mime_type, payload).

    Returns None for anything that is not a base64 data URI, including
    photo store references.
    """
    if not uri or not uri.startswith("data:") or "," not in uri:
        return None
    header, payload = uri[len("data:"):].split(",", 1)
    params = header.split(";")
    if "base64" not in (p.strip().lower() for p in params[1:]):
        return None
    mime_type = params[0].strip() or "application/octet-stream"
    return mime_type, payload


def build_data_uri(mime_type: str, payload: str) -> str:
    return f"data:{mime_type};base64,{payload}"


# =============================================================================
# DECODER
# =============================================================================

def _split_property(line: str) -> tuple[str, str, str]:
    """
    Split a property line into (key, params, value).

    The key ends at the first ':' or ';'. The value is always everything after
    the first ':' of the whole line, so vendor forms such as
    item1.EMAIL;TYPE=INTERNET:user@example.com still yield the address.
    """
    delimiter = _PROPERTY_DELIMITER.search(line)
    if delimiter is None:
        return line, "", ""

    key = line[:delimiter.start()]
    colon = line.find(":")
    if colon == -1:
        return key, line[delimiter.start():], ""
    return key, line[delimiter.start():colon], line[colon + 1:]


def _unescape_note(value: str) -> str:
    """'\\n' and '\\N' become newlines, '\\\\' a single backslash."""
    return _NOTE_ESCAPE.sub(lambda m: "\\" if m.group(1) == "\\" else "\n", value)


def _strip_group(key: str) -> str:
    """Drop a vCard group prefix: 'item1.EMAIL' -> 'EMAIL'."""
    if "." in key:
        return key.split(".", 1)[1]
    return key


def _type_param(params: str, default: str) -> str:
    match = _TYPE_PARAM.search(params)
    return match.group(1).strip().upper() if match else default


class _BlockParser:
    """
    Line-by-line state machine for a single vCard block.

    States:
    - NORMAL: every line is parsed as a property.
    - READING_PHOTO_PAYLOAD: bare lines (no ':' or ';') are base64
      continuation data; the first line with a delimiter ends the photo and
      is parsed as a property.
    """

    def __init__(self):
        self.state = _ParseState.NORMAL
        self.finished = False
        self.formatted_name: Optional[str] = None
        self.organization: Optional[str] = None
        self.title: Optional[str] = None
        self.note: Optional[str] = None
        self.telephones: list[TypedEntry] = []
        self.emails: list[TypedEntry] = []
        self.photo_payload: list[str] = []
        self.photo_uri: Optional[str] = None

    def feed(self, line: str) -> None:
        if self.state == _ParseState.READING_PHOTO_PAYLOAD:
            if ":" not in line and ";" not in line:
                self.photo_payload.append(line.strip())
                return
            self.state = _ParseState.NORMAL

        if line.startswith(END_MARKER):
            self.finished = True
            return

        raw_key, params, value = _split_property(line)
        key = _strip_group(raw_key)

        if key.startswith("FN"):
            self.formatted_name = value
        elif key.startswith("ORG"):
            self.organization = value
        elif key.startswith("TITLE"):
            self.title = value
        elif key.startswith("NOTE"):
            self.note = _unescape_note(value)
        elif key.startswith("TEL"):
            self._add_entry(self.telephones, params, value, DEFAULT_TELEPHONE_KIND)
        elif key.startswith("EMAIL"):
            self._add_entry(self.emails, params, value, DEFAULT_EMAIL_KIND)
        elif key.startswith("PHOTO"):
            self._start_photo(params, value)

    def _add_entry(
        self,
        entries: list[TypedEntry],
        params: str,
        value: str,
        default_kind: str,
    ) -> None:
        if not value.strip():
            return
        entries.append(TypedEntry(kind=_type_param(params, default_kind), value=value))

    def _start_photo(self, params: str, value: str) -> None:
        if _BASE64_ENCODING_PARAM.search(params):
            # Each base64 PHOTO restarts capture; the last one wins.
            self.photo_uri = None
            self.photo_payload = [value.strip()]
            self.state = _ParseState.READING_PHOTO_PAYLOAD
        else:
            inline = split_data_uri(value.strip())
            if inline is not None:
                self.photo_payload = []
                self.photo_uri = build_data_uri(inline[0], _WHITESPACE.sub("", inline[1]))

    def finish(self) -> Optional[ContactRecord]:
        """Build the record, or None if the block was incomplete."""
        if not self.finished:
            logger.debug("vcard_block_dropped", reason="missing_end_marker")
            return None
        if not self.formatted_name or not self.formatted_name.strip():
            logger.debug("vcard_block_dropped", reason="missing_formatted_name")
            return None

        photo = self.photo_uri
        payload = _WHITESPACE.sub("", "".join(self.photo_payload))
        if payload:
            photo = build_data_uri(DECODED_PHOTO_MIME, payload)

        return ContactRecord(
            id=uuid4(),
            formatted_name=self.formatted_name,
            organization=self.organization,
            title=self.title,
            note=self.note,
            telephones=self.telephones,
            emails=self.emails,
            photo=photo,
        )


def _decode_block(block: str) -> Optional[ContactRecord]:
    parser = _BlockParser()
    for line in unfold_lines(block):
        parser.feed(line)
        if parser.finished:
            break
    return parser.finish()


def decode(text: str) -> list[ContactRecord]:
    """
    Decode vCard text into contacts.

    Text before the first BEGIN:VCARD is ignored. Each block yields zero or
    one record; record order follows block order.
    """
    blocks = normalize_line_endings(text).split(BEGIN_MARKER)[1:]
    records = []
    for block in blocks:
        record = _decode_block(block)
        if record is not None:
            records.append(record)
    return records


# =============================================================================
# ENCODER
# =============================================================================

def _escape_note(note: str) -> str:
    return normalize_line_endings(note).replace("\\", "\\\\").replace("\n", "\\n")


def _encode_record(record: ContactRecord) -> list[str]:
    lines = [
        BEGIN_MARKER,
        VERSION_LINE,
        f"FN:{record.formatted_name}",
    ]
    if record.organization:
        lines.append(f"ORG:{record.organization}")
    if record.title:
        lines.append(f"TITLE:{record.title}")

    for tel in record.telephones:
        if tel.value:
            lines.append(f"TEL;TYPE={tel.kind or DEFAULT_TELEPHONE_KIND}:{tel.value}")
    for email in record.emails:
        if email.value:
            lines.append(f"EMAIL;TYPE={email.kind or DEFAULT_EMAIL_KIND}:{email.value}")

    if record.note:
        lines.append(f"NOTE:{_escape_note(record.note)}")

    photo = split_data_uri(record.photo)
    if photo is not None and photo[1]:
        lines.append(f"PHOTO;ENCODING=b;TYPE=JPEG:{fold_payload(photo[1])}")

    lines.append(END_MARKER)
    return lines


def encode(records: Iterable[ContactRecord]) -> str:
    """
    Encode contacts as vCard 3.0 text with CRLF line endings.

    Records without a formatted name and entries without a value are left
    out. Photos are only written when they are inline data URIs.
    """
    lines: list[str] = []
    for record in records:
        if not record.formatted_name:
            continue
        lines.extend(_encode_record(record))
    return "".join(line + CRLF for line in lines)
