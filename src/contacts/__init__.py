"""vCard interchange codec."""

from src.contacts.vcf import (
    count_record_markers,
    decode,
    encode,
    fold_payload,
    split_data_uri,
    unfold_lines,
)

__all__ = [
    "count_record_markers",
    "decode",
    "encode",
    "fold_payload",
    "split_data_uri",
    "unfold_lines",
]
