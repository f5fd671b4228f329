from canonlib.content.document import ContentDocument, parse_document, serialize_document
from canonlib.content.hasher import compute_content_hash, MUTABLE_FIELDS
from canonlib.content.canonical_id import allocate, ensure_canonical_id, is_valid_canonical_id, CANONICAL_ID_RE
from canonlib.content.segmenter import segment, restore, SegmentedContent, PreservedSpan

__all__ = [
    "ContentDocument", "parse_document", "serialize_document",
    "compute_content_hash", "MUTABLE_FIELDS",
    "allocate", "ensure_canonical_id", "is_valid_canonical_id", "CANONICAL_ID_RE",
    "segment", "restore", "SegmentedContent", "PreservedSpan",
]
