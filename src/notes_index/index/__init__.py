"""Directory index reconciliation package."""

from .matcher import MATCHER_CHAIN, IdentityMatcher, match, node_key
from .merge import merge_document, merge_entries, merge_entry, new_document
from .models import (
    SCHEMA_VERSION,
    DocumentOverrides,
    Entry,
    IndexDocument,
    NodePosition,
    ReadResult,
    Relation,
    ScanResult,
)
from .naming import (
    COGNITIVE_NOTES_SUFFIX,
    ROOT_INDEX_SUFFIX,
    index_file_name,
    is_reserved_file_name,
    marker_file_name,
    split_file_name,
)
from .resolver import IndexManager, LoadResult, select_index_candidates
from .scanner import scan_directory
from .store import (
    DocumentValidationError,
    WriteOutcome,
    commit_temp,
    normalize_for_write,
    parse_document,
    read_document,
    read_index_file,
    serialize_document,
    write_document_atomic,
    write_temp,
)

__all__ = [
    "COGNITIVE_NOTES_SUFFIX",
    "DocumentOverrides",
    "DocumentValidationError",
    "Entry",
    "IdentityMatcher",
    "IndexDocument",
    "IndexManager",
    "LoadResult",
    "MATCHER_CHAIN",
    "NodePosition",
    "ROOT_INDEX_SUFFIX",
    "ReadResult",
    "Relation",
    "SCHEMA_VERSION",
    "ScanResult",
    "WriteOutcome",
    "commit_temp",
    "index_file_name",
    "is_reserved_file_name",
    "marker_file_name",
    "match",
    "merge_document",
    "merge_entries",
    "merge_entry",
    "new_document",
    "node_key",
    "normalize_for_write",
    "parse_document",
    "read_document",
    "read_index_file",
    "scan_directory",
    "select_index_candidates",
    "serialize_document",
    "split_file_name",
    "write_document_atomic",
    "write_temp",
]
