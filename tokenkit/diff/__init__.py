"""Token list change extraction and version classification."""

from .snapshot_diff import (
    diff_token_files,
    diff_directories,
    collect_git_changes,
    encode_changes,
    decode_changes,
    GitChangeError,
    GitFileStatus,
)

from .change_events import (
    # Main classification functions
    determine_version_increment,
    classify_changes,
    compute_file_delta,
    # Enums
    ChangeType,
    VersionBump,
    ChangeEventType,
    # Data classes
    Token,
    TokenChange,
    FileDelta,
    ChangeEvent,
    ClassificationResult,
    # Constants
    COMPARED_FIELDS,
    MISSING_CHAIN_ID,
)

__all__ = [
    # Change extraction
    "diff_token_files",
    "diff_directories",
    "collect_git_changes",
    "encode_changes",
    "decode_changes",
    "GitChangeError",
    "GitFileStatus",
    # Version classification
    "determine_version_increment",
    "classify_changes",
    "compute_file_delta",
    "ChangeType",
    "VersionBump",
    "ChangeEventType",
    "Token",
    "TokenChange",
    "FileDelta",
    "ChangeEvent",
    "ClassificationResult",
    "COMPARED_FIELDS",
    "MISSING_CHAIN_ID",
]
