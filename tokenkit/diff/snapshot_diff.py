"""
Change extraction for chain files.

This module compares two states of the chains directory and produces the
per-file change records consumed by the classifier in change_events.py.

Two sources are supported:
- two directory snapshots on disk (diff_directories)
- two git revisions of the same repository (collect_git_changes)

Change lists travel between CI steps as base64-encoded JSON
(encode_changes / decode_changes), the format of the build's --git-changes
option.

CORE PRINCIPLES:
1. Identity is the file name: one file per chain identifier
2. Content is compared after parsing, so whitespace-only edits vanish here
3. A file that cannot be parsed is an error, never an empty change
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
import base64
import binascii
import json
import logging
import re
import subprocess

from ..adapters.json_adapter import JsonAdapter
from .change_events import ChangeType, Token, TokenChange

logger = logging.getLogger(__name__)


class GitChangeError(RuntimeError):
    """Raised when git cannot produce the before/after state of the chains."""


@dataclass
class GitFileStatus:
    """One line of ``git diff --name-status`` for a chain file."""
    status: str
    path: str


def _chain_sort_key(file: str) -> Tuple[int, Union[int, float], str]:
    match = re.search(r"(\d+)\.json$", file)
    if match:
        return (0, int(match.group(1)), file)
    return (1, float("inf"), file)


def _to_tokens(raw: Optional[List[Dict[str, Any]]]) -> Optional[List[Token]]:
    if raw is None:
        return None
    return [Token.from_dict(item) for item in raw]


def _canonical(raw: Any) -> str:
    # JSON text keeps 1 / true / 1.0 apart, unlike dict equality
    return json.dumps(raw, sort_keys=True)


def diff_token_files(
    before: Dict[str, List[Dict[str, Any]]],
    after: Dict[str, List[Dict[str, Any]]]
) -> List[TokenChange]:
    """
    Compare parsed chain files and produce change records.

    Args:
        before: file name -> parsed token array, baseline state
        after: file name -> parsed token array, new state

    Returns:
        Change records sorted by chain id. Files whose parsed content is
        identical produce no record.
    """
    changes = []

    for file in sorted(set(before) | set(after), key=_chain_sort_key):
        if file not in before:
            changes.append(TokenChange(
                file=file,
                type=ChangeType.ADDED,
                after=_to_tokens(after[file])
            ))
        elif file not in after:
            changes.append(TokenChange(
                file=file,
                type=ChangeType.DELETED,
                before=_to_tokens(before[file])
            ))
        elif _canonical(before[file]) != _canonical(after[file]):
            changes.append(TokenChange(
                file=file,
                type=ChangeType.MODIFIED,
                before=_to_tokens(before[file]),
                after=_to_tokens(after[file])
            ))

    return changes


def _read_snapshot(directory: Path, pattern: str, adapter: JsonAdapter) -> Dict[str, List[Dict[str, Any]]]:
    if not directory.exists():
        return {}
    return {
        path.name: adapter.read(str(path))
        for path in sorted(directory.glob(pattern))
    }


def diff_directories(
    before_dir: Union[str, Path],
    after_dir: Union[str, Path],
    pattern: str = "*.json",
    prefix: str = "chains/"
) -> List[TokenChange]:
    """
    Compare two snapshots of the chains directory.

    A missing directory is read as an empty snapshot, so diffing against a
    directory that does not exist yet reports every file as added.

    Args:
        before_dir: Baseline chains directory
        after_dir: New chains directory
        pattern: Glob pattern for chain files
        prefix: Prefix for the file names in the change records

    Returns:
        List of change records
    """
    adapter = JsonAdapter()
    before = _read_snapshot(Path(before_dir), pattern, adapter)
    after = _read_snapshot(Path(after_dir), pattern, adapter)

    changes = diff_token_files(before, after)
    for change in changes:
        change.file = f"{prefix}{change.file}"

    logger.info(
        f"Compared {len(before)} -> {len(after)} chain files: {len(changes)} changed"
    )
    return changes


# =============================================================================
# GIT
# =============================================================================

def _run_git(repo_root: Path, args: Sequence[str]) -> str:
    try:
        completed = subprocess.run(
            ["git", *args],
            cwd=str(repo_root),
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as e:
        raise GitChangeError("git executable not found") from e
    except subprocess.CalledProcessError as e:
        raise GitChangeError(f"git {' '.join(args)} failed: {e.stderr.strip()}") from e
    return completed.stdout


def _parse_name_status(output: str) -> List[GitFileStatus]:
    entries = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split("\t")
        status = parts[0]
        if status.startswith("R") and len(parts) == 3:
            # Renamed chain file: the old chain disappears, the new one appears.
            entries.append(GitFileStatus(status="D", path=parts[1]))
            entries.append(GitFileStatus(status="A", path=parts[2]))
        else:
            entries.append(GitFileStatus(status=status[0], path=parts[-1]))
    return entries


def _show_json(repo_root: Path, ref: str, path: str) -> List[Dict[str, Any]]:
    text = _run_git(repo_root, ["show", f"{ref}:{path}"])
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise GitChangeError(f"Invalid token file at {ref}:{path}: {e}") from e


def collect_git_changes(
    repo_root: Union[str, Path],
    base_ref: str,
    head_ref: str = "HEAD",
    path: str = "chains"
) -> List[TokenChange]:
    """
    Build change records for the chain files between two git revisions.

    Args:
        repo_root: Repository working tree
        base_ref: Baseline revision (e.g. the previous commit on main)
        head_ref: New revision
        path: Directory holding the chain files

    Returns:
        List of change records, sorted by chain id

    Raises:
        GitChangeError: If git fails or a chain file is not valid JSON
    """
    repo_root = Path(repo_root)
    output = _run_git(
        repo_root,
        ["diff", "--name-status", "-M", base_ref, head_ref, "--", f"{path}/*.json"]
    )

    before: Dict[str, List[Dict[str, Any]]] = {}
    after: Dict[str, List[Dict[str, Any]]] = {}
    for entry in _parse_name_status(output):
        if not entry.path.endswith(".json"):
            continue
        if entry.status in ("M", "D", "T"):
            before[entry.path] = _show_json(repo_root, base_ref, entry.path)
        if entry.status in ("M", "A", "T", "C"):
            after[entry.path] = _show_json(repo_root, head_ref, entry.path)

    changes = diff_token_files(before, after)
    logger.info(f"Collected {len(changes)} chain file changes between {base_ref} and {head_ref}")
    return changes


# =============================================================================
# WIRE FORMAT
# =============================================================================

def encode_changes(changes: List[TokenChange]) -> str:
    """Encode change records as base64 JSON for the --git-changes option."""
    payload = json.dumps([change.to_dict() for change in changes])
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def decode_changes(payload: Optional[str]) -> List[TokenChange]:
    """
    Decode a base64 JSON change list.

    An empty or undecodable payload yields no changes: the build then skips
    the version increment instead of failing. Records that cannot be read
    (unknown type, wrong shape) are skipped one by one.
    """
    if not payload:
        return []

    try:
        raw = json.loads(base64.b64decode(payload, validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError, ValueError) as e:
        logger.warning(f"Failed to parse git changes: {e}")
        return []

    if not isinstance(raw, list):
        logger.warning(f"Failed to parse git changes: expected a JSON array, got {type(raw).__name__}")
        return []

    changes = []
    for index, item in enumerate(raw):
        try:
            changes.append(TokenChange.from_dict(item))
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping git change record {index}: {e}")
    return changes
