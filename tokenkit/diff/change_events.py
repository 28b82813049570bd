"""
Semantic Version Classification for Token List Changes

This module implements a deterministic classifier that turns per-file change
records into a single version increment for the published token list.

ARCHITECTURE:
- snapshot_diff.py: Answers "Which chain files changed, and how?"
- this module: Answers "How must the published version move?"

POLICY:
- MAJOR: a token was removed, its address/chainId changed, or a chain file
  was deleted
- MINOR: a token was added, or a chain file was created
- PATCH: token metadata changed (name, symbol, logoURI, decimals)
- NONE: reordering, formatting or nothing at all

Every record is reduced to a FileDelta (facts), and the facts are then mapped
to flags (decisions). The verdict is the highest flag set by any record, so
the order of the records never matters.
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import total_ordering
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
import logging

logger = logging.getLogger(__name__)


# Stand-in for an absent chainId inside an identity key. Two tokens on the same
# address that both lack a chainId collide on purpose.
MISSING_CHAIN_ID = "undefined"

# Metadata fields whose change is a patch-level change, in comparison order
COMPARED_FIELDS = ("name", "symbol", "logoURI", "decimals")

TokenKey = Tuple[Optional[str], Union[int, str]]


# =============================================================================
# ENUMS
# =============================================================================

class ChangeType(Enum):
    """How a single chain file differs between two states of the registry."""
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


@total_ordering
class VersionBump(Enum):
    """
    Classification verdict.

    Totally ordered by priority: MAJOR > MINOR > PATCH > NONE, so the verdict
    for several records is simply ``max()`` of their verdicts.
    """
    NONE = None
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"

    @property
    def rank(self) -> int:
        return _BUMP_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, VersionBump):
            return NotImplemented
        return self.rank < other.rank

    def __bool__(self) -> bool:
        return self is not VersionBump.NONE


_BUMP_RANK = {
    VersionBump.NONE: 0,
    VersionBump.PATCH: 1,
    VersionBump.MINOR: 2,
    VersionBump.MAJOR: 3,
}


class ChangeEventType(Enum):
    """Evidence kinds recorded while classifying."""
    FILE_DELETED = "file_deleted"
    FILE_ADDED = "file_added"
    TOKEN_REMOVED = "token_removed"
    TOKEN_ADDED = "token_added"
    IDENTITY_CHANGED = "identity_changed"
    METADATA_CHANGED = "metadata_changed"


# =============================================================================
# INPUT RECORDS
# =============================================================================

@dataclass
class Token:
    """
    One token metadata entry as it appears in a chain file.

    Nothing here is validated: the classifier must stay total over whatever the
    change-extraction step hands it. Shape checks belong to the schema
    validator, which runs on the merged token list.
    """
    address: Optional[str] = None
    chainId: Optional[int] = None
    name: Any = None
    symbol: Any = None
    decimals: Any = None
    logoURI: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Token":
        return cls(
            address=data.get("address"),
            chainId=data.get("chainId"),
            name=data.get("name"),
            symbol=data.get("symbol"),
            decimals=data.get("decimals"),
            logoURI=data.get("logoURI"),
        )

    @property
    def key(self) -> TokenKey:
        """Identity key: (address, chainId), with a sentinel for a missing chainId."""
        return (self.address, self.chainId if self.chainId is not None else MISSING_CHAIN_ID)

    def to_dict(self) -> Dict[str, Any]:
        data = {"address": self.address}
        if self.chainId is not None:
            data["chainId"] = self.chainId
        for name in COMPARED_FIELDS:
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data


@dataclass
class TokenChange:
    """
    How one chain file changed.

    ``added`` carries only ``after``, ``deleted`` only ``before`` and
    ``modified`` both. A missing sequence is read as an empty one.
    """
    file: str
    type: ChangeType
    before: Optional[List[Token]] = None
    after: Optional[List[Token]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenChange":
        """Build a TokenChange from the JSON wire shape."""
        return cls(
            file=data.get("file", ""),
            type=ChangeType(data["type"]),
            before=_tokens_from_wire(data.get("before")),
            after=_tokens_from_wire(data.get("after")),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"file": self.file, "type": self.type.value}
        if self.before is not None:
            data["before"] = [t.to_dict() for t in self.before]
        if self.after is not None:
            data["after"] = [t.to_dict() for t in self.after]
        return data


def _tokens_from_wire(raw: Optional[Iterable[Any]]) -> Optional[List[Token]]:
    if raw is None:
        return None
    return [t if isinstance(t, Token) else Token.from_dict(t) for t in raw]


def _as_change(change: Union[TokenChange, Dict[str, Any]]) -> TokenChange:
    if isinstance(change, TokenChange):
        return change
    return TokenChange.from_dict(change)


# =============================================================================
# FILE DELTA (facts)
# =============================================================================

@dataclass
class FileDelta:
    """
    Facts about one change record, before any decision is taken.

    For modified records the key sets are computed from identity-keyed maps,
    never from positions, so reordering a file produces an empty delta.
    """
    file: str
    change_type: ChangeType

    removed_keys: List[TokenKey] = field(default_factory=list)
    added_keys: List[TokenKey] = field(default_factory=list)
    identity_changed_keys: List[TokenKey] = field(default_factory=list)

    # key -> names of the metadata fields that differ
    changed_fields: Dict[TokenKey, List[str]] = field(default_factory=dict)

    def has_any_change(self) -> bool:
        return (
            self.change_type is not ChangeType.MODIFIED or
            bool(self.removed_keys) or
            bool(self.added_keys) or
            bool(self.identity_changed_keys) or
            bool(self.changed_fields)
        )


def _strictly_equal(a: Any, b: Any) -> bool:
    """
    Equality without coercion: 18 != "18" and True != 1, but 18 == 18.0.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    numeric = (int, float)
    if isinstance(a, numeric) and isinstance(b, numeric):
        return a == b
    return type(a) is type(b) and a == b


def _key_map(tokens: Optional[List[Token]]) -> Dict[TokenKey, Token]:
    # Duplicate keys: the last token wins.
    return {token.key: token for token in tokens or []}


def compute_file_delta(change: TokenChange) -> FileDelta:
    """
    Reduce a change record to a FileDelta.

    Args:
        change: One change record from the extraction step

    Returns:
        FileDelta with every removed, added and changed key recorded
    """
    delta = FileDelta(file=change.file, change_type=change.type)
    if change.type is not ChangeType.MODIFIED:
        # Added and deleted files are not inspected.
        return delta

    before = _key_map(change.before)
    after = _key_map(change.after)

    delta.removed_keys = [key for key in before if key not in after]
    delta.added_keys = [key for key in after if key not in before]

    for key, before_token in before.items():
        after_token = after.get(key)
        if after_token is None:
            continue

        if (not _strictly_equal(before_token.address, after_token.address) or
                not _strictly_equal(before_token.chainId, after_token.chainId)):
            delta.identity_changed_keys.append(key)
            continue

        fields = [
            name for name in COMPARED_FIELDS
            if not _strictly_equal(getattr(before_token, name), getattr(after_token, name))
        ]
        if fields:
            delta.changed_fields[key] = fields

    return delta


# =============================================================================
# CHANGE EVENTS (evidence)
# =============================================================================

@dataclass
class ChangeEvent:
    """A single piece of evidence behind a verdict."""
    file: str
    event_type: ChangeEventType
    bump: VersionBump
    key: Optional[TokenKey] = None
    fields: List[str] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "event_type": self.event_type.value,
            "bump": self.bump.value,
            "address": self.key[0] if self.key else None,
            "chainId": self.key[1] if self.key else None,
            "fields": list(self.fields),
            "summary": self.summary,
        }


def _describe(key: TokenKey) -> str:
    return f"{key[0]} on chain {key[1]}"


def _events_for_delta(delta: FileDelta) -> List[ChangeEvent]:
    if delta.change_type is ChangeType.DELETED:
        return [ChangeEvent(
            file=delta.file,
            event_type=ChangeEventType.FILE_DELETED,
            bump=VersionBump.MAJOR,
            summary="Chain file deleted",
        )]

    if delta.change_type is ChangeType.ADDED:
        return [ChangeEvent(
            file=delta.file,
            event_type=ChangeEventType.FILE_ADDED,
            bump=VersionBump.MINOR,
            summary="Chain file added",
        )]

    events = []
    for key in delta.removed_keys:
        events.append(ChangeEvent(
            file=delta.file,
            event_type=ChangeEventType.TOKEN_REMOVED,
            bump=VersionBump.MAJOR,
            key=key,
            summary=f"Token removed: {_describe(key)}",
        ))
    for key in delta.identity_changed_keys:
        events.append(ChangeEvent(
            file=delta.file,
            event_type=ChangeEventType.IDENTITY_CHANGED,
            bump=VersionBump.MAJOR,
            key=key,
            summary=f"Token address/chainId changed: {_describe(key)}",
        ))
    for key in delta.added_keys:
        events.append(ChangeEvent(
            file=delta.file,
            event_type=ChangeEventType.TOKEN_ADDED,
            bump=VersionBump.MINOR,
            key=key,
            summary=f"Token added: {_describe(key)}",
        ))
    for key, fields in delta.changed_fields.items():
        events.append(ChangeEvent(
            file=delta.file,
            event_type=ChangeEventType.METADATA_CHANGED,
            bump=VersionBump.PATCH,
            key=key,
            fields=list(fields),
            summary=f"Token details changed ({', '.join(fields)}): {_describe(key)}",
        ))
    return events


# =============================================================================
# CLASSIFICATION
# =============================================================================

@dataclass
class ClassificationResult:
    """Verdict for a list of change records, with the evidence that produced it."""
    bump: VersionBump
    events: List[ChangeEvent]

    has_major_change: bool = False
    has_minor_change: bool = False
    has_patch_change: bool = False

    def events_by_bump(self, bump: VersionBump) -> List[ChangeEvent]:
        return [e for e in self.events if e.bump is bump]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bump": self.bump.value,
            "major": self.has_major_change,
            "minor": self.has_minor_change,
            "patch": self.has_patch_change,
            "events": [e.to_dict() for e in self.events],
        }


def classify_changes(
    changes: Iterable[Union[TokenChange, Dict[str, Any]]]
) -> ClassificationResult:
    """
    Classify change records into a version increment.

    Flags are OR-ed across records: one record's patch-only change never
    hides another record's removal. The verdict is the highest flag set.

    Args:
        changes: TokenChange objects or their JSON wire dicts, in any order

    Returns:
        ClassificationResult with the verdict, the flags and the evidence
    """
    has_major = False
    has_minor = False
    has_patch = False
    events: List[ChangeEvent] = []

    for raw in changes:
        delta = compute_file_delta(_as_change(raw))
        if not delta.has_any_change():
            continue

        if delta.change_type is ChangeType.DELETED:
            has_major = True
        elif delta.change_type is ChangeType.ADDED:
            has_minor = True
        else:
            if delta.removed_keys or delta.identity_changed_keys:
                has_major = True
            if delta.added_keys:
                has_minor = True
            if delta.changed_fields:
                has_patch = True

        events.extend(_events_for_delta(delta))

    if has_major:
        bump = VersionBump.MAJOR
    elif has_minor:
        bump = VersionBump.MINOR
    elif has_patch:
        bump = VersionBump.PATCH
    else:
        bump = VersionBump.NONE

    logger.debug(
        f"Classified {len(events)} change events: major={has_major} "
        f"minor={has_minor} patch={has_patch} -> {bump.name}"
    )

    return ClassificationResult(
        bump=bump,
        events=events,
        has_major_change=has_major,
        has_minor_change=has_minor,
        has_patch_change=has_patch,
    )


def determine_version_increment(
    changes: Iterable[Union[TokenChange, Dict[str, Any]]]
) -> VersionBump:
    """
    Decide how the published version must increment.

    Example:
        >>> determine_version_increment([{"file": "chains/1.json", "type": "deleted"}])
        <VersionBump.MAJOR: 'major'>
    """
    return classify_changes(changes).bump
