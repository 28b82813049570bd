"""
Build pipeline for the published token list.

Steps, in order:
1. Load and check every chain file
2. Resolve logo URIs (content store upload or raw URLs)
3. Classify the change list and compute the candidate version
4. Merge template and tokens, validate against the token list schema
5. Persist the new version, write the artifact, upload it

Nothing is written before step 5, so a bad chain file or a schema violation
leaves the version and the build directory untouched.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Union, Dict, Any
import json
import logging

from .config import Settings
from .diff.change_events import TokenChange, VersionBump, determine_version_increment
from .logos import IpfsContentStore, resolve_logos, upload_token_list
from .parser import ChainFileParser
from .schema import assert_valid_token_list
from .versioning import (
    BUMP_DESCRIPTIONS,
    PackageVersionStore,
    TemplateVersionStore,
    Version,
    apply_increment,
    utc_timestamp,
)

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    output_path: Path
    token_count: int
    bump: VersionBump
    previous_version: Version
    version: Version
    list_cid: Optional[str] = None

    @property
    def version_changed(self) -> bool:
        return self.version != self.previous_version


def _content_store(settings: Settings) -> Optional[IpfsContentStore]:
    if not settings.uploads_enabled:
        return None
    return IpfsContentStore(
        settings.ipfs_api_url,
        api_token=settings.ipfs_api_token,
        timeout=settings.upload_timeout,
    )


def build_token_list(
    settings: Settings,
    increment_version: bool = False,
    changes: Optional[Iterable[Union[TokenChange, Dict[str, Any]]]] = None,
    store: Optional[IpfsContentStore] = None,
    now: Optional[datetime] = None
) -> BuildResult:
    """
    Build, validate and write the token list.

    Args:
        settings: Paths and content store configuration
        increment_version: Classify ``changes`` and bump the version
        changes: Change records for this build (ignored unless incrementing)
        store: Content store override; defaults to the one configured in settings
        now: Build time (defaults to the current time)

    Returns:
        BuildResult describing the written artifact

    Raises:
        TokenFileError: If a chain file is invalid
        TokenListValidationError: If the merged list violates the schema
    """
    now = now or datetime.now(timezone.utc)
    store = store or _content_store(settings)

    try:
        tokens = ChainFileParser().load_tokens(settings.chains_dir)
        tokens = resolve_logos(tokens, settings.chains_dir, settings.raw_base_url, store)

        version_store = TemplateVersionStore(settings.template_path)
        template, current = version_store.read()

        bump = VersionBump.NONE
        new_version = current
        if increment_version:
            change_list: List = list(changes or [])
            bump = determine_version_increment(change_list)
            new_version = current.bump(bump)
            if bump:
                logger.debug(f"Candidate version {new_version} ({BUMP_DESCRIPTIONS[bump]})")
                template = {
                    **template,
                    "version": new_version.to_dict(),
                    "timestamp": utc_timestamp(now),
                }
            else:
                logger.info("No semantic changes detected in token files - skipping version increment")

        token_list = {**template, "tokens": tokens}
        assert_valid_token_list(token_list)
    except Exception as e:
        logger.error(f"Token list build failed: {e}", exc_info=True)
        raise

    if bump:
        apply_increment(
            bump,
            version_store,
            mirrors=[PackageVersionStore(settings.package_json_path)],
            now=now,
        )

    settings.build_dir.mkdir(parents=True, exist_ok=True)
    with open(settings.output_path, "w", encoding="utf-8") as f:
        json.dump(token_list, f, indent=2, ensure_ascii=False)
    logger.info(f"Wrote {len(tokens)} tokens to {settings.output_path}")

    list_cid = None
    if store is not None:
        list_cid = upload_token_list(settings.output_path, store)

    return BuildResult(
        output_path=settings.output_path,
        token_count=len(tokens),
        bump=bump,
        previous_version=current,
        version=new_version,
        list_cid=list_cid,
    )
