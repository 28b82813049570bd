"""
Logo resolution for the built token list.

Chain files reference logos by relative path (``../images/usdc.png``). In the
published list every relative path becomes either an ``ipfs://`` URI, when a
content store is configured and the upload succeeds, or a raw-content URL in
the source repository.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse
import asyncio
import logging
import re

import httpx

logger = logging.getLogger(__name__)


class IpfsContentStore:
    """
    Content store backed by an IPFS HTTP API (``POST /api/v0/add``).

    Args:
        api_url: Base URL of the API, e.g. http://127.0.0.1:5001
        api_token: Optional bearer token for hosted pinning gateways
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (used by tests)
    """

    def __init__(
        self,
        api_url: str,
        api_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_url = api_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self.transport = transport

    def client(self) -> httpx.AsyncClient:
        headers = {}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return httpx.AsyncClient(
            base_url=self.api_url,
            headers=headers,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def add(self, client: httpx.AsyncClient, name: str, content: bytes) -> str:
        """Upload and pin one file, returning its CID."""
        response = await client.post(
            "/api/v0/add",
            params={"pin": "true", "cid-version": "1"},
            files={"file": (name, content)},
        )
        response.raise_for_status()
        return response.json()["Hash"]


def is_relative_logo(logo_uri: Optional[str]) -> bool:
    return bool(logo_uri) and not urlparse(logo_uri).scheme


def raw_logo_uri(logo_uri: str, raw_base_url: str) -> str:
    """Rewrite a ``../`` logo path to a raw-content URL in the source repository."""
    return re.sub(r"^\.\.", raw_base_url, logo_uri)


def with_raw_logo_uris(tokens: List[Dict[str, Any]], raw_base_url: str) -> List[Dict[str, Any]]:
    resolved = []
    for token in tokens:
        logo = token.get("logoURI")
        if is_relative_logo(logo):
            token = {**token, "logoURI": raw_logo_uri(logo, raw_base_url)}
        resolved.append(token)
    return resolved


async def _upload_logo(
    token: Dict[str, Any],
    chains_dir: Path,
    store: IpfsContentStore,
    client: httpx.AsyncClient,
    raw_base_url: str
) -> Dict[str, Any]:
    logo = token.get("logoURI")
    if not is_relative_logo(logo):
        return token

    try:
        local_path = (chains_dir / logo).resolve()
        cid = await store.add(client, local_path.name, local_path.read_bytes())
    except (OSError, httpx.HTTPError, KeyError, ValueError) as e:
        logger.warning(f"Failed to upload {token.get('symbol')} logo to IPFS: {e}")
        return {**token, "logoURI": raw_logo_uri(logo, raw_base_url)}

    logger.info(f"Uploaded {token.get('symbol')} to {cid}")
    return {**token, "logoURI": f"ipfs://{cid}"}


async def upload_logos(
    tokens: List[Dict[str, Any]],
    chains_dir: Union[str, Path],
    store: IpfsContentStore,
    raw_base_url: str
) -> List[Dict[str, Any]]:
    """Upload every relative logo concurrently; token order is preserved."""
    chains_dir = Path(chains_dir)
    async with store.client() as client:
        return list(await asyncio.gather(*(
            _upload_logo(token, chains_dir, store, client, raw_base_url)
            for token in tokens
        )))


def resolve_logos(
    tokens: List[Dict[str, Any]],
    chains_dir: Union[str, Path],
    raw_base_url: str,
    store: Optional[IpfsContentStore] = None
) -> List[Dict[str, Any]]:
    """
    Resolve the logoURI of every token.

    Without a store, relative logos become raw-content URLs. With a store each
    logo is uploaded; a failed upload falls back to the raw URL for that token,
    and a failure of the whole phase falls back to raw URLs for all tokens.

    Args:
        tokens: Token records as loaded from the chain files
        chains_dir: Directory the relative logo paths are resolved against
        raw_base_url: Replacement for the leading ``..`` of a relative path
        store: Content store, or None to skip uploads

    Returns:
        New token records; the input list is not modified
    """
    if store is None:
        logger.info("No content store configured, using raw URLs rather than IPFS")
        return with_raw_logo_uris(tokens, raw_base_url)

    logger.info("Uploading token logos to IPFS")
    try:
        return asyncio.run(upload_logos(tokens, chains_dir, store, raw_base_url))
    except (OSError, httpx.HTTPError) as e:
        logger.warning(f"IPFS upload process failed: {e}. Falling back to raw URLs")
        return with_raw_logo_uris(tokens, raw_base_url)


def upload_token_list(path: Union[str, Path], store: IpfsContentStore) -> Optional[str]:
    """Upload the built list. A failure is logged and returns None."""
    path = Path(path)

    async def _upload() -> str:
        async with store.client() as client:
            return await store.add(client, path.name, path.read_bytes())

    logger.info("Uploading token list to IPFS")
    try:
        cid = asyncio.run(_upload())
    except (OSError, httpx.HTTPError, KeyError, ValueError) as e:
        logger.warning(f"Failed to upload token list to IPFS: {e}")
        return None

    logger.info(f"Uploaded list to {cid}")
    return cid
