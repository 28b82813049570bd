"""Runtime settings read from the environment (and an optional ``.env`` file)."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
import os

from dotenv import load_dotenv

DEFAULT_RAW_BASE_URL = "https://github.com/tallycash/token-list/raw/main"


@dataclass
class Settings:
    root: Path
    chains_dir: Path
    template_path: Path
    build_dir: Path
    output_name: str = "tokenlist.json"
    raw_base_url: str = DEFAULT_RAW_BASE_URL

    # IPFS HTTP API used as content store; uploads are skipped when unset
    ipfs_api_url: Optional[str] = None
    ipfs_api_token: Optional[str] = None
    upload_timeout: float = 30.0

    @property
    def output_path(self) -> Path:
        return self.build_dir / self.output_name

    @property
    def package_json_path(self) -> Path:
        return self.root / "package.json"

    @property
    def uploads_enabled(self) -> bool:
        return bool(self.ipfs_api_url)

    @classmethod
    def from_env(cls, root: Optional[Union[str, Path]] = None) -> "Settings":
        """
        Build settings from TOKENKIT_* environment variables.

        A ``.env`` file in the root is loaded first; variables already set in
        the environment win over it.

        Raises:
            ValueError: If TOKENKIT_UPLOAD_TIMEOUT is not a positive number
        """
        root = Path(root or os.getenv("TOKENKIT_ROOT") or Path.cwd())
        load_dotenv(root / ".env", override=False)

        timeout_raw = os.getenv("TOKENKIT_UPLOAD_TIMEOUT", "30")
        try:
            upload_timeout = float(timeout_raw)
        except ValueError:
            raise ValueError(f"TOKENKIT_UPLOAD_TIMEOUT must be a number, got {timeout_raw!r}")
        if upload_timeout <= 0:
            raise ValueError(f"TOKENKIT_UPLOAD_TIMEOUT must be positive, got {upload_timeout}")

        return cls(
            root=root,
            chains_dir=root / os.getenv("TOKENKIT_CHAINS_DIR", "chains"),
            template_path=root / os.getenv("TOKENKIT_TEMPLATE", "base.tokenlist.json"),
            build_dir=root / os.getenv("TOKENKIT_BUILD_DIR", "build"),
            output_name=os.getenv("TOKENKIT_OUTPUT_NAME", "tokenlist.json"),
            raw_base_url=os.getenv("TOKENKIT_RAW_BASE_URL", DEFAULT_RAW_BASE_URL).rstrip("/"),
            ipfs_api_url=os.getenv("TOKENKIT_IPFS_API_URL") or None,
            ipfs_api_token=os.getenv("TOKENKIT_IPFS_API_TOKEN") or None,
            upload_timeout=upload_timeout,
        )
