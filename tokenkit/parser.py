from .adapters.json_adapter import JsonAdapter
from .schema import CHAIN_FILE_PATTERN
from typing import List, Dict, Any, Union
from pathlib import Path
import logging

logger = logging.getLogger(__name__)


class TokenFileError(ValueError):
    """Raised when a chain file cannot be turned into token records."""


class ChainFileParser:
    """Parser for the per-chain token files (``chains/<chainId>.json``)."""

    def __init__(self):
        """Initialize the parser with the default JSON adapter."""
        self.adapters = [JsonAdapter()]

    def register_adapter(self, adapter):
        """Register a file adapter for parsing.

        Adapters registered later take precedence over earlier ones.

        Args:
            adapter: Adapter instance with can_handle() and read() methods
        """
        self.adapters.insert(0, adapter)

    def chain_id_for(self, file_path: Union[str, Path]) -> int:
        """Get the chain identifier encoded in a chain file name.

        Raises:
            TokenFileError: If the file name is not ``<digits>.json``
        """
        match = CHAIN_FILE_PATTERN.match(Path(file_path).name)
        if not match:
            raise TokenFileError(f"Invalid token filename - {file_path}")
        return int(match.group(1))

    def list_chain_files(self, chains_dir: Union[str, Path]) -> List[Path]:
        """List chain files sorted numerically by chain id.

        Args:
            chains_dir: Directory holding the chain files

        Returns:
            Paths of all ``*.json`` files, lowest chain id first

        Raises:
            TokenFileError: If any JSON file is not named after a chain id
        """
        files = list(Path(chains_dir).glob("*.json"))

        # Validate every name before sorting on it
        for f in files:
            self.chain_id_for(f)

        return sorted(files, key=self.chain_id_for)

    def parse_chain_file(self, file_path: Union[str, Path]) -> List[Dict[str, Any]]:
        """Parse one chain file into token records.

        The chain id of every token is taken from the file name, overriding
        any chainId present in the file.

        Args:
            file_path: Path to the chain file

        Returns:
            List of token dictionaries with ``chainId`` set

        Raises:
            TokenFileError: If the file cannot be read or parsed, is not a JSON
                array, or contains a token without an address
        """
        chain_id = self.chain_id_for(file_path)

        adapter = None
        for a in self.adapters:
            if a.can_handle(str(file_path)):
                adapter = a
                break

        if adapter is None:
            raise TokenFileError(f"No adapter found for {file_path}")

        try:
            parsed = adapter.read(str(file_path))
        except (OSError, ValueError) as e:
            raise TokenFileError(f"Invalid token file - {file_path}: {e}") from e

        if not isinstance(parsed, list):
            raise TokenFileError(f"Invalid token file - {file_path}: expected a JSON array")

        tokens = []
        for token in parsed:
            if not isinstance(token, dict) or "address" not in token:
                raise TokenFileError(
                    f"Invalid token in file, no address - {file_path} - {token}"
                )
            tokens.append({**token, "chainId": chain_id})

        return tokens

    def load_tokens(self, chains_dir: Union[str, Path]) -> List[Dict[str, Any]]:
        """Load all tokens from a chains directory, in chain id order.

        Args:
            chains_dir: Directory holding the chain files

        Returns:
            Concatenated token records from every chain file
        """
        tokens: List[Dict[str, Any]] = []
        files = self.list_chain_files(chains_dir)
        for f in files:
            tokens.extend(self.parse_chain_file(f))

        logger.info(f"Loaded {len(tokens)} tokens from {len(files)} chain files")
        return tokens
