import json
import chardet
from pathlib import Path
from typing import Any


class JsonAdapter:
    """JSON adapter for reading chain files reliably.

    Handles:
    - Multiple encodings (UTF-8, UTF-8-BOM, UTF-16, Windows-1252, etc.)
    - Edge cases (empty files, malformed JSON)
    """

    def can_handle(self, file_path: str) -> bool:
        """Check if this adapter can handle the given file."""
        return Path(file_path).suffix.lower() == ".json"

    def _detect_encoding(self, raw_data: bytes) -> str:
        """Detect file encoding using chardet with fallback."""
        # Check for BOMs first
        if raw_data.startswith(b'\xef\xbb\xbf'):
            return 'utf-8-sig'
        if raw_data.startswith((b'\xff\xfe', b'\xfe\xff')):
            return 'utf-16'

        result = chardet.detect(raw_data[:10000])
        encoding = result.get('encoding') or 'utf-8'

        # ASCII is a subset of UTF-8, and chardet reports it for most chain files
        encoding_lower = encoding.lower()
        if 'utf-8' in encoding_lower or 'utf8' in encoding_lower or encoding_lower == 'ascii':
            return 'utf-8'

        return encoding

    def read(self, file_path: str) -> Any:
        """Read a JSON file and return the parsed document.

        Args:
            file_path: Path to the JSON file

        Returns:
            The parsed JSON value (a list of token objects for chain files)

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file is empty, cannot be decoded or is not valid JSON
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        raw_data = path.read_bytes()
        if not raw_data.strip():
            raise ValueError(f"File is empty: {file_path}")

        encoding = self._detect_encoding(raw_data)
        try:
            text = raw_data.decode(encoding)
        except (UnicodeDecodeError, LookupError) as e:
            raise ValueError(f"Could not decode file {file_path}: {e}") from e

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Error parsing JSON file {file_path}: {e}") from e
