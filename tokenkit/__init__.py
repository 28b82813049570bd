from .parser import ChainFileParser, TokenFileError
from .diff.change_events import determine_version_increment, classify_changes, VersionBump
from .versioning import Version
from .schema import TOKEN_LIST_SCHEMA, validate_token_list

__version__ = "0.1.0"

__all__ = ["ChainFileParser", "TokenFileError", "determine_version_increment", "classify_changes", "VersionBump", "Version", "TOKEN_LIST_SCHEMA", "validate_token_list"]
