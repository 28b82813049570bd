"""Token list schema definitions and validation of the built artifact."""

from typing import Any, Dict, List
import re

from jsonschema import Draft7Validator, FormatChecker

# Chain files are named after their chain identifier
CHAIN_FILE_PATTERN = re.compile(r"^(\d+)\.json$")

# Token fields in the order they are written
TOKEN_FIELDS = [
    "chainId",
    "address",
    "name",
    "symbol",
    "decimals",
    "logoURI",
]

# Version object of the token list template
VERSION_FIELDS = ["major", "minor", "patch"]

_VERSION_SCHEMA = {
    "type": "object",
    "properties": {
        name: {"type": "integer", "minimum": 0}
        for name in VERSION_FIELDS
    },
    "required": VERSION_FIELDS,
    "additionalProperties": False,
}

_TOKEN_SCHEMA = {
    "type": "object",
    "properties": {
        "chainId": {"type": "integer", "minimum": 1, "maximum": 9007199254740991},
        "address": {"type": "string", "pattern": "^0x[a-fA-F0-9]{40}$"},
        "decimals": {"type": "integer", "minimum": 0, "maximum": 255},
        "name": {"type": "string", "minLength": 1, "maxLength": 60},
        "symbol": {"type": "string", "minLength": 1, "maxLength": 20, "pattern": "^\\S+$"},
        "logoURI": {"type": "string", "format": "uri"},
        "tags": {
            "type": "array",
            "items": {"type": "string", "minLength": 1, "maxLength": 10},
            "maxItems": 10,
        },
        "extensions": {"type": "object"},
    },
    "required": ["chainId", "address", "decimals", "name", "symbol"],
    "additionalProperties": False,
}

# JSON schema for the published token list
TOKEN_LIST_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Token list",
    "type": "object",
    "properties": {
        "name": {"type": "string", "minLength": 1, "maxLength": 30},
        "timestamp": {"type": "string", "format": "date-time"},
        "version": _VERSION_SCHEMA,
        "tokens": {
            "type": "array",
            "items": _TOKEN_SCHEMA,
            "minItems": 1,
            "maxItems": 10000,
        },
        "keywords": {
            "type": "array",
            "items": {"type": "string", "minLength": 1, "maxLength": 20},
            "maxItems": 20,
            "uniqueItems": True,
        },
        "tags": {"type": "object"},
        "logoURI": {"type": "string", "format": "uri"},
    },
    "required": ["name", "timestamp", "version", "tokens"],
    "additionalProperties": False,
}

_validator = Draft7Validator(TOKEN_LIST_SCHEMA, format_checker=FormatChecker())


class TokenListValidationError(ValueError):
    """Raised when a merged token list does not satisfy the schema."""

    def __init__(self, errors: List[Dict[str, Any]]):
        self.errors = errors
        super().__init__(f"Invalid token list, {len(errors)} error(s)")


def validate_token_list(data: Any) -> List[Dict[str, Any]]:
    """Validate a token list against TOKEN_LIST_SCHEMA.

    Args:
        data: The merged token list document

    Returns:
        List of errors (empty when valid), each with the JSON path of the
        offending value, the message and the failing schema keyword
    """
    errors = []
    for error in sorted(_validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path]):
        errors.append({
            "path": "/" + "/".join(str(p) for p in error.absolute_path),
            "message": error.message,
            "validator": error.validator,
        })
    return errors


def assert_valid_token_list(data: Any) -> None:
    """Raise TokenListValidationError if the token list is invalid."""
    errors = validate_token_list(data)
    if errors:
        raise TokenListValidationError(errors)
