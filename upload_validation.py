#!/usr/bin/env python3

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class UploadFormatError(ValueError):
    """Raised when an uploaded file is not valid JSON."""


@dataclass(frozen=True)
class CollectionSpec:
    value: str
    label: str
    required_keys: tuple


COLLECTIONS = {
    'negocios': CollectionSpec('negocios', 'Businesses', ('business_id', 'name', 'state')),
    'resenas': CollectionSpec('resenas', 'Reviews', ('review_id', 'user_id', 'business_id', 'stars')),
    'usuario': CollectionSpec('usuario', 'Users', ('user_id', 'name')),
    'tips': CollectionSpec('tips', 'Tips', ('user_id', 'business_id', 'text', 'date')),
    'checkin': CollectionSpec('checkin', 'Check-ins', ('business_id', 'date')),
}


@dataclass(frozen=True)
class UploadValidationResult:
    is_valid: bool
    message: str = ""
    missing_key: Optional[str] = None


class UploadValidator:
    """Structural checks for bulk JSON uploads before they reach the storage service."""

    def __init__(self, collections: Optional[Dict[str, CollectionSpec]] = None):
        self.collections = collections or COLLECTIONS

    def parse_upload(self, raw: bytes) -> Any:
        """Decode an uploaded file's bytes as JSON."""
        try:
            return json.loads(raw)
        except (UnicodeDecodeError, ValueError) as e:
            raise UploadFormatError(f"Invalid JSON file: {e}") from e

    def validate(self, records: Any, collection: str) -> UploadValidationResult:
        """
        Check that records is a non-empty array whose first object has the
        collection's required keys.

        Args:
            records: Decoded JSON payload
            collection: Target collection identifier

        Returns:
            UploadValidationResult describing the first problem found, if any
        """
        spec = self.collections.get(collection)
        if spec is None:
            return UploadValidationResult(False, f"Unknown collection '{collection}'")

        if not isinstance(records, list) or not records:
            return UploadValidationResult(False, "The JSON must be a non-empty array of objects")

        first = records[0]
        if not isinstance(first, dict):
            return UploadValidationResult(False, "The JSON must be a non-empty array of objects")

        for key in spec.required_keys:
            if key not in first:
                logger.warning(f"Upload for {collection} is missing required key '{key}'")
                return UploadValidationResult(
                    False,
                    f"Validation failed: the first object in the JSON is missing the required key '{key}'",
                    missing_key=key
                )

        logger.info(f"Validated {len(records):,} {spec.label.lower()} records")
        return UploadValidationResult(True, f"{len(records):,} records ready to upload")

    def validate_file(self, path: str, collection: str) -> UploadValidationResult:
        """Validate a JSON file on disk; format errors become an invalid result."""
        try:
            records = self.parse_upload(Path(path).read_bytes())
        except UploadFormatError as e:
            return UploadValidationResult(False, str(e))
        return self.validate(records, collection)

    def collection_label(self, collection: str) -> str:
        spec = self.collections.get(collection)
        return spec.label if spec else "the selected collection"


def success_message(upserted: int, modified: int) -> str:
    """User-facing summary of a completed upload."""
    if upserted > 0 and modified > 0:
        return f"Upload complete! Added {upserted} new records and updated {modified} existing ones."
    if upserted > 0:
        return f"Upload complete! Added {upserted} new records."
    if modified > 0:
        return f"Upload complete! Updated {modified} existing records."
    return "Done. The file contained no new or changed records."


def error_message(error: Exception, collection: str, validator: Optional[UploadValidator] = None) -> str:
    """Translate an upload failure into a message the user can act on."""
    validator = validator or UploadValidator()
    text = str(error).lower()
    label = validator.collection_label(collection)

    if "validation failed" in text:
        parts = str(error).split("'")
        missing_key = parts[1] if len(parts) > 1 else "a required column"
        return (f'Content error: the file does not have the right format for "{label}". '
                f'Make sure it contains the column "{missing_key}".')

    if isinstance(error, UploadFormatError) or "json" in text:
        return "Format error: the selected file is not valid JSON. Check its structure and try again."

    if "network" in text or "connection" in text or "failed to fetch" in text:
        return "Connection error: could not reach the server. Check your connection."

    return "An unexpected error occurred. Check the file and try again."


def upload_payload_summary(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Basic stats about an upload, logged before forwarding."""
    keys = set()
    for record in records:
        if isinstance(record, dict):
            keys.update(record.keys())
    return {'record_count': len(records), 'distinct_keys': sorted(keys)}
