"""S3 Inventory manifests and CSV data files.

S3 Inventory delivers a ``manifest.json`` describing the report plus gzipped
CSV data files whose columns are named by the manifest's ``fileSchema``.
Reading these is far cheaper than listing a bucket with millions of keys,
and the rows feed the same usage aggregator as a live listing.
"""

import csv
import gzip
import json
from pathlib import Path
from typing import IO, Iterable, Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from s3_object_streams.core import get_logger
from s3_object_streams.core.exceptions import MalformedEntryError, ValidationError
from s3_object_streams.models import Entry

logger = get_logger(__name__)

PathLike = Union[str, Path]

GZIP_MAGIC = b"\x1f\x8b"


class InventoryFile(BaseModel):
    """One data file listed in a manifest."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    key: str
    size: Optional[int] = None
    md5_checksum: Optional[str] = Field(None, alias="MD5checksum")


class InventoryManifest(BaseModel):
    """The parts of an S3 Inventory manifest needed to read its data files."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    source_bucket: Optional[str] = Field(None, alias="sourceBucket")
    destination_bucket: Optional[str] = Field(None, alias="destinationBucket")
    file_format: str = Field("CSV", alias="fileFormat")
    file_schema: str = Field(..., alias="fileSchema")
    files: list[InventoryFile] = Field(default_factory=list)

    @property
    def columns(self) -> list[str]:
        """Column names of the CSV data files, in order."""
        return [column.strip() for column in self.file_schema.split(",")]


def read_manifest(manifest_path: PathLike) -> InventoryManifest:
    """Load a manifest.json file.

    Raises:
        ValidationError: If the manifest cannot be read or is not a CSV inventory
    """
    logger.info("Reading inventory manifest", manifest_path=str(manifest_path))

    try:
        with open(manifest_path, encoding="utf-8") as f:
            manifest = InventoryManifest.model_validate(json.load(f))
    except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
        raise ValidationError(f"Failed to read inventory manifest '{manifest_path}': {e}")

    if manifest.file_format.upper() != "CSV":
        raise ValidationError(
            f"Unsupported inventory file format: {manifest.file_format}. "
            f"Only CSV is supported"
        )

    logger.info(
        "Inventory manifest read",
        source_bucket=manifest.source_bucket,
        file_count=len(manifest.files),
        columns=manifest.columns,
    )
    return manifest


def _open_text(data_path: PathLike) -> IO[str]:
    with open(data_path, "rb") as f:
        gzipped = f.read(2) == GZIP_MAGIC
    if gzipped:
        return gzip.open(data_path, "rt", encoding="utf-8", newline="")
    return open(data_path, encoding="utf-8", newline="")


def _is_true(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def row_to_entry(row: dict[str, Optional[str]]) -> Optional[Entry]:
    """Convert one inventory row, or return None for a row to skip.

    Delete markers and rows without a storage class do not occupy storage.

    Raises:
        MalformedEntryError: If bucket, key or size is missing or invalid
    """
    if _is_true(row.get("IsDeleteMarker")):
        return None
    storage_class = (row.get("StorageClass") or "").strip()
    if not storage_class:
        return None

    bucket = row.get("Bucket")
    key = row.get("Key")
    if not bucket or not key:
        raise MalformedEntryError(f"Inventory row has no bucket or key: {row!r}")

    try:
        size = int(row.get("Size") or "")
    except ValueError:
        raise MalformedEntryError(f"Inventory row has no valid size: {row!r}")

    return Entry(
        bucket=bucket,
        key=key,
        size=size,
        storage_class=storage_class,
        etag=row.get("ETag") or None,
    )


def iter_inventory_entries(data_path: PathLike, columns: list[str]) -> Iterator[Entry]:
    """Yield the objects of one inventory data file (gzipped or plain CSV).

    Raises:
        MalformedEntryError: If a row is malformed
        ValidationError: If the file cannot be read
    """
    logger.info("Reading inventory data file", data_path=str(data_path))

    row_count = 0
    skipped = 0
    try:
        with _open_text(data_path) as f:
            for row in csv.DictReader(f, fieldnames=columns):
                row_count += 1
                entry = row_to_entry(row)
                if entry is None:
                    skipped += 1
                    continue
                yield entry
    except (OSError, EOFError, csv.Error) as e:
        raise ValidationError(f"Failed to read inventory data file '{data_path}': {e}")

    logger.info(
        "Inventory data file read",
        data_path=str(data_path),
        row_count=row_count,
        skipped_count=skipped,
    )


def iter_inventory(
    manifest: InventoryManifest, data_paths: Iterable[PathLike]
) -> Iterator[Entry]:
    """Yield the objects of several data files belonging to one manifest."""
    for data_path in data_paths:
        yield from iter_inventory_entries(data_path, manifest.columns)
