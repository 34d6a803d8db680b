"""S3 Inventory ingestion."""

from .manifest import (
    InventoryFile,
    InventoryManifest,
    iter_inventory,
    iter_inventory_entries,
    read_manifest,
    row_to_entry,
)

__all__ = [
    "InventoryFile",
    "InventoryManifest",
    "iter_inventory",
    "iter_inventory_entries",
    "read_manifest",
    "row_to_entry",
]
