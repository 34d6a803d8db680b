"""Option schemas for listing and usage runs."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .core.config import settings


class ListingOptions(BaseModel):
    """Options for listing the objects of one bucket."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    delimiter: str = Field(
        default_factory=lambda: settings.delimiter,
        min_length=1,
        description="Delimiter used to split the namespace into common prefixes",
    )
    page_size: int = Field(
        default_factory=lambda: settings.page_size,
        ge=1,
        le=1000,
        description="Keys requested per listing call",
    )
    max_concurrency: int = Field(
        default_factory=lambda: settings.max_concurrency,
        ge=1,
        description="Maximum number of concurrent listing requests",
    )
    max_attempts: int = Field(
        default_factory=lambda: settings.max_attempts,
        ge=1,
        description="Attempts per listing request before giving up",
    )
    backoff_factor: float = Field(
        default=1.0,
        ge=0,
        description="Base delay in seconds for exponential backoff between attempts",
    )


class UsageOptions(BaseModel):
    """Options for aggregating usage by storage class and folder."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    delimiter: str = Field(
        default_factory=lambda: settings.delimiter,
        min_length=1,
        description="Delimiter used to split keys into folders",
    )
    depth: int = Field(
        default_factory=lambda: settings.depth,
        ge=0,
        description="Folder depth to group totals by; 0 groups by bucket only",
    )
    output_factor: int = Field(
        default_factory=lambda: settings.output_factor,
        ge=1,
        description="Emit a running snapshot once every this many objects",
    )
    storage_classes: Optional[tuple[str, ...]] = Field(
        default=None,
        description="Storage classes to track; defaults to every known class",
    )
