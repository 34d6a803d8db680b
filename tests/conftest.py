"""Test configuration and fixtures for s3-object-streams."""

import threading
from typing import Optional

import pytest
from botocore.exceptions import ClientError

from s3_object_streams.schemas import ListingOptions


def client_error(code: str, operation: str = "ListObjectsV2") -> ClientError:
    """Build a botocore ClientError with the given error code."""
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeS3Client:
    """In-memory stand-in for the listing calls of a boto3 S3 client.

    Honours Prefix, Delimiter, MaxKeys, ContinuationToken and Marker the way
    S3 does: keys and common prefixes are returned in key order, and each
    common prefix is returned only once across the pages of a listing.
    """

    def __init__(self, buckets: dict[str, dict[str, tuple[int, str]]]):
        self.buckets = buckets
        self.calls: list[dict] = []
        # prefix -> number of failures still to raise; None fails forever
        self.failures: dict[str, Optional[int]] = {}
        self.failure_code = "InternalError"
        self._lock = threading.Lock()

    def fail(self, prefix: str, times: Optional[int] = None, code: str = "InternalError"):
        self.failures[prefix] = times
        self.failure_code = code

    def _record(self, operation: str, params: dict) -> None:
        with self._lock:
            self.calls.append({"operation": operation, **params})
            prefix = params.get("Prefix", "")
            if prefix in self.failures:
                remaining = self.failures[prefix]
                if remaining is None:
                    raise client_error(self.failure_code, operation)
                if remaining > 0:
                    self.failures[prefix] = remaining - 1
                    raise client_error(self.failure_code, operation)

        if params["Bucket"] not in self.buckets:
            raise client_error("NoSuchBucket", operation)

    def _items(self, bucket: str, prefix: str, delimiter: Optional[str]):
        items = []
        seen_prefixes = set()
        for key in sorted(self.buckets[bucket]):
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            if delimiter and delimiter in rest:
                common_prefix = prefix + rest.split(delimiter)[0] + delimiter
                if common_prefix not in seen_prefixes:
                    seen_prefixes.add(common_prefix)
                    items.append(("prefix", common_prefix))
            else:
                items.append(("key", key))
        return items

    def _response(self, bucket: str, page: list, truncated: bool) -> dict:
        contents = []
        common_prefixes = []
        for kind, value in page:
            if kind == "key":
                size, storage_class = self.buckets[bucket][value]
                contents.append(
                    {"Key": value, "Size": size, "StorageClass": storage_class}
                )
            else:
                common_prefixes.append({"Prefix": value})

        response = {"IsTruncated": truncated}
        if contents:
            response["Contents"] = contents
        if common_prefixes:
            response["CommonPrefixes"] = common_prefixes
        return response

    def list_objects_v2(
        self,
        Bucket: str,
        Prefix: str = "",
        Delimiter: Optional[str] = None,
        MaxKeys: int = 1000,
        ContinuationToken: Optional[str] = None,
    ) -> dict:
        self._record(
            "list_objects_v2",
            {
                "Bucket": Bucket,
                "Prefix": Prefix,
                "Delimiter": Delimiter,
                "ContinuationToken": ContinuationToken,
            },
        )
        items = self._items(Bucket, Prefix, Delimiter)
        start = int(ContinuationToken) if ContinuationToken else 0
        page = items[start:start + MaxKeys]
        truncated = start + MaxKeys < len(items)

        response = self._response(Bucket, page, truncated)
        if truncated:
            response["NextContinuationToken"] = str(start + MaxKeys)
        return response

    def list_objects(
        self,
        Bucket: str,
        Prefix: str = "",
        Delimiter: Optional[str] = None,
        MaxKeys: int = 1000,
        Marker: Optional[str] = None,
    ) -> dict:
        self._record(
            "list_objects",
            {"Bucket": Bucket, "Prefix": Prefix, "Delimiter": Delimiter, "Marker": Marker},
        )
        items = [
            item
            for item in self._items(Bucket, Prefix, Delimiter)
            if not Marker or item[1] > Marker
        ]
        page = items[:MaxKeys]
        truncated = len(items) > MaxKeys

        response = self._response(Bucket, page, truncated)
        if truncated and Delimiter:
            response["NextMarker"] = page[-1][1]
        return response

    def listed_prefixes(self) -> list[str]:
        """Prefixes whose first page was requested, in request order."""
        return [
            call["Prefix"]
            for call in self.calls
            if not call.get("ContinuationToken") and not call.get("Marker")
        ]


@pytest.fixture
def tree_bucket():
    """A bucket with four top-level folders and some nested keys."""
    return {
        "test-bucket": {
            "root.txt": (1, "STANDARD"),
            "a/1.txt": (10, "STANDARD"),
            "a/2.txt": (20, "STANDARD_IA"),
            "a/x/3.txt": (30, "GLACIER"),
            "b/1.txt": (40, "STANDARD"),
            "c/1.txt": (50, "REDUCED_REDUNDANCY"),
            "c/y/z/2.txt": (60, "STANDARD"),
            "d/1.txt": (70, "STANDARD"),
            "d/2.txt": (80, "STANDARD"),
            "d/3.txt": (90, "STANDARD"),
        }
    }


@pytest.fixture
def fake_client(tree_bucket):
    """Fake S3 client over the tree bucket."""
    return FakeS3Client(tree_bucket)


@pytest.fixture
def fast_options():
    """Listing options with no delay between retries."""
    return ListingOptions(max_concurrency=10, page_size=2, backoff_factor=0)
