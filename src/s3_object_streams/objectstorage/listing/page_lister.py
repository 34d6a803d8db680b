"""Single-page S3 listing requests with bounded retries.

S3 listing calls have a small but significant error rate, so every page
request is retried with exponential backoff before the failure is surfaced
as a ListingError. A page either arrives whole or not at all; a failed
attempt never contributes objects to the result.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Protocol

import backoff
from botocore.exceptions import BotoCoreError, ClientError

from s3_object_streams.core import get_logger
from s3_object_streams.core.config import settings
from s3_object_streams.core.exceptions import ListingError
from s3_object_streams.models import ListingPage

logger = get_logger(__name__)

# Error codes that will not go away by asking again
NON_RETRYABLE_ERROR_CODES = frozenset(
    {"NoSuchBucket", "AccessDenied", "InvalidAccessKeyId", "AllAccessDisabled"}
)


def is_non_retryable(error: Exception) -> bool:
    """Whether a failed listing request should be given up immediately."""
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code")
        return code in NON_RETRYABLE_ERROR_CODES
    return False


class PageLister(Protocol):
    """Protocol for listing one page of keys under a prefix."""

    def list_page(
        self,
        bucket: str,
        prefix: str,
        token: Optional[str] = None,
        page_size: int = 1000,
    ) -> ListingPage:
        """List one page, resuming at ``token`` if given."""
        ...


class RetryingPageLister(ABC):
    """Base class for page listers that retry failed requests with backoff."""

    def __init__(
        self,
        client: Any,
        delimiter: Optional[str] = "/",
        max_attempts: Optional[int] = None,
        backoff_factor: float = 1.0,
    ):
        """Initialize the page lister.

        Args:
            client: boto3 S3 client, shared read-only
            delimiter: Delimiter for grouping keys into common prefixes, or
                None for a flat listing
            max_attempts: Attempts per page before giving up
            backoff_factor: Base delay in seconds between attempts
        """
        self.client = client
        self.delimiter = delimiter
        self.max_attempts = max_attempts or settings.max_attempts
        self._request_with_retry = backoff.on_exception(
            backoff.expo,
            (ClientError, BotoCoreError),
            max_tries=self.max_attempts,
            factor=backoff_factor,
            jitter=backoff.full_jitter,
            giveup=is_non_retryable,
            on_backoff=self._log_backoff,
            on_giveup=self._log_giveup,
        )(self._request)

    def list_page(
        self,
        bucket: str,
        prefix: str,
        token: Optional[str] = None,
        page_size: int = 1000,
    ) -> ListingPage:
        """List one page of objects and common prefixes.

        Args:
            bucket: Bucket to list
            prefix: Only keys starting with this prefix are listed
            token: Cursor returned with the previous page, if any
            page_size: Maximum number of keys and prefixes in the page

        Returns:
            The page, with a cursor only if S3 reports more data

        Raises:
            ListingError: If every attempt failed
        """
        try:
            response = self._request_with_retry(bucket, prefix, token, page_size)
        except (ClientError, BotoCoreError) as e:
            error_msg = f"Failed to list objects in s3://{bucket}/{prefix}: {e}"
            logger.error(error_msg, bucket=bucket, prefix=prefix, error=str(e))
            raise ListingError(error_msg, bucket=bucket, prefix=prefix) from e

        page = self._to_page(response, bucket, prefix)
        logger.debug(
            "Listed page",
            bucket=bucket,
            prefix=prefix,
            object_count=len(page.objects),
            prefix_count=len(page.common_prefixes),
            truncated=page.is_truncated,
        )
        return page

    @abstractmethod
    def _request(
        self, bucket: str, prefix: str, token: Optional[str], page_size: int
    ) -> dict[str, Any]:
        """Issue one listing request."""
        pass

    @abstractmethod
    def _next_token(self, response: dict[str, Any]) -> Optional[str]:
        """Extract the cursor for the next page from a truncated response."""
        pass

    def _to_page(self, response: dict[str, Any], bucket: str, prefix: str) -> ListingPage:
        next_token = None
        if response.get("IsTruncated"):
            next_token = self._next_token(response)
            if not next_token:
                raise ListingError(
                    f"Truncated listing of s3://{bucket}/{prefix} has no cursor",
                    bucket=bucket,
                    prefix=prefix,
                )

        return ListingPage(
            next_token=next_token,
            objects=tuple(response.get("Contents", [])),
            common_prefixes=tuple(
                item["Prefix"] for item in response.get("CommonPrefixes", [])
            ),
        )

    def _base_params(
        self, bucket: str, prefix: str, page_size: int
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "Bucket": bucket,
            "Prefix": prefix,
            "MaxKeys": page_size,
        }
        if self.delimiter:
            params["Delimiter"] = self.delimiter
        return params

    @staticmethod
    def _log_backoff(details: dict[str, Any]) -> None:
        logger.warning(
            "Retrying listing request",
            bucket=details["args"][0],
            prefix=details["args"][1],
            tries=details["tries"],
            wait=round(details["wait"], 3),
        )

    @staticmethod
    def _log_giveup(details: dict[str, Any]) -> None:
        logger.error(
            "Giving up on listing request",
            bucket=details["args"][0],
            prefix=details["args"][1],
            tries=details["tries"],
        )


class S3PageLister(RetryingPageLister):
    """Lists pages with ListObjectsV2, resuming by continuation token."""

    def _request(
        self, bucket: str, prefix: str, token: Optional[str], page_size: int
    ) -> dict[str, Any]:
        params = self._base_params(bucket, prefix, page_size)
        if token:
            params["ContinuationToken"] = token
        return self.client.list_objects_v2(**params)

    def _next_token(self, response: dict[str, Any]) -> Optional[str]:
        return response.get("NextContinuationToken")


class S3MarkerPageLister(RetryingPageLister):
    """Lists pages with ListObjects (v1), resuming by key marker.

    S3 only returns NextMarker when a delimiter is given; otherwise the last
    key of the page is the marker.
    """

    def __init__(
        self,
        client: Any,
        delimiter: Optional[str] = None,
        max_attempts: Optional[int] = None,
        backoff_factor: float = 1.0,
    ):
        super().__init__(
            client,
            delimiter=delimiter,
            max_attempts=max_attempts,
            backoff_factor=backoff_factor,
        )

    def _request(
        self, bucket: str, prefix: str, token: Optional[str], page_size: int
    ) -> dict[str, Any]:
        params = self._base_params(bucket, prefix, page_size)
        if token:
            params["Marker"] = token
        return self.client.list_objects(**params)

    def _next_token(self, response: dict[str, Any]) -> Optional[str]:
        if response.get("NextMarker"):
            return response["NextMarker"]

        contents = response.get("Contents", [])
        common_prefixes = response.get("CommonPrefixes", [])
        candidates = []
        if contents:
            candidates.append(contents[-1]["Key"])
        if common_prefixes:
            candidates.append(common_prefixes[-1]["Prefix"])
        return max(candidates) if candidates else None
