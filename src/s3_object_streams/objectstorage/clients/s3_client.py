"""The boto3 S3 client shared by the listing workers of a run.

boto3 clients are thread-safe, so one client is created per manager and used
read-only by every worker. Its HTTP connection pool is sized to the listing
concurrency; smaller pools make workers queue for connections and log
"Connection pool is full" warnings.

Credentials come, in order of preference, from an AWS CLI profile, from
explicit keys (with an optional session token), or from the default
credential chain. ``endpoint_url`` points the client at an S3-compatible
service such as MinIO.
"""

from typing import Any, Optional
from urllib.parse import urlparse

import boto3
from botocore.config import Config
from pydantic import BaseModel, ConfigDict, Field

from s3_object_streams.core import get_logger
from s3_object_streams.core.exceptions import ValidationError

logger = get_logger(__name__)

# botocore's own default pool size
DEFAULT_MAX_POOL_CONNECTIONS = 10


class S3ClientConfig(BaseModel):
    """Credentials and endpoint for the S3 client.

    Example:
        config = S3ClientConfig(aws_profile="my-profile")
        config = S3ClientConfig(
            endpoint_url="http://localhost:9000",
            access_key_id="minioadmin",
            secret_access_key="minioadmin",
        )
    """

    model_config = ConfigDict(extra="forbid")

    access_key_id: Optional[str] = Field(None, description="AWS access key ID")
    secret_access_key: Optional[str] = Field(None, description="AWS secret access key")
    session_token: Optional[str] = Field(
        None, description="AWS session token for temporary credentials"
    )
    region_name: str = Field("us-east-1", description="AWS region name")
    endpoint_url: Optional[str] = Field(
        None, description="Custom S3 endpoint URL for S3-compatible services"
    )
    aws_profile: Optional[str] = Field(
        None, description="AWS CLI profile name to use for credentials"
    )

    @property
    def credential_source(self) -> str:
        if self.aws_profile:
            return "profile"
        if self.access_key_id and self.secret_access_key:
            return "explicit"
        return "default"


def parse_s3_path(s3_path: str) -> tuple[str, str]:
    """Split ``s3://bucket/prefix`` into bucket and prefix.

    The prefix is empty for ``s3://bucket``.

    Raises:
        ValidationError: If the path is not an s3:// URL with a bucket
    """
    if not s3_path.startswith("s3://"):
        raise ValidationError(f"S3 path must start with 's3://': {s3_path}")

    try:
        parsed = urlparse(s3_path)
    except ValueError as e:
        raise ValidationError(f"Failed to parse S3 path '{s3_path}': {e}")

    if not parsed.netloc:
        raise ValidationError(f"Invalid S3 path, missing bucket: {s3_path}")

    return parsed.netloc, parsed.path.lstrip("/")


class S3ClientManager:
    """Creates the shared client on first use."""

    def __init__(
        self,
        config: S3ClientConfig,
        max_pool_connections: int = DEFAULT_MAX_POOL_CONNECTIONS,
    ):
        """Initialize the manager.

        Args:
            config: Credentials and endpoint
            max_pool_connections: Number of concurrent listing workers; the
                pool is never smaller than botocore's default
        """
        self.config = config
        self.max_pool_connections = max(
            max_pool_connections, DEFAULT_MAX_POOL_CONNECTIONS
        )
        self._client = None

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _session(self) -> boto3.Session:
        if self.config.credential_source == "profile":
            return boto3.Session(profile_name=self.config.aws_profile)
        if self.config.credential_source == "explicit":
            return boto3.Session(
                aws_access_key_id=self.config.access_key_id,
                aws_secret_access_key=self.config.secret_access_key,
                aws_session_token=self.config.session_token,
            )
        return boto3.Session()

    def _create_client(self) -> Any:
        client = self._session().client(
            "s3",
            region_name=self.config.region_name,
            endpoint_url=self.config.endpoint_url,
            # Retries are handled by the page listers
            config=Config(
                max_pool_connections=self.max_pool_connections,
                retries={"max_attempts": 1, "mode": "standard"},
            ),
        )
        logger.info(
            "S3 client created",
            credentials=self.config.credential_source,
            region=self.config.region_name,
            endpoint_url=self.config.endpoint_url,
            max_pool_connections=self.max_pool_connections,
        )
        return client
