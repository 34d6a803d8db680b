"""Command-line interface for s3-object-streams.

Commands:
    - list: Stream every object key under an S3 path
    - usage: Running usage totals by storage class for an S3 path
    - inventory-usage: Usage totals from S3 Inventory data files

Objects and snapshots are written to stdout as JSON lines; logs go to stderr.
"""

import json
from typing import Annotated, Optional

import typer

from . import __version__
from .core.config import settings
from .objectstorage.analysis.usage import Snapshot
from .objectstorage.clients import S3ClientConfig
from .pipeline import inventory_usage, list_objects, stream_usage
from .schemas import ListingOptions, UsageOptions

app = typer.Typer(
    name="s3-object-streams",
    help="Stream listings and usage totals of very large S3 buckets.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Display version information."""
    if value:
        typer.echo(f"s3-object-streams {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, help="Show version."),
    ] = None,
) -> None:
    """
    S3 Object Streams: concurrent listing and usage totals for S3 buckets.
    """
    pass


# S3 options
AccessKeyIdOption = Annotated[
    Optional[str], typer.Option("--access-key-id", help="AWS access key ID")
]
SecretAccessKeyOption = Annotated[
    Optional[str], typer.Option("--secret-access-key", help="AWS secret access key")
]
SessionTokenOption = Annotated[
    Optional[str], typer.Option("--session-token", help="AWS session token")
]
RegionOption = Annotated[str, typer.Option("--region", help="AWS region name")]
EndpointUrlOption = Annotated[
    Optional[str], typer.Option("--endpoint-url", help="Custom S3 endpoint URL")
]
AwsProfileOption = Annotated[
    Optional[str], typer.Option("--aws-profile", help="AWS CLI profile name")
]

# Listing options
SequentialOption = Annotated[
    bool,
    typer.Option(
        "--sequential", help="List through a single cursor instead of concurrently"
    ),
]
MaxConcurrencyOption = Annotated[
    int,
    typer.Option("--max-concurrency", help="Maximum concurrent listing requests"),
]
PageSizeOption = Annotated[
    int, typer.Option("--page-size", help="Keys requested per listing call")
]
DelimiterOption = Annotated[
    str, typer.Option("--delimiter", help="Delimiter splitting keys into folders")
]

# Usage options
DepthOption = Annotated[
    int, typer.Option("--depth", help="Folder depth to group totals by")
]
OutputFactorOption = Annotated[
    int,
    typer.Option("--output-factor", help="Emit a running total every N objects"),
]
ProgressOption = Annotated[
    bool,
    typer.Option("--progress", help="Print running totals, not just the final one"),
]


def _create_client_config(
    access_key_id: Optional[str] = None,
    secret_access_key: Optional[str] = None,
    session_token: Optional[str] = None,
    region_name: str = "us-east-1",
    endpoint_url: Optional[str] = None,
    aws_profile: Optional[str] = None,
) -> S3ClientConfig:
    """Create the S3 client configuration from CLI options."""
    return S3ClientConfig(
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        session_token=session_token,
        region_name=region_name,
        endpoint_url=endpoint_url,
        aws_profile=aws_profile,
    )


def _echo_snapshot(snapshot: Snapshot, indent: Optional[int] = None) -> None:
    typer.echo(json.dumps([node.to_dict() for node in snapshot], indent=indent))


@app.command("list")
def list_cmd(
    s3_path: Annotated[str, typer.Argument(help="S3 path, s3://bucket/prefix")],
    sequential: SequentialOption = False,
    max_concurrency: MaxConcurrencyOption = settings.max_concurrency,
    page_size: PageSizeOption = settings.page_size,
    delimiter: DelimiterOption = settings.delimiter,
    access_key_id: AccessKeyIdOption = None,
    secret_access_key: SecretAccessKeyOption = None,
    session_token: SessionTokenOption = None,
    region_name: RegionOption = "us-east-1",
    endpoint_url: EndpointUrlOption = None,
    aws_profile: AwsProfileOption = None,
    details: Annotated[
        bool,
        typer.Option("--details", help="Print each object as JSON, not just its key"),
    ] = False,
) -> None:
    """
    List every object under an S3 path.

    Examples:
        s3-object-streams list s3://bucket/prefix --aws-profile myprofile
        s3-object-streams list s3://bucket --sequential --details
    """
    try:
        client_config = _create_client_config(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=session_token,
            region_name=region_name,
            endpoint_url=endpoint_url,
            aws_profile=aws_profile,
        )
        options = ListingOptions(
            delimiter=delimiter, page_size=page_size, max_concurrency=max_concurrency
        )

        count = 0
        for entry in list_objects(
            s3_path, client_config=client_config, options=options, sequential=sequential
        ):
            count += 1
            if details:
                typer.echo(json.dumps(entry.to_dict()))
            else:
                typer.echo(entry.path(delimiter))

        typer.echo(f"Listed {count:,} objects", err=True)

    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command("usage")
def usage_cmd(
    s3_path: Annotated[str, typer.Argument(help="S3 path, s3://bucket/prefix")],
    depth: DepthOption = settings.depth,
    output_factor: OutputFactorOption = settings.output_factor,
    progress: ProgressOption = False,
    sequential: SequentialOption = False,
    max_concurrency: MaxConcurrencyOption = settings.max_concurrency,
    page_size: PageSizeOption = settings.page_size,
    delimiter: DelimiterOption = settings.delimiter,
    access_key_id: AccessKeyIdOption = None,
    secret_access_key: SecretAccessKeyOption = None,
    session_token: SessionTokenOption = None,
    region_name: RegionOption = "us-east-1",
    endpoint_url: EndpointUrlOption = None,
    aws_profile: AwsProfileOption = None,
) -> None:
    """
    Calculate usage by storage class for an S3 path, grouped by folder.

    Examples:
        s3-object-streams usage s3://bucket --depth 1 --aws-profile myprofile
        s3-object-streams usage s3://bucket/prefix --depth 2 --progress
    """
    try:
        client_config = _create_client_config(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=session_token,
            region_name=region_name,
            endpoint_url=endpoint_url,
            aws_profile=aws_profile,
        )
        listing_options = ListingOptions(
            delimiter=delimiter, page_size=page_size, max_concurrency=max_concurrency
        )
        usage_options = UsageOptions(
            delimiter=delimiter, depth=depth, output_factor=output_factor
        )

        final: Snapshot = []
        for final in stream_usage(
            s3_path,
            client_config=client_config,
            listing_options=listing_options,
            usage_options=usage_options,
            sequential=sequential,
        ):
            if progress:
                _echo_snapshot(final)

        if not progress:
            _echo_snapshot(final, indent=2)

    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command("inventory-usage")
def inventory_usage_cmd(
    manifest: Annotated[str, typer.Argument(help="Path to the inventory manifest.json")],
    data_files: Annotated[
        list[str], typer.Argument(help="Inventory data files (.csv.gz or .csv)")
    ],
    depth: DepthOption = settings.depth,
    output_factor: OutputFactorOption = settings.output_factor,
    progress: ProgressOption = False,
    delimiter: DelimiterOption = settings.delimiter,
) -> None:
    """
    Calculate usage by storage class from downloaded S3 Inventory files.

    Examples:
        s3-object-streams inventory-usage manifest.json data/*.csv.gz --depth 1
    """
    try:
        usage_options = UsageOptions(
            delimiter=delimiter, depth=depth, output_factor=output_factor
        )

        final: Snapshot = []
        for final in inventory_usage(manifest, data_files, usage_options):
            if progress:
                _echo_snapshot(final)

        if not progress:
            _echo_snapshot(final, indent=2)

    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
