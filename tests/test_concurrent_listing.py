"""Tests for concurrent listing by recursive descent."""

import threading

import pytest

from conftest import FakeS3Client
from s3_object_streams.core.exceptions import ListingError
from s3_object_streams.objectstorage.listing import (
    ConcurrentObjectLister,
    S3MarkerPageLister,
    S3PageLister,
    SequentialObjectLister,
)
from s3_object_streams.schemas import ListingOptions


def make_lister(client, options):
    return ConcurrentObjectLister(S3PageLister(client, backoff_factor=0), options)


def collect(lister, bucket="test-bucket", prefix=""):
    entries = []
    lock = threading.Lock()

    def sink(entry):
        with lock:
            entries.append(entry)

    lister.process_namespace(bucket, prefix, sink)
    return entries


class TestConcurrentObjectLister:
    """Test fan-out, ordering and failure semantics."""

    def test_one_task_per_sub_prefix(self, fake_client):
        """Each discovered sub-prefix is listed by exactly one task."""
        options = ListingOptions(max_concurrency=10, page_size=1000, backoff_factor=0)

        collect(make_lister(fake_client, options))

        listed = fake_client.listed_prefixes()
        assert sorted(listed) == ["", "a/", "a/x/", "b/", "c/", "c/y/", "c/y/z/", "d/"]
        assert len(listed) == len(set(listed))

    def test_fan_out_matches_sequential_listing(self, fake_client, tree_bucket):
        """The union of all tasks equals a sequential listing of the bucket."""
        concurrent = collect(
            make_lister(fake_client, ListingOptions(max_concurrency=10, backoff_factor=0))
        )
        sequential = list(
            SequentialObjectLister(
                S3MarkerPageLister(FakeS3Client(tree_bucket), backoff_factor=0)
            ).iter_objects("test-bucket")
        )

        assert sorted(entry.key for entry in concurrent) == sorted(
            entry.key for entry in sequential
        )
        assert len(concurrent) == len(tree_bucket["test-bucket"])

    def test_pages_continue_within_prefix(self, fake_client, fast_options):
        """Small pages still list every key, resuming with a token."""
        entries = collect(make_lister(fake_client, fast_options))

        assert len(entries) == 10
        tokens = [
            call["ContinuationToken"]
            for call in fake_client.calls
            if call["Prefix"] == "d/"
        ]
        assert tokens == [None, "2"]

    def test_page_order_within_prefix_is_preserved(self):
        """Objects of one prefix arrive in page order."""
        keys = {f"flat/{index:03d}": (1, "STANDARD") for index in range(25)}
        client = FakeS3Client({"bucket": keys})
        lister = make_lister(client, ListingOptions(page_size=3, backoff_factor=0))

        entries = collect(lister, bucket="bucket")

        assert [entry.key for entry in entries] == sorted(keys)

    def test_flat_namespace_lists_in_a_single_chain(self):
        """With no common prefixes no fan-out happens."""
        keys = {f"{index:02d}.bin": (index, "STANDARD") for index in range(7)}
        client = FakeS3Client({"bucket": keys})
        lister = make_lister(client, ListingOptions(page_size=2, backoff_factor=0))

        entries = collect(lister, bucket="bucket")

        assert len(entries) == 7
        assert set(client.listed_prefixes()) == {""}

    def test_entries_carry_bucket_and_object_fields(self, fake_client):
        """The bucket identity is attached to every object."""
        entries = collect(make_lister(fake_client, ListingOptions(backoff_factor=0)))
        by_key = {entry.key: entry for entry in entries}

        assert all(entry.bucket == "test-bucket" for entry in entries)
        assert by_key["a/x/3.txt"].size == 30
        assert by_key["a/x/3.txt"].storage_class == "GLACIER"

    def test_prefix_filter(self, fake_client):
        """Only keys under the starting prefix are listed."""
        entries = collect(
            make_lister(fake_client, ListingOptions(backoff_factor=0)), prefix="c/"
        )

        assert sorted(entry.key for entry in entries) == ["c/1.txt", "c/y/z/2.txt"]

    def test_failure_fails_run_but_keeps_emitted_entries(self, fake_client):
        """A failed prefix fails the run; objects already passed on remain."""
        fake_client.fail("a/x/")
        options = ListingOptions(max_concurrency=1, backoff_factor=0)
        entries = []

        with pytest.raises(ListingError) as exc_info:
            make_lister(fake_client, options).process_namespace(
                "test-bucket", "", entries.append
            )

        assert exc_info.value.prefix == "a/x/"
        keys = {entry.key for entry in entries}
        assert "root.txt" in keys
        assert "a/1.txt" in keys
        assert "a/x/3.txt" not in keys

    def test_missing_bucket(self):
        """Listing a bucket that does not exist fails the run."""
        lister = make_lister(FakeS3Client({}), ListingOptions(backoff_factor=0))

        with pytest.raises(ListingError, match="NoSuchBucket"):
            lister.process_namespace("missing", "", lambda entry: None)

    def test_iter_objects_streams_every_entry(self, fake_client, fast_options):
        """The iterator yields the same objects as the sink interface."""
        lister = make_lister(fake_client, fast_options)

        keys = sorted(entry.key for entry in lister.iter_objects("test-bucket"))

        assert keys == sorted(
            [
                "root.txt",
                "a/1.txt",
                "a/2.txt",
                "a/x/3.txt",
                "b/1.txt",
                "c/1.txt",
                "c/y/z/2.txt",
                "d/1.txt",
                "d/2.txt",
                "d/3.txt",
            ]
        )

    def test_iter_objects_with_small_buffer(self, fake_client, fast_options):
        """Workers wait for the caller when the buffer is full."""
        lister = make_lister(fake_client, fast_options)

        entries = list(lister.iter_objects("test-bucket", max_buffered=1))

        assert len(entries) == 10

    def test_iter_objects_raises_after_partial_output(self, fake_client):
        """Objects listed before a failure are yielded, then the error is raised."""
        fake_client.fail("d/")
        lister = make_lister(
            fake_client, ListingOptions(max_concurrency=1, backoff_factor=0)
        )
        received = []

        with pytest.raises(ListingError):
            for entry in lister.iter_objects("test-bucket"):
                received.append(entry.key)

        assert "root.txt" in received
        assert not any(key.startswith("d/") for key in received)

    def test_concurrent_runs_do_not_share_state(self, tree_bucket):
        """One lister can list two buckets at once."""
        buckets = dict(tree_bucket)
        buckets["other-bucket"] = {"x/1": (5, "STANDARD"), "y/2": (6, "STANDARD")}
        lister = make_lister(FakeS3Client(buckets), ListingOptions(backoff_factor=0))
        results = {}

        def run(bucket):
            results[bucket] = collect(lister, bucket=bucket)

        threads = [
            threading.Thread(target=run, args=(bucket,))
            for bucket in ("test-bucket", "other-bucket")
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert len(results["test-bucket"]) == 10
        assert sorted(entry.key for entry in results["other-bucket"]) == ["x/1", "y/2"]
        assert all(entry.bucket == "other-bucket" for entry in results["other-bucket"])

    def test_closing_iterator_early_releases_workers(self):
        """A caller that stops reading does not leave listing threads behind."""
        keys = {f"p{index:03d}/key": (1, "STANDARD") for index in range(100)}
        client = FakeS3Client({"bucket": keys})
        lister = make_lister(
            client, ListingOptions(max_concurrency=8, backoff_factor=0)
        )
        before = set(threading.enumerate())

        iterator = lister.iter_objects("bucket", max_buffered=1)
        next(iterator)
        iterator.close()

        leftover = [
            thread.name
            for thread in set(threading.enumerate()) - before
            if thread.name.startswith("s3-list")
        ]
        assert leftover == []
        assert len(client.calls) < 101
