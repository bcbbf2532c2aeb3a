"""Tests for precondition evaluation, If-Range and Range header parsing."""

from datetime import UTC, datetime, timedelta

import pytest

from sharegate.application.services.conditional import (
    MAX_RANGES,
    ByteRange,
    PreconditionOutcome,
    etag_matches,
    evaluate_preconditions,
    if_range_allows,
    parse_range_header,
)
from sharegate.domain.exceptions import (
    PreconditionFailedException,
    RangeNotSatisfiableException,
)
from sharegate.shared.utils.datetime import to_http_date

ETAG = '"abc123"'
MODIFIED = datetime(2024, 5, 1, 10, 30, 15, 500000, tzinfo=UTC)


def _evaluate(headers: dict[str, str], method: str = "GET") -> PreconditionOutcome:
    return evaluate_preconditions(headers, etag=ETAG, last_modified=MODIFIED, method=method)


def test_no_conditional_headers_proceeds() -> None:
    assert _evaluate({}) is PreconditionOutcome.PROCEED


def test_etag_matching_strong_and_weak() -> None:
    assert etag_matches('"abc123"', ETAG, weak=False)
    assert etag_matches('"zzz", "abc123"', ETAG, weak=False)
    assert etag_matches("*", ETAG, weak=False)
    assert not etag_matches('W/"abc123"', ETAG, weak=False)
    assert etag_matches('W/"abc123"', ETAG, weak=True)
    assert not etag_matches('"abc123"', None, weak=True)


def test_if_none_match_hit_is_not_modified() -> None:
    assert _evaluate({"if-none-match": ETAG}) is PreconditionOutcome.NOT_MODIFIED
    assert _evaluate({"if-none-match": 'W/"abc123"'}) is PreconditionOutcome.NOT_MODIFIED


def test_if_none_match_miss_ignores_if_modified_since() -> None:
    """If-None-Match takes precedence over If-Modified-Since."""
    headers = {
        "if-none-match": '"other"',
        "if-modified-since": to_http_date(MODIFIED + timedelta(days=1)),
    }
    assert _evaluate(headers) is PreconditionOutcome.PROCEED


def test_if_modified_since_compares_whole_seconds() -> None:
    assert _evaluate({"if-modified-since": to_http_date(MODIFIED)}) is PreconditionOutcome.NOT_MODIFIED
    earlier = to_http_date(MODIFIED - timedelta(seconds=1))
    assert _evaluate({"if-modified-since": earlier}) is PreconditionOutcome.PROCEED


def test_if_modified_since_garbage_is_ignored() -> None:
    assert _evaluate({"if-modified-since": "yesterday"}) is PreconditionOutcome.PROCEED


def test_if_match_failure_raises() -> None:
    with pytest.raises(PreconditionFailedException) as exc_info:
        _evaluate({"if-match": '"nope"'})
    assert exc_info.value.details == {"header": "If-Match"}
    assert _evaluate({"if-match": ETAG}) is PreconditionOutcome.PROCEED


def test_if_unmodified_since_failure_raises() -> None:
    with pytest.raises(PreconditionFailedException):
        _evaluate({"if-unmodified-since": to_http_date(MODIFIED - timedelta(hours=1))})
    assert _evaluate({"if-unmodified-since": to_http_date(MODIFIED)}) is PreconditionOutcome.PROCEED


def test_if_none_match_on_unsafe_method_fails() -> None:
    with pytest.raises(PreconditionFailedException):
        _evaluate({"if-none-match": "*"}, method="POST")


def test_if_range() -> None:
    assert if_range_allows({}, etag=ETAG, last_modified=MODIFIED)
    assert if_range_allows({"if-range": ETAG}, etag=ETAG, last_modified=MODIFIED)
    assert not if_range_allows({"if-range": '"old"'}, etag=ETAG, last_modified=MODIFIED)
    assert if_range_allows(
        {"if-range": to_http_date(MODIFIED)}, etag=ETAG, last_modified=MODIFIED
    )
    assert not if_range_allows(
        {"if-range": to_http_date(MODIFIED - timedelta(days=1))},
        etag=ETAG,
        last_modified=MODIFIED,
    )


def test_byte_range_content_range() -> None:
    r = ByteRange(start=10, length=5)
    assert r.end == 14
    assert r.content_range(100) == "bytes 10-14/100"


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("bytes=0-9", [ByteRange(0, 10)]),
        ("bytes=90-", [ByteRange(90, 10)]),
        ("bytes=-5", [ByteRange(95, 5)]),
        ("bytes=95-200", [ByteRange(95, 5)]),
        ("bytes=0-0, 50-51", [ByteRange(0, 1), ByteRange(50, 2)]),
        ("bytes=-500", [ByteRange(0, 100)]),
    ],
)
def test_parse_range_header_valid(header: str, expected: list[ByteRange]) -> None:
    assert parse_range_header(header, 100) == expected


@pytest.mark.parametrize(
    "header",
    [None, "", "items=0-1", "bytes=", "bytes=abc", "bytes=5-2", "bytes=1", "bytes=--1"],
)
def test_parse_range_header_serves_whole_blob(header: str | None) -> None:
    assert parse_range_header(header, 100) is None


def test_parse_range_header_overlapping_sum_serves_whole_blob() -> None:
    assert parse_range_header("bytes=0-79, 10-89", 100) is None


def test_parse_range_header_too_many_ranges() -> None:
    range_set = ",".join(f"{i}-{i}" for i in range(MAX_RANGES + 1))
    assert parse_range_header(f"bytes={range_set}", 1000) is None


def test_parse_range_header_unsatisfiable() -> None:
    with pytest.raises(RangeNotSatisfiableException) as exc_info:
        parse_range_header("bytes=100-", 100)
    assert exc_info.value.size == 100
    with pytest.raises(RangeNotSatisfiableException):
        parse_range_header("bytes=0-", 0)


@pytest.mark.parametrize("header", ["bytes=1024-", "bytes=5000-", "bytes=1024-2047"])
def test_parse_range_header_starting_past_end_is_unsatisfiable(header: str) -> None:
    with pytest.raises(RangeNotSatisfiableException):
        parse_range_header(header, 1024)


def test_parse_range_header_reversed_past_end_serves_whole_blob() -> None:
    assert parse_range_header("bytes=2000-1500", 1024) is None
