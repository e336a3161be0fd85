import math
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Union

DAY_SECONDS = 86400


class MalformedBucketError(ValueError):
    """Raised when the fetcher hands over buckets that break the input contract."""


@dataclass(frozen=True)
class Bucket:
    """One aggregation period as returned by the sample fetcher."""
    start: int
    end: int
    count: int
    sum: Optional[float]
    avg: Optional[float] = None
    stddev: Optional[float] = None


@dataclass(frozen=True)
class OverlapPolicy:
    """
    Controls how a series is built:
    - round_values: round percentages to whole numbers (course summary) or keep them fractional.
    - overlap_grace: seconds a bucket may extend past the last kept bucket before it is skipped.
    """
    round_values: bool
    overlap_grace: int = 0


COURSE_SUMMARY = OverlapPolicy(round_values=True, overlap_grace=0)
# Student samples are truncated to day boundaries, so neighbours can overlap by up to a day.
STUDENT = OverlapPolicy(round_values=False, overlap_grace=DAY_SECONDS)


@dataclass
class Series:
    labels: List[str] = field(default_factory=list)
    values: List[float] = field(default_factory=list)
    lower_band: List[float] = field(default_factory=list)
    upper_band: List[float] = field(default_factory=list)
    max: int = 2
    stepsize: int = 1


class _NoData:
    """Sentinel for "nothing left to plot". Falsy so callers can write `if not result`."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "NO_DATA"


NO_DATA = _NoData()


def round_half_up(value: float) -> int:
    """
    Rounds halves away from zero (Python's round() would give 2 for 2.5).
    The value is first cut to 9 decimals so float noise such as 28.499999999999996
    still counts as a half, as in PHP's round().
    """
    return int(math.copysign(math.floor(round(abs(value), 9) + 0.5), value))


def _check_bucket(bucket: Bucket, previous_start: Optional[int]) -> None:
    if bucket.end <= bucket.start:
        raise MalformedBucketError(f"Bucket {bucket.start}-{bucket.end} ends before it starts")
    if bucket.sum and bucket.count <= 0:
        raise MalformedBucketError(
            f"Bucket {bucket.start}-{bucket.end} has sum {bucket.sum} but count {bucket.count}"
        )
    if previous_start is not None and bucket.start > previous_start:
        raise MalformedBucketError(
            f"Buckets must be ordered by start descending ({bucket.start} after {previous_start})"
        )


def normalize(
    buckets: Iterable[Bucket],
    label_formatter: Optional[Callable[[int], str]] = None,
    policy: OverlapPolicy = COURSE_SUMMARY,
) -> Union[Series, _NoData]:
    """
    Turns fetcher buckets (newest first) into a chronological chart series.

    Buckets overlapping the last kept one are dropped, so only the most recent
    non-overlapping chain walking backwards in time survives. Values and bands
    are percentages; bands are the population average +/- half a standard deviation.

    Returns NO_DATA when no bucket survives.
    Raises MalformedBucketError when the input breaks the fetcher contract.
    """
    labels, values, lower, upper = [], [], [], []
    last_start = None
    previous_start = None

    for bucket in buckets:
        _check_bucket(bucket, previous_start)
        previous_start = bucket.start

        if last_start is not None and bucket.end > last_start + policy.overlap_grace:
            continue

        labels.append(label_formatter(bucket.end) if label_formatter else "")

        if not bucket.sum:
            values.append(0)
        else:
            pct = bucket.sum / bucket.count * 100
            values.append(round_half_up(pct) if policy.round_values else pct)

        if not bucket.avg:
            lower.append(0)
            upper.append(0)
        else:
            half_dev = (bucket.stddev or 0) / 2
            lower.append((bucket.avg - half_dev) * 100)
            upper.append((bucket.avg + half_dev) * 100)

        last_start = bucket.start

    if not values:
        return NO_DATA

    for seq in (labels, values, lower, upper):
        seq.reverse()

    # Chart axes need at least two distinct tick levels, otherwise a near-zero
    # series ends up labelled high/high/high.
    top = max(2, math.ceil(max(max(values), max(lower), max(upper))))

    return Series(
        labels=labels,
        values=values,
        lower_band=lower,
        upper_band=upper,
        max=top,
        stepsize=math.ceil(top / 2),
    )
