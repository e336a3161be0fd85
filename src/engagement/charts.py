from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Optional, Union

from engagement.series import COURSE_SUMMARY, NO_DATA, STUDENT, Bucket, OverlapPolicy, normalize

NO_ANALYTICS_COURSE = "No analytics found for this course"
NO_ANALYTICS = "No analytics found"

# Fixed y-axis of the course summary chart (values are whole percentages)
COURSE_YLABELS = [
    {"value": 0, "label": "None"},
    {"value": 20, "label": ""},
    {"value": 40, "label": "Medium"},
    {"value": 60, "label": ""},
    {"value": 80, "label": ""},
    {"value": 100, "label": "High"},
]


def format_date(timestamp: int) -> str:
    """Formats a period end the way Moodle's strftimedate does, e.g. '07 March 2024'."""
    return datetime.fromtimestamp(int(timestamp)).strftime("%d %B %Y")


def is_no_data(payload) -> bool:
    return isinstance(payload, str)


def course_chart_data(
    buckets: Iterable[Bucket],
    label_formatter: Callable[[int], str] = format_date,
    policy: OverlapPolicy = COURSE_SUMMARY,
) -> Union[Dict[str, Any], str]:
    """
    Course summary chart: whole-percentage engagement per period with a fixed axis.
    Returns a user-facing message instead of a dict when there is nothing to plot.
    """
    series = normalize(buckets, label_formatter, policy)
    if series is NO_DATA:
        return NO_ANALYTICS_COURSE

    return {
        "series": series.values,
        "xlabels": series.labels,
        "ylabels": COURSE_YLABELS,
    }


def student_chart_data(
    buckets: Iterable[Bucket],
    show_x_titles: bool = True,
    label_formatter: Optional[Callable[[int], str]] = format_date,
    policy: OverlapPolicy = STUDENT,
) -> Union[Dict[str, Any], str]:
    """
    Student chart: the student's engagement against the population band.

    average1/average2 are the lower/upper edges of the band. The y-axis is
    scaled to the data and only labelled low/medium/high, never with raw values.
    """
    series = normalize(buckets, label_formatter if show_x_titles else None, policy)
    if series is NO_DATA:
        return NO_ANALYTICS

    return {
        "series": series.values,
        "labels": series.labels,
        "average1": series.lower_band,
        "average2": series.upper_band,
        "max": series.max,
        "stepsize": series.stepsize,
        "ylabels": {0: "Low", series.stepsize: "Medium", series.max: "High"},
    }
