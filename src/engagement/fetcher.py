import time
from typing import Iterable, List, Optional

from engagement.series import Bucket
from utils.config_loader import EngagementSettings
from utils.db import fetch_all

CONTEXT_COURSE = 50


def _window_clause(column: str, params, start: Optional[int], end: Optional[int]) -> str:
    """Adds the time-window filter on `column` and its parameters."""
    clause = f"AND {column} > %(start)s "
    params["start"] = start
    if end is not None:
        clause += f"AND {column} < %(end)s "
        params["end"] = end
    return clause


def _default_start(settings: EngagementSettings, start: Optional[int], now: Optional[int]) -> int:
    if start is not None:
        return start
    return int(now if now is not None else time.time()) - settings.user_history


def _to_float(value):
    # numeric columns come back as Decimal
    return float(value) if value is not None else None


def fetch_course_buckets(
    conn,
    course_id: int,
    settings: EngagementSettings,
    start: Optional[int] = None,
    end: Optional[int] = None,
    now: Optional[int] = None,
) -> List[Bucket]:
    """
    Aggregates the course-level samples into one bucket per period, newest first.
    """
    prefix = settings.table_prefix
    params = {"courseid": course_id, "period": settings.display_period}
    window = _window_clause("c.endtime", params, _default_start(settings, start, now), end)

    sql = f"""
        SELECT c.starttime, c.endtime, count(c.value) AS count, sum(c.value) AS value
          FROM {prefix}local_ace_contexts c
          JOIN {prefix}context cx ON cx.id = c.contextid AND cx.contextlevel = {CONTEXT_COURSE}
         WHERE cx.instanceid = %(courseid)s AND (c.endtime - c.starttime = %(period)s)
           {window}
      GROUP BY c.starttime, c.endtime
      ORDER BY c.starttime DESC
    """

    rows = fetch_all(conn, sql, params)
    return [
        Bucket(start=int(r[0]), end=int(r[1]), count=int(r[2]), sum=_to_float(r[3]))
        for r in rows
    ]


def fetch_student_buckets(
    conn,
    user_id: int,
    course_ids: Iterable[int],
    settings: EngagementSettings,
    start: Optional[int] = None,
    end: Optional[int] = None,
    now: Optional[int] = None,
) -> List[Bucket]:
    """
    Aggregates one student's samples across the given courses, newest first.

    Each bucket carries the average and standard deviation of every student's
    samples for the same period, used to draw the comparison band. Sample
    times are truncated to the day so periods computed at different hours line up.
    """
    course_ids = tuple(int(c) for c in course_ids)
    if not course_ids:
        return []

    prefix = settings.table_prefix
    params = {"userid": user_id, "period": settings.display_period, "courseids": course_ids}
    window = _window_clause("s.endtime", params, _default_start(settings, start, now), end)

    sql = f"""
        WITH samples AS (
            SELECT EXTRACT('epoch' FROM date_trunc('day', to_timestamp(s.starttime))) AS starttime,
                   EXTRACT('epoch' FROM date_trunc('day', to_timestamp(s.endtime))) AS endtime,
                   s.value,
                   s.userid
              FROM {prefix}local_ace_samples s
              JOIN {prefix}context cx ON s.contextid = cx.id AND cx.contextlevel = {CONTEXT_COURSE}
              JOIN {prefix}course co ON cx.instanceid = co.id
             WHERE (s.endtime - s.starttime = %(period)s)
               {window}
               AND co.id IN %(courseids)s
        )
        SELECT s.starttime, s.endtime, count(s.value) AS count, sum(s.value) AS value,
               a.avg AS avg, a.stddev AS stddev
          FROM samples s
          JOIN (
                SELECT starttime, endtime, stddev(value) AS stddev, avg(value) AS avg
                  FROM samples
              GROUP BY starttime, endtime
               ) a ON a.starttime = s.starttime AND a.endtime = s.endtime
         WHERE s.userid = %(userid)s
      GROUP BY s.starttime, s.endtime, a.avg, a.stddev
      ORDER BY s.starttime DESC
    """

    rows = fetch_all(conn, sql, params)
    return [
        Bucket(
            start=int(r[0]),
            end=int(r[1]),
            count=int(r[2]),
            sum=_to_float(r[3]),
            avg=_to_float(r[4]),
            stddev=_to_float(r[5]),
        )
        for r in rows
        # periods shorter than a day truncate to an empty range
        if int(r[1]) > int(r[0])
    ]
