import argparse
import json
import sys
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, List, Optional

# --- Internal Imports ---
from api.client import get_active_user_courses
from engagement.charts import NO_ANALYTICS, course_chart_data, is_no_data, student_chart_data
from engagement.fetcher import fetch_course_buckets, fetch_student_buckets
from utils.config_loader import EngagementSettings, get_engagement_settings, load_config
from utils.db import get_db_connection


# --- Chart builders ---
def build_course_chart(course_id: int, settings: EngagementSettings, start=None, end=None,
                       connect: Callable = get_db_connection):
    conn = connect()
    try:
        buckets = fetch_course_buckets(conn, course_id, settings, start=start, end=end)
    finally:
        conn.close()
    return course_chart_data(buckets)


def build_student_chart(config, user_id: int, course_ids: Optional[List[int]], settings: EngagementSettings,
                        start=None, end=None, show_x_titles: bool = True,
                        connect: Callable = get_db_connection):
    """Student chart for the given courses, or for every running course the user is enrolled in."""
    if not course_ids:
        course_ids = get_active_user_courses(config, user_id)
    if not course_ids:
        return NO_ANALYTICS

    conn = connect()
    try:
        buckets = fetch_student_buckets(conn, user_id, course_ids, settings, start=start, end=end)
    finally:
        conn.close()
    return student_chart_data(buckets, show_x_titles=show_x_titles)


# --- WORKER: Process individual course ---
def execute_course_task(course_id: int, settings: EngagementSettings, start, end,
                        connect: Callable) -> Dict[str, Any]:
    try:
        chart = build_course_chart(course_id, settings, start=start, end=end, connect=connect)
        if is_no_data(chart):
            return {"status": "skipped", "id": course_id, "reason": chart}
        return {"status": "success", "id": course_id, "data": chart}
    except Exception as e:
        return {"status": "error", "id": course_id, "error": str(e)}


# --- MAIN PIPELINE ---
def run_export(
    course_ids: List[int],
    settings: Optional[EngagementSettings] = None,
    start: Optional[int] = None,
    end: Optional[int] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    log_callback: Optional[Callable[[str], None]] = None,
    stop_event: Optional[threading.Event] = None,
    connect: Callable = get_db_connection,
) -> Dict[int, Dict[str, Any]]:
    """Builds the course summary chart of every course concurrently."""
    def log(msg: str):
        if log_callback:
            log_callback(msg)
        else:
            print(msg)

    results: Dict[int, Dict[str, Any]] = {}
    log("--- ACE Engagement: starting export ---")
    if stop_event and stop_event.is_set():
        return results

    if settings is None:
        settings = get_engagement_settings(load_config(require_moodle=False))

    total = len(course_ids)
    if total == 0:
        log(" [!] No courses to export.")
        if progress_callback:
            progress_callback(1, 1)
        return results

    log(f" Processing {total} courses (period {settings.display_period}s)...")

    with ThreadPoolExecutor(max_workers=settings.max_workers) as executor:
        futures = {executor.submit(execute_course_task, c, settings, start, end, connect): c for c in course_ids}

        for i, future in enumerate(as_completed(futures), 1):
            if stop_event and stop_event.is_set():
                log(" Export stopped by the user. Cancelling pending courses...")
                executor.shutdown(wait=False, cancel_futures=True)
                break

            result = future.result()
            results[result["id"]] = result
            progress_pct = (i / total) * 100

            if result["status"] == "success":
                points = len(result["data"]["series"])
                log(f" {progress_pct:.1f}% OK | ID: {result['id']} | {points} periods")
            elif result["status"] == "skipped":
                log(f" {progress_pct:.1f}% SKIP | ID: {result['id']} | {result.get('reason')}")
            else:
                log(f" {progress_pct:.1f}% ERR | ID: {result['id']} | {result.get('error')}")

            if progress_callback:
                progress_callback(i, total)

    if stop_event and stop_event.is_set():
        log("--- Export CANCELLED ---")
    else:
        log("--- Export finished ---")
    return results


# --- CLI ---
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Engagement chart data from ACE analytics samples")
    sub = parser.add_subparsers(dest="command", required=True)

    course = sub.add_parser("course", help="Course summary chart")
    course.add_argument("courseid", type=int)

    student = sub.add_parser("student", help="Student engagement chart")
    student.add_argument("userid", type=int)
    student.add_argument("--course", type=int, action="append", dest="courses",
                         help="Restrict to a course (repeatable). Defaults to the user's running courses.")
    student.add_argument("--hide-labels", action="store_true", help="Leave x-axis titles empty")

    export = sub.add_parser("export", help="Course summary charts for several courses")
    export.add_argument("courseids", type=int, nargs="+")
    export.add_argument("--output", help="Write the results to this JSON file instead of stdout")

    for p in (course, student, export):
        p.add_argument("--start", type=int, help="Only periods ending after this epoch timestamp")
        p.add_argument("--end", type=int, help="Only periods ending before this epoch timestamp")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    # Web-service credentials are only used to look up a student's courses
    needs_moodle = args.command == "student" and not args.courses
    config = load_config(require_moodle=needs_moodle)
    settings = get_engagement_settings(config)

    if args.command == "course":
        payload = build_course_chart(args.courseid, settings, start=args.start, end=args.end)
    elif args.command == "student":
        payload = build_student_chart(config, args.userid, args.courses, settings,
                                      start=args.start, end=args.end, show_x_titles=not args.hide_labels)
    else:
        payload = run_export(args.courseids, settings, start=args.start, end=args.end,
                             log_callback=lambda m: print(m, file=sys.stderr))

    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if args.command == "export" and args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(text)
        print(f"Results written to {args.output}", file=sys.stderr)
    else:
        print(text)

    return 1 if is_no_data(payload) else 0


if __name__ == "__main__":
    sys.exit(main())
