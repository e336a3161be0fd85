import requests
import json
import time
from typing import List, Optional


def call_moodle_api(moodle_config, function_name, **kwargs):
    """
    Generic wrapper for Moodle Web Services.
    Handles parameter formatting, including list/array conversion for batch requests.
    """
    url = f"{moodle_config['URL'].rstrip('/')}/webservice/rest/server.php"

    # Base parameters required by Moodle
    params = {
        "wstoken": moodle_config['TOKEN'],
        "wsfunction": function_name,
        "moodlewsrestformat": "json"
    }

    # Moodle expects arrays like: courseids[0]=1, courseids[1]=2
    for key, value in kwargs.items():
        if isinstance(value, list):
            for i, item in enumerate(value):
                params[f"{key}[{i}]"] = item
        else:
            params[key] = value

    try:
        response = requests.post(url, data=params, timeout=60)
        response.raise_for_status()

        data = response.json()

        # Check for Moodle-level exceptions
        if isinstance(data, dict) and 'exception' in data:
            print(f"[API ERROR] {function_name}: {data.get('message')}")
            return None

        return data

    except requests.exceptions.RequestException as e:
        print(f"[NETWORK ERROR] {function_name}: {e}")
        return None
    except json.JSONDecodeError:
        print(f"[DATA ERROR] {function_name}: Invalid JSON response")
        return None


def get_active_user_courses(config, user_id: int, now: Optional[int] = None) -> List[int]:
    """
    Returns the ids of the courses a user is enrolled in that are still running.
    Courses without an end date are left out, as are finished ones.
    """
    courses = call_moodle_api(config['MOODLE'], "core_enrol_get_users_courses", userid=user_id)
    if not courses:
        return []

    if isinstance(courses, dict):
        courses = courses.get('courses', [])

    now = int(now if now is not None else time.time())
    return [c['id'] for c in courses if c.get('enddate') and c['enddate'] > now]
