import json

import pytest
import requests

from api import client

MOODLE = {"URL": "https://moodle.test/", "TOKEN": "secret"}


class FakeResponse:
    def __init__(self, payload=None, status=200, raw=None):
        self.payload = payload
        self.status = status
        self.raw = raw

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.exceptions.HTTPError(f"{self.status} error")

    def json(self):
        if self.raw is not None:
            return json.loads(self.raw)
        return self.payload


@pytest.fixture
def post(monkeypatch):
    calls = []

    def install(response):
        def fake_post(url, data=None, timeout=None):
            calls.append((url, data))
            if isinstance(response, Exception):
                raise response
            return response
        monkeypatch.setattr(client.requests, "post", fake_post)
        return calls

    return install


def test_list_arguments_are_expanded(post):
    calls = post(FakeResponse([]))
    client.call_moodle_api(MOODLE, "core_course_get_courses", options=[3, 4], userid=9)

    url, data = calls[0]
    assert url == "https://moodle.test/webservice/rest/server.php"
    assert data["wstoken"] == "secret"
    assert data["wsfunction"] == "core_course_get_courses"
    assert data["moodlewsrestformat"] == "json"
    assert data["options[0]"] == 3 and data["options[1]"] == 4
    assert data["userid"] == 9


def test_moodle_exception_returns_none(post, capsys):
    post(FakeResponse({"exception": "invalid_token", "message": "Invalid token"}))
    assert client.call_moodle_api(MOODLE, "core_enrol_get_users_courses") is None
    assert "[API ERROR]" in capsys.readouterr().out


def test_network_error_returns_none(post, capsys):
    post(requests.exceptions.ConnectionError("refused"))
    assert client.call_moodle_api(MOODLE, "core_enrol_get_users_courses") is None
    assert "[NETWORK ERROR]" in capsys.readouterr().out


def test_http_error_returns_none(post):
    post(FakeResponse(status=503))
    assert client.call_moodle_api(MOODLE, "core_enrol_get_users_courses") is None


def test_invalid_json_returns_none(post, capsys):
    post(FakeResponse(raw="<html>"))
    assert client.call_moodle_api(MOODLE, "core_enrol_get_users_courses") is None
    assert "[DATA ERROR]" in capsys.readouterr().out


def test_active_courses_filter_on_end_date(post):
    calls = post(FakeResponse([
        {"id": 1, "enddate": 2000},
        {"id": 2, "enddate": 500},
        {"id": 3, "enddate": 0},
        {"id": 4},
        {"id": 5, "enddate": 1001},
    ]))
    assert client.get_active_user_courses({"MOODLE": MOODLE}, 77, now=1000) == [1, 5]
    assert calls[0][1]["userid"] == 77


def test_active_courses_when_api_fails(post):
    post(requests.exceptions.Timeout("slow"))
    assert client.get_active_user_courses({"MOODLE": MOODLE}, 77) == []
