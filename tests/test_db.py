from datetime import datetime

import pytest
import requests

import db
from db import SheetStore, get_auth_client, load_config
from fixtures import build_fixture_payload
from ingest import ingest_payload


class FakeResponse:
    def __init__(self, body=None, status=200, bad_json=False):
        self.body = body
        self.status_code = status
        self.bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.body


class FakeSession:
    def __init__(self, get_response=None, post_response=None, error=None):
        self.get_response = get_response
        self.post_response = post_response or FakeResponse({'status': 'success'})
        self.error = error
        self.requests = []

    def get(self, url, timeout=None):
        self.requests.append(('GET', url, None, timeout))
        if self.error:
            raise self.error
        return self.get_response

    def post(self, url, json=None, timeout=None):
        self.requests.append(('POST', url, json, timeout))
        if self.error:
            raise self.error
        return self.post_response


@pytest.fixture
def shown_errors(monkeypatch):
    shown = []
    monkeypatch.setattr(db.st, 'error', shown.append)
    return shown


@pytest.fixture
def clean_env(monkeypatch):
    for name in ('PULSE_API_URL', 'PULSE_TIMEOUT', 'PULSE_POLL_SECONDS', 'PULSE_HOLIDAY_COUNTRY',
                 'PULSE_HOLIDAY_STATE', 'OPENAI_API_KEY', 'OPENAI_MODEL',
                 'SUPABASE_URL', 'SUPABASE_ANON_KEY'):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


URL = 'https://script.example.com/exec'


class TestFetch:
    def test_fixture_mode_without_url(self):
        data = SheetStore().fetch_app_data()
        assert [u.user_id for u in data.users] == ['u1', 'u2', 'u3']
        assert len(data.checkouts) == 3
        assert {g.goal_id for g in data.weekly_goals} == {'g1', 'g2'}

    def test_live_payload_is_ingested(self):
        body = {
            'users': [{'UserId': 'u7', 'Name': 'Eve'}],
            'checkouts': [{'checkoutId': 'c1', 'userId': 'u7', 'date': '2024-06-10T22:15:00.000Z'}],
            'goals': [{'goalId': 'g1', 'title': 'x', 'startDate': '2024-06-12'}],
        }
        session = FakeSession(get_response=FakeResponse(body))
        data = SheetStore(URL, timeout=3, session=session).fetch_app_data()

        assert session.requests == [('GET', URL, None, 3)]
        assert [u.name for u in data.users] == ['Eve']
        assert data.checkouts[0].date == '2024-06-11'
        assert data.weekly_goals[0].week_of_date == '2024-06-10'

    def test_empty_users_fall_back_to_fixture_users(self):
        session = FakeSession(get_response=FakeResponse({'users': [], 'tasks': []}))
        data = SheetStore(URL, session=session).fetch_app_data()
        assert [u.user_id for u in data.users] == ['u1', 'u2', 'u3']

    @pytest.mark.parametrize('session', [
        FakeSession(error=requests.ConnectionError("connection refused")),
        FakeSession(get_response=FakeResponse(status=500)),
        FakeSession(get_response=FakeResponse(bad_json=True)),
        FakeSession(get_response=FakeResponse(['not', 'an', 'object'])),
    ])
    def test_failures_degrade_to_fixture_users(self, session, shown_errors, caplog):
        data = SheetStore(URL, session=session).fetch_app_data()

        assert [u.user_id for u in data.users] == ['u1', 'u2', 'u3']
        assert data.checkouts == []
        assert data.tasks == []
        assert len(shown_errors) == 1
        assert 'Failed to fetch data' in caplog.text


class TestSync:
    def test_not_live_drops_writes(self):
        assert SheetStore().sync_item('Tasks', {'taskId': 't1'}) is False

    def test_posts_typed_payload(self):
        session = FakeSession()
        ok = SheetStore(URL, timeout=5, session=session).sync_item('Checkouts', {'checkoutId': 'c1'})

        assert ok is True
        assert session.requests == [
            ('POST', URL, {'type': 'Checkouts', 'payload': {'checkoutId': 'c1'}}, 5),
        ]

    def test_unknown_sheet_is_rejected(self):
        with pytest.raises(ValueError):
            SheetStore(URL, session=FakeSession()).sync_item('Nope', {})

    def test_post_failure_reports_false(self, shown_errors):
        session = FakeSession(error=requests.Timeout("timed out"))
        assert SheetStore(URL, session=session).sync_item('Tasks', {'taskId': 't1'}) is False
        assert shown_errors and 'Tasks' in shown_errors[0]


class TestConfig:
    def test_defaults(self, clean_env):
        config = load_config()
        assert config.api_url == ''
        assert config.request_timeout == 15.0
        assert config.poll_seconds == 60
        assert config.holiday_country == 'US'
        assert config.openai_model == 'gpt-4o-mini'

    def test_env_overrides(self, clean_env):
        clean_env.setenv('PULSE_API_URL', f'  {URL} ')
        clean_env.setenv('PULSE_TIMEOUT', '4.5')
        clean_env.setenv('PULSE_POLL_SECONDS', 'often')
        clean_env.setenv('PULSE_HOLIDAY_COUNTRY', 'DE')
        clean_env.setenv('PULSE_HOLIDAY_STATE', 'BY')

        config = load_config()
        assert config.api_url == URL
        assert config.request_timeout == 4.5
        assert config.poll_seconds == 60  # invalid value ignored
        assert (config.holiday_country, config.holiday_state) == ('DE', 'BY')

    def test_auth_client_needs_both_settings(self, clean_env):
        assert get_auth_client() is None
        clean_env.setenv('SUPABASE_URL', 'https://project.supabase.co')
        assert get_auth_client() is None


def test_fixture_payload_is_anchored_on_local_day():
    data = ingest_payload(build_fixture_payload(datetime(2024, 3, 6, 9, 0)))

    assert {c.date for c in data.checkouts} == {'2024-03-05', '2024-03-04'}
    assert {t.week_of_date for t in data.tasks} == {'2024-03-04'}
    assert data.weekly_goals[0].end_date == '2024-03-13'
    assert data.users[0].is_manager
