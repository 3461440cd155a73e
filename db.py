"""
Remote store helpers for the spreadsheet web endpoint.
Handles fetching the full record set, syncing single records and config lookup.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
import streamlit as st
from supabase import Client, create_client

from fixtures import build_fixture_payload
from ingest import ingest_payload
from models import AppData

logger = logging.getLogger(__name__)

SHEETS = ('Users', 'Checkouts', 'Tasks', 'Interactions', 'WeeklyGoals')


def get_secret(name: str, default=None):
    # prefer Streamlit secrets, fallback to env vars
    try:
        return st.secrets[name]
    except Exception:
        return os.getenv(name, default)


@dataclass
class PulseConfig:
    api_url: str = ''  # empty -> local fixture data
    request_timeout: float = 15.0
    poll_seconds: int = 60
    holiday_country: str = 'US'
    holiday_state: str = ''
    openai_api_key: str = ''
    openai_model: str = 'gpt-4o-mini'


def _number(name: str, default, cast):
    raw = get_secret(name, default)
    try:
        return cast(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s=%r, using %r", name, raw, default)
        return default


def load_config() -> PulseConfig:
    """Collect all settings once from Streamlit secrets / environment."""
    return PulseConfig(
        api_url=(get_secret('PULSE_API_URL', '') or '').strip(),
        request_timeout=_number('PULSE_TIMEOUT', 15.0, float),
        poll_seconds=_number('PULSE_POLL_SECONDS', 60, int),
        holiday_country=get_secret('PULSE_HOLIDAY_COUNTRY', 'US') or 'US',
        holiday_state=get_secret('PULSE_HOLIDAY_STATE', '') or '',
        openai_api_key=get_secret('OPENAI_API_KEY', '') or '',
        openai_model=get_secret('OPENAI_MODEL', 'gpt-4o-mini') or 'gpt-4o-mini',
    )


def get_auth_client() -> Optional[Client]:
    """Supabase client for sign-in, or None when auth is not configured."""
    url = get_secret("SUPABASE_URL")
    anon = get_secret("SUPABASE_ANON_KEY")
    if not url or not anon:
        return None
    return create_client(url, anon)


class SheetStore:
    """
    Client for the spreadsheet web app endpoint.

    GET returns every collection as JSON; POST appends one row to a sheet.
    With no api_url the store serves local fixtures and drops writes.
    """

    def __init__(self, api_url: str = '', timeout: float = 15.0,
                 session: Optional[requests.Session] = None):
        self.api_url = api_url or ''
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def is_live(self) -> bool:
        return bool(self.api_url)

    def _fallback(self) -> AppData:
        data = ingest_payload(build_fixture_payload())
        return AppData(users=data.users)

    def fetch_app_data(self) -> AppData:
        """
        Fetch and ingest the full record set.

        Returns:
            AppData with normalized dates. Fixture data when not live, and
            fixture users with empty collections if the fetch fails.
        """
        if not self.is_live:
            logger.warning("Using fixture data (configure PULSE_API_URL to go live)")
            return ingest_payload(build_fixture_payload())

        try:
            response = self.session.get(self.api_url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
            if not isinstance(payload, dict):
                raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
        except (requests.RequestException, ValueError) as e:
            logger.error("Failed to fetch data from %s: %s", self.api_url, e)
            st.error(f"Error fetching team data: {e}")
            return self._fallback()

        data = ingest_payload(payload)
        if not data.users:
            data.users = self._fallback().users
        return data

    def sync_item(self, sheet: str, payload: Dict[str, Any]) -> bool:
        """
        Append one record to a sheet.

        Updates are synced the same way: the full updated record is appended
        and ingestion keeps the last row per identifier.

        Args:
            sheet: Target sheet name (one of SHEETS)
            payload: camelCase record dict

        Returns:
            True if the endpoint accepted the write
        """
        if sheet not in SHEETS:
            raise ValueError(f"Unknown sheet: {sheet!r}")
        if not self.is_live:
            return False

        try:
            response = self.session.post(
                self.api_url,
                json={'type': sheet, 'payload': payload},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return True
        except requests.RequestException as e:
            logger.error("Sync to %s failed: %s", sheet, e)
            st.error(f"Error syncing {sheet}: {e}")
            return False
