"""Client for the remote leaderboard (a PostgREST / Supabase ``User`` table).

Every call is synchronous and raises a ``SyncError`` subclass on failure.
Gameplay code never calls this directly; it goes through the fire-and-forget
helpers in ``swipe.services.games.scoring``.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Base class for remote leaderboard failures."""


class ConfigurationError(SyncError):
    pass


class NetworkError(SyncError):
    pass


class InvalidResponseError(SyncError):
    def __init__(self, status_code: int, body: str = ''):
        super().__init__(f"Remote returned HTTP {status_code}")
        self.status_code = status_code
        self.body = body


class DecodingError(SyncError):
    pass


class RemoteSyncClient:
    TABLE = 'User'

    def __init__(self, base_url: Optional[str], api_key: Optional[str], timeout: float = 5.0, session=None):
        self.base_url = _normalize_url(base_url)
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config, session=None) -> 'RemoteSyncClient':
        return cls(
            config.get('SUPABASE_URL'),
            config.get('SUPABASE_KEY'),
            timeout=float(config.get('SYNC_TIMEOUT_SEC', 5)),
            session=session,
        )

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    def save_username(self, username: str) -> bool:
        body = {
            'username': username,
            'created_at': datetime.now(timezone.utc).isoformat(),
        }
        self._request('POST', json=body, prefer='return=minimal,resolution=merge')
        return True

    def update_high_score(self, username: str, high_score: int) -> bool:
        self._request(
            'PATCH',
            params={'username': f'eq.{username}'},
            json={'highest_score': int(high_score)},
            prefer='return=minimal',
        )
        return True

    def get_user(self, username: str) -> Optional[Dict[str, Any]]:
        rows = self._decode(self._request('GET', params={'username': f'eq.{username}', 'select': '*'}))
        return rows[0] if rows else None

    def check_username_exists(self, username: str) -> bool:
        rows = self._decode(self._request('GET', params={'username': f'eq.{username}', 'select': 'username'}))
        return len(rows) > 0

    def get_all_users(self) -> List[Dict[str, Any]]:
        return self._decode(self._request('GET', params={'select': '*'}))

    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            'Content-Type': 'application/json',
            'apikey': self.api_key,
            'Authorization': f'Bearer {self.api_key}',
        }
        if prefer:
            headers['Prefer'] = prefer
        return headers

    def _request(self, method: str, params=None, json=None, prefer: Optional[str] = None):
        if not self.configured:
            raise ConfigurationError('SUPABASE_URL and SUPABASE_KEY must be set')
        url = f"{self.base_url}/rest/v1/{self.TABLE}"
        try:
            response = self.session.request(
                method, url, params=params, json=json, headers=self._headers(prefer), timeout=self.timeout
            )
        except requests.RequestException as exc:
            logger.warning(f"[remote-error] {method} {url} network error: {exc}")
            raise NetworkError(str(exc)) from exc

        logger.debug(f"[remote] {method} {url} status={response.status_code}")
        if not 200 <= response.status_code < 300:
            body = response.text or 'No response body'
            logger.warning(f"[remote-error] {method} {url} status={response.status_code} body={body}")
            raise InvalidResponseError(response.status_code, body)
        return response

    @staticmethod
    def _decode(response) -> List[Dict[str, Any]]:
        if not response.content:
            return []
        try:
            rows = response.json()
        except ValueError as exc:
            raise DecodingError(str(exc)) from exc
        if not isinstance(rows, list):
            return []
        return rows


def _normalize_url(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    value = value.strip().rstrip('/')
    if not value.startswith(('http://', 'https://')):
        value = f'https://{value}'
    return value
