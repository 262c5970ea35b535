"""
REST collaborator for the attendance workflow.

Talks to the JSON endpoints in ``academics.views.attendance`` so a workflow
can run on a different machine from the database. Implements both
``RosterSource`` and ``AttendanceStore``.

Writes go through Django's CSRF protection: the client fetches a token from
``csrf/`` once per session and sends it back with every POST.

Documentation of the endpoints: academics/urls.py
"""
import logging
from typing import Dict, List, Optional, Set

import requests

from students.roster import RosterSource, normalize_roster_entry

from .. import config
from ..choices import AttendancePeriod
from .exceptions import (
    AccessDenied, PeriodAlreadyRecorded, PeriodOutOfOrder, SubmissionRejected, TransportFailure,
)
from .stores import AttendanceStore

logger = logging.getLogger(__name__)

CSRF_COOKIE_NAME = 'csrftoken'

# error code in a 409 body -> exception raised to the workflow
CONFLICT_ERRORS = {
    PeriodAlreadyRecorded.code: PeriodAlreadyRecorded,
    PeriodOutOfOrder.code: PeriodOutOfOrder,
}


class AttendanceApiClient(RosterSource, AttendanceStore):

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None,
                 session: Optional[requests.Session] = None, headers: Optional[Dict] = None):
        self.base_url = (base_url or config.API_BASE_URL).rstrip('/')
        self.timeout = timeout or config.API_TIMEOUT
        self.session = session or requests.Session()
        self.headers = headers or {}
        self._csrf_token = None

    def _get_headers(self, context=None) -> Dict:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        headers.update(self.headers)
        if context is not None:
            headers.update(context.to_headers())
        return headers

    def _request(self, method, path, context=None, extra_headers=None, **kwargs):
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = self._get_headers(context)
        if extra_headers:
            headers.update(extra_headers)
        logger.debug(f"Attendance API {method} {url}")
        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                timeout=self.timeout,
                **kwargs
            )
        except requests.exceptions.Timeout as e:
            logger.warning(f"Attendance API timeout: {method} {url}")
            raise TransportFailure('Connection timeout') from e
        except requests.exceptions.RequestException as e:
            logger.warning(f"Attendance API connection error: {method} {url}: {e}")
            raise TransportFailure(f'Connection error: {str(e)}') from e

        logger.debug(f"Attendance API response {response.status_code} for {method} {url}")
        return response

    @staticmethod
    def _json(response) -> Dict:
        try:
            data = response.json()
        except ValueError as e:
            raise TransportFailure(
                f'Unexpected response from attendance service (HTTP {response.status_code})'
            ) from e
        if not isinstance(data, dict):
            raise TransportFailure('Unexpected response from attendance service')
        return data

    @staticmethod
    def _message(response) -> Optional[str]:
        try:
            return response.json().get("message")
        except (ValueError, AttributeError):
            return None

    @classmethod
    def _raise_for_status(cls, response):
        """Map a non-2xx response to AccessDenied or TransportFailure."""
        if response.status_code < 400:
            return
        message = cls._message(response)
        if response.status_code in (401, 403):
            raise AccessDenied(message)
        raise TransportFailure(message or f"Attendance service returned HTTP {response.status_code}")

    def _csrf_headers(self, context=None) -> Dict:
        """
        Headers Django's CsrfViewMiddleware expects on a POST.

        The token comes from the session cookie when the server has already
        set one, otherwise from the ``csrf/`` endpoint.
        """
        token = self._csrf_token or self.session.cookies.get(CSRF_COOKIE_NAME)
        if not token:
            response = self._request('GET', 'csrf/', context=context)
            self._raise_for_status(response)
            token = self._json(response).get('csrf_token') or self.session.cookies.get(CSRF_COOKIE_NAME)
            if not token:
                raise TransportFailure('Attendance service did not issue a CSRF token')
        self._csrf_token = token
        return {
            'X-CSRFToken': token,
            'Referer': f'{self.base_url}/',
        }

    # ------------------------------------------------------------------
    # RosterSource
    # ------------------------------------------------------------------

    def get_roster(self, class_id, context=None) -> List:
        response = self._request('GET', f'classes/{class_id}/roster/', context=context)
        self._raise_for_status(response)
        data = self._json(response)

        try:
            return [normalize_roster_entry(item) for item in data.get('students', [])]
        except (TypeError, ValueError) as e:
            raise TransportFailure(f'Malformed roster from attendance service: {e}') from e

    # ------------------------------------------------------------------
    # AttendanceStore
    # ------------------------------------------------------------------

    def recorded_periods(self, class_id, date, context=None) -> Set:
        response = self._request(
            'GET',
            f'classes/{class_id}/attendance/status/',
            context=context,
            params={'date': date.isoformat()},
        )
        self._raise_for_status(response)
        data = self._json(response)

        periods = set()
        if data.get('has_morning'):
            periods.add(AttendancePeriod.MORNING)
        if data.get('has_afternoon'):
            periods.add(AttendancePeriod.AFTERNOON)
        return periods

    def submit_period(self, class_id, date, period, session_id, term_id, entries, context=None) -> int:
        payload = {
            'date': date.isoformat(),
            'period': AttendancePeriod(period).value,
            'session_id': session_id,
            'term_id': term_id,
            'attendances': [entry.to_dict() for entry in entries],
        }
        response = self._request(
            'POST',
            f'classes/{class_id}/attendance/submit/',
            context=context,
            extra_headers=self._csrf_headers(context),
            json=payload,
        )

        if response.status_code in (401, 403):
            # A stale token is not retried with the same value
            self._csrf_token = None
            raise AccessDenied(self._message(response))
        if response.status_code >= 500:
            raise TransportFailure(f'Attendance service error (HTTP {response.status_code})')

        data = self._json(response)
        if response.status_code == 409:
            error_class = CONFLICT_ERRORS.get(data.get('error'), PeriodAlreadyRecorded)
            raise error_class(data.get('message'))
        if response.status_code >= 400:
            raise SubmissionRejected(data.get('message'))

        try:
            return int(data.get('recorded', len(payload['attendances'])))
        except (TypeError, ValueError) as e:
            raise TransportFailure('Malformed submission response from attendance service') from e
