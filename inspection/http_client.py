"""
inspection/http_client.py

Persistence port backed by the SiteProof QA HTTP API, for checklist
workflows running outside the API process (field tablets, scripts).

Requests go through one ``requests.Session`` with a per-request timeout.
429 and 5xx responses, timeouts and connection errors are retried with
exponential backoff; every other failure raises ``PersistenceError``
straight away. Upserts are safe to retry because the server keys them on
``(lot_id, itp_item_id)``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Any

import requests

from app.config import ApiClientSettings, get_api_client_settings
from inspection.answers import ChecklistItem, ConformancePatch, ConformanceRecord
from inspection.errors import PersistenceError
from inspection.ports import ChecklistSnapshot

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class HttpConformancePersistence:
    def __init__(
        self,
        *,
        settings: ApiClientSettings | None = None,
        session: requests.Session | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        settings = settings or get_api_client_settings()
        self._base_url = settings.base_url.rstrip("/")
        self._timeout_seconds = settings.timeout_seconds
        self._max_retries = settings.max_retries
        self._backoff_initial_seconds = settings.backoff_initial_seconds
        self._backoff_multiplier = settings.backoff_multiplier
        self._session = session or requests.Session()
        self._headers = dict(headers or {})

    def upsert_conformance_records(self, records: Sequence[ConformancePatch]) -> None:
        """Send one batch request per lot in the order the lots first appear."""
        by_lot: dict[str, list[dict[str, Any]]] = {}
        for patch in records:
            body = patch.to_payload()
            body.pop("lot_id")
            by_lot.setdefault(patch.lot_id, []).append(body)

        for lot_id, rows in by_lot.items():
            self._request_json(
                method="POST",
                url=f"{self._base_url}/lots/{lot_id}/conformance",
                json={"records": rows},
            )

    def fetch_checklist_with_answers(self, lot_id: str) -> ChecklistSnapshot:
        payload = self._request_json(method="GET", url=f"{self._base_url}/lots/{lot_id}/checklist")
        try:
            return ChecklistSnapshot(
                lot_id=lot_id,
                items=[ChecklistItem.from_mapping(item) for item in payload.get("items", [])],
                answers=[ConformanceRecord.from_mapping(answer) for answer in payload.get("answers", [])],
                lot_status=payload.get("lot_status"),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise PersistenceError(f"Unexpected checklist payload for lot {lot_id}: {exc}") from exc

    def _request_json(
        self,
        *,
        method: str,
        url: str,
        json: dict[str, Any] | None = None,
    ) -> Any:
        response = self._request(method=method, url=url, json=json)
        try:
            return response.json()
        except ValueError as exc:
            raise PersistenceError(f"{method} {url}: response was not valid JSON.") from exc

    def _request(
        self,
        *,
        method: str,
        url: str,
        json: dict[str, Any] | None = None,
    ) -> requests.Response:
        """
        Execute an HTTP request with exponential backoff on transient failures.
        """

        last_error: Exception | None = None
        for attempt in range(self._max_retries + 1):
            try:
                response = self._session.request(
                    method=method,
                    url=url,
                    json=json,
                    headers=self._headers or None,
                    timeout=self._timeout_seconds,
                )
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable HTTP status code: {response.status_code}",
                        response=response,
                    )
                response.raise_for_status()
                return response
            except requests.HTTPError as exc:
                last_error = exc
                status_code = exc.response.status_code if exc.response is not None else None
                if status_code not in RETRYABLE_STATUS_CODES:
                    detail = _error_detail(exc.response)
                    logger.error(
                        "Conformance API request failed method=%s status=%s url=%s detail=%s",
                        method,
                        status_code,
                        url,
                        detail,
                    )
                    raise PersistenceError(f"{method} {url} failed with HTTP {status_code}: {detail}") from exc
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc

            if attempt >= self._max_retries:
                break

            backoff_seconds = self._backoff_initial_seconds * (self._backoff_multiplier**attempt)
            logger.warning(
                "Conformance API request retry method=%s attempt=%s/%s wait_seconds=%.2f url=%s",
                method,
                attempt + 1,
                self._max_retries,
                backoff_seconds,
                url,
            )
            time.sleep(backoff_seconds)

        logger.error(
            "Conformance API request exhausted retries method=%s url=%s error=%s",
            method,
            url,
            last_error,
        )
        raise PersistenceError(f"{method} {url} failed after retries: {last_error}") from last_error


def _error_detail(response: requests.Response | None) -> str:
    if response is None:
        return ""
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)[:500]
