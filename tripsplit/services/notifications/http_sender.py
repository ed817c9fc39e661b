"""
HTTP Payment-Request Sender

Posts the payment request to the send-expense-request function:

    POST <function_url>
    {"tripId", "tripName", "currency", "debtorName", "creditorName", "amount"}

and reads back {"success": true} or {"error": "..."}.

Transport failures (connection refused, timeouts) are retried with
exponential backoff. An explicit error answer from the function is
returned as-is and never retried.
"""

import asyncio
from typing import Optional

import requests
import structlog
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from tripsplit.config import NotificationSettings, get_settings
from tripsplit.models.expense import NotificationResult, PaymentRequest
from tripsplit.services.notifications.interface import (
    NotificationDeliveryError,
    NotificationPort,
)


class HttpPaymentRequestSender(NotificationPort):
    """Delivers payment requests through an HTTP function endpoint."""

    service_name = "send-expense-request"

    def __init__(
        self,
        settings: Optional[NotificationSettings] = None,
        session: Optional[requests.Session] = None,
        retry_wait: Optional[wait_base] = None,
    ):
        self._settings = settings or get_settings().notifications
        self._session = session or requests.Session()
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=8)
        self._logger = structlog.get_logger(__name__)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._settings.api_key:
            headers["Authorization"] = f"Bearer {self._settings.api_key}"
        return headers

    def _post(self, payload: dict) -> requests.Response:
        retrying = Retrying(
            stop=stop_after_attempt(self._settings.max_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception_type(
                (requests.ConnectionError, requests.Timeout)
            ),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                return self._session.post(
                    self._settings.function_url,
                    json=payload,
                    headers=self._headers(),
                    timeout=self._settings.timeout_seconds,
                )

    def _deliver(self, request: PaymentRequest) -> NotificationResult:
        try:
            response = self._post(request.to_payload())
        except requests.RequestException as e:
            raise NotificationDeliveryError(
                self.service_name,
                f"Could not reach notification service: {e}",
            )

        try:
            body = response.json()
        except ValueError:
            raise NotificationDeliveryError(
                self.service_name,
                f"Notification service returned non-JSON response "
                f"(HTTP {response.status_code})",
            )

        result = NotificationResult.from_response(body)
        if not result.success and response.ok:
            self._logger.warning(
                "payment_request_unexpected_body",
                status_code=response.status_code,
            )
        return result

    async def send_payment_request(self, request: PaymentRequest) -> NotificationResult:
        """POST the request; blocking I/O runs in a worker thread."""
        self._logger.info(
            "payment_request_sending",
            debtor=request.debtor_name,
            creditor=request.creditor_name,
            trip_id=str(request.trip_id) if request.trip_id else None,
        )
        return await asyncio.to_thread(self._deliver, request)
