"""
Email Payment-Request Sender

Renders the payment-request email and sends it through the Resend API.
Needs the debtor's email address on the request; requests without one
fail immediately with an advisory result.
"""

import asyncio
from html import escape
from typing import Optional

import requests
import structlog
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from tripsplit.config import ResendSettings, get_settings
from tripsplit.formatting import format_amount
from tripsplit.models.expense import NotificationResult, PaymentRequest
from tripsplit.services.notifications.interface import (
    NotificationDeliveryError,
    NotificationPort,
)


def render_subject(request: PaymentRequest) -> str:
    return f"Trip Expense Request - {request.trip_name}"


def render_html(request: PaymentRequest) -> str:
    """HTML body of the payment-request email."""
    trip = escape(request.trip_name)
    creditor = escape(request.creditor_name)
    amount = escape(format_amount(request.amount, request.currency))

    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #333; border-bottom: 2px solid #4F46E5; padding-bottom: 10px;">
    Trip Expense Request - {trip}
  </h2>
  <p style="font-size: 16px; color: #555;">Hello {escape(request.debtor_name)},</p>
  <p style="font-size: 16px; color: #555;">
    {creditor} has requested <strong>{amount}</strong> from you for trip <strong>{trip}</strong>.
  </p>
  <div style="background-color: #F3F4F6; padding: 20px; border-radius: 8px; margin: 20px 0;">
    <h3 style="color: #333; margin-top: 0;">Payment Details:</h3>
    <p style="font-size: 18px; margin: 5px 0;"><strong>Amount Due: {amount}</strong></p>
    <p style="font-size: 14px; color: #666; margin: 5px 0;">Trip: {trip}</p>
    <p style="font-size: 14px; color: #666; margin: 5px 0;">Requested by: {creditor}</p>
  </div>
  <p style="font-size: 16px; color: #555;">Please settle this expense at your earliest convenience.</p>
  <p style="font-size: 14px; color: #888; margin-top: 30px;">
    This is an automated message from TripSplit. Please do not reply to this email.
  </p>
</div>
""".strip()


class EmailPaymentRequestSender(NotificationPort):
    """Sends payment requests as email via Resend."""

    service_name = "resend"

    def __init__(
        self,
        settings: Optional[ResendSettings] = None,
        session: Optional[requests.Session] = None,
        retry_wait: Optional[wait_base] = None,
    ):
        self._settings = settings or get_settings().resend
        self._session = session or requests.Session()
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)
        self._logger = structlog.get_logger(__name__)

    def build_message(self, request: PaymentRequest) -> dict:
        """Resend API body for a request."""
        return {
            "from": self._settings.from_address,
            "to": [request.recipient_email],
            "subject": render_subject(request),
            "html": render_html(request),
        }

    def _post(self, message: dict) -> requests.Response:
        retrying = Retrying(
            stop=stop_after_attempt(3),
            wait=self._retry_wait,
            retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                return self._session.post(
                    self._settings.api_url,
                    json=message,
                    headers={
                        "Authorization": f"Bearer {self._settings.api_key}",
                        "Content-Type": "application/json",
                    },
                    timeout=10,
                )

    def _deliver(self, request: PaymentRequest) -> NotificationResult:
        try:
            response = self._post(self.build_message(request))
        except requests.RequestException as e:
            raise NotificationDeliveryError(self.service_name, f"Could not reach Resend: {e}")

        if not response.ok:
            self._logger.error(
                "resend_api_error",
                status_code=response.status_code,
                body=response.text,
            )
            return NotificationResult.failed("Failed to send email")

        return NotificationResult(success=True)

    async def send_payment_request(self, request: PaymentRequest) -> NotificationResult:
        if not request.recipient_email:
            return NotificationResult.failed(
                f"No email address on file for {request.debtor_name}"
            )
        return await asyncio.to_thread(self._deliver, request)
