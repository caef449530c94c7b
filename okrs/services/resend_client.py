"""
Resend API client for OKR notification emails.

Sends one templated message per OKR create/update through the Resend
HTTP API (https://resend.com/docs/api-reference/emails/send-email).
"""
import html
import logging
from typing import Dict, Optional

import requests
from django.conf import settings

from okrs.exceptions import NotifierError

logger = logging.getLogger(__name__)

NOTIFICATION_ACTIONS = ('created', 'updated')


def build_subject(okr_title: str, action: str) -> str:
    return f"OKR {action}: {okr_title}"


def build_html(okr_title: str, action: str) -> str:
    title = html.escape(okr_title)
    return (
        f"<h1>OKR {html.escape(action)}</h1>"
        f"<p>Your OKR \"<strong>{title}</strong>\" has been {html.escape(action.lower())}.</p>"
        "<p>Visit your dashboard to view all your OKRs.</p>"
        "<p>Best regards,<br>The OKR Manager Team</p>"
    )


class ResendClient:
    """Client for the Resend transactional email API."""

    BASE_URL = "https://api.resend.com"
    TIMEOUT = 10

    def __init__(self, api_key: Optional[str] = None, sender: Optional[str] = None):
        """
        Initialize the Resend client.

        Args:
            api_key: Resend API key. If not provided, uses settings.RESEND_API_KEY.
            sender: From address. If not provided, uses settings.OKR_NOTIFICATION_SENDER.
        """
        self.api_key = api_key or settings.RESEND_API_KEY
        self.sender = sender or settings.OKR_NOTIFICATION_SENDER

        if not self.api_key:
            raise ValueError(
                "Resend API key not found. "
                "Set RESEND_API_KEY in the environment or settings."
            )

    def send_email(self, to: str, subject: str, html_body: str) -> Dict:
        """
        Send one email.

        Returns:
            Response JSON data (contains the message id)

        Raises:
            NotifierError: If the request fails or Resend rejects it.
        """
        url = f"{self.BASE_URL}/emails"
        headers = {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
        }
        payload = {
            'from': self.sender,
            'to': [to],
            'subject': subject,
            'html': html_body,
        }

        try:
            response = requests.post(url, json=payload, headers=headers, timeout=self.TIMEOUT)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            detail = e.response.text if e.response is not None else ''
            raise NotifierError(f"Resend rejected the email: {e} {detail}".strip()) from e
        except requests.exceptions.RequestException as e:
            raise NotifierError(f"Could not reach Resend: {e}") from e

        return response.json()

    def notify(self, recipient_email: str, okr_title: str, action: str) -> Dict:
        """
        Tell ``recipient_email`` that the OKR ``okr_title`` was created or updated.

        Raises:
            NotifierError: If ``action`` is unknown or the email could not be sent.
        """
        if action not in NOTIFICATION_ACTIONS:
            raise NotifierError(f"Unknown notification action: {action}")
        if not recipient_email:
            raise NotifierError("Recipient email is required")

        result = self.send_email(
            to=recipient_email,
            subject=build_subject(okr_title, action),
            html_body=build_html(okr_title, action),
        )
        logger.info(f"Sent '{action}' notification for '{okr_title}' to {recipient_email}")
        return result
