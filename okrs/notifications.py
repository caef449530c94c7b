"""
Fire-and-forget delivery of OKR notification emails.

The lifecycle schedules a notification with ``transaction.on_commit`` once
its row is saved; delivery then runs on a daemon thread so the HTTP response
never waits on the email provider. Outcomes are only logged.
"""
import logging
import threading

from .exceptions import NotifierError
from .services.resend_client import ResendClient

logger = logging.getLogger(__name__)


def deliver_notification(recipient_email, okr_title, action, client=None):
    """
    Send one notification and log the outcome.

    Returns True on success, False on failure. Never raises.
    """
    try:
        client = client or ResendClient()
        client.notify(recipient_email, okr_title, action)
        return True
    except (NotifierError, ValueError) as e:
        logger.warning(f"OKR '{action}' notification for '{okr_title}' not sent: {e}")
    except Exception:
        logger.exception(f"Unexpected error sending OKR '{action}' notification for '{okr_title}'")
    return False


def dispatch_notification(recipient_email, okr_title, action):
    """Start delivery on a background thread and return immediately."""
    thread = threading.Thread(
        target=deliver_notification,
        args=(recipient_email, okr_title, action),
        name=f"okr-notify-{action}",
        daemon=True,
    )
    thread.start()
    return thread
