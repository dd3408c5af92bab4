"""Email gateway posting JSON messages to an HTTP mail API."""

from __future__ import annotations

import logging

import requests

from mystorage_auth.core.logger import mask_email
from mystorage_auth.core.settings import EmailSettings
from mystorage_auth.services._shared.ports import EmailGateway, SendResult

log = logging.getLogger(__name__)


class HttpEmailGateway(EmailGateway):
    """
    Send transactional mail through a provider's REST endpoint.

    The request body is ``{from, to, subject, content, html_content}`` and the
    provider credentials travel in the ``consumerKey`` / ``consumerSecret``
    headers. Every failure is reported as a :class:`SendResult`; nothing is
    raised to the caller.

    :param settings: Endpoint, credentials and timeout.
    :type settings: EmailSettings
    :param session: Optional :class:`requests.Session` (connection reuse).
    :type session: requests.Session | None
    """

    def __init__(self, settings: EmailSettings, session: requests.Session | None = None) -> None:
        self.settings = settings
        self.http = session or requests.Session()

    def send(self, to_address: str, subject: str, html_body: str) -> SendResult:
        if not self.settings.is_configured:
            log.error(
                "email gateway is not configured; message to %s dropped", mask_email(to_address)
            )
            return SendResult.failed("Email API credentials are not configured.")

        payload = {
            "from": self.settings.sender,
            "to": to_address,
            "subject": subject,
            "content": subject,
            "html_content": html_body,
        }
        headers = {
            "consumerKey": self.settings.consumer_key,
            "consumerSecret": self.settings.consumer_secret,
        }
        try:
            resp = self.http.post(
                self.settings.api_url,
                json=payload,
                headers=headers,
                timeout=self.settings.timeout_seconds,
            )
        except requests.RequestException as exc:
            log.error(
                "email delivery to %s failed: %s",
                mask_email(to_address),
                exc.__class__.__name__,
                exc_info=True,
            )
            return SendResult.failed(f"Transport error: {exc.__class__.__name__}")

        if not resp.ok:
            log.error(
                "email provider rejected message to %s with HTTP %s",
                mask_email(to_address),
                resp.status_code,
            )
            return SendResult.failed(
                f"Provider returned HTTP {resp.status_code}: {resp.text[:200]}"
            )

        log.info("email sent to %s", mask_email(to_address))
        return SendResult.ok()
