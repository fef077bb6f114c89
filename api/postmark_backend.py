"""
Custom Email Backend to send all Django emails using the Postmark API (not SMTP).

Selected in settings when POSTMARK_API_TOKEN is set. Verification and
password reset emails go out through send_email_task, which lands here.
"""

import logging

from django.conf import settings
from django.core.mail.backends.base import BaseEmailBackend
from postmarker.core import PostmarkClient

logger = logging.getLogger(__name__)


class EmailBackend(BaseEmailBackend):
    """
    Custom Email Backend for Django to send emails via Postmark API.
    """

    def __init__(self, fail_silently=False, **kwargs):
        super().__init__(fail_silently=fail_silently, **kwargs)
        self.client = PostmarkClient(server_token=settings.POSTMARK_API_TOKEN)

    @staticmethod
    def html_body(message):
        # send_mail(html_message=...) attaches the HTML as an alternative
        for content, mimetype in getattr(message, "alternatives", []) or []:
            if mimetype == "text/html":
                return content
        if getattr(message, "content_subtype", "plain") == "html":
            return message.body
        return None

    def send_messages(self, email_messages):
        """
        Sends all EmailMessage instances via Postmark API.

        Returns:
            int: The number of successfully sent messages.
        """
        if not email_messages:
            return 0

        sent_count = 0

        for message in email_messages:
            html = self.html_body(message)
            payload = {
                "From": message.from_email,
                "To": ", ".join(message.to),
                "Subject": message.subject,
            }
            if message.cc:
                payload["Cc"] = ", ".join(message.cc)
            if message.bcc:
                payload["Bcc"] = ", ".join(message.bcc)
            if html is not None:
                payload["HtmlBody"] = html
            if message.body and message.body != html:
                payload["TextBody"] = message.body

            try:
                self.client.emails.send(**payload)
                sent_count += 1
            except Exception as e:
                logger.error(f"Postmark send to {payload['To']} failed: {e}")
                if not self.fail_silently:
                    raise

        return sent_count
