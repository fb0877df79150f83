"""ZeptoMail implementation of EmailProvider.

The HTML body is rendered from templates/emails with Jinja2 and a plain
text alternative is built alongside it. Delivery goes through an injected
httpx.AsyncClient; any failure is logged and reported as ``False``.
"""

import os
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from shared.logging import get_logger, hash_email

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.com/v1.1/email"
_AUTH_SCHEME = "Zoho-enczapikey "
_ACCEPTED_STATUSES = (200, 201, 202)
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)

OTP_SUBJECT = "Your endorsement verification code"


def _otp_text_body(
    endorser_name: Optional[str], otp_code: str, expires_in_minutes: int, manage_url: str
) -> str:
    greeting = f"Hi {endorser_name}," if endorser_name else "Hi,"
    return "\n\n".join(
        [
            "Verify it's you",
            greeting,
            "Someone requested a one-time verification code to manage your "
            "endorsement. Enter the code below on the website to continue.",
            f"Your verification code is: {otp_code}",
            f"This code expires in {expires_in_minutes} minutes.",
            "If you did not request this, you can ignore this email. "
            "No changes will be made without the code.",
            f"Manage your endorsement: {manage_url}",
        ]
    )


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: httpx.AsyncClient,
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def _authorization(self) -> str:
        token = self._settings.zepto_api_token
        return token if token.startswith(_AUTH_SCHEME) else f"{_AUTH_SCHEME}{token}"

    def _message(
        self,
        to_email: str,
        to_name: Optional[str],
        subject: str,
        html_body: str,
        text_body: str,
    ) -> dict:
        return {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [{"email_address": {"address": to_email, "name": to_name or to_email}}],
            "subject": subject,
            "htmlbody": html_body,
            "textbody": text_body,
        }

    async def _deliver(self, message: dict) -> bool:
        to_email = message["to"][0]["email_address"]["address"]
        email_hash = hash_email(to_email)

        if not self._settings.zepto_api_token:
            log.error("email_send_failed", email_hash=email_hash, reason="token_not_configured")
            return False

        try:
            response = await self._http.post(
                _ZEPTO_API_URL,
                json=message,
                headers={
                    "Authorization": self._authorization(),
                    "Content-Type": "application/json",
                },
            )
        except Exception as e:
            log.error(
                "email_send_error",
                email_hash=email_hash,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if response.status_code not in _ACCEPTED_STATUSES:
            log.error(
                "email_send_failed",
                email_hash=email_hash,
                status_code=response.status_code,
                response=response.text[:200],
            )
            return False

        log.info("email_sent", email_hash=email_hash, subject=message["subject"])
        return True

    async def send_endorsement_otp_email(
        self,
        email: str,
        endorser_name: Optional[str],
        otp_code: str,
        expires_in_minutes: int,
        manage_url: str,
    ) -> bool:
        html_body = self._jinja.get_template("endorsement_otp.html").render(
            endorser_name=endorser_name,
            otp_code=otp_code,
            expires_in_minutes=expires_in_minutes,
            manage_url=manage_url,
        )
        text_body = _otp_text_body(endorser_name, otp_code, expires_in_minutes, manage_url)
        return await self._deliver(
            self._message(email, endorser_name, OTP_SUBJECT, html_body, text_body)
        )
