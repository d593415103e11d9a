from __future__ import annotations

import logging
import smtplib
from typing import Callable, Dict, Protocol

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Email, Header, Mail

from .config import Settings
from .errors import DeliveryError
from .models import OutboundMessage

logger = logging.getLogger(__name__)

BREVO_URL = "https://api.brevo.com/v3/smtp/email"


class MailError(Exception):
    """Raised when mail sending fails."""


class MailSender(Protocol):
    provider: str

    def send(self, message: OutboundMessage) -> None: ...


class SMTPMailer:
    provider = "smtp"

    def __init__(self, settings: Settings):
        self._host = settings.smtp_host
        self._port = settings.smtp_port
        self._timeout = settings.smtp_timeout
        self._starttls = settings.smtp_starttls
        self._username = settings.smtp_username
        self._password = settings.smtp_password

    def send(self, message: OutboundMessage) -> None:
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
                if self._starttls:
                    server.starttls()
                if self._username and self._password:
                    server.login(self._username, self._password)
                # Envelope addresses are taken as submitted, not re-parsed.
                refused = server.sendmail(message.from_addr, [message.to], message.as_bytes())
        except (smtplib.SMTPException, OSError, UnicodeEncodeError) as exc:
            raise MailError(f"SMTP delivery via {self._host}:{self._port} failed: {exc}") from exc
        if refused:
            raise MailError(f"SMTP server refused recipients: {refused}")
        logger.info("Mail sent via SMTP %s:%s", self._host, self._port)


class BrevoMailer:
    provider = "brevo"

    def __init__(self, api_key: str, client: httpx.Client | None = None):
        self._api_key = api_key
        self._client = client

    def send(self, message: OutboundMessage) -> None:
        payload = {
            "sender": {"email": message.from_addr},
            "to": [{"email": message.to}],
            "subject": message.subject,
            "textContent": message.body,
            "headers": {"X-Reported-Via": message.reported_via},
        }
        headers = {"api-key": self._api_key, "content-type": "application/json"}
        try:
            if self._client is not None:
                response = self._client.post(BREVO_URL, json=payload, headers=headers)
            else:
                with httpx.Client(timeout=20.0) as client:
                    response = client.post(BREVO_URL, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise MailError(f"Brevo returned error status: {exc.response.status_code}") from exc
        except httpx.RequestError as exc:
            raise MailError(f"Brevo request failed: {exc}") from exc
        logger.info("Mail sent with status %s", response.status_code)


class SendGridMailer:
    provider = "sendgrid"

    def __init__(self, api_key: str):
        self._client = SendGridAPIClient(api_key)

    def send(self, message: OutboundMessage) -> None:
        mail = Mail(
            from_email=Email(email=message.from_addr),
            to_emails=message.to,
            subject=message.subject,
            plain_text_content=message.body,
        )
        mail.header = Header("X-Reported-Via", message.reported_via)
        try:
            response = self._client.send(mail)
        except Exception as exc:  # noqa: BLE001
            raise MailError(f"Failed to send email: {exc}") from exc
        if response.status_code >= 400:
            raise MailError(f"SendGrid returned error status: {response.status_code}")
        logger.info("Mail sent with status %s", response.status_code)


class SESMailer:
    provider = "ses"

    def __init__(self, *, aws_region: str):
        self._client = boto3.client("sesv2", region_name=aws_region)

    def send(self, message: OutboundMessage) -> None:
        # Raw content keeps X-Reported-Via intact.
        raw = message.as_bytes()
        try:
            response = self._client.send_email(
                FromEmailAddress=message.from_addr,
                Destination={"ToAddresses": [message.to]},
                Content={"Raw": {"Data": raw}},
            )
        except (ClientError, BotoCoreError) as exc:
            raise MailError(f"Failed to send email: {exc}") from exc
        status_code = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        if isinstance(status_code, int) and status_code >= 400:
            raise MailError(f"SES returned error status: {status_code}")
        logger.info("Mail sent with status %s", status_code)


def _smtp(settings: Settings) -> MailSender:
    return SMTPMailer(settings)


def _brevo(settings: Settings) -> MailSender:
    if not settings.brevo_api_key:
        raise MailError("Brevo transport selected but BREVO_API_KEY is not set.")
    return BrevoMailer(settings.brevo_api_key)


def _sendgrid(settings: Settings) -> MailSender:
    if not settings.sendgrid_api_key:
        raise MailError("SendGrid transport selected but SENDGRID_API_KEY is not set.")
    return SendGridMailer(settings.sendgrid_api_key)


def _ses(settings: Settings) -> MailSender:
    if not settings.aws_region:
        raise MailError("No AWS region configured: set AWS_REGION or AWS_DEFAULT_REGION.")
    return SESMailer(aws_region=settings.aws_region)


TRANSPORTS: Dict[str, Callable[[Settings], MailSender]] = {
    "smtp": _smtp,
    "brevo": _brevo,
    "sendgrid": _sendgrid,
    "ses": _ses,
}

MailerFactory = Callable[[str, Settings], MailSender]


def build_mailer(transport: str, settings: Settings) -> MailSender:
    """
    Transport selection is case-insensitive: SMTP, Brevo, SendGrid, SES.
    """
    factory = TRANSPORTS.get(transport.strip().lower())
    if factory is None:
        raise MailError(f"Unknown mail transport: {transport!r}")
    return factory(settings)


def deliver(
    message: OutboundMessage,
    transport: str,
    *,
    settings: Settings,
    mailer_factory: MailerFactory = build_mailer,
) -> None:
    try:
        mailer = mailer_factory(transport, settings)
        mailer.send(message)
    except MailError as exc:
        logger.error("Mail delivery to %s via %s failed: %s", message.to, transport, exc)
        raise DeliveryError(exc) from exc
    logger.info("Report relayed to %s via %s", message.to, mailer.provider)
