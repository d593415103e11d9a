from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

VERSION = "0.001"

# --------------------------------
# 設定値

# 既定のメール送信方式
DEFAULT_MAILER = "SMTP"

# 既定の送信先（CPAN Testers の受付アドレス）
DEFAULT_DESTINATION = "cpan-testers@perl.org"

# X-Reported-Via ヘッダーに入れる中継サーバ自身の名前（未設定ならゲートウェイのクラス名）
DEFAULT_IDENTITY = "report_gateway.gateway.HTTPGateway"

MAILER_ENV = "TEST_REPORTER_HTTPGATEWAY_MAILER"
ADDRESS_ENV = "TEST_REPORTER_HTTPGATEWAY_ADDRESS"
IDENTITY_ENV = "TEST_REPORTER_HTTPGATEWAY_VIA"

DEFAULT_SMTP_HOST = "localhost"
DEFAULT_SMTP_PORT = 25
DEFAULT_SMTP_TIMEOUT = 30.0

_TRUTHY = {"1", "true", "yes", "on"}
# --------------------------------


@dataclass(frozen=True)
class Settings:
    mailer: str = DEFAULT_MAILER
    destination: str = DEFAULT_DESTINATION
    identity: Optional[str] = None
    smtp_host: str = DEFAULT_SMTP_HOST
    smtp_port: int = DEFAULT_SMTP_PORT
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_starttls: bool = False
    smtp_timeout: float = DEFAULT_SMTP_TIMEOUT
    brevo_api_key: Optional[str] = None
    sendgrid_api_key: Optional[str] = None
    aws_region: Optional[str] = None

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> "Settings":
        e = env if env is not None else os.environ

        def optional_with_default(name: str, default: str) -> str:
            value = e.get(name)
            if value is None or not value.strip():
                return default
            return value.strip()

        def optional(name: str) -> str | None:
            value = e.get(name)
            if value is None or not value.strip():
                return None
            return value.strip()

        def number(name: str, default: float, cast: type) -> float:
            raw = optional(name)
            if raw is None:
                return default
            try:
                return cast(raw)
            except ValueError as exc:
                raise ValueError(f"Environment variable {name} must be a number, got {raw!r}.") from exc

        starttls = optional("SMTP_STARTTLS")

        return Settings(
            mailer=optional_with_default(MAILER_ENV, DEFAULT_MAILER),
            destination=optional_with_default(ADDRESS_ENV, DEFAULT_DESTINATION),
            identity=optional(IDENTITY_ENV),
            smtp_host=optional_with_default("SMTP_HOST", DEFAULT_SMTP_HOST),
            smtp_port=int(number("SMTP_PORT", DEFAULT_SMTP_PORT, int)),
            smtp_username=optional("SMTP_USERNAME"),
            smtp_password=optional("SMTP_PASSWORD"),
            smtp_starttls=starttls is not None and starttls.lower() in _TRUTHY,
            smtp_timeout=float(number("SMTP_TIMEOUT", DEFAULT_SMTP_TIMEOUT, float)),
            brevo_api_key=optional("BREVO_API_KEY"),
            sendgrid_api_key=optional("SENDGRID_API_KEY"),
            aws_region=optional("AWS_REGION") or optional("AWS_DEFAULT_REGION"),
        )
