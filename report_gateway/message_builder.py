from __future__ import annotations

from .models import OutboundMessage, ValidatedFields


def format_reported_via(identity: str, version: str, via: str) -> str:
    return f"{identity} {version} relayed from {via}"


def build_message(fields: ValidatedFields, *, destination: str, identity: str, version: str) -> OutboundMessage:
    """Compose the relayed mail. Field values pass through untouched."""
    return OutboundMessage(
        to=destination,
        from_addr=fields.from_addr,
        subject=fields.subject,
        body=fields.report,
        reported_via=format_reported_via(identity, version, fields.via),
    )
