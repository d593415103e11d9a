from __future__ import annotations

import logging
from typing import IO, Dict, List, Mapping
from urllib.parse import parse_qs

from .gateway import HTTPGateway

logger = logging.getLogger(__name__)

FORM_URLENCODED = "application/x-www-form-urlencoded"


def read_cgi_form(environ: Mapping[str, str], stdin: IO[bytes]) -> Dict[str, List[str]]:
    """Collect form fields from a CGI request: query string first, then a urlencoded POST body."""
    fields: Dict[str, List[str]] = {}
    for name, values in parse_qs(environ.get("QUERY_STRING", ""), keep_blank_values=True).items():
        fields.setdefault(name, []).extend(values)

    if environ.get("REQUEST_METHOD", "GET").upper() != "POST":
        return fields

    content_type = environ.get("CONTENT_TYPE", FORM_URLENCODED).split(";", 1)[0].strip().lower()
    if content_type != FORM_URLENCODED:
        logger.warning("Ignoring POST body with content type %s", content_type)
        return fields

    try:
        length = int(environ.get("CONTENT_LENGTH") or 0)
    except ValueError:
        length = 0
    body = stdin.read(length).decode("utf-8", errors="surrogateescape") if length > 0 else ""
    # Bytes that are not UTF-8 survive as surrogates and are restored on send.
    parsed = parse_qs(body, keep_blank_values=True, encoding="utf-8", errors="surrogateescape")
    for name, values in parsed.items():
        # POST values take precedence over the query string.
        fields[name] = values + fields.get(name, [])
    return fields


def handle_cgi(gateway: HTTPGateway, environ: Mapping[str, str], stdin: IO[bytes], stdout: IO[str]) -> int:
    response = gateway.handle(read_cgi_form(environ, stdin))
    stdout.write(response.to_cgi())
    stdout.flush()
    return response.status
