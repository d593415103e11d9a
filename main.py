from __future__ import annotations

import argparse
import logging
import os
import sys

from report_gateway import config
from report_gateway.cgi_adapter import handle_cgi
from report_gateway.gateway import HTTPGateway
from report_gateway.models import Outcome
from report_gateway.response import render_outcome


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Relay test reports received over HTTP by mail.")
    sub = parser.add_subparsers(dest="command", required=True)
    serve = sub.add_parser("serve", help="run the HTTP gateway with uvicorn")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8080)
    sub.add_parser("cgi", help="handle a single CGI request from the environment")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        # stdout carries the CGI response
        stream=sys.stderr,
    )
    try:
        settings = config.Settings.from_env()
    except ValueError as exc:
        logging.error("Missing configuration: %s", exc)
        if args.command == "cgi":
            # The CGI caller still gets its one response.
            sys.stdout.write(render_outcome(Outcome.failure(500, None)).to_cgi())
            sys.stdout.flush()
        return 1

    gateway = HTTPGateway(settings)
    logging.info(
        "Relaying reports to %s via %s (identity=%s)",
        settings.destination,
        settings.mailer,
        gateway.policy.identity(),
    )

    if args.command == "cgi":
        handle_cgi(gateway, os.environ, sys.stdin.buffer, sys.stdout)
        return 0

    import uvicorn

    from report_gateway.app import create_app

    uvicorn.run(create_app(gateway), host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
