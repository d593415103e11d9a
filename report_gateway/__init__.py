"""HTTP-to-mail relay for test reports."""

__all__ = [
    "app",
    "cgi_adapter",
    "config",
    "errors",
    "gateway",
    "mailer",
    "message_builder",
    "models",
    "policy",
    "response",
    "validator",
]
