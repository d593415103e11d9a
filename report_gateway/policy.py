from __future__ import annotations

from typing import Callable, Optional, Protocol

from .config import DEFAULT_IDENTITY, Settings


class GatewayPolicy(Protocol):
    def authorize(self, key: Optional[str]) -> bool: ...

    def identity(self) -> str: ...

    def destination(self) -> str: ...

    def transport(self) -> str: ...


class DefaultPolicy:
    """Accept every key and take identity, destination and transport from settings.

    Deployments that want access control either pass ``key_allowed`` or
    subclass and override ``authorize``. Without an identity override the
    relay names itself ``default_identity``, normally the gateway's class.
    """

    def __init__(
        self,
        settings: Settings,
        key_allowed: Callable[[Optional[str]], bool] | None = None,
        *,
        default_identity: str = DEFAULT_IDENTITY,
    ):
        self._settings = settings
        self._key_allowed = key_allowed
        self._default_identity = default_identity

    def authorize(self, key: Optional[str]) -> bool:
        if self._key_allowed is None:
            return True
        return bool(self._key_allowed(key))

    def identity(self) -> str:
        return self._settings.identity or self._default_identity

    def destination(self) -> str:
        return self._settings.destination

    def transport(self) -> str:
        return self._settings.mailer
