"""Serve the SSO bridge with Granian: ``python -m sso_bridge``."""

from granian import Granian
from granian.constants import Interfaces

from sso_bridge.config import Settings


def main() -> None:
    settings = Settings()
    server = Granian(
        "sso_bridge.main:create_app",
        address=settings.host,
        port=settings.port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
