from __future__ import annotations

import logging

import uvicorn

from .config import GameSettings
from .main import SETTINGS_FILE


def main() -> None:
    settings = GameSettings.load(SETTINGS_FILE)
    logging.basicConfig(
        level=settings.server.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "jungeon.main:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.server.log_level.lower(),
    )


if __name__ == "__main__":
    main()
