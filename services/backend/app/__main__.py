"""Run the service with uvicorn: ``python -m app``."""

from __future__ import annotations

import uvicorn

from app.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.service_port)


if __name__ == "__main__":
    main()
