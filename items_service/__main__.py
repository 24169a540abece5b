from __future__ import annotations

import argparse

import uvicorn

from items_service.config import get_settings


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Items service HTTP server")
    parser.add_argument("--host", default=settings.host, help="Interface to bind")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to listen on")
    args = parser.parse_args()

    # Logging is configured by the application lifespan; keep uvicorn from installing its own.
    uvicorn.run("items_service.main:create_app", factory=True, host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
