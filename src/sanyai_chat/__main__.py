"""Run the API server: ``python -m sanyai_chat`` or ``sanyai-chat``."""

import argparse

import uvicorn

from .config import get_settings


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Run the Sanyai chat API server")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Host to bind")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to bind")
    args = parser.parse_args()

    uvicorn.run("sanyai_chat.api.app:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
