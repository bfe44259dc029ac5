# chat_relay/__main__.py
"""
Entry point for the chat relay.

Usage:
    python -m chat_relay
    python -m chat_relay --port 8080
"""
import argparse
import logging

import uvicorn

from chat_relay.config import get_settings


def main():
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Gemini chat relay")
    parser.add_argument("--host", default=settings.host, help="Host to bind to")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to bind to")
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger(__name__).info("Server is running on http://%s:%d", args.host, args.port)
    uvicorn.run("chat_relay.main:app", host=args.host, port=args.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
