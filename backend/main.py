from __future__ import annotations

import argparse
import logging
import os

import uvicorn

from server.config import TRANSPORTS, Settings


def parse_args() -> argparse.Namespace:
	defaults = Settings.from_env()
	parser = argparse.ArgumentParser(description="Run a local checkers client for playing a remote friend.")
	parser.add_argument("--host", default="127.0.0.1", help="Bind host for the local client.")
	parser.add_argument("--port", type=int, default=8000, help="Port for the local client.")
	parser.add_argument("--reload", action="store_true", help="Enable autoreload (development only).")
	parser.add_argument("--log-level", default="info", help="Log level for the client and uvicorn.")
	parser.add_argument("--transport", choices=TRANSPORTS, default=defaults.transport, help="How moves reach the other player.")
	parser.add_argument("--ntfy-url", default=defaults.ntfy_url, help="Base URL of the ntfy-compatible relay.")
	parser.add_argument("--page-url", default=None, help="Address shared in game links (defaults to the bind address).")
	parser.add_argument("--retry-delay", type=float, default=defaults.retry_delay, help="Seconds to wait before resubscribing.")
	return parser.parse_args()


def main() -> None:
	args = parse_args()
	logging.basicConfig(
		level=getattr(logging, args.log_level.upper(), logging.INFO),
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)
	settings = Settings(
		transport=args.transport,
		ntfy_url=args.ntfy_url,
		page_url=args.page_url or f"http://{args.host}:{args.port}/",
		retry_delay=args.retry_delay,
	)
	# the app factory reads its settings back from the environment, also after a reload
	os.environ.update(settings.to_env())
	uvicorn.run(
		"server.app:create_app",
		factory=True,
		host=args.host,
		port=args.port,
		reload=args.reload,
		log_level=args.log_level,
	)


if __name__ == "__main__":
	main()
