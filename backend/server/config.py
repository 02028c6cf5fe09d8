from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from sync.base import SyncStrategy
from sync.fragment import FragmentSync
from sync.ntfy import DEFAULT_BASE_URL, RETRY_DELAY, NtfyMessenger

TRANSPORTS = ("ntfy", "fragment")

ENV_TRANSPORT = "CHECKERS_TRANSPORT"
ENV_NTFY_URL = "CHECKERS_NTFY_URL"
ENV_PAGE_URL = "CHECKERS_PAGE_URL"
ENV_RETRY_DELAY = "CHECKERS_RETRY_DELAY"


@dataclass(frozen=True)
class Settings:
    transport: str = "ntfy"
    ntfy_url: str = DEFAULT_BASE_URL
    page_url: str = "http://localhost:8000/"
    retry_delay: float = RETRY_DELAY

    def __post_init__(self) -> None:
        if self.transport not in TRANSPORTS:
            raise ValueError(f"Unsupported transport '{self.transport}'.")
        if self.retry_delay < 0:
            raise ValueError("Retry delay cannot be negative.")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()
        raw_delay = env.get(ENV_RETRY_DELAY)
        try:
            retry_delay = float(raw_delay) if raw_delay else defaults.retry_delay
        except ValueError as exc:
            raise ValueError(f"{ENV_RETRY_DELAY} must be a number of seconds.") from exc
        return cls(
            transport=env.get(ENV_TRANSPORT, defaults.transport).strip().lower(),
            ntfy_url=env.get(ENV_NTFY_URL, defaults.ntfy_url),
            page_url=env.get(ENV_PAGE_URL, defaults.page_url),
            retry_delay=retry_delay,
        )

    def to_env(self) -> dict[str, str]:
        return {
            ENV_TRANSPORT: self.transport,
            ENV_NTFY_URL: self.ntfy_url,
            ENV_PAGE_URL: self.page_url,
            ENV_RETRY_DELAY: str(self.retry_delay),
        }


def build_strategy(settings: Settings) -> SyncStrategy:
    if settings.transport == "fragment":
        return FragmentSync(page_url=settings.page_url)
    return NtfyMessenger(
        settings.ntfy_url,
        page_url=settings.page_url,
        retry_delay=settings.retry_delay,
    )
