"""Transports that keep both participants' game snapshots in step."""

from .base import LinkedGame, Subscription, SyncError, SyncStrategy
from .fragment import FragmentSync, decode_state, encode_state
from .memory import MemoryRelay, MemorySync
from .messages import ChatMessage, GameMessage, GameStateMessage, PlayerJoinMessage, parse_message
from .ntfy import NtfyMessenger, topic_for

__all__ = [
	"SyncStrategy",
	"SyncError",
	"Subscription",
	"LinkedGame",
	"NtfyMessenger",
	"FragmentSync",
	"MemorySync",
	"MemoryRelay",
	"GameMessage",
	"GameStateMessage",
	"PlayerJoinMessage",
	"ChatMessage",
	"parse_message",
	"encode_state",
	"decode_state",
	"topic_for",
]
