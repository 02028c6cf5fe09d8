from __future__ import annotations

import base64
import json
import sys
import unittest
from pathlib import Path


BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))


from core.board import Board  # noqa: E402
from core.pieces import Piece  # noqa: E402
from core.player import Player  # noqa: E402
from core.state import GameState  # noqa: E402
from server.session import SCREEN_GAME, SCREEN_LOBBY, SCREEN_WAITING, SEND_FAILED, GameSession  # noqa: E402
from sync.fragment import FragmentSync, decode_state  # noqa: E402
from sync.memory import MemoryRelay, MemorySync  # noqa: E402
from sync.messages import GameStateMessage, parse_message  # noqa: E402


P1, P2 = Player.PLAYER_1, Player.PLAYER_2

# red captures the man on (3, 4) and black recaptures from (1, 4)
CAPTURE_LINE = [
    (P1, (5, 2), (4, 3)),
    (P2, (2, 5), (3, 4)),
    (P1, (4, 3), (2, 5)),
    (P2, (1, 4), (3, 6)),
]


def _double_jump_state() -> GameState:
    pieces = {(5, 0): Piece.man(P1), (4, 1): Piece.man(P2), (2, 3): Piece.man(P2), (0, 7): Piece.man(P2)}
    return GameState(
        board=Board.with_pieces(pieces),
        current_player=P1,
        player1_name="Ann",
        player2_name="Bob",
    )


async def settle(*strategies) -> None:
    for _ in range(5):
        for strategy in strategies:
            await strategy.flush()


class RelaySessionTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.relay = MemoryRelay()
        self.host_sync = MemorySync(self.relay, page_url="http://play.test/")
        self.guest_sync = MemorySync(self.relay, page_url="http://play.test/")
        self.host = GameSession(self.host_sync)
        self.guest = GameSession(self.guest_sync)

    async def asyncTearDown(self) -> None:
        await self.host.reset()
        await self.guest.reset()

    async def _settle(self) -> None:
        await settle(self.host_sync, self.guest_sync)

    async def _start(self) -> None:
        view = await self.host.create_game("Ann")
        await self._settle()
        await self.guest.join_game("Bob", view["shareLink"])
        await self._settle()

    async def _play(self, plies) -> None:
        sessions = {P1: self.host, P2: self.guest}
        for player, start, end in plies:
            await sessions[player].click(*start)
            await sessions[player].click(*end)
            await self._settle()

    async def test_create_waits_for_an_opponent(self) -> None:
        view = await self.host.create_game("  Ann ")
        await self._settle()

        self.assertEqual(view["screen"], SCREEN_WAITING)
        self.assertEqual(view["role"], "r")
        self.assertEqual(view["playerName"], "Ann")
        self.assertEqual(len(view["gameId"]), 6)
        self.assertEqual(view["shareLink"], f"http://play.test/#{view['gameId']}")
        self.assertEqual(view["connection"], "connected")
        state = await self.host.view()
        self.assertEqual(state["status"], "Waiting for an opponent to join...")

        self.assertEqual(len(self.relay.sent), 1)
        topic, raw = self.relay.sent[0]
        self.assertEqual(topic, view["gameId"])
        self.assertIsInstance(parse_message(raw), GameStateMessage)

    async def test_blank_names_are_rejected(self) -> None:
        with self.assertRaises(ValueError):
            await self.host.create_game("   ")
        with self.assertRaises(ValueError):
            await self.guest.join_game("Bob", "http://play.test/")

    async def test_join_completes_the_handshake(self) -> None:
        await self._start()
        host_view = await self.host.view()
        guest_view = await self.guest.view()

        for view in (host_view, guest_view):
            self.assertEqual(view["screen"], SCREEN_GAME)
            self.assertEqual(view["game"]["player1Name"], "Ann")
            self.assertEqual(view["game"]["player2Name"], "Bob")
        self.assertEqual(guest_view["role"], "b")
        self.assertEqual(guest_view["gameId"], host_view["gameId"])
        self.assertEqual(host_view["status"], "Your Turn")
        self.assertEqual(guest_view["status"], "Waiting for Ann's move...")
        self.assertTrue(host_view["isMyTurn"])
        self.assertFalse(guest_view["isMyTurn"])

    async def test_moves_reach_the_opponent(self) -> None:
        await self._start()
        await self._play(CAPTURE_LINE[:1])

        guest_view = await self.guest.view()
        self.assertEqual(guest_view["game"]["currentPlayer"], "b")
        self.assertEqual(guest_view["game"]["board"][4][3], "r")
        self.assertIsNone(guest_view["game"]["board"][5][2])
        self.assertEqual(guest_view["status"], "Your Turn")
        self.assertEqual(self.host.game, self.guest.game)

    async def test_clicks_out_of_turn_change_nothing(self) -> None:
        await self._start()
        before = self.guest.game
        view = await self.guest.click(2, 1)
        self.assertIsNone(view["selected"])
        self.assertEqual(self.guest.game, before)

    async def test_clicks_before_the_opponent_joins_change_nothing(self) -> None:
        await self.host.create_game("Ann")
        await self._settle()
        view = await self.host.click(5, 2)
        self.assertIsNone(view["selected"])

    async def test_selection_is_reported_in_the_view(self) -> None:
        await self._start()
        view = await self.host.click(5, 2)
        self.assertEqual(view["selected"], {"row": 5, "col": 2})
        self.assertEqual(view["destinations"], [{"row": 4, "col": 1}, {"row": 4, "col": 3}])

    async def test_mandatory_capture_is_flagged(self) -> None:
        await self._start()
        await self._play(CAPTURE_LINE[:2])
        view = await self.host.view()
        self.assertTrue(view["game"]["mandatoryCapture"])
        self.assertEqual(view["game"]["pieceCounts"]["b"], {"total": 12, "kings": 0})

        await self._play(CAPTURE_LINE[2:])
        view = await self.guest.view()
        self.assertEqual(view["game"]["pieceCounts"]["r"]["total"], 11)
        self.assertEqual(view["game"]["pieceCounts"]["b"]["total"], 11)

    async def test_failed_publish_keeps_the_local_move(self) -> None:
        await self._start()
        self.relay.fail_next = True
        await self.host.click(5, 2)
        view = await self.host.click(4, 3)
        await self._settle()

        self.assertEqual(view["status"], SEND_FAILED)
        self.assertEqual(self.host.game.current_player, P2)
        self.assertEqual(self.guest.game.current_player, P1)

    async def test_chat_lines_are_echoed_to_both_sides(self) -> None:
        await self._start()
        await self.guest.send_chat("good luck")
        await self.host.send_chat("   ")
        await self._settle()

        expected = [{"senderName": "Bob", "text": "good luck"}]
        self.assertEqual((await self.host.view())["chat"], expected)
        self.assertEqual((await self.guest.view())["chat"], expected)

    async def test_chat_needs_a_game(self) -> None:
        with self.assertRaises(ValueError):
            await self.host.send_chat("hello?")

    async def test_open_link_stores_an_invitation(self) -> None:
        view = await self.host.create_game("Ann")
        await self._settle()
        invited = await self.guest.open_link(view["shareLink"])
        self.assertEqual(invited["screen"], SCREEN_LOBBY)
        self.assertEqual(invited["invite"], view["shareLink"])
        self.assertEqual(invited["status"], "Join Game")

        joined = await self.guest.join_game("Bob")
        await self._settle()
        self.assertEqual(joined["gameId"], view["gameId"])
        self.assertEqual((await self.guest.view())["screen"], SCREEN_GAME)

    async def test_link_without_game_returns_to_the_lobby(self) -> None:
        await self._start()
        view = await self.guest.open_link("http://play.test/")
        self.assertEqual(view["screen"], SCREEN_LOBBY)
        self.assertIsNone(view["game"])
        self.assertEqual(view["status"], "No active game in that link.")

    async def test_reset_unsubscribes(self) -> None:
        await self._start()
        game_id = self.host.game_id
        view = await self.host.reset()
        self.assertEqual(view["screen"], SCREEN_LOBBY)
        self.assertIsNone(view["gameId"])
        self.assertEqual(len(self.relay.topics[game_id]), 1)

    async def test_partial_turns_are_not_relayed(self) -> None:
        await self._start()
        game_id = self.host.game_id
        await self.host_sync.publish(game_id, _double_jump_state())
        await self._settle()
        sent_before = len(self.relay.sent)

        await self.host.click(5, 0)
        view = await self.host.click(3, 2)
        await self._settle()
        self.assertEqual(view["game"]["pendingJump"], {"row": 3, "col": 2})
        self.assertEqual(len(self.relay.sent), sent_before)
        self.assertIsNotNone(self.guest.game.board.getPiece(4, 1))

        await self.host.click(1, 4)
        await self._settle()
        self.assertEqual(len(self.relay.sent), sent_before + 1)
        self.assertEqual(self.guest.game, self.host.game)
        self.assertEqual(self.guest.game.current_player, P2)


class FragmentSessionTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.host_sync = FragmentSync("http://play.test/")
        self.guest_sync = FragmentSync("http://play.test/")
        self.host = GameSession(self.host_sync)
        self.guest = GameSession(self.guest_sync)

    async def _settle(self) -> None:
        await settle(self.host_sync, self.guest_sync)

    async def test_play_by_link(self) -> None:
        created = await self.host.create_game("Ann")
        await self._settle()
        self.assertEqual(decode_state(self.host_sync.location.fragment).player1_name, "Ann")

        joined = await self.guest.join_game("Bob", created["shareLink"])
        await self._settle()
        self.assertEqual(joined["screen"], SCREEN_GAME)
        self.assertEqual(joined["role"], "b")
        self.assertEqual(self.guest.game.player2_name, "Bob")

        await self.host.open_link(joined["shareLink"])
        await self._settle()
        self.assertEqual((await self.host.view())["screen"], SCREEN_GAME)
        self.assertEqual(self.host.game.player2_name, "Bob")

        await self.host.click(5, 2)
        moved = await self.host.click(4, 3)
        await self._settle()
        self.assertEqual(moved["status"], "Waiting for Bob's move...")

        view = await self.guest.open_link(moved["shareLink"])
        await self._settle()
        view = await self.guest.view()
        self.assertEqual(view["status"], "Your Turn")
        self.assertEqual(self.guest.game, self.host.game)

    async def test_corrupt_link_means_no_game(self) -> None:
        await self.host.create_game("Ann")
        view = await self.host.open_link("http://play.test/#not-a-game")
        self.assertEqual(view["screen"], SCREEN_LOBBY)
        self.assertIsNone(view["game"])
        self.assertEqual(view["status"], "No active game in that link.")

    async def test_link_with_unreadable_numbers_means_no_game(self) -> None:
        record = json.dumps(["0" * 64, "Ann", None, 1, 0, [float("inf"), 0]]).encode("utf-8")
        token = base64.urlsafe_b64encode(record).decode("ascii").rstrip("=")
        await self.host.create_game("Ann")
        view = await self.host.open_link(f"http://play.test/#{token}")
        self.assertEqual(view["screen"], SCREEN_LOBBY)
        self.assertEqual(view["status"], "No active game in that link.")

    async def test_join_needs_a_decodable_link(self) -> None:
        with self.assertRaises(ValueError):
            await self.guest.join_game("Bob", "http://play.test/#abc123")

    async def test_chat_is_refused(self) -> None:
        created = await self.host.create_game("Ann")
        await self.guest.join_game("Bob", created["shareLink"])
        with self.assertRaises(ValueError):
            await self.guest.send_chat("hi")

    async def _link_up(self) -> None:
        created = await self.host.create_game("Ann")
        joined = await self.guest.join_game("Bob", created["shareLink"])
        await self.host.open_link(joined["shareLink"])
        await self._settle()

    async def test_partial_turns_are_written_to_the_link(self) -> None:
        await self._link_up()
        await self.host_sync.publish(None, _double_jump_state())
        await self._settle()

        await self.host.click(5, 0)
        view = await self.host.click(3, 2)
        await self._settle()
        partial = decode_state(self.host_sync.location.fragment)
        self.assertEqual(partial.continuation, (3, 2))
        self.assertEqual(partial.current_player, P1)

        # the opponent sees the half-finished chain but cannot act on it
        await self.guest.open_link(view["shareLink"])
        await self._settle()
        self.assertEqual(self.guest.game, partial)
        guest_view = await self.guest.click(1, 4)
        self.assertEqual(self.guest.game, partial)
        self.assertFalse(guest_view["isMyTurn"])

        await self.host.click(1, 4)
        finished = decode_state(self.host_sync.location.fragment)
        self.assertIsNone(finished.continuation)
        self.assertEqual(finished.current_player, P2)

    async def test_both_transports_reach_the_same_position(self) -> None:
        await self._link_up()
        sessions = {P1: self.host, P2: self.guest}
        for player, start, end in CAPTURE_LINE:
            mover, other = sessions[player], sessions[player.opponent]
            await mover.click(*start)
            view = await mover.click(*end)
            await self._settle()
            await other.open_link(view["shareLink"])
            await self._settle()

        relay = MemoryRelay()
        relay_host = GameSession(MemorySync(relay))
        relay_guest = GameSession(MemorySync(relay))
        created = await relay_host.create_game("Ann")
        await settle(relay_host.strategy, relay_guest.strategy)
        await relay_guest.join_game("Bob", created["shareLink"])
        await settle(relay_host.strategy, relay_guest.strategy)
        relay_sessions = {P1: relay_host, P2: relay_guest}
        for player, start, end in CAPTURE_LINE:
            await relay_sessions[player].click(*start)
            await relay_sessions[player].click(*end)
            await settle(relay_host.strategy, relay_guest.strategy)

        self.assertEqual(self.host.game.board, relay_host.game.board)
        self.assertEqual(self.guest.game.board, relay_guest.game.board)
        self.assertEqual(self.host.game.current_player, relay_guest.game.current_player)
        await relay_host.reset()
        await relay_guest.reset()


if __name__ == "__main__":
    unittest.main()
