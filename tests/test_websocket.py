"""
End-to-end tests for the /ws endpoint through FastAPI's TestClient.

Frames are JSON objects {"event": ..., "data": ...} in both directions.
"""

import asyncio
import unittest

from fastapi.testclient import TestClient

from chatrelay.main import create_app


async def _running_writers():
    return [
        task for task in asyncio.all_tasks()
        if task.get_coro().__name__ == "_drain_outbox" and not task.done()
    ]


def join(ws, room, username):
    ws.send_json({"event": "join-room", "data": {"room": room, "username": username}})


class TestWebSocketRelay(unittest.TestCase):

    def setUp(self):
        self.app = create_app()
        # Entered client: every socket shares one event loop, as under uvicorn
        self.client = TestClient(self.app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)
        self.relay = self.app.state.relay

    def test_lobby_scenario(self):
        with self.client.websocket_connect("/ws") as a:
            join(a, "lobby", "alice")
            self.assertEqual(a.receive_json(), {"event": "room_joined", "data": {"room": "lobby", "users": ["alice"]}})
            self.assertEqual(a.receive_json(), {"event": "users_update", "data": ["alice"]})

            with self.client.websocket_connect("/ws") as b:
                join(b, "lobby", "bob")
                self.assertEqual(
                    b.receive_json(),
                    {"event": "room_joined", "data": {"room": "lobby", "users": ["alice", "bob"]}},
                )
                self.assertEqual(b.receive_json(), {"event": "users_update", "data": ["alice", "bob"]})
                self.assertEqual(a.receive_json(), {"event": "user_joined", "data": "bob joined room"})
                self.assertEqual(a.receive_json(), {"event": "users_update", "data": ["alice", "bob"]})

                b.send_json({"event": "message", "data": {"room": "lobby", "message": "hi", "sender": "bob"}})
                expected = {"event": "message", "data": {"sender": "bob", "message": "hi"}}
                self.assertEqual(b.receive_json(), expected)
                self.assertEqual(a.receive_json(), expected)

            # b's channel is closed
            self.assertEqual(a.receive_json(), {"event": "user_left", "data": "bob left room"})
            self.assertEqual(a.receive_json(), {"event": "users_update", "data": ["alice"]})
            self.assertEqual(self.relay.directory.members_of("lobby"), ["alice"])

    def test_invalid_frames_are_ignored(self):
        with self.client.websocket_connect("/ws") as a:
            a.send_text("not json")
            a.send_json({"no_event": True})
            a.send_json({"event": "join-room", "data": {"room": "  ", "username": "alice"}})
            a.send_json({"event": "dance", "data": {}})
            join(a, "lobby", "alice")

            self.assertEqual(a.receive_json()["event"], "room_joined")

    def test_binary_frame_keeps_sender_in_room(self):
        with self.client.websocket_connect("/ws") as a, self.client.websocket_connect("/ws") as b:
            join(a, "lobby", "alice")
            a.receive_json()
            a.receive_json()
            join(b, "lobby", "bob")
            b.receive_json()
            b.receive_json()
            a.receive_json()
            a.receive_json()

            b.send_bytes(b'{"event": "message", "data": {"message": "hi"}}')
            b.send_json({"event": "message", "data": {"message": "still here"}})

            expected = {"event": "message", "data": {"sender": "bob", "message": "still here"}}
            self.assertEqual(a.receive_json(), expected)
            self.assertEqual(b.receive_json(), expected)
            self.assertEqual(self.relay.directory.members_of("lobby"), ["alice", "bob"])

    def test_disconnect_stops_writer_task(self):
        with self.client.websocket_connect("/ws") as a:
            join(a, "lobby", "alice")
            a.receive_json()

        self.assertEqual(self.client.portal.call(_running_writers), [])

    def test_explicit_leave_then_rejoin(self):
        with self.client.websocket_connect("/ws") as a:
            join(a, "lobby", "alice")
            a.receive_json()
            a.receive_json()

            a.send_json({"event": "leave-room", "data": {"room": "lobby", "username": "alice"}})
            self.assertEqual(a.receive_json(), {"event": "room_left", "data": {"room": "lobby"}})
            self.assertNotIn("lobby", self.relay.directory)

            join(a, "kitchen", "alice")
            self.assertEqual(a.receive_json(), {"event": "room_joined", "data": {"room": "kitchen", "users": ["alice"]}})


class TestRoomLifecycle(unittest.TestCase):

    def test_last_member_disconnect_removes_room(self):
        app = create_app()
        with TestClient(app) as client:
            with client.websocket_connect("/ws") as a:
                join(a, "lobby", "alice")
                a.receive_json()
                self.assertIn("lobby", app.state.relay.directory)

            self.assertEqual(client.get("/rooms/lobby").status_code, 404)
            self.assertEqual(client.get("/rooms").json(), [])
            self.assertEqual(len(app.state.relay.registry), 0)


if __name__ == "__main__":
    unittest.main()
