"""Tests for the read-only REST routes."""

import unittest

from fastapi.testclient import TestClient

from chatrelay.main import create_app

from helpers import RecordingOutbox


class TestRoutes(unittest.TestCase):

    def setUp(self):
        self.app = create_app()
        self.client = TestClient(self.app)
        self.router = self.app.state.relay.router

    def populate(self):
        a = self.router.open("a", RecordingOutbox())
        b = self.router.open("b", RecordingOutbox())
        c = self.router.open("c", RecordingOutbox())
        self.router.join_room(a, "lobby", "alice")
        self.router.join_room(b, "lobby", "bob")
        self.router.join_room(c, "kitchen", "carol")
        self.router.send_message(a, "hi")
        return a, b, c

    def test_root_lists_endpoints(self):
        response = self.client.get("/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["endpoints"]["websocket"], "/ws")

    def test_health(self):
        self.populate()

        body = self.client.get("/health").json()

        self.assertEqual(body["status"], "healthy")
        self.assertEqual(body["connections"], 3)
        self.assertEqual(body["active_rooms_with_members"], 2)

    def test_rooms_lists_who_is_online(self):
        self.populate()

        body = self.client.get("/rooms").json()

        self.assertEqual(
            body,
            [
                {"name": "lobby", "member_count": 2, "users": ["alice", "bob"]},
                {"name": "kitchen", "member_count": 1, "users": ["carol"]},
            ],
        )

    def test_single_room(self):
        self.populate()

        response = self.client.get("/rooms/lobby")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["users"], ["alice", "bob"])

    def test_unknown_room_is_404(self):
        response = self.client.get("/rooms/Lobby")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Room not found")

    def test_metrics(self):
        a, b, c = self.populate()
        self.router.close(c)

        body = self.client.get("/metrics").json()

        self.assertEqual(body["total_messages"], 1)
        self.assertEqual(body["total_joins"], 3)
        self.assertEqual(body["concurrent_connections"], 2)
        self.assertEqual(body["active_rooms_with_members"], 1)
        self.assertEqual(body["largest_room_members"], 2)
        self.assertEqual(body["dropped_deliveries"], 0)


if __name__ == "__main__":
    unittest.main()
