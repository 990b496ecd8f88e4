import random
import unittest

from app.core.config import Settings
from app.schemas.room import RoomCreateRequest
from app.services.errors import (
    AlreadyInRoomError,
    InvalidSettingsError,
    RoomFullError,
    RoomNotFoundError,
    WrongPasswordError,
)
from app.services.room_registry import RoomRegistry
from app.services.room_state import RoomPhase


class RoomRegistryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = RoomRegistry(Settings(rate_limit_enabled=False), rng=random.Random(42))

    def test_create_applies_defaults(self) -> None:
        room_id = self.registry.create({})
        room = self.registry.get(room_id)
        self.assertEqual(len(room_id), 6)
        self.assertEqual(room_id, room_id.upper())
        self.assertEqual(room.name, f"Game {room_id}")
        self.assertEqual(room.host_name, "Host")
        self.assertIsNone(room.password)
        self.assertEqual(room.phase, RoomPhase.LOBBY)
        self.assertEqual(room.current_turn, 1)
        self.assertIsNone(room.current_turn_player_id)
        self.assertEqual(room.settings.map_size, "medium")
        self.assertEqual(room.settings.max_players, 8)
        self.assertEqual(room.settings.starting_money, 5000)
        self.assertEqual(room.settings.starting_military, 20)
        self.assertEqual(len(room.territories), 100)
        self.assertEqual(room.players, {})

    def test_small_map_room(self) -> None:
        room_id = self.registry.create(
            RoomCreateRequest(server_name="Skirmish", host_name="Ann", settings={"map_size": "small"})
        )
        room = self.registry.get(room_id)
        self.assertEqual(room.name, "Skirmish")
        self.assertEqual(len(room.territories), 50)
        self.assertTrue(all(territory.owner_id is None for territory in room.territories.values()))

    def test_create_rejects_malformed_settings(self) -> None:
        with self.assertRaises(InvalidSettingsError):
            self.registry.create({"settings": {"maxPlayers": "lots"}})
        with self.assertRaises(InvalidSettingsError):
            self.registry.create({"settings": "medium"})
        with self.assertRaises(InvalidSettingsError):
            self.registry.create(["not", "an", "object"])
        self.assertEqual(len(self.registry), 0)

    def test_create_tolerates_oversized_and_out_of_range_values(self) -> None:
        room_id = self.registry.create(
            {
                "serverName": "x" * 61,
                "hostName": "y" * 41,
                "password": 1234,
                "settings": {"maxPlayers": 40, "startingMoney": -5, "startingMilitary": "7"},
            }
        )
        room = self.registry.get(room_id)
        self.assertEqual(room.name, "x" * 60)
        self.assertEqual(room.host_name, "y" * 40)
        self.assertEqual(room.password, "1234")
        self.assertEqual(room.settings.max_players, 8)
        self.assertEqual(room.settings.starting_money, 5000)
        self.assertEqual(room.settings.starting_military, 7)

        joined, _player = self.registry.join(room_id, "sid-1", "1234", "z" * 50)
        self.assertEqual(joined.players["sid-1"].name, "z" * 50)

    def test_map_size_is_matched_exactly(self) -> None:
        room = self.registry.get(self.registry.create({"settings": {"mapSize": "Small"}}))
        self.assertEqual(room.settings.map_size, "Small")
        self.assertEqual(len(room.territories), 100)

    def test_first_join_activates_room(self) -> None:
        room_id = self.registry.create({"settings": {"startingMoney": 3000, "startingMilitary": 5}})
        room, player = self.registry.join(room_id, "sid-1", None, "Ann")
        self.assertEqual(room.phase, RoomPhase.ACTIVE)
        self.assertEqual(room.current_turn_player_id, "sid-1")
        self.assertEqual(player.resources.money, 3000)
        self.assertEqual(player.resources.military, 5)
        self.assertEqual(player.resources.production, 0)
        self.assertRegex(player.color, r"^#[0-9a-f]{6}$")

        _, second = self.registry.join(room_id, "sid-2", None, None)
        self.assertEqual(second.name, "Player 2")
        self.assertEqual(room.current_turn_player_id, "sid-1")
        self.assertEqual(room.turn_order, ["sid-1", "sid-2"])

    def test_join_failures(self) -> None:
        room_id = self.registry.create({"password": "secret", "settings": {"maxPlayers": 1}})
        with self.assertRaises(RoomNotFoundError):
            self.registry.join("NOPE00", "sid-1")
        with self.assertRaises(WrongPasswordError) as ctx:
            self.registry.join(room_id, "sid-1", "guess")
        self.assertEqual(ctx.exception.message, "Incorrect password.")
        self.assertEqual(self.registry.get(room_id).player_count, 0)

        self.registry.join(room_id, "sid-1", "secret")
        with self.assertRaises(RoomFullError):
            self.registry.join(room_id, "sid-2", "secret")

    def test_player_sits_in_one_room_at_a_time(self) -> None:
        first = self.registry.create({})
        second = self.registry.create({})
        self.registry.join(first, "sid-1")
        with self.assertRaises(AlreadyInRoomError):
            self.registry.join(second, "sid-1")
        self.assertEqual(self.registry.room_id_for_player("sid-1"), first)

    def test_listing_hides_passwords_and_is_restartable(self) -> None:
        self.registry.create({"serverName": "Open"})
        self.registry.create({"serverName": "Locked", "password": "hunter2"})
        listing = self.registry.list()

        first_pass = list(listing)
        second_pass = list(listing)
        self.assertEqual(first_pass, second_pass)
        self.assertEqual(len(first_pass), 2)
        by_name = {summary["serverName"]: summary for summary in first_pass}
        self.assertFalse(by_name["Open"]["hasPassword"])
        self.assertTrue(by_name["Locked"]["hasPassword"])
        self.assertNotIn("hunter2", repr(first_pass))
        self.assertEqual(
            set(by_name["Locked"]),
            {"id", "serverName", "hostName", "currentPlayers", "maxPlayers", "hasPassword", "gamePhase"},
        )

        self.registry.create({"serverName": "Late"})
        self.assertEqual(len(list(listing)), 3)

    def test_leave_migrates_host_and_keeps_turn_holder_valid(self) -> None:
        room_id = self.registry.create({}, host_id="sid-1")
        self.registry.join(room_id, "sid-1", None, "Ann")
        self.registry.join(room_id, "sid-2", None, "Ben")
        self.registry.join(room_id, "sid-3", None, "Cat")

        result = self.registry.leave(room_id, "sid-1")
        room = self.registry.get(room_id)
        self.assertFalse(result.room_deleted)
        self.assertTrue(result.host_changed)
        self.assertEqual(room.host_id, "sid-2")
        self.assertEqual(room.host_name, "Ben")
        self.assertIn(room.current_turn_player_id, room.players)
        self.assertEqual(room.turn_order, ["sid-2", "sid-3"])
        self.assertIsNone(self.registry.room_id_for_player("sid-1"))

    def test_last_player_leaving_deletes_room(self) -> None:
        room_id = self.registry.create({})
        self.registry.join(room_id, "sid-1")
        result = self.registry.leave(room_id, "sid-1")
        self.assertTrue(result.room_deleted)
        self.assertNotIn(room_id, self.registry)
        with self.assertRaises(RoomNotFoundError):
            self.registry.join(room_id, "sid-2")

    def test_leave_unknown_references_are_noops(self) -> None:
        room_id = self.registry.create({})
        self.assertIsNone(self.registry.leave("MISSING", "sid-1"))
        self.assertIsNone(self.registry.leave(room_id, "sid-1"))

    def test_clear_drops_everything(self) -> None:
        room_id = self.registry.create({})
        self.registry.join(room_id, "sid-1")
        self.registry.clear()
        self.assertEqual(len(self.registry), 0)
        self.assertIsNone(self.registry.room_id_for_player("sid-1"))


if __name__ == "__main__":
    unittest.main()
