from app.services.room_state import Room, RoomPhase


def next_player_id(room: Room) -> str | None:
    """Player who acts after the current turn holder, wrapping around the seating order."""
    if not room.turn_order:
        return None
    current = room.current_turn_player_id
    if current is None or current not in room.turn_order:
        return room.turn_order[0]
    index = room.turn_order.index(current)
    return room.turn_order[(index + 1) % len(room.turn_order)]


def completes_turn_cycle(room: Room, next_id: str | None) -> bool:
    if next_id is None or not room.turn_order:
        return False
    return room.phase == RoomPhase.ACTIVE and next_id == room.turn_order[0]


def rotate_turn(room: Room) -> str | None:
    next_id = next_player_id(room)
    if completes_turn_cycle(room, next_id):
        room.current_turn += 1
    room.current_turn_player_id = next_id
    return next_id
