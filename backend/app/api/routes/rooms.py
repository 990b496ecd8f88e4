from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_room_registry
from app.schemas.room import RoomSummaryRead
from app.services.room_registry import RoomRegistry

router = APIRouter()


@router.get("", response_model=list[RoomSummaryRead], response_model_by_alias=True)
def list_rooms(registry: RoomRegistry = Depends(get_room_registry)) -> list[RoomSummaryRead]:
    return [RoomSummaryRead.model_validate(summary) for summary in registry.list()]


@router.get("/{room_id}", response_model=RoomSummaryRead, response_model_by_alias=True)
def get_room(room_id: str, registry: RoomRegistry = Depends(get_room_registry)) -> RoomSummaryRead:
    room = registry.get(room_id.strip().upper())
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return RoomSummaryRead.model_validate(room.summary())
