from fastapi import APIRouter, Depends

from app.api.deps import get_room_registry
from app.services.room_registry import RoomRegistry

router = APIRouter()


@router.get("/health")
def health(registry: RoomRegistry = Depends(get_room_registry)) -> dict:
    return {"status": "ok", "rooms": len(registry)}
