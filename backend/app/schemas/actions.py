"""
Player action payloads.

Every action a client may submit is one member of ``PlayerAction``, tagged by its ``type``.
Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from app.services.errors import InvalidActionError, UnknownActionError

PLACEHOLDER_ACTION_TYPES = (
    "RESEARCH",
    "CREATE_BUILDING",
    "UPGRADE_TERRITORY",
    "START_TASK",
    "PROPOSE_ALLY",
    "PROPOSE_TRADE",
)


class _ActionModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ClaimTerritoryAction(_ActionModel):
    type: Literal["CLAIM_TERRITORY"] = "CLAIM_TERRITORY"
    territory_id: str = Field(min_length=1)


class ExpandLandAction(_ActionModel):
    type: Literal["EXPAND_LAND"] = "EXPAND_LAND"


class BuildUnitAction(_ActionModel):
    type: Literal["BUILD_UNIT"] = "BUILD_UNIT"


class AttackTerritoryAction(_ActionModel):
    type: Literal["ATTACK_TERRITORY"] = "ATTACK_TERRITORY"
    from_territory_id: str = Field(min_length=1)
    territory_id: str = Field(min_length=1)
    units: int | None = Field(default=None, ge=1)


class ProposeTruceAction(_ActionModel):
    type: Literal["PROPOSE_TRUCE"] = "PROPOSE_TRUCE"
    target_id: str = Field(min_length=1)
    duration: int | str | None = None
    terms: str | None = Field(default=None, max_length=500)


class EndTurnAction(_ActionModel):
    type: Literal["END_TURN"] = "END_TURN"


class PlaceholderAction(_ActionModel):
    """Accepted kinds whose game rules do not exist yet; they never change state."""

    type: Literal[
        "RESEARCH",
        "CREATE_BUILDING",
        "UPGRADE_TERRITORY",
        "START_TASK",
        "PROPOSE_ALLY",
        "PROPOSE_TRADE",
    ]


PlayerAction = Annotated[
    Union[
        ClaimTerritoryAction,
        ExpandLandAction,
        BuildUnitAction,
        AttackTerritoryAction,
        ProposeTruceAction,
        EndTurnAction,
        PlaceholderAction,
    ],
    Field(discriminator="type"),
]

KNOWN_ACTION_TYPES = frozenset(
    {
        "CLAIM_TERRITORY",
        "EXPAND_LAND",
        "BUILD_UNIT",
        "ATTACK_TERRITORY",
        "PROPOSE_TRUCE",
        "END_TURN",
        *PLACEHOLDER_ACTION_TYPES,
    }
)

_action_adapter: TypeAdapter = TypeAdapter(PlayerAction)


def parse_action(data: object) -> PlayerAction:
    if not isinstance(data, dict):
        raise UnknownActionError("Action must be an object with a type.")
    action_type = data.get("type")
    if not isinstance(action_type, str) or action_type not in KNOWN_ACTION_TYPES:
        raise UnknownActionError(f"Unknown action type: {action_type}")
    try:
        return _action_adapter.validate_python(data)
    except ValidationError as exc:
        raise InvalidActionError(f"Malformed {action_type} action.") from exc
