"""
Turn-based action processing for a single room.

The processor validates an action against the room's turn pointer, the actor's resources and
territory ownership, then applies it. All checks run before the first write, so a rejected
action leaves the room untouched. Broadcasting is left to the caller: a returned
``ActionResult`` means "state changed (or was acknowledged), send it to the room".
"""

from dataclasses import dataclass, field
import logging
import random

from app.core.config import Settings
from app.schemas.actions import (
    AttackTerritoryAction,
    BuildUnitAction,
    ClaimTerritoryAction,
    EndTurnAction,
    ExpandLandAction,
    PlaceholderAction,
    PlayerAction,
    ProposeTruceAction,
    parse_action,
)
from app.services.errors import (
    AlreadyClaimedError,
    GameEndedError,
    InsufficientFundsError,
    InvalidAttackError,
    NoLandAvailableError,
    NoOwnedTerritoryError,
    NotYourTurnError,
    TargetNotFoundError,
    TerritoryNotFoundError,
    UnknownActionError,
)
from app.services.room_state import Player, Room, RoomPhase, Territory
from app.services.turn_rotation import rotate_turn

logger = logging.getLogger(__name__)


@dataclass
class DirectNotice:
    """An event addressed to one player's connection only."""

    player_id: str
    event: str
    payload: object


@dataclass
class ActionResult:
    action_type: str
    message: str | None = None
    notices: list[DirectNotice] = field(default_factory=list)


@dataclass
class CombatOutcome:
    attacker_units: int
    defender_units: int
    captured: bool
    survivors: int


def resolve_combat(attacker_units: int, defender_units: int) -> CombatOutcome:
    """Deterministic battle: the attacker needs strictly more units; ties hold for the defender.

    A winning attacker keeps the difference as the new garrison. A losing attacker loses every
    committed unit and removes half that many (rounded down) from the defenders.
    """
    if attacker_units > defender_units:
        return CombatOutcome(
            attacker_units=attacker_units,
            defender_units=defender_units,
            captured=True,
            survivors=attacker_units - defender_units,
        )
    return CombatOutcome(
        attacker_units=attacker_units,
        defender_units=defender_units,
        captured=False,
        survivors=max(0, defender_units - attacker_units // 2),
    )


class ActionProcessor:
    def __init__(self, settings: Settings, rng: random.Random | None = None) -> None:
        self.claim_cost = settings.claim_cost
        self.unit_cost = settings.unit_cost
        self.starting_garrison = settings.starting_garrison
        self.maintenance_per_territory = settings.maintenance_per_territory
        self.selection_policy = settings.territory_selection_policy
        self._rng = rng or random.Random(settings.rng_seed)

    def submit(self, room: Room, player_id: str, data: object) -> ActionResult:
        """Entry point for raw client payloads: turn check first, then parse and apply."""
        self._check_can_act(room, player_id)
        try:
            action = parse_action(data)
        except UnknownActionError:
            logger.warning("Room %s: unknown action from %s: %r", room.id, player_id, data)
            raise
        return self._dispatch(room, room.players[player_id], action)

    def process(self, room: Room, player_id: str, action: PlayerAction) -> ActionResult:
        self._check_can_act(room, player_id)
        return self._dispatch(room, room.players[player_id], action)

    def end_turn_for_departure(self, room: Room, player_id: str) -> ActionResult | None:
        """END_TURN issued by the server for a holder who is leaving; skips the turn check."""
        if room.phase == RoomPhase.ENDED:
            return None
        player = room.players.get(player_id)
        if player is None or room.current_turn_player_id != player_id:
            return None
        return self._end_turn(room, player)

    def _check_can_act(self, room: Room, player_id: str) -> None:
        if room.phase == RoomPhase.ENDED:
            raise GameEndedError()
        if player_id not in room.players or room.current_turn_player_id != player_id:
            raise NotYourTurnError()

    def _dispatch(self, room: Room, player: Player, action: PlayerAction) -> ActionResult:
        if isinstance(action, ClaimTerritoryAction):
            result = self._claim_territory(room, player, action)
        elif isinstance(action, ExpandLandAction):
            result = self._expand_land(room, player)
        elif isinstance(action, BuildUnitAction):
            result = self._build_unit(room, player)
        elif isinstance(action, AttackTerritoryAction):
            result = self._attack_territory(room, player, action)
        elif isinstance(action, ProposeTruceAction):
            result = self._propose_truce(room, player, action)
        elif isinstance(action, EndTurnAction):
            result = self._end_turn(room, player)
        elif isinstance(action, PlaceholderAction):
            result = ActionResult(
                action_type=action.type,
                notices=[
                    DirectNotice(
                        player.id,
                        "globalChat",
                        (f"Action {action.type} received. Server processing...", "system"),
                    )
                ],
            )
        else:
            raise UnknownActionError(f"Unknown action type: {getattr(action, 'type', None)}")
        logger.debug("Room %s: %s applied %s", room.id, player.name, result.action_type)
        return result

    def _pick(self, territories: list[Territory]) -> Territory:
        if self.selection_policy == "first":
            return territories[0]
        return self._rng.choice(territories)

    def _require_funds(self, player: Player, cost: int, message: str) -> None:
        if player.resources.money < cost:
            raise InsufficientFundsError(message)

    def _take_territory(self, player: Player, territory: Territory) -> None:
        player.resources.money -= self.claim_cost
        territory.owner_id = player.id
        territory.military_units = self.starting_garrison
        player.resources.production += territory.production_value

    def _claim_territory(
        self, room: Room, player: Player, action: ClaimTerritoryAction
    ) -> ActionResult:
        territory = room.territories.get(action.territory_id)
        if territory is None:
            raise TerritoryNotFoundError()
        if territory.owner_id is not None:
            raise AlreadyClaimedError()
        self._require_funds(player, self.claim_cost, f"Not enough money! Requires ${self.claim_cost}.")

        self._take_territory(player, territory)
        return ActionResult(
            action_type=action.type,
            message=f"{player.name} claimed {territory.name} for ${self.claim_cost}.",
        )

    def _expand_land(self, room: Room, player: Player) -> ActionResult:
        unclaimed = room.unclaimed_territories()
        if not unclaimed:
            raise NoLandAvailableError()
        self._require_funds(player, self.claim_cost, f"Expansion requires ${self.claim_cost}.")

        territory = self._pick(unclaimed)
        self._take_territory(player, territory)
        return ActionResult(
            action_type="EXPAND_LAND",
            message=f"{player.name} successfully expanded into {territory.name}.",
        )

    def _build_unit(self, room: Room, player: Player) -> ActionResult:
        owned = room.owned_territories(player.id)
        if not owned:
            raise NoOwnedTerritoryError()
        self._require_funds(player, self.unit_cost, f"Building a unit requires ${self.unit_cost}.")

        territory = self._pick(owned)
        player.resources.money -= self.unit_cost
        territory.military_units += 1
        return ActionResult(
            action_type="BUILD_UNIT",
            message=f"{player.name} built a new unit in {territory.name}.",
        )

    def _attack_territory(
        self, room: Room, player: Player, action: AttackTerritoryAction
    ) -> ActionResult:
        source = room.territories.get(action.from_territory_id)
        target = room.territories.get(action.territory_id)
        if source is None or target is None:
            raise TerritoryNotFoundError()
        if source.owner_id != player.id:
            raise InvalidAttackError("You can only attack from a territory you own.")
        if target.owner_id is None:
            raise InvalidAttackError("Unclaimed territory must be claimed, not attacked.")
        if target.owner_id == player.id:
            raise InvalidAttackError("You cannot attack your own territory.")

        committed = action.units if action.units is not None else source.military_units - 1
        if committed < 1 or committed > source.military_units - 1:
            raise InvalidAttackError("At least one unit must attack and one must stay behind.")

        defender = room.players.get(target.owner_id)
        outcome = resolve_combat(committed, target.military_units)
        source.military_units -= committed
        if outcome.captured:
            if defender is not None:
                defender.resources.production = max(
                    0, defender.resources.production - target.production_value
                )
            player.resources.production += target.production_value
            target.owner_id = player.id
            target.military_units = outcome.survivors
            message = (
                f"{player.name} attacked {target.name} with {committed} units and captured it."
            )
        else:
            target.military_units = outcome.survivors
            message = f"{player.name} attacked {target.name} with {committed} units and was repelled."
        return ActionResult(action_type=action.type, message=message)

    def _propose_truce(
        self, room: Room, player: Player, action: ProposeTruceAction
    ) -> ActionResult:
        target = room.players.get(action.target_id)
        if target is None:
            raise TargetNotFoundError()
        return ActionResult(
            action_type=action.type,
            message=f"{player.name} sent a private truce proposal to {target.name}.",
            notices=[
                DirectNotice(
                    target.id,
                    "truceProposal",
                    {
                        "fromPlayer": player.name,
                        "duration": action.duration,
                        "terms": action.terms,
                        "proposerId": player.id,
                    },
                )
            ],
        )

    def apply_turn_end_effects(self, room: Room) -> None:
        owned_counts: dict[str, int] = {}
        for territory in room.territories.values():
            if territory.owner_id is not None:
                owned_counts[territory.owner_id] = owned_counts.get(territory.owner_id, 0) + 1
        for player_id, player in room.players.items():
            resources = player.resources
            resources.money += resources.production + resources.research
            resources.money -= self.maintenance_per_territory * owned_counts.get(player_id, 0)

    def _end_turn(self, room: Room, player: Player) -> ActionResult:
        self.apply_turn_end_effects(room)
        next_id = rotate_turn(room)
        next_player = room.players.get(next_id) if next_id else None
        next_name = next_player.name if next_player else "nobody"
        return ActionResult(
            action_type="END_TURN",
            message=f"{player.name} ended their turn. It is now {next_name}'s turn.",
        )
