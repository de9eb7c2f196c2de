"""Parsed scenario (story) structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


class ActionType(str, Enum):
    CONNECT_PLAYER = "connect_player"
    DISCONNECT_PLAYER = "disconnect_player"
    EXECUTE_COMMAND = "execute_command"
    EXECUTE_PLAYER_COMMAND = "execute_player_command"
    GET_ENTITIES = "get_entities"
    GET_INVENTORY = "get_inventory"
    GET_PLAYER_POSITION = "get_player_position"
    GET_PLAYER_HEALTH = "get_player_health"
    GIVE_ITEM = "give_item"
    SPAWN_ENTITY = "spawn_entity"
    EQUIP_ITEM = "equip_item"
    MOVE_PLAYER = "move_player"
    SEND_CHAT = "send_chat"
    MAKE_OPERATOR = "make_operator"
    GET_PLAYER_EQUIPMENT = "get_player_equipment"
    USE_ITEM = "use_item"
    CLEAR_ENTITIES = "clear_entities"
    WAIT = "wait"
    STORE_STATE = "store_state"
    COMPARE_STATES = "compare_states"
    PRINT_STORED_STATE = "print_stored_state"
    PRINT_STATE_COMPARISON = "print_state_comparison"
    ASSERT_RESPONSE_CONTAINS = "assert_response_contains"
    ASSERT_EQUALS = "assert_equals"
    ASSERT_JSON_EQUALS = "assert_json_equals"
    ASSERT_ENTITY_EXISTS = "assert_entity_exists"
    ASSERT_ENTITY_MISSING = "assert_entity_missing"
    ASSERT_PLAYER_HAS_ITEM = "assert_player_has_item"


_TAG_ALIASES: Dict[str, ActionType] = {
    "connect": ActionType.CONNECT_PLAYER,
    "disconnect": ActionType.DISCONNECT_PLAYER,
    "server_execute_command": ActionType.EXECUTE_COMMAND,
    "execute_rcon_command": ActionType.EXECUTE_COMMAND,
    "server_command": ActionType.EXECUTE_COMMAND,
    "player_command": ActionType.EXECUTE_PLAYER_COMMAND,
    "get_player_inventory": ActionType.GET_INVENTORY,
    "chat": ActionType.SEND_CHAT,
    "send_chat_message": ActionType.SEND_CHAT,
    "get_entities_in_view": ActionType.GET_ENTITIES,
    "remove_entities": ActionType.CLEAR_ENTITIES,
    "op_player": ActionType.MAKE_OPERATOR,
}


def resolve_action_type(tag: str) -> Optional[ActionType]:
    """``None`` for tags this version does not know."""

    key = str(tag or "").strip().lower()
    if key in _TAG_ALIASES:
        return _TAG_ALIASES[key]
    try:
        return ActionType(key)
    except ValueError:
        return None


# Keys that are structural and never go through placeholder substitution.
RESERVED_KEYS = frozenset({"action", "store_as"})


@dataclass(frozen=True)
class Action:
    tag: str
    type: Optional[ActionType]
    name: str = ""
    store_as: Optional[str] = None
    fields: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, index: int = 0) -> "Action":
        tag = str(data.get("action") or "").strip()
        params = {str(k): v for k, v in data.items() if k not in RESERVED_KEYS and k != "name"}
        store_as = data.get("store_as")
        return cls(
            tag=tag,
            type=resolve_action_type(tag),
            name=str(data.get("name") or f"{tag or 'action'} #{index + 1}"),
            store_as=str(store_as) if store_as else None,
            fields=MappingProxyType(params),
        )

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)


@dataclass(frozen=True)
class Scenario:
    name: str
    description: str = ""
    setup: Tuple[Action, ...] = ()
    steps: Tuple[Action, ...] = ()
    cleanup: Tuple[Action, ...] = ()

    def phases(self) -> Tuple[Tuple[str, Tuple[Action, ...]], ...]:
        return (("setup", self.setup), ("steps", self.steps), ("cleanup", self.cleanup))
