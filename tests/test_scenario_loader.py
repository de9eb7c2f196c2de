import pytest

from pilaf.errors import ScenarioError
from pilaf.scenario.loader import load_scenario_file, scenario_from_mapping
from pilaf.scenario.model import ActionType, resolve_action_type

STORY = """
name: Basic items
description: give and check
setup:
  - name: op tester
    action: make_operator
    player: pilaf_tester
steps:
  - action: execute_rcon_command
    command: give pilaf_tester diamond 1
    store_as: give_out
  - action: teleport_to_moon
cleanup: []
"""


def test_load_yaml_story(tmp_path):
    path = tmp_path / "story.yaml"
    path.write_text(STORY, encoding="utf-8")
    scenario = load_scenario_file(path)
    assert scenario.name == "Basic items"
    assert [a.type for a in scenario.setup] == [ActionType.MAKE_OPERATOR]
    give, unknown = scenario.steps
    assert give.type is ActionType.EXECUTE_COMMAND
    assert give.store_as == "give_out"
    assert "store_as" not in give.fields and "action" not in give.fields
    assert give.name == "execute_rcon_command #1"
    assert unknown.type is None and unknown.tag == "teleport_to_moon"
    assert scenario.cleanup == ()


def test_missing_name_is_rejected():
    with pytest.raises(ScenarioError, match="name"):
        scenario_from_mapping({"steps": []})


def test_action_without_tag_is_rejected():
    with pytest.raises(ScenarioError, match="action"):
        scenario_from_mapping({"name": "x", "steps": [{"command": "list"}]})


def test_non_mapping_root_is_rejected(tmp_path):
    path = tmp_path / "story.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ScenarioError):
        load_scenario_file(path)


def test_scenario_file_tags_map_to_action_types():
    assert resolve_action_type("send_chat_message") is ActionType.SEND_CHAT
    assert resolve_action_type("server_execute_command") is ActionType.EXECUTE_COMMAND
    assert resolve_action_type("remove_entities") is ActionType.CLEAR_ENTITIES
    assert resolve_action_type("assert_json_equals") is ActionType.ASSERT_JSON_EQUALS
    assert resolve_action_type("assert_player_has_item") is ActionType.ASSERT_PLAYER_HAS_ITEM
    assert resolve_action_type("print_state_comparison") is ActionType.PRINT_STATE_COMPARISON
