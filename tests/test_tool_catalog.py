import pytest

from serverless_power.errors import UnknownToolError
from serverless_power.tool_catalog import TOOLS, check_tool_call, get_tool, list_tools, tool_names_in_text

DOCUMENTED = {"sam_init", "sam_build", "sam_deploy", "sam_local_invoke", "sam_logs", "deploy_webapp",
              "configure_domain", "esm_guidance", "esm_optimize", "esm_kafka_troubleshoot", "get_metrics"}


def test_catalog_covers_documented_tools():
    assert set(TOOLS) == DOCUMENTED
    assert {t["name"] for t in list_tools()} == DOCUMENTED


def test_examples_satisfy_required_arguments():
    for name, spec in TOOLS.items():
        result = check_tool_call(name, spec["example"], allow_write=True, allow_sensitive_data_access=True)
        assert result["valid"], (name, result)
        assert result["warnings"] == [], (name, result)


def test_list_tools_by_category():
    names = {t["name"] for t in list_tools("esm")}
    assert names == {"esm_guidance", "esm_optimize", "esm_kafka_troubleshoot"}
    with pytest.raises(ValueError):
        list_tools("storage")


def test_get_tool_suggests_close_matches():
    with pytest.raises(UnknownToolError) as exc:
        get_tool("sam_deplyo")
    assert "sam_deploy" in exc.value.suggestions
    assert "did you mean" in str(exc.value)


def test_get_tool_returns_full_entry():
    tool = get_tool("sam_local_invoke")
    assert tool["name"] == "sam_local_invoke"
    assert tool["required"] == ["project_directory", "resource_name"]
    assert tool["steering"] == "getting-started"


def test_missing_required_arguments():
    result = check_tool_call("sam_init", {"project_name": "x", "runtime": ""})
    assert not result["valid"]
    assert "Missing required argument 'runtime'" in result["errors"]
    assert "Missing required argument 'project_directory'" in result["errors"]


def test_unknown_argument_is_a_warning():
    result = check_tool_call("sam_build", {"project_directory": "/w", "use_contianer": True})
    assert result["valid"]
    assert result["warnings"] == ["Unknown argument 'use_contianer' (did you mean 'use_container'?)"]


def test_choices_are_enforced():
    result = check_tool_call("esm_guidance", {"guidance_type": "debugging"})
    assert not result["valid"]
    assert "guidance_type" in result["errors"][0]


def test_write_tools_need_allow_write():
    args = {"application_name": "a", "project_directory": "/w"}
    blocked = check_tool_call("sam_deploy", args)
    assert not blocked["valid"]
    assert "--allow-write" in blocked["errors"][0]
    assert check_tool_call("sam_deploy", args, allow_write=True)["valid"]


def test_sensitive_tools_need_sensitive_access():
    result = check_tool_call("sam_logs", {"resource_name": "Fn"}, allow_write=True)
    assert not result["valid"]
    assert "--allow-sensitive-data-access" in result["errors"][0]
    assert check_tool_call("sam_logs", {"resource_name": "Fn"}, allow_sensitive_data_access=True)["valid"]


def test_arguments_must_be_an_object():
    assert check_tool_call("esm_guidance", ["x"])["errors"] == ["arguments must be an object"]


def test_tool_names_in_text():
    text = "Use `sam_build` then `sam_publish`.\nSet `use_container` and call `get_metrics`."
    assert tool_names_in_text(text) == [("sam_build", 1), ("sam_publish", 1), ("get_metrics", 2)]


def test_metrics_do_not_need_sensitive_access():
    result = check_tool_call("get_metrics", {"project_name": "orders-api"})
    assert result == {"valid": True, "errors": [], "warnings": []}
    assert get_tool("get_metrics")["sensitive"] is False


@pytest.mark.parametrize("source", ["msk", "self-managed-kafka"])
def test_guidance_event_source_uses_server_values(source):
    result = check_tool_call("esm_guidance", {"event_source": source})
    assert not result["valid"]
    assert "event_source" in result["errors"][0]
    assert check_tool_call("esm_guidance", {"event_source": "kafka"})["valid"]
