"""Tests for the tool registry."""

import json
from unittest.mock import patch

import pytest

from sandbox_mcp.executor import ExecutionError, Executor
from sandbox_mcp.registry import ToolRegistry


EXPECTED_TOOLS = [
    "list_scripts",
    "get_script_info",
    "run_script",
    "list_tools",
    "get_tool_info",
    "run_tool",
    "get_update_status",
]


def text_of(result):
    return result.content[0].text


class TestToolDefinitions:
    """The fixed catalog."""

    def test_seven_tools(self, sandbox_config):
        """Test that exactly the seven tools are registered, in order."""
        registry = ToolRegistry(sandbox_config)
        assert registry.tool_names == EXPECTED_TOOLS

    def test_required_parameters(self, sandbox_config):
        """Test the declared required parameters."""
        schemas = {tool.name: tool.inputSchema for tool in ToolRegistry(sandbox_config).definitions}
        for name in ("get_script_info", "run_script", "get_tool_info", "run_tool"):
            assert schemas[name]["required"] == ["name"]
        for name in ("list_scripts", "list_tools", "get_update_status"):
            assert schemas[name]["required"] == []
        assert schemas["run_script"]["properties"]["args"]["items"] == {"type": "string"}
        assert schemas["list_scripts"]["properties"]["category"]["default"] == "all"

    def test_definitions_independent_of_filesystem(self, sandbox_config, tmp_path):
        """Test that the catalog does not depend on directory contents."""
        sandbox_config.scripts_dir = str(tmp_path / "missing")
        assert len(ToolRegistry(sandbox_config).definitions) == 7


class TestScriptTools:
    """list_scripts, get_script_info and run_script."""

    @pytest.fixture
    def registry(self, sandbox_config):
        return ToolRegistry(sandbox_config)

    def test_list_scripts_all(self, registry):
        """Test the unfiltered listing."""
        result = registry.call("list_scripts", {})
        assert result.isError is None
        scripts = json.loads(text_of(result))
        assert len(scripts) == 5
        assert {script["category"] for script in scripts} == {"utility", "test"}
        assert "usage" not in scripts[0]
        assert "description_localized" not in scripts[0]
        by_name = {script["name"]: script for script in scripts}
        assert by_name["test-validate-secrets.sh"]["description_localized"] == "validate-secrets.sh の動作テスト"

    @pytest.mark.parametrize("category, expected", [
        ("test", ["test-validate-secrets.sh"]),
        ("utility", ["echo-args.sh", "init-host-env.sh", "no-header.sh", "validate-secrets.sh"]),
        ("all", ["echo-args.sh", "init-host-env.sh", "no-header.sh",
                 "test-validate-secrets.sh", "validate-secrets.sh"]),
    ])
    def test_list_scripts_by_category(self, registry, category, expected):
        """Test category filtering."""
        scripts = json.loads(text_of(registry.call("list_scripts", {"category": category})))
        assert [script["name"] for script in scripts] == expected

    def test_list_scripts_invalid_category(self, registry):
        """Test that unknown categories are a tool-level error."""
        result = registry.call("list_scripts", {"category": "misc"})
        assert result.isError is True
        assert "Invalid category" in text_of(result)

    def test_list_scripts_missing_directory(self, sandbox_config, tmp_path):
        """Test that listing a missing directory is a tool-level error."""
        sandbox_config.scripts_dir = str(tmp_path / "missing")
        result = ToolRegistry(sandbox_config).call("list_scripts")
        assert result.isError is True
        assert "Failed to list scripts" in text_of(result)

    def test_get_script_info(self, registry):
        """Test detailed script info."""
        result = registry.call("get_script_info", {"name": "init-host-env.sh"})
        info = json.loads(text_of(result))
        assert info["host_only"] is True
        assert info["environment"] == "host"
        assert info["usage"] == "init-host-env.sh [project_root]\ninit-host-env.sh -i [project_root]"

    def test_get_script_info_missing_name(self, registry):
        """Test that a missing name is a tool-level error."""
        result = registry.call("get_script_info", {})
        assert result.isError is True
        assert text_of(result) == "Missing required parameter: name"

    def test_get_script_info_unknown_script(self, registry):
        """Test a script that does not exist."""
        result = registry.call("get_script_info", {"name": "nope.sh"})
        assert result.isError is True
        assert "Failed to get script info" in text_of(result)

    def test_run_script(self, registry):
        """Test a successful run."""
        result = registry.call("run_script", {"name": "test-validate-secrets.sh"})
        assert result.isError is None
        assert text_of(result) == "PASS: all\n"

    def test_run_script_nonzero_exit_is_not_error(self, registry):
        """Test that a failing script is ordinary result data."""
        result = registry.call("run_script", {"name": "echo-args.sh", "args": ["4", "x"]})
        assert result.isError is None
        assert "[exit code: 4]" in text_of(result)
        assert "args: x" in text_of(result)

    def test_run_script_host_only(self, registry, scripts_dir):
        """Test that host-only scripts are refused without being run."""
        with patch.object(Executor, "run") as mock_run:
            result = registry.call("run_script", {"name": "init-host-env.sh", "args": ["-i", "."]})

        mock_run.assert_not_called()
        assert not (scripts_dir / ".host-env-created").exists()
        assert result.isError is True
        text = text_of(result)
        assert "must be run on the host OS" in text
        assert ".sandbox/scripts/init-host-env.sh -i ." in text
        assert "Docker socket" in text

    def test_run_script_missing_name(self, registry):
        """Test that a missing name is a tool-level error."""
        result = registry.call("run_script", {"args": ["x"]})
        assert result.isError is True
        assert text_of(result) == "Missing required parameter: name"

    def test_run_script_invalid_args(self, registry):
        """Test that args must be a list of strings."""
        result = registry.call("run_script", {"name": "echo-args.sh", "args": "0 x"})
        assert result.isError is True
        assert text_of(result).startswith("Invalid arguments:")

    def test_run_script_execution_failure(self, registry):
        """Test that engine failures become tool-level errors."""
        result = registry.call("run_script", {"name": "missing.sh"})
        assert result.isError is True
        assert text_of(result).startswith("Execution failed:")


class TestToolTools:
    """list_tools, get_tool_info and run_tool."""

    @pytest.fixture
    def registry(self, sandbox_config):
        return ToolRegistry(sandbox_config)

    def test_list_tools(self, registry):
        """Test the tool listing."""
        tools = json.loads(text_of(registry.call("list_tools")))
        assert [tool["name"] for tool in tools] == ["bare.go", "greet.py", "search-history.go"]

    def test_get_tool_info(self, registry):
        """Test detailed tool info."""
        info = json.loads(text_of(registry.call("get_tool_info", {"name": "search-history.go"})))
        assert info["description"] == "search-history.go - conversation history search tool"
        assert len(info["examples"]) == 2

    def test_get_tool_info_missing_name(self, registry):
        """Test that a missing name is a tool-level error."""
        result = registry.call("get_tool_info", {"name": ""})
        assert result.isError is True

    def test_run_tool(self, registry):
        """Test running a tool."""
        result = registry.call("run_tool", {"name": "greet.py", "args": ["sandbox"]})
        assert result.isError is None
        assert text_of(result) == "hello sandbox\n\n[stderr]\ngreeting done\n"

    def test_run_tool_engine_failure(self, registry):
        """Test that a toolchain failure is a tool-level error."""
        with patch.object(Executor, "run", side_effect=ExecutionError("execution error: go not found")):
            result = registry.call("run_tool", {"name": "bare.go"})
        assert result.isError is True
        assert "go not found" in text_of(result)


class TestOtherTools:
    """get_update_status and dispatch errors."""

    def test_get_update_status(self, sandbox_config):
        """Test the rendered update status."""
        result = ToolRegistry(sandbox_config).call("get_update_status")
        assert result.isError is None
        assert "Template Update Status" in text_of(result)
        assert "Latest version: v1.2.0" in text_of(result)

    def test_get_update_status_unusable_timestamp(self, sandbox_config):
        """Test that an out-of-range timestamp still reports the version."""
        with open(sandbox_config.state_file, "w") as f:
            f.write("99999999999999999:v9.9.9")
        result = ToolRegistry(sandbox_config).call("get_update_status")
        assert result.isError is None
        assert "Latest version: v9.9.9" in text_of(result)

    def test_get_update_status_missing_config(self, sandbox_config, tmp_path):
        """Test that a missing config file is a tool-level error."""
        sandbox_config.template_config_file = str(tmp_path / "nope")
        result = ToolRegistry(sandbox_config).call("get_update_status")
        assert result.isError is True
        assert "Failed to get update status" in text_of(result)

    def test_unknown_tool(self, sandbox_config):
        """Test that unknown tools are a tool-level error."""
        result = ToolRegistry(sandbox_config).call("unknown_tool", {})
        assert result.isError is True
        assert text_of(result) == "Unknown tool: unknown_tool"

    def test_unexpected_exception_is_contained(self, sandbox_config):
        """Test that handler crashes do not escape the registry."""
        registry = ToolRegistry(sandbox_config)
        with patch.object(registry.scripts, "list_scripts", side_effect=RuntimeError("boom")):
            result = registry.call("list_scripts")
        assert result.isError is True
        assert "boom" in text_of(result)
