"""Pytest configuration and shared fixtures."""

import shutil
import sys
from pathlib import Path

import pytest

from sandbox_mcp.config import Config, SandboxConfig
from sandbox_mcp.server import MCPServer


FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def scripts_dir(tmp_path):
    """Writable copy of the fixture scripts directory."""
    target = tmp_path / "scripts"
    shutil.copytree(FIXTURES_DIR / "scripts", target)
    return target


@pytest.fixture
def tools_dir(tmp_path):
    """Writable copy of the fixture tools directory."""
    target = tmp_path / "tools"
    shutil.copytree(FIXTURES_DIR / "tools", target)
    return target


@pytest.fixture
def state_file(tmp_path):
    """Update checker state file with a recorded version."""
    path = tmp_path / "update-check"
    path.write_text("1705315800:v1.2.0\n")
    return path


@pytest.fixture
def template_config_file(tmp_path):
    """Update checker configuration file."""
    path = tmp_path / "template-source.conf"
    path.write_text(
        '# Template source\n'
        'TEMPLATE_REPO="YujiSuzuki/ai-sandbox-dkmcp"\n'
        'CHECK_CHANNEL="stable"\n'
        'CHECK_UPDATES="true"\n'
        'CHECK_INTERVAL_HOURS="12"\n'
    )
    return path


@pytest.fixture
def sandbox_config(scripts_dir, tools_dir, state_file, template_config_file):
    """Sandbox configuration pointing at the fixture copies.

    Python tools run through the current interpreter so tests do not
    need a Go toolchain.
    """
    return SandboxConfig(
        scripts_dir=str(scripts_dir),
        tools_dir=str(tools_dir),
        state_file=str(state_file),
        template_config_file=str(template_config_file),
        tool_runners={".go": ["go", "run"], ".py": [sys.executable]},
        execution_timeout=10,
    )


@pytest.fixture
def config(sandbox_config):
    """Full configuration."""
    return Config(sandbox=sandbox_config)


@pytest.fixture
def server(config):
    """Uninitialized MCP server."""
    return MCPServer(config)


@pytest.fixture
def initialized_server(server):
    """MCP server that has completed the initialize handshake."""
    server.handle_message({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}})
    return server


@pytest.fixture
def call_tool(initialized_server):
    """Send tools/call and return the decoded wire response."""
    def _call(name, arguments=None, request_id=2):
        params = {"name": name}
        if arguments is not None:
            params["arguments"] = arguments
        return initialized_server.handle_message({
            "jsonrpc": "2.0",
            "id": request_id,
            "method": "tools/call",
            "params": params
        })
    return _call


@pytest.fixture
def sample_mcp_request():
    """Sample MCP request for testing."""
    return {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "initialize",
        "params": {"clientInfo": {"name": "test"}}
    }


@pytest.fixture
def sample_tool_call_request():
    """Sample tool call request for testing."""
    return {
        "jsonrpc": "2.0",
        "id": 2,
        "method": "tools/call",
        "params": {
            "name": "list_scripts",
            "arguments": {"category": "utility"}
        }
    }
