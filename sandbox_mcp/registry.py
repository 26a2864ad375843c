"""Catalog of MCP tools exposed by the sandbox server."""

import json
import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ValidationError

from .config import SandboxConfig
from .executor import ExecutionError, Executor
from .metadata_parser import HostOnlyPolicy, MetadataError, ScriptCatalog, ToolCatalog
from .models import CallToolResult, Tool
from .update_status import UpdateStatusError, get_update_status, render_update_status


SCRIPT_CATEGORIES = ("utility", "test", "all")

HOST_ONLY_MESSAGE = (
    "This script ({name}) must be run on the host OS, not inside the AI Sandbox.\n\n"
    "To run it on your host machine:\n"
    "  .sandbox/scripts/{name} {args}\n\n"
    "I cannot execute host-only scripts because the AI Sandbox does not have Docker socket access."
)


class ListScriptsArgs(BaseModel):
    category: Optional[str] = None


class NameArgs(BaseModel):
    name: Optional[str] = None


class RunArgs(BaseModel):
    name: Optional[str] = None
    args: Optional[List[str]] = None


class ToolRegistry:
    """Fixed set of tools, their input schemas and their handlers."""

    def __init__(self, config: SandboxConfig,
                 scripts: Optional[ScriptCatalog] = None,
                 tools: Optional[ToolCatalog] = None,
                 executor: Optional[Executor] = None):
        self.config = config
        self.scripts = scripts or ScriptCatalog(
            config.scripts_dir,
            policy=HostOnlyPolicy.from_names(config.host_only_scripts, config.container_only_scripts),
            excluded=config.excluded_scripts,
        )
        self.tools = tools or ToolCatalog(config.tools_dir, extensions=config.tool_runners.keys())
        self.executor = executor or Executor(
            shell=config.shell,
            tool_runners=config.tool_runners,
            timeout=config.execution_timeout,
        )
        self.logger = logging.getLogger("registry")

        self.definitions = self._register_tools()
        self._handlers: Dict[str, Callable[[Dict[str, Any]], CallToolResult]] = {
            "list_scripts": self._list_scripts,
            "get_script_info": self._get_script_info,
            "run_script": self._run_script,
            "list_tools": self._list_tools,
            "get_tool_info": self._get_tool_info,
            "run_tool": self._run_tool,
            "get_update_status": self._get_update_status,
        }

    def _register_tools(self) -> List[Tool]:
        """Register available tools."""
        return [
            Tool(
                name="list_scripts",
                description="List available scripts in .sandbox/scripts/ with descriptions and execution environment info",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "category": {
                            "type": "string",
                            "enum": list(SCRIPT_CATEGORIES),
                            "description": "Filter by category: utility, test, or all (default: all)",
                            "default": "all"
                        }
                    },
                    "required": []
                }
            ),
            Tool(
                name="get_script_info",
                description="Get detailed information about a specific script including usage, options, and execution environment",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "name": {
                            "type": "string",
                            "description": "Script filename (e.g. validate-secrets.sh)"
                        }
                    },
                    "required": ["name"]
                }
            ),
            Tool(
                name="run_script",
                description="Execute a script in the container. Host-only scripts will be rejected with guidance on how to run them on the host OS",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "name": {
                            "type": "string",
                            "description": "Script filename (e.g. validate-secrets.sh)"
                        },
                        "args": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": "Arguments to pass to the script"
                        }
                    },
                    "required": ["name"]
                }
            ),
            Tool(
                name="list_tools",
                description="List available tools in .sandbox/tools/",
                inputSchema={
                    "type": "object",
                    "properties": {},
                    "required": []
                }
            ),
            Tool(
                name="get_tool_info",
                description="Get detailed information about a specific tool including usage and examples",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "name": {
                            "type": "string",
                            "description": "Tool filename (e.g. search-history.go)"
                        }
                    },
                    "required": ["name"]
                }
            ),
            Tool(
                name="run_tool",
                description="Execute a tool (e.g. go run .sandbox/tools/search-history.go)",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "name": {
                            "type": "string",
                            "description": "Tool filename (e.g. search-history.go)"
                        },
                        "args": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": "Arguments to pass to the tool"
                        }
                    },
                    "required": ["name"]
                }
            ),
            Tool(
                name="get_update_status",
                description="Check if template updates are available by reading the update check state file",
                inputSchema={
                    "type": "object",
                    "properties": {},
                    "required": []
                }
            ),
        ]

    @property
    def tool_names(self) -> List[str]:
        """Names of the registered tools, in catalog order."""
        return [tool.name for tool in self.definitions]

    def call(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> CallToolResult:
        """Run one tool; every failure comes back as an ``isError`` result."""
        handler = self._handlers.get(name)
        if handler is None:
            self.logger.warning(f"Unknown tool requested: {name}")
            return CallToolResult.error(f"Unknown tool: {name}")

        try:
            return handler(arguments or {})
        except ValidationError as e:
            return CallToolResult.error(f"Invalid arguments: {_validation_summary(e)}")
        except Exception as e:
            self.logger.exception(f"Tool {name} failed")
            return CallToolResult.error(f"Tool {name} failed: {e}")

    # --- Script handlers ---

    def _list_scripts(self, arguments: Dict[str, Any]) -> CallToolResult:
        """Handle list_scripts tool."""
        category = ListScriptsArgs(**arguments).category or "all"
        if category not in SCRIPT_CATEGORIES:
            return CallToolResult.error(
                f"Invalid category: {category} (expected one of: {', '.join(SCRIPT_CATEGORIES)})"
            )

        try:
            scripts = self.scripts.list_scripts()
        except MetadataError as e:
            return CallToolResult.error(f"Failed to list scripts: {e}")

        if category != "all":
            scripts = [script for script in scripts if script.category == category]

        return CallToolResult.text(_to_json([script.model_dump(exclude_none=True) for script in scripts]))

    def _get_script_info(self, arguments: Dict[str, Any]) -> CallToolResult:
        """Handle get_script_info tool."""
        name = NameArgs(**arguments).name
        if not name:
            return CallToolResult.error("Missing required parameter: name")

        try:
            info = self.scripts.get_script_info(name)
        except MetadataError as e:
            return CallToolResult.error(f"Failed to get script info: {e}")

        return CallToolResult.text(_to_json(info.model_dump(exclude_none=True)))

    def _run_script(self, arguments: Dict[str, Any]) -> CallToolResult:
        """Handle run_script tool; host-only scripts are refused."""
        params = RunArgs(**arguments)
        if not params.name:
            return CallToolResult.error("Missing required parameter: name")
        args = params.args or []

        if self.scripts.is_host_only(params.name):
            self.logger.info(f"Refusing host-only script: {params.name}")
            return CallToolResult.error(
                HOST_ONLY_MESSAGE.format(name=params.name, args=" ".join(args))
            )

        try:
            result = self.executor.run_script(self.config.scripts_dir, params.name, args)
        except ExecutionError as e:
            return CallToolResult.error(f"Execution failed: {e}")

        return CallToolResult.text(result.render())

    # --- Tool handlers ---

    def _list_tools(self, arguments: Dict[str, Any]) -> CallToolResult:
        """Handle list_tools tool."""
        try:
            tools = self.tools.list_tools()
        except MetadataError as e:
            return CallToolResult.error(f"Failed to list tools: {e}")

        return CallToolResult.text(_to_json([tool.model_dump(exclude_none=True) for tool in tools]))

    def _get_tool_info(self, arguments: Dict[str, Any]) -> CallToolResult:
        """Handle get_tool_info tool."""
        name = NameArgs(**arguments).name
        if not name:
            return CallToolResult.error("Missing required parameter: name")

        try:
            info = self.tools.get_tool_info(name)
        except MetadataError as e:
            return CallToolResult.error(f"Failed to get tool info: {e}")

        return CallToolResult.text(_to_json(info.model_dump(exclude_none=True)))

    def _run_tool(self, arguments: Dict[str, Any]) -> CallToolResult:
        """Handle run_tool tool."""
        params = RunArgs(**arguments)
        if not params.name:
            return CallToolResult.error("Missing required parameter: name")

        try:
            result = self.executor.run_tool(self.config.tools_dir, params.name, params.args or [])
        except ExecutionError as e:
            return CallToolResult.error(f"Execution failed: {e}")

        return CallToolResult.text(result.render())

    # --- Update check handlers ---

    def _get_update_status(self, arguments: Dict[str, Any]) -> CallToolResult:
        """Handle get_update_status tool."""
        try:
            status = get_update_status(self.config.state_file, self.config.template_config_file)
        except UpdateStatusError as e:
            return CallToolResult.error(f"Failed to get update status: {e}")

        return CallToolResult.text(render_update_status(status))


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _validation_summary(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
        for item in error.errors()
    )
