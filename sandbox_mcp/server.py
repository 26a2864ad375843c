"""MCP server for sandbox scripts and tools."""

import json
import logging
from typing import Any, Callable, Dict, Optional, Union

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from . import __version__
from .config import Config, load_config
from .logging_config import setup_sandbox_logging
from .models import (
    MCPRequest, MCPResponse, RequestId, InitializeResult, ServerInfo, ListToolsResult,
    CallToolRequest, PARSE_ERROR, INVALID_REQUEST, METHOD_NOT_FOUND,
    INVALID_PARAMS, INTERNAL_ERROR
)
from .registry import ToolRegistry


SERVER_NAME = "sandbox-mcp"
PROTOCOL_VERSION = "2024-11-05"

# Methods that may be called before initialize
PRE_INIT_METHODS = frozenset({"initialize", "notifications/initialized"})


class SessionState:
    """Handshake state of one client connection."""

    def __init__(self):
        self.initialized = False

    def mark_initialized(self) -> None:
        self.initialized = True


class MCPServer:
    """JSON-RPC dispatcher for the sandbox MCP tools."""

    def __init__(self, config: Optional[Config] = None, registry: Optional[ToolRegistry] = None,
                 version: str = __version__):
        self.config = config or Config()
        self.version = version
        self.logger = logging.getLogger("mcp_server")
        self.registry = registry or ToolRegistry(self.config.sandbox)
        self.session = SessionState()

        self._methods: Dict[str, Callable[[MCPRequest], Optional[MCPResponse]]] = {
            "initialize": self._handle_initialize,
            "notifications/initialized": self._handle_initialized_notification,
            "tools/list": self._handle_list_tools,
            "tools/call": self._handle_call_tool,
        }

    @property
    def methods(self):
        """Names of every JSON-RPC method the server answers."""
        return list(self._methods)

    def handle_message(self, payload: Union[str, bytes, Dict[str, Any], Any]) -> Optional[Dict[str, Any]]:
        """Decode one raw JSON-RPC message and return the wire response, if any."""
        if isinstance(payload, (str, bytes, bytearray)):
            try:
                payload = json.loads(payload)
            except ValueError:
                return MCPResponse.failure(None, PARSE_ERROR, "Parse error").to_wire()

        if not isinstance(payload, dict):
            return MCPResponse.failure(None, INVALID_REQUEST, "Invalid request").to_wire()

        try:
            request = MCPRequest(**payload)
        except (ValidationError, TypeError) as e:
            self.logger.warning(f"Invalid request: {e}")
            request_id = payload.get("id")
            if not isinstance(request_id, (str, int, float)) or isinstance(request_id, bool):
                request_id = None
            return MCPResponse.failure(request_id, INVALID_REQUEST, "Invalid request").to_wire()

        response = self.handle_request(request)
        return response.to_wire() if response is not None else None

    def handle_request(self, request: MCPRequest) -> Optional[MCPResponse]:
        """Dispatch a request; notifications return None."""
        handler = self._methods.get(request.method)
        if handler is None:
            return self._create_error_response(
                request.id, METHOD_NOT_FOUND, f"Unknown method: {request.method}"
            )

        if request.method not in PRE_INIT_METHODS and not self.session.initialized:
            self.logger.warning(f"{request.method} called before initialize")
            return self._create_error_response(request.id, INTERNAL_ERROR, "Server not initialized")

        try:
            return handler(request)
        except Exception as e:
            self.logger.exception(f"Unhandled error in {request.method}")
            return self._create_error_response(request.id, INTERNAL_ERROR, f"Internal error: {e}")

    def _handle_initialize(self, request: MCPRequest) -> MCPResponse:
        """Handle initialize method."""
        self.session.mark_initialized()
        client = request.params.get("clientInfo") if isinstance(request.params, dict) else None
        self.logger.info(f"Initialized session (client: {client})")

        result = InitializeResult(
            protocolVersion=PROTOCOL_VERSION,
            capabilities={
                "tools": {}
            },
            serverInfo=ServerInfo(
                name=SERVER_NAME,
                version=self.version
            )
        )
        return MCPResponse.success(request.id, result.model_dump())

    def _handle_initialized_notification(self, request: MCPRequest) -> None:
        """Handle notifications/initialized (no response)."""
        return None

    def _handle_list_tools(self, request: MCPRequest) -> MCPResponse:
        """Handle tools/list method."""
        result = ListToolsResult(tools=self.registry.definitions)
        return MCPResponse.success(request.id, result.model_dump())

    def _handle_call_tool(self, request: MCPRequest) -> MCPResponse:
        """Handle tools/call method."""
        if not isinstance(request.params, dict):
            return self._create_error_response(request.id, INVALID_PARAMS, "Invalid params")

        try:
            tool_request = CallToolRequest(**request.params)
        except ValidationError as e:
            self.logger.warning(f"Invalid tools/call params: {e}")
            return self._create_error_response(request.id, INVALID_PARAMS, "Invalid params")

        self.logger.info(f"Calling tool: {tool_request.name}")
        result = self.registry.call(tool_request.name, tool_request.arguments)
        return MCPResponse.success(request.id, result.to_wire())

    def _create_error_response(self, request_id: Optional[RequestId], code: int, message: str) -> MCPResponse:
        """Create an error response."""
        return MCPResponse.failure(request_id, code, message)


def build_server(config_path: Optional[str] = None, config: Optional[Config] = None) -> MCPServer:
    """Load configuration, set up logging and create the dispatcher."""
    if config is None:
        config = load_config(config_path)
    setup_sandbox_logging(config.to_dict())
    return MCPServer(config)


def create_app(config_path: Optional[str] = None, config: Optional[Config] = None) -> FastAPI:
    """Create the FastAPI app serving JSON-RPC on ``POST /``."""
    server = build_server(config_path, config)
    app = FastAPI(title="Sandbox MCP Server", version=server.version)
    app.state.mcp_server = server

    @app.post("/")
    async def handle_mcp_request(request: Request):
        """Handle MCP JSON-RPC requests."""
        # Handled inline so requests never overlap
        body = await request.body()
        response = server.handle_message(body)
        if response is None:
            return Response(status_code=202)
        return JSONResponse(content=response)

    return app
