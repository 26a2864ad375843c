"""MCP protocol models."""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, StrictFloat, StrictInt


PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# bool is not a valid id
RequestId = Union[StrictInt, StrictFloat, str]


class MCPRequest(BaseModel):
    """MCP request model."""
    jsonrpc: str = "2.0"
    id: Optional[RequestId] = None
    method: str
    params: Optional[Any] = None

    def is_notification(self) -> bool:
        """Return True if the request carries no id."""
        return self.id is None


class MCPError(BaseModel):
    """MCP error model."""
    code: int
    message: str
    data: Optional[Any] = None


class MCPResponse(BaseModel):
    """MCP response model."""
    jsonrpc: str = "2.0"
    id: Optional[RequestId] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[MCPError] = None

    @classmethod
    def success(cls, request_id: Optional[RequestId], result: Dict[str, Any]) -> "MCPResponse":
        """Create a success response."""
        return cls(id=request_id, result=result)

    @classmethod
    def failure(cls, request_id: Optional[RequestId], code: int, message: str) -> "MCPResponse":
        """Create an error response."""
        return cls(id=request_id, error=MCPError(code=code, message=message))

    def to_wire(self) -> Dict[str, Any]:
        """Serialize for the wire: id always present, exactly one of result/error."""
        data: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            data["error"] = self.error.model_dump(exclude_none=True)
        else:
            data["result"] = self.result if self.result is not None else {}
        return data


class ServerInfo(BaseModel):
    """Server information model."""
    name: str
    version: str


class InitializeResult(BaseModel):
    """Initialize method result."""
    protocolVersion: str
    capabilities: Dict[str, Any]
    serverInfo: ServerInfo


class Tool(BaseModel):
    """Tool definition model."""
    name: str
    description: str
    inputSchema: Dict[str, Any]


class ListToolsResult(BaseModel):
    """List tools result."""
    tools: List[Tool]


class CallToolRequest(BaseModel):
    """Call tool request."""
    name: str
    arguments: Optional[Dict[str, Any]] = None


class TextContent(BaseModel):
    """Text content block."""
    type: str = "text"
    text: str


class CallToolResult(BaseModel):
    """Call tool result."""
    content: List[TextContent]
    isError: Optional[bool] = None

    @classmethod
    def text(cls, text: str) -> "CallToolResult":
        """Successful result carrying one text block."""
        return cls(content=[TextContent(text=text)])

    @classmethod
    def error(cls, text: str) -> "CallToolResult":
        """Tool-level failure carrying one text block."""
        return cls(content=[TextContent(text=text)], isError=True)

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with isError omitted on success."""
        return self.model_dump(exclude_none=True)


class ScriptInfo(BaseModel):
    """Metadata parsed from a script header."""
    name: str
    description: str = ""
    description_localized: Optional[str] = None
    category: str = "utility"
    environment: str = "any"
    host_only: bool = False
    usage: Optional[str] = None
    options: Optional[str] = None


class ToolInfo(BaseModel):
    """Metadata parsed from a tool program header."""
    name: str
    description: str = ""
    usage: Optional[str] = None
    options: Optional[str] = None
    examples: Optional[List[str]] = None
