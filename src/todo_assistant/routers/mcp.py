from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

import pydantic
import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..dependencies import get_toolbox
from ..tools import INVALID_PARAMS, METHOD_NOT_FOUND, TodoToolbox, ToolError

log = structlog.get_logger()

PROTOCOL_VERSION = "2024-11-05"
SERVER_INFO = {"name": "AI Todo Assistant MCP Server", "version": "1.0.0"}

router = APIRouter(prefix="/mcp", tags=["mcp"])

RequestId = Union[int, str, None]


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request envelope."""

    jsonrpc: str = "2.0"
    id: RequestId = None
    method: str = ""
    params: Optional[Dict[str, Any]] = None


class JsonRpcError(BaseModel):
    code: int
    message: str
    data: Optional[Any] = None


class ToolCallParams(BaseModel):
    name: str = Field(..., description="Tool to invoke")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="Tool arguments")


def _ok(request_id: RequestId, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def _fail(request_id: RequestId, code: int, message: str, data: Any = None) -> Dict[str, Any]:
    error = JsonRpcError(code=code, message=message, data=data).model_dump(exclude_none=True)
    return {"jsonrpc": "2.0", "id": request_id, "error": error}


def _initialize_result() -> Dict[str, Any]:
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "capabilities": {"tools": {"listChanged": True}},
        "serverInfo": dict(SERVER_INFO),
    }


def _call_tool(toolbox: TodoToolbox, request_id: RequestId, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not params or not isinstance(params.get("name"), str):
        return _fail(request_id, INVALID_PARAMS, "Missing tool name")
    try:
        call = ToolCallParams.model_validate({"name": params["name"], "arguments": params.get("arguments") or {}})
    except pydantic.ValidationError:
        return _fail(request_id, INVALID_PARAMS, "Invalid params")
    try:
        result = toolbox.call(call.name, call.arguments)
    except ToolError as e:
        return _fail(request_id, e.code, e.message, e.data)
    return _ok(request_id, result)


# PUBLIC_INTERFACE
@router.post("", summary="JSON-RPC endpoint", description="Dispatch initialize, ping, tools/list and tools/call.")
def rpc(request: JsonRpcRequest, toolbox: TodoToolbox = Depends(get_toolbox)) -> Dict[str, Any]:
    log.info("mcp request", method=request.method, request_id=request.id)
    if request.method == "initialize":
        return _ok(request.id, _initialize_result())
    if request.method == "ping":
        return _ok(request.id, {})
    if request.method == "tools/list":
        return _ok(request.id, {"tools": toolbox.list_tools()})
    if request.method == "tools/call":
        return _call_tool(toolbox, request.id, request.params)
    return _fail(request.id, METHOD_NOT_FOUND, f"Method not found: {request.method}")


# PUBLIC_INTERFACE
@router.post("/initialize", summary="Initialize")
def initialize() -> Dict[str, Any]:
    return _ok("init", _initialize_result())


@router.post("/ping", summary="Ping")
def ping() -> Dict[str, Any]:
    return _ok("ping", "pong")


@router.post("/shutdown", summary="Shutdown")
def shutdown() -> Dict[str, Any]:
    # Nothing to release: the store's lifecycle belongs to the application
    return _ok("shutdown", None)


# PUBLIC_INTERFACE
@router.get("/tools/list", summary="List Tools")
def tools_list(toolbox: TodoToolbox = Depends(get_toolbox)) -> Dict[str, Any]:
    tools: List[Dict[str, Any]] = toolbox.list_tools()
    return _ok("tools_list", {"tools": tools})


# PUBLIC_INTERFACE
@router.post("/tools/call", summary="Call Tool")
def tools_call(request: JsonRpcRequest, toolbox: TodoToolbox = Depends(get_toolbox)) -> Dict[str, Any]:
    log.info("mcp tool call", request_id=request.id)
    return _call_tool(toolbox, request.id, request.params)
