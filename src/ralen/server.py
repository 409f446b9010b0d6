"""MCP server exposing runtime installation and project runs."""
import asyncio
import io
import json
import os
from pathlib import Path
from typing import Any, Dict, List

import mcp.types as types
from mcp.server import stdio
from mcp.server.lowlevel import Server
from mcp.server.models import InitializationOptions

from ralen import __version__
from ralen.config import Config
from ralen.errors import RalenError, log_error
from ralen.logging import configure_logging, get_logger
from ralen.orchestrator import Orchestrator
from ralen.registry import RuntimeRegistry
from ralen.runner import run_project
from ralen.types import LATEST

logger = get_logger("server")

tools = [
    types.Tool(
        name="ralen_install",
        description="Install a language runtime release (latest or a specific tag)",
        inputSchema={
            "type": "object",
            "properties": {
                "language": {"type": "string", "description": "Language key, e.g. salang"},
                "version": {"type": "string", "description": "Release tag or 'latest'"},
                "repo": {"type": "string", "description": "owner/repo override"},
            },
            "required": ["language"],
        },
    ),
    types.Tool(
        name="ralen_list_installed",
        description="List installed versions of a language runtime",
        inputSchema={
            "type": "object",
            "properties": {
                "language": {"type": "string", "description": "Language key"},
            },
            "required": ["language"],
        },
    ),
    types.Tool(
        name="ralen_list_known",
        description="List languages ralen can install",
        inputSchema={"type": "object", "properties": {}},
    ),
    types.Tool(
        name="ralen_run",
        description="Run a ralen project directory or .ralenproj file and capture its output",
        inputSchema={
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Project directory or file"},
                "project": {"type": "string", "description": "Project file when several exist"},
            },
            "required": ["path"],
        },
    ),
]


def _text(payload: Dict[str, Any]) -> List[types.TextContent]:
    return [types.TextContent(type="text", text=json.dumps(payload))]


async def handle_tool(orchestrator: Orchestrator, name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """Dispatch a tool call, returning the data payload."""
    if name == "ralen_install":
        tag = await orchestrator.ensure_installed(
            arguments["language"],
            arguments.get("version") or LATEST,
            arguments.get("repo"),
        )
        path = orchestrator.registry.get_path(arguments["language"], tag)
        return {"language": arguments["language"].lower(), "version": tag, "path": str(path)}

    if name == "ralen_list_installed":
        language = arguments["language"]
        return {
            "language": language,
            "versions": orchestrator.registry.list_installed_versions(language),
        }

    if name == "ralen_list_known":
        return {
            "languages": [
                {"key": key, "repo": f"{d.repo_owner}/{d.repo_name}"}
                for key, d in sorted(orchestrator.catalog.items())
            ]
        }

    if name == "ralen_run":
        stdout, stderr = io.StringIO(), io.StringIO()
        project = arguments.get("project")
        returncode = await run_project(
            orchestrator,
            Path(arguments["path"]),
            Path(project) if project else None,
            stdout=stdout,
            stderr=stderr,
            stdin=asyncio.subprocess.DEVNULL,
        )
        return {"returncode": returncode, "stdout": stdout.getvalue(), "stderr": stderr.getvalue()}

    raise KeyError(name)


async def init_server(orchestrator: Orchestrator) -> Server:
    logger.info("tools_registered", tools=[t.name for t in tools])

    server = Server("ralen")

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return tools

    @server.call_tool()
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
        logger.debug("tool_call", tool=name, arguments=arguments)
        try:
            data = await handle_tool(orchestrator, name, arguments or {})
        except KeyError as e:
            if e.args and e.args[0] == name:
                return _text({"success": False, "error": f"Unknown tool: {name}"})
            return _text({"success": False, "error": f"Missing argument: {e}"})
        except RalenError as e:
            log_error(e, {"tool": name})
            return _text({"success": False, "error": str(e), "code": e.code, "details": e.details})
        except Exception as e:
            log_error(e, {"tool": name})
            return _text({"success": False, "error": str(e)})
        return _text({"success": True, "data": data})

    return server


async def serve() -> None:
    configure_logging(os.environ.get("RALEN_LOG_LEVEL", "INFO"))
    config = Config.load()
    orchestrator = Orchestrator(RuntimeRegistry(config.install_dir), default_owner=config.default_owner)
    server = await init_server(orchestrator)

    logger.info("server_starting", install_dir=str(config.install_dir))
    async with stdio.stdio_server() as (read_stream, write_stream):
        init_options = InitializationOptions(
            server_name="ralen",
            server_version=__version__,
            capabilities=types.ServerCapabilities(
                tools=types.ToolsCapability(listChanged=False),
                logging=types.LoggingCapability(),
            ),
        )
        await server.run(read_stream, write_stream, init_options)


def main() -> None:
    """Run the MCP server."""
    asyncio.run(serve())
