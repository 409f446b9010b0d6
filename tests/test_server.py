"""Test MCP server implementation."""
import asyncio
import json

import pytest
from mcp.server.lowlevel import Server
from mcp.types import ListToolsRequest

from ralen.errors import UnknownLanguageError
from ralen.server import _text, handle_tool, init_server, tools

from conftest import API, DOWNLOAD, VERSION_SCRIPT, install_fake_runtime, posix_only


def test_tool_definitions():
    """Test every tool declares an object schema"""
    names = [tool.name for tool in tools]
    assert names == ["ralen_install", "ralen_list_installed", "ralen_list_known", "ralen_run"]
    for tool in tools:
        assert tool.inputSchema["type"] == "object"


def test_text_payload():
    """Test results are wrapped as JSON text content"""
    [content] = _text({"success": True, "data": {"x": 1}})
    assert content.type == "text"
    assert json.loads(content.text) == {"success": True, "data": {"x": 1}}


@pytest.mark.asyncio
async def test_init_server_lists_tools(orchestrator):
    """Test server initialization registers the tool list"""
    server = await init_server(orchestrator)
    assert isinstance(server, Server)

    handler = server.request_handlers[ListToolsRequest]
    result = await handler(ListToolsRequest(method="tools/list"))
    assert [tool.name for tool in result.root.tools] == [tool.name for tool in tools]


@pytest.mark.asyncio
async def test_list_known(orchestrator):
    """Test the catalog tool"""
    data = await handle_tool(orchestrator, "ralen_list_known", {})
    assert data == {"languages": [{"key": "salang", "repo": "serene1491/SaLang"}]}


@pytest.mark.asyncio
async def test_list_installed(orchestrator, registry):
    """Test listing installed versions"""
    install_fake_runtime(registry, "salang", "v1.0.0", "#!/bin/sh\n")

    data = await handle_tool(orchestrator, "ralen_list_installed", {"language": "salang"})
    assert data == {"language": "salang", "versions": ["v1.0.0"]}


@posix_only
@pytest.mark.asyncio
async def test_install(orchestrator, registry, session):
    """Test installing through the tool interface"""
    url = f"{DOWNLOAD}/v1.2.0/SaLang"
    session.add(
        f"{API}/releases/tags/v1.2.0",
        json_data={"tag_name": "v1.2.0", "assets": [{"name": "SaLang", "browser_download_url": url}]},
    )
    session.add(url, body=VERSION_SCRIPT.format(version="v1.2.0").encode())

    data = await handle_tool(orchestrator, "ralen_install", {"language": "SaLang", "version": "v1.2.0"})

    assert data == {
        "language": "salang",
        "version": "v1.2.0",
        "path": str(registry.get_path("salang", "v1.2.0")),
    }


@pytest.mark.asyncio
async def test_install_unknown_language(orchestrator):
    """Test errors propagate to the caller"""
    with pytest.raises(UnknownLanguageError):
        await handle_tool(orchestrator, "ralen_install", {"language": "cobol"})


@posix_only
@pytest.mark.asyncio
async def test_run_captures_output(orchestrator, registry, tmp_path):
    """Test project runs return their output"""
    install_fake_runtime(registry, "salang", "v1.0.0", VERSION_SCRIPT.format(version="v1.0.0"))
    project_dir = tmp_path / "app"
    project_dir.mkdir()
    (project_dir / "app.ralenproj").write_text(json.dumps({"language": "salang", "version": "v1.0.0"}))

    data = await handle_tool(orchestrator, "ralen_run", {"path": str(project_dir)})

    assert data["returncode"] == 0
    assert data["stdout"].startswith("ran ")
    assert data["stderr"] == ""


@pytest.mark.asyncio
async def test_unknown_tool(orchestrator):
    """Test unknown tool names raise KeyError"""
    with pytest.raises(KeyError):
        await handle_tool(orchestrator, "ralen_nope", {})


@posix_only
@pytest.mark.asyncio
async def test_run_does_not_share_server_stdin(orchestrator, registry, tmp_path):
    """Test runtimes reading stdin see end of input instead of the protocol stream"""
    script = '#!/bin/sh\nif [ "$1" = "--version" ]; then echo "salang v1.0.0"; exit 0; fi\ncat\necho done\n'
    install_fake_runtime(registry, "salang", "v1.0.0", script)
    project_dir = tmp_path / "app"
    project_dir.mkdir()
    (project_dir / "app.ralenproj").write_text(json.dumps({"language": "salang", "version": "v1.0.0"}))

    data = await asyncio.wait_for(
        handle_tool(orchestrator, "ralen_run", {"path": str(project_dir)}), timeout=10
    )

    assert data["returncode"] == 0
    assert data["stdout"] == "done\n"


@pytest.mark.asyncio
async def test_run_passes_devnull_stdin(orchestrator, tmp_path, monkeypatch):
    """Test project runs get an empty stdin"""
    seen = {}

    async def fake_run_project(orchestrator, path, project, stdout, stderr, stdin):
        seen["stdin"] = stdin
        return 0

    monkeypatch.setattr("ralen.server.run_project", fake_run_project)

    data = await handle_tool(orchestrator, "ralen_run", {"path": str(tmp_path)})

    assert data["returncode"] == 0
    assert seen["stdin"] is asyncio.subprocess.DEVNULL
