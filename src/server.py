"""
Vault assignment MCP server entry point.

Startup sequence:
1. Read VAULT_ROOT, EXCLUDE_DIRS and the team settings from environment
2. Initialize TaskIndex (full vault scan)
3. Start index background worker thread
4. Start VaultWatcher daemon thread
5. Register all MCP tools
6. Start REST API server in background thread (if API_ENABLED)
7. Run MCP server (stdio transport)
"""

import logging
import os
import sys
import threading
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from api.tools import register_tools
from cache.task_index import TaskIndex
from utils.marks import VARIANTS, Team, parse_team_members
from watcher.vault_watcher import VaultWatcher

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)
log = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "1", "yes")


def _parse_exclude_dirs(raw: str) -> set:
    """Parse a comma-separated list of directory names to exclude."""
    return {part.strip() for part in raw.split(",") if part.strip()}


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in _TRUE_VALUES


def _load_team() -> Team:
    team = parse_team_members(
        os.environ.get("TEAM_MEMBERS", ""), name=os.environ.get("TEAM_NAME", "")
    )
    log.info("Team %r: %d members", team.name, len(team.members))
    return team


def _mark_variant() -> str:
    variant = os.environ.get("MARK_VARIANT", "active").lower()
    if variant not in VARIANTS:
        log.warning("Unknown MARK_VARIANT %r, using 'active'", variant)
        return "active"
    return variant


def _start_api_server(index, team: Team, strict: bool, variant: str, port: int) -> None:
    """Run the FastAPI/uvicorn server in a daemon thread."""
    import uvicorn

    from api.app import create_app

    app = create_app(index, team=team, strict=strict, variant=variant)
    log.info("Starting REST API on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")


def main() -> None:
    vault_root_env = os.environ.get("VAULT_ROOT", "")
    if not vault_root_env:
        log.error("VAULT_ROOT environment variable is not set")
        sys.exit(1)

    vault_root = Path(vault_root_env)
    if not vault_root.is_dir():
        log.error("VAULT_ROOT does not exist or is not a directory: %s", vault_root)
        sys.exit(1)

    exclude_raw = os.environ.get("EXCLUDE_DIRS", ".git,.obsidian,node_modules,.trash")
    exclude_dirs = _parse_exclude_dirs(exclude_raw)

    log.info("Vault root: %s", vault_root)
    log.info("Excluded dirs: %s", exclude_dirs)

    team = _load_team()
    strict = _env_flag("STRICT_DELEGATES", "true")
    variant = _mark_variant()

    # Initialize index and perform full vault scan
    index = TaskIndex()
    index.initialize(vault_root, exclude_dirs)

    # Start background worker that drains the update queue
    index.start_worker()

    # Start file system watcher
    watcher = VaultWatcher(index)
    watcher.start()

    # Start REST API in a daemon thread
    if _env_flag("API_ENABLED", "true"):
        api_port = int(os.environ.get("API_PORT", "9400"))
        api_thread = threading.Thread(
            target=_start_api_server,
            args=(index, team, strict, variant, api_port),
            daemon=True,
        )
        api_thread.start()

    # Create MCP server and register tools
    mcp = FastMCP("vault-assign-mcp")
    register_tools(mcp, index, team=team, strict=strict, variant=variant)

    log.info("Starting vault-assign-mcp server")
    try:
        mcp.run(transport="stdio")
    finally:
        watcher.stop()
        index.stop_worker()


if __name__ == "__main__":
    main()
