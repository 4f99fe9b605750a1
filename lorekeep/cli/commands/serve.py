# lorekeep/cli/commands/serve.py
"""
Start the REST API server.

Usage:
    lorekeep serve
    lorekeep serve --host 0.0.0.0 --port 8080
"""

from __future__ import annotations

import uvicorn

from lorekeep.cli.ui import ui


def command(host: str = "127.0.0.1", port: int = 8000, reload: bool = False) -> None:
    ui.header("Lorekeep API", f"http://{host}:{port}/docs")
    uvicorn.run(
        "lorekeep.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )
