"""Newline-delimited JSON-RPC over stdin/stdout."""

import json
import logging
import sys
from typing import Optional, TextIO

from .server import MCPServer


logger = logging.getLogger("stdio")


def serve_stdio(server: MCPServer, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> None:
    """Answer one request per input line until EOF.

    Each request is handled to completion before the next line is read.
    Notifications produce no output.
    """
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    logger.info("Serving MCP over stdio")

    for line in stdin:
        line = line.strip()
        if not line:
            continue

        response = server.handle_message(line)
        if response is None:
            continue

        stdout.write(json.dumps(response, ensure_ascii=False) + "\n")
        stdout.flush()

    logger.info("stdin closed, shutting down")
