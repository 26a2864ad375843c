"""Configuration management for Sandbox MCP Server."""

import json
import os
from typing import Optional, Dict, List
from dataclasses import dataclass, field


DEFAULT_HOST_ONLY_SCRIPTS = ["copy-credentials.sh", "init-host-env.sh"]
DEFAULT_CONTAINER_ONLY_SCRIPTS = [
    "sync-secrets.sh",
    "validate-secrets.sh",
    "sync-compose-secrets.sh",
]


@dataclass
class SandboxConfig:
    """Locations and execution settings for sandbox scripts and tools."""
    scripts_dir: str = "/workspace/.sandbox/scripts"
    tools_dir: str = "/workspace/.sandbox/tools"
    state_file: str = "/workspace/.sandbox/.state/update-check"
    template_config_file: str = "/workspace/.sandbox/config/template-source.conf"
    host_only_scripts: List[str] = field(default_factory=lambda: list(DEFAULT_HOST_ONLY_SCRIPTS))
    container_only_scripts: List[str] = field(default_factory=lambda: list(DEFAULT_CONTAINER_ONLY_SCRIPTS))
    excluded_scripts: List[str] = field(default_factory=lambda: ["help.sh"])
    shell: str = "bash"
    tool_runners: Dict[str, List[str]] = field(default_factory=lambda: {".go": ["go", "run"]})
    execution_timeout: float = 30


@dataclass
class ServerConfig:
    """MCP server configuration."""
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "WARNING"
    log_file: Optional[str] = None


@dataclass
class Config:
    """Main configuration."""
    sandbox: SandboxConfig = field(default_factory=SandboxConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    def to_dict(self) -> Dict:
        """Convert configuration to dictionary for logging setup."""
        return {
            "log_level": self.server.log_level,
            "host": self.server.host,
            "port": self.server.port,
            "log_file": self.server.log_file,
        }


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from file."""
    if config_path is None:
        for path in ["sandbox-mcp.json", "config.json"]:
            if os.path.exists(path):
                config_path = path
                break
        else:
            return Config()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise TypeError("top-level value must be an object")

        return Config(
            sandbox=SandboxConfig(**data.get("sandbox", {})),
            server=ServerConfig(**data.get("server", {}))
        )

    except (OSError, json.JSONDecodeError, TypeError) as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}")
