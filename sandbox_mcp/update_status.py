"""Read-only view of the upstream template update checker's state."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


logger = logging.getLogger("update_status")


class UpdateStatusError(Exception):
    """Update checker files are missing or malformed."""
    pass


@dataclass
class TemplateConfig:
    """Template repository configuration."""
    repo: str = ""
    channel: str = "all"
    enabled: bool = True
    interval_hours: int = 24


@dataclass
class UpdateState:
    """Contents of the update-check state file."""
    last_checked: Optional[int] = None
    latest_version: str = ""


@dataclass
class UpdateStatus:
    """Combined configuration and state."""
    latest_version: str
    repo: str
    channel: str
    enabled: bool
    interval_hours: int
    release_url: str
    last_checked: Optional[int] = None


def read_state_file(state_file: str) -> UpdateState:
    """Read ``<unix_timestamp>:<version>`` from the state file.

    A missing file means no check has run yet and yields an empty state.
    """
    try:
        with open(state_file, "r", encoding="utf-8") as f:
            content = f.read().strip()
    except FileNotFoundError:
        return UpdateState()
    except OSError as e:
        raise UpdateStatusError(f"failed to read state file: {e}")

    if not content:
        raise UpdateStatusError("state file is empty")

    timestamp, sep, version = content.partition(":")
    if not sep:
        raise UpdateStatusError("invalid state file format (expected timestamp:version)")

    last_checked: Optional[int]
    try:
        last_checked = int(timestamp)
        datetime.fromtimestamp(last_checked, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        logger.warning(f"Ignoring unusable timestamp in state file: {timestamp!r}")
        last_checked = None

    return UpdateState(last_checked=last_checked, latest_version=version.strip())


def parse_template_config(config_file: str) -> TemplateConfig:
    """Parse ``KEY="VALUE"`` lines of the template source config."""
    config = TemplateConfig()

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except OSError as e:
        raise UpdateStatusError(f"failed to open config file: {e}")

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        value = value.strip().strip("\"'")

        if key == "TEMPLATE_REPO":
            config.repo = value
        elif key == "CHECK_CHANNEL":
            config.channel = value
        elif key == "CHECK_UPDATES":
            config.enabled = value == "true"
        elif key == "CHECK_INTERVAL_HOURS":
            try:
                config.interval_hours = int(value)
            except ValueError:
                logger.warning(f"Ignoring invalid CHECK_INTERVAL_HOURS: {value!r}")

    if not config.repo:
        raise UpdateStatusError("TEMPLATE_REPO is required in config file")

    return config


def get_update_status(state_file: str, config_file: str) -> UpdateStatus:
    """Combine the checker's config and last recorded state."""
    try:
        config = parse_template_config(config_file)
    except UpdateStatusError as e:
        raise UpdateStatusError(f"failed to parse config: {e}")

    try:
        state = read_state_file(state_file)
    except UpdateStatusError as e:
        # Corrupt state is reported as "not yet checked"
        logger.warning(f"Ignoring update state: {e}")
        state = UpdateState()

    return UpdateStatus(
        latest_version=state.latest_version,
        repo=config.repo,
        channel=config.channel,
        enabled=config.enabled,
        interval_hours=config.interval_hours,
        release_url=f"https://github.com/{config.repo}/releases",
        last_checked=state.last_checked,
    )


def render_update_status(status: UpdateStatus) -> str:
    """Human-readable status block."""
    lines = ["📦 Template Update Status", ""]

    if status.latest_version:
        lines.append(f"Latest version: {status.latest_version}")
    else:
        lines.append("Latest version: (not yet checked)")

    if status.last_checked is not None:
        checked = datetime.fromtimestamp(status.last_checked, tz=timezone.utc)
        lines.append(f"Last checked: {checked.strftime('%Y-%m-%d %H:%M:%S UTC')}")

    lines.append(f"Repository: {status.repo}")
    lines.append(f"Channel: {status.channel}")
    lines.append(f"Updates enabled: {'true' if status.enabled else 'false'}")
    lines.append(f"Check interval: {status.interval_hours}h")
    lines.append("")
    lines.append(f"Release notes: {status.release_url}")

    if status.latest_version:
        lines.append("")
        lines.append("💡 To update, ask: \"Please update to the latest version\"")

    return "\n".join(lines) + "\n"
