"""
Bridge configuration.

The host hands the plugin a plain dict (or we load one from a YAML/JSON
file for the CLI):

    servers:
      - name: Notion
        url: http://localhost:8000
        prefix: notion
        tokenFile: ~/.secrets/notion-token   # or token: "..."
        path: /mcp                           # optional
    timeout: 30000                           # optional, milliseconds

Invalid entries are skipped with a warning instead of failing the whole
config, so one typo doesn't take every server down.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_MCP_PATH = "/mcp"

REQUIRED_FIELDS = ("name", "url", "prefix")
KNOWN_FIELDS = {
    "name", "url", "prefix", "token", "tokenFile", "token_file", "path", "timeout",
}


@dataclass(frozen=True)
class ServerEndpoint:
    """One configured remote MCP server."""
    name: str
    url: str
    prefix: str
    token: str | None = None
    token_file: str | None = None
    path: str | None = None
    timeout: int | None = None  # milliseconds

    @property
    def endpoint_url(self) -> str:
        return f"{self.url}{self.path or DEFAULT_MCP_PATH}"

    @property
    def service_key(self) -> str:
        """Key under which per-user credentials for this server are stored."""
        return self.prefix


@dataclass
class BridgeConfig:
    servers: list[ServerEndpoint] = field(default_factory=list)
    timeout: int | None = None


def _read_token_file(path: str) -> str:
    return Path(path).expanduser().read_text(encoding="utf-8").strip()


def _parse_timeout(value: Any) -> int | None:
    # bool is an int subclass; a stray `true` is not a timeout
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # .inf, nan and non-positive values are not usable timeouts
        if math.isfinite(value) and value > 0:
            return int(value)
    return None


def parse_bridge_config(
    raw: dict[str, Any] | None,
) -> tuple[BridgeConfig, list[str]]:
    """
    Parse the raw plugin config into a BridgeConfig.

    Returns:
        (config, warnings); warnings describe skipped entries and
        token files that could not be read.
    """
    warnings: list[str] = []

    if not isinstance(raw, dict):
        return BridgeConfig(), warnings

    timeout = _parse_timeout(raw.get("timeout"))

    entries = raw.get("servers")
    if not isinstance(entries, list):
        return BridgeConfig(timeout=timeout), warnings

    servers: list[ServerEndpoint] = []

    for index, entry in enumerate(entries):
        label = f"servers[{index}]"

        if not isinstance(entry, dict):
            warnings.append(f"{label}: entry is not an object, skipping")
            continue

        missing = [f for f in REQUIRED_FIELDS if not isinstance(entry.get(f), str)]
        if missing:
            message = f"{label}: missing required field(s): {', '.join(missing)}"
            unknown = sorted(k for k in entry if k not in KNOWN_FIELDS)
            if unknown:
                message += f" (unknown keys: {', '.join(unknown)})"
            warnings.append(message)
            continue

        token = entry.get("token") if isinstance(entry.get("token"), str) else None
        token_file = entry.get("tokenFile", entry.get("token_file"))
        if not isinstance(token_file, str):
            token_file = None
        path = entry.get("path") if isinstance(entry.get("path"), str) else None

        # Inline token wins; the file is only read when there is none
        if token is None and token_file:
            try:
                token = _read_token_file(token_file)
            except OSError as e:
                warnings.append(
                    f"{label} ({entry['name']}): failed to read tokenFile "
                    f"{token_file}: {e}"
                )

        servers.append(ServerEndpoint(
            name=entry["name"],
            url=entry["url"].rstrip("/"),
            prefix=entry["prefix"],
            token=token,
            token_file=token_file,
            path=path,
            timeout=_parse_timeout(entry.get("timeout")) or timeout,
        ))

    return BridgeConfig(servers=servers, timeout=timeout), warnings


def load_config_file(path: str | Path) -> tuple[BridgeConfig, list[str]]:
    """Load a bridge config from a YAML or JSON file."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")

    if path.suffix == ".json":
        raw = json.loads(text)
    else:
        raw = yaml.safe_load(text)

    config, warnings = parse_bridge_config(raw)
    logger.debug(f"Loaded {len(config.servers)} server(s) from {path}")
    return config, warnings
