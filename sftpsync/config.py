"""
Configuration for sftpsync
"""
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .errors import ConfigError

# ══════════════════════════════════════════════════════════════════════════════
#  DEFAULTS  ── overridden by the global YAML file, then by config.properties
# ══════════════════════════════════════════════════════════════════════════════

DEFAULT_CONFIG_FILE = "config.properties"

DEFAULTS = {
    "ftp.host": "localhost",
    # SFTP servers normally listen on 22; 21 is kept as the historical default
    "ftp.port": "21",
    "ftp.user": "anonymous",
    "ftp.pass": "",
    "ftp.protocol": "sftp",
    "local.dir": "sync",
    "remote.dir": "/",
    "poll.seconds": "30",
}

PROTOCOLS = ("sftp", "ftp")

# Session and channel timeouts (seconds)
CONNECT_TIMEOUT = 10

# A local change to a file written from remote less than this long ago is an echo
RECENT_DOWNLOAD_WINDOW_MS = 3000

# Write-stability: two size samples this far apart must agree ...
STABLE_WAIT_MS = 300
# ... before this much time has gone by
STABLE_MAX_MS = 5000

# Rename heuristic: local mtime (ms) vs remote mtime (s * 1000)
RENAME_MTIME_TOLERANCE_MS = 2000

# Names the watcher never propagates
TEMP_PREFIX = "."
TEMP_SUFFIXES = (".tmp", ".part", ".swp")

# Pending watcher events; beyond this the watcher reports an overflow
WATCH_QUEUE_SIZE = 10000


@dataclass(frozen=True)
class Config:
    host: str = DEFAULTS["ftp.host"]
    port: int = 21
    user: str = DEFAULTS["ftp.user"]
    password: str = ""
    local_dir: Path = Path(DEFAULTS["local.dir"])
    remote_dir: str = DEFAULTS["remote.dir"]
    poll_seconds: int = 30
    protocol: str = "sftp"

    @property
    def address(self) -> str:
        return f"{self.user}@{self.host}:{self.port}:{self.remote_dir}"


# ══════════════════════════════════════════════════════════════════════════════
#  GLOBAL CONFIG FILE  ── $XDG_CONFIG_HOME/sftpsync/config.yaml
# ══════════════════════════════════════════════════════════════════════════════

def get_global_config_dir() -> Path:
    """Return the global config directory for sftpsync."""
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / "sftpsync"
    if os.name == "nt":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "sftpsync"
    return Path.home() / ".config" / "sftpsync"


def load_global_config() -> dict:
    """
    Load global defaults from the sftpsync config directory.

    The file is a flat YAML mapping using the same keys as config.properties.
    A missing file means no global defaults.
    """
    cfg_path = get_global_config_dir() / "config.yaml"
    if not cfg_path.is_file():
        return {}
    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot read {cfg_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{cfg_path}: expected a mapping of key: value")
    return {str(k): "" if v is None else str(v) for k, v in data.items()}


# ══════════════════════════════════════════════════════════════════════════════
#  PROPERTIES FILE  ── key=value, one per line
# ══════════════════════════════════════════════════════════════════════════════

def parse_properties(text: str) -> dict:
    """
    Parse ``key=value`` lines into a dict of strings.

    Blank lines and lines starting with ``#`` or ``!`` are skipped. Whitespace
    around keys and values is dropped; the value runs to the end of the line
    and may itself contain ``=``.
    """
    props: dict = {}
    for lineno, raw in enumerate(text.splitlines(), 1):
        line = raw.strip()
        if not line or line[0] in "#!":
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigError(f"line {lineno}: expected key=value, got {line!r}")
        props[key] = value.strip()
    return props


def load_properties(path) -> dict:
    """Read and parse a properties file; raise ConfigError if it cannot be read or parsed."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"cannot read config file {p}: {exc}") from exc
    try:
        return parse_properties(text)
    except ConfigError as exc:
        raise ConfigError(f"{p}: {exc}") from None


# ══════════════════════════════════════════════════════════════════════════════
#  BUILD CONFIG
# ══════════════════════════════════════════════════════════════════════════════

def _int_value(props: dict, key: str) -> int:
    raw = props[key].strip()
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None


def build_config(props: dict) -> Config:
    """Merge *props* over DEFAULTS and validate the result."""
    merged = dict(DEFAULTS)
    merged.update(props)

    port = _int_value(merged, "ftp.port")
    if not 0 < port < 65536:
        raise ConfigError(f"ftp.port out of range: {port}")

    protocol = merged["ftp.protocol"].strip().lower()
    if protocol not in PROTOCOLS:
        raise ConfigError(f"ftp.protocol must be one of {', '.join(PROTOCOLS)}, got {protocol!r}")

    local_dir = Path(os.path.abspath(Path(merged["local.dir"].strip()).expanduser()))

    return Config(
        host=merged["ftp.host"].strip(),
        port=port,
        user=merged["ftp.user"].strip(),
        password=merged["ftp.pass"],
        local_dir=local_dir,
        remote_dir=merged["remote.dir"].strip(),
        poll_seconds=max(1, _int_value(merged, "poll.seconds")),
        protocol=protocol,
    )


def load_config(path=DEFAULT_CONFIG_FILE, use_global: bool = True) -> Config:
    """
    Load the daemon configuration.

    Precedence (lowest to highest): built-in DEFAULTS, the global YAML file,
    the properties file at *path*. Raises ConfigError on any problem.
    """
    props = load_global_config() if use_global else {}
    props.update(load_properties(path))
    return build_config(props)
