#!/usr/bin/env python3
"""
sftpsync  —  two-way mirror daemon between a local folder and an SFTP server
=============================================================================

Usage:
  sftpsync [CONFIG] [options]

CONFIG defaults to ./config.properties. Keys:
  ftp.host, ftp.port, ftp.user, ftp.pass, ftp.protocol (sftp|ftp),
  local.dir, remote.dir, poll.seconds

Options:
  -v, --verbose         Log every decision, not just actions
  --once                Run a single remote → local reconciliation and exit
  --no-global-config    Ignore $XDG_CONFIG_HOME/sftpsync/config.yaml
  -h, --help            Show this help

The daemon runs until SIGINT (Ctrl+C) or SIGTERM and exits with status 0.
"""
import argparse
import signal
import sys
import threading

from sftpsync import __version__
from sftpsync.config import DEFAULT_CONFIG_FILE, load_config
from sftpsync.core.sync_engine import PeriodicSyncer
from sftpsync.core.transport import make_transport
from sftpsync.core.watcher import LocalWatcher
from sftpsync.errors import ConfigError
from sftpsync.state.sync_state import SyncState
from sftpsync.utils.logging import error, log, set_verbose


class Daemon:
    """Owns the shared state, the transport and both workers."""

    def __init__(self, cfg, transport=None, observer_factory=None):
        self.cfg = cfg
        self.state = SyncState()
        self.transport = transport if transport is not None else make_transport(cfg)
        self.syncer = PeriodicSyncer(cfg, self.transport, self.state)
        watcher_kw = {"observer_factory": observer_factory} if observer_factory else {}
        self.watcher = LocalWatcher(cfg, self.transport, self.state, **watcher_kw)
        self._stop_requested = threading.Event()

    def start(self):
        self.cfg.local_dir.mkdir(parents=True, exist_ok=True)
        self.syncer.start()
        try:
            self.watcher.start()
        except OSError:
            self.syncer.stop()
            raise

    def stop(self):
        """Stop in reverse start order; safe to call twice."""
        self.watcher.stop()
        self.syncer.stop()

    def request_stop(self, signum=None, frame=None):
        if signum is not None:
            log(f"Received signal {signum}, shutting down …")
        self._stop_requested.set()

    def wait(self):
        # short waits keep the main thread responsive to signals
        while not self._stop_requested.wait(1):
            pass


def _print_banner(cfg):
    print(f"\n{'=' * 64}")
    print(f"  Mirror  {cfg.local_dir}")
    print(f"   ↔     {cfg.protocol}://{cfg.address}")
    print(f"{'=' * 64}\n", flush=True)


def run_once(cfg) -> int:
    """Single reconciliation tick; exit status 1 when the tick was aborted."""
    daemon = Daemon(cfg)
    cfg.local_dir.mkdir(parents=True, exist_ok=True)
    try:
        report = daemon.syncer.run_once()
    finally:
        daemon.transport.disconnect()
    if report is None:
        return 1
    log(f"[sync] {report.summary()}")
    return 0


def run_daemon(cfg) -> int:
    daemon = Daemon(cfg)
    signal.signal(signal.SIGINT, daemon.request_stop)
    signal.signal(signal.SIGTERM, daemon.request_stop)

    try:
        daemon.start()
    except OSError as exc:
        error(f"cannot watch {cfg.local_dir}: {exc}")
        return 1
    log("Daemon started. Press Ctrl+C to stop.")
    try:
        daemon.wait()
    finally:
        daemon.stop()
    log("Daemon stopped.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sftpsync",
        description="Two-way mirror daemon between a local folder and an SFTP server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("config", nargs="?", default=DEFAULT_CONFIG_FILE, metavar="CONFIG",
                        help=f"Path to the key=value config file (default: {DEFAULT_CONFIG_FILE})")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log every decision, not just actions")
    parser.add_argument("--once", action="store_true",
                        help="Run a single remote → local reconciliation and exit")
    parser.add_argument("--no-global-config", action="store_true",
                        help="Ignore the global config.yaml defaults")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv=None) -> int:
    """CLI entry point for sftpsync"""
    args = build_parser().parse_args(argv)
    set_verbose(args.verbose)

    try:
        cfg = load_config(args.config, use_global=not args.no_global_config)
    except ConfigError as exc:
        error(f"config: {exc}")
        return 1

    _print_banner(cfg)
    if args.once:
        return run_once(cfg)
    return run_daemon(cfg)


if __name__ == "__main__":
    sys.exit(main())
