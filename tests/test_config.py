"""
Tests for configuration loading.

Tests:
  - properties parsing: key=value lines, comments, malformed lines
  - defaults: an empty file yields the built-in defaults
  - validation: bad port, bad protocol, unreadable file raise ConfigError
  - global config: YAML defaults under $XDG_CONFIG_HOME, overridden by the file
"""
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from sftpsync.config import (
    Config, build_config, get_global_config_dir, load_config, load_global_config,
    parse_properties,
)
from sftpsync.errors import ConfigError


# ── Tests: properties parsing ─────────────────────────────────────────────────

class TestParseProperties(unittest.TestCase):

    def test_key_value_lines(self):
        props = parse_properties("ftp.host=example.org\nftp.port = 2222\n  remote.dir=  /srv  \n")
        self.assertEqual(props, {"ftp.host": "example.org", "ftp.port": "2222",
                                 "remote.dir": "/srv"})

    def test_comments_and_blank_lines(self):
        text = "# comment\n! also a comment\n\n   \nftp.host=example.org\n"
        self.assertEqual(parse_properties(text), {"ftp.host": "example.org"})

    def test_value_keeps_inner_separators(self):
        props = parse_properties("ftp.pass=p=ss:word#1\n")
        self.assertEqual(props["ftp.pass"], "p=ss:word#1")

    def test_windows_line_endings(self):
        self.assertEqual(parse_properties("a=1\r\nb=2\r\n"), {"a": "1", "b": "2"})

    def test_empty_value(self):
        self.assertEqual(parse_properties("ftp.pass=\n"), {"ftp.pass": ""})

    def test_last_duplicate_wins(self):
        self.assertEqual(parse_properties("a=1\na=2\n"), {"a": "2"})

    def test_line_without_separator(self):
        with self.assertRaises(ConfigError) as ctx:
            parse_properties("ftp.host=example.org\nftp.port 22\n")
        self.assertIn("line 2", str(ctx.exception))

    def test_missing_key(self):
        with self.assertRaises(ConfigError):
            parse_properties("=value\n")


# ── Tests: building and validating ────────────────────────────────────────────

class TestBuildConfig(unittest.TestCase):

    def test_defaults(self):
        cfg = build_config({})
        self.assertEqual(cfg.host, "localhost")
        self.assertEqual(cfg.port, 21)
        self.assertEqual(cfg.user, "anonymous")
        self.assertEqual(cfg.password, "")
        self.assertEqual(cfg.remote_dir, "/")
        self.assertEqual(cfg.poll_seconds, 30)
        self.assertEqual(cfg.protocol, "sftp")
        self.assertEqual(cfg.local_dir, Path(os.path.abspath("sync")))

    def test_overrides(self):
        cfg = build_config({
            "ftp.host": "files.example.com", "ftp.port": "2222", "ftp.user": "bob",
            "ftp.pass": " secret ", "remote.dir": "/home/bob/share", "poll.seconds": "5",
            "ftp.protocol": "FTP",
        })
        self.assertEqual(cfg.host, "files.example.com")
        self.assertEqual(cfg.port, 2222)
        self.assertEqual(cfg.password, " secret ")
        self.assertEqual(cfg.remote_dir, "/home/bob/share")
        self.assertEqual(cfg.poll_seconds, 5)
        self.assertEqual(cfg.protocol, "ftp")
        self.assertEqual(cfg.address, "bob@files.example.com:2222:/home/bob/share")

    def test_poll_seconds_clamped(self):
        self.assertEqual(build_config({"poll.seconds": "0"}).poll_seconds, 1)
        self.assertEqual(build_config({"poll.seconds": "-4"}).poll_seconds, 1)

    def test_bad_port(self):
        for bad in ("abc", "0", "70000", ""):
            with self.subTest(port=bad):
                with self.assertRaises(ConfigError):
                    build_config({"ftp.port": bad})

    def test_bad_poll(self):
        with self.assertRaises(ConfigError):
            build_config({"poll.seconds": "soon"})

    def test_bad_protocol(self):
        with self.assertRaises(ConfigError):
            build_config({"ftp.protocol": "scp"})

    def test_local_dir_expands_home(self):
        cfg = build_config({"local.dir": "~/mirror"})
        self.assertEqual(cfg.local_dir, Path(os.path.expanduser("~/mirror")))

    def test_config_is_frozen(self):
        cfg = Config()
        with self.assertRaises(Exception):
            cfg.host = "other"


# ── Tests: loading files ──────────────────────────────────────────────────────

class TestLoadConfig(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)
        self.env = mock.patch.dict(os.environ, {"XDG_CONFIG_HOME": str(self.root / "xdg")})
        self.env.start()

    def tearDown(self):
        self.env.stop()
        self.tmpdir.cleanup()

    def _write_global(self, text):
        d = get_global_config_dir()
        d.mkdir(parents=True, exist_ok=True)
        (d / "config.yaml").write_text(text, encoding="utf-8")

    def test_missing_file(self):
        with self.assertRaises(ConfigError):
            load_config(self.root / "nope.properties")

    def test_empty_file_gives_defaults(self):
        path = self.root / "config.properties"
        path.write_text("", encoding="utf-8")
        cfg = load_config(path)
        self.assertEqual(cfg.host, "localhost")
        self.assertEqual(cfg.port, 21)

    def test_reads_file(self):
        path = self.root / "config.properties"
        path.write_text(
            "ftp.host=sftp.example.com\nftp.port=22\nlocal.dir=%s\n" % (self.root / "mirror"),
            encoding="utf-8",
        )
        cfg = load_config(path)
        self.assertEqual(cfg.host, "sftp.example.com")
        self.assertEqual(cfg.port, 22)
        self.assertEqual(cfg.local_dir, self.root / "mirror")

    def test_malformed_line_names_file(self):
        path = self.root / "config.properties"
        path.write_text("ftp.host sftp.example.com\n", encoding="utf-8")
        with self.assertRaises(ConfigError) as ctx:
            load_config(path)
        self.assertIn(str(path), str(ctx.exception))
        self.assertIn("line 1", str(ctx.exception))

    def test_global_dir_follows_xdg(self):
        self.assertEqual(get_global_config_dir(), self.root / "xdg" / "sftpsync")

    def test_no_global_file(self):
        self.assertEqual(load_global_config(), {})

    def test_global_defaults_then_file(self):
        self._write_global("ftp.host: global.example.com\nftp.port: 2200\nftp.user: alice\nftp.pass:\n")
        path = self.root / "config.properties"
        path.write_text("ftp.port=22\n", encoding="utf-8")
        cfg = load_config(path)
        self.assertEqual(cfg.host, "global.example.com")
        self.assertEqual(cfg.user, "alice")
        self.assertEqual(cfg.password, "")
        self.assertEqual(cfg.port, 22)

    def test_global_can_be_ignored(self):
        self._write_global("ftp.host: global.example.com\n")
        path = self.root / "config.properties"
        path.write_text("", encoding="utf-8")
        cfg = load_config(path, use_global=False)
        self.assertEqual(cfg.host, "localhost")

    def test_global_not_a_mapping(self):
        self._write_global("- just\n- a list\n")
        with self.assertRaises(ConfigError):
            load_global_config()

    def test_global_invalid_yaml(self):
        self._write_global("ftp.host: [unclosed\n")
        with self.assertRaises(ConfigError):
            load_global_config()


if __name__ == "__main__":
    unittest.main()
