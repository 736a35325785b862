from __future__ import annotations

from pathlib import Path
import tempfile
import textwrap
import unittest

from ngxbuild.config_loader import (
    ConfigError,
    load_options_file,
    mapping_to_arguments,
    merge_argument_lists,
    parse_options_text,
)


class PlainOptionsTests(unittest.TestCase):
    def test_comments_are_truncated(self) -> None:
        text = textwrap.dedent(
            """
            # nginx with naxsi
            -s https://example.com/nginx.git@release-1.12.1   # pinned
            -m https://example.com/naxsi.git@0.55.3,naxsi_src
                # indented comment
            -o--with-http_ssl_module
            """
        )
        self.assertEqual(
            parse_options_text(text),
            [
                "-s",
                "https://example.com/nginx.git@release-1.12.1",
                "-m",
                "https://example.com/naxsi.git@0.55.3,naxsi_src",
                "-o--with-http_ssl_module",
            ],
        )

    def test_quoted_values_are_kept_together(self) -> None:
        self.assertEqual(
            parse_options_text("--option='--with-cc-opt=-O2 -g'\n"),
            ["--option=--with-cc-opt=-O2 -g"],
        )

    def test_unbalanced_quote_reports_line(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            parse_options_text("-s ok\n-o 'broken\n")
        self.assertIn("line 2", str(ctx.exception))


class StructuredOptionsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _expected(self) -> list[str]:
        return [
            "--source",
            "https://example.com/nginx.git@release-1.12.1",
            "--workspace",
            "/tmp/ws",
            "--module",
            "https://example.com/pcre.git@8.40",
            "--module",
            "https://example.com/naxsi.git@0.55.3,naxsi_src",
            "--option=--with-http_ssl_module",
            "--jobs",
            "4",
            "--dont-clone",
        ]

    def test_toml_file(self) -> None:
        path = self.root / "nginx.toml"
        path.write_text(
            textwrap.dedent(
                """
                source = "https://example.com/nginx.git@release-1.12.1"
                workspace = "/tmp/ws"
                modules = [
                    "https://example.com/pcre.git@8.40",
                    "https://example.com/naxsi.git@0.55.3,naxsi_src",
                ]
                options = ["--with-http_ssl_module"]
                jobs = 4
                dont_clone = true
                """
            )
        )
        self.assertEqual(load_options_file(path), self._expected())

    def test_yaml_file(self) -> None:
        path = self.root / "nginx.yaml"
        path.write_text(
            textwrap.dedent(
                """
                source: https://example.com/nginx.git@release-1.12.1
                workspace: /tmp/ws
                modules:
                  - https://example.com/pcre.git@8.40
                  - https://example.com/naxsi.git@0.55.3,naxsi_src
                options: --with-http_ssl_module
                jobs: 4
                dont_clone: true
                clone_only: false
                """
            )
        )
        self.assertEqual(load_options_file(path), self._expected())

    def test_json_file(self) -> None:
        path = self.root / "nginx.json"
        path.write_text(
            '{"source": "https://example.com/nginx.git@release-1.12.1", "workspace": "/tmp/ws",'
            ' "modules": ["https://example.com/pcre.git@8.40", "https://example.com/naxsi.git@0.55.3,naxsi_src"],'
            ' "options": ["--with-http_ssl_module"], "jobs": 4, "dont_clone": true}'
        )
        self.assertEqual(load_options_file(path), self._expected())

    def test_plain_file_by_default(self) -> None:
        path = self.root / "nginx.conf"
        path.write_text("-n  # reuse clones\n-j 2\n")
        self.assertEqual(load_options_file(path), ["-n", "-j", "2"])

    def test_empty_yaml_yields_no_arguments(self) -> None:
        path = self.root / "empty.yml"
        path.write_text("")
        self.assertEqual(load_options_file(path), [])

    def test_unknown_keys_are_rejected(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            mapping_to_arguments({"source": "https://example.com/nginx.git", "modlues": []})
        self.assertIn("modlues", str(ctx.exception))

    def test_invalid_values_are_rejected(self) -> None:
        for data in ({"jobs": 0}, {"jobs": True}, {"dont_clone": "yes"}, {"modules": [1]}, {"source": ""}):
            with self.subTest(data=data):
                with self.assertRaises(ConfigError):
                    mapping_to_arguments(data)

    def test_non_mapping_root_is_rejected(self) -> None:
        path = self.root / "list.json"
        path.write_text('["-n"]')
        with self.assertRaises(ConfigError):
            load_options_file(path)

    def test_malformed_file_is_reported(self) -> None:
        path = self.root / "broken.toml"
        path.write_text("source = \n")
        with self.assertRaises(ConfigError) as ctx:
            load_options_file(path)
        self.assertIn(str(path), str(ctx.exception))

    def test_missing_file_is_reported(self) -> None:
        with self.assertRaises(ConfigError):
            load_options_file(self.root / "absent.conf")


class MergeArgumentListsTests(unittest.TestCase):
    def test_file_arguments_come_first(self) -> None:
        merged = merge_argument_lists([["-m", "a"], ["-m", "b"]], ["-m", "c", "-n"])
        self.assertEqual(merged, ["-m", "a", "-m", "b", "-m", "c", "-n"])

    def test_no_files_keeps_command_line(self) -> None:
        self.assertEqual(merge_argument_lists([], ["-k"]), ["-k"])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
