"""
Integration tests for dep-sweeper.
Tests manifest loading, source traversal and complete analysis runs.
"""

import json
import subprocess
from unittest.mock import patch

import pytest

from dep_sweeper.analyzer import DependencyAnalyzer, get_dependency_analyzer
from dep_sweeper.error_handling import MetadataError, SourceTreeError
from dep_sweeper.manifest import (
    dedupe_dependencies,
    load_cargo_metadata,
    load_dependencies,
    parse_cargo_toml,
)
from dep_sweeper.reporting import build_json_report, render_text_report
from dep_sweeper.sources import iter_source_files, read_source_file


class TestManifestParsing:
    """Test reading dependency metadata from Cargo.toml."""

    def test_parse_sample_manifest(self, sample_crate):
        deps = parse_cargo_toml(str(sample_crate / "Cargo.toml"))

        assert [d.name for d in deps] == [
            "anyhow",
            "regex",
            "serde-json",
            "once_cell",
            "tempfile",
            "cc",
        ]
        regex = deps[1]
        assert regex.version == "1.5"
        assert regex.features == ("unicode",)
        assert {d.name: d.kind for d in deps}["tempfile"] == "dev"
        assert {d.name: d.kind for d in deps}["cc"] == "build"

    def test_table_forms(self, make_crate):
        crate = make_crate(
            """[package]
name = "x"
version = "0.1.0"

[dependencies]
local = { path = "../local" }
renamed = { package = "real-name", version = "2", optional = true }

[target."cfg(unix)".dependencies]
nix = "0.27"
""",
            {"lib.rs": ""},
        )
        deps = parse_cargo_toml(str(crate / "Cargo.toml"))
        by_name = {d.name: d for d in deps}

        assert by_name["local"].version == "*"
        assert by_name["real-name"].optional is True
        assert "renamed" not in by_name
        assert by_name["nix"].kind == "normal"

    def test_missing_manifest(self, temp_dir):
        with pytest.raises(MetadataError, match="does not exist"):
            parse_cargo_toml(str(temp_dir / "Cargo.toml"))

    def test_invalid_toml(self, temp_dir):
        manifest = temp_dir / "Cargo.toml"
        manifest.write_text("[package\nname = ")
        with pytest.raises(MetadataError, match="Invalid TOML"):
            parse_cargo_toml(str(manifest))

    def test_virtual_manifest_has_no_root_package(self, temp_dir):
        manifest = temp_dir / "Cargo.toml"
        manifest.write_text('[workspace]\nmembers = ["a"]\n')
        with pytest.raises(MetadataError, match="No root package"):
            parse_cargo_toml(str(manifest))

    def test_duplicate_names_keep_first(self, make_crate):
        crate = make_crate(
            """[package]
name = "x"
version = "0.1.0"

[dependencies]
rand = "0.8"

[dev-dependencies]
rand = { version = "0.8", features = ["small_rng"] }
""",
            {"lib.rs": ""},
        )
        deps = load_dependencies(str(crate / "Cargo.toml"))
        assert len(deps) == 1
        assert deps[0].kind == "normal"
        assert dedupe_dependencies(deps + deps) == deps

    def test_unknown_metadata_source(self, sample_crate):
        with pytest.raises(MetadataError, match="Unknown metadata source"):
            load_dependencies(str(sample_crate / "Cargo.toml"), source="npm")


class TestCargoMetadata:
    """Test the `cargo metadata` collaborator with a mocked subprocess."""

    def _completed(self, payload):
        return subprocess.CompletedProcess(
            args=["cargo"], returncode=0, stdout=json.dumps(payload), stderr=""
        )

    def test_root_package_selected_by_manifest(self, sample_crate):
        manifest = sample_crate / "Cargo.toml"
        payload = {
            "packages": [
                {
                    "id": "other 0.1.0",
                    "manifest_path": str(sample_crate / "other" / "Cargo.toml"),
                    "dependencies": [{"name": "wrong", "req": "*", "features": []}],
                },
                {
                    "id": "sample-crate 0.1.0",
                    "manifest_path": str(manifest.resolve()),
                    "dependencies": [
                        {"name": "anyhow", "req": "^1.0", "features": [], "kind": None},
                        {
                            "name": "regex",
                            "req": "^1.5",
                            "features": ["unicode"],
                            "kind": None,
                        },
                        {"name": "tempfile", "req": "^3", "features": [], "kind": "dev"},
                    ],
                },
            ],
            "resolve": None,
        }
        with patch(
            "dep_sweeper.manifest.subprocess.run", return_value=self._completed(payload)
        ) as mock_run:
            deps = load_cargo_metadata(str(manifest))

        assert mock_run.call_args[0][0][:2] == ["cargo", "metadata"]
        assert [d.name for d in deps] == ["anyhow", "regex", "tempfile"]
        assert deps[0].version == "^1.0"
        assert deps[0].kind == "normal"
        assert deps[1].features == ("unicode",)
        assert deps[2].kind == "dev"

    def test_no_root_package(self, sample_crate):
        payload = {"packages": [], "resolve": None}
        with patch(
            "dep_sweeper.manifest.subprocess.run", return_value=self._completed(payload)
        ):
            with pytest.raises(MetadataError, match="No root package"):
                load_cargo_metadata(str(sample_crate / "Cargo.toml"))

    def test_cargo_failure_is_fatal(self, sample_crate):
        error = subprocess.CalledProcessError(101, ["cargo"], stderr="error: broken")
        with patch("dep_sweeper.manifest.subprocess.run", side_effect=error):
            with pytest.raises(MetadataError, match="cargo metadata failed"):
                load_cargo_metadata(str(sample_crate / "Cargo.toml"))

    def test_cargo_missing(self, sample_crate):
        with patch(
            "dep_sweeper.manifest.subprocess.run", side_effect=FileNotFoundError()
        ):
            with pytest.raises(MetadataError, match="cargo executable not found"):
                load_cargo_metadata(str(sample_crate / "Cargo.toml"))


class TestSourceTree:
    """Test source traversal and reading."""

    def test_recursive_listing_filtered_and_sorted(self, make_crate):
        crate = make_crate(
            '[package]\nname = "x"\nversion = "0.1.0"\n',
            {
                "main.rs": "",
                "b/mod.rs": "",
                "a/deep/inner.rs": "",
                "notes.md": "use rand::Rng;",
            },
        )
        files = [
            p.relative_to(crate / "src").as_posix()
            for p in iter_source_files(crate / "src")
        ]
        assert files == ["main.rs", "a/deep/inner.rs", "b/mod.rs"]

    def test_missing_source_dir(self, temp_dir):
        with pytest.raises(SourceTreeError, match="does not exist"):
            list(iter_source_files(temp_dir / "nope"))

    def test_invalid_utf8_is_fatal(self, temp_dir):
        bad = temp_dir / "bad.rs"
        bad.write_bytes(b"use \xff\xfe;")
        with pytest.raises(SourceTreeError, match="invalid UTF-8"):
            read_source_file(bad)

    def test_unreadable_file_is_fatal(self, temp_dir):
        with pytest.raises(SourceTreeError):
            read_source_file(temp_dir / "missing.rs")


class TestEndToEndAnalysis:
    """Test complete analysis runs over temporary crates."""

    def test_sample_crate(self, sample_crate):
        analyzer = DependencyAnalyzer()
        result = analyzer.analyze(str(sample_crate / "Cargo.toml"))

        assert result.files_scanned == 2
        assert result.unused_names == ["anyhow", "once_cell", "tempfile", "cc"]
        assert "serde-json" in result.used_identifiers
        assert "regex" in result.used_identifiers

    def test_scenario_report(self, make_crate):
        crate = make_crate(
            """[package]
name = "scenario"
version = "0.1.0"

[dependencies]
anyhow = "1.0"
regex = { version = "1.5", features = ["unicode"] }
""",
            {"main.rs": "use regex::Regex;\n"},
        )
        result = DependencyAnalyzer().analyze(str(crate / "Cargo.toml"))
        report = render_text_report(result.unused)

        assert report.count("(POTENTIALLY UNUSED)") == 1
        assert "anyhow (POTENTIALLY UNUSED)\nVersion: 1.0\nFeature flags: []" in report
        assert "regex" not in report

    def test_flagged_once_across_many_files(self, make_crate):
        sources = {f"m{i}.rs": "fn f() {}\n" for i in range(5)}
        crate = make_crate(
            '[package]\nname = "x"\nversion = "0.1.0"\n\n[dependencies]\nrand = "0.8"\n',
            sources,
        )
        result = DependencyAnalyzer().analyze(str(crate / "Cargo.toml"))
        report = render_text_report(result.unused)

        assert result.files_scanned == 5
        assert report.count("rand (POTENTIALLY UNUSED)") == 1
        assert report.count("  4. Check conditional compilation flags") == 1

    def test_usage_in_another_file_counts(self, make_crate):
        crate = make_crate(
            '[package]\nname = "x"\nversion = "0.1.0"\n\n[dependencies]\ntokio-util = "0.7"\n',
            {"main.rs": "mod codec;\n", "codec.rs": "use tokio_util::codec::Framed;\n"},
        )
        result = DependencyAnalyzer().analyze(str(crate / "Cargo.toml"))
        assert result.unused == ()

    def test_macro_only_crate(self, make_crate):
        crate = make_crate(
            '[package]\nname = "x"\nversion = "0.1.0"\n\n[dependencies]\nserde = "1"\n',
            {"lib.rs": "#[derive(serde_derive::Serialize)]\nstruct S;\nuse serde::Serialize as _;\n"},
        )
        result = DependencyAnalyzer().analyze(str(crate / "Cargo.toml"))
        assert result.unused == ()

    def test_idempotent(self, sample_crate):
        analyzer = DependencyAnalyzer()
        first = analyzer.analyze(str(sample_crate / "Cargo.toml"))
        second = analyzer.analyze(str(sample_crate / "Cargo.toml"))

        assert first.used_identifiers == second.used_identifiers
        assert render_text_report(first.unused) == render_text_report(second.unused)

    def test_missing_source_dir_aborts(self, make_crate):
        crate = make_crate('[package]\nname = "x"\nversion = "0.1.0"\n', {})
        (crate / "src").rmdir()
        with pytest.raises(SourceTreeError):
            DependencyAnalyzer().analyze(str(crate / "Cargo.toml"))

    def test_bad_file_aborts_whole_run(self, make_crate):
        crate = make_crate(
            '[package]\nname = "x"\nversion = "0.1.0"\n\n[dependencies]\nrand = "0.8"\n',
            {"a.rs": "use rand::Rng;\n"},
        )
        (crate / "src" / "b.rs").write_bytes(b"\xff\xfe")
        with pytest.raises(SourceTreeError):
            DependencyAnalyzer().analyze(str(crate / "Cargo.toml"))

    def test_ignored_dependency(self, sample_crate):
        result = DependencyAnalyzer(ignored=["cc"]).analyze(
            str(sample_crate / "Cargo.toml")
        )
        assert "cc" not in result.unused_names
        assert result.ignored == ("cc",)

    def test_json_report_matches_text(self, sample_crate):
        result = DependencyAnalyzer().analyze(str(sample_crate / "Cargo.toml"))
        data = build_json_report(result)

        assert [entry["name"] for entry in data["unused"]] == result.unused_names
        assert data["summary"]["unused"] == 4
        assert data["summary"]["used"] == 2
        assert sorted(data["used"]) == ["regex", "serde-json"]
        assert len(data["unused"][0]["hints"]) == 4

    def test_factory_uses_config(self, sample_crate, monkeypatch):
        monkeypatch.setenv("DEP_SWEEPER_IGNORE", "anyhow, cc")
        analyzer = get_dependency_analyzer()
        result = analyzer.analyze(str(sample_crate / "Cargo.toml"))
        assert result.unused_names == ["once_cell", "tempfile"]
