"""
Shared fixtures for dep-sweeper tests.
"""

import pytest

from dep_sweeper.cli_config import reset_config

CARGO_TOML = """[package]
name = "sample-crate"
version = "0.1.0"
edition = "2021"

[dependencies]
anyhow = "1.0"
regex = { version = "1.5", features = ["unicode"] }
serde-json = "1.0"
once_cell = "1.19"

[dev-dependencies]
tempfile = "3"

[build-dependencies]
cc = "1.0"
"""

MAIN_RS = """use regex::Regex;
use serde_json::Value;

mod util;

fn main() {
    let re = Regex::new(r"\\d+").unwrap();
    let v: Value = serde_json::from_str("{}").unwrap();
    println!("{} {}", re.as_str(), v);
}
"""

UTIL_RS = """use super::*;
use crate::config;

pub fn helper() -> usize {
    self::inner()
}
"""


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep config lookup away from the developer's home and working directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for key in [
        "DEP_SWEEPER_SOURCE_DIR",
        "DEP_SWEEPER_EXTENSION",
        "DEP_SWEEPER_METADATA_SOURCE",
        "DEP_SWEEPER_FAIL_ON_UNUSED",
        "DEP_SWEEPER_IGNORE",
        "DEP_SWEEPER_LOG_LEVEL",
    ]:
        monkeypatch.delenv(key, raising=False)
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_dir(tmp_path):
    """Scratch directory separate from the isolated working directory."""
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    return scratch


@pytest.fixture
def sample_crate(temp_dir):
    """A small crate: regex and serde-json used, anyhow/once_cell/tempfile/cc not."""
    crate = temp_dir / "sample-crate"
    src = crate / "src"
    src.mkdir(parents=True)
    (crate / "Cargo.toml").write_text(CARGO_TOML, encoding="utf-8")
    (src / "main.rs").write_text(MAIN_RS, encoding="utf-8")
    (src / "util.rs").write_text(UTIL_RS, encoding="utf-8")
    return crate


@pytest.fixture
def make_crate(temp_dir):
    """Factory building a crate from a manifest body and {relative path: source}."""

    def _make(manifest: str, sources: dict, name: str = "crate"):
        crate = temp_dir / name
        (crate / "src").mkdir(parents=True)
        (crate / "Cargo.toml").write_text(manifest, encoding="utf-8")
        for rel_path, text in sources.items():
            path = crate / "src" / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return crate

    return _make
