"""
Tests for the `python -m pluto_src` command line.
"""

import pytest

import pluto_src.__main__ as cli
from pluto_src import build as build_module

from conftest import FakeToolchainFactory

ENV_VARS = ("OUT_DIR", "TARGET", "HOST", "PROFILE", "PLUTO_SOURCE_DIR", "CXXSTDLIB",
            "HOST_CXXSTDLIB", "TARGET_CXXSTDLIB")


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def fake_toolchain(monkeypatch):
    factory = FakeToolchainFactory()
    monkeypatch.setattr(build_module, "CompilerToolchain", factory)
    return factory


def test_build_prints_metadata(clean_env, fake_toolchain, source_tree, tmp_path, capsys):
    out_dir = tmp_path / "out"
    code = cli.main([
        "--target", "x86_64-unknown-linux-gnu",
        "--host", "x86_64-unknown-linux-gnu",
        "--out-dir", str(out_dir),
        "--source-dir", str(source_tree),
        "--max-stack-size", "500000",
        "--use-longjmp",
    ])
    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.splitlines() == [
        f"cargo:rustc-link-search=native={out_dir}",
        "cargo:rustc-link-lib=static=pluto",
        "cargo:rustc-link-lib=static=soup",
        "cargo:rustc-link-lib=stdc++",
    ]
    assert "[pluto_src] Target: x86_64-unknown-linux-gnu" in captured.err
    config = fake_toolchain.last.config_for("pluto")
    assert ("LUAI_MAXSTACK", "500000") in config.defines
    assert ("LUA_USE_LONGJMP", "1") in config.defines
    assert config.defined("NDEBUG")


def test_debug_flag(clean_env, fake_toolchain, source_tree, tmp_path):
    code = cli.main([
        "--target", "aarch64-apple-darwin", "--host", "aarch64-apple-darwin",
        "--out-dir", str(tmp_path / "out"), "--source-dir", str(source_tree),
        "--debug", "--quiet",
    ])
    assert code == 0
    assert fake_toolchain.last.config_for("soup").defined("LUA_USE_APICHECK")


def test_quiet(clean_env, fake_toolchain, source_tree, tmp_path, capsys):
    code = cli.main([
        "--target", "x86_64-apple-darwin", "--host", "x86_64-apple-darwin",
        "--out-dir", str(tmp_path / "out"), "--source-dir", str(source_tree), "-q",
    ])
    captured = capsys.readouterr()
    assert code == 0
    assert captured.out == ""
    assert captured.err == ""


def test_defaults_to_detected_triple(clean_env, fake_toolchain, source_tree, tmp_path):
    clean_env.setattr(cli, "detect_host_triple", lambda: "aarch64-unknown-linux-musl")
    clean_env.setenv("OUT_DIR", str(tmp_path))
    code = cli.main(["--source-dir", str(source_tree), "-q"])
    assert code == 0
    toolchain = fake_toolchain.last
    assert toolchain.target == "aarch64-unknown-linux-musl"
    assert toolchain.host == "aarch64-unknown-linux-musl"
    assert (tmp_path / "pluto-build" / "libsoup.a").exists()


def test_environment_beats_detection(clean_env, fake_toolchain, source_tree, tmp_path):
    clean_env.setattr(cli, "detect_host_triple", lambda: "x86_64-unknown-linux-gnu")
    clean_env.setenv("TARGET", "aarch64-linux-android")
    code = cli.main(["--source-dir", str(source_tree), "--out-dir", str(tmp_path / "o"), "-q"])
    assert code == 0
    assert fake_toolchain.last.target == "aarch64-linux-android"
    assert fake_toolchain.last.host == "x86_64-unknown-linux-gnu"


def test_missing_sources(clean_env, fake_toolchain, tmp_path, capsys):
    code = cli.main([
        "--target", "x86_64-unknown-linux-gnu", "--host", "x86_64-unknown-linux-gnu",
        "--out-dir", str(tmp_path / "out"), "--source-dir", str(tmp_path / "missing"),
    ])
    assert code == 1
    assert "Error: Pluto source directory not found" in capsys.readouterr().err


def test_toolchain_failure(clean_env, monkeypatch, source_tree, tmp_path, capsys):
    monkeypatch.setattr(build_module, "CompilerToolchain", FakeToolchainFactory(fail_on={"soup"}))
    code = cli.main([
        "--target", "x86_64-unknown-linux-gnu", "--host", "x86_64-unknown-linux-gnu",
        "--out-dir", str(tmp_path / "out"), "--source-dir", str(source_tree),
    ])
    assert code == 1
    assert "Build failed: Failed to compile soup" in capsys.readouterr().err


def test_unsupported_platform(clean_env, fake_toolchain, capsys):
    def unsupported():
        raise OSError("Unsupported platform: sunos5")

    clean_env.setattr(cli, "detect_host_triple", unsupported)
    assert cli.main([]) == 1
    assert "Unsupported platform" in capsys.readouterr().err


def test_version(capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--version"])
    assert exc_info.value.code == 0
    assert "0.5.0" in capsys.readouterr().out
