"""
This file contains fixtures for the tests in the pluto_src package.
Fixtures:
- source_tree: A miniature vendored Pluto/Soup tree on disk.
- toolchain_factory: Factory producing recording fake toolchains.
- make_build: Build wired to the fake tree, fake toolchain and an explicit environment.
- cleanup_logger: Resets the pluto_src logger singleton around a test.
"""

import logging
from pathlib import Path

import pytest

from pluto_src import Build
from pluto_src.exceptions import ToolchainError
from pluto_src.logging import logger


PLUTO_FILES = ("lapi.cpp", "lvm.cpp", "lstrlib.cpp")
SOUP_FILES = ("aes.cpp", "base64.cpp", "sha256.cpp")
INTRIN_FILES = ("aes_intrin.cpp", "sha256_intrin.cpp")


class FakeToolchain:
    """Records flag probes and compilations instead of running a compiler."""

    def __init__(self, target, host, environ, unsupported=(), fail_on=()):
        self.target = target
        self.host = host
        self.environ = environ
        self.unsupported = set(unsupported)
        self.fail_on = set(fail_on)
        self.probed = []
        self.compiled = []

    def flag_if_supported(self, flag):
        self.probed.append(flag)
        return flag not in self.unsupported

    def compile(self, config, out_dir, lib_name):
        if lib_name in self.fail_on:
            raise ToolchainError(
                f"Failed to compile {lib_name} for {self.target}",
                lib_name=lib_name,
                diagnostic="error: expected ';' before '}' token",
            )
        self.compiled.append((lib_name, config, Path(out_dir)))
        library = Path(out_dir) / f"lib{lib_name}.a"
        library.write_bytes(b"!<arch>\n")
        return library

    def config_for(self, lib_name):
        for name, config, _ in self.compiled:
            if name == lib_name:
                return config
        raise KeyError(lib_name)


class FakeToolchainFactory:
    """Callable handed to Build(toolchain_factory=...); keeps every toolchain it made."""

    def __init__(self, unsupported=(), fail_on=()):
        self.unsupported = unsupported
        self.fail_on = fail_on
        self.instances = []

    def __call__(self, target, host, environ):
        toolchain = FakeToolchain(
            target, host, environ, unsupported=self.unsupported, fail_on=self.fail_on
        )
        self.instances.append(toolchain)
        return toolchain

    @property
    def last(self):
        return self.instances[-1]


def _touch(directory, names):
    directory.mkdir(parents=True, exist_ok=True)
    for name in names:
        (directory / name).write_text("// test source\n", encoding="utf-8")


@pytest.fixture
def source_tree(tmp_path):
    """Create pluto/ with the Soup tree vendored under pluto/vendor/Soup."""
    root = tmp_path / "pluto"
    _touch(root, PLUTO_FILES)
    (root / "lua.hpp").write_text("#pragma once\n", encoding="utf-8")
    soup = root / "vendor" / "Soup"
    _touch(soup / "soup", SOUP_FILES)
    (soup / "soup" / "base.hpp").write_text("#pragma once\n", encoding="utf-8")
    _touch(soup / "Intrin", INTRIN_FILES)
    return root


@pytest.fixture
def toolchain_factory():
    return FakeToolchainFactory()


@pytest.fixture
def make_build(tmp_path, source_tree, toolchain_factory):
    """Return a function creating a Build for `target` against the fake tree."""

    def _make(target="x86_64-unknown-linux-gnu", host=None, factory=None, **extra_env):
        environ = {
            "OUT_DIR": str(tmp_path / "out"),
            "TARGET": target,
            "HOST": host or target,
            "PLUTO_SOURCE_DIR": str(source_tree),
        }
        environ.update(extra_env)
        return Build(environ=environ, toolchain_factory=factory or toolchain_factory)

    return _make


@pytest.fixture
def cleanup_logger():
    """Reset logger state before and after each test"""

    def _reset():
        logger._logger.setLevel(logging.CRITICAL)
        for handler in logger._logger.handlers[:]:
            handler.close()
            logger._logger.removeHandler(handler)
        logger._handlers_initialized = False
        logger._custom_log_path = None
        logger._output_mode = "stdout"
        logger.clear_trace_id()

    _reset()
    yield
    _reset()
