"""
PEP 517 Build Backend for projects embedding Pluto.

This module wraps setuptools' build backend and compiles the Pluto static
libraries before building wheels, so extensions linking them find the archives.

Usage in pyproject.toml:
    [build-system]
    requires = ["setuptools>=61.0", "wheel", "pybind11", "pluto-src"]
    build-backend = "pluto_src.build_backend"

Config settings (pip --config-settings / python -m build -C):
    --skip-pluto-compile   Do not compile, use libraries already built
    --target, --host       Override the target/host triples
"""

from pathlib import Path

from setuptools.build_meta import (
    build_wheel as _setuptools_build_wheel,
    build_sdist as _setuptools_build_sdist,
    get_requires_for_build_wheel as _get_requires_for_build_wheel,
    get_requires_for_build_sdist as _get_requires_for_build_sdist,
    prepare_metadata_for_build_wheel as _prepare_metadata_for_build_wheel,
)

from .build import Build, find_source_dir
from .environment import BUILD_SUBDIR
from .exceptions import PlutoBuildError, SourceDirectoryError
from .platform_utils import detect_host_triple


def compile_pluto(config_settings=None):
    """
    Compile the Pluto static libraries for a wheel build.

    Returns:
        Artifacts or None: None when the vendored tree is missing, which is
        taken to mean the libraries are prebuilt.

    Raises:
        SourceDirectoryError: If the vendored tree is present but incomplete
        ToolchainError: If compilation fails
    """
    config_settings = config_settings or {}

    builder = Build()
    settings = builder.settings
    try:
        find_source_dir(settings.source_dir)
    except SourceDirectoryError as e:
        print(f"[build_backend] {e}; assuming prebuilt libraries")
        return None

    target = config_settings.get("--target") or settings.target or detect_host_triple()
    host = config_settings.get("--host") or settings.host or detect_host_triple()
    builder.target(target).host(host)
    if settings.out_dir is None:
        builder.out_dir(Path.cwd() / "build" / BUILD_SUBDIR)

    print(f"[build_backend] Compiling Pluto for {target} into {settings.out_dir}...")
    try:
        artifacts = builder.build()
    except PlutoBuildError as e:
        print(f"[build_backend] Compilation failed: {e}")
        raise

    print("[build_backend] Compilation successful!")
    artifacts.print_metadata()
    return artifacts


def _should_compile(config_settings) -> bool:
    if config_settings and config_settings.get("--skip-pluto-compile", False):
        print("[build_backend] Skipping Pluto compilation (--skip-pluto-compile)")
        return False
    return True


# =============================================================================
# PEP 517 Required Hooks
# =============================================================================

def get_requires_for_build_wheel(config_settings=None):
    """Return build requirements for wheel."""
    return _get_requires_for_build_wheel(config_settings)


def get_requires_for_build_sdist(config_settings=None):
    """Return build requirements for sdist."""
    return _get_requires_for_build_sdist(config_settings)


def prepare_metadata_for_build_wheel(metadata_directory, config_settings=None):
    """Prepare wheel metadata."""
    return _prepare_metadata_for_build_wheel(metadata_directory, config_settings)


def build_wheel(wheel_directory, config_settings=None, metadata_directory=None):
    """
    Build a wheel, compiling the Pluto static libraries first.
    """
    print("[build_backend] Starting wheel build...")
    if _should_compile(config_settings):
        compile_pluto(config_settings)

    print("[build_backend] Creating wheel...")
    return _setuptools_build_wheel(wheel_directory, config_settings, metadata_directory)


def build_sdist(sdist_directory, config_settings=None):
    """
    Build a source distribution.

    For sdist, we don't compile - just package the sources.
    """
    print("[build_backend] Building source distribution...")
    return _setuptools_build_sdist(sdist_directory, config_settings)


# =============================================================================
# Optional PEP 660 Hooks (Editable Installs)
# =============================================================================

def get_requires_for_build_editable(config_settings=None):
    """Return build requirements for editable install."""
    return get_requires_for_build_wheel(config_settings)


def build_editable(wheel_directory, config_settings=None, metadata_directory=None):
    """
    Build an editable wheel, compiling the Pluto static libraries first.
    """
    print("[build_backend] Starting editable install...")
    if _should_compile(config_settings):
        compile_pluto(config_settings)

    from setuptools.build_meta import build_editable as _setuptools_build_editable
    return _setuptools_build_editable(wheel_directory, config_settings, metadata_directory)
