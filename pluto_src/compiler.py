"""
Core compile logic: collecting translation units and driving the toolchain.

Both vendored trees have a flat layout, so source directories are listed
without recursing.
"""

import os
from pathlib import Path

from pluto_src.exceptions import SourceDirectoryError
from pluto_src.logging import logger
from pluto_src.toolchain import ToolchainConfig


def add_files_by_ext(config: ToolchainConfig, directory: Path, ext: str) -> ToolchainConfig:
    """
    Add every file of `directory` with extension `ext` to a copy of `config`.

    Files are added in name order so repeated builds compile in the same order.

    Raises:
        SourceDirectoryError: If the directory cannot be listed
    """
    directory = Path(directory)
    suffix = f".{ext}"
    try:
        entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
    except OSError as e:
        raise SourceDirectoryError(
            f"Cannot read source directory {directory}: {e.strerror or e}",
            path=directory,
        ) from e

    files = [
        Path(entry.path)
        for entry in entries
        if entry.is_file() and Path(entry.name).suffix == suffix
    ]
    logger.debug("Found %d *%s files in %s", len(files), suffix, directory)
    return config.with_files(files)


def compile_library(toolchain, config: ToolchainConfig, out_dir: Path, lib_name: str) -> Path:
    """
    Compile `config` into the static library `lib_name` inside `out_dir`.

    Args:
        toolchain: Object providing compile(config, out_dir, lib_name) -> Path
        config: Fully extended configuration, including its source files
        out_dir: Output directory for objects and the archive
        lib_name: Library name without prefix or extension, e.g. "soup"

    Returns:
        Path: The static library produced by the toolchain

    Raises:
        SourceDirectoryError: If there is nothing to compile
        ToolchainError: If the toolchain fails
    """
    if not config.files:
        raise SourceDirectoryError(f"No source files to compile for {lib_name}")

    logger.debug(
        "Compiling %s (%d files) for %s, defines=%s, flags=%s",
        lib_name, len(config.files), config.target,
        [name if value is None else f"{name}={value}" for name, value in config.defines],
        list(config.flags),
    )
    library = toolchain.compile(config, Path(out_dir), lib_name)
    logger.debug("Built %s", library)
    return library
