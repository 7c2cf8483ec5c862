"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.

Build entry point: compiles the vendored Pluto and Soup trees into static
libraries and describes how to link them.

Usage from a host build script:

    from pluto_src import Build

    artifacts = Build().set_max_stack_size(1_000_000).build()
    artifacts.print_metadata()
"""

import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

from pluto_src.arch import apply_augmentation, dispatch
from pluto_src.compiler import add_files_by_ext, compile_library
from pluto_src.environment import BuildSettings, read_environment, snapshot_environment
from pluto_src.exceptions import PreconditionError, SourceDirectoryError
from pluto_src.logging import logger
from pluto_src.stdlib import get_cpp_link_stdlib
from pluto_src.toolchain import CompilerToolchain, configure_base

PLUTO_LIB_NAME = "pluto"
SOUP_LIB_NAME = "soup"
SOURCE_EXT = "cpp"

PathLike = Union[str, Path]


def find_source_dir(source_dir: Optional[Path] = None) -> Path:
    """
    Find the root of the vendored Pluto tree.

    An explicit directory must exist. Otherwise the tree is looked up next to
    this package, then in the current working directory.

    Raises:
        SourceDirectoryError: If no source tree is found
    """
    if source_dir is not None:
        if not Path(source_dir).is_dir():
            raise SourceDirectoryError(
                f"Pluto source directory not found: {source_dir}", path=source_dir
            )
        return Path(source_dir)

    possible_paths = [
        Path(__file__).resolve().parent / "pluto",
        Path.cwd() / "pluto",
    ]
    for path in possible_paths:
        if path.is_dir():
            return path

    raise SourceDirectoryError(
        "Could not find the vendored pluto/ source tree. "
        "Set PLUTO_SOURCE_DIR or call Build.source_dir()."
    )


@dataclass(frozen=True)
class Artifacts:
    """
    Result of a build: where the static libraries are and what to link.

    Attributes:
        lib_dir (Path): Directory holding the static libraries.
        libs (Tuple[str, ...]): Library names in link order, main library first.
        cpp_stdlib (Optional[str]): C++ runtime library to link, if any.
    """
    lib_dir: Path
    libs: Tuple[str, ...]
    cpp_stdlib: Optional[str] = None

    def metadata_lines(self) -> List[str]:
        """Link directives for the host build system, one per line."""
        lines = [f"cargo:rustc-link-search=native={self.lib_dir}"]
        for lib in self.libs:
            lines.append(f"cargo:rustc-link-lib=static={lib}")
        if self.cpp_stdlib:
            lines.append(f"cargo:rustc-link-lib={self.cpp_stdlib}")
        return lines

    def print_metadata(self, file=None) -> None:
        """Print the link directives to `file` (stdout by default)."""
        out = sys.stdout if file is None else file
        for line in self.metadata_lines():
            print(line, file=out)

    def extension_kwargs(self) -> Dict[str, List[str]]:
        """
        Keyword arguments linking the libraries into a setuptools Extension.

        Example:
            Extension("mymod", ["mymod.cpp"], **artifacts.extension_kwargs())
        """
        libraries = list(self.libs)
        if self.cpp_stdlib:
            libraries.append(self.cpp_stdlib)
        return {"library_dirs": [str(self.lib_dir)], "libraries": libraries}


class Build:
    """
    Configures and runs one build of the Pluto static libraries.

    Defaults come from the environment, read once here: OUT_DIR (plus a
    pluto-build subdirectory), TARGET, HOST, PROFILE and PLUTO_SOURCE_DIR.
    Setters override them and return the Build for chaining.
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        toolchain_factory: Optional[Callable] = None,
    ) -> None:
        """
        Args:
            environ: Environment snapshot to use instead of os.environ
            toolchain_factory: Callable (target, host, environ) -> toolchain,
                defaults to CompilerToolchain
        """
        self._environ = snapshot_environment(environ)
        self._toolchain_factory = toolchain_factory or CompilerToolchain
        self.settings: BuildSettings = read_environment(self._environ)

    def out_dir(self, path: PathLike) -> "Build":
        self.settings.out_dir = Path(path)
        return self

    def target(self, target: str) -> "Build":
        self.settings.target = target
        return self

    def host(self, host: str) -> "Build":
        self.settings.host = host
        return self

    def set_max_stack_size(self, size: int) -> "Build":
        self.settings.max_stack_size = size
        return self

    def use_longjmp(self, use: bool) -> "Build":
        self.settings.use_longjmp = use
        return self

    def debug(self, debug: bool) -> "Build":
        self.settings.debug = debug
        return self

    def source_dir(self, path: PathLike) -> "Build":
        self.settings.source_dir = Path(path)
        return self

    def build(self) -> Artifacts:
        """
        Compile Soup and Pluto into fresh static libraries.

        The output directory is deleted and recreated first, so nothing from a
        previous build survives.

        Returns:
            Artifacts: Library directory, libraries in link order, C++ runtime

        Raises:
            PreconditionError: If target, host or out_dir is not set
            SourceDirectoryError: If a source directory cannot be read
            ToolchainError: If compiling or archiving fails
        """
        settings = self.settings
        if settings.target is None:
            raise PreconditionError("TARGET not set")
        if settings.host is None:
            raise PreconditionError("HOST not set")
        if settings.out_dir is None:
            raise PreconditionError("OUT_DIR not set")

        target = settings.target
        host = settings.host
        out_dir = settings.out_dir

        pluto_source_dir = find_source_dir(settings.source_dir)
        soup_source_dir = pluto_source_dir / "vendor" / "Soup"

        logger.set_trace_id(logger.generate_trace_id("BUILD"))
        try:
            logger.debug(
                "Building for target=%s host=%s (%s) into %s",
                target, host, "debug" if settings.debug else "release", out_dir,
            )

            # Cleanup
            if out_dir.exists():
                logger.debug("Removing previous output %s", out_dir)
                shutil.rmtree(out_dir)
            out_dir.mkdir(parents=True)

            toolchain = self._toolchain_factory(target, host, self._environ)
            config = configure_base(
                target,
                host,
                toolchain,
                max_stack_size=settings.max_stack_size,
                use_longjmp=settings.use_longjmp,
                debug=settings.debug,
            )

            # Build Soup
            soup_config = add_files_by_ext(config, soup_source_dir / "soup", SOURCE_EXT)
            soup_config = apply_augmentation(
                soup_config, dispatch(target), toolchain, soup_source_dir
            )
            compile_library(toolchain, soup_config, out_dir, SOUP_LIB_NAME)

            # Build Pluto
            pluto_config = add_files_by_ext(config, pluto_source_dir, SOURCE_EXT)
            compile_library(toolchain, pluto_config, out_dir, PLUTO_LIB_NAME)

            cpp_stdlib = get_cpp_link_stdlib(target, host, self._environ)
            logger.debug("C++ runtime library: %s", cpp_stdlib or "<implicit>")
        finally:
            logger.clear_trace_id()

        return Artifacts(
            lib_dir=out_dir,
            libs=(PLUTO_LIB_NAME, SOUP_LIB_NAME),
            cpp_stdlib=cpp_stdlib,
        )
