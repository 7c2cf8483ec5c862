"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.

Compiler configuration shared by the Soup and Pluto compilations, and the
toolchain that turns a configuration into a static library.

A ToolchainConfig is an immutable value: every derivation returns a new
config, so the support library's additions never reach the main library.
"""

import dataclasses
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import setuptools  # noqa: F401  # installs the distutils shim on 3.12+
import distutils.ccompiler
import distutils.errors
import distutils.sysconfig
from pybind11.setup_helpers import has_flag

from pluto_src.environment import get_target_var
from pluto_src.exceptions import ToolchainError
from pluto_src.logging import logger

CXX_STANDARD = "c++17"

# Requested on every unit; dropped silently when the compiler rejects them
PORTABILITY_FLAGS = ("-fvisibility=hidden", "-fno-rtti", "-Wno-multichar")

# Lets the compiler lower sqrt() and friends into single instructions
RELEASE_FLAGS = ("-fno-math-errno",)

RELEASE_OPT_LEVEL = 2

DEFAULT_CXX = "c++"

# Vendor fields cross toolchains leave out of their binary prefix
_UNPREFIXED_VENDORS = ("unknown", "pc", "none")


def cross_prefixes(target: str) -> List[str]:
    """
    Binary prefixes a cross toolchain for `target` may be installed under.

    aarch64-unknown-linux-gnu is looked up as itself and as aarch64-linux-gnu;
    armv7-unknown-linux-gnueabihf also as arm-linux-gnueabihf.
    """
    parts = target.split("-")
    prefixes = [target]
    if len(parts) == 4 and parts[1] in _UNPREFIXED_VENDORS:
        parts = [parts[0]] + parts[2:]
        prefixes.append("-".join(parts))
    if parts[0].startswith("arm") and parts[0] != "arm":
        prefixes.append("-".join(["arm"] + parts[1:]))

    unique = []
    for prefix in prefixes:
        if prefix not in unique:
            unique.append(prefix)
    return unique


@dataclass(frozen=True)
class ToolchainConfig:
    """
    Everything the toolchain needs to compile one static library.

    Attributes:
        target (str): Target triple.
        host (str): Host triple.
        files (Tuple[Path, ...]): Translation units, in compile order.
        include_dirs (Tuple[Path, ...]): Extra include directories.
        defines (Tuple[Tuple[str, Optional[str]], ...]): Macros; a None value
            defines the macro without a value.
        flags (Tuple[str, ...]): Extra compiler flags, already probed.
        opt_level (Optional[int]): Optimization level, None for the compiler default.
        std (str): C++ language standard.
        warnings (bool): Enable the compiler's extended warning set.
        debug_info (bool): Emit debug information.
    """
    target: str
    host: str
    files: Tuple[Path, ...] = ()
    include_dirs: Tuple[Path, ...] = ()
    defines: Tuple[Tuple[str, Optional[str]], ...] = ()
    flags: Tuple[str, ...] = ()
    opt_level: Optional[int] = None
    std: str = CXX_STANDARD
    warnings: bool = False
    debug_info: bool = False

    def with_files(self, files: Iterable[Path]) -> "ToolchainConfig":
        return dataclasses.replace(self, files=self.files + tuple(files))

    def with_include_dirs(self, dirs: Iterable[Path]) -> "ToolchainConfig":
        return dataclasses.replace(self, include_dirs=self.include_dirs + tuple(dirs))

    def define(self, name: str, value: Optional[str] = None) -> "ToolchainConfig":
        return dataclasses.replace(self, defines=self.defines + ((name, value),))

    def with_flags(self, flags: Iterable[str]) -> "ToolchainConfig":
        return dataclasses.replace(self, flags=self.flags + tuple(flags))

    def with_opt_level(self, level: int) -> "ToolchainConfig":
        return dataclasses.replace(self, opt_level=level)

    def defined(self, name: str) -> bool:
        """Check whether a macro is defined, with or without a value."""
        return any(define[0] == name for define in self.defines)


def with_supported_flags(config: ToolchainConfig, toolchain, flags: Iterable[str]) -> ToolchainConfig:
    """
    Add each flag the toolchain accepts, skipping the others.

    A rejected flag only costs an optimization or a portability tweak, so it is
    never an error.
    """
    accepted = []
    for flag in flags:
        if toolchain.flag_if_supported(flag):
            accepted.append(flag)
        else:
            logger.debug("Compiler does not support %s, skipping", flag)
    return config.with_flags(accepted)


def configure_base(
    target: str,
    host: str,
    toolchain,
    max_stack_size: Optional[int] = None,
    use_longjmp: Optional[bool] = None,
    debug: bool = False,
) -> ToolchainConfig:
    """
    Build the configuration shared by both compiled units.

    Args:
        target: Target triple
        host: Host triple
        toolchain: Object providing flag_if_supported(flag) -> bool
        max_stack_size: Forwarded as LUAI_MAXSTACK when set
        use_longjmp: Defines LUA_USE_LONGJMP when True
        debug: Debug build (LUA_USE_APICHECK) instead of release (NDEBUG, -O2)

    Returns:
        ToolchainConfig: The base configuration, without any source files.
    """
    config = ToolchainConfig(target=target, host=host, std=CXX_STANDARD, warnings=False)
    config = with_supported_flags(config, toolchain, PORTABILITY_FLAGS)

    if max_stack_size is not None:
        config = config.define("LUAI_MAXSTACK", str(max_stack_size))

    if use_longjmp is True:
        config = config.define("LUA_USE_LONGJMP", "1")

    if debug:
        config = config.define("LUA_USE_APICHECK")
        config = dataclasses.replace(config, debug_info=True)
    else:
        config = config.define("NDEBUG")
        config = config.with_opt_level(RELEASE_OPT_LEVEL)
        config = with_supported_flags(config, toolchain, RELEASE_FLAGS)

    return config


class CompilerToolchain:
    """
    Compiles ToolchainConfig values with the distutils compiler setuptools provides.

    The compiler executable honours the CXX override family and the archiver
    the AR family, resolved like CXXSTDLIB (CXX_<target>, CXX_<target_>,
    HOST_CXX/TARGET_CXX, CXX). CXXFLAGS is appended to every compile.
    Without an override a native build uses c++, and a cross build looks for a
    compiler prefixed with the target triple.

    The interpreter's own CFLAGS are never used: they carry -DNDEBUG and an
    optimization level that would leak into debug builds.
    """

    def __init__(self, target: str, host: str, environ: Mapping[str, str], compiler=None):
        self.target = target
        self.host = host
        self._environ = environ
        self._compiler = compiler if compiler is not None else self._new_compiler()
        self._flag_cache: Dict[str, bool] = {}

    def _new_compiler(self):
        compiler = distutils.ccompiler.new_compiler()
        distutils.sysconfig.customize_compiler(compiler)

        if compiler.compiler_type == "unix":
            cxx, prefix = self._find_cxx()
            cxxflags = get_target_var(self._environ, "CXXFLAGS", self.target, self.host)
            command = f"{cxx} -fPIC"
            if cxxflags:
                command = f"{command} {cxxflags}"
            executables = {"compiler_so": command}
            if "compiler_so_cxx" in compiler.executables:
                executables["compiler_so_cxx"] = command
            compiler.set_executables(**executables)
            logger.debug("Using C++ compiler %s for %s", command, self.target)

            ar = get_target_var(self._environ, "AR", self.target, self.host)
            if not ar and prefix and shutil.which(f"{prefix}-ar"):
                ar = f"{prefix}-ar"
            if ar:
                compiler.set_executables(archiver=f"{ar} -cr")
                logger.debug("Using archiver %s for %s", ar, self.target)

        return compiler

    def _find_cxx(self) -> Tuple[str, Optional[str]]:
        """
        Pick the C++ compiler for the target.

        Returns:
            Tuple[str, Optional[str]]: The compiler command and, for a cross
            compiler found on PATH, the prefix shared by its binutils.

        Raises:
            ToolchainError: If cross-compiling and no compiler for the target exists
        """
        cxx = get_target_var(self._environ, "CXX", self.target, self.host)
        if cxx:
            return cxx, None
        if self.target == self.host:
            return DEFAULT_CXX, None

        prefixes = cross_prefixes(self.target)
        for prefix in prefixes:
            for name in ("g++", "clang++"):
                if shutil.which(f"{prefix}-{name}"):
                    return f"{prefix}-{name}", prefix

        raise ToolchainError(
            f"No C++ compiler found for {self.target}",
            diagnostic=(
                f"No g++ or clang++ on PATH with prefix {', '.join(prefixes)}; "
                f"set CXX_{self.target.replace('-', '_')} to the cross compiler"
            ),
        )

    @property
    def compiler_type(self) -> str:
        return self._compiler.compiler_type

    def flag_if_supported(self, flag: str) -> bool:
        """Probe the compiler for `flag`, once per flag."""
        if flag not in self._flag_cache:
            self._flag_cache[flag] = bool(has_flag(self._compiler, flag))
        return self._flag_cache[flag]

    def compile_args(self, config: ToolchainConfig) -> List[str]:
        """Translate a configuration into compiler arguments."""
        if self.compiler_type == "msvc":
            args = [f"/std:{config.std}", "/EHsc"]
            if config.opt_level:
                args.append("/O2")
            if config.debug_info:
                args.append("/Z7")
            if config.warnings:
                args.append("/W4")
        else:
            args = [f"-std={config.std}"]
            if config.opt_level is not None:
                args.append(f"-O{config.opt_level}")
            if config.debug_info:
                args.append("-g")
            if config.warnings:
                args.extend(["-Wall", "-Wextra"])
        args.extend(config.flags)
        return args

    def compile(self, config: ToolchainConfig, out_dir: Path, lib_name: str) -> Path:
        """
        Compile every file of `config` into `out_dir` and archive them.

        Returns:
            Path: The static library, e.g. out_dir/libsoup.a

        Raises:
            ToolchainError: If compiling or archiving fails
        """
        output_dir = str(out_dir)
        sources = [str(path) for path in config.files]

        # distutils caches the directories it created for the whole process,
        # so after out_dir is wiped it would not recreate them.
        for obj in self._compiler.object_filenames(sources, output_dir=output_dir):
            Path(obj).parent.mkdir(parents=True, exist_ok=True)

        try:
            objects = self._compiler.compile(
                sources,
                output_dir=output_dir,
                macros=list(config.defines),
                include_dirs=[str(path) for path in config.include_dirs],
                extra_postargs=self.compile_args(config),
            )
        except distutils.errors.CompileError as e:
            raise ToolchainError(
                f"Failed to compile {lib_name} for {self.target}",
                lib_name=lib_name,
                diagnostic=str(e),
            ) from e

        try:
            self._compiler.create_static_lib(objects, lib_name, output_dir=output_dir)
        except distutils.errors.LibError as e:
            raise ToolchainError(
                f"Failed to archive {lib_name} for {self.target}",
                lib_name=lib_name,
                diagnostic=str(e),
            ) from e

        return Path(
            self._compiler.library_filename(lib_name, lib_type="static", output_dir=output_dir)
        )
