"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module initializes the pluto_src package.

pluto_src compiles the vendored Pluto interpreter and its Soup support
library into static libraries during a host project's build.
"""

__version__ = "0.5.0"

from .exceptions import (
    PlutoBuildError,
    PreconditionError,
    SourceDirectoryError,
    ToolchainError,
)

from .build import Artifacts, Build
from .toolchain import CompilerToolchain, ToolchainConfig
from .stdlib import get_cpp_link_stdlib
from .logging import setup_logging

__all__ = [
    "Artifacts",
    "Build",
    "CompilerToolchain",
    "ToolchainConfig",
    "get_cpp_link_stdlib",
    "setup_logging",
    "PlutoBuildError",
    "PreconditionError",
    "SourceDirectoryError",
    "ToolchainError",
]
