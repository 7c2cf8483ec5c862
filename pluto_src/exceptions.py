"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains the exceptions raised while building the Pluto static libraries.

All of them are fatal for the build: nothing in pluto_src catches them, so an
uncaught error ends the host build script with its diagnostic.
"""

from typing import Optional


class PlutoBuildError(Exception):
    """
    Base class for all pluto_src errors.
    It can be used to catch any failure raised by Build.build().
    """
    def __init__(self, message="A build error occurred") -> None:
        self.message = message
        super().__init__(self.message)


class PreconditionError(PlutoBuildError):
    """
    Error raised when the build is misconfigured by its caller.
    This covers a missing TARGET, HOST or OUT_DIR at build time.
    """
    def __init__(self, message="A build precondition is not met") -> None:
        super().__init__(message)


class SourceDirectoryError(PreconditionError):
    """
    Error raised when a vendored source directory cannot be read,
    or holds no translation units to compile.
    """
    def __init__(self, message="Source directory is not readable", path=None) -> None:
        self.path = path
        super().__init__(message)


class ToolchainError(PlutoBuildError):
    """
    Error raised when the compiler or archiver fails.
    The diagnostic produced by the toolchain is kept in `diagnostic`.
    """
    def __init__(
        self,
        message="The toolchain failed",
        lib_name: Optional[str] = None,
        diagnostic: Optional[str] = None,
    ) -> None:
        self.lib_name = lib_name
        self.diagnostic = diagnostic
        super().__init__(message)

    def __str__(self) -> str:
        if self.diagnostic:
            return f"{self.message}\n{self.diagnostic}"
        return self.message
