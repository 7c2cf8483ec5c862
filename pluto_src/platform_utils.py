"""
Platform detection utilities for pluto_src.

Used by the CLI and the build backend to default TARGET/HOST when the host
build system does not provide them.
"""

import glob
import platform
import sys

_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "x86_64": "x86_64",
    "arm64": "aarch64",
    "aarch64": "aarch64",
    "i386": "i686",
    "i686": "i686",
    "x86": "i686",
}


def normalize_architecture(machine: str) -> str:
    """
    Map a platform.machine() value to the architecture part of a triple.

    Raises:
        OSError: If the architecture is not supported
    """
    arch = _ARCH_ALIASES.get(machine.lower())
    if arch is None:
        raise OSError(
            f"Unsupported architecture '{machine}'; "
            "expected x86_64, aarch64 or i686."
        )
    return arch


def _is_musl() -> bool:
    libc_name, _ = platform.libc_ver()
    if not libc_name:
        # platform.libc_ver() returns an empty name on Alpine
        return bool(glob.glob("/lib/ld-musl*"))
    return "musl" in libc_name.lower()


def detect_host_triple() -> str:
    """
    Get the target triple of the running interpreter's platform.

    Returns:
        str: e.g. "x86_64-unknown-linux-gnu", "aarch64-apple-darwin",
        "x86_64-pc-windows-msvc"

    Raises:
        OSError: If the platform or architecture is not supported
    """
    arch = normalize_architecture(platform.machine())

    if sys.platform.startswith("win"):
        return f"{arch}-pc-windows-msvc"

    elif sys.platform.startswith("darwin"):
        return f"{arch}-apple-darwin"

    elif sys.platform.startswith("linux"):
        libc = "musl" if _is_musl() else "gnu"
        return f"{arch}-unknown-linux-{libc}"

    elif sys.platform.startswith("freebsd"):
        return f"{arch}-unknown-freebsd"

    elif sys.platform.startswith("openbsd"):
        return f"{arch}-unknown-openbsd"

    raise OSError(f"Unsupported platform: {sys.platform}")
