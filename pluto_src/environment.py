"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module reads the build defaults from the host build system's environment.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

# Subdirectory of OUT_DIR holding objects and static libraries
BUILD_SUBDIR = "pluto-build"


@dataclass
class BuildSettings:
    """
    Mutable build parameters behind the Build setters.

    Attributes:
        out_dir (Optional[Path]): Directory for objects and static libraries.
        target (Optional[str]): Target triple.
        host (Optional[str]): Host triple.
        max_stack_size (Optional[int]): Forwarded as LUAI_MAXSTACK.
        use_longjmp (Optional[bool]): Use longjmp instead of C++ exceptions.
        debug (bool): Debug build (API checks) instead of an optimized one.
        source_dir (Optional[Path]): Root of the vendored Pluto tree.
    """
    out_dir: Optional[Path] = None
    target: Optional[str] = None
    host: Optional[str] = None
    max_stack_size: Optional[int] = None
    use_longjmp: Optional[bool] = None
    debug: bool = False
    source_dir: Optional[Path] = None


def snapshot_environment(environ: Optional[Mapping[str, str]] = None) -> dict:
    """Copy the environment once so later lookups never see process changes."""
    return dict(os.environ if environ is None else environ)


def read_environment(environ: Mapping[str, str]) -> BuildSettings:
    """
    Derive default build settings from an environment snapshot.

    Args:
        environ: Snapshot from snapshot_environment()

    Returns:
        BuildSettings: out_dir is $OUT_DIR/pluto-build, target/host come from
        $TARGET/$HOST, debug is set when $PROFILE is "debug".
    """
    out_dir = environ.get("OUT_DIR")
    source_dir = environ.get("PLUTO_SOURCE_DIR")
    return BuildSettings(
        out_dir=Path(out_dir) / BUILD_SUBDIR if out_dir else None,
        target=environ.get("TARGET") or None,
        host=environ.get("HOST") or None,
        debug=environ.get("PROFILE") == "debug",
        source_dir=Path(source_dir) if source_dir else None,
    )


def get_target_var(
    environ: Mapping[str, str], name: str, target: str, host: str
) -> Optional[str]:
    """
    Look up a variable that can be specialised per target triple.

    Resolution order, first hit wins:
        1. NAME_<target>
        2. NAME_<target with '-' replaced by '_'>
        3. HOST_NAME when host == target, TARGET_NAME otherwise
        4. NAME

    Returns the value as set (possibly empty), or None when no layer is set.
    """
    kind = "HOST" if host == target else "TARGET"
    candidates = (
        f"{name}_{target}",
        f"{name}_{target.replace('-', '_')}",
        f"{kind}_{name}",
        name,
    )
    for key in candidates:
        if key in environ:
            return environ[key]
    return None
