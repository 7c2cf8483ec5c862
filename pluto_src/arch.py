"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.

Architecture-specific settings for the Soup support library.

On x86_64 and aarch64 Soup ships intrinsic-accelerated code (AES, CLMUL,
SHA, CRC, ...) in its Intrin/ directory. Every other target compiles the
portable fallbacks only.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from pluto_src.compiler import add_files_by_ext
from pluto_src.toolchain import ToolchainConfig, with_supported_flags

INTRIN_DEFINE = "SOUP_USE_INTRIN"
INTRIN_DIR = "Intrin"


@dataclass(frozen=True)
class ArchAugmentation:
    """
    Additions a target architecture makes to the Soup configuration.

    Attributes:
        source_dirs (Tuple[str, ...]): Directories, relative to the Soup root,
            whose sources are compiled in addition to soup/.
        defines (Tuple[Tuple[str, Optional[str]], ...]): Extra macros.
        flags (Tuple[str, ...]): CPU-feature flags, applied best-effort.
    """
    source_dirs: Tuple[str, ...] = ()
    defines: Tuple[Tuple[str, Optional[str]], ...] = ()
    flags: Tuple[str, ...] = ()

    @property
    def uses_intrinsics(self) -> bool:
        return any(name == INTRIN_DEFINE for name, _ in self.defines)


NO_AUGMENTATION = ArchAugmentation()

# Checked in order; the first architecture contained in the triple wins
ARCH_AUGMENTATIONS = (
    ("x86_64", ArchAugmentation(
        source_dirs=(INTRIN_DIR,),
        defines=((INTRIN_DEFINE, None),),
        flags=("-maes", "-mpclmul", "-mrdrnd", "-mrdseed", "-msha", "-msse4.1"),
    )),
    ("aarch64", ArchAugmentation(
        source_dirs=(INTRIN_DIR,),
        defines=((INTRIN_DEFINE, None),),
        flags=("-march=armv8-a+crypto+crc",),
    )),
)


def dispatch(target: str) -> ArchAugmentation:
    """Get the augmentation for a target triple; unknown triples get none."""
    for arch, augmentation in ARCH_AUGMENTATIONS:
        if arch in target:
            return augmentation
    return NO_AUGMENTATION


def apply_augmentation(
    config: ToolchainConfig,
    augmentation: ArchAugmentation,
    toolchain,
    soup_root: Path,
) -> ToolchainConfig:
    """
    Derive a new config carrying the augmentation's macros, flags and sources.

    Args:
        config: Configuration to extend (left untouched)
        augmentation: Result of dispatch()
        toolchain: Object providing flag_if_supported(flag) -> bool
        soup_root: Soup source root the augmentation's directories are relative to

    Returns:
        ToolchainConfig: The extended configuration.
    """
    for name, value in augmentation.defines:
        config = config.define(name, value)
    for source_dir in augmentation.source_dirs:
        config = add_files_by_ext(config, Path(soup_root) / source_dir, "cpp")
    return with_supported_flags(config, toolchain, augmentation.flags)
