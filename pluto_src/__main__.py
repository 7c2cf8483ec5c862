"""
CLI entry point for pluto_src.

Usage:
    python -m pluto_src                          # Build for the current platform
    python -m pluto_src --target aarch64-linux-android --host x86_64-unknown-linux-gnu
    python -m pluto_src --debug --verbose        # Debug build with build logs
    python -m pluto_src --help                   # Show help
"""

import argparse
import sys
from pathlib import Path

from . import __version__
from .build import Build
from .environment import BUILD_SUBDIR
from .exceptions import PlutoBuildError, ToolchainError
from .logging import setup_logging
from .platform_utils import detect_host_triple


def main(argv=None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m pluto_src",
        description="Compile the vendored Pluto and Soup sources into static libraries",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m pluto_src                              # Build for the current platform
    python -m pluto_src --out-dir target/pluto       # Custom output directory
    python -m pluto_src --max-stack-size 1000000     # Override LUAI_MAXSTACK
    python -m pluto_src --use-longjmp                # longjmp instead of C++ exceptions
        """,
    )

    parser.add_argument("--out-dir", "-o", type=Path,
                        help=f"Output directory (default: $OUT_DIR/{BUILD_SUBDIR} or build/{BUILD_SUBDIR})")
    parser.add_argument("--target", "-t",
                        help="Target triple (default: $TARGET or the current platform)")
    parser.add_argument("--host",
                        help="Host triple (default: $HOST or the current platform)")
    parser.add_argument("--max-stack-size", type=int,
                        help="Maximum number of Lua stack slots")
    parser.add_argument("--use-longjmp", action="store_true",
                        help="Use longjmp instead of C++ exceptions for error handling")
    parser.add_argument("--debug", "-d", action="store_true", default=None,
                        help="Debug build with API checks (default: $PROFILE, else release)")
    parser.add_argument("--source-dir", type=Path,
                        help="Root of the vendored pluto/ tree (default: $PLUTO_SOURCE_DIR)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Print build logs")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Suppress all output")
    parser.add_argument("--version", "-V", action="version",
                        version=f"%(prog)s {__version__}")

    args = parser.parse_args(argv)

    if args.verbose:
        setup_logging(output="stdout")

    builder = Build()
    settings = builder.settings

    try:
        if args.target:
            builder.target(args.target)
        elif settings.target is None:
            builder.target(detect_host_triple())

        if args.host:
            builder.host(args.host)
        elif settings.host is None:
            builder.host(detect_host_triple())
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.out_dir:
        builder.out_dir(args.out_dir)
    elif settings.out_dir is None:
        builder.out_dir(Path("build") / BUILD_SUBDIR)

    if args.max_stack_size is not None:
        builder.set_max_stack_size(args.max_stack_size)
    if args.use_longjmp:
        builder.use_longjmp(True)
    if args.debug is not None:
        builder.debug(args.debug)
    if args.source_dir:
        builder.source_dir(args.source_dir)

    if not args.quiet:
        print(f"[pluto_src] Target: {settings.target}", file=sys.stderr)
        print(f"[pluto_src] Host: {settings.host}", file=sys.stderr)
        print(f"[pluto_src] Output: {settings.out_dir}", file=sys.stderr)

    try:
        artifacts = builder.build()
    except ToolchainError as e:
        print(f"Build failed: {e}", file=sys.stderr)
        return 1
    except PlutoBuildError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        artifacts.print_metadata()
    return 0


if __name__ == "__main__":
    sys.exit(main())
