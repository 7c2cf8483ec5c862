"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module resolves which C++ runtime library the consumer has to link.
"""

from typing import Mapping, Optional

from pluto_src.environment import get_target_var


def get_cpp_link_stdlib(
    target: str, host: str, environ: Mapping[str, str]
) -> Optional[str]:
    """
    Return the C++ standard library to link for `target`.

    1) An override from the CXXSTDLIB family (see get_target_var), where an
       empty value means "link nothing"
    2) None for MSVC, which links its runtime implicitly
    3) "c++" for macOS/iOS and the BSDs
    4) "c++_shared" for Android
    5) "stdc++" for anything else

    Args:
        target: Target triple
        host: Host triple
        environ: Environment snapshot taken by Build

    Returns:
        Optional[str]: Library link name, or None when no explicit link is needed.
    """
    override = get_target_var(environ, "CXXSTDLIB", target, host)
    if override is not None:
        return override or None

    if "msvc" in target:
        return None
    elif "apple" in target or "freebsd" in target or "openbsd" in target:
        return "c++"
    elif "android" in target:
        return "c++_shared"
    else:
        return "stdc++"
