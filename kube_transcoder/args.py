"""
Argument Rewriting
==================

The media server hands the transcoder callback URLs that point at its own
loopback address. The worker runs in a different pod, so those URLs have to
point at the server's in-cluster service address instead.
"""

from __future__ import annotations

LOOPBACK_ADDRESS = "http://127.0.0.1:32400"

URL_FLAGS       = {"-progressurl", "-manifest_name", "-segment_list"}
LOG_LEVEL_FLAGS = {"-loglevel", "-loglevel_plex"}


def rewrite_args(args: list[str], pms_internal_address: str) -> list[str]:
    """
    Return a copy of `args` with callback URLs retargeted and log levels forced
    to debug. A flag in the last position has no value and is left alone.
    """
    out = list(args)
    for i, arg in enumerate(out[:-1]):
        if arg in URL_FLAGS:
            out[i + 1] = out[i + 1].replace(LOOPBACK_ADDRESS, pms_internal_address, 1)
        elif arg in LOG_LEVEL_FLAGS:
            out[i + 1] = "debug"
    return out
