"""
Launcher Config
===============

Everything the launcher needs from its environment, read once at startup.
Nothing else in the package touches os.environ.
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_POLL_INTERVAL   = 1.0
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_LOG_LEVEL       = "INFO"


class ConfigError(RuntimeError):
    pass


def _positive_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key, str(default))
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class LauncherConfig:
    namespace:            str
    pod_name:             str            # This pod; used as the worker template
    pms_internal_address: str            # e.g. "http://plex.media.svc:32400"
    poll_interval:        float = DEFAULT_POLL_INTERVAL
    request_timeout:      float = DEFAULT_REQUEST_TIMEOUT   # Per API call, seconds
    log_level:            str   = DEFAULT_LOG_LEVEL
    kubeconfig:           Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LauncherConfig":
        env = os.environ if environ is None else environ

        missing = [
            key for key in ("KUBE_NAMESPACE", "KUBE_POD_NAME", "PMS_INTERNAL_ADDRESS")
            if not env.get(key)
        ]
        if missing:
            raise ConfigError(f"Missing required environment variable(s): {', '.join(missing)}")

        log_level = env.get("KUBE_TRANSCODER_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigError(f"KUBE_TRANSCODER_LOG_LEVEL is not a logging level: {log_level!r}")

        return cls(
            namespace            = env["KUBE_NAMESPACE"],
            pod_name             = env["KUBE_POD_NAME"],
            pms_internal_address = env["PMS_INTERNAL_ADDRESS"],
            poll_interval        = _positive_float(env, "KUBE_TRANSCODER_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            request_timeout      = _positive_float(env, "KUBE_TRANSCODER_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            log_level            = log_level,
            kubeconfig           = env.get("KUBECONFIG") or None,
        )
