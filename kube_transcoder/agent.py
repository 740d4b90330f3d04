"""
Kube Transcoder — Entry Point
=============================

Installed in place of the media server's transcoder binary. Every
invocation becomes one worker pod.

Startup sequence:
  1. Load config from the environment (namespace, own pod name, server address)
  2. Rewrite callback URLs in argv to the server's in-cluster address
  3. Load cluster credentials and build the API client
  4. Arm SIGINT / SIGTERM handling
  5. Run the worker pod to completion (or cancellation), then delete it

Exit status:
  0 → worker pod was cleaned up; success, failure and cancellation are
      only visible in the log
  1 → bootstrap, create or delete failed
"""

from __future__ import annotations
import logging
import os
import sys
from typing import Optional

from kubernetes.config import ConfigException

from .args import rewrite_args
from .config import ConfigError, LauncherConfig
from .job_runner import LauncherError, PodClient, TranscodeJobRunner, build_core_api
from .signals import ShutdownSignal

log = logging.getLogger("kube_transcoder.agent")

LOG_FORMAT  = "[%(asctime)s] %(levelname)s %(name)s — %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level   = level,
        format  = LOG_FORMAT,
        datefmt = LOG_DATEFMT,
    )


def main(argv: Optional[list[str]] = None) -> int:
    argv = list(sys.argv if argv is None else argv)

    try:
        settings = LauncherConfig.from_env()
    except ConfigError as e:
        setup_logging()
        log.critical(f"Invalid configuration: {e}")
        sys.exit(1)

    setup_logging(settings.log_level)

    command = rewrite_args(argv, settings.pms_internal_address)

    try:
        core_v1 = build_core_api(settings.kubeconfig)
    except (ConfigException, OSError) as e:
        log.critical(f"Error building kubeconfig: {e}")
        sys.exit(1)

    try:
        cwd = os.getcwd()
    except OSError as e:
        log.critical(f"Error getting working directory: {e}")
        sys.exit(1)

    runner = TranscodeJobRunner(
        pods     = PodClient(core_v1, settings.namespace, settings.request_timeout),
        settings = settings,
        shutdown = ShutdownSignal(),
    )

    with runner.shutdown:
        try:
            outcome = runner.run(command, cwd)
        except LauncherError as e:
            log.critical(str(e))
            sys.exit(1)

    log.info(f"Transcode finished: {outcome.status}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
