"""
Job Runner
==========

Runs one transcode as a separate pod and always removes it afterwards.

Sequence:
  1. Read this pod (the template) from the API server
  2. Derive the worker pod from it and create it
  3. Poll the worker's phase every poll_interval seconds in a background
     thread, racing the poll against the shutdown signal
  4. Delete the worker pod, whichever side of the race won, then join the
     poller (each API call is bounded by request_timeout)

Guarantees:
  - At most one pod is created per run
  - Once create succeeds, exactly one delete is issued for the created name
  - Nothing is retried; API errors are fatal before create and after delete,
    and end the wait (but not the cleanup) in between
"""

from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor, wait as wait_futures
from dataclasses import dataclass
from typing import Optional

import urllib3
from kubernetes import client, config as kube_config
from kubernetes.client.rest import ApiException

from .config import LauncherConfig
from .pod_spec import derive_pod
from .signals import ShutdownSignal

log = logging.getLogger(__name__)

# How often the main thread checks the shutdown flag while the waiter runs
RACE_TICK = 0.1

# Anything the API client raises for a failed call: HTTP status or transport
API_ERRORS = (ApiException, urllib3.exceptions.HTTPError)

SUCCEEDED = "SUCCEEDED"
FAILED    = "FAILED"
ERROR     = "ERROR"
CANCELLED = "CANCELLED"


class LauncherError(RuntimeError):
    pass


class BootstrapError(LauncherError):
    pass


class SubmissionError(LauncherError):
    pass


class CleanupError(LauncherError):
    pass


@dataclass(frozen=True)
class WaitOutcome:
    status: str
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == SUCCEEDED


# ─── API Client ───────────────────────────────────────────────────────────────

def build_core_api(kubeconfig: Optional[str] = None) -> client.CoreV1Api:
    """
    Load cluster credentials and return a CoreV1Api.
    Explicit kubeconfig wins; otherwise in-cluster, then ~/.kube/config.
    """
    if kubeconfig:
        kube_config.load_kube_config(config_file=kubeconfig)
    else:
        try:
            kube_config.load_incluster_config()
        except kube_config.ConfigException:
            kube_config.load_kube_config()
    return client.CoreV1Api()


class PodClient:
    """The three pod calls the runner makes, bound to one namespace."""

    def __init__(self, core_v1: client.CoreV1Api, namespace: str, request_timeout: Optional[float] = None):
        self.core_v1         = core_v1
        self.namespace       = namespace
        self.request_timeout = request_timeout

    def get_pod(self, name: str) -> client.V1Pod:
        return self.core_v1.read_namespaced_pod(
            name=name, namespace=self.namespace, _request_timeout=self.request_timeout,
        )

    def create_pod(self, body: client.V1Pod) -> client.V1Pod:
        return self.core_v1.create_namespaced_pod(
            namespace=self.namespace, body=body, _request_timeout=self.request_timeout,
        )

    def delete_pod(self, name: str):
        return self.core_v1.delete_namespaced_pod(
            name=name, namespace=self.namespace, _request_timeout=self.request_timeout,
        )


# ─── Job Runner ───────────────────────────────────────────────────────────────

class TranscodeJobRunner:
    def __init__(
        self,
        pods:     PodClient,
        settings: LauncherConfig,
        shutdown: ShutdownSignal,
    ):
        self.pods     = pods
        self.settings = settings
        self.shutdown = shutdown

    def run(self, command: list[str], working_dir: str) -> WaitOutcome:
        """
        Run `command` in a worker pod and clean it up.
        Raises BootstrapError / SubmissionError before anything exists to clean up,
        CleanupError if the worker pod could not be deleted.
        """
        try:
            reference = self.pods.get_pod(self.settings.pod_name)
        except API_ERRORS as e:
            raise BootstrapError(f"Error getting current pod {self.settings.pod_name!r}: {e}") from e

        body = derive_pod(reference, working_dir, command)

        if self.shutdown.is_set():
            log.info("[runner] Exit requested before submission; no pod created.")
            return WaitOutcome(CANCELLED, "exit requested before submission")

        try:
            created = self.pods.create_pod(body)
        except API_ERRORS as e:
            raise SubmissionError(f"Error creating pod: {e}") from e

        name = created.metadata.name
        log.info(f"[runner] Created pod: {name}")

        # The waiter is joined only after the delete, so a stalled poll
        # cannot hold up cleanup
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"wait-{name}")
        try:
            outcome = self._race(pool, name)
            self._log_outcome(name, outcome)
        finally:
            try:
                self._cleanup(name)
            finally:
                pool.shutdown(wait=True)
        return outcome

    # ─── Waiting ──────────────────────────────────────────────────────────────

    def wait_for_completion(self, name: str) -> WaitOutcome:
        """
        Poll the pod's phase until it is terminal or shutdown is requested.
        Transport errors end the wait; they are not retried.
        """
        while True:
            try:
                pod = self.pods.get_pod(name)
            except API_ERRORS as e:
                return WaitOutcome(ERROR, f"error polling pod {name!r}: {e}")

            phase = pod.status.phase if pod.status else None
            if phase == "Succeeded":
                return WaitOutcome(SUCCEEDED)
            if phase == "Failed":
                return WaitOutcome(FAILED, f"pod {name!r} failed")
            if phase not in ("Pending", "Running"):
                log.warning(f"[runner] Pod {name!r} is in an unknown state ({phase})")

            if self.shutdown.wait(self.settings.poll_interval):
                return WaitOutcome(CANCELLED, "exit requested")

    def _race(self, pool: ThreadPoolExecutor, name: str) -> WaitOutcome:
        future = pool.submit(self.wait_for_completion, name)
        while True:
            done, _ = wait_futures([future], timeout=RACE_TICK)
            if done:
                return future.result()
            if self.shutdown.is_set():
                # Waiter notices on its next tick; its result is dropped
                return WaitOutcome(CANCELLED, "exit requested")

    def _log_outcome(self, name: str, outcome: WaitOutcome):
        if outcome.status == SUCCEEDED:
            log.info(f"[runner] Pod {name} succeeded")
        elif outcome.status == CANCELLED:
            log.info("[runner] Exit requested.")
        else:
            log.error(f"[runner] Error waiting for pod to complete: {outcome.reason}")

    # ─── Cleanup ──────────────────────────────────────────────────────────────

    def _cleanup(self, name: str):
        log.info(f"[runner] Cleaning up pod {name}...")
        try:
            self.pods.delete_pod(name)
        except API_ERRORS as e:
            raise CleanupError(f"Error cleaning up pod {name!r}: {e}") from e
        log.info(f"[runner] Pod {name} deleted")
