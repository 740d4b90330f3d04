from __future__ import annotations

import time

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

from kube_transcoder.config import LauncherConfig
from kube_transcoder.job_runner import PodClient, TranscodeJobRunner
from kube_transcoder.signals import ShutdownSignal


def make_reference_pod(
    volume_names=("shared", "kube-api-access-xyz", "data"),
    app="plex",
) -> client.V1Pod:
    mounts = [
        client.V1VolumeMount(name=name, mount_path=f"/mnt/{name}")
        for name in volume_names
    ]
    volumes = [
        client.V1Volume(
            name=name,
            persistent_volume_claim=client.V1PersistentVolumeClaimVolumeSource(claim_name=f"{name}-pvc"),
        )
        for name in volume_names
    ]
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name="plex-0", labels={"app": app}),
        spec=client.V1PodSpec(
            containers=[
                client.V1Container(
                    name="plex",
                    image="plexinc/pms-docker:1.32",
                    command=["/init"],
                    env=[
                        client.V1EnvVar(name="TZ", value="UTC"),
                        client.V1EnvVar(name="PLEX_CLAIM", value="claim-abc"),
                    ],
                    volume_mounts=mounts,
                )
            ],
            volumes=volumes,
        ),
    )


def pod_in_phase(name: str, phase) -> client.V1Pod:
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name=name),
        status=client.V1PodStatus(phase=phase),
    )


class FakeCoreV1Api:
    """
    Stands in for kubernetes.client.CoreV1Api.

    `phases` is played back one entry per poll of the worker pod; the last
    entry repeats. An entry that is an exception instance is raised instead.
    """

    def __init__(self, reference=None, phases=("Succeeded",), generated_name="plex-transcoder-abc12"):
        self.reference      = reference if reference is not None else make_reference_pod()
        self.phases         = list(phases)
        self.generated_name = generated_name
        self.reads:   list[str] = []
        self.creates: list[client.V1Pod] = []
        self.deletes: list[str] = []
        self.delete_times: list[float] = []
        self.timeouts: list = []
        self.read_reference_error = None
        self.create_error = None
        self.delete_error = None
        self.on_poll = None

    def read_namespaced_pod(self, name, namespace, _request_timeout=None):
        self.timeouts.append(_request_timeout)
        self.reads.append(name)
        if name == self.reference.metadata.name:
            if self.read_reference_error:
                raise self.read_reference_error
            return self.reference

        poll = len([n for n in self.reads if n == name])
        if self.on_poll:
            self.on_poll(poll)
        entry = self.phases[min(poll, len(self.phases)) - 1]
        if isinstance(entry, Exception):
            raise entry
        return pod_in_phase(name, entry)

    def create_namespaced_pod(self, namespace, body, _request_timeout=None):
        self.timeouts.append(_request_timeout)
        if self.create_error:
            raise self.create_error
        self.creates.append(body)
        return client.V1Pod(
            metadata=client.V1ObjectMeta(name=self.generated_name, namespace=namespace),
            spec=body.spec,
        )

    def delete_namespaced_pod(self, name, namespace, _request_timeout=None):
        self.timeouts.append(_request_timeout)
        self.deletes.append(name)
        self.delete_times.append(time.monotonic())
        if self.delete_error:
            raise self.delete_error
        return client.V1Status(status="Success")

    @property
    def polls(self) -> int:
        return len([n for n in self.reads if n == self.generated_name])


def api_error(status=500, reason="Internal Server Error") -> ApiException:
    return ApiException(status=status, reason=reason)


@pytest.fixture
def settings() -> LauncherConfig:
    return LauncherConfig(
        namespace="media",
        pod_name="plex-0",
        pms_internal_address="http://plex.media.svc:32400",
        poll_interval=0.01,
        request_timeout=5.0,
    )


@pytest.fixture
def fake_api() -> FakeCoreV1Api:
    return FakeCoreV1Api()


@pytest.fixture
def shutdown() -> ShutdownSignal:
    return ShutdownSignal()


@pytest.fixture
def runner(fake_api, settings, shutdown) -> TranscodeJobRunner:
    return TranscodeJobRunner(
        pods=PodClient(fake_api, settings.namespace, settings.request_timeout),
        settings=settings,
        shutdown=shutdown,
    )
