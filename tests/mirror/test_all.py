import threading
from unittest import mock

import pytest
from docker.errors import DockerException

from imageclone.compute.container_registry import ContainerRegistry
from imageclone.compute.kubernetes import (
    EventType,
    PodTemplate,
    WorkloadKey,
    WorkloadKind,
)
from imageclone.core import Context
from imageclone.core.exceptions import (
    CancelledError,
    ConflictError,
    ParseError,
    TransferError,
)
from imageclone.mirror import (
    FAILED_COPYING_IMAGES,
    NamespaceFilter,
    PodTemplateReconciler,
    ReconcileStatus,
    RewriteOutcome,
    WorkloadReconciler,
    eligible,
)

from ._providers import BACKUP, Fixture, daemon_set, deployment, mirrored

WEB = WorkloadKey(
    kind=WorkloadKind.DEPLOYMENT, namespace="default", name="web"
)


def test_namespace_filter():
    namespace_filter = NamespaceFilter.create(
        self_namespace="image-clone", extra=["sandbox"]
    )

    for namespace in (
        "kube-system",
        "local-path-storage",
        "registry",
        "image-clone",
        "sandbox",
    ):
        assert not namespace_filter.eligible(namespace)
    assert namespace_filter.eligible("default")
    assert namespace_filter.eligible("kube-public")


def test_namespace_filter_is_immutable():
    namespace_filter = NamespaceFilter.create()

    with pytest.raises(ValueError):
        namespace_filter.ignored = frozenset()
    assert namespace_filter.eligible("default")


def test_eligible():
    assert eligible("default", {"kube-system"}, "image-clone")
    assert not eligible("kube-system", {"kube-system"}, "image-clone")
    assert not eligible("image-clone", set(), "image-clone")
    assert eligible("image-clone", set(), None)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "async_call",
    [False, True],
)
async def test_rewrite_template(async_call: bool):
    fixture = Fixture(workloads=[])
    reconciler = PodTemplateReconciler(
        container_registry=fixture.container_registry, backup_registry=BACKUP
    )
    template = PodTemplate.from_manifest(
        {
            "spec": {
                "containers": [
                    {"name": "a", "image": mirrored("nginx:latest")},
                    {"name": "b", "image": "redis:7"},
                ],
                "initContainers": [{"name": "init", "image": "busybox"}],
            }
        }
    )
    if async_call:
        result = await reconciler.arewrite(template)
    else:
        result = reconciler.rewrite(template)

    assert result.changed
    assert not result.failed
    assert [r.outcome for r in result.rewrites] == [
        RewriteOutcome.ALREADY_MIRRORED,
        RewriteOutcome.REWRITTEN,
        RewriteOutcome.REWRITTEN,
    ]
    assert [c.image for c in template.containers] == [
        mirrored("nginx:latest"),
        mirrored("redis:7"),
    ]
    assert template.init_containers[0].image == mirrored("busybox:latest")
    assert fixture.registry.copies == [
        ("index.docker.io/library/redis:7", mirrored("redis:7")),
        ("index.docker.io/library/busybox:latest", mirrored("busybox:latest")),
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "async_call",
    [False, True],
)
async def test_mirrors_only_foreign_images(async_call: bool):
    fixture = Fixture(
        workloads=[deployment(mirrored("nginx:latest"), "redis:7")]
    )

    result = await fixture.reconcile(WEB, async_call)

    assert result.status == ReconcileStatus.COMMITTED
    assert fixture.registry.copies == [
        ("index.docker.io/library/redis:7", mirrored("redis:7"))
    ]
    stored = fixture.store.get_workload(WEB).result
    assert [c.image for c in stored.template.containers] == [
        mirrored("nginx:latest"),
        mirrored("redis:7"),
    ]
    # only the rewritten container is patched
    _, patch = fixture.store.patches[0]
    assert patch["spec"]["template"]["spec"]["containers"] == [
        {"name": "c1", "image": mirrored("redis:7")}
    ]
    assert patch["metadata"]["resourceVersion"] == "1"
    assert fixture.store.events == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "async_call",
    [False, True],
)
async def test_failed_copy_leaves_workload_unchanged(async_call: bool):
    fixture = Fixture(
        workloads=[deployment("nginx", "redis:7")],
        failures=["index.docker.io/library/redis:7"],
    )
    before = fixture.store.get_workload(WEB).result

    with pytest.raises(TransferError):
        await fixture.reconcile(WEB, async_call)

    assert fixture.store.get_workload(WEB).result == before
    assert fixture.store.patches == []
    assert len(fixture.store.events) == 1
    event = fixture.store.events[0]
    assert event.key == WEB
    assert event.type == EventType.WARNING
    assert event.reason == FAILED_COPYING_IMAGES
    assert "redis" in event.message


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "async_call",
    [False, True],
)
async def test_malformed_image(async_call: bool):
    fixture = Fixture(workloads=[deployment("nginx", "Not A Valid Image")])
    before = fixture.store.get_workload(WEB).result

    with pytest.raises(ParseError):
        await fixture.reconcile(WEB, async_call)

    assert fixture.store.get_workload(WEB).result == before
    assert [e.reason for e in fixture.store.events] == [FAILED_COPYING_IMAGES]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "async_call",
    [False, True],
)
async def test_already_mirrored_is_noop(async_call: bool):
    fixture = Fixture(
        workloads=[
            deployment(mirrored("nginx:latest"), mirrored("redis:7"))
        ]
    )

    result = await fixture.reconcile(WEB, async_call)

    assert result.status == ReconcileStatus.UNCHANGED
    assert fixture.registry.copies == []
    assert fixture.store.patches == []
    assert fixture.store.events == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "async_call",
    [False, True],
)
async def test_reconcile_is_idempotent(async_call: bool):
    fixture = Fixture(
        workloads=[deployment("nginx", init_images=("busybox",))]
    )

    first = await fixture.reconcile(WEB, async_call)
    second = await fixture.reconcile(WEB, async_call)

    assert first.status == ReconcileStatus.COMMITTED
    assert second.status == ReconcileStatus.UNCHANGED
    assert len(fixture.registry.copies) == 2
    assert len(fixture.store.patches) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "async_call",
    [False, True],
)
async def test_workload_gone(async_call: bool):
    fixture = Fixture(workloads=[])

    result = await fixture.reconcile(WEB, async_call)

    assert result.status == ReconcileStatus.NOT_FOUND
    assert fixture.store.events == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "async_call",
    [False, True],
)
async def test_concurrent_edit_conflicts_then_converges(async_call: bool):
    fixture = Fixture(workloads=[deployment("nginx")])
    store = fixture.store
    copy = fixture.registry.copy
    edited = []

    def copy_and_edit(source: str, destination: str):
        result = copy(source=source, destination=destination)
        if not edited:
            # another actor updates the workload while the image is copied
            edited.append(store.put_workload(store.get_workload(WEB).result))
        return result

    fixture.registry.copy = copy_and_edit

    with pytest.raises(ConflictError):
        await fixture.reconcile(WEB, async_call)
    assert store.get_workload(WEB).result.template == edited[0].template
    assert store.events == []

    result = await fixture.reconcile(WEB, async_call)

    assert result.status == ReconcileStatus.COMMITTED
    stored = store.get_workload(WEB).result
    assert stored.template.containers[0].image == mirrored("nginx:latest")
    assert store.events == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "async_call",
    [False, True],
)
async def test_cancelled_before_read(async_call: bool):
    fixture = Fixture(workloads=[deployment("nginx")])
    cancel_event = threading.Event()
    cancel_event.set()

    with pytest.raises(CancelledError):
        await fixture.reconcile(
            WEB, async_call, Context(cancel_event=cancel_event)
        )
    assert fixture.registry.copies == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "async_call",
    [False, True],
)
async def test_cancelled_during_copy_is_not_committed(async_call: bool):
    fixture = Fixture(workloads=[deployment("nginx", "redis:7")])
    before = fixture.store.get_workload(WEB).result
    cancel_event = threading.Event()
    copy = fixture.registry.copy

    def copy_and_cancel(source: str, destination: str):
        cancel_event.set()
        return copy(source=source, destination=destination)

    fixture.registry.copy = copy_and_cancel

    with pytest.raises(CancelledError):
        await fixture.reconcile(
            WEB, async_call, Context(cancel_event=cancel_event)
        )

    # the copy in flight completes, the next one never starts
    assert len(fixture.registry.copies) == 1
    assert fixture.store.get_workload(WEB).result == before
    assert fixture.store.events == []


def test_reconcile_daemon_set():
    fixture = Fixture(workloads=[daemon_set("grafana/agent:v0.40.0")])

    result = fixture.reconciler.reconcile_daemon_set("default", "agent")

    assert result.status == ReconcileStatus.COMMITTED
    stored = fixture.store.get_workload(result.key).result
    assert stored.template.containers[0].image == (
        "10.96.0.11:5001/index_docker_io/grafana/agent:v0.40.0"
    )


def test_reconcile_deployment():
    fixture = Fixture(workloads=[deployment("ghcr.io/org/app:v1")])

    result = fixture.reconciler.reconcile_deployment("default", "web")

    assert result.status == ReconcileStatus.COMMITTED
    assert fixture.registry.copies == [
        ("ghcr.io/org/app:v1", "10.96.0.11:5001/ghcr_io/org/app:v1")
    ]


def test_daemon_unavailable_is_reported():
    fixture = Fixture(workloads=[deployment("nginx")])
    reconciler = WorkloadReconciler(
        kubernetes=fixture.kubernetes,
        container_registry=ContainerRegistry(__provider__="docker_local"),
        backup_registry=BACKUP,
    )
    before = fixture.store.get_workload(WEB).result

    with mock.patch(
        "imageclone.compute.container_registry.providers.docker_local"
        ".docker.from_env",
        side_effect=DockerException("daemon down"),
    ):
        with pytest.raises(TransferError):
            reconciler.reconcile(WEB)

    assert fixture.store.get_workload(WEB).result == before
    assert [e.reason for e in fixture.store.events] == [FAILED_COPYING_IMAGES]
    assert "daemon down" in fixture.store.events[0].message


@pytest.mark.asyncio
async def test_areconcile_entry_points():
    fixture = Fixture(
        workloads=[deployment("nginx"), daemon_set("grafana/agent")]
    )

    deployment_result = await fixture.reconciler.areconcile_deployment(
        "default", "web"
    )
    daemon_set_result = await fixture.reconciler.areconcile_daemon_set(
        "default", "agent"
    )

    assert deployment_result.status == ReconcileStatus.COMMITTED
    assert daemon_set_result.key.kind == WorkloadKind.DAEMON_SET
    assert daemon_set_result.status == ReconcileStatus.COMMITTED
    assert len(fixture.registry.copies) == 2
