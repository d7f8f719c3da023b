"""
Kubernetes API server access through the official client, using a
kubeconfig or the in-cluster service account.
"""

__all__ = ["Local"]

import socket
import uuid
from datetime import datetime, timezone
from typing import Any, Iterator

from kubernetes import client, config, watch  # type: ignore
from kubernetes.client.exceptions import ApiException  # type: ignore
from kubernetes.config.config_exception import ConfigException  # type: ignore

from imageclone.core import Context, Provider, Response
from imageclone.core.exceptions import (
    ConflictError,
    GoneError,
    NotFoundError,
)

from .._models import (
    ClusterEvent,
    EventType,
    WatchEvent,
    Workload,
    WorkloadKey,
    WorkloadKind,
    WorkloadList,
)

STRATEGIC_MERGE_PATCH = "application/strategic-merge-patch+json"


class Local(Provider):
    kubeconfig: str | dict[str, Any] | None
    context: str | None
    field_manager: str
    component_name: str

    _api_client: Any
    _apps: Any
    _core: Any

    def __init__(
        self,
        kubeconfig: str | dict[str, Any] | None = None,
        context: str | None = None,
        field_manager: str = "image-clone",
        component_name: str = "image-clone",
        **kwargs: Any,
    ):
        """Initialize.

        Args:
            kubeconfig:
                Path to a kubeconfig file or kubeconfig dict. Defaults to
                ~/.kube/config, then the in-cluster service account.
            context:
                Kubeconfig context to use.
            field_manager:
                Field manager name recorded on patches.
            component_name:
                Component name recorded on events.
        """
        self.kubeconfig = kubeconfig
        self.context = context
        self.field_manager = field_manager
        self.component_name = component_name
        self._api_client = None
        super().__init__(**kwargs)

    def __setup__(self, context: Context | None = None) -> None:
        if self._api_client is not None:
            return
        self._api_client = self._init_k8s_client(
            kubeconfig=self.kubeconfig, context=self.context
        )
        self._apps = client.AppsV1Api(self._api_client)
        self._core = client.CoreV1Api(self._api_client)

    def _init_k8s_client(
        self, kubeconfig: str | dict[str, Any] | None, context: str | None
    ) -> Any:
        if isinstance(kubeconfig, dict):
            config.load_kube_config_from_dict(
                config_dict=kubeconfig, context=context
            )
        elif isinstance(kubeconfig, str) and kubeconfig:
            config.load_kube_config(config_file=kubeconfig, context=context)
        else:
            # default kubeconfig (e.g., ~/.kube/config) or in-cluster
            try:
                config.load_kube_config(context=context)
            except ConfigException:
                config.load_incluster_config()
        return client.ApiClient()

    def _api_method(self, action: str, kind: WorkloadKind | str) -> Any:
        api_kind = Workload.for_kind(kind).api_kind
        return getattr(self._apps, action.format(kind=api_kind))

    def _to_workload(self, kind: WorkloadKind | str, obj: Any) -> Workload:
        data = self._api_client.sanitize_for_serialization(obj)
        return Workload.for_kind(kind).from_manifest(data)

    def _map_error(self, e: ApiException, key: WorkloadKey) -> Exception:
        if e.status == 404:
            return NotFoundError(f"{key} not found")
        if e.status == 409:
            return ConflictError(
                f"{key} was modified concurrently: {e.reason}"
            )
        if e.status == 410:
            return GoneError(str(e.reason))
        return e

    def get_workload(self, key: WorkloadKey) -> Response[Workload]:
        read = self._api_method("read_namespaced_{kind}", key.kind)
        try:
            obj = read(name=key.name, namespace=key.namespace)
        except ApiException as e:
            raise self._map_error(e, key) from e
        return Response(result=self._to_workload(key.kind, obj))

    def patch_workload(
        self,
        key: WorkloadKey,
        patch: dict[str, Any],
    ) -> Response[Workload]:
        patch_fn = self._api_method("patch_namespaced_{kind}", key.kind)
        try:
            obj = patch_fn(
                name=key.name,
                namespace=key.namespace,
                body=patch,
                field_manager=self.field_manager,
                _content_type=STRATEGIC_MERGE_PATCH,
            )
        except ApiException as e:
            raise self._map_error(e, key) from e
        return Response(result=self._to_workload(key.kind, obj))

    def record_event(
        self,
        workload: Workload,
        type: EventType,
        reason: str,
        message: str,
    ) -> Response[ClusterEvent]:
        now = datetime.now(timezone.utc)
        body = client.CoreV1Event(
            metadata=client.V1ObjectMeta(
                name=f"{workload.name}.{uuid.uuid4().hex[:16]}",
                namespace=workload.namespace,
            ),
            involved_object=client.V1ObjectReference(
                api_version=workload.api_version,
                kind=workload.kind.value,
                name=workload.name,
                namespace=workload.namespace,
                uid=workload.uid,
                resource_version=workload.resource_version,
            ),
            reason=reason,
            message=message,
            type=EventType(type).value,
            count=1,
            first_timestamp=now,
            last_timestamp=now,
            source=client.V1EventSource(component=self.component_name),
            reporting_component=self.component_name,
            reporting_instance=socket.gethostname(),
        )
        try:
            self._core.create_namespaced_event(
                namespace=workload.namespace, body=body
            )
        except ApiException as e:
            raise self._map_error(e, workload.key) from e
        return Response(
            result=ClusterEvent(
                key=workload.key,
                type=type,
                reason=reason,
                message=message,
                timestamp=now.timestamp(),
            )
        )

    def list_workloads(self, kind: WorkloadKind) -> Response[WorkloadList]:
        list_fn = self._api_method("list_{kind}_for_all_namespaces", kind)
        objs = list_fn()
        return Response(
            result=WorkloadList(
                items=[self._to_workload(kind, item) for item in objs.items],
                resource_version=objs.metadata.resource_version,
            )
        )

    def watch_workloads(
        self,
        kind: WorkloadKind,
        resource_version: str | None = None,
        timeout_seconds: int | None = None,
    ) -> Response[Iterator[WatchEvent]]:
        list_fn = self._api_method("list_{kind}_for_all_namespaces", kind)
        kwargs: dict[str, Any] = {}
        if resource_version:
            kwargs["resource_version"] = resource_version
        if timeout_seconds:
            kwargs["timeout_seconds"] = timeout_seconds

        def stream() -> Iterator[WatchEvent]:
            watcher = watch.Watch()
            try:
                for event in watcher.stream(list_fn, **kwargs):
                    yield WatchEvent(
                        type=event["type"],
                        workload=self._to_workload(kind, event["object"]),
                    )
            except ApiException as e:
                if e.status == 410:
                    raise GoneError(str(e.reason)) from e
                raise
            finally:
                watcher.stop()

        return Response(result=stream())

    def close(self) -> Response[None]:
        if self._api_client is not None:
            self._api_client.close()
            self._api_client = None
        return Response(result=None)
