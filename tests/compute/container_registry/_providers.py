from typing import Any

from imageclone.compute.container_registry import ContainerRegistry


class ContainerRegistryProvider:
    MEMORY = "memory"
    SKOPEO = "skopeo"
    DOCKER_LOCAL = "docker_local"


provider_parameters: dict[str, dict[str, Any]] = {
    ContainerRegistryProvider.MEMORY: {},
    ContainerRegistryProvider.SKOPEO: {
        "src_tls_verify": True,
        "dest_tls_verify": False,
        "retry_times": 2,
    },
    ContainerRegistryProvider.DOCKER_LOCAL: {},
}


def get_component(provider_type: str, **parameters: Any):
    component = ContainerRegistry(
        __provider__=dict(
            type=provider_type,
            parameters=provider_parameters[provider_type] | parameters,
        ),
    )
    return component
