from typing import Any

from common.sync_and_async_client import SyncAndAsyncClient

from ._providers import get_component


class ContainerRegistryClient(SyncAndAsyncClient):
    def __init__(
        self, provider_type: str, async_call: bool, **parameters: Any
    ):
        self.client = get_component(provider_type, **parameters)
        self.async_call = async_call
        self.provider_type = provider_type

    @property
    def provider(self) -> Any:
        return self.client.__provider__

    async def copy(self, **kwargs):
        return await self._execute_method(**kwargs)

    async def close(self, **kwargs):
        return await self._execute_method(**kwargs)
