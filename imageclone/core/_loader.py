from __future__ import annotations

import importlib
import inspect
from typing import Any

from ._provider import Provider
from ._type_converter import TypeConverter
from .exceptions import LoadError


class Loader:
    @staticmethod
    def get_provider_path(
        component_module: str,
        provider_type: str,
    ) -> str:
        """Resolve a provider type to an importable path.

        ``memory`` resolves to ``<component_module>.providers.memory``;
        dotted or ``module:Class`` types are taken as given.
        """
        if ":" in provider_type or "." in provider_type:
            return provider_type
        return f"{component_module}.providers.{provider_type}"

    @staticmethod
    def load_provider_instance(
        path: str | None = None,
        parameters: dict[str, Any] | None = None,
    ) -> Provider:
        parameters = parameters or dict()
        if path is None:
            return Provider(**parameters)
        provider = Loader.load_class(path, Provider)
        converted_parameters = TypeConverter.convert_args(
            provider.__init__, parameters
        )
        return provider(**converted_parameters)

    @staticmethod
    def load_class(path: str, type: Any) -> Any:
        class_name = None
        if ":" in path:
            module_name, class_name = path.split(":", 1)
        else:
            module_name = path
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise LoadError(f"Unable to import {module_name}: {e}") from e
        if class_name is not None:
            cls = getattr(module, class_name, None)
            if cls is not None:
                return cls
        else:
            exported = getattr(module, "__all__", None)
            for name, cls in inspect.getmembers(module, inspect.isclass):
                if exported is not None and name not in exported:
                    continue
                if issubclass(cls, type) and cls.__module__ == module_name:
                    return cls
            for name in exported or []:
                cls = getattr(module, name, None)
                if inspect.isclass(cls) and issubclass(cls, type):
                    return cls
        raise LoadError(f"{type.__name__} not found at {path}")
