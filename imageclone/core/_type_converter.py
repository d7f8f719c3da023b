import inspect
import json
from enum import Enum
from typing import Any, get_args, get_origin, get_type_hints


class TypeConverter:
    @staticmethod
    def convert_value(value, expected_type):
        origin = get_origin(expected_type)

        # Handle Optional[T] (e.g., DataModel | None)
        if origin is not None and type(None) in get_args(expected_type):
            expected_type = next(
                t for t in get_args(expected_type) if t is not type(None)
            )
            origin = get_origin(expected_type)

        if isinstance(value, list) and origin in (list, tuple):
            elem_type = (
                get_args(expected_type)[0] if get_args(expected_type) else Any
            )
            return [TypeConverter.convert_value(v, elem_type) for v in value]

        if isinstance(value, dict) and origin is dict:
            key_type, val_type = (
                get_args(expected_type)
                if get_args(expected_type)
                else (Any, Any)
            )
            return {
                TypeConverter.convert_value(
                    k, key_type
                ): TypeConverter.convert_value(v, val_type)
                for k, v in value.items()
            }

        # Convert dictionary or JSON string to DataModel
        if hasattr(expected_type, "from_dict") and callable(
            getattr(expected_type, "from_dict")
        ):
            if isinstance(value, dict):
                return expected_type.from_dict(value)
            if isinstance(value, str):
                return expected_type.from_dict(json.loads(value))

        if (
            inspect.isclass(expected_type)
            and issubclass(expected_type, Enum)
            and not isinstance(value, expected_type)
        ):
            return expected_type(value)

        try:
            if expected_type is int and isinstance(value, (str, float)):
                return int(value)
            if expected_type is float and isinstance(value, (str, int)):
                return float(value)
            if expected_type is str and isinstance(value, (int, float)):
                return str(value)
            if expected_type is bool and isinstance(value, str):
                return value.lower() in ("1", "true", "yes", "on")
        except (ValueError, TypeError):
            pass  # fall back to the value as is

        return value

    @staticmethod
    def convert_args(method, args: dict) -> dict:
        sig = inspect.signature(method)
        hints = get_type_hints(method)
        converted_args: dict = {}
        for param_name in sig.parameters:
            if param_name in args:
                converted_args[param_name] = TypeConverter.convert_value(
                    args[param_name], hints.get(param_name, None)
                )
        return args | converted_args
