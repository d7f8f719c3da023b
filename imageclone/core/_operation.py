from __future__ import annotations

import json
from typing import Any

from .data_model import DataModel


class Operation(DataModel):
    """Operation.

    Attributes:
        name: Operation name.
        args: Operation arguments.
    """

    name: str | None = None
    args: dict[str, Any] | None = None

    @staticmethod
    def normalize(
        name: str | None,
        args: dict[str, Any] | None,
    ) -> Operation:
        if args is None:
            return Operation(name=name)
        rargs: dict = {}
        for k, v in args.items():
            if k == "self":
                continue
            if k == "kwargs":
                rargs.update(v)
            elif v is not None:
                rargs[k] = v
        return Operation(name=name, args=rargs)

    def __str__(self) -> str:
        str = self.name or ""
        for key, value in (self.args or {}).items():
            nkey = key.replace("_", " ").strip()
            str = f"{str} {nkey} {self._str_value(value)}"
        return str

    def _str_value(self, value: Any) -> Any:
        if value is None or isinstance(
            value, (str, int, float, bool, dict, list)
        ):
            return json.dumps(value)
        return repr(value)
