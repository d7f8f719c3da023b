from typing import Any

import yaml


class YamlLoader:
    @staticmethod
    def load(path: str) -> dict[str, Any]:
        with open(path, "r", encoding="utf-8") as file:
            return yaml.safe_load(file) or {}
