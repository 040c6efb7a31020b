"""
Контракты экспортированного состояния (JSON Schema)

export_state() каждого компонента обязан проходить контракт своей версии
layout: {component}_state_v{N}.json в каталоге schema/ пакета.

Контракты закрыты (additionalProperties: false): новое поле V(N+1) требует
новой схемы, а не расширения старой.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterator

import jsonschema
from jsonschema import Draft202012Validator

logger = logging.getLogger(__name__)

SCHEMA_SUFFIX = "_state_v"


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """Загрузка и meta-валидация схем из каталога (по умолчанию schema/ пакета)."""

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = Path(schema_dir) if schema_dir else Path(__file__).parent / "schema"
        if not self._schema_dir.is_dir():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")
        self._cache: Dict[str, Dict[str, Any]] = {}

    @property
    def schema_dir(self) -> Path:
        return self._schema_dir

    def available(self) -> list[str]:
        """Имена всех схем каталога (без .json), отсортированные."""
        return sorted(p.stem for p in self._schema_dir.glob("*.json"))

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Схема по имени без расширения, например 'sale_engine_state_v1'.

        Raises:
            FileNotFoundError: файла схемы нет
            ValueError: файл не является корректной Draft 2020-12 схемой
        """
        cached = self._cache.get(schema_name)
        if cached is not None:
            return cached

        path = self._schema_dir / f"{schema_name}.json"
        if not path.is_file():
            raise FileNotFoundError(f"Schema not found: {path}")

        schema = json.loads(path.read_text(encoding="utf-8"))
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {path.name}: {e.message}") from e

        self._cache[schema_name] = schema
        logger.debug("Loaded state contract %s", schema_name)
        return schema


@lru_cache(maxsize=1)
def default_loader() -> SchemaLoader:
    """Общий загрузчик схем пакета."""
    return SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """Проверка данных против одной именованной схемы."""

    def __init__(self, schema_name: str, loader: SchemaLoader | None = None):
        self.schema_name = schema_name
        self.schema = (loader or default_loader()).load_schema(schema_name)
        self._validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """Raises: jsonschema.ValidationError при первом (лучшем) нарушении."""
        self._validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self._validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]) -> Iterator[jsonschema.ValidationError]:
        return self._validator.iter_errors(data)

    def error_messages(self, data: Dict[str, Any]) -> list[str]:
        """Все нарушения в виде 'path: message' (корень обозначается '$')."""
        messages = []
        for error in sorted(self.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path]):
            path = "/".join(str(p) for p in error.absolute_path) or "$"
            messages.append(f"{path}: {error.message}")
        return messages


class StateContractValidator(ContractValidator):
    """Контракт состояния компонента `component` версии layout `version`."""

    def __init__(self, component: str, version: int, loader: SchemaLoader | None = None):
        self.component = component
        self.version = version
        super().__init__(f"{component}{SCHEMA_SUFFIX}{version}", loader)

    def required_fields(self) -> list[str]:
        return list(self.schema.get("required", []))


# =============================================================================
# CONVENIENCE
# =============================================================================


def validate_state(component: str, data: Dict[str, Any]) -> None:
    """
    Проверка экспорта по контракту версии из data['schema_version'].

    Raises:
        jsonschema.ValidationError: schema_version не int или данные нарушают контракт
        FileNotFoundError: для этой версии контракта нет
    """
    version = data.get("schema_version")
    # bool является подклассом int
    if isinstance(version, bool) or not isinstance(version, int):
        raise jsonschema.ValidationError(f"schema_version must be an integer, got {version!r}")

    validator = StateContractValidator(component, version)
    try:
        validator.validate(data)
    except jsonschema.ValidationError:
        logger.warning(
            "State of %s violates contract %s: %s",
            component, validator.schema_name, "; ".join(validator.error_messages(data)),
        )
        raise
