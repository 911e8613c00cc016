"""
Loads ``error_registry.yaml`` once and resolves error codes to definitions.

Every ProjectXException takes its HTTP status and default message from here.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import ValidationError

from projectx_types.errors import ErrorDefinition, ErrorRegistryFile, ErrorText

logger = logging.getLogger(__name__)

REGISTRY_PATH = Path(__file__).parent / "error_registry.yaml"

_registry: Optional[Dict[str, ErrorDefinition]] = None
_registry_lock = threading.Lock()


def load_error_registry(path: Path = REGISTRY_PATH) -> Dict[str, ErrorDefinition]:
    """
    Parse and cache the registry.

    Raises:
        ValueError: If the file is malformed or lists a code twice
    """
    global _registry

    with _registry_lock:
        if _registry is not None:
            return _registry

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)

        try:
            parsed = ErrorRegistryFile.model_validate(raw)
        except ValidationError as e:
            raise ValueError(f"Invalid error registry {path}: {e}") from e

        registry: Dict[str, ErrorDefinition] = {}
        for definition in parsed.errors:
            if definition.code in registry:
                raise ValueError(f"Duplicate error code in registry: {definition.code}")
            registry[definition.code] = definition

        logger.debug(f"Loaded {len(registry)} error definitions")
        _registry = registry
        return _registry


def get_error_definition(error_code: str) -> ErrorDefinition:
    """Look up a code; unknown codes resolve to a generic 500 definition."""
    definition = load_error_registry().get(error_code)
    if definition is not None:
        return definition

    logger.warning(f"Unknown error code {error_code}")
    return ErrorDefinition(
        code="INT_999",
        http_status=500,
        category="internal",
        severity="error",
        title="Unknown Error",
        message=ErrorText(plain=f"An error occurred (code: {error_code})"),
        internal_description=f"Code {error_code} is missing from error_registry.yaml",
    )


def get_all_error_codes() -> list[str]:
    return sorted(load_error_registry())
