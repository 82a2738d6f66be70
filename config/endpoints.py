"""
Endpoint list loader - read and validate the endpoints YAML file.

Expected layout::

    endpoints:
      - name: cloudflare
        address: 1.1.1.1
        location: global
      - name: google
        address: 8.8.8.8
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.endpoint_registry import EndpointConfigError


class EndpointModel(BaseModel):
    """One endpoint descriptor as written in the config file."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    location: Optional[str] = None


class EndpointsFile(BaseModel):
    """Top-level structure of the endpoints config file."""
    model_config = ConfigDict(extra="ignore")

    endpoints: List[EndpointModel] = Field(min_length=1)


def load_yaml(path: Path) -> Any:
    """Load a YAML file and return its contents."""
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def parse_endpoints(data: Any) -> List[Dict[str, Any]]:
    """Validate already-loaded config data and return endpoint descriptors."""
    if not isinstance(data, dict):
        raise EndpointConfigError("config must be a mapping with an 'endpoints' list")
    try:
        parsed = EndpointsFile(**data)
    except ValidationError as exc:
        raise EndpointConfigError(f"invalid endpoints config: {exc}") from exc
    return [ep.model_dump() for ep in parsed.endpoints]


def load_endpoints(path: str | Path) -> List[Dict[str, Any]]:
    """
    Load endpoint descriptors from a YAML file.

    Raises:
        EndpointConfigError: file missing, unreadable, not valid YAML or not
            matching the expected schema.
    """
    config_path = Path(path)
    try:
        data = load_yaml(config_path)
    except FileNotFoundError as exc:
        raise EndpointConfigError(f"config file not found: {config_path}") from exc
    except OSError as exc:
        raise EndpointConfigError(f"cannot read config file {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise EndpointConfigError(f"invalid YAML in {config_path}: {exc}") from exc
    return parse_endpoints(data)
