"""
Endpoint registry - the fixed set of probe targets.

Built once at startup from already-parsed descriptors and read-only afterwards.
Each endpoint's position in the registry is its identity for the metrics store.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping


class EndpointConfigError(ValueError):
    """Raised when the endpoint list cannot be used to start probing."""


@dataclass(frozen=True)
class Endpoint:
    """A named, addressed network target."""
    index: int
    name: str
    address: str
    location: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        """Identity pair used for uniqueness checks."""
        return (self.name, self.address)

    @property
    def labels(self) -> dict[str, str]:
        """Exposition labels; ``location`` only when configured."""
        labels = {"address": self.address, "name": self.name}
        if self.location:
            labels["location"] = self.location
        return labels


def _clean_field(descriptor: Mapping[str, Any], field: str, position: int, required: bool) -> str | None:
    value = descriptor.get(field)
    if value is None:
        if required:
            raise EndpointConfigError(f"endpoint #{position}: missing required field '{field}'")
        return None
    if not isinstance(value, str):
        raise EndpointConfigError(f"endpoint #{position}: field '{field}' must be a string")
    value = value.strip()
    if not value:
        if required:
            raise EndpointConfigError(f"endpoint #{position}: field '{field}' must not be empty")
        return None
    return value


class EndpointRegistry:
    """Immutable, indexed collection of endpoints."""

    def __init__(self, descriptors: Iterable[Mapping[str, Any]]) -> None:
        endpoints: list[Endpoint] = []
        seen: dict[tuple[str, str], int] = {}

        for position, descriptor in enumerate(descriptors):
            if not isinstance(descriptor, Mapping):
                raise EndpointConfigError(f"endpoint #{position}: expected a mapping, got {type(descriptor).__name__}")

            name = _clean_field(descriptor, "name", position, required=True)
            address = _clean_field(descriptor, "address", position, required=True)
            location = _clean_field(descriptor, "location", position, required=False)

            # Prevent argument injection into the ping command line
            if address.startswith("-"):
                raise EndpointConfigError(f"endpoint #{position}: invalid address '{address}'")

            key = (name, address)
            if key in seen:
                raise EndpointConfigError(
                    f"endpoint #{position}: duplicate endpoint name={name!r} address={address!r} "
                    f"(first defined at #{seen[key]})"
                )
            seen[key] = position
            endpoints.append(Endpoint(index=len(endpoints), name=name, address=address, location=location))

        if not endpoints:
            raise EndpointConfigError("no endpoints configured")

        self._endpoints: tuple[Endpoint, ...] = tuple(endpoints)
        self._by_key: dict[tuple[str, str], Endpoint] = {ep.key: ep for ep in endpoints}

    def __len__(self) -> int:
        return len(self._endpoints)

    def __iter__(self) -> Iterator[Endpoint]:
        return iter(self._endpoints)

    def __getitem__(self, index: int) -> Endpoint:
        return self._endpoints[index]

    @property
    def endpoints(self) -> tuple[Endpoint, ...]:
        return self._endpoints

    def lookup(self, name: str, address: str) -> Endpoint:
        """Find an endpoint by identity. Raises KeyError if unknown."""
        return self._by_key[(name, address)]
