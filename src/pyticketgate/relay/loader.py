"""Relay discovery and manifest loading."""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass
from importlib import resources
from importlib.metadata import PackageNotFoundError
from importlib.resources.abc import Traversable

from ..exceptions import ConfigError

MANIFEST_FILENAME = "manifest.json"
SCHEMA_FILENAME = "manifest.schema.json"
_MANIFEST_CACHE: tuple[RelayManifest, ...] | None = None


@dataclass(frozen=True, slots=True)
class RelayManifest:
    id: str
    name: str
    simulated: bool
    requires_endpoint: bool


def _relay_root() -> Traversable:
    return resources.files("pyticketgate.relay")


def load_manifest_schema() -> dict:
    schema_path = _relay_root() / SCHEMA_FILENAME
    return json.loads(schema_path.read_text(encoding="utf-8"))


def _build_manifest(data: dict, folder_name: str) -> RelayManifest:
    if not isinstance(data, dict):
        raise ConfigError("Relay manifest must be a JSON object.")
    required = ("id", "name", "simulated", "requires_endpoint")
    missing = [key for key in required if key not in data]
    if missing:
        raise ConfigError(f"Relay manifest missing keys: {', '.join(missing)}.")
    relay_id = data["id"]
    name = data["name"]
    if not isinstance(relay_id, str) or not relay_id:
        raise ConfigError("Relay manifest id must be a non-empty string.")
    if relay_id != folder_name:
        raise ConfigError("Relay manifest id must match its folder name.")
    if not isinstance(name, str) or not name:
        raise ConfigError("Relay manifest name must be a non-empty string.")
    for key in ("simulated", "requires_endpoint"):
        if not isinstance(data[key], bool):
            raise ConfigError(f"Relay manifest {key} must be a boolean.")
    return RelayManifest(
        id=relay_id,
        name=name,
        simulated=data["simulated"],
        requires_endpoint=data["requires_endpoint"],
    )


def iter_manifest_files() -> Iterable[tuple[str, Traversable]]:
    root = _relay_root()
    for entry in root.iterdir():
        if not entry.is_dir():
            continue
        manifest_path = entry / MANIFEST_FILENAME
        if manifest_path.is_file():
            yield entry.name, manifest_path


def load_manifests() -> list[RelayManifest]:
    global _MANIFEST_CACHE
    if _MANIFEST_CACHE is not None:
        return list(_MANIFEST_CACHE)
    manifests: list[RelayManifest] = []
    try:
        for folder_name, manifest_path in iter_manifest_files():
            try:
                data = json.loads(manifest_path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as exc:
                raise ConfigError("Relay manifest is not valid JSON.") from exc
            manifests.append(_build_manifest(data, folder_name))
    except (ModuleNotFoundError, PackageNotFoundError) as exc:
        _MANIFEST_CACHE = None
        raise ConfigError("Relay package was not found.") from exc
    _MANIFEST_CACHE = tuple(sorted(manifests, key=lambda manifest: manifest.id))
    return list(_MANIFEST_CACHE)


def clear_manifest_cache() -> None:
    """Clear cached relay manifests (used in tests)."""
    global _MANIFEST_CACHE
    _MANIFEST_CACHE = None


def list_relays() -> list[str]:
    return [manifest.id for manifest in load_manifests()]


def get_manifest(relay_id: str) -> RelayManifest:
    for manifest in load_manifests():
        if manifest.id == relay_id:
            return manifest
    raise ConfigError(f"Relay not found: {relay_id}.")
