"""
Manifest helpers -- reading and writing the reserved dweb.json.

These write through the drive directly; the public write path refuses
the manifest, so this is the only way it changes.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from .errors import VaultError
from .models import MANIFEST_FIELDS, Manifest
from .paths import MANIFEST_PATH

logger = logging.getLogger("dwebvault.manifest")


async def read_manifest(view) -> Manifest:
    """Read and parse the manifest from a drive or checkout.

    Raises:
        NotFoundError: If the vault has no manifest.
        ValueError: If the manifest is not a valid JSON object.
    """
    raw = await view.read_file(MANIFEST_PATH, "utf8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Manifest is not a JSON object")
    return Manifest.model_validate(data)


async def write_manifest(drive, manifest: Manifest) -> None:
    """Replace the manifest with `manifest`."""
    payload = manifest.model_dump(mode="json", exclude_none=True)
    await drive.write_file(MANIFEST_PATH, json.dumps(payload, indent=2), "utf8")
    logger.debug("Wrote manifest for %s", manifest.url or drive.key.hex())


async def update_manifest(drive, updates: Mapping[str, Any]) -> Manifest:
    """Merge the recognized fields of `updates` into the stored manifest.

    A missing or unreadable manifest is treated as empty.

    Returns:
        Manifest: The manifest as written.
    """
    try:
        current = (await read_manifest(drive)).model_dump(exclude_none=True)
    except (VaultError, ValueError) as exc:
        logger.warning("Replacing unreadable manifest: %s", exc)
        current = {}

    current.update({k: updates[k] for k in MANIFEST_FIELDS if k in updates})
    manifest = Manifest.model_validate(current)
    await write_manifest(drive, manifest)
    return manifest
