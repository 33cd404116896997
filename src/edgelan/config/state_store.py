"""Observed-state store.

Keeps the last converged snapshot of each site as JSON so the next run can
hand it to the engine as the prior state.

Directory structure:
    ~/.edgelan/state/
    ├── branch-berlin.json
    └── branch-paris.json
"""
import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .schema import SiteConfig

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = Path.home() / ".edgelan" / "state"


def compute_checksum(snapshot: SiteConfig) -> str:
    digest = hashlib.sha256(snapshot.to_json(indent=None).encode()).hexdigest()
    return f"sha256:{digest[:16]}"


@dataclass
class StoredState:
    """A stored snapshot with metadata."""
    site_key: str
    snapshot: SiteConfig
    version: int = 1
    checksum: str = ""
    updated_at: Optional[datetime] = None

    def to_json(self) -> str:
        return json.dumps(
            {
                "site_key": self.site_key,
                "version": self.version,
                "checksum": self.checksum,
                "updated_at": self.updated_at.isoformat() if self.updated_at else None,
                "snapshot": self.snapshot.to_dict(),
            },
            indent=2,
            sort_keys=True,
        )

    @classmethod
    def from_json(cls, text: str, site_key: str) -> "StoredState":
        data = json.loads(text)
        updated_at = None
        if data.get("updated_at"):
            try:
                updated_at = datetime.fromisoformat(data["updated_at"])
            except (ValueError, TypeError):
                updated_at = None
        return cls(
            site_key=site_key,
            snapshot=SiteConfig.from_dict(data["snapshot"]),
            version=int(data.get("version", 1)),
            checksum=data.get("checksum", ""),
            updated_at=updated_at,
        )


class StateStore:
    """Reads and writes per-site snapshots under one directory."""

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir) if base_dir else DEFAULT_STATE_DIR
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"State store initialized at {self.base_dir}")

    def _path(self, site_key: str) -> Path:
        return self.base_dir / f"{site_key}.json"

    def get(self, site_key: str) -> Optional[StoredState]:
        """
        Get the stored state of a site.

        Returns None if nothing is stored or the file cannot be parsed.
        """
        path = self._path(site_key)
        if not path.exists():
            return None
        try:
            return StoredState.from_json(path.read_text(), site_key)
        except (ValueError, KeyError) as e:
            logger.error(f"Failed to read state for {site_key}: {e}")
            return None

    def get_snapshot(self, site_key: str) -> Optional[SiteConfig]:
        stored = self.get(site_key)
        return stored.snapshot if stored else None

    def save(self, site_key: str, snapshot: SiteConfig) -> StoredState:
        """
        Save the snapshot of a site.

        The version only advances when the snapshot content changed.
        """
        existing = self.get(site_key)
        checksum = compute_checksum(snapshot)
        if existing and existing.checksum == checksum:
            return existing

        stored = StoredState(
            site_key=site_key,
            snapshot=snapshot,
            version=(existing.version + 1) if existing else 1,
            checksum=checksum,
            updated_at=datetime.now(timezone.utc),
        )
        self._path(site_key).write_text(stored.to_json())
        logger.info(f"Saved state for {site_key} (v{stored.version})")
        return stored

    def delete(self, site_key: str) -> bool:
        path = self._path(site_key)
        if path.exists():
            path.unlink()
            logger.info(f"Deleted state for {site_key}")
            return True
        return False

    def list_sites(self) -> list[str]:
        return sorted(p.stem for p in self.base_dir.glob("*.json"))
