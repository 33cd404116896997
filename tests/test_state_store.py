"""Tests for the observed-state store."""
import pytest

from edgelan.config.state_store import StateStore, StoredState, compute_checksum

from conftest import make_site


class TestStoredState:
    """Tests for StoredState serialization."""

    def test_json_round_trip(self):
        snapshot = make_site(site_id="1001", interface_index="INT_7")
        stored = StoredState(site_key="berlin", snapshot=snapshot, version=3, checksum="sha256:x")

        loaded = StoredState.from_json(stored.to_json(), "berlin")

        assert loaded.snapshot == snapshot
        assert loaded.version == 3
        assert loaded.updated_at is None

    def test_checksum_stable(self):
        assert compute_checksum(make_site()) == compute_checksum(make_site())
        assert compute_checksum(make_site()) != compute_checksum(make_site(vlan=10))
        assert compute_checksum(make_site()).startswith("sha256:")


class TestStateStore:
    """Tests for StateStore."""

    @pytest.fixture
    def temp_store(self, tmp_path):
        return StateStore(base_dir=tmp_path / "state")

    def test_directory_creation(self, tmp_path):
        StateStore(base_dir=tmp_path / "state")
        assert (tmp_path / "state").is_dir()

    def test_missing(self, temp_store):
        assert temp_store.get("berlin") is None
        assert temp_store.get_snapshot("berlin") is None

    def test_save_and_get(self, temp_store):
        snapshot = make_site(site_id="1001")

        stored = temp_store.save("berlin", snapshot)

        assert stored.version == 1
        assert temp_store.get_snapshot("berlin") == snapshot
        assert temp_store.list_sites() == ["berlin"]

    def test_version_bumps_only_on_change(self, temp_store):
        temp_store.save("berlin", make_site(site_id="1001"))
        same = temp_store.save("berlin", make_site(site_id="1001"))
        changed = temp_store.save("berlin", make_site(site_id="1001", vlan=10))

        assert same.version == 1
        assert changed.version == 2

    def test_corrupt_file(self, temp_store):
        (temp_store.base_dir / "berlin.json").write_text("{not json")
        assert temp_store.get("berlin") is None

    def test_delete(self, temp_store):
        temp_store.save("berlin", make_site(site_id="1001"))

        assert temp_store.delete("berlin")
        assert not temp_store.delete("berlin")
        assert temp_store.list_sites() == []
