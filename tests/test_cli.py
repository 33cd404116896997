"""Tests for the edgelan command-line interface."""
import pytest

from edgelan import cli
from edgelan.config.state_store import StateStore

from conftest import FakeControlPlane

SITES_YAML = """
controlplane:
  account_id: "12345"
  api_key: secret

defaults:
  connection_type: SOCKET_X1600
  site_type: BRANCH

sites:
  branch-berlin:
    name: Berlin
    native_range:
      native_network_range: 10.20.0.0/24
      local_ip: 10.20.0.1
      interface_index: INT_7

  branch-broken:
    name: Broken
    native_range:
      native_network_range: 10.30.0.0/24
      local_ip: 10.31.0.1
"""


class TestCli:
    """Tests for plan, apply and destroy."""

    @pytest.fixture
    def control_plane(self, monkeypatch):
        fake = FakeControlPlane()
        monkeypatch.setattr(cli, "create_control_plane", lambda settings: fake)
        return fake

    @pytest.fixture
    def argv(self, tmp_path):
        config = tmp_path / "sites.yaml"
        config.write_text(SITES_YAML)
        state_dir = tmp_path / "state"

        def build(*args):
            return ["-c", str(config), "--state-dir", str(state_dir), *args]
        return build

    def test_plan_new_site_reports_drift(self, control_plane, argv, capsys):
        assert cli.main(argv("plan", "branch-berlin")) == cli.EXIT_DRIFT

        out = capsys.readouterr().out
        assert "site will be created" in out
        assert control_plane.calls == []

    def test_apply_then_plan_is_clean(self, control_plane, argv, tmp_path, capsys):
        assert cli.main(argv("apply", "branch-berlin")) == cli.EXIT_OK
        out = capsys.readouterr().out
        assert "native range moved INT_5 -> INT_7" in out
        assert "state v1" in out

        stored = StateStore(tmp_path / "state").get_snapshot("branch-berlin")
        assert stored.site_id == "site-1"
        assert stored.native_range.interface_index == "INT_7"

        assert cli.main(argv("plan", "branch-berlin")) == cli.EXIT_OK
        assert "No changes needed" in capsys.readouterr().out

    def test_second_apply_converges(self, control_plane, argv):
        assert cli.main(argv("apply", "branch-berlin")) == cli.EXIT_OK
        assert cli.main(argv("apply", "branch-berlin")) == cli.EXIT_OK

        assert len(control_plane.calls_to("add_site")) == 1
        assert len(control_plane.calls_to("update_site_general")) == 1

    def test_destroy(self, control_plane, argv, tmp_path):
        cli.main(argv("apply", "branch-berlin"))

        assert cli.main(argv("destroy", "branch-berlin")) == cli.EXIT_OK

        assert control_plane.sites == {}
        assert StateStore(tmp_path / "state").get("branch-berlin") is None

    def test_destroy_unknown_site_id(self, control_plane, argv, capsys):
        assert cli.main(argv("destroy", "branch-berlin")) == cli.EXIT_OK
        assert "nothing to destroy" in capsys.readouterr().out

    def test_invalid_site(self, control_plane, argv):
        assert cli.main(argv("apply", "branch-broken")) == cli.EXIT_ERROR
        assert control_plane.calls == []

    def test_plan_invalid_site(self, control_plane, argv, capsys):
        assert cli.main(argv("plan", "branch-broken")) == cli.EXIT_ERROR
        assert "Validation failed" in capsys.readouterr().out

    def test_unknown_site_key(self, control_plane, argv):
        assert cli.main(argv("apply", "branch-nowhere")) == cli.EXIT_ERROR

    def test_engine_failure(self, argv, monkeypatch):
        fake = FakeControlPlane(flag_supported=False)
        monkeypatch.setattr(cli, "create_control_plane", lambda settings: fake)

        assert cli.main(argv("apply", "branch-berlin")) == cli.EXIT_ERROR

    def test_missing_config(self, tmp_path):
        assert cli.main(["-c", str(tmp_path / "absent.yaml"), "plan", "x"]) == cli.EXIT_ERROR

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.main([])
