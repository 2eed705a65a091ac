"""Tests for the node mount manager."""

import os

import pytest

from lvagent.errors import InternalError, InvalidArgumentError
from lvagent.models import MULTI_NODE_READER_ONLY, MountCapability
from lvagent.orchestration import NodeServer
from lvagent.utils.mount import MountError


@pytest.fixture
def staging(tmp_path) -> str:
    path = tmp_path / "staging"
    path.mkdir()
    return str(path)


class TestStageVolume:

    def test_formats_and_mounts(self, node: NodeServer, mounter, staging):
        node.stage_volume("default/v1", "/dev/xxx", staging, MountCapability(fs_type="xfs"))

        assert mounter.calls == [("format_and_mount", "/dev/xxx", staging, "xfs", "rw")]

    def test_idempotent(self, node: NodeServer, mounter, staging):
        capability = MountCapability()

        node.stage_volume("default/v1", "/dev/xxx", staging, capability)
        node.stage_volume("default/v1", "/dev/xxx", staging, capability)

        assert len(mounter.calls) == 1

    def test_read_only_access_mode(self, node: NodeServer, mounter, staging):
        capability = MountCapability(mount_flags=["noatime"], access_mode=MULTI_NODE_READER_ONLY)

        node.stage_volume("default/v1", "/dev/xxx", staging, capability)

        assert mounter.calls[0][4] == "ro,noatime"

    def test_missing_capability(self, node: NodeServer, mounter, staging):
        with pytest.raises(InvalidArgumentError):
            node.stage_volume("default/v1", "/dev/xxx", staging, None)
        assert mounter.calls == []

    def test_missing_device_path(self, node: NodeServer, mounter, staging):
        with pytest.raises(InvalidArgumentError):
            node.stage_volume("default/v1", "", staging, MountCapability())
        assert mounter.calls == []

    def test_missing_staging_path(self, node: NodeServer, mounter):
        with pytest.raises(InvalidArgumentError):
            node.stage_volume("default/v1", "/dev/xxx", "", MountCapability())
        assert mounter.calls == []

    def test_nonexistent_staging_path(self, node: NodeServer, tmp_path):
        with pytest.raises(InternalError):
            node.stage_volume("default/v1", "/dev/xxx", str(tmp_path / "absent"), MountCapability())

    def test_mount_failure_is_internal(self, node: NodeServer, mounter, staging):
        mounter.fail_with = MountError("mkfs failed")
        with pytest.raises(InternalError):
            node.stage_volume("default/v1", "/dev/xxx", staging, MountCapability())
        assert node.locks.held_keys() == []


class TestUnstageVolume:

    def test_unmounts_and_removes(self, node: NodeServer, mounter, staging):
        node.stage_volume("default/v1", "/dev/xxx", staging, MountCapability())

        node.unstage_volume("default/v1", staging)

        assert ("unmount", staging) in mounter.calls
        assert not os.path.exists(staging)

    def test_absent_path(self, node: NodeServer, mounter, tmp_path):
        node.unstage_volume("default/v1", str(tmp_path / "absent"))
        assert mounter.calls == []

    def test_not_mounted_removes_dir(self, node: NodeServer, mounter, staging):
        node.unstage_volume("default/v1", staging)

        assert mounter.calls == []
        assert not os.path.exists(staging)

    def test_missing_staging_path(self, node: NodeServer):
        with pytest.raises(InvalidArgumentError):
            node.unstage_volume("default/v1", "")


class TestPublishVolume:

    def test_creates_target_and_bind_mounts(self, node: NodeServer, mounter, staging, tmp_path):
        target = str(tmp_path / "pods" / "target")

        node.publish_volume("default/v1", staging, target, False, MountCapability(mount_flags=["noexec"]))

        assert os.path.isdir(target)
        assert mounter.calls == [("mount", staging, target, "", "bind,noexec")]

    def test_read_only(self, node: NodeServer, mounter, staging, tmp_path):
        target = str(tmp_path / "target")

        node.publish_volume("default/v1", staging, target, True, MountCapability())

        assert mounter.calls[0][4] == "bind,ro"

    def test_idempotent(self, node: NodeServer, mounter, staging, tmp_path):
        target = str(tmp_path / "target")

        node.publish_volume("default/v1", staging, target, False, MountCapability())
        node.publish_volume("default/v1", staging, target, False, MountCapability())

        assert len(mounter.calls) == 1

    def test_unreadable_target_is_internal(self, node: NodeServer, mounter, staging, tmp_path, monkeypatch):
        target = str(tmp_path / "target")

        def denied(path):
            raise PermissionError(13, "Permission denied", path)

        monkeypatch.setattr(mounter, "is_likely_not_mount_point", denied)

        with pytest.raises(InternalError) as exc_info:
            node.publish_volume("default/v1", staging, target, False, MountCapability())

        assert "Permission denied" in str(exc_info.value)
        assert not os.path.exists(target)
        assert mounter.calls == []

    @pytest.mark.parametrize(
        "target,staging_path,capability",
        [
            ("/t", "/s", None),
            ("", "/s", MountCapability()),
            ("/t", "", MountCapability()),
        ],
    )
    def test_missing_fields(self, node: NodeServer, mounter, target, staging_path, capability):
        with pytest.raises(InvalidArgumentError):
            node.publish_volume("default/v1", staging_path, target, False, capability)
        assert mounter.calls == []


class TestUnpublishVolume:

    def test_unmounts(self, node: NodeServer, mounter, staging, tmp_path):
        target = str(tmp_path / "target")
        node.publish_volume("default/v1", staging, target, False, MountCapability())

        node.unpublish_volume("default/v1", target)

        assert mounter.calls[-1] == ("unmount", target)
        assert target not in mounter.mounted

    def test_absent_target_is_success(self, node: NodeServer, mounter, tmp_path):
        node.unpublish_volume("default/v1", str(tmp_path / "absent"))
        assert mounter.calls == []

    def test_not_mounted_is_success(self, node: NodeServer, mounter, staging):
        node.unpublish_volume("default/v1", staging)
        assert mounter.calls == []

    def test_missing_target(self, node: NodeServer):
        with pytest.raises(InvalidArgumentError):
            node.unpublish_volume("default/v1", "")


class TestNodeInfo:

    def test_topology(self, node: NodeServer):
        info = node.get_info()

        assert info["node_id"] == "node-1"
        assert info["accessible_topology"] == {"segments": {"kubernetes.io/hostname": "node-1"}}

    def test_capabilities(self, node: NodeServer):
        assert node.get_capabilities() == ["STAGE_UNSTAGE_VOLUME"]
