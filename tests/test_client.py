"""Tests for the localvolume.py HTTP client."""

import json
import sys
from unittest.mock import MagicMock, patch

import pytest
import requests

import localvolume
from localvolume import ClientError, LocalVolumeClient, agent_base_url


def _write(tmp_path, agent=None, request=None):
    path = tmp_path / "input.json"
    path.write_text(json.dumps({"agent": agent or {"url": "http://10.0.0.1"}, "request": request or {}}))
    return str(path)


def _response(status_code=200, body=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body if body is not None else {}
    resp.text = json.dumps(body)
    return resp


def _main(argv, capsys):
    with patch.object(sys, "argv", ["localvolume.py"] + argv):
        with pytest.raises(SystemExit) as exc_info:
            localvolume.main()
    return exc_info.value.code, json.loads(capsys.readouterr().out.strip().splitlines()[-1])


class TestAgentBaseUrl:

    def test_default_port(self):
        assert agent_base_url("http://10.0.0.1") == "http://10.0.0.1:8080/v1"

    def test_explicit_port_in_url_wins(self):
        assert agent_base_url("https://agent:9443", 1) == "https://agent:9443/v1"

    def test_scheme_added(self):
        assert agent_base_url("agent", 7000) == "http://agent:7000/v1"

    def test_invalid_port(self):
        with pytest.raises(ClientError):
            agent_base_url("agent", "http")


class TestFromAgentSection:

    def test_token_and_skip_verification(self):
        client = LocalVolumeClient.from_agent_section(
            {"url": "https://agent", "token": " t0k ", "skip_ssl_verification": "yes"}, timeout=5
        )

        assert client.session.headers["Authorization"] == "Bearer t0k"
        assert client.session.verify is False
        assert client.timeout == 5

    def test_basic_auth(self):
        client = LocalVolumeClient.from_agent_section({"url": "http://a", "username": "u", "password": "p"})
        assert client.session.auth.username == "u"

    def test_missing_url(self):
        with pytest.raises(ClientError) as exc_info:
            LocalVolumeClient.from_agent_section({"port": 8080})
        assert "agent.url" in str(exc_info.value)

    def test_username_without_password(self):
        with pytest.raises(ClientError):
            LocalVolumeClient.from_agent_section({"url": "http://a", "username": "u"})

    def test_missing_ca_bundle(self, tmp_path):
        with pytest.raises(ClientError):
            LocalVolumeClient.from_agent_section({"url": "https://a", "ca_bundle": str(tmp_path / "ca.pem")})


class TestOperations:

    def test_create(self, tmp_path, capsys):
        body = {"volume": {"volume_id": "default/abc", "capacity_bytes": 1}}
        path = _write(tmp_path, request={"capacity_range": {"required_bytes": 1}})

        with patch.object(requests.Session, "request", return_value=_response(201, body)) as req:
            code, out = _main(["create", path], capsys)

        assert code == 0
        assert out == body
        args, kwargs = req.call_args
        assert args == ("POST", "http://10.0.0.1:8080/v1/controller/volumes")
        assert kwargs["json"] == {"capacity_range": {"required_bytes": 1}}
        assert kwargs["timeout"] == 30

    def test_delete_keeps_handle_path(self, tmp_path, capsys):
        path = _write(tmp_path, request={"volume_id": "vg0/abc"})

        with patch.object(requests.Session, "request", return_value=_response(200, {})) as req:
            code, _ = _main(["delete", path, "5"], capsys)

        assert code == 0
        assert req.call_args[0] == ("DELETE", "http://10.0.0.1:8080/v1/controller/volumes/vg0/abc")
        assert req.call_args[1]["timeout"] == 5

    def test_delete_requires_volume_id(self, tmp_path, capsys):
        with patch.object(requests.Session, "request") as req:
            code, out = _main(["delete", _write(tmp_path)], capsys)

        assert code == 1
        assert "volume_id" in out["error"]
        req.assert_not_called()

    def test_node_operation(self, tmp_path, capsys):
        path = _write(tmp_path, request={"volume_id": "default/abc", "target_path": "/t"})

        with patch.object(requests.Session, "request", return_value=_response(200, {})) as req:
            code, _ = _main(["unpublish", path], capsys)

        assert code == 0
        assert req.call_args[0] == ("POST", "http://10.0.0.1:8080/v1/node/unpublish")

    def test_agent_error(self, tmp_path, capsys):
        with patch.object(
            requests.Session,
            "request",
            return_value=_response(400, {"error": "requested backend nonexist not exist"}),
        ):
            code, out = _main(["capacity", _write(tmp_path)], capsys)

        assert code == 1
        assert out["error"] == "Agent error (400): requested backend nonexist not exist"

    def test_connection_error(self, tmp_path, capsys):
        with patch.object(requests.Session, "request", side_effect=requests.exceptions.ConnectionError("refused")):
            code, out = _main(["list", _write(tmp_path)], capsys)

        assert code == 1
        assert "HTTP error contacting agent" in out["error"]

    def test_invalid_operation(self, tmp_path, capsys):
        code, out = _main(["resize", _write(tmp_path)], capsys)

        assert code == 1
        assert out["error"] == "Invalid action"

    def test_missing_input_file(self, tmp_path, capsys):
        code, out = _main(["list", str(tmp_path / "absent.json")], capsys)

        assert code == 1
        assert "JSON file not found" in out["error"]
