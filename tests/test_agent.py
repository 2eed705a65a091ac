"""Tests for the agent entry point helpers."""

import logging
import ssl

import pytest

from lvagent import agent
from lvagent.config import ConfigManager
from lvagent.errors import FatalConfigurationError


class TestTlsOptions:

    def test_no_security_section(self):
        assert agent.tls_options({}) == {}

    def test_disabled(self):
        assert agent.tls_options({"security": {"tls": {"enabled": False, "cert_file": "/x"}}}) == {}

    def test_server_only(self, tmp_path):
        cert, key = tmp_path / "cert.pem", tmp_path / "key.pem"
        cert.write_text("cert")
        key.write_text("key")

        options = agent.tls_options({"security": {"tls": {"cert_file": str(cert), "key_file": str(key)}}})

        assert options == {
            "ssl_certfile": str(cert),
            "ssl_keyfile": str(key),
            "ssl_cert_reqs": ssl.CERT_NONE,
        }

    def test_mutual_tls(self, tmp_path):
        for name in ("cert.pem", "key.pem", "ca.pem"):
            (tmp_path / name).write_text(name)
        tls = {
            "cert_file": str(tmp_path / "cert.pem"),
            "key_file": str(tmp_path / "key.pem"),
            "ca_file": str(tmp_path / "ca.pem"),
            "client_auth": "Required",
        }

        options = agent.tls_options({"security": {"tls": tls}})

        assert options["ssl_cert_reqs"] == ssl.CERT_REQUIRED
        assert options["ssl_ca_certs"] == str(tmp_path / "ca.pem")

    def test_missing_key(self):
        with pytest.raises(RuntimeError):
            agent.tls_options({"security": {"tls": {"cert_file": "/etc/cert.pem"}}})

    def test_missing_files(self, tmp_path):
        with pytest.raises(RuntimeError) as exc_info:
            agent.tls_options(
                {"security": {"tls": {"cert_file": str(tmp_path / "c"), "key_file": str(tmp_path / "k")}}}
            )
        assert "cert_file=" in str(exc_info.value)

    def test_bad_client_auth(self, tmp_path):
        (tmp_path / "c").write_text("c")
        (tmp_path / "k").write_text("k")
        tls = {"cert_file": str(tmp_path / "c"), "key_file": str(tmp_path / "k"), "client_auth": "sometimes"}

        with pytest.raises(RuntimeError):
            agent.tls_options({"security": {"tls": tls}})


class TestSetupLogging:

    def test_level_from_config(self):
        agent.setup_logging({"logging": {"level": "debug"}})
        assert agent.logger.level == logging.DEBUG
        agent.setup_logging({"logging": {"level": "INFO"}})

    def test_unknown_level_falls_back_to_info(self):
        agent.setup_logging({"logging": {"level": "chatty"}})
        assert agent.logger.level == logging.INFO

    def test_single_console_handler(self):
        agent.setup_logging({})
        agent.setup_logging({})
        assert sum(isinstance(h, logging.StreamHandler) for h in agent.logger.handlers) == 1


class TestLoadContext:

    def test_fake_backend(self, tmp_path):
        manager = ConfigManager(
            environ={"LV_AGENT_CONFIG": str(tmp_path / "none.json"), "LV_AGENT_BACKEND": "fake", "NODE_NAME": "n"}
        )

        cfg, ctx = agent.load_context(manager)

        assert cfg["backend"]["kind"] == "fake"
        assert ctx.identity.probe() == {"ready": True}

    def test_fatal_configuration(self, tmp_path):
        manager = ConfigManager(environ={"LV_AGENT_CONFIG": str(tmp_path / "none.json")})

        with pytest.raises(FatalConfigurationError):
            agent.load_context(manager)
