from pathlib import Path

import pytest

from marionette.config import MarionetteConfig, load_config


def test_load_config_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "missing.conf")
    assert isinstance(config, MarionetteConfig)
    assert config.puppetmaster == "puppet"
    assert config.puppetmaster_port == 8080
    assert config.pssh_path == Path("/usr/bin/parallel-ssh")
    assert config.hostlist_path == Path("/tmp/puppet-pssh-run-hostlist")
    assert config.threads == 40
    assert config.host_key_verify is True


def test_load_config_overrides(tmp_path: Path) -> None:
    cfg_path = tmp_path / "main.conf"
    cfg_path.write_text(
        """
        [defaults]
        puppetmaster = "puppetdb.example.com"
        puppetmaster_port = 8081
        use_ssl = true
        pssh_path = "/usr/local/bin/pssh"
        hostlist_path = "/var/tmp/hosts"
        node_output_path = "/var/log/marionette"
        threads = 10
        host_key_verify = false
        user = "deploy"
        nameserver = "10.0.0.53"
        """
    )

    config = load_config(cfg_path)
    assert config.puppetmaster == "puppetdb.example.com"
    assert config.puppetmaster_port == 8081
    assert config.use_ssl is True
    assert config.pssh_path == Path("/usr/local/bin/pssh")
    assert config.hostlist_path == Path("/var/tmp/hosts")
    assert config.node_output_path == Path("/var/log/marionette")
    assert config.threads == 10
    assert config.host_key_verify is False
    assert config.user == "deploy"
    assert config.nameserver == "10.0.0.53"


def test_load_config_rejects_bad_toml(tmp_path: Path) -> None:
    cfg_path = tmp_path / "main.conf"
    cfg_path.write_text("[defaults\n")
    with pytest.raises(ValueError):
        load_config(cfg_path)
