import logging

import pytest

from photonmgmt import conf


def _write(tmp_path, text):
    path = tmp_path / "mgmt.toml"
    path.write_text(text)
    return str(path)


def test_missing_file_gives_defaults(tmp_path):
    config = conf.parse(str(tmp_path / "absent.toml"))
    assert config.system.log_level == conf.DEFAULT_LOG_LEVEL
    assert config.system.use_authentication is False
    assert config.network.listen == ""
    assert config.network.listen_unix_socket is False
    assert config.network.listen_vsock is False


def test_values_are_read(tmp_path):
    path = _write(
        tmp_path,
        '[System]\nLogLevel = "debug"\nUseAuthentication = true\n'
        '[Network]\nListen = "127.0.0.1:5208"\nListenUnixSocket = false\n',
    )
    config = conf.parse(path)
    assert config.system.log_level == "debug"
    assert config.system.use_authentication is True
    assert config.network.listen == "127.0.0.1:5208"
    assert config.network.listen_unix_socket is False
    assert logging.getLogger("photonmgmt").level == logging.DEBUG


def test_keys_are_case_insensitive(tmp_path):
    path = _write(tmp_path, '[system]\nloglevel = "warn"\n[network]\nlistenvsock = true\n')
    config = conf.parse(path)
    assert config.system.log_level == "warn"
    assert config.network.listen_vsock is True


def test_string_booleans_are_decoded(tmp_path):
    path = _write(tmp_path, '[Network]\nListenUnixSocket = "true"\n')
    assert conf.parse(path).network.listen_unix_socket is True


def test_invalid_log_level_falls_back(tmp_path):
    path = _write(tmp_path, '[System]\nLogLevel = "loud"\n')
    assert conf.parse(path).system.log_level == conf.DEFAULT_LOG_LEVEL


def test_invalid_listen_raises(tmp_path):
    path = _write(tmp_path, '[Network]\nListen = "127.0.0.1"\n')
    with pytest.raises(ValueError):
        conf.parse(path)


def test_invalid_listen_port_raises(tmp_path):
    path = _write(tmp_path, '[Network]\nListen = "127.0.0.1:99999"\n')
    with pytest.raises(ValueError):
        conf.parse(path)


def test_malformed_toml_gives_defaults(tmp_path):
    path = _write(tmp_path, "[System\nLogLevel = ")
    config = conf.parse(path)
    assert config == conf.Config()