"""Tests for CLI configuration module."""

import json

from cli.config import Config


def test_config_creates_default_file(tmp_path):
    """Test that config file is created with defaults if missing."""
    config_path = tmp_path / '.stashnode' / 'config.json'
    config = Config(config_path)

    assert config_path.exists()

    assert config.data['node_host'] == Config.DEFAULT_CONFIG['node_host']
    assert config.data['node_port'] == Config.DEFAULT_CONFIG['node_port']
    assert config.data['timeout'] == 30
    assert config.data['max_retries'] == 3
    assert config.data['retry_backoff_multiplier'] == 2


def test_config_never_stores_secrets(tmp_path):
    config = Config(tmp_path / '.stashnode' / 'config.json')

    keys = set(config.data)
    assert not {'passphrase', 'password', 'api_key', 'key'} & keys


def test_config_loads_existing_file(tmp_path):
    """Test loading existing config file."""
    config_path = tmp_path / '.stashnode' / 'config.json'
    config_path.parent.mkdir(parents=True)

    with open(config_path, 'w') as f:
        json.dump({'node_host': 'storage.example.com', 'node_port': 9000}, f)

    config = Config(config_path)

    assert config.data['node_host'] == 'storage.example.com'
    assert config.data['node_port'] == 9000
    assert config.data['timeout'] == 30
    assert config.data['max_retries'] == 3


def test_config_get_base_url(temp_config):
    temp_config.data['node_host'] = '10.0.0.5'
    temp_config.data['node_port'] = 4000

    assert temp_config.get_base_url() == 'http://10.0.0.5:4000'


def test_config_set_node_persists(temp_config):
    temp_config.set_node('node.local', 3100)

    with open(temp_config.config_path, 'r') as f:
        data = json.load(f)
    assert data['node_host'] == 'node.local'
    assert data['node_port'] == 3100
    assert Config(temp_config.config_path).get_base_url() == 'http://node.local:3100'


def test_config_retry_settings(temp_config):
    temp_config.data['max_retries'] = 5
    temp_config.data['retry_backoff_multiplier'] = 3

    assert temp_config.get_retry_config() == {'max_retries': 5, 'retry_backoff_multiplier': 3}
    assert temp_config.get_timeout() == 30


def test_config_corrupted_file_is_backed_up(tmp_path):
    """Test that an unreadable config falls back to defaults and keeps a backup."""
    config_path = tmp_path / '.stashnode' / 'config.json'
    config_path.parent.mkdir(parents=True)
    config_path.write_text('{ invalid json')

    config = Config(config_path)

    assert config.data['timeout'] == 30
    assert config_path.with_suffix('.json.bak').read_text() == '{ invalid json'


def test_config_non_object_root(tmp_path):
    config_path = tmp_path / '.stashnode' / 'config.json'
    config_path.parent.mkdir(parents=True)
    config_path.write_text('[1, 2, 3]')

    config = Config(config_path)

    assert config.data == Config.DEFAULT_CONFIG
