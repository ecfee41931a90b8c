"""Tests for settings loading."""

import pytest

from config.lib.load_settings_conf import SettingsError, load_settings_conf


def test_defaults_without_file(tmp_path):
    settings = load_settings_conf(str(tmp_path), environ={})
    assert settings['default_page_limit'] == 20
    assert settings['max_page_limit'] == 50
    assert settings['include_private_in_matches'] is False
    assert settings['cors_origins'] == ['*']
    # A random secret is generated when none is configured
    assert settings['jwt_secret']


def test_file_values(tmp_path):
    (tmp_path / 'settings.conf').write_text(
        "[DEFAULT]\n"
        "db_url = postgresql://u@db:5432/swaps\n"
        "jwt_secret = s3cret\n"
        "include_private_in_matches = yes\n"
        "cors_origins = http://a.test, http://b.test\n"
    )
    settings = load_settings_conf(str(tmp_path), environ={})
    assert settings['db_url'] == 'postgresql://u@db:5432/swaps'
    assert settings['jwt_secret'] == 's3cret'
    assert settings['include_private_in_matches'] is True
    assert settings['cors_origins'] == ['http://a.test', 'http://b.test']


def test_environment_overrides_file(tmp_path):
    (tmp_path / 'settings.conf').write_text("[DEFAULT]\nport = 9000\n")
    settings = load_settings_conf(str(tmp_path), environ={'SKILLSWAP_PORT': '9100'})
    assert settings['port'] == 9100


@pytest.mark.parametrize("key,value", [
    ('port', 'eighty'),
    ('max_page_limit', '0'),
    ('include_private_in_matches', 'maybe'),
])
def test_invalid_values(tmp_path, key, value):
    with pytest.raises(SettingsError) as exc_info:
        load_settings_conf(str(tmp_path), environ={f'SKILLSWAP_{key.upper()}': value})
    assert key in str(exc_info.value)


def test_default_limit_cannot_exceed_max(tmp_path):
    with pytest.raises(SettingsError):
        load_settings_conf(
            str(tmp_path),
            environ={'SKILLSWAP_DEFAULT_PAGE_LIMIT': '80', 'SKILLSWAP_MAX_PAGE_LIMIT': '50'}
        )
