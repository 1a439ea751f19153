"""Tests for configuration tokens, encryption and settings."""

import json
from urllib.parse import quote

import pytest

from xtreamcatalog.errors import ConfigError
from xtreamcatalog.models.config import AddonConfig, Settings
from xtreamcatalog.services.config_service import ConfigService

PAYLOAD = {
    "xtreamUrl": "http://panel.test/",
    "xtreamUsername": "user",
    "xtreamPassword": "pass",
    "xtreamUseM3U": True,
    "cacheTtl": 600,
}


@pytest.fixture()
def service():
    return ConfigService(Settings(config_secret="s3cret"))


class TestAddonConfig:
    def test_camel_case_aliases(self):
        config = AddonConfig.model_validate(PAYLOAD)
        assert config.xtream_url == "http://panel.test/"
        assert config.base_url == "http://panel.test"
        assert config.use_m3u is True
        assert config.cache_ttl == 600

    def test_field_names_accepted(self):
        config = AddonConfig(xtream_url="http://p", xtream_username="u", xtream_password="p")
        assert config.xtream_username == "u"

    def test_defaults(self):
        config = AddonConfig()
        assert config.live_extension == "ts"
        assert config.include_series is True
        assert config.include_categories is True
        assert config.transliterate is True
        assert config.zero_rating_is_missing is True
        assert config.enable_epg is False

    def test_unknown_keys_allowed(self):
        config = AddonConfig.model_validate({**PAYLOAD, "theme": "dark"})
        assert config.xtream_username == "user"


class TestResolve:
    def test_base64_token(self, service):
        config = service.resolve(service.encode(PAYLOAD))
        assert config.base_url == "http://panel.test"
        assert config.xtream_password == "pass"

    def test_url_encoded_token(self, service):
        config = service.resolve(quote(json.dumps(PAYLOAD)))
        assert config.xtream_username == "user"

    def test_encrypted_token(self, service):
        token = service.encrypt(PAYLOAD)
        assert token.startswith("enc:")
        config = service.resolve(token)
        assert config.xtream_password == "pass"
        assert config.use_m3u is True

    def test_encryption_is_randomized(self, service):
        assert service.encrypt(PAYLOAD) != service.encrypt(PAYLOAD)

    def test_tampered_token(self, service):
        token = service.encrypt(PAYLOAD)
        # Flip a nonce character
        tampered = token[:10] + ("A" if token[10] != "A" else "B") + token[11:]
        with pytest.raises(ConfigError):
            service.resolve(tampered)

    def test_wrong_secret(self, service):
        token = service.encrypt(PAYLOAD)
        other = ConfigService(Settings(config_secret="different"))
        with pytest.raises(ConfigError):
            other.resolve(token)

    def test_encrypt_without_secret(self):
        service = ConfigService(Settings())
        assert service.encryption_enabled is False
        with pytest.raises(ConfigError):
            service.encrypt(PAYLOAD)

    def test_encrypted_token_without_secret(self, service):
        token = service.encrypt(PAYLOAD)
        with pytest.raises(ConfigError):
            ConfigService(Settings()).resolve(token)

    @pytest.mark.parametrize("token", ["", "abc", "not-a-token-at-all", "enc:!!!!", "enc:AAAA"])
    def test_malformed(self, service, token):
        with pytest.raises(ConfigError):
            service.resolve(token)

    def test_non_object_payload(self, service):
        with pytest.raises(ConfigError):
            service.resolve(quote(json.dumps([1, 2, 3])))

    def test_incomplete_credentials(self, service):
        token = service.encode({"xtreamUrl": "http://panel.test", "xtreamUsername": "user"})
        with pytest.raises(ConfigError):
            service.resolve(token)

    def test_invalid_field_type(self, service):
        token = service.encode({**PAYLOAD, "cacheTtl": "soon"})
        with pytest.raises(ConfigError):
            service.resolve(token)


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.cache_ttl == 1800
        assert settings.max_cache_entries == 100
        assert settings.cache_enabled is True
        assert settings.config_secret == ""
        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert settings.port == 7000

    def test_from_env(self):
        settings = Settings.from_env({
            "CACHE_TTL": "60",
            "MAX_CACHE_ENTRIES": "5",
            "CACHE_ENABLED": "false",
            "CONFIG_SECRET": "x",
            "DEBUG_MODE": "true",
            "PORT": "8080",
        })
        assert settings.cache_ttl == 60
        assert settings.max_cache_entries == 5
        assert settings.cache_enabled is False
        assert settings.config_secret == "x"
        assert settings.debug is True
        assert settings.log_level == "DEBUG"
        assert settings.port == 8080

    def test_cache_ttl_override(self, service):
        assert service.get_cache_ttl() == 1800
        assert service.get_cache_ttl(AddonConfig.model_validate(PAYLOAD)) == 600
        assert service.get_cache_ttl(AddonConfig()) == 1800
