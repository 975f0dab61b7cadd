"""
Property-based tests for configuration handling.

Uses Hypothesis to verify that settings survive a JSON round-trip and that
endpoint resolution, environment overrides and .edgerc loading behave.
"""

import tempfile
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from akamai_purge.config import (
    AkamaiSettings,
    CredentialsConfig,
    EndpointConfig,
    LoggingConfig,
    PersistenceConfig,
    PurgeDefaultsConfig,
    apply_env_overrides,
    credentials_changed,
    load_credentials_from_edgerc,
    load_settings_from_file,
    save_settings_to_file,
    settings_from_dict,
    settings_to_dict,
)
from akamai_purge.exceptions import ConfigurationError


ENV_VARS = (
    "AKAMAI_CLIENT_TOKEN", "AKAMAI_CLIENT_SECRET", "AKAMAI_ACCESS_TOKEN", "AKAMAI_HOST",
    "AKAMAI_REST_API_URL", "AKAMAI_DEVEL_MODE", "AKAMAI_MOCK_ENDPOINT", "AKAMAI_TIMEOUT",
    "AKAMAI_BASEPATH", "AKAMAI_LOG_REQUESTS",
)

token_text = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789-_+/="),
    min_size=0,
    max_size=40,
)


@st.composite
def settings_strategy(draw) -> AkamaiSettings:
    """Generate arbitrary settings trees."""
    return AkamaiSettings(
        credentials=CredentialsConfig(
            client_token=draw(token_text),
            client_secret=draw(token_text),
            access_token=draw(token_text),
            host=draw(st.sampled_from(["", "akab-xxxx.purge.akamaiapis.net"])),
        ),
        endpoint=EndpointConfig(
            rest_api_url=draw(st.sampled_from(["", "https://akab-xxxx.purge.akamaiapis.net"])),
            devel_mode=draw(st.booleans()),
            mock_endpoint=draw(st.sampled_from([None, "http://localhost:8080"])),
            timeout=draw(st.floats(min_value=0.1, max_value=120.0, allow_nan=False)),
        ),
        defaults=PurgeDefaultsConfig(
            action=draw(st.sampled_from(["remove", "invalidate"])),
            domain=draw(st.sampled_from(["production", "staging"])),
            type=draw(st.sampled_from(["arl", "cpcode"])),
            queue=draw(st.sampled_from(["default", "emergency"])),
            basepath=draw(st.sampled_from(["", "http://example.com"])),
            strict=draw(st.booleans()),
        ),
        persistence=PersistenceConfig(
            state_file_path=Path("/tmp/akamai_purge/state.json"),
            hmac_secret=draw(token_text),
            status_expire=draw(st.integers(min_value=0, max_value=10_000_000)),
        ),
        logging=LoggingConfig(
            level=draw(st.sampled_from(["debug", "info", "warn", "error"])),
            audit_mode=draw(st.booleans()),
            audit_signing_key=draw(st.one_of(st.none(), token_text)),
            output_format=draw(st.sampled_from(["json", "text", "both"])),
            log_requests=draw(st.booleans()),
        ),
        known_routes=draw(st.lists(st.sampled_from(["node/*", "about", "blog/*"]), max_size=3)),
    )


@pytest.fixture
def clean_env(monkeypatch):
    # setenv first so values loaded from .env files are removed on teardown
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


class TestConfigurationRoundTripProperty:
    """
    Property 29: Settings survive a JSON round-trip.
    """

    @given(config=settings_strategy())
    @settings(max_examples=100)
    def test_dict_round_trip(self, config: AkamaiSettings) -> None:
        assert settings_from_dict(settings_to_dict(config)) == config

    @given(config=settings_strategy())
    @settings(max_examples=25)
    def test_file_round_trip(self, config: AkamaiSettings) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            save_settings_to_file(config, path)
            assert load_settings_from_file(path) == config

    def test_missing_file_is_none(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            assert load_settings_from_file(Path(tmpdir) / "missing.json") is None

    def test_invalid_json_raises(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text("{", encoding="utf-8")
            with pytest.raises(ConfigurationError):
                load_settings_from_file(path)

    def test_empty_document_uses_defaults(self) -> None:
        assert settings_from_dict({}) == AkamaiSettings()


class TestBaseUriProperty:
    """
    Property 30: The API origin is the mock endpoint in devel mode, else the REST URL, else the host.
    """

    def test_devel_mode_wins(self) -> None:
        config = AkamaiSettings()
        config.endpoint.rest_api_url = "https://api.example.net"
        config.endpoint.devel_mode = True
        config.endpoint.mock_endpoint = "http://localhost:8080/"
        assert config.base_uri == "http://localhost:8080"

    def test_rest_api_url(self) -> None:
        config = AkamaiSettings()
        config.endpoint.rest_api_url = "https://api.example.net/"
        config.credentials.host = "akab.example.net"
        assert config.base_uri == "https://api.example.net"

    def test_host_fallback(self) -> None:
        config = AkamaiSettings()
        config.credentials.host = "akab.example.net"
        assert config.base_uri == "https://akab.example.net"

    @pytest.mark.parametrize("devel_mode", [True, False])
    def test_unresolvable_origin(self, devel_mode: bool) -> None:
        config = AkamaiSettings()
        config.endpoint.devel_mode = devel_mode
        with pytest.raises(ConfigurationError):
            config.base_uri


class TestFlatKeyProperty:
    """
    Property 31: Flat keys read and write the nested settings.
    """

    @given(config=settings_strategy())
    @settings(max_examples=50)
    def test_flat_get(self, config: AkamaiSettings) -> None:
        assert config.get("client_token") == config.credentials.client_token
        assert config.get("timeout") == config.endpoint.timeout
        assert config.get("status_expire") == config.persistence.status_expire
        assert config.get("no_such_key", "fallback") == "fallback"

    def test_set_converts_strings(self) -> None:
        config = AkamaiSettings()
        config.set("devel_mode", "true")
        config.set("timeout", "7.5")
        config.set("status_expire", "60")
        config.set("basepath", "http://example.com")
        assert config.endpoint.devel_mode is True
        assert config.endpoint.timeout == 7.5
        assert config.persistence.status_expire == 60
        assert config.defaults.basepath == "http://example.com"

    def test_set_unknown_key(self) -> None:
        with pytest.raises(ConfigurationError):
            AkamaiSettings().set("language", "de")

    def test_set_bad_number(self) -> None:
        with pytest.raises(ConfigurationError):
            AkamaiSettings().set("timeout", "soon")

    @pytest.mark.parametrize("key", ["rest_api_url", "client_token", "client_secret", "access_token"])
    def test_credential_keys_detected(self, key: str) -> None:
        old = AkamaiSettings()
        new = settings_from_dict(settings_to_dict(old))
        new.set(key, "changed")
        assert credentials_changed(old, new)

    def test_other_keys_ignored(self) -> None:
        old = AkamaiSettings()
        new = settings_from_dict(settings_to_dict(old))
        new.set("basepath", "http://example.com")
        new.set("host", "akab.example.net")
        assert not credentials_changed(old, new)


class TestEnvironmentOverrideProperty:
    """
    Property 32: AKAMAI_* environment variables override file settings.
    """

    def test_env_overrides(self, clean_env) -> None:
        clean_env.setenv("AKAMAI_CLIENT_TOKEN", "env-token")
        clean_env.setenv("AKAMAI_DEVEL_MODE", "1")
        clean_env.setenv("AKAMAI_MOCK_ENDPOINT", "http://localhost:9999")
        clean_env.setenv("AKAMAI_TIMEOUT", "3")
        clean_env.setenv("AKAMAI_LOG_REQUESTS", "yes")

        with tempfile.TemporaryDirectory() as tmpdir:
            config = apply_env_overrides(AkamaiSettings(), Path(tmpdir) / "missing.env")

        assert config.credentials.client_token == "env-token"
        assert config.endpoint.devel_mode is True
        assert config.endpoint.mock_endpoint == "http://localhost:9999"
        assert config.endpoint.timeout == 3.0
        assert config.logging.log_requests is True

    def test_dotenv_file_loaded(self, clean_env) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            env_file = Path(tmpdir) / ".env"
            env_file.write_text("AKAMAI_BASEPATH=http://dotenv.example\n", encoding="utf-8")
            config = apply_env_overrides(AkamaiSettings(), env_file)
        assert config.defaults.basepath == "http://dotenv.example"

    def test_dotenv_found_in_working_directory(self, clean_env, tmp_path) -> None:
        (tmp_path / ".env").write_text("AKAMAI_BASEPATH=http://cwd.example\n", encoding="utf-8")
        clean_env.chdir(tmp_path)

        config = apply_env_overrides(AkamaiSettings())

        assert config.defaults.basepath == "http://cwd.example"

    def test_invalid_timeout_keeps_value(self, clean_env) -> None:
        clean_env.setenv("AKAMAI_TIMEOUT", "fast")
        with tempfile.TemporaryDirectory() as tmpdir:
            config = apply_env_overrides(AkamaiSettings(), Path(tmpdir) / "missing.env")
        assert config.endpoint.timeout == 20.0


class TestEdgercProperty:
    """
    Property 33: Credentials load from .edgerc sections.
    """

    EDGERC = (
        "[default]\n"
        "client_secret = secret-value\n"
        "host = akab-xxxx.purge.akamaiapis.net\n"
        "access_token = akab-access\n"
        "client_token = akab-client\n"
        "\n"
        "[ccu]\n"
        "client_secret = ccu-secret\n"
        "host = akab-ccu.purge.akamaiapis.net\n"
        "access_token = ccu-access\n"
        "client_token = ccu-client\n"
    )

    def test_section_loaded(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / ".edgerc"
            path.write_text(self.EDGERC, encoding="utf-8")
            credentials = load_credentials_from_edgerc(path, "ccu")
        assert credentials == CredentialsConfig(
            client_token="ccu-client",
            client_secret="ccu-secret",
            access_token="ccu-access",
            host="akab-ccu.purge.akamaiapis.net",
        )

    def test_missing_section(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / ".edgerc"
            path.write_text(self.EDGERC, encoding="utf-8")
            with pytest.raises(ConfigurationError) as exc_info:
                load_credentials_from_edgerc(path, "papi")
        assert exc_info.value.code == "missing_edgerc_section"

    def test_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ConfigurationError) as exc_info:
                load_credentials_from_edgerc(Path(tmpdir) / ".edgerc")
        assert exc_info.value.code == "missing_edgerc"
