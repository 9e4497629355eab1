import pytest
from psycopg2.extensions import parse_dsn

from pg2csv.core.config import (ConnectionParams, ExportSettings,
                                load_connection_params, load_export_settings)
from pg2csv.core.errors import ConfigError


def test_load_from_env_file(env_file):
    params = load_connection_params(str(env_file), environ={})

    assert params == ConnectionParams(
        host="db.example.com", port="5432", dbname="app",
        user="reporter", password="s3cret", sslmode="require",
    )


def test_process_environment_wins(env_file):
    params = load_connection_params(str(env_file), environ={"PG_HOSTNAME": "override"})

    assert params.host == "override"
    assert params.dbname == "app"


def test_missing_keys_become_empty_strings(tmp_path):
    path = tmp_path / ".env"
    path.write_text("PG_HOSTNAME=localhost\nPG_PASSWORD\n", encoding="utf-8")

    params = load_connection_params(str(path), environ={})

    assert params.host == "localhost"
    assert params.password == ""
    assert params.port == ""
    assert params.sslmode == ""


def test_missing_env_file_is_fatal(tmp_path):
    with pytest.raises(ConfigError):
        load_connection_params(str(tmp_path / ".env"), environ={})


def test_malformed_env_file_is_fatal(tmp_path):
    path = tmp_path / ".env"
    path.write_text(
        "PG_HOSTNAME=h\nthis is not a setting\nPG_PORT='unterminated\n",
        encoding="utf-8",
    )

    with pytest.raises(ConfigError, match="line 2, 3"):
        load_connection_params(str(path), environ={})


def test_comments_and_export_prefix_are_accepted(tmp_path):
    path = tmp_path / ".env"
    path.write_text(
        "# connection\n\nexport PG_HOSTNAME=h  # inline comment\nPG_PASSWORD=\"a b\"\n",
        encoding="utf-8",
    )

    params = load_connection_params(str(path), environ={})

    assert params.host == "h"
    assert params.password == "a b"


def test_dsn_contains_every_parameter():
    params = ConnectionParams(host="h", port="5433", dbname="d",
                              user="u", password="p w", sslmode="disable")

    assert parse_dsn(params.to_dsn()) == {
        "user": "u", "dbname": "d", "host": "h",
        "password": "p w", "port": "5433", "sslmode": "disable",
    }


def test_dsn_passes_empty_values_through():
    dsn = ConnectionParams(host="h").to_dsn()

    parsed = parse_dsn(dsn)
    assert parsed["host"] == "h"
    assert parsed["user"] == ""
    assert parsed["sslmode"] == ""


def test_redacted_dsn_hides_password():
    params = ConnectionParams(host="h", password="s3cret")

    assert "s3cret" not in params.redacted_dsn()
    assert "s3cret" not in repr(params)
    assert parse_dsn(params.redacted_dsn())["password"] == "***"


def test_export_settings_default_when_absent(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    assert load_export_settings() == ExportSettings()


def test_export_settings_explicit_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_export_settings(str(tmp_path / "nope.toml"))


def test_export_settings_from_toml(tmp_path):
    path = tmp_path / "export.toml"
    path.write_text(
        '[csv]\ndelimiter = ";"\nnull_value = "NULL"\n\n[rows]\nmismatch = "pad"\n',
        encoding="utf-8",
    )

    settings = load_export_settings(str(path))

    assert settings.delimiter == ";"
    assert settings.null_value == "NULL"
    assert settings.mismatch == "pad"
    assert settings.lineterminator == "\n"


def test_export_settings_default_file_in_cwd(tmp_path, monkeypatch):
    (tmp_path / "csv_export_config.toml").write_text('[csv]\ndelimiter = "|"\n', encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    assert load_export_settings().delimiter == "|"


@pytest.mark.parametrize("content", [
    '[csv]\ndelimiter = ",,"\n',
    '[rows]\nmismatch = "ignore"\n',
    '[csv]\nencoding = "no-such-codec"\n',
    '[csv]\ndelimiter = 1\n',
    '[csv\n',
])
def test_export_settings_invalid(tmp_path, content):
    path = tmp_path / "export.toml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_export_settings(str(path))
