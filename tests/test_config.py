"""Tests for environment-based settings."""

import pytest

from tokenkit.config import Settings, DEFAULT_RAW_BASE_URL


ENV_VARS = [
    "TOKENKIT_ROOT",
    "TOKENKIT_CHAINS_DIR",
    "TOKENKIT_TEMPLATE",
    "TOKENKIT_BUILD_DIR",
    "TOKENKIT_OUTPUT_NAME",
    "TOKENKIT_RAW_BASE_URL",
    "TOKENKIT_IPFS_API_URL",
    "TOKENKIT_IPFS_API_TOKEN",
    "TOKENKIT_UPLOAD_TIMEOUT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(tmp_path):
    settings = Settings.from_env(tmp_path)

    assert settings.chains_dir == tmp_path / "chains"
    assert settings.template_path == tmp_path / "base.tokenlist.json"
    assert settings.output_path == tmp_path / "build" / "tokenlist.json"
    assert settings.package_json_path == tmp_path / "package.json"
    assert settings.raw_base_url == DEFAULT_RAW_BASE_URL
    assert not settings.uploads_enabled


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("TOKENKIT_OUTPUT_NAME", "tallycash.tokenlist.json")
    monkeypatch.setenv("TOKENKIT_RAW_BASE_URL", "https://example.com/raw/")
    monkeypatch.setenv("TOKENKIT_IPFS_API_URL", "http://127.0.0.1:5001")
    monkeypatch.setenv("TOKENKIT_UPLOAD_TIMEOUT", "5")

    settings = Settings.from_env(tmp_path)

    assert settings.output_path.name == "tallycash.tokenlist.json"
    assert settings.raw_base_url == "https://example.com/raw"
    assert settings.uploads_enabled
    assert settings.upload_timeout == 5.0


def test_root_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("TOKENKIT_ROOT", str(tmp_path))

    assert Settings.from_env().root == tmp_path


def test_dotenv_file_does_not_override_environment(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("TOKENKIT_CHAINS_DIR=tokens\nTOKENKIT_BUILD_DIR=dist\n")
    # Register the variable so the value loaded from .env is removed afterwards
    monkeypatch.setenv("TOKENKIT_CHAINS_DIR", "")
    monkeypatch.delenv("TOKENKIT_CHAINS_DIR")
    monkeypatch.setenv("TOKENKIT_BUILD_DIR", "out")

    settings = Settings.from_env(tmp_path)

    assert settings.chains_dir == tmp_path / "tokens"
    assert settings.build_dir == tmp_path / "out"


@pytest.mark.parametrize("value", ["soon", "0", "-3"])
def test_invalid_timeout(tmp_path, monkeypatch, value):
    monkeypatch.setenv("TOKENKIT_UPLOAD_TIMEOUT", value)

    with pytest.raises(ValueError, match="TOKENKIT_UPLOAD_TIMEOUT"):
        Settings.from_env(tmp_path)
