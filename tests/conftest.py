"""Shared fixtures: throwaway private keys generated per test session."""

import io
import os

import paramiko
import pytest

PASSPHRASE = "correct horse"


def key_text(key: paramiko.PKey, password=None) -> str:
    buffer = io.StringIO()
    key.write_private_key(buffer, password=password)
    return buffer.getvalue()


@pytest.fixture(scope="session")
def passphrase() -> str:
    return PASSPHRASE


@pytest.fixture(scope="session")
def rsa_key() -> paramiko.RSAKey:
    return paramiko.RSAKey.generate(2048)


@pytest.fixture(scope="session")
def rsa_key_text(rsa_key) -> str:
    return key_text(rsa_key)


@pytest.fixture(scope="session")
def encrypted_key_text(rsa_key) -> str:
    return key_text(rsa_key, password=PASSPHRASE)


@pytest.fixture
def key_file(tmp_path, rsa_key_text):
    path = tmp_path / "id_rsa"
    path.write_text(rsa_key_text)
    return path


@pytest.fixture
def encrypted_key_file(tmp_path, encrypted_key_text):
    path = tmp_path / "id_rsa_encrypted"
    path.write_text(encrypted_key_text)
    return path


@pytest.fixture(autouse=True)
def _clear_conninfo_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("SSH_CONNINFO_"):
            monkeypatch.delenv(name, raising=False)
