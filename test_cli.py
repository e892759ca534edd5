"""CLI tests: drive cli.main() with a plain key file in tmp_path."""

import re

import pytest

from totpvault import cli


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Keep the user's real vault and gpg settings out of the tests."""
    for key in ["TOTPVAULT_BACKEND", "TOTPVAULT_DIR", "TOTPVAULT_FILE", "TOTPVAULT_GPG", "GNUPGHOME"]:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("TOTPVAULT_DIR", str(tmp_path / "vault"))


@pytest.fixture
def plain_args(tmp_path, clean_env):
    return ["--backend", "plain", "--file", str(tmp_path / "keys.txt")]


@pytest.fixture
def typed_secret(monkeypatch):
    secrets = {"value": "jbsw y3dp ehpk 3pxp"}
    monkeypatch.setattr(cli, "prompt_secret", lambda identifier: secrets["value"])
    return secrets


def test_save_list_read(plain_args, typed_secret, capsys, tmp_path):
    assert cli.main(plain_args + ["init"]) == 0
    assert cli.main(plain_args + ["save", "github"]) == 0
    assert cli.main(plain_args + ["l"]) == 0
    assert cli.main(plain_args + ["read", "github"]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out[1] == "Key for identifier github saved."
    assert out[2] == "github"
    assert out[3] == "Key for identifier github is JBSWY3DPEHPK3PXP"
    assert (tmp_path / "keys.txt").read_text() == "github JBSWY3DPEHPK3PXP\n"


def test_compute_prints_six_digits(plain_args, typed_secret, capsys):
    cli.main(plain_args + ["save", "github"])
    capsys.readouterr()

    assert cli.main(plain_args + ["compute", "github"]) == 0
    assert re.fullmatch(r"Current TOTP for github is \d{6}\n", capsys.readouterr().out)

    # Bare identifier defaults to compute
    assert cli.main(plain_args + ["github"]) == 0
    assert re.fullmatch(r"Current TOTP for github is \d{6}\n", capsys.readouterr().out)


def test_compute_copy(plain_args, typed_secret, capsys, monkeypatch):
    copied = []
    monkeypatch.setattr(cli.pyperclip, "copy", copied.append)
    cli.main(plain_args + ["save", "github"])
    capsys.readouterr()

    assert cli.main(plain_args + ["c", "github", "--copy"]) == 0
    out = capsys.readouterr().out
    assert len(copied) == 1 and re.fullmatch(r"\d{6}", copied[0])
    assert f"is {copied[0]}" in out
    assert "Copied to clipboard." in out


@pytest.mark.parametrize("command", ["save", "read", "update", "delete", "compute"])
def test_missing_identifier(plain_args, typed_secret, capsys, command):
    assert cli.main(plain_args + [command]) == 1
    err = capsys.readouterr().err
    assert "Error: missing identifier" in err
    assert command in err


def test_errors_exit_with_status_1(plain_args, typed_secret, capsys):
    cli.main(plain_args + ["save", "github"])
    capsys.readouterr()

    assert cli.main(plain_args + ["save", "github"]) == 1
    assert "Error: identifier github already exists" in capsys.readouterr().err

    assert cli.main(plain_args + ["delete", "gitlab"]) == 1
    assert "Error: no entry found for identifier gitlab" in capsys.readouterr().err

    typed_secret["value"] = "   "
    assert cli.main(plain_args + ["update", "github"]) == 1
    assert "Error: key must not be empty" in capsys.readouterr().err

    typed_secret["value"] = "0000"
    assert cli.main(plain_args + ["save", "other"]) == 1
    assert "Error: invalid key encoding (must be Base32)" in capsys.readouterr().err


@pytest.mark.parametrize(
    "command,identifier,message",
    [
        ("save", "github", "Error: identifier github already exists"),
        ("update", "gitlab", "Error: no entry found for identifier gitlab"),
        ("save", "a/b", "invalid identifier"),
        ("save", None, "Error: missing identifier"),
        ("update", None, "Error: missing identifier"),
    ],
)
def test_bad_target_fails_before_prompt(plain_args, capsys, monkeypatch, command, identifier, message):
    monkeypatch.setattr(cli, "prompt_secret", lambda identifier: "JBSWY3DPEHPK3PXP")
    assert cli.main(plain_args + ["save", "github"]) == 0
    capsys.readouterr()

    prompted = []
    monkeypatch.setattr(cli, "prompt_secret", lambda identifier: prompted.append(identifier) or "MY")
    argv = [command] if identifier is None else [command, identifier]
    assert cli.main(plain_args + argv) == 1
    assert message in capsys.readouterr().err
    assert prompted == []


def test_undecodable_identifier(plain_args, typed_secret, capsys, tmp_path):
    # os.fsdecode() turns invalid argv bytes into lone surrogates
    assert cli.main(plain_args + ["save", "a\udcffb"]) == 1
    assert "invalid identifier" in capsys.readouterr().err
    assert not (tmp_path / "keys.txt").exists() or (tmp_path / "keys.txt").read_text() == ""


def test_update_and_delete(plain_args, typed_secret, capsys, tmp_path):
    cli.main(plain_args + ["s", "github"])
    typed_secret["value"] = "MY"
    assert cli.main(plain_args + ["u", "github"]) == 0
    assert (tmp_path / "keys.txt").read_text() == "github MY\n"
    assert cli.main(plain_args + ["d", "github"]) == 0
    assert (tmp_path / "keys.txt").read_text() == ""
    assert "Key for identifier github deleted." in capsys.readouterr().out


def test_sealed_init_twice(clean_env, tmp_path, capsys):
    vault_dir = tmp_path / "vault"
    assert cli.main(["init", "Test Man"]) == 0
    assert (vault_dir / ".gpg-id").read_text() == "Test Man"
    # quoted recipient arrives as one argument
    assert cli.main(["init", "Other"]) == 1
    err = capsys.readouterr().err
    assert "existing gpg id found: Test Man" in err


def test_sealed_read_absent_is_not_an_error(clean_env, capsys):
    cli.main(["init", "Test Man"])
    assert cli.main(["read", "github"]) == 0
    assert "No entry found for identifier github" in capsys.readouterr().out
