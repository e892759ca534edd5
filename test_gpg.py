"""GpgSealer tests.

Stub scripts stand in for gpg to check argument handling and exit codes.
The real-gpg round trip runs only with TOTPVAULT_GPG_TESTS=1.
"""

import logging
import os
import shutil
import stat
import subprocess
import sys

import pytest

from totpvault.config import VaultConfig
from totpvault.errors import ExternalServiceError
from totpvault.sealed import SealedStore
from totpvault.sealer import GpgSealer
from totpvault.vault import Vault


posix_only = pytest.mark.skipif(sys.platform == "win32", reason="stub gpg is a shell script")


def make_stub(tmp_path, body):
    path = tmp_path / "fake-gpg"
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IEXEC)
    return str(path)


@posix_only
def test_seal_pipes_stdin_to_stdout(tmp_path):
    args_file = tmp_path / "args.txt"
    stub = make_stub(tmp_path, f'echo "$@" > "{args_file}"\ncat\n')
    sealer = GpgSealer(stub, home=str(tmp_path / "home"))

    assert sealer.seal("Test Man", b"SECRET") == b"SECRET"
    args = args_file.read_text()
    assert "--homedir" in args and str(tmp_path / "home") in args
    assert "--encrypt --recipient Test Man" in args

    assert sealer.open("Test Man", b"CIPHER") == b"CIPHER"
    assert "--recipient Test Man --decrypt" in args_file.read_text()


@posix_only
def test_stderr_is_logged_not_fatal(tmp_path, caplog):
    stub = make_stub(tmp_path, 'echo "gpg: encrypted with rsa key" >&2\ncat\n')
    with caplog.at_level(logging.WARNING, logger="totpvault.sealer"):
        assert GpgSealer(stub).open("Test Man", b"KEY") == b"KEY"
    assert "encrypted with rsa key" in caplog.text


@posix_only
def test_nonzero_exit_fails(tmp_path):
    stub = make_stub(tmp_path, 'cat > /dev/null\necho "gpg: no public key" >&2\nexit 2\n')
    with pytest.raises(ExternalServiceError) as excinfo:
        GpgSealer(stub).seal("Test Man", b"KEY")
    assert "exit status 2" in str(excinfo.value)


def test_missing_binary(tmp_path):
    sealer = GpgSealer(str(tmp_path / "no-such-gpg"))
    with pytest.raises(ExternalServiceError) as excinfo:
        sealer.seal("Test Man", b"KEY")
    assert "Error running encryption command" in str(excinfo.value)


@posix_only
def test_sealed_store_with_stub(tmp_path):
    stub = make_stub(tmp_path, "cat\n")
    config = VaultConfig(vault_dir=str(tmp_path / "vault"), gpg_command=stub)
    vault = Vault(config)
    vault.init("Test Man")
    vault.save("github", "JBSWY3DPEHPK3PXP")
    assert (tmp_path / "vault" / "github.gpg").read_bytes() == b"JBSWY3DPEHPK3PXP"
    assert vault.secret("github") == "JBSWY3DPEHPK3PXP"


KEY_PARAMS = """
Key-Type: RSA
Key-Length: 2048
Subkey-Type: RSA
Subkey-Length: 2048
Name-Real: {name}
Name-Email: joe@foo.bar
Expire-Date: 0
%no-protection
%commit
"""


@pytest.mark.skipif(
    os.environ.get("TOTPVAULT_GPG_TESTS") != "1" or shutil.which("gpg") is None,
    reason="set TOTPVAULT_GPG_TESTS=1 with gpg installed",
)
def test_real_gpg_round_trip(tmp_path):
    home = tmp_path / "gnupg"
    home.mkdir(mode=0o700)
    params = tmp_path / "params"
    params.write_text(KEY_PARAMS.format(name="Test Man"))
    subprocess.run(
        ["gpg", "--homedir", str(home), "--batch", "--generate-key", str(params)],
        check=True, capture_output=True,
    )

    config = VaultConfig(vault_dir=str(tmp_path / "vault"), gpg_home=str(home))
    store = SealedStore(config, GpgSealer.from_config(config))
    store.init("Test Man")
    store.write("test_identifier", "1234567890")

    raw = (tmp_path / "vault" / "test_identifier.gpg").read_bytes()
    assert b"1234567890" not in raw
    assert store.read("test_identifier") == "1234567890"
