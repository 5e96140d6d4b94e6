"""Files, processes, users and time helpers for the host system."""

from __future__ import annotations

import grp
import os
import pwd
import shutil
import subprocess
import sys
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import IO

from photonmgmt.conf import CONF_PATH, TLS_CERT, TLS_KEY

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class Credential:
    uid: int
    gid: int


def path_exists(path: str) -> bool:
    return os.path.lexists(path)


def read_full_file(path: str) -> list[str]:
    """Return the stripped lines of a file, without blank lines and '#' comments."""
    with open(path, encoding="utf-8") as handle:
        stripped = (line.strip() for line in handle)
        return [line for line in stripped if line and not line.startswith("#")]


def write_full_file(path: str, lines) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        handle.writelines(f"{line}\n" for line in lines)


def read_one_line_file(path: str) -> str:
    """Return the first line of a file without its line ending."""
    with open(path, encoding="utf-8") as handle:
        return handle.readline().rstrip("\r\n")


def write_one_line_file(path: str, line: str) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(f"{line}\n")


def create_directory(path: str, perm: int = 0o755) -> None:
    if not path_exists(path):
        os.mkdir(path, perm)


def create_directory_nested(path: str, perm: int = 0o755) -> None:
    if not path_exists(path):
        os.makedirs(path, perm)


def tls_file_path_exists(conf_path: str = CONF_PATH) -> bool:
    """Tell whether both the TLS certificate and key are present."""
    return path_exists(os.path.join(conf_path, TLS_CERT)) and path_exists(
        os.path.join(conf_path, TLS_KEY)
    )


def _lookup_user(name: str) -> pwd.struct_passwd:
    try:
        return pwd.getpwnam(name)
    except KeyError:
        raise LookupError(f"user: unknown user {name}") from None


def change_permission(user: str, path: str) -> None:
    """Give a file to a user and its primary group with mode 0660."""
    entry = _lookup_user(user)
    os.chown(path, entry.pw_uid, entry.pw_gid)
    os.chmod(path, 0o660)


def create_state_dirs(path: str, uid: int, gid: int) -> None:
    os.makedirs(path, 0o7777, exist_ok=True)
    os.chown(path, uid, gid)


def exec_and_capture(cmd: str, *args: str) -> str:
    """Run a command and return its combined output.

    Raises subprocess.CalledProcessError when the command fails.
    """
    argv = [cmd, *args]
    completed = subprocess.run(
        argv,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        errors="replace",
        check=False,
    )
    if completed.returncode != 0:
        raise subprocess.CalledProcessError(completed.returncode, argv, output=completed.stdout)
    return completed.stdout


def exec_and_display(stream: IO[str], cmd: str, *args: str) -> None:
    """Run a command and write its combined output to stream."""
    stream.write(f"{exec_and_capture(cmd, *args)}\n")


def exec_run(cmd: str, *args: str) -> subprocess.Popen:
    """Start a command without waiting for it."""
    return subprocess.Popen([cmd, *args])


def _pump(pipe: IO[str], sink: IO[str], collected: list[str]) -> None:
    for line in pipe:
        sink.write(line)
        sink.flush()
        collected.append(line)
    pipe.close()


def _run_teed(argv: list[str]) -> tuple[str, str]:
    out_sink, err_sink = sys.stdout, sys.stderr
    out: list[str] = []
    err: list[str] = []
    with subprocess.Popen(
        argv, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True, errors="replace"
    ) as proc:
        pumps = [
            threading.Thread(target=_pump, args=(proc.stdout, out_sink, out)),
            threading.Thread(target=_pump, args=(proc.stderr, err_sink, err)),
        ]
        for pump in pumps:
            pump.start()
        for pump in pumps:
            pump.join()
        returncode = proc.wait()
    stdout, stderr = "".join(out), "".join(err)
    if returncode != 0:
        raise subprocess.CalledProcessError(returncode, argv, output=stdout, stderr=stderr)
    return stdout, stderr


def exec_and_show_progress(cmd: str, *args: str) -> None:
    """Run a command, echoing its output as it comes and once more at the end."""
    stdout, stderr = _run_teed([cmd, *args])
    print(f"\n{stdout}\n{stderr}")


def exec_interactive(cmd: str, *args: str) -> None:
    """Run a command attached to this process's input, echoing its output."""
    stdout, stderr = _run_teed([cmd, *args])
    print(f"\n{stdout}\n{stderr}")


def exec_and_renounce(*args: str) -> None:
    """Replace this process with the given command; do nothing if it is not found."""
    binary = shutil.which(args[0]) if args else None
    if binary is None:
        return None
    os.execve(binary, list(args), dict(os.environ))


def get_user_credentials(user: str) -> Credential:
    """Return uid and gid of the named user, or of the current user when empty."""
    entry = _lookup_user(user) if user else pwd.getpwuid(os.getuid())
    return Credential(uid=entry.pw_uid, gid=entry.pw_gid)


def get_user_credentials_by_uid(uid: int) -> pwd.struct_passwd:
    try:
        return pwd.getpwuid(uid)
    except KeyError:
        raise LookupError(f"user: unknown userid {uid}") from None


def switch_user(credential: Credential) -> None:
    os.setgid(credential.gid)
    os.setuid(credential.uid)


def get_group_credentials(group: str) -> grp.struct_group:
    try:
        return grp.getgrnam(group)
    except KeyError:
        raise LookupError(f"group: unknown group {group}") from None


def unix_micro(usec: int) -> datetime:
    """Return the UTC time that lies usec microseconds after the Unix epoch."""
    return _EPOCH + timedelta(microseconds=usec)