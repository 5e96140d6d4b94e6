import io
import os
import subprocess
import sys
from datetime import datetime, timedelta, timezone

import pytest

from photonmgmt import system


def test_read_full_file_skips_blank_and_comments(tmp_path):
    path = tmp_path / "f"
    path.write_text("  alpha  \n\n# note\n   # indented\nbeta\n")
    assert system.read_full_file(str(path)) == ["alpha", "beta"]


def test_write_then_read_full_file(tmp_path):
    path = str(tmp_path / "f")
    system.write_full_file(path, ["one", "two"])
    assert system.read_full_file(path) == ["one", "two"]
    with open(path) as handle:
        assert handle.read() == "one\ntwo\n"


def test_one_line_file_round_trip(tmp_path):
    path = str(tmp_path / "f")
    system.write_one_line_file(path, "value")
    assert system.read_one_line_file(path) == "value"


def test_read_one_line_file_empty(tmp_path):
    path = tmp_path / "f"
    path.write_text("")
    assert system.read_one_line_file(str(path)) == ""


def test_read_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        system.read_full_file(str(tmp_path / "absent"))


def test_path_exists(tmp_path):
    assert system.path_exists(str(tmp_path)) is True
    assert system.path_exists(str(tmp_path / "absent")) is False


def test_create_directory(tmp_path):
    target = str(tmp_path / "d")
    assert system.path_exists(target) is False
    system.create_directory(target, 0o755)
    assert system.path_exists(target) is True
    (tmp_path / "d" / "keep").write_text("kept")
    system.create_directory(target, 0o755)
    assert system.read_one_line_file(os.path.join(target, "keep")) == "kept"
    assert os.path.isdir(target)


def test_create_directory_nested(tmp_path):
    target = str(tmp_path / "a" / "b" / "c")
    assert system.path_exists(target) is False
    system.create_directory_nested(target, 0o755)
    assert system.path_exists(target) is True
    assert os.path.isdir(target)


def test_create_directory_without_parent_fails(tmp_path):
    with pytest.raises(FileNotFoundError):
        system.create_directory(str(tmp_path / "a" / "b"), 0o755)


def test_tls_file_path_exists(tmp_path):
    assert system.tls_file_path_exists(str(tmp_path)) is False
    (tmp_path / "cert").mkdir()
    (tmp_path / "cert" / "server.crt").write_text("")
    assert system.tls_file_path_exists(str(tmp_path)) is False
    (tmp_path / "cert" / "server.key").write_text("")
    assert system.tls_file_path_exists(str(tmp_path)) is True


def test_create_state_dirs(tmp_path):
    target = str(tmp_path / "state" / "inner")
    system.create_state_dirs(target, os.getuid(), os.getgid())
    assert os.stat(target).st_uid == os.getuid()


def test_change_permission_unknown_user(tmp_path):
    path = tmp_path / "f"
    path.write_text("")
    with pytest.raises(LookupError):
        system.change_permission("no-such-user-zz", str(path))


def test_exec_and_capture_returns_output():
    out = system.exec_and_capture(sys.executable, "-c", "print('hello')")
    assert out.strip() == "hello"


def test_exec_and_capture_combines_stderr():
    out = system.exec_and_capture(
        sys.executable, "-c", "import sys; sys.stderr.write('oops'); sys.stderr.flush()"
    )
    assert "oops" in out


def test_exec_and_capture_failure_raises():
    with pytest.raises(subprocess.CalledProcessError) as info:
        system.exec_and_capture(sys.executable, "-c", "import sys; sys.exit(3)")
    assert info.value.returncode == 3


def test_exec_and_display_writes_stream():
    stream = io.StringIO()
    system.exec_and_display(stream, sys.executable, "-c", "print('shown')")
    assert stream.getvalue() == "shown\n\n"


def test_exec_run_starts_process():
    proc = system.exec_run(sys.executable, "-c", "pass")
    assert proc.wait() == 0


def test_exec_and_show_progress_echoes_twice(capsys):
    system.exec_and_show_progress(sys.executable, "-c", "print('marker')")
    assert capsys.readouterr().out.count("marker") == 2


def test_exec_and_show_progress_failure():
    with pytest.raises(subprocess.CalledProcessError):
        system.exec_and_show_progress(sys.executable, "-c", "import sys; sys.exit(1)")


def test_exec_interactive_echoes(capsys):
    system.exec_interactive(sys.executable, "-c", "print('inter')")
    assert "inter" in capsys.readouterr().out


def test_exec_and_renounce_unknown_command():
    assert system.exec_and_renounce("no-such-command-zz-qq") is None


def test_get_user_credentials_current():
    cred = system.get_user_credentials("")
    assert cred.uid == os.getuid()


def test_get_user_credentials_root():
    assert system.get_user_credentials("root").uid == 0


def test_get_user_credentials_unknown():
    with pytest.raises(LookupError):
        system.get_user_credentials("no-such-user-zz")


def test_get_user_credentials_by_uid():
    assert system.get_user_credentials_by_uid(0).pw_name == "root"


def test_get_group_credentials_unknown():
    with pytest.raises(LookupError):
        system.get_group_credentials("no-such-group-zz")


def test_unix_micro_epoch():
    assert system.unix_micro(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize("usec", [1, 1_500_000, 1_700_000_000_123_456, -2_500_000])
def test_unix_micro_round_trip(usec):
    delta = system.unix_micro(usec) - system.unix_micro(0)
    assert delta // timedelta(microseconds=1) == usec