import grp
import json
import os

import pytest

from photonmgmt.group import Group, read_group_info_list, register_router_group
from photonmgmt.web import Request, Router

UNLIKELY = "zz-no-such-group-for-tests"


@pytest.fixture
def group_file(tmp_path):
    path = tmp_path / "group"
    path.write_text("# header\nroot:x:0:\nwheel:x:10:alice,bob\n\nstaff:x:50:\n")
    return str(path)


def test_read_group_info_list(group_file):
    groups = read_group_info_list(group_file)
    assert [(g.name, g.gid) for g in groups] == [("root", "0"), ("wheel", "10"), ("staff", "50")]


def test_read_group_info_list_missing(tmp_path):
    with pytest.raises(OSError):
        read_group_info_list(str(tmp_path / "absent"))


def test_view_all(group_file):
    names = [g.name for g in Group(info_path=group_file).view()]
    assert names == ["root", "wheel", "staff"]


def test_view_named(group_file):
    found = Group(name="wheel", info_path=group_file).view()
    assert [(g.name, g.gid) for g in found] == [("wheel", "10")]


def test_view_unknown(group_file):
    with pytest.raises(LookupError):
        Group(name=UNLIKELY, info_path=group_file).view()


def test_to_json_and_from_json_round_trip():
    group = Group(gid="42", name="devs", new_name="developers")
    decoded = Group.from_json(json.dumps(group.to_json()))
    assert decoded == group


def test_from_json_rejects_non_string():
    with pytest.raises(ValueError):
        Group.from_json(b'{"Gid": 5}')


def test_add_existing_group_rejected():
    name = grp.getgrgid(os.getgid()).gr_name
    with pytest.raises(ValueError, match="already exists"):
        Group(name=name).add()


def test_add_existing_gid_rejected():
    with pytest.raises(ValueError, match="already exists"):
        Group(name=UNLIKELY, gid=str(os.getgid())).add()


def test_add_non_numeric_gid_rejected():
    with pytest.raises(ValueError):
        Group(name=UNLIKELY, gid="abc").add()


def test_remove_unknown_group():
    with pytest.raises(LookupError):
        Group(name=UNLIKELY).remove()


def test_modify_unknown_group():
    with pytest.raises(LookupError):
        Group(name=UNLIKELY, new_name="other").modify()


def test_router_bad_body():
    router = Router("/api/v1/system")
    register_router_group(router)
    reply = router.dispatch(Request("POST", "/api/v1/system/group/add", body=b"{"))
    assert reply.status == 400


def test_router_remove_unknown_reports_error():
    router = Router()
    register_router_group(router)
    body = json.dumps({"Name": UNLIKELY}).encode()
    reply = router.dispatch(Request("DELETE", "/group/remove", body=body))
    payload = json.loads(reply.body)
    assert payload["success"] is False
    assert UNLIKELY in payload["errors"]


def test_router_wrong_method():
    router = Router()
    register_router_group(router)
    reply = router.dispatch(Request("GET", "/group/add"))
    assert reply.status == 405