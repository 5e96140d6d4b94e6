# photonmgmt

A Python library for managing a Linux host: reading and changing sysctl
settings, managing local groups, creating and removing nftables tables and
chains, editing INI-style configuration files, and exposing all of it as
JSON request handlers with background jobs and token or peer-credential
authentication.

## Modules

| Module                  | Purpose                                                                 |
|-------------------------|-------------------------------------------------------------------------|
| `photonmgmt.parser`     | Parsing booleans, IP addresses, ports and `host:port` pairs             |
| `photonmgmt.validator`  | Predicates for network, link, routing, SR-IOV, nftables and package values |
| `photonmgmt.share`      | String-list helpers and human-readable durations                        |
| `photonmgmt.conf`       | Daemon configuration: `Config`, `SystemConfig`, `NetworkConfig`, `parse` |
| `photonmgmt.system`     | File helpers, running commands, user and group lookups, `Credential`    |
| `photonmgmt.configfile` | INI-style files with repeated sections and keys: `load`, `Meta`, `Section` |
| `photonmgmt.web`        | `Router`, `Request`, `Reply`, the JSON envelope and the HTTP client      |
| `photonmgmt.jobs`       | Background jobs polled by status and result: `Jobs`, `Job`, `Result`    |
| `photonmgmt.auth`       | JWT session tokens and local peer-credential middleware                  |
| `photonmgmt.sysctl`     | The `Sysctl` request: acquire, match by pattern, update, load            |
| `photonmgmt.group`      | The `Group` request: add, remove, rename and list groups                 |
| `photonmgmt.firewall`   | The `Nft` request: nftables tables and chains through the `nft` tool     |

## Parsing and validating values

```python
from photonmgmt import parser, validator, share

parser.parse_bool("on")                  # True
parser.parse_bool("n")                   # False
parser.parse_port("5208")                # 5208
parser.parse_ip_port("127.0.0.1:5208")   # ("127.0.0.1", "5208")

validator.is_bond_mode("802.3ad")        # True
validator.is_vxlan_vni("16777216")       # False
validator.is_valid_pkg_name_list("vim,git*")  # True

share.seconds_to_duration(45)            # "45 seconds"
share.seconds_to_duration(90120)         # "1 day, 1 hour, 2 minutes"
share.unique_slices(["a", "b"], ["b", "c"])   # ["a", "b", "c"]
```

Parsers raise `ValueError` when a value cannot be understood; validators
return `True` or `False`.

## Configuration

`photonmgmt.conf.parse(path)` reads a TOML file (by default
`/etc/photon-mgmt/mgmt.toml`) with a `System` table (`LogLevel`,
`UseAuthentication`) and a `Network` table (`Listen`, `ListenUnixSocket`,
`ListenVSock`); key names are matched without regard to case. A missing or
unreadable file leaves the defaults in place. The log level is applied to the
`photonmgmt` logger, and a `Listen` value that is not `ip:port` raises
`ValueError`.

## Editing configuration files

`photonmgmt.configfile.load` reads an INI-style file that may hold the same
section name, and the same key, more than once:

```python
from photonmgmt import configfile

meta = configfile.load("10-eth0.network")
meta.set_key_section_string("Match", "Name", "eth0")
meta.new_section("Address")
meta.set_key_to_new_section_string("Address", "192.168.1.2/24")
meta.save()

configfile.parse_key_from_section_string("10-eth0.network", "Match", "Name")  # "eth0"
```

`remove_files_glob` deletes every file matching a pattern whose section
holds a given key and value; `remove_files_section_glob` removes that key
from each matching file instead.

## Sysctl, groups and the firewall

`photonmgmt.sysctl.Sysctl.acquire` looks a key up in `/etc/sysctl.conf`, then
the files under `/etc/sysctl.d`, then `/proc/sys`. `get_pattern` returns every
known key that the regular expression matches (an empty pattern matches all).
`update` sets a key in a configuration file, or removes it when the value is
`"Delete"`, and runs `sysctl -p` on the file when `apply` is set. `load`
merges the listed files into `/etc/sysctl.conf`. The paths used are fields of
the request (`sysctl_path`, `sysctl_dir_path`, `proc_sys_path`).

`photonmgmt.group.Group` runs `groupadd`, `groupdel` and `groupmod`, and
`view` lists groups from `/etc/group` (or from `info_path`).

`photonmgmt.firewall.Nft` validates table and chain requests (the family
defaults to `ipv4`), adds and removes them with the `nft` tool, lists them
from `nft -j`, saves the running ruleset with `save_nft` and runs a command
with `run_nft`. The program runner is the `runner` field, which defaults to
`photonmgmt.system.exec_and_capture`.

## Handling requests

Every plugin registers its handlers on a `photonmgmt.web.Router`; a handler
takes a `Request` and returns a `Reply`:

```python
from photonmgmt import web, jobs, sysctl, group, firewall

router = web.Router()
api = router.subrouter("/api/v1")

system = api.subrouter("/system")
sysctl.register_router_sysctl(system)
group.register_router_group(system)
firewall.register_router_nft(api.subrouter("/network"))
jobs.register_router_jobs(api, jobs.Jobs())

reply = router.dispatch(web.Request("GET", "/api/v1/system/group/view/root"))
reply.status   # 200
reply.body     # b'{"success": true, "message": [{"Gid": "0", "Name": "root", ...}], "errors": ""}'
```

Unknown paths give 404 and known paths with the wrong method give 405.
Replies use the same JSON envelope, built by `web.json_response` and
`web.json_error`. Bodies that cannot be decoded give 400 with
`Error decoding request`.

Long-running work is started with `Jobs.create_job`; `jobs.accepted_response`
answers `202` with a `Location` header of `/api/v1/_jobs/status/<id>`, which
reports `inprogress` or `complete` and, once complete, a link to
`/api/v1/_jobs/result/<id>`.

## Client calls

`web.dispatch_socket_with_status`, `web.dispatch_socket` and
`web.dispatch_and_wait` send JSON requests. An empty host means the unix
socket `/run/photon-mgmt/mgmt.sock`, a `cid:port` host means vsock, and
anything else is used as the URL prefix. `dispatch_and_wait` polls a `202`
job until its result is ready. `web.build_auth_token_from_env` builds the
`X-Session-Token` header from `PHOTON_MGMT_AUTH_TOKEN`.

## Authentication

`auth.auth_middleware` requires an `X-Session-Token` signed with HMAC using
the `JWT_SECRET` environment variable; tokens outside their `nbf`/`exp`
window are refused. `auth.verify_token` does the same check directly.

`auth.unix_domain_peer_credential` reads a `PeerCredentials` from
`request.context["credentials"]`: root is allowed, other users must belong to
the primary group of the `pmd-nextgen` user.

```python
router.use(auth.auth_middleware)
```

## What the package does not do

It has no server and no command-line tools. `Router.dispatch` handles
`Request` objects, but nothing in the package listens on TCP, a unix socket
or vsock, or fills in peer credentials; that is left to whatever server you
put in front of it. It does not manage hostnames, time and date, login
sessions, network links, addresses or routes.

## Requirements

Python 3.11 or later on Linux. Changing sysctl settings, groups and nftables
needs the matching tools (`sysctl`, `groupadd`, `groupdel`, `groupmod`,
`nft`) and enough privileges.