"""Linux host management: sysctl, groups, nftables, INI-style files, jobs and a JSON request router."""

__version__ = "0.1.0"

__all__ = [
    "auth",
    "conf",
    "configfile",
    "firewall",
    "group",
    "jobs",
    "parser",
    "share",
    "sysctl",
    "system",
    "validator",
    "web",
]