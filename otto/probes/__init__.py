"""Probes — scheduled checks that latch incidents and notify alerts."""

from otto.probes.base import Probe, make_slug, slugify
from otto.probes.exceptions import CheckError, ProbeError
from otto.probes.exec import ExecProbe
from otto.probes.feeds import AtomProbe, FeedProbe, RssProbe
from otto.probes.http import HttpProbe

__all__ = [
    "AtomProbe",
    "CheckError",
    "ExecProbe",
    "FeedProbe",
    "HttpProbe",
    "Probe",
    "ProbeError",
    "RssProbe",
    "make_slug",
    "slugify",
]
