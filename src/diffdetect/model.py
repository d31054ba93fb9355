#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 12:02:47 krylon>
#
# /data/code/python/diffdetect/src/diffdetect/model.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DiffDetect website monitor. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
diffdetect.model

(c) 2026 Benjamin Walkenhorst
"""


from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum, auto
from typing import Any, Final, Optional
from urllib.parse import urlparse

from diffdetect import common
from diffdetect.common import DiffDetectError

default_interval: Final[int] = 3600


class ConfigError(DiffDetectError):
    """ConfigError indicates a Resource that cannot be fetched as configured."""


class ResourceType(Enum):
    """ResourceType decides how Snapshots of a Resource are compared."""

    Generic = auto()
    RSS = auto()

    @classmethod
    def from_str(cls, name: Optional[str]) -> 'ResourceType':
        """Create a ResourceType from its string value."""
        if name is None:
            return cls.Generic
        match name.strip().lower():
            case "" | "generic" | "html":
                return cls.Generic
            case "rss":
                return cls.RSS
            case _:
                raise ValueError(f"Invalid ResourceType name '{name}'")

    @property
    def string(self) -> str:
        """Return the name used to store the ResourceType."""
        return self.name


@dataclass(kw_only=True, slots=True)
class Interval:
    """Interval is a named polling period Resources can refer to."""

    iid: int = 0
    name: str
    seconds: int = default_interval


@dataclass(kw_only=True, slots=True)
class Resource:
    """Resource is a URL we check for changes periodically."""

    rid: int = 0
    name: str = ""
    url: str
    categories: str = ""
    active: bool = True
    http_auth_login: Optional[str] = None
    http_auth_password: Optional[str] = None
    rtype: ResourceType = ResourceType.Generic
    interval_id: Optional[int] = None
    last_scan: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'Resource':
        """Build a Resource from a mapping, refusing keys we do not know about."""
        known: Final[set[str]] = {f.name for f in fields(cls)}
        unknown: Final[list[str]] = sorted(k for k in data if k not in known)
        if len(unknown) > 0:
            raise ConfigError(f"Unknown Resource field(s): {', '.join(unknown)}")

        values: dict[str, Any] = dict(data)
        if isinstance(values.get("rtype"), str):
            try:
                values["rtype"] = ResourceType.from_str(values["rtype"])
            except ValueError as err:
                raise ConfigError(str(err)) from err
        if "url" not in values:
            raise ConfigError("Resource has no URL")
        return cls(**values)

    def validate(self) -> None:
        """Raise a ConfigError if the Resource cannot be fetched."""
        if self.url is None or self.url.strip() == "":
            raise ConfigError(f"Resource {self.rid} ({self.name}) has an empty URL")
        scheme: Final[str] = urlparse(self.url.strip()).scheme.lower()
        if scheme not in ("http", "https"):
            raise ConfigError(f"Resource {self.rid} ({self.name}) has an unsupported URL: {self.url}")

    @property
    def basic_auth(self) -> Optional[tuple[str, str]]:
        """Return login and password, but only if both of them are set."""
        if self.http_auth_login and self.http_auth_password:
            return (self.http_auth_login, self.http_auth_password)
        return None

    @property
    def is_rss(self) -> bool:
        """Return True if the Resource is an RSS feed."""
        return self.rtype == ResourceType.RSS

    @property
    def scan_str(self) -> str:
        """Return last_scan as a human-readable string, or an empty string."""
        if self.last_scan is None:
            return ""
        return self.last_scan.strftime(common.TimeFmt)


@dataclass(kw_only=True, slots=True, frozen=True)
class Snapshot:
    """Snapshot is the content of a Resource at one point in time."""

    sid: int = 0
    resource_id: int
    content: str
    createdate: datetime = field(default_factory=datetime.now)
    createuser: str = ""

    @property
    def size(self) -> int:
        """Return the size of the content in bytes."""
        return len(self.content.encode("utf-8"))

    @property
    def stamp_str(self) -> str:
        """Return the creation time as a properly formatted string."""
        return self.createdate.strftime(common.TimeFmt)


@dataclass(kw_only=True, slots=True, frozen=True)
class SnapshotSummary:
    """SnapshotSummary describes a Snapshot without carrying its content."""

    sid: int
    createdate: datetime
    createuser: str
    size: int
    checked: bool = False

    @property
    def stamp_str(self) -> str:
        """Return the creation time as a properly formatted string."""
        return self.createdate.strftime(common.TimeFmt)

    @property
    def size_str(self) -> str:
        """Return the size in human-friendly units."""
        size: float = float(self.size)
        for unit in ("B", "KiB", "MiB"):
            if size < 1024:
                return f"{size:.2f} {unit}" if unit != "B" else f"{self.size} B"
            size /= 1024
        return f"{size:.2f} GiB"


# Local Variables: #
# python-indent: 4 #
# End: #
