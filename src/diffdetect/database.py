#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 12:48:03 krylon>
#
# /data/code/python/diffdetect/src/diffdetect/database.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DiffDetect website monitor. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
diffdetect.database

(c) 2026 Benjamin Walkenhorst

Snapshots are only ever inserted. There is no statement that changes or
deletes the content of a Snapshot, and the snapshot table does not reference
the resource table, so a Snapshot may outlive its Resource.
"""


import logging
import math
import sqlite3
from datetime import datetime
from enum import Enum, auto
from pathlib import Path
from threading import Lock
from typing import Final, Optional, Union

from diffdetect import common
from diffdetect.model import (Interval, Resource, ResourceType, Snapshot,
                              SnapshotSummary, default_interval)


class DatabaseError(common.DiffDetectError):
    """Exception class for database-specific errors."""


class NotFoundError(common.DiffDetectError):
    """NotFoundError indicates a Resource or Snapshot that does not exist."""


qinit: Final[list[str]] = [
    """
CREATE TABLE interval (
    id INTEGER PRIMARY KEY,
    name TEXT UNIQUE NOT NULL,
    seconds INTEGER NOT NULL,
    CHECK (seconds > 0)
) STRICT
    """,
    """
CREATE TABLE resource (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    url TEXT NOT NULL DEFAULT '',
    categories TEXT NOT NULL DEFAULT '',
    active INTEGER NOT NULL DEFAULT 1,
    http_auth_login TEXT,
    http_auth_password TEXT,
    type TEXT NOT NULL DEFAULT 'Generic',
    interval_id INTEGER,
    last_scan INTEGER,
    FOREIGN KEY (interval_id) REFERENCES interval (id)
        ON UPDATE RESTRICT
        ON DELETE SET NULL,
    CHECK (last_scan >= 0),
    CHECK (type IN ('Generic', 'RSS'))
) STRICT
    """,
    "CREATE INDEX resource_scan_idx ON resource (last_scan)",
    """
CREATE TABLE snapshot (
    id INTEGER PRIMARY KEY,
    resource_id INTEGER NOT NULL,
    content TEXT NOT NULL DEFAULT '',
    createdate INTEGER NOT NULL,
    createuser TEXT NOT NULL DEFAULT '',
    checked INTEGER NOT NULL DEFAULT 0,
    CHECK (createdate >= 0)
) STRICT
    """,
    "CREATE INDEX snapshot_res_idx ON snapshot (resource_id, createdate)",
]


class Query(Enum):
    """Query identifies the various operations we perform on the database."""

    IntervalAdd = auto()
    IntervalGetAll = auto()

    ResourceAdd = auto()
    ResourceGetAll = auto()
    ResourceGetByID = auto()
    ResourceGetPending = auto()
    ResourceGetLastScan = auto()
    ResourceSetLastScan = auto()
    ResourceSetActive = auto()

    SnapshotAdd = auto()
    SnapshotGetByID = auto()
    SnapshotGetByResource = auto()
    SnapshotSetChecked = auto()

    TimestampNow = auto()


qdb: Final[dict[Query, str]] = {
    Query.IntervalAdd: """
INSERT INTO interval (name, seconds)
              VALUES (   ?,       ?)
RETURNING id
    """,
    Query.IntervalGetAll: "SELECT id, name, seconds FROM interval ORDER BY seconds",
    Query.ResourceAdd: """
INSERT INTO resource (name, url, categories, active, http_auth_login, http_auth_password, type, interval_id)
              VALUES (   ?,   ?,          ?,      ?,               ?,                  ?,    ?,           ?)
RETURNING id
    """,
    Query.ResourceGetAll: """
SELECT
    id,
    name,
    url,
    categories,
    active,
    http_auth_login,
    http_auth_password,
    type,
    interval_id,
    last_scan
FROM resource
ORDER BY name, id
    """,
    Query.ResourceGetByID: """
SELECT
    id,
    name,
    url,
    categories,
    active,
    http_auth_login,
    http_auth_password,
    type,
    interval_id,
    last_scan
FROM resource
WHERE id = ?
    """,
    Query.ResourceGetPending: f"""
SELECT
    r.id,
    r.name,
    r.url,
    r.categories,
    r.active,
    r.http_auth_login,
    r.http_auth_password,
    r.type,
    r.interval_id,
    r.last_scan
FROM resource r
LEFT OUTER JOIN interval i ON r.interval_id = i.id
WHERE r.active <> 0
  AND COALESCE(r.last_scan, 0) + COALESCE(i.seconds, {default_interval}) < ?
ORDER BY COALESCE(r.last_scan, 0)
    """,
    Query.ResourceGetLastScan: "SELECT last_scan FROM resource WHERE id = ?",
    Query.ResourceSetLastScan: "UPDATE resource SET last_scan = ? WHERE id = ?",
    Query.ResourceSetActive: "UPDATE resource SET active = ? WHERE id = ?",
    Query.SnapshotAdd: """
INSERT INTO snapshot (resource_id, content, createdate, createuser)
              VALUES (          ?,       ?,          ?,          ?)
RETURNING id
    """,
    Query.SnapshotGetByID: """
SELECT
    resource_id,
    content,
    createdate,
    createuser
FROM snapshot
WHERE id = ?
    """,
    Query.SnapshotGetByResource: """
SELECT
    id,
    createdate,
    createuser,
    LENGTH(CAST(content AS BLOB)) AS size,
    checked
FROM snapshot
WHERE resource_id = ?
ORDER BY createdate DESC, id DESC
    """,
    Query.SnapshotSetChecked: "UPDATE snapshot SET checked = ? WHERE id = ?",
    Query.TimestampNow: "SELECT unixepoch()",
}

open_lock: Final[Lock] = Lock()


def _stamp(value: Optional[int]) -> Optional[datetime]:
    return datetime.fromtimestamp(value) if value is not None else None


class Database:
    """Database wraps the database connection and the operations we perform on it."""

    __slots__ = [
        "db",
        "log",
        "path",
    ]

    log: logging.Logger
    db: sqlite3.Connection
    path: Path

    def __init__(self, path: Optional[Union[Path, str]] = None) -> None:
        if path is None:
            self.path = common.path.db
        else:
            match path:
                case x if isinstance(x, Path):
                    self.path = x
                case x if isinstance(x, str):
                    self.path = Path(x)
                case _:
                    raise TypeError("Invalid type for path (must be str or pathlib.Path)")
        self.log = common.get_logger("database")
        self.log.debug("Open database at %s", self.path)
        with open_lock:
            exist: Final[bool] = self.path.exists()
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.db = sqlite3.connect(str(self.path), check_same_thread=False)
            self.db.isolation_level = None
            cur: Final[sqlite3.Cursor] = self.db.cursor()
            cur.execute("PRAGMA foreign_keys = true")
            cur.execute("PRAGMA journal_mode = WAL")
            cur.execute("PRAGMA busy_timeout = 5000")
            if not exist:
                self.__create_db()

    def __create_db(self) -> None:
        """Initialize a freshly created database"""
        self.log.debug("Initialize fresh database at %s", self.path)
        with self.db:
            for query in qinit:
                try:
                    cur: sqlite3.Cursor = self.db.cursor()
                    cur.execute(query)
                except sqlite3.OperationalError as operr:
                    self.log.debug("%s executing init query: %s\n%s\n",
                                   operr.__class__.__name__,
                                   operr,
                                   query)
                    raise
        self.log.debug("Database initialized successfully.")

    def close(self) -> None:
        """Close the database connection."""
        self.db.close()
        del self.db

    def __enter__(self) -> None:
        self.db.__enter__()

    def __exit__(self, ex_type, ex_val, tb):
        return self.db.__exit__(ex_type, ex_val, tb)

    def _fail(self, err: sqlite3.Error, what: str) -> DatabaseError:
        cname: Final[str] = err.__class__.__name__
        msg: Final[str] = f"{cname} trying to {what}: {err}"
        self.log.error(msg)
        return DatabaseError(msg)

    def timestamp_now(self) -> datetime:
        """Ask the database what time it is."""
        try:
            cur = self.db.cursor()
            cur.execute(qdb[Query.TimestampNow])
            row = cur.fetchone()
            return datetime.fromtimestamp(row[0])
        except sqlite3.Error as err:
            raise self._fail(err, "query the current time") from err

    # Intervals

    def interval_add(self, interval: Interval) -> None:
        """Add a polling Interval to the database."""
        if interval.seconds <= 0:
            raise ValueError(f"Invalid interval: {interval.seconds} (must be > 0)")
        try:
            cur = self.db.cursor()
            cur.execute(qdb[Query.IntervalAdd], (interval.name, interval.seconds))
            row = cur.fetchone()
            interval.iid = row[0]
        except sqlite3.Error as err:
            raise self._fail(err, f"add Interval {interval.name}") from err

    def interval_get_all(self) -> list[Interval]:
        """Load all Intervals from the database."""
        try:
            cur = self.db.cursor()
            cur.execute(qdb[Query.IntervalGetAll])
            return [Interval(iid=row[0], name=row[1], seconds=row[2]) for row in cur]
        except sqlite3.Error as err:
            raise self._fail(err, "load all Intervals") from err

    # Resources

    @staticmethod
    def _resource_from_row(row: tuple) -> Resource:
        return Resource(
            rid=row[0],
            name=row[1],
            url=row[2],
            categories=row[3],
            active=bool(row[4]),
            http_auth_login=row[5],
            http_auth_password=row[6],
            rtype=ResourceType.from_str(row[7]),
            interval_id=row[8],
            last_scan=_stamp(row[9]),
        )

    def resource_add(self, res: Resource) -> None:
        """Add a Resource to the database."""
        try:
            cur = self.db.cursor()
            cur.execute(qdb[Query.ResourceAdd], (res.name,
                                                 res.url,
                                                 res.categories,
                                                 res.active,
                                                 res.http_auth_login,
                                                 res.http_auth_password,
                                                 res.rtype.string,
                                                 res.interval_id))
            row = cur.fetchone()
            res.rid = row[0]
        except sqlite3.Error as err:
            raise self._fail(err, f"add Resource {res.name} ({res.url})") from err

    def resource_get_all(self) -> list[Resource]:
        """Load all Resources from the database."""
        try:
            cur = self.db.cursor()
            cur.execute(qdb[Query.ResourceGetAll])
            return [self._resource_from_row(row) for row in cur]
        except sqlite3.Error as err:
            raise self._fail(err, "load all Resources") from err

    def resource_get_by_id(self, rid: int) -> Optional[Resource]:
        """Look up a Resource by its ID."""
        try:
            cur = self.db.cursor()
            cur.execute(qdb[Query.ResourceGetByID], (rid, ))
            row = cur.fetchone()
            if row is None:
                self.log.debug("Resource %d was not found in database", rid)
                return None
            return self._resource_from_row(row)
        except sqlite3.Error as err:
            raise self._fail(err, f"load Resource {rid}") from err

    def resource_get_pending(self, now: Optional[datetime] = None) -> list[Resource]:
        """Load all active Resources that are due for a scan."""
        if now is None:
            now = datetime.now()
        try:
            cur = self.db.cursor()
            cur.execute(qdb[Query.ResourceGetPending], (math.floor(now.timestamp()), ))
            return [self._resource_from_row(row) for row in cur]
        except sqlite3.Error as err:
            raise self._fail(err, "load pending Resources") from err

    def resource_get_last_scan(self, rid: int) -> Optional[datetime]:
        """Return the time a Resource was last scanned, None if it never was."""
        try:
            cur = self.db.cursor()
            cur.execute(qdb[Query.ResourceGetLastScan], (rid, ))
            row = cur.fetchone()
            if row is None:
                raise NotFoundError(f"Resource {rid} does not exist")
            return _stamp(row[0])
        except sqlite3.Error as err:
            raise self._fail(err, f"get last scan of Resource {rid}") from err

    def resource_set_last_scan(self, res: Resource, timestamp: datetime) -> None:
        """Update a Resource's last_scan timestamp."""
        try:
            cur = self.db.cursor()
            cur.execute(qdb[Query.ResourceSetLastScan],
                        (math.floor(timestamp.timestamp()), res.rid))
            res.last_scan = timestamp
        except sqlite3.Error as err:
            raise self._fail(err, f"set Resource {res.name}'s scan timestamp") from err

    def resource_set_active(self, res: Resource, active: bool = True) -> None:
        """Set or clear a Resource's active flag."""
        assert res.rid > 0
        try:
            cur = self.db.cursor()
            cur.execute(qdb[Query.ResourceSetActive], (active, res.rid))
            res.active = active
        except sqlite3.Error as err:
            raise self._fail(err, f"set Resource {res.name}'s active flag") from err

    # Snapshots

    def snapshot_add(self, snap: Snapshot) -> Snapshot:
        """Add a Snapshot to the database, return it with its ID filled in.

        Identical content is stored again, every call adds a new row.
        """
        try:
            stamp: Final[int] = math.floor(snap.createdate.timestamp())
            cur = self.db.cursor()
            cur.execute(qdb[Query.SnapshotAdd],
                        (snap.resource_id,
                         snap.content,
                         stamp,
                         snap.createuser))
            row = cur.fetchone()
            # Hand back what snapshot_get_by_id will return later.
            return Snapshot(sid=row[0],
                            resource_id=snap.resource_id,
                            content=snap.content,
                            createdate=datetime.fromtimestamp(stamp),
                            createuser=snap.createuser)
        except sqlite3.Error as err:
            raise self._fail(err, f"add Snapshot of Resource {snap.resource_id}") from err

    def snapshot_get_by_id(self, sid: int) -> Optional[Snapshot]:
        """Load a Snapshot by its ID."""
        try:
            cur = self.db.cursor()
            cur.execute(qdb[Query.SnapshotGetByID], (sid, ))
            row = cur.fetchone()
            if row is None:
                self.log.debug("Snapshot %d was not found in database", sid)
                return None
            return Snapshot(sid=sid,
                            resource_id=row[0],
                            content=row[1],
                            createdate=datetime.fromtimestamp(row[2]),
                            createuser=row[3])
        except sqlite3.Error as err:
            raise self._fail(err, f"load Snapshot {sid}") from err

    def snapshot_get_by_resource(self, rid: int) -> list[SnapshotSummary]:
        """Load summaries of all Snapshots of a Resource, newest first."""
        try:
            cur = self.db.cursor()
            cur.execute(qdb[Query.SnapshotGetByResource], (rid, ))
            return [SnapshotSummary(sid=row[0],
                                    createdate=datetime.fromtimestamp(row[1]),
                                    createuser=row[2],
                                    size=row[3],
                                    checked=bool(row[4]))
                    for row in cur]
        except sqlite3.Error as err:
            raise self._fail(err, f"load Snapshots of Resource {rid}") from err

    def snapshot_set_checked(self, sid: int, checked: bool = True) -> None:
        """Mark a Snapshot as reviewed (or not)."""
        try:
            cur = self.db.cursor()
            cur.execute(qdb[Query.SnapshotSetChecked], (checked, sid))
            if cur.rowcount == 0:
                raise NotFoundError(f"Snapshot {sid} does not exist")
        except sqlite3.Error as err:
            raise self._fail(err, f"mark Snapshot {sid} as checked") from err


# Local Variables: #
# python-indent: 4 #
# End: #
