#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 15:31:09 krylon>
#
# /data/code/python/diffdetect/src/diffdetect/monitor.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DiffDetect website monitor. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
diffdetect.monitor

(c) 2026 Benjamin Walkenhorst

Monitor ties the Fetcher, the Database and the DiffEngine together. The
engine and the web interface only talk to the Monitor.
"""


import logging
from datetime import datetime
from typing import Final, Optional

from diffdetect import common
from diffdetect.database import Database, NotFoundError
from diffdetect.diff import DiffEngine, DiffError, RenderedDiff
from diffdetect.fetch import Fetcher, FetchError, FetchResult
from diffdetect.model import ConfigError, Resource, Snapshot, SnapshotSummary


class Monitor:
    """Monitor provides the operations to fetch, store and compare Snapshots.

    The resource cache is owned by whoever creates the Monitor. Passing the
    same dict to several Monitors lets them share loaded Resources.
    """

    __slots__ = [
        "log",
        "db",
        "fetcher",
        "differ",
        "cache",
        "user",
    ]

    log: logging.Logger
    db: Database
    fetcher: Fetcher
    differ: DiffEngine
    cache: dict[int, Resource]
    user: str

    def __init__(self,
                 db: Database,
                 fetcher: Optional[Fetcher] = None,
                 differ: Optional[DiffEngine] = None,
                 cache: Optional[dict[int, Resource]] = None,
                 user: str = common.AppName.lower()) -> None:
        self.log = common.get_logger("monitor")
        self.db = db
        self.fetcher = fetcher if fetcher is not None else Fetcher()
        self.differ = differ if differ is not None else DiffEngine()
        self.cache = cache if cache is not None else {}
        self.user = user

    def get_resource(self, rid: int) -> Resource:
        """Return the Resource with the given ID, from the cache if possible."""
        if rid <= 0:
            raise ValueError(f"Resource ID must be an integer greater than 0, not {rid}")
        if rid in self.cache:
            return self.cache[rid]

        res: Optional[Resource] = self.db.resource_get_by_id(rid)
        if res is None:
            raise NotFoundError(f"Resource {rid} does not exist")
        self.cache[rid] = res
        return res

    def fetch_and_store(self, rid: int) -> Snapshot:
        """Fetch a Resource and store its content as a new Snapshot.

        The Resource's last_scan timestamp is updated whether the fetch
        succeeds or not. If it fails, no Snapshot is written and the
        FetchError (or ConfigError) is passed on to the caller.
        """
        res: Final[Resource] = self.get_resource(rid)
        result: FetchResult
        try:
            result = self.fetcher.fetch(res)
        except (FetchError, ConfigError) as err:
            self.log.info("Failed to fetch %s (%d): %s",
                          res.name,
                          res.rid,
                          err)
            self._scanned(res)
            raise

        with self.db:
            snap: Final[Snapshot] = self.db.snapshot_add(
                Snapshot(resource_id=res.rid,
                         content=result.content,
                         createuser=self.user))
            self._scanned(res)

        self.log.debug("Stored Snapshot %d of %s (%d bytes)",
                       snap.sid,
                       res.name,
                       snap.size)
        return snap

    def _scanned(self, res: Resource) -> None:
        stamp: datetime = datetime.now()
        if res.last_scan is not None and stamp < res.last_scan:
            stamp = res.last_scan
        self.db.resource_set_last_scan(res, stamp)

    def list_snapshots(self, rid: int) -> list[SnapshotSummary]:
        """Return summaries of all Snapshots of a Resource, newest first."""
        res: Final[Resource] = self.get_resource(rid)
        return self.db.snapshot_get_by_resource(res.rid)

    def get_snapshot(self, sid: int) -> Snapshot:
        """Load a Snapshot, raise NotFoundError if it does not exist."""
        snap: Optional[Snapshot] = self.db.snapshot_get_by_id(sid)
        if snap is None:
            raise NotFoundError(f"Snapshot {sid} does not exist")
        return snap

    def render_diff(self,
                    rid: Optional[int],
                    before_id: Optional[int],
                    after_id: Optional[int]) -> RenderedDiff:
        """Compare two Snapshots of a Resource."""
        if not rid or not before_id or not after_id:
            raise DiffError("Please select a Resource and two Snapshots to compare")
        if before_id == after_id:
            raise DiffError("Please select two different Snapshots to compare")

        res: Final[Resource] = self.get_resource(rid)
        before: Final[Snapshot] = self.get_snapshot(before_id)
        after: Final[Snapshot] = self.get_snapshot(after_id)

        for snap in (before, after):
            if snap.resource_id != res.rid:
                raise DiffError(f"Snapshot {snap.sid} does not belong to {res.name} ({res.rid})")

        return self.differ.diff(before, after, res.rtype)


# Local Variables: #
# python-indent: 4 #
# End: #
