#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 18:31:10 krylon>
#
# /data/code/python/diffdetect/src/diffdetect/test_database.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DiffDetect website monitor. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
diffdetect.test_database

(c) 2026 Benjamin Walkenhorst
"""

import os
import shutil
import unittest
from datetime import datetime, timedelta
from typing import Final, Optional

from diffdetect import common
from diffdetect.database import Database, NotFoundError
from diffdetect.model import (Interval, Resource, ResourceType, Snapshot,
                              SnapshotSummary)

test_dir: Final[str] = os.path.join(
    "/tmp",
    datetime.now().strftime(f"{common.AppName.lower()}_test_database_%Y%m%d_%H%M%S"))


class TestDatabase(unittest.TestCase):
    """Test the Database."""

    conn: Optional[Database] = None
    res: Optional[Resource] = None
    t0: Final[datetime] = datetime(2026, 1, 1, 12, 0, 0)

    @classmethod
    def setUpClass(cls) -> None:
        """Prepare the testing environment."""
        common.set_basedir(test_dir)

    @classmethod
    def tearDownClass(cls) -> None:
        """Clean up afterwards."""
        if cls.conn is not None:
            cls.conn.close()
            cls.conn = None
        shutil.rmtree(test_dir, ignore_errors=True)

    @classmethod
    def db(cls, db: Optional[Database] = None) -> Database:
        """Set or return the database."""
        if db is not None:
            cls.conn = db
            return db
        if cls.conn is not None:
            return cls.conn

        raise ValueError("No Database connection exists")

    @classmethod
    def resource(cls) -> Resource:
        """Return the Resource added in test_02."""
        if cls.res is None:
            raise ValueError("No Resource exists")
        return cls.res

    def test_01_db_open(self) -> None:
        """Attempt to open a fresh Database."""
        db: Database = Database(os.path.join(test_dir, "test_database.db"))
        self.assertIsNotNone(db)
        self.assertIsInstance(db, Database)
        self.db(db)

    def test_02_resource_add(self) -> None:
        """Attempt to add an Interval and a Resource."""
        db: Database = self.db()
        hourly: Interval = Interval(name="hourly", seconds=3600)
        db.interval_add(hourly)
        self.assertGreater(hourly.iid, 0)
        self.assertEqual(db.interval_get_all(), [hourly])

        res: Resource = Resource(
            name="Example Page",
            url="https://www.example.org/",
            categories="examples",
            http_auth_login="peter",
            interval_id=hourly.iid,
        )
        db.resource_add(res)
        self.assertGreater(res.rid, 0)

        resources: list[Resource] = db.resource_get_all()
        self.assertEqual(len(resources), 1)
        self.assertEqual(resources[0], res)

        again: Optional[Resource] = db.resource_get_by_id(res.rid)
        self.assertEqual(again, res)
        self.assertIsNone(db.resource_get_by_id(res.rid + 1000))
        type(self).res = res

    def test_03_snapshot_order(self) -> None:
        """Snapshots are listed newest first."""
        db: Database = self.db()
        res: Resource = self.resource()

        stamps: Final[list[datetime]] = [self.t0 + timedelta(hours=h) for h in (2, 1, 3)]
        with db:
            for i, stamp in enumerate(stamps):
                snap = db.snapshot_add(Snapshot(resource_id=res.rid,
                                                content=f"Version {i}",
                                                createdate=stamp,
                                                createuser="test"))
                self.assertGreater(snap.sid, 0)

        summaries: list[SnapshotSummary] = db.snapshot_get_by_resource(res.rid)
        self.assertEqual(len(summaries), 3)
        self.assertEqual([s.createdate for s in summaries],
                         sorted(stamps, reverse=True))
        for s in summaries:
            self.assertEqual(s.size, len("Version 0"))
            self.assertEqual(s.createuser, "test")
            self.assertFalse(s.checked)

        # Reading twice must give the same result
        self.assertEqual(summaries, db.snapshot_get_by_resource(res.rid))

    def test_04_snapshot_no_dedup(self) -> None:
        """Identical content is stored as a new Snapshot every time."""
        db: Database = self.db()
        res: Resource = self.resource()
        before: Final[int] = len(db.snapshot_get_by_resource(res.rid))

        stamp: Final[datetime] = self.t0 + timedelta(hours=4)
        s1 = db.snapshot_add(Snapshot(resource_id=res.rid, content="Same", createdate=stamp))
        s2 = db.snapshot_add(Snapshot(resource_id=res.rid, content="Same", createdate=stamp))
        self.assertNotEqual(s1.sid, s2.sid)

        summaries: list[SnapshotSummary] = db.snapshot_get_by_resource(res.rid)
        self.assertEqual(len(summaries), before + 2)
        # Same timestamp, so the later insert comes first
        self.assertEqual(summaries[0].sid, s2.sid)
        self.assertEqual(summaries[1].sid, s1.sid)

    def test_05_snapshot_get(self) -> None:
        """Load Snapshots by their ID."""
        db: Database = self.db()
        res: Resource = self.resource()

        content: Final[str] = "<p>Grüße aus dem Süden</p>"
        snap: Snapshot = db.snapshot_add(Snapshot(resource_id=res.rid,
                                                  content=content,
                                                  createdate=self.t0,
                                                  createuser="test"))
        loaded: Optional[Snapshot] = db.snapshot_get_by_id(snap.sid)
        self.assertIsNotNone(loaded)
        assert loaded is not None  # to appease the type checker
        self.assertEqual(loaded, snap)
        self.assertEqual(loaded.content, content)

        summaries = {s.sid: s for s in db.snapshot_get_by_resource(res.rid)}
        self.assertEqual(summaries[snap.sid].size, len(content.encode("utf-8")))

        self.assertIsNone(db.snapshot_get_by_id(snap.sid + 1000))

    def test_05b_snapshot_createdate(self) -> None:
        """A stored Snapshot carries the timestamp it will be loaded with."""
        db: Database = self.db()
        res: Resource = self.resource()

        stamp: Final[datetime] = self.t0.replace(microsecond=654321)
        saved: Snapshot = db.snapshot_add(Snapshot(resource_id=res.rid,
                                                   content="Fractional",
                                                   createdate=stamp))
        self.assertEqual(saved.createdate, self.t0)
        self.assertEqual(db.snapshot_get_by_id(saved.sid), saved)

    def test_06_snapshot_orphan(self) -> None:
        """Snapshots of Resources that do not exist are no problem."""
        db: Database = self.db()
        snap: Snapshot = db.snapshot_add(Snapshot(resource_id=4711, content="Orphan"))
        self.assertIsNotNone(db.snapshot_get_by_id(snap.sid))
        summaries: list[SnapshotSummary] = db.snapshot_get_by_resource(4711)
        self.assertEqual(len(summaries), 1)
        self.assertEqual(summaries[0].sid, snap.sid)

    def test_07_snapshot_checked(self) -> None:
        """Mark a Snapshot as checked."""
        db: Database = self.db()
        res: Resource = self.resource()
        summaries: list[SnapshotSummary] = db.snapshot_get_by_resource(res.rid)
        sid: Final[int] = summaries[0].sid
        content: Final[Optional[Snapshot]] = db.snapshot_get_by_id(sid)

        db.snapshot_set_checked(sid)
        summaries = db.snapshot_get_by_resource(res.rid)
        self.assertTrue(summaries[0].checked)
        self.assertEqual(db.snapshot_get_by_id(sid), content)

        with self.assertRaises(NotFoundError):
            db.snapshot_set_checked(sid + 1000)

    def test_08_last_scan(self) -> None:
        """Set and query the time a Resource was last scanned."""
        db: Database = self.db()
        res: Resource = self.resource()
        self.assertIsNone(db.resource_get_last_scan(res.rid))

        stamp: Final[datetime] = datetime.now().replace(microsecond=0)
        db.resource_set_last_scan(res, stamp)
        self.assertEqual(res.last_scan, stamp)
        self.assertEqual(db.resource_get_last_scan(res.rid), stamp)

        with self.assertRaises(NotFoundError):
            db.resource_get_last_scan(res.rid + 1000)

    def test_09_pending(self) -> None:
        """Only active Resources that are due are pending."""
        db: Database = self.db()
        res: Resource = self.resource()

        fresh: Resource = Resource(name="Fresh", url="https://www.example.com/")
        sleepy: Resource = Resource(name="Sleepy",
                                    url="https://www.example.net/",
                                    active=False,
                                    rtype=ResourceType.RSS)
        with db:
            db.resource_add(fresh)
            db.resource_add(sleepy)

        pending: list[Resource] = db.resource_get_pending()
        ids: set[int] = {r.rid for r in pending}
        self.assertIn(fresh.rid, ids)
        self.assertNotIn(sleepy.rid, ids)
        # scanned just now in test_08
        self.assertNotIn(res.rid, ids)

        later: Final[datetime] = datetime.now() + timedelta(hours=2)
        ids = {r.rid for r in db.resource_get_pending(later)}
        self.assertIn(res.rid, ids)
        self.assertNotIn(sleepy.rid, ids)

        db.resource_set_active(sleepy, True)
        ids = {r.rid for r in db.resource_get_pending()}
        self.assertIn(sleepy.rid, ids)
        self.assertEqual(db.resource_get_by_id(sleepy.rid).rtype,  # type: ignore
                         ResourceType.RSS)

    def test_10_timestamp_now(self) -> None:
        """The database's clock should agree with ours."""
        db: Database = self.db()
        now: Final[datetime] = db.timestamp_now()
        self.assertLess(abs((now - datetime.now()).total_seconds()), 5)


# Local Variables: #
# python-indent: 4 #
# End: #
