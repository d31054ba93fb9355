#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 21:05:48 krylon>
#
# /data/code/python/diffdetect/src/diffdetect/test_engine.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DiffDetect website monitor. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
diffdetect.test_engine

(c) 2026 Benjamin Walkenhorst
"""

import os
import shutil
import unittest
from datetime import datetime, timedelta
from typing import Final, Optional

from diffdetect import common
from diffdetect.database import Database
from diffdetect.engine import Engine
from diffdetect.fetch import Fetcher, FetchResult, NetworkError
from diffdetect.model import Resource
from diffdetect.monitor import Monitor

test_dir: Final[str] = os.path.join(
    "/tmp",
    datetime.now().strftime(f"{common.AppName.lower()}_test_engine_%Y%m%d_%H%M%S"))


class EchoFetcher(Fetcher):
    """Pretend to fetch a Resource, failing for URLs that mention "fail"."""

    __slots__ = ["fetched"]

    fetched: list[int]

    def __init__(self) -> None:
        super().__init__()
        self.fetched = []

    def fetch(self, res: Resource) -> FetchResult:
        self.fetched.append(res.rid)
        if "fail" in res.url:
            raise NetworkError(f"Cannot reach {res.url}")
        return FetchResult(url=res.url, status=200, content=f"<p>{res.name}</p>")


class TestEngine(unittest.TestCase):
    """Test dispatching Resources to workers."""

    db_path: str = ""
    conn: Optional[Database] = None
    eng: Optional[Engine] = None
    fetcher: Optional[EchoFetcher] = None
    resources: dict[str, Resource] = {}

    @classmethod
    def setUpClass(cls) -> None:
        """Prepare the testing environment."""
        common.set_basedir(test_dir)
        cls.db_path = os.path.join(test_dir, "test_engine.db")
        cls.conn = Database(cls.db_path)
        cls.fetcher = EchoFetcher()
        cls.eng = Engine(60, worker_count=2, fetcher=cls.fetcher, db_path=cls.db_path)

        with cls.conn:
            for name, active in (("alpha", True), ("beta", True), ("gamma", False)):
                res = Resource(name=name,
                               url=f"https://www.example.org/{name}",
                               active=active)
                cls.conn.resource_add(res)
                cls.resources[name] = res
            broken = Resource(name="broken", url="https://fail.example.org/")
            cls.conn.resource_add(broken)
            cls.resources["broken"] = broken

    @classmethod
    def tearDownClass(cls) -> None:
        """Clean up afterwards."""
        if cls.eng is not None:
            cls.eng.db.close()
            cls.eng = None
        if cls.conn is not None:
            cls.conn.close()
            cls.conn = None
        shutil.rmtree(test_dir, ignore_errors=True)

    @classmethod
    def engine(cls) -> Engine:
        """Return the Engine."""
        if cls.eng is None:
            raise ValueError("No Engine exists")
        return cls.eng

    def test_01_interval(self) -> None:
        """The interval may be given in seconds or as a timedelta."""
        self.assertEqual(self.engine().interval, timedelta(seconds=60))

        eng: Engine = Engine(timedelta(minutes=5), db_path=self.db_path)
        self.assertEqual(eng.interval, timedelta(minutes=5))
        eng.db.close()
        eng = Engine(1.5, db_path=self.db_path)
        self.assertEqual(eng.interval, timedelta(seconds=1.5))
        eng.db.close()

        with self.assertRaises(ValueError):
            Engine("often", db_path=self.db_path)  # type: ignore
        with self.assertRaises(ValueError):
            Engine(60, worker_count=0, db_path=self.db_path)

    def test_02_dispatch(self) -> None:
        """Active Resources that are due are put on the queue."""
        eng: Engine = self.engine()
        dispatched: list[Resource] = eng.dispatch()
        names: set[str] = {r.name for r in dispatched}
        self.assertEqual(names, {"alpha", "beta", "broken"})
        self.assertNotIn(self.resources["gamma"].rid, eng.in_flight)
        self.assertEqual(eng.in_flight, {r.rid for r in dispatched})

    def test_03_no_double_dispatch(self) -> None:
        """A Resource is not dispatched while it is still being fetched."""
        eng: Engine = self.engine()
        self.assertEqual(eng.dispatch(), [])

    def test_04_process(self) -> None:
        """Processing a Resource stores a Snapshot and releases the Resource."""
        eng: Engine = self.engine()
        assert self.conn is not None
        assert self.fetcher is not None
        mon: Monitor = Monitor(self.conn, fetcher=self.fetcher)

        while not eng.resq.empty():
            res: Resource = eng.resq.get()
            eng.process(mon, res)
            self.assertNotIn(res.rid, eng.in_flight)
            self.assertIsNotNone(self.conn.resource_get_last_scan(res.rid))

        self.assertEqual(eng.in_flight, set())
        self.assertEqual(len(self.fetcher.fetched), 3)
        self.assertEqual(len(mon.list_snapshots(self.resources["alpha"].rid)), 1)
        self.assertEqual(len(mon.list_snapshots(self.resources["broken"].rid)), 0)

    def test_05_not_due(self) -> None:
        """Resources scanned just now are not dispatched again."""
        self.assertEqual(self.engine().dispatch(), [])


# Local Variables: #
# python-indent: 4 #
# End: #
