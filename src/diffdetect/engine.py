#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 16:12:40 krylon>
#
# /data/code/python/diffdetect/src/diffdetect/engine.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DiffDetect website monitor. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
diffdetect.engine

(c) 2026 Benjamin Walkenhorst

Engine periodically checks which Resources are due and fetches them.
"""


import logging
import time
from datetime import timedelta
from queue import Empty, SimpleQueue
from threading import Lock, Thread
from typing import Final, Optional, Union

from diffdetect import common
from diffdetect.common import DiffDetectError
from diffdetect.database import Database
from diffdetect.fetch import Fetcher
from diffdetect.model import Resource
from diffdetect.monitor import Monitor

qtimeout: Final[int] = 5
default_worker_count: Final[int] = 4


class Engine:
    """Engine dispatches Resources that are due for a scan to a pool of workers.

    A Resource is never handed to a worker while another worker is still
    busy with it.
    """

    __slots__ = [
        "log",
        "db",
        "interval",
        "lock",
        "_active",
        "resq",
        "fetcher",
        "worker_count",
        "in_flight",
        "db_path",
    ]

    log: logging.Logger
    db: Database
    interval: timedelta
    lock: Lock
    _active: bool
    resq: SimpleQueue
    fetcher: Fetcher
    worker_count: int
    in_flight: set[int]
    db_path: Optional[str]

    def __init__(self,
                 interval: Union[int, float, timedelta],
                 worker_count: int = default_worker_count,
                 fetcher: Optional[Fetcher] = None,
                 db_path: Optional[str] = None) -> None:
        self.log = common.get_logger("engine")
        self.db_path = db_path
        self.db = Database(db_path)
        self.lock = Lock()
        self._active = False
        self.resq = SimpleQueue()
        self.fetcher = fetcher if fetcher is not None else Fetcher()
        self.in_flight = set()
        if worker_count <= 0:
            raise ValueError(f"Invalid worker count: {worker_count} (must be > 0)")
        self.worker_count = worker_count
        match interval:
            case int(x):
                self.interval = timedelta(seconds=x)
            case float(x):
                self.interval = timedelta(seconds=x)
            case x if isinstance(x, timedelta):
                self.interval = x
            case _:
                name = interval.__class__.__name__
                msg = f"Interval must be a number (of seconds) or a timedelta, not a {name}"
                raise ValueError(msg)

        self.log.debug("Engine will check for due Resources every %s seconds.",
                       self.interval.total_seconds())

    @property
    def active(self) -> bool:
        """Return the Engine's active flag."""
        with self.lock:
            return self._active

    @active.setter
    def active(self, value: bool) -> None:
        """Set the Engine's active flag."""
        with self.lock:
            self._active = value

    def start(self) -> None:
        """Begin to periodically check the database for Resources due for a scan."""
        self.log.debug("Engine is starting.")
        self.active = True

        for i in range(self.worker_count):
            idx: int = i+1
            w: Thread = Thread(name=f"Fetcher{idx:02d}",
                               target=self._fetch_loop,
                               args=(idx, ),
                               daemon=True)
            w.start()

        feeder: Thread = Thread(name="Feeder", target=self._feeder_loop, daemon=True)
        feeder.start()

    def dispatch(self) -> list[Resource]:
        """Put all Resources that are due and not busy on the queue.

        Inactive Resources are never dispatched. Return the Resources that
        were dispatched.
        """
        pending: Final[list[Resource]] = self.db.resource_get_pending()
        dispatched: list[Resource] = []
        with self.lock:
            for res in pending:
                if not res.active:
                    # resource_get_pending should not have returned it
                    self.log.error("Resource %s (%d) is inactive, not dispatching it",
                                   res.name,
                                   res.rid)
                    continue
                if res.rid in self.in_flight:
                    self.log.debug("Resource %s (%d) is still being fetched",
                                   res.name,
                                   res.rid)
                    continue
                self.in_flight.add(res.rid)
                dispatched.append(res)

        for res in dispatched:
            self.resq.put(res)

        if len(dispatched) > 0:
            names = ", ".join([x.name for x in dispatched])
            self.log.debug("Feeder dispatched %d Resources: %s",
                           len(dispatched),
                           names)
        return dispatched

    def _done(self, rid: int) -> None:
        with self.lock:
            self.in_flight.discard(rid)

    def _feeder_loop(self) -> None:
        """Periodically load all pending Resources and feed them to the queue."""
        self.log.debug("Feeder loop is starting up.")
        try:
            while self.active:
                self.dispatch()
                time.sleep(self.interval.total_seconds())
        finally:
            self.log.debug("Feeder loop is quitting.")

    def process(self, mon: Monitor, res: Resource) -> None:
        """Fetch a single Resource that was taken off the queue."""
        try:
            # The queue carries the latest configuration of the Resource.
            mon.cache[res.rid] = res
            snap = mon.fetch_and_store(res.rid)
            self.log.debug("Got Snapshot %d for %s", snap.sid, res.name)
        except DiffDetectError as err:
            cname: Final[str] = err.__class__.__name__
            self.log.error("%s fetching %s (%d): %s",
                           cname,
                           res.name,
                           res.rid,
                           err)
        finally:
            self._done(res.rid)

    def _fetch_loop(self, num: int) -> None:
        """Fetch pending Resources as they come in through the queue."""
        self.log.debug("Fetch worker %02d is starting up.", num)
        db: Database = Database(self.db_path)
        mon: Monitor = Monitor(db, fetcher=self.fetcher)
        try:
            while self.active:
                try:
                    res: Resource = self.resq.get(True, qtimeout)
                except Empty:
                    continue
                self.log.debug("Fetch worker %02d is about to fetch %s (%d / %s)",
                               num,
                               res.name,
                               res.rid,
                               res.url)
                self.process(mon, res)
        finally:
            db.close()
            self.log.debug("Fetch worker %02d is quitting.", num)


# Local Variables: #
# python-indent: 4 #
# End: #
