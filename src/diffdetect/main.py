#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 17:40:02 krylon>
#
# /data/code/python/diffdetect/src/diffdetect/main.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DiffDetect website monitor. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
diffdetect.main

(c) 2026 Benjamin Walkenhorst
"""


import argparse
import logging
import pathlib
import signal
import sys
from threading import Thread

from diffdetect import common
from diffdetect.common import DiffDetectError
from diffdetect.database import Database
from diffdetect.engine import Engine, default_worker_count
from diffdetect.model import Resource, ResourceType
from diffdetect.monitor import Monitor
from diffdetect.web import WebUI


def one_shot(args: argparse.Namespace) -> int:
    """Perform a single operation requested on the command line."""
    lg: logging.Logger = common.get_logger("main")
    db: Database = Database()
    try:
        mon: Monitor = Monitor(db)
        if args.add is not None:
            res: Resource = Resource(name=args.name or args.add,
                                     url=args.add,
                                     rtype=ResourceType.RSS if args.rss else ResourceType.Generic)
            res.validate()
            with db:
                db.resource_add(res)
            print(f"Added Resource {res.rid}: {res.url}")
        elif args.fetch is not None:
            snap = mon.fetch_and_store(args.fetch)
            print(f"Stored Snapshot {snap.sid} ({snap.size} bytes)")
        elif args.list is not None:
            for s in mon.list_snapshots(args.list):
                print(f"{s.sid:6d}  {s.stamp_str}  {s.createuser:<12}  {s.size_str:>12}")
        elif args.diff is not None:
            rid, before, after = args.diff
            print(mon.render_diff(rid, before, after).text)
        return 0
    except (DiffDetectError, ValueError) as err:
        lg.error("%s: %s", err.__class__.__name__, err)
        print(f"Error: {err}", file=sys.stderr)
        return 1
    finally:
        db.close()


def main() -> None:
    """Run the DiffDetect application."""
    argp: argparse.ArgumentParser = argparse.ArgumentParser()
    argp.add_argument("-e", "--engine",
                      action="store_true",
                      help="Run the fetch engine")
    argp.add_argument("-w", "--web",
                      action="store_true",
                      help="Run the web server")
    argp.add_argument("-a", "--address",
                      default="localhost",
                      help="The IP address(es) or hostname to listen on")
    argp.add_argument("-p", "--port",
                      type=int,
                      default=4108,
                      help="The port for the web interface to listen on")
    argp.add_argument("-b", "--basedir",
                      type=pathlib.Path,
                      default=common.path.base(),
                      help="The directory to store application-specific files in")
    argp.add_argument("-i", "--interval",
                      type=int,
                      default=60,
                      help="How often (in seconds) to look for Resources due for a scan")
    argp.add_argument("--workers",
                      type=int,
                      default=default_worker_count,
                      help="How many Resources to fetch in parallel")
    argp.add_argument("--add",
                      metavar="URL",
                      help="Add a Resource to monitor")
    argp.add_argument("--name",
                      help="The name of the Resource to add")
    argp.add_argument("--rss",
                      action="store_true",
                      help="The Resource to add is an RSS feed")
    argp.add_argument("-f", "--fetch",
                      type=int,
                      metavar="RID",
                      help="Fetch a Resource once and store a Snapshot")
    argp.add_argument("-l", "--list",
                      type=int,
                      metavar="RID",
                      help="List the Snapshots of a Resource")
    argp.add_argument("-d", "--diff",
                      type=int,
                      nargs=3,
                      metavar=("RID", "BEFORE", "AFTER"),
                      help="Show the differences between two Snapshots")

    args = argp.parse_args()

    common.set_basedir(args.basedir)

    if args.add is not None or args.fetch is not None or \
       args.list is not None or args.diff is not None:
        sys.exit(one_shot(args))

    threads: list[Thread] = []
    eng: Engine = Engine(args.interval, args.workers)

    if args.engine:
        t = Thread(target=eng.start, daemon=False)
        t.start()
        threads.append(t)

    # I need to figure out how to stop the server in an orderly fashion.
    if args.web:
        srv = WebUI(args.address, args.port)
        t = Thread(target=srv.run, daemon=True)
        t.start()

    if not (args.engine or args.web):
        # Looks like we have nothing to do! \o/
        return

    try:
        signal.pause()
    except KeyboardInterrupt:
        print("Quitting now, bye!")

    eng.active = False

    for t in threads:
        t.join()

    print("So long, and thanks for all the fish.")


if __name__ == '__main__':
    main()


# Local Variables: #
# python-indent: 4 #
# End: #
