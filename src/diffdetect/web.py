#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 17:05:21 krylon>
#
# /data/code/python/diffdetect/src/diffdetect/web.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DiffDetect website monitor. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
diffdetect.web

(c) 2026 Benjamin Walkenhorst

A small web interface to pick two Snapshots of a Resource and look at the
differences between them.
"""


import logging
import pathlib
import socket
from datetime import datetime
from typing import Final, Optional, Union

import bottle
from bottle import request, response
from jinja2 import Environment, FileSystemLoader

from diffdetect import common
from diffdetect.database import Database, NotFoundError
from diffdetect.diff import DiffError, FeedParseError, RenderedDiff
from diffdetect.model import Resource, SnapshotSummary
from diffdetect.monitor import Monitor

tmpl_root: Final[pathlib.Path] = pathlib.Path(__file__).parent.joinpath("templates")


def _int_param(name: str) -> Optional[int]:
    """Return a request parameter as an int, or None if it is missing or garbage."""
    raw: Optional[str] = request.params.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def default_selection(snapshots: list[SnapshotSummary],
                      before: Optional[int] = None,
                      after: Optional[int] = None) -> tuple[Optional[int], Optional[int]]:
    """Pick the Snapshots to preselect for comparison.

    Snapshots come newest first. Unless the caller chose already, the second
    newest is "before" and the newest is "after". A lone Snapshot is
    selected on both sides.
    """
    match len(snapshots):
        case 0:
            return (before, after)
        case 1:
            sid = snapshots[0].sid
            return (before or sid, after or sid)
        case _:
            return (before or snapshots[1].sid, after or snapshots[0].sid)


class WebUI:
    """Present a shiny face to the casual observer."""

    __slots__ = [
        "log",
        "env",
        "host",
        "port",
        "app",
        "db_path",
    ]

    log: logging.Logger
    env: Environment
    host: str
    port: int
    app: bottle.Bottle
    db_path: Optional[str]

    def __init__(self,
                 host: str = "localhost",
                 port: int = 4108,
                 db_path: Optional[str] = None) -> None:
        self.log = common.get_logger("web")
        self.log.info("Web interface is coming up...")

        self.host = host
        self.port = port
        self.db_path = db_path

        self.env = Environment(loader=FileSystemLoader(str(tmpl_root)),
                               autoescape=True)
        self.env.globals = {
            "dbg": common.Debug,
            "app_string": f"{common.AppName} {common.AppVersion}",
            "hostname": socket.gethostname(),
        }

        bottle.debug(common.Debug)
        self.app = bottle.Bottle()
        self.app.route("/", callback=self._handle_main)
        self.app.route("/resources", callback=self._handle_main)
        self.app.route("/resource/<rid:int>/snapshots",
                       method=["GET", "POST"],
                       callback=self._handle_snapshots)
        self.app.route("/resource/<rid:int>/diff",
                       method=["GET", "POST"],
                       callback=self._handle_diff)

    def _tmpl_vars(self) -> dict:
        """Return a dict with a few default variables filled in already."""
        default: dict = {
            "now": datetime.now().strftime(common.TimeFmt),
            "year": datetime.now().year,
            "time_fmt": common.TimeFmt,
        }

        return default

    def run(self) -> None:
        """Run the web server."""
        self.app.run(host=self.host, port=self.port, debug=common.Debug)

    def _error(self, status: int, message: str) -> str:
        response.status = status
        response.set_header("Cache-Control", "no-store, max-age=0")
        tmpl = self.env.get_template("error.jinja")
        tmpl_vars = self._tmpl_vars()
        tmpl_vars["title"] = f"{common.AppName} {common.AppVersion} - Error"
        tmpl_vars["message"] = message
        tmpl_vars["url"] = request.get_header("Referer")
        return tmpl.render(tmpl_vars)

    def _handle_main(self) -> Union[str, bytes]:
        """Present the list of Resources."""
        db: Final[Database] = Database(self.db_path)
        try:
            resources: list[Resource] = db.resource_get_all()
            response.set_header("Cache-Control", "no-store, max-age=0")
            tmpl = self.env.get_template("resources.jinja")
            tmpl_vars = self._tmpl_vars()
            tmpl_vars["title"] = f"{common.AppName} {common.AppVersion} - Resources"
            tmpl_vars["resources"] = resources
            return tmpl.render(tmpl_vars)
        finally:
            db.close()

    def _handle_snapshots(self, rid: int) -> Union[str, bytes]:
        """List the Snapshots of a Resource so the user can pick two to compare."""
        db: Final[Database] = Database(self.db_path)
        try:
            mon: Monitor = Monitor(db)
            try:
                res: Resource = mon.get_resource(rid)
                snapshots: list[SnapshotSummary] = mon.list_snapshots(rid)
            except (NotFoundError, ValueError) as err:
                return self._error(404, str(err))

            before, after = default_selection(snapshots,
                                              _int_param("before"),
                                              _int_param("after"))

            response.set_header("Cache-Control", "no-store, max-age=0")
            tmpl = self.env.get_template("snapshots.jinja")
            tmpl_vars = self._tmpl_vars()
            tmpl_vars["title"] = f"{common.AppName} {common.AppVersion} - {res.name}"
            tmpl_vars["resource"] = res
            tmpl_vars["snapshots"] = snapshots
            tmpl_vars["before"] = before
            tmpl_vars["after"] = after
            return tmpl.render(tmpl_vars)
        finally:
            db.close()

    def _handle_diff(self, rid: int) -> Union[str, bytes]:
        """Display the differences between two Snapshots."""
        before: Final[Optional[int]] = _int_param("before")
        after: Final[Optional[int]] = _int_param("after")
        db: Final[Database] = Database(self.db_path)
        try:
            mon: Monitor = Monitor(db)
            try:
                diff: RenderedDiff = mon.render_diff(rid, before, after)
                res: Resource = mon.get_resource(rid)
                snap_before = mon.get_snapshot(before)  # type: ignore
                snap_after = mon.get_snapshot(after)  # type: ignore
            except FeedParseError as perr:
                self.log.info("Cannot compare Snapshots of Resource %d: %s", rid, perr)
                return self._error(422, f"The Snapshots cannot be compared as feeds: {perr}")
            except NotFoundError as nerr:
                return self._error(404, str(nerr))
            except (DiffError, ValueError) as derr:
                return self._error(400, str(derr))

            response.set_header("Cache-Control", "no-store, max-age=0")
            tmpl = self.env.get_template("diff.jinja")
            tmpl_vars = self._tmpl_vars()
            tmpl_vars["title"] = f"{common.AppName} {common.AppVersion} - {res.name}"
            tmpl_vars["resource"] = res
            tmpl_vars["before"] = snap_before
            tmpl_vars["after"] = snap_after
            tmpl_vars["diff"] = diff
            return tmpl.render(tmpl_vars)
        finally:
            db.close()


# Local Variables: #
# python-indent: 4 #
# End: #
