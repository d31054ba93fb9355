#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 11:40:12 krylon>
#
# /data/code/python/diffdetect/src/diffdetect/common.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DiffDetect website monitor. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
diffdetect.common

(c) 2026 Benjamin Walkenhorst

Constants, paths and logging shared by the rest of the application.
"""


import logging
import logging.handlers
import os
import pathlib
from threading import Lock
from typing import Final, Optional, Union

AppName: Final[str] = "DiffDetect"
AppVersion: Final[str] = "0.1.0"
Debug: Final[bool] = True
TimeFmt: Final[str] = "%Y-%m-%d %H:%M:%S"


class DiffDetectError(Exception):
    """Base class for application-specific exceptions."""


class Path:
    """Path holds the filesystem locations the application uses."""

    __slots__ = ["__base"]

    def __init__(self, root: Union[str, pathlib.Path]) -> None:
        self.__base = pathlib.Path(root)

    def base(self, folder: Optional[Union[str, pathlib.Path]] = None) -> pathlib.Path:
        """Return the base directory. If folder is given, set the base directory first."""
        if folder is not None:
            self.__base = pathlib.Path(folder)
        return self.__base

    @property
    def db(self) -> pathlib.Path:  # pylint: disable-msg=C0103
        """Return the path of the database file."""
        return self.__base.joinpath(f"{AppName.lower()}.db")

    @property
    def log(self) -> pathlib.Path:
        """Return the path of the log file."""
        return self.__base.joinpath(f"{AppName.lower()}.log")


path: Path = Path(os.path.expanduser(f"~/.{AppName.lower()}.d"))

_log_lock: Final[Lock] = Lock()
_handlers: list[logging.Handler] = []


def set_basedir(folder: Union[str, pathlib.Path]) -> None:
    """Set the base directory and make sure it exists."""
    base: Final[pathlib.Path] = path.base(folder)
    base.mkdir(parents=True, exist_ok=True)
    with _log_lock:
        # Loggers created before the switch keep writing to the old file otherwise.
        for h in _handlers:
            if isinstance(h, logging.FileHandler):
                h.close()
        _handlers.clear()
        for name in list(logging.root.manager.loggerDict):
            lg = logging.getLogger(name)
            if getattr(lg, "_diffdetect", False):
                lg.handlers.clear()
                _attach(lg)


def _init_handlers() -> list[logging.Handler]:
    """Create the handlers all our loggers share."""
    if len(_handlers) > 0:
        return _handlers

    path.base().mkdir(parents=True, exist_ok=True)
    fmt: Final[logging.Formatter] = logging.Formatter(
        "%(asctime)s (%(name)-16s / line %(lineno)-4d) " +
        "- %(levelname)-8s %(message)s")

    console = logging.StreamHandler()
    console.setFormatter(fmt)
    console.setLevel(logging.DEBUG if Debug else logging.INFO)

    logfile = logging.handlers.RotatingFileHandler(str(path.log),
                                                   maxBytes=4 << 20,
                                                   backupCount=4,
                                                   encoding="utf-8")
    logfile.setFormatter(fmt)
    logfile.setLevel(logging.DEBUG)

    _handlers.extend((console, logfile))
    return _handlers


def _attach(lg: logging.Logger) -> None:
    for h in _init_handlers():
        lg.addHandler(h)


def get_logger(name: str) -> logging.Logger:
    """Create and return a logger with the given name."""
    with _log_lock:
        log: logging.Logger = logging.getLogger(f"{AppName.lower()}.{name}")
        if not getattr(log, "_diffdetect", False):
            log.setLevel(logging.DEBUG if Debug else logging.INFO)
            log.propagate = False
            _attach(log)
            setattr(log, "_diffdetect", True)
        return log


# Local Variables: #
# python-indent: 4 #
# End: #
