#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 13:27:55 krylon>
#
# /data/code/python/diffdetect/src/diffdetect/fetch.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DiffDetect website monitor. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
diffdetect.fetch

(c) 2026 Benjamin Walkenhorst

Fetcher downloads the content of a single Resource.
"""


import logging
from dataclasses import dataclass
from typing import Final, Optional

import requests
from urllib3.exceptions import ReadTimeoutError

from diffdetect import common
from diffdetect.common import DiffDetectError
from diffdetect.model import Resource

default_timeout: Final[float] = 5
default_max_redirects: Final[int] = 5
default_user_agent: Final[str] = f"{common.AppName}/{common.AppVersion}"


class FetchError(DiffDetectError):
    """Base class for errors that occur while fetching a Resource."""


class NetworkError(FetchError):
    """NetworkError indicates a failure to talk to the remote host at all."""


class FetchTimeoutError(FetchError):
    """FetchTimeoutError indicates the remote host took too long to answer."""


class TooManyRedirectsError(FetchError):
    """TooManyRedirectsError indicates a redirect chain longer than we allow."""


class HttpStatusError(FetchError):
    """HttpStatusError indicates a response with a non-success status code."""

    status: int

    def __init__(self, msg: str, status: int) -> None:
        super().__init__(msg)
        self.status = status


@dataclass(kw_only=True, slots=True)
class FetchResult:
    """FetchResult is the decoded response to fetching a Resource."""

    url: str
    status: int
    content: str
    requests: int = 1


def cookie_from_header(header: Optional[str]) -> Optional[str]:
    """Return the name=value pair of a Set-Cookie header, without its attributes."""
    if header is None:
        return None
    idx: Final[int] = header.find(";")
    cookie: Final[str] = (header[:idx] if idx >= 0 else header).strip()
    return cookie if cookie != "" else None


class Fetcher:
    """Fetcher performs HTTP requests on behalf of Resources."""

    __slots__ = [
        "log",
        "timeout",
        "max_redirects",
        "user_agent",
    ]

    log: logging.Logger
    timeout: float
    max_redirects: int
    user_agent: str

    def __init__(self,
                 timeout: float = default_timeout,
                 max_redirects: int = default_max_redirects,
                 user_agent: str = default_user_agent) -> None:
        if timeout <= 0:
            raise ValueError(f"Invalid timeout: {timeout} (must be > 0)")
        if max_redirects < 0:
            raise ValueError(f"Invalid redirect limit: {max_redirects} (must be >= 0)")
        self.log = common.get_logger("fetch")
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.user_agent = user_agent

    def fetch(self, res: Resource) -> FetchResult:
        """Fetch the content of the Resource.

        If the first response sets a cookie, the request is sent once more,
        carrying that cookie. Raises a FetchError if no usable response is
        received.
        """
        res.validate()

        headers: dict[str, str] = {
            "User-Agent": self.user_agent,
            "Accept-Encoding": "gzip, deflate",
        }

        with requests.Session() as session:
            session.max_redirects = self.max_redirects
            # No credentials from ~/.netrc or proxies from the environment.
            session.trust_env = False
            session.auth = res.basic_auth

            response = self._get(session, res, headers)
            cnt: int = 1

            cookie: Optional[str] = cookie_from_header(response.headers.get("Set-Cookie"))
            if cookie is not None:
                self.log.debug("%s set cookie %s, asking again.",
                               res.url,
                               cookie)
                headers["Cookie"] = cookie
                # The Cookie header alone must carry the cookie.
                session.cookies.clear()
                response = self._get(session, res, headers)
                cnt += 1

            if not 200 <= response.status_code < 300:
                msg: Final[str] = f"{res.url} returned status {response.status_code} {response.reason}"
                self.log.info(msg)
                raise HttpStatusError(msg, response.status_code)

            if "charset" not in response.headers.get("Content-Type", "").lower():
                # requests assumes ISO-8859-1 for text/* without a charset
                response.encoding = response.apparent_encoding

            self.log.debug("Fetched %d bytes from %s in %d request(s)",
                           len(response.content),
                           response.url,
                           cnt)

            return FetchResult(url=response.url,
                               status=response.status_code,
                               content=response.text,
                               requests=cnt)

    def _get(self,
             session: requests.Session,
             res: Resource,
             headers: dict[str, str]) -> requests.Response:
        """Perform a single GET request, translating the errors requests raises."""
        try:
            return session.get(res.url.strip(),
                               headers=headers,
                               timeout=self.timeout,
                               allow_redirects=True)
        except requests.exceptions.TooManyRedirects as err:
            msg = f"More than {self.max_redirects} redirects fetching {res.url}"
            self.log.info(msg)
            raise TooManyRedirectsError(msg) from err
        except requests.exceptions.Timeout as err:
            msg = f"Timeout ({self.timeout}s) fetching {res.url}: {err}"
            self.log.info(msg)
            raise FetchTimeoutError(msg) from err
        except requests.exceptions.ConnectionError as err:
            if len(err.args) > 0 and isinstance(err.args[0], ReadTimeoutError):
                # requests reports a stalled body as a ConnectionError
                msg = f"Timeout ({self.timeout}s) reading {res.url}: {err}"
                self.log.info(msg)
                raise FetchTimeoutError(msg) from err
            raise self._network_error(res, err) from err
        except requests.exceptions.RequestException as err:
            raise self._network_error(res, err) from err

    def _network_error(self, res: Resource, err: Exception) -> NetworkError:
        cname: Final[str] = err.__class__.__name__
        msg: Final[str] = f"{cname} fetching {res.url}: {err}"
        self.log.error(msg)
        return NetworkError(msg)


# Local Variables: #
# python-indent: 4 #
# End: #
