#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 14:55:30 krylon>
#
# /data/code/python/diffdetect/src/diffdetect/diff.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DiffDetect website monitor. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
diffdetect.diff

(c) 2026 Benjamin Walkenhorst

DiffEngine compares two Snapshots of the same Resource.

Ordinary pages are compared line by line. RSS feeds are compared item by
item, because the order of items in a feed shifts around a lot, which makes
a line diff of two versions of a feed pretty much unreadable.
"""


import difflib
import logging
import pathlib
import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Final, Optional

import fastfeedparser as ffp  # type: ignore # pylint: disable-msg=E0401
from bs4 import BeautifulSoup
from jinja2 import Environment, FileSystemLoader
from lxml import etree

from diffdetect import common
from diffdetect.common import DiffDetectError
from diffdetect.model import ResourceType, Snapshot

tmpl_root: Final[pathlib.Path] = pathlib.Path(__file__).parent.joinpath("templates")
word_pat: Final[re.Pattern] = re.compile(r"(\s+)")
strict_parser: Final[etree.XMLParser] = etree.XMLParser(recover=False,
                                                     resolve_entities=False,
                                                     no_network=True)


class DiffError(DiffDetectError):
    """DiffError indicates two Snapshots could not be compared."""


class FeedParseError(DiffError):
    """FeedParseError indicates a Snapshot that does not hold a valid feed."""


class Granularity(Enum):
    """Granularity determines how finely changed lines are marked up."""

    Line = auto()
    Word = auto()


@dataclass(kw_only=True, slots=True, frozen=True)
class DiffOptions:
    """DiffOptions configures the line diff."""

    full_context: bool = True
    context_lines: int = 3
    ignore_line_ending: bool = True
    ignore_whitespace: bool = True
    granularity: Granularity = Granularity.Line


class RowType(Enum):
    """RowType tells whether a line was kept, removed or added."""

    Equal = " "
    Delete = "-"
    Insert = "+"

    @property
    def css(self) -> str:
        """Return the CSS class for rows of this type."""
        match self:
            case RowType.Equal:
                return "change-eq"
            case RowType.Delete:
                return "change-del"
            case RowType.Insert:
                return "change-ins"


@dataclass(kw_only=True, slots=True)
class DiffRow:
    """DiffRow is one line of a combined diff.

    For word granularity, segments holds the pieces of the line as
    (changed, text) pairs.
    """

    kind: RowType
    text: str
    old_no: Optional[int] = None
    new_no: Optional[int] = None
    segments: list[tuple[bool, str]] = field(default_factory=list)

    @property
    def string(self) -> str:
        """Return the row as a line of a unified diff."""
        return f"{self.kind.value}{self.text}"


class ChangeKind(Enum):
    """ChangeKind describes what happened to an item of a feed."""

    Added = auto()
    Changed = auto()
    Removed = auto()

    @property
    def string(self) -> str:
        """Return the uppercase name of the ChangeKind."""
        return self.name.upper()


@dataclass(kw_only=True, slots=True, frozen=True)
class FeedItem:
    """FeedItem is the part of a feed entry we compare."""

    key: str
    title: str = ""
    description: str = ""
    link: str = ""


@dataclass(kw_only=True, slots=True)
class FieldChange:
    """FieldChange is a single field of a FeedItem that differs between two Snapshots."""

    name: str
    before: str
    after: str
    rows: list[DiffRow] = field(default_factory=list)


@dataclass(kw_only=True, slots=True)
class ItemChange:
    """ItemChange describes one item that was added, removed or changed."""

    kind: ChangeKind
    item: FeedItem
    fields: list[FieldChange] = field(default_factory=list)


@dataclass(kw_only=True, slots=True)
class RenderedDiff:
    """RenderedDiff is the result of comparing two Snapshots."""

    rtype: ResourceType
    identical: bool
    html: str
    text: str
    rows: list[DiffRow] = field(default_factory=list)
    changes: list[ItemChange] = field(default_factory=list)

    def group(self, kind: ChangeKind) -> list[ItemChange]:
        """Return the changes of one kind, in the order they were found."""
        return [c for c in self.changes if c.kind == kind]


def _split(text: str, opts: DiffOptions) -> list[str]:
    if opts.ignore_line_ending:
        return text.splitlines()
    return text.split("\n")


def _normalize(line: str, opts: DiffOptions) -> str:
    if opts.ignore_whitespace:
        return "".join(line.split())
    return line


def _word_segments(old: str, new: str) -> tuple[list[tuple[bool, str]], list[tuple[bool, str]]]:
    """Mark the words that differ between two versions of a line."""
    ow: Final[list[str]] = word_pat.split(old)
    nw: Final[list[str]] = word_pat.split(new)
    oseg: list[tuple[bool, str]] = []
    nseg: list[tuple[bool, str]] = []
    sm = difflib.SequenceMatcher(None, ow, nw, autojunk=False)
    for tag, i1, i2, j1, j2 in sm.get_opcodes():
        same: bool = tag == "equal"
        if i2 > i1:
            oseg.append((not same, "".join(ow[i1:i2])))
        if j2 > j1:
            nseg.append((not same, "".join(nw[j1:j2])))
    return oseg, nseg


def line_diff(old: str, new: str, opts: Optional[DiffOptions] = None) -> list[DiffRow]:
    """Compare two texts line by line and return the rows of a combined diff.

    If the texts do not differ (after normalization), the result is empty.
    """
    if opts is None:
        opts = DiffOptions()

    olines: Final[list[str]] = _split(old, opts)
    nlines: Final[list[str]] = _split(new, opts)
    sm = difflib.SequenceMatcher(None,
                                 [_normalize(x, opts) for x in olines],
                                 [_normalize(x, opts) for x in nlines],
                                 autojunk=False)

    if all(op[0] == "equal" for op in sm.get_opcodes()):
        return []

    groups: list[list[tuple[str, int, int, int, int]]]
    if opts.full_context:
        groups = [sm.get_opcodes()]
    else:
        groups = list(sm.get_grouped_opcodes(opts.context_lines))

    rows: list[DiffRow] = []
    for grp in groups:
        for tag, i1, i2, j1, j2 in grp:
            if tag == "equal":
                for i, j in zip(range(i1, i2), range(j1, j2)):
                    rows.append(DiffRow(kind=RowType.Equal,
                                        text=nlines[j],
                                        old_no=i+1,
                                        new_no=j+1))
                continue

            dels = [DiffRow(kind=RowType.Delete, text=olines[i], old_no=i+1)
                    for i in range(i1, i2)]
            ins = [DiffRow(kind=RowType.Insert, text=nlines[j], new_no=j+1)
                   for j in range(j1, j2)]
            if tag == "replace" and opts.granularity == Granularity.Word:
                for d, n in zip(dels, ins):
                    d.segments, n.segments = _word_segments(d.text, n.text)
            rows.extend(dels)
            rows.extend(ins)

    return rows


def _plain(txt: str) -> str:
    """Strip the HTML from a piece of text."""
    if "<" not in txt:
        return txt
    soup = BeautifulSoup(txt, "html.parser")
    return soup.get_text()


class DiffEngine:
    """DiffEngine compares Snapshots and renders the result."""

    __slots__ = [
        "log",
        "opts",
        "env",
    ]

    log: logging.Logger
    opts: DiffOptions
    env: Environment

    def __init__(self, opts: Optional[DiffOptions] = None) -> None:
        self.log = common.get_logger("diff")
        self.opts = opts if opts is not None else DiffOptions()
        self.env = Environment(loader=FileSystemLoader(str(tmpl_root)),
                               autoescape=True)

    def diff(self, before: Snapshot, after: Snapshot, rtype: ResourceType) -> RenderedDiff:
        """Compare two Snapshots."""
        self.log.debug("Compare Snapshots %d and %d (%s)",
                       before.sid,
                       after.sid,
                       rtype.string)
        return self.diff_content(before.content, after.content, rtype)

    def diff_content(self, before: str, after: str, rtype: ResourceType) -> RenderedDiff:
        """Compare two versions of a Resource's content."""
        match rtype:
            case ResourceType.Generic:
                return self._diff_generic(before, after)
            case ResourceType.RSS:
                return self._diff_rss(before, after)
            case _:
                raise ValueError(f"Invalid ResourceType {rtype}")

    # Generic

    def _diff_generic(self, before: str, after: str) -> RenderedDiff:
        rows: Final[list[DiffRow]] = line_diff(before, after, self.opts)

        if len(rows) == 0:
            tmpl = self.env.get_template("diff_none.jinja")
            return RenderedDiff(rtype=ResourceType.Generic,
                                identical=True,
                                html=tmpl.render(content=after),
                                text=f"No differences.\n\n{after}")

        tmpl = self.env.get_template("diff_generic.jinja")
        text: Final[str] = "\n".join(r.string for r in rows)
        return RenderedDiff(rtype=ResourceType.Generic,
                            identical=False,
                            html=tmpl.render(rows=rows),
                            text=text,
                            rows=rows)

    # RSS

    def parse_feed(self, content: str) -> list[FeedItem]:
        """Parse a feed and return its items in the order they appear in."""
        if content.strip() == "":
            raise FeedParseError("Feed is empty")

        data: Final[bytes] = content.strip().encode("utf-8")
        if data.startswith(b"<"):
            # fastfeedparser recovers from broken XML, so truncated feeds
            # would come back with partial items.
            try:
                etree.fromstring(data, strict_parser)
            except etree.XMLSyntaxError as serr:
                msg = f"Feed is not well-formed XML: {serr}"
                self.log.info(msg)
                raise FeedParseError(msg) from serr

        try:
            feed = ffp.parse(data)
        except Exception as err:  # noqa: F841 # pylint: disable-msg=W0718
            cname: Final[str] = err.__class__.__name__
            msg = f"{cname} parsing feed: {err}"
            self.log.info(msg)
            raise FeedParseError(msg) from err

        items: list[FeedItem] = []
        for entry in feed.get("entries", []):
            title: str = entry.get("title") or ""
            link: str = entry.get("link") or ""
            key: str = entry.get("id") or link or title
            if key == "":
                self.log.info("Skipping feed entry without id, link or title")
                continue
            items.append(FeedItem(key=key,
                                  title=title.strip(),
                                  description=self._item_description(entry).strip(),
                                  link=link.strip()))
        return items

    def _item_description(self, entry) -> str:
        """Try to get a description/summary from an Atom/RSS item."""
        if entry.get("description"):
            return entry["description"]
        content = entry.get("content")
        if content:
            return content[0].get("value", "")
        return entry.get("summary") or ""

    def _index(self, items: list[FeedItem]) -> dict[str, FeedItem]:
        idx: dict[str, FeedItem] = {}
        for i in items:
            if i.key in idx:
                self.log.debug("Duplicate item %s in feed, keeping the first one", i.key)
                continue
            idx[i.key] = i
        return idx

    def _compare_items(self, old: FeedItem, new: FeedItem) -> list[FieldChange]:
        changes: list[FieldChange] = []
        for name in ("title", "description", "link"):
            ov: str = getattr(old, name)
            nv: str = getattr(new, name)
            if ov == nv:
                continue
            rows = line_diff(_plain(ov), _plain(nv), self.opts)
            changes.append(FieldChange(name=name, before=ov, after=nv, rows=rows))
        return changes

    def _diff_rss(self, before: str, after: str) -> RenderedDiff:
        old_items: Final[list[FeedItem]] = self.parse_feed(before)
        new_items: Final[list[FeedItem]] = self.parse_feed(after)
        old_idx: Final[dict[str, FeedItem]] = self._index(old_items)
        new_idx: Final[dict[str, FeedItem]] = self._index(new_items)

        added: list[ItemChange] = []
        changed: list[ItemChange] = []
        removed: list[ItemChange] = []

        for key, item in new_idx.items():
            if key not in old_idx:
                added.append(ItemChange(kind=ChangeKind.Added, item=item))
                continue
            fields = self._compare_items(old_idx[key], item)
            if len(fields) > 0:
                changed.append(ItemChange(kind=ChangeKind.Changed, item=item, fields=fields))

        for key, item in old_idx.items():
            if key not in new_idx:
                removed.append(ItemChange(kind=ChangeKind.Removed, item=item))

        changes: Final[list[ItemChange]] = added + changed + removed
        self.log.debug("Feed diff: %d added, %d changed, %d removed",
                       len(added),
                       len(changed),
                       len(removed))

        tmpl = self.env.get_template("diff_rss.jinja")
        html: Final[str] = tmpl.render(added=added,
                                       changed=changed,
                                       removed=removed)

        return RenderedDiff(rtype=ResourceType.RSS,
                            identical=len(changes) == 0,
                            html=html,
                            text=self._rss_text(changes),
                            changes=changes)

    @staticmethod
    def _rss_text(changes: list[ItemChange]) -> str:
        if len(changes) == 0:
            return "No differences."
        lines: list[str] = []
        for c in changes:
            lines.append(f"{c.kind.string:<8} {c.item.title} <{c.item.link}>")
            for f in c.fields:
                lines.append(f"    {f.name}:")
                lines.extend(f"      {r.string}" for r in f.rows if r.kind != RowType.Equal)
        return "\n".join(lines)


# Local Variables: #
# python-indent: 4 #
# End: #
