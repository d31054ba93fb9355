# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 11:36:50 krylon>
#
# /data/code/python/diffdetect/src/diffdetect/__init__.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DiffDetect website monitor. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
diffdetect

(c) 2026 Benjamin Walkenhorst

DiffDetect periodically fetches web pages and RSS feeds, keeps every
version it sees, and shows what changed between any two of them.
"""
