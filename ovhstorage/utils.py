# Copyright (c) 2010-2012 OpenStack, LLC.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or
# implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Miscellaneous utility functions for use with OVH object storage."""
import datetime
import posixpath
import re

RFC3339_PATTERN = re.compile(
    r'^(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(\.\d+)?'
    r'([Zz]|[+-]\d{2}:\d{2})$')
TIME_ERRMSG = 'timestamp must be in RFC 3339 format, got %r'


def parse_rfc3339(value):
    """
    Parse an RFC 3339 timestamp into a UNIX timestamp.

    Only fully qualified timestamps are accepted: the UTC designator ``Z``
    or a numeric offset is required. Fractional seconds are kept.

    :param value: timestamp string, e.g. ``2016-01-21T16:16:47Z``
    :raises ValueError: if the value is not an RFC 3339 timestamp
    :return: float seconds since the epoch
    """
    if not isinstance(value, str):
        raise ValueError(TIME_ERRMSG % (value,))
    match = RFC3339_PATTERN.match(value)
    if not match:
        raise ValueError(TIME_ERRMSG % (value,))
    year, month, day, hour, minute, second = (
        int(part) for part in match.groups()[:6])
    fraction, offset = match.group(7), match.group(8)

    if offset in ('Z', 'z'):
        tz = datetime.timezone.utc
    else:
        sign = -1 if offset[0] == '-' else 1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        if hours > 23 or minutes > 59:
            raise ValueError(TIME_ERRMSG % (value,))
        tz = datetime.timezone(
            sign * datetime.timedelta(hours=hours, minutes=minutes))

    try:
        dt = datetime.datetime(year, month, day, hour, minute, second,
                               tzinfo=tz)
    except ValueError:
        raise ValueError(TIME_ERRMSG % (value,))
    timestamp = dt.timestamp()
    if fraction:
        timestamp += float(fraction)
    return timestamp


def join_path(*parts):
    """
    Join path segments and clean the result.

    Duplicate slashes, ``.`` and ``..`` segments and a trailing slash are
    removed. Nothing is URL-quoted.
    """
    joined = '/'.join(part for part in parts if part)
    if not joined:
        return ''
    return posixpath.normpath(joined)


def parse_listing(body):
    """
    Split a plain text container listing into object names.

    :param body: the response body, bytes or str
    :return: list of names in server order; an empty body gives ``[]``
    """
    if isinstance(body, bytes):
        body = body.decode('utf-8')
    if not body:
        return []
    lines = body.split('\n')
    if lines[-1] == '':
        lines.pop()
    return [line[:-1] if line.endswith('\r') else line for line in lines]
