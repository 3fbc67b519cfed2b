# Copyright 2016 OpenStack Foundation
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
# implied. See the License for the specific language governing
# permissions and limitations under the License.

"""
Token handling for the OVH object storage client.

OVH hands out tokens from a Keystone v2.0 endpoint. A token request and
response look something like::

   > POST /v2.0/tokens HTTP/1.1
   > Host: auth.cloud.ovh.net
   > Content-Type: application/json
   >
   > {"auth": {"passwordCredentials": {"username": "<user>",
   >           "password": "<password>"}, "tenantId": "<tenant>"}}
   >
   < HTTP/1.1 200 OK
   < Content-Type: application/json
   <
   < {"access": {"token": {"id": "<token>",
   <                       "expires": "2016-01-21T16:16:47Z"}, ...}}

Tokens are cached by a :class:`TokenCache` and reused until they get close
to their expiry.
"""

import datetime
import logging
import threading
import time

from ovhstorage.utils import parse_rfc3339

#: Seconds before expiry at which a cached token is no longer handed out.
STALE_DURATION = 300

logger = logging.getLogger("ovhstorage")


class Token:
    """An auth token id together with its expiry."""

    def __init__(self, token_id, expires):
        self.id = token_id
        self.expires = expires

    @property
    def expires_at(self):
        return datetime.datetime.fromtimestamp(self.expires,
                                               datetime.timezone.utc)

    def will_expire_soon(self, stale_duration):
        """Determines if expiration is about to occur.

        :returns: true if expiration is within the given duration
        """
        return time.time() + stale_duration >= self.expires

    @classmethod
    def from_access(cls, data):
        """Build a token from a decoded Keystone v2.0 token response.

        :raises ValueError: the response holds no usable token
        """
        try:
            token = data['access']['token']
            token_id = token['id']
            expires = token['expires']
        except (KeyError, TypeError):
            raise ValueError('no token in response')
        if not token_id or not isinstance(token_id, str):
            raise ValueError('token id is missing')
        return cls(token_id, parse_rfc3339(expires))

    def __repr__(self):
        return '%s(expires=%s)' % (self.__class__.__name__,
                                   self.expires_at.isoformat())


class TokenCache:
    """
    Holds the current token and renews it when needed.

    The check and the renewal happen under a lock, so a cache shared by
    several threads requests at most one new token at a time.

    :param fetch_token: callable returning a new :class:`Token`
    :param stale_duration: seconds before expiry at which the cached token
                           is renewed
    """

    def __init__(self, fetch_token, stale_duration=STALE_DURATION):
        self.fetch_token = fetch_token
        self.stale_duration = stale_duration
        self.token = None
        self._lock = threading.Lock()

    def get_token(self):
        with self._lock:
            if self.token is not None and \
                    not self.token.will_expire_soon(self.stale_duration):
                return self.token.id
            token = self.fetch_token()
            logger.debug('Got a new token, expiring at %s',
                         token.expires_at.isoformat())
            self.token = token
            return token.id

    def invalidate(self):
        with self._lock:
            self.token = None
