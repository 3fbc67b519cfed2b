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

import json
import unittest
from unittest import mock

from requests.structures import CaseInsensitiveDict
from urllib.parse import urlparse

from ovhstorage import client as c

AUTH_EXPIRES = '2016-01-21T16:16:47Z'
#: UNIX time of AUTH_EXPIRES
AUTH_EXPIRES_TS = 1453393007


def auth_body(token='token', expires=AUTH_EXPIRES):
    return json.dumps({
        'access': {
            'token': {
                'id': token,
                'expires': expires,
                'tenant': {'id': 'tenant', 'name': 'tenant'},
            },
            'serviceCatalog': [],
        },
    }).encode('utf-8')


class StubResponse(object):
    """
    Placeholder structure for use with fake_http_connect's code_iter to modify
    response attributes (status, body, headers) on a per-request basis.
    """

    def __init__(self, status=200, body=b'', headers=None):
        self.status = status
        self.body = body
        self.headers = headers or {}

    def __repr__(self):
        return '%s(%r, %r, %r)' % (self.__class__.__name__, self.status,
                                   self.body, self.headers)


class FakeRequest(object):

    def __init__(self, method, url):
        self.method = method
        self.url = url


class FakeResponse(object):
    """Just enough of requests.Response for the client code."""

    def __init__(self, status, body=b'', headers=None):
        self.status_code = status
        self.reason = 'Fake'
        if isinstance(body, str):
            body = body.encode('utf-8')
        self.content = body
        self.headers = CaseInsensitiveDict(headers or {})
        self.request = None
        self.closed = False

    def close(self):
        self.closed = True


def fake_http_connect(*code_iter):
    """
    Generate a callable which yields a series of stubbed responses, one per
    request. Items are status codes, StubResponse instances, or exceptions
    to raise in place of a response.
    """
    code_iter = iter(code_iter)

    def connect():
        status = next(code_iter)
        if isinstance(status, BaseException):
            raise status
        if isinstance(status, StubResponse):
            return FakeResponse(status.status, body=status.body,
                                headers=status.headers)
        return FakeResponse(status)

    connect.code_iter = code_iter
    return connect


class MockHttpTest(unittest.TestCase):

    def setUp(self):
        super(MockHttpTest, self).setUp()
        self.fake_connect = None
        self.request_log = []

    def fake_http_connection(self, *code_iter):
        """
        Answer every request made through HTTPConnection with the next item
        of code_iter, and record the request.
        """
        self.validateMockedRequestsConsumed()
        self.request_log = []
        self.fake_connect = fake_http_connect(*code_iter)

        def _request(conn, method, url, headers=None, data=None, **kwargs):
            try:
                resp = self.fake_connect()
            except StopIteration:
                self.fail('Unexpected %s request for %s' % (method, url))
            except BaseException:
                self.request_log.append((method, url, data, headers, kwargs,
                                         None))
                raise
            resp.request = FakeRequest(method, url)
            self.request_log.append((method, url, data, headers, kwargs,
                                     resp))
            return resp

        patcher = mock.patch.object(c.HTTPConnection, '_request', _request)
        patcher.start()
        self.addCleanup(patcher.stop)

    def iter_request_log(self):
        for method, url, data, headers, kwargs, resp in self.request_log:
            yield {
                'method': method,
                'full_path': url,
                'path': urlparse(url).path,
                'body': data,
                'headers': CaseInsensitiveDict(headers or {}),
                'kwargs': kwargs,
                'resp': resp,
            }

    def assert_request_equal(self, expected, real_request):
        method, path = expected[:2]
        if urlparse(path).scheme:
            match_path = real_request['full_path']
        else:
            match_path = real_request['path']
        self.assertEqual((method, path), (real_request['method'],
                                          match_path))
        if len(expected) > 2:
            body = expected[2]
            err_msg = 'Body mismatch for %s %s, expected %r, and got %r' % (
                method, path, body, real_request['body'])
            self.assertEqual(body, real_request['body'], err_msg)

        if len(expected) > 3:
            # only the listed headers are checked
            for key, value in CaseInsensitiveDict(expected[3]).items():
                err_msg = (
                    'Header mismatch on %r, expected %r and got %r '
                    'for %s %s' % (key, value,
                                   real_request['headers'].get(key),
                                   method, path))
                self.assertEqual(value, real_request['headers'].get(key),
                                 err_msg)

    def assertRequests(self, expected_requests):
        """
        Make sure some requests were made like you expected, provide a list of
        expected requests, typically in the form of [(method, path), ...]
        or [(method, path, body, headers), ...]
        """
        real_requests = self.iter_request_log()
        for expected in expected_requests:
            try:
                real_request = next(real_requests)
            except StopIteration:
                self.fail('Expected request %r was not made' % (expected,))
            self.assert_request_equal(expected, real_request)
        try:
            real_request = next(real_requests)
        except StopIteration:
            pass
        else:
            self.fail('At least one extra request received: %r' %
                      real_request)

    def validateMockedRequestsConsumed(self):
        if not self.fake_connect:
            return
        unused_responses = list(self.fake_connect.code_iter)
        if unused_responses:
            self.fail('Unused responses %r' % (unused_responses,))

    def tearDown(self):
        self.validateMockedRequestsConsumed()
        super(MockHttpTest, self).tearDown()
