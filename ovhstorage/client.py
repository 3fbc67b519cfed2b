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

"""
OVH object storage client library
"""
import json
import logging
from urllib.parse import urlparse

import requests
from requests.exceptions import RequestException

from ovhstorage import version as ovhstorage_version
from ovhstorage.auth import STALE_DURATION, Token, TokenCache
from ovhstorage.exceptions import AuthError, ClientException, RequestError
from ovhstorage.utils import join_path, parse_listing

AUTH_URL = 'https://auth.cloud.ovh.net/v2.0/tokens'
STORAGE_HOST = 'storage.%s.cloud.ovh.net'

logger = logging.getLogger("ovhstorage")
logger.addHandler(logging.NullHandler())

#: Default behaviour is to redact header values known to contain secrets,
#: such as ``X-Auth-Token``. Up to the first 16 chars may be revealed.
#:
#: To disable, set the value of ``redact_sensitive_headers`` to ``False``.
#:
#: When header redaction is enabled, ``reveal_sensitive_prefix`` configures the
#: maximum length of any sensitive header data sent to the logs. If the header
#: is less than twice this length, only ``int(len(value)/2)`` chars will be
#: logged; if it is less than 15 chars long, even less will be logged.
logger_settings = {
    'redact_sensitive_headers': True,
    'reveal_sensitive_prefix': 16
}
#: A list of sensitive headers to redact in logs. Note that when extending this
#: list, the header names must be added in all lower case.
LOGGER_SENSITIVE_HEADERS = [
    'x-auth-token', 'x-auth-key', 'x-service-token', 'x-storage-token',
    'x-subject-token', 'set-cookie'
]


def safe_value(name, value):
    """
    Only show up to logger_settings['reveal_sensitive_prefix'] characters
    from a sensitive header.

    :param name: Header name
    :param value: Header value
    :return: Safe header value
    """
    if name.lower() in LOGGER_SENSITIVE_HEADERS:
        prefix_length = logger_settings.get('reveal_sensitive_prefix', 16)
        prefix_length = int(
            min(prefix_length, (len(value) ** 2) / 32, len(value) / 2)
        )
        return value[0:prefix_length] + '...'
    return value


def scrub_headers(headers):
    """
    Redact header values that can contain sensitive information that
    should not be logged.

    :param headers: Either a dict or an iterable of two-element tuples
    :return: Safe dictionary of headers with sensitive information removed
    """
    if hasattr(headers, 'items'):
        headers = headers.items()
    headers = [(str(key), str(val)) for (key, val) in headers]
    if not logger_settings.get('redact_sensitive_headers', True):
        return dict(headers)
    if logger_settings.get('reveal_sensitive_prefix', 16) < 0:
        logger_settings['reveal_sensitive_prefix'] = 16
    return {key: safe_value(key, val) for (key, val) in headers}


def http_log(url, method, headers, resp, body):
    """
    Log an HTTP exchange as the equivalent curl command and its response.

    Successful exchanges are logged at debug level, others at info level.
    Pass ``body=None`` to keep the response body out of the logs.
    """
    if not logger.isEnabledFor(logging.INFO):
        return

    string_parts = ['curl -i', ' %s' % url]
    if method == 'HEAD':
        string_parts.append(' -I')
    else:
        string_parts.append(' -X %s' % method)
    if headers:
        safe_headers = scrub_headers(headers)
        for element in safe_headers:
            string_parts.append(' -H "%s: %s"' % (element,
                                                  safe_headers[element]))

    if resp.status_code < 300:
        log_method = logger.debug
    else:
        log_method = logger.info

    log_method("REQ: %s", "".join(string_parts))
    log_method("RESP STATUS: %s %s", resp.status_code, resp.reason)
    log_method("RESP HEADERS: %s", scrub_headers(resp.headers))
    if body:
        if isinstance(body, bytes):
            body = body.decode('utf-8', 'replace')
        log_method("RESP BODY: %s", body)


def resp_header_dict(resp):
    """:returns: the response headers as a dict with lower case names"""
    return {header.lower(): value for header, value in resp.headers.items()}


def storage_url(region, tenant_id, container, obj=''):
    """
    Build the address of a container, or of an object inside it.

    The object name is path-joined to the container URL: duplicate slashes
    are collapsed but nothing is URL-quoted.

    >>> storage_url('GRA1', 'abc', 'mybucket', 'a/b.txt')
    'https://storage.gra1.cloud.ovh.net/v1/AUTH_abc/mybucket/a/b.txt'
    """
    base = '%s/v1/AUTH_%s/%s' % (STORAGE_HOST % region.lower(), tenant_id,
                                 container)
    return 'https://' + join_path(base, obj)


class HTTPConnection:
    def __init__(self, url, cacert=None, insecure=False,
                 default_user_agent=None, timeout=None):
        """
        Make a requests backed connection to a single host

        :param url: url to connect to
        :param cacert: A CA bundle file to use in verifying a TLS server
                       certificate.
        :param insecure: Allow to access servers without checking SSL certs.
                         The server's certificate will not be verified.
        :param default_user_agent: Set the User-Agent header on every request.
                                   If set to None (default), the user agent
                                   will be "python-ovhstorage-<version>". This
                                   may be overridden on a per-request basis by
                                   explicitly setting the user-agent header on
                                   a call to request().
        :param timeout: socket timeout value, passed directly to
                        the requests library.
        :raises ClientException: Unable to handle protocol scheme
        """
        self.url = url
        self.parsed_url = urlparse(url)
        self.host = self.parsed_url.netloc
        self.requests_args = {}
        self.request_session = requests.Session()
        # Don't use requests's default headers
        self.request_session.headers = None
        self.resp = None
        if self.parsed_url.scheme not in ('http', 'https'):
            raise ClientException('Unsupported scheme "%s" in url "%s"'
                                  % (self.parsed_url.scheme, url))
        self.requests_args['verify'] = not insecure
        if cacert and not insecure:
            self.requests_args['verify'] = cacert
        if default_user_agent is None:
            default_user_agent = \
                'python-ovhstorage-%s' % ovhstorage_version.version_string
        self.default_user_agent = default_user_agent
        if timeout:
            self.requests_args['timeout'] = timeout

    def _request(self, *arg, **kwarg):
        """Final wrapper before requests call, to be patched in tests"""
        return self.request_session.request(*arg, **kwarg)

    def request(self, method, full_path, data=None, headers=None):
        """Fill in the default headers, then call requests"""
        headers = dict(headers or {})

        # set a default User-Agent header if it wasn't passed in
        if not any(key.lower() == 'user-agent' for key in headers):
            headers['User-Agent'] = self.default_user_agent
        url = "%s://%s%s" % (
            self.parsed_url.scheme,
            self.parsed_url.netloc,
            full_path)
        self.resp = self._request(method, url, headers=headers, data=data,
                                  **self.requests_args)
        return self.resp

    def close(self):
        if self.resp is not None:
            self.resp.close()
        self.request_session.close()


def http_connection(*arg, **kwarg):
    """:returns: tuple of (parsed url, connection object)"""
    conn = HTTPConnection(*arg, **kwarg)
    return conn.parsed_url, conn


def get_auth_v2(auth_url, username, password, tenant_id, **kwargs):
    """
    Exchange credentials for a token with a Keystone v2.0 endpoint.

    The token request and response bodies are never logged since they
    carry the password and the token.

    :param auth_url: full URL of the tokens resource
    :param username: OpenStack user name
    :param password: password for the user
    :param tenant_id: tenant the token is scoped to
    :kwarg cacert, insecure, timeout, default_user_agent: see HTTPConnection
    :returns: a :class:`~ovhstorage.auth.Token`
    :raises AuthError: the request failed, was refused, or the response
                       did not hold a usable token
    """
    parsed, conn = http_connection(
        auth_url,
        cacert=kwargs.get('cacert'),
        insecure=kwargs.get('insecure', False),
        default_user_agent=kwargs.get('default_user_agent'),
        timeout=kwargs.get('timeout'))
    method = 'POST'
    headers = {'Content-Type': 'application/json'}
    payload = json.dumps({
        'auth': {
            'passwordCredentials': {
                'username': username,
                'password': password,
            },
            'tenantId': tenant_id,
        },
    })
    try:
        resp = conn.request(method, parsed.path, payload, headers)
        body = resp.content
    except RequestException as err:
        raise AuthError('Token request failed: %s' % err) from err
    finally:
        conn.close()
    http_log(auth_url, method, headers, resp, None)

    if resp.status_code != 200:
        raise AuthError.from_response(resp, 'Token request failed', body)
    try:
        return Token.from_access(json.loads(body))
    except ValueError as err:
        raise AuthError.from_response(
            resp, 'Invalid token response: %s' % err, '')


def get_container(url, token, http_conn=None, headers=None):
    """
    Get a listing of objects for the container.

    :param url: container URL
    :param token: auth token
    :param http_conn: a tuple of (parsed url, HTTPConnection object),
                      (If None, it will create the conn object)
    :param headers: additional headers to include in the request
    :returns: a tuple of (response headers, a list of object names) The
              response headers will be a dict and all header names will be
              lowercase.
    :raises RequestError: HTTP GET request failed
    """
    close_conn = False
    if http_conn:
        parsed, conn = http_conn
    else:
        parsed, conn = http_connection(url)
        close_conn = True
    path = parsed.path
    req_headers = dict(headers or {})
    req_headers['X-Auth-Token'] = token
    method = 'GET'
    resp = conn.request(method, path, None, req_headers)
    body = resp.content
    if close_conn:
        conn.close()
    http_log(resp.request.url, method, req_headers, resp, body)

    if resp.status_code not in (200, 204):
        raise RequestError.from_response(resp, 'Container GET failed', body)
    return resp_header_dict(resp), parse_listing(body)


def head_object(url, token, name, http_conn=None, headers=None):
    """
    Get object info

    :param url: container URL
    :param token: auth token
    :param name: object name to get info for
    :param http_conn: a tuple of (parsed url, HTTPConnection object),
                      (If None, it will create the conn object)
    :param headers: additional headers to include in the request
    :returns: a dict containing the response's headers (all header names will
              be lowercase), or None if the object does not exist
    :raises RequestError: HTTP HEAD request failed
    """
    close_conn = False
    if http_conn:
        parsed, conn = http_conn
    else:
        parsed, conn = http_connection(url)
        close_conn = True
    path = join_path(parsed.path, name)
    req_headers = dict(headers or {})
    req_headers['X-Auth-Token'] = token
    method = 'HEAD'
    resp = conn.request(method, path, None, req_headers)
    body = resp.content
    if close_conn:
        conn.close()
    http_log(resp.request.url, method, req_headers, resp, body)

    if resp.status_code == 404:
        return None
    if resp.status_code != 200:
        raise RequestError.from_response(resp, 'Object HEAD failed', body)
    return resp_header_dict(resp)


def put_object(url, token, name, contents=None, content_type=None,
               http_conn=None, headers=None):
    """
    Put an object

    :param url: container URL
    :param token: auth token
    :param name: object name to put
    :param contents: bytes, a string, a file-like object or an iterable
                     to read object data from; strings are sent UTF-8
                     encoded; if None, a zero-byte put will be done
    :param content_type: value to send as content-type header, overriding any
                         value included in the headers param
    :param http_conn: a tuple of (parsed url, HTTPConnection object),
                      (If None, it will create the conn object)
    :param headers: additional headers to include in the request, if any
    :returns: etag
    :raises RequestError: HTTP PUT request failed
    """
    close_conn = False
    if http_conn:
        parsed, conn = http_conn
    else:
        parsed, conn = http_connection(url)
        close_conn = True
    path = join_path(parsed.path, name)
    req_headers = dict(headers or {})
    req_headers['X-Auth-Token'] = token
    if content_type is not None:
        for key in [k for k in req_headers if k.lower() == 'content-type']:
            del req_headers[key]
        req_headers['Content-Type'] = content_type
    if isinstance(contents, str):
        contents = contents.encode('utf-8')
    if contents is None:
        contents = b''
    method = 'PUT'
    resp = conn.request(method, path, contents, req_headers)
    body = resp.content
    if close_conn:
        conn.close()
    http_log(resp.request.url, method, req_headers, resp, body)

    if resp.status_code != 201:
        raise RequestError.from_response(resp, 'Object PUT failed', body)
    return resp.headers.get('etag', '').strip('"')


def delete_object(url, token, name, http_conn=None, headers=None):
    """
    Delete object

    Deleting an object that does not exist is not an error.

    :param url: container URL
    :param token: auth token
    :param name: object name to delete
    :param http_conn: a tuple of (parsed url, HTTPConnection object),
                      (If None, it will create the conn object)
    :param headers: additional headers to include in the request
    :raises RequestError: HTTP DELETE request failed
    """
    close_conn = False
    if http_conn:
        parsed, conn = http_conn
    else:
        parsed, conn = http_connection(url)
        close_conn = True
    path = join_path(parsed.path, name)
    req_headers = dict(headers or {})
    req_headers['X-Auth-Token'] = token
    method = 'DELETE'
    resp = conn.request(method, path, None, req_headers)
    body = resp.content
    if close_conn:
        conn.close()
    http_log(resp.request.url, method, req_headers, resp, body)

    if resp.status_code not in (204, 404):
        raise RequestError.from_response(resp, 'Object DELETE failed', body)


class Client:

    """
    OVH object storage client bound to a single container.

    Requests carry an X-Auth-Token header whose value is obtained from the
    auth service with the credentials given to the constructor. The token
    is cached and only renewed once it gets within ``stale_duration``
    seconds of its expiry.
    """

    def __init__(self, region=None, container=None, tenant_id=None,
                 username=None, password=None, auth_url=AUTH_URL,
                 timeout=None, insecure=False, cacert=None,
                 default_user_agent=None, stale_duration=STALE_DURATION):
        """
        :param region: storage region, e.g. BHS1, GRA1 or SBG1
        :param container: name of the container to work with
        :param tenant_id: tenant id, the AUTH_<tenant_id> part of the
                          container URL without the AUTH_ prefix
        :param username: OpenStack user name
        :param password: password for the user
        :param auth_url: Keystone v2.0 tokens URL
        :param timeout: timeout for HTTP requests, passed to requests
        :param insecure: Allow to access servers without checking SSL certs.
        :param cacert: A CA bundle file to use in verifying TLS certificates.
        :param default_user_agent: User-Agent header to send
        :param stale_duration: seconds before expiry at which a cached token
                               is renewed
        """
        for name, value in (('region', region), ('container', container),
                            ('tenant_id', tenant_id), ('username', username),
                            ('password', password)):
            if not value:
                raise ValueError('%s is required' % name)
        self.region = region
        self.container = container
        self.tenant_id = tenant_id
        self.username = username
        self.password = password
        self.auth_url = auth_url
        self.timeout = timeout
        self.insecure = insecure
        self.cacert = cacert
        self.default_user_agent = default_user_agent
        self.token_cache = TokenCache(self.get_auth, stale_duration)
        self.http_conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def close(self):
        if self.http_conn:
            conn = self.http_conn[1]
            conn.close()
            self.http_conn = None

    def get_auth(self):
        return get_auth_v2(self.auth_url, self.username, self.password,
                           self.tenant_id,
                           cacert=self.cacert,
                           insecure=self.insecure,
                           default_user_agent=self.default_user_agent,
                           timeout=self.timeout)

    def get_token(self):
        """
        :returns: a token id that is good for at least ``stale_duration``
        :raises AuthError: a new token was needed and could not be obtained
        """
        return self.token_cache.get_token()

    def http_connection(self):
        return http_connection(self.url(),
                               cacert=self.cacert,
                               insecure=self.insecure,
                               default_user_agent=self.default_user_agent,
                               timeout=self.timeout)

    def url(self, obj=''):
        """:returns: the full address of obj, or of the container"""
        return storage_url(self.region, self.tenant_id, self.container, obj)

    def _call(self, func, *args, **kwargs):
        token = self.get_token()
        if not self.http_conn:
            self.http_conn = self.http_connection()
        kwargs['http_conn'] = self.http_conn
        try:
            return func(self.url(), token, *args, **kwargs)
        except RequestError as err:
            if err.http_status == 401:
                # the next call asks for a new token
                self.token_cache.invalidate()
            raise

    def ping(self, headers=None):
        """Check the credentials give access to the container."""
        self._call(get_container, headers=headers)

    def list(self, headers=None):
        """:returns: names of all objects in the container"""
        return self._call(get_container, headers=headers)[1]

    def exists(self, obj, headers=None):
        """:returns: whether obj is in the container"""
        return self._call(head_object, obj, headers=headers) is not None

    def upload(self, obj, contents, content_type=None, headers=None):
        """Wrapper for :func:`put_object`"""
        return self._call(put_object, obj, contents,
                          content_type=content_type, headers=headers)

    def upload_if_new(self, obj, contents, content_type=None, headers=None):
        """
        Upload obj unless the container already holds it.

        :returns: True if the object was uploaded
        """
        if self.exists(obj, headers=headers):
            logger.debug('%s already exists, skipping upload', obj)
            return False
        self.upload(obj, contents, content_type=content_type, headers=headers)
        return True

    def delete(self, obj, headers=None):
        """Wrapper for :func:`delete_object`"""
        self._call(delete_object, obj, headers=headers)
