# -*- encoding: utf-8 -*-
"""
OVH object storage Python client binding.
"""
from ovhstorage.client import *  # noqa: F401,F403
from ovhstorage.exceptions import (  # noqa: F401
    AuthError, ClientException, RequestError)
from ovhstorage.version import version_string as __version__  # noqa: F401
