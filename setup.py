#!/usr/bin/python
# -*- encoding: utf-8 -*-
# Copyright (c) 2010 OpenStack, LLC.
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

import os
import setuptools

name = 'python-ovhstorage'


def read(fname):
    with open(os.path.join(os.path.dirname(__file__), fname)) as f:
        return f.read()


def parse_requirements(fname):
    return [line.strip() for line in read(fname).splitlines()
            if line.strip() and not line.startswith('#')]


def get_version():
    namespace = {}
    exec(read(os.path.join('ovhstorage', 'version.py')), namespace)
    return namespace['version_string']


setuptools.setup(
    name=name,
    version=get_version(),
    description='Client Library for OVH Object Storage',
    long_description=read('README.rst'),
    license='Apache License (2.0)',
    packages=setuptools.find_packages(exclude=['test', 'test.*']),
    install_requires=parse_requirements('requirements.txt'),
    extras_require={
        'test': parse_requirements('test-requirements.txt'),
    },
    python_requires='>=3.7',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: No Input/Output (Daemon)',
        'Intended Audience :: Developers',
        'Intended Audience :: Information Technology',
        'License :: OSI Approved :: Apache Software License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
    ],
)
