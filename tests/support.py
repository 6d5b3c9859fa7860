#
# Copyright (c) SAS Institute Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#


"""
Stand-ins for the memcached binary and client used by the harness tests.
"""

import os
import stat

from mctestrunner import testcase
from mctestutils.config import HarnessConfig
from mctestutils.harness import MemcachedHarness
from mctestutils.locator import BinaryLocator
from mctestutils.registry import ProcessRegistry

FAKE_NAME = 'mctest-memcached'

FAKE_MEMCACHED = """\
#!/bin/sh
if [ "$1" = "-h" ]; then
    echo "memcached %(version)s"
    echo "-p, --port=<num>          TCP port to listen on"
    exit 0
fi
if [ -n "$FAKE_MEMCACHED_LOG" ]; then
    echo "$*" >> "$FAKE_MEMCACHED_LOG"
fi
if [ -n "$FAKE_MEMCACHED_EXIT" ]; then
    echo "failed to listen on $*" >&2
    exit "$FAKE_MEMCACHED_EXIT"
fi
exec sleep 60
"""


def writeFakeMemcached(directory, version='1.6.21', name=FAKE_NAME):
    """
    Install a shell script named C{name} in C{directory} that reports
    C{version} for C{-h} and otherwise sleeps like a running server.
    """
    if not os.path.isdir(directory):
        os.makedirs(directory)
    path = os.path.join(directory, name)
    with open(path, 'w') as fobj:
        fobj.write(FAKE_MEMCACHED % dict(version=version))
    os.chmod(path, stat.S_IRWXU)
    return path


class FakeClient(object):
    def __init__(self, servers, flushResult=True, **options):
        self.servers = servers
        self.options = options
        self.flushResult = flushResult
        self.flushes = 0

    def flush_all(self, time=0):
        self.flushes += 1
        return self.flushResult


class FakeClientFactory(object):
    """
    Build L{FakeClient}s, raising C{failures[n]} for the n-th call when it
    is not C{None}.
    """

    def __init__(self, failures=(), flushResult=True):
        self.failures = list(failures)
        self.flushResult = flushResult
        self.clients = []
        self.calls = 0

    def __call__(self, servers, **options):
        call = self.calls
        self.calls += 1
        if call < len(self.failures) and self.failures[call] is not None:
            raise self.failures[call]
        client = FakeClient(servers, flushResult=self.flushResult, **options)
        self.clients.append(client)
        return client


class HarnessTestCase(testcase.TestCaseWithWorkDir):
    testDirName = 'mct-'
    settleTime = 0.2

    def setUp(self):
        testcase.TestCaseWithWorkDir.setUp(self)
        self.binDir = self.workPath('bin')
        writeFakeMemcached(self.binDir)
        self.spawnLog = self.workPath('spawn.log')
        self.cfg = HarnessConfig(binaryName=FAKE_NAME,
                searchPaths=[self.binDir],
                settleTime=self.settleTime,
                stopTimeout=2,
                )
        self.registry = ProcessRegistry()
        self.clientFactory = FakeClientFactory()
        self.harness = self.makeHarness()

    def tearDown(self):
        self.registry.stopAll()
        testcase.TestCaseWithWorkDir.tearDown(self)

    def makeHarness(self, cfg=None, clientFactory=None):
        cfg = cfg or self.cfg
        return MemcachedHarness(cfg,
                registry=self.registry,
                locator=BinaryLocator.fromConfig(cfg),
                clientFactory=clientFactory or self.clientFactory,
                )

    def spawnEnv(self, **extra):
        env = {'FAKE_MEMCACHED_LOG': self.spawnLog}
        env.update(extra)
        return env

    def getSpawns(self):
        if not os.path.exists(self.spawnLog):
            return []
        with open(self.spawnLog) as fobj:
            return [x.strip() for x in fobj]

    def assertRunning(self, pid):
        # Signal 0 only checks the process exists
        os.kill(pid, 0)
