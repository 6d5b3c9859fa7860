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


import atexit

from mctestrunner import testcase
from mctestutils import errors
from mctestutils import registry as registrymod
from mctestutils.address import TcpPort, UnixPath
from mctestutils.registry import ProcessRegistry


class StubServer(object):
    def __init__(self, address, failure=None):
        self.address = address
        self.failure = failure
        self.stops = 0

    def stop(self):
        self.stops += 1
        if self.failure:
            raise self.failure


class ProcessRegistryTest(testcase.TestCase):

    def testAddGetPop(self):
        reg = ProcessRegistry()
        server = StubServer(TcpPort(1234))
        self.assertIs(reg.add(server), server)
        self.assertIn(TcpPort(1234), reg)
        self.assertNotIn(UnixPath('/tmp/x'), reg)
        self.assertIs(reg.get(TcpPort(1234)), server)
        self.assertEqual(len(reg), 1)
        self.assertEqual(list(reg), [TcpPort(1234)])
        self.assertIs(reg.pop(TcpPort(1234)), server)
        self.assertIs(reg.pop(TcpPort(1234)), None)
        self.assertEqual(server.stops, 0)

    def testOneServerPerAddress(self):
        reg = ProcessRegistry()
        reg.add(StubServer(TcpPort(1234)))
        self.assertRaises(errors.HarnessError, reg.add,
                StubServer(TcpPort(1234)))

    def testStop(self):
        reg = ProcessRegistry()
        server = reg.add(StubServer(UnixPath('/tmp/x')))
        self.assertTrue(reg.stop(UnixPath('/tmp/x')))
        self.assertFalse(reg.stop(UnixPath('/tmp/x')))
        self.assertEqual(server.stops, 1)
        self.assertEqual(len(reg), 0)

    def testStopLogsFailures(self):
        reg = ProcessRegistry()
        reg.add(StubServer(TcpPort(1234), failure=OSError(13, 'denied')))
        with self.capturedLogs() as logs:
            self.assertTrue(reg.stop(TcpPort(1234)))
        self.assertEqual([(x['log_level'], x['event']) for x in logs],
                [('warning', 'failed to stop server')])
        self.assertNotIn(TcpPort(1234), reg)

    def testStopAllStopsEachOnce(self):
        reg = ProcessRegistry()
        servers = [reg.add(StubServer(TcpPort(x))) for x in (1, 2, 3)]
        reg.stop(TcpPort(2))
        reg.stopAll()
        reg.stopAll()
        self.assertEqual([x.stops for x in servers], [1, 1, 1])

    def testStopAllIgnoredInForkedChild(self):
        reg = ProcessRegistry()
        server = reg.add(StubServer(TcpPort(1)))
        self.mock(registrymod.os, 'getpid', lambda: -1)
        reg.stopAll()
        self.assertEqual(server.stops, 0)

    def testShutdownHandlerInstalledOnce(self):
        registered = []
        self.mock(atexit, 'register', registered.append)
        reg = ProcessRegistry()
        reg.installShutdownHandler()
        reg.installShutdownHandler()
        self.assertEqual(registered, [reg.stopAll])
