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


from mctestrunner import testcase
from mctestutils.address import LaunchSpec, TcpPort, UnixPath, parseAddress


class AddressTest(testcase.TestCase):

    def testParseAddress(self):
        self.assertEqual(parseAddress(21345), TcpPort(21345))
        self.assertEqual(parseAddress('21345'), TcpPort(21345))
        self.assertEqual(parseAddress('/tmp/mc.sock'), UnixPath('/tmp/mc.sock'))
        addr = UnixPath('/tmp/mc.sock')
        self.assertIs(parseAddress(addr), addr)
        self.assertRaises(TypeError, parseAddress, 1.5)
        self.assertRaises(TypeError, parseAddress, True)
        self.assertRaises(ValueError, parseAddress, 0)
        self.assertRaises(ValueError, parseAddress, 70000)

    def testVariantsNeverCompareEqual(self):
        self.assertNotEqual(TcpPort(1), UnixPath('1'))
        self.assertEqual(len(set([TcpPort(1), UnixPath('1'), TcpPort(1)])), 2)

    def testTcpEndpointsAreTwoAliases(self):
        endpoints = TcpPort(21345).getEndpoints()
        self.assertEqual(endpoints, ['localhost:21345', '127.0.0.1:21345'])
        self.assertEqual(set(x.split(':')[1] for x in endpoints), set(['21345']))

    def testUnixEndpointIsThePath(self):
        self.assertEqual(UnixPath('/tmp/mc.sock').getEndpoints(),
                ['/tmp/mc.sock'])


class LaunchSpecTest(testcase.TestCase):

    def testTcpArgs(self):
        spec = LaunchSpec(21345, '-S -vv')
        self.assertEqual(spec.getArgs('/usr/bin/memcached'),
                ['/usr/bin/memcached', '-S', '-vv', '-p', '21345'])

    def testUnixArgs(self):
        spec = LaunchSpec('/tmp/mc.sock')
        self.assertEqual(spec.getArgs('memcached'),
                ['memcached', '-s', '/tmp/mc.sock'])

    def testQuotedExtraArgs(self):
        spec = LaunchSpec(1234, "-o 'slab_reassign, lru_crawler'")
        self.assertEqual(spec.getArgs('memcached')[1:3],
                ['-o', 'slab_reassign, lru_crawler'])

    def testImmutable(self):
        env = {'A': '1'}
        spec = LaunchSpec(1234, '', env)
        env['A'] = '2'
        self.assertEqual(spec.getEnviron(), {'A': '1'})
        self.assertRaises(AttributeError, setattr, spec, 'extraArgs', '-S')
        self.assertEqual(spec, LaunchSpec(TcpPort(1234), '', {'A': '1'}))
