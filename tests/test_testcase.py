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


import os

from mctestrunner import testcase
from mctestutils import log as logmod


class Parent(object):
    value = 'parent'

    @staticmethod
    def helper():
        return 'static'


class Child(Parent):
    pass


class MockMixInTest(testcase.TestCase):

    def testMockAndUnmock(self):
        self.mock(Parent, 'value', 'mocked')
        self.mock(Parent, 'helper', lambda: 'replaced')
        self.mock(Child, 'value', 'child')
        self.mock(os, 'mctestMissing', 1)
        self.assertEqual(Parent.value, 'mocked')
        self.assertEqual(Parent.helper(), 'replaced')
        self.assertEqual(Child.value, 'child')
        self.unmock()
        self.assertEqual(Parent.value, 'parent')
        self.assertEqual(Parent.helper(), 'static')
        # Inherited attributes are removed rather than copied down
        self.assertNotIn('value', Child.__dict__)
        self.assertFalse(hasattr(os, 'mctestMissing'))


class LogCheckTest(testcase.TestCase):

    def emit(self, port):
        log = logmod.getLogger('mctest')
        log.warning('server failed', port=port)
        log.info('retrying')
        return port

    def testLogCheck(self):
        rc = self.logCheck(self.emit, (1234,),
                [('warning', 'server failed'), ('info', 'retrying')])
        self.assertEqual(rc, 1234)

    def testLogCheckRegExp(self):
        self.logCheck(self.emit, (1,),
                [('warning', 'server'), ('info', 'retry.*')], regExp=True)

    def testLogCheckMismatch(self):
        self.assertRaises(self.failureException, self.logCheck, self.emit,
                (1,), [('info', 'retrying')])
