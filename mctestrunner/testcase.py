#
# Copyright (c) rPath, Inc.
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN
# THE SOFTWARE.
#


import inspect
import os
import re
import shutil
import tempfile
import unittest

from structlog.testing import capture_logs


class MockMixIn(object):
    def mock(self, parent, selector, replacement):
        if not hasattr(self, 'mockObjects'):
            self.mockObjects = []
        # Extract the current value
        if not hasattr(parent, selector):
            # No current value
            currval = (None, True)
        elif isinstance(parent, type):
            # If this is a class, we need to be careful when we mock, since we
            # could mock a parent's object
            defClasses = [ (x.defining_class, x.object, x.kind)
                for x in inspect.classify_class_attrs(parent)
                if x.name == selector ]
            # We've just extracted the class that defined the attribute and
            # the real value
            if defClasses[0][2] == 'static method':
                replacement = staticmethod(replacement)
            if defClasses[0][2] == 'class method':
                replacement = classmethod(replacement)
            if defClasses[0][0] != parent:
                # We inherited this object from the parent
                currval = (None, True)
            else:
                currval = (defClasses[0][1], False)
        else:
            currval = (getattr(parent, selector), False)
        self.mockObjects.append((parent, selector, currval))
        setattr(parent, selector, replacement)

    def unmock(self):
        if not hasattr(self, 'mockObjects'):
            return
        while self.mockObjects:
            parent, selector, (oldval, missing) = self.mockObjects.pop()
            if missing:
                delattr(parent, selector)
            else:
                setattr(parent, selector, oldval)


class TestCase(unittest.TestCase, MockMixIn):

    def setUp(self):
        unittest.TestCase.setUp(self)
        self.mockObjects = []

    def tearDown(self):
        self.unmock()
        unittest.TestCase.tearDown(self)

    def logCheck(self, fn, args, records, kwargs=None, regExp=False):
        """
        Call C{fn} and compare the events it logged with C{records}, a list
        of C{(level, event)} pairs. With C{regExp}, events are regular
        expressions matched against the logged event text.
        """
        with capture_logs() as captured:
            rc = fn(*args, **(kwargs or {}))
        actual = [(x['log_level'], x['event']) for x in captured]
        if regExp:
            self.assertEqual(len(actual), len(records),
                    "expected log messages do not match: %r != %r"
                    % (actual, records))
            for (level, event), (wantLevel, pattern) in zip(actual, records):
                self.assertEqual(level, wantLevel)
                self.assertTrue(re.match(pattern, event),
                        "'%s' does not match '%s'" % (event, pattern))
        else:
            self.assertEqual(actual, list(records))
        return rc

    def assertRaises(self, excClass, callableObj=None, *args, **kwargs):
        # Override so that the exception is returned. The context manager
        # form is passed through.
        if callableObj is None:
            return unittest.TestCase.assertRaises(self, excClass)
        try:
            callableObj(*args, **kwargs)
        except excClass as err:
            return err
        else:
            try:
                exc_name = excClass.__name__
            except AttributeError:
                exc_name = str(excClass)
            raise self.failureException("%s not raised" % exc_name)

    def capturedLogs(self):
        "Context manager collecting structlog events as dicts."
        return capture_logs()


class TestCaseWithWorkDir(TestCase):
    testDirName = 'testcase-'

    def setUp(self):
        TestCase.setUp(self)
        # Short prefix: unix socket paths are limited to ~100 characters
        self.workDir = tempfile.mkdtemp(prefix=self.testDirName)

    def tearDown(self):
        TestCase.tearDown(self)
        shutil.rmtree(self.workDir, ignore_errors=True)

    def workPath(self, *names):
        return os.path.join(self.workDir, *names)
