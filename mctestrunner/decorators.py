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


import functools
import os
import unittest


def requireBinary(name):
    def deco(f):
        @functools.wraps(f)
        def testfunc(*args, **kwargs):
            for path in os.environ.get("PATH", "").split(os.pathsep):
                if os.access(os.path.join(path, name), os.X_OK):
                    return f(*args, **kwargs)
            raise unittest.SkipTest("could not find binary %s" % name)
        return testfunc
    return deco


def requireFork(f):
    @functools.wraps(f)
    def testfunc(*args, **kwargs):
        if not hasattr(os, 'fork'):
            raise unittest.SkipTest("fork is not supported on this platform")
        return f(*args, **kwargs)
    return testfunc
