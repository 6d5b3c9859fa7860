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


class HarnessError(Exception):
    "Base class for errors raised while managing test servers."


class BinaryNotFound(HarnessError):
    pass


class LaunchFailure(HarnessError):
    """
    A server was spawned but did not come up usable: it exited during the
    settle interval, or the first flush through a client failed.
    """

    def __init__(self, address, msg):
        HarnessError.__init__(self, msg)
        self.address = address

    def __str__(self):
        return '%s: %s' % (self.address, self.args[0])
