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
import os

from mctestutils import errors
from mctestutils import log as logmod

log = logmod.getLogger(__name__)


class ProcessRegistry(object):
    """
    Map listening addresses to the server processes bound to them.

    The registry holds at most one server per address and has no locking:
    it must only be used from a single test-runner thread. Test suites
    running in parallel against the same address are not supported.
    """

    def __init__(self):
        self._servers = {}
        self._ownerPid = os.getpid()
        self._shutdownInstalled = False

    def __contains__(self, address):
        return address in self._servers

    def __len__(self):
        return len(self._servers)

    def __iter__(self):
        return iter(list(self._servers))

    def get(self, address):
        return self._servers.get(address)

    def add(self, server):
        if server.address in self._servers:
            raise errors.HarnessError("A server is already registered on %s"
                    % (server.address,))
        self._servers[server.address] = server
        return server

    def pop(self, address):
        "Remove and return the server registered on C{address}, or None."
        return self._servers.pop(address, None)

    def stop(self, address):
        """
        Unregister C{address} and stop its server. Never raises; failures
        are logged.
        """
        server = self.pop(address)
        if server is None:
            return False
        try:
            server.stop()
        except Exception:
            log.warning("failed to stop server", address=str(address),
                    exc_info=True)
        return True

    def stopAll(self):
        if os.getpid() != self._ownerPid:
            # Forked children must not reap their parent's servers.
            return
        for address in list(self._servers):
            self.stop(address)

    def installShutdownHandler(self):
        """
        Arrange for every server still registered at interpreter exit to
        be stopped. Safe to call repeatedly; the handler is installed once.
        """
        if self._shutdownInstalled:
            return
        atexit.register(self.stopAll)
        self._shutdownInstalled = True
