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
import signal
import time

from mctestutils import base_server
from mctestutils import errors
from mctestutils import log as logmod
from mctestutils import subprocutil
from mctestutils.address import LaunchSpec

log = logmod.getLogger(__name__)


class MemcacheServer(base_server.BaseServer):
    """
    One memcached process started from a L{LaunchSpec}.

    Readiness is a heuristic: after forking, the caller is blocked for
    C{settleTime} seconds and the server is assumed to be listening if the
    process is still alive.
    """

    def __init__(self, spec, executable, settleTime=0.1, stopTimeout=5,
            logFile=None):
        if not isinstance(spec, LaunchSpec):
            spec = LaunchSpec(spec)
        self.spec = spec
        self.address = spec.address
        self.executable = executable
        self.settleTime = settleTime
        self.stopTimeout = stopTimeout
        self.logFile = logFile
        self.server = None
        self._ownerPid = os.getpid()

    @property
    def pid(self):
        return self.server.pid if self.server else None

    def getArgs(self):
        return self.spec.getArgs(self.executable)

    def getEndpoints(self):
        return self.address.getEndpoints()

    def removeStaleSocket(self):
        if not self.address.isUnix:
            return
        try:
            os.unlink(self.address.path)
        except FileNotFoundError:
            pass
        else:
            log.debug("removed stale socket", path=self.address.path)

    def start(self):
        self.removeStaleSocket()
        output = None
        if self.logFile:
            output = open(self.logFile, 'a')
        try:
            self.server = subprocutil.ExecSubprocess(
                    args=self.getArgs(),
                    stdout=output,
                    stderr=output,
                    environ=self.spec.getEnviron(),
                    )
            self.server.start()
        finally:
            if output is not None:
                output.close()
        log.info("started memcached", address=str(self.address),
                pid=self.server.pid, args=' '.join(self.getArgs()))
        time.sleep(self.settleTime)
        if not self.check():
            raise errors.LaunchFailure(self.address,
                    "memcached exited during startup with status %d%s"
                    % (self.server.exitCode, self._readLog()))

    def _readLog(self):
        if not self.logFile or not os.path.exists(self.logFile):
            return ''
        with open(self.logFile) as fobj:
            contents = fobj.read().strip()
        if not contents:
            return ''
        return '; log:\n' + contents

    def check(self):
        if self.server is None:
            return False
        return self.server.check()

    def isStarted(self):
        return (os.getpid() == self._ownerPid
                and self.server is not None
                and self.server.pid is not None)

    def stop(self, signum=signal.SIGTERM):
        if not self.isStarted():
            return
        pid = self.server.pid
        self.server.kill(signum=signum, timeout=self.stopTimeout)
        log.info("stopped memcached", address=str(self.address), pid=pid,
                exitCode=self.server.exitCode)

    def __repr__(self):
        return '<MemcacheServer %s pid=%s>' % (self.address, self.pid)
