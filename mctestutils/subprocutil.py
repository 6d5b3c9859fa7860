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
Forked child processes that the parent can poll, signal and reap.
"""

import errno
import os
import signal
import sys
import time
import traceback

from mctestutils import log as logmod

log = logmod.getLogger(__name__)


class Subprocess(object):
    # Class settings
    setsid = False
    # Signals that make the child exit immediately
    exitSignals = ()

    # Runtime variables
    pid = None
    exitStatus = exitPid = None

    @property
    def exitCode(self):
        if self.exitStatus is None:
            return -2
        elif self.exitStatus < 0:
            return self.exitStatus
        elif os.WIFEXITED(self.exitStatus):
            return os.WEXITSTATUS(self.exitStatus)
        elif os.WIFSIGNALED(self.exitStatus):
            return -os.WTERMSIG(self.exitStatus)
        else:
            return -2

    def start(self):
        self.exitStatus = self.exitPid = None
        sys.stdout.flush()
        sys.stderr.flush()
        self.pid = os.fork()
        if not self.pid:
            #pylint: disable-msg=W0702,W0212
            try:
                try:
                    if self.setsid:
                        os.setsid()
                    for signum in self.exitSignals:
                        signal.signal(signum, _exitOnSignal)
                    ret = self._run()
                    if not isinstance(ret, int) or isinstance(ret, bool):
                        ret = int(not ret)
                    os._exit(ret)
                except SystemExit as err:
                    code = err.code
                    if not isinstance(code, int):
                        code = 0 if code is None else 1
                    os._exit(code)
                except BaseException:
                    traceback.print_exc()
                    sys.stderr.flush()
            finally:
                os._exit(70)
        log.debug("forked child", pid=self.pid, child=type(self).__name__)
        return self.pid

    def _run(self):
        raise NotImplementedError

    def _subproc_wait(self, flags):
        if not self.pid:
            return False
        try:
            pid, status = os.waitpid(self.pid, flags)
        except ChildProcessError:
            # Process doesn't exist or was reaped elsewhere.
            self.exitPid, self.pid = self.pid, None
            self.exitStatus = -1
            return False
        if pid:
            # Process exists and is no longer running.
            self.exitPid, self.pid = self.pid, None
            self.exitStatus = status
            return False
        # Process exists and is still running.
        return True

    def check(self):
        """
        Return C{True} if the subprocess is running.
        """
        return self._subproc_wait(os.WNOHANG)

    def wait(self):
        """
        Wait for the process to exit, then return. Returns the exit code if the
        process exited normally, the negated signal number if it was killed,
        or -1 if the process does not exist.
        """
        self._subproc_wait(0)
        return self.exitCode

    def _signal(self, signum):
        try:
            os.kill(self.pid, signum)
        except ProcessLookupError:
            # Process doesn't exist (or is a zombie)
            return False
        return True

    def kill(self, signum=signal.SIGTERM, timeout=5):
        """
        Send C{signum} to the subprocess and reap it.

        If C{timeout} is nonzero and the process is still running after that
        many seconds, it is sent C{SIGKILL}. A process that is already gone
        is not an error.
        """
        if not self.pid:
            return
        pid = self.pid
        self._signal(signum)

        if timeout:
            start = time.time()
            while time.time() - start < timeout:
                if not self.check():
                    break
                time.sleep(0.05)
            else:
                # If it's still going, use SIGKILL and wait indefinitely.
                log.warning("child ignored signal, killing",
                        pid=pid, signal=signal.Signals(signum).name,
                        timeout=timeout)
                self._signal(signal.SIGKILL)
        self.wait()
        log.debug("reaped child", pid=pid, exitCode=self.exitCode)


def supportsFork():
    return hasattr(os, 'fork')


def _exitOnSignal(signum, frame):
    sys.exit(0)


class FunctionSubprocess(Subprocess):
    """
    Run C{target(*args)} in a forked child. The child exits with status 0
    if C{target} returns a true value, None or an integer 0.
    """

    def __init__(self, target, args=(), exitSignals=(signal.SIGTERM,)):
        self.target = target
        self.args = tuple(args)
        self.exitSignals = tuple(exitSignals)

    def _run(self):
        ret = self.target(*self.args)
        if ret is None:
            return 0
        return ret


class ExecSubprocess(Subprocess):
    """
    Execute C{args} in a forked child, with stdin on /dev/null and the
    environment of the parent overlaid with C{environ}.
    """

    def __init__(self, args, stdout=None, stderr=None, environ=None):
        self.args = list(args)
        self.executable = findExecutable(self.args[0])
        self.stdout = stdout
        self.stderr = stderr
        self.environ = os.environ.copy()
        if environ:
            self.environ.update(environ)

    def dup2(self, fobj, dest):
        if fobj is None:
            return
        if hasattr(fobj, 'fileno'):
            fobj = fobj.fileno()
        elif not isinstance(fobj, int):
            raise TypeError("Expected an object with a fileno() method or "
                    "an integer, not %s" % type(fobj).__name__)
        os.dup2(fobj, dest)

    def _run(self):
        self.dup2(self.stdout, 1)
        self.dup2(self.stderr, 2)
        os.dup2(os.open(os.devnull, os.O_RDONLY), 0)
        try:
            os.execve(self.executable, self.args, self.environ)
        except OSError as err:
            sys.stderr.write("\nERROR:\nCould not exec %s: %s\n"
                    % (self.args, err.strerror))
            sys.stderr.flush()
        os._exit(127)


def findExecutable(name, path=None):
    """
    Resolve C{name} the way execvp would, searching C{path} (default
    C{$PATH}) when it contains no directory component.
    """
    if os.path.isabs(name):
        return name
    if os.path.sep in name:
        return os.path.abspath(name)
    if path is None:
        path = os.environ.get('PATH', os.defpath)
    for elem in path.split(os.pathsep):
        candidate = os.path.abspath(os.path.join(elem, name))
        if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
            return candidate
    raise OSError(errno.ENOENT, "Executable '%s' not found in PATH" % name)
