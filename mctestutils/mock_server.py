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
Bare listening sockets standing in for a memcached server.

Each listener accepts a single connection (or, for L{delayedStart}, none)
and hands it to a caller-supplied handler. L{memcachedMock} runs a listener
in a forked child so the test body can act as the client::

    def reply(sock):
        sock.sendall(b'123')

    with mock_server.memcachedMock(reply):
        ...connect a client to 127.0.0.1:19123...
"""

import contextlib
import os
import socket
import tempfile
import time
import unittest

from mctestutils import log as logmod
from mctestutils import subprocutil
from mctestutils.config import HarnessConfig

log = logmod.getLogger(__name__)

DEFAULT_HOST = '127.0.0.1'
DEFAULT_PORT = 19123
UNIX_SOCKET_PATH = os.path.join(tempfile.gettempdir(),
        'mctestutils-%d.sock' % os.getpid())


def _listen(family, sockaddr):
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        if family != socket.AF_UNIX:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(sockaddr)
        sock.listen(1)
    except OSError:
        sock.close()
        raise
    return sock


def _acceptOnce(listener, handler):
    # The listener is closed before the handler runs so that nothing else
    # can connect.
    with listener:
        conn, _ = listener.accept()
    with conn:
        return handler(conn)


def start(handler, port=DEFAULT_PORT, host=DEFAULT_HOST):
    listener = _listen(socket.AF_INET, (host, port))
    log.debug("mock listening", port=port)
    return _acceptOnce(listener, handler)


def startUnix(handler, path=UNIX_SOCKET_PATH):
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    listener = _listen(socket.AF_UNIX, path)
    log.debug("mock listening", path=path)
    try:
        return _acceptOnce(listener, handler)
    finally:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass


def delayedStart(handler, port=DEFAULT_PORT, wait=1, host=DEFAULT_HOST):
    """
    Sleep C{wait} seconds, then open a listener and pass it, unaccepted,
    to C{handler}.
    """
    time.sleep(wait)
    with _listen(socket.AF_INET, (host, port)) as listener:
        log.debug("mock listening after delay", port=port, wait=wait)
        return handler(listener)


LISTENERS = {
    'start': start,
    'startUnix': startUnix,
    'delayedStart': delayedStart,
    }


@contextlib.contextmanager
def memcachedMock(handler, method='start', args=(), settleTime=None,
        stopTimeout=None, cfg=None):
    """
    Run listener C{method} with C{handler} in a forked child for the
    duration of the block, yielding the child's
    L{subprocutil.FunctionSubprocess}.

    C{settleTime} and C{stopTimeout} default to C{cfg.mockSettleTime} and
    C{cfg.stopTimeout}. The child is sent SIGTERM and reaped on every exit
    from the block.
    """
    if not subprocutil.supportsFork():
        raise unittest.SkipTest("fork is not supported on this platform")
    if cfg is None:
        cfg = HarnessConfig()
    if settleTime is None:
        settleTime = cfg.mockSettleTime
    if stopTimeout is None:
        stopTimeout = cfg.stopTimeout
    if isinstance(method, str):
        method = LISTENERS[method]
    child = subprocutil.FunctionSubprocess(method,
            (handler,) + tuple(args))
    with contextlib.ExitStack() as cleanup:
        child.start()
        cleanup.callback(child.kill, timeout=stopTimeout)
        # Give the socket time to start listening.
        time.sleep(settleTime)
        yield child
