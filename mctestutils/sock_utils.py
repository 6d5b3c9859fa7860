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


import errno
import os
import random
import socket
import time

from mctestutils import log as logmod

log = logmod.getLogger(__name__)


class PortFinder(object):
    LOWER_BOUND = 16000
    UPPER_BOUND = 30000

    def __init__(self):
        self._port = None
        self.reseed()

    def reseed(self):
        self._port = random.randrange(self.LOWER_BOUND, self.UPPER_BOUND)

    def findPorts(self, num=1, closeSockets=True):
        """
        Find C{num} random ports that aren't in use.

        If C{closeSockets} is C{True} (the default), returns a list
        of port numbers. If C{False}, returns a list of C{(port, socket)}
        tuples.
        """
        ports = []
        sockets = []
        while len(ports) < num:
            if self._port > self.UPPER_BOUND:
                # Wrap around
                self._port = self.LOWER_BOUND

            sock = _bindableSocket()
            try:
                sock.bind((sock.family == socket.AF_INET6 and '::'
                    or '0.0.0.0', self._port))
            except OSError as error:
                sock.close()
                if error.errno != errno.EADDRINUSE:
                    raise
                # Collision - reseed so we get as far away from the
                # other process as possible.
                self.reseed()
                time.sleep(random.uniform(0.1, 0.7))
                continue
            else:
                if closeSockets:
                    sock.close()
                else:
                    sockets.append(sock)
                ports.append(self._port)
                self._port += 1

        if closeSockets:
            return ports
        else:
            return list(zip(ports, sockets))


def _bindableSocket():
    # Bind the IPv6 "any" address where available to make sure the port
    # isn't in use with TCPv4 or TCPv6 on any interface.
    if socket.has_ipv6:
        try:
            sock = socket.socket(socket.AF_INET6, socket.SOCK_STREAM)
        except OSError:
            pass
        else:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            return sock
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    return sock


_portFinder = PortFinder()


def findPorts(num=1, closeSockets=True):
    return _portFinder.findPorts(num, closeSockets=closeSockets)


def _connectTarget(host, port):
    if host is None:
        # port is a unix socket path
        return socket.AF_UNIX, port
    addrs = socket.getaddrinfo(host, port, 0, socket.SOCK_STREAM)
    family, _, _, _, sockaddr = addrs[0]
    return family, sockaddr


def tryConnect(host, port, count=100, interval=0.1, logFile=None,
               backoff=0.05, maxInterval=1, abortFunc=None):
    """
    Connect to C{host}:C{port} (or the unix socket C{port} when C{host} is
    C{None}) until something accepts, sleeping between refusals.

    C{abortFunc}, if given, is called between attempts and a false return
    (for example, the server process has died) stops waiting early.
    """
    family, sockaddr = _connectTarget(host, port)
    lastError = None
    for n in range(count):
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.connect(sockaddr)
            return
        except (ConnectionRefusedError, FileNotFoundError) as error:
            lastError = error
        finally:
            sock.close()
        if abortFunc is not None and not abortFunc():
            break
        time.sleep(min(interval + n * backoff, maxInterval))
    if logFile:
        if os.path.exists(logFile):
            with open(logFile) as fobj:
                log.error("server did not start", logFile=logFile,
                        contents=fobj.read())
        else:
            log.error("server did not start, log file is missing",
                    logFile=logFile)
    if lastError is None:
        lastError = ConnectionRefusedError(errno.ECONNREFUSED,
                "Gave up connecting to %s" % (sockaddr,))
    # re-raise the last error
    raise lastError
