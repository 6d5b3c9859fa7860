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
Listening addresses for test servers and the immutable launch description
built from them.
"""

import shlex


class Address(object):
    # Command-line flag memcached uses to bind this kind of address
    flag = None

    __slots__ = ()

    def _key(self):
        raise NotImplementedError

    def getArg(self):
        raise NotImplementedError

    def getEndpoints(self):
        """
        Return the list of endpoint strings a client should be configured
        with to reach a server listening on this address.
        """
        raise NotImplementedError

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash((type(self).__name__, self._key()))


class TcpPort(Address):
    flag = '-p'
    isUnix = False

    __slots__ = ('port',)

    def __init__(self, port):
        port = int(port)
        if not 0 < port < 65536:
            raise ValueError("Invalid TCP port %r" % (port,))
        self.port = port

    def _key(self):
        return self.port

    def getArg(self):
        return str(self.port)

    def getEndpoints(self):
        # Two aliases for the same server so clients exercise their
        # multi-server handling.
        return ['localhost:%d' % self.port, '127.0.0.1:%d' % self.port]

    def __repr__(self):
        return 'TcpPort(%d)' % self.port

    def __str__(self):
        return 'port %d' % self.port


class UnixPath(Address):
    flag = '-s'
    isUnix = True

    __slots__ = ('path',)

    def __init__(self, path):
        if not path:
            raise ValueError("Unix socket path must not be empty")
        self.path = str(path)

    def _key(self):
        return self.path

    def getArg(self):
        return self.path

    def getEndpoints(self):
        return [self.path]

    def __repr__(self):
        return 'UnixPath(%r)' % self.path

    def __str__(self):
        return self.path


def parseAddress(value):
    """
    Coerce C{value} into an L{Address}. Integers and all-digit strings are
    TCP ports, any other string is a unix socket path.
    """
    if isinstance(value, Address):
        return value
    if isinstance(value, bool):
        raise TypeError("Cannot use %r as an address" % (value,))
    if isinstance(value, int):
        return TcpPort(value)
    if isinstance(value, str):
        if value.isdigit():
            return TcpPort(int(value))
        return UnixPath(value)
    raise TypeError("Cannot use %r as an address" % (value,))


class LaunchSpec(object):
    """
    Everything needed to build a server command line: where it listens,
    extra command-line arguments, and environment overrides.
    """

    __slots__ = ('address', 'extraArgs', 'env')

    def __init__(self, address, extraArgs='', env=None):
        object.__setattr__(self, 'address', parseAddress(address))
        object.__setattr__(self, 'extraArgs', extraArgs or '')
        object.__setattr__(self, 'env', tuple(sorted((env or {}).items())))

    def __setattr__(self, name, value):
        raise AttributeError("LaunchSpec is immutable")

    def getEnviron(self):
        return dict(self.env)

    def getArgs(self, executable):
        args = [executable]
        args.extend(shlex.split(self.extraArgs))
        args.extend([self.address.flag, self.address.getArg()])
        return args

    def __eq__(self, other):
        if not isinstance(other, LaunchSpec):
            return NotImplemented
        return ((self.address, self.extraArgs, self.env) ==
                (other.address, other.extraArgs, other.env))

    def __hash__(self):
        return hash((self.address, self.extraArgs, self.env))

    def __repr__(self):
        return 'LaunchSpec(%r, %r, %r)' % (self.address, self.extraArgs,
                dict(self.env))
