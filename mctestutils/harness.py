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
Launch real memcached servers for client integration tests, hand back a
flushed client, and tear the servers down again.

Typical use from a test case::

    harness = MemcachedHarness.fromEnvironment()
    with harness.memcached(21345) as (client, address):
        client.set('abc', 123)
"""

import contextlib

import bmemcached

from mctestutils import errors
from mctestutils import locator as locatormod
from mctestutils import log as logmod
from mctestutils import mock_server
from mctestutils.address import LaunchSpec, parseAddress
from mctestutils.config import HarnessConfig
from mctestutils.registry import ProcessRegistry
from mctestutils.servers.memcache_server import MemcacheServer
from mctestutils.subprocutil import supportsFork

log = logmod.getLogger(__name__)

PERSISTENT_PORT = 21345
SASL_PORT = 21397


def defaultClientFactory(servers, **options):
    return bmemcached.Client(servers, **options)


class MemcachedHarness(object):

    serverClass = MemcacheServer
    supportsFork = staticmethod(supportsFork)

    def __init__(self, cfg=None, registry=None, locator=None,
            clientFactory=None):
        self.cfg = cfg if cfg is not None else HarnessConfig()
        self.registry = registry if registry is not None else ProcessRegistry()
        self.locator = (locator if locator is not None
                else locatormod.getLocator(self.cfg))
        self.clientFactory = clientFactory or defaultClientFactory

    @classmethod
    def fromEnvironment(cls, environ=None, **kwargs):
        cfg = HarnessConfig.fromEnvironment(environ)
        logmod.setupLogging(cfg.logLevel)
        return cls(cfg, **kwargs)

    # Server lifecycle

    def ensureRunning(self, spec):
        """
        Return the server registered on C{spec.address}, launching it first
        if nothing is registered there yet.
        """
        server = self.registry.get(spec.address)
        if server is not None:
            return server
        executable = self.locator.getExecutable()
        server = self.serverClass(spec, executable,
                settleTime=self.cfg.settleTime,
                stopTimeout=self.cfg.stopTimeout,
                logFile=self.cfg.logFile,
                )
        self.registry.installShutdownHandler()
        try:
            server.start()
        except errors.LaunchFailure:
            server.stop()
            raise
        return self.registry.add(server)

    def kill(self, address):
        """
        Stop and reap whatever was launched on C{address}. Doing nothing is
        not an error, and failures are logged rather than raised. So is an
        C{address} that cannot name a server at all, such as C{0} or C{''}.
        """
        try:
            address = parseAddress(address)
        except (TypeError, ValueError) as err:
            log.warning("cannot kill invalid address", address=repr(address),
                    error=str(err))
            return
        if not self.registry.stop(address):
            log.debug("nothing to kill", address=str(address))

    def killAll(self):
        self.registry.stopAll()

    # Clients

    def getClient(self, address, clientOptions=None):
        return self.clientFactory(address.getEndpoints(),
                **(clientOptions or {}))

    def startAndFlush(self, address, extraArgs='', clientOptions=None,
            flush=True, env=None):
        if self.cfg.extraArgs:
            extraArgs = ' '.join(x for x in (self.cfg.extraArgs, extraArgs)
                    if x)
        spec = LaunchSpec(address, extraArgs, env)
        self.ensureRunning(spec)
        client = self.getClient(spec.address, clientOptions)
        if flush and not client.flush_all():
            raise errors.LaunchFailure(spec.address,
                    "flush_all through a new client failed")
        return client

    def startAndFlushWithRetry(self, address, extraArgs='',
            clientOptions=None, env=None):
        """
        Launch a server on C{address} and return a client connected to it.

        The whole launch, connect and flush sequence is retried up to
        C{cfg.retryAttempts} times; a failed attempt stops and unregisters
        its server so the next one starts from scratch. Only the first
        attempt flushes. The last error is re-raised once attempts run out.
        """
        address = parseAddress(address)
        attempt = 0
        while True:
            try:
                return self.startAndFlush(address, extraArgs, clientOptions,
                        flush=(attempt == 0), env=env)
            except Exception as err:
                self.registry.stop(address)
                attempt += 1
                if attempt >= self.cfg.retryAttempts:
                    log.error("giving up on memcached", address=str(address),
                            attempts=attempt, error=repr(err))
                    raise
                log.warning("memcached not usable, retrying",
                        address=str(address), attempt=attempt,
                        error=repr(err))

    @contextlib.contextmanager
    def memcached(self, address, extraArgs='', clientOptions=None, env=None):
        """
        Context manager yielding C{(client, address)} for a fresh server that
        is killed when the block exits.
        """
        address = parseAddress(address)
        client = self.startAndFlushWithRetry(address, extraArgs,
                clientOptions, env)
        try:
            yield client, address
        finally:
            self.kill(address)

    def persistent(self, port=PERSISTENT_PORT, clientOptions=None):
        "Return a flushed client for a server left running between tests."
        return self.startAndFlushWithRetry(port, '', clientOptions)

    def memcachedMock(self, handler, method='start', args=()):
        "L{mock_server.memcachedMock} timed by this harness's config."
        return mock_server.memcachedMock(handler, method, args, cfg=self.cfg)

    # SASL

    def saslCredentials(self):
        return {'username': 'testuser', 'password': 'testtest'}

    def saslEnv(self):
        return {
            'MEMCACHED_SASL_PWDB': self.cfg.saslPwdb,
            'SASL_CONF_PATH': self.cfg.saslConfPath,
            }

    def saslPersistent(self, port=SASL_PORT):
        return self.startAndFlushWithRetry(port, '-S',
                self.saslCredentials(), self.saslEnv())
