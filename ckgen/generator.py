"""Block template generator talking to one or more bitcoind servers."""

from __future__ import annotations

import base64
import enum
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, Sequence

from ckgen.jsondump import DumpFlags, dumps

log = logging.getLogger(__name__)

RETRY_DELAY = 5.0
SUBMIT_WAIT = 0.01

_HASH_START = 12
_HASH_END = 12 + 64
_LOGLEVEL = re.compile(r"loglevel=\s*([+-]?\d+)")


class GetBest(enum.IntEnum):
    """Outcome of asking for the best block hash."""

    FAILED = -1
    NOTIFY = 0
    SUCCESS = 1


class Bitcoind(Protocol):
    """The RPC calls the generator makes on a bitcoind.

    Each call raises OSError (ConnectionError included) when the server
    cannot be reached or does not answer.
    """

    def get_block_template(self) -> dict: ...

    def best_block_hash(self) -> str: ...

    def block_count(self) -> int: ...

    def block_hash(self, height: int) -> str: ...

    def validate_address(self, address: str) -> Optional[tuple[bool, bool]]:
        """Return (script, segwit) for a valid address, or None."""
        ...

    def submit_block(self, data: str) -> bool: ...


def _split_address(url: str) -> tuple[str, str]:
    rest = url.split("://", 1)[-1].split("/", 1)[0]
    host, sep, port = rest.rpartition(":")
    host = host.strip("[]")
    if not sep or not host or not port:
        raise ValueError(f"failed to extract address from {url}")
    return host, port


@dataclass(eq=False)
class ServerInstance:
    """A configured bitcoind and what is known about its health."""

    url: str
    auth: str
    password: str
    rpc: Bitcoind = field(repr=False)
    notify: bool = False
    id: int = 0
    alive: bool = False
    host: Optional[str] = None
    port: Optional[str] = None

    @property
    def credentials(self) -> str:
        """Base64 of ``auth:password`` for HTTP basic authentication."""
        return base64.b64encode(f"{self.auth}:{self.password}".encode()).decode("ascii")


class ServerGenerator:
    """Chooses a live bitcoind and answers the generator's requests with it."""

    def __init__(
        self,
        servers: Sequence[ServerInstance],
        *,
        btcaddress: Optional[str] = None,
        btcsolo: bool = False,
        node: bool = False,
        donation_addresses: Sequence[str] = (),
        to_connector: Optional[Callable[[str], Any]] = None,
        to_stratifier: Optional[Callable[[str], Any]] = None,
        sleep: Callable[[float], Any] = time.sleep,
        retry_limit: Optional[int] = None,
    ) -> None:
        self.servers = list(servers)
        for index, server in enumerate(self.servers):
            server.id = index
        self.btcaddress = btcaddress
        self.btcsolo = btcsolo
        self.node = node
        self.donation_addresses = list(donation_addresses)
        self.to_connector = to_connector
        self.to_stratifier = to_stratifier
        self.sleep = sleep
        self.retry_limit = retry_limit
        self.script = False
        self.segwit = False
        self.current: Optional[ServerInstance] = None
        self.ready = False
        self.loglevel: Optional[int] = None
        self._needs_reconnect = False

    # Server health

    def _validate(self, server: ServerInstance, address: Optional[str]) -> bool:
        if not address:
            return False
        try:
            info = server.rpc.validate_address(address)
        except OSError:
            return False
        if info is None:
            return False
        self.script, self.segwit = info
        return True

    def server_alive(self, server: ServerInstance, pinging: bool = False) -> bool:
        """Check that a server answers and accepts the payout address."""
        if server.alive:
            return True
        try:
            server.host, server.port = _split_address(server.url)
        except ValueError:
            log.warning("Failed to extract address from %s", server.url)
            return False
        try:
            server.rpc.get_block_template()
        except OSError:
            if not pinging:
                log.info("Failed to get test block template from %s", server.url)
            return False
        if self.btcsolo and not self.btcaddress:
            for address in self.donation_addresses:
                if self._validate(server, address):
                    self.btcaddress = address
                    break
        if not self.node and not self._validate(server, self.btcaddress):
            log.warning("Invalid btcaddress: %s !", self.btcaddress)
            return False
        server.alive = True
        log.info("Server alive: %s", server.url)
        return True

    def live_server(self) -> ServerInstance:
        """Find the highest priority live server and make it current."""
        attempts = 0
        while True:
            chosen = next((s for s in self.servers if s.alive), None)
            if chosen is None:
                chosen = next((s for s in self.servers if self.server_alive(s)), None)
            if chosen is not None:
                break
            attempts += 1
            log.warning("CRITICAL: No bitcoinds active!")
            if self.retry_limit is not None and attempts >= self.retry_limit:
                raise ConnectionError("no bitcoind servers are alive")
            self.sleep(RETRY_DELAY)
        previous = self.current
        self.current = chosen
        self._needs_reconnect = False
        if previous is None:
            log.warning("Connected to bitcoind: %s", chosen.url)
        elif previous is not chosen:
            log.warning("Failed over to bitcoind: %s", chosen.url)
        if not self.ready:
            self.ready = True
            log.warning("generator ready")
        if self.to_connector is not None:
            self.to_connector("accept")
        return chosen

    def check_servers(self) -> bool:
        """One watchdog pass; True when a better server than the current one is up."""
        best = None
        for server in self.servers:
            if self.server_alive(server, pinging=True) and best is None:
                best = server
        if best is not None and best is not self.current:
            self._needs_reconnect = True
            return True
        return False

    @staticmethod
    def _mark_dead(server: ServerInstance) -> None:
        server.alive = False

    # Control commands

    def handle(self, command: str) -> Optional[str]:
        """Answer one request, returning the reply text if there is one."""
        if self.current is None or self._needs_reconnect:
            self.live_server()
        server = self.current
        if not server.alive:
            log.warning("%s Bitcoind socket invalidated, will attempt failover", server.url)
            self.live_server()
            return None
        rpc = server.rpc
        if command.startswith("getbase"):
            try:
                template = rpc.get_block_template()
            except OSError:
                log.warning("Failed to get block template from %s", server.url)
                self._mark_dead(server)
                self._needs_reconnect = True
                return "Failed"
            return dumps(template, DumpFlags.NO_UTF8)
        if command.startswith("getbest"):
            if server.notify:
                return "notify"
            try:
                return rpc.best_block_hash()
            except OSError:
                log.info("No best block hash support from %s", server.url)
                self._mark_dead(server)
                return "failed"
        if command.startswith("getlast"):
            if server.notify:
                return "notify"
            try:
                height = rpc.block_count()
                if height == -1:
                    raise ConnectionError("no block count")
                return rpc.block_hash(height)
            except OSError:
                self._mark_dead(server)
                self._needs_reconnect = True
                return "failed"
        if command.startswith("submitblock:"):
            block_hash = command[_HASH_START:_HASH_END]
            log.info("Submitting block data!")
            try:
                ok = bool(rpc.submit_block(command[_HASH_END + 1:]))
            except OSError:
                ok = False
            if self.to_stratifier is not None:
                self.to_stratifier(f"{'' if ok else 'no'}block:{block_hash}")
            return None
        if command.startswith("reconnect"):
            self.live_server()
            return None
        if command.startswith("loglevel"):
            match = _LOGLEVEL.match(command)
            if match:
                self.loglevel = int(match.group(1))
            return None
        if command.startswith("ping"):
            return "pong"
        return None

    # Direct calls from the stratifier

    def getbase(self) -> Optional[dict]:
        """A block template from the current server, or None."""
        server = self.current
        if server is None:
            log.warning("No live current server in generator_getbase")
            return None
        try:
            return server.rpc.get_block_template()
        except OSError:
            log.warning("Failed to get block template from %s", server.url)
            self._mark_dead(server)
            self._needs_reconnect = True
            return None

    def getbest(self) -> tuple[GetBest, Optional[str]]:
        """The best block hash, or why it could not be had."""
        server = self.current
        if server is None:
            log.warning("No live current server in generator_getbest")
            return GetBest.FAILED, None
        if server.notify:
            return GetBest.NOTIFY, None
        try:
            return GetBest.SUCCESS, server.rpc.best_block_hash()
        except OSError:
            log.warning("Failed to get best block hash from %s", server.url)
            return GetBest.FAILED, None

    def checkaddr(self, address: str) -> Optional[tuple[bool, bool]]:
        """(script, segwit) for a valid address, or None."""
        server = self.current
        if server is None:
            log.warning("No live current server in generator_checkaddr")
            return None
        try:
            return server.rpc.validate_address(address)
        except OSError:
            return None

    def submitblock(self, data: str) -> bool:
        """Submit a block, waiting for a current server if there is none."""
        warned = False
        while self.current is None:
            if not warned:
                log.warning("No live current server in generator_submitblock! Waiting")
                warned = True
            self.sleep(SUBMIT_WAIT)
        log.info("Submitting block data!")
        try:
            return bool(self.current.rpc.submit_block(data))
        except OSError:
            return False

    def get_blockhash(self, height: int) -> Optional[str]:
        """The hash of the block at ``height``, or None."""
        server = self.current
        if server is None:
            log.warning("No live current server in generator_get_blockhash")
            return None
        try:
            return server.rpc.block_hash(height)
        except OSError:
            return None