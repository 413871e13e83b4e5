"""Liveness probe for the Redis job-queue broker."""

from typing import final

import anyio
import httpx
from anyio.streams.buffered import BufferedByteReceiveStream

DEFAULT_BROKER_PORT = 6379
_MAX_REPLY = 512


def _encode_command(*args: str) -> bytes:
    """Encode a command as a RESP array of bulk strings."""
    parts = [f"*{len(args)}\r\n".encode()]
    for arg in args:
        data = arg.encode()
        parts.append(b"$%d\r\n%s\r\n" % (len(data), data))
    return b"".join(parts)


@final
class BrokerProbe:
    """Checks that a Redis broker answers PING.

    Instances are async callables returning True when the broker replied
    ``+PONG``. Connection and protocol errors propagate; the bounded retry
    that drives the probe counts them as failed attempts.

    Attributes:
        host: Broker host.
        port: Broker port.
    """

    __slots__ = ("_password", "_username", "host", "port")

    def __init__(self, url: str) -> None:
        """Initialize the probe from a broker URL.

        Args:
            url: Broker URL such as ``redis://:secret@localhost:6379/0``.
        """
        parsed = httpx.URL(url)
        self.host = parsed.host or "localhost"
        self.port = parsed.port or DEFAULT_BROKER_PORT
        self._username = parsed.username
        self._password = parsed.password

    def __repr__(self) -> str:
        return f"BrokerProbe(host={self.host!r}, port={self.port})"

    def _commands(self) -> list[bytes]:
        commands: list[bytes] = []
        if self._password:
            credentials = [self._username] if self._username else []
            credentials.append(self._password)
            commands.append(_encode_command("AUTH", *credentials))
        commands.append(_encode_command("PING"))
        return commands

    async def __call__(self) -> bool:
        """Send PING (after AUTH when credentials are set) and check the reply."""
        commands = self._commands()
        async with await anyio.connect_tcp(self.host, self.port) as stream:
            await stream.send(b"".join(commands))
            reader = BufferedByteReceiveStream(stream)
            replies = [
                await reader.receive_until(b"\r\n", _MAX_REPLY) for _ in commands
            ]
        return replies[-1] == b"+PONG"
