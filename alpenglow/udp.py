"""Network interface over a plain UDP socket."""

from __future__ import annotations

import asyncio
import ipaddress
import re
import socket

from .simulated_network import NetworkError

RECEIVE_BUFFER_SIZE = 1500
"""Number of bytes read for any incoming datagram (one MTU-sized packet)."""

_PORT_PATTERN = re.compile(r"[0-9]{1,5}")


def parse_address(address: str) -> tuple[str, int]:
    """Parse ``ip:port`` (or ``[ipv6]:port``) into a socket address tuple."""
    if not isinstance(address, str):
        raise NetworkError(f"invalid address: {address!r}")
    host, sep, port_text = address.rpartition(":")
    if not sep or not host or not _PORT_PATTERN.fullmatch(port_text):
        raise NetworkError(f"invalid address: {address!r}")
    port = int(port_text)
    if port > 65535:
        raise NetworkError(f"port out of range: {address!r}")
    try:
        if host.startswith("[") and host.endswith("]"):
            ip: ipaddress.IPv4Address | ipaddress.IPv6Address = ipaddress.IPv6Address(
                host[1:-1]
            )
        else:
            ip = ipaddress.IPv4Address(host)
    except ValueError as err:
        raise NetworkError(f"invalid address: {address!r}") from err
    return str(ip), port


class UdpNetwork:
    """Sends and receives datagrams on a UDP socket bound to all interfaces.

    Port ``0`` lets the operating system pick a free port.
    Usable as a context manager that closes the socket on exit.
    """

    def __init__(self, port: int = 0) -> None:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind(("0.0.0.0", port))
        except OSError as err:
            sock.close()
            raise NetworkError(f"cannot bind UDP port {port}: {err}") from err
        sock.setblocking(False)
        self._socket = sock
        self._closed = False

    def __enter__(self) -> UdpNetwork:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _check_open(self) -> None:
        if self._closed:
            raise NetworkError("socket is closed")

    def port(self) -> int:
        """The UDP port the socket is bound to."""
        self._check_open()
        return self._socket.getsockname()[1]

    async def send(self, payload: bytes, to: str) -> None:
        """Send ``payload`` as one datagram to the address ``to``."""
        self._check_open()
        target = parse_address(to)
        loop = asyncio.get_running_loop()
        try:
            await loop.sock_sendto(self._socket, bytes(payload), target)
        except OSError as err:
            raise NetworkError(f"sending to {to} failed: {err}") from err

    async def receive(self) -> bytes:
        """Wait for the next incoming datagram and return its bytes."""
        self._check_open()
        loop = asyncio.get_running_loop()
        try:
            return await loop.sock_recv(self._socket, RECEIVE_BUFFER_SIZE)
        except OSError as err:
            raise NetworkError(f"receiving failed: {err}") from err

    def close(self) -> None:
        """Close the socket; later calls raise :class:`NetworkError`."""
        if not self._closed:
            self._closed = True
            self._socket.close()