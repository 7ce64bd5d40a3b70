"""
Tests for TCP port checks against local listeners.
"""

import asyncio
import socket

import pytest
import pytest_asyncio

from mtconnect_sniffer.discovery.port_scanner import check_port, scan_ports


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest_asyncio.fixture
async def listener():
    """Accepting TCP server on an ephemeral loopback port"""
    async def handle(reader, writer):
        writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    yield port
    server.close()
    await server.wait_closed()


@pytest.mark.asyncio
async def test_open_port(listener):
    assert await check_port("127.0.0.1", listener, 1000) is True


@pytest.mark.asyncio
async def test_closed_port():
    assert await check_port("127.0.0.1", _free_port(), 1000) is False


@pytest.mark.asyncio
async def test_invalid_host():
    assert await check_port("not a host name", 5000, 200) is False


@pytest.mark.asyncio
async def test_scan_keeps_given_order(listener):
    closed = _free_port()
    assert await scan_ports("127.0.0.1", [closed, listener], 1000) == [listener]


@pytest.mark.asyncio
async def test_scan_empty_list():
    assert await scan_ports("127.0.0.1", [], 1000) == []
