"""
Tests for the MTConnect probe client and document parsing.
"""

import socket

import pytest
import pytest_asyncio
from aiohttp import web

from mtconnect_sniffer.discovery.models import (
    ProbeConnectionError, ProbeContext, ProbeError, ProbeSuccess
)
from mtconnect_sniffer.discovery.protocol_client import (
    MTConnectClient, MTConnectParseError, parse_probe_document
)
from mtconnect_sniffer.http_helper import build_agent_url


DEVICES_DOCUMENT = b"""<?xml version="1.0" encoding="UTF-8"?>
<MTConnectDevices xmlns="urn:mtconnect.org:MTConnectDevices:1.3">
  <Header creationTime="2017-05-01T12:00:00Z" sender="agent" instanceId="1" version="1.3.0" bufferSize="131072"/>
  <Devices>
    <Device id="d1" name="Lathe-1" uuid="lathe-uuid">
      <Description manufacturer="Okuma"/>
    </Device>
    <Device id="mill2" uuid="mill-uuid"/>
  </Devices>
</MTConnectDevices>
"""

ERROR_DOCUMENT = b"""<?xml version="1.0" encoding="UTF-8"?>
<MTConnectError xmlns="urn:mtconnect.org:MTConnectError:1.3">
  <Header creationTime="2017-05-01T12:00:00Z" sender="agent" instanceId="1" version="1.3.0" bufferSize="131072"/>
  <Errors>
    <Error errorCode="NO_DEVICE">Could not find the device 'x'</Error>
  </Errors>
</MTConnectError>
"""

AGENT_DEVICES_DOCUMENT = b"""<?xml version="1.0" encoding="UTF-8"?>
<MTConnectDevices xmlns="urn:mtconnect.org:MTConnectDevices:1.7">
  <Header creationTime="2021-05-01T12:00:00Z" sender="agent" instanceId="1" version="1.7.0" bufferSize="131072"/>
  <Devices>
    <Agent id="agent_1" name="Agent" uuid="agent-uuid"/>
    <Device id="d1" name="Lathe-1" uuid="lathe-uuid"/>
  </Devices>
</MTConnectDevices>
"""

LEGACY_ERROR_DOCUMENT = b"""<MTConnectError><Header/><Error errorCode="UNSUPPORTED">Bad request</Error></MTConnectError>"""

CONTEXT = ProbeContext(address="127.0.0.1", port=5000)


# ─── Parsing ────────────────────────────────────────────────────────────────


class TestParseProbeDocument:

    def test_devices_document(self):
        outcome = parse_probe_document(DEVICES_DOCUMENT, CONTEXT)

        assert isinstance(outcome, ProbeSuccess)
        assert outcome.context is CONTEXT
        assert [d.name for d in outcome.devices] == ["Lathe-1", "mill2"]
        assert outcome.devices[0].uuid == "lathe-uuid"
        assert outcome.devices[0].device_id == "d1"

    def test_devices_document_without_namespace(self):
        body = "<MTConnectDevices><Devices><Device id='a' name='Robot'/></Devices></MTConnectDevices>"
        outcome = parse_probe_document(body, CONTEXT)
        assert [d.name for d in outcome.devices] == ["Robot"]

    def test_agent_entry_is_not_a_device(self):
        outcome = parse_probe_document(AGENT_DEVICES_DOCUMENT, CONTEXT)

        assert isinstance(outcome, ProbeSuccess)
        assert [d.name for d in outcome.devices] == ["Lathe-1"]
        assert outcome.devices[0].uuid == "lathe-uuid"

    def test_empty_devices(self):
        outcome = parse_probe_document(b"<MTConnectDevices><Devices/></MTConnectDevices>", CONTEXT)
        assert isinstance(outcome, ProbeSuccess)
        assert outcome.devices == []

    def test_error_document(self):
        outcome = parse_probe_document(ERROR_DOCUMENT, CONTEXT)

        assert isinstance(outcome, ProbeError)
        assert outcome.context is CONTEXT
        assert outcome.errors == [("NO_DEVICE", "Could not find the device 'x'")]

    def test_legacy_error_document(self):
        outcome = parse_probe_document(LEGACY_ERROR_DOCUMENT, CONTEXT)
        assert outcome.errors == [("UNSUPPORTED", "Bad request")]

    def test_malformed_xml(self):
        with pytest.raises(MTConnectParseError):
            parse_probe_document(b"<MTConnectDevices><Devices>", CONTEXT)

    def test_unknown_root(self):
        with pytest.raises(MTConnectParseError):
            parse_probe_document(b"<html><body>hello</body></html>", CONTEXT)


# ─── Client ─────────────────────────────────────────────────────────────────


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest_asyncio.fixture
async def agent():
    """Local aiohttp app answering /probe according to ``agent.mode``"""
    state = {"mode": "devices", "paths": []}

    async def probe(request):
        state["paths"].append(request.path)
        mode = state["mode"]
        if mode == "devices":
            return web.Response(body=DEVICES_DOCUMENT, content_type="application/xml")
        if mode == "error":
            return web.Response(body=ERROR_DOCUMENT, status=400, content_type="application/xml")
        if mode == "html":
            return web.Response(text="<html>not an agent</html>", content_type="text/html")
        return web.Response(text="Not Found", status=404)

    app = web.Application()
    app.router.add_get("/probe", probe)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    state["port"] = runner.addresses[0][1]

    yield state

    await runner.cleanup()


class TestMTConnectClient:

    @pytest.mark.asyncio
    async def test_success(self, agent):
        context = ProbeContext("127.0.0.1", agent["port"])
        outcome = await MTConnectClient(2).probe(build_agent_url("127.0.0.1", agent["port"]), context)

        assert isinstance(outcome, ProbeSuccess)
        assert outcome.context == context
        assert [d.name for d in outcome.devices] == ["Lathe-1", "mill2"]
        assert agent["paths"] == ["/probe"]

    @pytest.mark.asyncio
    async def test_error_document_with_http_error(self, agent):
        agent["mode"] = "error"
        context = ProbeContext("127.0.0.1", agent["port"])
        outcome = await MTConnectClient(2).probe(build_agent_url("127.0.0.1", agent["port"]), context)

        assert isinstance(outcome, ProbeError)
        assert outcome.errors[0][0] == "NO_DEVICE"

    @pytest.mark.asyncio
    async def test_not_an_agent(self, agent):
        agent["mode"] = "html"
        context = ProbeContext("127.0.0.1", agent["port"])
        outcome = await MTConnectClient(2).probe(build_agent_url("127.0.0.1", agent["port"]), context)

        assert isinstance(outcome, ProbeConnectionError)
        assert isinstance(outcome.cause, MTConnectParseError)

    @pytest.mark.asyncio
    async def test_http_404(self, agent):
        agent["mode"] = "missing"
        context = ProbeContext("127.0.0.1", agent["port"])
        outcome = await MTConnectClient(2).probe(build_agent_url("127.0.0.1", agent["port"]), context)

        assert isinstance(outcome, ProbeConnectionError)
        assert "404" in str(outcome.cause)

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        port = _free_port()
        context = ProbeContext("127.0.0.1", port)
        outcome = await MTConnectClient(2).probe(build_agent_url("127.0.0.1", port), context)

        assert isinstance(outcome, ProbeConnectionError)
        assert outcome.context is context
        assert outcome.cause is not None


def test_build_agent_url():
    assert build_agent_url("192.168.1.20", 5000) == "http://192.168.1.20:5000/"
