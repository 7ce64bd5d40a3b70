"""
MTConnect probe client

Requests the agent's ``probe`` document and classifies the answer as an
MTConnectDevices document, an MTConnectError document, or a connection
failure. Namespaces differ between MTConnect schema versions so elements are
matched by local name only.
"""

import asyncio
import logging
import xml.etree.ElementTree as ET

from .models import (
    DeviceDescription, ProbeConnectionError, ProbeContext, ProbeError,
    ProbeOutcome, ProbeSuccess
)
from ..http_helper import create_agent_session

logger = logging.getLogger(__name__)


class MTConnectParseError(ValueError):
    """Body is not a recognisable MTConnect response document"""


def _local_name(tag: str) -> str:
    return tag.rsplit('}', 1)[-1] if '}' in tag else tag


def _children(element: ET.Element, name: str):
    return [child for child in element if _local_name(child.tag) == name]


def parse_probe_document(body, context: ProbeContext) -> ProbeOutcome:
    """
    Parse a probe response body.

    Returns ProbeSuccess or ProbeError; raises MTConnectParseError when the
    body is malformed XML or neither document type.
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise MTConnectParseError(f"Malformed XML: {e}") from e

    root_name = _local_name(root.tag)

    if root_name == "MTConnectDevices":
        devices = []
        for devices_element in _children(root, "Devices"):
            # 1.7+ agents also list themselves as an Agent entry; only machines count
            for device in _children(devices_element, "Device"):
                device_id = device.get("id")
                name = device.get("name") or device_id
                if not name:
                    continue
                devices.append(DeviceDescription(
                    name=name,
                    uuid=device.get("uuid"),
                    device_id=device_id
                ))
        return ProbeSuccess(context=context, devices=devices)

    if root_name == "MTConnectError":
        errors = []
        for errors_element in _children(root, "Errors"):
            for error in _children(errors_element, "Error"):
                errors.append((error.get("errorCode", "UNKNOWN"), (error.text or "").strip()))
        # Pre 1.4 documents put a single Error directly under the root
        for error in _children(root, "Error"):
            errors.append((error.get("errorCode", "UNKNOWN"), (error.text or "").strip()))
        return ProbeError(context=context, errors=errors)

    raise MTConnectParseError(f"Unexpected root element: {root_name}")


class MTConnectClient:
    """Issues MTConnect probe requests against agents"""

    def __init__(self, request_timeout: float = 5):
        self.request_timeout = request_timeout

    async def probe(self, base_url: str, context: ProbeContext) -> ProbeOutcome:
        """
        Probe the agent at ``base_url``.
        Exactly one outcome is returned; exceptions are never raised.
        """
        url = base_url.rstrip('/') + "/probe"
        try:
            async with create_agent_session(self.request_timeout) as session:
                async with session.get(url) as response:
                    body = await response.read()
                    status = response.status

            try:
                outcome = parse_probe_document(body, context)
            except MTConnectParseError as e:
                cause = e if status == 200 else MTConnectParseError(f"HTTP {status} without MTConnect document")
                logger.debug(f"Unusable probe response from {url}: {cause}")
                return ProbeConnectionError(context=context, cause=cause)

            if isinstance(outcome, ProbeError):
                logger.debug(f"MTConnect error from {url}: {outcome.errors}")
            return outcome

        except asyncio.TimeoutError as e:
            logger.debug(f"Probe timed out for {url}")
            return ProbeConnectionError(context=context, cause=e)
        except Exception as e:
            logger.debug(f"Probe failed for {url}: {e}")
            return ProbeConnectionError(context=context, cause=e)
