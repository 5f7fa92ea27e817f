"""Client for the device and kiosk status authority."""

import logging
from abc import ABC, abstractmethod

import httpx
import pydantic

from lifepass.clients.schemas import (
    DeviceStatusResponsePayload,
    KioskSlotsResponsePayload,
    LifepassSearchResponsePayload,
)
from lifepass.domain import DeviceStatus, KioskSlot
from lifepass.domain.errors import DeviceNotFoundError, DeviceUnavailableError

logger = logging.getLogger(__name__)


class DeviceStatusClient(ABC):
    """Interface to the live device/kiosk status authority."""

    @abstractmethod
    def get_device_status(self, device_code: str) -> DeviceStatus:
        """Return the live status of one device.

        Raises:
            DeviceNotFoundError: If the authority does not know the device.
            DeviceUnavailableError: If the status cannot be determined.
        """
        ...

    @abstractmethod
    def list_kiosk_slots(self, resort_id: int, kiosk_id: str) -> list[KioskSlot]:
        """Return the live state of every slot of a kiosk."""
        ...

    @abstractmethod
    def find_device_location(self, resort_id: int, device_code: str) -> KioskSlot | None:
        """Return the kiosk slot currently holding a device, if any."""
        ...


class HttpDeviceStatusClient(DeviceStatusClient):
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    def _post(self, path: str, payload: dict, subject: str) -> httpx.Response:
        try:
            with httpx.Client(
                base_url=self._base_url,
                headers={"x-api-key": self._api_key},
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = client.post(path, json=payload)
                response.raise_for_status()
                return response
        except httpx.HTTPError as exc:
            logger.error("Device status request %s failed: %r", path, exc)
            raise DeviceUnavailableError(subject, "status unknown") from exc

    def get_device_status(self, device_code: str) -> DeviceStatus:
        response = self._post("/api/cash-desk/device-status", {"deviceId": device_code}, device_code)
        try:
            payload = DeviceStatusResponsePayload.model_validate_json(response.content)
        except pydantic.ValidationError as exc:
            logger.error("Malformed device status for %s: %s", device_code, exc)
            raise DeviceUnavailableError(device_code, "status unknown") from exc

        devices = payload.data.devices if payload.data else []
        for result in devices:
            if result.success and result.device_status is not None:
                return result.device_status.to_domain()
        raise DeviceNotFoundError(device_code)

    def list_kiosk_slots(self, resort_id: int, kiosk_id: str) -> list[KioskSlot]:
        response = self._post(
            "/api/kiosks/slots", {"resortId": resort_id, "kioskId": kiosk_id}, kiosk_id
        )
        try:
            payload = KioskSlotsResponsePayload.model_validate_json(response.content)
        except pydantic.ValidationError as exc:
            logger.error("Malformed slot list for kiosk %s: %s", kiosk_id, exc)
            raise DeviceUnavailableError(kiosk_id, "status unknown") from exc
        if not payload.success:
            raise DeviceUnavailableError(kiosk_id, payload.message or "status unknown")
        return [slot.to_domain() for slot in payload.slots]

    def find_device_location(self, resort_id: int, device_code: str) -> KioskSlot | None:
        response = self._post(
            "/api/kiosks/search-lifepass",
            {"resortId": resort_id, "lifepassDeviceId": device_code},
            device_code,
        )
        try:
            payload = LifepassSearchResponsePayload.model_validate_json(response.content)
        except pydantic.ValidationError as exc:
            logger.error("Malformed kiosk search for %s: %s", device_code, exc)
            raise DeviceUnavailableError(device_code, "status unknown") from exc
        if not payload.found or payload.location is None:
            return None
        return payload.location.to_domain()
