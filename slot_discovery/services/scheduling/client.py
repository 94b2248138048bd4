"""
Remote scheduling service client.
Read-only access to doctors and slots. The discovery pipelines never
write through this client and it performs no retries: a failed call is
reported once and the caller decides whether to ask again.
"""

from typing import Any
from urllib.parse import quote

import httpx

from slot_discovery.config import settings
from slot_discovery.infrastructure.observability.logging import get_logger
from slot_discovery.models.domain.scheduling_domain import Doctor, MalformedRecordError, Slot

logger = get_logger(__name__)


def _segment(value: str) -> str:
    """Percent-encode an id so it stays one path segment (no "/", "?" or "#")."""
    encoded = quote(value, safe="")
    # "." and ".." would still be resolved as dot segments
    if encoded in (".", ".."):
        encoded = encoded.replace(".", "%2E")
    return encoded


class SchedulingServiceError(Exception):
    """Custom exception for remote scheduling service errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.status_code = status_code
        self.response_data = response_data or {}


class SchedulingServiceClient:
    """
    Async client for the remote scheduling service.

    Wraps a single httpx.AsyncClient; callers must close() it when done.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.SCHEDULING_API_URL).rstrip("/")
        self._client = self._create_client(timeout or settings.SCHEDULING_API_TIMEOUT, transport)

    def _create_client(
        self, timeout: float, transport: httpx.AsyncBaseTransport | None
    ) -> httpx.AsyncClient:
        """Create async HTTP client for the scheduling API."""
        limits = httpx.Limits(max_keepalive_connections=20, max_connections=50)
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            limits=limits,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _get(self, path: str, operation: str, **kwargs) -> Any:
        try:
            response = await self._client.get(path, **kwargs)
        except httpx.RequestError as e:
            logger.warning(
                f"Scheduling API {operation} request error",
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise SchedulingServiceError(
                f"Scheduling service unreachable: {e}", error_code="network_error"
            ) from e
        return self._handle_api_response(response, operation)

    def _handle_api_response(self, response: httpx.Response, operation: str) -> Any:
        """
        Handle and validate scheduling API response.

        Args:
            response: HTTP response from the scheduling API
            operation: Operation name for logging

        Returns:
            Parsed JSON body

        Raises:
            SchedulingServiceError: If the response is an error or not JSON
        """
        logger.debug(
            f"Scheduling API {operation} response",
            status_code=response.status_code,
            response_size=len(response.content),
        )

        if response.is_success:
            try:
                return response.json() if response.content else None
            except ValueError as e:
                logger.error(f"Failed to parse scheduling API {operation} response", error=str(e))
                raise SchedulingServiceError(f"Invalid response format: {e}") from e

        try:
            error_data = response.json() if response.content else {}
        except ValueError:
            logger.error(
                f"Scheduling API {operation} failed with non-JSON response",
                status_code=response.status_code,
                response_text=response.text[:200],
            )
            raise SchedulingServiceError(
                f"Scheduling service error (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from None

        error_info = error_data.get("error", {}) if isinstance(error_data, dict) else {}
        if not isinstance(error_info, dict):
            error_info = {"message": str(error_info)}
        error_code = str(error_info.get("code", response.status_code))
        error_message = error_info.get("message", "Unknown scheduling service error")

        logger.error(
            f"Scheduling API {operation} failed",
            status_code=response.status_code,
            error_code=error_code,
            error_message=error_message,
        )
        raise SchedulingServiceError(
            self._map_error(response.status_code, error_message),
            error_code=error_code,
            status_code=response.status_code,
            response_data=error_data if isinstance(error_data, dict) else {},
        )

    def _map_error(self, status_code: int, error_message: str) -> str:
        """Map HTTP status codes to user-friendly messages."""
        error_mappings = {
            400: "Invalid scheduling request.",
            404: "Doctor or slot not found.",
            429: "Too many scheduling requests. Please try again later.",
            500: "Scheduling service temporarily unavailable.",
            502: "Scheduling service temporarily unavailable.",
            503: "Scheduling service temporarily unavailable.",
        }
        return error_mappings.get(status_code, f"Scheduling error: {error_message}")

    def _expect_list(self, payload: Any, operation: str) -> list:
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise SchedulingServiceError(f"Unexpected {operation} payload: expected a list")
        return payload

    async def list_doctors(self) -> list[Doctor]:
        """
        List all doctors in arrival order.

        Raises:
            SchedulingServiceError: If the request fails
        """
        payload = self._expect_list(await self._get("/doctors", "list_doctors"), "list_doctors")
        doctors = []
        for raw in payload:
            try:
                doctors.append(Doctor.from_api(raw))
            except MalformedRecordError as e:
                logger.warning("Skipping malformed doctor record", error=str(e))
        logger.debug("Doctors listed", count=len(doctors))
        return doctors

    async def list_doctor_slots(self, doctor_id: str) -> list[Slot]:
        """
        List slots for a doctor. An empty list is a valid answer.

        Raises:
            SchedulingServiceError: If the request fails
        """
        payload = self._expect_list(
            await self._get(f"/doctors/{_segment(doctor_id)}/slots", "list_doctor_slots"),
            "list_doctor_slots",
        )
        slots = []
        for raw in payload:
            try:
                slots.append(Slot.from_api(raw))
            except MalformedRecordError as e:
                logger.warning("Skipping malformed slot record", doctor_id=doctor_id, error=str(e))
        return slots

    async def get_slot(self, slot_id: str) -> Slot:
        """
        Fetch a single slot.

        Raises:
            SchedulingServiceError: If the request fails or the record is malformed
        """
        payload = await self._get(f"/slots/{_segment(slot_id)}", "get_slot")
        try:
            return Slot.from_api(payload or {})
        except MalformedRecordError as e:
            raise SchedulingServiceError(str(e), error_code="malformed_record") from e

    async def ping(self) -> bool:
        """Check the doctors endpoint answers."""
        try:
            await self._get("/doctors", "ping")
            return True
        except SchedulingServiceError:
            return False
