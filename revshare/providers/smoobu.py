from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from revshare.config import Settings
from revshare.schemas.smoobu import (
    SmoobuApartment,
    SmoobuReservation,
    SmoobuReservationPage,
)

logger = logging.getLogger(__name__)


class SmoobuAPIError(Exception):
    """Smoobu API 연동 중 발생한 오류 (네트워크/HTTP/응답 형식)"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        self.message = message
        super().__init__(message)


class SmoobuClient:
    """Smoobu 예약 조회 클라이언트 (읽기 전용)"""

    _RESERVATIONS_PATH = "/reservations"
    _APARTMENTS_PATH = "/apartments"

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = settings.SMOOBU_BASE_URL.rstrip("/")
        self._api_key = settings.SMOOBU_API_KEY
        self._page_size = settings.SMOOBU_PAGE_SIZE
        self._timeout = httpx.Timeout(settings.SMOOBU_TIMEOUT_SECONDS, connect=5.0)
        # 테스트에서 httpx.MockTransport 주입
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Api-Key": self._api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _request(
        self, path: str, params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        if not self._api_key:
            raise SmoobuAPIError("Smoobu API key is not configured")

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(path, params=params, headers=self._headers())
        except httpx.TimeoutException as exc:
            raise SmoobuAPIError("Smoobu request timed out") from exc
        except httpx.RequestError as exc:
            logger.warning("Smoobu request error: %s", exc)
            raise SmoobuAPIError(f"Smoobu is unreachable: {exc}") from exc

        if response.status_code >= 400:
            raise SmoobuAPIError(
                f"Smoobu API error ({response.status_code}): {self._error_message(response)}",
                status_code=response.status_code,
            )

        # 일부 엔드포인트는 성공 시 빈 본문
        if not response.content:
            return {}

        try:
            payload = response.json()
        except ValueError as exc:
            raise SmoobuAPIError("Smoobu returned a non-JSON response") from exc

        if not isinstance(payload, dict):
            raise SmoobuAPIError("Smoobu returned an unexpected payload")
        return payload

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(body, dict):
            for key in ("error", "message", "detail", "title"):
                if body.get(key):
                    return str(body[key])
        return response.reason_phrase

    async def get_reservations(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        apartment_id: Optional[int] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> SmoobuReservationPage:
        """예약 한 페이지 조회 (from/to는 YYYY-MM-DD)"""
        params: Dict[str, Any] = {
            "page": page,
            "pageSize": page_size or self._page_size,
        }
        if date_from:
            params["from"] = date_from
        if date_to:
            params["to"] = date_to
        if apartment_id is not None:
            params["apartmentId"] = apartment_id

        payload = await self._request(self._RESERVATIONS_PATH, params=params)
        try:
            return SmoobuReservationPage.model_validate(payload)
        except ValueError as exc:
            logger.error("Smoobu reservation payload invalid: %s", exc)
            raise SmoobuAPIError("Smoobu returned malformed reservation data") from exc

    async def get_all_reservations(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        apartment_id: Optional[int] = None,
    ) -> List[SmoobuReservation]:
        """page_count까지 모든 페이지를 순서대로 조회"""
        reservations: List[SmoobuReservation] = []
        current_page = 1
        total_pages = 1

        while current_page <= total_pages:
            result = await self.get_reservations(
                date_from=date_from,
                date_to=date_to,
                apartment_id=apartment_id,
                page=current_page,
            )
            reservations.extend(result.bookings)
            total_pages = max(result.page_count, 1)
            current_page += 1

        logger.info(
            f"Fetched {len(reservations)} Smoobu reservations "
            f"({date_from} ~ {date_to}, {total_pages} page(s))"
        )
        return reservations

    async def get_apartments(self) -> List[SmoobuApartment]:
        payload = await self._request(self._APARTMENTS_PATH)
        try:
            return [
                SmoobuApartment.model_validate(item)
                for item in payload.get("apartments") or []
            ]
        except ValueError as exc:
            raise SmoobuAPIError("Smoobu returned malformed apartment data") from exc

    async def test_connection(self) -> bool:
        try:
            await self.get_apartments()
            return True
        except SmoobuAPIError as e:
            logger.warning(f"Smoobu connection test failed: {e}")
            return False
