"""设备定位提供方。

会话创建时查询一次坐标，用于地图检索。三种实现：

- StaticLocationProvider: 使用配置中固定的经纬度。
- IpGeolocationProvider: 通过 HTTP 查询 IP 定位服务。
- DisabledLocationProvider: 始终拒绝，相当于用户未授权定位。

任何实现都只会抛出 BusinessError 子类，拒绝统一用 PermissionDenied 表示。
"""

from typing import Any, Protocol

import httpx

from salon_assistant.config.settings import settings
from salon_assistant.domain.exceptions import ApiError, NetworkError, PermissionDenied, ValidationError
from salon_assistant.domain.models import LocationCoords


class LocationProvider(Protocol):
    async def locate(self) -> LocationCoords:
        ...


class StaticLocationProvider:
    def __init__(self, coords: LocationCoords):
        self._coords = coords

    async def locate(self) -> LocationCoords:
        return self._coords


class DisabledLocationProvider:
    async def locate(self) -> LocationCoords:
        raise PermissionDenied(code="LOCATION_DISABLED", message="Location access is disabled")


class IpGeolocationProvider:
    """基于出口 IP 的粗略定位。"""

    def __init__(self, url: str, timeout: float = 10.0):
        self._url = url
        self._timeout = timeout

    async def locate(self) -> LocationCoords:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, trust_env=False) as client:
                resp = await client.get(self._url, headers={"Accept": "application/json"})
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__)
        if resp.status_code in (401, 403):
            raise PermissionDenied(code="LOCATION_DENIED", message=resp.text, http_status=resp.status_code)
        if resp.status_code >= 400:
            raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
        try:
            data = resp.json()
        except ValueError:
            raise ApiError(code="BAD_RESPONSE", message="Geolocation response is not JSON")
        return _coords_from_payload(data)


def _coords_from_payload(data: Any) -> LocationCoords:
    if not isinstance(data, dict):
        raise ApiError(code="BAD_RESPONSE", message="Geolocation response is not an object")
    # ipapi.co 出错时返回 200 + {"error": true, "reason": ...}
    if data.get("error"):
        raise PermissionDenied(code="LOCATION_DENIED", message=str(data.get("reason") or "lookup refused"))
    lat = data.get("latitude", data.get("lat"))
    lon = data.get("longitude", data.get("lon"))
    try:
        return LocationCoords(latitude=float(lat), longitude=float(lon))
    except (TypeError, ValueError) as e:
        raise ApiError(code="BAD_RESPONSE", message=f"Invalid coordinates: {e}")


def create_location_provider(cfg=settings) -> LocationProvider:
    """根据 location_mode 配置选择定位实现。"""

    mode = getattr(cfg, "location_mode", "off")
    if mode == "static":
        lat = getattr(cfg, "static_latitude", None)
        lon = getattr(cfg, "static_longitude", None)
        if lat is None or lon is None:
            raise ValidationError(
                code="MISSING_COORDINATES",
                message="location_mode=static requires static_latitude and static_longitude",
            )
        return StaticLocationProvider(LocationCoords(latitude=lat, longitude=lon))
    if mode == "ip":
        return IpGeolocationProvider(cfg.geolocation_url, timeout=cfg.http_timeout)
    return DisabledLocationProvider()
