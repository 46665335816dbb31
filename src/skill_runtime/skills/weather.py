"""Weather Skill 模組。

使用 Open-Meteo API 查詢城市目前天氣，示範 HTTP 請求、重試、快取與錯誤處理。
常見城市使用內建座標表，其餘城市透過地理編碼 API 取得座標。
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, cast

import httpx

from skill_runtime.config import WeatherConfig
from skill_runtime.exceptions import WeatherError
from skill_runtime.skills.base import SkillMetadata

logger = logging.getLogger(__name__)

UNITS: tuple[str, ...] = ('metric', 'imperial')
DEFAULT_HUMIDITY = 65

# 常見城市座標（key 為小寫城市名稱）
CITY_COORDINATES: dict[str, tuple[float, float]] = {
    'san francisco': (37.7749, -122.4194),
    'new york': (40.7128, -74.0060),
    'london': (51.5074, -0.1278),
    'paris': (48.8566, 2.3522),
    'tokyo': (35.6762, 139.6503),
    'sydney': (-33.8688, 151.2093),
    'berlin': (52.5200, 13.4050),
    'mumbai': (19.0760, 72.8777),
    'dubai': (25.2048, 55.2708),
    'singapore': (1.3521, 103.8198),
    'los angeles': (34.0522, -118.2437),
    'chicago': (41.8781, -87.6298),
    'toronto': (43.6532, -79.3832),
    'seattle': (47.6062, -122.3321),
    'austin': (30.2672, -97.7431),
    'amsterdam': (52.3676, 4.9041),
    'madrid': (40.4168, -3.7038),
    'rome': (41.9028, 12.4964),
    'moscow': (55.7558, 37.6173),
    'beijing': (39.9042, 116.4074),
    'hong kong': (22.3193, 114.1694),
    'bangkok': (13.7563, 100.5018),
    'cairo': (30.0444, 31.2357),
    'cape town': (-33.9249, 18.4241),
    'mexico city': (19.4326, -99.1332),
    'sao paulo': (-23.5505, -46.6333),
    'buenos aires': (-34.6037, -58.3816),
}

# WMO 天氣代碼說明
WEATHER_CODES: dict[int, str] = {
    0: 'Clear sky',
    1: 'Mainly clear',
    2: 'Partly cloudy',
    3: 'Overcast',
    45: 'Foggy',
    48: 'Depositing rime fog',
    51: 'Light drizzle',
    53: 'Moderate drizzle',
    55: 'Dense drizzle',
    61: 'Slight rain',
    63: 'Moderate rain',
    65: 'Heavy rain',
    71: 'Slight snow',
    73: 'Moderate snow',
    75: 'Heavy snow',
    80: 'Slight rain showers',
    81: 'Moderate rain showers',
    82: 'Violent rain showers',
    95: 'Thunderstorm',
    96: 'Thunderstorm with slight hail',
    99: 'Thunderstorm with heavy hail',
}


@dataclass
class _CacheEntry:
    """快取項目。"""

    data: dict[str, Any]
    stored_at: float


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class WeatherSkill:
    """天氣查詢 Skill。

    輸入格式：{'city': str, 'units': 'metric' | 'imperial', 'includeDetails': bool}
    成功的查詢會依 (city, units) 快取 cache_ttl 秒。

    Args:
        config: Weather 配置，未指定時使用預設值
        transport: 自訂 httpx transport（測試時注入 MockTransport）
        clock: 取得目前時間（秒）的函數，用於快取過期判斷
    """

    metadata = SkillMetadata(
        name='weather',
        version='1.0.0',
        description='Retrieves current weather information for a specified city',
        author='Agent Team',
        capabilities=frozenset({'weather-forecast', 'temperature-check'}),
        input_schema={
            'type': 'object',
            'required': ['city'],
            'properties': {
                'city': {'type': 'string', 'description': 'City name'},
                'units': {'type': 'string', 'enum': list(UNITS), 'default': 'metric'},
                'includeDetails': {'type': 'boolean', 'default': False},
            },
        },
    )

    def __init__(
        self,
        config: WeatherConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or WeatherConfig()
        self._transport = transport
        self._clock = clock
        self._cache: dict[str, _CacheEntry] = {}

    async def execute(self, input_data: dict[str, Any]) -> dict[str, Any]:
        """查詢天氣。

        Args:
            input_data: 查詢輸入

        Returns:
            {'city', 'temperature', 'condition', 'units', 'timestamp', 'cached'}，
            includeDetails 為 True 時額外包含 'humidity' 與 'windSpeed'

        Raises:
            WeatherError: 輸入無效、城市不存在或 API 請求失敗
        """
        try:
            city, units, detailed = self._parse_input(input_data)
            cache_key = f'{city}:{units}'

            cached = self._get_cached(cache_key)
            if cached is not None:
                logger.debug('天氣快取命中', extra={'cache_key': cache_key})
                return {**cached, 'cached': True}

            data = await self._fetch_weather(city, units, detailed)
            self._cache[cache_key] = _CacheEntry(data=data, stored_at=self._clock())
            return {**data, 'cached': False}
        except Exception as e:
            logger.error('Weather 執行失敗', extra={'error_message': str(e)})
            raise WeatherError(f'Weather skill failed: {e}') from e

    def clear_expired_cache(self) -> int:
        """清除所有過期的快取項目。

        Returns:
            被清除的項目數量
        """
        now = self._clock()
        expired = [
            key
            for key, entry in self._cache.items()
            if now - entry.stored_at > self._config.cache_ttl
        ]
        for key in expired:
            del self._cache[key]
        return len(expired)

    @staticmethod
    def _parse_input(input_data: Any) -> tuple[str, str, bool]:
        """驗證輸入並套用預設值。"""
        if not isinstance(input_data, dict):
            raise ValueError('Invalid input parameters')
        data = cast(dict[str, Any], input_data)

        city = data.get('city')
        if not isinstance(city, str) or not city.strip():
            raise ValueError('City is required')

        units = data.get('units') or 'metric'
        if units not in UNITS:
            raise ValueError(f'Unsupported units: {units}')

        detailed = data.get('includeDetails')
        if detailed is None:
            detailed = False
        if not isinstance(detailed, bool):
            raise ValueError(f'includeDetails must be a boolean: {detailed!r}')

        return city, units, detailed

    def _get_cached(self, key: str) -> dict[str, Any] | None:
        entry = self._cache.get(key)
        if entry is None:
            return None

        if self._clock() - entry.stored_at > self._config.cache_ttl:
            del self._cache[key]
            return None

        return entry.data

    async def _fetch_weather(self, city: str, units: str, detailed: bool) -> dict[str, Any]:
        """取得座標後查詢天氣預報。"""
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self._config.api_timeout),
            transport=self._transport,
        ) as client:
            coords = CITY_COORDINATES.get(city.lower())
            display_name = city
            if coords is None:
                logger.info('城市不在內建座標表，改用地理編碼 API', extra={'city': city})
                coords, display_name = await self._geocode(client, city)

            params: dict[str, Any] = {
                'latitude': coords[0],
                'longitude': coords[1],
                'current_weather': 'true',
                'timezone': 'auto',
            }
            if detailed:
                params['hourly'] = 'relativehumidity_2m'

            body = await self._get_json(client, self._config.forecast_url, params)

        if not body or not body.get('current_weather'):
            raise ValueError('No data received from weather API')

        return self._build_output(display_name, units, detailed, body, body['current_weather'])

    async def _geocode(
        self,
        client: httpx.AsyncClient,
        city: str,
    ) -> tuple[tuple[float, float], str]:
        """透過地理編碼 API 查詢城市座標與官方名稱。"""
        params = {'name': city, 'count': 1, 'language': 'en', 'format': 'json'}
        body = await self._get_json(client, self._config.geocoding_url, params)

        results = body.get('results') or []
        if not results:
            raise ValueError(f'City not found: {city}')

        location = results[0]
        coords = (float(location['latitude']), float(location['longitude']))
        return coords, str(location.get('name') or city)

    async def _get_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: dict[str, Any],
    ) -> dict[str, Any]:
        """發送 GET 請求，可重試錯誤以線性退避重試。

        第 n 次重試前等待 retry_initial_delay * n 秒，最多重試 max_retries 次。

        Raises:
            httpx.HTTPError: 不可重試錯誤或重試耗盡
        """
        for attempt in range(1 + self._config.max_retries):
            try:
                response = await client.get(url, params=params)
                response.raise_for_status()
                # JSON 反序列化邊界
                return cast(dict[str, Any], response.json())
            except httpx.HTTPError as e:
                if not self._is_retryable(e) or attempt >= self._config.max_retries:
                    raise
                delay = self._config.retry_initial_delay * (attempt + 1)
                logger.warning(
                    '天氣 API 請求失敗，準備重試',
                    extra={
                        'attempt': attempt + 1,
                        'max_retries': self._config.max_retries,
                        'delay': delay,
                        'error': str(e),
                    },
                )
                await asyncio.sleep(delay)
        raise httpx.HTTPError('API request failed after retries')

    @staticmethod
    def _is_retryable(error: httpx.HTTPError) -> bool:
        """判斷錯誤是否可重試。

        可重試：超時、連線失敗等傳輸錯誤，以及 429 與 5xx 狀態碼。
        其餘 4xx 狀態碼不重試。
        """
        if isinstance(error, httpx.HTTPStatusError):
            status = error.response.status_code
            return status == 429 or status >= 500
        return True

    @staticmethod
    def _build_output(
        city: str,
        units: str,
        detailed: bool,
        body: dict[str, Any],
        current: dict[str, Any],
    ) -> dict[str, Any]:
        temperature = float(current.get('temperature', 0))
        if units == 'imperial':
            temperature = temperature * 9 / 5 + 32

        weather_code = int(current.get('weathercode') or 0)
        output: dict[str, Any] = {
            'city': city,
            'temperature': _round_half_up(temperature),
            'condition': WEATHER_CODES.get(weather_code, 'Unknown'),
            'units': '°C' if units == 'metric' else '°F',
        }

        if detailed:
            humidity: Any = None
            hourly = body.get('hourly') or {}
            values = hourly.get('relativehumidity_2m') or []
            hour = datetime.now().hour
            if hour < len(values):
                humidity = values[hour]
            output['humidity'] = humidity or DEFAULT_HUMIDITY
            output['windSpeed'] = _round_half_up(float(current.get('windspeed') or 0))

        output['timestamp'] = _utc_timestamp()
        output['cached'] = False
        return output
