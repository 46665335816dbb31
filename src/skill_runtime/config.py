"""Skill Runtime 統一配置模組。

提供 Runtime 與內建 Skill 的配置資料結構，支援從環境變數讀取 Registry 路徑。
"""

from __future__ import annotations

import os
from dataclasses import dataclass

# 預設值
DEFAULT_REGISTRY_PATH = 'skills/registry.json'
REGISTRY_PATH_ENV = 'SKILL_REGISTRY_PATH'

DEFAULT_FORECAST_URL = 'https://api.open-meteo.com/v1/forecast'
DEFAULT_GEOCODING_URL = 'https://geocoding-api.open-meteo.com/v1/search'
DEFAULT_API_TIMEOUT = 15.0
DEFAULT_CACHE_TTL = 3600.0


@dataclass
class RuntimeConfig:
    """Runtime 配置。

    Attributes:
        registry_path: Registry 檔案路徑（可選，未指定時從環境變數讀取）
    """

    registry_path: str | None = None

    def get_registry_path(self) -> str:
        """取得 Registry 檔案路徑，優先使用明確指定的值，否則從環境變數讀取。

        Returns:
            Registry 檔案路徑，環境變數也未設定時回傳預設路徑
        """
        if self.registry_path is not None:
            return self.registry_path
        return os.environ.get(REGISTRY_PATH_ENV) or DEFAULT_REGISTRY_PATH


@dataclass
class WeatherConfig:
    """Weather Skill 配置。

    Attributes:
        forecast_url: 天氣預報 API 端點
        geocoding_url: 地理編碼 API 端點
        api_timeout: API 請求超時秒數
        max_retries: 每個上游請求的最大嘗試次數
        retry_initial_delay: 重試等待基準秒數（線性退避：delay * attempt）
        cache_ttl: 快取有效秒數
    """

    forecast_url: str = DEFAULT_FORECAST_URL
    geocoding_url: str = DEFAULT_GEOCODING_URL
    api_timeout: float = DEFAULT_API_TIMEOUT
    max_retries: int = 2
    retry_initial_delay: float = 1.0
    cache_ttl: float = DEFAULT_CACHE_TTL
