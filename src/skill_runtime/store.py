"""Registry Store 模組。

將各 Skill 的描述資料與啟用狀態以 JSON 持久化到檔案。
讀寫失敗不會拋出例外，而是包在 LoadResult / SaveResult 中回傳，由呼叫端決定如何處理。
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

from skill_runtime.exceptions import RegistryStoreError
from skill_runtime.skills.base import SkillMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistedEntry:
    """寫入檔案的單一 Skill 狀態（不含 Skill 實例）。"""

    metadata: SkillMetadata
    enabled: bool


@dataclass
class LoadResult:
    """讀取結果。

    Attributes:
        flags: Skill 名稱到啟用狀態的對應
        found: 檔案是否存在
        error: 讀取或解析失敗時的錯誤，成功時為 None
    """

    flags: dict[str, bool] = field(default_factory=lambda: {})
    found: bool = False
    error: RegistryStoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SaveResult:
    """寫入結果。

    Attributes:
        path: 目標檔案路徑
        error: 寫入失敗時的錯誤，成功時為 None
    """

    path: Path
    error: RegistryStoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RegistryStore:
    """檔案型 Registry Store。

    檔案格式：{skill_name: {'metadata': {...}, 'enabled': bool}}，2 空格縮排。

    Args:
        path: Registry 檔案路徑
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> LoadResult:
        """讀取各 Skill 的啟用狀態。

        檔案不存在時回傳空結果（首次執行沒有先前狀態，不視為錯誤）。
        enabled 不是布林值的項目會被略過。

        Returns:
            讀取結果
        """
        if not self._path.exists():
            logger.debug('Registry 檔案不存在，略過讀取', extra={'path': str(self._path)})
            return LoadResult()

        # 巢狀過深的 JSON 會讓 json.loads 拋出 RecursionError
        try:
            raw: Any = json.loads(self._path.read_text(encoding='utf-8'))
        except (OSError, ValueError, RecursionError) as e:
            return LoadResult(found=True, error=RegistryStoreError(f'無法讀取 Registry: {e}'))

        if not isinstance(raw, dict):
            error = RegistryStoreError(f'Registry 格式錯誤，頂層應為物件: {type(raw).__name__}')
            return LoadResult(found=True, error=error)

        flags: dict[str, bool] = {}
        # json.loads 回傳 Any，在反序列化邊界使用 cast
        for name, config in cast(dict[str, Any], raw).items():
            enabled = config.get('enabled') if isinstance(config, dict) else None
            if not isinstance(enabled, bool):
                logger.warning('Registry 項目缺少有效的 enabled 欄位，略過', extra={'skill_name': name})
                continue
            flags[name] = enabled

        return LoadResult(flags=flags, found=True)

    def save(self, entries: Mapping[str, PersistedEntry]) -> SaveResult:
        """將所有 Skill 狀態寫入檔案。

        目標目錄不存在時會自動建立。

        Args:
            entries: Skill 名稱到持久化狀態的對應

        Returns:
            寫入結果
        """
        payload = {
            name: {'metadata': entry.metadata.to_dict(), 'enabled': entry.enabled}
            for name, entry in entries.items()
        }

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            text = json.dumps(payload, indent=2, ensure_ascii=False)
            self._path.write_text(text + '\n', encoding='utf-8')
        except (OSError, TypeError, ValueError) as e:
            return SaveResult(path=self._path, error=RegistryStoreError(f'無法寫入 Registry: {e}'))

        return SaveResult(path=self._path)
