"""Skill 基礎定義。

定義 SkillMetadata 資料結構與 Skill 介面。
一個 Skill 是具有靜態描述資料與非同步 execute 操作的獨立請求處理單元。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Protocol, runtime_checkable


@dataclass(frozen=True)
class SkillMetadata:
    """Skill 描述資料（不可變）。

    Attributes:
        name: Skill 名稱（唯一識別）
        version: 語意化版本字串
        description: Skill 描述
        author: 作者
        capabilities: 能力標籤集合
        input_schema: JSON Schema 格式的輸入描述（僅供參考，Runtime 不驗證）
    """

    name: str
    version: str
    description: str
    author: str = ''
    capabilities: frozenset[str] = field(default_factory=lambda: frozenset())
    input_schema: dict[str, Any] = field(default_factory=lambda: {}, hash=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        """轉換為 Registry 檔案使用的 JSON 格式。

        Returns:
            以原始 wire key（inputSchema）表示的 dict，capabilities 排序後輸出
        """
        return {
            'name': self.name,
            'version': self.version,
            'description': self.description,
            'author': self.author,
            'capabilities': sorted(self.capabilities),
            'inputSchema': self.input_schema,
        }


@runtime_checkable
class Skill(Protocol):
    """Skill Protocol。

    實作者需提供類別層級的 metadata，以及自行驗證輸入的非同步 execute。
    成功時回傳領域特定的結果，失敗時拋出領域特定的例外。
    """

    metadata: ClassVar[SkillMetadata]

    async def execute(self, input_data: dict[str, Any]) -> dict[str, Any]:
        """執行 Skill。

        Args:
            input_data: Skill 輸入

        Returns:
            Skill 執行結果
        """
        ...
