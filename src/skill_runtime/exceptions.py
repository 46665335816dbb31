"""Skill Runtime 例外模組。

分為三類：
- Runtime 查找錯誤（SkillNotFoundError / SkillDisabledError），在 Skill 執行前拋出
- Skill 執行錯誤（SkillError 子類別），由各 Skill 自行定義，Runtime 原樣轉拋
- Registry 持久化錯誤（RegistryStoreError），只會被包在結果物件中回傳，不會拋出
"""

from __future__ import annotations

from typing import Any


class SkillRuntimeError(Exception):
    """Runtime 基礎例外。"""


class SkillNotFoundError(SkillRuntimeError):
    """Skill 未註冊。"""

    def __init__(self, skill_name: str) -> None:
        super().__init__(f'Skill not found: {skill_name}')
        self.skill_name = skill_name


class SkillDisabledError(SkillRuntimeError):
    """Skill 已停用。"""

    def __init__(self, skill_name: str) -> None:
        super().__init__(f'Skill is disabled: {skill_name}')
        self.skill_name = skill_name


class RegistryStoreError(Exception):
    """Registry 檔案讀寫或解析失敗。"""


class SkillError(Exception):
    """內建 Skill 的執行錯誤基礎類別。"""


class CalculationError(SkillError):
    """Calculator Skill 的結構化錯誤。

    Attributes:
        payload: 錯誤內容，格式為
            {'error': 'CALCULATION_FAILED', 'message': str, 'timestamp': str, 'success': False}
    """

    code = 'CALCULATION_FAILED'

    def __init__(self, message: str, timestamp: str) -> None:
        super().__init__(message)
        self.message = message
        self.payload: dict[str, Any] = {
            'error': self.code,
            'message': message,
            'timestamp': timestamp,
            'success': False,
        }

    def to_dict(self) -> dict[str, Any]:
        """回傳錯誤內容的副本。"""
        return dict(self.payload)


class WeatherError(SkillError):
    """Weather Skill 執行失敗。"""
