"""Skill Runtime 模組。

管理 Skill 的註冊、啟用狀態、分派執行，以及與 Registry Store 之間的同步。
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from skill_runtime.config import RuntimeConfig
from skill_runtime.exceptions import SkillDisabledError, SkillNotFoundError
from skill_runtime.skills import BUILTIN_SKILLS
from skill_runtime.skills.base import Skill, SkillMetadata
from skill_runtime.store import LoadResult, PersistedEntry, RegistryStore, SaveResult

logger = logging.getLogger(__name__)


@dataclass
class RegistryEntry:
    """Registry 中的單一 Skill。

    Attributes:
        instance: Skill 實例（由 Runtime 獨占）
        metadata: Skill 描述資料
        enabled: 是否啟用，註冊時為 True，可被 Registry 檔案覆蓋
    """

    instance: Skill
    metadata: SkillMetadata
    enabled: bool = True


@dataclass
class DispatchHooks:
    """分派觀察回調。

    回調拋出的例外會被記錄並忽略，不會改變分派的回傳值或轉拋的錯誤。

    Attributes:
        on_start: 執行前呼叫（name, input）
        on_success: 執行成功後呼叫（name, result）
        on_failure: 執行失敗後呼叫（name, error），不影響錯誤轉拋
    """

    on_start: Callable[[str, Any], None] | None = None
    on_success: Callable[[str, Any], None] | None = None
    on_failure: Callable[[str, Exception], None] | None = None


class SkillRuntime:
    """Skill 執行環境。

    由程式進入點建立一次，並傳遞給需要分派 Skill 的元件。
    假設同一時間只有一個進行中的 execute_skill 呼叫。

    Args:
        config: Runtime 配置，未指定時使用預設值
        store: Registry Store，未指定時依 config 的路徑建立
        hooks: 分派觀察回調
    """

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        store: RegistryStore | None = None,
        hooks: DispatchHooks | None = None,
    ) -> None:
        self._config = config or RuntimeConfig()
        self._store = store or RegistryStore(self._config.get_registry_path())
        self._hooks = hooks or DispatchHooks()
        self._registry: dict[str, RegistryEntry] = {}

    @property
    def store(self) -> RegistryStore:
        return self._store

    def __contains__(self, name: object) -> bool:
        return name in self._registry

    def __len__(self) -> int:
        return len(self._registry)

    async def initialize(self, skills: Iterable[Skill] | None = None) -> int:
        """初始化 Runtime。

        依序註冊 Skill、讀取 Registry 檔案中的啟用狀態。
        任何步驟失敗都會向上拋出，呼叫端應中止啟動。

        Args:
            skills: 要註冊的 Skill 實例，未指定時建立所有內建 Skill

        Returns:
            已註冊的 Skill 數量
        """
        logger.info('初始化 Skill Runtime')
        try:
            if skills is None:
                skills = [skill_cls() for skill_cls in BUILTIN_SKILLS]
            for skill in skills:
                self.register(skill)
            self.load_registry()
        except Exception:
            logger.exception('Skill Runtime 初始化失敗')
            raise

        logger.info('Skill Runtime 已初始化', extra={'skill_count': len(self._registry)})
        return len(self._registry)

    def register(self, skill: Skill) -> None:
        """註冊 Skill。

        同名 Skill 會被覆蓋（允許開發時重新註冊），舊實例直接丟棄。

        Args:
            skill: Skill 實例，描述資料取自其類別層級的 metadata
        """
        metadata = skill.metadata
        if metadata.name in self._registry:
            logger.warning('Skill 已存在，覆蓋既有註冊', extra={'skill_name': metadata.name})

        self._registry[metadata.name] = RegistryEntry(instance=skill, metadata=metadata)
        logger.info(
            'Skill 已註冊',
            extra={'skill_name': metadata.name, 'skill_version': metadata.version},
        )

    async def execute_skill(self, name: str, input_data: Any) -> Any:
        """分派並執行指定 Skill。

        Args:
            name: Skill 名稱
            input_data: 原樣傳給 Skill 的輸入（Runtime 不驗證）

        Returns:
            Skill 執行結果（原樣回傳）

        Raises:
            SkillNotFoundError: Skill 未註冊
            SkillDisabledError: Skill 已停用
            Exception: Skill 自身拋出的任何錯誤，不做包裝
        """
        entry = self._registry.get(name)
        if entry is None:
            raise SkillNotFoundError(name)
        if not entry.enabled:
            raise SkillDisabledError(name)

        logger.info('執行 Skill', extra={'skill_name': name})
        self._notify(self._hooks.on_start, name, input_data)

        try:
            result = await entry.instance.execute(input_data)
        except Exception as e:
            logger.error('Skill 執行失敗', extra={'skill_name': name, 'error': str(e)})
            self._notify(self._hooks.on_failure, name, e)
            raise

        logger.info('Skill 執行完成', extra={'skill_name': name})
        self._notify(self._hooks.on_success, name, result)
        return result

    def list_skills(self) -> list[dict[str, str]]:
        """列出所有已註冊的 Skill（不論是否啟用）。

        Returns:
            [{'name', 'version', 'description'}, ...]，順序不保證
        """
        return [
            {
                'name': entry.metadata.name,
                'version': entry.metadata.version,
                'description': entry.metadata.description,
            }
            for entry in self._registry.values()
        ]

    def get_metadata(self, name: str) -> SkillMetadata:
        """依名稱取得 Skill 描述資料。

        Raises:
            SkillNotFoundError: Skill 未註冊
        """
        return self._get_entry(name).metadata

    def is_enabled(self, name: str) -> bool:
        """查詢 Skill 是否啟用。

        Raises:
            SkillNotFoundError: Skill 未註冊
        """
        return self._get_entry(name).enabled

    def enable_skill(self, name: str) -> None:
        """啟用 Skill（需呼叫 save_registry 才會持久化）。"""
        self._get_entry(name).enabled = True
        logger.info('Skill 已啟用', extra={'skill_name': name})

    def disable_skill(self, name: str) -> None:
        """停用 Skill（需呼叫 save_registry 才會持久化）。"""
        self._get_entry(name).enabled = False
        logger.info('Skill 已停用', extra={'skill_name': name})

    def load_registry(self) -> LoadResult:
        """從 Registry Store 讀取啟用狀態並套用到已註冊的 Skill。

        只更新已註冊 Skill 的 enabled，檔案中未註冊的 Skill 會被忽略。
        讀取失敗只記錄警告，所有 Skill 維持目前狀態。

        Returns:
            Registry Store 的讀取結果
        """
        result = self._store.load()
        if result.error is not None:
            logger.warning(
                '無法讀取 Registry，使用預設啟用狀態',
                extra={'path': str(self._store.path), 'error': str(result.error)},
            )
            return result

        for name, enabled in result.flags.items():
            entry = self._registry.get(name)
            if entry is not None:
                entry.enabled = enabled

        if result.found:
            logger.info('Registry 已載入', extra={'path': str(self._store.path)})
        return result

    async def save_registry(self) -> SaveResult:
        """將所有 Skill 的描述資料與啟用狀態寫入 Registry Store。

        寫入失敗只記錄錯誤，不會拋出，Runtime 繼續以記憶體狀態運作。

        Returns:
            Registry Store 的寫入結果
        """
        entries = {
            name: PersistedEntry(metadata=entry.metadata, enabled=entry.enabled)
            for name, entry in self._registry.items()
        }
        result = self._store.save(entries)
        if result.error is not None:
            logger.error(
                '無法寫入 Registry',
                extra={'path': str(result.path), 'error': str(result.error)},
            )
        else:
            logger.info('Registry 已儲存', extra={'path': str(result.path)})
        return result

    def _get_entry(self, name: str) -> RegistryEntry:
        entry = self._registry.get(name)
        if entry is None:
            raise SkillNotFoundError(name)
        return entry

    @staticmethod
    def _notify(hook: Callable[..., None] | None, name: str, value: Any) -> None:
        """呼叫觀察回調，回調拋出的例外只記錄，不影響分派結果。"""
        if hook is None:
            return
        try:
            hook(name, value)
        except Exception:
            logger.exception('分派觀察回調失敗', extra={'skill_name': name})
