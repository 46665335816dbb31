"""Skill Runtime 測試模組。

涵蓋：
- Rule: Skill 應支援註冊與列出
- Rule: 分派應檢查存在與啟用狀態
- Rule: Skill 錯誤應原樣轉拋
- Rule: 啟用狀態應可持久化並在重啟後還原
- Rule: 內建 Skill 應可透過 Runtime 使用
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import allure
import pytest

from skill_runtime.config import RuntimeConfig
from skill_runtime.exceptions import (
    CalculationError,
    SkillDisabledError,
    SkillNotFoundError,
)
from skill_runtime.runtime import DispatchHooks, SkillRuntime
from skill_runtime.skills.base import Skill, SkillMetadata

# --- 輔助工具 ---


class _EchoSkill:
    """回傳輸入內容的測試用 Skill。"""

    metadata = SkillMetadata(name='echo', version='1.0.0', description='Echo input')

    def __init__(self) -> None:
        self.calls: list[Any] = []

    async def execute(self, input_data: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(input_data)
        return {'echo': input_data}


class _UpperSkill:
    """轉大寫的測試用 Skill。"""

    metadata = SkillMetadata(name='upper', version='2.0.0', description='Uppercase text')

    async def execute(self, input_data: dict[str, Any]) -> dict[str, Any]:
        return {'text': str(input_data['text']).upper()}


class _SkillFailure(Exception):
    """測試用的 Skill 特定錯誤。"""


class _FailingSkill:
    """永遠失敗的測試用 Skill。"""

    metadata = SkillMetadata(name='failing', version='0.1.0', description='Always fails')

    def __init__(self) -> None:
        self.error = _SkillFailure('boom')

    async def execute(self, input_data: dict[str, Any]) -> dict[str, Any]:
        raise self.error


def _make_runtime(path: Path, hooks: DispatchHooks | None = None) -> SkillRuntime:
    return SkillRuntime(config=RuntimeConfig(registry_path=str(path)), hooks=hooks)


def _test_skills() -> list[Skill]:
    return [_EchoSkill(), _UpperSkill(), _FailingSkill()]


@pytest.fixture
def registry_path(tmp_path: Path) -> Path:
    return tmp_path / 'skills' / 'registry.json'


# =============================================================================
# Rule: Skill 應支援註冊與列出
# =============================================================================


@allure.feature('Skill Runtime')
@allure.story('Skill 應支援註冊與列出')
class TestRegistration:
    """註冊與列出測試。"""

    @allure.title('註冊的 Skill 預設為啟用')
    def test_register_enabled_by_default(self, registry_path: Path) -> None:
        runtime = _make_runtime(registry_path)

        runtime.register(_EchoSkill())

        assert 'echo' in runtime
        assert runtime.is_enabled('echo') is True

    @allure.title('list_skills 回傳所有 Skill 的名稱、版本與描述')
    async def test_list_skills(self, registry_path: Path) -> None:
        runtime = _make_runtime(registry_path)
        await runtime.initialize(_test_skills())
        runtime.disable_skill('upper')

        listed = runtime.list_skills()

        assert {s['name'] for s in listed} == {'echo', 'upper', 'failing'}
        assert {'name': 'upper', 'version': '2.0.0', 'description': 'Uppercase text'} in listed

    @allure.title('同名 Skill 重新註冊會覆蓋既有實例')
    async def test_reregister_overwrites(self, registry_path: Path) -> None:
        runtime = _make_runtime(registry_path)
        first, second = _EchoSkill(), _EchoSkill()
        runtime.register(first)
        runtime.disable_skill('echo')

        runtime.register(second)
        await runtime.execute_skill('echo', {'n': 1})

        assert len(runtime) == 1
        assert runtime.is_enabled('echo') is True
        assert first.calls == []
        assert second.calls == [{'n': 1}]

    @allure.title('initialize 回傳 Skill 數量')
    async def test_initialize_returns_count(self, registry_path: Path) -> None:
        runtime = _make_runtime(registry_path)

        assert await runtime.initialize(_test_skills()) == 3

    @allure.title('註冊失敗時 initialize 應向上拋出')
    async def test_initialize_propagates_failure(self, registry_path: Path) -> None:
        runtime = _make_runtime(registry_path)

        with pytest.raises(AttributeError):
            await runtime.initialize([object()])  # type: ignore[list-item]

    @allure.title('查詢未註冊的 Skill 應拋出 SkillNotFoundError')
    def test_unknown_skill_lookups(self, registry_path: Path) -> None:
        runtime = _make_runtime(registry_path)

        with pytest.raises(SkillNotFoundError):
            runtime.enable_skill('missing')
        with pytest.raises(SkillNotFoundError):
            runtime.disable_skill('missing')
        with pytest.raises(SkillNotFoundError):
            runtime.get_metadata('missing')


# =============================================================================
# Rule: 分派應檢查存在與啟用狀態
# =============================================================================


@allure.feature('Skill Runtime')
@allure.story('分派應檢查存在與啟用狀態')
class TestDispatch:
    """分派測試。"""

    @allure.title('已啟用的 Skill 回傳執行結果')
    async def test_execute_enabled_skill(self, registry_path: Path) -> None:
        runtime = _make_runtime(registry_path)
        await runtime.initialize(_test_skills())

        result = await runtime.execute_skill('upper', {'text': 'hi'})

        assert result == {'text': 'HI'}

    @pytest.mark.parametrize('input_data', [{}, None, {'text': 'x'}])
    @allure.title('不存在的 Skill 一律拋出 SkillNotFoundError')
    async def test_execute_missing_skill(self, registry_path: Path, input_data: Any) -> None:
        runtime = _make_runtime(registry_path)
        await runtime.initialize(_test_skills())

        with pytest.raises(SkillNotFoundError, match='nonexistent') as exc_info:
            await runtime.execute_skill('nonexistent', input_data)

        assert exc_info.value.skill_name == 'nonexistent'

    @allure.title('Registry 檔案中停用的 Skill 拋出 SkillDisabledError')
    async def test_execute_disabled_by_load(self, registry_path: Path) -> None:
        registry_path.parent.mkdir(parents=True)
        registry_path.write_text(json.dumps({'echo': {'enabled': False}}), encoding='utf-8')
        runtime = _make_runtime(registry_path)
        echo = _EchoSkill()
        await runtime.initialize([echo])

        with pytest.raises(SkillDisabledError, match='echo'):
            await runtime.execute_skill('echo', {})

        assert echo.calls == []

    @allure.title('重新啟用後可再次執行')
    async def test_enable_after_disable(self, registry_path: Path) -> None:
        runtime = _make_runtime(registry_path)
        await runtime.initialize(_test_skills())
        runtime.disable_skill('echo')

        with pytest.raises(SkillDisabledError):
            await runtime.execute_skill('echo', {})

        runtime.enable_skill('echo')
        assert await runtime.execute_skill('echo', {'a': 1}) == {'echo': {'a': 1}}

    @allure.title('分派前後呼叫觀察回調並記錄日誌')
    async def test_hooks_and_logs_on_success(
        self, registry_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        on_start, on_success, on_failure = MagicMock(), MagicMock(), MagicMock()
        hooks = DispatchHooks(on_start=on_start, on_success=on_success, on_failure=on_failure)
        runtime = _make_runtime(registry_path, hooks=hooks)
        await runtime.initialize(_test_skills())

        with caplog.at_level(logging.INFO, logger='skill_runtime.runtime'):
            await runtime.execute_skill('echo', {'a': 1})

        on_start.assert_called_once_with('echo', {'a': 1})
        on_success.assert_called_once_with('echo', {'echo': {'a': 1}})
        on_failure.assert_not_called()
        messages = [r.getMessage() for r in caplog.records]
        assert '執行 Skill' in messages
        assert 'Skill 執行完成' in messages


# =============================================================================
# Rule: Skill 錯誤應原樣轉拋
# =============================================================================


@allure.feature('Skill Runtime')
@allure.story('Skill 錯誤應原樣轉拋')
class TestSkillErrors:
    """Skill 錯誤轉拋測試。"""

    @allure.title('Skill 拋出的例外物件不被包裝')
    async def test_error_reraised_unchanged(
        self, registry_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        failure_hook = MagicMock()
        runtime = _make_runtime(registry_path, hooks=DispatchHooks(on_failure=failure_hook))
        failing = _FailingSkill()
        await runtime.initialize([failing])

        with caplog.at_level(logging.ERROR, logger='skill_runtime.runtime'):
            with pytest.raises(_SkillFailure) as exc_info:
                await runtime.execute_skill('failing', {})

        assert exc_info.value is failing.error
        failure_hook.assert_called_once_with('failing', failing.error)
        assert any(r.getMessage() == 'Skill 執行失敗' for r in caplog.records)

    @allure.title('on_failure 回調拋出例外時仍轉拋 Skill 原本的錯誤')
    async def test_failing_failure_hook(self, registry_path: Path) -> None:
        hooks = DispatchHooks(on_failure=MagicMock(side_effect=RuntimeError('hook broke')))
        runtime = _make_runtime(registry_path, hooks=hooks)
        failing = _FailingSkill()
        await runtime.initialize([failing])

        with pytest.raises(_SkillFailure) as exc_info:
            await runtime.execute_skill('failing', {})

        assert exc_info.value is failing.error

    @allure.title('on_start 與 on_success 回調拋出例外時仍回傳結果')
    async def test_failing_success_hooks(self, registry_path: Path) -> None:
        hooks = DispatchHooks(
            on_start=MagicMock(side_effect=RuntimeError('start broke')),
            on_success=MagicMock(side_effect=RuntimeError('success broke')),
        )
        runtime = _make_runtime(registry_path, hooks=hooks)
        await runtime.initialize(_test_skills())

        assert await runtime.execute_skill('upper', {'text': 'ok'}) == {'text': 'OK'}

    @allure.title('單次失敗不影響後續分派')
    async def test_failure_isolated(self, registry_path: Path) -> None:
        runtime = _make_runtime(registry_path)
        await runtime.initialize(_test_skills())

        with pytest.raises(_SkillFailure):
            await runtime.execute_skill('failing', {})

        assert await runtime.execute_skill('upper', {'text': 'ok'}) == {'text': 'OK'}
        assert runtime.is_enabled('failing') is True


# =============================================================================
# Rule: 啟用狀態應可持久化並在重啟後還原
# =============================================================================


@allure.feature('Skill Runtime')
@allure.story('啟用狀態應可持久化並在重啟後還原')
class TestPersistence:
    """持久化測試。"""

    @allure.title('儲存後重新初始化還原相同的啟用狀態')
    async def test_round_trip(self, registry_path: Path) -> None:
        runtime = _make_runtime(registry_path)
        await runtime.initialize(_test_skills())
        runtime.disable_skill('upper')

        result = await runtime.save_registry()
        restarted = _make_runtime(registry_path)
        await restarted.initialize(_test_skills())

        assert result.ok
        assert restarted.is_enabled('echo') is True
        assert restarted.is_enabled('upper') is False
        assert restarted.is_enabled('failing') is True

    @allure.title('儲存的檔案包含描述資料與啟用狀態')
    async def test_saved_file_content(self, registry_path: Path) -> None:
        runtime = _make_runtime(registry_path)
        await runtime.initialize([_EchoSkill()])

        await runtime.save_registry()

        data = json.loads(registry_path.read_text(encoding='utf-8'))
        assert data == {
            'echo': {
                'metadata': {
                    'name': 'echo',
                    'version': '1.0.0',
                    'description': 'Echo input',
                    'author': '',
                    'capabilities': [],
                    'inputSchema': {},
                },
                'enabled': True,
            }
        }

    @allure.title('損壞的 Registry 檔案不影響初始化')
    async def test_malformed_registry(self, registry_path: Path) -> None:
        registry_path.parent.mkdir(parents=True)
        registry_path.write_text('this is not json', encoding='utf-8')
        runtime = _make_runtime(registry_path)

        await runtime.initialize(_test_skills())

        assert all(runtime.is_enabled(s['name']) for s in runtime.list_skills())

    @allure.title('巢狀過深的 Registry 檔案不影響初始化')
    async def test_deeply_nested_registry(self, registry_path: Path) -> None:
        registry_path.parent.mkdir(parents=True)
        registry_path.write_text('[' * 100000 + ']' * 100000, encoding='utf-8')
        runtime = _make_runtime(registry_path)

        assert await runtime.initialize(_test_skills()) == 3
        assert all(runtime.is_enabled(s['name']) for s in runtime.list_skills())

    @allure.title('Registry 檔案中未註冊的 Skill 會被忽略')
    async def test_unknown_persisted_skill_ignored(self, registry_path: Path) -> None:
        registry_path.parent.mkdir(parents=True)
        registry_path.write_text(
            json.dumps({'ghost': {'enabled': False}, 'echo': {'enabled': False}}),
            encoding='utf-8',
        )
        runtime = _make_runtime(registry_path)

        await runtime.initialize([_EchoSkill()])

        assert 'ghost' not in runtime
        assert len(runtime) == 1
        assert runtime.is_enabled('echo') is False

    @allure.title('重複讀取結果一致')
    async def test_load_idempotent(self, registry_path: Path) -> None:
        registry_path.parent.mkdir(parents=True)
        registry_path.write_text(json.dumps({'echo': {'enabled': False}}), encoding='utf-8')
        runtime = _make_runtime(registry_path)
        await runtime.initialize([_EchoSkill()])

        runtime.load_registry()
        runtime.load_registry()

        assert runtime.is_enabled('echo') is False

    @allure.title('寫入失敗不拋出例外')
    async def test_save_failure_non_fatal(self, tmp_path: Path) -> None:
        runtime = _make_runtime(tmp_path)
        await runtime.initialize([_EchoSkill()])

        result = await runtime.save_registry()

        assert not result.ok
        assert await runtime.execute_skill('echo', {}) == {'echo': {}}


# =============================================================================
# Rule: 內建 Skill 應可透過 Runtime 使用
# =============================================================================


@allure.feature('Skill Runtime')
@allure.story('內建 Skill 應可透過 Runtime 使用')
class TestBuiltinSkills:
    """內建 Skill 整合測試。"""

    @allure.title('預設初始化註冊 calculator 與 weather')
    async def test_default_builtins(self, registry_path: Path) -> None:
        runtime = _make_runtime(registry_path)

        count = await runtime.initialize()

        assert count == 2
        assert {s['name'] for s in runtime.list_skills()} == {'calculator', 'weather'}
        assert runtime.get_metadata('weather').capabilities == frozenset(
            {'weather-forecast', 'temperature-check'}
        )

    @allure.title('透過 Runtime 執行 calculator')
    async def test_calculator_via_runtime(self, registry_path: Path) -> None:
        runtime = _make_runtime(registry_path)
        await runtime.initialize()

        result = await runtime.execute_skill(
            'calculator', {'operation': 'multiply', 'operand1': 12, 'operand2': 5}
        )

        assert result['result'] == 60

    @allure.title('calculator 的結構化錯誤原樣轉拋')
    async def test_calculator_error_via_runtime(self, registry_path: Path) -> None:
        runtime = _make_runtime(registry_path)
        await runtime.initialize()

        with pytest.raises(CalculationError) as exc_info:
            await runtime.execute_skill(
                'calculator', {'operation': 'divide', 'operand1': 10, 'operand2': 0}
            )

        assert exc_info.value.payload['error'] == 'CALCULATION_FAILED'
        assert 'Division by zero' in exc_info.value.payload['message']
