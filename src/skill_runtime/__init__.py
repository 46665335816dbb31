"""Skill Runtime - 以名稱註冊、分派 Skill 並持久化啟用狀態的執行環境。"""

__version__ = '0.1.0'

from skill_runtime.config import RuntimeConfig, WeatherConfig
from skill_runtime.exceptions import (
    CalculationError,
    RegistryStoreError,
    SkillDisabledError,
    SkillError,
    SkillNotFoundError,
    SkillRuntimeError,
    WeatherError,
)
from skill_runtime.runtime import DispatchHooks, RegistryEntry, SkillRuntime
from skill_runtime.skills import BUILTIN_SKILLS, CalculatorSkill, Skill, SkillMetadata, WeatherSkill
from skill_runtime.store import LoadResult, RegistryStore, SaveResult

__all__ = [
    'BUILTIN_SKILLS',
    'CalculationError',
    'CalculatorSkill',
    'DispatchHooks',
    'LoadResult',
    'RegistryEntry',
    'RegistryStore',
    'RegistryStoreError',
    'RuntimeConfig',
    'SaveResult',
    'Skill',
    'SkillDisabledError',
    'SkillError',
    'SkillMetadata',
    'SkillNotFoundError',
    'SkillRuntime',
    'SkillRuntimeError',
    'WeatherConfig',
    'WeatherError',
    'WeatherSkill',
]
