"""Skill 技能系統。

定義 Skill 介面與內建 Skill。
"""

from skill_runtime.skills.base import Skill, SkillMetadata
from skill_runtime.skills.calculator import CalculatorSkill
from skill_runtime.skills.weather import WeatherSkill

# Runtime 初始化時預設註冊的 Skill 類別
BUILTIN_SKILLS: tuple[type[Skill], ...] = (CalculatorSkill, WeatherSkill)

__all__ = ['BUILTIN_SKILLS', 'CalculatorSkill', 'Skill', 'SkillMetadata', 'WeatherSkill']
