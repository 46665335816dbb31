"""Skill Runtime 範例入口。

執行方式：
    uv run python -m skill_runtime
"""

from __future__ import annotations

import asyncio
import logging
import sys

from dotenv import load_dotenv

from skill_runtime.runtime import SkillRuntime

logger = logging.getLogger(__name__)


async def run(runtime: SkillRuntime) -> None:
    """初始化 Runtime 並示範兩個內建 Skill。"""
    await runtime.initialize()

    print('\nAvailable Skills:')
    for skill in runtime.list_skills():
        print(f'  - {skill["name"]} (v{skill["version"]}): {skill["description"]}')

    print('\nCalculator Skill Example:')
    calc_result = await runtime.execute_skill(
        'calculator',
        {'operation': 'multiply', 'operand1': 12, 'operand2': 5},
    )
    print('Result:', calc_result)

    print('\nWeather Skill Example:')
    try:
        weather_result = await runtime.execute_skill(
            'weather',
            {'city': 'San Francisco', 'units': 'metric', 'includeDetails': True},
        )
        print('Result:', weather_result)
    except Exception as e:
        # 天氣 API 無法連線時只略過範例，不中止程式
        print(f'(Weather API unavailable, skipping: {e})')

    await runtime.save_registry()


def main() -> None:
    """命令列進入點。"""
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    try:
        asyncio.run(run(SkillRuntime()))
    except Exception:
        logger.exception('應用程式錯誤')
        sys.exit(1)


if __name__ == '__main__':
    main()
