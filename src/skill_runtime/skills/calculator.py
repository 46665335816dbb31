"""Calculator Skill 模組。

提供四則運算，示範輸入驗證、結構化錯誤與輸出格式化。
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from skill_runtime.exceptions import CalculationError
from skill_runtime.skills.base import SkillMetadata

logger = logging.getLogger(__name__)

OPERATIONS: tuple[str, ...] = ('add', 'subtract', 'multiply', 'divide')


def _utc_timestamp() -> str:
    """產生 ISO-8601 UTC 時間戳（毫秒精度，Z 結尾）。"""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def _is_number(value: Any) -> bool:
    # bool 是 int 的子類別，需排除
    return isinstance(value, int | float) and not isinstance(value, bool)


class CalculatorSkill:
    """四則運算 Skill。

    輸入格式：{'operation': 'add' | 'subtract' | 'multiply' | 'divide',
    'operand1': number, 'operand2': number}
    """

    metadata = SkillMetadata(
        name='calculator',
        version='1.0.0',
        description='Performs basic arithmetic operations',
        author='Agent Team',
        capabilities=frozenset(OPERATIONS),
        input_schema={
            'type': 'object',
            'required': ['operation', 'operand1', 'operand2'],
            'properties': {
                'operation': {
                    'type': 'string',
                    'enum': list(OPERATIONS),
                    'description': 'Arithmetic operation to perform',
                },
                'operand1': {'type': 'number', 'description': 'First number'},
                'operand2': {'type': 'number', 'description': 'Second number'},
            },
        },
    )

    async def execute(self, input_data: dict[str, Any]) -> dict[str, Any]:
        """執行運算。

        Args:
            input_data: 運算輸入

        Returns:
            {'result': number, 'operation': str, 'timestamp': str, 'success': True}

        Raises:
            CalculationError: 輸入無效或除以零
        """
        try:
            result = self._calculate(input_data)
        except (ValueError, ArithmeticError) as e:
            logger.error('Calculator 執行失敗', extra={'error_message': str(e)})
            raise CalculationError(str(e), _utc_timestamp()) from e

        operand1 = input_data['operand1']
        operand2 = input_data['operand2']
        return {
            'result': round(result, 2),
            'operation': f'{operand1} {input_data["operation"]} {operand2}',
            'timestamp': _utc_timestamp(),
            'success': True,
        }

    def _calculate(self, input_data: Any) -> int | float:
        if not self._validate_input(input_data):
            raise ValueError('Invalid input parameters')

        operation = input_data['operation']
        operand1 = input_data['operand1']
        operand2 = input_data['operand2']

        if operation == 'add':
            return operand1 + operand2
        if operation == 'subtract':
            return operand1 - operand2
        if operation == 'multiply':
            return operand1 * operand2
        if operation == 'divide':
            if operand2 == 0:
                raise ValueError('Division by zero')
            return operand1 / operand2
        raise ValueError(f'Unknown operation: {operation}')

    @staticmethod
    def _validate_input(input_data: Any) -> bool:
        """檢查輸入結構與型別。"""
        if not isinstance(input_data, dict):
            return False
        return (
            input_data.get('operation') in OPERATIONS
            and _is_number(input_data.get('operand1'))
            and _is_number(input_data.get('operand2'))
        )
