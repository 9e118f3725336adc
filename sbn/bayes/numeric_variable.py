#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
数值变量
连续观测值按运行均值/标准差动态离散化
"""
import copy
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sbn.bayes.errors import UnknownState
from sbn.bayes.variables import Variable
from sbn.discretizer import NumericDiscretizer, RunningStats
from sbn.utils.logging import setup_logger

logger = setup_logger("numeric_variable")


class NumericVariable(Variable):
    """
    数值变量

    每次训练后按全部观测的均值和标准差重新计算分箱阈值，
    所有历史观测按新阈值重新分箱，CPT 从头重建。
    原始观测值保留在计数中，不做淘汰。
    """

    kind = 'numeric'

    def __init__(
        self,
        net,
        name: str,
        probabilities: Optional[Sequence[float]] = None,
        thresholds: Optional[Sequence[float]] = None,
        n_bins: Optional[int] = None
    ):
        """
        Args:
            net: 所属网络
            name: 变量名
            probabilities: 数组形式的概率表（可选，按初始阈值对应的状态）
            thresholds: 初始分箱阈值，默认 [0.0]
            n_bins: 训练后的分箱数量，默认取网络配置
        """
        self.discretizer = NumericDiscretizer(
            net.config['numeric']['n_bins'] if n_bins is None else n_bins,
            thresholds
        )
        self.stats = RunningStats()
        super().__init__(net, name, probabilities, states=self.discretizer.labels)

    @property
    def thresholds(self) -> List[float]:
        return list(self.discretizer.thresholds)

    def set_thresholds(self, thresholds: Sequence[float]) -> None:
        """手动设置阈值，状态随之改变（已有 CPT 的状态名可能失效）"""
        self.discretizer.set_thresholds(thresholds)
        self._states = list(self.discretizer.labels)

    @staticmethod
    def _to_number(value: Any) -> float:
        if isinstance(value, bool):
            raise ValueError(f"数值变量不接受布尔值: {value}")
        number = float(value)
        if not math.isfinite(number):
            raise ValueError(f"数值变量的观测值必须是有限数值: {value}")
        return number

    def observed_value(self, example: Mapping[str, Any]) -> float:
        return self._to_number(example[self.name])

    def state_map(self, values) -> Dict[Any, str]:
        values = list(values)
        return dict(zip(values, self.discretizer.discretize(values)))

    def transform_evidence_value(self, value: Any) -> str:
        """接受状态名或数值（数值按当前阈值分箱）"""
        if isinstance(value, str) and value in self._states:
            return value
        try:
            number = self._to_number(value)
        except (TypeError, ValueError):
            raise UnknownState(self.name, value, self._states) from None
        return self.discretizer.state_of(number)

    def accumulate_count(self, example: Mapping[str, Any]) -> None:
        super().accumulate_count(example)
        self.stats.update(self.observed_value(example))

    def rediscretize(self) -> List[float]:
        """
        按当前统计量重新计算阈值和状态

        Returns:
            新阈值
        """
        old = self.thresholds
        thresholds = self.discretizer.fit(self.stats)
        self._states = list(self.discretizer.labels)
        if thresholds != old:
            logger.info(f"数值变量 {self.name} 重新离散化: {self._states}")
        return thresholds

    def finalize_training(self, smoothing: float = 0.0) -> None:
        self.rediscretize()
        super().finalize_training(smoothing)

    def reset_counts(self) -> None:
        super().reset_counts()
        self.stats.reset()

    def training_state(self) -> Dict[str, Any]:
        state = super().training_state()
        state['stats'] = copy.copy(self.stats)
        return state

    def restore_training_state(self, state: Dict[str, Any]) -> None:
        super().restore_training_state(state)
        self.stats = copy.copy(state['stats'])

    def xmlbif_properties(self) -> List[Tuple[str, str]]:
        return super().xmlbif_properties() + [
            ('thresholds', ",".join(repr(c) for c in self.discretizer.thresholds)),
            ('n_bins', str(self.discretizer.n_bins)),
        ]

    def __eq__(self, other):
        result = super().__eq__(other)
        if result is not True:
            return result
        return self.thresholds == other.thresholds

    __hash__ = None
