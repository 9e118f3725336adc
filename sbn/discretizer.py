#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
变量离散化模块
基于均值和标准差将连续观测值动态划分为有限状态，适用于贝叶斯网络
"""
import math
import bisect
import pandas as pd
import numpy as np
from scipy.stats import norm
from typing import Iterable, List, Optional, Sequence

from sbn.utils.logging import setup_logger

logger = setup_logger("discretizer")


class RunningStats:
    """
    增量均值/方差统计（Welford 算法）

    避免直接累加平方和带来的数值抵消问题
    """

    def __init__(self):
        self.count = 0
        self.mean = 0.0
        self._m2 = 0.0

    def update(self, value: float) -> None:
        """加入一个观测值"""
        self.count += 1
        delta = value - self.mean
        self.mean += delta / self.count
        self._m2 += delta * (value - self.mean)

    def update_many(self, values: Iterable[float]) -> None:
        for value in values:
            self.update(value)

    @property
    def variance(self) -> float:
        """样本方差（n-1），观测数不足 2 时为 0"""
        if self.count < 2:
            return 0.0
        return self._m2 / (self.count - 1)

    @property
    def std(self) -> float:
        return math.sqrt(self.variance)

    def reset(self) -> None:
        self.count = 0
        self.mean = 0.0
        self._m2 = 0.0


def format_threshold(value: float) -> str:
    """阈值转为状态名片段，例如 -1.5 -> 'm1.5'"""
    text = f"{value:.4g}"
    return text.replace('-', 'm')


def labels_from_thresholds(thresholds: Sequence[float]) -> List[str]:
    """
    根据分箱阈值生成状态名

    [c1, c2] -> ['lt_c1', 'c1_to_c2', 'gte_c2']

    Args:
        thresholds: 升序阈值列表

    Returns:
        状态名列表（比阈值多一个）
    """
    if not thresholds:
        return ['all']

    names = [format_threshold(c) for c in thresholds]
    labels = [f"lt_{names[0]}"]
    for low, high in zip(names[:-1], names[1:]):
        labels.append(f"{low}_to_{high}")
    labels.append(f"gte_{names[-1]}")

    # 格式化后可能出现重名，追加序号保证唯一
    if len(set(labels)) != len(labels):
        labels = [f"{label}_{i}" for i, label in enumerate(labels)]
    return labels


class NumericDiscretizer:
    """
    数值离散化器

    阈值取正态近似下的等概率分位点: mean + std * Φ⁻¹(k / n_bins)，
    k = 1..n_bins-1。n_bins=2 时即以均值为界，n_bins=1 时不分箱（单一状态 'all'）。
    """

    def __init__(self, n_bins: int = 2, thresholds: Optional[Sequence[float]] = None):
        """
        初始化离散化器

        Args:
            n_bins: 分箱数量
            thresholds: 初始阈值（训练前使用），默认 [0.0]
        """
        if n_bins < 1:
            raise ValueError(f"分箱数量必须 >= 1: {n_bins}")
        self.n_bins = n_bins
        self.thresholds: List[float] = []
        self.set_thresholds([0.0] if thresholds is None else thresholds)

    def set_thresholds(self, thresholds: Sequence[float]) -> None:
        values = sorted(set(float(c) for c in thresholds))
        for c in values:
            if not math.isfinite(c):
                raise ValueError(f"阈值必须是有限数值: {c}")
        self.thresholds = values
        self.labels = labels_from_thresholds(self.thresholds)

    def fit(self, stats: RunningStats) -> List[float]:
        """
        根据当前统计量重新计算阈值

        Args:
            stats: 运行统计量

        Returns:
            新的阈值列表
        """
        if stats.count == 0:
            return self.thresholds

        std = stats.std
        if self.n_bins == 1:
            cuts = []
        elif stats.count < 2 or std == 0.0:
            # 退化情形：以均值为唯一分界
            cuts = [stats.mean]
        else:
            quantiles = norm.ppf(np.arange(1, self.n_bins) / self.n_bins)
            cuts = (stats.mean + std * quantiles).tolist()

        self.set_thresholds(cuts)
        logger.debug(f"离散化阈值已更新: {self.thresholds} (n={stats.count}, "
                     f"mean={stats.mean:.4f}, std={std:.4f})")
        return self.thresholds

    def state_of(self, value: float) -> str:
        """单个数值所属的状态（等于阈值时归入上一分箱）"""
        return self.labels[bisect.bisect_right(self.thresholds, float(value))]

    def discretize(self, values: Sequence[float]) -> List[str]:
        """
        批量离散化

        Args:
            values: 数值序列

        Returns:
            与输入等长的状态名列表
        """
        if len(values) == 0:
            return []
        bins = [-np.inf] + self.thresholds + [np.inf]
        binned = pd.cut(
            pd.Series(values, dtype=float),
            bins=bins,
            labels=self.labels,
            right=False
        )
        return [str(label) for label in binned]
