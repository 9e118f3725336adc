#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
条件概率分布（CPD）工具
CPT 的键为按父节点名排序的 (父节点名, 状态) 元组，无父节点时为空元组
"""
import itertools
import math
import pandas as pd
from collections import Counter
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from sbn.utils.logging import setup_logger

logger = setup_logger("cpd_learner")

# 概率归一化容差
TOLERANCE = 1e-6

ParentKey = Tuple[Tuple[str, Any], ...]
CPT = Dict[ParentKey, Dict[Any, float]]


def make_parent_key(assignment: Mapping[str, Any], parent_names: Sequence[str]) -> ParentKey:
    """
    构造规范化的父节点组合键

    Args:
        assignment: 变量名到状态的映射（可包含无关变量）
        parent_names: 父节点名列表

    Returns:
        按父节点名排序的 (名称, 状态) 元组
    """
    return tuple(sorted((name, assignment[name]) for name in parent_names))


def iter_parent_combinations(
    parents: Sequence[Tuple[str, Sequence[Any]]]
) -> Iterator[Dict[str, Any]]:
    """
    按数组顺序遍历所有父节点状态组合

    第一个父节点变化最慢，最后添加的父节点变化最快

    Args:
        parents: (父节点名, 状态列表) 序列

    Yields:
        父节点名到状态的映射
    """
    names = [name for name, _ in parents]
    for combo in itertools.product(*[states for _, states in parents]):
        yield dict(zip(names, combo))


def check_rows(values: Sequence[float], n_states: int) -> None:
    """
    检查数组形式的概率表：长度是状态数的整数倍，每行和为 1

    Args:
        values: 概率数组
        n_states: 变量状态数
    """
    if len(values) == 0 or len(values) % n_states != 0:
        raise ValueError(f"概率数组长度 {len(values)} 不是状态数 {n_states} 的整数倍")
    for start in range(0, len(values), n_states):
        row = values[start:start + n_states]
        for p in row:
            if not 0.0 <= p <= 1.0:
                raise ValueError(f"概率必须在 [0, 1] 之间: {p}")
        if abs(math.fsum(row) - 1.0) > TOLERANCE:
            raise ValueError(f"第 {start // n_states + 1} 行概率之和不为 1: {list(row)}")


def expand_flat_table(
    values: Sequence[float],
    states: Sequence[Any],
    parents: Sequence[Tuple[str, Sequence[Any]]]
) -> CPT:
    """
    将数组形式的概率表展开为 CPT 字典

    Args:
        values: 概率数组（自身状态变化最快）
        states: 变量自身状态
        parents: (父节点名, 状态列表) 序列，按添加顺序

    Returns:
        CPT 字典
    """
    expected = len(states)
    for _, parent_states in parents:
        expected *= len(parent_states)
    if len(values) != expected:
        raise ValueError(f"概率数组长度 {len(values)} 与父节点组合数不符，应为 {expected}")

    cpt: CPT = {}
    names = [name for name, _ in parents]
    rows = iter(range(0, len(values), len(states)))
    for assignment in iter_parent_combinations(parents):
        start = next(rows)
        key = make_parent_key(assignment, names)
        cpt[key] = {state: float(values[start + i]) for i, state in enumerate(states)}
    return cpt


class CPDLearner:
    """
    条件概率分布学习器

    从状态级计数中估计条件概率表
    """

    def __init__(self, smoothing: float = 0.0):
        """
        初始化CPD学习器

        Args:
            smoothing: Laplace平滑参数，0 表示不平滑
        """
        if smoothing < 0:
            raise ValueError(f"平滑参数不能为负: {smoothing}")
        self.smoothing = smoothing

    def learn(
        self,
        state_counts: Mapping[ParentKey, Counter],
        states: Sequence[Any],
        parents: Sequence[Tuple[str, Sequence[Any]]]
    ) -> CPT:
        """
        由计数学习完整的 CPT

        对每个父节点组合：有观测时概率为 (计数 + 平滑) / (总数 + 平滑 * 状态数)；
        无观测时使用均匀分布。

        Args:
            state_counts: 父节点组合键 -> 自身状态计数
            states: 变量自身状态
            parents: (父节点名, 状态列表) 序列

        Returns:
            CPT 字典
        """
        cpt: CPT = {}
        names = [name for name, _ in parents]
        k = len(states)
        n_uniform = 0

        for assignment in iter_parent_combinations(parents):
            key = make_parent_key(assignment, names)
            counts = state_counts.get(key)
            n = sum(counts.values()) if counts else 0

            if n == 0:
                cpt[key] = {state: 1.0 / k for state in states}
                n_uniform += 1
                continue

            cpt[key] = {
                state: (counts.get(state, 0) + self.smoothing) / (n + self.smoothing * k)
                for state in states
            }

        if n_uniform:
            logger.debug(f"{n_uniform}/{len(cpt)} 个父节点组合无观测，使用均匀分布")
        return cpt


def is_normalized(cpt: CPT, tolerance: float = TOLERANCE) -> bool:
    """检查 CPT 每一行的概率和是否为 1"""
    return all(abs(math.fsum(row.values()) - 1.0) <= tolerance for row in cpt.values())


def cpts_equal(a: CPT, b: CPT, tolerance: float = TOLERANCE) -> bool:
    """两张 CPT 键相同且每个单元在容差内相等"""
    if a.keys() != b.keys():
        return False
    for key, row in a.items():
        other = b[key]
        if row.keys() != other.keys():
            return False
        for state, p in row.items():
            if abs(p - other[state]) > tolerance:
                return False
    return True


def cpt_to_frame(cpt: CPT, states: Sequence[Any], parent_names: Optional[List[str]] = None) -> pd.DataFrame:
    """
    将 CPT 转为 DataFrame，每行一个父节点组合，每列一个自身状态

    Args:
        cpt: CPT 字典
        states: 变量自身状态（列顺序）
        parent_names: 父节点名（索引列顺序），默认从键中推断

    Returns:
        DataFrame
    """
    if parent_names is None:
        parent_names = [name for name, _ in next(iter(cpt), ())]

    records = []
    for key, row in cpt.items():
        assignment = dict(key)
        record = {name: assignment.get(name) for name in parent_names}
        record.update({state: row.get(state, float('nan')) for state in states})
        records.append(record)

    df = pd.DataFrame.from_records(records, columns=list(parent_names) + list(states))
    if parent_names:
        df = df.set_index(list(parent_names))
    return df
