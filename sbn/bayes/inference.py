#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
贝叶斯推断
基于 Gibbs 采样的 MCMC 近似推断
"""
import numpy as np
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Union

from tqdm import tqdm

from sbn.bayes.errors import InconsistentEvidence, MissingProbability
from sbn.utils.logging import setup_logger

logger = setup_logger("bayes_inference")

RandomState = Union[None, int, np.random.Generator]


def make_rng(random_state: RandomState = None) -> np.random.Generator:
    """
    构造随机数生成器

    Args:
        random_state: None、整数种子或现成的 numpy Generator

    Returns:
        numpy Generator
    """
    if isinstance(random_state, np.random.Generator):
        return random_state
    return np.random.default_rng(random_state)


class MCMCInference:
    """
    MCMC 推断器（Gibbs 采样）

    流程：初始化 -> 预烧 -> 采样 -> 归一化。
    - 证据变量固定为证据状态；其余变量初始状态均匀随机选取
    - 每轮按网络中变量的注册顺序依次重采样非证据变量
    - 重采样分布正比于 P(X | 父节点) * Π P(子节点 | 子节点的父节点)
    - 每轮采样结束后记录查询变量的当前状态
    """

    def __init__(
        self,
        net,
        burn_in: int = 1000,
        samples: int = 10000,
        random_state: RandomState = None,
        show_progress: bool = False
    ):
        """
        初始化推断器

        Args:
            net: Network 对象
            burn_in: 预烧迭代次数
            samples: 采样迭代次数
            random_state: 随机种子或 numpy Generator
            show_progress: 是否显示进度条
        """
        if burn_in < 0:
            raise ValueError(f"预烧次数不能为负: {burn_in}")
        if samples < 1:
            raise ValueError(f"采样次数必须 >= 1: {samples}")
        self.net = net
        self.burn_in = int(burn_in)
        self.samples = int(samples)
        self.rng = make_rng(random_state)
        self.show_progress = show_progress

    def _prepare(self) -> None:
        # 缓存 CPT 和邻接关系，采样循环中不再访问网络结构
        variables = [v for v in self.net.variables.values() if v.sampled]
        self._order = [v.name for v in variables]
        self._states = {v.name: v.states for v in variables}
        self._tables = {v.name: v.table() for v in variables}
        self._parents = {v.name: sorted(p.name for p in v.cpt_parents) for v in variables}
        self._children = {v.name: [c.name for c in v.cpt_children] for v in variables}

    def _lookup(self, name: str, state: Dict[str, Any]) -> float:
        value = state[name]
        key = tuple((p, state[p]) for p in self._parents[name])
        row = self._tables[name].get(key)
        if row is None or value not in row:
            raise MissingProbability(name, value, key)
        return row[value]

    def _resample(self, name: str, state: Dict[str, Any]) -> bool:
        """
        从 Markov Blanket 条件分布中重采样一个变量

        Returns:
            所有候选状态权重均为零、退化为均匀分布时为 True
        """
        states = self._states[name]
        weights = []
        for candidate in states:
            state[name] = candidate
            weight = self._lookup(name, state)
            for child in self._children[name]:
                weight *= self._lookup(child, state)
            weights.append(weight)

        total = sum(weights)
        degenerate = total <= 0.0
        if degenerate:
            # 当前状态与证据矛盾，退化为均匀分布以便离开该状态
            weights = [1.0] * len(states)
            total = float(len(states))

        threshold = self.rng.random() * total
        cumulative = 0.0
        choice = states[-1]
        for candidate, weight in zip(states, weights):
            cumulative += weight
            if threshold < cumulative:
                choice = candidate
                break
        state[name] = choice
        return degenerate

    def _sweep(self, free: List[str], state: Dict[str, Any]) -> int:
        return sum(self._resample(name, state) for name in free)

    def query(self, name: str, evidence: Optional[Mapping[str, Any]] = None) -> Dict[str, float]:
        """
        估计查询变量的后验分布

        Args:
            name: 查询变量名
            evidence: 证据（变量名 -> 状态），默认使用网络当前证据

        Returns:
            状态 -> 概率，和为 1
        """
        target = self.net.get_variable(name)
        if not target.sampled:
            raise ValueError(f"变量 {name} 是字符串变量，请查询其协变量")
        evidence = dict(self.net.evidence if evidence is None else evidence)

        self._prepare()

        # 初始化
        state = {}
        for var_name in self._order:
            if var_name in evidence:
                state[var_name] = evidence[var_name]
            else:
                states = self._states[var_name]
                state[var_name] = states[int(self.rng.integers(len(states)))]
        free = [n for n in self._order if n not in evidence]

        logger.debug(f"MCMC 查询 {name}: 证据 {evidence}, 非证据变量 {len(free)} 个")

        # 预烧
        degenerate = 0
        for _ in tqdm(range(self.burn_in), desc="MCMC预烧", disable=not self.show_progress):
            degenerate += self._sweep(free, state)
        if degenerate:
            logger.warning(f"MCMC 预烧阶段有 {degenerate} 次重采样的条件分布全为零，已按均匀分布处理")

        # 采样（有效链不会再进入零概率状态）
        visits = Counter()
        for _ in tqdm(range(self.samples), desc="MCMC采样", disable=not self.show_progress):
            if self._sweep(free, state):
                raise InconsistentEvidence(name, evidence)
            visits[state[name]] += 1

        posterior = {s: visits[s] / self.samples for s in target.states}
        logger.info(f"MCMC 推断完成: {name} -> "
                    + ", ".join(f"{s}={p:.4f}" for s, p in posterior.items()))
        return posterior
