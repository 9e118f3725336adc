#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
贝叶斯网络变量定义
变量持有自身状态、CPT 和观测计数；父子关系保存在所属网络的结构中
"""
import json
import math
from collections import Counter, defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from sbn.bayes.cpds import (
    CPT, CPDLearner, ParentKey, check_rows, cpt_to_frame, cpts_equal,
    expand_flat_table, is_normalized, iter_parent_combinations, make_parent_key
)
from sbn.bayes.errors import MissingProbability, UnknownState, UnknownVariable

DEFAULT_STATES = ['true', 'false']


class Variable:
    """
    贝叶斯网络离散随机变量（基类）

    变体由 kind 标识：'discrete'、'string'、'numeric'、'covariable'。
    创建时立即注册到所属网络，之后不能转移到其他网络。

    Attributes:
        net: 所属网络
        name: 变量名（网络内唯一）
    """

    kind = 'discrete'
    # 是否参与 CPT 计算和 MCMC 采样（字符串变量由其协变量代替）
    sampled = True

    def __init__(
        self,
        net,
        name: str,
        probabilities: Optional[Sequence[float]] = None,
        states: Optional[Iterable[Any]] = None
    ):
        """
        初始化变量并注册到网络

        Args:
            net: 所属网络
            name: 变量名
            probabilities: 数组形式的概率表（可选）
            states: 状态列表，默认 ['true', 'false']
        """
        if not name:
            raise ValueError("变量名不能为空")
        self.net = net
        self.name = str(name)
        self._states = self._normalize_states(DEFAULT_STATES if states is None else states)
        self._cpt: CPT = {}
        self._table: Optional[List[float]] = None
        self._counts: Counter = Counter()

        net.add_variable(self)

        if probabilities is not None:
            self.set_probabilities(probabilities)

    @staticmethod
    def _normalize_states(states: Iterable[Any]) -> List[str]:
        states = [str(s) for s in states]
        if not states:
            raise ValueError("变量至少需要一个状态")
        if len(set(states)) != len(states):
            raise ValueError(f"变量状态不能重复: {states}")
        return states

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r}, states={self._states})"

    # ============ 状态 ============

    @property
    def states(self) -> List[str]:
        return list(self._states)

    def validate_state(self, value: Any) -> str:
        """
        将取值规范化为本变量的状态名

        True/False、整数等非字符串取值按其字符串形式匹配（True -> 'true'）

        Args:
            value: 原始取值

        Returns:
            状态名
        """
        if isinstance(value, str) and value in self._states:
            return value
        text = str(value)
        if text in self._states:
            return text
        if text.lower() in self._states:
            return text.lower()
        raise UnknownState(self.name, value, self._states)

    def transform_evidence_value(self, value: Any) -> str:
        """将证据取值转为状态名"""
        return self.validate_state(value)

    # ============ 网络结构 ============

    @property
    def parents(self) -> List['Variable']:
        return [self.net.get_variable(n) for n in self.net.structure.get_parents(self.name)]

    @property
    def children(self) -> List['Variable']:
        return [self.net.get_variable(n) for n in self.net.structure.get_children(self.name)]

    @property
    def cpt_parents(self) -> List['Variable']:
        """参与 CPT 的父节点（按添加顺序，不含字符串变量本身）"""
        return [p for p in self.parents if p.sampled]

    @property
    def cpt_children(self) -> List['Variable']:
        return [c for c in self.children if c.sampled]

    def add_child(self, variable: 'Variable') -> None:
        """添加子节点，同时把自己登记为其父节点"""
        self.net.add_edge(self, variable)

    def add_parent(self, variable: 'Variable') -> None:
        """添加父节点，同时把自己登记为其子节点"""
        self.net.add_edge(variable, self)

    def edge_proxies(self) -> List['Variable']:
        """边在 CPT 层面实际连接的变量"""
        return [self]

    def _parent_spec(self) -> List[Tuple[str, List[str]]]:
        return [(p.name, p.states) for p in self.cpt_parents]

    # ============ 概率表 ============

    def _materialize(self) -> None:
        # 数组形式的概率表按当前父节点展开
        if self._table is not None:
            self._cpt = expand_flat_table(self._table, self._states, self._parent_spec())
            self._table = None

    def table(self) -> CPT:
        """当前 CPT（内部对象，调用方不应修改）"""
        self._materialize()
        return self._cpt

    @property
    def cpt(self) -> CPT:
        """CPT 的副本"""
        return {key: dict(row) for key, row in self.table().items()}

    def set_probabilities(self, probabilities: Sequence[float]) -> None:
        """
        以数组形式设置整张概率表

        自身状态变化最快，其次是最后添加的父节点，第一个父节点变化最慢。
        数组在首次读取 CPT 时按当时的父节点展开。

        Args:
            probabilities: 概率数组
        """
        values = [float(p) for p in probabilities]
        check_rows(values, len(self._states))
        self._table = values
        self._cpt = {}

    def set_probability(self, probability: float, combination: Mapping[str, Any]) -> None:
        """
        直接设置单个概率值

        combination 必须包含本变量的状态；未指定的父节点视为通配，
        所有匹配的单元都会被写入。与训练结果互相覆盖，以最后一次写入为准。

        Args:
            probability: 概率值
            combination: 变量名到状态的映射
        """
        probability = float(probability)
        if not 0.0 <= probability <= 1.0:
            raise ValueError(f"概率必须在 [0, 1] 之间: {probability}")
        if self.name not in combination:
            raise ValueError(f"组合中缺少变量 {self.name} 自身的状态")

        self._materialize()
        state = self.validate_state(combination[self.name])
        parents = self.cpt_parents
        parent_names = {p.name for p in parents}
        for name in combination:
            if name != self.name and name not in parent_names:
                # 网络中存在但不是父节点的变量直接忽略
                self.net.get_variable(name)

        choices = []
        for parent in parents:
            if parent.name in combination:
                choices.append((parent.name, [parent.validate_state(combination[parent.name])]))
            else:
                choices.append((parent.name, parent.states))

        names = [name for name, _ in choices]
        for assignment in iter_parent_combinations(choices):
            key = make_parent_key(assignment, names)
            self._cpt.setdefault(key, {})[state] = probability

    def probability(self, state: Any, parent_assignment: Optional[Mapping[str, Any]] = None) -> float:
        """
        查询 P(state | 父节点状态)

        Args:
            state: 本变量状态
            parent_assignment: 父节点名到状态的映射（可包含无关变量）

        Returns:
            概率值
        """
        state = self.validate_state(state)
        parent_assignment = parent_assignment or {}
        names = [p.name for p in self.cpt_parents]
        missing = [n for n in names if n not in parent_assignment]
        if missing:
            partial = tuple(sorted((n, parent_assignment[n]) for n in names if n in parent_assignment))
            raise MissingProbability(self.name, state, partial)

        key = make_parent_key(
            {n: self.net.get_variable(n).validate_state(parent_assignment[n]) for n in names},
            names
        )
        row = self.table().get(key)
        if row is None or state not in row:
            raise MissingProbability(self.name, state, key)
        return row[state]

    def is_normalized(self) -> bool:
        """检查已设置的每个父节点组合概率和是否为 1"""
        return is_normalized(self.table())

    def cpt_frame(self) -> pd.DataFrame:
        """CPT 的 DataFrame 视图（行：父节点组合，列：自身状态）"""
        return cpt_to_frame(self.table(), self._states, [p.name for p in self.cpt_parents])

    def flat_probabilities(self) -> List[float]:
        """
        按数组顺序导出概率表

        Returns:
            概率数组；任何单元缺失时抛出 MissingProbability
        """
        cpt = self.table()
        choices = self._parent_spec()
        names = [name for name, _ in choices]
        values = []
        for assignment in iter_parent_combinations(choices):
            key = make_parent_key(assignment, names)
            row = cpt.get(key, {})
            for state in self._states:
                if state not in row:
                    raise MissingProbability(self.name, state, key)
                values.append(row[state])
        return values

    # ============ 训练 ============

    def observed_value(self, example: Mapping[str, Any]) -> Any:
        """从训练样本中取出本变量的原始观测值"""
        return self.validate_state(example[self.name])

    def state_map(self, values: Iterable[Any]) -> Dict[Any, str]:
        """原始观测值到当前状态的映射"""
        return {value: value for value in values}

    def parent_states(self, values: Iterable[Any], names: Iterable[str]) -> Dict[Any, ParentKey]:
        """
        作为父节点时，原始观测值展开成的 (变量名, 状态) 对

        Args:
            values: 原始观测值
            names: 子节点当前参与 CPT 的父节点名

        Returns:
            原始观测值 -> (变量名, 状态) 元组
        """
        return {raw: ((self.name, state),) for raw, state in self.state_map(values).items()}

    def _raw_parents(self) -> List['Variable']:
        # 字符串变量父节点记录规范化后的字符串，代替其全部协变量
        parents = self.parents
        managers = {p.name for p in parents if not p.sampled}
        return [p for p in parents
                if not (p.kind == 'covariable' and p.manager_name in managers)]

    def accumulate_count(self, example: Mapping[str, Any]) -> None:
        """
        累加一个训练样本的计数

        计数以原始观测值为键，状态在 finalize_training 时才确定，
        因此数值父节点重新分箱、字符串父节点新增协变量后，
        旧样本也会按新状态统计。

        Args:
            example: 变量名到原始观测值的映射
        """
        own = self.observed_value(example)
        parent_raw = tuple(sorted(
            (p.name, p.observed_value(example)) for p in self._raw_parents()
        ))
        self._counts[(own, parent_raw)] += 1

    def _state_counts(self) -> Dict[ParentKey, Counter]:
        names = tuple(sorted(p.name for p in self._raw_parents()))
        cpt_names = {p.name for p in self.cpt_parents}

        own_map = self.state_map(list({own for own, _ in self._counts}))
        raw_values = defaultdict(set)
        for _, parent_raw in self._counts:
            for name, raw in parent_raw:
                raw_values[name].add(raw)
        mappings = {
            name: self.net.get_variable(name).parent_states(list(values), cpt_names)
            for name, values in raw_values.items()
        }

        state_counts: Dict[ParentKey, Counter] = defaultdict(Counter)
        for (own, parent_raw), n in self._counts.items():
            # 添加新父节点之前的计数与当前父节点集合不符，不再参与统计
            if tuple(name for name, _ in parent_raw) != names:
                continue
            key = tuple(sorted(
                pair for name, raw in parent_raw for pair in mappings[name][raw]
            ))
            state_counts[key][own_map[own]] += n
        return state_counts

    @property
    def counts(self) -> Counter:
        """按当前状态汇总的计数：(自身状态, 父节点组合键) -> 次数"""
        flat = Counter()
        for key, counter in self._state_counts().items():
            for state, n in counter.items():
                flat[(state, key)] += n
        return flat

    def finalize_training(self, smoothing: float = 0.0) -> None:
        """
        由累计计数重建 CPT

        有观测的组合按频率估计；无观测的组合使用均匀分布

        Args:
            smoothing: Laplace平滑参数
        """
        learner = CPDLearner(smoothing)
        self._cpt = learner.learn(self._state_counts(), self._states, self._parent_spec())
        self._table = None

    def reset_counts(self) -> None:
        """清空累计计数（CPT 保持不变）"""
        self._counts.clear()

    def training_state(self) -> Dict[str, Any]:
        """训练状态快照，训练失败时用于回滚"""
        return {'counts': Counter(self._counts)}

    def restore_training_state(self, state: Dict[str, Any]) -> None:
        self._counts = Counter(state['counts'])

    # ============ 序列化 ============

    def xmlbif_properties(self) -> List[Tuple[str, str]]:
        """写入 XMLBIF PROPERTY 的键值对"""
        return [('kind', self.kind)]

    # ============ 比较 ============

    def __eq__(self, other):
        if not isinstance(other, Variable):
            return NotImplemented
        if type(self) is not type(other):
            return False
        return (
            self.name == other.name
            and self._states == other._states
            and cpts_equal(self.table(), other.table())
            and set(self.net.structure.get_parents(self.name))
            == set(other.net.structure.get_parents(other.name))
            and set(self.net.structure.get_children(self.name))
            == set(other.net.structure.get_children(other.name))
        )

    __hash__ = None


class DiscreteVariable(Variable):
    """状态在构造时固定的离散变量"""

    kind = 'discrete'


class StringCovariable(Variable):
    """
    字符串协变量

    由 StringVariable 管理的二值变量，表示某个 n-gram 是否出现在观测字符串中
    """

    kind = 'covariable'

    def __init__(self, net, name: str, manager, text: str, probabilities: Optional[Sequence[float]] = None):
        """
        Args:
            net: 所属网络
            name: 协变量名
            manager: 所属的 StringVariable
            text: 对应的 n-gram
            probabilities: 数组形式的概率表（可选）
        """
        self.manager_name = manager.name
        self.text = text
        super().__init__(net, name, probabilities, states=DEFAULT_STATES)

    @property
    def manager(self):
        return self.net.get_variable(self.manager_name)

    def observed_value(self, example: Mapping[str, Any]) -> str:
        if self.manager_name not in example:
            raise UnknownVariable(self.manager_name)
        observed = self.manager.extractor.contains(example[self.manager_name], self.text)
        return 'true' if observed else 'false'

    def xmlbif_properties(self) -> List[Tuple[str, str]]:
        return super().xmlbif_properties() + [
            ('manager', self.manager_name),
            ('text', json.dumps(self.text, ensure_ascii=False)),
        ]

    def __eq__(self, other):
        result = super().__eq__(other)
        if result is not True:
            return result
        return self.manager_name == other.manager_name and self.text == other.text

    __hash__ = None


def is_missing(value: Any) -> bool:
    """样本中的缺失值：None 或 NaN"""
    if value is None:
        return True
    return isinstance(value, float) and math.isnan(value)
