#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
贝叶斯网络
管理变量、父子关系、证据、训练和查询
"""
import itertools
import uuid
import pandas as pd
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from tqdm import tqdm

from sbn.bayes.errors import BayesNetError, DuplicateVariable, MalformedExample, UnknownVariable
from sbn.bayes.inference import MCMCInference, RandomState
from sbn.bayes.structure import BayesianNetworkStructure
from sbn.bayes.variables import Variable, is_missing
from sbn.utils.config import DEFAULT_CONFIG, merge_config
from sbn.utils.logging import setup_logger

logger = setup_logger("network")

Examples = Union[pd.DataFrame, Mapping[str, Any], Iterable[Mapping[str, Any]]]


class NameGenerator:
    """
    网络名生成器

    >>> names = NameGenerator()
    >>> names(), names()
    ('net_1', 'net_2')
    """

    def __init__(self, prefix: str = "net", start: int = 1):
        self.prefix = prefix
        self._counter = itertools.count(start)

    def __call__(self) -> str:
        return f"{self.prefix}_{next(self._counter)}"


class Network:
    """
    贝叶斯网络

    网络是其变量的唯一持有者；变量之间只通过名称和网络结构互相引用。
    非线程安全，跨线程共享时需由调用方加锁。
    """

    def __init__(
        self,
        name: str = '',
        config: Optional[Dict[str, Any]] = None,
        name_factory: Optional[Callable[[], str]] = None
    ):
        """
        初始化网络

        Args:
            name: 网络名，为空时由 name_factory 生成，否则使用随机名
            config: 配置字典（缺失的键使用默认配置）
            name_factory: 生成网络名的可调用对象
        """
        self.config = merge_config(DEFAULT_CONFIG, config)
        if not name:
            name = name_factory() if name_factory is not None else f"net_{uuid.uuid4().hex[:8]}"
        self.name = str(name)
        self.structure = BayesianNetworkStructure()
        self._variables: Dict[str, Variable] = {}
        self._evidence: Dict[str, str] = {}

    def __repr__(self):
        return f"Network({self.name!r}, variables={list(self._variables)})"

    # ============ 变量与结构 ============

    @property
    def variables(self) -> Dict[str, Variable]:
        """变量名 -> 变量（按注册顺序）"""
        return dict(self._variables)

    def add_variable(self, variable: Variable) -> None:
        """
        注册变量（变量构造时自动调用）

        Args:
            variable: 变量对象
        """
        if variable.name in self._variables:
            raise DuplicateVariable(variable.name)
        if variable.net is not self:
            raise ValueError(f"变量 {variable.name} 属于另一个网络")
        self._variables[variable.name] = variable
        self.structure.add_node(variable.name)
        logger.debug(f"注册变量: {variable.name} ({variable.kind})")

    def get_variable(self, name: str) -> Variable:
        try:
            return self._variables[name]
        except KeyError:
            raise UnknownVariable(name) from None

    def _require_member(self, variable: Variable) -> None:
        if self._variables.get(variable.name) is not variable:
            raise ValueError(f"变量 {variable.name} 不属于网络 {self.name}")

    @staticmethod
    def _endpoints(variable: Variable) -> List[Variable]:
        # 字符串变量的边同时连到它自己和它的全部协变量
        return [variable] + [p for p in variable.edge_proxies() if p is not variable]

    def add_edge(self, parent: Variable, child: Variable) -> None:
        """
        添加 parent -> child 边

        涉及字符串变量时，边同时复制到其所有协变量上。
        任意一条边形成环时整体失败，图保持不变。

        Args:
            parent: 父变量
            child: 子变量
        """
        self._require_member(parent)
        self._require_member(child)
        self.structure.add_edges(
            (p.name, c.name)
            for p in self._endpoints(parent)
            for c in self._endpoints(child)
        )

    def inherit_edges(self, manager: Variable, covariable: Variable) -> None:
        """新协变量继承字符串变量当前的父节点和子节点"""
        edges = []
        for name in self.structure.get_parents(manager.name):
            edges.extend((p.name, covariable.name) for p in self._endpoints(self.get_variable(name)))
        for name in self.structure.get_children(manager.name):
            edges.extend((covariable.name, c.name) for c in self._endpoints(self.get_variable(name)))
        self.structure.add_edges(edges)

    def get_markov_blanket(self, name: str) -> List[str]:
        return self.structure.get_markov_blanket(name)

    def export_structure(self) -> Dict:
        return self.structure.export_structure()

    def export_cpts(self) -> Dict[str, Dict]:
        """导出所有参与采样的变量的 CPT"""
        return {name: v.cpt for name, v in self._variables.items() if v.sampled}

    # ============ 证据 ============

    @property
    def evidence(self) -> Dict[str, str]:
        return dict(self._evidence)

    def set_evidence(self, evidence: Mapping[str, Any]) -> None:
        """
        设置证据（整体替换之前的证据）

        任何一项无效时抛出异常，之前的证据保持不变

        Args:
            evidence: 变量名 -> 观测取值
        """
        new_evidence = {}
        for name, value in evidence.items():
            variable = self.get_variable(name)
            new_evidence[name] = variable.transform_evidence_value(value)
        self._evidence = new_evidence
        logger.debug(f"设置证据: {new_evidence}")

    def clear_evidence(self) -> None:
        self._evidence = {}

    # ============ 训练 ============

    def _training_variables(self) -> List[Variable]:
        # 协变量由所属字符串变量负责累加
        return [v for v in self._variables.values() if v.kind != 'covariable']

    def _validate_examples(self, examples: List[Mapping[str, Any]], variables: List[Variable]) -> None:
        for index, example in enumerate(examples):
            if not isinstance(example, Mapping):
                raise MalformedExample(index, [v.name for v in variables])
            for name in example:
                if name not in self._variables:
                    raise UnknownVariable(name)
            missing = [v.name for v in variables
                       if v.name not in example or is_missing(example[v.name])]
            if missing:
                raise MalformedExample(index, missing)
            for variable in variables:
                variable.observed_value(example)

    def _training_checkpoint(self) -> Tuple[List[str], Dict[str, Dict[str, Any]]]:
        return list(self._variables), {
            name: variable.training_state() for name, variable in self._variables.items()
        }

    def _rollback_training(self, checkpoint: Tuple[List[str], Dict[str, Dict[str, Any]]]) -> None:
        names, states = checkpoint
        for name in [n for n in self._variables if n not in states]:
            # 本批新建的协变量
            self.structure.remove_node(name)
            del self._variables[name]
        for name in names:
            self._variables[name].restore_training_state(states[name])

    def train(self, examples: Examples, smoothing: Optional[float] = None) -> None:
        """
        用完整观测的样本训练网络

        整批样本先全部校验，任何一个无效则整批不生效。
        训练是累积的：计数在多次调用之间保留。

        Args:
            examples: 样本列表（变量名 -> 原始观测值）、单个样本或 DataFrame
            smoothing: Laplace平滑参数，默认取配置
        """
        if isinstance(examples, pd.DataFrame):
            examples = examples.to_dict('records')
        elif isinstance(examples, Mapping):
            examples = [examples]
        else:
            examples = list(examples)

        if not examples:
            logger.warning("训练样本为空，跳过训练")
            return

        if smoothing is None:
            smoothing = self.config['training']['smoothing']

        variables = self._training_variables()
        self._validate_examples(examples, variables)

        # 字符串变量先累加，保证同一样本中新建的协变量对子节点可见
        managers = [v for v in variables if v.kind == 'string']
        others = [v for v in variables if v.kind != 'string']
        show_progress = self.config['inference']['show_progress']
        checkpoint = self._training_checkpoint()
        try:
            for example in tqdm(examples, desc="训练", disable=not show_progress):
                for variable in managers:
                    variable.accumulate_count(example)
                for variable in others:
                    variable.accumulate_count(example)
        except BayesNetError:
            self._rollback_training(checkpoint)
            logger.error("训练失败，已撤销本批样本的计数和新建的协变量")
            raise

        # 按拓扑顺序重建 CPT，数值父节点先完成重新分箱
        for name in self.structure.get_topological_order():
            variable = self._variables[name]
            if variable.kind != 'covariable':
                variable.finalize_training(smoothing)

        n_covariables = sum(1 for v in self._variables.values() if v.kind == 'covariable')
        logger.info(f"网络 {self.name} 训练完成: {len(examples)} 个样本, "
                    f"{len(variables)} 个变量, {n_covariables} 个协变量")

    def reset_training(self) -> None:
        """清空所有变量的累计计数"""
        for variable in self._variables.values():
            variable.reset_counts()

    # ============ 查询 ============

    def query_variable(
        self,
        name: str,
        burn_in: Optional[int] = None,
        samples: Optional[int] = None,
        random_state: RandomState = None,
        show_progress: Optional[bool] = None
    ) -> Dict[str, float]:
        """
        在当前证据下查询变量的后验分布（MCMC）

        Args:
            name: 查询变量名
            burn_in: 预烧次数，默认取配置
            samples: 采样次数，默认取配置
            random_state: 随机种子或 numpy Generator，默认取配置
            show_progress: 是否显示进度条，默认取配置

        Returns:
            状态 -> 概率
        """
        config = self.config['inference']
        engine = MCMCInference(
            self,
            burn_in=config['burn_in'] if burn_in is None else burn_in,
            samples=config['samples'] if samples is None else samples,
            random_state=config['random_state'] if random_state is None else random_state,
            show_progress=config['show_progress'] if show_progress is None else show_progress
        )
        return engine.query(name)

    # ============ 序列化 ============

    def to_xmlbif(self) -> str:
        """导出为 XMLBIF 0.3 文档"""
        from sbn.bayes.xmlbif import to_xmlbif
        return to_xmlbif(self)

    @classmethod
    def from_xmlbif(cls, text: Union[str, bytes], config: Optional[Dict[str, Any]] = None) -> 'Network':
        """从 XMLBIF 文档恢复网络（不包含训练计数）"""
        from sbn.bayes.xmlbif import from_xmlbif
        return from_xmlbif(text, config)

    # ============ 比较 ============

    def __eq__(self, other):
        if not isinstance(other, Network):
            return NotImplemented
        if self.name != other.name:
            return False
        if sorted(self._variables) != sorted(other._variables):
            return False
        return all(variable == other._variables[name] for name, variable in self._variables.items())

    __hash__ = None
