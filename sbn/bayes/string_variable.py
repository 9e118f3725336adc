#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
字符串变量
观测字符串被切分为 n-gram，每个 n-gram 对应一个二值协变量
"""
import json
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from sbn.bayes.cpds import ParentKey
from sbn.bayes.errors import UnknownState
from sbn.bayes.variables import DEFAULT_STATES, StringCovariable, Variable
from sbn.text_features import NgramExtractor
from sbn.utils.logging import setup_logger

logger = setup_logger("string_variable")


class StringVariable(Variable):
    """
    字符串变量

    本身不持有 CPT，也不参与采样；训练时为每个新出现的 n-gram 创建
    StringCovariable，协变量继承本变量当时的父节点和子节点。
    """

    kind = 'string'
    sampled = False

    def __init__(
        self,
        net,
        name: str,
        ngram_sizes: Optional[Union[int, Sequence[int]]] = None,
        case_sensitive: Optional[bool] = None
    ):
        """
        Args:
            net: 所属网络
            name: 变量名
            ngram_sizes: n-gram 长度（或长度列表），默认取网络配置
            case_sensitive: 是否区分大小写，默认取网络配置
        """
        config = net.config['string']
        self.extractor = NgramExtractor(
            config['ngram_sizes'] if ngram_sizes is None else ngram_sizes,
            config['case_sensitive'] if case_sensitive is None else case_sensitive
        )
        self._covariables: Dict[str, StringCovariable] = {}
        super().__init__(net, name, states=DEFAULT_STATES)

    @property
    def covariables(self) -> Dict[str, StringCovariable]:
        """n-gram -> 协变量"""
        return dict(self._covariables)

    def edge_proxies(self) -> List[Variable]:
        return list(self._covariables.values())

    def observed_value(self, example: Mapping[str, Any]) -> str:
        return self.extractor.normalize(example[self.name])

    def transform_evidence_value(self, value: Any) -> str:
        # 字符串变量不能直接作为证据，应使用 covariable_evidence 得到协变量证据
        raise UnknownState(self.name, value)

    def covariable_evidence(self, text: str) -> Dict[str, str]:
        """
        将观测字符串转换为协变量层面的证据

        Args:
            text: 观测字符串

        Returns:
            协变量名 -> 'true'/'false'
        """
        return {
            covariable.name: 'true' if self.extractor.contains(text, gram) else 'false'
            for gram, covariable in self._covariables.items()
        }

    def _next_covariable_name(self) -> str:
        index = len(self._covariables) + 1
        name = f"{self.name}_covar_{index}"
        while name in self.net.variables:
            index += 1
            name = f"{self.name}_covar_{index}"
        return name

    def adopt_covariable(self, name: str, text: str) -> StringCovariable:
        """
        创建协变量但不复制边（从 XMLBIF 恢复时边由文档给出）

        Args:
            name: 协变量名
            text: 对应的 n-gram

        Returns:
            新协变量
        """
        if text in self._covariables:
            raise ValueError(f"字符串变量 {self.name} 已有 n-gram {text!r} 的协变量")
        covariable = StringCovariable(self.net, name, self, text)
        self._covariables[text] = covariable
        return covariable

    def _create_covariable(self, text: str) -> StringCovariable:
        covariable = self.adopt_covariable(self._next_covariable_name(), text)
        self.net.inherit_edges(self, covariable)
        logger.debug(f"字符串变量 {self.name} 新建协变量 {covariable.name}: {text!r}")
        return covariable

    def accumulate_count(self, example: Mapping[str, Any]) -> None:
        """
        累加一个训练样本

        先为新出现的 n-gram 创建协变量，再让所有已有协变量记录本样本，
        未出现的 n-gram 记为 'false'。

        Args:
            example: 变量名到原始观测值的映射
        """
        text = self.observed_value(example)
        for gram in self.extractor.extract(text):
            if gram not in self._covariables:
                self._create_covariable(gram)

        for covariable in self._covariables.values():
            covariable.accumulate_count(example)

    def parent_states(self, values: Iterable[str], names: Iterable[str]) -> Dict[str, ParentKey]:
        """观测字符串展开为子节点的各个协变量父节点的状态"""
        names = set(names)
        covariables = [(gram, c.name) for gram, c in self._covariables.items() if c.name in names]
        return {
            text: tuple(
                (name, 'true' if self.extractor.contains(text, gram) else 'false')
                for gram, name in covariables
            )
            for text in values
        }

    def finalize_training(self, smoothing: float = 0.0) -> None:
        for covariable in self._covariables.values():
            covariable.finalize_training(smoothing)

    def reset_counts(self) -> None:
        super().reset_counts()
        for covariable in self._covariables.values():
            covariable.reset_counts()

    def training_state(self) -> Dict[str, Any]:
        state = super().training_state()
        state['covariables'] = dict(self._covariables)
        return state

    def restore_training_state(self, state: Dict[str, Any]) -> None:
        super().restore_training_state(state)
        self._covariables = dict(state['covariables'])

    def xmlbif_properties(self) -> List[Tuple[str, str]]:
        return super().xmlbif_properties() + [
            ('ngram_sizes', ",".join(str(n) for n in self.extractor.ngram_sizes)),
            ('case_sensitive', json.dumps(self.extractor.case_sensitive)),
        ]

    def __eq__(self, other):
        result = super().__eq__(other)
        if result is not True:
            return result
        return (
            sorted(self._covariables) == sorted(other._covariables)
            and self.extractor.ngram_sizes == other.extractor.ngram_sizes
            and self.extractor.case_sensitive == other.extractor.case_sensitive
        )

    __hash__ = None
