#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
贝叶斯网络异常定义
"""


class BayesNetError(Exception):
    """所有贝叶斯网络异常的基类"""


class DuplicateVariable(BayesNetError, KeyError):
    """同名变量已注册到网络"""

    def __init__(self, name):
        self.name = name
        super().__init__(f"网络中已存在同名变量: {name}")

    def __str__(self):
        return self.args[0]


class UnknownVariable(BayesNetError, KeyError):
    """引用了网络中不存在的变量"""

    def __init__(self, name):
        self.name = name
        super().__init__(f"网络中不存在变量: {name}")

    def __str__(self):
        return self.args[0]


class UnknownState(BayesNetError, ValueError):
    """取值不在变量的状态集合中"""

    def __init__(self, variable, state, states=None):
        self.variable = variable
        self.state = state
        message = f"变量 {variable} 没有状态 {state!r}"
        if states is not None:
            message += f"（可选状态: {list(states)}）"
        super().__init__(message)


class CycleDetected(BayesNetError, ValueError):
    """添加边后会形成环"""

    def __init__(self, parent, child):
        self.parent = parent
        self.child = child
        super().__init__(f"添加边 {parent} -> {child} 会形成环")


class MalformedExample(BayesNetError, ValueError):
    """训练样本缺少某个变量的观测值"""

    def __init__(self, index, missing):
        self.index = index
        self.missing = list(missing)
        super().__init__(f"第 {index} 个训练样本缺少变量的观测值: {self.missing}")


class MissingProbability(BayesNetError, LookupError):
    """查询的CPT单元从未被设置或训练"""

    def __init__(self, variable, state, parent_key):
        self.variable = variable
        self.state = state
        self.parent_key = parent_key
        condition = ", ".join(f"{p}={s}" for p, s in parent_key) or "无父节点"
        super().__init__(f"变量 {variable} 缺少概率 P({state} | {condition})")


class InconsistentEvidence(BayesNetError, ValueError):
    """采样阶段仍无法进入与证据相容的状态（证据概率为零或预烧不足）"""

    def __init__(self, variable, evidence):
        self.variable = variable
        self.evidence = dict(evidence)
        super().__init__(f"查询 {variable} 时采样链无法进入与证据 {self.evidence} 相容的状态"
                         "（证据概率为零，或预烧次数不足）")
