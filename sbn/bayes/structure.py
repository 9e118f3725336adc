#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
贝叶斯网络DAG结构定义
以变量名为节点保存父子关系，变量之间不直接互相持有
"""
from typing import Iterable, List, Dict, Tuple
import networkx as nx

from sbn.bayes.errors import CycleDetected, UnknownVariable
from sbn.utils.logging import setup_logger

logger = setup_logger("bayes_structure")


class BayesianNetworkStructure:
    """
    贝叶斯网络DAG结构

    边的插入顺序即父节点顺序，CPT 的数组形式依赖这一顺序
    """

    def __init__(self):
        """初始化网络结构"""
        self.graph = nx.DiGraph()

    def add_node(self, node: str) -> None:
        """注册节点"""
        self.graph.add_node(node)

    def _require(self, node: str) -> None:
        if node not in self.graph:
            raise UnknownVariable(node)

    def would_create_cycle(self, parent: str, child: str) -> bool:
        """
        判断添加 parent -> child 是否会形成环

        Args:
            parent: 父节点
            child: 子节点

        Returns:
            child 能沿现有边到达 parent 时为 True
        """
        if parent == child:
            return True
        return nx.has_path(self.graph, child, parent)

    def add_edge(self, parent: str, child: str) -> bool:
        """
        添加有向边（因果关系），先做环检测再修改图

        Args:
            parent: 父节点（原因）
            child: 子节点（结果）

        Returns:
            是否新增了边（已存在时返回 False）
        """
        self._require(parent)
        self._require(child)
        if self.graph.has_edge(parent, child):
            return False
        if self.would_create_cycle(parent, child):
            raise CycleDetected(parent, child)
        self.graph.add_edge(parent, child)
        logger.debug(f"添加边: {parent} -> {child}")
        return True

    def add_edges(self, edges: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
        """
        依次添加多条边，任意一条形成环时撤销本次已添加的边

        Args:
            edges: (父节点, 子节点) 序列

        Returns:
            实际新增的边
        """
        added = []
        try:
            for parent, child in edges:
                if self.add_edge(parent, child):
                    added.append((parent, child))
        except (CycleDetected, UnknownVariable):
            self.graph.remove_edges_from(added)
            raise
        return added

    def remove_node(self, node: str) -> None:
        """删除节点及其所有边"""
        self._require(node)
        self.graph.remove_node(node)

    def get_parents(self, node: str) -> List[str]:
        """
        获取节点的父节点（按添加顺序）

        Args:
            node: 节点名

        Returns:
            父节点列表
        """
        self._require(node)
        return list(self.graph.predecessors(node))

    def get_children(self, node: str) -> List[str]:
        """
        获取节点的子节点（按添加顺序）

        Args:
            node: 节点名

        Returns:
            子节点列表
        """
        self._require(node)
        return list(self.graph.successors(node))

    def get_markov_blanket(self, node: str) -> List[str]:
        """
        获取Markov Blanket

        包含：父节点、子节点、子节点的其他父节点

        Args:
            node: 节点名

        Returns:
            Markov Blanket节点列表
        """
        markov_blanket = set()

        # 父节点
        markov_blanket.update(self.get_parents(node))

        # 子节点
        children = self.get_children(node)
        markov_blanket.update(children)

        # 子节点的其他父节点
        for child in children:
            markov_blanket.update(self.get_parents(child))

        # 移除节点自身
        markov_blanket.discard(node)

        return sorted(markov_blanket)

    def is_acyclic(self) -> bool:
        """检查是否为有向无环图"""
        return nx.is_directed_acyclic_graph(self.graph)

    def get_topological_order(self) -> List[str]:
        """获取拓扑排序（同层节点保持注册顺序）"""
        if not self.is_acyclic():
            raise ValueError("图中存在环，无法进行拓扑排序")
        order = {node: i for i, node in enumerate(self.graph.nodes())}
        return list(nx.lexicographical_topological_sort(self.graph, key=order.get))

    def export_structure(self) -> Dict:
        """
        导出网络结构

        Returns:
            结构字典
        """
        return {
            'nodes': list(self.graph.nodes()),
            'edges': list(self.graph.edges()),
            'is_acyclic': self.is_acyclic(),
            'topological_order': self.get_topological_order() if self.is_acyclic() else None
        }
