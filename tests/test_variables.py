#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试变量、父子关系和概率表
"""
import unittest
from sbn.bayes import (
    CycleDetected, DiscreteVariable, MissingProbability, Network,
    StringVariable, UnknownState, UnknownVariable
)
from tests.helpers import build_grass_network


def names(variables):
    return [v.name for v in variables]


class TestEdges(unittest.TestCase):
    """测试父子关系"""

    def setUp(self):
        self.net = Network("edges")
        self.a = DiscreteVariable(self.net, 'a')
        self.b = DiscreteVariable(self.net, 'b')
        self.c = DiscreteVariable(self.net, 'c')

    def test_add_child_is_symmetric(self):
        self.a.add_child(self.b)
        self.assertEqual(names(self.a.children), ['b'])
        self.assertEqual(names(self.b.parents), ['a'])

    def test_add_parent(self):
        self.c.add_parent(self.a)
        self.assertEqual(names(self.a.children), ['c'])
        self.assertEqual(names(self.c.parents), ['a'])

    def test_duplicate_edge_ignored(self):
        self.a.add_child(self.b)
        self.a.add_child(self.b)
        self.assertEqual(names(self.b.parents), ['a'])

    def test_cycle_detected(self):
        """成环的边被拒绝且图保持不变"""
        self.a.add_child(self.b)
        self.b.add_child(self.c)

        with self.assertRaises(CycleDetected):
            self.c.add_child(self.a)

        self.assertEqual(names(self.a.parents), [])
        self.assertEqual(names(self.c.children), [])
        self.assertEqual(names(self.a.children), ['b'])
        self.assertEqual(names(self.c.parents), ['b'])
        self.assertTrue(self.net.structure.is_acyclic())

    def test_mirrored_edge_cycle_leaves_graph_unchanged(self):
        """字符串变量的边复制到协变量时成环，整条边都不添加"""
        net = Network("mirror", config={'string': {'ngram_sizes': [2]}})
        title = StringVariable(net, 'title')
        net.train([{'title': 'ab'}])
        d = DiscreteVariable(net, 'd')
        ab = title.covariables['ab']
        ab.add_child(d)

        with self.assertRaises(CycleDetected):
            d.add_child(title)

        self.assertEqual(names(title.parents), [])
        self.assertEqual(names(d.children), [])
        self.assertEqual(names(ab.children), ['d'])
        self.assertTrue(net.structure.is_acyclic())

    def test_add_edges_rolls_back(self):
        structure = self.net.structure
        structure.add_edge('b', 'c')
        with self.assertRaises(CycleDetected):
            structure.add_edges([('a', 'b'), ('c', 'a')])
        self.assertEqual(structure.get_parents('b'), [])
        self.assertEqual(structure.get_children('c'), [])

    def test_self_edge(self):
        with self.assertRaises(CycleDetected):
            self.a.add_child(self.a)
        self.assertEqual(names(self.a.children), [])

    def test_edge_across_networks(self):
        other = Network("other")
        stranger = DiscreteVariable(other, 'a')
        with self.assertRaises(ValueError):
            self.b.add_child(stranger)

    def test_markov_blanket(self):
        net = build_grass_network()
        self.assertEqual(net.get_markov_blanket('sprinkler'), ['cloudy', 'grass_wet', 'rain'])
        self.assertEqual(net.get_markov_blanket('cloudy'), ['rain', 'sprinkler'])


class TestProbabilities(unittest.TestCase):
    """测试概率表的设置和查询"""

    def test_states(self):
        net = Network("states")
        default = DiscreteVariable(net, 'default')
        custom = DiscreteVariable(net, 'custom', states=['low', 'mid', 'high'])
        self.assertEqual(default.states, ['true', 'false'])
        self.assertEqual(custom.states, ['low', 'mid', 'high'])
        with self.assertRaises(ValueError):
            DiscreteVariable(net, 'empty', states=[])
        with self.assertRaises(ValueError):
            DiscreteVariable(net, 'dup', states=['x', 'x'])

    def test_array_order(self):
        """自身状态变化最快，最后添加的父节点其次"""
        net = build_grass_network()
        grass_wet = net.get_variable('grass_wet')

        self.assertAlmostEqual(grass_wet.probability('true', {'sprinkler': 'true', 'rain': 'true'}), 0.99)
        self.assertAlmostEqual(grass_wet.probability('true', {'sprinkler': 'true', 'rain': 'false'}), 0.9)
        self.assertAlmostEqual(grass_wet.probability('true', {'sprinkler': 'false', 'rain': 'true'}), 0.9)
        self.assertAlmostEqual(grass_wet.probability('false', {'sprinkler': 'false', 'rain': 'false'}), 1.0)
        self.assertEqual(grass_wet.flat_probabilities(), [0.99, 0.01, 0.9, 0.1, 0.9, 0.1, 0.0, 1.0])

    def test_three_state_order(self):
        net = Network("order")
        a = DiscreteVariable(net, 'a', states=['a1', 'a2', 'a3'])
        b = DiscreteVariable(net, 'b')
        c = DiscreteVariable(net, 'c', states=['c1', 'c2'])
        b.add_child(a)
        c.add_child(a)
        values = []
        for i in range(4):
            values.extend([0.1 * (i + 1), 0.5 - 0.1 * (i + 1), 0.5])
        a.set_probabilities(values)

        # 第 2 行: b=true, c=c2
        self.assertAlmostEqual(a.probability('a1', {'b': 'true', 'c': 'c2'}), 0.2)
        # 第 3 行: b=false, c=c1
        self.assertAlmostEqual(a.probability('a2', {'b': 'false', 'c': 'c1'}), 0.2)

    def test_rows_must_sum_to_one(self):
        net = Network("rows")
        a = DiscreteVariable(net, 'a')
        with self.assertRaises(ValueError):
            a.set_probabilities([0.5, 0.4])
        with self.assertRaises(ValueError):
            a.set_probabilities([0.5, 0.5, 0.5])

    def test_wrong_table_length(self):
        """数组长度与父节点组合数不符时在读取时报错"""
        net = Network("length")
        a = DiscreteVariable(net, 'a')
        b = DiscreteVariable(net, 'b', [0.5, 0.5])
        a.add_child(b)
        with self.assertRaises(ValueError):
            b.probability('true', {'a': 'true'})

    def test_set_probability(self):
        net = Network("cells")
        cloudy = DiscreteVariable(net, 'cloudy')
        sprinkler = DiscreteVariable(net, 'sprinkler')
        cloudy.add_child(sprinkler)

        cloudy.set_probability(0.5, {'cloudy': 'true'})
        cloudy.set_probability(0.5, {'cloudy': 'false'})
        sprinkler.set_probability(0.1, {'sprinkler': 'true', 'cloudy': 'true'})
        sprinkler.set_probability(0.9, {'sprinkler': 'false', 'cloudy': 'true'})

        self.assertEqual(cloudy.probability('true'), 0.5)
        self.assertEqual(sprinkler.probability('false', {'cloudy': 'true'}), 0.9)
        self.assertTrue(sprinkler.is_normalized())

        # 未设置的组合没有隐式回退
        with self.assertRaises(MissingProbability):
            sprinkler.probability('true', {'cloudy': 'false'})

    def test_set_probability_wildcard(self):
        """未指定的父节点视为通配"""
        net = Network("wildcard")
        cloudy = DiscreteVariable(net, 'cloudy')
        sprinkler = DiscreteVariable(net, 'sprinkler')
        cloudy.add_child(sprinkler)

        sprinkler.set_probability(0.3, {'sprinkler': 'true'})
        self.assertEqual(sprinkler.probability('true', {'cloudy': 'true'}), 0.3)
        self.assertEqual(sprinkler.probability('true', {'cloudy': 'false'}), 0.3)

    def test_set_probability_overrides_table(self):
        net = build_grass_network()
        rain = net.get_variable('rain')
        rain.set_probability(0.7, {'rain': 'true', 'cloudy': 'true'})
        rain.set_probability(0.3, {'rain': 'false', 'cloudy': 'true'})
        self.assertEqual(rain.probability('true', {'cloudy': 'true'}), 0.7)
        self.assertEqual(rain.probability('true', {'cloudy': 'false'}), 0.2)

    def test_set_probability_errors(self):
        net = build_grass_network()
        rain = net.get_variable('rain')
        with self.assertRaises(UnknownState):
            rain.set_probability(0.5, {'rain': 'maybe', 'cloudy': 'true'})
        with self.assertRaises(UnknownState):
            rain.set_probability(0.5, {'rain': 'true', 'cloudy': 'maybe'})
        with self.assertRaises(UnknownVariable):
            rain.set_probability(0.5, {'rain': 'true', 'fog': 'true'})
        with self.assertRaises(ValueError):
            rain.set_probability(0.5, {'cloudy': 'true'})
        with self.assertRaises(ValueError):
            rain.set_probability(1.5, {'rain': 'true', 'cloudy': 'true'})

    def test_probability_missing_parent(self):
        net = build_grass_network()
        with self.assertRaises(MissingProbability):
            net.get_variable('rain').probability('true')

    def test_cpt_is_a_copy(self):
        net = build_grass_network()
        cloudy = net.get_variable('cloudy')
        cloudy.cpt[()]['true'] = 0.0
        self.assertEqual(cloudy.probability('true'), 0.5)

    def test_cpt_frame(self):
        net = build_grass_network()
        frame = net.get_variable('grass_wet').cpt_frame()
        self.assertEqual(list(frame.columns), ['true', 'false'])
        self.assertEqual(list(frame.index.names), ['sprinkler', 'rain'])
        self.assertAlmostEqual(frame.loc[('false', 'true'), 'true'], 0.9)

    def test_validate_state_coercion(self):
        """布尔值按字符串形式匹配状态"""
        net = Network("coerce")
        a = DiscreteVariable(net, 'a')
        self.assertEqual(a.validate_state(True), 'true')
        self.assertEqual(a.validate_state('FALSE'), 'false')
        with self.assertRaises(UnknownState):
            a.validate_state('maybe')


if __name__ == '__main__':
    unittest.main()
