#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试 XMLBIF 导入导出
"""
import unittest
from lxml import etree
from sbn.bayes import (
    DiscreteVariable, Network, NumericVariable, StringVariable, from_xmlbif, to_xmlbif
)
from tests.helpers import build_grass_network


def build_trained_network():
    net = Network("mixed", config={'string': {'ngram_sizes': [2]}})
    cloudy = DiscreteVariable(net, 'cloudy')
    title = StringVariable(net, 'title')
    temperature = NumericVariable(net, 'temperature')
    spam = DiscreteVariable(net, 'spam')
    cloudy.add_child(title)
    title.add_child(spam)
    temperature.add_child(spam)
    net.train([
        {'cloudy': 'true', 'title': 'ab', 'temperature': 1.5, 'spam': 'true'},
        {'cloudy': 'false', 'title': 'cd', 'temperature': 8.0, 'spam': 'false'},
        {'cloudy': 'true', 'title': 'abc', 'temperature': 3.0, 'spam': 'true'},
    ])
    return net


class TestXMLBIF(unittest.TestCase):
    """测试 XMLBIF 往返"""

    def test_document_layout(self):
        xml = to_xmlbif(build_grass_network())
        root = etree.fromstring(xml.encode('utf-8'))
        self.assertEqual(root.tag, 'BIF')
        self.assertEqual(root.get('VERSION'), '0.3')
        network = root.find('NETWORK')
        self.assertEqual(network.findtext('NAME'), 'grass_wetness')
        self.assertEqual(len(network.findall('VARIABLE')), 4)

        definitions = {d.findtext('FOR'): d for d in network.findall('DEFINITION')}
        givens = [g.text for g in definitions['grass_wet'].findall('GIVEN')]
        self.assertEqual(givens, ['sprinkler', 'rain'])
        table = [float(v) for v in definitions['grass_wet'].findtext('TABLE').split()]
        self.assertEqual(table, [0.99, 0.01, 0.9, 0.1, 0.9, 0.1, 0.0, 1.0])

    def test_round_trip(self):
        net = build_grass_network()
        restored = Network.from_xmlbif(net.to_xmlbif())
        self.assertEqual(restored, net)
        self.assertEqual(
            [p.name for p in restored.get_variable('grass_wet').parents],
            ['sprinkler', 'rain']
        )

    def test_trained_round_trip(self):
        """字符串变量、协变量和数值阈值都能恢复"""
        net = build_trained_network()
        restored = from_xmlbif(to_xmlbif(net))
        self.assertEqual(restored, net)

        title = restored.get_variable('title')
        self.assertEqual(sorted(title.covariables), ['ab', 'bc', 'cd'])
        self.assertEqual(title.extractor.ngram_sizes, [2])
        temperature = restored.get_variable('temperature')
        self.assertEqual(temperature.thresholds, net.get_variable('temperature').thresholds)

        spam = restored.get_variable('spam')
        original = net.get_variable('spam')
        self.assertEqual([p.name for p in spam.cpt_parents], [p.name for p in original.cpt_parents])

    def test_counts_not_restored(self):
        restored = Network.from_xmlbif(build_trained_network().to_xmlbif())
        for variable in restored.variables.values():
            self.assertEqual(sum(variable.counts.values()), 0)

    def test_restored_network_keeps_training(self):
        net = build_trained_network()
        restored = Network.from_xmlbif(net.to_xmlbif())
        restored.train([{'cloudy': 'true', 'title': 'xy', 'temperature': 2.0, 'spam': 'true'}])
        title = restored.get_variable('title')
        self.assertIn('xy', title.covariables)
        xy = title.covariables['xy']
        self.assertEqual([p.name for p in xy.parents], ['cloudy'])

    def test_missing_network(self):
        with self.assertRaises(ValueError):
            from_xmlbif('<BIF VERSION="0.3"></BIF>')


if __name__ == '__main__':
    unittest.main()
