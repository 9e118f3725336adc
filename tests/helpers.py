#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试用网络构造
"""
from sbn.bayes import DiscreteVariable, Network


def build_grass_network(name: str = "grass_wetness") -> Network:
    """
    构造草地湿润示例网络（Russell & Norvig）

    cloudy -> sprinkler, cloudy -> rain, sprinkler/rain -> grass_wet
    """
    net = Network(name)
    cloudy = DiscreteVariable(net, 'cloudy', [0.5, 0.5])
    sprinkler = DiscreteVariable(net, 'sprinkler', [0.1, 0.9, 0.5, 0.5])
    rain = DiscreteVariable(net, 'rain', [0.8, 0.2, 0.2, 0.8])
    grass_wet = DiscreteVariable(net, 'grass_wet', [0.99, 0.01, 0.9, 0.1, 0.9, 0.1, 0.0, 1.0])
    cloudy.add_child(sprinkler)
    cloudy.add_child(rain)
    sprinkler.add_child(grass_wet)
    rain.add_child(grass_wet)
    return net
