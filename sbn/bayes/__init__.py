#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
贝叶斯网络模块
包含变量定义、DAG结构、CPD学习、MCMC推断和 XMLBIF 序列化
"""
from sbn.bayes.errors import (
    BayesNetError,
    DuplicateVariable,
    UnknownVariable,
    UnknownState,
    CycleDetected,
    MalformedExample,
    MissingProbability,
    InconsistentEvidence
)
from sbn.bayes.variables import Variable, DiscreteVariable, StringCovariable
from sbn.bayes.string_variable import StringVariable
from sbn.bayes.numeric_variable import NumericVariable
from sbn.bayes.structure import BayesianNetworkStructure
from sbn.bayes.cpds import CPDLearner
from sbn.bayes.inference import MCMCInference
from sbn.bayes.network import Network, NameGenerator
from sbn.bayes.xmlbif import to_xmlbif, from_xmlbif

__all__ = [
    'BayesNetError',
    'DuplicateVariable',
    'UnknownVariable',
    'UnknownState',
    'CycleDetected',
    'MalformedExample',
    'MissingProbability',
    'InconsistentEvidence',
    'Variable',
    'DiscreteVariable',
    'StringCovariable',
    'StringVariable',
    'NumericVariable',
    'BayesianNetworkStructure',
    'CPDLearner',
    'MCMCInference',
    'Network',
    'NameGenerator',
    'to_xmlbif',
    'from_xmlbif'
]
