#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
SBN: 简单贝叶斯网络
离散贝叶斯网络的建模、参数学习和 MCMC 近似推断
"""
from sbn.bayes import (
    BayesNetError,
    DuplicateVariable,
    UnknownVariable,
    UnknownState,
    CycleDetected,
    MalformedExample,
    MissingProbability,
    InconsistentEvidence,
    Variable,
    DiscreteVariable,
    StringCovariable,
    StringVariable,
    NumericVariable,
    MCMCInference,
    Network,
    NameGenerator
)

__version__ = "0.1.0"

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
    'MCMCInference',
    'Network',
    'NameGenerator'
]
