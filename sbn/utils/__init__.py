#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
工具模块
"""
from sbn.utils.logging import setup_logger
from sbn.utils.config import load_config, merge_config, DEFAULT_CONFIG

__all__ = [
    'setup_logger',
    'load_config',
    'merge_config',
    'DEFAULT_CONFIG'
]
