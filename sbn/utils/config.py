#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
配置工具
"""
import copy
import yaml
from typing import Dict, Any, Optional

# 默认配置，YAML 文件中缺失的键使用这里的值
DEFAULT_CONFIG: Dict[str, Any] = {
    'inference': {
        'burn_in': 1000,
        'samples': 10000,
        'random_state': None,
        'show_progress': False,
    },
    'training': {
        'smoothing': 0.0,
    },
    'numeric': {
        'n_bins': 2,
    },
    'string': {
        'ngram_sizes': [3],
        'case_sensitive': False,
    },
}


def merge_config(base: Dict[str, Any], override: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    递归合并配置，override 中的值覆盖 base
    
    Args:
        base: 基础配置
        override: 覆盖配置
        
    Returns:
        合并后的新配置字典
    """
    merged = copy.deepcopy(base)
    if not override:
        return merged
    
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    加载配置文件
    
    Args:
        config_path: 配置文件路径，None 表示只使用默认配置
        
    Returns:
        配置字典
    """
    if config_path is None:
        return merge_config(DEFAULT_CONFIG, None)
    
    with open(config_path, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise ValueError(f"配置文件格式错误（顶层应为映射）: {config_path}")
    return merge_config(DEFAULT_CONFIG, config)
