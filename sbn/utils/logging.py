#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
日志工具
"""
import os
import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(
    name: str,
    log_dir: Optional[str] = None,
    level: str = "INFO"
) -> logging.Logger:
    """
    设置日志记录器
    
    Args:
        name: 日志记录器名称（会自动加上 "sbn." 前缀）
        log_dir: 日志目录，None 表示只输出到控制台
        level: 日志级别
        
    Returns:
        配置好的日志记录器
    """
    if not name.startswith("sbn"):
        name = f"sbn.{name}"
    
    # 创建日志记录器
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level))
    
    # 避免重复添加处理器
    if logger.handlers:
        return logger
    
    formatter = logging.Formatter(LOG_FORMAT)
    
    # 控制台处理器
    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    
    # 文件处理器
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(
            os.path.join(log_dir, f"{name}.log"),
            encoding='utf-8'
        )
        file_handler.setLevel(getattr(logging, level))
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    
    # 已有自己的处理器，不再向根记录器传播
    logger.propagate = False
    
    return logger
