#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
文本特征提取模块
将观测字符串切分为重叠的 n-gram，供字符串变量创建协变量
"""
from typing import List, Sequence, Union


def ngrams(text: str, n: int) -> List[str]:
    """
    按步长 1 提取重叠的 n-gram
    
    长度为 L 的字符串产生 L-n+1 个 n-gram；L < n 时返回空列表。
    
    Args:
        text: 输入字符串
        n: n-gram 长度
        
    Returns:
        有序的 n-gram 列表（可能包含重复项）
    """
    if n <= 0:
        raise ValueError(f"n-gram 长度必须为正整数: {n}")
    return [text[i:i + n] for i in range(len(text) - n + 1)]


class NgramExtractor:
    """字符串 n-gram 提取器"""
    
    def __init__(self, ngram_sizes: Union[int, Sequence[int]] = 3, case_sensitive: bool = False):
        if isinstance(ngram_sizes, int):
            ngram_sizes = [ngram_sizes]
        self.ngram_sizes = [int(n) for n in ngram_sizes]
        if not self.ngram_sizes:
            raise ValueError("至少需要一个 n-gram 长度")
        for n in self.ngram_sizes:
            if n <= 0:
                raise ValueError(f"n-gram 长度必须为正整数: {n}")
        self.case_sensitive = case_sensitive
    
    def normalize(self, text) -> str:
        """去除首尾空白，按配置转为小写"""
        text = str(text).strip()
        return text if self.case_sensitive else text.lower()
    
    def extract(self, text) -> List[str]:
        """
        提取所有配置长度下的不重复 n-gram
        
        Args:
            text: 原始观测字符串
            
        Returns:
            按首次出现顺序排列的不重复 n-gram 列表
        """
        text = self.normalize(text)
        seen = {}
        for n in self.ngram_sizes:
            for gram in ngrams(text, n):
                seen.setdefault(gram, None)
        return list(seen)
    
    def contains(self, text, gram: str) -> bool:
        """判断规范化后的字符串是否包含某个 n-gram"""
        return gram in self.normalize(text)
