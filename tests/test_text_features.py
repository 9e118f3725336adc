#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试 n-gram 提取
"""
import unittest
from sbn.text_features import NgramExtractor, ngrams


class TestNgrams(unittest.TestCase):
    """测试 n-gram 切分"""

    def test_bigrams(self):
        """长度 16 的字符串产生 15 个重叠的 2-gram"""
        text = "THIS IS A STRING"
        grams = ngrams(text, 2)

        self.assertEqual(len(grams), 15)
        self.assertTrue(all(len(g) == 2 for g in grams))
        self.assertEqual(grams, [text[i:i + 2] for i in range(len(text) - 1)])
        self.assertEqual(grams[:3], ['TH', 'HI', 'IS'])

    def test_longer_than_text(self):
        self.assertEqual(ngrams("abc", 4), [])
        self.assertEqual(ngrams("", 1), [])

    def test_invalid_size(self):
        with self.assertRaises(ValueError):
            ngrams("abc", 0)


class TestNgramExtractor(unittest.TestCase):
    """测试提取器"""

    def test_normalize_and_unique(self):
        """去除空白、转小写并去重"""
        extractor = NgramExtractor(2)
        self.assertEqual(extractor.extract("  ABAB "), ['ab', 'ba'])

    def test_case_sensitive(self):
        extractor = NgramExtractor(2, case_sensitive=True)
        self.assertEqual(extractor.extract("AbA"), ['Ab', 'bA'])

    def test_multiple_sizes(self):
        extractor = NgramExtractor([2, 3])
        self.assertEqual(extractor.extract("abcd"), ['ab', 'bc', 'cd', 'abc', 'bcd'])

    def test_contains(self):
        extractor = NgramExtractor(3)
        self.assertTrue(extractor.contains("The Cat", "cat"))
        self.assertFalse(extractor.contains("The Cat", "dog"))


if __name__ == '__main__':
    unittest.main()
