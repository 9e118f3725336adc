#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
XMLBIF 0.3 序列化
格式说明: http://www.cs.cmu.edu/~fgcozman/Research/InterchangeFormat/

变量类型等附加信息写在 VARIABLE 的 PROPERTY 中（"键 = 值"）。
DEFINITION 的 GIVEN 列出全部父节点（含字符串变量），TABLE 只覆盖参与 CPT 的父节点。
训练计数不会被保存。
"""
import json
from typing import Any, Dict, List, Optional, Union

from lxml import etree

from sbn.bayes.network import Network
from sbn.bayes.numeric_variable import NumericVariable
from sbn.bayes.string_variable import StringVariable
from sbn.bayes.variables import DiscreteVariable
from sbn.utils.logging import setup_logger

logger = setup_logger("xmlbif")

XMLBIF_VERSION = "0.3"


def _format_probability(p: float) -> str:
    return repr(float(p))


def to_xmlbif(net: Network) -> str:
    """
    将网络导出为 XMLBIF 文档

    Args:
        net: 网络

    Returns:
        XML 文本
    """
    bif = etree.Element("BIF", VERSION=XMLBIF_VERSION)
    network_tag = etree.SubElement(bif, "NETWORK")
    etree.SubElement(network_tag, "NAME").text = net.name

    variables = list(net.variables.values())

    for variable in variables:
        variable_tag = etree.SubElement(network_tag, "VARIABLE", TYPE="nature")
        etree.SubElement(variable_tag, "NAME").text = variable.name
        for state in variable.states:
            etree.SubElement(variable_tag, "OUTCOME").text = state
        for key, value in variable.xmlbif_properties():
            etree.SubElement(variable_tag, "PROPERTY").text = f"{key} = {value}"

    for variable in variables:
        definition_tag = etree.SubElement(network_tag, "DEFINITION")
        etree.SubElement(definition_tag, "FOR").text = variable.name
        for parent in net.structure.get_parents(variable.name):
            etree.SubElement(definition_tag, "GIVEN").text = parent
        if variable.sampled and variable.table():
            values = variable.flat_probabilities()
            etree.SubElement(definition_tag, "TABLE").text = " ".join(
                _format_probability(p) for p in values
            )

    xml = etree.tostring(bif, pretty_print=True, xml_declaration=True, encoding="UTF-8")
    logger.debug(f"网络 {net.name} 已导出为 XMLBIF ({len(variables)} 个变量)")
    return xml.decode("utf-8")


def _parse_properties(variable_tag) -> Dict[str, str]:
    properties = {}
    for tag in variable_tag.findall("PROPERTY"):
        text = tag.text or ""
        if "=" not in text:
            continue
        key, value = text.split("=", 1)
        properties[key.strip()] = value.strip()
    return properties


def _parse_floats(text: str) -> List[float]:
    return [float(v) for v in text.split()] if text and text.strip() else []


def _text(tag, child: str) -> str:
    node = tag.find(child)
    if node is None or node.text is None:
        raise ValueError(f"XMLBIF 元素 {tag.tag} 缺少 {child}")
    return node.text.strip()


def from_xmlbif(text: Union[str, bytes], config: Optional[Dict[str, Any]] = None) -> Network:
    """
    从 XMLBIF 文档恢复网络

    Args:
        text: XML 文本
        config: 新网络的配置

    Returns:
        网络对象
    """
    if isinstance(text, str):
        text = text.encode("utf-8")
    parser = etree.XMLParser(remove_blank_text=True, resolve_entities=False, no_network=True)
    root = etree.fromstring(text, parser)
    network_tag = root if root.tag == "NETWORK" else root.find("NETWORK")
    if network_tag is None:
        raise ValueError("XMLBIF 文档中没有 NETWORK 元素")

    net = Network(name=_text(network_tag, "NAME"), config=config)

    variable_tags = network_tag.findall("VARIABLE")
    covariable_tags = []
    for tag in variable_tags:
        name = _text(tag, "NAME")
        outcomes = [(o.text or "").strip() for o in tag.findall("OUTCOME")]
        properties = _parse_properties(tag)
        kind = properties.get("kind", "discrete")

        if kind == "covariable":
            # 协变量需要在所属字符串变量之后创建
            covariable_tags.append((name, properties))
        elif kind == "numeric":
            thresholds = [float(c) for c in properties.get("thresholds", "").split(",") if c]
            n_bins = int(properties["n_bins"]) if "n_bins" in properties else None
            NumericVariable(net, name, thresholds=thresholds, n_bins=n_bins)
        elif kind == "string":
            sizes = [int(n) for n in properties.get("ngram_sizes", "").split(",") if n]
            case_sensitive = json.loads(properties["case_sensitive"]) if "case_sensitive" in properties else None
            StringVariable(net, name, ngram_sizes=sizes or None, case_sensitive=case_sensitive)
        else:
            DiscreteVariable(net, name, states=outcomes or None)

    for name, properties in covariable_tags:
        manager = net.get_variable(properties["manager"])
        manager.adopt_covariable(name, json.loads(properties["text"]))

    # 边按 GIVEN 顺序原样恢复，父节点顺序决定 TABLE 的展开方式
    definitions = network_tag.findall("DEFINITION")
    for tag in definitions:
        child = _text(tag, "FOR")
        net.get_variable(child)
        for given in tag.findall("GIVEN"):
            parent = (given.text or "").strip()
            net.get_variable(parent)
            net.structure.add_edge(parent, child)

    for tag in definitions:
        table = tag.find("TABLE")
        if table is None:
            continue
        values = _parse_floats(table.text)
        if values:
            net.get_variable(_text(tag, "FOR")).set_probabilities(values)

    logger.info(f"已从 XMLBIF 恢复网络 {net.name}: {len(variable_tags)} 个变量")
    return net
