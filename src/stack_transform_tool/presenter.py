# -*- coding: utf-8 -*-
"""
调用树展示 (纯函数实现)

把调用树转换为表格行，输出 JSON / XLSX 文件或在 stdout 打印 markdown 表格。
"""

import json
from pathlib import Path
from typing import Dict, List, Any, Optional
import logging

import pandas as pd

from .call_tree import CallTree

logger = logging.getLogger(__name__)


def build_call_tree_rows(call_tree: CallTree, max_depth: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    生成调用树的表格行

    Args:
        call_tree: 调用树
        max_depth: 最大展开深度（从 0 开始），None 表示全部展开

    Returns:
        List[Dict[str, Any]]: 每个调用节点一行，按深度优先、最重优先排序
    """
    rows = []
    for node in call_tree.iter_rows(max_depth):
        rows.append({
            'depth': node['depth'],
            'name': '  ' * node['depth'] + node['name'],
            'self': node['self'],
            'total': node['total'],
            'total_percent': round(node['total_ratio'] * 100, 2),
            'call_node_path': ','.join(str(func) for func in node['call_node_path']),
        })
    return rows


def print_markdown_table(rows: List[Dict], title: str) -> None:
    """打印markdown格式的表格"""
    if not rows:
        print(f"# {title}\n\n没有数据可显示")
        return

    print(f"# {title}\n")
    columns = list(rows[0].keys())
    print("| " + " | ".join(columns) + " |")
    print("| " + " | ".join(["---"] * len(columns)) + " |")
    for row in rows:
        values = []
        for col in columns:
            value = row.get(col, "")
            # markdown 表格中保留缩进
            if isinstance(value, str):
                value = value.replace("  ", "&nbsp;&nbsp;")
            values.append(str(value))
        print("| " + " | ".join(values) + " |")
    print()


def generate_output_files(rows: List[Dict], output_dir: str, base_name: str,
                          output_formats: List[str]) -> List[Path]:
    """
    生成输出文件（JSON 和/或 XLSX）

    Returns:
        List[Path]: 生成的文件路径列表
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    generated_files = []

    if 'json' in output_formats:
        json_file = output_path / f"{base_name}.json"
        with open(json_file, 'w', encoding='utf-8') as f:
            json.dump(rows, f, indent=2, ensure_ascii=False)
        print(f"JSON 文件已生成: {json_file}")
        generated_files.append(json_file)

    if 'xlsx' in output_formats:
        if rows:
            df = pd.DataFrame(rows)
            xlsx_file = output_path / f"{base_name}.xlsx"
            df.to_excel(xlsx_file, index=False)
            print(f"Excel 文件已生成: {xlsx_file}")
            generated_files.append(xlsx_file)
        else:
            print("没有数据可以生成 Excel 文件")

    return generated_files
