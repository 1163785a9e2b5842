from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterator

from llparse.symbols import EPSILON, Symbol


class ParseTree:
    """A parse tree node: one grammar symbol and its ordered children."""

    def __init__(self, symbol: Symbol, children: list[ParseTree] | None = None) -> None:
        self.symbol = symbol
        self.children: list[ParseTree] = children if children is not None else []

    def __iter__(self) -> Iterator[ParseTree]:
        return iter(self.children)

    def __len__(self) -> int:
        return len(self.children)

    def walk(self) -> Iterator[ParseTree]:
        """Yield nodes parent first, children left to right."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def leaves(self) -> list[Symbol]:
        return [
            node.symbol
            for node in self.walk()
            if node.symbol.is_terminal and node.symbol != EPSILON
        ]

    def yield_string(self) -> str:
        return " ".join(str(sym) for sym in self.leaves())

    def __str__(self) -> str:
        if self.symbol.is_terminal:
            return str(self.symbol)
        inner = ", ".join(str(child) for child in self.children)
        return f"{self.symbol} -> [{inner}]"

    def __repr__(self) -> str:
        return f"ParseTree({self.symbol!r}, children={len(self.children)})"


def format_tree(tree: ParseTree) -> str:
    lines: list[str] = []

    def emit(node: ParseTree, indent: str) -> None:
        label = str(node.symbol)
        if node.symbol.is_terminal and node.symbol.line is not None:
            label = f"{label}  @{node.symbol.location()}"
        lines.append(f"{indent}{label}")
        for child in node.children:
            emit(child, indent + "  ")

    emit(tree, "")
    return "\n".join(lines) + "\n"


def format_tree_xml(tree: ParseTree) -> str:
    """Render the tree-exchange document: nested ``branch`` elements with a name attribute."""
    root = ET.Element("tree")
    declarations = ET.SubElement(root, "declarations")
    ET.SubElement(declarations, "attributeDecl", name="name", type="String")

    def emit(node: ParseTree, parent: ET.Element) -> None:
        branch = ET.SubElement(parent, "branch")
        ET.SubElement(branch, "attribute", name="name", value=str(node.symbol))
        for child in node.children:
            emit(child, branch)

    emit(tree, root)
    ET.indent(root)
    return ET.tostring(root, encoding="unicode") + "\n"


def format_tree_dot(tree: ParseTree) -> str:
    lines: list[str] = ["digraph ParseTree {", "  node [shape=box];"]
    counter = {"n": 0}

    def emit_node(node: ParseTree) -> str:
        nid = f"n{counter['n']}"
        counter["n"] += 1
        safe = str(node.symbol).replace("\\", "\\\\").replace('"', '\\"')
        shape = ' shape=ellipse' if node.symbol.is_terminal else ""
        lines.append(f'  {nid} [label="{safe}"{shape}];')
        for child in node.children:
            child_id = emit_node(child)
            lines.append(f"  {nid} -> {child_id};")
        return nid

    emit_node(tree)
    lines.append("}")
    return "\n".join(lines) + "\n"
