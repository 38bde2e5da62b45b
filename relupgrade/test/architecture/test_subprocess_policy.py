from __future__ import annotations

import ast

from ._gate import require_arch_checks_enabled
from ._utils import iter_python_files, package_root, read_tree


def _direct_subprocess_calls(tree: ast.AST) -> list[int]:
    lines: list[int] = []
    for node in ast.walk(tree):
        if not isinstance(node, ast.Call) or not isinstance(node.func, ast.Attribute):
            continue
        func = node.func
        if func.attr not in {"run", "check_output", "Popen", "call"}:
            continue
        if isinstance(func.value, ast.Name) and func.value.id == "subprocess":
            lines.append(node.lineno)
    return lines


def test_subprocess_only_in_platform_process() -> None:
    require_arch_checks_enabled()

    root = package_root()
    offenders: list[str] = []
    for file_path in iter_python_files(root):
        rel = file_path.relative_to(root)
        if str(rel) == "platform/process.py":
            continue
        offenders.extend(f"{rel}:{line}" for line in _direct_subprocess_calls(read_tree(file_path)))

    assert not offenders, "direct subprocess calls outside platform/process.py:\n" + "\n".join(
        offenders
    )
