"""
Kernel Boundary & Invariants Contract.

1. backoffice_kernel/** may NOT import backoffice_modules or
   backoffice_config.  The kernel never depends upward.

2. backoffice_kernel/domain/** stays free of ORM and driver imports,
   except the filter builder, which compiles predicates against columns.

3. Stock is only written through StockLedger.

4. The kernel invariants declaration is complete and non-empty.

These tests read source code via AST.
"""

import ast
import glob
from pathlib import Path

from backoffice_kernel.invariants import (
    ALL_KERNEL_INVARIANTS,
    FORBIDDEN_KERNEL_IMPORTS,
    KernelInvariant,
)

ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[str]:
    return sorted(glob.glob(f"{ROOT / package}/**/*.py", recursive=True))


def _relative(filepath: str) -> str:
    return str(Path(filepath).relative_to(ROOT))


def _extract_imports(filepath: str) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    tree = ast.parse(Path(filepath).read_text(), filename=filepath)

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _type_checking_lines(filepath: str) -> set[int]:
    """Line numbers of imports guarded by ``if TYPE_CHECKING:``."""
    tree = ast.parse(Path(filepath).read_text(), filename=filepath)
    lines: set[int] = set()
    for node in ast.walk(tree):
        if (
            isinstance(node, ast.If)
            and isinstance(node.test, ast.Name)
            and node.test.id == "TYPE_CHECKING"
        ):
            for child in node.body:
                lines.update(n.lineno for n in ast.walk(child) if hasattr(n, "lineno"))
    return lines


def _violations(package: str, forbidden: tuple[str, ...], allowed=frozenset()) -> list[str]:
    found: list[str] = []
    for filepath in _python_files(package):
        if _relative(filepath) in allowed:
            continue
        annotation_only = _type_checking_lines(filepath)
        for lineno, module in _extract_imports(filepath):
            if lineno in annotation_only:
                continue
            for prefix in forbidden:
                if module == prefix or module.startswith(f"{prefix}."):
                    found.append(f"  {_relative(filepath)}:{lineno} imports '{module}'")
    return found


class TestKernelNoUpwardDependencies:

    def test_kernel_does_not_import_forbidden_packages(self):
        violations = _violations("backoffice_kernel", FORBIDDEN_KERNEL_IMPORTS)
        assert not violations, (
            "Kernel boundary violation:\n" + "\n".join(violations)
        )

    def test_config_does_not_import_modules(self):
        violations = _violations("backoffice_config", ("backoffice_modules",))
        assert not violations, "\n".join(violations)

    def test_packages_are_scanned(self):
        assert _python_files("backoffice_kernel")
        assert _python_files("backoffice_config")


class TestKernelDomainPurity:

    FORBIDDEN_MODULES = ("sqlalchemy", "psycopg2", "sqlite3", "backoffice_kernel.models")

    def test_domain_no_orm_imports(self):
        violations = _violations(
            "backoffice_kernel/domain",
            self.FORBIDDEN_MODULES,
            # Filter predicates are built against mapped columns.
            allowed={"backoffice_kernel/domain/filters.py"},
        )
        assert not violations, (
            "Domain purity violation:\n" + "\n".join(violations)
        )


class TestStockWriteGate:
    """Only the stock ledger issues UPDATEs against Product.stock."""

    ALLOWED = {"backoffice_kernel/services/stock_ledger.py"}

    def test_no_stock_assignment_outside_ledger(self):
        violations: list[str] = []
        for package in ("backoffice_kernel", "backoffice_modules"):
            for filepath in _python_files(package):
                rel = _relative(filepath)
                if rel in self.ALLOWED:
                    continue
                tree = ast.parse(Path(filepath).read_text(), filename=filepath)
                for node in ast.walk(tree):
                    if isinstance(node, (ast.Assign, ast.AugAssign)):
                        targets = node.targets if isinstance(node, ast.Assign) else [node.target]
                        for target in targets:
                            if (
                                isinstance(target, ast.Attribute)
                                and target.attr == "stock"
                                and not (isinstance(target.value, ast.Name) and target.value.id == "self")
                            ):
                                violations.append(f"  {rel}:{node.lineno}")
        assert not violations, (
            "Stock written outside StockLedger:\n" + "\n".join(violations)
        )


class TestInvariantsContract:

    def test_declaration_is_non_empty(self):
        assert ALL_KERNEL_INVARIANTS
        assert ALL_KERNEL_INVARIANTS == frozenset(KernelInvariant)

    def test_every_invariant_is_documented(self):
        source = Path(ROOT / "backoffice_kernel" / "invariants.py").read_text()
        tree = ast.parse(source)
        cls = next(
            n for n in tree.body
            if isinstance(n, ast.ClassDef) and n.name == "KernelInvariant"
        )
        documented = set()
        for current, following in zip(cls.body, cls.body[1:]):
            if (
                isinstance(current, ast.Assign)
                and isinstance(following, ast.Expr)
                and isinstance(following.value, ast.Constant)
            ):
                documented.add(current.targets[0].id)
        assert documented == {inv.name for inv in KernelInvariant}
