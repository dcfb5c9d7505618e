"""
The six independent validation checks.

Each check reads an artifact and returns a DimensionScore in 0..100. Checks
share no state and none depends on another's output.

Copyright (c) 2025 GenForge
"""

import re
from collections import Counter
from dataclasses import dataclass
from typing import List, Tuple

from .artifacts import Artifact
from .build import BuildRunner
from .models import BuildReport, DimensionScore, round_half_up

CRITICAL_PENALTY = 30


@dataclass(frozen=True)
class StructureRequirement:
    name: str
    path: str
    critical: bool


STRUCTURE_REQUIREMENTS: List[StructureRequirement] = [
    StructureRequirement("package.json exists", "package.json", True),
    StructureRequirement("Next.js app directory", "app", True),
    StructureRequirement("TypeScript config", "tsconfig.json", False),
    StructureRequirement("Tailwind config", "tailwind.config.js", False),
    StructureRequirement("Components directory", "components", False),
    StructureRequirement("Layout file", "app/layout.tsx", True),
    StructureRequirement("Main page", "app/page.tsx", True),
    StructureRequirement("Global styles", "app/globals.css", False),
]

ESSENTIAL_FILES = ("package.json", "app/page.tsx", "app/layout.tsx")

CODE_EXTENSIONS = (".tsx", ".ts", ".jsx", ".js")
MARKUP_EXTENSIONS = (".tsx", ".jsx")
BUNDLE_EXTENSIONS = (".tsx", ".ts", ".jsx", ".js", ".css")

_FUNCTION = re.compile(r"function\s+\w+|const\s+\w+\s*=\s*\(|=>\s*\{|\w+\s*\([^)]*\)\s*\{")
_LONG_BODY = re.compile(r"\{\s*[^}]{200,}\}")


@dataclass(frozen=True)
class AccessibilityRule:
    name: str
    pattern: "re.Pattern"
    severity: str  # error, warning, info
    description: str


ACCESSIBILITY_RULES: List[AccessibilityRule] = [
    AccessibilityRule("alt-text", re.compile(r"<img(?![^>]*alt=)[^>]*>"), "error",
                      "Images without alt text"),
    AccessibilityRule("button-accessibility", re.compile(r"<button[^>]*>(?:\s*<[^>]*>\s*)*\s*</button>"), "warning",
                      "Empty buttons"),
    AccessibilityRule("form-labels", re.compile(r"<input(?![^>]*(?:aria-label|aria-labelledby))[^>]*>"), "warning",
                      "Inputs without labels"),
    AccessibilityRule("heading-structure", re.compile(r"<h[1-6][^>]*>"), "info",
                      "Heading structure"),
]
ERROR_PENALTY = 20
WARNING_PENALTY = 5


def check_structure(artifact: Artifact) -> DimensionScore:
    """File presence: critical misses cost 30 points each on top of the ratio."""
    results = []
    for req in STRUCTURE_REQUIREMENTS:
        results.append({"name": req.name, "path": req.path, "critical": req.critical,
                        "passed": artifact.exists(req.path)})

    passed = sum(1 for r in results if r["passed"])
    critical_missing = [r for r in results if r["critical"] and not r["passed"]]
    optional_missing = [r for r in results if not r["critical"] and not r["passed"]]

    score = round_half_up(passed / len(results) * 100)
    score = max(score - CRITICAL_PENALTY * len(critical_missing), 0)

    findings = [f"Missing critical: {r['path']}" for r in critical_missing]
    findings.extend(f"Missing optional: {r['path']}" for r in optional_missing)
    return DimensionScore(
        score=score,
        findings=findings,
        details={
            "checks": results,
            "critical_missing": len(critical_missing),
            "optional_missing": len(optional_missing),
            "optional_total": sum(1 for r in results if not r["critical"]),
        },
    )


def has_essential_files(artifact: Artifact) -> bool:
    return all(artifact.exists(path) for path in ESSENTIAL_FILES)


def score_build_report(report: BuildReport) -> DimensionScore:
    """Type check 30, lint 30 (15 with at most five issues), build 40."""
    score = 0
    findings = []
    if report.typecheck_passed:
        score += 30
    else:
        findings.append("Type check failed")
    if report.lint_passed:
        score += 30
    elif report.lint_issues is not None and report.lint_issues <= 5:
        score += 15
        findings.append(f"{report.lint_issues} lint issues")
    else:
        findings.append("Lint failed" if report.lint_issues is None else f"{report.lint_issues} lint issues")
    if report.build_succeeded:
        score += 40
    else:
        findings.append("Build failed")
    return DimensionScore(
        score=min(score, 100),
        findings=findings,
        details={
            "typecheck_passed": report.typecheck_passed,
            "lint_issues": report.lint_issues,
            "build_succeeded": report.build_succeeded,
            "output": report.output[-2000:],
        },
    )


async def check_compilation(artifact: Artifact, runner: BuildRunner) -> DimensionScore:
    report = await runner.run(artifact)
    return score_build_report(report)


def check_quality(artifact: Artifact) -> DimensionScore:
    """Static proxies: long functions, duplicated lines, lines per file."""
    files = artifact.list_files("", CODE_EXTENSIONS)
    if not files:
        return DimensionScore(score=round_half_up(30 * 3 / 4), findings=["No source files"],
                              details={"code_quality": 30, "maintainability": 30, "complexity": 30, "coverage": 0})

    total_lines = 0
    total_functions = 0
    long_functions = 0
    duplicated = 0
    for path in files:
        content = artifact.read_text(path)
        lines = content.split("\n")
        total_lines += len(lines)
        total_functions += len(_FUNCTION.findall(content))
        long_functions += len(_LONG_BODY.findall(content))
        meaningful = [line.strip() for line in lines if len(line.strip()) > 10]
        duplicated += len(meaningful) - len(set(meaningful))

    code_quality = max(100 - long_functions / max(total_functions, 1) * 50, 30)
    maintainability = max(100 - duplicated / max(total_lines, 1) * 100, 30)
    complexity = max(100 - (total_lines / len(files)) / 100, 30)
    coverage = 0

    findings = []
    if code_quality < 70:
        findings.append(f"{long_functions} long function bodies")
    if maintainability < 70:
        findings.append(f"{duplicated} duplicated lines")

    return DimensionScore(
        score=round_half_up((code_quality + maintainability + complexity + coverage) / 4),
        findings=findings,
        details={
            "code_quality": round_half_up(code_quality),
            "maintainability": round_half_up(maintainability),
            "complexity": round_half_up(complexity),
            "coverage": coverage,
            "files": len(files),
            "lines": total_lines,
        },
    )


def _component_status(content: str) -> Tuple[bool, bool]:
    functional = "export" in content and ("function" in content or "=>" in content)
    has_props = "props" in content or "interface" in content or "type" in content
    return functional, has_props


def check_functionality(artifact: Artifact) -> DimensionScore:
    """Well-formed components and pages, 50 points each."""
    components = []
    for path in artifact.list_files("components", MARKUP_EXTENSIONS):
        functional, has_props = _component_status(artifact.read_text(path))
        components.append({"path": path, "functional": functional, "props": has_props})

    pages = []
    for path in artifact.list_files("app", ("page.tsx", "page.jsx")):
        content = artifact.read_text(path)
        relative = path[len("app/"):]
        route = relative.rsplit("/", 1)[0] if "/" in relative else "home"
        pages.append({"path": path, "route": route,
                      "functional": "export default" in content and len(content) > 100})

    good_components = sum(1 for c in components if c["functional"] and c["props"])
    good_pages = sum(1 for p in pages if p["functional"])
    component_score = good_components / len(components) * 50 if components else 0
    page_score = good_pages / len(pages) * 50 if pages else 0

    findings = []
    if not components:
        findings.append("No components found")
    elif good_components < len(components):
        findings.append(f"{len(components) - good_components} incomplete components")
    if not pages:
        findings.append("No pages found")
    elif good_pages < len(pages):
        findings.append(f"{len(pages) - good_pages} incomplete pages")

    return DimensionScore(
        score=round_half_up(component_score + page_score),
        findings=findings,
        details={"components": components, "pages": pages},
    )


def check_performance(artifact: Artifact, budget_bytes: int = 1_000_000) -> DimensionScore:
    """Bundle size against a budget, with load, render and memory proxies."""
    files = artifact.list_files("", BUNDLE_EXTENSIONS)
    bundle_size = sum(artifact.size_of(path) for path in files)

    load_time = min(bundle_size / 10000, 5000)
    render_time = min(len(files) * 10, 2000)
    memory = min(bundle_size / 1000, 50)

    size_score = max(100 - bundle_size / budget_bytes * 100, 0)
    load_score = max(100 - load_time / 50, 0)
    render_score = max(100 - render_time / 20, 0)
    memory_score = max(100 - memory * 2, 0)

    findings = []
    if bundle_size > budget_bytes / 2:
        findings.append(f"Bundle size {bundle_size} bytes")

    return DimensionScore(
        score=round_half_up((size_score + load_score + render_score + memory_score) / 4),
        findings=findings,
        details={
            "bundle_size": bundle_size,
            "load_time_ms": load_time,
            "render_time_ms": render_time,
            "memory_mb": memory,
        },
    )


def check_accessibility(artifact: Artifact) -> DimensionScore:
    """Pattern-based violations; errors cost 20 points, anything else 5."""
    counts: Counter = Counter()
    for path in artifact.list_files("", MARKUP_EXTENSIONS):
        content = artifact.read_text(path)
        for rule in ACCESSIBILITY_RULES:
            counts[rule.name] += len(rule.pattern.findall(content))

    violations = [
        {"rule": rule.name, "severity": rule.severity, "count": counts[rule.name]}
        for rule in ACCESSIBILITY_RULES if counts[rule.name]
    ]
    passed_rules = [rule.name for rule in ACCESSIBILITY_RULES if not counts[rule.name]]

    errors = sum(v["count"] for v in violations if v["severity"] == "error")
    others = sum(v["count"] for v in violations) - errors
    score = max(100 - errors * ERROR_PENALTY - others * WARNING_PENALTY, 0)

    by_name = {rule.name: rule for rule in ACCESSIBILITY_RULES}
    findings = [f"{by_name[v['rule']].description}: {v['count']}" for v in violations]
    return DimensionScore(
        score=score,
        findings=findings,
        details={"violations": violations, "passed_rules": passed_rules},
    )
