"""
Build runners for the compilation check.

StaticBuildRunner inspects sources without executing anything and works on
any artifact. SubprocessBuildRunner runs the configured type check, lint
and build commands inside a DirectoryArtifact.

Copyright (c) 2025 GenForge
"""

import asyncio
import json
import logging
import os
import re
import signal
from typing import Optional, Protocol, Tuple

from genforge.config import get_config

from .artifacts import Artifact, DirectoryArtifact
from .models import BuildReport

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")
TS_EXTENSIONS = (".ts", ".tsx")

_PAIRS = {")": "(", "]": "[", "}": "{"}
_STRING_OR_COMMENT = re.compile(
    r"//[^\n]*|/\*.*?\*/|`(?:\\.|[^`\\])*`|\"(?:\\.|[^\"\\\n])*\"|'(?:\\.|[^'\\\n])*'",
    re.DOTALL,
)
_LINT_RULES = [
    ("no-console", re.compile(r"\bconsole\.log\(")),
    ("no-debugger", re.compile(r"\bdebugger\b")),
    ("no-var", re.compile(r"^\s*var\s", re.MULTILINE)),
    ("no-explicit-any", re.compile(r":\s*any\b")),
    ("eqeqeq", re.compile(r"[^=!<>]==[^=]")),
]


class BuildRunner(Protocol):
    """Collaborator that type checks, lints and builds an artifact."""

    async def run(self, artifact: Artifact) -> BuildReport: ...


def is_balanced(source: str) -> bool:
    """Whether brackets balance once strings and comments are stripped."""
    stack = []
    for char in _STRING_OR_COMMENT.sub("", source):
        if char in "([{":
            stack.append(char)
        elif char in _PAIRS:
            if not stack or stack.pop() != _PAIRS[char]:
                return False
    return not stack


def _load_manifest(artifact: Artifact) -> Optional[dict]:
    if not artifact.exists("package.json"):
        return None
    try:
        manifest = json.loads(artifact.read_text("package.json"))
    except ValueError:
        return None
    return manifest if isinstance(manifest, dict) else None


class StaticBuildRunner:
    """Source-level stand-in for tsc, eslint and the build."""

    def __init__(self, lint_rules=None):
        self.lint_rules = lint_rules if lint_rules is not None else _LINT_RULES

    async def run(self, artifact: Artifact) -> BuildReport:
        return self.inspect(artifact)

    def inspect(self, artifact: Artifact) -> BuildReport:
        sources = artifact.list_files("", SOURCE_EXTENSIONS)
        unbalanced = [path for path in sources if not is_balanced(artifact.read_text(path))]

        typecheck_passed, ts_output = self._typecheck(artifact, unbalanced)
        lint_issues = self._lint(artifact, sources)
        build_succeeded, build_output = self._build(artifact, unbalanced)

        return BuildReport(
            typecheck_passed=typecheck_passed,
            lint_issues=lint_issues,
            build_succeeded=build_succeeded,
            output="\n".join(line for line in (ts_output, build_output) if line),
        )

    def _typecheck(self, artifact: Artifact, unbalanced) -> Tuple[bool, str]:
        if not artifact.exists("tsconfig.json"):
            return False, "tsconfig.json missing"
        try:
            json.loads(artifact.read_text("tsconfig.json"))
        except ValueError as e:
            return False, f"tsconfig.json is not valid JSON: {e}"
        bad_ts = [p for p in unbalanced if p.endswith(TS_EXTENSIONS)]
        if bad_ts:
            return False, "Unbalanced brackets in: " + ", ".join(bad_ts)
        return True, ""

    def _lint(self, artifact: Artifact, sources) -> int:
        issues = 0
        for path in sources:
            content = artifact.read_text(path)
            for _, pattern in self.lint_rules:
                issues += len(pattern.findall(content))
        return issues

    def _build(self, artifact: Artifact, unbalanced) -> Tuple[bool, str]:
        manifest = _load_manifest(artifact)
        if manifest is None:
            return False, "package.json missing or invalid"
        if "build" not in (manifest.get("scripts") or {}):
            return False, "package.json has no build script"
        if unbalanced:
            return False, "Syntax errors in: " + ", ".join(unbalanced)
        if not artifact.exists("app/page.tsx") or "export default" not in artifact.read_text("app/page.tsx"):
            return False, "app/page.tsx has no default export"
        return True, "static build check passed"


class SubprocessBuildRunner:
    """Runs real toolchain commands in the artifact directory."""

    def __init__(self, settings=None):
        self.settings = settings or get_config().validation

    async def _exec(self, command: str, cwd: str, timeout: float) -> Tuple[Optional[int], str]:
        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            start_new_session=os.name == "posix",
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Command timed out after {timeout}s: {command}")
            return None, f"Command timed out after {timeout}s"
        finally:
            # Also reached when the caller cancels us mid-command
            if process.returncode is None:
                self._kill(process)
                await process.wait()
        output = stdout.decode("utf-8", errors="replace")
        errors = stderr.decode("utf-8", errors="replace")
        return process.returncode, output + (f"\n{errors}" if errors else "")

    @staticmethod
    def _kill(process):
        """Kill the shell and everything it spawned."""
        try:
            if os.name == "posix":
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            pass

    async def run(self, artifact: Artifact) -> BuildReport:
        if not isinstance(artifact, DirectoryArtifact):
            logger.info(f"{artifact.name} is not on disk, using static build checks")
            return await StaticBuildRunner().run(artifact)

        cwd = str(artifact.root)
        timeout = self.settings.build_timeout
        report = BuildReport()
        outputs = []

        if artifact.exists("tsconfig.json"):
            code, output = await self._exec(self.settings.typecheck_command, cwd, timeout)
            report.typecheck_passed = code == 0
            outputs.append(output)

        code, output = await self._exec(self.settings.lint_command, cwd, timeout)
        report.lint_issues = self._count_eslint_issues(output) if code is not None else None

        code, output = await self._exec(self.settings.build_command, cwd, timeout)
        report.build_succeeded = code == 0
        outputs.append(output)

        report.output = "\n".join(o for o in outputs if o)
        return report

    @staticmethod
    def _count_eslint_issues(output: str) -> Optional[int]:
        """Count messages in eslint's JSON formatter output."""
        start = output.find("[")
        if start < 0:
            return None
        try:
            results = json.loads(output[start:].split("\n\n")[0])
        except ValueError:
            return None
        return sum(len(entry.get("messages", [])) for entry in results if isinstance(entry, dict))


def get_build_runner(settings=None) -> BuildRunner:
    """Build runner selected by BUILD_RUNNER."""
    settings = settings or get_config().validation
    if settings.build_runner == "subprocess":
        return SubprocessBuildRunner(settings)
    return StaticBuildRunner()
