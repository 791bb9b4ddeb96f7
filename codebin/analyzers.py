"""Per-language analyzers.

Each analyzer runs the external checker(s) for one language through the tool
runner and maps their output to Diagnostics. ``Analyzer.analyze`` never raises:
any failure comes back as a single line-1 error.
"""

import json
import logging
import os
import sys
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, Optional

from .config import Settings
from .diagnostics import (
    Diagnostic,
    failure_diagnostic,
    make_diagnostic,
    parse_flake8_output,
    parse_javac_output,
    parse_python_syntax_output,
    severity_from_level,
    strip_rule_annotation,
)
from .errors import ParseError, ToolExecutionError, ToolTimeoutError
from .tools import resolve_tool, run_tool
from .workspace import WorkspaceFile

logger = logging.getLogger(__name__)

TOOL_CONFIG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "tool_configs")
STYLELINT_CONFIG = os.path.join(TOOL_CONFIG_DIR, "stylelint.json")
ESLINT_CONFIG = os.path.join(TOOL_CONFIG_DIR, "eslint.config.mjs")


class Language(str, Enum):
    JAVASCRIPT = "javascript"
    HTML = "html"
    PYTHON = "python"
    CSS = "css"
    JAVA = "java"

    @classmethod
    def from_tag(cls, tag: Optional[str]) -> Optional["Language"]:
        """Exact, case-sensitive match; None means unsupported."""
        for lang in cls:
            if lang.value == tag:
                return lang
        return None


def load_json_report(text: str, tool: str):
    text = (text or "").strip()
    if not text:
        return []
    try:
        return json.loads(text)
    except ValueError as e:
        raise ParseError(f"{tool} produced unreadable output: {e}") from e


class Analyzer(ABC):
    language: Language
    label = "Analysis"

    def __init__(self, settings: Optional[Settings] = None, runner=run_tool):
        self.settings = settings or Settings()
        self.runner = runner

    @property
    def timeout(self) -> Optional[float]:
        return self.settings.tool_timeout

    def tool(self, name: str) -> str:
        # Unresolved tools are spawned by bare name; the spawn failure becomes a diagnostic
        return resolve_tool(name, self.settings.tool_overrides) or name

    async def analyze(self, code: str, workspace: Optional[WorkspaceFile] = None) -> List[Diagnostic]:
        try:
            return await self._analyze(code, workspace)
        except ToolTimeoutError as e:
            return [failure_diagnostic(e.message)]
        except ParseError as e:
            logger.warning(f"{self.label}: {e.message}")
            return [failure_diagnostic(f"{self.label} failed: {e.message}")]
        except Exception as e:
            logger.exception(f"{self.label} failed")
            return [failure_diagnostic(f"{self.label} failed: {e}")]

    @abstractmethod
    async def _analyze(self, code: str, workspace: Optional[WorkspaceFile]) -> List[Diagnostic]:
        """Run the language's tools; may raise, ``analyze`` contains it."""


def map_level_messages(messages) -> List[Diagnostic]:
    """ESLint / html-validate message objects -> Diagnostics."""
    return [
        make_diagnostic(
            m.get("line"),
            m.get("column"),
            m.get("message"),
            severity_from_level(m.get("severity")),
        )
        for m in (messages or [])
    ]


class JavaScriptAnalyzer(Analyzer):
    language = Language.JAVASCRIPT
    label = "ESLint analysis"

    def command(self) -> List[str]:
        return [
            self.tool("eslint"),
            "--config", ESLINT_CONFIG,
            "--stdin",
            "--stdin-filename", "snippet.js",
            "--format", "json",
        ]

    async def _analyze(self, code, workspace):
        # With --config, file patterns resolve against the cwd
        cwd = workspace.directory if workspace else None
        try:
            # ESLint exits 1 when it reports errors
            out = await self.runner(
                self.command(), cwd=cwd, input_text=code, timeout=self.timeout, ok_returncodes=(0, 1)
            )
        except ToolTimeoutError:
            raise
        except ToolExecutionError as e:
            return [failure_diagnostic(f"{self.label} failed: {e.message}")]
        report = load_json_report(out, "ESLint")
        if not report:
            return []
        return map_level_messages(report[0].get("messages"))


class HtmlAnalyzer(Analyzer):
    language = Language.HTML
    label = "HTML validation"

    def command(self) -> List[str]:
        return [self.tool("html-validate"), "--stdin", "--formatter", "json"]

    async def _analyze(self, code, workspace):
        try:
            out = await self.runner(self.command(), input_text=code, timeout=self.timeout, ok_returncodes=(0, 1))
        except ToolTimeoutError:
            raise
        except ToolExecutionError as e:
            return [failure_diagnostic(f"{self.label} failed: {e.message}")]
        report = load_json_report(out, "html-validate")
        # A valid document produces no result sets
        if not report:
            return []
        result = report[0]
        messages = result.get("messages") or []
        if "errorCount" in result:
            valid = not result["errorCount"]
        else:
            valid = not any(m.get("severity") == 2 for m in messages)
        # Warnings alone do not make a document invalid
        if valid:
            return []
        return map_level_messages(messages)


class CssAnalyzer(Analyzer):
    """stylelint with the standard preset and a fixed 2-space indentation rule.

    The code is fed on stdin; the JSON report goes to a file in the request's
    workspace directory because stylelint releases disagree on whether the
    formatter writes to stdout or stderr.
    """

    language = Language.CSS
    label = "Stylelint execution"

    def command(self, report_path: str) -> List[str]:
        cmd = [
            self.tool("stylelint"),
            "--stdin",
            "--config", STYLELINT_CONFIG,
            "--formatter", "json",
            "--output-file", report_path,
        ]
        if self.settings.stylelint_basedir:
            cmd += ["--config-basedir", self.settings.stylelint_basedir]
        return cmd

    async def _analyze(self, code, workspace):
        report_path = os.path.join(workspace.directory, "stylelint-report.json")
        try:
            out = await self.runner(self.command(report_path), input_text=code, timeout=self.timeout)
        except ToolTimeoutError:
            raise
        except ToolExecutionError as e:
            # 2 means lint problems were found
            if e.returncode != 2:
                return [failure_diagnostic(f"{self.label} failed: {e.message}")]
            out = e.stdout
        text = out
        if os.path.isfile(report_path):
            with open(report_path, "r", encoding="utf-8") as f:
                text = f.read()
        report = load_json_report(text, "stylelint")
        if not report:
            return []
        return [
            make_diagnostic(
                w.get("line"),
                w.get("column"),
                strip_rule_annotation(w.get("text"), w.get("rule")),
                w.get("severity"),
            )
            for w in (report[0].get("warnings") or [])
        ]


class PythonAnalyzer(Analyzer):
    language = Language.PYTHON
    label = "Python analysis"

    FLAKE8_FORMAT = "%(row)d:%(col)d:%(code)s:%(text)s"

    def python(self) -> str:
        if self.settings.tool_overrides.get("python"):
            return self.tool("python")
        return sys.executable

    async def _analyze(self, code, workspace):
        path = workspace.path
        try:
            await self.runner([self.python(), "-m", "py_compile", path], timeout=self.timeout)
        except ToolTimeoutError:
            raise
        except ToolExecutionError as e:
            # Syntax errors short-circuit the lint phase
            return [parse_python_syntax_output(e.message)]
        return await self._lint(path)

    async def _lint(self, path: str) -> List[Diagnostic]:
        cmd = [self.python(), "-m", "flake8", "--exit-zero", f"--format={self.FLAKE8_FORMAT}", path]
        try:
            out = await self.runner(cmd, timeout=self.timeout)
        except ToolExecutionError as e:
            # A broken flake8 install is not reported to the user
            logger.warning(f"flake8 failed, skipping lint results: {e.message.strip()}")
            return []
        return parse_flake8_output(out)


class JavaAnalyzer(Analyzer):
    language = Language.JAVA
    label = "Java analysis"

    async def _analyze(self, code, workspace):
        try:
            await self.runner([self.tool("javac"), workspace.path], cwd=workspace.directory, timeout=self.timeout)
        except ToolTimeoutError:
            raise
        except ToolExecutionError as e:
            output = "\n".join(s for s in (e.stderr, e.stdout) if s)
            return parse_javac_output(output or e.message)
        return []


ANALYZER_CLASSES = (
    JavaScriptAnalyzer,
    HtmlAnalyzer,
    PythonAnalyzer,
    CssAnalyzer,
    JavaAnalyzer,
)


def build_registry(settings: Optional[Settings] = None, runner=run_tool) -> Dict[Language, Analyzer]:
    return {cls.language: cls(settings, runner) for cls in ANALYZER_CLASSES}


__all__ = [
    "Analyzer",
    "CssAnalyzer",
    "HtmlAnalyzer",
    "JavaAnalyzer",
    "JavaScriptAnalyzer",
    "Language",
    "PythonAnalyzer",
    "build_registry",
]
