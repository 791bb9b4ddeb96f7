import re
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class Diagnostic(BaseModel):
    line: int = Field(ge=1)
    column: int = Field(ge=1)
    message: str = Field(min_length=1)
    severity: Severity


NO_MESSAGE = "No message provided"


def _position(value) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return 1
    return n if n >= 1 else 1


def make_diagnostic(line, column, message, severity) -> Diagnostic:
    """Build a Diagnostic from loosely-typed tool output.
    Positions that are missing, non-numeric or below 1 become 1.
    Anything but "error" is reported as a warning.
    """
    text = str(message).strip() if message is not None else ""
    sev = Severity.ERROR if str(getattr(severity, "value", severity)).lower() == "error" else Severity.WARNING
    return Diagnostic(
        line=_position(line),
        column=_position(column),
        message=text or NO_MESSAGE,
        severity=sev,
    )


def failure_diagnostic(message: str) -> Diagnostic:
    return make_diagnostic(1, 1, message, Severity.ERROR)


def severity_from_level(level) -> Severity:
    # ESLint and html-validate: 2 is an error, 1 a warning
    try:
        return Severity.ERROR if int(level) == 2 else Severity.WARNING
    except (TypeError, ValueError):
        return Severity.WARNING


_PY_FILE_LINE_RX = re.compile(r'File ".*", line (\d+)')


def parse_python_syntax_output(text: str) -> Diagnostic:
    """Turn py_compile failure text into a single error.

    The line number comes from the first ``File "...", line N`` in the text.
    The message is the second-to-last element of the newline split; with the
    trailing newline py_compile emits, that is the ``SyntaxError: ...`` line.
    """
    text = str(text or "")
    line_no = 1
    m = _PY_FILE_LINE_RX.search(text)
    if m:
        line_no = int(m.group(1))
    message = "Invalid Syntax"
    lines = text.split("\n")
    if len(lines) > 1:
        candidate = lines[-2].strip()
        if candidate:
            message = candidate
    return make_diagnostic(line_no, 1, message, Severity.ERROR)


def parse_flake8_line(line: str) -> Optional[Diagnostic]:
    """Parse one ``row:col:code:text`` line; None if it has fewer than four fields."""
    parts = line.split(":")
    if len(parts) < 4:
        return None
    return make_diagnostic(parts[0], parts[1], ":".join(parts[3:]).strip(), Severity.WARNING)


def parse_flake8_output(text: str) -> List[Diagnostic]:
    out: List[Diagnostic] = []
    for l in (text or "").split("\n"):
        if not l:
            continue
        d = parse_flake8_line(l)
        if d:
            out.append(d)
    return out


_JAVAC_RX = re.compile(r"^(.+\.java):(\d+):\s*(?:error:|warning:)\s*(.*)")


def parse_javac_output(text: str) -> List[Diagnostic]:
    """Map javac output lines to diagnostics in order of appearance.
    Falls back to one error quoting the first output line when nothing matches.
    """
    text = str(text or "")
    out: List[Diagnostic] = []
    for l in text.split("\n"):
        m = _JAVAC_RX.match(l)
        if not m:
            continue
        sev = Severity.ERROR if ": error:" in l else Severity.WARNING
        out.append(make_diagnostic(m.group(2), 1, m.group(3).strip(), sev))
    if not out and text:
        first = text.split("\n", 1)[0]
        out.append(failure_diagnostic(f"Java compilation failed: {first}"))
    return out


def strip_rule_annotation(text: str, rule: Optional[str]) -> str:
    # stylelint appends " (rule-name)" to every warning text
    text = str(text or "")
    if rule:
        text = text.replace(f" ({rule})", "")
    return text
