"""Exception types shared by the analysis pipeline and the HTTP layer."""

from typing import Optional


class CodeBinError(Exception):
    """Base exception for CodeBin"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(CodeBinError):
    """A request is missing a required field. Reported as HTTP 400."""


class ToolExecutionError(CodeBinError):
    """An external tool exited with an unexpected status or could not be spawned."""

    def __init__(
        self,
        message: str,
        stdout: str = "",
        stderr: str = "",
        returncode: Optional[int] = None,
    ):
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode


class ToolTimeoutError(ToolExecutionError):
    """An external tool ran past its time limit and was killed."""

    def __init__(self, tool: str, timeout: float):
        super().__init__(f"{tool} timed out after {timeout:g}s")
        self.tool = tool
        self.timeout = timeout


class ParseError(CodeBinError):
    """Tool output could not be decoded."""


class SnippetNotFound(CodeBinError):
    def __init__(self, unique_id: str):
        super().__init__(f"Snippet {unique_id!r} not found")
        self.unique_id = unique_id
