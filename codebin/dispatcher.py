import logging
from typing import Dict, List, Optional

from .analyzers import Analyzer, Language
from .diagnostics import Diagnostic, failure_diagnostic
from .errors import ValidationError
from . import workspace

logger = logging.getLogger(__name__)


class Dispatcher:
    """Routes an analysis request to the analyzer registered for its language."""

    def __init__(self, registry: Dict[Language, Analyzer]):
        self.registry = registry

    def languages(self) -> List[str]:
        return [lang.value for lang in self.registry]

    async def dispatch(self, code: Optional[str], language: Optional[str]) -> List[Diagnostic]:
        if not code or not language:
            raise ValidationError("Code and language are required.")
        lang = Language.from_tag(language)
        analyzer = self.registry.get(lang) if lang else None
        if analyzer is None:
            # Unsupported languages are not an error
            return []
        with workspace.acquire(language) as ws:
            ws.write(code)
            try:
                return await analyzer.analyze(code, ws)
            except Exception as e:
                logger.exception(f"Error analyzing {language}")
                return [failure_diagnostic(f"Server error during {language} analysis: {e}")]
