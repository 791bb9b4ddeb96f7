import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


def _load_env_files():
    """Load .env files into os.environ without overriding existing variables.
    Looks for ENV_PATH first, then .env in project root and package folder.
    Supports simple KEY=VALUE lines; ignores comments and blank lines.
    """
    candidates = []
    env_path = os.environ.get("ENV_PATH")
    if env_path:
        candidates.append(env_path)
    here = os.path.dirname(os.path.abspath(__file__))
    root = os.path.abspath(os.path.join(here, os.pardir))
    candidates.extend([
        os.path.join(root, ".env"),
        os.path.join(here, ".env"),
    ])
    for p in candidates:
        if not os.path.isfile(p):
            continue
        try:
            with open(p, "r", encoding="utf-8") as f:
                for raw in f:
                    line = raw.strip()
                    if not line or line.startswith("#"):
                        continue
                    if "=" not in line:
                        continue
                    k, v = line.split("=", 1)
                    k = k.strip()
                    v = v.strip().strip('"').strip("'")
                    if k and (k not in os.environ):
                        os.environ[k] = v
        except OSError:
            continue


DEFAULT_ORIGINS = (
    "http://127.0.0.1:3000",
    "http://localhost:3000",
    "http://127.0.0.1:8000",
    "http://localhost:8000",
)

# tool name -> environment variable holding an override path
TOOL_ENV_OVERRIDES = {
    "eslint": "ESLINT_PATH",
    "html-validate": "HTML_VALIDATE_PATH",
    "stylelint": "STYLELINT_PATH",
    "javac": "JAVAC_PATH",
    "python": "PYTHON_PATH",
}


@dataclass(frozen=True)
class Settings:
    db_path: str = "codebin.db"
    tool_timeout: Optional[float] = 30.0
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 5000
    allow_origins: Tuple[str, ...] = DEFAULT_ORIGINS
    tool_overrides: Dict[str, str] = field(default_factory=dict)
    stylelint_basedir: Optional[str] = None


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def load_settings() -> Settings:
    _load_env_files()
    timeout = _float_env("CODEBIN_TOOL_TIMEOUT", 30.0)
    origins_env = os.environ.get("CORS_ALLOW_ORIGINS", "").strip()
    if origins_env:
        origins = tuple(o.strip() for o in origins_env.split(",") if o.strip())
    else:
        origins = DEFAULT_ORIGINS
    overrides = {}
    for tool, var in TOOL_ENV_OVERRIDES.items():
        value = os.environ.get(var, "").strip()
        if value:
            overrides[tool] = value
    return Settings(
        db_path=os.environ.get("CODEBIN_DB_PATH", "").strip() or "codebin.db",
        # 0 (or a negative value) disables the per-tool timeout
        tool_timeout=timeout if timeout > 0 else None,
        log_level=(os.environ.get("CODEBIN_LOG_LEVEL", "").strip() or "INFO").upper(),
        host=os.environ.get("CODEBIN_HOST", "").strip() or "127.0.0.1",
        port=_int_env("CODEBIN_PORT", 5000),
        allow_origins=origins,
        tool_overrides=overrides,
        stylelint_basedir=os.environ.get("STYLELINT_CONFIG_BASEDIR", "").strip() or None,
    )
