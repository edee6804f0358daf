from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv


@dataclass(frozen=True)
class CompanyConfig:
    company: str
    api_token: str
    company_id: str


@dataclass(frozen=True)
class RuntimeConfig:
    base_url: str
    artifact_root: Path
    timezone: ZoneInfo
    log_level: str
    default_company: str | None
    store_file: Path | None = None


def load_env(dotenv_path: str | Path | None = None) -> None:
    path = Path(dotenv_path) if dotenv_path else None
    if path and path.exists():
        load_dotenv(path)
        return
    load_dotenv()


def runtime_config() -> RuntimeConfig:
    base_url = os.getenv("CUADRANTE_BASE_URL", "http://localhost:5000").rstrip("/")
    artifact_root = Path(os.getenv("CUADRANTE_ARTIFACT_DIR", "./artifacts")).expanduser().resolve()
    tz_name = os.getenv("CUADRANTE_TIMEZONE", "Europe/Madrid")
    log_level = os.getenv("CUADRANTE_LOG_LEVEL", "INFO").upper()
    default_company = os.getenv("CUADRANTE_DEFAULT_COMPANY")
    store_file = os.getenv("CUADRANTE_STORE_FILE", "").strip()
    artifact_root.mkdir(parents=True, exist_ok=True)
    return RuntimeConfig(
        base_url=base_url,
        artifact_root=artifact_root,
        timezone=ZoneInfo(tz_name),
        log_level=log_level,
        default_company=default_company,
        store_file=Path(store_file).expanduser() if store_file else None,
    )


def get_company_config(company: str) -> CompanyConfig:
    token_var = f"CUADRANTE_API_TOKEN_{company.upper()}"
    company_var = f"CUADRANTE_COMPANY_ID_{company.upper()}"
    api_token = os.getenv(token_var, "").strip()
    company_id = os.getenv(company_var, "").strip()
    if not api_token or not company_id:
        available = list_configured_companies()
        raise ValueError(
            f"Missing credentials for company '{company}'. "
            f"Expected env vars {token_var} and {company_var}. "
            f"Configured companies: {available or 'none'}"
        )
    return CompanyConfig(company=company, api_token=api_token, company_id=company_id)


def list_configured_companies() -> list[str]:
    result: list[str] = []
    for name, value in os.environ.items():
        if not name.startswith("CUADRANTE_API_TOKEN_") or not value.strip():
            continue
        suffix = name[len("CUADRANTE_API_TOKEN_") :]
        company_var = f"CUADRANTE_COMPANY_ID_{suffix}"
        if os.getenv(company_var, "").strip():
            result.append(suffix.lower())
    return sorted(set(result))
