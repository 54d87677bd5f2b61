import os
from dataclasses import dataclass

from app.dms.constants import SYSTEM_ADMINISTRATOR


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    log_level: str

    archive_roles: tuple[str, ...]
    passcode_min_length: int
    audit_trail_limit: int

    reference_data_path: str
    seed_demo_data: bool


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}.") from None


def _split_csv(raw: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def load_settings() -> Settings:
    env = _getenv("ENV", "development")
    is_production = env in ("prod", "production")
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=env,
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        archive_roles=_split_csv(_getenv("ARCHIVE_ROLES", SYSTEM_ADMINISTRATOR)),
        passcode_min_length=_getenv_int("PASSCODE_MIN_LENGTH", 6),
        audit_trail_limit=_getenv_int("AUDIT_TRAIL_LIMIT", 8),
        reference_data_path=_getenv("REFERENCE_DATA_PATH", ""),
        seed_demo_data=_getenv("SEED_DEMO_DATA", "0" if is_production else "1") == "1",
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "LOG_LEVEL": s.log_level,
        "ARCHIVE_ROLES": s.archive_roles,
        "PASSCODE_MIN_LENGTH": s.passcode_min_length,
        "AUDIT_TRAIL_LIMIT": s.audit_trail_limit,
        "REFERENCE_DATA_PATH": s.reference_data_path,
        "SEED_DEMO_DATA": s.seed_demo_data,
        # JSON payloads only (1MB)
        "MAX_CONTENT_LENGTH": 1 * 1024 * 1024,
    }
